"""
Scholarships Module

Scholarship catalogue and the counters maintained by the application
lifecycle (application_count, per-decision review counters).

API Endpoints:
- GET /scholarships - List open scholarships
- GET /scholarships/{id} - Scholarship details
- GET /admin/scholarships - All scholarships with counters (admin)
- GET /admin/scholarships/{id} - Scholarship details with counters (admin)

Background Jobs (via APScheduler):
- scholarships_expire_past_deadline: Runs hourly
"""
