"""
Notifications Module

Transactional outbox for applicant emails. Status changes queue an event in
their own transaction; events are delivered after commit by a FastAPI
background task and, as a fallback, by a scheduled dispatcher.

Background Jobs (via APScheduler):
- notifications_dispatch_pending: Runs every minute
"""
