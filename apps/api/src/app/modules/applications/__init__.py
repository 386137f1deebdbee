"""
Applications Module

Scholarship application lifecycle: creation behind the eligibility and
capacity gate, draft editing with completion scoring, submission, and the
admin review workflow.
"""

from app.modules.applications.admin_router import router as admin_router
from app.modules.applications.router import router

__all__ = ["router", "admin_router"]
