"""
Model registry.

Imports every ORM model so string relationships resolve and Base.metadata is
complete. Imported by main.py, alembic/env.py and the test suite.
"""

from app.core.database import Base
from app.modules.applications.models import Application, ApplicationStatus
from app.modules.notifications.models import NotificationEvent, NotificationKind
from app.modules.organizations.models import Organization, OrganizationType
from app.modules.scholarships.models import AmountType, Scholarship, ScholarshipStatus
from app.modules.users.models import User, UserRole

__all__ = [
    "Base",
    "Application",
    "ApplicationStatus",
    "NotificationEvent",
    "NotificationKind",
    "Organization",
    "OrganizationType",
    "Scholarship",
    "ScholarshipStatus",
    "AmountType",
    "User",
    "UserRole",
]
