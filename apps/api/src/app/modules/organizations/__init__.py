"""
Organizations module - scholarship providers.
"""

from app.modules.organizations.models import Organization, OrganizationType
from app.modules.organizations.repository import OrganizationRepository

__all__ = ["Organization", "OrganizationType", "OrganizationRepository"]
