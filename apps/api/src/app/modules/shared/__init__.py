"""
Shared building blocks for module models and schemas.
"""

from app.modules.shared.models import BaseModel
from app.modules.shared.schemas import Envelope, PageMeta

__all__ = ["BaseModel", "Envelope", "PageMeta"]
