"""
Statistics Module

Read-only dashboard aggregates for administrators.
"""

from .router import router

__all__ = ["router"]
