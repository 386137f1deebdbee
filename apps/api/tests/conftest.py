"""
Shared test configuration.

Importing the model registry configures every ORM mapper, so tests can build
transient model instances without a database.
"""

from app import models  # noqa: F401
