"""SQLAlchemy ORM models.

All models are imported here so Alembic can detect them during migration
autogenerate. This module is imported by alembic/env.py.
"""

from yourtranslator.models.user import User

__all__ = ["User"]
