"""
Base model class for all SQLAlchemy models.

WHY: A single declarative base gives Alembic one metadata object to
inspect and lets tests create every table with one call.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    WHY: DeclarativeBase provides the foundation for SQLAlchemy 2.0 models
    with improved type hints and async support.
    """

    pass
