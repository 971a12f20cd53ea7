"""Declarative base shared by all models."""
from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utc_now():
    """Return current UTC time as naive datetime for database storage."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
