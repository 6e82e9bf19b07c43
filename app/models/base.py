from typing import Any
from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    type_annotation_map: dict[type, Any] = {}


def new_id() -> str:
    """Opaque string identifier assigned at creation."""
    return str(uuid4())
