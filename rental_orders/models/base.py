"""Base models and mixins for database models"""

from sqlalchemy import Column, DateTime, Integer, Uuid
from sqlalchemy.orm import DeclarativeBase, declared_attr
import uuid

from rental_orders.utils.helpers import utcnow

# Create declarative base
class Base(DeclarativeBase):
    pass

class TimestampedModel:
    """Mixin for adding created_at and updated_at timestamps"""

    @declared_attr
    def created_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            index=True
        )

    @declared_attr
    def updated_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            onupdate=utcnow
        )

class UUIDModel:
    """Mixin for adding UUID primary key"""

    @declared_attr
    def id(cls):
        return Column(
            Uuid(as_uuid=True),
            primary_key=True,
            default=uuid.uuid4,
            nullable=False
        )

class VersionedModel:
    """Mixin for optimistic concurrency checks"""

    @declared_attr
    def version(cls):
        return Column(
            Integer,
            nullable=False,
            default=1
        )
