"""SQLAlchemy mixins for common model patterns.

Provides: CuidMixin, StoreMixin, CreatedAtMixin, TimestampMixin,
SoftDeleteMixin, and the combined MultiStoreModel.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from automation.shared.utils.generators import generate_cuid


class CuidMixin:
    """Mixin for models using CUID as primary key. Provides id with default generate_cuid."""

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class StoreMixin:
    """Mixin for store-scoped models. Stores are owned by another service, so no FK."""

    @declared_attr
    def store_id(cls) -> Mapped[str]:
        return mapped_column(String, nullable=False, index=True)


class CreatedAtMixin:
    """Mixin for append-only rows: created_at (server default, timezone-aware)."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )


class TimestampMixin(CreatedAtMixin):
    """Mixin for created_at and updated_at (server defaults, timezone-aware)."""

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class SoftDeleteMixin:
    """Mixin for soft delete (deleted_at). Null means not deleted."""

    @declared_attr
    def deleted_at(cls) -> Mapped[datetime | None]:
        return mapped_column(DateTime(timezone=True), nullable=True, index=True)


class MultiStoreModel(CuidMixin, StoreMixin, TimestampMixin):
    """Combined mixin: CUID + store_id + created_at/updated_at."""

    __abstract__ = True
