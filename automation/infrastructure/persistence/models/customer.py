"""Customer-side tables the engine reads and mutates through thin adapters."""

from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Numeric, String, UniqueConstraint, false
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from automation.infrastructure.persistence.database import Base
from automation.infrastructure.persistence.models.mixins import (
    CreatedAtMixin,
    CuidMixin,
    MultiStoreModel,
    StoreMixin,
)


class Customer(MultiStoreModel, Base):
    """Customer record. Custom fields set by UPDATE_FIELD live in attributes. Table: customer."""

    __tablename__ = "customer"

    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    attributes: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=dict
    )


class CustomerSegmentMember(CuidMixin, StoreMixin, CreatedAtMixin, Base):
    """Segment membership. Table: customer_segment_member."""

    __tablename__ = "customer_segment_member"

    segment_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    customer_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("customer.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint(
            "segment_id", "customer_id", name="uq_customer_segment_member_segment_customer"
        ),
    )


class EmailUnsubscribe(CuidMixin, StoreMixin, CreatedAtMixin, Base):
    """Marketing email opt-out. Table: email_unsubscribe."""

    __tablename__ = "email_unsubscribe"

    email: Mapped[str] = mapped_column(String(320), nullable=False)

    __table_args__ = (
        UniqueConstraint("store_id", "email", name="uq_email_unsubscribe_store_email"),
    )


class Cart(MultiStoreModel, Base):
    """Shopping cart. is_abandoned_email_sent only ever goes false -> true here. Table: cart."""

    __tablename__ = "cart"

    customer_id: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("customer.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    items: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    is_abandoned_email_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
