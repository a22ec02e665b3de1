"""SQL-backed customer collaborators: tags, fields, segments, unsubscribes.

Thin adapters over the customer-side tables; the engine only sees the
Protocols in automation.application.interfaces.services.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, exists, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from automation.domain.exceptions import ResourceNotFoundException
from automation.infrastructure.persistence.models.customer import (
    Customer,
    CustomerSegmentMember,
    EmailUnsubscribe,
)

# Fields stored as columns; anything else goes to Customer.attributes.
_CUSTOMER_COLUMNS = frozenset({"email", "phone", "first_name", "last_name"})


async def _get_customer(db: AsyncSession, store_id: str, customer_id: str) -> Customer:
    result = await db.execute(
        select(Customer).where(Customer.id == customer_id, Customer.store_id == store_id)
    )
    customer = result.scalar_one_or_none()
    if customer is None:
        raise ResourceNotFoundException("customer", customer_id)
    return customer


class SqlUnsubscribeService:
    """Email unsubscribe lookups (case-insensitive)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def is_unsubscribed(self, store_id: str, email: str) -> bool:
        result = await self.db.execute(
            select(
                exists().where(
                    EmailUnsubscribe.store_id == store_id,
                    func.lower(EmailUnsubscribe.email) == email.strip().lower(),
                )
            )
        )
        return bool(result.scalar())


class SqlCustomerTagService:
    """Tag mutations on Customer.tags (ordered, duplicates dropped)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def add_tags(self, store_id: str, customer_id: str, tags: list[str]) -> None:
        async with self.db.begin_nested():
            customer = await _get_customer(self.db, store_id, customer_id)
            current = list(customer.tags or [])
            customer.tags = current + [t for t in dict.fromkeys(tags) if t not in current]
            await self.db.flush()

    async def remove_tags(self, store_id: str, customer_id: str, tags: list[str]) -> None:
        async with self.db.begin_nested():
            customer = await _get_customer(self.db, store_id, customer_id)
            customer.tags = [t for t in (customer.tags or []) if t not in tags]
            await self.db.flush()


class SqlCustomerFieldService:
    """UPDATE_FIELD target: core column when it is one, otherwise a custom attribute."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def set_field(
        self, store_id: str, customer_id: str, field: str, value: Any
    ) -> None:
        async with self.db.begin_nested():
            customer = await _get_customer(self.db, store_id, customer_id)
            if field in _CUSTOMER_COLUMNS:
                setattr(customer, field, value)
            else:
                customer.attributes = {**(customer.attributes or {}), field: value}
            await self.db.flush()


class SqlSegmentService:
    """Segment membership (idempotent add and remove)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def add_to_segment(self, store_id: str, segment_id: str, customer_id: str) -> None:
        async with self.db.begin_nested():
            await self.db.execute(
                insert(CustomerSegmentMember)
                .values(store_id=store_id, segment_id=segment_id, customer_id=customer_id)
                .on_conflict_do_nothing(
                    constraint="uq_customer_segment_member_segment_customer"
                )
            )

    async def remove_from_segment(
        self, store_id: str, segment_id: str, customer_id: str
    ) -> None:
        async with self.db.begin_nested():
            await self.db.execute(
                delete(CustomerSegmentMember).where(
                    CustomerSegmentMember.store_id == store_id,
                    CustomerSegmentMember.segment_id == segment_id,
                    CustomerSegmentMember.customer_id == customer_id,
                )
            )
