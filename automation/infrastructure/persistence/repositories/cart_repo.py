"""Cart repository for abandoned-cart detection. Implements ICartRepository."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from automation.application.dtos.automation import CartResult
from automation.infrastructure.persistence.models.customer import Cart, Customer


class CartRepository:
    """Cart reads joined with the owning customer's email."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_idle_carts(
        self,
        store_id: str,
        updated_before: datetime,
        updated_after: datetime,
    ) -> list[CartResult]:
        result = await self.db.execute(
            select(Cart, Customer.email)
            .join(Customer, Customer.id == Cart.customer_id)
            .where(
                Cart.store_id == store_id,
                Cart.customer_id.is_not(None),
                Cart.updated_at < updated_before,
                Cart.updated_at > updated_after,
                Cart.is_abandoned_email_sent.is_(False),
            )
            .order_by(Cart.updated_at.asc())
        )
        return [
            CartResult(
                id=cart.id,
                customer_id=cart.customer_id,
                email=email,
                total=float(cart.total) if cart.total is not None else None,
                items=list(cart.items or []),
                updated_at=cart.updated_at,
            )
            for cart, email in result.all()
        ]

    async def mark_abandoned_email_sent(self, store_id: str, cart_id: str) -> None:
        # Keep updated_at: flagging is not cart activity.
        async with self.db.begin_nested():
            await self.db.execute(
                update(Cart)
                .where(Cart.id == cart_id, Cart.store_id == store_id)
                .values(is_abandoned_email_sent=True, updated_at=Cart.updated_at)
                .execution_options(synchronize_session=False)
            )
