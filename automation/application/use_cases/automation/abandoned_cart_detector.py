"""Turn idle carts into ABANDONED_CART triggers."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from automation.application.dtos.automation import AbandonedCartResult
from automation.domain.enums import TriggerType
from automation.shared.telemetry.logging import get_logger
from automation.shared.telemetry.tracing import add_span_attributes, traced
from automation.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from automation.application.interfaces.repositories import ICartRepository
    from automation.application.use_cases.automation.trigger_matcher import TriggerMatcher

logger = get_logger(__name__)


class AbandonedCartDetector:
    """Scans carts idle between min_idle and max_idle and fires one trigger per cart.

    Each cart with a customer email is flagged after its trigger fires (whether
    or not a workflow matched) so it is never scanned twice. Carts whose
    customer has no email are left unflagged. A cart whose trigger or flag
    update fails is logged, left unflagged and retried on the next scan. The
    flag is never cleared here.
    """

    def __init__(
        self,
        cart_repo: ICartRepository,
        trigger_matcher: TriggerMatcher,
        min_idle: timedelta = timedelta(hours=1),
        max_idle: timedelta = timedelta(hours=24),
    ) -> None:
        self._cart_repo = cart_repo
        self._trigger_matcher = trigger_matcher
        self._min_idle = min_idle
        self._max_idle = max_idle

    @traced("automation.check_abandoned_carts")
    async def check_abandoned_carts(
        self, store_id: str, *, now: datetime | None = None
    ) -> AbandonedCartResult:
        """Fire ABANDONED_CART for each idle, unflagged cart of the store."""
        now = now or utc_now()
        logger.info("Checking abandoned carts for store %s", store_id)
        carts = await self._cart_repo.get_idle_carts(
            store_id,
            updated_before=now - self._min_idle,
            updated_after=now - self._max_idle,
        )
        triggered = errors = 0
        for cart in carts:
            if not cart.email:
                continue
            try:
                await self._trigger_matcher.handle_trigger(
                    store_id,
                    TriggerType.ABANDONED_CART.value,
                    {
                        "customerId": cart.customer_id,
                        "email": cart.email,
                        "cartId": cart.id,
                        "cartTotal": cart.total,
                        "cartItems": cart.items,
                    },
                )
                await self._cart_repo.mark_abandoned_email_sent(store_id, cart.id)
            except Exception:
                errors += 1
                logger.exception("Error handling abandoned cart %s", cart.id)
                continue
            triggered += 1
        logger.info(
            "Abandoned cart check for store %s: %s carts scanned, %s triggered, %s errors",
            store_id,
            len(carts),
            triggered,
            errors,
        )
        add_span_attributes(count=triggered, errors=errors)
        return AbandonedCartResult(triggered=triggered, errors=errors)
