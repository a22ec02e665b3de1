"""Service interfaces (ports) for external collaborators.

Customer data, segment membership, unsubscribe lookups, and delivery are
owned elsewhere; the engine only depends on these contracts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class EmailMessage:
    """Templated email handed to the deliverer."""

    to: str
    template_id: str
    subject: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class IUnsubscribeService(Protocol):
    """Protocol for the email unsubscribe list."""

    async def is_unsubscribed(self, store_id: str, email: str) -> bool:
        """True when email opted out of marketing messages for the store."""


class ICustomerTagService(Protocol):
    """Protocol for customer tag mutations."""

    async def add_tags(self, store_id: str, customer_id: str, tags: list[str]) -> None:
        """Add tags (set semantics; existing tags kept)."""

    async def remove_tags(self, store_id: str, customer_id: str, tags: list[str]) -> None:
        """Remove tags if present."""


class ICustomerFieldService(Protocol):
    """Protocol for setting a customer field."""

    async def set_field(
        self, store_id: str, customer_id: str, field: str, value: Any
    ) -> None:
        """Set one field on the customer record."""


class ISegmentService(Protocol):
    """Protocol for segment membership changes."""

    async def add_to_segment(self, store_id: str, segment_id: str, customer_id: str) -> None:
        """Add the customer to the segment (idempotent)."""

    async def remove_from_segment(
        self, store_id: str, segment_id: str, customer_id: str
    ) -> None:
        """Remove the customer from the segment (idempotent)."""


class IEmailDeliverer(Protocol):
    """Protocol for templated email delivery."""

    async def send_email(self, store_id: str, message: EmailMessage) -> None:
        """Send or enqueue the email; raise on delivery failure."""


class ISmsDeliverer(Protocol):
    """Protocol for SMS delivery."""

    async def send_sms(
        self, store_id: str, to: str, message: str, data: dict[str, Any]
    ) -> None:
        """Send or enqueue the SMS; raise on delivery failure."""


class IWebhookClient(Protocol):
    """Protocol for outbound webhooks."""

    async def call(
        self,
        url: str,
        method: str,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> int:
        """Send payload as JSON; return the HTTP status code."""


class INotificationService(Protocol):
    """Protocol for internal (staff) notifications."""

    async def notify(self, store_id: str, message: str, context: dict[str, Any]) -> None:
        """Deliver an internal notification."""
