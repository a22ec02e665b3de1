"""Log-only delivery adapters used when no email/SMS provider is configured.

Production swaps in a provider-backed implementation in the composition root.
"""

from __future__ import annotations

import logging
from typing import Any

from automation.application.interfaces.services import EmailMessage
from automation.shared.telemetry.logging import get_logger
from automation.shared.utils.datetime import utc_now

logger = get_logger(__name__)


def _mask(address: str) -> str:
    """Keep the first character and the domain/last digits only."""
    if "@" in address:
        local, _, domain = address.partition("@")
        return f"{local[:1]}***@{domain}"
    return f"***{address[-4:]}" if len(address) > 4 else "***"


class LogOnlyEmailDeliverer:
    """IEmailDeliverer that logs instead of sending."""

    async def send_email(self, store_id: str, message: EmailMessage) -> None:
        logger.info(
            "Automation email: would send template %s to %s (store=%s, subject=%r)",
            message.template_id,
            _mask(message.to),
            store_id,
            (message.subject or "")[:80],
        )


class LogOnlySmsDeliverer:
    """ISmsDeliverer that logs instead of sending."""

    async def send_sms(
        self, store_id: str, to: str, message: str, data: dict[str, Any]
    ) -> None:
        logger.info(
            "Automation SMS: would send %d chars to %s (store=%s)",
            len(message),
            _mask(to),
            store_id,
        )


class LogOnlyNotificationService:
    """INotificationService that logs internal notifications."""

    async def notify(self, store_id: str, message: str, context: dict[str, Any]) -> None:
        logger.info("Automation notification (store=%s): %s", store_id, message[:200])
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Automation notification context: %s (at %s)",
                context,
                utc_now().isoformat(),
            )
