"""Outbound webhook delivery over httpx."""

from __future__ import annotations

from typing import Any

import httpx

from automation.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class HttpxWebhookClient:
    """IWebhookClient backed by an httpx.AsyncClient.

    Pass a shared client (app lifespan) for connection reuse; otherwise a
    client is opened per call with the configured timeout. Transport errors
    propagate and are recorded by the caller as a failed step.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._client = client
        self._timeout = timeout

    async def call(
        self,
        url: str,
        method: str,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> int:
        if self._client is not None:
            response = await self._send(self._client, url, method, headers, payload)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await self._send(client, url, method, headers, payload)
        logger.info(
            "Webhook %s %s returned %s", method, httpx.URL(url).host, response.status_code
        )
        return response.status_code

    async def _send(
        self,
        client: httpx.AsyncClient,
        url: str,
        method: str,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> httpx.Response:
        return await client.request(
            method, url, headers=headers, json=payload, timeout=self._timeout
        )
