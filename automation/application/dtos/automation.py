"""DTOs returned by the automation service operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class TriggerResult:
    """Number of enrollments newly created by one trigger."""

    enrolled: int


@dataclass(frozen=True)
class ProcessResult:
    """Summary of one pending-steps batch.

    skipped counts enrollments left pending because their workflow is not active.
    """

    processed: int
    errors: int
    skipped: int = 0


@dataclass(frozen=True)
class AbandonedCartResult:
    """Number of abandoned carts turned into ABANDONED_CART triggers.

    errors counts carts (or whole scans) that failed and stay unflagged.
    """

    triggered: int
    errors: int = 0


@dataclass(frozen=True)
class CycleResult:
    """One scheduler cycle for a store."""

    store_id: str
    abandoned_carts: AbandonedCartResult
    steps: ProcessResult


@dataclass(frozen=True)
class CartResult:
    """Idle cart candidate for abandoned-cart detection."""

    id: str
    customer_id: str
    email: str | None
    total: float | None
    items: list[dict[str, Any]] = field(default_factory=list)
    updated_at: datetime | None = None
