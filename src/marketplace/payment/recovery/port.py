"""Recovery port for cash confirmations that failed after a delivery.

Confirming cash on delivery is best-effort: the delivery stands even if the
payment write fails. Each failure is handed to this port so a durable retry
queue can pick it up later.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class FailedCashConfirmation:
    order_id: str
    confirmed_by: str | None
    error_kind: str
    error_message: str
    failed_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class CashConfirmationRecovery(ABC):
    @abstractmethod
    def enqueue(self, failure: FailedCashConfirmation) -> None:
        """Record a failed confirmation for later retry."""
        ...
