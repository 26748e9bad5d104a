"""In-process recovery queue; keeps failures in memory for inspection and manual replay."""

from collections import deque

from marketplace.payment.recovery.port import CashConfirmationRecovery, FailedCashConfirmation


class InMemoryRecoveryQueue(CashConfirmationRecovery):
    def __init__(self, max_entries: int = 1000) -> None:
        self.pending: deque[FailedCashConfirmation] = deque(maxlen=max_entries)

    def enqueue(self, failure: FailedCashConfirmation) -> None:
        self.pending.append(failure)

    def drain(self) -> list[FailedCashConfirmation]:
        """Remove and return every queued failure, oldest first."""
        drained = list(self.pending)
        self.pending.clear()
        return drained
