"""Cash confirmation recovery factory.

Provides get_recovery() / set_recovery() so a durable retry queue can replace
the in-memory default without touching the delivery subscriber.
"""

from marketplace.payment.recovery.memory_adapter import InMemoryRecoveryQueue
from marketplace.payment.recovery.port import CashConfirmationRecovery, FailedCashConfirmation

__all__ = ["CashConfirmationRecovery", "FailedCashConfirmation", "get_recovery", "reset_recovery", "set_recovery"]

_current_recovery: CashConfirmationRecovery | None = None


def get_recovery() -> CashConfirmationRecovery:
    """Return the current recovery queue. Defaults to InMemoryRecoveryQueue."""
    global _current_recovery
    if _current_recovery is None:
        _current_recovery = InMemoryRecoveryQueue()
    return _current_recovery


def set_recovery(recovery: CashConfirmationRecovery) -> None:
    global _current_recovery
    _current_recovery = recovery


def reset_recovery() -> None:
    global _current_recovery
    _current_recovery = None
