"""Notifier factory.

Provides get_notifier() / set_notifier() / reset_notifier(); defaults to the
recording InMemoryNotifier.
"""

from marketplace.notification.memory_adapter import InMemoryNotifier
from marketplace.notification.port import Notifier

__all__ = ["Notifier", "get_notifier", "reset_notifier", "set_notifier"]

_current_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = InMemoryNotifier()
    return _current_notifier


def set_notifier(notifier: Notifier) -> None:
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None
