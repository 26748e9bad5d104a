"""Notifier port — where the coordinator publishes its externally visible events.

Template rendering and channel delivery (push, email, SMS) happen behind this
port in the notification service.
"""

from abc import ABC, abstractmethod


class Notifier(ABC):
    @abstractmethod
    def publish(self, event_name: str, payload: dict) -> None:
        """Fire-and-forget publication of one external event."""
        ...
