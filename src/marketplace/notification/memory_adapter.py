"""Recording notifier for development and tests."""

from marketplace.notification.port import Notifier


class InMemoryNotifier(Notifier):
    def __init__(self) -> None:
        self.published: list[tuple[str, dict]] = []

    def publish(self, event_name: str, payload: dict) -> None:
        self.published.append((event_name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.published]

    def payloads_for(self, event_name: str) -> list[dict]:
        return [payload for name, payload in self.published if name == event_name]
