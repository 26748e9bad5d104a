import os

import pytest


@pytest.fixture(scope="session")
def _marketplace_domain(request):
    """Initialize the marketplace domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from marketplace.domain import marketplace

    marketplace.init()
    return marketplace


@pytest.fixture(autouse=True)
def run_around_tests(_marketplace_domain):
    """Push domain context before each test, cleanup after."""
    from marketplace.notification import reset_notifier
    from marketplace.payment.recovery import reset_recovery

    ctx = _marketplace_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()

    reset_notifier()
    reset_recovery()


@pytest.fixture
def notifier():
    from marketplace.notification import set_notifier
    from marketplace.notification.memory_adapter import InMemoryNotifier

    recording = InMemoryNotifier()
    set_notifier(recording)
    return recording


@pytest.fixture
def recovery_queue():
    from marketplace.payment.recovery import set_recovery
    from marketplace.payment.recovery.memory_adapter import InMemoryRecoveryQueue

    queue = InMemoryRecoveryQueue()
    set_recovery(queue)
    return queue
