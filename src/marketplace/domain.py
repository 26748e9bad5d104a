"""Marketplace bounded context — order fulfillment and payment reconciliation.

Composition root for the coordinator: Order and Payment state machines,
courier assignment, and delivery-zone pricing. Aggregates talk to each
other only through domain events dispatched in-process.
"""

from protean.domain import Domain

from marketplace.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

marketplace = Domain(name="marketplace")
