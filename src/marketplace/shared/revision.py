"""Compare-and-swap guard for aggregates carrying a ``revision`` counter.

Order, Payment and CourierProfile bump ``revision`` on every mutation. A
command may carry the revision its caller last read; if the stored record has
moved on since, the write is rejected instead of silently overwriting it.
"""

from marketplace.errors import ConflictError


def check_revision(aggregate, expected_revision) -> None:
    if expected_revision is None:
        return
    if aggregate.revision != expected_revision:
        raise ConflictError(
            {
                "revision": [
                    f"{type(aggregate).__name__} {aggregate.id} is at revision "
                    f"{aggregate.revision}, expected {expected_revision}"
                ]
            }
        )
