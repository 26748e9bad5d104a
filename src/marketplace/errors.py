"""Error taxonomy for the fulfillment coordinator.

Callers see four kinds of failure:

- NOT_FOUND: ``protean.exceptions.ObjectNotFoundError`` (order, payment, zone, courier)
- BAD_REQUEST: ``protean.exceptions.ValidationError`` (invalid transition, below minimum order, ...)
- CONFLICT: ``ConflictError`` (duplicate payment, double confirm, stale revision, duplicate zone name)
- UNAUTHORIZED: ``NotAuthorizedError`` (order not assigned to the calling courier)

``describe_error`` turns any of them into a ``{"kind", "message"}`` pair.
"""

from enum import Enum

from protean.exceptions import ObjectNotFoundError, ValidationError


class ErrorKind(Enum):
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"


class ConflictError(ValidationError):
    """The operation collides with the current state of the record."""


class NotAuthorizedError(Exception):
    """The caller does not own the resource it is acting on."""

    def __init__(self, messages):
        super().__init__(messages)
        self.messages = messages


def _flatten(messages) -> str:
    if isinstance(messages, dict):
        parts = []
        for field, errors in messages.items():
            if isinstance(errors, (list, tuple)):
                parts.extend(f"{field}: {error}" for error in errors)
            else:
                parts.append(f"{field}: {errors}")
        return "; ".join(parts)
    if isinstance(messages, (list, tuple)):
        return "; ".join(str(m) for m in messages)
    return str(messages)


def error_kind(exc: Exception) -> ErrorKind:
    # ConflictError first, it is also a ValidationError
    if isinstance(exc, ConflictError):
        return ErrorKind.CONFLICT
    if isinstance(exc, ObjectNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, ValidationError):
        return ErrorKind.BAD_REQUEST
    if isinstance(exc, NotAuthorizedError):
        return ErrorKind.UNAUTHORIZED
    return ErrorKind.INTERNAL


def describe_error(exc: Exception) -> dict:
    """Structured ``{"kind", "message"}`` view of an exception."""
    messages = getattr(exc, "messages", None)
    return {
        "kind": error_kind(exc).value,
        "message": _flatten(messages) if messages else str(exc),
    }


def parse_choice(enum_cls, value, field: str = "status"):
    """Convert caller input to ``enum_cls``, rejecting unknown values as a bad request."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError({field: [f"Unknown {field} '{value}', expected one of: {allowed}"]}) from None
