"""
Order status state machine.

The transition table is the single source of truth for which status
changes an order may go through. Terminal states map to an empty set.
The table is validated against ``OrderStatus`` at import time, so adding
a status without wiring its transitions fails loudly on startup.
"""

from django.core.exceptions import ImproperlyConfigured

from laundry.constants import OrderStatus

ALLOWED_TRANSITIONS = {
    OrderStatus.BOOKING_CONFIRMED: frozenset({OrderStatus.PICKUP_SCHEDULED, OrderStatus.CANCELLED}),
    OrderStatus.PICKUP_SCHEDULED: frozenset({OrderStatus.PICKED_UP, OrderStatus.CANCELLED}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.IN_PROCESSING}),
    OrderStatus.IN_PROCESSING: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Order field stamped the first time an order enters each status.
STATUS_TIMESTAMP_FIELDS = {
    OrderStatus.BOOKING_CONFIRMED: "booking_confirmed_at",
    OrderStatus.PICKUP_SCHEDULED: "pickup_scheduled_at",
    OrderStatus.PICKED_UP: "picked_up_at",
    OrderStatus.IN_PROCESSING: "in_processing_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.OUT_FOR_DELIVERY: "out_for_delivery_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}

TERMINAL_STATES = frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if not targets)


def _check_complete(table, name):
    missing = set(OrderStatus) - set(table)
    if missing:
        raise ImproperlyConfigured(
            f"{name} does not cover statuses: {', '.join(sorted(missing))}"
        )


_check_complete(ALLOWED_TRANSITIONS, "ALLOWED_TRANSITIONS")
_check_complete(STATUS_TIMESTAMP_FIELDS, "STATUS_TIMESTAMP_FIELDS")


def _coerce(value):
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def is_allowed_transition(from_status, to_status):
    """Return True when ``from_status -> to_status`` is a legal order transition.

    Total over any input: unknown statuses are never allowed.
    """
    source = _coerce(from_status)
    target = _coerce(to_status)
    if source is None or target is None:
        return False
    return target in ALLOWED_TRANSITIONS[source]
