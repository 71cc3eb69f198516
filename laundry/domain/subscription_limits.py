"""
Subscription limit rules.

Pure functions over a subscription and its plan: no queries are issued
here. ``effective_limits`` is the only place where subscription-level
overrides are resolved against plan defaults; every other rule goes
through it.

Boundary rule: a deduction may land usage exactly on a limit. Only a
strictly greater result is rejected. Once a limit is reached the
subscription counts as exhausted.
"""

from dataclasses import dataclass
from decimal import Decimal

from django.utils import timezone

from laundry.domain.exceptions import ExceededLimit, NoRemainingPickups, SubscriptionExpired


@dataclass(frozen=True)
class EffectiveLimits:
    max_pickups: int
    kg_limit: Decimal | None
    items_limit: int | None


@dataclass(frozen=True)
class Deduction:
    pickups: int = 0
    kg: Decimal = Decimal("0")
    items: int = 0


def as_decimal(value):
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _pick(override, default):
    return override if override is not None else default


def effective_limits(subscription, plan):
    return EffectiveLimits(
        max_pickups=_pick(subscription.total_max_pickups, plan.max_pickups),
        kg_limit=_pick(subscription.total_kg_limit, plan.kg_limit),
        items_limit=_pick(subscription.total_items_limit, plan.items_limit),
    )


def is_expired(subscription, now=None):
    now = now or timezone.now()
    return subscription.expiry_date < now


def assert_deduction_allowed(subscription, plan, deduction, now=None):
    """
    Raise when ``deduction`` does not fit the subscription's remaining quota.

    Checks run in a fixed order and the first failure wins.
    """
    if not subscription.active:
        raise SubscriptionExpired("Subscription is not active", subscription_id=subscription.pk)
    if is_expired(subscription, now):
        raise SubscriptionExpired("Subscription has expired", subscription_id=subscription.pk)
    if subscription.remaining_pickups < deduction.pickups:
        raise NoRemainingPickups(
            "No pickups remaining on subscription",
            subscription_id=subscription.pk,
            remaining_pickups=subscription.remaining_pickups,
        )

    limits = effective_limits(subscription, plan)
    used_kg = as_decimal(subscription.used_kg)
    if limits.kg_limit is not None and used_kg + as_decimal(deduction.kg) > as_decimal(limits.kg_limit):
        raise ExceededLimit("kg", used_kg, deduction.kg, limits.kg_limit)
    if (
        limits.items_limit is not None
        and subscription.used_items_count + deduction.items > limits.items_limit
    ):
        raise ExceededLimit(
            "items", subscription.used_items_count, deduction.items, limits.items_limit
        )


def is_exhausted(subscription, plan, now=None):
    """True when the subscription can no longer accept any deduction and must be deactivated."""
    if not subscription.active:
        return True
    if is_expired(subscription, now):
        return True
    if subscription.remaining_pickups <= 0:
        return True
    limits = effective_limits(subscription, plan)
    if limits.kg_limit is not None and as_decimal(subscription.used_kg) >= as_decimal(limits.kg_limit):
        return True
    if limits.items_limit is not None and subscription.used_items_count >= limits.items_limit:
        return True
    return False
