"""
Application Use Cases — Orders and Subscription Deduction

Core guarantees provided:

- Status changes follow the transition table in laundry.domain.order_status.
  The order row is locked while the change is validated and written.
- apply_subscription_to_order() is idempotent. The ledger lookup runs
  before anything else, so retries are cheap; the UNIQUE constraints on
  SubscriptionUsage catch concurrent retries that slip past the lookup.
- Subscription counters are recomputed in Decimal from the locked row
  and written back as absolute values. The subscription is deactivated
  as soon as it is exhausted.

Business rule violations raise LaundryError subclasses. A deduction
that already happened is not an error: it returns {"applied": False}.
"""

import logging

from django.db import transaction

from laundry import repositories
from laundry.constants import OrderSource, OrderStatus, OrderType
from laundry.domain.exceptions import (
    IndividualNoSubscription,
    InvalidStatusTransition,
    LaundryError,
    NoRemainingPickups,
    OrderNotFound,
    SubscriptionExpired,
    SubscriptionHasActiveOrder,
    SubscriptionRequired,
)
from laundry.domain.order_status import is_allowed_transition
from laundry.domain.subscription_limits import (
    Deduction,
    as_decimal,
    assert_deduction_allowed,
    is_expired,
    is_exhausted,
)

logger = logging.getLogger(__name__)


def create_order(order_type, subscription_id=None, order_source=OrderSource.ONLINE):
    """
    Book a new order. Subscription orders are linked to their subscription
    here, but nothing is deducted until the acknowledgement invoice is issued.
    """
    if order_type == OrderType.SUBSCRIPTION:
        if subscription_id is None:
            raise SubscriptionRequired(
                "Subscription is required to book a subscription order"
            )
        with transaction.atomic():
            subscription = repositories.subscriptions.get_for_update(subscription_id)
            if subscription is None:
                raise SubscriptionExpired(
                    "Subscription not found", subscription_id=subscription_id
                )
            if not subscription.active:
                raise SubscriptionExpired(
                    "Subscription is not active", subscription_id=subscription_id
                )
            if is_expired(subscription):
                raise SubscriptionExpired(
                    "Subscription has expired", subscription_id=subscription_id
                )
            if subscription.remaining_pickups < 1:
                raise NoRemainingPickups(
                    "No pickups remaining on subscription", subscription_id=subscription_id
                )
            open_order = repositories.orders.find_open_by_subscription_id(subscription_id)
            if open_order is not None:
                raise SubscriptionHasActiveOrder(
                    "Subscription already has an active order",
                    subscription_id=subscription_id,
                    active_order_id=open_order.id,
                )
            order = repositories.orders.create(order_type, order_source, subscription_id)
    else:
        if subscription_id is not None:
            raise IndividualNoSubscription(
                "Subscription must not be set for an individual order"
            )
        order = repositories.orders.create(order_type, order_source)

    logger.info(
        "Order created: order=%s type=%s subscription=%s",
        order.id, order_type, subscription_id,
    )
    return order


def update_order_status(order_id, to_status, cancellation_reason=None):
    with transaction.atomic():
        order = repositories.orders.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(order_id)

        from_status = order.status
        if not is_allowed_transition(from_status, to_status):
            logger.warning(
                "Rejected status transition: order=%s from=%s to=%s",
                order_id, from_status, to_status,
            )
            raise InvalidStatusTransition(from_status, to_status)

        order = repositories.orders.update_status(
            order,
            OrderStatus(to_status),
            cancellation_reason=cancellation_reason if to_status == OrderStatus.CANCELLED else None,
        )

    logger.info("Order status updated: order=%s from=%s to=%s", order_id, from_status, to_status)
    return {"order_id": order.id, "status": order.status}


def _resolve_deduction(subscription, weight_kg, items_count):
    # Closure: with no pickups left, one last kg/items-only deduction is allowed.
    no_pickups_left = subscription.remaining_pickups < 1
    if no_pickups_left and (weight_kg > 0 or items_count > 0):
        return Deduction(pickups=0, kg=weight_kg, items=items_count)

    if no_pickups_left:
        raise NoRemainingPickups(
            "No pickups remaining on subscription",
            subscription_id=subscription.pk,
        )
    return Deduction(pickups=1, kg=weight_kg, items=items_count)


def apply_subscription_to_order(
    order_id,
    subscription_id,
    invoice_id=None,
    weight_kg=None,
    items_count=None,
):
    """
    Deduct one pickup plus the given weight and items from a subscription.

    Idempotency key: (invoice_id, subscription_id) when an invoice is given,
    otherwise (order_id, subscription_id).

    Returns {"applied": True} when the deduction was recorded now and
    {"applied": False} when it had already been recorded.
    """
    usage_repo = repositories.subscription_usage
    if invoice_id is not None:
        existing = usage_repo.find_by_invoice_id_and_subscription_id(invoice_id, subscription_id)
    else:
        existing = usage_repo.find_by_order_id_and_subscription_id(order_id, subscription_id)
    if existing is not None:
        logger.info(
            "Idempotency replay: subscription=%s order=%s invoice=%s",
            subscription_id, order_id, invoice_id,
        )
        return {"applied": False}

    weight_kg = as_decimal(weight_kg or 0)
    items_count = int(items_count or 0)

    with transaction.atomic():
        order = repositories.orders.get_by_id(order_id)
        if order is None:
            raise OrderNotFound(order_id)

        subscription = repositories.subscriptions.get_for_update(subscription_id)
        if subscription is None or not subscription.active or is_expired(subscription):
            raise SubscriptionExpired(
                "Subscription not found or expired", subscription_id=subscription_id
            )

        plan = repositories.subscription_plans.get_by_id(subscription.plan_id)
        deduction = _resolve_deduction(subscription, weight_kg, items_count)

        try:
            assert_deduction_allowed(subscription, plan, deduction)
        except LaundryError as exc:
            logger.warning(
                "Subscription deduction rejected: subscription=%s order=%s reason=%s",
                subscription_id, order_id, exc,
            )
            raise

        _, created = usage_repo.create(
            subscription_id=subscription_id,
            order_id=order_id,
            invoice_id=invoice_id,
            deducted_pickups=deduction.pickups,
            deducted_kg=deduction.kg,
            deducted_items_count=deduction.items,
        )
        if not created:
            return {"applied": False}

        subscription = repositories.subscriptions.update_usage(
            subscription_id,
            remaining_pickups=subscription.remaining_pickups - deduction.pickups,
            used_kg=as_decimal(subscription.used_kg) + deduction.kg,
            used_items_count=subscription.used_items_count + deduction.items,
        )
        if is_exhausted(subscription, plan):
            repositories.subscriptions.set_inactive(subscription_id)
            logger.info("Subscription exhausted and deactivated: subscription=%s", subscription_id)

    logger.info(
        "Subscription applied: subscription=%s order=%s invoice=%s pickups=%s kg=%s items=%s",
        subscription_id, order_id, invoice_id, deduction.pickups, deduction.kg, deduction.items,
    )
    return {"applied": True}
