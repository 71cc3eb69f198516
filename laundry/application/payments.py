"""
Application Use Cases — Manual Payment Capture

Payments are recorded by staff (cash, UPI, card terminal). There is no
gateway callback:

- For an order, the Payment row and the order's payment_status are
  written together, and a capture marks the order's ACK/FINAL invoices
  as paid so they can no longer be edited.
- For a subscription purchase, a capture marks the SUBSCRIPTION invoice
  as paid, which releases acknowledgement invoices for that subscription.
"""

import logging

from django.db import transaction

from laundry import repositories
from laundry.constants import InvoicePaymentStatus, InvoiceType, PaymentProvider, PaymentStatus
from laundry.domain.exceptions import InvoiceNotFound, OrderNotFound, PaymentInvalid, SubscriptionNotFound

logger = logging.getLogger(__name__)


def _validate(status, amount):
    if status not in PaymentStatus.values:
        raise PaymentInvalid(f"Unknown payment status: {status}", status=status)
    try:
        amount = int(amount)
    except (TypeError, ValueError):
        raise PaymentInvalid("Payment amount must be an integer", amount=amount)
    if amount < 0:
        raise PaymentInvalid("Payment amount must not be negative", amount=amount)
    return amount


def update_payment_status(order_id, status, amount, provider=PaymentProvider.MANUAL, failure_reason=None):
    amount = _validate(status, amount)

    with transaction.atomic():
        order = repositories.orders.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(order_id)

        payment = repositories.payments.upsert_for_order(
            order.id,
            provider=provider,
            status=status,
            amount=amount,
            failure_reason=failure_reason if status == PaymentStatus.FAILED else None,
        )
        repositories.orders.update_payment_status(order.id, status)
        if status == PaymentStatus.CAPTURED:
            repositories.invoices.mark_order_invoices_paid(order.id)

    logger.info(
        "Payment status updated: order=%s status=%s amount=%s provider=%s",
        order_id, status, amount, provider,
    )
    return {
        "order_id": order.id,
        "payment_id": payment.id,
        "status": payment.status,
        "amount": payment.amount,
    }


def confirm_subscription_payment(
    subscription_id, status, amount, provider=PaymentProvider.MANUAL, failure_reason=None
):
    amount = _validate(status, amount)

    with transaction.atomic():
        subscription = repositories.subscriptions.get_for_update(subscription_id)
        if subscription is None:
            raise SubscriptionNotFound(
                "Subscription not found", subscription_id=subscription_id
            )
        invoice = repositories.invoices.get_by_subscription_id_and_type(
            subscription.id, InvoiceType.SUBSCRIPTION
        )
        if invoice is None:
            raise InvoiceNotFound(
                "Subscription invoice not found", subscription_id=subscription.id
            )

        payment = repositories.payments.upsert_for_subscription(
            subscription.id,
            provider=provider,
            status=status,
            amount=amount,
            failure_reason=failure_reason if status == PaymentStatus.FAILED else None,
        )
        if status == PaymentStatus.CAPTURED:
            invoice = repositories.invoices.update_subscription_and_payment(
                invoice, payment_status=InvoicePaymentStatus.PAID
            )

    logger.info(
        "Subscription payment updated: subscription=%s invoice=%s status=%s amount=%s provider=%s",
        subscription_id, invoice.id, status, amount, provider,
    )
    return {
        "subscription_id": subscription.id,
        "invoice_id": invoice.id,
        "payment_id": payment.id,
        "status": payment.status,
        "invoice_payment_status": invoice.payment_status,
    }
