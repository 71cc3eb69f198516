"""
Application Use Cases — Acknowledgement and Final Invoices

An order is billed in two stages:

1. The ACKNOWLEDGEMENT invoice is issued around pickup. Issuing it deducts
   one pickup plus the provisional weight/items from the subscription(s)
   referenced by the draft, keyed on the invoice id so retries never
   deduct twice.
2. The FINAL invoice is issued at or after delivery. Issuing it replaces
   the provisional kg/items recorded in the ledger with the final ones and
   corrects the subscription counters by the difference. Pickups are not
   touched again and limits are not re-checked.

Each invoice moves DRAFT -> ISSUED exactly once. The invoice row is locked
while it is issued, and issuing an already issued invoice returns the
stored document URL without side effects. Every issuance runs in a single
transaction, so a rejected deduction leaves the invoice in DRAFT.
"""

import logging

from django.db import transaction
from django.utils import timezone

from laundry import repositories
from laundry.adapters import get_invoice_pdf_generator, get_storage_adapter
from laundry.application.orders import apply_subscription_to_order
from laundry.constants import (
    InvoiceOrderMode,
    InvoicePaymentStatus,
    InvoiceStatus,
    InvoiceType,
    OrderSource,
    OrderStatus,
    PaymentStatus,
)
from laundry.domain.exceptions import (
    AckInvoiceNotAllowed,
    FinalInvoiceNotAllowed,
    InvoiceDraftInvalid,
    InvoiceNotFound,
    InvoiceNotIssued,
    InvoicePaymentCaptured,
    OrderNotFound,
    SubscriptionNotPaid,
)
from laundry.domain.invoice_totals import InvoiceLine, calculate_invoice_totals
from laundry.domain.subscription_limits import as_decimal, is_exhausted

logger = logging.getLogger(__name__)

ACK_ALLOWED_STATUSES = frozenset(OrderStatus) - {OrderStatus.CANCELLED}
FINAL_ALLOWED_STATUSES = frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED})


def ack_invoice_code(order_id):
    return f"ACK-{order_id}"


def final_invoice_code(order_id):
    return f"IN{order_id}"


def assert_can_issue_acknowledgement(order):
    """ACK may be produced any time after booking, even late. Only cancelled orders are refused."""
    if order.status not in ACK_ALLOWED_STATUSES:
        raise AckInvoiceNotAllowed(
            f"Acknowledgement invoice not allowed for status: {order.status}",
            order_id=order.id,
            status=order.status,
        )


def assert_can_issue_final(order):
    walk_in_ready = order.order_source == OrderSource.WALK_IN and order.status == OrderStatus.READY
    if order.status not in FINAL_ALLOWED_STATUSES and not walk_in_ready:
        raise FinalInvoiceNotAllowed(
            "Final invoice can only be issued when the order is out for delivery or delivered"
            f"{', or ready for walk-in orders' if order.order_source == OrderSource.WALK_IN else ''}. "
            f"Current status: {order.status}",
            order_id=order.id,
            status=order.status,
        )


def _load_order(order_id):
    order = repositories.orders.get_by_id(order_id)
    if order is None:
        raise OrderNotFound(order_id)
    return order


def _priced_items(items, amounts):
    return [
        {
            "type": item.get("type", "SERVICE"),
            "name": item["name"],
            "quantity": as_decimal(item["quantity"]),
            "unit_price": int(item["unit_price"]),
            "amount": amount,
        }
        for item, amount in zip(items, amounts)
    ]


def _lines(items):
    return [
        InvoiceLine(
            quantity=as_decimal(item["quantity"]),
            unit_price=int(item["unit_price"]),
            amount=item.get("amount"),
            type=item.get("type", "SERVICE"),
            name=item["name"],
        )
        for item in items
    ]


def _upsert_draft(order, invoice_type, code, fields, items):
    """
    Create the draft, or overwrite it while still a draft. An issued invoice
    can still be corrected until the order's payment has been captured.
    """
    invoice = repositories.invoices.get_by_order_id_and_type(order.id, invoice_type, for_update=True)
    if invoice is None:
        invoice = repositories.invoices.create_draft(order.id, invoice_type, code, fields, items)
        logger.info("Invoice draft created: invoice=%s order=%s type=%s", invoice.id, order.id, invoice_type)
        return invoice

    if invoice.status == InvoiceStatus.ISSUED and order.payment_status == PaymentStatus.CAPTURED:
        raise InvoicePaymentCaptured(
            "Invoice cannot be edited after payment has been collected",
            invoice_id=invoice.id,
        )

    invoice = repositories.invoices.update_draft(invoice, fields, items)
    logger.info(
        "Invoice content updated: invoice=%s order=%s type=%s status=%s",
        invoice.id, order.id, invoice_type, invoice.status,
    )
    return invoice


def _validate_ack_draft(order_mode, subscription_ids, usage_kg, usage_items, items):
    if order_mode == InvoiceOrderMode.SUBSCRIPTION_ONLY:
        if not subscription_ids:
            raise InvoiceDraftInvalid("SUBSCRIPTION_ONLY requires a subscription")
        if not ((usage_kg or 0) > 0 or (usage_items or 0) > 0):
            raise InvoiceDraftInvalid(
                "SUBSCRIPTION_ONLY requires subscription usage kg or items"
            )
        if items:
            raise InvoiceDraftInvalid("SUBSCRIPTION_ONLY must not have line items")
    if order_mode == InvoiceOrderMode.INDIVIDUAL and subscription_ids:
        raise InvoiceDraftInvalid("INDIVIDUAL order mode must not reference a subscription")
    for subscription_id in subscription_ids:
        if repositories.subscriptions.get_by_id(subscription_id) is None:
            raise InvoiceDraftInvalid(
                f"Subscription {subscription_id} not found", subscription_id=subscription_id
            )


def create_ack_invoice_draft(
    order_id,
    items,
    tax=0,
    discount=None,
    order_mode=InvoiceOrderMode.INDIVIDUAL,
    subscription_id=None,
    subscription_usage_kg=None,
    subscription_usage_items=None,
    subscription_ids=None,
    comments=None,
):
    """
    Create or update the acknowledgement draft for an order.

    ``subscription_ids`` splits the pickup across several subscriptions;
    the first one becomes the invoice's primary subscription.
    """
    with transaction.atomic():
        order = _load_order(order_id)
        assert_can_issue_acknowledgement(order)

        if subscription_ids:
            subscription_ids = [str(sid) for sid in subscription_ids]
        elif subscription_id is not None:
            subscription_ids = [str(subscription_id)]
        else:
            subscription_ids = []
        _validate_ack_draft(order_mode, subscription_ids, subscription_usage_kg, subscription_usage_items, items)

        subscription_only = order_mode == InvoiceOrderMode.SUBSCRIPTION_ONLY
        totals = calculate_invoice_totals(_lines(items), tax)
        if subscription_only:
            total = 0
            discount = None
        else:
            total = totals.total - (discount or 0)

        fields = {
            "order_mode": order_mode,
            "subtotal": 0 if subscription_only else totals.subtotal,
            "tax": 0 if subscription_only else totals.tax,
            "discount": discount,
            "total": total,
            "comments": comments,
        }
        if subscription_ids:
            fields["subscription_id"] = subscription_ids[0]
            fields["subscription_utilized"] = True
            fields["subscription_usages"] = [{"subscriptionId": sid} for sid in subscription_ids]
        if subscription_usage_kg is not None:
            fields["subscription_usage_kg"] = as_decimal(subscription_usage_kg)
        if subscription_usage_items is not None:
            fields["subscription_usage_items"] = int(subscription_usage_items)

        invoice = _upsert_draft(
            order,
            InvoiceType.ACKNOWLEDGEMENT,
            ack_invoice_code(order.id),
            fields,
            _priced_items(items, totals.amounts),
        )

    return {
        "invoice_id": invoice.id,
        "subtotal": invoice.subtotal,
        "tax": invoice.tax,
        "total": invoice.total,
    }


def create_final_invoice_draft(
    order_id,
    items,
    tax=0,
    discount=None,
    subscription_usage_kg=None,
    subscription_usage_items=None,
    comments=None,
):
    """
    Create or update the final draft for an order.

    Subscription usage defaults to what the acknowledgement invoice recorded,
    so the final invoice only has to state a value when it differs.
    """
    with transaction.atomic():
        order = _load_order(order_id)
        assert_can_issue_final(order)

        totals = calculate_invoice_totals(_lines(items), tax)
        fields = {
            "subtotal": totals.subtotal,
            "tax": totals.tax,
            "discount": discount,
            "total": totals.total - (discount or 0),
            "comments": comments,
        }

        existing = repositories.invoices.get_by_order_id_and_type(order.id, InvoiceType.FINAL)
        if existing is None:
            ack = repositories.invoices.get_by_order_id_and_type(order.id, InvoiceType.ACKNOWLEDGEMENT)
            if ack is not None:
                if subscription_usage_kg is None:
                    subscription_usage_kg = ack.subscription_usage_kg
                if subscription_usage_items is None:
                    subscription_usage_items = ack.subscription_usage_items
                fields["order_mode"] = ack.order_mode
                fields["subscription_id"] = ack.subscription_id
                fields["subscription_utilized"] = ack.subscription_utilized

        if subscription_usage_kg is not None:
            fields["subscription_usage_kg"] = as_decimal(subscription_usage_kg)
        if subscription_usage_items is not None:
            fields["subscription_usage_items"] = int(subscription_usage_items)

        invoice = _upsert_draft(
            order,
            InvoiceType.FINAL,
            final_invoice_code(order.id),
            fields,
            _priced_items(items, totals.amounts),
        )

    return {
        "invoice_id": invoice.id,
        "subtotal": invoice.subtotal,
        "tax": invoice.tax,
        "total": invoice.total,
    }


def build_invoice_aggregate(invoice):
    order = repositories.orders.get_by_id(invoice.order_id) if invoice.order_id else None
    subscription_usage = None
    if invoice.subscription_usage_kg is not None or invoice.subscription_usage_items is not None:
        subscription_usage = {
            "kg": invoice.subscription_usage_kg or 0,
            "items": invoice.subscription_usage_items or 0,
        }
    return {
        "invoice": invoice,
        "order": order,
        "items": list(invoice.items.all()),
        "subscription_usage": subscription_usage,
    }


def generate_and_store_invoice_pdf(invoice):
    if invoice.status != InvoiceStatus.ISSUED or invoice.issued_at is None:
        raise InvoiceNotIssued(
            "Invoice must be issued before generating its document", invoice_id=invoice.id
        )

    generator = get_invoice_pdf_generator()
    data = generator.generate_invoice_pdf_buffer(build_invoice_aggregate(invoice))
    path = f"invoices/{invoice.code}.{generator.extension}"
    pdf_url = get_storage_adapter().put_object(path, data, generator.content_type)

    repositories.invoices.update_pdf_url(invoice, pdf_url)
    return pdf_url


def _assert_subscription_paid(order):
    if order.subscription_id is None:
        return
    subscription_invoice = repositories.invoices.get_by_subscription_id_and_type(
        order.subscription_id, InvoiceType.SUBSCRIPTION
    )
    if subscription_invoice is not None and subscription_invoice.payment_status != InvoicePaymentStatus.PAID:
        raise SubscriptionNotPaid(
            "Subscription payment must be confirmed before issuing the acknowledgement invoice",
            subscription_id=order.subscription_id,
            invoice_id=subscription_invoice.id,
        )


def issue_ack_invoice(order_id, apply_subscription=False, weight_kg=None, items_count=None):
    """
    Issue the acknowledgement invoice and deduct the subscription usage it records.

    ``weight_kg`` / ``items_count`` override the usage stored on the draft.
    """
    with transaction.atomic():
        order = _load_order(order_id)
        assert_can_issue_acknowledgement(order)
        _assert_subscription_paid(order)

        invoice = repositories.invoices.get_by_order_id_and_type(
            order.id, InvoiceType.ACKNOWLEDGEMENT, for_update=True
        )
        if invoice is None:
            raise InvoiceNotFound(
                "No acknowledgement draft found for this order", order_id=order.id
            )
        if invoice.status == InvoiceStatus.ISSUED:
            logger.info("Acknowledgement invoice already issued: invoice=%s", invoice.id)
            return {"invoice_id": invoice.id, "pdf_url": invoice.pdf_url}

        invoice = repositories.invoices.set_issued(invoice, timezone.now())
        pdf_url = generate_and_store_invoice_pdf(invoice)

        subscription_ids = invoice.subscription_ids
        primary_subscription_id = (
            subscription_ids[0] if subscription_ids
            else order.subscription_id or invoice.subscription_id
        )
        draft_has_subscription = (
            invoice.order_mode in (InvoiceOrderMode.SUBSCRIPTION_ONLY, InvoiceOrderMode.BOTH)
            and (invoice.subscription_id is not None or bool(subscription_ids))
        )

        if (apply_subscription or draft_has_subscription) and primary_subscription_id is not None:
            usage_kg = as_decimal(
                weight_kg if weight_kg is not None else (invoice.subscription_usage_kg or 0)
            )
            usage_items = int(
                items_count if items_count is not None else (invoice.subscription_usage_items or 0)
            )
            for subscription_id in subscription_ids or [primary_subscription_id]:
                apply_subscription_to_order(
                    order.id,
                    subscription_id,
                    invoice_id=invoice.id,
                    weight_kg=usage_kg,
                    items_count=usage_items,
                )
            repositories.invoices.update_subscription_and_payment(
                invoice,
                subscription_utilized=True,
                subscription_id=primary_subscription_id,
                subscription_usage_kg=usage_kg,
                subscription_usage_items=usage_items,
                payment_status=InvoicePaymentStatus.DUE,
            )

    logger.info("Acknowledgement invoice issued: invoice=%s order=%s", invoice.id, order.id)
    return {"invoice_id": invoice.id, "pdf_url": pdf_url}


def _reconcile_subscription_usage(order, invoice):
    """Replace the provisional kg/items recorded at ACK time with the final ones."""
    subscription_id = order.subscription_id
    if subscription_id is None:
        return
    usage = repositories.subscription_usage.find_by_order_id_and_subscription_id(order.id, subscription_id)
    if usage is None:
        return

    subscription = repositories.subscriptions.get_for_update(subscription_id)
    final_kg = as_decimal(invoice.subscription_usage_kg or 0)
    final_items = invoice.subscription_usage_items or 0
    # used - provisional + final, computed here so the stored kg stays exact.
    used_kg = as_decimal(subscription.used_kg) - as_decimal(usage.deducted_kg) + final_kg
    used_items = subscription.used_items_count - usage.deducted_items_count + final_items

    repositories.subscription_usage.update_deducted_amounts(
        order.id, subscription_id, final_kg, final_items
    )
    subscription = repositories.subscriptions.update_usage(
        subscription_id,
        remaining_pickups=subscription.remaining_pickups,
        used_kg=used_kg,
        used_items_count=used_items,
    )
    logger.info(
        "Subscription usage reconciled: subscription=%s order=%s ack_kg=%s final_kg=%s ack_items=%s final_items=%s",
        subscription_id, order.id, usage.deducted_kg, final_kg, usage.deducted_items_count, final_items,
    )

    plan = repositories.subscription_plans.get_by_id(subscription.plan_id)
    if subscription.active and is_exhausted(subscription, plan):
        repositories.subscriptions.set_inactive(subscription_id)
        logger.info("Subscription exhausted and deactivated: subscription=%s", subscription_id)


def issue_final_invoice(order_id):
    with transaction.atomic():
        order = _load_order(order_id)
        assert_can_issue_final(order)

        invoice = repositories.invoices.get_by_order_id_and_type(
            order.id, InvoiceType.FINAL, for_update=True
        )
        if invoice is None:
            raise InvoiceNotFound("No final draft found for this order", order_id=order.id)
        if invoice.status != InvoiceStatus.DRAFT:
            logger.info("Final invoice already issued: invoice=%s", invoice.id)
            return {"invoice_id": invoice.id, "pdf_url": invoice.pdf_url}

        invoice = repositories.invoices.set_issued(invoice, timezone.now())
        pdf_url = generate_and_store_invoice_pdf(invoice)

        if invoice.total == 0:
            # Fully covered by the subscription: nothing left to collect.
            repositories.orders.update_payment_status(order.id, PaymentStatus.CAPTURED)
            repositories.invoices.update_subscription_and_payment(
                invoice, payment_status=InvoicePaymentStatus.PAID
            )

        _reconcile_subscription_usage(order, invoice)

    logger.info("Final invoice issued: invoice=%s order=%s total=%s", invoice.id, order.id, invoice.total)
    return {"invoice_id": invoice.id, "pdf_url": pdf_url}
