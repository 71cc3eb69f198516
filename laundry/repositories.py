"""
Repositories — Django ORM adapters for the laundry aggregates.

Use cases talk to storage only through the module-level instances at the
bottom of this file (``orders``, ``subscriptions``, ...). Keeping queries
here means the use cases read as sequences of business steps, and the
storage-specific error handling stays at this boundary:

- SubscriptionUsageRepo.create() converts a unique-constraint violation
  into a ``(existing_row, False)`` result, mirroring ``get_or_create``.
  Any other IntegrityError propagates unchanged.
- SubscriptionsRepo.update_usage() writes absolute counter values. Callers
  compute them with Decimal arithmetic from a row read through
  get_for_update(), so the stored kg never drifts through floating-point
  arithmetic in the database.

Methods named ``get_for_update`` must be called inside
``transaction.atomic()``; they take a row lock on databases that support it.
"""

import logging
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.utils import timezone

from laundry.constants import InvoiceItemType, InvoicePaymentStatus, InvoiceStatus, InvoiceType, OrderStatus
from laundry.domain.order_status import TERMINAL_STATES
from laundry.domain.subscription_limits import as_decimal
from laundry.models import (
    Invoice,
    InvoiceItem,
    Order,
    Payment,
    Subscription,
    SubscriptionPlan,
    SubscriptionUsage,
)

logger = logging.getLogger(__name__)


class OrdersRepo:

    def get_by_id(self, order_id):
        return Order.objects.filter(pk=order_id).first()

    def get_for_update(self, order_id):
        return Order.objects.select_for_update().filter(pk=order_id).first()

    def create(self, order_type, order_source, subscription_id=None, now=None):
        now = now or timezone.now()
        return Order.objects.create(
            order_type=order_type,
            order_source=order_source,
            subscription_id=subscription_id,
            status=OrderStatus.BOOKING_CONFIRMED,
            booking_confirmed_at=now,
        )

    def find_open_by_subscription_id(self, subscription_id):
        return (
            Order.objects
            .filter(subscription_id=subscription_id)
            .exclude(status__in=TERMINAL_STATES)
            .order_by("created_at")
            .first()
        )

    def update_status(self, order, status, cancellation_reason=None, now=None):
        """Persist a new status on a loaded order, stamping its timestamp if absent."""
        now = now or timezone.now()
        order.status = status
        update_fields = ["status", "updated_at"]

        stamped = order.stamp_status(status, now)
        if stamped:
            update_fields.append(stamped)

        if status == OrderStatus.CANCELLED and cancellation_reason is not None:
            order.cancellation_reason = cancellation_reason
            update_fields.append("cancellation_reason")

        order.save(update_fields=update_fields)
        return order

    def update_payment_status(self, order_id, payment_status):
        Order.objects.filter(pk=order_id).update(
            payment_status=payment_status,
            updated_at=timezone.now(),
        )


class SubscriptionsRepo:

    def get_by_id(self, subscription_id):
        return Subscription.objects.select_related("plan").filter(pk=subscription_id).first()

    def get_for_update(self, subscription_id):
        return Subscription.objects.select_for_update().filter(pk=subscription_id).first()

    def create(self, plan, now=None):
        """Start a subscription with the plan's full quota."""
        now = now or timezone.now()
        return Subscription.objects.create(
            plan=plan,
            remaining_pickups=plan.max_pickups,
            validity_start_date=now,
            expiry_date=now + timedelta(days=plan.validity_days),
        )

    def update_usage(self, subscription_id, remaining_pickups, used_kg, used_items_count):
        Subscription.objects.filter(pk=subscription_id).update(
            remaining_pickups=remaining_pickups,
            used_kg=as_decimal(used_kg),
            used_items_count=used_items_count,
        )
        return self.get_by_id(subscription_id)

    def set_inactive(self, subscription_id, now=None):
        now = now or timezone.now()
        return Subscription.objects.filter(pk=subscription_id, active=True).update(
            active=False,
            inactivated_at=now,
        )


class SubscriptionPlansRepo:

    def get_by_id(self, plan_id):
        return SubscriptionPlan.objects.filter(pk=plan_id).first()


class SubscriptionUsageRepo:

    def find_by_invoice_id_and_subscription_id(self, invoice_id, subscription_id):
        return SubscriptionUsage.objects.filter(
            invoice_id=invoice_id,
            subscription_id=subscription_id,
        ).first()

    def find_by_order_id_and_subscription_id(self, order_id, subscription_id):
        return SubscriptionUsage.objects.filter(
            order_id=order_id,
            subscription_id=subscription_id,
        ).first()

    def create(
        self,
        subscription_id,
        order_id,
        invoice_id,
        deducted_pickups,
        deducted_kg,
        deducted_items_count,
    ):
        """
        Insert a ledger row. Returns ``(usage, created)``.

        ``created`` is False when a row for the same invoice or order already
        exists for this subscription; in that case the existing row is returned.
        """
        try:
            # Savepoint keeps the caller's transaction usable after a violation.
            with transaction.atomic():
                usage = SubscriptionUsage.objects.create(
                    subscription_id=subscription_id,
                    order_id=order_id,
                    invoice_id=invoice_id,
                    deducted_pickups=deducted_pickups,
                    deducted_kg=deducted_kg,
                    deducted_items_count=deducted_items_count,
                )
        except IntegrityError:
            existing = None
            if invoice_id is not None:
                existing = self.find_by_invoice_id_and_subscription_id(invoice_id, subscription_id)
            if existing is None:
                existing = self.find_by_order_id_and_subscription_id(order_id, subscription_id)
            if existing is None:
                raise
            logger.info(
                "Subscription usage already recorded: usage=%s order=%s subscription=%s invoice=%s",
                existing.id, order_id, subscription_id, invoice_id,
            )
            return existing, False
        return usage, True

    def update_deducted_amounts(self, order_id, subscription_id, deducted_kg, deducted_items_count):
        SubscriptionUsage.objects.filter(
            order_id=order_id,
            subscription_id=subscription_id,
        ).update(
            deducted_kg=deducted_kg,
            deducted_items_count=deducted_items_count,
        )


class InvoicesRepo:

    def get_by_id(self, invoice_id):
        return Invoice.objects.filter(pk=invoice_id).first()

    def get_by_order_id_and_type(self, order_id, invoice_type, for_update=False):
        queryset = Invoice.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.filter(order_id=order_id, type=invoice_type).first()

    def get_by_subscription_id_and_type(self, subscription_id, invoice_type):
        return (
            Invoice.objects
            .filter(subscription_id=subscription_id, type=invoice_type)
            .order_by("-created_at")
            .first()
        )

    def create_draft(self, order_id, invoice_type, code, fields, items):
        invoice = Invoice.objects.create(
            order_id=order_id,
            type=invoice_type,
            code=code,
            status=InvoiceStatus.DRAFT,
            **fields,
        )
        self._replace_items(invoice, items)
        return invoice

    def update_draft(self, invoice, fields, items):
        """Overwrite invoice content and line items. Status is left untouched."""
        for name, value in fields.items():
            setattr(invoice, name, value)
        invoice.save()
        self._replace_items(invoice, items)
        return invoice

    def set_issued(self, invoice, issued_at):
        invoice.status = InvoiceStatus.ISSUED
        invoice.issued_at = issued_at
        invoice.save(update_fields=["status", "issued_at", "updated_at"])
        return invoice

    def update_pdf_url(self, invoice, pdf_url):
        invoice.pdf_url = pdf_url
        invoice.save(update_fields=["pdf_url", "updated_at"])
        return invoice

    def update_subscription_and_payment(self, invoice, **fields):
        for name, value in fields.items():
            setattr(invoice, name, value)
        invoice.save(update_fields=[*fields, "updated_at"])
        return invoice

    def create_subscription_invoice(self, subscription, plan, code, issued_at):
        """Subscription purchases are billed with a single issued line for the plan price."""
        invoice = Invoice.objects.create(
            type=InvoiceType.SUBSCRIPTION,
            status=InvoiceStatus.ISSUED,
            code=code,
            subscription=subscription,
            subtotal=plan.price,
            tax=0,
            total=plan.price,
            payment_status=InvoicePaymentStatus.DUE if plan.price > 0 else InvoicePaymentStatus.PAID,
            issued_at=issued_at,
        )
        self._replace_items(invoice, [{
            "type": InvoiceItemType.SERVICE,
            "name": plan.name,
            "quantity": 1,
            "unit_price": plan.price,
            "amount": plan.price,
        }])
        return invoice

    def mark_order_invoices_paid(self, order_id):
        return Invoice.objects.filter(
            order_id=order_id,
            type__in=[InvoiceType.ACKNOWLEDGEMENT, InvoiceType.FINAL],
        ).update(payment_status=InvoicePaymentStatus.PAID, updated_at=timezone.now())

    def _replace_items(self, invoice, items):
        invoice.items.all().delete()
        InvoiceItem.objects.bulk_create([
            InvoiceItem(
                invoice=invoice,
                position=position,
                type=item["type"],
                name=item["name"],
                quantity=item["quantity"],
                unit_price=item["unit_price"],
                amount=item["amount"],
            )
            for position, item in enumerate(items)
        ])


class PaymentsRepo:

    def upsert_for_order(self, order_id, provider, status, amount, failure_reason=None):
        payment, _ = Payment.objects.update_or_create(
            order_id=order_id,
            defaults={
                "provider": provider,
                "status": status,
                "amount": amount,
                "failure_reason": failure_reason,
            },
        )
        return payment

    def upsert_for_subscription(self, subscription_id, provider, status, amount, failure_reason=None):
        payment, _ = Payment.objects.update_or_create(
            subscription_id=subscription_id,
            defaults={
                "provider": provider,
                "status": status,
                "amount": amount,
                "failure_reason": failure_reason,
            },
        )
        return payment


orders = OrdersRepo()
subscriptions = SubscriptionsRepo()
subscription_plans = SubscriptionPlansRepo()
subscription_usage = SubscriptionUsageRepo()
invoices = InvoicesRepo()
payments = PaymentsRepo()
