"""
Persistence Models — Laundry Orders, Subscriptions and Invoices (Django ORM)

This module defines the persistence layer for the order / subscription /
invoice consistency engine.

Key architectural decisions:

- Subscription counters (remaining_pickups, used_kg, used_items_count)
  are guarded by CHECK constraints so no code path can drive them negative.
- SubscriptionUsage is the deduction ledger. Idempotency is enforced at
  the database level via UNIQUE constraints on (order, subscription) and,
  when an invoice is set, on (invoice, subscription).
- An order carries at most one ACKNOWLEDGEMENT and one FINAL invoice,
  enforced by a conditional UNIQUE constraint.
- A Payment belongs to either an order or a subscription purchase, never
  neither.
- Order status timestamps are written once through Order.stamp_status().

Money is stored as integers in minor currency units. Weights are decimals.
"""

from decimal import Decimal

from django.db import models
from django.db.models import Q

from laundry.constants import (
    InvoiceItemType,
    InvoiceOrderMode,
    InvoicePaymentStatus,
    InvoiceStatus,
    InvoiceType,
    OrderSource,
    OrderStatus,
    OrderType,
    PaymentProvider,
    PaymentStatus,
)
from laundry.domain.order_status import STATUS_TIMESTAMP_FIELDS


def _kg_field(**kwargs):
    return models.DecimalField(max_digits=10, decimal_places=3, **kwargs)


class SubscriptionPlan(models.Model):
    name = models.CharField(max_length=120)
    max_pickups = models.PositiveIntegerField()
    # NULL means the plan does not cap this dimension.
    kg_limit = _kg_field(null=True, blank=True)
    items_limit = models.PositiveIntegerField(null=True, blank=True)
    validity_days = models.PositiveIntegerField(default=30)
    price = models.PositiveIntegerField(default=0)
    active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Plan {self.id} - {self.name}"


class Subscription(models.Model):
    """
    A purchased plan with its running usage counters.

    total_* fields override the plan's limits for this subscription only
    (e.g. a multi-month purchase). They are resolved by
    laundry.domain.subscription_limits.effective_limits.
    """

    plan = models.ForeignKey(
        SubscriptionPlan,
        on_delete=models.PROTECT,
        related_name="subscriptions",
    )

    remaining_pickups = models.IntegerField()
    used_kg = _kg_field(default=Decimal("0"))
    used_items_count = models.IntegerField(default=0)

    total_max_pickups = models.PositiveIntegerField(null=True, blank=True)
    total_kg_limit = _kg_field(null=True, blank=True)
    total_items_limit = models.PositiveIntegerField(null=True, blank=True)

    validity_start_date = models.DateTimeField()
    expiry_date = models.DateTimeField()
    active = models.BooleanField(default=True)
    inactivated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(remaining_pickups__gte=0),
                name="subscription_remaining_pickups_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(used_kg__gte=0),
                name="subscription_used_kg_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(used_items_count__gte=0),
                name="subscription_used_items_non_negative",
            ),
        ]

    def __str__(self):
        return f"Subscription {self.id} - Pickups left: {self.remaining_pickups}"


class Order(models.Model):
    status = models.CharField(
        max_length=32,
        choices=OrderStatus.choices,
        default=OrderStatus.BOOKING_CONFIRMED,
    )
    order_type = models.CharField(max_length=16, choices=OrderType.choices)
    order_source = models.CharField(
        max_length=16,
        choices=OrderSource.choices,
        default=OrderSource.ONLINE,
    )

    # Set at creation, never reassigned.
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )

    payment_status = models.CharField(
        max_length=16,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    cancellation_reason = models.TextField(blank=True, null=True)

    booking_confirmed_at = models.DateTimeField(null=True, blank=True)
    pickup_scheduled_at = models.DateTimeField(null=True, blank=True)
    picked_up_at = models.DateTimeField(null=True, blank=True)
    in_processing_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    out_for_delivery_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def stamp_status(self, status, when):
        """
        Record when the order entered ``status``. First write wins.

        Returns the name of the field that was written, or None when the
        timestamp was already present.
        """
        field_name = STATUS_TIMESTAMP_FIELDS[OrderStatus(status)]
        if getattr(self, field_name) is not None:
            return None
        setattr(self, field_name, when)
        return field_name

    def __str__(self):
        return f"Order {self.id} - {self.status}"


class Invoice(models.Model):
    type = models.CharField(max_length=20, choices=InvoiceType.choices)
    status = models.CharField(
        max_length=10,
        choices=InvoiceStatus.choices,
        default=InvoiceStatus.DRAFT,
    )
    code = models.CharField(max_length=64)

    # ACK/FINAL invoices belong to an order; SUBSCRIPTION invoices to a subscription.
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="invoices",
    )
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )

    order_mode = models.CharField(
        max_length=20,
        choices=InvoiceOrderMode.choices,
        default=InvoiceOrderMode.INDIVIDUAL,
    )
    # [{"subscriptionId": "<id>"}, ...] when usage is split across subscriptions.
    subscription_usages = models.JSONField(null=True, blank=True)
    subscription_utilized = models.BooleanField(default=False)
    subscription_usage_kg = _kg_field(null=True, blank=True)
    subscription_usage_items = models.PositiveIntegerField(null=True, blank=True)

    subtotal = models.IntegerField(default=0)
    tax = models.IntegerField(default=0)
    discount = models.IntegerField(null=True, blank=True)
    total = models.IntegerField(default=0)

    payment_status = models.CharField(
        max_length=8,
        choices=InvoicePaymentStatus.choices,
        default=InvoicePaymentStatus.DUE,
    )
    comments = models.TextField(blank=True, null=True)

    issued_at = models.DateTimeField(null=True, blank=True)
    pdf_url = models.CharField(max_length=512, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["order", "type"],
                condition=Q(order__isnull=False),
                name="invoice_unique_order_type",
            ),
        ]

    @property
    def subscription_ids(self):
        """Subscription ids referenced by a split-usage draft, in draft order."""
        usages = self.subscription_usages or []
        return [str(u["subscriptionId"]) for u in usages if u.get("subscriptionId") is not None]

    def __str__(self):
        return f"Invoice {self.code} - {self.type} {self.status}"


class InvoiceItem(models.Model):
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="items",
    )
    position = models.PositiveIntegerField()
    type = models.CharField(max_length=20, choices=InvoiceItemType.choices)
    name = models.CharField(max_length=200)
    quantity = models.DecimalField(max_digits=10, decimal_places=3)
    unit_price = models.IntegerField()
    amount = models.IntegerField()

    class Meta:
        ordering = ["position"]

    def __str__(self):
        return f"{self.name} x {self.quantity}"


class SubscriptionUsage(models.Model):
    """
    Ledger of subscription deductions.

    Key architectural decisions:
    - A row is written exactly once per successful deduction; its
      existence answers "has this deduction already happened".
    - The UNIQUE constraints are the race-safety net: concurrent retries
      fail on insert instead of deducting twice.
    - deducted_kg / deducted_items_count are rewritten in place when the
      final invoice replaces the provisional usage.
    """

    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.PROTECT,
        related_name="usages",
    )
    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name="subscription_usages",
    )
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )

    deducted_pickups = models.PositiveIntegerField(default=1)
    deducted_kg = _kg_field(default=Decimal("0"))
    deducted_items_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["order", "subscription"],
                name="subscription_usage_unique_order",
            ),
            models.UniqueConstraint(
                fields=["invoice", "subscription"],
                condition=Q(invoice__isnull=False),
                name="subscription_usage_unique_invoice",
            ),
        ]

    def __str__(self):
        return f"Usage {self.id} - Order {self.order_id} / Subscription {self.subscription_id}"


class Payment(models.Model):
    """Manual payment record for either an order or a subscription purchase."""

    order = models.OneToOneField(
        Order,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="payment",
    )
    subscription = models.OneToOneField(
        Subscription,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payment",
    )
    provider = models.CharField(
        max_length=16,
        choices=PaymentProvider.choices,
        default=PaymentProvider.MANUAL,
    )
    status = models.CharField(max_length=16, choices=PaymentStatus.choices)
    amount = models.IntegerField()
    failure_reason = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(order__isnull=False) | Q(subscription__isnull=False),
                name="payment_has_order_or_subscription",
            ),
        ]

    def __str__(self):
        return f"Payment {self.id} - {self.status} {self.amount}"
