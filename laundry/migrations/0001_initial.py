from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SubscriptionPlan",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("max_pickups", models.PositiveIntegerField()),
                ("kg_limit", models.DecimalField(blank=True, decimal_places=3, max_digits=10, null=True)),
                ("items_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("validity_days", models.PositiveIntegerField(default=30)),
                ("price", models.PositiveIntegerField(default=0)),
                ("active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="Subscription",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("remaining_pickups", models.IntegerField()),
                ("used_kg", models.DecimalField(decimal_places=3, default=Decimal("0"), max_digits=10)),
                ("used_items_count", models.IntegerField(default=0)),
                ("total_max_pickups", models.PositiveIntegerField(blank=True, null=True)),
                ("total_kg_limit", models.DecimalField(blank=True, decimal_places=3, max_digits=10, null=True)),
                ("total_items_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("validity_start_date", models.DateTimeField()),
                ("expiry_date", models.DateTimeField()),
                ("active", models.BooleanField(default=True)),
                ("inactivated_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "plan",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="subscriptions",
                        to="laundry.subscriptionplan",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("remaining_pickups__gte", 0)),
                        name="subscription_remaining_pickups_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("used_kg__gte", 0)),
                        name="subscription_used_kg_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("used_items_count__gte", 0)),
                        name="subscription_used_items_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("BOOKING_CONFIRMED", "Booking confirmed"),
                            ("PICKUP_SCHEDULED", "Pickup scheduled"),
                            ("PICKED_UP", "Picked up"),
                            ("IN_PROCESSING", "In processing"),
                            ("READY", "Ready"),
                            ("OUT_FOR_DELIVERY", "Out for delivery"),
                            ("DELIVERED", "Delivered"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="BOOKING_CONFIRMED",
                        max_length=32,
                    ),
                ),
                (
                    "order_type",
                    models.CharField(
                        choices=[("INDIVIDUAL", "Individual"), ("SUBSCRIPTION", "Subscription")],
                        max_length=16,
                    ),
                ),
                (
                    "order_source",
                    models.CharField(
                        choices=[("ONLINE", "Online"), ("WALK_IN", "Walk-in")],
                        default="ONLINE",
                        max_length=16,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("CAPTURED", "Captured"), ("FAILED", "Failed")],
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                ("cancellation_reason", models.TextField(blank=True, null=True)),
                ("booking_confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("pickup_scheduled_at", models.DateTimeField(blank=True, null=True)),
                ("picked_up_at", models.DateTimeField(blank=True, null=True)),
                ("in_processing_at", models.DateTimeField(blank=True, null=True)),
                ("ready_at", models.DateTimeField(blank=True, null=True)),
                ("out_for_delivery_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "subscription",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="laundry.subscription",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("ACKNOWLEDGEMENT", "Acknowledgement"),
                            ("FINAL", "Final"),
                            ("SUBSCRIPTION", "Subscription"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("DRAFT", "Draft"), ("ISSUED", "Issued")],
                        default="DRAFT",
                        max_length=10,
                    ),
                ),
                ("code", models.CharField(max_length=64)),
                (
                    "order_mode",
                    models.CharField(
                        choices=[
                            ("INDIVIDUAL", "Individual"),
                            ("SUBSCRIPTION_ONLY", "Subscription only"),
                            ("BOTH", "Both"),
                        ],
                        default="INDIVIDUAL",
                        max_length=20,
                    ),
                ),
                ("subscription_usages", models.JSONField(blank=True, null=True)),
                ("subscription_utilized", models.BooleanField(default=False)),
                ("subscription_usage_kg", models.DecimalField(blank=True, decimal_places=3, max_digits=10, null=True)),
                ("subscription_usage_items", models.PositiveIntegerField(blank=True, null=True)),
                ("subtotal", models.IntegerField(default=0)),
                ("tax", models.IntegerField(default=0)),
                ("discount", models.IntegerField(blank=True, null=True)),
                ("total", models.IntegerField(default=0)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("DUE", "Due"), ("PAID", "Paid")],
                        default="DUE",
                        max_length=8,
                    ),
                ),
                ("comments", models.TextField(blank=True, null=True)),
                ("issued_at", models.DateTimeField(blank=True, null=True)),
                ("pdf_url", models.CharField(blank=True, max_length=512, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="invoices",
                        to="laundry.order",
                    ),
                ),
                (
                    "subscription",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="laundry.subscription",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("order__isnull", False)),
                        fields=("order", "type"),
                        name="invoice_unique_order_type",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField()),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("SERVICE", "Service"),
                            ("DRYCLEAN_ITEM", "Dry-clean item"),
                            ("ADDON", "Add-on"),
                            ("FEE", "Fee"),
                            ("DISCOUNT", "Discount"),
                        ],
                        max_length=20,
                    ),
                ),
                ("name", models.CharField(max_length=200)),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=10)),
                ("unit_price", models.IntegerField()),
                ("amount", models.IntegerField()),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="laundry.invoice",
                    ),
                ),
            ],
            options={
                "ordering": ["position"],
            },
        ),
        migrations.CreateModel(
            name="SubscriptionUsage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("deducted_pickups", models.PositiveIntegerField(default=1)),
                ("deducted_kg", models.DecimalField(decimal_places=3, default=Decimal("0"), max_digits=10)),
                ("deducted_items_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "invoice",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="laundry.invoice",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="subscription_usages",
                        to="laundry.order",
                    ),
                ),
                (
                    "subscription",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="usages",
                        to="laundry.subscription",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "subscription"),
                        name="subscription_usage_unique_order",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("invoice__isnull", False)),
                        fields=("invoice", "subscription"),
                        name="subscription_usage_unique_invoice",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "provider",
                    models.CharField(
                        choices=[("MANUAL", "Manual"), ("CASH", "Cash"), ("UPI", "UPI"), ("CARD", "Card")],
                        default="MANUAL",
                        max_length=16,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("CAPTURED", "Captured"), ("FAILED", "Failed")],
                        max_length=16,
                    ),
                ),
                ("amount", models.IntegerField()),
                ("failure_reason", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment",
                        to="laundry.order",
                    ),
                ),
            ],
        ),
    ]
