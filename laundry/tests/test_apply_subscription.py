from decimal import Decimal
from unittest import mock

from django.test import TestCase

from laundry import repositories
from laundry.application.orders import apply_subscription_to_order
from laundry.constants import InvoiceType
from laundry.domain.exceptions import ExceededLimit, NoRemainingPickups, OrderNotFound, SubscriptionExpired
from laundry.models import Invoice, SubscriptionUsage
from laundry.tests.helpers import make_order, make_plan, make_subscription


class ApplySubscriptionTest(TestCase):
    """
    Each test runs inside a transaction that is rolled back automatically,
    so ledger rows never leak between cases.
    """

    def setUp(self):
        self.plan = make_plan(max_pickups=4, kg_limit=Decimal("10"))
        self.subscription = make_subscription(self.plan, used_kg=Decimal("4"))
        self.order = make_order(self.subscription)

    def test_deducts_pickup_and_usage(self):
        result = apply_subscription_to_order(
            self.order.id, self.subscription.id, weight_kg=Decimal("2.5"), items_count=3
        )

        self.assertEqual(result, {"applied": True})
        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_pickups, 3)
        self.assertEqual(self.subscription.used_kg, Decimal("6.5"))
        self.assertEqual(self.subscription.used_items_count, 3)

        usage = SubscriptionUsage.objects.get()
        self.assertEqual(usage.deducted_pickups, 1)
        self.assertEqual(usage.deducted_kg, Decimal("2.5"))

    def test_double_apply_deducts_once(self):
        """Same order and subscription must not deduct twice."""
        first = apply_subscription_to_order(self.order.id, self.subscription.id, weight_kg=1)
        second = apply_subscription_to_order(self.order.id, self.subscription.id, weight_kg=1)

        self.assertEqual(first, {"applied": True})
        self.assertEqual(second, {"applied": False})
        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_pickups, 3)
        self.assertEqual(self.subscription.used_kg, Decimal("5"))
        self.assertEqual(SubscriptionUsage.objects.count(), 1)

    def test_double_apply_by_invoice_deducts_once(self):
        invoice = Invoice.objects.create(order=self.order, type=InvoiceType.ACKNOWLEDGEMENT, code="ACK-1")

        apply_subscription_to_order(self.order.id, self.subscription.id, invoice_id=invoice.id)
        second = apply_subscription_to_order(self.order.id, self.subscription.id, invoice_id=invoice.id)

        self.assertEqual(second, {"applied": False})
        self.assertEqual(SubscriptionUsage.objects.count(), 1)

    def test_unique_race_returns_not_applied(self):
        """A concurrent retry that passed the lookup is caught by the unique constraint."""
        invoice = Invoice.objects.create(order=self.order, type=InvoiceType.ACKNOWLEDGEMENT, code="ACK-1")
        apply_subscription_to_order(self.order.id, self.subscription.id, invoice_id=invoice.id)

        with mock.patch.object(
            repositories.subscription_usage,
            "find_by_invoice_id_and_subscription_id",
            return_value=None,
        ):
            result = apply_subscription_to_order(self.order.id, self.subscription.id, invoice_id=invoice.id)

        self.assertEqual(result, {"applied": False})
        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_pickups, 3)
        self.assertEqual(SubscriptionUsage.objects.count(), 1)

    def test_exact_kg_boundary_then_deactivates(self):
        apply_subscription_to_order(self.order.id, self.subscription.id, weight_kg=Decimal("6"))

        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.used_kg, Decimal("10"))
        self.assertFalse(self.subscription.active)
        self.assertIsNotNone(self.subscription.inactivated_at)

    def test_kg_overshoot_leaves_state_unchanged(self):
        with self.assertRaises(ExceededLimit):
            apply_subscription_to_order(self.order.id, self.subscription.id, weight_kg=Decimal("6.5"))

        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_pickups, 4)
        self.assertEqual(self.subscription.used_kg, Decimal("4"))
        self.assertTrue(self.subscription.active)
        self.assertEqual(SubscriptionUsage.objects.count(), 0)

    def test_last_pickup_deactivates(self):
        self.subscription.remaining_pickups = 1
        self.subscription.save()

        apply_subscription_to_order(self.order.id, self.subscription.id, weight_kg=1)

        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_pickups, 0)
        self.assertFalse(self.subscription.active)

    def test_closure_deducts_usage_without_pickup(self):
        self.subscription.remaining_pickups = 0
        self.subscription.save()

        result = apply_subscription_to_order(
            self.order.id, self.subscription.id, weight_kg=Decimal("2"), items_count=1
        )

        self.assertEqual(result, {"applied": True})
        usage = SubscriptionUsage.objects.get()
        self.assertEqual(usage.deducted_pickups, 0)
        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_pickups, 0)
        self.assertEqual(self.subscription.used_kg, Decimal("6"))
        self.assertFalse(self.subscription.active)

    def test_closure_still_checks_kg_limit(self):
        """Closure deductions still run the kg/items limit check on the supplied amounts."""
        self.subscription.remaining_pickups = 0
        self.subscription.save()

        with self.assertRaises(ExceededLimit):
            apply_subscription_to_order(self.order.id, self.subscription.id, weight_kg=Decimal("7"))

    def test_no_pickups_and_no_usage_is_rejected(self):
        self.subscription.remaining_pickups = 0
        self.subscription.save()

        with self.assertRaises(NoRemainingPickups):
            apply_subscription_to_order(self.order.id, self.subscription.id)

    def test_inactive_subscription(self):
        self.subscription.active = False
        self.subscription.save()

        with self.assertRaises(SubscriptionExpired):
            apply_subscription_to_order(self.order.id, self.subscription.id)

    def test_missing_subscription(self):
        with self.assertRaises(SubscriptionExpired):
            apply_subscription_to_order(self.order.id, 99999)

    def test_missing_order(self):
        with self.assertRaises(OrderNotFound):
            apply_subscription_to_order(99999, self.subscription.id)
