from decimal import Decimal

from django.core.files.storage import storages
from django.test import TestCase
from rest_framework.test import APIClient

from laundry.application.invoices import create_ack_invoice_draft, issue_ack_invoice
from laundry.application.payments import confirm_subscription_payment, update_payment_status
from laundry.application.subscriptions import purchase_subscription
from laundry.constants import (
    InvoiceOrderMode,
    InvoicePaymentStatus,
    InvoiceStatus,
    InvoiceType,
    OrderStatus,
    PaymentProvider,
    PaymentStatus,
)
from laundry.domain.exceptions import InvoiceNotFound, PlanNotFound, SubscriptionNotFound, SubscriptionNotPaid
from laundry.models import Invoice, Payment, Subscription
from laundry.tests.helpers import in_memory_storage, make_order, make_plan, make_subscription


@in_memory_storage
class PurchaseSubscriptionTest(TestCase):

    def setUp(self):
        self.plan = make_plan(max_pickups=4, kg_limit=Decimal("20"), price=50000, validity_days=30)

    def test_purchase_starts_full_quota_and_bills_plan(self):
        result = purchase_subscription(self.plan.id)

        subscription = Subscription.objects.get(pk=result["subscription_id"])
        self.assertEqual(subscription.remaining_pickups, 4)
        self.assertEqual(subscription.used_kg, Decimal("0"))
        self.assertTrue(subscription.active)
        self.assertEqual((subscription.expiry_date - subscription.validity_start_date).days, 30)

        invoice = Invoice.objects.get(pk=result["invoice_id"])
        self.assertEqual(invoice.type, InvoiceType.SUBSCRIPTION)
        self.assertEqual(invoice.status, InvoiceStatus.ISSUED)
        self.assertEqual(invoice.subscription_id, subscription.id)
        self.assertIsNone(invoice.order_id)
        self.assertEqual(invoice.total, 50000)
        self.assertEqual(invoice.payment_status, InvoicePaymentStatus.DUE)
        self.assertEqual([item.amount for item in invoice.items.all()], [50000])
        self.assertTrue(storages["default"].exists(f"invoices/SUB-{subscription.id}.txt"))

    def test_free_plan_is_billed_as_paid(self):
        free = make_plan(name="Trial", price=0)

        result = purchase_subscription(free.id)

        self.assertEqual(result["payment_status"], InvoicePaymentStatus.PAID)

    def test_inactive_plan(self):
        self.plan.active = False
        self.plan.save()

        with self.assertRaises(PlanNotFound):
            purchase_subscription(self.plan.id)
        self.assertEqual(Subscription.objects.count(), 0)

    def test_missing_plan(self):
        with self.assertRaises(PlanNotFound):
            purchase_subscription(99999)


@in_memory_storage
class ConfirmSubscriptionPaymentTest(TestCase):

    def setUp(self):
        self.plan = make_plan(max_pickups=4, kg_limit=Decimal("20"), price=50000)
        self.subscription_id = purchase_subscription(self.plan.id)["subscription_id"]
        self.subscription = Subscription.objects.get(pk=self.subscription_id)
        self.order = make_order(self.subscription, status=OrderStatus.PICKED_UP)
        create_ack_invoice_draft(
            self.order.id,
            [],
            order_mode=InvoiceOrderMode.SUBSCRIPTION_ONLY,
            subscription_id=self.subscription_id,
            subscription_usage_kg=Decimal("3"),
        )

    def test_payment_releases_acknowledgement(self):
        with self.assertRaises(SubscriptionNotPaid):
            issue_ack_invoice(self.order.id)

        result = confirm_subscription_payment(
            self.subscription_id, PaymentStatus.CAPTURED, 50000, provider=PaymentProvider.UPI
        )
        self.assertEqual(result["invoice_payment_status"], InvoicePaymentStatus.PAID)

        issue_ack_invoice(self.order.id)

        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_pickups, 3)
        self.assertEqual(self.subscription.used_kg, Decimal("3"))
        payment = Payment.objects.get(subscription_id=self.subscription_id)
        self.assertEqual(payment.provider, PaymentProvider.UPI)
        self.assertIsNone(payment.order_id)

    def test_failed_payment_keeps_invoice_due(self):
        confirm_subscription_payment(
            self.subscription_id, PaymentStatus.FAILED, 50000, failure_reason="UPI timeout"
        )

        invoice = Invoice.objects.get(type=InvoiceType.SUBSCRIPTION)
        self.assertEqual(invoice.payment_status, InvoicePaymentStatus.DUE)
        with self.assertRaises(SubscriptionNotPaid):
            issue_ack_invoice(self.order.id)

    def test_order_payment_does_not_pay_subscription(self):
        update_payment_status(self.order.id, PaymentStatus.CAPTURED, 0)

        invoice = Invoice.objects.get(type=InvoiceType.SUBSCRIPTION)
        self.assertEqual(invoice.payment_status, InvoicePaymentStatus.DUE)

    def test_missing_subscription(self):
        with self.assertRaises(SubscriptionNotFound):
            confirm_subscription_payment(99999, PaymentStatus.CAPTURED, 100)

    def test_subscription_without_invoice(self):
        other = make_subscription(self.plan)

        with self.assertRaises(InvoiceNotFound):
            confirm_subscription_payment(other.id, PaymentStatus.CAPTURED, 100)


@in_memory_storage
class SubscriptionEndpointsTest(TestCase):
    """
    Tests for POST /api/subscriptions/ and POST /api/subscriptions/<id>/payment/
    """

    def setUp(self):
        self.client = APIClient()
        self.plan = make_plan(price=30000)

    def test_purchase_then_pay(self):
        response = self.client.post("/api/subscriptions/", {"plan_id": self.plan.id}, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["payment_status"], InvoicePaymentStatus.DUE)
        subscription_id = response.data["subscription_id"]

        response = self.client.post(
            f"/api/subscriptions/{subscription_id}/payment/",
            {"status": PaymentStatus.CAPTURED, "amount": 30000, "provider": "CASH"},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["invoice_payment_status"], InvoicePaymentStatus.PAID)

    def test_unknown_plan_returns_404(self):
        response = self.client.post("/api/subscriptions/", {"plan_id": 99999}, format="json")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "PLAN_NOT_FOUND")
