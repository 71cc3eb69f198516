"""
Application Use Case — Subscription Purchase

Buying a plan starts a subscription with the plan's full quota and bills
it through an issued SUBSCRIPTION invoice. The invoice stays DUE until
staff confirm the payment (laundry.application.payments); while it is DUE
no acknowledgement invoice can be issued against the subscription.
Free plans are billed as already PAID.
"""

import logging

from django.db import transaction
from django.utils import timezone

from laundry import repositories
from laundry.application.invoices import generate_and_store_invoice_pdf
from laundry.domain.exceptions import PlanNotFound

logger = logging.getLogger(__name__)


def subscription_invoice_code(subscription_id):
    return f"SUB-{subscription_id}"


def purchase_subscription(plan_id):
    with transaction.atomic():
        plan = repositories.subscription_plans.get_by_id(plan_id)
        if plan is None:
            raise PlanNotFound("Subscription plan not found", plan_id=plan_id)
        if not plan.active:
            raise PlanNotFound("Subscription plan is not active", plan_id=plan_id)

        now = timezone.now()
        subscription = repositories.subscriptions.create(plan, now=now)
        invoice = repositories.invoices.create_subscription_invoice(
            subscription, plan, subscription_invoice_code(subscription.id), now
        )
        pdf_url = generate_and_store_invoice_pdf(invoice)

    logger.info(
        "Subscription purchased: subscription=%s plan=%s invoice=%s payment=%s",
        subscription.id, plan.id, invoice.id, invoice.payment_status,
    )
    return {
        "subscription_id": subscription.id,
        "invoice_id": invoice.id,
        "plan_name": plan.name,
        "validity_start_date": subscription.validity_start_date,
        "valid_till": subscription.expiry_date,
        "remaining_pickups": subscription.remaining_pickups,
        "payment_status": invoice.payment_status,
        "pdf_url": pdf_url,
    }
