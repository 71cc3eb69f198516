from datetime import timedelta
from decimal import Decimal

from django.core.files.storage import InMemoryStorage
from django.test import override_settings
from django.utils import timezone

from laundry.constants import OrderSource, OrderStatus, OrderType
from laundry.models import Order, Subscription, SubscriptionPlan

in_memory_storage = override_settings(
    STORAGES={
        "default": {"BACKEND": "django.core.files.storage.InMemoryStorage"},
        "staticfiles": {"BACKEND": "django.core.files.storage.InMemoryStorage"},
    },
    MEDIA_URL="/media/",
)


def make_plan(max_pickups=4, kg_limit=Decimal("20"), items_limit=None, **kwargs):
    return SubscriptionPlan.objects.create(
        name=kwargs.pop("name", "Monthly"),
        max_pickups=max_pickups,
        kg_limit=kg_limit,
        items_limit=items_limit,
        **kwargs,
    )


def make_subscription(plan, remaining_pickups=None, used_kg=Decimal("0"), used_items_count=0, **kwargs):
    now = timezone.now()
    return Subscription.objects.create(
        plan=plan,
        remaining_pickups=plan.max_pickups if remaining_pickups is None else remaining_pickups,
        used_kg=used_kg,
        used_items_count=used_items_count,
        validity_start_date=kwargs.pop("validity_start_date", now - timedelta(days=1)),
        expiry_date=kwargs.pop("expiry_date", now + timedelta(days=30)),
        **kwargs,
    )


def make_order(subscription=None, status=OrderStatus.BOOKING_CONFIRMED, order_source=OrderSource.ONLINE):
    return Order.objects.create(
        order_type=OrderType.SUBSCRIPTION if subscription else OrderType.INDIVIDUAL,
        order_source=order_source,
        subscription=subscription,
        status=status,
        booking_confirmed_at=timezone.now(),
    )


def service_item(name="Wash & fold", quantity="1", unit_price=100):
    return {"type": "SERVICE", "name": name, "quantity": Decimal(quantity), "unit_price": unit_price}
