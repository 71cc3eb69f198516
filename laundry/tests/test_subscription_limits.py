from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase
from django.utils import timezone

from laundry.domain.exceptions import ExceededLimit, NoRemainingPickups, SubscriptionExpired
from laundry.domain.subscription_limits import (
    Deduction,
    assert_deduction_allowed,
    effective_limits,
    is_exhausted,
)


def subscription(**overrides):
    values = {
        "pk": 1,
        "active": True,
        "expiry_date": timezone.now() + timedelta(days=10),
        "remaining_pickups": 2,
        "used_kg": Decimal("0"),
        "used_items_count": 0,
        "total_max_pickups": None,
        "total_kg_limit": None,
        "total_items_limit": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def plan(**overrides):
    values = {"max_pickups": 4, "kg_limit": Decimal("10"), "items_limit": 20}
    values.update(overrides)
    return SimpleNamespace(**values)


class EffectiveLimitsTest(SimpleTestCase):

    def test_plan_defaults(self):
        limits = effective_limits(subscription(), plan())

        self.assertEqual(limits.max_pickups, 4)
        self.assertEqual(limits.kg_limit, Decimal("10"))
        self.assertEqual(limits.items_limit, 20)

    def test_subscription_overrides_win(self):
        limits = effective_limits(
            subscription(total_max_pickups=12, total_kg_limit=Decimal("30"), total_items_limit=0),
            plan(),
        )

        self.assertEqual(limits.max_pickups, 12)
        self.assertEqual(limits.kg_limit, Decimal("30"))
        self.assertEqual(limits.items_limit, 0)


class AssertDeductionAllowedTest(SimpleTestCase):

    def test_exact_kg_boundary_is_allowed(self):
        sub = subscription(used_kg=Decimal("4"))

        assert_deduction_allowed(sub, plan(), Deduction(pickups=1, kg=Decimal("6")))

    def test_kg_overshoot_is_rejected(self):
        sub = subscription(used_kg=Decimal("4"))

        with self.assertRaises(ExceededLimit) as ctx:
            assert_deduction_allowed(sub, plan(), Deduction(pickups=1, kg=Decimal("6.001")))
        self.assertEqual(ctx.exception.code, "EXCEEDED_LIMIT")
        self.assertIn("kg limit exceeded", ctx.exception.message)

    def test_items_overshoot_is_rejected(self):
        with self.assertRaises(ExceededLimit) as ctx:
            assert_deduction_allowed(subscription(used_items_count=18), plan(), Deduction(pickups=1, items=3))
        self.assertEqual(ctx.exception.limit_name, "items")

    def test_no_limit_means_unbounded(self):
        assert_deduction_allowed(
            subscription(used_kg=Decimal("500")),
            plan(kg_limit=None, items_limit=None),
            Deduction(pickups=1, kg=Decimal("100"), items=100),
        )

    def test_inactive_checked_first(self):
        sub = subscription(active=False, remaining_pickups=0)

        with self.assertRaises(SubscriptionExpired):
            assert_deduction_allowed(sub, plan(), Deduction(pickups=1))

    def test_expired(self):
        sub = subscription(expiry_date=timezone.now() - timedelta(seconds=1))

        with self.assertRaises(SubscriptionExpired):
            assert_deduction_allowed(sub, plan(), Deduction(pickups=1))

    def test_pickups_checked_before_limits(self):
        sub = subscription(remaining_pickups=0, used_kg=Decimal("10"))

        with self.assertRaises(NoRemainingPickups):
            assert_deduction_allowed(sub, plan(), Deduction(pickups=1, kg=Decimal("5")))


class IsExhaustedTest(SimpleTestCase):

    def test_fresh_subscription(self):
        self.assertFalse(is_exhausted(subscription(), plan()))

    def test_no_pickups_left(self):
        self.assertTrue(is_exhausted(subscription(remaining_pickups=0), plan()))

    def test_kg_limit_reached(self):
        self.assertTrue(is_exhausted(subscription(used_kg=Decimal("10")), plan()))

    def test_items_limit_reached(self):
        self.assertTrue(is_exhausted(subscription(used_items_count=20), plan()))

    def test_expired(self):
        sub = subscription(expiry_date=timezone.now() - timedelta(days=1))

        self.assertTrue(is_exhausted(sub, plan()))
