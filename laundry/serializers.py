"""Request payload validation for the laundry API. Business rules live in the use cases."""

from rest_framework import serializers

from laundry.constants import (
    InvoiceItemType,
    InvoiceOrderMode,
    OrderSource,
    OrderStatus,
    OrderType,
    PaymentProvider,
    PaymentStatus,
)


class CreateOrderSerializer(serializers.Serializer):
    order_type = serializers.ChoiceField(choices=OrderType.choices)
    order_source = serializers.ChoiceField(choices=OrderSource.choices, default=OrderSource.ONLINE)
    subscription_id = serializers.IntegerField(required=False, allow_null=True, default=None)


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    cancellation_reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class InvoiceItemSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=InvoiceItemType.choices, default=InvoiceItemType.SERVICE)
    name = serializers.CharField(max_length=200)
    quantity = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=0)
    unit_price = serializers.IntegerField()
    amount = serializers.IntegerField(required=False, allow_null=True, default=None)


class _InvoiceDraftSerializer(serializers.Serializer):
    items = InvoiceItemSerializer(many=True, required=False, default=list)
    tax = serializers.IntegerField(min_value=0, default=0)
    discount = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)
    subscription_usage_kg = serializers.DecimalField(
        max_digits=10, decimal_places=3, min_value=0, required=False, allow_null=True, default=None
    )
    subscription_usage_items = serializers.IntegerField(
        min_value=0, required=False, allow_null=True, default=None
    )
    comments = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class AckInvoiceDraftSerializer(_InvoiceDraftSerializer):
    order_mode = serializers.ChoiceField(choices=InvoiceOrderMode.choices, default=InvoiceOrderMode.INDIVIDUAL)
    subscription_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    subscription_ids = serializers.ListField(
        child=serializers.IntegerField(), required=False, allow_empty=True, default=list
    )


class FinalInvoiceDraftSerializer(_InvoiceDraftSerializer):
    pass


class IssueAckInvoiceSerializer(serializers.Serializer):
    apply_subscription = serializers.BooleanField(default=False)
    weight_kg = serializers.DecimalField(
        max_digits=10, decimal_places=3, min_value=0, required=False, allow_null=True, default=None
    )
    items_count = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)


class PaymentSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PaymentStatus.choices)
    amount = serializers.IntegerField(min_value=0)
    provider = serializers.ChoiceField(choices=PaymentProvider.choices, default=PaymentProvider.MANUAL)
    failure_reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class PurchaseSubscriptionSerializer(serializers.Serializer):
    plan_id = serializers.IntegerField()
