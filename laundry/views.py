"""
API Layer — Orders, Invoices and Payments (Django REST Framework)

Views are thin controllers:

- Payloads are validated by the serializers in laundry.serializers;
  a malformed request never reaches a use case and answers 400.
- All transactional guarantees (atomicity, row locks, idempotent
  deductions) belong to the application layer.
- LaundryError subclasses are translated into HTTP statuses through
  ERROR_STATUS, keyed on the error's stable code. The response body is
  always ``{"code": ..., "error": ...}``.
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from laundry.application.invoices import (
    create_ack_invoice_draft,
    create_final_invoice_draft,
    issue_ack_invoice,
    issue_final_invoice,
)
from laundry.application.orders import create_order, update_order_status
from laundry.application.payments import confirm_subscription_payment, update_payment_status
from laundry.application.subscriptions import purchase_subscription
from laundry.domain.exceptions import LaundryError
from laundry.serializers import (
    AckInvoiceDraftSerializer,
    CreateOrderSerializer,
    FinalInvoiceDraftSerializer,
    IssueAckInvoiceSerializer,
    PaymentSerializer,
    PurchaseSubscriptionSerializer,
    UpdateOrderStatusSerializer,
)

ERROR_STATUS = {
    "ORDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVOICE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PLAN_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "SUBSCRIPTION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_STATUS_TRANSITION": status.HTTP_409_CONFLICT,
    "ACK_INVOICE_NOT_ALLOWED": status.HTTP_409_CONFLICT,
    "FINAL_INVOICE_NOT_ALLOWED": status.HTTP_409_CONFLICT,
    "SUBSCRIPTION_HAS_ACTIVE_ORDER": status.HTTP_409_CONFLICT,
    "INVOICE_PAYMENT_CAPTURED": status.HTTP_409_CONFLICT,
    "INVOICE_NOT_ISSUED": status.HTTP_409_CONFLICT,
    "SUBSCRIPTION_EXPIRED": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "NO_REMAINING_PICKUPS": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "EXCEEDED_LIMIT": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "SUBSCRIPTION_NOT_PAID": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "SUBSCRIPTION_REQUIRED": status.HTTP_400_BAD_REQUEST,
    "INDIVIDUAL_NO_SUBSCRIPTION": status.HTTP_400_BAD_REQUEST,
    "INVOICE_DRAFT_INVALID": status.HTTP_400_BAD_REQUEST,
    "PAYMENT_INVALID": status.HTTP_400_BAD_REQUEST,
}


def error_response(exc):
    return Response(
        {"code": exc.code, "error": exc.message},
        status=ERROR_STATUS.get(exc.code, status.HTTP_422_UNPROCESSABLE_ENTITY),
    )


def invalid_payload(serializer):
    return Response(
        {"code": "INVALID_REQUEST", "error": serializer.errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


class CreateOrderView(APIView):
    """POST /api/orders/"""

    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)
        data = serializer.validated_data

        try:
            order = create_order(
                data["order_type"],
                subscription_id=data["subscription_id"],
                order_source=data["order_source"],
            )
        except LaundryError as exc:
            return error_response(exc)

        return Response(
            {
                "order_id": order.id,
                "status": order.status,
                "order_type": order.order_type,
                "order_source": order.order_source,
                "subscription_id": order.subscription_id,
            },
            status=status.HTTP_201_CREATED,
        )


class UpdateOrderStatusView(APIView):
    """POST /api/orders/<order_id>/status/"""

    def post(self, request, order_id):
        serializer = UpdateOrderStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)
        data = serializer.validated_data

        try:
            result = update_order_status(
                order_id, data["status"], cancellation_reason=data["cancellation_reason"]
            )
        except LaundryError as exc:
            return error_response(exc)

        return Response(result, status=status.HTTP_200_OK)


class AckInvoiceDraftView(APIView):
    """PUT /api/orders/<order_id>/invoices/ack/"""

    def put(self, request, order_id):
        serializer = AckInvoiceDraftSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)

        try:
            result = create_ack_invoice_draft(order_id, **serializer.validated_data)
        except LaundryError as exc:
            return error_response(exc)

        return Response(result, status=status.HTTP_200_OK)


class IssueAckInvoiceView(APIView):
    """POST /api/orders/<order_id>/invoices/ack/issue/"""

    def post(self, request, order_id):
        serializer = IssueAckInvoiceSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)

        try:
            result = issue_ack_invoice(order_id, **serializer.validated_data)
        except LaundryError as exc:
            return error_response(exc)

        return Response(result, status=status.HTTP_200_OK)


class FinalInvoiceDraftView(APIView):
    """PUT /api/orders/<order_id>/invoices/final/"""

    def put(self, request, order_id):
        serializer = FinalInvoiceDraftSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)

        try:
            result = create_final_invoice_draft(order_id, **serializer.validated_data)
        except LaundryError as exc:
            return error_response(exc)

        return Response(result, status=status.HTTP_200_OK)


class IssueFinalInvoiceView(APIView):
    """POST /api/orders/<order_id>/invoices/final/issue/"""

    def post(self, request, order_id):
        try:
            result = issue_final_invoice(order_id)
        except LaundryError as exc:
            return error_response(exc)

        return Response(result, status=status.HTTP_200_OK)


class PaymentView(APIView):
    """POST /api/orders/<order_id>/payment/"""

    def post(self, request, order_id):
        serializer = PaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)

        try:
            result = update_payment_status(order_id, **serializer.validated_data)
        except LaundryError as exc:
            return error_response(exc)

        return Response(result, status=status.HTTP_200_OK)


class PurchaseSubscriptionView(APIView):
    """POST /api/subscriptions/"""

    def post(self, request):
        serializer = PurchaseSubscriptionSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)

        try:
            result = purchase_subscription(serializer.validated_data["plan_id"])
        except LaundryError as exc:
            return error_response(exc)

        return Response(result, status=status.HTTP_201_CREATED)


class SubscriptionPaymentView(APIView):
    """POST /api/subscriptions/<subscription_id>/payment/"""

    def post(self, request, subscription_id):
        serializer = PaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)

        try:
            result = confirm_subscription_payment(subscription_id, **serializer.validated_data)
        except LaundryError as exc:
            return error_response(exc)

        return Response(result, status=status.HTTP_200_OK)
