from django.urls import path
from .views import (
    AckInvoiceDraftView,
    CreateOrderView,
    FinalInvoiceDraftView,
    IssueAckInvoiceView,
    IssueFinalInvoiceView,
    PaymentView,
    PurchaseSubscriptionView,
    SubscriptionPaymentView,
    UpdateOrderStatusView,
)

urlpatterns = [
    path("orders/", CreateOrderView.as_view(), name="create-order"),
    path("orders/<int:order_id>/status/", UpdateOrderStatusView.as_view(), name="update-order-status"),
    path("orders/<int:order_id>/invoices/ack/", AckInvoiceDraftView.as_view(), name="ack-invoice-draft"),
    path("orders/<int:order_id>/invoices/ack/issue/", IssueAckInvoiceView.as_view(), name="issue-ack-invoice"),
    path("orders/<int:order_id>/invoices/final/", FinalInvoiceDraftView.as_view(), name="final-invoice-draft"),
    path("orders/<int:order_id>/invoices/final/issue/", IssueFinalInvoiceView.as_view(), name="issue-final-invoice"),
    path("orders/<int:order_id>/payment/", PaymentView.as_view(), name="order-payment"),
    path("subscriptions/", PurchaseSubscriptionView.as_view(), name="purchase-subscription"),
    path("subscriptions/<int:subscription_id>/payment/", SubscriptionPaymentView.as_view(), name="subscription-payment"),
]
