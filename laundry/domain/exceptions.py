class LaundryError(Exception):
    """Base class for business rule violations. Each subclass carries a stable error code."""

    code = "LAUNDRY_ERROR"

    def __init__(self, message, **details):
        self.message = message
        self.details = details
        super().__init__(message)


class OrderNotFound(LaundryError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found", order_id=order_id)


class InvalidStatusTransition(LaundryError):
    """Raised when an order status change is not in the transition table."""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, from_status, to_status):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Transition from {from_status} to {to_status} is not allowed",
            from_status=str(from_status),
            to_status=str(to_status),
        )


class SubscriptionExpired(LaundryError):
    """Raised when a subscription is missing, inactive or past its expiry date."""

    code = "SUBSCRIPTION_EXPIRED"


class NoRemainingPickups(LaundryError):
    code = "NO_REMAINING_PICKUPS"


class ExceededLimit(LaundryError):
    """Raised when a deduction would push kg or item usage past the effective limit."""

    code = "EXCEEDED_LIMIT"

    def __init__(self, limit_name, used, requested, limit):
        self.limit_name = limit_name
        self.used = used
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Subscription {limit_name} limit exceeded "
            f"(used: {used}, requested: {requested}, limit: {limit})",
            limit_name=limit_name,
        )


class SubscriptionRequired(LaundryError):
    code = "SUBSCRIPTION_REQUIRED"


class IndividualNoSubscription(LaundryError):
    code = "INDIVIDUAL_NO_SUBSCRIPTION"


class SubscriptionHasActiveOrder(LaundryError):
    code = "SUBSCRIPTION_HAS_ACTIVE_ORDER"


class SubscriptionNotPaid(LaundryError):
    code = "SUBSCRIPTION_NOT_PAID"


class AckInvoiceNotAllowed(LaundryError):
    code = "ACK_INVOICE_NOT_ALLOWED"


class FinalInvoiceNotAllowed(LaundryError):
    code = "FINAL_INVOICE_NOT_ALLOWED"


class InvoiceNotFound(LaundryError):
    code = "INVOICE_NOT_FOUND"


class InvoiceDraftInvalid(LaundryError):
    code = "INVOICE_DRAFT_INVALID"


class InvoicePaymentCaptured(LaundryError):
    """Raised when editing an issued invoice whose order payment was already collected."""

    code = "INVOICE_PAYMENT_CAPTURED"


class PaymentInvalid(LaundryError):
    code = "PAYMENT_INVALID"


class InvoiceNotIssued(LaundryError):
    """Raised when a document is requested for an invoice that is still a draft."""

    code = "INVOICE_NOT_ISSUED"


class PlanNotFound(LaundryError):
    code = "PLAN_NOT_FOUND"


class SubscriptionNotFound(LaundryError):
    code = "SUBSCRIPTION_NOT_FOUND"
