"""Enumerations shared by the laundry order, subscription and invoice models."""

from django.db import models


class OrderStatus(models.TextChoices):
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED", "Booking confirmed"
    PICKUP_SCHEDULED = "PICKUP_SCHEDULED", "Pickup scheduled"
    PICKED_UP = "PICKED_UP", "Picked up"
    IN_PROCESSING = "IN_PROCESSING", "In processing"
    READY = "READY", "Ready"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY", "Out for delivery"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


class OrderType(models.TextChoices):
    INDIVIDUAL = "INDIVIDUAL", "Individual"
    SUBSCRIPTION = "SUBSCRIPTION", "Subscription"


class OrderSource(models.TextChoices):
    ONLINE = "ONLINE", "Online"
    WALK_IN = "WALK_IN", "Walk-in"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    CAPTURED = "CAPTURED", "Captured"
    FAILED = "FAILED", "Failed"


class PaymentProvider(models.TextChoices):
    MANUAL = "MANUAL", "Manual"
    CASH = "CASH", "Cash"
    UPI = "UPI", "UPI"
    CARD = "CARD", "Card"


class InvoiceType(models.TextChoices):
    ACKNOWLEDGEMENT = "ACKNOWLEDGEMENT", "Acknowledgement"
    FINAL = "FINAL", "Final"
    SUBSCRIPTION = "SUBSCRIPTION", "Subscription"


class InvoiceStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    ISSUED = "ISSUED", "Issued"


class InvoicePaymentStatus(models.TextChoices):
    DUE = "DUE", "Due"
    PAID = "PAID", "Paid"


class InvoiceOrderMode(models.TextChoices):
    INDIVIDUAL = "INDIVIDUAL", "Individual"
    SUBSCRIPTION_ONLY = "SUBSCRIPTION_ONLY", "Subscription only"
    BOTH = "BOTH", "Both"


class InvoiceItemType(models.TextChoices):
    SERVICE = "SERVICE", "Service"
    DRYCLEAN_ITEM = "DRYCLEAN_ITEM", "Dry-clean item"
    ADDON = "ADDON", "Add-on"
    FEE = "FEE", "Fee"
    DISCOUNT = "DISCOUNT", "Discount"
