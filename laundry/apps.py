from django.apps import AppConfig


class LaundryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "laundry"
    verbose_name = "Laundry orders and billing"
