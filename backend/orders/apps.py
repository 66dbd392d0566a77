from django.apps import AppConfig


class OrdersConfig(AppConfig):
    name = "orders"
    verbose_name = "Live orders"

    def ready(self):
        # Fail fast on bad ORDER_HUB timings instead of on the first order
        from .conf import hub_settings
        hub_settings.as_dict()
