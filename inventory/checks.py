from django.conf import settings
from django.core.checks import Error, register

from .models import Notification


@register()
def check_alert_priority(app_configs, **kwargs):
    value = str(getattr(settings, "LOW_STOCK_ALERT_PRIORITY", "HIGH")).strip().upper()
    if value in Notification.Priority.values:
        return []
    return [
        Error(
            f"LOW_STOCK_ALERT_PRIORITY={value!r} is not a notification priority.",
            hint=f"Use one of {', '.join(Notification.Priority.values)}.",
            id="inventory.E001",
        )
    ]
