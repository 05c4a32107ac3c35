"""Django app configuration for Stockledger."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class StockledgerConfig(AppConfig):
    """Configuration for Stockledger app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "stockledger"
    verbose_name = _("Branch Stock Ledger")
