"""
Commitments app.

Owns the customer commitment chains: versioned spend targets with a discount,
the purchase log carried through every version, and the balances derived
from it.
"""

from django.apps import AppConfig


class CommitmentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "commitments"
    verbose_name = "Customer Commitments"
