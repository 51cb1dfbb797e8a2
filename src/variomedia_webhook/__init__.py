"""Variomedia webhook - ACME DNS-01 solver for the Variomedia DNS API."""

from variomedia_webhook.client import VariomediaClient
from variomedia_webhook.solver import VariomediaSolver

__all__ = ["VariomediaClient", "VariomediaSolver"]
__version__ = "0.1.0"
