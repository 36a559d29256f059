"""Storefront cart and favorites synchronization engine."""

__version__ = "0.1.0"
