"""Reconcile the official settlements registry with OpenStreetMap coordinates."""

__version__ = "0.3.0"
