"""Atomic Builder: browse, scaffold and preview Single Directory Components."""

__version__ = "0.1.0"
