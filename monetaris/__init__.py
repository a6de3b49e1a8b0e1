"""Monetaris debt-collection backend."""
__version__ = "0.1.0"
