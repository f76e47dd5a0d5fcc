"""Arbor: multi-tenant work-breakdown service."""

__version__ = "0.1.0"
