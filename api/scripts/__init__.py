"""Operational scripts runnable with ``python -m scripts.<name>``."""
