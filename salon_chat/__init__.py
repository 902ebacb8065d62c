"""Retrieval-augmented chat assistant for salon services."""

__version__ = "1.0.0"
