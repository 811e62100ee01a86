"""Cognitive screening scoring and clinical review service."""

__version__ = "0.1.0"
