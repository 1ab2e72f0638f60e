"""Krolist price administration toolkit."""

__version__ = "0.1.0"
