"""Dinheiros: personal finance backend."""

__version__ = "1.0.0"
