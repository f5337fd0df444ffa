"""Folio: translate the markup text of zipped document archives."""

__version__ = "0.1.0"
