"""Shipment spreadsheet importer (tolerant column mapping -> PostgreSQL)."""

__version__ = "0.1.0"
