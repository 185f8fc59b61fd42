"""Command line entry point (``python -m shipment_import.cli``)."""
