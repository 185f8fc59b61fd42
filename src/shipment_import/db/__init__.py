"""PostgreSQL persistence for shipments and the import log."""
