"""Domain models for the shipment spreadsheet importer."""

from .config_models import DatabaseConfig, DateOrder, ImportSettings
from .error_record import ErrorRecord
from .import_result import ImportDebugInfo, ImportResult, ImportStatus
from .shipment_row import RowError, RowWarning, ShipmentRow

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "DateOrder",
    "ImportSettings",
    # Processing models
    "ShipmentRow",
    "RowError",
    "RowWarning",
    "ErrorRecord",
    # Results
    "ImportDebugInfo",
    "ImportResult",
    "ImportStatus",
]
