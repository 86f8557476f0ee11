"""
Ledger exports.
"""

from .exporters import (
    TIMELINE_CSV_COLUMNS,
    backup_filename,
    chart_label,
    chart_series,
    export_json,
    export_timeline_csv,
    instrument_csv_filename,
    timeline_frame,
)

__all__ = [
    "TIMELINE_CSV_COLUMNS",
    "backup_filename",
    "chart_label",
    "chart_series",
    "export_json",
    "export_timeline_csv",
    "instrument_csv_filename",
    "timeline_frame",
]
