"""
Bulk trade import.

This module provides parsing of external trade lists and their atomic
reconciliation into a ledger.
"""

from .csv_parser import ParsedTable, detect_delimiter, parse_csv, table_to_records
from .reconciler import BulkImportReconciler, ImportReport, ImportRowError
from .row_canonicalizer import ImportRowCanonicalizer

__all__ = [
    "BulkImportReconciler",
    "ImportReport",
    "ImportRowError",
    "ImportRowCanonicalizer",
    "ParsedTable",
    "detect_delimiter",
    "parse_csv",
    "table_to_records",
]
