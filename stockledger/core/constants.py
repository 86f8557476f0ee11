"""
Core constants and limits.

Defines ledger-wide constants: schema version, floating tolerances used by
the accounting engine, and import defaults.
"""

# Ledger document
LEDGER_SCHEMA_VERSION = 1
DEFAULT_STORAGE_KEY = "stockledger_v1"
LEGACY_KEY_PREFIX = "stockledger"
LAST_BACKUP_KEY = "stockledger_lastBackupAt_v1"

# Accounting tolerances
QUANTITY_EPSILON = 1e-9  # Sell may exceed holding by at most this much
REALIZED_PNL_EPSILON = 1e-6  # Closed positions below this P&L are hidden from holdings

# Timestamps
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_TIME = "00:00:00"  # Used when a manual entry omits the time
DEFAULT_IMPORT_TIME = "09:00"  # Used when an imported row omits the time

# Backup reminder
BACKUP_REMIND_DAYS = 3  # Remind when days since last export >= this

# Import reporting
MAX_IMPORT_ERRORS_IN_MESSAGE = 8
