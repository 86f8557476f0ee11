"""
Delimited trade-list parser.

Reads externally supplied trade lists: optional header row (English or
Chinese field names), delimiter auto-detected among comma, semicolon and tab,
standard CSV quoting.
"""

import io
import re
from dataclasses import dataclass, field

import pandas as pd
from loguru import logger

from stockledger.core.exceptions.ledger import DataError

DELIMITER_CANDIDATES = (",", ";", "\t")

IMPORT_FIELDS = ("market", "symbol", "side", "date", "time", "qty", "price", "fee")

HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "market": ("market", "市場"),
    "symbol": ("symbol", "股票代號", "代號", "ticker"),
    "side": ("side", "買賣", "買/賣", "type"),
    "date": ("date", "日期"),
    "time": ("time", "時間"),
    "qty": ("qty", "quantity", "數量", "股數"),
    "price": ("price", "價格", "單價"),
    "fee": ("fee", "手續費", "commission"),
}

_HEADER_HINT = re.compile(r"market|symbol|side|date|time|qty|price|fee", re.IGNORECASE)
_HEADER_HINT_ZH = re.compile(r"市場|代號|股票|買|賣|日期|時間|數量|價格|手續費")


@dataclass(frozen=True)
class ParsedTable:
    """Raw cells of a delimited text, split into header and data rows."""

    header: list[str] | None
    rows: list[list[str]] = field(default_factory=list)
    delimiter: str = ","

    @property
    def has_header(self) -> bool:
        return self.header is not None


def detect_delimiter(line: str) -> str:
    """Pick the candidate delimiter occurring most often in ``line``.

    Ties go to the earlier candidate, so a line without any delimiter
    is treated as comma separated.
    """
    best, best_count = ",", -1
    for candidate in DELIMITER_CANDIDATES:
        count = line.count(candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def looks_like_header(cells: list[str]) -> bool:
    """Check whether the first row names import fields."""
    joined = "|".join(cells)
    return bool(_HEADER_HINT.search(joined.lower()) or _HEADER_HINT_ZH.search(joined))


def header_index_map(header: list[str] | None) -> dict[str, int]:
    """Map each import field to its column index, -1 when absent.

    Exact (case-insensitive) names win; otherwise the first column that
    contains an alias is used, which covers headers like "股票代號(symbol)".
    """
    if not header:
        return {name: -1 for name in IMPORT_FIELDS}
    normalized = [cell.strip().lower() for cell in header]

    def index_of(aliases: tuple[str, ...]) -> int:
        for alias in aliases:
            if alias.lower() in normalized:
                return normalized.index(alias.lower())
        for i, cell in enumerate(normalized):
            if any(alias.lower() in cell for alias in aliases):
                return i
        return -1

    return {name: index_of(HEADER_ALIASES[name]) for name in IMPORT_FIELDS}


def parse_csv(text: str) -> ParsedTable:
    """
    Split delimited text into cells.

    Args:
        text: Raw file content

    Returns:
        ParsedTable with stripped cell values; blank lines are dropped

    Raises:
        DataError: If the text cannot be tokenized
    """
    lines = [line for line in str(text or "").replace("\ufeff", "").splitlines() if line.strip()]
    if not lines:
        return ParsedTable(header=None, rows=[])

    delimiter = detect_delimiter(lines[0])
    width = max(line.count(delimiter) for line in lines) + 1

    try:
        frame = pd.read_csv(
            io.StringIO("\n".join(lines)),
            sep=delimiter,
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            skip_blank_lines=False,
            skipinitialspace=True,
            quotechar='"',
            doublequote=True,
            engine="python",
        )
    except (pd.errors.ParserError, ValueError) as e:
        logger.error(f"Trade list parsing failed: {e}")
        raise DataError(f"Cannot parse trade list: {e}") from e

    rows = [
        ["" if pd.isna(cell) else str(cell).strip() for cell in row]
        for row in frame.itertuples(index=False, name=None)
    ]
    logger.debug(f"Parsed {len(rows)} lines with delimiter {delimiter!r}")

    if rows and looks_like_header(rows[0]):
        return ParsedTable(header=rows[0], rows=rows[1:], delimiter=delimiter)
    return ParsedTable(header=None, rows=rows, delimiter=delimiter)


def table_to_records(table: ParsedTable) -> list[dict[str, str]]:
    """Turn parsed rows into field mappings.

    With a header, fields map by name and missing columns read as blank.
    Without one, columns are positional in IMPORT_FIELDS order.
    """
    if table.has_header:
        index_map = header_index_map(table.header)
    else:
        index_map = {name: i for i, name in enumerate(IMPORT_FIELDS)}

    records = []
    for row in table.rows:
        record = {}
        for name, idx in index_map.items():
            record[name] = row[idx] if 0 <= idx < len(row) else ""
        records.append(record)
    return records
