"""CSV ingestion utilities for debt lists.

Debt CSVs come from spreadsheets and older exports, so headers may be in
any order or casing and optional columns may be missing. Everything here
normalizes rows into strict :class:`DebtAccount` values before they reach
the simulator.
"""

from __future__ import annotations

import io
import logging
import math
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from ..models.plan import new_id
from .debts import DebtAccount

logger = logging.getLogger(__name__)

# Canonical field -> (accepted header spellings, position when the header lacks it)
COLUMN_ALIASES: dict[str, tuple[tuple[str, ...], int]] = {
    "name": (("name", "debt", "debt_name"), 0),
    "balance": (("balance", "current_balance"), 1),
    "apr": (("apr", "rate", "interest_rate"), 2),
    "min_payment": (("minpayment", "min_payment", "minimum_payment", "minimum"), 3),
    "custom_rank": (("customrank", "custom_rank", "rank"), 4),
    "credit_limit": (("creditlimit", "credit_limit", "limit"), 5),
    "debt_type": (("type", "debt_type"), 6),
    "fee_amount": (("feeamount", "fee_amount", "fee"), 7),
    "fee_frequency": (("feefrequency", "fee_frequency"), 8),
}

REQUIRED_FIELDS = ("balance", "apr", "min_payment")
_KNOWN_HEADERS = {alias for aliases, _ in COLUMN_ALIASES.values() for alias in aliases}


def normalize_frame(*, source: Path | str | io.StringIO, encoding: str = "utf-8") -> pd.DataFrame:
    """Load a CSV into a DataFrame of strings with trimmed, lowercase headers.

    Spreadsheet exports often end data rows with a stray delimiter, so rows
    longer than the header are cut back to the header's width instead of
    shifting columns or failing the whole file.
    """

    header = pd.read_csv(source, encoding=encoding, dtype=str, nrows=0)
    if isinstance(source, io.StringIO):
        source.seek(0)
    width = len(header.columns)

    frame = pd.read_csv(
        source,
        encoding=encoding,
        dtype=str,
        skipinitialspace=True,
        index_col=False,
        engine="python",
        on_bad_lines=lambda fields: fields[:width],
    )
    frame.columns = [str(c).strip().strip('"').lower() for c in frame.columns]
    return frame


def normalize_apr(raw_apr: float) -> float:
    """Return APR as a fraction; values of 1 or more are read as percentages."""

    if raw_apr < 1:
        return raw_apr
    return raw_apr / 100


def _resolve_columns(columns: list[str]) -> dict[str, Optional[str]]:
    resolved: dict[str, Optional[str]] = {}
    for field_name, (aliases, position) in COLUMN_ALIASES.items():
        match = next((c for c in columns if c in aliases), None)
        if match is None and position < len(columns) and columns[position] not in _KNOWN_HEADERS:
            match = columns[position]
        resolved[field_name] = match
    return resolved


def _cell(row: Mapping[str, Any], column: Optional[str]) -> Optional[str]:
    if column is None:
        return None
    value = row.get(column)
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    text = str(value).strip().strip('"').strip()
    return text or None


def _to_float(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw.replace("$", "").replace(",", ""))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _to_int(raw: Optional[str]) -> Optional[int]:
    value = _to_float(raw)
    return None if value is None else int(value)


def debts_from_rows(rows: Iterable[Mapping[str, Any]], columns: list[str]) -> list[DebtAccount]:
    """Convert dict-like CSV rows into debts with fresh ids.

    Rows missing a balance, APR or minimum payment cell are skipped.
    Unparsable numbers become 0 for required fields and None for optional
    ones. A fee frequency is only kept when a fee amount is present.
    """

    mapping = _resolve_columns(columns)
    debts: list[DebtAccount] = []
    for index, row in enumerate(rows, start=1):
        if any(_cell(row, mapping[name]) is None for name in REQUIRED_FIELDS):
            logger.warning("Skipping debt row with missing values", extra={"row": index})
            continue

        balance = _to_float(_cell(row, mapping["balance"])) or 0.0
        fee_amount = _to_float(_cell(row, mapping["fee_amount"]))
        fee_frequency = None
        if fee_amount is not None:
            raw_frequency = (_cell(row, mapping["fee_frequency"]) or "").upper()
            fee_frequency = "ANNUAL" if raw_frequency == "ANNUAL" else "MONTHLY"

        debts.append(
            DebtAccount(
                id=new_id(),
                name=_cell(row, mapping["name"]) or f"Debt {index}",
                balance=balance,
                apr=normalize_apr(_to_float(_cell(row, mapping["apr"])) or 0.0),
                min_payment=_to_float(_cell(row, mapping["min_payment"])) or 0.0,
                custom_rank=_to_int(_cell(row, mapping["custom_rank"])),
                active=balance > 0,
                credit_limit=_to_float(_cell(row, mapping["credit_limit"])) or None,
                debt_type=_cell(row, mapping["debt_type"]),
                fee_amount=fee_amount,
                fee_frequency=fee_frequency,
            )
        )
    return debts


def _frame_rows(frame: pd.DataFrame) -> list[dict[str, Any]]:
    return [{c: r[c] for c in frame.columns} for _, r in frame.iterrows()]


def parse_debts_csv(text: str) -> list[DebtAccount]:
    """Parse debts from CSV text; a header row is required."""

    if len(text.strip().splitlines()) < 2:
        return []
    frame = normalize_frame(source=io.StringIO(text.strip()))
    return debts_from_rows(_frame_rows(frame), list(frame.columns))


def load_debts_csv(*, csv_path: Path, encoding: str = "utf-8-sig") -> list[DebtAccount]:
    """Parse a debt CSV file into debts."""

    logger.info("Importing debts", extra={"csv_path": str(csv_path)})
    return parse_debts_csv(csv_path.read_text(encoding=encoding))


__all__ = [
    "COLUMN_ALIASES",
    "debts_from_rows",
    "load_debts_csv",
    "normalize_apr",
    "normalize_frame",
    "parse_debts_csv",
]
