"""
Utility functions for order data processing and common operations.
Handles product name normalization, quantity and date parsing, and formatting.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

import numpy as np
import pandas as pd

from src.models.sales import DateRange

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y")
_RANGE_IN_TEXT = re.compile(r"(\d{2})\.(\d{2})\.(\d{4})\s*-\s*(\d{2})\.(\d{2})\.(\d{4})")
_DATE_IN_TEXT = re.compile(r"(\d{2})\.(\d{2})\.(\d{4})")


def normalize_product_name(name: Any) -> str:
    """Lower-case, collapse inner whitespace and trim. Idempotent."""
    return _WHITESPACE.sub(" ", str(name)).strip().lower()


@dataclass(frozen=True)
class Parsed:
    value: float

    ok = True


@dataclass(frozen=True)
class Invalid:
    reason: str

    ok = False


QuantityParse = Union[Parsed, Invalid]


def parse_quantity(quantity: Any) -> QuantityParse:
    """
    Parse an order quantity: numbers, "12.5" or "12,5" strings.
    Non-numeric, non-finite and non-positive values come back as Invalid.
    """
    if isinstance(quantity, bool):
        return Invalid(f"boolean quantity {quantity!r}")
    if isinstance(quantity, (int, float, np.integer, np.floating)):
        value = float(quantity)
    elif isinstance(quantity, str):
        try:
            value = float(quantity.strip().replace(",", "."))
        except ValueError:
            return Invalid(f"not a number: {quantity!r}")
    else:
        return Invalid(f"unsupported type {type(quantity).__name__}")
    if not np.isfinite(value):
        return Invalid(f"not finite: {quantity!r}")
    if value <= 0:
        return Invalid(f"not positive: {quantity!r}")
    return Parsed(value)


def parse_date(value: Any) -> Optional[date]:
    """
    Parse an order date: YYYY-MM-DD, DD.MM.YYYY or DD/MM/YYYY.
    Falls back to pandas (day first); returns None when nothing matches.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    parsed = pd.to_datetime(text, dayfirst=True, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def date_sort_key(value: Any) -> date:
    """Chronological key; unparseable dates sort first."""
    return parse_date(value) or date.min


def calculate_percentage_change(old_value: float, new_value: float) -> float:
    """Percentage change between two values. Raises ValueError if old_value is zero."""
    if old_value == 0:
        raise ValueError("Cannot calculate percentage change when old value is zero")
    return ((new_value - old_value) / old_value) * 100


def format_amount(amount: float) -> str:
    """Two decimal digits, no thousands separator."""
    return f"{amount:.2f}"


def extract_date_range(message: str, today: Optional[date] = None, default_days: int = 30) -> DateRange:
    """
    Date range mentioned in a user message.
    Understands "DD.MM.YYYY - DD.MM.YYYY" and a single "DD.MM.YYYY";
    otherwise the last default_days days up to today.
    """
    today = today or date.today()
    candidate = None
    match = _RANGE_IN_TEXT.search(message)
    if match:
        sd, sm, sy, ed, em, ey = match.groups()
        candidate = DateRange(f"{sy}-{sm}-{sd}", f"{ey}-{em}-{ed}")
    else:
        match = _DATE_IN_TEXT.search(message)
        if match:
            d, m, y = match.groups()
            candidate = DateRange(f"{y}-{m}-{d}", f"{y}-{m}-{d}")
    if candidate is not None:
        try:
            candidate.day_difference
            return candidate
        except ValueError:
            pass  # impossible calendar date, e.g. 31.02
    return DateRange((today - timedelta(days=default_days)).isoformat(), today.isoformat())


def normalize_date_range(date_range: DateRange, today: Optional[date] = None, default_days: int = 30) -> DateRange:
    """
    Rewrite a range as ISO dates in place. A range that cannot be parsed becomes
    the last default_days days up to today.
    """
    try:
        date_range.normalize()
    except (TypeError, ValueError):
        today = today or date.today()
        logger.warning(
            "Unparseable date range %r - %r; using the last %d days",
            date_range.start_date, date_range.end_date, default_days,
        )
        date_range.start_date = (today - timedelta(days=default_days)).isoformat()
        date_range.end_date = today.isoformat()
    return date_range
