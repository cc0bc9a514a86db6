"""
Cell values and the rules that classify them.

Every value read from a dataset is wrapped in a :class:`Cell`, a closed tagged
variant over null, boolean, number, text and date payloads. The classifier
functions below are total over that variant: each cell is either missing, an
error, or valid, and every valid cell gets exactly one format tag.
"""
import json
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

import numpy as np
import pandas as pd

from utils.consts import (
    MISSING_TOKENS, ERROR_SUBSTRINGS, ERROR_EXACT_TOKENS, DATE_MIN_YEAR, DATE_MAX_YEAR
)


class CellKind(Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    TEXT = "text"
    DATE = "date"


@dataclass(frozen=True)
class Cell:
    kind: CellKind
    value: Any = None

    @classmethod
    def of(cls, raw: Any) -> "Cell":
        if isinstance(raw, Cell):
            return raw
        if raw is None or raw is pd.NA or raw is pd.NaT:
            return cls(CellKind.NULL)
        if isinstance(raw, np.datetime64):
            raw = pd.Timestamp(raw)
            if raw is pd.NaT:
                return cls(CellKind.NULL)
        elif isinstance(raw, np.generic):
            raw = raw.item()

        if isinstance(raw, bool):
            return cls(CellKind.BOOL, raw)
        if isinstance(raw, (int, float)):
            return cls(CellKind.NUMBER, raw)
        if isinstance(raw, (datetime, date)):
            return cls(CellKind.DATE, raw)
        if isinstance(raw, str):
            return cls(CellKind.TEXT, raw)
        return cls(CellKind.TEXT, json.dumps(raw, sort_keys=True, default=str))

    @property
    def is_null(self) -> bool:
        return self.kind is CellKind.NULL

    def canonical(self) -> str:
        """Stable text form used for row fingerprints."""
        if self.kind is CellKind.NULL:
            return "null"
        if self.kind is CellKind.BOOL:
            return "true" if self.value else "false"
        if self.kind is CellKind.NUMBER:
            return _number_text(self.value)
        if self.kind is CellKind.DATE:
            return self.value.isoformat()
        return self.value

    def to_json(self) -> Any:
        if self.kind is CellKind.NULL:
            return None
        if self.kind is CellKind.NUMBER:
            if isinstance(self.value, int):
                return self.value
            if math.isnan(self.value):
                return None
            if math.isinf(self.value):
                return _number_text(self.value)
            return self.value
        if self.kind is CellKind.DATE:
            return self.value.isoformat()
        return self.value


class ValueFormat(str, Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATE_ISO = "date-iso"
    DATE_US = "date-us"
    DATE_DASH = "date-dash"
    INTEGER = "integer"
    DECIMAL = "decimal"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    EMAIL = "email"
    PHONE = "phone"
    TEXT = "text"
    UNKNOWN = "unknown"


class ColumnType(str, Enum):
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    DATE = "date"
    TEXT = "text"
    UNKNOWN = "unknown"


# Order matters: the first pattern that matches decides the format.
_TEXT_FORMATS = (
    (ValueFormat.DATE_ISO, re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)),
    (ValueFormat.DATE_US, re.compile(r"\d{2}/\d{2}/\d{4}", re.ASCII)),
    (ValueFormat.DATE_DASH, re.compile(r"\d{2}-\d{2}-\d{4}", re.ASCII)),
    (ValueFormat.INTEGER, re.compile(r"\d+", re.ASCII)),
    (ValueFormat.DECIMAL, re.compile(r"\d+\.\d+", re.ASCII)),
    (ValueFormat.CURRENCY, re.compile(r"\$\d+(\.\d{2})?", re.ASCII)),
    (ValueFormat.PERCENTAGE, re.compile(r"\d+%", re.ASCII)),
    (ValueFormat.EMAIL, re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")),
)
_PHONE_PATTERN = re.compile(r"\+?\d{10,15}", re.ASCII)
_PHONE_SEPARATORS = re.compile(r"[\s\-()]")

_NUMERIC_TEXT = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)

_DATE_PATTERNS = (
    (re.compile(r"\d{4}-\d{2}-\d{2}([T ].*)?", re.ASCII), "%Y-%m-%d"),
    (re.compile(r"\d{2}/\d{2}/\d{4}", re.ASCII), "%m/%d/%Y"),
    (re.compile(r"\d{2}-\d{2}-\d{4}", re.ASCII), "%m-%d-%Y"),
    (re.compile(r"\d{4}/\d{2}/\d{2}", re.ASCII), "%Y/%m/%d"),
)


def _number_text(value) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def is_missing(cell: Cell) -> bool:
    if cell.kind is CellKind.NULL:
        return True
    if cell.kind is CellKind.NUMBER:
        return isinstance(cell.value, float) and math.isnan(cell.value)
    if cell.kind is CellKind.TEXT:
        return cell.value.strip().lower() in MISSING_TOKENS
    return False


def is_error(cell: Cell) -> bool:
    """Error cells are never missing cells; missing is checked first."""
    if is_missing(cell):
        return False
    if cell.kind is CellKind.NUMBER:
        return isinstance(cell.value, float) and math.isinf(cell.value)
    if cell.kind is CellKind.TEXT:
        text = cell.value.strip().lower()
        if text in ERROR_EXACT_TOKENS:
            return True
        return any(token in text for token in ERROR_SUBSTRINGS)
    return False


def classify_format(cell: Cell) -> ValueFormat:
    if cell.kind is CellKind.NUMBER:
        return ValueFormat.NUMBER
    if cell.kind is CellKind.BOOL:
        return ValueFormat.BOOLEAN
    if cell.kind is CellKind.DATE:
        return ValueFormat.DATE
    if cell.kind is not CellKind.TEXT:
        return ValueFormat.UNKNOWN

    text = cell.value.strip()
    for value_format, pattern in _TEXT_FORMATS:
        if pattern.fullmatch(text):
            return value_format
    if _PHONE_PATTERN.fullmatch(_PHONE_SEPARATORS.sub("", text)):
        return ValueFormat.PHONE
    return ValueFormat.TEXT


def to_number(cell: Cell) -> Optional[float]:
    if cell.kind is CellKind.NUMBER:
        try:
            return float(cell.value)
        except OverflowError:
            return None
    if cell.kind is CellKind.BOOL:
        return 1.0 if cell.value else 0.0
    if cell.kind is CellKind.TEXT:
        text = cell.value.strip()
        if _NUMERIC_TEXT.fullmatch(text):
            return float(text)
    return None


def looks_like_date(text: str) -> bool:
    text = text.strip()
    for pattern, fmt in _DATE_PATTERNS:
        if pattern.fullmatch(text):
            try:
                parsed = datetime.strptime(text[:10], fmt)
            except ValueError:
                return False
            return DATE_MIN_YEAR < parsed.year < DATE_MAX_YEAR
    return False


def infer_type(cell: Cell) -> ColumnType:
    """Dominant type of a column judged from a single (first non-missing) cell."""
    if cell.kind is CellKind.NUMBER:
        return ColumnType.NUMERIC
    if cell.kind is CellKind.BOOL:
        return ColumnType.BOOLEAN
    if cell.kind is CellKind.DATE:
        return ColumnType.DATE
    if cell.kind is CellKind.TEXT:
        if to_number(cell) is not None:
            return ColumnType.NUMERIC
        if cell.value in ("true", "false"):
            return ColumnType.BOOLEAN
        if looks_like_date(cell.value):
            return ColumnType.DATE
        return ColumnType.TEXT
    return ColumnType.UNKNOWN
