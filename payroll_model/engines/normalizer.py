# payroll_model/engines/normalizer.py
"""
Record normalizer: converts raw uploaded rows into canonical ``Employee`` records.

A raw row is a mapping of spreadsheet header -> cell value, as produced by
``payroll_model.data.readers``. The ``ColumnMapping`` says which header holds
each canonical field. Money cells may be numbers or currency-like strings
("Bs 3.500,50", "$1,234.56", "1 200").
"""

import logging
import math
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from payroll_model.config.models import ColumnMapping
from payroll_model.schema.columns import ColumnGroups, EmployeeFields
from payroll_model.utils.decimal_helpers import ZERO_DECIMAL, sum_money, to_money

logger = logging.getLogger(__name__)

ROW_INDEX_KEY = "_rowIndex"
# Header is spreadsheet row 1, so the first data row is row 2
FIRST_DATA_ROW = 2

_CURRENCY_RE = re.compile(r"(?i)(us\$|\$|bs\.?|bob|usd)")
_NUMERIC_RE = re.compile(r"^-?[\d.,]+$")


class ParseError(Exception):
    """Raised when a cell that must hold a number cannot be parsed."""

    def __init__(self, row_index: Optional[int], column: Optional[str], value: Any, message: str = ""):
        self.row_index = row_index
        self.column = column
        self.value = value
        detail = message or "not a valid amount"
        super().__init__(f"Row {row_index}, column '{column}': {value!r} is {detail}")


@dataclass(frozen=True)
class Employee:
    """Canonical employee record. Money fields are ``Decimal``."""

    row_index: int
    identifier: str
    ci: str = ""
    name: str = ""
    job_title: str = ""
    level: str = ""
    area: str = ""
    regional: str = ""
    company: str = ""
    gender: str = ""
    hire_date: Optional[date] = None
    exit_date: Optional[date] = None
    basic_pay: Optional[Decimal] = None
    seniority_bonus: Decimal = ZERO_DECIMAL
    other_bonuses: Dict[str, Decimal] = field(default_factory=dict)
    reported_total_earned: Optional[Decimal] = None
    is_duplicate: bool = False

    @property
    def other_bonuses_total(self) -> Decimal:
        return sum_money(self.other_bonuses.values())

    def flagged_duplicate(self) -> "Employee":
        return replace(self, is_duplicate=True)


@dataclass
class NormalizationResult:
    employees: List[Employee]
    errors: List[ParseError]

    @property
    def row_count(self) -> int:
        return len(self.employees) + len(self.errors)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT or value is pd.NA:
        return True
    return isinstance(value, str) and not value.strip()


def _cell_text(value: Any) -> str:
    """Cell value as trimmed text; integral floats lose their '.0'."""
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, pd.Timestamp)):
        return value.date().isoformat()
    return re.sub(r"\s+", " ", str(value)).strip()


def _resolve_separators(text: str) -> str:
    """Turn a digits/dots/commas string into a plain decimal literal."""
    has_dot, has_comma = "." in text, "," in text
    if has_dot and has_comma:
        decimal_sep = "." if text.rfind(".") > text.rfind(",") else ","
        thousands_sep = "," if decimal_sep == "." else "."
        text = text.replace(thousands_sep, "")
        return text.replace(",", ".")

    sep = "." if has_dot else "," if has_comma else None
    if sep is None:
        return text

    sign = "-" if text.startswith("-") else ""
    groups = text.lstrip("-").split(sep)
    integer_part = groups[0]
    looks_grouped = (
        all(len(g) == 3 for g in groups[1:])
        and 1 <= len(integer_part) <= 3
        and integer_part.strip("0") != ""
    )
    if looks_grouped:
        return sign + "".join(groups)
    if len(groups) > 2:
        raise ValueError("repeated decimal separator")
    return sign + groups[0] + "." + groups[1]


def parse_money(value: Any, *, row_index: Optional[int] = None, column: Optional[str] = None) -> Optional[Decimal]:
    """
    Parses a money cell.

    Returns:
        The amount as ``Decimal``, or ``None`` for a blank cell.

    Raises:
        ParseError: if the value holds no digits or does not parse as a number.
    """
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        raise ParseError(row_index, column, value, "a boolean, not an amount")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ParseError(row_index, column, value, "not a finite amount")
        return value
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isinf(value):
            raise ParseError(row_index, column, value, "not a finite amount")
        return Decimal(repr(value)) if isinstance(value, float) else Decimal(value)

    text = str(value).strip()
    if not any(ch.isdigit() for ch in text):
        raise ParseError(row_index, column, value)

    cleaned = _CURRENCY_RE.sub("", text)
    cleaned = re.sub(r"[\s ']", "", cleaned)
    if not _NUMERIC_RE.match(cleaned):
        raise ParseError(row_index, column, value)

    try:
        return Decimal(_resolve_separators(cleaned))
    except (ValueError, InvalidOperation, IndexError) as e:
        raise ParseError(row_index, column, value) from e


def normalize_ci(value: Any) -> str:
    """Digits of the first token of a CI ("6301349 SC" -> "6301349")."""
    text = _cell_text(value)
    if not text:
        return ""
    return re.sub(r"\D", "", text.split(" ")[0])


def parse_date(value: Any) -> Optional[date]:
    """Parses a day-first date cell; unparsable values give ``None``."""
    if _is_blank(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Excel serial day number
        parsed = pd.to_datetime(value, unit="D", origin="1899-12-30", errors="coerce")
    else:
        parsed = pd.to_datetime(str(value).strip(), dayfirst=True, errors="coerce")
    if pd.isna(parsed):
        logger.debug(f"[NORMALIZE] Could not parse date value {value!r}")
        return None
    return parsed.date()


def pick_value(row: Mapping[str, Any], primary: Optional[str], alternate: Optional[str] = None) -> Any:
    """Value of the primary column, or of the alternate one when the primary is blank."""
    for column in (primary, alternate):
        if column and column in row and not _is_blank(row[column]):
            return row[column]
    return None


def _picked_column(row: Mapping[str, Any], primary: Optional[str], alternate: Optional[str]) -> Optional[str]:
    for column in (primary, alternate):
        if column and column in row and not _is_blank(row[column]):
            return column
    return primary


def _money_field(row, mapping: ColumnMapping, field_name: str, row_index: int) -> Optional[Decimal]:
    primary, alternate = mapping.columns_for(field_name)
    amount = parse_money(
        pick_value(row, primary, alternate),
        row_index=row_index,
        column=_picked_column(row, primary, alternate),
    )
    return to_money(amount) if amount is not None else None


def normalize_row(row: Mapping[str, Any], mapping: ColumnMapping, row_index: int) -> Employee:
    """
    Builds an ``Employee`` from one raw row.

    Blank optional text fields become '', blank bonuses become 0, and a blank
    basic pay stays ``None`` so validation can report it.
    Money cells are rounded to cents.

    Raises:
        ParseError: if any mapped money cell is not a number.
    """

    def text(field_name: str) -> str:
        return _cell_text(pick_value(row, getattr(mapping, field_name)))

    identifier = text(EmployeeFields.IDENTIFIER.value)
    texts = {f: text(f) for f in ColumnGroups.TEXT}
    dates = {f: parse_date(pick_value(row, getattr(mapping, f))) for f in ColumnGroups.DATES}
    other_bonuses: Dict[str, Decimal] = {}
    for column in mapping.other_bonuses:
        amount = parse_money(row.get(column), row_index=row_index, column=column)
        other_bonuses[column] = to_money(amount) if amount is not None else ZERO_DECIMAL

    seniority = _money_field(row, mapping, "seniority_bonus", row_index)

    return Employee(
        row_index=row_index,
        identifier=identifier,
        ci=normalize_ci(identifier),
        **texts,
        **dates,
        basic_pay=_money_field(row, mapping, "basic_pay", row_index),
        seniority_bonus=seniority if seniority is not None else ZERO_DECIMAL,
        other_bonuses=other_bonuses,
        reported_total_earned=_money_field(row, mapping, "total_earned", row_index),
    )


def normalize_rows(rows: Iterable[Mapping[str, Any]], mapping: ColumnMapping) -> NormalizationResult:
    """
    Normalizes every raw row. A row with an unparsable money cell is skipped and
    its ``ParseError`` collected; the remaining rows are still processed.
    """
    employees: List[Employee] = []
    errors: List[ParseError] = []

    for position, row in enumerate(rows):
        row_index = row.get(ROW_INDEX_KEY) or position + FIRST_DATA_ROW
        try:
            employees.append(normalize_row(row, mapping, int(row_index)))
        except ParseError as e:
            logger.warning(f"[NORMALIZE] Skipping row {row_index}: {e}")
            errors.append(e)

    logger.info(f"[NORMALIZE] {len(employees)} rows normalized, {len(errors)} rows with parse errors")
    return NormalizationResult(employees=employees, errors=errors)
