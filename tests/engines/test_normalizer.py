from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest

from payroll_model.config.models import ColumnMapping
from payroll_model.engines.normalizer import (
    ParseError,
    normalize_ci,
    normalize_row,
    normalize_rows,
    parse_date,
    parse_money,
    pick_value,
)

pytestmark = pytest.mark.engines


@pytest.mark.parametrize("raw, expected", [
    ("3500", Decimal("3500")),
    ("Bs 3.500,50", Decimal("3500.50")),
    ("$1,234.56", Decimal("1234.56")),
    ("1.234", Decimal("1234")),
    ("1,5", Decimal("1.5")),
    ("0.500", Decimal("0.500")),
    ("1 200", Decimal("1200")),
    ("-250,75", Decimal("-250.75")),
    (3000, Decimal("3000")),
    (0.1, Decimal("0.1")),
])
def test_parse_money_formats(raw, expected):
    assert parse_money(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", float("nan")])
def test_parse_money_blank_is_none(raw):
    assert parse_money(raw) is None


@pytest.mark.parametrize("raw", ["n/a", "abc", "12abc", True, float("inf")])
def test_parse_money_rejects_non_numeric(raw):
    with pytest.raises(ParseError) as exc:
        parse_money(raw, row_index=7, column="Haber Basico")
    assert exc.value.row_index == 7
    assert exc.value.column == "Haber Basico"


def test_normalize_ci_keeps_digits_of_first_token():
    assert normalize_ci("6301349 SC") == "6301349"
    assert normalize_ci("63-01349") == "6301349"
    assert normalize_ci(4455667.0) == "4455667"
    assert normalize_ci(None) == ""


def test_parse_date_variants():
    assert parse_date("15/03/2019") == date(2019, 3, 15)
    assert parse_date(pd.Timestamp("2020-01-31")) == date(2020, 1, 31)
    assert parse_date(datetime(2021, 5, 4, 10, 30)) == date(2021, 5, 4)
    # Excel serial day number
    assert parse_date(45292) == date(2024, 1, 1)
    assert parse_date("not a date") is None
    assert parse_date(None) is None


def test_pick_value_uses_alternate_when_primary_blank():
    row = {"Haber": "", "Haber Alt": "3100"}
    assert pick_value(row, "Haber", "Haber Alt") == "3100"
    assert pick_value({"Haber": "3000", "Haber Alt": "3100"}, "Haber", "Haber Alt") == "3000"
    assert pick_value({}, "Haber", None) is None


def test_normalize_row_builds_employee(raw_rows, mapping):
    employee = normalize_row(raw_rows[0], mapping, 2)
    assert employee.identifier == "6301349 SC"
    assert employee.ci == "6301349"
    assert employee.name == "Ana Quispe"
    assert employee.level == "A"
    assert employee.basic_pay == Decimal("3000.00")
    assert employee.seniority_bonus == Decimal("150")
    assert employee.other_bonuses == {"Bono Dominical": Decimal("0.00")}
    assert employee.reported_total_earned == Decimal("3150")
    assert employee.hire_date == date(2019, 3, 15)
    assert employee.exit_date is None


def test_normalize_row_blank_basic_pay_stays_none(mapping):
    employee = normalize_row({"CI": "123", "Haber Basico": None}, mapping, 5)
    assert employee.basic_pay is None
    assert employee.seniority_bonus == Decimal("0")


def test_normalize_row_rounds_money_to_cents(mapping):
    row = {"CI": "1", "Haber Basico": "3.500,004", "Bono Antiguedad": 150.555,
           "Bono Dominical": "10.125,005", "Total Ganado": "3.650,559"}
    employee = normalize_row(row, mapping, 2)
    assert employee.basic_pay == Decimal("3500.00")
    assert employee.seniority_bonus == Decimal("150.56")
    assert employee.other_bonuses == {"Bono Dominical": Decimal("10125.01")}
    assert employee.reported_total_earned == Decimal("3650.56")


def test_normalize_row_reads_alternate_basic_pay():
    mapping = ColumnMapping(identifier="CI", basic_pay="Haber", basic_pay_alt="Haber Basico (2)")
    employee = normalize_row({"CI": "9", "Haber": None, "Haber Basico (2)": "2750"}, mapping, 2)
    assert employee.basic_pay == Decimal("2750")


def test_normalize_rows_collects_parse_errors(raw_rows, mapping):
    result = normalize_rows(raw_rows, mapping)
    assert [e.row_index for e in result.employees] == [2, 3]
    assert len(result.errors) == 1
    assert result.errors[0].row_index == 4
    assert result.errors[0].column == "Haber Basico"
    assert result.row_count == 3


def test_normalize_rows_numbers_rows_without_index(mapping):
    rows = [{"CI": "1", "Haber Basico": "100"}, {"CI": "2", "Haber Basico": "200"}]
    result = normalize_rows(rows, mapping)
    assert [e.row_index for e in result.employees] == [2, 3]
