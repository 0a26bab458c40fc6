"""
Centralized column definitions for payroll data.

Canonical employee fields are what the column mapping points raw spreadsheet
headers at; the result columns name the DataFrames handed to the export layer.
"""

from enum import Enum


class EmployeeFields(str, Enum):
    """Canonical fields of an uploaded payroll row."""

    # Identification
    IDENTIFIER = "identifier"
    NAME = "name"
    JOB_TITLE = "job_title"
    LEVEL = "level"
    AREA = "area"
    REGIONAL = "regional"
    COMPANY = "company"
    GENDER = "gender"

    # Dates
    HIRE_DATE = "hire_date"
    EXIT_DATE = "exit_date"

    # Compensation
    BASIC_PAY = "basic_pay"
    SENIORITY_BONUS = "seniority_bonus"
    OTHER_BONUSES = "other_bonuses"
    TOTAL_EARNED = "total_earned"


class ResultColumns(str, Enum):
    """Column names of the per-employee result frames."""

    ROW_INDEX = "row_index"
    CI = "ci"
    IDENTIFIER = "identifier"
    NAME = "name"
    JOB_TITLE = "job_title"
    LEVEL = "level"
    AREA = "area"
    REGIONAL = "regional"
    COMPANY = "company"

    BASIC_PAY = "basic_pay"
    SENIORITY_BONUS = "seniority_bonus"
    OTHER_BONUSES = "other_bonuses"
    TOTAL_EARNED = "total_earned"
    EMPLOYER_CHARGES = "employer_charges"
    PROVISIONS = "provisions"
    ADDITIONAL_MONTHLY = "additional_monthly"
    TOTAL_COST = "total_cost"
    ANNUAL_COST = "annual_cost"

    NEW_BASIC_PAY = "new_basic_pay"
    NEW_SENIORITY_BONUS = "new_seniority_bonus"
    NEW_TOTAL_EARNED = "new_total_earned"
    NEW_EMPLOYER_CHARGES = "new_employer_charges"
    NEW_PROVISIONS = "new_provisions"
    NEW_TOTAL_COST = "new_total_cost"

    DELTA_BASIC_PAY = "delta_basic_pay"
    DELTA_SENIORITY_BONUS = "delta_seniority_bonus"
    DELTA_TOTAL_EARNED = "delta_total_earned"
    DELTA_TOTAL_COST = "delta_total_cost"
    PCT_BASIC_PAY = "pct_variation_basic_pay"
    PCT_TOTAL_EARNED = "pct_variation_total_earned"
    PCT_TOTAL_COST = "pct_variation_total_cost"

    PERCENTAGE_APPLIED = "percentage_applied"
    RECEIVES_PERCENTAGE_INCREASE = "receives_percentage_increase"
    FLOORED_TO_MINIMUM_WAGE = "floored_to_minimum_wage"
    IMPACT_REASON = "impact_reason"


# Level value that makes every level eligible for the percentage increase
ALL_LEVELS = "Todos"

# Fallback labels for blank grouping keys
NO_AREA = "Sin área"
NO_COMPANY = "Sin empresa"
NO_LEVEL = "Sin nivel"
NO_TITLE = "Sin cargo"

# Raise mechanism labels used in rankings and exports
REASON_FLOORED = "Nivelado por SMN"
REASON_PERCENTAGE = "Incremento Porcentual"
REASON_SENIORITY_ONLY = "Solo Antigüedad"


class ColumnGroups:
    """Canonical fields grouped by how they are read and checked."""

    REQUIRED = [
        EmployeeFields.IDENTIFIER.value,
        EmployeeFields.BASIC_PAY.value,
    ]

    TEXT = [
        EmployeeFields.NAME.value,
        EmployeeFields.JOB_TITLE.value,
        EmployeeFields.LEVEL.value,
        EmployeeFields.AREA.value,
        EmployeeFields.REGIONAL.value,
        EmployeeFields.COMPANY.value,
        EmployeeFields.GENDER.value,
    ]

    DATES = [
        EmployeeFields.HIRE_DATE.value,
        EmployeeFields.EXIT_DATE.value,
    ]

