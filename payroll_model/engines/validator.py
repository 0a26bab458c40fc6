# payroll_model/engines/validator.py
"""
Validator for canonical employee records.

Validation never raises: every problem becomes a ``ValidationIssue`` and the
records are partitioned into those that can go on to the calculator and those
that cannot. Error issues remove a record; warning issues keep it.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from payroll_model.config.models import DuplicatePolicy, ValidationPolicy
from payroll_model.engines.normalizer import Employee, ParseError
from payroll_model.utils.decimal_helpers import to_money

logger = logging.getLogger(__name__)


class IssueReason(str, Enum):
    MISSING_REQUIRED = "missing_required"
    NON_NUMERIC = "non_numeric"
    DUPLICATE_ID = "duplicate_id"
    NEGATIVE_PAY = "negative_pay"
    UNKNOWN_LEVEL = "unknown_level"
    TOTAL_MISMATCH = "total_mismatch"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found in one record."""

    row_index: Optional[int]
    field: str
    reason: IssueReason
    message: str
    severity: Severity = Severity.ERROR

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    @classmethod
    def from_parse_error(cls, error: ParseError) -> "ValidationIssue":
        """Reports a normalizer ``ParseError`` alongside the validation issues."""
        return cls(
            row_index=error.row_index,
            field=error.column or "",
            reason=IssueReason.NON_NUMERIC,
            message=str(error),
        )


@dataclass
class ValidationReport:
    """Partition of the input into valid records and collected issues."""

    valid: List[Employee] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)
    total: int = 0

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if not i.is_error]

    @property
    def invalid_count(self) -> int:
        return self.total - len(self.valid)

    def add_parse_errors(self, errors: Iterable[ParseError]) -> None:
        """Folds normalizer failures into the report; each one is an invalid row."""
        for error in errors:
            self.issues.append(ValidationIssue.from_parse_error(error))
            self.total += 1

    def issues_for_row(self, row_index: int) -> List[ValidationIssue]:
        return [i for i in self.issues if i.row_index == row_index]

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of validation results."""
        by_reason = Counter(i.reason.value for i in self.issues)
        return {
            "total": self.total,
            "valid": len(self.valid),
            "invalid": self.invalid_count,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "by_reason": dict(by_reason),
        }

    def issues_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [(i.row_index, i.field, i.reason.value, i.severity.value, i.message) for i in self.issues],
            columns=["row_index", "field", "reason", "severity", "message"],
        )


def _money_fields(employee: Employee) -> Dict[str, Optional[Decimal]]:
    fields: Dict[str, Optional[Decimal]] = {
        "basic_pay": employee.basic_pay,
        "seniority_bonus": employee.seniority_bonus,
    }
    fields.update(employee.other_bonuses)
    return fields


class EmployeeValidator:
    """Checks required fields, numeric sanity, levels, totals and duplicate identifiers."""

    def __init__(self, policy: Optional[ValidationPolicy] = None):
        self.policy = policy or ValidationPolicy()

    def record_issues(self, employee: Employee) -> List[ValidationIssue]:
        """Issues of a single record, duplicates excluded."""
        issues: List[ValidationIssue] = []
        row = employee.row_index

        if not employee.identifier:
            issues.append(ValidationIssue(row, "identifier", IssueReason.MISSING_REQUIRED,
                                          "Identifier (CI) is missing"))
        if employee.basic_pay is None:
            issues.append(ValidationIssue(row, "basic_pay", IssueReason.MISSING_REQUIRED,
                                          "Basic pay is missing"))

        numeric_ok = True
        for name, value in _money_fields(employee).items():
            if value is None:
                continue
            if not value.is_finite():
                numeric_ok = False
                issues.append(ValidationIssue(row, name, IssueReason.NON_NUMERIC,
                                              f"'{name}' is not a finite number ({value})"))
            elif value < 0:
                issues.append(ValidationIssue(row, name, IssueReason.NEGATIVE_PAY,
                                              f"'{name}' is negative ({value})"))

        allowed = self.policy.allowed_levels
        if allowed and employee.level.strip() not in allowed:
            issues.append(ValidationIssue(row, "level", IssueReason.UNKNOWN_LEVEL,
                                          f"Level '{employee.level}' is not one of {sorted(allowed)}"))

        if (
            self.policy.check_reported_total
            and numeric_ok
            and employee.basic_pay is not None
            and employee.reported_total_earned is not None
            and employee.reported_total_earned.is_finite()
        ):
            calculated = to_money(employee.basic_pay + employee.seniority_bonus + employee.other_bonuses_total)
            diff = abs(calculated - employee.reported_total_earned)
            if diff > self.policy.total_tolerance:
                issues.append(ValidationIssue(
                    row, "total_earned", IssueReason.TOTAL_MISMATCH,
                    f"{calculated:.2f} != {employee.reported_total_earned:.2f} (diff: {diff:.2f})",
                    Severity.WARNING,
                ))
        return issues

    def duplicate_issues(self, employees: List[Employee]) -> Dict[int, ValidationIssue]:
        """Duplicate-identifier issues keyed by position in ``employees``."""
        counts = Counter(e.identifier for e in employees if e.identifier)
        policy = self.policy.duplicate_policy
        seen = set()
        issues: Dict[int, ValidationIssue] = {}

        for pos, employee in enumerate(employees):
            ident = employee.identifier
            if not ident or counts[ident] < 2:
                continue
            first = ident not in seen
            seen.add(ident)

            if policy == DuplicatePolicy.FLAG:
                severity = Severity.WARNING
            elif policy == DuplicatePolicy.KEEP_FIRST:
                if first:
                    continue
                severity = Severity.ERROR
            else:
                severity = Severity.ERROR
            issues[pos] = ValidationIssue(
                employee.row_index, "identifier", IssueReason.DUPLICATE_ID,
                f"Identifier '{ident}' appears {counts[ident]} times ({policy.value})",
                severity,
            )
        return issues

    def validate(self, employees: Iterable[Employee]) -> ValidationReport:
        employees = list(employees)
        report = ValidationReport(total=len(employees))
        duplicates = self.duplicate_issues(employees)

        for pos, employee in enumerate(employees):
            issues = self.record_issues(employee)
            dup = duplicates.get(pos)
            if dup is not None:
                issues.append(dup)
                if self.policy.duplicate_policy == DuplicatePolicy.FLAG:
                    employee = employee.flagged_duplicate()
            report.issues.extend(issues)
            if not any(i.is_error for i in issues):
                report.valid.append(employee)

        summary = report.get_summary()
        logger.info(
            f"[VALIDATE] {summary['valid']}/{summary['total']} records valid, "
            f"{summary['error_count']} errors, {summary['warning_count']} warnings"
        )
        if duplicates:
            logger.warning(
                f"[VALIDATE] {len(duplicates)} records share an identifier "
                f"(policy: {self.policy.duplicate_policy.value})"
            )
        return report


def validate_employees(employees: Iterable[Employee], policy: Optional[ValidationPolicy] = None) -> ValidationReport:
    """Validates canonical records under ``policy`` (default ``ValidationPolicy()``)."""
    return EmployeeValidator(policy).validate(employees)
