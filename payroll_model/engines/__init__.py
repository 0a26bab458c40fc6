"""
Calculation engines, in pipeline order:
normalizer -> validator -> payroll -> increment.
"""

from .increment import SimulatedEmployee, SimulationResult, simulate_employee, simulate_increment
from .normalizer import Employee, NormalizationResult, ParseError, normalize_ci, normalize_row, normalize_rows, parse_money
from .payroll import CalculatedEmployee, CalculationError, PayrollResults, calculate_all, calculate_employee
from .validator import IssueReason, Severity, ValidationIssue, ValidationReport, validate_employees

__all__ = [
    'Employee',
    'NormalizationResult',
    'ParseError',
    'normalize_ci',
    'normalize_row',
    'normalize_rows',
    'parse_money',
    'IssueReason',
    'Severity',
    'ValidationIssue',
    'ValidationReport',
    'validate_employees',
    'CalculatedEmployee',
    'CalculationError',
    'PayrollResults',
    'calculate_all',
    'calculate_employee',
    'SimulatedEmployee',
    'SimulationResult',
    'simulate_employee',
    'simulate_increment',
]
