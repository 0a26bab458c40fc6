"""
Column definitions for payroll spreadsheets and result frames.

Header auto-detection lives in ``payroll_model.schema.mapping``.

Example Usage:
    >>> from payroll_model.schema import ResultColumns
    >>> ResultColumns.DELTA_TOTAL_COST.value
    'delta_total_cost'
"""

from .columns import (
    ALL_LEVELS,
    ColumnGroups,
    EmployeeFields,
    ResultColumns,
)

__all__ = [
    'ALL_LEVELS',
    'ColumnGroups',
    'EmployeeFields',
    'ResultColumns',
]
