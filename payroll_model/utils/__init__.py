"""Shared helpers for payroll_model."""

from .decimal_helpers import ZERO_DECIMAL, TWO_PLACES, to_decimal, to_money, sum_money, pct_change

__all__ = ['ZERO_DECIMAL', 'TWO_PLACES', 'to_decimal', 'to_money', 'sum_money', 'pct_change']
