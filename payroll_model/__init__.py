"""Payroll cost analysis and minimum-wage increment simulation."""

__version__ = "0.1.0"
