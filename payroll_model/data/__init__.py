"""Readers and writers for payroll files and analysis outputs."""
