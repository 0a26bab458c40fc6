"""Workforce analytics over calculated payroll: seniority, absences, equity and period trends."""
