# payroll_model/analytics/seniority.py
"""
Length of service, vacation entitlement and seniority distribution.

Service is counted in 365-day years and 30-day months. Vacation entitlement
follows the Bolivian general labour law scale (15/20/30 working days).
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365
DAYS_PER_MONTH = 30

# (minimum completed years, working days of vacation)
VACATION_TIERS = [(1, 15), (5, 20), (10, 30)]

SENIORITY_BANDS = ["0-1 año", "1-3 años", "3-5 años", "5-10 años", "10+ años"]


@dataclass(frozen=True)
class Seniority:
    years: int = 0
    months: int = 0
    days: int = 0
    total_months: int = 0
    total_days: int = 0

    @property
    def fractional_years(self) -> float:
        return self.years + self.months / 12


def calculate_seniority(hire_date: Optional[date], reference_date: Optional[date] = None) -> Seniority:
    """Completed years/months/days of service at ``reference_date`` (default today)."""
    if hire_date is None:
        return Seniority()
    reference_date = reference_date or date.today()
    total_days = (reference_date - hire_date).days
    if total_days < 0:
        logger.debug(f"Hire date {hire_date} is after reference date {reference_date}; seniority set to 0")
        return Seniority()
    years, remaining = divmod(total_days, DAYS_PER_YEAR)
    months, days = divmod(remaining, DAYS_PER_MONTH)
    return Seniority(years=years, months=months, days=days, total_months=years * 12 + months, total_days=total_days)


def vacation_days_entitled(years: int) -> int:
    """Annual vacation days for completed years of service; none before the first year."""
    entitled = 0
    for min_years, days in VACATION_TIERS:
        if years >= min_years:
            entitled = days
    return entitled


def prorated_vacation_days(hire_date: Optional[date], reference_date: Optional[date] = None) -> float:
    """Vacation days accrued so far: 15 days prorated by month in the first year."""
    seniority = calculate_seniority(hire_date, reference_date)
    if seniority.years < 1:
        return round(15 / 12 * seniority.total_months, 2)
    return float(vacation_days_entitled(seniority.years))


def seniority_band(years: int) -> str:
    if years < 1:
        return SENIORITY_BANDS[0]
    elif years < 3:
        return SENIORITY_BANDS[1]
    elif years < 5:
        return SENIORITY_BANDS[2]
    elif years < 10:
        return SENIORITY_BANDS[3]
    return SENIORITY_BANDS[4]


@dataclass
class SeniorityAnalysis:
    counts: Dict[str, int]
    members: Dict[str, List[str]]
    average_years: float
    employees_with_data: int
    total_employees: int
    details: List[Dict] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"band": list(self.counts), "count": list(self.counts.values())}
        )


def analyze_seniority(employees: Iterable, reference_date: Optional[date] = None) -> SeniorityAnalysis:
    """
    Distributes employees with a known hire date over the seniority bands.

    Accepts ``Employee`` or ``CalculatedEmployee`` records.
    """
    counts = {band: 0 for band in SENIORITY_BANDS}
    members: Dict[str, List[str]] = {band: [] for band in SENIORITY_BANDS}
    details = []
    total_years = 0.0
    total = 0

    for record in employees:
        total += 1
        employee = getattr(record, "employee", record)
        if employee.hire_date is None:
            continue
        seniority = calculate_seniority(employee.hire_date, reference_date)
        band = seniority_band(seniority.years)
        counts[band] += 1
        members[band].append(employee.name)
        total_years += seniority.fractional_years
        details.append({
            "identifier": employee.identifier,
            "name": employee.name,
            "job_title": employee.job_title,
            "band": band,
            "years": seniority.years,
            "months": seniority.months,
        })

    with_data = len(details)
    average = round(total_years / with_data, 2) if with_data else 0.0
    return SeniorityAnalysis(
        counts=counts,
        members=members,
        average_years=average,
        employees_with_data=with_data,
        total_employees=total,
        details=details,
    )
