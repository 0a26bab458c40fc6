# payroll_model/analytics/periods.py
"""
Multi-period analytics over several monthly payroll calculations.

``analyze_periods`` looks at movement and trends across months (hires, exits,
title changes, salary variation, turnover, a linear cost forecast).
``analyze_pre_close`` is the per-person comparison of the first and last
month used before closing a payroll.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from payroll_model.analytics.absence import AbsenceAnalysis, analyze_absences
from payroll_model.analytics.seniority import SeniorityAnalysis, analyze_seniority
from payroll_model.engines.payroll import CalculatedEmployee, PayrollResults

logger = logging.getLogger(__name__)

MONTHS = [
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
]

TOP_INCREASES = 10
HIGH_VARIABILITY_CV = 10.0
LOW_VARIABILITY_CV = 2.0
# Months ahead of the last period
FORECAST_HORIZONS = (3, 6, 12)
MIN_FORECAST_PERIODS = 3
# Salary variations at or below this amount are ignored
VARIATION_TOLERANCE = 0.01


@dataclass
class PayrollPeriod:
    """Calculated payroll of one month."""

    year: int
    month: int
    results: PayrollResults

    @property
    def label(self) -> str:
        return f"{MONTHS[self.month - 1]} {self.year}"

    @property
    def short_label(self) -> str:
        return f"{self.month}/{self.year}"


@dataclass
class _HistoryEntry:
    period_index: int
    label: str
    total_earned: float
    basic_pay: float
    seniority_bonus: float
    monthly_cost: float
    job_title: str
    area: str
    exit_date: Optional[date]


@dataclass
class _EmployeeHistory:
    key: str
    name: str
    job_title: str
    area: str
    first_seen: int
    last_seen: int
    history: List[_HistoryEntry] = field(default_factory=list)


def employee_key(calculated: CalculatedEmployee) -> str:
    """Identity across months: normalized CI, then identifier, then name."""
    e = calculated.employee
    return e.ci or e.identifier or e.name


def sort_periods(periods: Iterable[PayrollPeriod]) -> List[PayrollPeriod]:
    return sorted(periods, key=lambda p: (p.year, p.month))


def _build_histories(periods: List[PayrollPeriod], label_attr: str) -> Dict[str, _EmployeeHistory]:
    histories: Dict[str, _EmployeeHistory] = {}
    for index, period in enumerate(periods):
        label = getattr(period, label_attr)
        for c in period.results.employees:
            key = employee_key(c)
            if not key:
                continue
            e = c.employee
            entry = histories.get(key)
            if entry is None:
                entry = histories[key] = _EmployeeHistory(
                    key=key, name=e.name, job_title=e.job_title, area=e.area,
                    first_seen=index, last_seen=index,
                )
            entry.history.append(_HistoryEntry(
                period_index=index,
                label=label,
                total_earned=float(c.total_earned),
                basic_pay=float(c.basic_pay),
                seniority_bonus=float(c.seniority_bonus),
                monthly_cost=float(c.total_cost),
                job_title=e.job_title,
                area=e.area,
                exit_date=e.exit_date,
            ))
            # Keep the latest known name, title and area
            entry.last_seen = index
            entry.name, entry.job_title, entry.area = e.name, e.job_title, e.area
    return histories


def _pct(delta: float, base: float) -> float:
    return round(delta / base * 100, 2) if base > 0 else 0.0


def linear_forecast(values: List[float]) -> Dict[str, float]:
    """
    Least-squares trend over equally spaced periods, projected 3, 6 and 12
    months past the last one.
    """
    n = len(values)
    slope, intercept = np.polyfit(np.arange(n), np.asarray(values, dtype=float), 1)
    forecast = {
        f"month_{h}": round(float(intercept + slope * (n - 1 + h)), 2) for h in FORECAST_HORIZONS
    }
    slope = round(float(slope), 2)
    forecast["slope"] = slope
    forecast["trend"] = "creciente" if slope > 0 else "decreciente" if slope < 0 else "estable"
    return forecast


@dataclass
class PeriodAnalysis:
    periods: List[str]
    headcount_initial: int
    headcount_final: int
    hires: List[Dict] = field(default_factory=list)
    exits: List[Dict] = field(default_factory=list)
    title_changes: List[Dict] = field(default_factory=list)
    increases: List[Dict] = field(default_factory=list)
    decreases: List[Dict] = field(default_factory=list)
    unchanged: List[Dict] = field(default_factory=list)
    cost_trend: List[Dict] = field(default_factory=list)
    headcount_trend: List[Dict] = field(default_factory=list)
    top_increases: List[Dict] = field(default_factory=list)
    high_variability: List[Dict] = field(default_factory=list)
    low_variability: List[Dict] = field(default_factory=list)
    turnover: Dict[str, float] = field(default_factory=dict)
    seniority: Optional[SeniorityAnalysis] = None
    absences: Optional[AbsenceAnalysis] = None
    forecast: Dict = field(default_factory=dict)

    @property
    def total_periods(self) -> int:
        return len(self.periods)

    def trend_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "period": [t["period"] for t in self.cost_trend],
            "monthly_cost": [t["value"] for t in self.cost_trend],
            "headcount": [t["value"] for t in self.headcount_trend],
        })


def analyze_periods(
    periods: Iterable[PayrollPeriod],
    absences=None,
    reference_date: Optional[date] = None,
) -> Optional[PeriodAnalysis]:
    """
    Movement and trends across two or more calculated months.

    Args:
        periods: Calculated months, in any order.
        absences: Optional ``AbsenceRecord``s, analysed against the last month.
        reference_date: Date seniority is measured at (default today).

    Returns:
        PeriodAnalysis, or None with fewer than two periods.
    """
    ordered = sort_periods(periods)
    if len(ordered) < 2:
        logger.info("Period analysis needs at least two periods")
        return None

    histories = _build_histories(ordered, "short_label")
    last_period = ordered[-1]
    analysis = PeriodAnalysis(
        periods=[p.label for p in ordered],
        headcount_initial=ordered[0].results.employee_count,
        headcount_final=last_period.results.employee_count,
        cost_trend=[{"period": p.label, "value": float(p.results.totals.get("total_cost", 0))} for p in ordered],
        headcount_trend=[{"period": p.label, "value": p.results.employee_count} for p in ordered],
    )

    for key, emp in histories.items():
        base = {"id": key, "name": emp.name, "job_title": emp.job_title, "area": emp.area}
        is_hire = emp.first_seen > 0

        if is_hire:
            analysis.hires.append({**base, "period": emp.history[0].label})

        with_exit = [h for h in emp.history if h.exit_date is not None]
        if with_exit:
            analysis.exits.append({**base, "period": with_exit[-1].label, "exit_date": with_exit[-1].exit_date})
        elif emp.last_seen < len(ordered) - 1:
            analysis.exits.append({**base, "period": emp.history[-1].label, "exit_date": None})

        if len({h.job_title for h in emp.history}) > 1:
            analysis.title_changes.append({
                **base,
                "previous_title": emp.history[0].job_title,
                "current_title": emp.history[-1].job_title,
            })

        if is_hire or len(emp.history) < 2:
            continue

        first, last = emp.history[0].total_earned, emp.history[-1].total_earned
        variation = last - first
        record = {
            **base,
            "initial_salary": first,
            "final_salary": last,
            "variation": round(variation, 2),
            "variation_pct": _pct(variation, first),
        }
        if variation > 0:
            analysis.increases.append(record)
        elif variation < 0:
            analysis.decreases.append(record)
        else:
            analysis.unchanged.append(record)

        salaries = np.array([h.total_earned for h in emp.history])
        mean = salaries.mean()
        cv = float(salaries.std() / mean * 100) if mean > 0 else 0.0
        if cv > HIGH_VARIABILITY_CV:
            analysis.high_variability.append({**record, "cv": round(cv, 2)})
        elif cv < LOW_VARIABILITY_CV and variation == 0:
            analysis.low_variability.append({**record, "cv": round(cv, 2)})

    analysis.top_increases = sorted(
        analysis.increases, key=lambda r: r["variation_pct"], reverse=True
    )[:TOP_INCREASES]

    months = len(ordered)
    average_headcount = sum(t["value"] for t in analysis.headcount_trend) / months
    total_exits = len(analysis.exits)
    monthly_rate = (total_exits / months) / average_headcount * 100 if average_headcount > 0 else 0.0
    analysis.turnover = {
        "monthly_rate": round(monthly_rate, 2),
        "annualized_rate": round(monthly_rate * 12, 2),
        "total_exits": total_exits,
        "average_headcount": round(average_headcount, 2),
        "months": months,
    }

    analysis.seniority = analyze_seniority(last_period.results.employees, reference_date)
    if absences:
        analysis.absences = analyze_absences(absences, last_period.results.employees, reference_date)

    if months >= MIN_FORECAST_PERIODS:
        analysis.forecast = linear_forecast([t["value"] for t in analysis.cost_trend])

    logger.info(
        f"Period analysis over {months} periods: {len(analysis.hires)} hires, {total_exits} exits, "
        f"{len(analysis.title_changes)} title changes"
    )
    return analysis


@dataclass
class PreCloseAnalysis:
    periods: List[str]
    headcount_by_period: List[int]
    total_earned_by_period: List[float]
    additions: List[Dict] = field(default_factory=list)
    removals: List[Dict] = field(default_factory=list)
    title_changes: List[Dict] = field(default_factory=list)
    area_changes: List[Dict] = field(default_factory=list)
    salary_variations: List[Dict] = field(default_factory=list)
    per_person: List[Dict] = field(default_factory=list)
    summary: Dict[str, float] = field(default_factory=dict)

    def per_person_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.per_person)


def analyze_pre_close(periods: Iterable[PayrollPeriod]) -> Optional[PreCloseAnalysis]:
    """
    First-to-last month comparison per person: additions, removals, title and
    area changes and total earned variation.

    Returns None with fewer than two periods.
    """
    ordered = sort_periods(periods)
    if len(ordered) < 2:
        logger.info("Pre-close analysis needs at least two periods")
        return None

    histories = _build_histories(ordered, "label")
    last_index = len(ordered) - 1
    analysis = PreCloseAnalysis(
        periods=[p.label for p in ordered],
        headcount_by_period=[p.results.employee_count for p in ordered],
        total_earned_by_period=[float(p.results.totals.get("total_earned", 0)) for p in ordered],
    )

    for key, emp in histories.items():
        first, last = emp.history[0], emp.history[-1]
        is_addition = emp.first_seen > 0
        is_removal = emp.last_seen < last_index

        if is_addition:
            analysis.additions.append({
                "id": key, "name": emp.name, "job_title": emp.job_title, "area": emp.area,
                "period": first.label, "total_earned": first.total_earned,
            })
        if is_removal:
            analysis.removals.append({
                "id": key, "name": emp.name, "job_title": last.job_title, "area": last.area,
                "period": last.label, "total_earned": last.total_earned,
            })
        if len({h.job_title for h in emp.history if h.job_title}) > 1:
            analysis.title_changes.append({
                "id": key, "name": emp.name, "previous_title": first.job_title,
                "new_title": last.job_title, "area": last.area, "period": last.label,
            })
        if len({h.area for h in emp.history if h.area}) > 1:
            analysis.area_changes.append({
                "id": key, "name": emp.name, "previous_area": first.area,
                "new_area": last.area, "job_title": last.job_title, "period": last.label,
            })

        variation = last.total_earned - first.total_earned
        # Only people present in both the first and last month
        if not is_addition and not is_removal and abs(variation) > VARIATION_TOLERANCE:
            analysis.salary_variations.append({
                "id": key, "name": emp.name, "job_title": last.job_title, "area": last.area,
                "initial_value": first.total_earned, "final_value": last.total_earned,
                "variation": round(variation, 2), "variation_pct": _pct(variation, first.total_earned),
            })

        analysis.per_person.append({
            "id": key,
            "name": emp.name,
            "job_title": last.job_title,
            "area": last.area,
            "initial_value": first.total_earned,
            "final_value": last.total_earned,
            "variation": round(variation, 2),
            "variation_pct": _pct(variation, first.total_earned),
            "initial_basic_pay": first.basic_pay,
            "final_basic_pay": last.basic_pay,
            "basic_pay_variation": round(last.basic_pay - first.basic_pay, 2),
            "initial_seniority_bonus": first.seniority_bonus,
            "final_seniority_bonus": last.seniority_bonus,
            "seniority_bonus_variation": round(last.seniority_bonus - first.seniority_bonus, 2),
            "initial_title": first.job_title,
            "final_title": last.job_title,
            "initial_area": first.area,
            "final_area": last.area,
            "first_seen": emp.first_seen,
            "last_seen": emp.last_seen,
            "is_addition": is_addition,
            "is_removal": is_removal,
        })

    analysis.salary_variations.sort(key=lambda r: abs(r["variation"]), reverse=True)
    analysis.summary = {
        "employees_analyzed": len(histories),
        "additions": len(analysis.additions),
        "removals": len(analysis.removals),
        "title_changes": len(analysis.title_changes),
        "area_changes": len(analysis.area_changes),
        "with_salary_variation": len(analysis.salary_variations),
        "headcount_variation": analysis.headcount_by_period[-1] - analysis.headcount_by_period[0],
        "total_earned_variation": round(analysis.total_earned_by_period[-1] - analysis.total_earned_by_period[0], 2),
    }
    logger.info(
        f"Pre-close analysis {analysis.periods[0]} -> {analysis.periods[-1]}: "
        f"{analysis.summary['additions']} additions, {analysis.summary['removals']} removals"
    )
    return analysis
