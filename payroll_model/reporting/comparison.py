# payroll_model/reporting/comparison.py
"""
Rolls simulated employees up into the current-vs-projected comparison used by
the exports: totals, mechanism counts, per-level subtotals and the top-N
impact ranking.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import pandas as pd

from payroll_model.config.models import SimulationParams
from payroll_model.engines.increment import SimulatedEmployee
from payroll_model.schema.columns import (
    NO_LEVEL,
    REASON_FLOORED,
    REASON_PERCENTAGE,
    REASON_SENIORITY_ONLY,
    ResultColumns as RC,
)
from payroll_model.utils.decimal_helpers import pct_change, sum_money

logger = logging.getLogger(__name__)
calc_logger = logging.getLogger("payroll_model.calculation")

DEFAULT_TOP_N = 20
# Monthly payments per year, aguinaldo included
DEFAULT_ANNUAL_PAYMENTS = 13

# Aggregated components: (key, current value, projected value)
_COMPONENTS = [
    ("basic_pay", lambda s: s.current.basic_pay, lambda s: s.new_basic_pay),
    ("seniority_bonus", lambda s: s.current.seniority_bonus, lambda s: s.new_seniority_bonus),
    ("total_earned", lambda s: s.current.total_earned, lambda s: s.new_total_earned),
    ("employer_charges", lambda s: s.current.employer_charges, lambda s: s.new_employer_charges),
    ("provisions", lambda s: s.current.provisions, lambda s: s.new_provisions),
    ("total_cost", lambda s: s.current.total_cost, lambda s: s.new_total_cost),
]


def impact_reason(employee: SimulatedEmployee) -> str:
    """Label of the mechanism behind an employee's change."""
    if employee.floored_to_minimum_wage:
        return REASON_FLOORED
    if employee.receives_percentage_increase:
        return REASON_PERCENTAGE
    return REASON_SENIORITY_ONLY


def _level_key(employee: SimulatedEmployee) -> str:
    return employee.level.strip() or NO_LEVEL


@dataclass(frozen=True)
class ComponentTotals:
    current: Decimal
    projected: Decimal

    @property
    def delta(self) -> Decimal:
        return self.projected - self.current

    @property
    def pct_variation(self) -> Decimal:
        return pct_change(self.delta, self.current)


@dataclass(frozen=True)
class LevelBreakdown:
    count: int
    with_increase: int
    floored: int
    current_cost: Decimal
    new_cost: Decimal

    @property
    def delta(self) -> Decimal:
        return self.new_cost - self.current_cost

    @property
    def pct_impact(self) -> Decimal:
        return pct_change(self.delta, self.current_cost)


@dataclass(frozen=True)
class ComparisonSummary:
    """Aggregate view of one simulation run, derived only from its simulated records."""

    params: SimulationParams
    employee_count: int
    components: Dict[str, ComponentTotals]
    impact_total: Decimal
    annual_payments: int
    percentage_count: int
    floored_count: int
    unchanged_count: int
    levels_applied: List[str]
    by_level: Dict[str, LevelBreakdown]
    top_impacts: List[SimulatedEmployee] = field(default_factory=list)

    @property
    def current_total_cost(self) -> Decimal:
        return self.components["total_cost"].current

    @property
    def new_total_cost(self) -> Decimal:
        return self.components["total_cost"].projected

    @property
    def pct_impact(self) -> Decimal:
        return pct_change(self.impact_total, self.current_total_cost)

    @property
    def annual_impact(self) -> Decimal:
        return self.impact_total * self.annual_payments


def rank_by_impact(simulated: Iterable[SimulatedEmployee], top_n: Optional[int] = DEFAULT_TOP_N) -> List[SimulatedEmployee]:
    """Largest ``delta_total_cost`` first; ties keep their input order."""
    ranked = sorted(simulated, key=lambda s: s.delta_total_cost, reverse=True)
    return ranked if top_n is None else ranked[:top_n]


def build_level_breakdown(simulated: Iterable[SimulatedEmployee]) -> Dict[str, LevelBreakdown]:
    """Per-level subtotals in order of first appearance."""
    grouped: Dict[str, List[SimulatedEmployee]] = {}
    for s in simulated:
        grouped.setdefault(_level_key(s), []).append(s)
    return {
        level: LevelBreakdown(
            count=len(members),
            with_increase=sum(1 for m in members if m.receives_percentage_increase),
            floored=sum(1 for m in members if m.floored_to_minimum_wage),
            current_cost=sum_money(m.current.total_cost for m in members),
            new_cost=sum_money(m.new_total_cost for m in members),
        )
        for level, members in grouped.items()
    }


def build_comparison(
    simulated: Iterable[SimulatedEmployee],
    params: SimulationParams,
    top_n: Optional[int] = DEFAULT_TOP_N,
    annual_payments: int = DEFAULT_ANNUAL_PAYMENTS,
) -> ComparisonSummary:
    """
    Builds the comparison summary of a simulation run.

    All sums run over the rounded per-employee values with ``Decimal``, so
    ``impact_total`` equals the sum of the per-employee ``delta_total_cost``
    exactly.

    Args:
        simulated: Simulated employees, in input order.
        params: Parameters the simulation ran with.
        top_n: Size of the impact ranking (None keeps every record).
        annual_payments: Monthly payments per year used for ``annual_impact``.
    """
    simulated = list(simulated)
    components = {
        key: ComponentTotals(
            current=sum_money(current(s) for s in simulated),
            projected=sum_money(projected(s) for s in simulated),
        )
        for key, current, projected in _COMPONENTS
    }
    impact_total = sum_money(s.delta_total_cost for s in simulated)

    percentage_count = sum(1 for s in simulated if s.receives_percentage_increase)
    floored_count = sum(1 for s in simulated if s.floored_to_minimum_wage)
    levels_applied = sorted({_level_key(s) for s in simulated if s.percentage_applied > 0})

    summary = ComparisonSummary(
        params=params,
        employee_count=len(simulated),
        components=components,
        impact_total=impact_total,
        annual_payments=annual_payments,
        percentage_count=percentage_count,
        floored_count=floored_count,
        unchanged_count=len(simulated) - percentage_count - floored_count,
        levels_applied=levels_applied,
        by_level=build_level_breakdown(simulated),
        top_impacts=rank_by_impact(simulated, top_n),
    )
    calc_logger.info(
        f"[COMPARE] employees={summary.employee_count} impact_total={impact_total} "
        f"pct_impact={summary.pct_impact} annual_impact={summary.annual_impact}"
    )
    return summary


# --- DataFrame views for the export layer ---


def summary_frame(summary: ComparisonSummary) -> pd.DataFrame:
    """Current, projected, delta and % variation per aggregated component."""
    rows = []
    for key, totals in summary.components.items():
        rows.append({
            "component": key,
            "current": float(totals.current),
            "projected": float(totals.projected),
            "delta": float(totals.delta),
            "pct_variation": float(totals.pct_variation),
        })
    return pd.DataFrame(rows).set_index("component")


def detail_frame(simulated: Iterable[SimulatedEmployee]) -> pd.DataFrame:
    """One row per simulated employee with current values, projected values and deltas."""
    rows = []
    for s in simulated:
        e = s.employee
        rows.append({
            RC.CI.value: e.ci,
            RC.IDENTIFIER.value: e.identifier,
            RC.NAME.value: e.name,
            RC.JOB_TITLE.value: e.job_title,
            RC.LEVEL.value: e.level,
            RC.AREA.value: e.area,
            RC.REGIONAL.value: e.regional,
            RC.BASIC_PAY.value: float(s.current.basic_pay),
            RC.NEW_BASIC_PAY.value: float(s.new_basic_pay),
            RC.DELTA_BASIC_PAY.value: float(s.delta_basic_pay),
            RC.PCT_BASIC_PAY.value: float(s.pct_variation_basic_pay),
            RC.SENIORITY_BONUS.value: float(s.current.seniority_bonus),
            RC.NEW_SENIORITY_BONUS.value: float(s.new_seniority_bonus),
            RC.DELTA_SENIORITY_BONUS.value: float(s.delta_seniority_bonus),
            RC.OTHER_BONUSES.value: float(e.other_bonuses_total),
            RC.TOTAL_EARNED.value: float(s.current.total_earned),
            RC.NEW_TOTAL_EARNED.value: float(s.new_total_earned),
            RC.DELTA_TOTAL_EARNED.value: float(s.delta_total_earned),
            RC.PCT_TOTAL_EARNED.value: float(s.pct_variation_total_earned),
            RC.TOTAL_COST.value: float(s.current.total_cost),
            RC.NEW_TOTAL_COST.value: float(s.new_total_cost),
            RC.DELTA_TOTAL_COST.value: float(s.delta_total_cost),
            RC.PCT_TOTAL_COST.value: float(s.pct_variation_total_cost),
            RC.PERCENTAGE_APPLIED.value: float(s.percentage_applied),
            RC.RECEIVES_PERCENTAGE_INCREASE.value: s.receives_percentage_increase,
            RC.FLOORED_TO_MINIMUM_WAGE.value: s.floored_to_minimum_wage,
            RC.IMPACT_REASON.value: impact_reason(s),
        })
    return pd.DataFrame(rows)


def top_impacts_frame(summary: ComparisonSummary) -> pd.DataFrame:
    rows = []
    for rank, s in enumerate(summary.top_impacts, start=1):
        rows.append({
            "ranking": rank,
            RC.NAME.value: s.employee.name,
            RC.JOB_TITLE.value: s.employee.job_title,
            RC.LEVEL.value: s.level,
            RC.TOTAL_COST.value: float(s.current.total_cost),
            RC.NEW_TOTAL_COST.value: float(s.new_total_cost),
            RC.DELTA_TOTAL_COST.value: float(s.delta_total_cost),
            RC.PCT_TOTAL_COST.value: float(s.pct_variation_total_cost),
            RC.IMPACT_REASON.value: impact_reason(s),
        })
    return pd.DataFrame(rows)


def level_frame(summary: ComparisonSummary) -> pd.DataFrame:
    rows = []
    for level, b in summary.by_level.items():
        rows.append({
            RC.LEVEL.value: level,
            "employees": b.count,
            "with_increase": b.with_increase,
            "floored": b.floored,
            "current_cost": float(b.current_cost),
            "new_cost": float(b.new_cost),
            "delta": float(b.delta),
            "pct_impact": float(b.pct_impact),
        })
    return pd.DataFrame(rows)
