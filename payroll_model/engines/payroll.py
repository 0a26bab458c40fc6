# payroll_model/engines/payroll.py
"""
Payroll calculator: current-period earned pay, employer charges, provisions and
total labour cost per employee, plus the batch totals and breakdowns.

Every monetary result is rounded to 2 places with ROUND_HALF_UP, and all
aggregates are sums of already-rounded values.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from payroll_model.analytics.seniority import Seniority, calculate_seniority
from payroll_model.config.models import PayrollRules
from payroll_model.engines.normalizer import Employee
from payroll_model.schema.columns import NO_AREA, NO_COMPANY
from payroll_model.utils.decimal_helpers import ZERO_DECIMAL, pct_change, sum_money, to_money

logger = logging.getLogger(__name__)
calc_logger = logging.getLogger("payroll_model.calculation")
perf_logger = logging.getLogger("payroll_model.performance")


class CalculationError(Exception):
    """Raised when a record lacks a value the calculation needs."""

    def __init__(self, message: str, row_index: Optional[int] = None, identifier: Optional[str] = None):
        self.row_index = row_index
        self.identifier = identifier
        super().__init__(message)


@dataclass(frozen=True)
class CostBreakdown:
    """Monthly cost structure derived from earned pay."""

    total_earned: Decimal
    employer_charges: Decimal
    provisions: Dict[str, Decimal]
    provisions_total: Decimal
    additional_monthly: Decimal
    total_cost: Decimal
    annual_cost: Decimal


def compute_costs(
    earned_components: Iterable[Decimal],
    rules: PayrollRules,
    additional_monthly: Decimal = ZERO_DECIMAL,
    employer_charge_rate: Optional[Decimal] = None,
) -> CostBreakdown:
    """Cost structure for the given earned-pay components (basic, seniority, bonuses)."""
    rate = rules.employer_charge_rate if employer_charge_rate is None else employer_charge_rate
    total_earned = to_money(sum_money(earned_components))
    employer_charges = to_money(total_earned * rate)
    # Each enabled provision is rounded on its own before summing
    provisions = {name: to_money(total_earned * rules.provision_rate) for name in rules.provisions.enabled()}
    provisions_total = sum_money(provisions.values())
    total_cost = to_money(total_earned + employer_charges + provisions_total + additional_monthly)
    return CostBreakdown(
        total_earned=total_earned,
        employer_charges=employer_charges,
        provisions=provisions,
        provisions_total=provisions_total,
        additional_monthly=additional_monthly,
        total_cost=total_cost,
        annual_cost=to_money(total_cost * rules.months_per_year),
    )


def additional_monthly_cost(employee: Employee, rules: PayrollRules) -> Decimal:
    """Annual uniform and training costs spread over the year."""
    costs = rules.additional_costs
    annual = (
        costs.uniform.annual_amount(employee.job_title, employee.area)
        + costs.training.annual_amount(employee.job_title, employee.area)
    )
    return to_money(annual / rules.months_per_year)


@dataclass(frozen=True)
class CalculatedEmployee:
    """An ``Employee`` with its current-period costs."""

    employee: Employee
    seniority_bonus: Decimal
    costs: CostBreakdown
    # Rate looked up from the tier table; None when the bonus came from the file
    seniority_rate: Optional[Decimal] = None
    seniority: Optional[Seniority] = None

    @property
    def identifier(self) -> str:
        return self.employee.identifier

    @property
    def level(self) -> str:
        return self.employee.level

    @property
    def basic_pay(self) -> Decimal:
        return self.employee.basic_pay

    @property
    def other_bonuses_total(self) -> Decimal:
        return self.employee.other_bonuses_total

    @property
    def total_earned(self) -> Decimal:
        return self.costs.total_earned

    @property
    def employer_charges(self) -> Decimal:
        return self.costs.employer_charges

    @property
    def provisions(self) -> Decimal:
        return self.costs.provisions_total

    @property
    def additional_monthly(self) -> Decimal:
        return self.costs.additional_monthly

    @property
    def total_cost(self) -> Decimal:
        return self.costs.total_cost

    @property
    def annual_cost(self) -> Decimal:
        return self.costs.annual_cost


def current_seniority_bonus(
    employee: Employee, rules: PayrollRules, reference_date: Optional[date] = None
) -> Tuple[Decimal, Optional[Decimal]]:
    """(bonus, tier rate) for the current period.

    ``from_file`` keeps the uploaded amount. ``tiered`` needs a hire date; without
    one the uploaded amount is kept and the rate stays ``None``.
    """
    rule = rules.seniority_bonus
    if rule.method == "tiered" and employee.hire_date is not None:
        years = calculate_seniority(employee.hire_date, reference_date).years
        rate = rule.rate_for_years(years)
        base = rule.bonus_base(employee.basic_pay, None)
        return to_money(base * rate), rate
    return to_money(employee.seniority_bonus), None


def project_seniority_bonus(
    calculated: CalculatedEmployee,
    rules: PayrollRules,
    new_basic_pay: Decimal,
    new_minimum_wage: Optional[Decimal] = None,
) -> Decimal:
    """Seniority bonus under the same rule, applied to the projected base.

    A tier rate is applied to the new base directly. An uploaded amount carries
    its implied rate (bonus / current base) over to the new base.
    """
    rule = rules.seniority_bonus
    new_base = rule.bonus_base(new_basic_pay, new_minimum_wage)
    if calculated.seniority_rate is not None:
        return to_money(new_base * calculated.seniority_rate)

    current_base = rule.bonus_base(calculated.basic_pay, None)
    if current_base == 0:
        return calculated.seniority_bonus
    return to_money(calculated.seniority_bonus * new_base / current_base)


def calculate_employee(
    employee: Employee, rules: Optional[PayrollRules] = None, reference_date: Optional[date] = None
) -> CalculatedEmployee:
    """
    Computes the current-period cost structure of one employee.

    Raises:
        CalculationError: if basic pay is missing or a money value is not finite.
    """
    rules = rules or PayrollRules()
    reference_date = reference_date or rules.reference_date

    if employee.basic_pay is None:
        raise CalculationError(
            f"Row {employee.row_index}: basic pay is missing", employee.row_index, employee.identifier
        )
    amounts = [employee.basic_pay, employee.seniority_bonus, *employee.other_bonuses.values()]
    if not all(a.is_finite() for a in amounts):
        raise CalculationError(
            f"Row {employee.row_index}: non-finite amount in {amounts}", employee.row_index, employee.identifier
        )
    # Records built outside the normalizer may carry sub-cent amounts
    employee = replace(
        employee,
        basic_pay=to_money(employee.basic_pay),
        seniority_bonus=to_money(employee.seniority_bonus),
        other_bonuses={k: to_money(v) for k, v in employee.other_bonuses.items()},
    )

    seniority_bonus, rate = current_seniority_bonus(employee, rules, reference_date)
    costs = compute_costs(
        [employee.basic_pay, seniority_bonus, employee.other_bonuses_total],
        rules,
        additional_monthly=additional_monthly_cost(employee, rules),
    )
    seniority = calculate_seniority(employee.hire_date, reference_date) if employee.hire_date else None
    return CalculatedEmployee(
        employee=employee,
        seniority_bonus=seniority_bonus,
        costs=costs,
        seniority_rate=rate,
        seniority=seniority,
    )


@dataclass(frozen=True)
class GroupSummary:
    count: int
    total_earned: Decimal
    monthly_cost: Decimal
    annual_cost: Decimal
    average_annual_cost: Decimal
    share_pct: Decimal


@dataclass
class PayrollResults:
    employees: List[CalculatedEmployee] = field(default_factory=list)
    errors: List[CalculationError] = field(default_factory=list)
    totals: Dict[str, Decimal] = field(default_factory=dict)
    by_area: Dict[str, GroupSummary] = field(default_factory=dict)
    by_company: Dict[str, GroupSummary] = field(default_factory=dict)
    exits: List[CalculatedEmployee] = field(default_factory=list)

    @property
    def employee_count(self) -> int:
        return len(self.employees)

    @property
    def average_annual_cost(self) -> Decimal:
        if not self.employees:
            return ZERO_DECIMAL
        return to_money(self.totals["annual_cost"] / len(self.employees))

    def to_frame(self) -> pd.DataFrame:
        """One row per calculated employee, money as float for display and export."""
        rows = []
        for c in self.employees:
            e = c.employee
            rows.append({
                "row_index": e.row_index,
                "identifier": e.identifier,
                "ci": e.ci,
                "name": e.name,
                "job_title": e.job_title,
                "level": e.level,
                "area": e.area or NO_AREA,
                "company": e.company or NO_COMPANY,
                "basic_pay": float(e.basic_pay),
                "seniority_bonus": float(c.seniority_bonus),
                "other_bonuses": float(e.other_bonuses_total),
                "total_earned": float(c.total_earned),
                "employer_charges": float(c.employer_charges),
                "provisions": float(c.provisions),
                "additional_monthly": float(c.additional_monthly),
                "total_cost": float(c.total_cost),
                "annual_cost": float(c.annual_cost),
            })
        return pd.DataFrame(rows)


def compute_totals(employees: List[CalculatedEmployee]) -> Dict[str, Decimal]:
    """Exact sums of the rounded per-employee values.

    Per-component keys are dotted: ``provisions.aguinaldo``, ``other_bonuses.<column>``.
    """
    totals: Dict[str, Decimal] = {
        "basic_pay": sum_money(c.basic_pay for c in employees),
        "seniority_bonus": sum_money(c.seniority_bonus for c in employees),
        "other_bonuses": sum_money(c.other_bonuses_total for c in employees),
        "total_earned": sum_money(c.total_earned for c in employees),
        "employer_charges": sum_money(c.employer_charges for c in employees),
        "provisions": sum_money(c.provisions for c in employees),
        "additional_monthly": sum_money(c.additional_monthly for c in employees),
        "total_cost": sum_money(c.total_cost for c in employees),
        "annual_cost": sum_money(c.annual_cost for c in employees),
    }
    for c in employees:
        for name, amount in c.costs.provisions.items():
            key = f"provisions.{name}"
            totals[key] = totals.get(key, ZERO_DECIMAL) + amount
        for column, amount in c.employee.other_bonuses.items():
            key = f"other_bonuses.{column}"
            totals[key] = totals.get(key, ZERO_DECIMAL) + amount
    return totals


def group_costs(employees: List[CalculatedEmployee], key, total_annual: Decimal) -> Dict[str, GroupSummary]:
    """Breakdown by ``key(employee)``, largest annual cost first (ties keep first-seen order)."""
    groups: Dict[str, List[CalculatedEmployee]] = {}
    for c in employees:
        groups.setdefault(key(c), []).append(c)

    summaries = {}
    for name, members in groups.items():
        annual = sum_money(m.annual_cost for m in members)
        summaries[name] = GroupSummary(
            count=len(members),
            total_earned=sum_money(m.total_earned for m in members),
            monthly_cost=sum_money(m.total_cost for m in members),
            annual_cost=annual,
            average_annual_cost=to_money(annual / len(members)),
            share_pct=pct_change(annual, total_annual),
        )
    ordered = sorted(summaries.items(), key=lambda kv: kv[1].annual_cost, reverse=True)
    return dict(ordered)


def calculate_all(
    employees: Iterable[Employee],
    rules: Optional[PayrollRules] = None,
    selected_ids: Optional[Iterable[str]] = None,
    reference_date: Optional[date] = None,
) -> PayrollResults:
    """
    Calculates every employee and aggregates the results.

    Args:
        employees: Validated employee records.
        rules: Formula table; defaults to ``PayrollRules()``.
        selected_ids: Optional identifiers (raw or normalized CI) restricting the batch.
        reference_date: Date seniority is measured at; defaults to the rules' date, then today.

    Returns:
        PayrollResults. Records raising ``CalculationError`` are skipped and collected.
    """
    rules = rules or PayrollRules()
    start = time.perf_counter()
    employees = list(employees)

    if selected_ids:
        wanted = {str(i).strip() for i in selected_ids}
        employees = [e for e in employees if e.identifier in wanted or (e.ci and e.ci in wanted)]
        logger.info(f"[PAYROLL] Restricted to {len(employees)} selected employees")

    results = PayrollResults()
    for employee in employees:
        try:
            results.employees.append(calculate_employee(employee, rules, reference_date))
        except CalculationError as e:
            logger.warning(f"[PAYROLL] Skipping record: {e}")
            results.errors.append(e)

    calculated = results.employees
    results.totals = compute_totals(calculated)
    total_annual = results.totals["annual_cost"]
    results.by_area = group_costs(calculated, lambda c: c.employee.area or NO_AREA, total_annual)
    results.by_company = group_costs(calculated, lambda c: c.employee.company or NO_COMPANY, total_annual)
    results.exits = [c for c in calculated if c.employee.exit_date is not None]

    calc_logger.info(
        f"[PAYROLL] rules={rules.version} employees={results.employee_count} failed={len(results.errors)} "
        f"monthly_cost={results.totals['total_cost']} annual_cost={total_annual}"
    )
    perf_logger.info(f"[PAYROLL] calculate_all processed {len(employees)} records in {time.perf_counter() - start:.3f}s")
    return results
