# payroll_model/engines/increment.py
"""
Increment simulator: projects each employee's pay and cost under a new minimum
wage and a percentage raise for eligible levels.

Per employee:
    1. percentage = government_pct + company_pct when the level is eligible, else 0
    2. candidate = basic_pay * (1 + percentage / 100)
    3. new basic pay = max(candidate, new_minimum_wage)
    4. floored when the minimum wage lifted the candidate; the percentage
       mechanism only counts when it was not floored
    5. seniority bonus recomputed against the new base
    6. costs recomputed as the calculator does; deltas and % variations

The simulation is a pure function of its inputs.
"""

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from payroll_model.config.models import PayrollRules, SimulationParams
from payroll_model.engines.normalizer import Employee
from payroll_model.engines.payroll import (
    CalculatedEmployee,
    CalculationError,
    CostBreakdown,
    compute_costs,
    project_seniority_bonus,
)
from payroll_model.utils.decimal_helpers import HUNDRED, ZERO_DECIMAL, pct_change, to_money

logger = logging.getLogger(__name__)
calc_logger = logging.getLogger("payroll_model.calculation")
perf_logger = logging.getLogger("payroll_model.performance")


@dataclass(frozen=True)
class SimulatedEmployee:
    """Current and projected values of one employee. Never mutated."""

    current: CalculatedEmployee
    percentage_applied: Decimal
    receives_percentage_increase: bool
    floored_to_minimum_wage: bool
    new_basic_pay: Decimal
    new_seniority_bonus: Decimal
    new_costs: CostBreakdown

    @property
    def employee(self) -> Employee:
        return self.current.employee

    @property
    def identifier(self) -> str:
        return self.current.employee.identifier

    @property
    def level(self) -> str:
        return self.current.employee.level

    @property
    def new_total_earned(self) -> Decimal:
        return self.new_costs.total_earned

    @property
    def new_employer_charges(self) -> Decimal:
        return self.new_costs.employer_charges

    @property
    def new_provisions(self) -> Decimal:
        return self.new_costs.provisions_total

    @property
    def new_total_cost(self) -> Decimal:
        return self.new_costs.total_cost

    @property
    def delta_basic_pay(self) -> Decimal:
        return self.new_basic_pay - self.current.basic_pay

    @property
    def delta_seniority_bonus(self) -> Decimal:
        return self.new_seniority_bonus - self.current.seniority_bonus

    @property
    def delta_total_earned(self) -> Decimal:
        return self.new_total_earned - self.current.total_earned

    @property
    def delta_employer_charges(self) -> Decimal:
        return self.new_employer_charges - self.current.employer_charges

    @property
    def delta_provisions(self) -> Decimal:
        return self.new_provisions - self.current.provisions

    @property
    def delta_total_cost(self) -> Decimal:
        return self.new_total_cost - self.current.total_cost

    @property
    def pct_variation_basic_pay(self) -> Decimal:
        return pct_change(self.delta_basic_pay, self.current.basic_pay)

    @property
    def pct_variation_total_earned(self) -> Decimal:
        return pct_change(self.delta_total_earned, self.current.total_earned)

    @property
    def pct_variation_total_cost(self) -> Decimal:
        return pct_change(self.delta_total_cost, self.current.total_cost)


@dataclass
class SimulationResult:
    employees: List[SimulatedEmployee] = field(default_factory=list)
    errors: List[CalculationError] = field(default_factory=list)
    params: Optional[SimulationParams] = None


def simulate_employee(
    calculated: CalculatedEmployee, params: SimulationParams, rules: Optional[PayrollRules] = None
) -> SimulatedEmployee:
    """
    Projects one calculated employee under ``params``.

    Raises:
        CalculationError: if the record has no basic pay.
    """
    rules = rules or PayrollRules()
    employee = calculated.employee
    basic = calculated.basic_pay
    if basic is None:
        raise CalculationError(f"Row {employee.row_index}: basic pay is missing", employee.row_index, employee.identifier)

    percentage = params.total_pct if params.is_level_eligible(employee.level) else ZERO_DECIMAL
    candidate = basic * (1 + percentage / HUNDRED)
    floored = params.new_minimum_wage > candidate
    # The floor is applied exactly so a floored record sits on the minimum wage
    new_basic = params.new_minimum_wage if floored else to_money(candidate)
    receives_percentage = percentage > 0 and not floored

    new_seniority = project_seniority_bonus(calculated, rules, new_basic, params.new_minimum_wage)
    new_costs = compute_costs(
        [new_basic, new_seniority, employee.other_bonuses_total],
        rules,
        additional_monthly=calculated.additional_monthly,
        employer_charge_rate=params.employer_charge_rate,
    )

    if floored:
        logger.debug(
            f"[INCREMENT] Row {employee.row_index} floored: candidate {to_money(candidate)} "
            f"< minimum wage {params.new_minimum_wage}"
        )
    return SimulatedEmployee(
        current=calculated,
        percentage_applied=percentage,
        receives_percentage_increase=receives_percentage,
        floored_to_minimum_wage=floored,
        new_basic_pay=new_basic,
        new_seniority_bonus=new_seniority,
        new_costs=new_costs,
    )


def simulate_increment(
    calculated: Iterable[CalculatedEmployee],
    params: SimulationParams,
    rules: Optional[PayrollRules] = None,
) -> SimulationResult:
    """
    Runs the increment simulation over every calculated employee.

    Input order is preserved. Records that fail are skipped and their
    ``CalculationError`` collected.
    """
    rules = rules or PayrollRules()
    start = time.perf_counter()
    result = SimulationResult(params=params)

    for record in calculated:
        try:
            result.employees.append(simulate_employee(record, params, rules))
        except CalculationError as e:
            logger.warning(f"[INCREMENT] Skipping record: {e}")
            result.errors.append(e)

    floored = sum(1 for s in result.employees if s.floored_to_minimum_wage)
    raised = sum(1 for s in result.employees if s.receives_percentage_increase)
    calc_logger.info(
        f"[INCREMENT] minimum_wage={params.new_minimum_wage} pct={params.total_pct} "
        f"levels={sorted(params.eligible_levels)} simulated={len(result.employees)} "
        f"percentage={raised} floored={floored} failed={len(result.errors)}"
    )
    perf_logger.info(
        f"[INCREMENT] simulate_increment processed {len(result.employees) + len(result.errors)} "
        f"records in {time.perf_counter() - start:.3f}s"
    )
    return result
