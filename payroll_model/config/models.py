# payroll_model/config/models.py
"""
Pydantic models for the payroll rules, validation policy, column mapping and
simulation parameters loaded from YAML files (e.g., configs/default.yaml).

Payroll rules of this kind change by jurisdiction and year, so the formula
tables (employer charges, provisions, seniority bonus) are configuration,
identified by ``PayrollRules.version``.
"""

import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Dict, FrozenSet, List, Literal, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from payroll_model.schema.columns import ALL_LEVELS, ColumnGroups
from payroll_model.utils.decimal_helpers import to_decimal, to_money

logger = logging.getLogger(__name__)

# Floats coming from YAML are converted through their repr so 0.1721 stays 0.1721
DecimalValue = Annotated[Decimal, BeforeValidator(to_decimal)]


def _money_value(value) -> Decimal:
    amount = to_decimal(value)
    if not amount.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return to_money(amount)


# Wages are held at cent precision
MoneyValue = Annotated[Decimal, BeforeValidator(_money_value)]


def _clean_levels(value):
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = [value]
    return frozenset(str(v).strip() for v in value if str(v).strip())


# --- Low-level Reusable Models ---


class SeniorityTier(BaseModel):
    """One row of the seniority bonus table."""

    model_config = ConfigDict(frozen=True)

    min_years: int = Field(..., ge=0, description="Completed years of service from which the rate applies")
    rate: DecimalValue = Field(..., ge=0, le=1, description="Bonus rate applied to the bonus base (0.05 for 5%)")


# Bolivian seniority bonus scale by completed years of service
DEFAULT_SENIORITY_TIERS = [
    SeniorityTier(min_years=2, rate=Decimal('0.05')),
    SeniorityTier(min_years=5, rate=Decimal('0.11')),
    SeniorityTier(min_years=8, rate=Decimal('0.18')),
    SeniorityTier(min_years=11, rate=Decimal('0.26')),
    SeniorityTier(min_years=15, rate=Decimal('0.34')),
    SeniorityTier(min_years=20, rate=Decimal('0.42')),
    SeniorityTier(min_years=25, rate=Decimal('0.50')),
]


class SeniorityBonusRule(BaseModel):
    """How the seniority bonus is obtained.

    ``from_file`` keeps the uploaded amount for the current period and carries
    its implied rate over to the projected base. ``tiered`` looks the rate up
    in ``tiers`` from the employee's completed years of service.
    """

    model_config = ConfigDict(frozen=True)

    method: Literal['from_file', 'tiered'] = 'from_file'
    base: Literal['basic_pay', 'minimum_wage'] = 'basic_pay'
    minimum_wage_multiplier: DecimalValue = Field(Decimal('3'), gt=0)
    current_minimum_wage: Optional[MoneyValue] = Field(None, gt=0)
    tiers: List[SeniorityTier] = Field(default_factory=lambda: list(DEFAULT_SENIORITY_TIERS))

    @model_validator(mode='after')
    def check_tiers(self) -> 'SeniorityBonusRule':
        years = [t.min_years for t in self.tiers]
        if years != sorted(years) or len(set(years)) != len(years):
            raise ValueError(f"Seniority tiers must have strictly increasing min_years, got {years}")
        if self.base == 'minimum_wage' and self.current_minimum_wage is None:
            raise ValueError("current_minimum_wage is required when the seniority bonus base is 'minimum_wage'")
        return self

    def rate_for_years(self, years: int) -> Decimal:
        """Rate of the highest tier reached by ``years``; 0 below the first tier."""
        rate = Decimal('0')
        for tier in self.tiers:
            if years >= tier.min_years:
                rate = tier.rate
        return rate

    def bonus_base(self, basic_pay: Decimal, minimum_wage: Optional[Decimal]) -> Decimal:
        """Amount the seniority rate applies to."""
        if self.base == 'minimum_wage':
            wage = minimum_wage if minimum_wage is not None else self.current_minimum_wage
            return wage * self.minimum_wage_multiplier
        return basic_pay


class ProvisionFlags(BaseModel):
    """Accrued liabilities recognised each month, each at ``provision_rate`` of total earned."""

    model_config = ConfigDict(frozen=True)

    aguinaldo: bool = True
    segundo_aguinaldo: bool = False
    prima_utilidades: bool = False
    segunda_prima: bool = False
    indemnizacion: bool = True

    def enabled(self) -> List[str]:
        return [name for name, on in self.model_dump().items() if on]


class AdditionalCost(BaseModel):
    """Annual per-employee cost (uniforms, training) spread over the year."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    by_group: bool = False
    groups: Dict[str, DecimalValue] = Field(
        default_factory=dict, description="Annual amount by job title or area"
    )
    default_value: DecimalValue = Field(Decimal('0'), ge=0)

    def annual_amount(self, job_title: str, area: str) -> Decimal:
        if not self.enabled:
            return Decimal('0')
        if self.by_group:
            for key in (job_title, area):
                if key in self.groups and self.groups[key]:
                    return self.groups[key]
        return self.default_value


class AdditionalCosts(BaseModel):
    model_config = ConfigDict(frozen=True)

    uniform: AdditionalCost = Field(default_factory=AdditionalCost)
    training: AdditionalCost = Field(default_factory=AdditionalCost)


class DuplicatePolicy(str, Enum):
    """What the validator does with records sharing an identifier."""

    FLAG = "flag"
    KEEP_FIRST = "keep_first"
    REJECT = "reject"


# --- Top-Level Configuration Models ---


class PayrollRules(BaseModel):
    """Versioned formula table used by the payroll calculator and the simulator."""

    model_config = ConfigDict(frozen=True)

    version: str = "BO-2025"
    employer_charge_rate: DecimalValue = Field(Decimal('0.1721'), ge=0, le=1)
    employer_charge_components: Dict[str, DecimalValue] = Field(
        default_factory=dict,
        description="Informative breakdown of the employer charge rate, e.g. gestora 0.0721 + caja_salud 0.10",
    )
    provision_rate: DecimalValue = Field(Decimal('0.0833'), ge=0, le=1)
    provisions: ProvisionFlags = Field(default_factory=ProvisionFlags)
    seniority_bonus: SeniorityBonusRule = Field(default_factory=SeniorityBonusRule)
    additional_costs: AdditionalCosts = Field(default_factory=AdditionalCosts)
    months_per_year: int = Field(12, gt=0)
    annual_payments: int = Field(13, gt=0, description="Monthly payments per year, aguinaldo included")
    reference_date: Optional[date] = None

    @model_validator(mode='after')
    def check_charge_components(self) -> 'PayrollRules':
        if self.employer_charge_components:
            total = sum(self.employer_charge_components.values(), Decimal('0'))
            if total != self.employer_charge_rate:
                raise ValueError(
                    f"Employer charge components sum to {total}, expected {self.employer_charge_rate}"
                )
        return self


class ValidationPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    duplicate_policy: DuplicatePolicy = DuplicatePolicy.FLAG
    allowed_levels: FrozenSet[str] = frozenset()
    total_tolerance: DecimalValue = Field(Decimal('0.02'), ge=0)
    check_reported_total: bool = True

    @field_validator('allowed_levels', mode='before')
    @classmethod
    def clean_levels(cls, v):
        return _clean_levels(v)


class ColumnMapping(BaseModel):
    """Raw spreadsheet header for each canonical field.

    Basic pay, seniority bonus and total earned accept an alternate column that
    is read when the primary cell is blank.
    """

    model_config = ConfigDict(frozen=True)

    identifier: Optional[str] = None
    name: Optional[str] = None
    job_title: Optional[str] = None
    level: Optional[str] = None
    area: Optional[str] = None
    regional: Optional[str] = None
    company: Optional[str] = None
    gender: Optional[str] = None
    hire_date: Optional[str] = None
    exit_date: Optional[str] = None
    basic_pay: Optional[str] = None
    basic_pay_alt: Optional[str] = None
    seniority_bonus: Optional[str] = None
    seniority_bonus_alt: Optional[str] = None
    total_earned: Optional[str] = None
    total_earned_alt: Optional[str] = None
    other_bonuses: List[str] = Field(default_factory=list)

    def columns_for(self, field: str) -> Tuple[Optional[str], Optional[str]]:
        """(primary, alternate) raw columns of a canonical field."""
        return getattr(self, field, None), getattr(self, f"{field}_alt", None)

    def missing_required(self) -> List[str]:
        return [f for f in ColumnGroups.REQUIRED if not getattr(self, f)]


class SimulationParams(BaseModel):
    """Policy of one increment simulation run. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    new_minimum_wage: MoneyValue = Field(..., gt=0)
    government_pct: DecimalValue = Field(Decimal('0'), ge=0)
    company_pct: DecimalValue = Field(Decimal('0'), ge=0)
    eligible_levels: FrozenSet[str] = frozenset()
    employer_charge_rate: DecimalValue = Field(Decimal('0.1721'), ge=0, le=1)

    @field_validator('eligible_levels', mode='before')
    @classmethod
    def clean_levels(cls, v):
        return _clean_levels(v)

    @property
    def total_pct(self) -> Decimal:
        return self.government_pct + self.company_pct

    def is_level_eligible(self, level: str) -> bool:
        if ALL_LEVELS in self.eligible_levels:
            return True
        return str(level).strip() in self.eligible_levels


class MainConfig(BaseModel):
    """The root model for the entire configuration file."""

    rules: PayrollRules = Field(default_factory=PayrollRules)
    validation: ValidationPolicy = Field(default_factory=ValidationPolicy)
    columns: Optional[ColumnMapping] = None
    simulation: Optional[SimulationParams] = None

    @model_validator(mode='after')
    def check_simulation_levels(self) -> 'MainConfig':
        """Warn when the simulation targets levels the validator would reject."""
        if self.simulation and self.validation.allowed_levels:
            unknown = self.simulation.eligible_levels - self.validation.allowed_levels - {ALL_LEVELS}
            if unknown:
                logger.warning(
                    f"Simulation eligible_levels {sorted(unknown)} are not in allowed_levels. Check config."
                )
        return self
