# payroll_model/session.py
"""
In-memory state of one payroll file-set: raw rows through validation and
calculation, plus at most one simulation run.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from payroll_model.analytics.absence import AbsenceAnalysis, analyze_absences
from payroll_model.analytics.equity import EquityAnalysis, analyze_equity
from payroll_model.analytics.periods import PayrollPeriod
from payroll_model.analytics.seniority import SeniorityAnalysis, analyze_seniority
from payroll_model.config.models import ColumnMapping, MainConfig, SimulationParams
from payroll_model.data.readers import AbsenceRecord
from payroll_model.engines.increment import SimulationResult, simulate_increment
from payroll_model.engines.normalizer import NormalizationResult, normalize_rows
from payroll_model.engines.payroll import PayrollResults, calculate_all
from payroll_model.engines.validator import ValidationReport, validate_employees
from payroll_model.reporting.comparison import ComparisonSummary, build_comparison

logger = logging.getLogger(__name__)


@dataclass
class SimulationRun:
    params: SimulationParams
    result: SimulationResult
    comparison: ComparisonSummary


@dataclass
class PayrollSession:
    """Single-user, synchronous session. Nothing is persisted."""

    config: MainConfig = field(default_factory=MainConfig)
    normalization: Optional[NormalizationResult] = None
    validation: Optional[ValidationReport] = None
    payroll: Optional[PayrollResults] = None
    simulation: Optional[SimulationRun] = None
    absences: List[AbsenceRecord] = field(default_factory=list)
    reference_date: Optional[date] = None

    def load_rows(self, rows: Iterable[Mapping[str, Any]], mapping: Optional[ColumnMapping] = None) -> ValidationReport:
        """Normalizes and validates a new file-set, discarding every earlier result."""
        mapping = mapping or self.config.columns
        if mapping is None:
            raise ValueError("A column mapping is required to load rows")

        self.payroll = None
        self.simulation = None
        self.normalization = normalize_rows(rows, mapping)
        report = validate_employees(self.normalization.employees, self.config.validation)
        report.add_parse_errors(self.normalization.errors)
        self.validation = report
        return report

    def calculate(self, selected_ids: Optional[Iterable[str]] = None, reference_date: Optional[date] = None) -> PayrollResults:
        if self.validation is None:
            raise RuntimeError("No validated data loaded; call load_rows first")
        self.reference_date = reference_date or self.config.rules.reference_date
        self.payroll = calculate_all(self.validation.valid, self.config.rules, selected_ids, reference_date)
        self.simulation = None
        return self.payroll

    def simulate(self, params: Optional[SimulationParams] = None, top_n: int = 20) -> SimulationRun:
        """Runs a simulation on the current results, replacing any previous run."""
        params = params or self.config.simulation
        if params is None:
            raise ValueError("Simulation parameters are required")
        if self.payroll is None:
            self.calculate()

        if self.simulation is not None:
            logger.info("[INCREMENT] Discarding previous simulation run")
        result = simulate_increment(self.payroll.employees, params, self.config.rules)
        comparison = build_comparison(
            result.employees, params, top_n=top_n, annual_payments=self.config.rules.annual_payments
        )
        self.simulation = SimulationRun(params=params, result=result, comparison=comparison)
        return self.simulation

    def reset(self) -> None:
        self.normalization = None
        self.validation = None
        self.payroll = None
        self.simulation = None
        self.absences = []
        self.reference_date = None

    @property
    def issues(self) -> List:
        return list(self.validation.issues) if self.validation else []

    def load_absences(self, records: Sequence[AbsenceRecord]) -> None:
        """Attaches an absence/vacation export to the current file-set."""
        self.absences = list(records)
        logger.info(f"Loaded {len(self.absences)} absence records into the session")

    def _calculated(self) -> PayrollResults:
        if self.payroll is None:
            self.calculate()
        return self.payroll

    def seniority(self) -> SeniorityAnalysis:
        return analyze_seniority(self._calculated().employees, self.reference_date)

    def equity(self) -> EquityAnalysis:
        return analyze_equity(self._calculated().employees, self.reference_date)

    def absence_analysis(self) -> AbsenceAnalysis:
        return analyze_absences(self.absences, self._calculated().employees, self.reference_date)

    def as_period(self, year: int, month: int) -> PayrollPeriod:
        """Current results labelled as one month, for ``analyze_periods``/``analyze_pre_close``."""
        return PayrollPeriod(year=year, month=month, results=self._calculated())
