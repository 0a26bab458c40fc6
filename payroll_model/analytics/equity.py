# payroll_model/analytics/equity.py
"""
Gender pay equity over calculated employees, using total earned pay.

The gap is expressed relative to the male average:
``(avg_M - avg_F) / avg_M * 100``. A positive gap means men earn more.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

import pandas as pd

from payroll_model.analytics.seniority import SENIORITY_BANDS, calculate_seniority, seniority_band
from payroll_model.schema.columns import NO_TITLE

logger = logging.getLogger(__name__)

MALE = "M"
FEMALE = "F"

_GENDER_ALIASES = {
    "m": MALE, "masculino": MALE, "hombre": MALE, "h": MALE, "male": MALE,
    "f": FEMALE, "femenino": FEMALE, "mujer": FEMALE, "female": FEMALE,
}

# (exclusive upper bound of |gap|, label)
GAP_SEVERITY = [
    (5, "Equidad Excelente"),
    (10, "Equidad Buena"),
    (20, "Atención Necesaria"),
]
GAP_SEVERITY_MAX = "Brecha Significativa"


def normalize_gender(value: Optional[str]) -> Optional[str]:
    """'M', 'F', or None when the value is blank or not recognised."""
    if not value:
        return None
    return _GENDER_ALIASES.get(str(value).strip().lower())


def gender_gap(avg_male: float, avg_female: float) -> float:
    if not avg_male:
        return 0.0
    return round((avg_male - avg_female) / avg_male * 100, 2)


def gap_severity(gap: float) -> str:
    for upper, label in GAP_SEVERITY:
        if abs(gap) < upper:
            return label
    return GAP_SEVERITY_MAX


@dataclass
class EquityAnalysis:
    by_gender: Dict[str, int]
    avg_male: float
    avg_female: float
    median_male: float
    median_female: float
    gap: float
    role_analysis: List[Dict] = field(default_factory=list)
    by_seniority: List[Dict] = field(default_factory=list)

    @property
    def severity(self) -> str:
        return gap_severity(self.gap)

    def role_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.role_analysis)


def _equity_frame(employees: Iterable, reference_date: Optional[date]) -> pd.DataFrame:
    rows = []
    for c in employees:
        e = c.employee
        years = calculate_seniority(e.hire_date, reference_date).years if e.hire_date else None
        rows.append({
            "gender": normalize_gender(e.gender),
            "job_title": e.job_title or NO_TITLE,
            "earned": float(c.total_earned),
            "band": seniority_band(years) if years is not None else None,
        })
    return pd.DataFrame(rows, columns=["gender", "job_title", "earned", "band"])


def _stat(series: pd.Series, how: str) -> float:
    if series.empty:
        return 0.0
    return round(float(getattr(series, how)()), 2)


def analyze_equity(employees: Iterable, reference_date: Optional[date] = None) -> EquityAnalysis:
    """
    Pay equity by gender, by job title and by seniority band.

    Args:
        employees: ``CalculatedEmployee`` records.
        reference_date: Date seniority bands are measured at (default today).

    Employees without a recognised gender count towards role headcount and
    role average only.
    """
    df = _equity_frame(employees, reference_date)
    male = df.loc[df["gender"] == MALE, "earned"]
    female = df.loc[df["gender"] == FEMALE, "earned"]

    avg_m, avg_f = _stat(male, "mean"), _stat(female, "mean")
    analysis = EquityAnalysis(
        by_gender={MALE: int(male.size), FEMALE: int(female.size)},
        avg_male=avg_m,
        avg_female=avg_f,
        median_male=_stat(male, "median"),
        median_female=_stat(female, "median"),
        gap=gender_gap(avg_m, avg_f),
    )

    for title, group in df.groupby("job_title", sort=False):
        g_male = group.loc[group["gender"] == MALE, "earned"]
        g_female = group.loc[group["gender"] == FEMALE, "earned"]
        role_gap = 0.0
        if not g_male.empty and not g_female.empty:
            role_gap = gender_gap(g_male.mean(), g_female.mean())
        analysis.role_analysis.append({
            "job_title": title,
            "count": int(len(group)),
            "avg_salary": _stat(group["earned"], "mean"),
            MALE: int(g_male.size),
            FEMALE: int(g_female.size),
            "gender_gap": role_gap,
        })
    analysis.role_analysis.sort(key=lambda r: r["avg_salary"], reverse=True)

    with_band = df.dropna(subset=["band"])
    for band in SENIORITY_BANDS:
        group = with_band[with_band["band"] == band]
        analysis.by_seniority.append({
            "band": band,
            "count": int(len(group)),
            "avg_salary": _stat(group["earned"], "mean"),
            MALE: int((group["gender"] == MALE).sum()),
            FEMALE: int((group["gender"] == FEMALE).sum()),
        })

    logger.info(
        f"Equity analysis: {len(df)} employees (M={analysis.by_gender[MALE]}, F={analysis.by_gender[FEMALE]}), "
        f"gap={analysis.gap}% ({analysis.severity})"
    )
    return analysis
