# payroll_model/analytics/absence.py
"""
Absence analytics: Bradford factor per employee and vacation consumption.

Bradford factor = S^2 * D, with S the number of separate absence episodes and
D the total days absent. Vacation requests are excluded from the factor and
measured against the employee's prorated entitlement instead.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

import pandas as pd

from payroll_model.analytics.seniority import calculate_seniority, prorated_vacation_days
from payroll_model.data.readers import AbsenceRecord

logger = logging.getLogger(__name__)

# (inclusive upper bound, label)
BRADFORD_THRESHOLDS = [
    (200, "Bajo"),
    (450, "Moderado"),
    (900, "Alto"),
    (math.inf, "Crítico"),
]

# (minimum % of entitlement taken, label)
CONSUMPTION_STATUS = [
    (70, "Saludable"),
    (50, "Atención"),
    (0, "Crítico"),
]

# Taking less than this share of the entitlement counts as presenteeism
PRESENTEEISM_SHARE = 0.01


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def classify_bradford(score: float) -> str:
    for upper, label in BRADFORD_THRESHOLDS:
        if score <= upper:
            return label
    return BRADFORD_THRESHOLDS[-1][1]


def consumption_status(pct_taken: float) -> str:
    for minimum, label in CONSUMPTION_STATUS:
        if pct_taken >= minimum:
            return label
    return CONSUMPTION_STATUS[-1][1]


@dataclass(frozen=True)
class BradfordScore:
    score: int = 0
    episodes: int = 0
    days: float = 0.0
    classification: str = "Bajo"


def bradford_factor(records: Iterable[AbsenceRecord]) -> BradfordScore:
    """Bradford factor of one employee's absence episodes (one record per episode)."""
    records = list(records)
    if not records:
        return BradfordScore()
    episodes = len(records)
    days = sum(r.days for r in records)
    score = _round_half_up(episodes ** 2 * days)
    return BradfordScore(score=score, episodes=episodes, days=round(days, 2), classification=classify_bradford(score))


@dataclass
class AbsenceAnalysis:
    has_data: bool
    bradford: List[Dict] = field(default_factory=list)
    vacations: List[Dict] = field(default_factory=list)
    summary: Dict[str, float] = field(default_factory=dict)

    def bradford_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.bradford)

    def vacation_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.vacations)


def analyze_absences(
    absences: Optional[Iterable[AbsenceRecord]],
    employees: Iterable,
    reference_date: Optional[date] = None,
) -> AbsenceAnalysis:
    """
    Per-employee Bradford scores (worst first) and vacation consumption.

    Args:
        absences: Absence and vacation request records, matched to employees by CI.
        employees: ``Employee`` or ``CalculatedEmployee`` records.
        reference_date: Date entitlement is measured at (default today).
    """
    absences = list(absences or [])
    if not absences:
        return AbsenceAnalysis(has_data=False, summary={
            "total_absence_days": 0.0,
            "total_vacation_days": 0.0,
            "average_bradford": 0,
            "critical_count": 0,
            "high_count": 0,
            "moderate_count": 0,
            "low_count": 0,
        })

    absences_by_ci: Dict[str, List[AbsenceRecord]] = {}
    vacations_by_ci: Dict[str, List[AbsenceRecord]] = {}
    for record in absences:
        if not record.ci:
            continue
        target = vacations_by_ci if record.is_vacation else absences_by_ci
        target.setdefault(record.ci, []).append(record)

    bradford_rows = []
    vacation_rows = []
    for item in employees:
        employee = getattr(item, "employee", item)
        ci = employee.ci
        bradford = bradford_factor(absences_by_ci.get(ci, []))
        bradford_rows.append({
            "ci": ci,
            "name": employee.name,
            "job_title": employee.job_title,
            "area": employee.area,
            "score": bradford.score,
            "episodes": bradford.episodes,
            "days": bradford.days,
            "classification": bradford.classification,
        })

        entitled = prorated_vacation_days(employee.hire_date, reference_date)
        taken = sum(v.days for v in vacations_by_ci.get(ci, []))
        pct_taken = round(taken / entitled * 100, 2) if entitled > 0 else 0.0
        vacation_rows.append({
            "ci": ci,
            "name": employee.name,
            "job_title": employee.job_title,
            "area": employee.area,
            "seniority_years": calculate_seniority(employee.hire_date, reference_date).years,
            "days_entitled": round(entitled, 2),
            "days_taken": round(taken, 2),
            "days_pending": round(entitled - taken, 2),
            "pct_taken": pct_taken,
            "status": consumption_status(pct_taken),
            "presenteeism": taken < entitled * PRESENTEEISM_SHARE,
        })

    # Worst first; ties keep employee order
    bradford_rows.sort(key=lambda r: r["score"], reverse=True)

    labels = [r["classification"] for r in bradford_rows]
    statuses = [r["status"] for r in vacation_rows]
    summary = {
        "total_absence_days": round(sum(r["days"] for r in bradford_rows), 2),
        "total_vacation_days": round(sum(r["days_taken"] for r in vacation_rows), 2),
        "average_bradford": (
            _round_half_up(sum(r["score"] for r in bradford_rows) / len(bradford_rows)) if bradford_rows else 0
        ),
        "critical_count": labels.count("Crítico"),
        "high_count": labels.count("Alto"),
        "moderate_count": labels.count("Moderado"),
        "low_count": labels.count("Bajo"),
        "presenteeism_count": sum(1 for r in vacation_rows if r["presenteeism"]),
        "healthy_consumption_count": statuses.count("Saludable"),
        "attention_consumption_count": statuses.count("Atención"),
        "critical_consumption_count": statuses.count("Crítico"),
    }
    logger.info(
        f"Absence analysis: {len(absences)} records, {len(bradford_rows)} employees, "
        f"{summary['critical_count']} critical Bradford scores"
    )
    return AbsenceAnalysis(has_data=True, bradford=bradford_rows, vacations=vacation_rows, summary=summary)
