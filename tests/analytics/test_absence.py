from datetime import date

import pytest

from payroll_model.analytics.absence import analyze_absences, bradford_factor, classify_bradford
from payroll_model.data.readers import AbsenceRecord

REFERENCE = date(2025, 6, 30)

pytestmark = pytest.mark.analytics


def _absence(ci, days, request_type="Permiso"):
    return AbsenceRecord(name="", ci=ci, request_type=request_type, days=days)


def test_bradford_factor_squares_episodes():
    score = bradford_factor([_absence("1", 2), _absence("1", 1), _absence("1", 1)])
    assert (score.episodes, score.days, score.score) == (3, 4, 36)
    assert score.classification == "Bajo"


def test_bradford_factor_no_absences():
    score = bradford_factor([])
    assert score.score == 0
    assert score.classification == "Bajo"


@pytest.mark.parametrize("score, label", [
    (0, "Bajo"), (200, "Bajo"), (201, "Moderado"), (450, "Moderado"), (900, "Alto"), (901, "Crítico"),
])
def test_classify_bradford_thresholds(score, label):
    assert classify_bradford(score) == label


def test_vacation_requests_are_detected():
    assert _absence("1", 1, "Vacación").is_vacation
    assert _absence("1", 1, "VACACIONES").is_vacation
    assert not _absence("1", 1, "Baja médica").is_vacation


def test_analyze_absences(make_employee):
    employees = [
        make_employee(identifier="111", name="Ana", hire_date=date(2019, 3, 15)),
        make_employee(identifier="222", name="Luis", hire_date=date(2025, 1, 1)),
        make_employee(identifier="333", name="Rosa"),
    ]
    absences = [
        _absence("111", 2), _absence("111", 1), _absence("111", 1),
        _absence("111", 15, "Vacación"),
        *[_absence("333", 4) for _ in range(5)],
        _absence("", 3),
    ]
    analysis = analyze_absences(absences, employees, REFERENCE)

    assert analysis.has_data
    assert [r["ci"] for r in analysis.bradford] == ["333", "111", "222"]
    assert [r["score"] for r in analysis.bradford] == [500, 36, 0]
    assert analysis.bradford[0]["classification"] == "Alto"

    vacations = {r["ci"]: r for r in analysis.vacations}
    assert vacations["111"]["days_entitled"] == 20
    assert vacations["111"]["pct_taken"] == 75.0
    assert vacations["111"]["status"] == "Saludable"
    assert vacations["222"]["days_entitled"] == 7.5
    assert vacations["222"]["status"] == "Crítico"
    assert vacations["222"]["presenteeism"] is True
    assert vacations["333"]["presenteeism"] is False

    assert analysis.summary["high_count"] == 1
    assert analysis.summary["low_count"] == 2
    assert analysis.summary["presenteeism_count"] == 1
    assert analysis.summary["total_vacation_days"] == 15
    assert len(analysis.bradford_frame()) == 3
    assert len(analysis.vacation_frame()) == 3


def test_analyze_absences_without_records(make_employee):
    analysis = analyze_absences([], [make_employee()])
    assert not analysis.has_data
    assert analysis.bradford == []
    assert analysis.summary["critical_count"] == 0
