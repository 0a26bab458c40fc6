from datetime import date

import pytest

from payroll_model.analytics.periods import (
    PayrollPeriod,
    analyze_periods,
    analyze_pre_close,
    linear_forecast,
)
from payroll_model.data.readers import AbsenceRecord
from payroll_model.engines.payroll import calculate_all

REFERENCE = date(2025, 6, 30)

pytestmark = pytest.mark.analytics


@pytest.fixture
def periods(make_employee):
    def period(month, rows):
        employees = [make_employee(basic, identifier=ci, name=name, job_title=title, area=area, **extra)
                     for ci, name, basic, title, area, extra in rows]
        return PayrollPeriod(year=2025, month=month, results=calculate_all(employees))

    january = period(1, [
        ("111", "Ana", "3000", "Analista", "Finanzas", {}),
        ("222", "Luis", "2000", "Operario", "Planta", {}),
        ("333", "Rosa", "2500", "Operario", "Planta", {}),
    ])
    february = period(2, [
        ("111", "Ana", "3300", "Jefe", "Finanzas", {}),
        ("222", "Luis", "2000", "Operario", "Planta", {}),
        ("333", "Rosa", "2500", "Operario", "Planta", {"exit_date": date(2025, 2, 28)}),
    ])
    march = period(3, [
        ("111", "Ana", "3300", "Jefe", "Finanzas", {"hire_date": date(2019, 3, 15)}),
        ("222", "Luis", "2000", "Operario", "Ventas", {}),
        ("444", "Eva", "2800", "Analista", "Finanzas", {}),
    ])
    # Deliberately out of order
    return [march, january, february]


def test_single_period_gives_none(periods):
    assert analyze_periods(periods[:1]) is None
    assert analyze_pre_close(periods[:1]) is None


def test_analyze_periods_movements(periods):
    analysis = analyze_periods(periods, reference_date=REFERENCE)
    assert analysis.periods == ["Enero 2025", "Febrero 2025", "Marzo 2025"]
    assert analysis.total_periods == 3
    assert (analysis.headcount_initial, analysis.headcount_final) == (3, 3)
    assert [h["id"] for h in analysis.hires] == ["444"]
    assert [(e["id"], e["exit_date"]) for e in analysis.exits] == [("333", date(2025, 2, 28))]
    assert analysis.title_changes[0]["previous_title"] == "Analista"
    assert analysis.title_changes[0]["current_title"] == "Jefe"


def test_analyze_periods_salary_variation(periods):
    analysis = analyze_periods(periods, reference_date=REFERENCE)
    assert [r["id"] for r in analysis.increases] == ["111"]
    assert analysis.increases[0]["variation_pct"] == 10.0
    assert {r["id"] for r in analysis.unchanged} == {"222", "333"}
    assert analysis.decreases == []
    assert analysis.top_increases == analysis.increases
    assert {r["id"] for r in analysis.low_variability} == {"222", "333"}
    assert analysis.high_variability == []


def test_analyze_periods_turnover_and_forecast(periods):
    analysis = analyze_periods(periods, reference_date=REFERENCE)
    assert analysis.turnover["total_exits"] == 1
    assert analysis.turnover["monthly_rate"] == pytest.approx(11.11)
    assert analysis.turnover["annualized_rate"] == pytest.approx(133.33)
    assert analysis.forecast["trend"] == "creciente"
    assert analysis.forecast["month_3"] > analysis.cost_trend[-1]["value"]
    assert analysis.seniority.employees_with_data == 1
    assert analysis.absences is None
    assert len(analysis.trend_frame()) == 3


def test_analyze_periods_with_absences(periods):
    absences = [AbsenceRecord(name="Luis", ci="222", request_type="Permiso", days=2)]
    analysis = analyze_periods(periods, absences, reference_date=REFERENCE)
    assert analysis.absences.has_data
    assert analysis.absences.bradford[0]["ci"] == "222"


def test_linear_forecast_on_a_line():
    forecast = linear_forecast([100.0, 110.0, 120.0])
    assert forecast["slope"] == pytest.approx(10.0)
    assert forecast["month_3"] == pytest.approx(150.0)
    assert forecast["month_6"] == pytest.approx(180.0)
    assert forecast["month_12"] == pytest.approx(240.0)
    assert linear_forecast([5.0, 5.0, 5.0])["trend"] == "estable"


def test_analyze_pre_close(periods):
    analysis = analyze_pre_close(periods)
    assert analysis.headcount_by_period == [3, 3, 3]
    assert [a["id"] for a in analysis.additions] == ["444"]
    assert [r["id"] for r in analysis.removals] == ["333"]
    assert [c["id"] for c in analysis.title_changes] == ["111"]
    assert [(c["id"], c["new_area"]) for c in analysis.area_changes] == [("222", "Ventas")]
    assert [v["id"] for v in analysis.salary_variations] == ["111"]
    assert analysis.salary_variations[0]["variation"] == 300.0
    assert len(analysis.per_person) == 4
    assert len(analysis.per_person_frame()) == 4
    assert analysis.summary["total_earned_variation"] == 600.0
    assert analysis.summary["headcount_variation"] == 0
    person = {p["id"]: p for p in analysis.per_person}
    assert person["444"]["is_addition"] and not person["444"]["is_removal"]
    assert person["333"]["is_removal"]
