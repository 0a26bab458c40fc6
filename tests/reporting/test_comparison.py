from decimal import ROUND_HALF_UP, Decimal
from types import SimpleNamespace

import pytest

from payroll_model.engines.increment import simulate_increment
from payroll_model.engines.payroll import calculate_all
from payroll_model.reporting.comparison import (
    build_comparison,
    detail_frame,
    impact_reason,
    level_frame,
    rank_by_impact,
    summary_frame,
    top_impacts_frame,
)


@pytest.fixture
def simulated(make_employee, params):
    employees = [
        make_employee("3000", level="A", name="Ana"),
        make_employee("2800", level="A", name="Luis"),
        make_employee("3500", level="B", name="Rosa"),
        make_employee("1500", level="B", name="Juan", seniority_bonus="75"),
        make_employee("7000.33", level="", name="Eva", other_bonuses={"Bono": "333.33"}),
    ]
    return simulate_increment(calculate_all(employees).employees, params).employees


def test_rank_by_impact_is_stable():
    records = [SimpleNamespace(name=n, delta_total_cost=Decimal(d))
               for n, d in [("a", "100"), ("b", "500"), ("c", "500"), ("d", "50")]]
    ranked = rank_by_impact(records, top_n=None)
    assert [r.name for r in ranked] == ["b", "c", "a", "d"]
    assert [r.name for r in rank_by_impact(records, top_n=2)] == ["b", "c"]


def test_impact_total_is_exact_sum_of_deltas(simulated, params):
    summary = build_comparison(simulated, params)
    assert summary.impact_total == sum(s.delta_total_cost for s in simulated)
    assert summary.impact_total == summary.new_total_cost - summary.current_total_cost
    totals = summary.components["total_cost"]
    assert totals.delta == summary.impact_total
    for s in simulated:
        assert s.delta_total_cost == s.delta_total_earned + s.delta_employer_charges + s.delta_provisions


def test_mechanism_counts(simulated, params):
    summary = build_comparison(simulated, params)
    assert summary.employee_count == 5
    assert summary.percentage_count == 1  # Ana
    assert summary.floored_count == 2  # Luis, Juan
    assert summary.unchanged_count == 2  # Rosa, Eva
    assert summary.levels_applied == ["A"]
    assert [impact_reason(s) for s in simulated] == [
        "Incremento Porcentual", "Nivelado por SMN", "Solo Antigüedad", "Nivelado por SMN", "Solo Antigüedad",
    ]


def test_level_breakdown_in_first_appearance_order(simulated, params):
    summary = build_comparison(simulated, params)
    assert list(summary.by_level) == ["A", "B", "Sin nivel"]
    b = summary.by_level["B"]
    assert (b.count, b.with_increase, b.floored) == (2, 0, 1)
    assert sum(lv.delta for lv in summary.by_level.values()) == summary.impact_total


def test_annual_impact_and_pct(simulated, params):
    summary = build_comparison(simulated, params, annual_payments=13)
    assert summary.annual_impact == summary.impact_total * 13
    expected = (summary.impact_total / summary.current_total_cost * 100).quantize(Decimal("0.01"), ROUND_HALF_UP)
    assert summary.pct_impact == expected


def test_top_impacts_limited_and_ordered(simulated, params):
    summary = build_comparison(simulated, params, top_n=3)
    deltas = [s.delta_total_cost for s in summary.top_impacts]
    assert len(deltas) == 3
    assert deltas == sorted(deltas, reverse=True)


def test_empty_comparison(params):
    summary = build_comparison([], params)
    assert summary.impact_total == 0
    assert summary.pct_impact == 0
    assert summary.top_impacts == []


def test_frames(simulated, params):
    summary = build_comparison(simulated, params)
    frame = summary_frame(summary)
    assert list(frame.index) == [
        "basic_pay", "seniority_bonus", "total_earned", "employer_charges", "provisions", "total_cost",
    ]
    assert frame.loc["total_cost", "delta"] == pytest.approx(float(summary.impact_total))

    detail = detail_frame(simulated)
    assert len(detail) == 5
    assert detail["delta_total_cost"].sum() == pytest.approx(float(summary.impact_total))

    top = top_impacts_frame(summary)
    assert top["ranking"].tolist() == list(range(1, len(top) + 1))
    assert len(level_frame(summary)) == 3
