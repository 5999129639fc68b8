from __future__ import annotations

import pytest

from finplan_app.models.common import QuarterlyRatios, ScenarioType
from finplan_app.models.scenario import (
    GrowthFloorPolicy,
    NextYearProjection,
    NextYearQuarter,
    NextYearQuarterly,
    NextYearSummary,
    ProjectionItem,
    QuarterlyRatioSet,
    SimulationScenario,
    TargetTotals,
)
from finplan_app.services.scenario import (
    apply_growth_floor,
    build_next_year_scenario,
    carry_forward_scenario,
    find_base_scenario,
    quarterly_investments,
    quarterly_ratios_from_projection,
    quarterly_totals,
    summarize_scenario,
    target_totals_from_projection,
)


def _amounts(items):
    return {item.category: item.projected_amount for item in items}


def test_summary_growth(sample_scenario):
    summary = summarize_scenario(sample_scenario)

    assert summary.base.total_revenue == 800000
    assert summary.projected.net_profit == 200000
    assert summary.projected.profit_margin == pytest.approx(20)
    assert summary.growth.revenue_growth == pytest.approx(25)


def test_quarterly_totals_use_explicit_splits(sample_scenario):
    revenue = quarterly_totals(sample_scenario.revenues)
    assert revenue.as_list() == [220000, 240000, 260000, 280000]

    investments = quarterly_investments(sample_scenario.investments)
    assert investments.as_list() == [150000, 0, 90000, 0]


def test_find_base_scenario_prefers_positive():
    negative = SimulationScenario(name="Down", base_year=2024, target_year=2025, scenario_type=ScenarioType.NEGATIVE)
    positive = SimulationScenario(name="Up", base_year=2024, target_year=2025)
    other_year = SimulationScenario(name="Old", base_year=2023, target_year=2024)

    assert find_base_scenario([negative, positive, other_year], 2026) is positive
    assert find_base_scenario([negative, other_year], 2026) is negative
    assert find_base_scenario([other_year], 2026) is None


def test_growth_floor_triggers_at_threshold():
    targets, applied = apply_growth_floor(1_000_000, 600_000, TargetTotals(revenue=1_050_000, expenses=600_000))

    assert applied
    assert targets.revenue == pytest.approx(1_200_000)
    assert targets.expenses == pytest.approx(672_000)


def test_growth_floor_keeps_healthy_targets():
    original = TargetTotals(revenue=1_300_000, expenses=700_000)
    targets, applied = apply_growth_floor(1_000_000, 600_000, original)
    assert not applied
    assert targets == original


def test_growth_floor_skipped_without_reference_revenue():
    original = TargetTotals(revenue=100, expenses=50)
    assert apply_growth_floor(0, 0, original) == (original, False)
    assert apply_growth_floor(1000, 0, original, GrowthFloorPolicy(enabled=False)) == (original, False)


def test_uniform_carry_forward(two_line_scenario):
    result = carry_forward_scenario(two_line_scenario, TargetTotals(revenue=1_200_000, expenses=660_000))

    assert not result.fallback_applied
    assert not result.focus_applied
    assert _amounts(result.revenues) == {"Item A": 720000, "Item B": 480000}
    assert _amounts(result.expenses) == {"Operations": 550000, "Rent": 110000}


def test_focus_carry_forward_routes_growth(two_line_scenario):
    result = carry_forward_scenario(
        two_line_scenario,
        TargetTotals(revenue=1_200_000, expenses=660_000),
        focus_projects=["Item A"],
    )

    assert result.focus_applied
    assert _amounts(result.revenues) == {"Item A": 800000, "Item B": 400000}
    # expenses always scale uniformly
    assert _amounts(result.expenses) == {"Operations": 550000, "Rent": 110000}


def test_focus_matches_by_id(two_line_scenario):
    result = carry_forward_scenario(
        two_line_scenario,
        TargetTotals(revenue=1_200_000, expenses=600_000),
        focus_projects=["item-b"],
    )
    assert _amounts(result.revenues) == {"Item A": 600000, "Item B": 600000}


def test_unmatched_focus_falls_back_to_uniform(two_line_scenario):
    result = carry_forward_scenario(
        two_line_scenario,
        TargetTotals(revenue=1_200_000, expenses=600_000),
        focus_projects=["Nothing"],
    )
    assert not result.focus_applied
    assert _amounts(result.revenues) == {"Item A": 720000, "Item B": 480000}


def test_shrinking_target_never_drives_focus_lines_negative():
    reference = SimulationScenario(
        name="Shrinking",
        base_year=2024,
        target_year=2025,
        revenues=[
            ProjectionItem(category="A", projected_amount=100000),
            ProjectionItem(category="B", projected_amount=900000),
        ],
        expenses=[ProjectionItem(category="Operations", projected_amount=500000)],
    )
    result = carry_forward_scenario(
        reference,
        TargetTotals(revenue=800_000, expenses=500_000),
        focus_projects=["A"],
        policy=GrowthFloorPolicy(enabled=False),
    )

    assert not result.focus_applied
    assert _amounts(result.revenues) == {"A": 80000, "B": 720000}
    assert all(item.projected_amount >= 0 for item in result.revenues)


def test_carried_lines_run_the_full_year():
    reference = SimulationScenario(
        name="Launch",
        base_year=2024,
        target_year=2025,
        revenues=[ProjectionItem(category="New product", projected_amount=120000, is_new=True, start_month=7)],
    )
    result = carry_forward_scenario(reference, TargetTotals(revenue=240_000, expenses=0))

    carried = result.revenues[0]
    assert carried.base_quarterly.as_list() == [0, 0, 60000, 60000]
    assert not carried.is_new
    assert carried.start_month is None


def test_low_growth_target_is_floored(two_line_scenario):
    result = carry_forward_scenario(two_line_scenario, TargetTotals(revenue=1_020_000, expenses=610_000))

    assert result.fallback_applied
    assert result.revenue_target == 1_200_000
    assert result.expense_target == 672_000
    assert sum(item.projected_amount for item in result.revenues) == 1_200_000


def test_carry_forward_rolls_projection_into_base(two_line_scenario):
    result = carry_forward_scenario(two_line_scenario, TargetTotals(revenue=1_200_000, expenses=660_000))

    for old, new in zip(two_line_scenario.revenues, result.revenues):
        assert new.base_amount == old.projected_amount
        assert new.base_quarterly.total() == old.projected_amount
        assert new.category == old.category
        assert new.id != old.id


def test_quarterly_splits_add_back_to_annual(two_line_scenario):
    ratios = QuarterlyRatioSet(
        revenue=QuarterlyRatios(q1=0.1, q2=0.2, q3=0.3, q4=0.4),
        expenses=QuarterlyRatios(q1=0.3, q2=0.3, q3=0.2, q4=0.2),
    )
    result = carry_forward_scenario(two_line_scenario, TargetTotals(revenue=1_234_567, expenses=654_321), ratios)

    assert sum(item.projected_amount for item in result.revenues) == 1_234_567
    assert sum(item.projected_amount for item in result.expenses) == 654_321
    for item in result.revenues + result.expenses:
        q1, q2, q3, q4 = item.projected_quarterly.as_list()
        assert q1 + q2 + q3 + q4 == item.projected_amount
        assert all(value == int(value) for value in item.projected_quarterly.as_list()[:3])


def test_projection_supplies_targets_and_ratios():
    projection = NextYearProjection(
        quarterly=NextYearQuarterly(
            q1=NextYearQuarter(revenue=100, expenses=50),
            q2=NextYearQuarter(revenue=100, expenses=50),
            q3=NextYearQuarter(revenue=100, expenses=50),
            q4=NextYearQuarter(revenue=200, expenses=50),
        ),
        summary=NextYearSummary(total_revenue=500, total_expenses=200),
    )

    assert target_totals_from_projection(projection) == TargetTotals(revenue=500, expenses=200)
    ratios = quarterly_ratios_from_projection(projection)
    assert ratios.revenue.as_list() == pytest.approx([0.2, 0.2, 0.2, 0.4])
    assert ratios.expenses.as_list() == pytest.approx([0.25] * 4)


def test_projection_without_quarters_uses_even_ratios():
    projection = NextYearProjection(summary=NextYearSummary(total_revenue=500, total_expenses=200))
    assert quarterly_ratios_from_projection(projection).revenue.as_list() == [0.25] * 4


def test_build_next_year_scenario(two_line_scenario):
    result = carry_forward_scenario(two_line_scenario, TargetTotals(revenue=1_200_000, expenses=660_000))
    scenario = build_next_year_scenario(two_line_scenario, result, focus_projects=["Item A"])

    assert scenario.base_year == 2025
    assert scenario.target_year == 2026
    assert scenario.name == "Reference 2026"
    assert scenario.focus_projects == ["Item A"]
    assert scenario.investments == []
    assert summarize_scenario(scenario).base.total_revenue == 1_000_000
