from __future__ import annotations

import pytest

from finplan_app.models.valuation import DealConfig, GrowthStage, ValuationConfig, ValuationWeights, YearMetrics
from finplan_app.services.valuation import (
    TERMINAL_FCF_MULTIPLE,
    build_growth_config,
    calculate_dcf_valuation,
    calculate_dynamic_multiple,
    calculate_ebitda,
    calculate_ebitda_margin,
    calculate_exit_plan,
    calculate_fcf,
    calculate_unified_valuation,
    calculate_vc_valuation,
    calculate_weighted_valuation,
    compute_moic,
    compute_valuations,
    compute_yearly_valuations,
    get_ebitda_multiple,
    get_revenue_multiple,
)


def test_ebitda_and_margin():
    ebitda = calculate_ebitda(1000, 600)
    assert ebitda == 400
    assert calculate_ebitda_margin(ebitda, 1000) == pytest.approx(40)
    assert calculate_ebitda_margin(ebitda, 0) == 0


def test_fcf_after_tax_and_capex():
    assert calculate_fcf(400, 1000, capex_ratio=0.1, tax_rate=0.25) == pytest.approx(200)


def test_dcf_discounts_flows_and_terminal_value():
    value = calculate_dcf_valuation([100, 100], discount_rate=0.10, terminal_growth_rate=0.0)
    expected = 100 / 1.1 + 100 / 1.21 + (100 / 0.10) / 1.21
    assert value == pytest.approx(expected)


def test_dcf_falls_back_when_discount_not_above_growth():
    value = calculate_dcf_valuation([100], discount_rate=0.03, terminal_growth_rate=0.03)
    assert value == pytest.approx(100 / 1.03 + 100 * TERMINAL_FCF_MULTIPLE)


def test_dcf_empty_series():
    assert calculate_dcf_valuation([], 0.3, 0.03) == 0


def test_vc_valuation_guards_roi():
    assert calculate_vc_valuation(1000, 10) == 100
    assert calculate_vc_valuation(1000, 0) == 0


def test_weighted_valuation_normalises_weights():
    weights = ValuationWeights(revenue_multiple=1, ebitda_multiple=1, dcf=0, vc_method=0)
    assert calculate_weighted_valuation(100, 300, 999, 999, weights) == pytest.approx(200)

    zero = ValuationWeights(revenue_multiple=0, ebitda_multiple=0, dcf=0, vc_method=0)
    assert calculate_weighted_valuation(100, 300, 999, 999, zero) == 0


def test_compute_valuations_uses_terminal_year():
    years = [YearMetrics(revenue=500, expenses=400), YearMetrics(revenue=1000, expenses=600)]
    breakdown = compute_valuations(years, ValuationConfig())

    assert breakdown.revenue_multiple == pytest.approx(8000)
    assert breakdown.ebitda_multiple == pytest.approx(3200)
    assert breakdown.vc_method == pytest.approx(800)
    assert breakdown.dcf > 0
    expected = 0.30 * 8000 + 0.25 * 3200 + 0.30 * breakdown.dcf + 0.15 * 800
    assert breakdown.weighted == pytest.approx(expected)


def test_compute_valuations_empty():
    assert compute_valuations([]).weighted == 0


def test_yearly_valuations_phase_in_dcf():
    years = [YearMetrics(revenue=500, expenses=400), YearMetrics(revenue=1000, expenses=600)]
    yearly = compute_yearly_valuations(years)
    terminal = compute_valuations(years)

    assert len(yearly) == 2
    assert yearly[0].valuations.dcf == pytest.approx(terminal.dcf / 2)
    assert yearly[-1].valuations == terminal
    assert yearly[0].ebitda_margin == pytest.approx(20)


def test_moic():
    assert compute_moic(10_000_000, 0.1, 250_000) == pytest.approx(4)
    assert compute_moic(10_000_000, 0.1, 0) == 0


def test_sector_lookups_are_case_insensitive():
    assert get_ebitda_multiple("SaaS") == 15
    assert get_ebitda_multiple("unknown") == 10


def test_growth_config_clamps_user_growth():
    assert build_growth_config(0.05).aggressive_growth_rate == 0.10
    assert build_growth_config(2.0).aggressive_growth_rate == 1.0
    assert build_growth_config(0.5, "fintech").normalized_growth_rate == 0.35


def test_exit_plan_projects_five_years():
    deal = DealConfig(investment_amount=250000, equity_share=0.1, sector_multiple=6)
    plan = calculate_exit_plan(deal, 1_000_000, 800_000, 0.25, scenario_year=2026)

    assert plan.post_money_valuation == pytest.approx(2_500_000)
    assert len(plan.all_years) == 5
    assert [year.actual_year for year in plan.all_years] == [2027, 2028, 2029, 2030, 2031]
    assert plan.all_years[0].applied_growth_rate == pytest.approx(0.25 * 0.85)
    assert plan.all_years[0].revenue == pytest.approx(1_000_000 * (1 + 0.25 * 0.85))
    assert plan.all_years[1].growth_stage == GrowthStage.AGGRESSIVE
    assert plan.all_years[2].growth_stage == GrowthStage.NORMALIZED
    assert plan.year5_projection.company_valuation == pytest.approx(plan.year5_projection.revenue * 6)
    assert plan.moic_5_year == pytest.approx(plan.investor_share_5_year / 250000)
    assert plan.break_even_year == 1


def test_revenue_multiple_by_sector():
    assert get_revenue_multiple("SaaS") == 8
    assert get_revenue_multiple("consulting") == 3
    assert get_revenue_multiple("shipbuilding") == get_revenue_multiple("default")


@pytest.mark.parametrize(
    "sector, growth, margin, adjusted",
    [
        ("saas", 0.50, 0.20, 8 * 1.30),
        ("saas", 0.30, 0.15, 8 * 1.15),
        ("b2b", 0.20, 0.05, 4 * 1.00),
        ("consulting", 0.05, 0.05, 3 * 0.80),
    ],
)
def test_dynamic_multiple_follows_rule_of_40(sector, growth, margin, adjusted):
    multiple = calculate_dynamic_multiple(sector, growth, margin)

    assert multiple.rule_of_40_score == pytest.approx((growth + margin) * 100)
    assert multiple.adjusted_multiple == pytest.approx(adjusted)


def test_unified_valuation_blends_methods_with_range():
    result = calculate_unified_valuation(1_000_000, 800_000, 0.30, sector="saas")

    assert result.profit_margin == pytest.approx(20)
    assert result.multiple.rule_of_40_score == pytest.approx(50)
    assert result.breakdown.revenue_multiple == pytest.approx(1_000_000 * 8 * 1.15)
    assert result.breakdown.ebitda_multiple == pytest.approx(200_000 * 15)
    assert result.breakdown.dcf > 0
    assert result.weighted == result.breakdown.weighted
    assert result.range.mid == result.weighted
    assert result.range.low == pytest.approx(result.weighted * 0.75)
    assert result.range.high == pytest.approx(result.weighted * 1.25)
    assert any("Rule of 40" in line for line in result.assumptions)


def test_unified_valuation_without_revenue_has_zero_margin():
    result = calculate_unified_valuation(0, 50_000, 0.10)

    assert result.profit_margin == 0
    assert result.breakdown.revenue_multiple == 0
    assert result.ebitda == -50_000
