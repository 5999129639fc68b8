from __future__ import annotations

import pytest

from finplan_app.models.valuation import DealConfig
from finplan_app.models.working_capital import WorkingCapitalConfig
from finplan_app.sample_data import build_sample_scenario
from finplan_app.services.calculator import ScenarioCalculator


def test_sample_scenario_generates_results():
    scenario = build_sample_scenario()
    calculator = ScenarioCalculator()
    result = calculator.run(scenario)

    assert result.summary.projected.total_revenue == 1000000
    assert result.summary.projected.total_expense == 800000
    assert result.quarterly.revenue.total() == result.summary.projected.total_revenue
    assert len(result.cash_flow) == 4
    assert result.exit_plan is not None
    assert result.valuation is not None
    assert result.valuation.weighted > 0


def test_capital_need_with_and_without_investment():
    result = ScenarioCalculator().run(build_sample_scenario())

    with_inv = result.capital_need_with_investment
    assert with_inv.min_cumulative_cash == pytest.approx(-156500)
    assert with_inv.critical_quarter == "Q1"
    assert with_inv.required_investment == pytest.approx(156500)
    assert with_inv.year_end_balance == pytest.approx(-40000)
    assert with_inv.runway_months == 0
    assert not with_inv.self_sustaining

    without_inv = result.capital_need_without_investment
    assert without_inv.min_cumulative_cash == pytest.approx(-6500)
    assert without_inv.break_even_period == "Q2"
    assert without_inv.runway_months == 92


def test_opening_cash_covers_death_valley():
    result = ScenarioCalculator().run(build_sample_scenario(), opening_cash=200000)

    assert result.capital_need_with_investment.self_sustaining
    assert result.capital_need_with_investment.required_investment == 0


def test_deal_safety_margin_scales_required_investment():
    deal = DealConfig(investment_amount=250000, equity_share=0.1, sector_multiple=6.0, safety_margin=0.2)
    result = ScenarioCalculator().run(build_sample_scenario(), deal=deal)

    assert result.capital_need_with_investment.required_investment == pytest.approx(156500 * 1.2)


def test_working_capital_uses_calculator_config():
    calculator = ScenarioCalculator(working_capital=WorkingCapitalConfig(ar_days=73, ap_days=36, inventory_days=0))
    result = calculator.run(build_sample_scenario())

    assert result.working_capital.cash_conversion_cycle == 37
    assert result.working_capital.balances.accounts_receivable == pytest.approx(200000)


def test_valuation_is_year_five_of_exit_plan():
    result = ScenarioCalculator().run(build_sample_scenario())

    assert len(result.yearly_valuations) == 5
    year5 = result.exit_plan.year5_projection
    assert result.valuation.revenue_multiple == pytest.approx(year5.revenue * 6.0)
    assert result.valuation == result.yearly_valuations[-1].valuations


def test_no_deal_skips_exit_plan(sample_scenario):
    scenario = sample_scenario.model_copy(update={"deal_config": None})
    result = ScenarioCalculator().run(scenario)

    assert result.exit_plan is None
    assert result.valuation is None
    assert result.yearly_valuations == []


def test_sector_sets_the_ebitda_multiple():
    saas = ScenarioCalculator().run(build_sample_scenario(), sector="saas")
    unknown = ScenarioCalculator().run(build_sample_scenario(), sector="shipbuilding")

    year5 = saas.yearly_valuations[-1]
    assert saas.valuation.ebitda_multiple == pytest.approx(year5.ebitda * 15)
    # sectors without a table entry keep the configured multiple
    assert unknown.valuation.ebitda_multiple == pytest.approx(unknown.yearly_valuations[-1].ebitda * 8)
