from __future__ import annotations

import logging
from typing import List, Optional

from ..models.cash_flow import CapitalNeedResult
from ..models.common import QuarterlyAmounts
from ..models.results import QuarterlyBreakdown, ScenarioAnalysis, WorkingCapitalSnapshot
from ..models.scenario import SimulationScenario, SimulationSummary
from ..models.valuation import SECTOR_EBITDA_MULTIPLES, DealConfig, ExitPlan, ValuationConfig, YearMetrics, YearValuation
from ..models.working_capital import WorkingCapitalConfig
from ..utils.numbers import safe_divide
from .cash_flow import compute_capital_need, generate_quarterly_cash_flow, quarterly_cash_periods
from .scenario import quarterly_investments, quarterly_totals, summarize_scenario
from .valuation import calculate_exit_plan, compute_yearly_valuations, get_ebitda_multiple
from .working_capital import calculate_cash_conversion_cycle, calculate_net_working_capital

logger = logging.getLogger(__name__)

# Growth assumed for the exit plan when the scenario has no base revenue.
DEFAULT_USER_GROWTH = 0.30


class ScenarioCalculator:
    def __init__(
        self,
        working_capital: Optional[WorkingCapitalConfig] = None,
        valuation: Optional[ValuationConfig] = None,
        runway_sentinel: int = 999,
    ) -> None:
        self.working_capital = working_capital or WorkingCapitalConfig()
        self.valuation = valuation or ValuationConfig()
        self.runway_sentinel = runway_sentinel

    def run(
        self,
        scenario: SimulationScenario,
        opening_cash: float = 0.0,
        deal: Optional[DealConfig] = None,
        sector: str = "default",
    ) -> ScenarioAnalysis:
        summary = summarize_scenario(scenario)
        revenue_q = quarterly_totals(scenario.revenues)
        expense_q = quarterly_totals(scenario.expenses)
        investment_q = quarterly_investments(scenario.investments)
        deal = deal or scenario.deal_config

        with_investment = self._capital_need(revenue_q, expense_q, investment_q, opening_cash, deal)
        without_investment = self._capital_need(revenue_q, expense_q, QuarterlyAmounts(), opening_cash, deal)

        working_capital = WorkingCapitalSnapshot(
            cash_conversion_cycle=calculate_cash_conversion_cycle(self.working_capital),
            balances=calculate_net_working_capital(
                summary.projected.total_revenue,
                summary.projected.total_expense,
                self.working_capital,
            ),
        )
        cash_flow = generate_quarterly_cash_flow(
            revenue_q,
            expense_q,
            opening_cash,
            self.working_capital,
            annual_capex=investment_q.total(),
        )

        exit_plan: Optional[ExitPlan] = None
        yearly_valuations: List[YearValuation] = []
        if deal is not None:
            exit_plan = self._exit_plan(scenario, summary, deal, sector)
            yearly_valuations = self._yearly_valuations(exit_plan, deal, sector)

        logger.info(
            "Scenario %s analysed: required investment %.2f, self sustaining=%s",
            scenario.id,
            with_investment.required_investment,
            without_investment.self_sustaining,
        )
        return ScenarioAnalysis(
            scenario_id=scenario.id,
            summary=summary,
            quarterly=QuarterlyBreakdown(revenue=revenue_q, expenses=expense_q, investments=investment_q),
            capital_need_with_investment=with_investment,
            capital_need_without_investment=without_investment,
            working_capital=working_capital,
            cash_flow=cash_flow,
            exit_plan=exit_plan,
            yearly_valuations=yearly_valuations,
            valuation=yearly_valuations[-1].valuations if yearly_valuations else None,
        )

    def _capital_need(
        self,
        revenue_q: QuarterlyAmounts,
        expense_q: QuarterlyAmounts,
        investment_q: QuarterlyAmounts,
        opening_cash: float,
        deal: Optional[DealConfig],
    ) -> CapitalNeedResult:
        return compute_capital_need(
            quarterly_cash_periods(revenue_q, expense_q, investment_q),
            starting_cash=opening_cash,
            months_per_period=3,
            safety_margin=deal.safety_margin if deal is not None else 0.0,
            runway_sentinel=self.runway_sentinel,
        )

    def _exit_plan(
        self,
        scenario: SimulationScenario,
        summary: SimulationSummary,
        deal: DealConfig,
        sector: str,
    ) -> ExitPlan:
        base_revenue = summary.base.total_revenue
        if base_revenue > 0:
            growth = safe_divide(summary.projected.total_revenue - base_revenue, base_revenue)
        else:
            growth = DEFAULT_USER_GROWTH
        return calculate_exit_plan(
            deal,
            summary.projected.total_revenue,
            summary.projected.total_expense,
            growth,
            scenario_year=scenario.target_year,
            sector=sector,
        )

    def _yearly_valuations(self, exit_plan: ExitPlan, deal: DealConfig, sector: str) -> List[YearValuation]:
        update = {"sector_multiple": deal.sector_multiple}
        # named sectors use their table multiple; "default" keeps the configured one
        if sector.lower() in SECTOR_EBITDA_MULTIPLES and sector.lower() != "default":
            update["ebitda_multiple"] = get_ebitda_multiple(sector)
        config = self.valuation.model_copy(update=update)
        metrics = [YearMetrics(revenue=year.revenue, expenses=year.expenses) for year in exit_plan.all_years]
        return compute_yearly_valuations(metrics, config)
