from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from ..models.scenario import SimulationScenario
from ..models.sensitivity import (
    DEFAULT_TORNADO_DRIVERS,
    SENSITIVITY_DRIVERS,
    ExpectedValue,
    MonteCarloConfig,
    MonteCarloResult,
    ScenarioMatrix,
    ScenarioMatrixConfig,
    ScenarioOutcome,
    TornadoResult,
)
from ..utils.numbers import safe_divide
from .cash_flow import RUNWAY_SENTINEL, calculate_runway_months
from .valuation import compute_moic

logger = logging.getLogger(__name__)

# Scenario-matrix exits assume this growth for the years after the plan year.
EXIT_GROWTH_RATE = 0.25
EXIT_HORIZON_YEARS = 5


def _projected_totals(scenario: SimulationScenario):
    revenue = sum(item.projected_amount for item in scenario.revenues)
    expenses = sum(item.projected_amount for item in scenario.expenses)
    return revenue, expenses


def _annual_runway(cash: float, revenue: float, expenses: float, sentinel: int) -> int:
    return calculate_runway_months(cash, (expenses - revenue) / 12, sentinel)


def generate_tornado_analysis(
    scenario: SimulationScenario,
    current_cash: float,
    drivers: Sequence[str] = DEFAULT_TORNADO_DRIVERS,
    shock_range: float = 0.10,
    sector_multiple: float = 8.0,
    runway_sentinel: int = RUNWAY_SENTINEL,
) -> List[TornadoResult]:
    """Shock each driver by +/- ``shock_range`` and rank them by valuation swing."""
    base_revenue, base_expenses = _projected_totals(scenario)
    base_scenario_revenue = sum(item.base_amount for item in scenario.revenues)

    results: List[TornadoResult] = []
    for key in drivers:
        driver = SENSITIVITY_DRIVERS.get(key)
        if driver is None:
            logger.warning("Unknown sensitivity driver %s skipped", key)
            continue
        if key == "growth_rate":
            base_value = safe_divide(base_revenue - base_scenario_revenue, base_scenario_revenue) if base_scenario_revenue > 0 else 0.0
        else:
            base_value = driver.base_value

        revenue_shift = base_revenue * shock_range * driver.revenue_elasticity
        expense_shift = base_expenses * shock_range * driver.expense_elasticity
        low_revenue, low_expenses = base_revenue - revenue_shift, base_expenses + expense_shift
        high_revenue, high_expenses = base_revenue + revenue_shift, base_expenses - expense_shift

        valuation_at_low = low_revenue * sector_multiple
        valuation_at_high = high_revenue * sector_multiple
        results.append(
            TornadoResult(
                driver=driver.name,
                base_value=base_value,
                low_value=base_value * (1 - shock_range),
                high_value=base_value * (1 + shock_range),
                valuation_at_low=valuation_at_low,
                valuation_at_high=valuation_at_high,
                valuation_swing=abs(valuation_at_high - valuation_at_low),
                runway_at_low=_annual_runway(current_cash, low_revenue, low_expenses, runway_sentinel),
                runway_at_high=_annual_runway(current_cash, high_revenue, high_expenses, runway_sentinel),
            )
        )
    return sorted(results, key=lambda result: result.valuation_swing, reverse=True)


def _scenario_outcome(
    name: str,
    revenue: float,
    expenses: float,
    current_cash: float,
    investment_amount: float,
    equity_share: float,
    sector_multiple: float,
    probability: float,
    runway_sentinel: int,
) -> ScenarioOutcome:
    exit_revenue = revenue * (1 + EXIT_GROWTH_RATE) ** (EXIT_HORIZON_YEARS - 1)
    moic = compute_moic(exit_revenue * sector_multiple, equity_share, investment_amount)
    irr = moic ** (1 / EXIT_HORIZON_YEARS) - 1 if investment_amount > 0 else 0.0
    return ScenarioOutcome(
        name=name,
        revenue=revenue,
        expenses=expenses,
        net_profit=revenue - expenses,
        valuation=revenue * sector_multiple,
        runway_months=_annual_runway(current_cash + investment_amount, revenue, expenses, runway_sentinel),
        moic=moic,
        irr=irr,
        probability=probability,
    )


def generate_scenario_matrix(
    scenario: SimulationScenario,
    current_cash: float,
    investment_amount: float,
    equity_share: float,
    sector_multiple: float = 8.0,
    config: Optional[ScenarioMatrixConfig] = None,
    runway_sentinel: int = RUNWAY_SENTINEL,
) -> ScenarioMatrix:
    config = config or ScenarioMatrixConfig()
    revenue, expenses = _projected_totals(scenario)
    common = dict(
        current_cash=current_cash,
        investment_amount=investment_amount,
        equity_share=equity_share,
        sector_multiple=sector_multiple,
        runway_sentinel=runway_sentinel,
    )
    return ScenarioMatrix(
        base=_scenario_outcome("Base Case", revenue, expenses, probability=config.base_probability, **common),
        bull=_scenario_outcome(
            "Bull Case",
            revenue * config.bull_revenue_multiplier,
            expenses * config.bull_expense_multiplier,
            probability=config.bull_probability,
            **common,
        ),
        bear=_scenario_outcome(
            "Bear Case",
            revenue * config.bear_revenue_multiplier,
            expenses * config.bear_expense_multiplier,
            probability=config.bear_probability,
            **common,
        ),
    )


def calculate_expected_value(matrix: ScenarioMatrix) -> ExpectedValue:
    """Probability-weighted outcome; probabilities are used as given."""
    outcomes = matrix.outcomes()
    return ExpectedValue(
        revenue=sum(o.revenue * o.probability for o in outcomes),
        net_profit=sum(o.net_profit * o.probability for o in outcomes),
        valuation=sum(o.valuation * o.probability for o in outcomes),
        moic=sum(o.moic * o.probability for o in outcomes),
    )


def run_monte_carlo_simulation(
    base_revenue: float,
    base_expenses: float,
    current_cash: float,
    investment_amount: float,
    config: Optional[MonteCarloConfig] = None,
) -> MonteCarloResult:
    """Year-end cash under normally distributed revenue and expense shocks."""
    config = config or MonteCarloConfig()
    rng = np.random.default_rng(config.seed)
    revenue_factor = np.maximum(config.revenue_floor, 1 + rng.normal(0.0, 1.0, config.iterations) * config.revenue_std_dev)
    expense_factor = np.maximum(config.expense_floor, 1 + rng.normal(0.0, 1.0, config.iterations) * config.expense_std_dev)

    outcomes = np.sort(current_cash + investment_amount + base_revenue * revenue_factor - base_expenses * expense_factor)
    def percentile(p: float) -> float:
        return float(outcomes[int(config.iterations * p)])

    return MonteCarloResult(
        survival_probability=float(np.mean(outcomes > 0)),
        p10=percentile(0.10),
        p50=percentile(0.50),
        p90=percentile(0.90),
        distribution=outcomes.tolist(),
    )
