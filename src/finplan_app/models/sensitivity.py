from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, confloat, conint


class SensitivityDriver(BaseModel):
    """An operating driver and how a 1% move in it shifts revenue and expenses.

    Elasticities are magnitudes: the downside case always lowers revenue and
    raises expenses, the upside case does the reverse.
    """

    name: str
    base_value: float
    revenue_elasticity: float = 0.0
    expense_elasticity: float = 0.0


SENSITIVITY_DRIVERS: Dict[str, SensitivityDriver] = {
    "growth_rate": SensitivityDriver(name="Revenue Growth", base_value=0.0, revenue_elasticity=1.0),
    "gross_margin": SensitivityDriver(name="Gross Margin", base_value=0.70, expense_elasticity=0.5),
    "churn": SensitivityDriver(name="Customer Churn", base_value=0.05, revenue_elasticity=1.5),
    "cac": SensitivityDriver(name="Customer Acquisition Cost", base_value=1000, expense_elasticity=0.2),
    "headcount": SensitivityDriver(name="Headcount", base_value=10, expense_elasticity=0.6),
    "price": SensitivityDriver(name="Average Price", base_value=100, revenue_elasticity=0.8),
}
DEFAULT_TORNADO_DRIVERS = ("growth_rate", "gross_margin", "churn", "cac")


class TornadoResult(BaseModel):
    driver: str
    base_value: float
    low_value: float
    high_value: float
    valuation_at_low: float
    valuation_at_high: float
    valuation_swing: float
    runway_at_low: int
    runway_at_high: int


class ScenarioMatrixConfig(BaseModel):
    bull_revenue_multiplier: float = 1.30
    bull_expense_multiplier: float = 1.10
    bear_revenue_multiplier: float = 0.70
    bear_expense_multiplier: float = 1.15
    bull_probability: float = 0.25
    base_probability: float = 0.50
    bear_probability: float = 0.25


class ScenarioOutcome(BaseModel):
    name: str
    revenue: float
    expenses: float
    net_profit: float
    valuation: float
    runway_months: int
    moic: float
    irr: float
    probability: float


class ScenarioMatrix(BaseModel):
    base: ScenarioOutcome
    bull: ScenarioOutcome
    bear: ScenarioOutcome

    def outcomes(self) -> List[ScenarioOutcome]:
        return [self.bull, self.base, self.bear]


class ExpectedValue(BaseModel):
    revenue: float
    net_profit: float
    valuation: float
    moic: float


class MonteCarloConfig(BaseModel):
    iterations: conint(ge=1) = 1000
    revenue_std_dev: confloat(ge=0) = 0.2
    expense_std_dev: confloat(ge=0) = 0.1
    # revenue and expense draws never fall below these fractions of base
    revenue_floor: float = 0.5
    expense_floor: float = 0.8
    seed: Optional[int] = None


class MonteCarloResult(BaseModel):
    survival_probability: float
    p10: float
    p50: float
    p90: float
    distribution: List[float] = Field(default_factory=list)
