from __future__ import annotations

from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, conint

from ..utils.numbers import distribute_by_ratio
from .common import QuarterlyAmounts, QuarterlyRatios, ScenarioType
from .valuation import DealConfig


def _new_id() -> str:
    return uuid4().hex


class ProjectionItem(BaseModel):
    id: str = Field(default_factory=_new_id)
    category: str
    base_amount: float = 0.0
    projected_amount: float = 0.0
    base_quarterly: Optional[QuarterlyAmounts] = None
    projected_quarterly: Optional[QuarterlyAmounts] = None
    description: str = ""
    is_new: bool = False
    start_month: Optional[conint(ge=1, le=12)] = None

    def quarterly(self, projected: bool = True) -> QuarterlyAmounts:
        amount = self.projected_amount if projected else self.base_amount
        quarterly = self.projected_quarterly if projected else self.base_quarterly
        if quarterly is not None:
            return quarterly
        if projected and self.is_new and self.start_month is not None:
            # spread evenly over the months the line is live
            live_months = [max(0, min(3, 3 * q - self.start_month + 1)) for q in range(1, 5)]
            return QuarterlyAmounts.from_list(distribute_by_ratio(amount, live_months))
        return QuarterlyAmounts.even(amount)


class InvestmentItem(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    amount: float
    description: str = ""
    month: conint(ge=1, le=12) = 1
    quarterly: Optional[QuarterlyAmounts] = None


class SimulationScenario(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    base_year: int
    target_year: int
    revenues: List[ProjectionItem] = Field(default_factory=list)
    expenses: List[ProjectionItem] = Field(default_factory=list)
    investments: List[InvestmentItem] = Field(default_factory=list)
    assumed_exchange_rate: float = 1.0
    notes: str = ""
    scenario_type: ScenarioType = ScenarioType.POSITIVE
    version: int = 1
    focus_projects: List[str] = Field(default_factory=list)
    deal_config: Optional[DealConfig] = None


class PeriodTotals(BaseModel):
    total_revenue: float
    total_expense: float
    net_profit: float
    profit_margin: float


class GrowthMetrics(BaseModel):
    revenue_growth: float
    expense_growth: float
    net_profit_growth: float


class SimulationSummary(BaseModel):
    base: PeriodTotals
    projected: PeriodTotals
    growth: GrowthMetrics


class NextYearQuarter(BaseModel):
    revenue: float = 0.0
    expenses: float = 0.0
    cash_flow: float = 0.0
    key_event: str = ""


class NextYearQuarterly(BaseModel):
    q1: NextYearQuarter = Field(default_factory=NextYearQuarter)
    q2: NextYearQuarter = Field(default_factory=NextYearQuarter)
    q3: NextYearQuarter = Field(default_factory=NextYearQuarter)
    q4: NextYearQuarter = Field(default_factory=NextYearQuarter)

    def as_list(self) -> List[NextYearQuarter]:
        return [self.q1, self.q2, self.q3, self.q4]


class NextYearSummary(BaseModel):
    total_revenue: float
    total_expenses: float
    net_profit: float = 0.0
    ending_cash: float = 0.0


class NextYearProjection(BaseModel):
    """Upstream next-year forecast (as produced by the analysis service)."""

    strategy_note: str = ""
    quarterly: NextYearQuarterly = Field(default_factory=NextYearQuarterly)
    summary: NextYearSummary
    projection_year: Optional[int] = None


class TargetTotals(BaseModel):
    revenue: float
    expenses: float


class QuarterlyRatioSet(BaseModel):
    revenue: QuarterlyRatios = Field(default_factory=QuarterlyRatios)
    expenses: QuarterlyRatios = Field(default_factory=QuarterlyRatios)


class GrowthFloorPolicy(BaseModel):
    """Guard against implausibly low upstream revenue targets.

    When year-over-year revenue growth is at or below ``threshold`` the target
    is treated as a year mismatch: revenue is floored at ``revenue_floor``
    growth and expenses at ``revenue_floor * expense_leverage``.
    """

    enabled: bool = True
    threshold: float = 0.05
    revenue_floor: float = 0.20
    expense_leverage: float = 0.6

    @property
    def expense_floor(self) -> float:
        return self.revenue_floor * self.expense_leverage


class CarryForwardResult(BaseModel):
    revenues: List[ProjectionItem]
    expenses: List[ProjectionItem]
    revenue_target: float
    expense_target: float
    fallback_applied: bool = False
    focus_applied: bool = False
