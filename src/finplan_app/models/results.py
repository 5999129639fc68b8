from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from .cash_flow import CapitalNeedResult, QuarterlyCashFlow
from .common import QuarterlyAmounts
from .scenario import SimulationSummary
from .valuation import ExitPlan, ValuationBreakdown, YearValuation
from .working_capital import NetWorkingCapital


class WorkingCapitalSnapshot(BaseModel):
    cash_conversion_cycle: int
    balances: NetWorkingCapital


class QuarterlyBreakdown(BaseModel):
    revenue: QuarterlyAmounts
    expenses: QuarterlyAmounts
    investments: QuarterlyAmounts


class ScenarioAnalysis(BaseModel):
    scenario_id: str
    summary: SimulationSummary
    quarterly: QuarterlyBreakdown
    capital_need_with_investment: CapitalNeedResult
    capital_need_without_investment: CapitalNeedResult
    working_capital: WorkingCapitalSnapshot
    cash_flow: List[QuarterlyCashFlow]
    exit_plan: Optional[ExitPlan] = None
    yearly_valuations: List[YearValuation] = []
    valuation: Optional[ValuationBreakdown] = None
