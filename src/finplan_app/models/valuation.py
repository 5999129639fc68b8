from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, confloat

SECTOR_EBITDA_MULTIPLES: Dict[str, float] = {
    "saas": 15.0,
    "fintech": 12.0,
    "ecommerce": 8.0,
    "marketplace": 10.0,
    "b2b": 10.0,
    "b2c": 8.0,
    "default": 10.0,
}

SECTOR_NORMALIZED_GROWTH: Dict[str, float] = {
    "saas": 0.30,
    "fintech": 0.35,
    "ecommerce": 0.25,
    "marketplace": 0.28,
    "default": 0.25,
}

# Revenue multiples keyed like the tables above.
SECTOR_REVENUE_MULTIPLES: Dict[str, float] = {
    "saas": 8.0,
    "fintech": 6.0,
    "marketplace": 5.0,
    "b2b": 4.0,
    "consulting": 3.0,
    "ecommerce": 2.0,
    "default": 8.0,
}


class ValuationWeights(BaseModel):
    revenue_multiple: float = 0.30
    ebitda_multiple: float = 0.25
    dcf: float = 0.30
    vc_method: float = 0.15

    def total(self) -> float:
        return self.revenue_multiple + self.ebitda_multiple + self.dcf + self.vc_method


class ValuationConfig(BaseModel):
    sector_multiple: float = 8.0
    ebitda_multiple: float = 8.0
    discount_rate: float = 0.30
    terminal_growth_rate: float = 0.03
    expected_roi: float = 10.0
    capex_ratio: float = 0.10
    tax_rate: float = 0.22
    weights: ValuationWeights = Field(default_factory=ValuationWeights)


class YearMetrics(BaseModel):
    revenue: float
    expenses: float


class ValuationBreakdown(BaseModel):
    revenue_multiple: float
    ebitda_multiple: float
    dcf: float
    vc_method: float
    weighted: float


class YearValuation(BaseModel):
    revenue: float
    expenses: float
    ebitda: float
    ebitda_margin: float
    free_cash_flow: float
    valuations: ValuationBreakdown


class DealConfig(BaseModel):
    investment_amount: float = 150000.0
    equity_share: confloat(ge=0, le=1) = Field(0.10, description="Investor equity as a fraction (0.10 = 10%)")
    sector_multiple: float = 8.0
    safety_margin: float = Field(0.0, description="Cushion added on top of the death-valley deficit (0.20 = 20%)")


class GrowthStage(str, Enum):
    AGGRESSIVE = "aggressive"
    NORMALIZED = "normalized"


class GrowthConfig(BaseModel):
    aggressive_growth_rate: float
    normalized_growth_rate: float
    transition_year: int = 2
    raw_user_growth_rate: Optional[float] = None


class YearProjection(BaseModel):
    year: int
    actual_year: int
    revenue: float
    expenses: float
    net_profit: float
    cumulative_profit: float
    company_valuation: float
    applied_growth_rate: float
    growth_stage: GrowthStage


class ExitPlan(BaseModel):
    post_money_valuation: float
    year3_projection: YearProjection
    year5_projection: YearProjection
    investor_share_3_year: float
    investor_share_5_year: float
    moic_3_year: float
    moic_5_year: float
    break_even_year: Optional[int]
    growth_config: GrowthConfig
    all_years: List[YearProjection]


class DynamicMultiple(BaseModel):
    base_multiple: float
    adjusted_multiple: float
    rule_of_40_score: float
    adjustment_reason: str


class ValuationRange(BaseModel):
    low: float
    mid: float
    high: float


class UnifiedValuation(BaseModel):
    weighted: float
    range: ValuationRange
    breakdown: ValuationBreakdown
    multiple: DynamicMultiple
    ebitda: float
    ebitda_margin: float
    free_cash_flow: float
    profit_margin: float
    assumptions: List[str] = Field(default_factory=list)
