from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from .models.cap_table import CapTableEntry, DealTerms, FutureRound
from .models.cash_flow import (
    CapitalNeedResult,
    CashPeriod,
    MonthlyCashForecast,
    TaxFinancingConfig,
    ThirteenWeekCashForecast,
    WeeklyInputs,
)
from .models.results import ScenarioAnalysis
from .models.scenario import CarryForwardResult, NextYearProjection, QuarterlyRatioSet, SimulationScenario, TargetTotals
from .models.sensitivity import (
    DEFAULT_TORNADO_DRIVERS,
    ExpectedValue,
    MonteCarloConfig,
    ScenarioMatrix,
    ScenarioMatrixConfig,
    TornadoResult,
)
from .models.valuation import DealConfig, ValuationBreakdown, ValuationConfig, YearMetrics, YearValuation
from .models.working_capital import NetWorkingCapital, WorkingCapitalConfig


class ScenarioCreateRequest(BaseModel):
    scenario: SimulationScenario


class ScenarioCreateResponse(BaseModel):
    scenario_id: str
    version: int


class ScenarioListResponse(BaseModel):
    scenarios: List[str]


class ScenarioRunRequest(BaseModel):
    scenario_id: Optional[str] = None
    scenario: Optional[SimulationScenario] = None
    opening_cash: float = 0.0
    deal: Optional[DealConfig] = None
    sector: str = "default"


class ScenarioRunResponse(BaseModel):
    result: ScenarioAnalysis


class CarryForwardRequest(BaseModel):
    targets: Optional[TargetTotals] = None
    projection: Optional[NextYearProjection] = Field(default=None, description="Upstream next-year forecast; supplies targets and ratios when given")
    quarterly_ratios: Optional[QuarterlyRatioSet] = None
    focus_projects: List[str] = Field(default_factory=list)
    name: Optional[str] = None
    save: bool = False


class CarryForwardResponse(BaseModel):
    result: CarryForwardResult
    scenario: SimulationScenario


class WorkingCapitalRequest(BaseModel):
    annual_revenue: float
    annual_expenses: float
    config: Optional[WorkingCapitalConfig] = None


class WorkingCapitalResponse(BaseModel):
    cash_conversion_cycle: int
    balances: NetWorkingCapital


class CapitalNeedRequest(BaseModel):
    periods: List[CashPeriod]
    starting_cash: float = 0.0
    months_per_period: float = 3.0
    safety_margin: float = 0.0


class ThirteenWeekRequest(BaseModel):
    opening_cash: float
    inputs: WeeklyInputs
    start_date: date
    config: Optional[WorkingCapitalConfig] = None


class ThirteenWeekResponse(BaseModel):
    forecast: List[ThirteenWeekCashForecast]
    capital_need: CapitalNeedResult


class MonthlyForecastRequest(BaseModel):
    opening_cash: float = 0.0
    monthly_revenue: List[float]
    monthly_expenses: List[float]
    monthly_capex: List[float] = Field(default_factory=list)
    config: Optional[WorkingCapitalConfig] = None
    tax: TaxFinancingConfig = Field(default_factory=TaxFinancingConfig)


class MonthlyForecastResponse(BaseModel):
    forecast: List[MonthlyCashForecast]
    capital_need: CapitalNeedResult


class ReconciliationRequest(BaseModel):
    net_income: float
    depreciation: float = 0.0
    amortization: float = 0.0
    change_in_ar: float = 0.0
    change_in_ap: float = 0.0
    change_in_inventory: float = 0.0
    capex: float = 0.0
    debt_proceeds: float = 0.0
    debt_repayments: float = 0.0
    opening_cash: float = 0.0

class ValuationRequest(BaseModel):
    years: List[YearMetrics]
    config: Optional[ValuationConfig] = None


class ValuationResponse(BaseModel):
    valuation: ValuationBreakdown
    yearly: List[YearValuation]


class MoicRequest(BaseModel):
    company_valuation: float
    equity_share: float
    investment_amount: float


class MoicResponse(BaseModel):
    moic: float


class ExitPlanRequest(BaseModel):
    deal: DealConfig = Field(default_factory=DealConfig)
    year1_revenue: float
    year1_expenses: float
    growth_rate: float
    scenario_year: int
    sector: str = "default"


class ExitWaterfallRequest(BaseModel):
    exit_value: float
    cap_table: List[CapTableEntry]
    terms: DealTerms = Field(default_factory=DealTerms)
    investment_amount: float


class DilutionPathRequest(BaseModel):
    cap_table: List[CapTableEntry]
    future_rounds: List[FutureRound]
    esop_expansion_per_round: float = 0.05


class WorkingCapitalNeedsRequest(BaseModel):
    annual_expenses: float
    receivables: float = 0.0
    payables: float = 0.0
    safety_months: Optional[float] = Field(default=None, ge=0, description="Defaults to the configured safety buffer")


class UnifiedValuationRequest(BaseModel):
    revenue: float
    expenses: float
    growth_rate: float
    sector: str = "default"
    config: Optional[ValuationConfig] = None


class SensitivityRequest(BaseModel):
    scenario_id: Optional[str] = None
    scenario: Optional[SimulationScenario] = None
    current_cash: float = 0.0
    sector_multiple: float = 8.0


class TornadoRequest(SensitivityRequest):
    drivers: List[str] = Field(default_factory=lambda: list(DEFAULT_TORNADO_DRIVERS))
    shock_range: float = Field(0.10, gt=0, lt=1)


class TornadoResponse(BaseModel):
    results: List[TornadoResult]


class ScenarioMatrixRequest(SensitivityRequest):
    investment_amount: float = 0.0
    equity_share: float = Field(0.0, ge=0, le=1)
    config: Optional[ScenarioMatrixConfig] = None


class ScenarioMatrixResponse(BaseModel):
    matrix: ScenarioMatrix
    expected_value: ExpectedValue


class MonteCarloRequest(BaseModel):
    base_revenue: float
    base_expenses: float
    current_cash: float = 0.0
    investment_amount: float = 0.0
    config: MonteCarloConfig = Field(default_factory=MonteCarloConfig)
