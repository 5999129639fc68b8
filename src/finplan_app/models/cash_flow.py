from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class CashPeriod(BaseModel):
    label: str
    net_cash_flow: float


class CapitalNeedResult(BaseModel):
    min_cumulative_cash: float
    critical_quarter: Optional[str]
    runway_months: int
    required_investment: float
    self_sustaining: bool
    year_end_balance: float
    burn_rate_monthly: float
    year_end_deficit: bool = False
    break_even_period: Optional[str] = None


class WeeklyInputs(BaseModel):
    weekly_revenue: float = 0.0
    weekly_payroll: float = 0.0
    weekly_other_expenses: float = 0.0
    weekly_debt_service: float = 0.0


class ThirteenWeekCashForecast(BaseModel):
    week: int
    week_label: str
    opening_balance: float
    ar_collections: float
    ap_payments: float
    payroll: float
    other_operating: float = 0.0
    debt_service: float
    net_cash_flow: float
    closing_balance: float


class DebtItem(BaseModel):
    name: str
    principal: float
    interest_rate: float
    remaining_balance: float
    payment_frequency: Literal["monthly", "quarterly", "annually"] = "monthly"


class TaxFinancingConfig(BaseModel):
    corporate_tax_rate: float = 0.22
    tax_payment_lag_days: int = Field(30, ge=0)
    debt_schedule: List[DebtItem] = Field(default_factory=list)


class MonthlyCashForecast(BaseModel):
    month: int
    month_name: str
    opening_balance: float
    collections: float
    payments: float
    net_operating: float
    capex: float
    taxes: float
    debt_service: float
    net_cash_flow: float
    closing_balance: float


class QuarterlyCashFlow(BaseModel):
    quarter: str
    revenue: float
    expenses: float
    operating_profit: float
    depreciation: float
    nwc_change: float
    operating_cash_flow: float
    capex: float
    free_cash_flow: float
    opening_cash: float
    closing_cash: float


class CashReconciliationBridge(BaseModel):
    net_income: float
    add_depreciation: float
    add_amortization: float
    ebitda: float
    change_in_ar: float
    change_in_ap: float
    change_in_inventory: float
    operating_cash_flow: float
    capex: float
    investing_cash_flow: float
    debt_proceeds: float
    debt_repayments: float
    financing_cash_flow: float
    net_change_in_cash: float
    ending_cash: float


class DeathValley(BaseModel):
    min_cash: float
    period: Optional[int]
