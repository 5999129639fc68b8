from __future__ import annotations

import logging
import math
from collections import deque
from datetime import date
from typing import Deque, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from ..models.cash_flow import (
    CapitalNeedResult,
    CashPeriod,
    CashReconciliationBridge,
    DeathValley,
    DebtItem,
    MonthlyCashForecast,
    QuarterlyCashFlow,
    TaxFinancingConfig,
    ThirteenWeekCashForecast,
    WeeklyInputs,
)
from ..models.common import QUARTER_LABELS, QuarterlyAmounts
from ..models.working_capital import WorkingCapitalConfig
from ..utils.numbers import round_half_up, safe_divide
from .working_capital import calculate_nwc_change

logger = logging.getLogger(__name__)

RUNWAY_SENTINEL = 999
PAYMENT_PERIOD_MONTHS = {"monthly": 1, "quarterly": 3, "annually": 12}
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def compute_capital_need(
    periods: Sequence[CashPeriod],
    starting_cash: float = 0.0,
    months_per_period: float = 3.0,
    safety_margin: float = 0.0,
    runway_sentinel: int = RUNWAY_SENTINEL,
) -> CapitalNeedResult:
    """Death-valley analysis over an ordered cash series.

    The cumulative balance starts at ``starting_cash``. The critical period is
    the first one holding the minimum balance. Runway divides the closing
    balance by the average monthly burn of the negative periods; with no burn
    it is ``runway_sentinel``.
    """
    if not periods:
        return CapitalNeedResult(
            min_cumulative_cash=starting_cash,
            critical_quarter=None,
            runway_months=runway_sentinel,
            required_investment=max(0.0, -starting_cash) * (1 + safety_margin),
            self_sustaining=starting_cash >= 0,
            year_end_balance=starting_cash,
            burn_rate_monthly=0.0,
            year_end_deficit=starting_cash < 0,
        )

    cumulative = starting_cash
    min_balance = math.inf
    critical_label: Optional[str] = None
    break_even_label: Optional[str] = None
    went_negative = False
    burns: List[float] = []

    for period in periods:
        cumulative += period.net_cash_flow
        if cumulative < min_balance:
            min_balance = cumulative
            critical_label = period.label
        if cumulative < 0:
            went_negative = True
        elif went_negative and break_even_label is None:
            break_even_label = period.label
        if period.net_cash_flow < 0:
            burns.append(-period.net_cash_flow)

    average_burn = safe_divide(sum(burns), len(burns))
    monthly_burn = safe_divide(average_burn, months_per_period)
    if monthly_burn <= 0:
        runway = runway_sentinel
    else:
        runway = max(0, math.floor(cumulative / monthly_burn))

    required = max(0.0, -min_balance) * (1 + safety_margin)
    logger.debug(
        "Capital need: min=%.2f at %s, required=%.2f, runway=%s",
        min_balance,
        critical_label,
        required,
        runway,
    )
    return CapitalNeedResult(
        min_cumulative_cash=min_balance,
        critical_quarter=critical_label,
        runway_months=runway,
        required_investment=required,
        self_sustaining=min_balance >= 0,
        year_end_balance=cumulative,
        burn_rate_monthly=monthly_burn,
        year_end_deficit=cumulative < 0,
        break_even_period=break_even_label,
    )


def quarterly_cash_periods(
    revenue: QuarterlyAmounts,
    expenses: QuarterlyAmounts,
    investments: Optional[QuarterlyAmounts] = None,
) -> List[CashPeriod]:
    investments = investments or QuarterlyAmounts()
    flows = revenue - expenses - investments
    return [CashPeriod(label=label, net_cash_flow=flow) for label, flow in zip(QUARTER_LABELS, flows.as_list())]


def generate_13_week_cash_forecast(
    opening_cash: float,
    weekly_inputs: WeeklyInputs,
    config: WorkingCapitalConfig,
    start_date: date,
) -> List[ThirteenWeekCashForecast]:
    collection_lag = int(round_half_up(config.ar_days / 7))
    payment_lag = int(round_half_up(config.ap_days / 7))
    revenue_queue: Deque[float] = deque([0.0] * collection_lag)
    expense_queue: Deque[float] = deque([0.0] * payment_lag)

    forecast: List[ThirteenWeekCashForecast] = []
    running_balance = opening_cash
    for week in range(1, 14):
        week_start = start_date + relativedelta(weeks=week - 1)
        revenue_queue.append(weekly_inputs.weekly_revenue)
        ar_collections = revenue_queue.popleft()
        expense_queue.append(weekly_inputs.weekly_other_expenses)
        ap_payments = expense_queue.popleft()
        payroll = weekly_inputs.weekly_payroll
        debt_service = weekly_inputs.weekly_debt_service

        net_cash_flow = ar_collections - ap_payments - payroll - debt_service
        closing_balance = running_balance + net_cash_flow
        forecast.append(
            ThirteenWeekCashForecast(
                week=week,
                week_label=f"W{week} ({MONTH_NAMES[week_start.month - 1]} {week_start.day})",
                opening_balance=running_balance,
                ar_collections=ar_collections,
                ap_payments=ap_payments,
                payroll=payroll,
                debt_service=debt_service,
                net_cash_flow=net_cash_flow,
                closing_balance=closing_balance,
            )
        )
        running_balance = closing_balance
    return forecast


def weekly_cash_periods(forecast: Sequence[ThirteenWeekCashForecast]) -> List[CashPeriod]:
    return [CashPeriod(label=f"W{row.week}", net_cash_flow=row.net_cash_flow) for row in forecast]


def monthly_cash_periods(forecast: Sequence[MonthlyCashForecast]) -> List[CashPeriod]:
    return [CashPeriod(label=row.month_name, net_cash_flow=row.net_cash_flow) for row in forecast]


def _value_at(values: Sequence[float], index: int) -> float:
    if index < len(values):
        return values[index]
    return values[-1] if values else 0.0


def _debt_service(debt: DebtItem, month: int) -> float:
    """Interest due in ``month`` (0-based); non-monthly debts pay the accrued interest at period end."""
    period = PAYMENT_PERIOD_MONTHS[debt.payment_frequency]
    if (month + 1) % period:
        return 0.0
    return debt.remaining_balance * debt.interest_rate / 12 * period


def generate_monthly_cash_forecast(
    opening_cash: float,
    monthly_revenue: Sequence[float],
    monthly_expenses: Sequence[float],
    monthly_capex: Sequence[float],
    config: WorkingCapitalConfig,
    tax_config: Optional[TaxFinancingConfig] = None,
) -> List[MonthlyCashForecast]:
    tax_config = tax_config or TaxFinancingConfig()
    collection_lag = max(1, int(round_half_up(config.ar_days / 30)))
    payment_lag = max(1, int(round_half_up(config.ap_days / 30)))
    tax_lag = int(round_half_up(tax_config.tax_payment_lag_days / 30))
    revenue_queue: Deque[float] = deque([0.0] * collection_lag)
    expense_queue: Deque[float] = deque([0.0] * payment_lag)
    tax_queue: Deque[float] = deque([0.0] * tax_lag)

    forecast: List[MonthlyCashForecast] = []
    running_balance = opening_cash
    accumulated_profit = 0.0
    for month in range(12):
        revenue = _value_at(monthly_revenue, month)
        expenses = _value_at(monthly_expenses, month)
        capex = monthly_capex[month] if month < len(monthly_capex) else 0.0

        revenue_queue.append(revenue)
        collections = revenue_queue.popleft()
        expense_queue.append(expenses)
        payments = expense_queue.popleft()
        net_operating = collections - payments

        # tax accrues at quarter end on profit since the last assessment and is paid tax_lag months later
        accumulated_profit += revenue - expenses
        assessed = 0.0
        if (month + 1) % 3 == 0 and accumulated_profit > 0:
            assessed = accumulated_profit * tax_config.corporate_tax_rate
            accumulated_profit = 0.0
        tax_queue.append(assessed)
        taxes = tax_queue.popleft()
        debt_service = sum(_debt_service(debt, month) for debt in tax_config.debt_schedule)

        net_cash_flow = net_operating - capex - taxes - debt_service
        closing_balance = running_balance + net_cash_flow
        forecast.append(
            MonthlyCashForecast(
                month=month + 1,
                month_name=MONTH_NAMES[month],
                opening_balance=running_balance,
                collections=collections,
                payments=payments,
                net_operating=net_operating,
                capex=capex,
                taxes=taxes,
                debt_service=debt_service,
                net_cash_flow=net_cash_flow,
                closing_balance=closing_balance,
            )
        )
        running_balance = closing_balance
    return forecast


def generate_quarterly_cash_flow(
    quarterly_revenue: QuarterlyAmounts,
    quarterly_expenses: QuarterlyAmounts,
    opening_cash: float,
    config: WorkingCapitalConfig,
    annual_capex: float = 0.0,
    annual_depreciation: float = 0.0,
) -> List[QuarterlyCashFlow]:
    quarterly_capex = annual_capex / 4
    quarterly_depreciation = annual_depreciation / 4
    running_cash = opening_cash
    prior_revenue = 0.0
    prior_expenses = 0.0
    rows: List[QuarterlyCashFlow] = []

    for label, revenue, expenses in zip(QUARTER_LABELS, quarterly_revenue.as_list(), quarterly_expenses.as_list()):
        operating_profit = revenue - expenses
        # annualise, take the NWC delta, then bring it back to a quarter
        nwc_change = calculate_nwc_change(revenue * 4, expenses * 4, prior_revenue * 4, prior_expenses * 4, config) / 4
        operating_cash_flow = operating_profit + quarterly_depreciation - nwc_change
        free_cash_flow = operating_cash_flow - quarterly_capex
        closing_cash = running_cash + free_cash_flow
        rows.append(
            QuarterlyCashFlow(
                quarter=label,
                revenue=revenue,
                expenses=expenses,
                operating_profit=operating_profit,
                depreciation=quarterly_depreciation,
                nwc_change=nwc_change,
                operating_cash_flow=operating_cash_flow,
                capex=quarterly_capex,
                free_cash_flow=free_cash_flow,
                opening_cash=running_cash,
                closing_cash=closing_cash,
            )
        )
        running_cash = closing_cash
        prior_revenue = revenue
        prior_expenses = expenses
    return rows


def reconcile_pnl_to_cash(
    net_income: float,
    depreciation: float,
    amortization: float,
    change_in_ar: float,
    change_in_ap: float,
    change_in_inventory: float,
    capex: float,
    debt_proceeds: float,
    debt_repayments: float,
    opening_cash: float,
) -> CashReconciliationBridge:
    ebitda = net_income + depreciation + amortization
    operating_cash_flow = ebitda - change_in_ar + change_in_ap - change_in_inventory
    investing_cash_flow = -capex
    financing_cash_flow = debt_proceeds - debt_repayments
    net_change_in_cash = operating_cash_flow + investing_cash_flow + financing_cash_flow
    return CashReconciliationBridge(
        net_income=net_income,
        add_depreciation=depreciation,
        add_amortization=amortization,
        ebitda=ebitda,
        change_in_ar=change_in_ar,
        change_in_ap=change_in_ap,
        change_in_inventory=change_in_inventory,
        operating_cash_flow=operating_cash_flow,
        capex=capex,
        investing_cash_flow=investing_cash_flow,
        debt_proceeds=debt_proceeds,
        debt_repayments=debt_repayments,
        financing_cash_flow=financing_cash_flow,
        net_change_in_cash=net_change_in_cash,
        ending_cash=opening_cash + net_change_in_cash,
    )


def calculate_runway_months(current_cash: float, monthly_burn_rate: float, sentinel: int = RUNWAY_SENTINEL) -> int:
    if monthly_burn_rate <= 0:
        return sentinel
    return max(0, math.floor(current_cash / monthly_burn_rate))


def find_death_valley(closing_balances: Sequence[float]) -> DeathValley:
    if not closing_balances:
        return DeathValley(min_cash=0.0, period=None)
    min_index = min(range(len(closing_balances)), key=closing_balances.__getitem__)
    return DeathValley(min_cash=closing_balances[min_index], period=min_index + 1)
