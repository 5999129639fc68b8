from __future__ import annotations

from ..models.working_capital import NetWorkingCapital, WorkingCapitalConfig, WorkingCapitalNeeds

# Day-count basis for every balance derived from annual flows.
DAYS_IN_YEAR = 365


def calculate_cash_conversion_cycle(config: WorkingCapitalConfig) -> int:
    """CCC = DSO + DIO - DPO. Negative means customers pay before suppliers are paid."""
    return config.ar_days + (config.inventory_days or 0) - config.ap_days


def calculate_net_working_capital(
    annual_revenue: float,
    annual_expenses: float,
    config: WorkingCapitalConfig,
) -> NetWorkingCapital:
    daily_revenue = annual_revenue / DAYS_IN_YEAR
    daily_expenses = annual_expenses / DAYS_IN_YEAR
    accounts_receivable = daily_revenue * config.ar_days
    accounts_payable = daily_expenses * config.ap_days
    inventory = daily_expenses * (config.inventory_days or 0)
    # deferred revenue is a liability, netted like payables
    deferred_revenue = daily_revenue * (config.deferred_revenue_days or 0)
    return NetWorkingCapital(
        accounts_receivable=accounts_receivable,
        accounts_payable=accounts_payable,
        inventory=inventory,
        deferred_revenue=deferred_revenue,
        net_working_capital=accounts_receivable + inventory - accounts_payable - deferred_revenue,
    )


def calculate_nwc_change(
    current_revenue: float,
    current_expenses: float,
    prior_revenue: float,
    prior_expenses: float,
    config: WorkingCapitalConfig,
) -> float:
    current = calculate_net_working_capital(current_revenue, current_expenses, config)
    prior = calculate_net_working_capital(prior_revenue, prior_expenses, config)
    return current.net_working_capital - prior.net_working_capital


def calculate_working_capital_needs(
    annual_expenses: float,
    receivables: float = 0.0,
    payables: float = 0.0,
    safety_months: float = 2.5,
) -> WorkingCapitalNeeds:
    monthly_expense = annual_expenses / 12
    return WorkingCapitalNeeds(
        receivables=receivables,
        payables=payables,
        inventory_needs=0.0,
        net_working_capital=receivables - payables,
        monthly_operating_cash=monthly_expense,
        safety_buffer=monthly_expense * safety_months,
        safety_months=safety_months,
    )
