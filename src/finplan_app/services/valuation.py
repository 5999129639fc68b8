from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..models.valuation import (
    SECTOR_EBITDA_MULTIPLES,
    SECTOR_NORMALIZED_GROWTH,
    SECTOR_REVENUE_MULTIPLES,
    DealConfig,
    DynamicMultiple,
    ExitPlan,
    GrowthConfig,
    GrowthStage,
    UnifiedValuation,
    ValuationBreakdown,
    ValuationConfig,
    ValuationRange,
    ValuationWeights,
    YearMetrics,
    YearProjection,
    YearValuation,
)
from ..utils.numbers import safe_divide

logger = logging.getLogger(__name__)

# Expenses grow at this fraction of revenue growth (operating leverage).
EXPENSE_GROWTH_ELASTICITY = 0.6
# Terminal value falls back to this multiple of the last FCF when r <= g.
TERMINAL_FCF_MULTIPLE = 5.0
# (minimum score, multiple adjustment, label), highest band first.
RULE_OF_40_BANDS = (
    (60.0, 1.30, "exceptional (>= 60)"),
    (40.0, 1.15, "meets the Rule of 40"),
    (20.0, 1.00, "below the Rule of 40"),
)
RULE_OF_40_PENALTY = (0.80, "well below the Rule of 40 (< 20)")
# Yearly decay applied to the growth rate in the unified DCF projection.
UNIFIED_GROWTH_DECAY = 0.85
VALUATION_RANGE_SPREAD = 0.25


def calculate_ebitda(revenue: float, expenses: float) -> float:
    return revenue - expenses


def calculate_ebitda_margin(ebitda: float, revenue: float) -> float:
    if revenue <= 0:
        return 0.0
    return ebitda / revenue * 100


def calculate_fcf(ebitda: float, revenue: float, capex_ratio: float = 0.10, tax_rate: float = 0.22) -> float:
    return ebitda * (1 - tax_rate) - revenue * capex_ratio


def calculate_dcf_valuation(fcf_projections: Sequence[float], discount_rate: float, terminal_growth_rate: float) -> float:
    """PV = Σ FCF_t / (1 + r)^t for t = 1..n, plus the discounted Gordon terminal value."""
    if not fcf_projections:
        return 0.0
    pv_fcf = sum(fcf / (1 + discount_rate) ** (t + 1) for t, fcf in enumerate(fcf_projections))
    terminal_fcf = fcf_projections[-1]
    if discount_rate <= terminal_growth_rate:
        logger.info("Discount rate %.3f <= terminal growth %.3f, using %.0fx terminal FCF", discount_rate, terminal_growth_rate, TERMINAL_FCF_MULTIPLE)
        return pv_fcf + terminal_fcf * TERMINAL_FCF_MULTIPLE
    terminal_value = terminal_fcf * (1 + terminal_growth_rate) / (discount_rate - terminal_growth_rate)
    pv_terminal = terminal_value / (1 + discount_rate) ** len(fcf_projections)
    return pv_fcf + pv_terminal


def calculate_vc_valuation(exit_valuation: float, expected_roi: float) -> float:
    if expected_roi <= 0:
        return 0.0
    return exit_valuation / expected_roi


def calculate_weighted_valuation(
    revenue_multiple: float,
    ebitda_multiple: float,
    dcf: float,
    vc_method: float,
    weights: ValuationWeights,
) -> float:
    total_weight = weights.total()
    if total_weight == 0:
        return 0.0
    return (
        revenue_multiple * weights.revenue_multiple
        + ebitda_multiple * weights.ebitda_multiple
        + dcf * weights.dcf
        + vc_method * weights.vc_method
    ) / total_weight


def _free_cash_flows(yearly_metrics: Sequence[YearMetrics], config: ValuationConfig) -> List[float]:
    flows = []
    for year in yearly_metrics:
        ebitda = calculate_ebitda(year.revenue, year.expenses)
        flows.append(calculate_fcf(ebitda, year.revenue, config.capex_ratio, config.tax_rate))
    return flows


def compute_valuations(yearly_metrics: Sequence[YearMetrics], config: Optional[ValuationConfig] = None) -> ValuationBreakdown:
    """Blend the four methods for the terminal year of ``yearly_metrics``.

    Multiples use the terminal year; DCF discounts every year's free cash
    flow; the VC method prices the terminal revenue-multiple exit at the
    investor's target money multiple.
    """
    config = config or ValuationConfig()
    if not yearly_metrics:
        return ValuationBreakdown(revenue_multiple=0.0, ebitda_multiple=0.0, dcf=0.0, vc_method=0.0, weighted=0.0)
    terminal = yearly_metrics[-1]
    ebitda = calculate_ebitda(terminal.revenue, terminal.expenses)
    revenue_multiple = terminal.revenue * config.sector_multiple
    ebitda_multiple = ebitda * config.ebitda_multiple
    dcf = calculate_dcf_valuation(_free_cash_flows(yearly_metrics, config), config.discount_rate, config.terminal_growth_rate)
    vc_method = calculate_vc_valuation(revenue_multiple, config.expected_roi)
    return ValuationBreakdown(
        revenue_multiple=revenue_multiple,
        ebitda_multiple=ebitda_multiple,
        dcf=dcf,
        vc_method=vc_method,
        weighted=calculate_weighted_valuation(revenue_multiple, ebitda_multiple, dcf, vc_method, config.weights),
    )


def compute_yearly_valuations(
    yearly_metrics: Sequence[YearMetrics],
    config: Optional[ValuationConfig] = None,
) -> List[YearValuation]:
    config = config or ValuationConfig()
    if not yearly_metrics:
        return []
    terminal = compute_valuations(yearly_metrics, config)
    fcfs = _free_cash_flows(yearly_metrics, config)
    horizon = len(yearly_metrics)
    results: List[YearValuation] = []
    for i, (year, fcf) in enumerate(zip(yearly_metrics, fcfs)):
        ebitda = calculate_ebitda(year.revenue, year.expenses)
        # DCF and VC values are horizon-level figures, phased in linearly
        year_ratio = (i + 1) / horizon
        revenue_multiple = year.revenue * config.sector_multiple
        ebitda_multiple = ebitda * config.ebitda_multiple
        dcf = terminal.dcf * year_ratio
        vc_method = terminal.vc_method * year_ratio
        results.append(
            YearValuation(
                revenue=year.revenue,
                expenses=year.expenses,
                ebitda=ebitda,
                ebitda_margin=calculate_ebitda_margin(ebitda, year.revenue),
                free_cash_flow=fcf,
                valuations=ValuationBreakdown(
                    revenue_multiple=revenue_multiple,
                    ebitda_multiple=ebitda_multiple,
                    dcf=dcf,
                    vc_method=vc_method,
                    weighted=calculate_weighted_valuation(revenue_multiple, ebitda_multiple, dcf, vc_method, config.weights),
                ),
            )
        )
    return results


def compute_moic(company_valuation: float, equity_share: float, investment_amount: float) -> float:
    return safe_divide(company_valuation * equity_share, investment_amount)


def get_ebitda_multiple(sector: str) -> float:
    return SECTOR_EBITDA_MULTIPLES.get(sector.lower(), SECTOR_EBITDA_MULTIPLES["default"])


def build_growth_config(user_growth_rate: float, sector: str = "default", transition_year: int = 2) -> GrowthConfig:
    return GrowthConfig(
        aggressive_growth_rate=min(max(user_growth_rate, 0.10), 1.0),
        normalized_growth_rate=SECTOR_NORMALIZED_GROWTH.get(sector.lower(), SECTOR_NORMALIZED_GROWTH["default"]),
        transition_year=transition_year,
        raw_user_growth_rate=user_growth_rate,
    )


def project_future_revenue(
    year1_revenue: float,
    year1_expenses: float,
    growth_config: GrowthConfig,
    sector_multiple: float,
    scenario_year: int,
    years: int = 5,
) -> List[YearProjection]:
    revenue = year1_revenue
    expenses = year1_expenses
    cumulative_profit = 0.0
    projections: List[YearProjection] = []
    for i in range(1, years + 1):
        if i <= growth_config.transition_year:
            decay = max(0.7, 1 - i * 0.15)
            growth_rate = growth_config.aggressive_growth_rate * decay
            stage = GrowthStage.AGGRESSIVE
        else:
            decay = max(0.8, 1 - (i - growth_config.transition_year) * 0.05)
            growth_rate = growth_config.normalized_growth_rate * decay
            stage = GrowthStage.NORMALIZED

        revenue *= 1 + growth_rate
        expenses *= 1 + growth_rate * EXPENSE_GROWTH_ELASTICITY
        net_profit = revenue - expenses
        cumulative_profit += net_profit
        projections.append(
            YearProjection(
                year=i,
                actual_year=scenario_year + i,
                revenue=revenue,
                expenses=expenses,
                net_profit=net_profit,
                cumulative_profit=cumulative_profit,
                company_valuation=revenue * sector_multiple,
                applied_growth_rate=growth_rate,
                growth_stage=stage,
            )
        )
    return projections


def calculate_exit_plan(
    deal: DealConfig,
    year1_revenue: float,
    year1_expenses: float,
    user_growth_rate: float,
    scenario_year: int,
    sector: str = "default",
) -> ExitPlan:
    growth_config = build_growth_config(user_growth_rate, sector)
    projections = project_future_revenue(year1_revenue, year1_expenses, growth_config, deal.sector_multiple, scenario_year)
    year3, year5 = projections[2], projections[4]
    investor_share_3 = year3.company_valuation * deal.equity_share
    investor_share_5 = year5.company_valuation * deal.equity_share
    break_even_year = next((p.year for p in projections if p.cumulative_profit >= 0), None)
    return ExitPlan(
        post_money_valuation=safe_divide(deal.investment_amount, deal.equity_share),
        year3_projection=year3,
        year5_projection=year5,
        investor_share_3_year=investor_share_3,
        investor_share_5_year=investor_share_5,
        moic_3_year=compute_moic(year3.company_valuation, deal.equity_share, deal.investment_amount),
        moic_5_year=compute_moic(year5.company_valuation, deal.equity_share, deal.investment_amount),
        break_even_year=break_even_year,
        growth_config=growth_config,
        all_years=projections,
    )


def get_revenue_multiple(sector: str) -> float:
    return SECTOR_REVENUE_MULTIPLES.get(sector.lower(), SECTOR_REVENUE_MULTIPLES["default"])


def calculate_dynamic_multiple(sector: str, growth_rate: float, profit_margin: float) -> DynamicMultiple:
    """Sector revenue multiple adjusted by the Rule of 40 (growth % + profit margin %)."""
    base_multiple = get_revenue_multiple(sector)
    score = (growth_rate + profit_margin) * 100
    adjustment, reason = RULE_OF_40_PENALTY
    for floor, band_adjustment, band_reason in RULE_OF_40_BANDS:
        if score >= floor:
            adjustment, reason = band_adjustment, band_reason
            break
    return DynamicMultiple(
        base_multiple=base_multiple,
        adjusted_multiple=base_multiple * adjustment,
        rule_of_40_score=score,
        adjustment_reason=reason,
    )


def calculate_unified_valuation(
    revenue: float,
    expenses: float,
    growth_rate: float,
    sector: str = "default",
    config: Optional[ValuationConfig] = None,
    years: int = 5,
) -> UnifiedValuation:
    """One-year snapshot valuation with a low/mid/high range.

    The revenue multiple is the Rule-of-40-adjusted sector multiple and the
    EBITDA multiple comes from the sector table. DCF runs over ``years`` of
    projected free cash flow with the growth rate decaying by
    ``UNIFIED_GROWTH_DECAY`` a year; the VC method prices the final projected
    revenue at the unadjusted sector multiple.
    """
    config = config or ValuationConfig()
    profit_margin = safe_divide(revenue - expenses, revenue)
    multiple = calculate_dynamic_multiple(sector, growth_rate, profit_margin)
    ebitda = calculate_ebitda(revenue, expenses)

    fcf_projections: List[float] = []
    projected_revenue = revenue
    projected_expenses = expenses
    for i in range(years):
        year_growth = growth_rate * UNIFIED_GROWTH_DECAY ** i
        projected_revenue *= 1 + year_growth
        projected_expenses *= 1 + year_growth * EXPENSE_GROWTH_ELASTICITY
        projected_ebitda = calculate_ebitda(projected_revenue, projected_expenses)
        fcf_projections.append(calculate_fcf(projected_ebitda, projected_revenue, config.capex_ratio, config.tax_rate))

    revenue_multiple = revenue * multiple.adjusted_multiple
    ebitda_multiple = ebitda * get_ebitda_multiple(sector)
    dcf = calculate_dcf_valuation(fcf_projections, config.discount_rate, config.terminal_growth_rate)
    vc_method = calculate_vc_valuation(projected_revenue * multiple.base_multiple, config.expected_roi)
    weighted = calculate_weighted_valuation(revenue_multiple, ebitda_multiple, dcf, vc_method, config.weights)

    return UnifiedValuation(
        weighted=weighted,
        range=ValuationRange(
            low=weighted * (1 - VALUATION_RANGE_SPREAD),
            mid=weighted,
            high=weighted * (1 + VALUATION_RANGE_SPREAD),
        ),
        breakdown=ValuationBreakdown(
            revenue_multiple=revenue_multiple,
            ebitda_multiple=ebitda_multiple,
            dcf=dcf,
            vc_method=vc_method,
            weighted=weighted,
        ),
        multiple=multiple,
        ebitda=ebitda,
        ebitda_margin=calculate_ebitda_margin(ebitda, revenue),
        free_cash_flow=calculate_fcf(ebitda, revenue, config.capex_ratio, config.tax_rate),
        profit_margin=profit_margin * 100,
        assumptions=[
            f"Sector: {sector} (base multiple {multiple.base_multiple:g}x)",
            f"Growth rate: {growth_rate * 100:.1f}%",
            f"Profit margin: {profit_margin * 100:.1f}%",
            f"Rule of 40 score: {multiple.rule_of_40_score:.0f} ({multiple.adjustment_reason})",
            f"Adjusted multiple: {multiple.adjusted_multiple:.2f}x",
            f"Discount rate: {config.discount_rate * 100:.0f}%",
            f"Terminal growth: {config.terminal_growth_rate * 100:.0f}%",
        ],
    )
