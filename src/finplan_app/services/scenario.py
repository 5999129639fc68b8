from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from ..models.common import QUARTERS, QuarterlyAmounts, QuarterlyRatios, ScenarioType
from ..models.scenario import (
    CarryForwardResult,
    GrowthFloorPolicy,
    GrowthMetrics,
    InvestmentItem,
    NextYearProjection,
    PeriodTotals,
    ProjectionItem,
    QuarterlyRatioSet,
    SimulationScenario,
    SimulationSummary,
    TargetTotals,
)
from ..utils.numbers import distribute_by_ratio, percent_change, round_half_up, safe_divide

logger = logging.getLogger(__name__)


def quarterly_totals(items: Iterable[ProjectionItem], projected: bool = True) -> QuarterlyAmounts:
    totals = QuarterlyAmounts()
    for item in items:
        totals = totals + item.quarterly(projected)
    return totals


def quarterly_investments(investments: Iterable[InvestmentItem]) -> QuarterlyAmounts:
    buckets = [0.0, 0.0, 0.0, 0.0]
    for investment in investments:
        if investment.quarterly is not None:
            buckets = [a + b for a, b in zip(buckets, investment.quarterly.as_list())]
        else:
            buckets[(investment.month - 1) // 3] += investment.amount
    return QuarterlyAmounts.from_list(buckets)


def _period_totals(revenue: float, expense: float) -> PeriodTotals:
    net_profit = revenue - expense
    return PeriodTotals(
        total_revenue=revenue,
        total_expense=expense,
        net_profit=net_profit,
        profit_margin=safe_divide(net_profit, revenue) * 100,
    )


def summarize_scenario(scenario: SimulationScenario) -> SimulationSummary:
    base = _period_totals(
        sum(item.base_amount for item in scenario.revenues),
        sum(item.base_amount for item in scenario.expenses),
    )
    projected = _period_totals(
        sum(item.projected_amount for item in scenario.revenues),
        sum(item.projected_amount for item in scenario.expenses),
    )
    return SimulationSummary(
        base=base,
        projected=projected,
        growth=GrowthMetrics(
            revenue_growth=percent_change(projected.total_revenue, base.total_revenue),
            expense_growth=percent_change(projected.total_expense, base.total_expense),
            net_profit_growth=percent_change(projected.net_profit, base.net_profit),
        ),
    )


def find_base_scenario(scenarios: Sequence[SimulationScenario], target_year: int) -> Optional[SimulationScenario]:
    """Reference for ``target_year``: the previous year's positive scenario, else any from that year."""
    previous = [s for s in scenarios if s.target_year == target_year - 1]
    for scenario in previous:
        if scenario.scenario_type == ScenarioType.POSITIVE:
            return scenario
    return previous[0] if previous else None


def quarterly_ratios_from_projection(projection: NextYearProjection) -> QuarterlyRatioSet:
    quarters = projection.quarterly.as_list()
    revenue = [q.revenue for q in quarters]
    expenses = [q.expenses for q in quarters]
    return QuarterlyRatioSet(
        revenue=QuarterlyRatios(**dict(zip(QUARTERS, _ratios(revenue)))),
        expenses=QuarterlyRatios(**dict(zip(QUARTERS, _ratios(expenses)))),
    )


def _ratios(values: List[float]) -> List[float]:
    total = sum(values)
    if total <= 0:
        return [0.25] * 4
    return [value / total for value in values]


def target_totals_from_projection(projection: NextYearProjection) -> TargetTotals:
    return TargetTotals(revenue=projection.summary.total_revenue, expenses=projection.summary.total_expenses)


def apply_growth_floor(
    reference_revenue: float,
    reference_expenses: float,
    targets: TargetTotals,
    policy: Optional[GrowthFloorPolicy] = None,
) -> Tuple[TargetTotals, bool]:
    policy = policy or GrowthFloorPolicy()
    if not policy.enabled or reference_revenue <= 0:
        return targets, False
    growth = safe_divide(targets.revenue - reference_revenue, reference_revenue)
    if growth > policy.threshold:
        return targets, False
    floored = TargetTotals(
        revenue=reference_revenue * (1 + policy.revenue_floor),
        expenses=reference_expenses * (1 + policy.expense_floor),
    )
    logger.warning(
        "Revenue growth %.1f%% is at or below %.1f%%, substituting floor targets revenue=%.2f expenses=%.2f",
        growth * 100,
        policy.threshold * 100,
        floored.revenue,
        floored.expenses,
    )
    return floored, True


def _allocate_uniform(items: Sequence[ProjectionItem], target: float) -> List[float]:
    return distribute_by_ratio(target, [item.projected_amount for item in items])


def _is_focus(item: ProjectionItem, focus: Sequence[str]) -> bool:
    return item.category in focus or item.id in focus


def _allocate_focus(items: Sequence[ProjectionItem], target: float, focus_indexes: Sequence[int]) -> List[float]:
    reference_total = sum(item.projected_amount for item in items)
    growth_delta = target - reference_total
    shares = distribute_by_ratio(growth_delta, [items[i].projected_amount for i in focus_indexes])
    amounts = [item.projected_amount for item in items]
    for index, share in zip(focus_indexes, shares):
        amounts[index] += share
    return amounts


def _carry_item(item: ProjectionItem, new_amount: float, ratios: QuarterlyRatios) -> ProjectionItem:
    # a line launched mid-year runs the full carried-forward year
    return ProjectionItem(
        is_new=False,
        start_month=None,
        category=item.category,
        description=item.description,
        base_amount=item.projected_amount,
        base_quarterly=item.quarterly(projected=True),
        projected_amount=new_amount,
        projected_quarterly=QuarterlyAmounts.from_list(distribute_by_ratio(new_amount, ratios.as_list())),
    )


def carry_forward_scenario(
    reference: SimulationScenario,
    target_totals: TargetTotals,
    quarterly_ratios: Optional[QuarterlyRatioSet] = None,
    focus_projects: Optional[Sequence[str]] = None,
    policy: Optional[GrowthFloorPolicy] = None,
) -> CarryForwardResult:
    """Roll ``reference`` into next year's line items.

    Last year's projection becomes this year's base. New projections are
    scaled to the (possibly floored) targets, uniformly by share, or with the
    whole revenue growth delta routed to the focus projects while the other
    revenue lines stay flat (focus routing applies only when revenue grows).
    Quarterly splits follow ``quarterly_ratios`` with rounding residuals in Q4.
    """
    quarterly_ratios = quarterly_ratios or QuarterlyRatioSet()
    reference_revenue = sum(item.projected_amount for item in reference.revenues)
    reference_expenses = sum(item.projected_amount for item in reference.expenses)
    targets, fallback_applied = apply_growth_floor(reference_revenue, reference_expenses, target_totals, policy)
    revenue_target = round_half_up(targets.revenue)
    expense_target = round_half_up(targets.expenses)

    focus_indexes = [i for i, item in enumerate(reference.revenues) if _is_focus(item, focus_projects or [])]
    if focus_projects and not focus_indexes:
        logger.warning("None of the focus projects %s match a revenue line, allocating uniformly", list(focus_projects))
    # a shrinking target is spread over every line so no focus line goes negative
    focus_applied = bool(focus_indexes) and revenue_target >= reference_revenue
    if focus_indexes and not focus_applied:
        logger.info("Revenue target %.2f is below the reference %.2f, allocating uniformly", revenue_target, reference_revenue)
    if focus_applied:
        revenue_amounts = _allocate_focus(reference.revenues, revenue_target, focus_indexes)
    else:
        revenue_amounts = _allocate_uniform(reference.revenues, revenue_target)
    expense_amounts = _allocate_uniform(reference.expenses, expense_target)

    revenues = [_carry_item(item, amount, quarterly_ratios.revenue) for item, amount in zip(reference.revenues, revenue_amounts)]
    expenses = [_carry_item(item, amount, quarterly_ratios.expenses) for item, amount in zip(reference.expenses, expense_amounts)]
    logger.info(
        "Carried forward %s: %d revenue and %d expense lines, revenue target %.2f",
        reference.name,
        len(revenues),
        len(expenses),
        revenue_target,
    )
    return CarryForwardResult(
        revenues=revenues,
        expenses=expenses,
        revenue_target=revenue_target,
        expense_target=expense_target,
        fallback_applied=fallback_applied,
        focus_applied=focus_applied,
    )


def build_next_year_scenario(
    reference: SimulationScenario,
    result: CarryForwardResult,
    name: Optional[str] = None,
    focus_projects: Optional[Sequence[str]] = None,
) -> SimulationScenario:
    target_year = reference.target_year + 1
    return SimulationScenario(
        name=name or f"{reference.name} {target_year}",
        base_year=reference.target_year,
        target_year=target_year,
        revenues=result.revenues,
        expenses=result.expenses,
        assumed_exchange_rate=reference.assumed_exchange_rate,
        scenario_type=ScenarioType.POSITIVE,
        focus_projects=list(focus_projects or []),
        deal_config=reference.deal_config,
    )
