from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from ..models.cap_table import (
    CapTableEntry,
    DealTerms,
    DilutionPathEntry,
    ExitWaterfallResult,
    FutureRound,
    HolderProceeds,
    HolderType,
)
from ..utils.numbers import safe_divide

logger = logging.getLogger(__name__)

PREFERRED_TYPES = (HolderType.PREFERRED, HolderType.SAFE)


def calculate_post_money_cap_table(
    current: Sequence[CapTableEntry],
    investment_amount: float,
    terms: DealTerms,
) -> List[CapTableEntry]:
    pre_money = terms.pre_money
    if pre_money is None:
        pre_money = terms.post_money - investment_amount if terms.post_money else 0.0
    post_money = terms.post_money if terms.post_money is not None else pre_money + investment_amount
    if post_money <= 0:
        logger.warning("Post-money valuation %.2f is not positive, cap table left unchanged", post_money)
        return list(current)

    investor_ownership = investment_amount / post_money
    existing_pool = next((entry.percentage for entry in current if entry.is_option_pool), 0.0)
    total_pool = existing_pool + terms.option_pool_new
    investor_dilution = 1 - investor_ownership
    # a new pool is carved out pre-money, so it dilutes the existing holders too
    total_dilution = investor_dilution * (1 - terms.option_pool_new)

    table = [
        CapTableEntry(holder=entry.holder, shares=entry.shares, percentage=entry.percentage * total_dilution, type=entry.type)
        for entry in current
        if not entry.is_option_pool
    ]
    table.append(CapTableEntry(holder="New Investor", percentage=investor_ownership, type=HolderType.PREFERRED))
    if total_pool > 0:
        table.append(CapTableEntry(holder="ESOP", percentage=total_pool * investor_dilution, type=HolderType.OPTIONS))

    total_pct = sum(entry.percentage for entry in table)
    if abs(total_pct - 1) > 0.001:
        table = [entry.model_copy(update={"percentage": entry.percentage / total_pct}) for entry in table]
    return table


def _founder_ownership(table: Sequence[CapTableEntry]) -> float:
    founder = next(
        (entry for entry in table if "founder" in entry.holder.lower() or entry.type == HolderType.COMMON),
        None,
    )
    return founder.percentage if founder is not None else 0.0


def calculate_dilution_path(
    current: Sequence[CapTableEntry],
    future_rounds: Sequence[FutureRound],
    esop_expansion_per_round: float = 0.05,
) -> List[DilutionPathEntry]:
    table = [entry.model_copy() for entry in current]
    path = [DilutionPathEntry(round="Current", ownership=_founder_ownership(table), valuation=0.0, cumulative_dilution=0.0)]
    cumulative_dilution = 0.0

    for future_round in future_rounds:
        remaining = 1 - (future_round.dilution_pct + esop_expansion_per_round)
        table = [entry.model_copy(update={"percentage": entry.percentage * remaining}) for entry in table]
        table.append(
            CapTableEntry(holder=f"{future_round.round} Investor", percentage=future_round.dilution_pct, type=HolderType.PREFERRED)
        )
        pool = next((entry for entry in table if entry.holder == "ESOP"), None)
        if pool is not None:
            pool.percentage += esop_expansion_per_round
        else:
            table.append(CapTableEntry(holder="ESOP", percentage=esop_expansion_per_round, type=HolderType.OPTIONS))

        cumulative_dilution = 1 - (1 - cumulative_dilution) * remaining
        path.append(
            DilutionPathEntry(
                round=future_round.round,
                ownership=_founder_ownership(table),
                valuation=future_round.expected_valuation or 0.0,
                cumulative_dilution=cumulative_dilution,
                investment_amount=future_round.investment_amount,
            )
        )
    return path


def calculate_exit_waterfall(
    exit_value: float,
    cap_table: Sequence[CapTableEntry],
    terms: DealTerms,
    investment_amount: float,
) -> ExitWaterfallResult:
    """Split ``exit_value`` across the cap table.

    Preferences are paid in table order until the exit value runs out.
    Participating preferred then share the remainder pro rata with common and
    options. Non-participating preferred convert to common when their
    as-converted share of the exit beats the preference. Payouts always add
    up to the exit value.
    """
    preferred_pct = sum(entry.percentage for entry in cap_table if entry.type in PREFERRED_TYPES)
    total_pct = sum(entry.percentage for entry in cap_table)
    multiplier = terms.liq_pref.multiplier
    participating = terms.liq_pref.participating
    distributable = max(0.0, exit_value)

    invested = [0.0] * len(cap_table)
    preferences: List[Tuple[int, float]] = []
    sharing: List[int] = []
    for index, entry in enumerate(cap_table):
        if entry.type not in PREFERRED_TYPES:
            sharing.append(index)
            continue
        invested[index] = investment_amount * safe_divide(entry.percentage, preferred_pct)
        preference = invested[index] * multiplier
        converts = not participating and distributable * safe_divide(entry.percentage, total_pct) >= preference
        if not converts:
            preferences.append((index, preference))
        if participating or converts:
            sharing.append(index)

    payouts = [0.0] * len(cap_table)
    remaining = distributable
    for index, preference in preferences:
        paid = min(preference, remaining)
        payouts[index] = paid
        remaining -= paid
    preference_payout = distributable - remaining

    if not sharing:
        sharing = [index for index, _ in preferences]
    sharing_pct = sum(cap_table[index].percentage for index in sharing)
    if sharing_pct > 0:
        for index in sharing:
            payouts[index] += remaining * cap_table[index].percentage / sharing_pct
    elif remaining > 0:
        logger.warning("Cap table has no ownership to share %.2f of exit proceeds", remaining)

    proceeds = [
        HolderProceeds(holder=entry.holder, proceeds=payout, moic=safe_divide(payout, invested[index]))
        for index, (entry, payout) in enumerate(zip(cap_table, payouts))
    ]
    return ExitWaterfallResult(
        exit_value=exit_value,
        liquidation_preference_payout=preference_payout,
        remaining_for_common=remaining,
        proceeds_by_holder=proceeds,
    )


def calculate_ownership_at_exit(
    entry_ownership: float,
    future_rounds: Sequence[FutureRound],
    esop_expansion_per_round: float = 0.05,
) -> float:
    ownership = entry_ownership
    for future_round in future_rounds:
        ownership *= 1 - (future_round.dilution_pct + esop_expansion_per_round)
    return ownership


def calculate_irr(
    cash_flows: Sequence[float],
    max_iterations: int = 100,
    tolerance: float = 1e-4,
    guess: float = 0.1,
) -> float:
    """Newton-Raphson IRR; cash_flows[0] is the (negative) investment at t=0."""
    if not cash_flows:
        return 0.0
    rate = guess
    for _ in range(max_iterations):
        npv = 0.0
        derivative = 0.0
        for t, flow in enumerate(cash_flows):
            npv += flow / (1 + rate) ** t
            if t > 0:
                derivative -= t * flow / (1 + rate) ** (t + 1)
        if abs(npv) < tolerance:
            return rate
        if derivative == 0:
            break
        rate -= npv / derivative
    return rate


def calculate_holder_moic(exit_proceeds: float, investment_amount: float) -> float:
    if investment_amount <= 0:
        return 0.0
    return exit_proceeds / investment_amount
