from __future__ import annotations

import math
from typing import List, Sequence


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    if not denominator:
        return default
    return numerator / denominator


def percent_change(current: float, previous: float) -> float:
    return safe_divide(current - previous, abs(previous)) * 100


def round_half_up(value: float) -> float:
    # round() is banker's rounding; money splits round .5 away from zero
    if value < 0:
        return -float(math.floor(-value + 0.5))
    return float(math.floor(value + 0.5))


def distribute_by_ratio(total: float, ratios: Sequence[float]) -> List[float]:
    """Split ``total`` into ``len(ratios)`` buckets.

    Ratios are normalised by their sum (an even split when they sum to zero).
    Every bucket except the last is rounded half-up to whole units; the last
    bucket takes the residual so the buckets always add back to ``total``.
    """
    if not ratios:
        return []
    weight_sum = sum(ratios)
    if weight_sum <= 0:
        shares = [1.0 / len(ratios)] * len(ratios)
    else:
        shares = [ratio / weight_sum for ratio in ratios]
    buckets = [round_half_up(total * share) for share in shares[:-1]]
    buckets.append(total - sum(buckets))
    return buckets
