from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class HolderType(str, Enum):
    COMMON = "common"
    PREFERRED = "preferred"
    OPTIONS = "options"
    SAFE = "safe"


class LiquidationPreference(str, Enum):
    ONE_X_NON_PARTICIPATING = "1x_non_participating"
    ONE_X_PARTICIPATING = "1x_participating"
    ONE_AND_HALF_X_NON_PARTICIPATING = "1.5x_non_participating"
    TWO_X_NON_PARTICIPATING = "2x_non_participating"

    @property
    def multiplier(self) -> float:
        if self.value.startswith("2x"):
            return 2.0
        if self.value.startswith("1.5x"):
            return 1.5
        return 1.0

    @property
    def participating(self) -> bool:
        return self.value.endswith("_participating") and "non_" not in self.value


class CapTableEntry(BaseModel):
    holder: str
    shares: float = 0.0
    percentage: float
    type: HolderType

    @property
    def is_option_pool(self) -> bool:
        name = self.holder.lower()
        return "esop" in name or "option" in name


class DealTerms(BaseModel):
    pre_money: Optional[float] = None
    post_money: Optional[float] = None
    option_pool_new: float = 0.0
    liq_pref: LiquidationPreference = LiquidationPreference.ONE_X_NON_PARTICIPATING


class FutureRound(BaseModel):
    round: str
    dilution_pct: float
    investment_amount: Optional[float] = None
    expected_valuation: Optional[float] = None


class DilutionPathEntry(BaseModel):
    round: str
    ownership: float
    valuation: float
    cumulative_dilution: float
    investment_amount: Optional[float] = None


class HolderProceeds(BaseModel):
    holder: str
    proceeds: float
    moic: float


class ExitWaterfallResult(BaseModel):
    exit_value: float
    liquidation_preference_payout: float
    remaining_for_common: float
    proceeds_by_holder: List[HolderProceeds]
