from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.scenario import GrowthFloorPolicy
from .models.valuation import ValuationConfig, ValuationWeights
from .models.working_capital import WorkingCapitalConfig


class Settings(BaseSettings):
    """Service defaults, overridable with FINPLAN_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="FINPLAN_", env_file=".env", extra="ignore")

    log_level: str = "INFO"
    json_logs: bool = True

    # Working capital
    ar_days: int = 45
    ap_days: int = 30
    inventory_days: int = 0
    deferred_revenue_days: int = 0
    safety_months: float = 2.5

    # Cash runway
    runway_sentinel: int = 999

    # Valuation
    sector_multiple: float = 8.0
    ebitda_multiple: float = 8.0
    discount_rate: float = 0.30
    terminal_growth_rate: float = 0.03
    expected_roi: float = 10.0
    capex_ratio: float = 0.10
    tax_rate: float = 0.22
    weight_revenue_multiple: float = 0.30
    weight_ebitda_multiple: float = 0.25
    weight_dcf: float = 0.30
    weight_vc_method: float = 0.15

    # Low-growth fallback for next-year targets
    growth_floor_enabled: bool = True
    growth_floor_threshold: float = 0.05
    growth_floor_revenue: float = 0.20
    growth_floor_expense_leverage: float = 0.6

    def working_capital_config(self) -> WorkingCapitalConfig:
        return WorkingCapitalConfig(
            ar_days=self.ar_days,
            ap_days=self.ap_days,
            inventory_days=self.inventory_days,
            deferred_revenue_days=self.deferred_revenue_days,
        )

    def valuation_config(self) -> ValuationConfig:
        return ValuationConfig(
            sector_multiple=self.sector_multiple,
            ebitda_multiple=self.ebitda_multiple,
            discount_rate=self.discount_rate,
            terminal_growth_rate=self.terminal_growth_rate,
            expected_roi=self.expected_roi,
            capex_ratio=self.capex_ratio,
            tax_rate=self.tax_rate,
            weights=ValuationWeights(
                revenue_multiple=self.weight_revenue_multiple,
                ebitda_multiple=self.weight_ebitda_multiple,
                dcf=self.weight_dcf,
                vc_method=self.weight_vc_method,
            ),
        )

    def growth_floor_policy(self) -> GrowthFloorPolicy:
        return GrowthFloorPolicy(
            enabled=self.growth_floor_enabled,
            threshold=self.growth_floor_threshold,
            revenue_floor=self.growth_floor_revenue,
            expense_leverage=self.growth_floor_expense_leverage,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
