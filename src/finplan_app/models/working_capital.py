from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)


class WorkingCapitalConfig(BaseModel):
    ar_days: int = 45
    ap_days: int = 30
    inventory_days: Optional[int] = None
    deferred_revenue_days: Optional[int] = None

    @field_validator("ar_days", "ap_days", "inventory_days", "deferred_revenue_days")
    @classmethod
    def _clamp_negative_days(cls, value: Optional[int], info) -> Optional[int]:
        if value is not None and value < 0:
            logger.warning("Negative %s=%s clamped to 0", info.field_name, value)
            return 0
        return value


class NetWorkingCapital(BaseModel):
    accounts_receivable: float
    accounts_payable: float
    inventory: float
    net_working_capital: float
    deferred_revenue: float = 0.0


class WorkingCapitalNeeds(BaseModel):
    receivables: float
    payables: float
    inventory_needs: float
    net_working_capital: float
    monthly_operating_cash: float
    safety_buffer: float
    safety_months: float
