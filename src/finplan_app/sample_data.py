from __future__ import annotations

from .models.common import QuarterlyAmounts, ScenarioType
from .models.scenario import InvestmentItem, ProjectionItem, SimulationScenario
from .models.valuation import DealConfig


def build_sample_scenario() -> SimulationScenario:
    revenues = [
        ProjectionItem(
            id="rev-saas",
            category="SaaS Subscriptions",
            base_amount=420000,
            projected_amount=600000,
            projected_quarterly=QuarterlyAmounts(q1=120000, q2=140000, q3=160000, q4=180000),
        ),
        ProjectionItem(
            id="rev-services",
            category="Implementation Services",
            base_amount=380000,
            projected_amount=400000,
        ),
    ]
    expenses = [
        ProjectionItem(
            id="exp-payroll",
            category="Payroll",
            base_amount=450000,
            projected_amount=520000,
        ),
        ProjectionItem(
            id="exp-rent",
            category="Rent",
            base_amount=60000,
            projected_amount=66000,
        ),
        ProjectionItem(
            id="exp-marketing",
            category="Marketing",
            base_amount=150000,
            projected_amount=214000,
            projected_quarterly=QuarterlyAmounts(q1=80000, q2=60000, q3=44000, q4=30000),
        ),
    ]
    investments = [
        InvestmentItem(id="inv-platform", name="Platform rebuild", amount=150000, month=2),
        InvestmentItem(id="inv-hiring", name="Sales team", amount=90000, month=7),
    ]
    return SimulationScenario(
        id="sample-2026-positive",
        name="Growth 2026",
        base_year=2025,
        target_year=2026,
        revenues=revenues,
        expenses=expenses,
        investments=investments,
        assumed_exchange_rate=34.5,
        scenario_type=ScenarioType.POSITIVE,
        focus_projects=["SaaS Subscriptions"],
        deal_config=DealConfig(investment_amount=250000, equity_share=0.10, sector_multiple=6.0),
    )
