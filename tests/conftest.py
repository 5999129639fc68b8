from __future__ import annotations

import pytest

from finplan_app.models.scenario import ProjectionItem, SimulationScenario
from finplan_app.sample_data import build_sample_scenario


@pytest.fixture
def sample_scenario() -> SimulationScenario:
    return build_sample_scenario()


@pytest.fixture
def two_line_scenario() -> SimulationScenario:
    return SimulationScenario(
        id="ref-2025",
        name="Reference",
        base_year=2024,
        target_year=2025,
        revenues=[
            ProjectionItem(id="item-a", category="Item A", base_amount=500000, projected_amount=600000),
            ProjectionItem(id="item-b", category="Item B", base_amount=350000, projected_amount=400000),
        ],
        expenses=[
            ProjectionItem(id="exp-ops", category="Operations", base_amount=500000, projected_amount=500000),
            ProjectionItem(id="exp-rent", category="Rent", base_amount=100000, projected_amount=100000),
        ],
    )
