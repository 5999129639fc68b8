from __future__ import annotations

import pytest

from finplan_app.models.working_capital import WorkingCapitalConfig
from finplan_app.services.working_capital import (
    calculate_cash_conversion_cycle,
    calculate_net_working_capital,
    calculate_nwc_change,
    calculate_working_capital_needs,
)


def test_cash_conversion_cycle_defaults():
    assert calculate_cash_conversion_cycle(WorkingCapitalConfig()) == 15


def test_cash_conversion_cycle_can_be_negative():
    config = WorkingCapitalConfig(ar_days=10, ap_days=60, inventory_days=5)
    assert calculate_cash_conversion_cycle(config) == -45


def test_negative_days_are_clamped():
    config = WorkingCapitalConfig(ar_days=-5, ap_days=-1, inventory_days=-3)
    assert config.ar_days == 0
    assert config.ap_days == 0
    assert config.inventory_days == 0


def test_net_working_capital_balances():
    config = WorkingCapitalConfig(ar_days=45, ap_days=30, inventory_days=10)
    nwc = calculate_net_working_capital(365000, 365000, config)

    assert nwc.accounts_receivable == pytest.approx(45000)
    assert nwc.accounts_payable == pytest.approx(30000)
    assert nwc.inventory == pytest.approx(10000)
    assert nwc.net_working_capital == pytest.approx(25000)


def test_nwc_change_grows_with_revenue():
    config = WorkingCapitalConfig(ar_days=73, ap_days=0)
    change = calculate_nwc_change(730000, 0, 365000, 0, config)
    assert change == pytest.approx(73000)


def test_working_capital_needs_safety_buffer():
    needs = calculate_working_capital_needs(120000, receivables=20000, payables=5000)

    assert needs.monthly_operating_cash == pytest.approx(10000)
    assert needs.safety_buffer == pytest.approx(25000)
    assert needs.net_working_capital == pytest.approx(15000)


@pytest.mark.parametrize("inventory_days", [0, 10, 90])
def test_zero_revenue_and_expenses_give_zero_balances(inventory_days):
    config = WorkingCapitalConfig(ar_days=45, ap_days=30, inventory_days=inventory_days, deferred_revenue_days=15)
    nwc = calculate_net_working_capital(0, 0, config)

    assert nwc.accounts_receivable == 0
    assert nwc.accounts_payable == 0
    assert nwc.inventory == 0
    assert nwc.deferred_revenue == 0
    assert nwc.net_working_capital == 0


def test_deferred_revenue_reduces_working_capital():
    config = WorkingCapitalConfig(ar_days=45, ap_days=30, deferred_revenue_days=20)
    nwc = calculate_net_working_capital(365000, 365000, config)

    assert nwc.deferred_revenue == pytest.approx(20000)
    assert nwc.net_working_capital == pytest.approx(45000 - 30000 - 20000)
