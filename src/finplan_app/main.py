from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException

from .config import get_settings
from .models.cap_table import DilutionPathEntry, ExitWaterfallResult
from .models.cash_flow import CapitalNeedResult, CashReconciliationBridge
from .models.scenario import SimulationScenario
from .models.sensitivity import MonteCarloResult
from .models.valuation import ExitPlan, UnifiedValuation
from .models.working_capital import WorkingCapitalNeeds
from .schemas import (
    CapitalNeedRequest,
    CarryForwardRequest,
    CarryForwardResponse,
    DilutionPathRequest,
    ExitPlanRequest,
    ExitWaterfallRequest,
    MoicRequest,
    MoicResponse,
    MonthlyForecastRequest,
    MonthlyForecastResponse,
    MonteCarloRequest,
    ReconciliationRequest,
    ScenarioCreateRequest,
    ScenarioCreateResponse,
    ScenarioListResponse,
    ScenarioMatrixRequest,
    ScenarioMatrixResponse,
    ScenarioRunRequest,
    ScenarioRunResponse,
    ThirteenWeekRequest,
    ThirteenWeekResponse,
    TornadoRequest,
    TornadoResponse,
    UnifiedValuationRequest,
    ValuationRequest,
    ValuationResponse,
    WorkingCapitalNeedsRequest,
    WorkingCapitalRequest,
    WorkingCapitalResponse,
)
from .services.calculator import ScenarioCalculator
from .services.cap_table import calculate_dilution_path, calculate_exit_waterfall
from .services.cash_flow import (
    compute_capital_need,
    generate_13_week_cash_forecast,
    generate_monthly_cash_forecast,
    monthly_cash_periods,
    reconcile_pnl_to_cash,
    weekly_cash_periods,
)
from .services.scenario import (
    build_next_year_scenario,
    carry_forward_scenario,
    quarterly_ratios_from_projection,
    target_totals_from_projection,
)
from .services.sensitivity import (
    calculate_expected_value,
    generate_scenario_matrix,
    generate_tornado_analysis,
    run_monte_carlo_simulation,
)
from .services.valuation import (
    calculate_exit_plan,
    calculate_unified_valuation,
    compute_moic,
    compute_valuations,
    compute_yearly_valuations,
)
from .services.working_capital import (
    calculate_cash_conversion_cycle,
    calculate_net_working_capital,
    calculate_working_capital_needs,
)
from .utils.logging import setup_logging

settings = get_settings()
setup_logging(settings.log_level, settings.json_logs)
logger = logging.getLogger(__name__)

app = FastAPI(title="Financial Planning Engine", version="0.1.0")

SCENARIOS: Dict[str, SimulationScenario] = {}
calculator = ScenarioCalculator(
    working_capital=settings.working_capital_config(),
    valuation=settings.valuation_config(),
    runway_sentinel=settings.runway_sentinel,
)


def _get_scenario(scenario_id: str) -> SimulationScenario:
    scenario = SCENARIOS.get(scenario_id)
    if scenario is None:
        raise HTTPException(status_code=404, detail=f"Scenario {scenario_id} not found")
    return scenario


def _resolve(scenario: Optional[SimulationScenario], scenario_id: Optional[str]) -> SimulationScenario:
    if scenario is None and scenario_id:
        scenario = SCENARIOS.get(scenario_id)
    if scenario is None:
        raise HTTPException(status_code=404, detail="Scenario not found")
    return scenario


def _save(scenario: SimulationScenario) -> SimulationScenario:
    previous = SCENARIOS.get(scenario.id)
    if previous is not None:
        scenario = scenario.model_copy(update={"version": previous.version + 1})
    SCENARIOS[scenario.id] = scenario
    return scenario


@app.post("/scenarios", response_model=ScenarioCreateResponse)
def create_scenario(payload: ScenarioCreateRequest) -> ScenarioCreateResponse:
    scenario = _save(payload.scenario)
    return ScenarioCreateResponse(scenario_id=scenario.id, version=scenario.version)


@app.get("/scenarios", response_model=ScenarioListResponse)
def list_scenarios() -> ScenarioListResponse:
    return ScenarioListResponse(scenarios=list(SCENARIOS.keys()))


@app.get("/scenarios/{scenario_id}", response_model=ScenarioRunResponse)
def get_scenario_analysis(scenario_id: str) -> ScenarioRunResponse:
    scenario = _get_scenario(scenario_id)
    return ScenarioRunResponse(result=calculator.run(scenario))


@app.post("/run", response_model=ScenarioRunResponse)
def run_scenario(payload: ScenarioRunRequest) -> ScenarioRunResponse:
    scenario = _resolve(payload.scenario, payload.scenario_id)
    result = calculator.run(scenario, opening_cash=payload.opening_cash, deal=payload.deal, sector=payload.sector)
    return ScenarioRunResponse(result=result)


@app.post("/scenarios/{scenario_id}/carry-forward", response_model=CarryForwardResponse)
def carry_forward(scenario_id: str, payload: CarryForwardRequest) -> CarryForwardResponse:
    reference = _get_scenario(scenario_id)
    targets = payload.targets
    ratios = payload.quarterly_ratios
    if payload.projection is not None:
        targets = targets or target_totals_from_projection(payload.projection)
        ratios = ratios or quarterly_ratios_from_projection(payload.projection)
    if targets is None:
        raise HTTPException(status_code=422, detail="Either targets or projection is required")

    result = carry_forward_scenario(
        reference,
        targets,
        ratios,
        focus_projects=payload.focus_projects,
        policy=settings.growth_floor_policy(),
    )
    scenario = build_next_year_scenario(reference, result, name=payload.name, focus_projects=payload.focus_projects)
    if payload.save:
        scenario = _save(scenario)
        logger.info("Saved carried-forward scenario %s for %s", scenario.id, scenario.target_year)
    return CarryForwardResponse(result=result, scenario=scenario)


@app.post("/working-capital", response_model=WorkingCapitalResponse)
def working_capital(payload: WorkingCapitalRequest) -> WorkingCapitalResponse:
    config = payload.config or settings.working_capital_config()
    return WorkingCapitalResponse(
        cash_conversion_cycle=calculate_cash_conversion_cycle(config),
        balances=calculate_net_working_capital(payload.annual_revenue, payload.annual_expenses, config),
    )


@app.post("/working-capital/needs", response_model=WorkingCapitalNeeds)
def working_capital_needs(payload: WorkingCapitalNeedsRequest) -> WorkingCapitalNeeds:
    safety_months = settings.safety_months if payload.safety_months is None else payload.safety_months
    return calculate_working_capital_needs(payload.annual_expenses, payload.receivables, payload.payables, safety_months)


@app.post("/cash-flow/capital-need", response_model=CapitalNeedResult)
def capital_need(payload: CapitalNeedRequest) -> CapitalNeedResult:
    return compute_capital_need(
        payload.periods,
        starting_cash=payload.starting_cash,
        months_per_period=payload.months_per_period,
        safety_margin=payload.safety_margin,
        runway_sentinel=settings.runway_sentinel,
    )


@app.post("/cash-flow/13-week", response_model=ThirteenWeekResponse)
def thirteen_week_forecast(payload: ThirteenWeekRequest) -> ThirteenWeekResponse:
    config = payload.config or settings.working_capital_config()
    forecast = generate_13_week_cash_forecast(payload.opening_cash, payload.inputs, config, payload.start_date)
    need = compute_capital_need(
        weekly_cash_periods(forecast),
        starting_cash=payload.opening_cash,
        months_per_period=12 / 52,
        runway_sentinel=settings.runway_sentinel,
    )
    return ThirteenWeekResponse(forecast=forecast, capital_need=need)


@app.post("/cash-flow/monthly", response_model=MonthlyForecastResponse)
def monthly_forecast(payload: MonthlyForecastRequest) -> MonthlyForecastResponse:
    config = payload.config or settings.working_capital_config()
    forecast = generate_monthly_cash_forecast(
        payload.opening_cash,
        payload.monthly_revenue,
        payload.monthly_expenses,
        payload.monthly_capex,
        config,
        payload.tax,
    )
    need = compute_capital_need(
        monthly_cash_periods(forecast),
        starting_cash=payload.opening_cash,
        months_per_period=1.0,
        runway_sentinel=settings.runway_sentinel,
    )
    return MonthlyForecastResponse(forecast=forecast, capital_need=need)


@app.post("/cash-flow/reconciliation", response_model=CashReconciliationBridge)
def reconciliation(payload: ReconciliationRequest) -> CashReconciliationBridge:
    return reconcile_pnl_to_cash(**payload.model_dump())


@app.post("/valuation", response_model=ValuationResponse)
def valuation(payload: ValuationRequest) -> ValuationResponse:
    config = payload.config or settings.valuation_config()
    return ValuationResponse(
        valuation=compute_valuations(payload.years, config),
        yearly=compute_yearly_valuations(payload.years, config),
    )


@app.post("/valuation/unified", response_model=UnifiedValuation)
def unified_valuation(payload: UnifiedValuationRequest) -> UnifiedValuation:
    config = payload.config or settings.valuation_config()
    return calculate_unified_valuation(payload.revenue, payload.expenses, payload.growth_rate, payload.sector, config)


@app.post("/moic", response_model=MoicResponse)
def moic(payload: MoicRequest) -> MoicResponse:
    return MoicResponse(moic=compute_moic(payload.company_valuation, payload.equity_share, payload.investment_amount))


@app.post("/exit-plan", response_model=ExitPlan)
def exit_plan(payload: ExitPlanRequest) -> ExitPlan:
    return calculate_exit_plan(
        payload.deal,
        payload.year1_revenue,
        payload.year1_expenses,
        payload.growth_rate,
        scenario_year=payload.scenario_year,
        sector=payload.sector,
    )


@app.get("/health")
def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/cap-table/exit-waterfall", response_model=ExitWaterfallResult)
def exit_waterfall(payload: ExitWaterfallRequest) -> ExitWaterfallResult:
    return calculate_exit_waterfall(payload.exit_value, payload.cap_table, payload.terms, payload.investment_amount)


@app.post("/cap-table/dilution-path", response_model=List[DilutionPathEntry])
def dilution_path(payload: DilutionPathRequest) -> List[DilutionPathEntry]:
    return calculate_dilution_path(payload.cap_table, payload.future_rounds, payload.esop_expansion_per_round)


@app.post("/sensitivity/tornado", response_model=TornadoResponse)
def tornado(payload: TornadoRequest) -> TornadoResponse:
    scenario = _resolve(payload.scenario, payload.scenario_id)
    results = generate_tornado_analysis(
        scenario,
        payload.current_cash,
        drivers=payload.drivers,
        shock_range=payload.shock_range,
        sector_multiple=payload.sector_multiple,
        runway_sentinel=settings.runway_sentinel,
    )
    return TornadoResponse(results=results)


@app.post("/sensitivity/scenario-matrix", response_model=ScenarioMatrixResponse)
def scenario_matrix(payload: ScenarioMatrixRequest) -> ScenarioMatrixResponse:
    scenario = _resolve(payload.scenario, payload.scenario_id)
    matrix = generate_scenario_matrix(
        scenario,
        payload.current_cash,
        payload.investment_amount,
        payload.equity_share,
        sector_multiple=payload.sector_multiple,
        config=payload.config,
        runway_sentinel=settings.runway_sentinel,
    )
    return ScenarioMatrixResponse(matrix=matrix, expected_value=calculate_expected_value(matrix))


@app.post("/sensitivity/monte-carlo", response_model=MonteCarloResult)
def monte_carlo(payload: MonteCarloRequest) -> MonteCarloResult:
    return run_monte_carlo_simulation(
        payload.base_revenue,
        payload.base_expenses,
        payload.current_cash,
        payload.investment_amount,
        payload.config,
    )
