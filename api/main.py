import logging
import math
from dataclasses import asdict
import uvicorn
from fastapi import FastAPI, HTTPException
from api.models import WellRateInput, AllocationInput, AllocationOutput, AllocationOutputRow
from api.models import DeclineSeriesModel, DeclineForecastInput, DeclineForecastOutput, CurvePoint, FitDeclineInput
from api.models import PeriodBalanceModel, TransitionInput, ImbalanceInput, ImbalanceOutput
from config.config_loader import facility_tolerance, get_config
from VolumeAccountingScripts import allocation_functions as alloc
from VolumeAccountingScripts import decline_functions as dca
from VolumeAccountingScripts import reconciliation_functions as recon
from VolumeAccountingScripts.exceptions import IllegalTransition, InvalidInput
from VolumeAccountingScripts.records import AllocationRequest, DeclineSeries, LossBreakdown, PeriodBalance, WellRate

CONFIG = get_config()

logging.basicConfig(
    level=CONFIG.get('logging', {}).get('level', 'INFO'),
    format='%(asctime)s - %(levelname)s - %(message)s'
)
log = logging.getLogger(__name__)

app = FastAPI()


def _well_rate(model: WellRateInput):
    return WellRate(**model.model_dump())

# Tolerance of a balance: explicit value, then the facility override, then the configured default
def _tolerance_percent(model: PeriodBalanceModel):
    if model.tolerance_percent is not None:
        return model.tolerance_percent
    return facility_tolerance(CONFIG, model.facility_id, CONFIG['reconciliation']['default_tolerance_percent'])

def _period_balance(model: PeriodBalanceModel):
    data = model.model_dump()
    data['losses'] = LossBreakdown(**data['losses'])
    data['tolerance_percent'] = _tolerance_percent(model)
    return PeriodBalance(**data)

def _balance_model(balance: PeriodBalance):
    data = asdict(balance)
    data['status'] = balance.status.value
    data['reconciliation_type'] = balance.reconciliation_type.value
    return PeriodBalanceModel(**data)

@app.post("/allocate", response_model=AllocationOutput)
def allocate_volumes(input_data: AllocationInput):
    try:
        wells = [_well_rate(w) for w in input_data.wells]
        if input_data.use_latest_rates:
            wells = alloc.latest_well_rates(wells, input_data.allocation_date)
        request = AllocationRequest(
            total_oil_volume=input_data.total_oil_volume, total_gas_volume=input_data.total_gas_volume,
            total_water_volume=input_data.total_water_volume, method=input_data.method,
            wells=wells, allocation_date=input_data.allocation_date
        )
        results = alloc.allocate(request, tolerance=CONFIG['allocation']['tolerance'])
        return AllocationOutput(
            results=[AllocationOutputRow(**asdict(r)) for r in results],
            totals=alloc.allocation_totals(results)
        )
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.exception("Allocation failed")
        raise HTTPException(status_code=500, detail=f"Error allocating volumes: {str(e)}")

@app.post("/decline_forecast", response_model=DeclineForecastOutput)
def decline_forecast(input_data: DeclineForecastInput):
    try:
        days_per_year = CONFIG['decline']['days_per_year']
        series = DeclineSeries(**input_data.series.model_dump())
        fc = dca.forecast(series, input_data.as_of, days_per_year=days_per_year)
        curve = None
        if input_data.include_curve:
            step = input_data.step if input_data.step is not None else CONFIG['decline']['curve_step_years']
            horizon = input_data.horizon if input_data.horizon is not None else CONFIG['decline']['curve_horizon_years']
            curve_df = dca.cumulative_table(fc, step, horizon)
            curve = [CurvePoint(t=row['t'], q=row['q'], Np=row['Np']) for row in curve_df.to_dict('records')]
        return DeclineForecastOutput(
            well_id=fc.well_id, law=fc.law.value, b=fc.b,
            # JSON has no infinity, no economic limit is returned as null
            t_lim=fc.t_lim if math.isfinite(fc.t_lim) else None,
            eur=fc.eur, cumulative_to_date=fc.cumulative_to_date, remaining_reserves=fc.remaining_reserves,
            past_economic_limit=fc.past_economic_limit, curve=curve
        )
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.exception("Decline forecast failed")
        raise HTTPException(status_code=500, detail=f"Error forecasting decline: {str(e)}")

@app.post("/fit_decline", response_model=DeclineSeriesModel)
def fit_decline(input_data: FitDeclineInput):
    try:
        series = dca.fit_decline_series(
            well_id=input_data.well_id, rates=[_well_rate(r) for r in input_data.rates], law=input_data.law,
            start_date=input_data.start_date, end_date=input_data.end_date, qlim=input_data.qlim,
            b=input_data.b, days_per_year=CONFIG['decline']['days_per_year']
        )
        data = asdict(series)
        data['law'] = series.law.value
        return DeclineSeriesModel(**data)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.exception("Decline fit failed")
        raise HTTPException(status_code=500, detail=f"Error fitting decline: {str(e)}")

@app.post("/reconcile", response_model=PeriodBalanceModel)
def reconcile_period(input_data: PeriodBalanceModel):
    try:
        balance = recon.reconcile(_period_balance(input_data))
        return _balance_model(balance)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.exception("Reconciliation failed")
        raise HTTPException(status_code=500, detail=f"Error reconciling period: {str(e)}")

@app.post("/reconciliation_transition", response_model=PeriodBalanceModel)
def reconciliation_transition(input_data: TransitionInput):
    try:
        balance = recon.transition(
            _period_balance(input_data.balance), input_data.new_status, actor=input_data.actor,
            at=input_data.at, expected_version=input_data.expected_version
        )
        return _balance_model(balance)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except IllegalTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        log.exception("Reconciliation transition failed")
        raise HTTPException(status_code=500, detail=f"Error changing reconciliation status: {str(e)}")

@app.post("/imbalance", response_model=ImbalanceOutput)
def record_imbalance(input_data: ImbalanceInput):
    try:
        record = recon.record_imbalance(**input_data.model_dump())
        data = asdict(record)
        data['category'] = record.category.value
        return ImbalanceOutput(**data)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.exception("Imbalance record failed")
        raise HTTPException(status_code=500, detail=f"Error recording imbalance: {str(e)}")

# Function to serve the API with uvicorn using the configured host and port
def run(host=None, port=None):
    settings = CONFIG.get('api', {})
    uvicorn.run(
        app,
        host=host or settings.get('host', '127.0.0.1'),
        port=int(port or settings.get('port', 8000)),
        log_level=str(CONFIG.get('logging', {}).get('level', 'INFO')).lower()
    )

if __name__ == "__main__":
    run()
