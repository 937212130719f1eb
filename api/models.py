from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date


class WellRateInput(BaseModel):
    well_id: str = Field(..., description="Identifier of the well the rates were measured on")
    oil_rate: float = Field(0.0, description="oil_rate is the tested oil rate, or the allocated oil volume for manual methods")
    gas_rate: float = Field(0.0, description="gas_rate is the tested gas rate, or the allocated gas volume for manual methods")
    water_rate: float = Field(0.0, description="water_rate is the tested water rate, or the allocated water volume for manual methods")
    timestamp: Optional[date] = Field(None, description="Date the rates apply to")
    source: str = Field('test', description="source is test, pro_rata_factor or manual")
    allocation_factor: Optional[float] = Field(None, description="Weight used by the pro_rata method")

class AllocationInput(BaseModel):
    total_oil_volume: float = Field(..., description="Commingled oil volume to distribute")
    total_gas_volume: float = Field(..., description="Commingled gas volume to distribute")
    total_water_volume: float = Field(..., description="Commingled water volume to distribute")
    method: str = Field(..., description="method is test_based, pro_rata, manual or potential_based")
    wells: List[WellRateInput] = Field(..., description="Ordered list of participating wells")
    allocation_date: Optional[date] = Field(None, description="Date of the allocation, later dated rates are ignored")
    use_latest_rates: bool = Field(False, description="Reduce the rate list to the most recent record per well before allocating")

class AllocationOutputRow(BaseModel):
    well_id: str = Field(..., description="Identifier of the well")
    allocated_oil_volume: float = Field(..., description="Oil volume allocated to the well")
    allocated_gas_volume: float = Field(..., description="Gas volume allocated to the well")
    allocated_water_volume: float = Field(..., description="Water volume allocated to the well")
    allocation_factor: float = Field(..., description="Share of the total as a percentage, 0-100")

class AllocationOutput(BaseModel):
    results: List[AllocationOutputRow] = Field(..., description="One row per participating well in input order")
    totals: dict = Field(..., description="Total allocated oil, gas and water volumes")

class DeclineSeriesModel(BaseModel):
    well_id: str = Field(..., description="Identifier of the well being forecast")
    law: str = Field(..., description="law is exponential, hyperbolic or harmonic")
    qi: float = Field(..., description="qi is the initial production rate typically in bbl/day or Mcf/day")
    Di: float = Field(..., description="Di is the initial nominal decline rate as a fraction per year")
    b: float = Field(0.0, description="b is the b-factor used in the hyperbolic decline equation")
    qlim: float = Field(0.0, description="qlim is the economic limit rate in the units of qi")
    start_date: date = Field(..., description="Date of t = 0 of the decline")
    end_date: date = Field(..., description="End of the analysis window")

class DeclineForecastInput(BaseModel):
    series: DeclineSeriesModel = Field(..., description="Decline parameters of the well")
    as_of: date = Field(..., description="Date cumulative production to date is evaluated at")
    include_curve: bool = Field(False, description="Return the sampled rate curve with the forecast")
    step: Optional[float] = Field(None, description="Curve step in years, defaults to the configured step")
    horizon: Optional[float] = Field(None, description="Curve horizon in years, defaults to the configured horizon")

class CurvePoint(BaseModel):
    t: float = Field(..., description="t is the time in years since the start of the decline")
    q: float = Field(..., description="q is the rate at time t")
    Np: float = Field(..., description="Np is the cumulative production at time t in rate-year units")

class DeclineForecastOutput(BaseModel):
    well_id: str = Field(..., description="Identifier of the well")
    law: str = Field(..., description="Law the forecast was evaluated with after b-factor dispatch")
    b: float = Field(..., description="b-factor the forecast was evaluated with")
    t_lim: Optional[float] = Field(..., description="Years to the economic limit, null when there is no limit")
    eur: float = Field(..., description="Estimated ultimate recovery in rate-year units")
    cumulative_to_date: float = Field(..., description="Cumulative production at the as-of date")
    remaining_reserves: float = Field(..., description="EUR less cumulative to date, floored at 0")
    past_economic_limit: bool = Field(..., description="True when the as-of date is at or beyond the economic limit, or the window end when there is no limit")
    curve: Optional[List[CurvePoint]] = Field(None, description="Sampled rate curve when requested")

class FitDeclineInput(BaseModel):
    well_id: str = Field(..., description="Identifier of the well")
    law: str = Field(..., description="law is exponential, hyperbolic or harmonic")
    rates: List[WellRateInput] = Field(..., description="Dated oil rate history of the well")
    start_date: date = Field(..., description="Date of t = 0 of the decline")
    end_date: date = Field(..., description="End of the analysis window")
    qlim: float = Field(0.0, description="Economic limit carried into the fitted series")
    b: Optional[float] = Field(None, description="Fixed b-factor, fitted for the hyperbolic law when omitted")

class LossBreakdownInput(BaseModel):
    flaring: float = Field(0.0, description="Volume flared")
    venting: float = Field(0.0, description="Volume vented")
    fuel: float = Field(0.0, description="Volume used as fuel or otherwise lost in operations")
    spillage: float = Field(0.0, description="Volume spilled")
    shrinkage: float = Field(0.0, description="Shrinkage volume")
    other: float = Field(0.0, description="Any other losses")

class PeriodBalanceModel(BaseModel):
    period_start: date = Field(..., description="First day of the period")
    period_end: date = Field(..., description="Last day of the period")
    product: str = Field(..., description="Product being reconciled, e.g. oil or gas")
    total_production: float = Field(..., description="Produced volume in the period")
    opening_stock: float = Field(0.0, description="Inventory at the start of the period")
    closing_stock: float = Field(0.0, description="Inventory at the end of the period")
    sales: float = Field(0.0, description="Volume sold in the period")
    transfers_in: float = Field(0.0, description="Volume received from other facilities")
    transfers_out: float = Field(0.0, description="Volume delivered to other facilities")
    losses: LossBreakdownInput = Field(default_factory=LossBreakdownInput, description="Losses by type")
    adjustments: float = Field(0.0, description="Signed manual adjustments on the input side")
    tolerance_percent: Optional[float] = Field(None, description="Acceptable imbalance percentage, defaults to the facility or configured value")
    reconciliation_type: str = Field('monthly', description="reconciliation_type is daily, monthly, quarterly or annual")
    status: str = Field('draft', description="status is draft, pending_review, approved or rejected")
    version: int = Field(0, description="Number of status transitions applied to the record")
    facility_id: Optional[str] = Field(None, description="Facility the balance belongs to")
    reviewed_by: Optional[str] = Field(None, description="User who submitted the balance for review")
    approved_by: Optional[str] = Field(None, description="User who approved or rejected the balance")
    approved_at: Optional[date] = Field(None, description="Date of approval or rejection")
    imbalance: Optional[float] = Field(None, description="Calculated imbalance volume")
    imbalance_percent: Optional[float] = Field(None, description="Imbalance as a percentage of production")
    within_tolerance: Optional[bool] = Field(None, description="True when the imbalance percentage is within tolerance")

class TransitionInput(BaseModel):
    balance: PeriodBalanceModel = Field(..., description="Reconciliation record being reviewed")
    new_status: str = Field(..., description="Requested status")
    actor: Optional[str] = Field(None, description="User making the change")
    at: Optional[date] = Field(None, description="Date of approval or rejection")
    expected_version: Optional[int] = Field(None, description="Version the caller last read")

class ImbalanceInput(BaseModel):
    imbalance_date: date = Field(..., description="Date of the imbalance")
    product: str = Field(..., description="Product with the imbalance")
    expected_volume: float = Field(..., description="Volume expected from the balance")
    actual_volume: float = Field(..., description="Volume actually measured")
    category: str = Field('Unknown', description="Root cause category from the fixed list")
    root_cause: Optional[str] = Field(None, description="Free text description of the root cause")
    corrective_action: Optional[str] = Field(None, description="Free text corrective action")
    is_resolved: bool = Field(False, description="Whether the imbalance has been resolved")

class ImbalanceOutput(ImbalanceInput):
    variance_volume: float = Field(..., description="actual_volume - expected_volume")
    variance_percent: float = Field(..., description="Variance as a percentage of the expected volume")
