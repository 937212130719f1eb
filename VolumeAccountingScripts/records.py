from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Tuple
from .exceptions import InvalidInput

'''
Immutable records passed into and returned from the volume accounting calculators. Inputs are
built by the host application (forms, API bodies, database rows) and the calculators only ever
return new records, they never modify the ones they are given.
'''


# Convert a raw tag into its enumeration, unknown tags are invalid input
def coerce_tag(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(m.value for m in enum_cls)
        raise InvalidInput(f"{value!r} is not a valid {enum_cls.__name__}, expected one of: {allowed}") from None


class RateSource(str, Enum):
    test = 'test'
    pro_rata_factor = 'pro_rata_factor'
    manual = 'manual'


class AllocationMethod(str, Enum):
    test_based = 'test_based'
    pro_rata = 'pro_rata'
    manual = 'manual'
    potential_based = 'potential_based'


class DeclineLaw(str, Enum):
    exponential = 'exponential'
    hyperbolic = 'hyperbolic'
    harmonic = 'harmonic'


class ReconciliationStatus(str, Enum):
    draft = 'draft'
    pending_review = 'pending_review'
    approved = 'approved'
    rejected = 'rejected'


class ReconciliationType(str, Enum):
    daily = 'daily'
    monthly = 'monthly'
    quarterly = 'quarterly'
    annual = 'annual'


class ImbalanceCategory(str, Enum):
    measurement_error = 'Measurement error'
    meter_drift = 'Meter drift'
    tank_gauging_error = 'Tank gauging error'
    evaporation_loss = 'Evaporation loss'
    shrinkage = 'Shrinkage'
    theft = 'Theft/pilferage'
    pipeline_leak = 'Pipeline leak'
    temperature_variation = 'Temperature variation'
    unknown = 'Unknown'
    other = 'Other'


# Allocation records
@dataclass(frozen=True)
class WellRate:
    '''
    Args:
    - well_id is the identifier of the well the rates were measured on
    - oil_rate, gas_rate, water_rate are the measured or tested rates (bbl/day, Mcf/day, bbl/day).
      For the manual and potential_based methods they carry the caller's allocated volumes.
    - timestamp is the calendar date the rates apply to
    - source is how the rates were obtained (test, pro_rata_factor or manual)
    - allocation_factor is the user supplied weight used by the pro_rata method
    '''
    well_id: str
    oil_rate: float = 0.0
    gas_rate: float = 0.0
    water_rate: float = 0.0
    timestamp: Optional[date] = None
    source: RateSource = RateSource.test
    allocation_factor: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, 'source', coerce_tag(RateSource, self.source))


@dataclass(frozen=True)
class AllocationRequest:
    total_oil_volume: float
    total_gas_volume: float
    total_water_volume: float
    method: AllocationMethod
    wells: Tuple[WellRate, ...]
    allocation_date: Optional[date] = None

    def __post_init__(self):
        # Accept any sequence but keep the stored value immutable
        object.__setattr__(self, 'wells', tuple(self.wells))
        object.__setattr__(self, 'method', coerce_tag(AllocationMethod, self.method))


@dataclass(frozen=True)
class AllocationResult:
    well_id: str
    allocated_oil_volume: float
    allocated_gas_volume: float
    allocated_water_volume: float
    allocation_factor: float


# Decline records
@dataclass(frozen=True)
class DeclineSeries:
    '''
    Args:
    - well_id is the identifier of the well being forecast
    - law is the decline law (exponential, hyperbolic or harmonic)
    - qi is the initial production rate typically in bbl/day or Mcf/day
    - Di is the initial nominal decline rate as a fraction per year
    - b is the b-factor, 0 for exponential and 1 for harmonic
    - qlim is the economic limit rate in the same units as qi
    - start_date is the date t = 0 of the decline, end_date closes the analysis window
    '''
    well_id: str
    law: DeclineLaw
    qi: float
    Di: float
    start_date: date
    end_date: date
    b: float = 0.0
    qlim: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'law', coerce_tag(DeclineLaw, self.law))


# Reconciliation records
@dataclass(frozen=True)
class LossBreakdown:
    flaring: float = 0.0
    venting: float = 0.0
    fuel: float = 0.0
    spillage: float = 0.0
    shrinkage: float = 0.0
    other: float = 0.0

    @property
    def total(self):
        return self.flaring + self.venting + self.fuel + self.spillage + self.shrinkage + self.other


@dataclass(frozen=True)
class PeriodBalance:
    '''
    A reconciliation unit for one product over one period. The computed fields (imbalance,
    imbalance_percent, within_tolerance) are None until the record has been through reconcile().
    Afterwards the record only changes through status transitions, which bump the version.
    '''
    period_start: date
    period_end: date
    product: str
    total_production: float
    opening_stock: float = 0.0
    closing_stock: float = 0.0
    sales: float = 0.0
    transfers_in: float = 0.0
    transfers_out: float = 0.0
    losses: LossBreakdown = field(default_factory=LossBreakdown)
    adjustments: float = 0.0
    tolerance_percent: float = 0.5
    reconciliation_type: ReconciliationType = ReconciliationType.monthly
    status: ReconciliationStatus = ReconciliationStatus.draft
    version: int = 0
    facility_id: Optional[str] = None
    reviewed_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[date] = None
    imbalance: Optional[float] = None
    imbalance_percent: Optional[float] = None
    within_tolerance: Optional[bool] = None

    def __post_init__(self):
        object.__setattr__(self, 'status', coerce_tag(ReconciliationStatus, self.status))
        object.__setattr__(self, 'reconciliation_type', coerce_tag(ReconciliationType, self.reconciliation_type))

    @property
    def stock_change(self):
        return self.closing_stock - self.opening_stock

    @property
    def calculated_balance(self):
        # Volume entering the balance: production, receipts, opening inventory and adjustments
        return self.total_production + self.transfers_in + self.opening_stock + self.adjustments

    @property
    def actual_balance(self):
        # Volume leaving or remaining: sales, deliveries, losses and closing inventory
        return self.sales + self.transfers_out + self.losses.total + self.closing_stock

    @property
    def is_reconciled(self):
        return self.imbalance is not None


@dataclass(frozen=True)
class ImbalanceRecord:
    imbalance_date: date
    product: str
    expected_volume: float
    actual_volume: float
    variance_volume: float
    variance_percent: float
    category: ImbalanceCategory = ImbalanceCategory.unknown
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    is_resolved: bool = False
