from datetime import date

import pytest

from VolumeAccountingScripts.records import (
    AllocationRequest, DeclineSeries, LossBreakdown, PeriodBalance, WellRate
)


@pytest.fixture
def two_well_request():
    """The 60/40 split of a 1000 bbl oil test-based allocation."""
    return AllocationRequest(
        total_oil_volume=1000.0,
        total_gas_volume=0.0,
        total_water_volume=0.0,
        method='test_based',
        wells=[WellRate('A', oil_rate=60.0), WellRate('B', oil_rate=40.0)],
    )


@pytest.fixture
def three_phase_wells():
    return [
        WellRate('W-1', oil_rate=120.0, gas_rate=300.0, water_rate=40.0, allocation_factor=2.0),
        WellRate('W-2', oil_rate=80.0, gas_rate=150.0, water_rate=60.0, allocation_factor=1.0),
        WellRate('W-3', oil_rate=33.3, gas_rate=77.7, water_rate=11.1, allocation_factor=1.0),
    ]


@pytest.fixture
def exponential_series():
    """qi=1000 bbl/d, Di=0.30/yr, qlim=50 bbl/d over a 20 year window."""
    return DeclineSeries(
        well_id='A-1H',
        law='exponential',
        qi=1000.0,
        Di=0.30,
        qlim=50.0,
        start_date=date(2020, 1, 1),
        end_date=date(2040, 1, 1),
    )


@pytest.fixture
def oil_balance():
    """A monthly oil balance with a 150 bbl (1.5%) imbalance."""
    return PeriodBalance(
        period_start=date(2024, 1, 1),
        period_end=date(2024, 1, 31),
        product='oil',
        total_production=10000.0,
        opening_stock=500.0,
        sales=9800.0,
        losses=LossBreakdown(flaring=150.0),
        closing_stock=400.0,
        tolerance_percent=0.5,
    )
