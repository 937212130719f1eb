"""Tests for the pandas tabulation of engine results."""

from dataclasses import replace
from datetime import date

import pandas as pd
import pytest

from VolumeAccountingScripts.allocation_functions import allocate
from VolumeAccountingScripts.decline_functions import forecast
from VolumeAccountingScripts.reconciliation_functions import reconcile, record_imbalance, transition
from VolumeAccountingScripts.summary_functions import (
    allocation_frame,
    forecast_frame,
    forecast_summary,
    imbalance_by_category,
    imbalance_frame,
    reconciliation_frame,
    reconciliation_summary,
)


def test_allocation_frame(two_well_request):
    df = allocation_frame(allocate(two_well_request))
    assert list(df['well_id']) == ['A', 'B']
    assert df['allocated_oil_volume'].sum() == pytest.approx(1000.0)
    assert df['allocation_factor'].sum() == pytest.approx(100.0)


def test_allocation_frame_empty():
    df = allocation_frame([])
    assert df.empty
    assert 'allocation_factor' in df.columns


class TestForecastSummary:
    def test_frame_has_one_row_per_well(self, exponential_series):
        forecasts = [
            forecast(exponential_series, date(2025, 1, 1)),
            forecast(replace(exponential_series, well_id='B-2H', law='harmonic'), date(2025, 1, 1)),
        ]
        df = forecast_frame(forecasts)
        assert list(df['well_id']) == ['A-1H', 'B-2H']
        assert list(df['law']) == ['exponential', 'harmonic']

    def test_totals(self, exponential_series):
        current = forecast(exponential_series, date(2025, 1, 1))
        depleted = forecast(replace(exponential_series, well_id='B-2H'), date(2036, 1, 1))
        summary = forecast_summary([current, depleted])
        assert summary['wells'] == 2
        assert summary['total_eur'] == pytest.approx(2 * current.eur)
        assert summary['total_remaining_reserves'] == pytest.approx(current.remaining_reserves)
        assert summary['wells_past_economic_limit'] == 1

    def test_empty(self):
        summary = forecast_summary([])
        assert summary['wells'] == 0
        assert summary['total_eur'] == 0.0


class TestReconciliationSummary:
    def test_counts_by_status(self, oil_balance):
        balanced = replace(oil_balance, sales=9950.0)
        balances = [
            reconcile(oil_balance),
            transition(reconcile(balanced), 'pending_review'),
            oil_balance,
        ]
        summary = reconciliation_summary(balances)
        assert summary['total'] == 3
        assert summary['draft'] == 2
        assert summary['pending_review'] == 1
        assert summary['approved'] == 0
        assert summary['rejected'] == 0
        assert summary['out_of_tolerance'] == 1

    def test_frame_uses_tag_values(self, oil_balance):
        df = reconciliation_frame([reconcile(oil_balance)])
        assert df.loc[0, 'status'] == 'draft'
        assert df.loc[0, 'reconciliation_type'] == 'monthly'
        assert df.loc[0, 'imbalance'] == pytest.approx(150.0)


class TestImbalanceRollups:
    @pytest.fixture
    def records(self):
        day = date(2024, 3, 31)
        return [
            record_imbalance(day, 'oil', 1000.0, 985.0, category='Meter drift'),
            record_imbalance(day, 'oil', 500.0, 490.0, category='Meter drift', is_resolved=True),
            record_imbalance(day, 'gas', 2000.0, 1950.0, category='Pipeline leak'),
            record_imbalance(day, 'water', 300.0, 302.0),
        ]

    def test_frame(self, records):
        df = imbalance_frame(records)
        assert isinstance(df, pd.DataFrame)
        assert list(df['category']) == ['Meter drift', 'Meter drift', 'Pipeline leak', 'Unknown']

    def test_by_category(self, records):
        grouped = imbalance_by_category(records)
        assert list(grouped.index) == ['Pipeline leak', 'Meter drift', 'Unknown']
        assert grouped.loc['Meter drift', 'count'] == 2
        assert grouped.loc['Meter drift', 'variance_volume'] == pytest.approx(-25.0)
        assert grouped.loc['Meter drift', 'unresolved'] == 1

    def test_excluding_resolved(self, records):
        grouped = imbalance_by_category(records, include_resolved=False)
        assert grouped.loc['Meter drift', 'count'] == 1
        assert grouped.loc['Meter drift', 'variance_volume'] == pytest.approx(-15.0)
