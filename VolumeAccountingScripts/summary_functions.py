from dataclasses import asdict
import pandas as pd
from .records import ReconciliationStatus

'''
Tabulation of engine results as pandas DataFrames, plus the rollups shown on the accounting
dashboards (totals per phase, reserves per well, reconciliation counts by status).
'''

ALLOCATION_COLUMNS = [
    'well_id', 'allocated_oil_volume', 'allocated_gas_volume', 'allocated_water_volume', 'allocation_factor'
]
FORECAST_COLUMNS = [
    'well_id', 'law', 'qi', 'Di', 'b', 'qlim', 't_lim', 'eur', 'cumulative_to_date',
    'remaining_reserves', 'past_economic_limit'
]
RECONCILIATION_COLUMNS = [
    'facility_id', 'product', 'reconciliation_type', 'period_start', 'period_end', 'total_production',
    'imbalance', 'imbalance_percent', 'tolerance_percent', 'within_tolerance', 'status', 'version'
]
IMBALANCE_COLUMNS = [
    'imbalance_date', 'product', 'category', 'expected_volume', 'actual_volume', 'variance_volume',
    'variance_percent', 'is_resolved'
]


# Function to convert allocation results into a DataFrame
def allocation_frame(results):
    return pd.DataFrame([asdict(r) for r in results], columns=ALLOCATION_COLUMNS)


# Function to convert decline forecasts into one row per well
def forecast_frame(forecasts):
    rows = []
    for fc in forecasts:
        rows.append({
            'well_id': fc.well_id,
            'law': fc.law.value,
            'qi': fc.series.qi,
            'Di': fc.series.Di,
            'b': fc.b,
            'qlim': fc.series.qlim,
            't_lim': fc.t_lim,
            'eur': fc.eur,
            'cumulative_to_date': fc.cumulative_to_date,
            'remaining_reserves': fc.remaining_reserves,
            'past_economic_limit': fc.past_economic_limit,
        })
    return pd.DataFrame(rows, columns=FORECAST_COLUMNS)


# Function to summarize the reserves of a set of forecasts
def forecast_summary(forecasts):
    '''
    Args:
    - forecasts is an iterable of DeclineForecast
    Returns:
    - A dict with the well count, total EUR, total cumulative to date, total remaining reserves and
      the number of wells at or past their economic limit
    '''
    df = forecast_frame(forecasts)
    return {
        'wells': int(len(df)),
        'total_eur': float(df['eur'].sum()),
        'total_cumulative_to_date': float(df['cumulative_to_date'].sum()),
        'total_remaining_reserves': float(df['remaining_reserves'].sum()),
        'wells_past_economic_limit': int(df['past_economic_limit'].astype(bool).sum()),
    }


# Function to convert period balances into a DataFrame
def reconciliation_frame(balances):
    rows = []
    for bal in balances:
        rows.append({
            'facility_id': bal.facility_id,
            'product': bal.product,
            'reconciliation_type': bal.reconciliation_type.value,
            'period_start': bal.period_start,
            'period_end': bal.period_end,
            'total_production': bal.total_production,
            'imbalance': bal.imbalance,
            'imbalance_percent': bal.imbalance_percent,
            'tolerance_percent': bal.tolerance_percent,
            'within_tolerance': bal.within_tolerance,
            'status': bal.status.value,
            'version': bal.version,
        })
    return pd.DataFrame(rows, columns=RECONCILIATION_COLUMNS)


# Function to count reconciliations by workflow status and tolerance
def reconciliation_summary(balances):
    '''
    Returns:
    - A dict with the total count, a count per status (every status present, zero when unused) and
      the number of reconciled balances outside their tolerance
    '''
    df = reconciliation_frame(balances)
    by_status = df['status'].value_counts()
    summary = {'total': int(len(df))}
    for status in ReconciliationStatus:
        summary[status.value] = int(by_status.get(status.value, 0))
    # Unreconciled balances carry None and are not counted as out of tolerance
    summary['out_of_tolerance'] = int((df['within_tolerance'] == False).sum())  # noqa: E712
    return summary


# Function to convert imbalance records into a DataFrame
def imbalance_frame(records):
    rows = [{**asdict(r), 'category': r.category.value} for r in records]
    return pd.DataFrame(rows, columns=IMBALANCE_COLUMNS)


# Function to total imbalance variances per category
def imbalance_by_category(records, include_resolved=True):
    '''
    Args:
    - records is an iterable of ImbalanceRecord
    - include_resolved is whether resolved imbalances are part of the totals
    Returns:
    - A DataFrame indexed by category with the count, total variance volume and number unresolved,
      ordered by absolute variance volume
    '''
    df = imbalance_frame(records)
    if not include_resolved:
        df = df[~df['is_resolved'].astype(bool)]
    grouped = df.groupby('category').agg(
        count=('variance_volume', 'size'),
        variance_volume=('variance_volume', 'sum'),
        unresolved=('is_resolved', lambda s: int((~s.astype(bool)).sum())),
    )
    return grouped.reindex(grouped['variance_volume'].abs().sort_values(ascending=False).index)
