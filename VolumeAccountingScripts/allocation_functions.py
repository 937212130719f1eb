import logging
import numpy as np
from .exceptions import InvalidInput
from .records import AllocationMethod, AllocationResult

log = logging.getLogger(__name__)

# Relative tolerance on phase sums (allocated vs requested)
ALLOCATION_TOLERANCE = 1e-6
PHASES = ('oil', 'gas', 'water')


# Function to reduce a rate history to the most recent record per well
def latest_well_rates(rates, as_of=None):
    '''
    Args:
    - rates is an iterable of WellRate records, possibly holding several records per well
    - as_of is an optional date, records dated after it are ignored
    Returns:
    - A list with one WellRate per well, in order of first appearance. A record supersedes an
      earlier one for the same well when its timestamp is the same or newer, undated records are
      treated as older than any dated record.
    '''
    latest = {}
    order = []
    for rate in rates:
        if as_of is not None and rate.timestamp is not None and rate.timestamp > as_of:
            continue
        current = latest.get(rate.well_id)
        if current is None:
            order.append(rate.well_id)
            latest[rate.well_id] = rate
        elif current.timestamp is None or (rate.timestamp is not None and rate.timestamp >= current.timestamp):
            latest[rate.well_id] = rate
    return [latest[well_id] for well_id in order]


def _phase_values(well):
    return well.oil_rate, well.gas_rate, well.water_rate


def _validate_request(request):
    if not request.wells:
        raise InvalidInput("Allocation requires at least one participating well")

    totals = (request.total_oil_volume, request.total_gas_volume, request.total_water_volume)
    for phase, total in zip(PHASES, totals):
        if total is None or not np.isfinite(total) or total < 0:
            raise InvalidInput(f"Total {phase} volume must be a non-negative number, got {total}")

    seen = set()
    for well in request.wells:
        if well.well_id in seen:
            raise InvalidInput(f"Well '{well.well_id}' appears more than once in the allocation")
        seen.add(well.well_id)
        for phase, value in zip(PHASES, _phase_values(well)):
            if value is None or not np.isfinite(value) or value < 0:
                raise InvalidInput(f"Well '{well.well_id}' has an invalid {phase} value: {value}")

    return np.array(totals, dtype=float)


# Push the floating point residual of each phase onto the last well so sums match exactly
def _absorb_residual(volumes, totals, phase_mask):
    for j in np.flatnonzero(phase_mask):
        residual = totals[j] - volumes[:, j].sum()
        volumes[-1, j] = max(volumes[-1, j] + residual, 0.0)
    return volumes


def _test_based(values, totals):
    rate_sums = values.sum(axis=0)
    measured = rate_sums > 0
    weights = np.zeros_like(values)
    weights[:, measured] = values[:, measured] / rate_sums[measured]

    for j in np.flatnonzero(~measured & (totals > 0)):
        log.warning(
            "No measured %s rate among participating wells; %.6g of %s left unallocated",
            PHASES[j], totals[j], PHASES[j]
        )

    volumes = _absorb_residual(weights * totals, totals, measured)
    # Oil is the reference phase for the reported factor
    factors = weights[:, 0] * 100
    return volumes, factors


def _pro_rata(wells, totals):
    raw = []
    for well in wells:
        factor = well.allocation_factor
        if factor is None:
            raise InvalidInput(f"Well '{well.well_id}' has no allocation factor for a pro_rata allocation")
        if not np.isfinite(factor) or factor < 0:
            raise InvalidInput(f"Well '{well.well_id}' has an invalid allocation factor: {factor}")
        raw.append(factor)

    factors = np.array(raw, dtype=float)
    factor_sum = factors.sum()
    if factor_sum == 0:
        raise InvalidInput("All pro_rata allocation factors are zero; distribution is undefined")

    weights = factors / factor_sum
    volumes = _absorb_residual(np.outer(weights, totals), totals, np.ones(len(PHASES), dtype=bool))
    return volumes, weights * 100


def _manual(values, totals, tolerance):
    volumes = values.copy()
    sums = volumes.sum(axis=0)
    slack = tolerance * np.maximum(totals, 1.0)

    over = sums - totals > slack
    if over.any():
        j = int(np.flatnonzero(over)[0])
        raise InvalidInput(
            f"Allocated {PHASES[j]} volume {sums[j]:.6g} exceeds the requested total {totals[j]:.6g}"
        )

    drift = np.abs(sums - totals) <= slack
    for j in np.flatnonzero(~drift):
        log.warning("Manual %s allocation of %.6g is short of the requested %.6g", PHASES[j], sums[j], totals[j])
    volumes = _absorb_residual(volumes, totals, drift)

    if totals[0] > 0:
        factors = volumes[:, 0] / totals[0] * 100
    else:
        factors = np.zeros(len(volumes))
    return volumes, factors


# Function to distribute commingled volumes to the participating wells
def allocate(request, tolerance=ALLOCATION_TOLERANCE):
    '''
    Args:
    - request is an AllocationRequest with the total oil, gas and water volumes, the method and the
      ordered participating wells
    - tolerance is the relative tolerance applied to phase sums
    Returns:
    - A list of AllocationResult, one per well in request order. For every allocated phase the
      volumes sum to the requested total, any rounding residual sits on the last well.
    Methods:
    - test_based: each phase is split by the well's share of the measured phase rate. A phase with
      no measured rate allocates nothing. The factor reported is the oil share.
    - pro_rata: every phase is split by the user supplied allocation factors.
    - manual / potential_based: the well rates hold the allocated volumes, they are checked against
      the totals and the factor is recomputed from oil.
    '''
    totals = _validate_request(request)
    values = np.array([_phase_values(well) for well in request.wells], dtype=float)

    method = request.method
    if method == AllocationMethod.test_based:
        volumes, factors = _test_based(values, totals)
    elif method == AllocationMethod.pro_rata:
        volumes, factors = _pro_rata(request.wells, totals)
    elif method in (AllocationMethod.manual, AllocationMethod.potential_based):
        # potential_based has no weighting of its own yet and follows manual entry
        volumes, factors = _manual(values, totals, tolerance)
    else:
        raise InvalidInput(f"Unknown allocation method: {method}")

    factors = np.clip(factors, 0.0, 100.0)
    results = [
        AllocationResult(
            well_id=well.well_id,
            allocated_oil_volume=float(volumes[i, 0]),
            allocated_gas_volume=float(volumes[i, 1]),
            allocated_water_volume=float(volumes[i, 2]),
            allocation_factor=float(factors[i]),
        )
        for i, well in enumerate(request.wells)
    ]
    log.debug("Allocated %s across %d wells using %s", totals.tolist(), len(results), method.value)
    return results


# Function to sum allocated volumes by phase
def allocation_totals(results):
    '''
    Returns:
    - A dict with the total allocated oil, gas and water volumes of a list of AllocationResult
    '''
    return {
        'oil': float(sum(r.allocated_oil_volume for r in results)),
        'gas': float(sum(r.allocated_gas_volume for r in results)),
        'water': float(sum(r.allocated_water_volume for r in results)),
    }
