import logging
from dataclasses import replace
import numpy as np
from .exceptions import IllegalTransition, InvalidInput
from .records import (
    ImbalanceCategory, ImbalanceRecord, ReconciliationStatus, coerce_tag
)

'''
Period material balance and the review workflow of a reconciliation. A balance is reconciled once
its inputs are complete and then moves draft -> pending_review -> approved or rejected. Approved and
rejected are terminal.
'''

log = logging.getLogger(__name__)

_TRANSITIONS = {
    ReconciliationStatus.draft: (ReconciliationStatus.pending_review,),
    ReconciliationStatus.pending_review: (ReconciliationStatus.approved, ReconciliationStatus.rejected),
    ReconciliationStatus.approved: (),
    ReconciliationStatus.rejected: (),
}

_BALANCE_VOLUMES = (
    'total_production', 'opening_stock', 'closing_stock', 'sales', 'transfers_in', 'transfers_out'
)
_LOSS_VOLUMES = ('flaring', 'venting', 'fuel', 'spillage', 'shrinkage', 'other')


def _check_volume(name, value):
    if value is None or not np.isfinite(value) or value < 0:
        raise InvalidInput(f"{name} must be a non-negative number, got {value}")


def _validate_balance(balance):
    for name in _BALANCE_VOLUMES:
        _check_volume(name, getattr(balance, name))
    for name in _LOSS_VOLUMES:
        _check_volume(f"losses.{name}", getattr(balance.losses, name))
    if balance.adjustments is None or not np.isfinite(balance.adjustments):
        raise InvalidInput(f"adjustments must be a finite number, got {balance.adjustments}")
    _check_volume('tolerance_percent', balance.tolerance_percent)
    if balance.period_end < balance.period_start:
        raise InvalidInput(
            f"Reconciliation period ends before it starts: {balance.period_start} to {balance.period_end}"
        )


# Function to compute the material balance of a period
def reconcile(balance):
    '''
    Args:
    - balance is a PeriodBalance with the period volumes filled in
    Returns:
    - A copy of the balance with imbalance, imbalance_percent and within_tolerance populated.
      imbalance is what came in (production, transfers in, opening stock, adjustments) less what
      went out or stayed (sales, transfers out, losses, closing stock). The percentage is relative
      to production and is 0 when there was no production.
    '''
    _validate_balance(balance)
    imbalance = balance.calculated_balance - balance.actual_balance
    production = balance.total_production
    # Multiply before dividing so a value exactly on the tolerance compares exactly
    imbalance_percent = imbalance * 100 / production if production > 0 else 0.0
    within_tolerance = abs(imbalance_percent) <= balance.tolerance_percent

    if not within_tolerance:
        log.info(
            "%s balance for %s to %s is out of tolerance: %.4g%% (limit %.4g%%)",
            balance.product, balance.period_start, balance.period_end,
            imbalance_percent, balance.tolerance_percent
        )
    return replace(
        balance,
        imbalance=float(imbalance),
        imbalance_percent=float(imbalance_percent),
        within_tolerance=bool(within_tolerance),
    )


# Function to list the statuses a reconciliation can move to next
def allowed_transitions(status):
    return list(_TRANSITIONS[coerce_tag(ReconciliationStatus, status)])


# Function to move a reconciliation along the review workflow
def transition(balance, new_status, actor=None, at=None, expected_version=None):
    '''
    Args:
    - balance is the PeriodBalance being reviewed
    - new_status is the requested status
    - actor is the user making the change, recorded as reviewer when submitting for review and as
      approver when approving or rejecting
    - at is the date of the approval or rejection
    - expected_version is the version the caller last read, a stale version is refused
    Returns:
    - A copy of the balance in the new status with its version incremented
    '''
    current = balance.status
    new_status = coerce_tag(ReconciliationStatus, new_status)

    if expected_version is not None and expected_version != balance.version:
        raise IllegalTransition(
            current.value, new_status.value,
            f"record is at version {balance.version}, expected {expected_version}"
        )
    if new_status not in _TRANSITIONS[current]:
        reason = 'status is final' if not _TRANSITIONS[current] else None
        raise IllegalTransition(current.value, new_status.value, reason)

    changes = {'status': new_status, 'version': balance.version + 1}
    if new_status == ReconciliationStatus.pending_review:
        changes['reviewed_by'] = actor
    else:
        changes['approved_by'] = actor
        changes['approved_at'] = at

    log.debug("Reconciliation moved from %s to %s by %s", current.value, new_status.value, actor)
    return replace(balance, **changes)


# Function to record a volume variance and its root cause
def record_imbalance(imbalance_date, product, expected_volume, actual_volume,
                     category=ImbalanceCategory.unknown, root_cause=None, corrective_action=None,
                     is_resolved=False):
    '''
    Returns:
    - An ImbalanceRecord with variance = actual - expected and the variance as a percentage of
      the expected volume (0 when nothing was expected). The category is taken as given.
    '''
    for name, value in (('expected_volume', expected_volume), ('actual_volume', actual_volume)):
        if value is None or not np.isfinite(value):
            raise InvalidInput(f"{name} must be a finite number, got {value}")
    # Accept the display label ('Meter drift') or the member name ('meter_drift')
    if not isinstance(category, ImbalanceCategory) and category in ImbalanceCategory.__members__:
        category = ImbalanceCategory[category]
    category = coerce_tag(ImbalanceCategory, category)

    variance = actual_volume - expected_volume
    variance_percent = variance * 100 / expected_volume if expected_volume > 0 else 0.0
    return ImbalanceRecord(
        imbalance_date=imbalance_date,
        product=product,
        expected_volume=float(expected_volume),
        actual_volume=float(actual_volume),
        variance_volume=float(variance),
        variance_percent=float(variance_percent),
        category=category,
        root_cause=root_cause,
        corrective_action=corrective_action,
        is_resolved=is_resolved,
    )
