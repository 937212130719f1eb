"""Tests for the period reconciliation calculator and its review workflow."""

from dataclasses import replace
from datetime import date

import pytest

from VolumeAccountingScripts.exceptions import IllegalTransition, InvalidInput
from VolumeAccountingScripts.reconciliation_functions import (
    allowed_transitions,
    reconcile,
    record_imbalance,
    transition,
)
from VolumeAccountingScripts.records import (
    ImbalanceCategory,
    LossBreakdown,
    PeriodBalance,
    ReconciliationStatus,
)


def _balance(production, sales, tolerance=0.5, **kwargs):
    return PeriodBalance(
        period_start=date(2024, 3, 1), period_end=date(2024, 3, 31), product='oil',
        total_production=production, sales=sales, tolerance_percent=tolerance, **kwargs
    )


class TestReconcile:
    def test_out_of_tolerance_balance(self, oil_balance):
        result = reconcile(oil_balance)
        assert result.imbalance == pytest.approx(150.0)
        assert result.imbalance_percent == pytest.approx(1.5)
        assert result.within_tolerance is False

    def test_input_is_not_modified(self, oil_balance):
        reconcile(oil_balance)
        assert oil_balance.imbalance is None
        assert not oil_balance.is_reconciled

    def test_balanced_period(self):
        result = reconcile(_balance(1000.0, 900.0, losses=LossBreakdown(fuel=60.0, shrinkage=40.0)))
        assert result.imbalance == 0.0
        assert result.within_tolerance is True

    def test_tolerance_boundary_is_inclusive(self):
        result = reconcile(_balance(1000.0, 995.0))
        assert result.imbalance == 5.0
        assert result.imbalance_percent == 0.5
        assert result.within_tolerance is True

    def test_just_beyond_tolerance(self):
        assert reconcile(_balance(1000.0, 994.99)).within_tolerance is False

    def test_negative_imbalance_uses_magnitude(self):
        result = reconcile(_balance(1000.0, 1003.0))
        assert result.imbalance == pytest.approx(-3.0)
        assert result.imbalance_percent == pytest.approx(-0.3)
        assert result.within_tolerance is True

    def test_zero_production(self):
        result = reconcile(_balance(0.0, 0.0, opening_stock=200.0, closing_stock=150.0))
        assert result.imbalance == pytest.approx(50.0)
        assert result.imbalance_percent == 0.0
        assert result.within_tolerance is True

    def test_transfers_and_adjustments(self):
        balance = _balance(1000.0, 800.0, transfers_in=100.0, transfers_out=250.0, adjustments=-50.0)
        result = reconcile(balance)
        assert balance.calculated_balance == 1050.0
        assert balance.actual_balance == 1050.0
        assert result.imbalance == 0.0

    def test_stock_change(self, oil_balance):
        assert oil_balance.stock_change == -100.0

    @pytest.mark.parametrize("field", ['total_production', 'sales', 'opening_stock', 'transfers_out'])
    def test_negative_volume_is_invalid(self, oil_balance, field):
        with pytest.raises(InvalidInput, match=field):
            reconcile(replace(oil_balance, **{field: -1.0}))

    def test_negative_loss_is_invalid(self, oil_balance):
        with pytest.raises(InvalidInput, match="losses.venting"):
            reconcile(replace(oil_balance, losses=LossBreakdown(venting=-2.0)))

    def test_negative_tolerance_is_invalid(self, oil_balance):
        with pytest.raises(InvalidInput, match="tolerance_percent"):
            reconcile(replace(oil_balance, tolerance_percent=-0.1))

    def test_inverted_period_is_invalid(self, oil_balance):
        with pytest.raises(InvalidInput, match="period"):
            reconcile(replace(oil_balance, period_end=date(2023, 12, 31)))

    def test_unknown_status_is_invalid(self, oil_balance):
        with pytest.raises(InvalidInput, match="ReconciliationStatus"):
            replace(oil_balance, status='archived')


class TestTransition:
    def test_review_and_approve(self, oil_balance):
        pending = transition(reconcile(oil_balance), 'pending_review', actor='analyst')
        assert pending.status == ReconciliationStatus.pending_review
        assert pending.reviewed_by == 'analyst'
        assert pending.version == 1

        approved = transition(pending, ReconciliationStatus.approved, actor='supervisor', at=date(2024, 2, 5))
        assert approved.status == ReconciliationStatus.approved
        assert approved.approved_by == 'supervisor'
        assert approved.approved_at == date(2024, 2, 5)
        assert approved.reviewed_by == 'analyst'
        assert approved.version == 2
        assert approved.imbalance == pytest.approx(150.0)

    def test_reject(self, oil_balance):
        pending = transition(oil_balance, 'pending_review')
        rejected = transition(pending, 'rejected', actor='supervisor')
        assert rejected.status == ReconciliationStatus.rejected
        assert rejected.approved_by == 'supervisor'

    def test_draft_cannot_be_approved_directly(self, oil_balance):
        with pytest.raises(IllegalTransition) as excinfo:
            transition(oil_balance, 'approved')
        assert excinfo.value.current == 'draft'
        assert excinfo.value.requested == 'approved'

    def test_self_transition_is_illegal(self, oil_balance):
        with pytest.raises(IllegalTransition):
            transition(oil_balance, 'draft')

    @pytest.mark.parametrize("terminal", ['approved', 'rejected'])
    @pytest.mark.parametrize("target", list(ReconciliationStatus))
    def test_terminal_statuses_are_closed(self, oil_balance, terminal, target):
        record = replace(oil_balance, status=terminal)
        with pytest.raises(IllegalTransition, match="final"):
            transition(record, target)

    def test_stale_version_is_refused(self, oil_balance):
        pending = transition(oil_balance, 'pending_review', expected_version=0)
        with pytest.raises(IllegalTransition, match="version"):
            transition(pending, 'approved', expected_version=0)
        assert transition(pending, 'approved', expected_version=1).version == 2

    def test_input_is_not_modified(self, oil_balance):
        transition(oil_balance, 'pending_review')
        assert oil_balance.status == ReconciliationStatus.draft
        assert oil_balance.version == 0

    def test_allowed_transitions(self):
        assert allowed_transitions('draft') == [ReconciliationStatus.pending_review]
        assert set(allowed_transitions('pending_review')) == {
            ReconciliationStatus.approved, ReconciliationStatus.rejected
        }
        assert allowed_transitions(ReconciliationStatus.approved) == []
        assert allowed_transitions('rejected') == []


class TestRecordImbalance:
    def test_variance_is_actual_less_expected(self):
        record = record_imbalance(date(2024, 3, 31), 'oil', expected_volume=1000.0, actual_volume=985.0,
                                  category='Meter drift', root_cause='LACT meter out of calibration')
        assert record.variance_volume == pytest.approx(-15.0)
        assert record.variance_percent == pytest.approx(-1.5)
        assert record.category == ImbalanceCategory.meter_drift
        assert record.is_resolved is False

    def test_category_by_member_name(self):
        record = record_imbalance(date(2024, 3, 31), 'gas', 100.0, 90.0, category='theft')
        assert record.category == ImbalanceCategory.theft
        assert record.category.value == 'Theft/pilferage'

    def test_default_category_is_unknown(self):
        record = record_imbalance(date(2024, 3, 31), 'oil', 100.0, 110.0)
        assert record.category == ImbalanceCategory.unknown

    def test_zero_expected_volume(self):
        record = record_imbalance(date(2024, 3, 31), 'water', 0.0, 12.0)
        assert record.variance_volume == 12.0
        assert record.variance_percent == 0.0

    def test_unknown_category_is_invalid(self):
        with pytest.raises(InvalidInput, match="ImbalanceCategory"):
            record_imbalance(date(2024, 3, 31), 'oil', 100.0, 90.0, category='gremlins')

    def test_non_finite_volume_is_invalid(self):
        with pytest.raises(InvalidInput, match="actual_volume"):
            record_imbalance(date(2024, 3, 31), 'oil', 100.0, float('nan'))
