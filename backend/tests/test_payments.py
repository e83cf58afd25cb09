"""
Tests for stake payments and wallet withdrawals.
"""
from decimal import Decimal

import pytest

from shared.errors import ConflictError, NotFoundError, ValidationError
from shared.models import GoalStatus, NotificationType, ReviewStatus
from shared.payments import (
    is_valid_upi_id,
    request_withdrawal,
    review_payment,
    review_withdrawal,
    submit_payment,
)


@pytest.fixture
def inactive_goal(make_goal):
    return make_goal(commitment=100, status=GoalStatus.INACTIVE)


class TestStakePayment:
    """Payment submission and admin review."""

    def test_submit_payment(self, store, inactive_goal):
        payment = submit_payment(store, inactive_goal['goalId'], 'user-1', '100', 'UPI-123')

        assert payment['status'] == ReviewStatus.PENDING
        assert payment['amount'] == Decimal('100')
        assert store.get_payment(payment['paymentId']) is not None

    def test_amount_must_match_commitment(self, store, inactive_goal):
        with pytest.raises(ValidationError, match='commitment'):
            submit_payment(store, inactive_goal['goalId'], 'user-1', 90, 'UPI-123')

    def test_transaction_reference_required(self, store, inactive_goal):
        with pytest.raises(ValidationError):
            submit_payment(store, inactive_goal['goalId'], 'user-1', 100, '  ')

    def test_already_active_goal(self, store, make_goal):
        goal = make_goal(commitment=100)
        with pytest.raises(ConflictError):
            submit_payment(store, goal['goalId'], 'user-1', 100, 'UPI-123')

    def test_other_users_goal(self, store, inactive_goal):
        with pytest.raises(NotFoundError):
            submit_payment(store, inactive_goal['goalId'], 'intruder', 100, 'UPI-123')

    def test_approve_activates_goal_and_funds_wallet(self, store, notifier, inactive_goal):
        payment = submit_payment(store, inactive_goal['goalId'], 'user-1', 100, 'UPI-123')

        reviewed = review_payment(store, notifier, payment['paymentId'], 'approved', 'admin-1')

        assert reviewed['status'] == ReviewStatus.APPROVED
        assert store.get_goal(inactive_goal['goalId'])['status'] == GoalStatus.ACTIVE
        wallet = store.get_wallet('user-1')
        assert wallet['balance'] == 100
        assert wallet['totalInvested'] == 100
        assert notifier.sent[-1].kind == NotificationType.PAYMENT_REVIEWED
        assert notifier.sent[-1].title == 'Payment Approved ✅'

    def test_reject_keeps_goal_inactive(self, store, notifier, inactive_goal):
        payment = submit_payment(store, inactive_goal['goalId'], 'user-1', 100, 'UPI-123')

        review_payment(store, notifier, payment['paymentId'], 'rejected', 'admin-1', 'Reference not found')

        assert store.get_goal(inactive_goal['goalId'])['status'] == GoalStatus.INACTIVE
        assert store.get_wallet('user-1')['balance'] == 0

    def test_review_twice(self, store, notifier, inactive_goal):
        payment = submit_payment(store, inactive_goal['goalId'], 'user-1', 100, 'UPI-123')
        review_payment(store, notifier, payment['paymentId'], 'approved', 'admin-1')

        with pytest.raises(ConflictError):
            review_payment(store, notifier, payment['paymentId'], 'rejected', 'admin-1')

    def test_unknown_payment(self, store, notifier):
        with pytest.raises(NotFoundError):
            review_payment(store, notifier, 'missing', 'approved', 'admin-1')


class TestWithdrawals:
    """Withdrawal requests and admin payout."""

    @pytest.fixture
    def funded(self, store):
        store.credit_wallet('user-1', 100)

    def test_upi_format(self):
        assert is_valid_upi_id('jane.doe@okbank')
        assert not is_valid_upi_id('jane.doe')
        assert not is_valid_upi_id('')

    def test_request_and_approve(self, store, notifier, funded):
        request = request_withdrawal(store, 'user-1', 40, 'jane@okbank')
        assert store.get_wallet('user-1')['balance'] == 100

        review_withdrawal(store, notifier, request['requestId'], 'approved', 'admin-1')

        assert store.get_wallet('user-1')['balance'] == 60
        assert store.get_withdrawal(request['requestId'])['status'] == ReviewStatus.APPROVED
        assert notifier.sent[-1].kind == NotificationType.WITHDRAWAL_REVIEWED

    def test_more_than_balance(self, store, funded):
        with pytest.raises(ValidationError, match='Insufficient balance'):
            request_withdrawal(store, 'user-1', 150, 'jane@okbank')

    def test_invalid_upi(self, store, funded):
        with pytest.raises(ValidationError):
            request_withdrawal(store, 'user-1', 10, 'not-an-upi')

    def test_non_positive_amount(self, store, funded):
        with pytest.raises(ValidationError):
            request_withdrawal(store, 'user-1', 0, 'jane@okbank')

    def test_balance_spent_before_approval(self, store, notifier, funded):
        first = request_withdrawal(store, 'user-1', 80, 'jane@okbank')
        second = request_withdrawal(store, 'user-1', 80, 'jane@okbank')
        review_withdrawal(store, notifier, first['requestId'], 'approved', 'admin-1')

        with pytest.raises(ConflictError, match='Insufficient balance'):
            review_withdrawal(store, notifier, second['requestId'], 'approved', 'admin-1')
        assert store.get_wallet('user-1')['balance'] == 20

    def test_reject(self, store, notifier, funded):
        request = request_withdrawal(store, 'user-1', 40, 'jane@okbank')
        review_withdrawal(store, notifier, request['requestId'], 'rejected', 'admin-1')

        assert store.get_wallet('user-1')['balance'] == 100
        assert notifier.sent[-1].title == 'Withdrawal Rejected ❌'
