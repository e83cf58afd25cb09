"""
Stake payments and wallet withdrawals.

A goal is funded by a manual payment (transaction reference checked by an
admin). Approval activates the goal and credits the user's wallet; withdrawals
are requested by the user and paid out after admin approval.
"""
import re
import uuid
from decimal import Decimal

from .config import config
from .errors import ConflictError, NotFoundError, ValidationError
from .logging import logger, log_ledger
from .models import GoalStatus, ReviewAction, ReviewStatus
from .notifications import NotificationSink, payment_reviewed, withdrawal_reviewed
from .store import GoalStore
from .utils import now_iso, parse_amount

UPI_ID_PATTERN = r'^[a-zA-Z0-9._-]{2,}@[a-zA-Z]{2,}$'


def is_valid_upi_id(upi_id: str) -> bool:
    """Validate UPI id format (name@bank)."""
    return re.match(UPI_ID_PATTERN, upi_id or '') is not None


def _check_action(action: str) -> None:
    if action not in ReviewAction.ALL:
        raise ValidationError(f"Invalid action '{action}'. Must be one of: {', '.join(ReviewAction.ALL)}")


# =============================================================================
# STAKE PAYMENTS
# =============================================================================

def submit_payment(store: GoalStore, goal_id: str, user_id: str, amount, transaction_id: str) -> dict:
    """
    Record a stake payment for admin verification.

    Raises:
        ValidationError: missing reference or amount different from the commitment
        ConflictError: goal already funded
    """
    goal = store.get_goal(goal_id)
    if not goal or goal.get('userId') != user_id:
        raise NotFoundError('Goal', goal_id)
    if goal.get('status') != GoalStatus.INACTIVE:
        raise ConflictError(f"Goal is already {goal.get('status')}")

    transaction_id = (transaction_id or '').strip()
    if not transaction_id:
        raise ValidationError('Missing transactionId')

    amount = parse_amount(amount)
    if amount != Decimal(str(goal.get('commitmentAmount', 0))):
        raise ValidationError(f"Payment amount must equal the commitment of {goal.get('commitmentAmount')}")

    record = {
        'paymentId': str(uuid.uuid4()),
        'goalId': goal_id,
        'userId': user_id,
        'amount': amount,
        'transactionId': transaction_id,
        'status': ReviewStatus.PENDING,
        'submittedAt': now_iso()
    }
    store.create_payment(record)
    logger.info(f"Payment {record['paymentId']} of {amount} submitted for goal {goal_id}")
    return record


def review_payment(store: GoalStore, notifier: NotificationSink, payment_id: str,
                   action: str, admin_id: str, notes: str = '') -> dict:
    """Approve (activate goal, fund wallet) or reject a pending payment."""
    _check_action(action)

    payment = store.get_payment(payment_id)
    if not payment:
        raise NotFoundError('Payment', payment_id)
    if payment.get('status') != ReviewStatus.PENDING:
        raise ConflictError(f"Payment already {payment.get('status')}")

    if action == ReviewAction.APPROVE:
        store.approve_payment(payment, admin_id, notes)
        log_ledger('fund_wallet', payment['amount'], paymentId=payment_id, goalId=payment['goalId'], walletId=payment['userId'])
    else:
        store.reject_payment(payment, admin_id, notes)
        logger.info(f"Payment {payment_id} rejected by {admin_id}")

    notifier.send(payment_reviewed(payment['userId'], action, payment['goalId']))
    return {**payment, 'status': action, 'reviewedBy': admin_id, 'adminNotes': notes or ''}


# =============================================================================
# WITHDRAWALS
# =============================================================================

def request_withdrawal(store: GoalStore, user_id: str, amount, upi_id: str) -> dict:
    """
    Request a payout from the wallet. The balance is only debited on approval.

    Raises:
        ValidationError: bad amount or UPI id, amount over the balance
    """
    amount = parse_amount(amount)
    if amount < config.MIN_WITHDRAWAL:
        raise ValidationError(f"Minimum withdrawal is {config.MIN_WITHDRAWAL}")
    if not is_valid_upi_id(upi_id):
        raise ValidationError('Invalid UPI ID format')

    wallet = store.get_wallet(user_id)
    balance = Decimal(str(wallet.get('balance', 0)))
    if amount > balance:
        raise ValidationError(f"Insufficient balance. Available: {balance}")

    record = {
        'requestId': str(uuid.uuid4()),
        'userId': user_id,
        'amount': amount,
        'upiId': upi_id,
        'status': ReviewStatus.PENDING,
        'requestedAt': now_iso()
    }
    store.create_withdrawal(record)
    logger.info(f"Withdrawal {record['requestId']} of {amount} requested by {user_id}")
    return record


def review_withdrawal(store: GoalStore, notifier: NotificationSink, request_id: str,
                      action: str, admin_id: str, notes: str = '') -> dict:
    """
    Approve (debit wallet) or reject a pending withdrawal.

    Raises:
        ConflictError: not pending, or balance dropped below the amount
    """
    _check_action(action)

    request = store.get_withdrawal(request_id)
    if not request:
        raise NotFoundError('Withdrawal request', request_id)
    if request.get('status') != ReviewStatus.PENDING:
        raise ConflictError(f"Withdrawal request already {request.get('status')}")

    if action == ReviewAction.APPROVE:
        try:
            store.approve_withdrawal(request, admin_id, notes)
        except ConflictError:
            raise ConflictError('Insufficient balance for this withdrawal')
        log_ledger('debit_wallet', request['amount'], requestId=request_id, walletId=request['userId'])
    else:
        store.reject_withdrawal(request, admin_id, notes)
        logger.info(f"Withdrawal {request_id} rejected by {admin_id}")

    notifier.send(withdrawal_reviewed(request['userId'], action, request['amount']))
    return {**request, 'status': action, 'reviewedBy': admin_id, 'adminNotes': notes or ''}
