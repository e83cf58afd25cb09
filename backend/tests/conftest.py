"""
Shared fixtures: an in-memory GoalStore and a notifier that records what it sends,
so the lifecycle coordinator can be exercised without AWS.
"""
import os
import sys
import uuid
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from shared.errors import ConflictError, StoreError  # noqa: E402
from shared.lifecycle import TaskLifecycleCoordinator  # noqa: E402
from shared.models import GoalStatus, ReviewStatus, SubmissionStatus  # noqa: E402
from shared.notifications import NotificationSink  # noqa: E402
from shared.store import GoalStore, empty_wallet  # noqa: E402


class InMemoryGoalStore(GoalStore):
    """
    Dict-backed store with the same conditional semantics as DynamoGoalStore.

    `fail(method, *errors)` queues exceptions raised by the next calls to `method`.
    """

    def __init__(self):
        self.goals = {}
        self.tasks = {}
        self.milestones = {}
        self.submissions = {}
        self.payments = {}
        self.withdrawals = {}
        self.wallets = {}
        self.failures = {}
        self.calls = []

    def fail(self, method, *errors):
        self.failures.setdefault(method, []).extend(errors)

    def _enter(self, method):
        self.calls.append(method)
        queued = self.failures.get(method)
        if queued:
            raise queued.pop(0)

    # ------------------------------------------------------------------ goals
    def create_goal(self, goal):
        self._enter('create_goal')
        self.goals[goal['goalId']] = dict(goal)
        return goal

    def get_goal(self, goal_id):
        goal = self.goals.get(goal_id)
        return dict(goal) if goal else None

    def list_goals_by_status(self, status):
        return [dict(g) for g in self.goals.values() if g.get('status') == status]

    def set_goal_status(self, goal_id, status):
        self._enter('set_goal_status')
        if goal_id not in self.goals:
            raise ConflictError('goal missing')
        self.goals[goal_id]['status'] = status

    def reset_goal_progress(self, goal_id):
        self._enter('reset_goal_progress')
        self.goals[goal_id]['currentAmount'] = Decimal('0')
        self.goals[goal_id]['rewardsPaid'] = Decimal('0')

    # ------------------------------------------------------------------ tasks
    def create_tasks(self, tasks):
        self._enter('create_tasks')
        for task in tasks:
            self.tasks[task['taskId']] = dict(task)

    def get_task(self, task_id):
        task = self.tasks.get(task_id)
        return dict(task) if task else None

    def list_tasks(self, goal_id):
        return [dict(t) for t in self.tasks.values() if t['goalId'] == goal_id]

    def delete_task(self, task_id):
        self._enter('delete_task')
        if task_id not in self.tasks:
            raise ConflictError('task missing')
        del self.tasks[task_id]

    def delete_tasks(self, task_ids):
        self._enter('delete_tasks')
        for task_id in task_ids:
            self.tasks.pop(task_id, None)

    def set_task_rewards(self, goal_id, plan):
        self._enter('set_task_rewards')
        for task_id in plan:
            task = self.tasks.get(task_id)
            if not task or task['goalId'] != goal_id:
                raise ConflictError('task set changed')
        for task_id, reward in plan.items():
            self.tasks[task_id]['rewardAmount'] = reward

    def set_task_state(self, task_id, state):
        self._enter('set_task_state')
        self.tasks[task_id]['reviewState'] = state

    def complete_task(self, submission, reward_amount, reviewed_by, notes=''):
        self._enter('complete_task')
        goal = self.goals.get(submission['goalId'])
        stored = self.submissions.get(submission['submissionId'])
        expected = submission.get('status') or SubmissionStatus.PENDING_REVIEW
        if (not goal or submission['taskId'] not in self.tasks
                or not stored or stored['status'] != expected):
            raise ConflictError('completion condition failed')

        reward = Decimal(str(reward_amount))
        goal['currentAmount'] = Decimal(str(goal.get('currentAmount', 0))) + reward
        goal['rewardsPaid'] = Decimal(str(goal.get('rewardsPaid', 0))) + reward
        del self.tasks[submission['taskId']]
        stored.update(status=SubmissionStatus.APPROVED, reviewedBy=reviewed_by, adminNotes=notes)
        return dict(goal)

    # ------------------------------------------------------------- milestones
    def list_milestones(self, goal_id):
        return list(self.milestones.get(goal_id, []))

    def save_milestones(self, goal_id, milestones):
        self._enter('save_milestones')
        self.milestones[goal_id] = list(milestones)

    def delete_milestones(self, goal_id):
        self._enter('delete_milestones')
        self.milestones.pop(goal_id, None)

    # ------------------------------------------------------- proof submissions
    def create_submission(self, record):
        self._enter('create_submission')
        self.submissions[record['submissionId']] = dict(record)
        return record

    def get_submission(self, submission_id):
        record = self.submissions.get(submission_id)
        return dict(record) if record else None

    def list_submissions(self, status=None, goal_id=None):
        return [
            dict(s) for s in self.submissions.values()
            if (status is None or s['status'] == status) and (goal_id is None or s['goalId'] == goal_id)
        ]

    def reject_submission(self, submission_id, reviewed_by, notes=''):
        self._enter('reject_submission')
        record = self.submissions.get(submission_id)
        if not record or record['status'] != SubmissionStatus.PENDING_REVIEW:
            raise ConflictError('not pending')
        record.update(status=SubmissionStatus.REJECTED, reviewedBy=reviewed_by, adminNotes=notes)

    def fail_submission(self, submission_id, reviewed_by, reason):
        self._enter('fail_submission')
        record = self.submissions.get(submission_id)
        if not record or record['status'] != SubmissionStatus.PROCESSING:
            raise ConflictError('not processing')
        record.update(status=SubmissionStatus.FAILED, reviewedBy=reviewed_by, adminNotes=reason)

    # --------------------------------------------------------------- payments
    def create_payment(self, record):
        self.payments[record['paymentId']] = dict(record)
        return record

    def get_payment(self, payment_id):
        record = self.payments.get(payment_id)
        return dict(record) if record else None

    def list_payments(self, status):
        return [dict(p) for p in self.payments.values() if p['status'] == status]

    def approve_payment(self, payment, reviewed_by, notes=''):
        self._enter('approve_payment')
        self.payments[payment['paymentId']]['status'] = ReviewStatus.APPROVED
        self.goals[payment['goalId']]['status'] = GoalStatus.ACTIVE
        wallet = self.wallets.setdefault(payment['userId'], empty_wallet(payment['userId']))
        wallet['balance'] += Decimal(str(payment['amount']))
        wallet['totalInvested'] += Decimal(str(payment['amount']))

    def reject_payment(self, payment, reviewed_by, notes=''):
        self.payments[payment['paymentId']]['status'] = ReviewStatus.REJECTED
        self.goals[payment['goalId']]['status'] = GoalStatus.INACTIVE

    # ------------------------------------------------------------ withdrawals
    def create_withdrawal(self, record):
        self.withdrawals[record['requestId']] = dict(record)
        return record

    def get_withdrawal(self, request_id):
        record = self.withdrawals.get(request_id)
        return dict(record) if record else None

    def list_withdrawals(self, status):
        return [dict(w) for w in self.withdrawals.values() if w['status'] == status]

    def approve_withdrawal(self, request, reviewed_by, notes=''):
        wallet = self.wallets.get(request['userId'])
        amount = Decimal(str(request['amount']))
        if not wallet or wallet['balance'] < amount:
            raise ConflictError('balance condition failed')
        wallet['balance'] -= amount
        self.withdrawals[request['requestId']]['status'] = ReviewStatus.APPROVED

    def reject_withdrawal(self, request, reviewed_by, notes=''):
        self.withdrawals[request['requestId']]['status'] = ReviewStatus.REJECTED

    # ---------------------------------------------------------------- wallets
    def get_wallet(self, user_id):
        return dict(self.wallets.get(user_id) or empty_wallet(user_id))

    def credit_wallet(self, user_id, amount):
        self._enter('credit_wallet')
        wallet = self.wallets.setdefault(user_id, empty_wallet(user_id))
        wallet['balance'] += Decimal(str(amount))


class CapturingNotifier(NotificationSink):
    def __init__(self):
        self.sent = []

    def send(self, notification):
        self.sent.append(notification)

    @property
    def kinds(self):
        return [n.kind for n in self.sent]


@pytest.fixture
def store():
    return InMemoryGoalStore()


@pytest.fixture
def notifier():
    return CapturingNotifier()


@pytest.fixture
def coordinator(store, notifier):
    return TaskLifecycleCoordinator(store, notifier)


@pytest.fixture
def make_goal(store):
    """Factory for an active goal owned by 'user-1'."""
    def _make(commitment=100, target=None, status=GoalStatus.ACTIVE, **extra):
        goal = {
            'goalId': str(uuid.uuid4()),
            'userId': 'user-1',
            'title': 'Learn Python',
            'commitmentAmount': Decimal(str(commitment)),
            'targetAmount': Decimal(str(target if target is not None else commitment)),
            'currentAmount': Decimal('0'),
            'rewardsPaid': Decimal('0'),
            'status': status,
            **extra
        }
        store.goals[goal['goalId']] = goal
        return goal
    return _make


@pytest.fixture
def transient_error():
    return StoreError('DynamoDB throttled')
