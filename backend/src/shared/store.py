"""
Record store - repository abstraction over the goal, task, submission and wallet tables.

`GoalStore` is the port used by the lifecycle coordinator and handlers.
`DynamoGoalStore` is the DynamoDB adapter; multi-record financial changes
go through TransactWriteItems so they either fully apply or not at all.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, List, Optional

from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError

from . import dynamo
from .config import config
from .errors import ValidationError
from .logging import logger
from .milestones import Milestone
from .models import GoalStatus, ReviewStatus, SubmissionStatus
from .utils import now_iso


class GoalStore(ABC):

    # ------------------------------------------------------------------ goals
    @abstractmethod
    def create_goal(self, goal: dict) -> dict:
        pass

    @abstractmethod
    def get_goal(self, goal_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    def list_goals_by_status(self, status: str) -> List[dict]:
        pass

    @abstractmethod
    def set_goal_status(self, goal_id: str, status: str) -> None:
        pass

    @abstractmethod
    def reset_goal_progress(self, goal_id: str) -> None:
        """currentAmount and rewardsPaid back to 0."""
        pass

    # ------------------------------------------------------------------ tasks
    @abstractmethod
    def create_tasks(self, tasks: List[dict]) -> None:
        pass

    @abstractmethod
    def get_task(self, task_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    def list_tasks(self, goal_id: str) -> List[dict]:
        """Tasks of a goal, oldest first."""
        pass

    @abstractmethod
    def delete_task(self, task_id: str) -> None:
        pass

    @abstractmethod
    def delete_tasks(self, task_ids: List[str]) -> None:
        pass

    @abstractmethod
    def set_task_rewards(self, goal_id: str, plan: Dict[str, int]) -> None:
        """Overwrite rewardAmount for every task in `plan` atomically."""
        pass

    @abstractmethod
    def set_task_state(self, task_id: str, state: str) -> None:
        pass

    @abstractmethod
    def complete_task(self, submission: dict, reward_amount, reviewed_by: str, notes: str = '') -> dict:
        """
        Atomically credit the goal, delete the task and approve the submission.
        The submission must still hold the status it was read with
        (pending_review, or processing for auto-approval).
        Returns the updated goal.
        """
        pass

    # ------------------------------------------------------------- milestones
    @abstractmethod
    def list_milestones(self, goal_id: str) -> List[Milestone]:
        pass

    @abstractmethod
    def save_milestones(self, goal_id: str, milestones: List[Milestone]) -> None:
        pass

    @abstractmethod
    def delete_milestones(self, goal_id: str) -> None:
        pass

    # ------------------------------------------------------- proof submissions
    @abstractmethod
    def create_submission(self, record: dict) -> dict:
        pass

    @abstractmethod
    def get_submission(self, submission_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    def list_submissions(self, status: str = None, goal_id: str = None) -> List[dict]:
        pass

    @abstractmethod
    def reject_submission(self, submission_id: str, reviewed_by: str, notes: str = '') -> None:
        """pending_review -> rejected, ConflictError otherwise."""
        pass

    @abstractmethod
    def fail_submission(self, submission_id: str, reviewed_by: str, reason: str) -> None:
        """processing -> failed, ConflictError otherwise."""
        pass

    # --------------------------------------------------------------- payments
    @abstractmethod
    def create_payment(self, record: dict) -> dict:
        pass

    @abstractmethod
    def get_payment(self, payment_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    def list_payments(self, status: str) -> List[dict]:
        pass

    @abstractmethod
    def approve_payment(self, payment: dict, reviewed_by: str, notes: str = '') -> None:
        """Approve, activate the goal and fund the wallet in one step."""
        pass

    @abstractmethod
    def reject_payment(self, payment: dict, reviewed_by: str, notes: str = '') -> None:
        pass

    # ------------------------------------------------------------ withdrawals
    @abstractmethod
    def create_withdrawal(self, record: dict) -> dict:
        pass

    @abstractmethod
    def get_withdrawal(self, request_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    def list_withdrawals(self, status: str) -> List[dict]:
        pass

    @abstractmethod
    def approve_withdrawal(self, request: dict, reviewed_by: str, notes: str = '') -> None:
        """Approve and debit the wallet; ConflictError on insufficient balance."""
        pass

    @abstractmethod
    def reject_withdrawal(self, request: dict, reviewed_by: str, notes: str = '') -> None:
        pass

    # ---------------------------------------------------------------- wallets
    @abstractmethod
    def get_wallet(self, user_id: str) -> dict:
        pass

    @abstractmethod
    def credit_wallet(self, user_id: str, amount) -> None:
        pass


def empty_wallet(user_id: str) -> dict:
    return {
        'walletId': user_id,
        'balance': Decimal('0'),
        'totalInvested': Decimal('0')
    }


class DynamoGoalStore(GoalStore):
    """DynamoDB implementation. Table names come from config."""

    def __init__(self, settings=config):
        self.settings = settings

    # ------------------------------------------------------------------ helpers
    def _get(self, table_name: str, key: dict) -> Optional[dict]:
        try:
            return dynamo.table(table_name).get_item(Key=key).get('Item')
        except ClientError as e:
            logger.error(f"Error getting item from {table_name}: {e}")
            raise dynamo.to_store_error(e, f"Read from {table_name}")

    def _put(self, table_name: str, item: dict, key_attr: str) -> dict:
        try:
            dynamo.table(table_name).put_item(
                Item=dynamo.to_dynamo_value(item),
                ConditionExpression=Attr(key_attr).not_exists()
            )
            return item
        except ClientError as e:
            logger.error(f"Error writing item to {table_name}: {e}")
            raise dynamo.to_store_error(e, f"Write to {table_name}")

    def _update(self, table_name: str, key: dict, action: str, **params) -> None:
        try:
            dynamo.table(table_name).update_item(Key=key, **params)
        except ClientError as e:
            logger.error(f"Error updating item in {table_name}: {e}")
            raise dynamo.to_store_error(e, action)

    def _review_update(self, table_name: str, key: dict, key_attr: str, status: str,
                       expected: str, reviewed_by: str, notes: str) -> dict:
        """Low-level Update clause for a pending -> reviewed transition."""
        return {
            'Update': {
                'TableName': table_name,
                'Key': dynamo.serialize(key),
                'UpdateExpression': 'SET #status = :status, reviewedBy = :by, adminNotes = :notes, reviewedAt = :ts',
                'ConditionExpression': f'attribute_exists({key_attr}) AND #status = :expected',
                'ExpressionAttributeNames': {'#status': 'status'},
                'ExpressionAttributeValues': dynamo.serialize({
                    ':status': status,
                    ':expected': expected,
                    ':by': reviewed_by,
                    ':notes': notes or '',
                    ':ts': now_iso()
                })
            }
        }

    # ------------------------------------------------------------------ goals
    def create_goal(self, goal: dict) -> dict:
        return self._put(self.settings.GOALS_TABLE, goal, 'goalId')

    def get_goal(self, goal_id: str) -> Optional[dict]:
        return self._get(self.settings.GOALS_TABLE, {'goalId': goal_id})

    def list_goals_by_status(self, status: str) -> List[dict]:
        return dynamo.query_all(
            self.settings.GOALS_TABLE,
            key_condition=Key('status').eq(status),
            index_name='byStatus'
        )

    def set_goal_status(self, goal_id: str, status: str) -> None:
        self._update(
            self.settings.GOALS_TABLE, {'goalId': goal_id}, f"Set goal {goal_id} status",
            UpdateExpression='SET #status = :status, updatedAt = :ts',
            ConditionExpression=Attr('goalId').exists(),
            ExpressionAttributeNames={'#status': 'status'},
            ExpressionAttributeValues={':status': status, ':ts': now_iso()}
        )

    def reset_goal_progress(self, goal_id: str) -> None:
        self._update(
            self.settings.GOALS_TABLE, {'goalId': goal_id}, f"Reset goal {goal_id}",
            UpdateExpression='SET currentAmount = :zero, rewardsPaid = :zero, updatedAt = :ts',
            ConditionExpression=Attr('goalId').exists(),
            ExpressionAttributeValues={':zero': 0, ':ts': now_iso()}
        )

    # ------------------------------------------------------------------ tasks
    def create_tasks(self, tasks: List[dict]) -> None:
        dynamo.batch_write_items(self.settings.TASKS_TABLE, tasks)

    def get_task(self, task_id: str) -> Optional[dict]:
        return self._get(self.settings.TASKS_TABLE, {'taskId': task_id})

    def list_tasks(self, goal_id: str) -> List[dict]:
        # byGoal GSI: goalId (hash) + createdAt (range)
        return dynamo.query_all(
            self.settings.TASKS_TABLE,
            key_condition=Key('goalId').eq(goal_id),
            index_name='byGoal'
        )

    def delete_task(self, task_id: str) -> None:
        try:
            dynamo.table(self.settings.TASKS_TABLE).delete_item(
                Key={'taskId': task_id},
                ConditionExpression=Attr('taskId').exists()
            )
        except ClientError as e:
            logger.error(f"Error deleting task {task_id}: {e}")
            raise dynamo.to_store_error(e, f"Delete task {task_id}")

    def delete_tasks(self, task_ids: List[str]) -> None:
        dynamo.batch_delete_items(self.settings.TASKS_TABLE, [{'taskId': t} for t in task_ids])

    def set_task_rewards(self, goal_id: str, plan: Dict[str, int]) -> None:
        timestamp = now_iso()
        items = [
            {
                'Update': {
                    'TableName': self.settings.TASKS_TABLE,
                    'Key': dynamo.serialize({'taskId': task_id}),
                    'UpdateExpression': 'SET rewardAmount = :reward, updatedAt = :ts',
                    # Fails the whole redistribution if a task vanished meanwhile
                    'ConditionExpression': 'attribute_exists(taskId) AND goalId = :goal',
                    'ExpressionAttributeValues': dynamo.serialize({
                        ':reward': reward,
                        ':goal': goal_id,
                        ':ts': timestamp
                    })
                }
            }
            for task_id, reward in plan.items()
        ]
        dynamo.transact_write(items, f"Redistribute rewards for goal {goal_id}")

    def set_task_state(self, task_id: str, state: str) -> None:
        self._update(
            self.settings.TASKS_TABLE, {'taskId': task_id}, f"Set task {task_id} state",
            UpdateExpression='SET reviewState = :state, updatedAt = :ts',
            ConditionExpression=Attr('taskId').exists(),
            ExpressionAttributeValues={':state': state, ':ts': now_iso()}
        )

    def complete_task(self, submission: dict, reward_amount, reviewed_by: str, notes: str = '') -> dict:
        goal_id = submission['goalId']
        task_id = submission['taskId']
        timestamp = now_iso()

        items = [
            # Credit confirmed earnings
            {
                'Update': {
                    'TableName': self.settings.GOALS_TABLE,
                    'Key': dynamo.serialize({'goalId': goal_id}),
                    'UpdateExpression': 'ADD currentAmount :reward, rewardsPaid :reward SET updatedAt = :ts',
                    'ConditionExpression': 'attribute_exists(goalId)',
                    'ExpressionAttributeValues': dynamo.serialize({
                        ':reward': reward_amount,
                        ':ts': timestamp
                    })
                }
            },
            # Remove the completed task
            {
                'Delete': {
                    'TableName': self.settings.TASKS_TABLE,
                    'Key': dynamo.serialize({'taskId': task_id}),
                    'ConditionExpression': 'attribute_exists(taskId)'
                }
            },
            # Approve the submission (guards against double credit)
            self._review_update(
                self.settings.PROOF_SUBMISSIONS_TABLE,
                {'submissionId': submission['submissionId']}, 'submissionId',
                SubmissionStatus.APPROVED, submission.get('status') or SubmissionStatus.PENDING_REVIEW,
                reviewed_by, notes
            )
        ]
        dynamo.transact_write(items, f"Complete task {task_id}")
        logger.info(f"Credited {reward_amount} to goal {goal_id} and removed task {task_id}")
        return self.get_goal(goal_id)

    # ------------------------------------------------------------- milestones
    def list_milestones(self, goal_id: str) -> List[Milestone]:
        items = dynamo.query_all(
            self.settings.MILESTONES_TABLE,
            key_condition=Key('goalId').eq(goal_id)
        )
        return [
            Milestone(
                threshold=int(item['threshold']),
                reward_amount=int(item.get('rewardAmount', 0)),
                achieved=bool(item.get('achieved', False)),
                achieved_at=item.get('achievedAt')
            )
            for item in sorted(items, key=lambda i: int(i['threshold']))
        ]

    def save_milestones(self, goal_id: str, milestones: List[Milestone]) -> None:
        items = []
        for milestone in milestones:
            item = {
                'goalId': goal_id,
                'threshold': milestone.threshold,
                'rewardAmount': milestone.reward_amount,
                'achieved': milestone.achieved
            }
            if milestone.achieved_at:
                item['achievedAt'] = milestone.achieved_at
            items.append(item)
        dynamo.batch_write_items(self.settings.MILESTONES_TABLE, items)

    def delete_milestones(self, goal_id: str) -> None:
        keys = [{'goalId': goal_id, 'threshold': m.threshold} for m in self.list_milestones(goal_id)]
        if keys:
            dynamo.batch_delete_items(self.settings.MILESTONES_TABLE, keys)

    # ------------------------------------------------------- proof submissions
    def create_submission(self, record: dict) -> dict:
        return self._put(self.settings.PROOF_SUBMISSIONS_TABLE, record, 'submissionId')

    def get_submission(self, submission_id: str) -> Optional[dict]:
        return self._get(self.settings.PROOF_SUBMISSIONS_TABLE, {'submissionId': submission_id})

    def list_submissions(self, status: str = None, goal_id: str = None) -> List[dict]:
        if goal_id:
            return dynamo.query_all(
                self.settings.PROOF_SUBMISSIONS_TABLE,
                key_condition=Key('goalId').eq(goal_id),
                index_name='byGoal',
                filter_expression=Attr('status').eq(status) if status else None
            )
        if not status:
            raise ValidationError('Listing submissions requires a status or goalId')
        return dynamo.query_all(
            self.settings.PROOF_SUBMISSIONS_TABLE,
            key_condition=Key('status').eq(status),
            index_name='byStatus'
        )

    def reject_submission(self, submission_id: str, reviewed_by: str, notes: str = '') -> None:
        dynamo.transact_write([
            self._review_update(
                self.settings.PROOF_SUBMISSIONS_TABLE,
                {'submissionId': submission_id}, 'submissionId',
                SubmissionStatus.REJECTED, SubmissionStatus.PENDING_REVIEW,
                reviewed_by, notes
            )
        ], f"Reject submission {submission_id}")

    def fail_submission(self, submission_id: str, reviewed_by: str, reason: str) -> None:
        dynamo.transact_write([
            self._review_update(
                self.settings.PROOF_SUBMISSIONS_TABLE,
                {'submissionId': submission_id}, 'submissionId',
                SubmissionStatus.FAILED, SubmissionStatus.PROCESSING,
                reviewed_by, reason
            )
        ], f"Fail submission {submission_id}")

    # --------------------------------------------------------------- payments
    def create_payment(self, record: dict) -> dict:
        return self._put(self.settings.PAYMENT_SUBMISSIONS_TABLE, record, 'paymentId')

    def get_payment(self, payment_id: str) -> Optional[dict]:
        return self._get(self.settings.PAYMENT_SUBMISSIONS_TABLE, {'paymentId': payment_id})

    def list_payments(self, status: str) -> List[dict]:
        return dynamo.query_all(
            self.settings.PAYMENT_SUBMISSIONS_TABLE,
            key_condition=Key('status').eq(status),
            index_name='byStatus'
        )

    def approve_payment(self, payment: dict, reviewed_by: str, notes: str = '') -> None:
        timestamp = now_iso()
        dynamo.transact_write([
            self._review_update(
                self.settings.PAYMENT_SUBMISSIONS_TABLE,
                {'paymentId': payment['paymentId']}, 'paymentId',
                ReviewStatus.APPROVED, ReviewStatus.PENDING, reviewed_by, notes
            ),
            # Stake confirmed: goal goes live
            {
                'Update': {
                    'TableName': self.settings.GOALS_TABLE,
                    'Key': dynamo.serialize({'goalId': payment['goalId']}),
                    'UpdateExpression': 'SET #status = :active, updatedAt = :ts',
                    'ConditionExpression': 'attribute_exists(goalId)',
                    'ExpressionAttributeNames': {'#status': 'status'},
                    'ExpressionAttributeValues': dynamo.serialize({
                        ':active': GoalStatus.ACTIVE,
                        ':ts': timestamp
                    })
                }
            },
            # Upsert wallet with the invested amount
            {
                'Update': {
                    'TableName': self.settings.WALLETS_TABLE,
                    'Key': dynamo.serialize({'walletId': payment['userId']}),
                    'UpdateExpression': 'ADD balance :amount, totalInvested :amount SET updatedAt = :ts',
                    'ExpressionAttributeValues': dynamo.serialize({
                        ':amount': payment['amount'],
                        ':ts': timestamp
                    })
                }
            }
        ], f"Approve payment {payment['paymentId']}")

    def reject_payment(self, payment: dict, reviewed_by: str, notes: str = '') -> None:
        dynamo.transact_write([
            self._review_update(
                self.settings.PAYMENT_SUBMISSIONS_TABLE,
                {'paymentId': payment['paymentId']}, 'paymentId',
                ReviewStatus.REJECTED, ReviewStatus.PENDING, reviewed_by, notes
            ),
            {
                'Update': {
                    'TableName': self.settings.GOALS_TABLE,
                    'Key': dynamo.serialize({'goalId': payment['goalId']}),
                    'UpdateExpression': 'SET #status = :inactive, updatedAt = :ts',
                    'ConditionExpression': 'attribute_exists(goalId)',
                    'ExpressionAttributeNames': {'#status': 'status'},
                    'ExpressionAttributeValues': dynamo.serialize({
                        ':inactive': GoalStatus.INACTIVE,
                        ':ts': now_iso()
                    })
                }
            }
        ], f"Reject payment {payment['paymentId']}")

    # ------------------------------------------------------------ withdrawals
    def create_withdrawal(self, record: dict) -> dict:
        return self._put(self.settings.WITHDRAWAL_REQUESTS_TABLE, record, 'requestId')

    def get_withdrawal(self, request_id: str) -> Optional[dict]:
        return self._get(self.settings.WITHDRAWAL_REQUESTS_TABLE, {'requestId': request_id})

    def list_withdrawals(self, status: str) -> List[dict]:
        return dynamo.query_all(
            self.settings.WITHDRAWAL_REQUESTS_TABLE,
            key_condition=Key('status').eq(status),
            index_name='byStatus'
        )

    def approve_withdrawal(self, request: dict, reviewed_by: str, notes: str = '') -> None:
        dynamo.transact_write([
            self._review_update(
                self.settings.WITHDRAWAL_REQUESTS_TABLE,
                {'requestId': request['requestId']}, 'requestId',
                ReviewStatus.APPROVED, ReviewStatus.PENDING, reviewed_by, notes
            ),
            # Deduct with balance check
            {
                'Update': {
                    'TableName': self.settings.WALLETS_TABLE,
                    'Key': dynamo.serialize({'walletId': request['userId']}),
                    'UpdateExpression': 'SET balance = balance - :amount, updatedAt = :ts',
                    'ConditionExpression': 'balance >= :amount',
                    'ExpressionAttributeValues': dynamo.serialize({
                        ':amount': request['amount'],
                        ':ts': now_iso()
                    })
                }
            }
        ], f"Approve withdrawal {request['requestId']}")

    def reject_withdrawal(self, request: dict, reviewed_by: str, notes: str = '') -> None:
        dynamo.transact_write([
            self._review_update(
                self.settings.WITHDRAWAL_REQUESTS_TABLE,
                {'requestId': request['requestId']}, 'requestId',
                ReviewStatus.REJECTED, ReviewStatus.PENDING, reviewed_by, notes
            )
        ], f"Reject withdrawal {request['requestId']}")

    # ---------------------------------------------------------------- wallets
    def get_wallet(self, user_id: str) -> dict:
        return self._get(self.settings.WALLETS_TABLE, {'walletId': user_id}) or empty_wallet(user_id)

    def credit_wallet(self, user_id: str, amount) -> None:
        self._update(
            self.settings.WALLETS_TABLE, {'walletId': user_id}, f"Credit wallet {user_id}",
            UpdateExpression='ADD balance :amount SET updatedAt = :ts',
            ExpressionAttributeValues={':amount': dynamo.to_dynamo_value(amount), ':ts': now_iso()}
        )
