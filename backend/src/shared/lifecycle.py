"""
Task Lifecycle Coordinator.

Orchestrates reward allocation, proof verification and milestone tracking
around a goal's task set:

    open -> pending_review -> approved (credited, task removed)
                           -> rejected (task stays open, resubmission allowed)
    open -> processing     -> approved (auto-approval, no admin review)
                           -> failed   (credit transaction failed, task stays open)

Every change to the task set ends with a full reward redistribution,
serialized per goal so two concurrent passes can't interleave their writes.
"""
import threading
import uuid
import weakref
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional

from . import milestones as milestone_tracker
from . import notifications
from .allocation import plan_redistribution
from .config import config
from .errors import (
    ConfirmationRequiredError,
    ConflictError,
    NotFoundError,
    ReconciliationError,
    StoreError,
    ValidationError,
)
from .logging import logger, log_ledger
from .models import (
    GoalStatus,
    ReviewAction,
    SubmissionStatus,
    TaskDifficulty,
    TaskState,
)
from .notifications import NotificationSink
from .store import GoalStore
from .utils import now_iso, parse_amount
from .verification import ProofSubmission, validate_proof, verify_proof

# A full redistribution must fit in one store transaction
MAX_TASKS_PER_GOAL = 100
MAX_TITLE_LENGTH = 200

AUTO_REVIEWER = 'auto-verifier'


class TaskLifecycleCoordinator:
    """
    Args:
        store: Record store (DynamoGoalStore in Lambda)
        notifier: Sink for user-facing notifications
        settings: Config object, defaults to the environment config
    """

    # Entries vanish once no thread holds or waits on the goal's lock
    _locks = weakref.WeakValueDictionary()
    _locks_guard = threading.Lock()

    def __init__(self, store: GoalStore, notifier: NotificationSink, settings=config):
        self.store = store
        self.notifier = notifier
        self.settings = settings

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    @contextmanager
    def goal_lock(self, goal_id: str):
        """Serialize task-set changes per goal. Reentrant within a thread."""
        with self._locks_guard:
            lock = self._locks.get(goal_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[goal_id] = lock
        with lock:
            yield

    def get_goal(self, goal_id: str, user_id: str = None) -> dict:
        """Goal by id; a goal owned by someone else is reported as missing."""
        goal = self.store.get_goal(goal_id)
        if not goal or (user_id and goal.get('userId') != user_id):
            raise NotFoundError('Goal', goal_id)
        return goal

    def get_task(self, goal_id: str, task_id: str) -> dict:
        task = self.store.get_task(task_id)
        if not task or task.get('goalId') != goal_id:
            raise NotFoundError('Task', task_id)
        return task

    def _notify(self, notification):
        self.notifier.send(notification)

    # =========================================================================
    # GOALS
    # =========================================================================

    def create_goal(self, user_id: str, title: str, commitment_amount, target_amount=None,
                    deadline: str = None, description: str = '') -> dict:
        """
        Create an inactive goal. It goes live once its stake payment is approved.

        Args:
            commitment_amount: Staked amount, funds the task rewards
            target_amount: Progress target, defaults to the commitment
            deadline: ISO date (YYYY-MM-DD)
        """
        title = (title or '').strip()
        if not title:
            raise ValidationError('Goal title is required')

        commitment = parse_amount(commitment_amount, 'commitmentAmount')
        if commitment > self.settings.MAX_COMMITMENT:
            raise ValidationError(f"commitmentAmount cannot exceed {self.settings.MAX_COMMITMENT}")
        target = parse_amount(target_amount, 'targetAmount') if target_amount not in (None, '') else commitment

        if deadline:
            try:
                date.fromisoformat(str(deadline)[:10])
            except ValueError:
                raise ValidationError('deadline must be an ISO date (YYYY-MM-DD)')

        goal = {
            'goalId': str(uuid.uuid4()),
            'userId': user_id,
            'title': title,
            'description': description or '',
            'commitmentAmount': commitment,
            'targetAmount': target,
            'currentAmount': Decimal('0'),
            'rewardsPaid': Decimal('0'),
            'status': GoalStatus.INACTIVE,
            'createdAt': now_iso()
        }
        if deadline:
            goal['deadline'] = str(deadline)[:10]

        self.store.create_goal(goal)
        logger.info(f"Created goal {goal['goalId']} for {user_id} with commitment {commitment}")
        return goal

    def refresh_goal_status(self, goal: dict, now: datetime = None) -> Optional[str]:
        """
        Settle an active goal:
        - progress >= 100% or every task completed -> completed
        - deadline passed with open tasks -> failed

        Returns:
            The new status, or None if unchanged
        """
        if goal.get('status') != GoalStatus.ACTIVE:
            return None

        now = now or datetime.now(timezone.utc)
        goal_id = goal['goalId']
        open_tasks = self.store.list_tasks(goal_id)
        progress = milestone_tracker.progress_percentage(goal.get('currentAmount', 0), goal.get('targetAmount'))

        new_status = None
        if progress >= 100 or (not open_tasks and Decimal(str(goal.get('rewardsPaid') or 0)) > 0):
            new_status = GoalStatus.COMPLETED
        elif open_tasks and goal.get('deadline'):
            if date.fromisoformat(str(goal['deadline'])[:10]) < now.date():
                new_status = GoalStatus.FAILED

        if new_status:
            self.store.set_goal_status(goal_id, new_status)
            logger.info(f"Goal {goal_id} is now {new_status}")
        return new_status

    # =========================================================================
    # REWARD REDISTRIBUTION
    # =========================================================================

    def redistribute(self, goal_id: str) -> dict:
        """
        Recompute and overwrite every open task's reward for the goal.

        Each attempt re-reads the task list so the final write always reflects
        the latest task set. Transient failures are retried up to
        STORE_MAX_RETRIES; the write itself is all-or-nothing.

        Returns:
            The applied plan {taskId: rewardAmount}

        Raises:
            StoreError: retries exhausted, previous rewards left untouched
        """
        attempts = max(int(self.settings.STORE_MAX_RETRIES), 1)
        last_error = None

        with self.goal_lock(goal_id):
            for attempt in range(1, attempts + 1):
                goal = self.get_goal(goal_id)
                tasks = self.store.list_tasks(goal_id)
                plan = plan_redistribution(
                    tasks,
                    goal.get('commitmentAmount', 0),
                    rewards_paid=goal.get('rewardsPaid', 0),
                    basis=self.settings.REDISTRIBUTION_BASIS,
                    conserve=self.settings.CONSERVE_REWARD_RESIDUE
                )
                try:
                    self.store.set_task_rewards(goal_id, plan)
                    logger.info(f"Redistributed rewards for goal {goal_id} across {len(plan)} tasks: {plan}")
                    return plan
                except (StoreError, ConflictError) as e:
                    # Conflict here means the task set changed under us: re-read
                    last_error = e
                    logger.warning(f"Redistribution attempt {attempt}/{attempts} for goal {goal_id} failed: {e}")

        raise StoreError(f"Reward redistribution for goal {goal_id} failed after {attempts} attempts: {last_error}")

    # =========================================================================
    # TASK SET CHANGES
    # =========================================================================

    def _new_task(self, goal_id: str, title, difficulty) -> dict:
        for value in (title, difficulty):
            if value is not None and not isinstance(value, str):
                raise ValidationError('Task title and difficulty must be strings')

        title = (title or '').strip()
        if not title:
            raise ValidationError('Task title is required')
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(f"Task title must be at most {MAX_TITLE_LENGTH} characters")

        difficulty = (difficulty or TaskDifficulty.MEDIUM).strip().lower()
        if difficulty not in TaskDifficulty.ALL:
            raise ValidationError(f"Invalid difficulty '{difficulty}'. Must be one of: {', '.join(TaskDifficulty.ALL)}")

        return {
            'taskId': str(uuid.uuid4()),
            'goalId': goal_id,
            'title': title,
            'difficulty': difficulty,
            'rewardAmount': 0,  # set by the redistribution that follows
            'completed': False,
            'reviewState': TaskState.OPEN,
            'createdAt': now_iso()
        }

    def _create_tasks(self, goal_id: str, drafts: List[dict]) -> List[dict]:
        if not drafts:
            raise ValidationError('No tasks provided')
        if not isinstance(drafts, list) or not all(isinstance(d, dict) for d in drafts):
            raise ValidationError('Tasks must be a list of {title, difficulty} objects')

        new_tasks = [self._new_task(goal_id, d.get('title'), d.get('difficulty')) for d in drafts]

        with self.goal_lock(goal_id):
            existing = self.store.list_tasks(goal_id)
            if len(existing) + len(new_tasks) > MAX_TASKS_PER_GOAL:
                raise ValidationError(f"A goal can have at most {MAX_TASKS_PER_GOAL} open tasks")

            self.store.create_tasks(new_tasks)
            plan = self.redistribute(goal_id)

        for task in new_tasks:
            task['rewardAmount'] = plan.get(task['taskId'], task['rewardAmount'])
        return new_tasks

    def add_task(self, goal_id: str, user_id: str, title: str, difficulty: str = TaskDifficulty.MEDIUM) -> dict:
        """Add one task manually and redistribute rewards across all tasks."""
        self.get_goal(goal_id, user_id)
        task = self._create_tasks(goal_id, [{'title': title, 'difficulty': difficulty}])[0]
        logger.info(f"Added task {task['taskId']} to goal {goal_id}")
        self._notify(notifications.task_added(user_id, task))
        return task

    def generate_tasks(self, goal_id: str, user_id: str, drafts: List[dict]) -> List[dict]:
        """
        Add a batch of tasks (AI generated or bulk manual entry).

        Args:
            drafts: [{'title': ..., 'difficulty': ...}, ...]
        """
        self.get_goal(goal_id, user_id)
        tasks = self._create_tasks(goal_id, drafts)
        logger.info(f"Generated {len(tasks)} tasks for goal {goal_id}")
        self._notify(notifications.tasks_generated(user_id, len(tasks)))
        return tasks

    def delete_task(self, goal_id: str, user_id: str, task_id: str) -> dict:
        """
        Delete an open task. Its reward returns to the pool and is split
        across the remaining tasks.
        """
        self.get_goal(goal_id, user_id)
        with self.goal_lock(goal_id):
            task = self.get_task(goal_id, task_id)
            if task.get('reviewState') == TaskState.PENDING_REVIEW:
                raise ConflictError('Task has a proof awaiting review and cannot be deleted')

            self.store.delete_task(task_id)
            logger.info(f"Deleted task {task_id} from goal {goal_id}")
            plan = self.redistribute(goal_id)

        self._notify(notifications.task_deleted(user_id, task))
        return plan

    def clear_tasks(self, goal_id: str, user_id: str, confirm: bool = False) -> int:
        """
        Delete every task of the goal and reset its progress to 0.
        Destructive and irreversible: requires confirm=True.

        Returns:
            Number of tasks removed
        """
        if confirm is not True:
            raise ConfirmationRequiredError('Clearing all tasks resets goal progress. Pass confirm=true to proceed.')

        self.get_goal(goal_id, user_id)
        steps = []
        with self.goal_lock(goal_id):
            tasks = self.store.list_tasks(goal_id)
            self.store.delete_tasks([t['taskId'] for t in tasks])
            steps.append('delete_tasks')
            try:
                self.store.reset_goal_progress(goal_id)
                steps.append('reset_progress')
                self.store.delete_milestones(goal_id)
                steps.append('reset_milestones')
            except StoreError as e:
                raise ReconciliationError(f"Clearing tasks for goal {goal_id} failed", steps, cause=e) from e

        log_ledger('reset_progress', 0, goalId=goal_id, tasksRemoved=len(tasks))
        self._notify(notifications.tasks_cleared(user_id, len(tasks)))
        return len(tasks)

    # =========================================================================
    # PROOF SUBMISSION & REVIEW
    # =========================================================================

    def submit_proof(self, goal_id: str, user_id: str, task_id: str, payload: dict) -> dict:
        """
        Verify proof for a task.

        Verified proofs complete the task right away (or wait for an admin
        when REQUIRE_ADMIN_REVIEW is on). Rejected proofs leave the task open.

        Returns:
            {'submission': record, 'result': verification dict, 'status': ...,
             'rewardAmount': ..., 'milestones': [...]}
        """
        goal = self.get_goal(goal_id, user_id)
        if goal.get('status') != GoalStatus.ACTIVE:
            raise ConflictError('Goal is not active. Proof can only be submitted for active goals.')

        task = self.get_task(goal_id, task_id)
        if task.get('reviewState') == TaskState.PENDING_REVIEW:
            raise ConflictError('A proof for this task is already awaiting review')

        proof = ProofSubmission.from_payload(payload or {})
        validate_proof(proof)

        result = verify_proof(task['title'], task.get('difficulty', TaskDifficulty.MEDIUM), proof)
        reward = int(task.get('rewardAmount') or 0)

        if not result.verified:
            status = SubmissionStatus.REJECTED
        elif self.settings.REQUIRE_ADMIN_REVIEW:
            status = SubmissionStatus.PENDING_REVIEW
        else:
            status = SubmissionStatus.PROCESSING

        record = {
            'submissionId': str(uuid.uuid4()),
            'taskId': task_id,
            'goalId': goal_id,
            'userId': user_id,
            'taskTitle': task['title'],
            **proof.to_record(),
            'verified': result.verified,
            'confidence': result.confidence,
            'feedback': result.feedback,
            'suggestions': result.suggestions or [],
            'rewardAmount': reward,
            'status': status,
            'submittedAt': now_iso()
        }
        self.store.create_submission(record)

        outcome = {
            'submission': record,
            'result': result.to_dict(),
            'status': record['status'],
            'rewardAmount': 0,
            'milestones': []
        }

        if not result.verified:
            logger.info(f"Proof for task {task_id} rejected with confidence {result.confidence}")
            self._notify(notifications.proof_rejected(user_id, task, result.feedback, result.suggestions))
            return outcome

        if self.settings.REQUIRE_ADMIN_REVIEW:
            self.store.set_task_state(task_id, TaskState.PENDING_REVIEW)
            logger.info(f"Proof for task {task_id} verified, awaiting admin review")
            self._notify(notifications.proof_pending(user_id, task))
            return outcome

        try:
            completed = self._complete(record, task, AUTO_REVIEWER)
        except ReconciliationError:
            raise
        except (StoreError, ConflictError) as e:
            self._fail_submission(record, e)
            raise
        return {**outcome, **completed, 'submission': {**record, 'status': SubmissionStatus.APPROVED}}

    def _fail_submission(self, record: dict, error: Exception) -> None:
        """Close an auto-approved submission whose reward credit never landed."""
        try:
            self.store.fail_submission(record['submissionId'], AUTO_REVIEWER, f"Reward credit failed: {error}")
            logger.warning(f"Submission {record['submissionId']} failed before credit: {error}")
        except (StoreError, ConflictError) as e:
            logger.error(f"Could not close submission {record['submissionId']} as failed: {e}")

    def review_submission(self, submission_id: str, admin_id: str, action: str, notes: str = '') -> dict:
        """Admin decision on a submission awaiting review."""
        if action not in ReviewAction.ALL:
            raise ValidationError(f"Invalid action '{action}'. Must be one of: {', '.join(ReviewAction.ALL)}")

        submission = self.store.get_submission(submission_id)
        if not submission:
            raise NotFoundError('Submission', submission_id)
        if submission.get('status') != SubmissionStatus.PENDING_REVIEW:
            raise ConflictError(f"Submission already {submission.get('status')}")

        task = self.get_task(submission['goalId'], submission['taskId'])

        if action == ReviewAction.REJECT:
            self.store.reject_submission(submission_id, admin_id, notes)
            self.store.set_task_state(task['taskId'], TaskState.OPEN)
            logger.info(f"Submission {submission_id} rejected by {admin_id}")
            self._notify(notifications.proof_rejected(
                submission.get('userId'), task, notes or 'Your proof was rejected by an admin.'
            ))
            return {'submission': {**submission, 'status': SubmissionStatus.REJECTED}, 'status': SubmissionStatus.REJECTED}

        outcome = self._complete(submission, task, admin_id, notes)
        return {'submission': {**submission, 'status': SubmissionStatus.APPROVED}, 'status': SubmissionStatus.APPROVED, **outcome}

    def _complete(self, submission: dict, task: dict, reviewed_by: str, notes: str = '') -> dict:
        """
        credit -> delete -> milestones -> redistribute.

        Credit and delete are one atomic store write. A failure after it raises
        ReconciliationError listing the completed steps; nothing is rolled back.
        """
        goal_id = submission['goalId']
        user_id = submission.get('userId')
        steps = []

        with self.goal_lock(goal_id):
            # Re-read under the lock: the reward may have been redistributed since
            task = self.store.get_task(task['taskId'])
            if not task:
                raise ConflictError(f"Task {submission['taskId']} was already completed or deleted")
            reward = int(task.get('rewardAmount') or 0)

            goal = self.store.complete_task(submission, reward, reviewed_by, notes)
            steps.append('credit_reward')
            steps.append('delete_task')
            log_ledger('credit_reward', reward, goalId=goal_id, taskId=task['taskId'], reviewedBy=reviewed_by)
            self._notify(notifications.proof_verified(user_id, task, reward))

            try:
                updated_milestones = self._update_milestones(goal, steps)
                if self.store.list_tasks(goal_id):
                    self.redistribute(goal_id)
                    steps.append('redistribute')
            except (StoreError, ConflictError) as e:
                logger.error(f"Completion of task {task['taskId']} needs reconciliation: {e}")
                raise ReconciliationError(
                    f"Task {task['taskId']} was credited but follow-up updates failed", steps, cause=e
                ) from e

        return {
            'status': SubmissionStatus.APPROVED,
            'rewardAmount': reward,
            'currentAmount': goal.get('currentAmount', 0),
            'milestones': [m.to_dict() for m in updated_milestones]
        }

    def _update_milestones(self, goal: dict, steps: List[str]) -> List[milestone_tracker.Milestone]:
        """Re-evaluate thresholds, persist new achievements, announce (and optionally credit) bonuses."""
        goal_id = goal['goalId']
        previous = self.store.list_milestones(goal_id)
        evaluation = milestone_tracker.evaluate(
            goal.get('currentAmount', 0),
            goal.get('targetAmount'),
            goal.get('commitmentAmount', 0)
        )
        fresh = milestone_tracker.newly_achieved(previous, evaluation)
        merged = milestone_tracker.merge(previous, evaluation, achieved_at=now_iso())

        if fresh or len(previous) != len(merged):
            self.store.save_milestones(goal_id, merged)
        steps.append('milestones')

        for milestone in fresh:
            logger.info(f"Goal {goal_id} reached {milestone.threshold}% milestone (bonus {milestone.reward_amount})")
            if self.settings.CREDIT_MILESTONE_BONUS and milestone.reward_amount > 0:
                self.store.credit_wallet(goal['userId'], milestone.reward_amount)
                steps.append(f"bonus_{milestone.threshold}")
                log_ledger('credit_bonus', milestone.reward_amount, goalId=goal_id, threshold=milestone.threshold)
            self._notify(notifications.milestone_achieved(goal.get('userId'), milestone.threshold, milestone.reward_amount))

        return merged

    # =========================================================================
    # PROGRESS
    # =========================================================================

    def goal_progress(self, goal_id: str, user_id: str = None) -> dict:
        """Read-only progress view: milestones, next threshold, confirmed and pending amounts."""
        goal = self.get_goal(goal_id, user_id)
        current = goal.get('currentAmount', 0) or 0
        target = goal.get('targetAmount')

        evaluation = milestone_tracker.evaluate(current, target, goal.get('commitmentAmount', 0))
        merged = milestone_tracker.merge(self.store.list_milestones(goal_id), evaluation)
        progress = milestone_tracker.progress_percentage(current, target)

        tasks = self.store.list_tasks(goal_id)
        pending = self.store.list_submissions(status=SubmissionStatus.PENDING_REVIEW, goal_id=goal_id)

        return {
            'goalId': goal_id,
            'status': goal.get('status'),
            'progressPercentage': round(progress, 2),
            'confirmedAmount': current,
            'pendingAmount': sum(Decimal(str(s.get('rewardAmount', 0))) for s in pending),
            'targetAmount': target,
            'commitmentAmount': goal.get('commitmentAmount', 0),
            'openTasks': len(tasks),
            'totalPossibleReward': sum(int(t.get('rewardAmount') or 0) for t in tasks),
            'milestones': [
                {**m.to_dict(), 'status': milestone_tracker.milestone_status(progress, m.threshold)}
                for m in merged
            ],
            'nextMilestone': milestone_tracker.next_milestone(current, target, merged),
            'bonusSummary': milestone_tracker.summarize(merged)
        }
