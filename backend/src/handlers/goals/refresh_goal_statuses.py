"""
Refresh Goal Statuses - scheduled job (EventBridge rule, hourly).
Marks active goals as completed or failed.
"""
from datetime import datetime, timezone

from shared.errors import GoalMateError
from shared.lifecycle import TaskLifecycleCoordinator
from shared.logging import logger
from shared.models import GoalStatus
from shared.notifications import EventBridgeNotifier
from shared.store import DynamoGoalStore

store = DynamoGoalStore()
coordinator = TaskLifecycleCoordinator(store, EventBridgeNotifier())


def handler(event, context):
    now = datetime.now(timezone.utc)
    goals = store.list_goals_by_status(GoalStatus.ACTIVE)
    logger.info(f"Refreshing {len(goals)} active goals")

    updated = {GoalStatus.COMPLETED: 0, GoalStatus.FAILED: 0}
    errors = 0
    for goal in goals:
        try:
            new_status = coordinator.refresh_goal_status(goal, now)
            if new_status:
                updated[new_status] += 1
        except GoalMateError as e:
            # One bad goal must not stop the sweep
            errors += 1
            logger.error(f"Failed to refresh goal {goal.get('goalId')}: {e}")

    logger.info(f"Goal refresh done: {updated}, errors={errors}")
    return {
        'checked': len(goals),
        'completed': updated[GoalStatus.COMPLETED],
        'failed': updated[GoalStatus.FAILED],
        'errors': errors
    }
