"""
Delete Task Handler.
DELETE /goals/{goalId}/tasks/{taskId}
"""
from shared.auth import require_user
from shared.errors import GoalMateError, ValidationError
from shared.lifecycle import TaskLifecycleCoordinator
from shared.logging import logger, log_event
from shared.notifications import EventBridgeNotifier
from shared.store import DynamoGoalStore
from shared.utils import format_response, error_response, get_path_param

coordinator = TaskLifecycleCoordinator(DynamoGoalStore(), EventBridgeNotifier())


def handler(event, context):
    log_event(event)
    try:
        user_id = require_user(event)
        goal_id = get_path_param(event, 'goalId')
        task_id = get_path_param(event, 'taskId')
        if not goal_id or not task_id:
            raise ValidationError('Missing goalId or taskId')

        plan = coordinator.delete_task(goal_id, user_id, task_id)
        return format_response(200, {
            'message': 'Task has been removed and rewards redistributed',
            'rewards': plan
        })

    except GoalMateError as e:
        logger.warning(f"Delete task rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error deleting task: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
