"""
Clear Tasks Handler.
DELETE /goals/{goalId}/tasks?confirm=true

Removes every task and resets goal progress. Irreversible.
"""
from shared.auth import require_user
from shared.errors import GoalMateError, ValidationError
from shared.lifecycle import TaskLifecycleCoordinator
from shared.logging import logger, log_event
from shared.notifications import EventBridgeNotifier
from shared.store import DynamoGoalStore
from shared.utils import format_response, error_response, get_path_param, get_query_param

coordinator = TaskLifecycleCoordinator(DynamoGoalStore(), EventBridgeNotifier())


def handler(event, context):
    log_event(event)
    try:
        user_id = require_user(event)
        goal_id = get_path_param(event, 'goalId')
        if not goal_id:
            raise ValidationError('Missing goalId')

        confirm = str(get_query_param(event, 'confirm', 'false')).lower() == 'true'
        removed = coordinator.clear_tasks(goal_id, user_id, confirm=confirm)
        return format_response(200, {
            'message': f"All {removed} tasks were removed and goal progress was reset",
            'removed': removed
        })

    except GoalMateError as e:
        logger.warning(f"Clear tasks rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error clearing tasks: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
