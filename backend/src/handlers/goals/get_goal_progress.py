"""
Goal Progress Handler.
GET /goals/{goalId}/progress
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
        if not goal_id:
            raise ValidationError('Missing goalId')

        return format_response(200, coordinator.goal_progress(goal_id, user_id))

    except GoalMateError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error getting goal progress: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
