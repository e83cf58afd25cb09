"""
Add Task Handler.
POST /goals/{goalId}/tasks
Body: { "title": "Read chapter 3", "difficulty": "medium" }

Rewards of every task on the goal are redistributed after the insert.
"""
from shared.auth import require_user
from shared.errors import GoalMateError, ValidationError
from shared.lifecycle import TaskLifecycleCoordinator
from shared.logging import logger, log_event
from shared.notifications import EventBridgeNotifier
from shared.store import DynamoGoalStore
from shared.utils import format_response, error_response, parse_body, get_path_param

coordinator = TaskLifecycleCoordinator(DynamoGoalStore(), EventBridgeNotifier())


def handler(event, context):
    log_event(event)
    try:
        user_id = require_user(event)
        goal_id = get_path_param(event, 'goalId')
        if not goal_id:
            raise ValidationError('Missing goalId')

        body = parse_body(event)
        task = coordinator.add_task(goal_id, user_id, body.get('title'), body.get('difficulty'))
        return format_response(201, {'task': task})

    except GoalMateError as e:
        logger.warning(f"Add task rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error adding task: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
