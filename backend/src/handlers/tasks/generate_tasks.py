"""
Generate Tasks Handler - bulk insert of AI generated task drafts.
POST /goals/{goalId}/tasks/generate
Body: { "tasks": [{ "title": "...", "difficulty": "easy" }, ...] }
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

        tasks = coordinator.generate_tasks(goal_id, user_id, parse_body(event).get('tasks'))
        return format_response(201, {'count': len(tasks), 'tasks': tasks})

    except GoalMateError as e:
        logger.warning(f"Generate tasks rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error generating tasks: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
