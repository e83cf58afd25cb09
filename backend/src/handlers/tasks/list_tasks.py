"""
List Tasks Handler.
GET /goals/{goalId}/tasks
"""
from shared.auth import require_user
from shared.errors import GoalMateError, ValidationError
from shared.lifecycle import TaskLifecycleCoordinator
from shared.logging import logger, log_event
from shared.notifications import EventBridgeNotifier
from shared.store import DynamoGoalStore
from shared.utils import format_response, error_response, get_path_param

store = DynamoGoalStore()
coordinator = TaskLifecycleCoordinator(store, EventBridgeNotifier())


def handler(event, context):
    log_event(event)
    try:
        user_id = require_user(event)
        goal_id = get_path_param(event, 'goalId')
        if not goal_id:
            raise ValidationError('Missing goalId')

        goal = coordinator.get_goal(goal_id, user_id)
        tasks = store.list_tasks(goal_id)
        return format_response(200, {
            'goalId': goal_id,
            'goalStatus': goal.get('status'),
            'tasks': tasks,
            'totalPossibleReward': sum(int(t.get('rewardAmount') or 0) for t in tasks)
        })

    except GoalMateError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing tasks: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
