"""
Submit Proof Handler.
POST /goals/{goalId}/tasks/{taskId}/proof
Body: { "type": "github", "githubRepo": "...", "githubCommits": "..." }
      { "type": "image", "imageFile": "proofs/<key>.jpg", "text": "..." }

Verified proofs credit the task reward; rejected proofs come back with
feedback and suggestions, and the task stays open for another attempt.
"""
from shared.auth import require_user
from shared.errors import GoalMateError, ReconciliationError, ValidationError
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
        task_id = get_path_param(event, 'taskId')
        if not goal_id or not task_id:
            raise ValidationError('Missing goalId or taskId')

        outcome = coordinator.submit_proof(goal_id, user_id, task_id, parse_body(event))
        return format_response(200, outcome)

    except ReconciliationError as e:
        logger.error(f"Proof for task {get_path_param(event, 'taskId')} needs reconciliation: {e.completed_steps}")
        return error_response(e)
    except GoalMateError as e:
        logger.warning(f"Proof submission rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error submitting proof: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
