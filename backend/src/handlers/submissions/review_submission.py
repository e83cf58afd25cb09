"""
Review Submission Handler (admin).
POST /admin/submissions/{submissionId}/review
Body: { "action": "approved" | "rejected", "notes": "..." }
"""
from shared.auth import require_admin
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
        admin_id = require_admin(event)
        submission_id = get_path_param(event, 'submissionId')
        if not submission_id:
            raise ValidationError('Missing submissionId')

        body = parse_body(event)
        outcome = coordinator.review_submission(
            submission_id, admin_id, body.get('action'), body.get('notes', '')
        )
        return format_response(200, outcome)

    except GoalMateError as e:
        logger.warning(f"Submission review rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error reviewing submission: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
