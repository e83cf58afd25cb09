"""
Create Goal Handler.
POST /goals
Body: { "title": "...", "commitmentAmount": 100, "targetAmount": 100, "deadline": "2026-12-31" }

The goal starts inactive until its stake payment is approved.
"""
from shared.auth import require_user
from shared.errors import GoalMateError
from shared.lifecycle import TaskLifecycleCoordinator
from shared.logging import logger, log_event
from shared.notifications import EventBridgeNotifier
from shared.store import DynamoGoalStore
from shared.utils import format_response, error_response, parse_body

coordinator = TaskLifecycleCoordinator(DynamoGoalStore(), EventBridgeNotifier())


def handler(event, context):
    log_event(event)
    try:
        user_id = require_user(event)
        body = parse_body(event)

        goal = coordinator.create_goal(
            user_id,
            body.get('title'),
            body.get('commitmentAmount'),
            target_amount=body.get('targetAmount'),
            deadline=body.get('deadline'),
            description=body.get('description', '')
        )
        return format_response(201, {
            'message': 'Goal created. Submit your stake payment to activate it.',
            'goal': goal
        })

    except GoalMateError as e:
        logger.warning(f"Create goal rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error creating goal: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
