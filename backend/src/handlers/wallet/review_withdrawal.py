"""
Review Withdrawal Handler (admin).
POST /admin/withdrawals/{requestId}/review
Body: { "action": "approved" | "rejected", "notes": "..." }
"""
from shared.auth import require_admin
from shared.errors import GoalMateError, ValidationError
from shared.logging import logger, log_event
from shared.notifications import EventBridgeNotifier
from shared.payments import review_withdrawal
from shared.store import DynamoGoalStore
from shared.utils import format_response, error_response, parse_body, get_path_param

store = DynamoGoalStore()
notifier = EventBridgeNotifier()


def handler(event, context):
    log_event(event)
    try:
        admin_id = require_admin(event)
        request_id = get_path_param(event, 'requestId')
        if not request_id:
            raise ValidationError('Missing requestId')

        body = parse_body(event)
        request = review_withdrawal(store, notifier, request_id, body.get('action'), admin_id, body.get('notes', ''))
        return format_response(200, {'request': request})

    except GoalMateError as e:
        logger.warning(f"Withdrawal review rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error reviewing withdrawal: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
