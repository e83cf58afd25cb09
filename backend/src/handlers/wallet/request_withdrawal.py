"""
Request Withdrawal Handler.
POST /wallet/withdrawals
Body: { "amount": 50, "upiId": "name@bank" }
"""
from shared.auth import require_user
from shared.errors import GoalMateError
from shared.logging import logger, log_event
from shared.payments import request_withdrawal
from shared.store import DynamoGoalStore
from shared.utils import format_response, error_response, parse_body

store = DynamoGoalStore()


def handler(event, context):
    log_event(event)
    try:
        user_id = require_user(event)
        body = parse_body(event)
        request = request_withdrawal(store, user_id, body.get('amount'), body.get('upiId'))
        return format_response(201, {
            'message': 'Withdrawal request submitted for review',
            'request': request
        })

    except GoalMateError as e:
        logger.warning(f"Withdrawal request rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error requesting withdrawal: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
