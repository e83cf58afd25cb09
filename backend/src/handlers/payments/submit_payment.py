"""
Submit Payment Handler - stake payment for a goal.
POST /goals/{goalId}/payment
Body: { "amount": 100, "transactionId": "UPI ref" }
"""
from shared.auth import require_user
from shared.errors import GoalMateError, ValidationError
from shared.logging import logger, log_event
from shared.payments import submit_payment
from shared.store import DynamoGoalStore
from shared.utils import format_response, error_response, parse_body, get_path_param

store = DynamoGoalStore()


def handler(event, context):
    log_event(event)
    try:
        user_id = require_user(event)
        goal_id = get_path_param(event, 'goalId')
        if not goal_id:
            raise ValidationError('Missing goalId')

        body = parse_body(event)
        payment = submit_payment(store, goal_id, user_id, body.get('amount'), body.get('transactionId'))
        return format_response(201, {
            'message': 'Payment submitted. Your goal will be activated once it is verified.',
            'payment': payment
        })

    except GoalMateError as e:
        logger.warning(f"Payment submission rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error submitting payment: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
