"""
Get Wallet Handler.
GET /wallet
"""
from shared.auth import require_user
from shared.errors import GoalMateError
from shared.logging import logger, log_event
from shared.store import DynamoGoalStore
from shared.utils import format_response, error_response

store = DynamoGoalStore()


def handler(event, context):
    log_event(event)
    try:
        user_id = require_user(event)
        wallet = store.get_wallet(user_id)
        return format_response(200, {
            'walletId': user_id,
            'balance': wallet.get('balance', 0),
            'totalInvested': wallet.get('totalInvested', 0)
        })

    except GoalMateError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error getting wallet: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
