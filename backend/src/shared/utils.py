"""
Request/response helpers shared by the API Gateway handlers.
"""
import json
import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from .errors import GoalMateError, ValidationError

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Credentials': True,
    'Content-Type': 'application/json'
}


class DecimalEncoder(json.JSONEncoder):
    """Serialize DynamoDB Decimals as int when whole, float otherwise."""

    def default(self, o):
        if isinstance(o, Decimal):
            return int(o) if o == o.to_integral_value() else float(o)
        return super().default(o)


def format_response(status_code: int, body: Any, headers: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Build a Lambda proxy response.

    Money fields stay Decimal until here; extra headers override the CORS defaults.
    """
    return {
        'statusCode': status_code,
        'headers': {**CORS_HEADERS, **(headers or {})},
        'body': json.dumps(body, cls=DecimalEncoder)
    }


def error_response(error: GoalMateError) -> Dict[str, Any]:
    """Turn a GoalMateError into a title + message response."""
    return format_response(error.status_code, {
        'title': error.title,
        'message': error.message
    })


def parse_body(event: dict) -> dict:
    """JSON body of the request; malformed or non-object bodies become {}."""
    raw = event.get('body') or '{}'
    if not isinstance(raw, str):
        return raw if isinstance(raw, dict) else {}
    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return body if isinstance(body, dict) else {}


def get_path_param(event: dict, name: str) -> Optional[str]:
    return (event.get('pathParameters') or {}).get(name)


def get_query_param(event: dict, name: str, default: str = None) -> Optional[str]:
    return (event.get('queryStringParameters') or {}).get(name, default)


def parse_amount(value: Any, field: str = 'amount') -> Decimal:
    """
    Parse a monetary amount from request input.

    Raises:
        ValidationError: if missing, not a number, or not positive
    """
    if value is None or value == '':
        raise ValidationError(f"Missing {field}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field} format")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field} must be positive")
    return amount


def now_iso() -> str:
    """Current UTC time as ISO-8601 string."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()
