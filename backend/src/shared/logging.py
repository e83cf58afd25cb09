"""
Logging for Lambda handlers and the lifecycle coordinator.
Everything goes to stderr, which CloudWatch collects per function.
"""
import logging
import json
import os

logger = logging.getLogger('goalmate')
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO').upper())

if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logger.addHandler(handler)

# Request parts that may carry proof text, payment references or tokens
_REDACTED_KEYS = ('body', 'headers', 'multiValueHeaders')


def log_event(event: dict) -> None:
    """Log the incoming API Gateway event without body, headers or claims other than sub."""
    try:
        safe_event = {k: v for k, v in event.items() if k not in _REDACTED_KEYS}
        claims = (safe_event.get('requestContext') or {}).get('authorizer', {}).get('claims')
        if claims:
            safe_event['requestContext'] = {'authorizer': {'claims': {'sub': claims.get('sub')}}}
        logger.info(f"Lambda event: {json.dumps(safe_event, default=str)}")
    except Exception as e:
        logger.warning(f"Could not log event: {e}")


def log_ledger(action: str, amount, **refs) -> None:
    """
    One INFO line per financial state change, greppable by the LEDGER prefix.

    Example:
        log_ledger('credit_reward', 25, goalId='g1', taskId='t1')
    """
    details = ' '.join(f"{k}={v}" for k, v in sorted(refs.items()))
    logger.info(f"LEDGER {action} amount={amount} {details}".rstrip())
