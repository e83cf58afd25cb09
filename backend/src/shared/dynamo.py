"""
DynamoDB utility functions shared by the record store.
"""
import boto3
from decimal import Decimal
from typing import List, Dict, Any, Optional
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError
from .config import config
from .errors import ConflictError, StoreError
from .logging import logger

dynamodb = boto3.resource('dynamodb', region_name=config.AWS_REGION)
client = boto3.client('dynamodb', region_name=config.AWS_REGION)

# DynamoDB limit per TransactWriteItems call
MAX_TRANSACTION_ITEMS = 100

CONFLICT_CODES = ('ConditionalCheckFailedException', 'TransactionCanceledException')

_serializer = TypeSerializer()


def table(table_name: str):
    """High-level Table resource."""
    return dynamodb.Table(table_name)


def to_store_error(error: ClientError, action: str) -> Exception:
    """
    Map a botocore ClientError to our taxonomy.
    Failed conditions are conflicts, everything else is a transient store error.
    """
    code = error.response.get('Error', {}).get('Code', '')
    if code in CONFLICT_CODES:
        return ConflictError(f"{action} rejected: condition not met")
    return StoreError(f"{action} failed: {code or error}")


def to_dynamo_value(value: Any) -> Any:
    """Floats are not accepted by boto3, convert them (and nested ones) to Decimal."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_dynamo_value(v) for v in value]
    return value


def serialize(values: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize a python dict into low-level attribute values for the client API."""
    return {k: _serializer.serialize(to_dynamo_value(v)) for k, v in values.items()}


def query_all(
    table_name: str,
    key_condition: Any,
    index_name: Optional[str] = None,
    filter_expression: Optional[Any] = None,
    scan_forward: bool = True
) -> List[Dict[str, Any]]:
    """
    Query a table or index, following LastEvaluatedKey until exhausted.

    Raises:
        StoreError: on any DynamoDB failure
    """
    query_params = {
        'KeyConditionExpression': key_condition,
        'ScanIndexForward': scan_forward
    }
    if index_name:
        query_params['IndexName'] = index_name
    if filter_expression is not None:
        query_params['FilterExpression'] = filter_expression

    items = []
    try:
        while True:
            response = table(table_name).query(**query_params)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            query_params['ExclusiveStartKey'] = last_key
    except ClientError as e:
        logger.error(f"Error querying {table_name}: {e}")
        raise to_store_error(e, f"Query on {table_name}")


def scan_all(table_name: str, filter_expression: Optional[Any] = None) -> List[Dict[str, Any]]:
    """Scan a whole table (scheduled jobs only)."""
    scan_params = {}
    if filter_expression is not None:
        scan_params['FilterExpression'] = filter_expression

    items = []
    try:
        while True:
            response = table(table_name).scan(**scan_params)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            scan_params['ExclusiveStartKey'] = last_key
    except ClientError as e:
        logger.error(f"Error scanning {table_name}: {e}")
        raise to_store_error(e, f"Scan on {table_name}")


def batch_write_items(table_name: str, items: List[Dict[str, Any]]) -> None:
    """
    Write multiple items to DynamoDB using batch_writer.
    Batching (max 25 items per request) and unprocessed retries are automatic.

    Raises:
        StoreError: if the batch fails
    """
    try:
        with table(table_name).batch_writer() as batch:
            for item in items:
                batch.put_item(Item=to_dynamo_value(item))
        logger.info(f"Successfully wrote {len(items)} items to {table_name}")
    except ClientError as e:
        logger.error(f"Error batch writing to {table_name}: {e}")
        raise to_store_error(e, f"Batch write to {table_name}")


def batch_delete_items(table_name: str, keys: List[Dict[str, Any]]) -> None:
    """Delete multiple items by key."""
    try:
        with table(table_name).batch_writer() as batch:
            for key in keys:
                batch.delete_item(Key=key)
        logger.info(f"Deleted {len(keys)} items from {table_name}")
    except ClientError as e:
        logger.error(f"Error batch deleting from {table_name}: {e}")
        raise to_store_error(e, f"Batch delete from {table_name}")


def transact_write(items: List[Dict[str, Any]], action: str) -> None:
    """
    All-or-nothing write of up to MAX_TRANSACTION_ITEMS operations.

    Raises:
        ConflictError: a condition failed, nothing was written
        StoreError: transient failure, nothing was written
    """
    if not items:
        return
    if len(items) > MAX_TRANSACTION_ITEMS:
        raise ValueError(f"Transaction too large: {len(items)} > {MAX_TRANSACTION_ITEMS}")
    try:
        client.transact_write_items(TransactItems=items)
    except ClientError as e:
        logger.error(f"Transaction '{action}' failed: {e}")
        raise to_store_error(e, action)
