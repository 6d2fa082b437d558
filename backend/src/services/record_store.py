"""Record stores backing every GreenGrid collection.

Services depend on the ``RecordStore`` interface only, so the persistence
backend is chosen once at startup and tests can run against an in-memory
store without any process-wide state.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any

import boto3
from botocore.exceptions import ClientError

from utils.dynamodb_utils import (
    build_update_expression,
    parse_from_dynamodb,
    prepare_for_dynamodb,
)

logger = logging.getLogger(__name__)

STORAGE_BACKEND_MEMORY = "memory"
STORAGE_BACKEND_DYNAMODB = "dynamodb"

# Table name environment variables and their defaults, per collection
TABLE_ENV_VARS = {
    "reports": ("REPORTS_TABLE", "greengrid-reports-dev"),
    "routes": ("ROUTES_TABLE", "greengrid-routes-dev"),
    "notifications": ("NOTIFICATIONS_TABLE", "greengrid-notifications-dev"),
    "feedback": ("FEEDBACK_TABLE", "greengrid-feedback-dev"),
    "contact": ("CONTACT_TABLE", "greengrid-contact-dev"),
    "users": ("USERS_TABLE", "greengrid-users-dev"),
}


class StoreError(Exception):
    """Raised when the underlying storage backend fails."""

    pass


class RecordStore(ABC):
    """Keyed collection of JSON-like records."""

    key: str = "id"

    @abstractmethod
    def list(self) -> list[dict[str, Any]]:
        """Return every record, oldest first."""

    @abstractmethod
    def append(self, record: dict[str, Any]) -> dict[str, Any]:
        """Store a new record and return it."""

    @abstractmethod
    def get(self, record_id: str) -> dict[str, Any] | None:
        """Return one record, or None if absent."""

    @abstractmethod
    def update(self, record_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        """Apply field changes and return the updated record, or None if absent."""

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        """Delete a record. Returns False if it did not exist."""

    def find(self, **criteria: Any) -> list[dict[str, Any]]:
        """Return records whose fields equal every given criterion."""
        return [
            record
            for record in self.list()
            if all(record.get(field) == value for field, value in criteria.items())
        ]

    def count(self) -> int:
        return len(self.list())


class InMemoryRecordStore(RecordStore):
    """List-backed store; state lives on the instance only."""

    def __init__(self, records: list[dict[str, Any]] | None = None, key: str = "id"):
        self.key = key
        self._records: list[dict[str, Any]] = [dict(r) for r in records or []]

    def list(self) -> list[dict[str, Any]]:
        return [dict(record) for record in self._records]

    def append(self, record: dict[str, Any]) -> dict[str, Any]:
        record_id = record.get(self.key)
        if not record_id:
            raise StoreError(f"Record is missing its '{self.key}' attribute")
        if self._index_of(record_id) is not None:
            raise StoreError(f"Duplicate record id: {record_id}")
        self._records.append(dict(record))
        return dict(record)

    def get(self, record_id: str) -> dict[str, Any] | None:
        index = self._index_of(record_id)
        return None if index is None else dict(self._records[index])

    def update(self, record_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        index = self._index_of(record_id)
        if index is None:
            return None
        self._records[index] = {**self._records[index], **changes}
        return dict(self._records[index])

    def delete(self, record_id: str) -> bool:
        index = self._index_of(record_id)
        if index is None:
            return False
        del self._records[index]
        return True

    def count(self) -> int:
        return len(self._records)

    def _index_of(self, record_id: str) -> int | None:
        for index, record in enumerate(self._records):
            if record.get(self.key) == record_id:
                return index
        return None


class DynamoDBRecordStore(RecordStore):
    """Store backed by a DynamoDB table with a single string hash key."""

    def __init__(self, table, key: str = "id"):
        """Initialize the store.

        Args:
            table: boto3 DynamoDB Table resource
            key: Name of the table's hash key attribute
        """
        self.table = table
        self.key = key

    def list(self) -> list[dict[str, Any]]:
        items = []
        scan_kwargs: dict[str, Any] = {}
        try:
            while True:
                response = self.table.scan(**scan_kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            logger.error("Failed to scan %s: %s", self.table.name, e)
            raise StoreError(f"Failed to list records: {e}") from e

        records = [parse_from_dynamodb(item) for item in items]
        # Scans are unordered; ULID-based ids sort by creation time
        records.sort(key=lambda r: str(r.get(self.key, "")))
        return records

    def append(self, record: dict[str, Any]) -> dict[str, Any]:
        try:
            self.table.put_item(
                Item=prepare_for_dynamodb(record),
                ConditionExpression="attribute_not_exists(#k)",
                ExpressionAttributeNames={"#k": self.key},
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise StoreError(f"Duplicate record id: {record.get(self.key)}") from e
            logger.error("Failed to write to %s: %s", self.table.name, e)
            raise StoreError(f"Failed to store record: {e}") from e
        return record

    def get(self, record_id: str) -> dict[str, Any] | None:
        try:
            response = self.table.get_item(Key={self.key: record_id})
        except ClientError as e:
            logger.error("Failed to read %s from %s: %s", record_id, self.table.name, e)
            raise StoreError(f"Failed to get record: {e}") from e

        item = response.get("Item")
        return parse_from_dynamodb(item) if item else None

    def update(self, record_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        expression, names, values = build_update_expression(changes)
        names["#k"] = self.key
        try:
            response = self.table.update_item(
                Key={self.key: record_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(#k)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            logger.error("Failed to update %s in %s: %s", record_id, self.table.name, e)
            raise StoreError(f"Failed to update record: {e}") from e

        return parse_from_dynamodb(response.get("Attributes", {}))

    def delete(self, record_id: str) -> bool:
        try:
            self.table.delete_item(
                Key={self.key: record_id},
                ConditionExpression="attribute_exists(#k)",
                ExpressionAttributeNames={"#k": self.key},
            )
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            logger.error("Failed to delete %s from %s: %s", record_id, self.table.name, e)
            raise StoreError(f"Failed to delete record: {e}") from e


def get_storage_backend() -> str:
    """Return the configured storage backend name."""
    backend = os.environ.get("STORAGE_BACKEND", STORAGE_BACKEND_MEMORY).lower()
    if backend not in (STORAGE_BACKEND_MEMORY, STORAGE_BACKEND_DYNAMODB):
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
    return backend


def create_record_store(collection: str, dynamodb=None) -> RecordStore:
    """Create the store for a collection using the configured backend.

    Args:
        collection: Collection name, one of TABLE_ENV_VARS
        dynamodb: Optional boto3 DynamoDB resource (created if omitted)
    """
    if collection not in TABLE_ENV_VARS:
        raise ValueError(f"Unknown collection: {collection}")

    if get_storage_backend() == STORAGE_BACKEND_MEMORY:
        return InMemoryRecordStore()

    env_var, default_name = TABLE_ENV_VARS[collection]
    if dynamodb is None:
        region = os.environ.get("AWS_DEFAULT_REGION", "us-west-2")
        dynamodb = boto3.resource("dynamodb", region_name=region)
    table_name = os.environ.get(env_var, default_name)
    logger.info("Using DynamoDB table %s for %s", table_name, collection)
    return DynamoDBRecordStore(dynamodb.Table(table_name))
