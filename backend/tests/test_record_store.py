"""Tests for the record store implementations."""

from decimal import Decimal

import boto3
import pytest
from botocore.exceptions import ClientError

from services.record_store import (
    DynamoDBRecordStore,
    InMemoryRecordStore,
    StoreError,
    create_record_store,
    get_storage_backend,
)


def _client_error(code: str, operation: str = "PutItem") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestInMemoryRecordStore:
    """Tests for the list-backed store."""

    def test_starts_empty(self):
        assert InMemoryRecordStore().list() == []

    def test_append_and_list_preserves_order(self):
        store = InMemoryRecordStore()
        store.append({"id": "a", "n": 1})
        store.append({"id": "b", "n": 2})

        assert [r["id"] for r in store.list()] == ["a", "b"]
        assert store.count() == 2

    def test_instances_do_not_share_state(self):
        first = InMemoryRecordStore()
        second = InMemoryRecordStore()
        first.append({"id": "a"})

        assert second.list() == []

    def test_returned_records_are_copies(self):
        store = InMemoryRecordStore([{"id": "a", "status": "open"}])
        record = store.list()[0]
        record["status"] = "tampered"

        assert store.get("a")["status"] == "open"

    def test_append_rejects_duplicate_id(self):
        store = InMemoryRecordStore([{"id": "a"}])
        with pytest.raises(StoreError, match="Duplicate"):
            store.append({"id": "a"})

    def test_append_requires_key(self):
        with pytest.raises(StoreError, match="missing"):
            InMemoryRecordStore().append({"name": "no id"})

    def test_get_missing_returns_none(self):
        assert InMemoryRecordStore().get("nope") is None

    def test_update_merges_changes(self):
        store = InMemoryRecordStore([{"id": "a", "status": "open", "name": "x"}])
        updated = store.update("a", {"status": "closed"})

        assert updated == {"id": "a", "status": "closed", "name": "x"}
        assert store.get("a")["status"] == "closed"

    def test_update_missing_returns_none(self):
        assert InMemoryRecordStore().update("nope", {"status": "closed"}) is None

    def test_delete(self):
        store = InMemoryRecordStore([{"id": "a"}, {"id": "b"}])

        assert store.delete("a") is True
        assert store.delete("a") is False
        assert [r["id"] for r in store.list()] == ["b"]

    def test_find_matches_all_criteria(self):
        store = InMemoryRecordStore(
            [
                {"id": "a", "status": "open", "priority": "high"},
                {"id": "b", "status": "open", "priority": "low"},
                {"id": "c", "status": "closed", "priority": "high"},
            ]
        )

        assert [r["id"] for r in store.find(status="open")] == ["a", "b"]
        assert [r["id"] for r in store.find(status="open", priority="high")] == ["a"]
        assert store.find() == store.list()


class TestDynamoDBRecordStoreWithMocks:
    """Tests for DynamoDBRecordStore error handling against a mocked table."""

    def test_append_converts_numbers_and_drops_none(self, mock_dynamodb_table):
        store = DynamoDBRecordStore(mock_dynamodb_table)
        store.append({"id": "F_1", "rating": 5, "note": None})

        kwargs = mock_dynamodb_table.put_item.call_args.kwargs
        assert kwargs["Item"] == {"id": "F_1", "rating": Decimal(5)}
        assert kwargs["ConditionExpression"] == "attribute_not_exists(#k)"

    def test_append_duplicate_raises_store_error(self, mock_dynamodb_table):
        mock_dynamodb_table.put_item.side_effect = _client_error(
            "ConditionalCheckFailedException"
        )
        with pytest.raises(StoreError, match="Duplicate"):
            DynamoDBRecordStore(mock_dynamodb_table).append({"id": "F_1"})

    def test_client_error_raises_store_error(self, mock_dynamodb_table):
        mock_dynamodb_table.scan.side_effect = _client_error("InternalServerError", "Scan")
        with pytest.raises(StoreError):
            DynamoDBRecordStore(mock_dynamodb_table).list()

    def test_list_follows_pagination_and_sorts(self, mock_dynamodb_table):
        mock_dynamodb_table.scan.side_effect = [
            {"Items": [{"id": "b"}], "LastEvaluatedKey": {"id": "b"}},
            {"Items": [{"id": "a", "rating": Decimal("4")}]},
        ]
        records = DynamoDBRecordStore(mock_dynamodb_table).list()

        assert records == [{"id": "a", "rating": 4}, {"id": "b"}]
        second_call = mock_dynamodb_table.scan.call_args_list[1]
        assert second_call.kwargs["ExclusiveStartKey"] == {"id": "b"}

    def test_update_missing_returns_none(self, mock_dynamodb_table):
        mock_dynamodb_table.update_item.side_effect = _client_error(
            "ConditionalCheckFailedException", "UpdateItem"
        )
        assert DynamoDBRecordStore(mock_dynamodb_table).update("x", {"a": 1}) is None

    def test_delete_missing_returns_false(self, mock_dynamodb_table):
        mock_dynamodb_table.delete_item.side_effect = _client_error(
            "ConditionalCheckFailedException", "DeleteItem"
        )
        assert DynamoDBRecordStore(mock_dynamodb_table).delete("x") is False


class TestDynamoDBRecordStore:
    """Round trips through a moto-backed table."""

    def test_append_get_list(self, dynamodb_table):
        store = DynamoDBRecordStore(dynamodb_table)
        store.append({"id": "EMR_02", "status": "under-review", "photos": []})
        store.append({"id": "EMR_01", "status": "resolved", "geo": {"lat": 7.3}})

        assert store.get("EMR_01") == {"id": "EMR_01", "status": "resolved", "geo": {"lat": 7.3}}
        assert [r["id"] for r in store.list()] == ["EMR_01", "EMR_02"]
        assert store.count() == 2

    def test_update_reserved_word_attribute(self, dynamodb_table):
        store = DynamoDBRecordStore(dynamodb_table)
        store.append({"id": "EMR_01", "status": "under-review"})

        updated = store.update("EMR_01", {"status": "in-progress", "date": "2026-01-01"})

        assert updated["status"] == "in-progress"
        assert store.get("EMR_01")["date"] == "2026-01-01"

    def test_update_and_delete_missing(self, dynamodb_table):
        store = DynamoDBRecordStore(dynamodb_table)

        assert store.update("missing", {"status": "closed"}) is None
        assert store.delete("missing") is False

    def test_delete_existing(self, dynamodb_table):
        store = DynamoDBRecordStore(dynamodb_table)
        store.append({"id": "EMR_01"})

        assert store.delete("EMR_01") is True
        assert store.get("EMR_01") is None

    def test_find(self, dynamodb_table):
        store = DynamoDBRecordStore(dynamodb_table)
        store.append({"id": "EMR_01", "reporterId": "U_1"})
        store.append({"id": "EMR_02", "reporterId": "U_2"})

        assert [r["id"] for r in store.find(reporterId="U_2")] == ["EMR_02"]


class TestCreateRecordStore:
    """Tests for backend selection."""

    def test_defaults_to_memory(self, monkeypatch):
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)

        assert get_storage_backend() == "memory"
        assert isinstance(create_record_store("reports"), InMemoryRecordStore)

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError, match="STORAGE_BACKEND"):
            create_record_store("reports")

    def test_unknown_collection(self):
        with pytest.raises(ValueError, match="collection"):
            create_record_store("invoices")

    def test_dynamodb_uses_configured_table(self, monkeypatch, dynamodb_table):
        monkeypatch.setenv("STORAGE_BACKEND", "dynamodb")
        monkeypatch.setenv("REPORTS_TABLE", "greengrid-reports-test")

        store = create_record_store(
            "reports", dynamodb=boto3.resource("dynamodb", region_name="us-west-2")
        )

        assert isinstance(store, DynamoDBRecordStore)
        assert store.table.name == "greengrid-reports-test"
