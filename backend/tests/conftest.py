"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import boto3
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from moto import mock_aws

from models.report import Report, ReportPriority, ReportSubmission
from services.record_store import InMemoryRecordStore
from utils.cache import clear_all_caches

TEST_JWT_SECRET = "unit-test-secret-key"


def _create_token(
    user_id: str = "test_user",
    role: str = "resident",
    token_type: str = "access",
    expires_in: timedelta = timedelta(hours=1),
    secret: str = TEST_JWT_SECRET,
) -> str:
    """Create a signed JWT for testing authenticated endpoints."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "role": role,
        "type": token_type,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


class FakeConnection:
    """Stand-in for a WebSocket that records what it is sent."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)

    @property
    def events(self) -> list[str]:
        return [message["event"] for message in self.sent]


@pytest.fixture(autouse=True)
def _clear_caches():
    """Clear all caches before and after each test."""
    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def make_token():
    """Factory for signed test tokens."""
    return _create_token


@pytest.fixture
def auth_header():
    """Factory for Authorization headers."""

    def _header(user_id: str = "test_user", role: str = "resident") -> dict:
        return {"Authorization": f"Bearer {_create_token(user_id, role)}"}

    return _header


@pytest.fixture
def make_connection():
    """Factory for fake realtime connections."""
    return FakeConnection


@pytest.fixture
def client(monkeypatch, tmp_path):
    """Create a FastAPI TestClient over fresh in-memory services."""
    monkeypatch.setenv("JWT_SECRET_KEY", TEST_JWT_SECRET)
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    for var in ("IMAGE_BUCKET", "IMAGE_PUBLIC_BASE_URL", "INFOBIP_API_KEY", "ADMIN_EMAILS"):
        monkeypatch.delenv(var, raising=False)

    from handlers.api_handler import app, reset_services

    reset_services()
    # One event loop for HTTP requests and WebSocket sessions
    with TestClient(app) as test_client:
        yield test_client
    reset_services()


@pytest.fixture
def report_store():
    return InMemoryRecordStore()


@pytest.fixture
def report_payload():
    """A complete report request body as the web frontend sends it."""
    return {
        "issueType": "illegal-dumping",
        "location": "Corner of Main St and Park Ave",
        "description": "Construction debris dumped on the sidewalk",
        "priority": "critical",
        "contactName": "Nimal Perera",
        "contactPhone": "+94771234567",
        "photos": ["https://img.example.org/dump.jpg"],
    }


@pytest.fixture
def report_submission(report_payload):
    return ReportSubmission.model_validate(report_payload)


@pytest.fixture
def make_report():
    """Factory for stored Report records."""

    def _make(
        report_id: str = "EMR_01J9Z6Q8X2K4M7N5P3R1T0V8W6",
        priority: ReportPriority = ReportPriority.MEDIUM,
        status: str = "under-review",
        timestamp: str | None = None,
        reporter_id: str | None = None,
        issue_type: str = "missed-pickup",
    ) -> Report:
        return Report(
            id=report_id,
            issue_type=issue_type,
            location="12 Lake Rd",
            description="Bins not collected this week",
            priority=priority,
            contact_name="Ama Silva",
            contact_phone="+94770000000",
            status=status,
            timestamp=timestamp or datetime.now(UTC).isoformat(),
            reporter_id=reporter_id,
        )

    return _make


@pytest.fixture
def dynamodb_table(monkeypatch):
    """A real (moto) DynamoDB table with an ``id`` hash key."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-west-2")
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-west-2")
        table = dynamodb.create_table(
            TableName="greengrid-reports-test",
            KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        table.wait_until_exists()
        yield table


@pytest.fixture
def mock_dynamodb_table():
    """Create a mock DynamoDB table for testing."""
    mock_table = Mock()
    mock_table.name = "greengrid-test"
    mock_table.put_item.return_value = {}
    mock_table.get_item.return_value = {}
    mock_table.scan.return_value = {"Items": []}
    mock_table.delete_item.return_value = {}
    return mock_table
