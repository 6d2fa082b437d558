"""Tests for AuthService and UserService."""

from datetime import timedelta

import pytest
from jose import jwt

from models.user import LoginRequest, RegisterRequest, UserRole
from services.auth_service import (
    AccountDisabledError,
    AuthenticatedUser,
    AuthenticationError,
    AuthService,
    hash_password,
    verify_password,
)
from services.record_store import InMemoryRecordStore
from services.user_service import UserExistsError, UserService

SECRET = "test-secret-key-for-testing"


@pytest.fixture
def user_service():
    return UserService(InMemoryRecordStore())


@pytest.fixture
def auth_service(user_service):
    return AuthService(user_service, jwt_secret=SECRET, admin_emails={"chief@greengrid.lk"})


def _register(auth_service, email="ama@example.com", password="s3cure-pass"):
    return auth_service.register(
        RegisterRequest(email=email, password=password, full_name="Ama Silva")
    )


class TestPasswordHashing:
    """Tests for password hashing helpers."""

    def test_hash_and_verify(self):
        hashed = hash_password("s3cure-pass")

        assert hashed != "s3cure-pass"
        assert verify_password("s3cure-pass", hashed)
        assert not verify_password("wrong-pass", hashed)

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("s3cure-pass", "not-a-hash") is False


class TestRegistration:
    """Tests for account creation."""

    def test_register_creates_resident(self, auth_service, user_service):
        user, tokens = _register(auth_service, email="Ama@Example.com")

        assert user.id.startswith("U_")
        assert user.email == "ama@example.com"
        assert user.role == UserRole.RESIDENT
        assert user_service.find_by_email("AMA@example.com").id == user.id
        assert "accessToken" in tokens and "refreshToken" in tokens
        assert "passwordHash" not in user.to_public()

    def test_admin_email_registers_admin(self, auth_service):
        user, tokens = _register(auth_service, email="chief@greengrid.lk")

        assert user.role == UserRole.ADMIN
        claims = jwt.decode(tokens["accessToken"], SECRET, algorithms=["HS256"])
        assert claims["role"] == "admin"

    def test_duplicate_email(self, auth_service):
        _register(auth_service)
        with pytest.raises(AuthenticationError, match="already exists"):
            _register(auth_service, email="AMA@example.com")

    def test_user_service_rejects_duplicates(self, auth_service, user_service):
        user, _ = _register(auth_service)
        with pytest.raises(UserExistsError):
            user_service.create_user(user.model_copy(update={"id": "U_other"}))

    def test_list_users_oldest_first_with_role_filter(self, auth_service, user_service):
        first, _ = _register(auth_service, email="first@example.com")
        second, _ = _register(auth_service, email="second@example.com")
        user_service.store.update(second.id, {"role": "community-leader"})

        assert [u.id for u in user_service.list_users()] == [first.id, second.id]
        assert [u.id for u in user_service.list_users("community-leader")] == [second.id]


class TestLogin:
    """Tests for password login."""

    def test_login_success_updates_last_login(self, auth_service):
        _register(auth_service)

        user, tokens = auth_service.login(
            LoginRequest(email="ama@example.com", password="s3cure-pass")
        )

        assert user.last_login is not None
        assert auth_service.verify_access_token(tokens["accessToken"]).user_id == user.id

    def test_wrong_password(self, auth_service):
        _register(auth_service)
        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            auth_service.login(LoginRequest(email="ama@example.com", password="nope-nope"))

    def test_unknown_email(self, auth_service):
        with pytest.raises(AuthenticationError):
            auth_service.login(LoginRequest(email="ghost@example.com", password="whatever1"))

    def test_inactive_account(self, auth_service, user_service):
        user, _ = _register(auth_service)
        user_service.store.update(user.id, {"isActive": False})

        with pytest.raises(AccountDisabledError):
            auth_service.login(LoginRequest(email="ama@example.com", password="s3cure-pass"))


class TestTokens:
    """Tests for JWT handling."""

    def test_verify_access_token(self, auth_service, make_token):
        token = make_token("U_1", "community-leader", secret=SECRET)

        user = auth_service.verify_access_token(token)

        assert user == AuthenticatedUser(user_id="U_1", role="community-leader")
        assert not user.is_admin

    def test_refresh_token_rejected_as_access(self, auth_service, make_token):
        token = make_token("U_1", token_type="refresh", secret=SECRET)
        with pytest.raises(AuthenticationError, match="Invalid token type"):
            auth_service.verify_access_token(token)

    def test_expired_token(self, auth_service, make_token):
        token = make_token("U_1", expires_in=timedelta(seconds=-10), secret=SECRET)
        with pytest.raises(AuthenticationError, match="expired"):
            auth_service.verify_access_token(token)

    def test_wrong_secret(self, auth_service, make_token):
        with pytest.raises(AuthenticationError, match="Invalid token"):
            auth_service.verify_access_token(make_token("U_1", secret="other-secret"))

    def test_refresh_issues_new_pair(self, auth_service):
        user, tokens = _register(auth_service)

        refreshed = auth_service.refresh_tokens(tokens["refreshToken"])

        assert auth_service.verify_access_token(refreshed["accessToken"]).user_id == user.id

    def test_refresh_for_deleted_user(self, auth_service, user_service):
        user, tokens = _register(auth_service)
        user_service.store.delete(user.id)

        with pytest.raises(AuthenticationError, match="not found"):
            auth_service.refresh_tokens(tokens["refreshToken"])

    def test_admin_emails_from_env(self, monkeypatch, user_service):
        monkeypatch.setenv("ADMIN_EMAILS", "Boss@City.gov, ops@city.gov")
        service = AuthService(user_service, jwt_secret=SECRET)

        assert service.admin_emails == {"boss@city.gov", "ops@city.gov"}
