"""Authentication service for password accounts and JWT management."""

import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError
from passlib.context import CryptContext

from models.user import LoginRequest, RegisterRequest, User, UserRole
from services.user_service import UserExistsError, UserService
from utils.constants import USER_ID_PREFIX
from utils.id_utils import new_id, utc_now_iso

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass
class AuthenticatedUser:
    """Identity carried by a verified access token."""

    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class AuthenticationError(Exception):
    """Authentication error."""

    pass


class AccountDisabledError(AuthenticationError):
    """Valid credentials for a deactivated account."""

    pass


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def admin_emails_from_env() -> set[str]:
    """Emails that receive the admin role on registration."""
    raw = os.environ.get("ADMIN_EMAILS", "")
    return {email.strip().lower() for email in raw.split(",") if email.strip()}


class AuthService:
    """Service for handling authentication."""

    # JWT settings
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRATION_HOURS = 24 * 7  # 7 days
    JWT_REFRESH_EXPIRATION_DAYS = 30

    def __init__(
        self,
        user_service: UserService,
        jwt_secret: str | None = None,
        admin_emails: set[str] | None = None,
    ):
        """Initialize auth service.

        Args:
            user_service: Account storage
            jwt_secret: Secret for signing JWTs
            admin_emails: Emails registered as admins (defaults to ADMIN_EMAILS)
        """
        self.user_service = user_service
        self.jwt_secret = jwt_secret or os.environ.get(
            "JWT_SECRET_KEY", "dev-secret-change-in-prod"
        )
        self.admin_emails = (
            admin_emails if admin_emails is not None else admin_emails_from_env()
        )

    # MARK: - Accounts

    def register(self, request: RegisterRequest) -> tuple[User, dict[str, Any]]:
        """Create an account and open a session for it.

        Raises:
            AuthenticationError: If the email is already registered
        """
        email = request.email.strip().lower()
        role = UserRole.ADMIN if email in self.admin_emails else UserRole.RESIDENT
        user = User(
            id=new_id(USER_ID_PREFIX),
            email=email,
            full_name=request.full_name,
            role=role,
            phone=request.phone,
            address=request.address,
            password_hash=hash_password(request.password),
            created_at=utc_now_iso(),
        )

        try:
            self.user_service.create_user(user)
        except UserExistsError:
            raise AuthenticationError("User with this email already exists")

        return user, self.create_session_tokens(user)

    def login(self, request: LoginRequest) -> tuple[User, dict[str, Any]]:
        """Verify credentials and open a session.

        Raises:
            AuthenticationError: On unknown email, wrong password or inactive account
        """
        user = self.user_service.find_by_email(request.email)
        if not user or not verify_password(request.password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AccountDisabledError("Account is deactivated")

        user = self.user_service.update_last_login(user.id) or user
        logger.info("User %s logged in", user.id)
        return user, self.create_session_tokens(user)

    # MARK: - JWT Session Management

    def create_session_tokens(self, user: User) -> dict[str, Any]:
        """Create access and refresh tokens for a user.

        Returns:
            Dict with accessToken, refreshToken, tokenType and expiresIn
        """
        now = datetime.now(UTC)
        claims = {"sub": user.id, "role": user.role.value, "iat": now}

        access_token = jwt.encode(
            {
                **claims,
                "type": "access",
                "exp": now + timedelta(hours=self.JWT_EXPIRATION_HOURS),
            },
            self.jwt_secret,
            algorithm=self.JWT_ALGORITHM,
        )
        refresh_token = jwt.encode(
            {
                **claims,
                "type": "refresh",
                "exp": now + timedelta(days=self.JWT_REFRESH_EXPIRATION_DAYS),
            },
            self.jwt_secret,
            algorithm=self.JWT_ALGORITHM,
        )

        return {
            "accessToken": access_token,
            "refreshToken": refresh_token,
            "tokenType": "Bearer",
            "expiresIn": self.JWT_EXPIRATION_HOURS * 3600,
        }

    def verify_access_token(self, token: str) -> AuthenticatedUser:
        """Verify an access token.

        Raises:
            AuthenticationError: If token is invalid
        """
        payload = self._decode(token, expected_type="access")
        return AuthenticatedUser(
            user_id=payload["sub"],
            role=payload.get("role", UserRole.RESIDENT.value),
        )

    def refresh_tokens(self, refresh_token: str) -> dict[str, Any]:
        """Exchange a refresh token for a new token pair.

        The role is re-read from the account so promotions take effect.

        Raises:
            AuthenticationError: If refresh token is invalid
        """
        payload = self._decode(refresh_token, expected_type="refresh")

        user = self.user_service.get_user(payload["sub"])
        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        return self.create_session_tokens(user)

    def _decode(self, token: str, expected_type: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.JWT_ALGORITHM],
                options={"verify_exp": True},
            )
        except ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except JWTError as e:
            raise AuthenticationError(f"Invalid token: {str(e)}")

        if payload.get("type") != expected_type:
            raise AuthenticationError("Invalid token type")
        if not payload.get("sub"):
            raise AuthenticationError("Missing user ID in token")
        return payload
