"""Thin REST client for the GreenGrid API."""

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30


class ApiClientError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class GreenGridClient:
    """Wraps the REST endpoints; payloads use the API's camelCase fields."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        session: requests.Session | None = None,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise ApiClientError(0, f"Request failed: {e}") from e

        if not response.ok:
            try:
                message = response.json().get("message", response.reason)
            except ValueError:
                message = response.text or response.reason
            logger.debug("%s %s -> %d %s", method, path, response.status_code, message)
            raise ApiClientError(response.status_code, message)

        return response.json() if response.content else None

    # MARK: - Health

    def health(self) -> dict:
        return self._request("GET", "/api/health")

    # MARK: - Auth

    def register(self, email: str, password: str, full_name: str, **extra) -> dict:
        """Register and keep the returned access token for later calls."""
        data = self._request(
            "POST",
            "/api/auth/register",
            json={"email": email, "password": password, "fullName": full_name, **extra},
        )
        self.token = data["tokens"]["accessToken"]
        return data

    def login(self, email: str, password: str) -> dict:
        """Log in and keep the returned access token for later calls."""
        data = self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )
        self.token = data["tokens"]["accessToken"]
        return data

    def profile(self) -> dict:
        return self._request("GET", "/api/auth/profile")["user"]

    # MARK: - Reports

    def submit_report(self, report: dict) -> dict:
        return self._request("POST", "/api/reports", json=report)["report"]

    def list_reports(self, **filters) -> list[dict]:
        params = {k: v for k, v in filters.items() if v is not None}
        return self._request("GET", "/api/reports", params=params)

    def get_report(self, report_id: str) -> dict:
        return self._request("GET", f"/api/reports/{report_id}")["report"]

    def update_report_status(self, report_id: str, status: str, **extra) -> dict:
        return self._request(
            "PATCH",
            f"/api/reports/{report_id}/status",
            json={"status": status, **extra},
        )["report"]

    def delete_report(self, report_id: str) -> None:
        self._request("DELETE", f"/api/reports/{report_id}")

    def dashboard(self) -> dict:
        return self._request("GET", "/api/admin/dashboard")["summary"]

    def list_users(self, role: str | None = None) -> list[dict]:
        params = {"role": role} if role else None
        return self._request("GET", "/api/admin/users", params=params)["users"]

    # MARK: - Routes, notifications, feedback, contact

    def list_routes(self, region: str | None = None) -> list[dict]:
        params = {"region": region} if region else None
        return self._request("GET", "/api/routes", params=params)

    def add_route(self, route: dict) -> dict:
        return self._request("POST", "/api/routes", json=route)["route"]

    def list_notifications(self) -> list[dict]:
        return self._request("GET", "/api/notifications")

    def create_notification(self, message: str, date: str, type: str) -> dict:
        return self._request(
            "POST",
            "/api/notifications",
            json={"message": message, "date": date, "type": type},
        )["notification"]

    def list_feedback(self) -> list[dict]:
        return self._request("GET", "/api/feedback")

    def submit_feedback(self, name: str, rating: int, comment: str, date: str) -> dict:
        return self._request(
            "POST",
            "/api/feedback",
            json={"name": name, "rating": rating, "comment": comment, "date": date},
        )["feedback"]

    def submit_contact(self, name: str, email: str, message: str) -> dict:
        return self._request(
            "POST",
            "/api/contact",
            json={"name": name, "email": email, "message": message},
        )["contact"]

    # MARK: - Uploads

    def upload_images(self, files: list[tuple[str, bytes, str]]) -> list[dict]:
        """Upload (filename, content, content_type) tuples."""
        multipart = [("images", file) for file in files]
        return self._request("POST", "/api/uploads/images", files=multipart)["images"]
