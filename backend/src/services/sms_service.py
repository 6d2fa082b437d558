"""SMS alerts through the Infobip HTTP API."""

import logging
import os

import requests

from models.report import Report, ReportStatus

logger = logging.getLogger(__name__)

DEFAULT_INFOBIP_BASE_URL = "https://api.infobip.com"
SMS_SENDER = "GreenGrid"
REQUEST_TIMEOUT_SECONDS = 10

STATUS_MESSAGES = {
    ReportStatus.IN_PROGRESS: 'UPDATE: Your report "{issue}" is now being handled by our team. Report ID: {id}',
    ReportStatus.RESOLVED: 'RESOLVED: Your report "{issue}" has been resolved. Thank you for reporting. Report ID: {id}',
    ReportStatus.CLOSED: 'CLOSED: Your report "{issue}" has been closed. Report ID: {id}',
}


class SmsError(Exception):
    """Raised when the SMS provider rejects a message."""

    pass


class SmsService:
    """Sends text messages; disabled when no API key is configured."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        emergency_phone: str | None = None,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key or os.environ.get("INFOBIP_API_KEY")
        self.base_url = (
            base_url or os.environ.get("INFOBIP_BASE_URL") or DEFAULT_INFOBIP_BASE_URL
        ).rstrip("/")
        self.emergency_phone = emergency_phone or os.environ.get("EMERGENCY_PHONE")
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(self, phone_number: str, text: str) -> dict:
        """Send one SMS.

        Raises:
            SmsError: If the provider call fails
        """
        if not self.enabled:
            raise SmsError("SMS is not configured")

        try:
            response = self.session.post(
                f"{self.base_url}/sms/2/text/advanced",
                json={
                    "messages": [
                        {
                            "from": SMS_SENDER,
                            "destinations": [{"to": phone_number}],
                            "text": text,
                        }
                    ]
                },
                headers={
                    "Authorization": f"App {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise SmsError(f"Failed to send SMS: {e}") from e
        except ValueError as e:
            raise SmsError(f"Unexpected SMS provider response: {e}") from e

    def send_emergency_alert(self, report: Report) -> bool:
        """Alert the response team and confirm receipt to the reporter.

        Failures are logged; the caller's request is never failed by SMS.

        Returns:
            True if every message was sent
        """
        if not self.enabled:
            logger.warning("SMS not configured, skipping emergency alert for %s", report.id)
            return False

        messages = []
        if self.emergency_phone:
            messages.append(
                (
                    self.emergency_phone,
                    "EMERGENCY REPORT\n"
                    f"Report ID: {report.id}\n"
                    f"Type: {report.issue_type}\n"
                    f"Location: {report.location}\n"
                    f"Priority: {report.priority.value}\n"
                    f"Contact: {report.contact_phone}",
                )
            )
        messages.append(
            (
                report.contact_phone,
                f"Your report {report.id} has been received. Our team will respond "
                "as soon as possible. Keep this ID for reference.",
            )
        )

        all_sent = True
        for phone, text in messages:
            try:
                self.send(phone, text)
            except SmsError as e:
                logger.warning("Emergency SMS for %s failed: %s", report.id, e)
                all_sent = False
        return all_sent

    def send_status_update(self, report: Report) -> bool:
        """Tell the reporter their report changed status."""
        template = STATUS_MESSAGES.get(report.status)
        if template is None:
            return False
        if not self.enabled:
            logger.warning("SMS not configured, skipping status update for %s", report.id)
            return False

        try:
            self.send(
                report.contact_phone,
                template.format(issue=report.issue_type, id=report.id),
            )
            return True
        except SmsError as e:
            logger.warning("Status update SMS for %s failed: %s", report.id, e)
            return False
