"""Tests for SmsService."""

from unittest.mock import MagicMock

import pytest
import requests

from models.report import ReportPriority, ReportStatus
from services.sms_service import SmsError, SmsService


@pytest.fixture
def session():
    session = MagicMock()
    session.post.return_value.json.return_value = {"messages": [{"status": {"id": 1}}]}
    return session


@pytest.fixture
def sms(session):
    return SmsService(
        api_key="infobip-key",
        base_url="https://example.api.infobip.com/",
        emergency_phone="+94110000000",
        session=session,
    )


class TestSend:
    """Tests for the raw send call."""

    def test_posts_to_infobip(self, sms, session):
        sms.send("+94771234567", "hello")

        url = session.post.call_args.args[0]
        kwargs = session.post.call_args.kwargs
        assert url == "https://example.api.infobip.com/sms/2/text/advanced"
        assert kwargs["headers"]["Authorization"] == "App infobip-key"
        message = kwargs["json"]["messages"][0]
        assert message["destinations"] == [{"to": "+94771234567"}]
        assert message["text"] == "hello"

    def test_request_failure_raises_sms_error(self, sms, session):
        session.post.side_effect = requests.ConnectionError("no route")
        with pytest.raises(SmsError):
            sms.send("+94771234567", "hello")

    def test_non_json_reply_raises_sms_error(self, sms, session):
        session.post.return_value.json.side_effect = ValueError("Expecting value")
        with pytest.raises(SmsError):
            sms.send("+94771234567", "hello")

    def test_emergency_alert_survives_non_json_reply(self, sms, session, make_report):
        session.post.return_value.json.side_effect = ValueError("Expecting value")
        assert sms.send_emergency_alert(make_report()) is False

    def test_disabled_without_key(self, monkeypatch, session):
        monkeypatch.delenv("INFOBIP_API_KEY", raising=False)
        service = SmsService(session=session)

        assert not service.enabled
        with pytest.raises(SmsError, match="not configured"):
            service.send("+94771234567", "hello")


class TestAlerts:
    """Tests for report alerts."""

    def test_emergency_alert_notifies_team_and_reporter(self, sms, session, make_report):
        report = make_report(priority=ReportPriority.CRITICAL)

        assert sms.send_emergency_alert(report) is True

        recipients = [
            call.kwargs["json"]["messages"][0]["destinations"][0]["to"]
            for call in session.post.call_args_list
        ]
        assert recipients == ["+94110000000", report.contact_phone]

    def test_emergency_alert_failure_is_reported_not_raised(self, sms, session, make_report):
        session.post.side_effect = requests.Timeout("slow")
        assert sms.send_emergency_alert(make_report()) is False

    def test_emergency_alert_disabled(self, monkeypatch, session, make_report):
        monkeypatch.delenv("INFOBIP_API_KEY", raising=False)
        assert SmsService(session=session).send_emergency_alert(make_report()) is False
        session.post.assert_not_called()

    def test_status_update_text(self, sms, session, make_report):
        report = make_report(report_id="EMR_42", status=ReportStatus.RESOLVED)

        assert sms.send_status_update(report) is True
        text = session.post.call_args.kwargs["json"]["messages"][0]["text"]
        assert text.startswith("RESOLVED")
        assert "EMR_42" in text

    def test_no_status_message_for_under_review(self, sms, session, make_report):
        assert sms.send_status_update(make_report()) is False
        session.post.assert_not_called()
