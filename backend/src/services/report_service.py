"""Report ingestion, review and realtime notification."""

import asyncio
import logging
from typing import Any, Callable

from models.report import (
    PRIORITY_RANK,
    Report,
    ReportStatus,
    ReportStatusUpdate,
    ReportSubmission,
)
from services.dashboard_service import DashboardService
from services.realtime_service import EventFanout, user_channel
from services.record_store import RecordStore
from services.sms_service import SmsService
from utils.cache import invalidate_dashboard_cache
from utils.constants import (
    ADMIN_CHANNEL,
    EVENT_DASHBOARD_UPDATE,
    EVENT_NEW_REPORT,
    EVENT_REPORT_STATUS,
    EVENT_URGENT_ALERT,
    REPORT_ID_PREFIX,
)
from utils.id_utils import new_id, utc_now_iso

logger = logging.getLogger(__name__)


class ReportNotFoundError(Exception):
    """Raised when a report id does not exist."""

    pass


class ReportService:
    """Service for submitting and reviewing waste issue reports.

    Every accepted report is appended to the store before any event is
    published, so subscribers never hear about a report that was not saved.
    """

    def __init__(
        self,
        store: RecordStore,
        fanout: EventFanout | None = None,
        sms_service: SmsService | None = None,
        dashboard_service: DashboardService | None = None,
    ):
        self.store = store
        self.fanout = fanout
        self.sms_service = sms_service
        self.dashboard_service = dashboard_service or DashboardService(store)

    # MARK: - Ingestion

    async def submit_report(
        self, submission: ReportSubmission, reporter_id: str | None = None
    ) -> Report:
        """Store a validated submission and notify subscribers.

        Args:
            submission: Validated request body
            reporter_id: Id of the authenticated submitter, if any

        Returns:
            The stored report
        """
        report = Report(
            id=new_id(REPORT_ID_PREFIX),
            **submission.model_dump(),
            status=ReportStatus.UNDER_REVIEW,
            timestamp=utc_now_iso(),
            reporter_id=reporter_id,
        )
        self.store.append(report.to_api())
        invalidate_dashboard_cache()

        logger.info(
            "Report %s submitted (%s, priority=%s)",
            report.id,
            report.issue_type,
            report.priority.value,
        )

        await self._publish(ADMIN_CHANNEL, EVENT_NEW_REPORT, {"report": report.to_api()})

        if report.is_urgent:
            alert = {
                "report": report.to_api(),
                "message": f"Urgent {report.issue_type} report at {report.location}",
            }
            await self._publish(ADMIN_CHANNEL, EVENT_URGENT_ALERT, alert)
            if reporter_id:
                await self._publish(user_channel(reporter_id), EVENT_URGENT_ALERT, alert)
            if self.sms_service:
                await self._send_sms(self.sms_service.send_emergency_alert, report)

        return report

    # MARK: - Queries

    def list_reports(
        self,
        reporter_id: str | None = None,
        status: ReportStatus | None = None,
        priority: str | None = None,
        issue_type: str | None = None,
        limit: int | None = None,
    ) -> list[Report]:
        """List reports, most urgent first and then newest first.

        Args:
            reporter_id: Restrict to one submitter's reports
            status, priority, issue_type: Optional exact-match filters
            limit: Maximum number of reports to return
        """
        criteria: dict[str, Any] = {}
        if reporter_id:
            criteria["reporterId"] = reporter_id
        if status:
            criteria["status"] = ReportStatus(status).value
        if priority:
            criteria["priority"] = priority
        if issue_type:
            criteria["issueType"] = issue_type

        reports = [Report.model_validate(r) for r in self.store.find(**criteria)]
        reports.sort(key=lambda r: r.timestamp, reverse=True)
        reports.sort(key=lambda r: PRIORITY_RANK[r.priority])

        if limit is not None:
            reports = reports[:limit]
        return reports

    def get_report(self, report_id: str) -> Report | None:
        record = self.store.get(report_id)
        return Report.model_validate(record) if record else None

    # MARK: - Review

    async def update_status(
        self, report_id: str, update: ReportStatusUpdate, updated_by: str
    ) -> Report:
        """Apply a staff status change.

        Raises:
            ReportNotFoundError: If the report does not exist
        """
        existing = self.get_report(report_id)
        if existing is None:
            raise ReportNotFoundError(f"Report {report_id} not found")

        now = utc_now_iso()
        changes: dict[str, Any] = {
            "status": update.status.value,
            "updatedAt": now,
            "updatedBy": updated_by,
        }
        if update.admin_notes is not None:
            changes["adminNotes"] = update.admin_notes
        if update.response_team is not None:
            changes["responseTeam"] = update.response_team
        if update.status == ReportStatus.RESOLVED:
            changes["resolvedAt"] = now

        record = self.store.update(report_id, changes)
        if record is None:
            raise ReportNotFoundError(f"Report {report_id} not found")
        report = Report.model_validate(record)
        invalidate_dashboard_cache()

        logger.info(
            "Report %s status %s -> %s by %s",
            report_id,
            existing.status.value,
            report.status.value,
            updated_by,
        )

        await self._publish_dashboard_update("status-changed", report_id)
        if report.reporter_id:
            await self._publish(
                user_channel(report.reporter_id),
                EVENT_REPORT_STATUS,
                {"report": report.to_api()},
            )
        if self.sms_service and report.status != existing.status:
            await self._send_sms(self.sms_service.send_status_update, report)

        return report

    async def delete_report(self, report_id: str) -> bool:
        """Delete a report. Returns False if it did not exist."""
        if not self.store.delete(report_id):
            return False

        invalidate_dashboard_cache()
        logger.info("Report %s deleted", report_id)
        await self._publish_dashboard_update("deleted", report_id)
        return True

    # MARK: - Events

    async def _publish_dashboard_update(self, reason: str, report_id: str) -> None:
        try:
            summary = self.dashboard_service.get_summary()
        except Exception as e:
            logger.warning("Could not compute dashboard summary: %s", e)
            summary = None

        data: dict[str, Any] = {"reason": reason, "reportId": report_id}
        if summary is not None:
            data["summary"] = summary
        await self._publish(ADMIN_CHANNEL, EVENT_DASHBOARD_UPDATE, data)

    async def _publish(self, channel: str, event: str, data: dict[str, Any]) -> None:
        if self.fanout is None:
            return
        try:
            await self.fanout.publish(channel, event, data)
        except Exception as e:
            logger.warning("Failed to publish %s to %s: %s", event, channel, e)

    async def _send_sms(self, send: Callable[[Report], bool], report: Report) -> None:
        """Run a blocking SMS call in a worker thread. Failures are logged only."""
        try:
            await asyncio.to_thread(send, report)
        except Exception as e:
            logger.warning("SMS for report %s failed: %s", report.id, e)
