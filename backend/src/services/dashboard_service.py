"""Admin dashboard aggregation over the report store."""

import logging
from collections import Counter
from datetime import UTC, datetime, timedelta

from models.report import (
    OPEN_STATUSES,
    Report,
    ReportPriority,
    ReportStatus,
)
from services.record_store import RecordStore
from utils.cache import cached_dashboard

logger = logging.getLogger(__name__)

# Window for the "recent reports" count
RECENT_WINDOW_DAYS = 7


class DashboardService:
    """Computes report summary counts for admin views."""

    def __init__(self, report_store: RecordStore):
        self.report_store = report_store

    @cached_dashboard
    def get_summary(self) -> dict:
        """Summarize every stored report.

        Returns:
            Dictionary with:
            - total: number of reports
            - byStatus / byPriority: counts for every known value (zeros included)
            - byIssueType: counts for issue types present
            - open: under-review plus in-progress
            - resolved, critical, highPriority: shortcut counts
            - recentReports: reports submitted in the last 7 days
            - responseRate: resolved share of all reports, in percent
            - lastUpdated: when the summary was computed
        """
        reports = [Report.model_validate(r) for r in self.report_store.list()]
        return summarize_reports(reports)


def summarize_reports(reports: list[Report], now: datetime | None = None) -> dict:
    """Aggregate a list of reports into dashboard counts."""
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=RECENT_WINDOW_DAYS)

    by_status = {status.value: 0 for status in ReportStatus}
    by_priority = {priority.value: 0 for priority in ReportPriority}
    by_issue_type: Counter[str] = Counter()
    recent = 0

    for report in reports:
        by_status[report.status.value] += 1
        by_priority[report.priority.value] += 1
        by_issue_type[report.issue_type] += 1
        if _parse_timestamp(report.timestamp) >= cutoff:
            recent += 1

    total = len(reports)
    resolved = by_status[ReportStatus.RESOLVED.value]

    return {
        "total": total,
        "byStatus": by_status,
        "byPriority": by_priority,
        "byIssueType": dict(by_issue_type),
        "open": sum(by_status[s.value] for s in OPEN_STATUSES),
        "resolved": resolved,
        "critical": by_priority[ReportPriority.CRITICAL.value],
        "highPriority": by_priority[ReportPriority.HIGH.value],
        "recentReports": recent,
        "responseRate": round(resolved / total * 100) if total else 0,
        "lastUpdated": now.isoformat(),
    }


def _parse_timestamp(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        logger.debug("Unparseable report timestamp: %r", value)
        return datetime.min.replace(tzinfo=UTC)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
