"""User-submitted abuse reports."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from iskate_admin import store
from iskate_admin.constants import REPORT_STATUS_RESOLVED, REPORTS_COLLECTION

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReportParty:
    uid: str = ""
    username: str = ""
    full_name: str = ""
    email: str = ""

    @classmethod
    def from_mapping(cls, data: Any) -> "ReportParty":
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            uid=_text(data.get("uid")),
            username=_text(data.get("username")),
            full_name=_text(data.get("fullName")),
            email=_text(data.get("email")),
        )

    @property
    def label(self) -> str:
        name = self.username or self.full_name or self.uid or "unknown"
        return f"{name} ({self.email})" if self.email else name


@dataclass(slots=True)
class Report:
    report_id: str
    category: str = ""
    status: str = ""
    details: str = ""
    platform: str = ""
    app_version: str = ""
    created_at: Any = ""
    reported_user: ReportParty = field(default_factory=ReportParty)
    reporting_user: ReportParty = field(default_factory=ReportParty)

    @property
    def is_resolved(self) -> bool:
        return self.status == REPORT_STATUS_RESOLVED


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def report_from_document(report_id: str, data: Mapping[str, Any]) -> Report:
    return Report(
        report_id=report_id,
        category=_text(data.get("reportCategory")),
        status=_text(data.get("status")),
        details=_text(data.get("additionalDetails")),
        platform=_text(data.get("platform")),
        app_version=_text(data.get("appVersion")),
        # createdAt is missing on reports filed by older app builds
        created_at=data.get("createdAt") or data.get("timestamp") or "",
        reported_user=ReportParty.from_mapping(data.get("reportedUser")),
        reporting_user=ReportParty.from_mapping(data.get("reportingUser")),
    )


def list_reports() -> list[Report]:
    return [report_from_document(doc_id, data) for doc_id, data in store.list_collection(REPORTS_COLLECTION)]


def split_reports(reports: Sequence[Report]) -> tuple[list[Report], list[Report]]:
    """Partition reports into ``(pending, resolved)`` keeping their order."""

    pending = [report for report in reports if not report.is_resolved]
    resolved = [report for report in reports if report.is_resolved]
    return pending, resolved


def resolve_report(report_id: str) -> None:
    if not report_id or "/" in report_id:
        raise ValueError(f"Invalid report id: {report_id!r}")
    store.update_document(f"{REPORTS_COLLECTION}/{report_id}", {"status": REPORT_STATUS_RESOLVED})
    logger.info("Report %s marked resolved", report_id)


__all__ = [
    "Report",
    "ReportParty",
    "report_from_document",
    "list_reports",
    "split_reports",
    "resolve_report",
]
