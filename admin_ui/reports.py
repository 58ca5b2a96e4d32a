"""Abuse report triage."""
from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

import streamlit as st

from iskate_admin.constants import REPORT_STATUS_OPEN, REPORT_STATUS_RESOLVED
from iskate_admin.reports import Report, list_reports, resolve_report, split_reports
from iskate_admin.store import StoreError
from utils.time_utils import format_timestamp

STATUS_BADGES = {
    REPORT_STATUS_OPEN: ":green[Open]",
    REPORT_STATUS_RESOLVED: ":gray[Resolved]",
}


def _render_report(
    report: Report,
    *,
    can_resolve: bool,
    administrator: Mapping[str, Any],
    log_moderation_event: Callable[..., None],
    trigger_rerun: Callable[[], None],
    admin_email_lookup: Callable[[Mapping[str, Any]], str | None],
) -> None:
    badge = STATUS_BADGES.get(report.status, f":gray[{report.status or 'Unknown'}]")
    title = f"{report.category or 'Uncategorised'} · {badge} · {format_timestamp(report.created_at)}"
    with st.expander(title):
        st.markdown(f"**Details:** {report.details or '—'}")
        st.markdown(f"**Reported User:** {report.reported_user.label}")
        st.markdown(f"**Reporting User:** {report.reporting_user.label}")
        st.markdown(f"**Platform:** {report.platform or '—'}")
        st.markdown(f"**App Version:** {report.app_version or '—'}")
        st.markdown(f"**Report ID:** {report.report_id}")

        if not can_resolve or not st.button("Mark as Resolved", key=f"resolve-{report.report_id}"):
            return

        identifier = admin_email_lookup(administrator)
        try:
            resolve_report(report.report_id)
        except StoreError as exc:
            st.error(f"Error: {exc}")
            log_moderation_event(
                "report resolve",
                "fail",
                admin_identifier=identifier,
                params=[report.report_id, report.reported_user.uid, report.category, None, None],
                metadata={"error": str(exc)},
            )
        else:
            log_moderation_event(
                "report resolve",
                "success",
                admin_identifier=identifier,
                params=[report.report_id, report.reported_user.uid, report.category, None, None],
            )
            trigger_rerun()


def _render_section(title: str, reports: Sequence[Report], *, can_resolve: bool, **callbacks: Any) -> None:
    st.subheader(title)
    if not reports:
        st.caption(f"No {title.lower()}.")
        return
    for report in reports:
        _render_report(report, can_resolve=can_resolve, **callbacks)


def render_reports(
    admin_user: Mapping[str, Any],
    *,
    log_moderation_event: Callable[..., None],
    trigger_rerun: Callable[[], None],
    admin_email_lookup: Callable[[Mapping[str, Any]], str | None],
) -> None:
    st.title("🚩 All Reports")

    try:
        with st.spinner("Loading reports..."):
            reports = list_reports()
    except StoreError as exc:
        st.error(f"Failed to fetch reports: {exc}")
        return

    pending, resolved = split_reports(reports)
    callbacks = {
        "administrator": admin_user,
        "log_moderation_event": log_moderation_event,
        "trigger_rerun": trigger_rerun,
        "admin_email_lookup": admin_email_lookup,
    }
    _render_section("Pending Reports", pending, can_resolve=True, **callbacks)
    st.divider()
    _render_section("Resolved Reports", resolved, can_resolve=False, **callbacks)


__all__ = ["render_reports"]
