import logging

import streamlit as st

import ui
from use_cases import report_flow
from use_cases.domain_models import REPORT_STATUSES
from use_cases.errors import PCIError
from utils import session_manager

log = logging.getLogger(__name__)

STATUS_FILTERS = ("all",) + REPORT_STATUSES


def _decide(report, decision, profile):
    try:
        decided = report_flow.decide_report(report.id, decision, profile)
    except PCIError as e:
        log.warning(f"Decision on {report.id} failed: {e}")
        ui.notify("error", str(e))
        return
    if decision == "approved":
        ui.flash("success", f"Report approved. {decided.owner_name or 'The user'} earned {decided.points_awarded} points.")
    else:
        ui.flash("success", "Report rejected.")
    st.rerun()


def render_agent_dashboard():
    store = session_manager.get_store()
    profile = store.profile
    st.title(f"Agent dashboard · {profile.display_name}")

    c_search, c_status = st.columns([3, 1])
    search = c_search.text_input("Search", placeholder="Waste type, location or reporter name")
    status = c_status.selectbox("Status", STATUS_FILTERS, format_func=str.title)

    try:
        all_reports = report_flow.list_reports(profile)
    except PCIError as e:
        st.error(str(e))
        return

    counts = report_flow.count_by_status(all_reports)
    m1, m2, m3 = st.columns(3)
    m1.metric("Pending", counts["pending"])
    m2.metric("Approved", counts["approved"])
    m3.metric("Rejected", counts["rejected"])

    reports = report_flow.filter_reports(all_reports, search=search, status=None if status == "all" else status)
    if not reports:
        st.info("No reports match the current filters.")
        return

    for report in reports:
        with st.container(border=True):
            c1, c2, c3 = st.columns([3, 1, 1.4])
            c1.markdown(
                f"**{report.waste_type}** · {report.weight:g} kg {ui.status_badge(report.status)}",
                unsafe_allow_html=True,
            )
            c1.caption(
                f"{report.owner_name or 'Unknown reporter'} · {report.location or 'No location'} · "
                f"{(report.created_at or '')[:10]}"
            )
            if report.image_url:
                c1.markdown(f"[Photo]({report.image_url})")
            if report.is_pending:
                if c2.button("Approve", key=f"approve_{report.id}", type="primary", use_container_width=True):
                    _decide(report, "approved", profile)
                if c3.button("Reject", key=f"reject_{report.id}", use_container_width=True):
                    _decide(report, "rejected", profile)
            elif report.status == "approved":
                c2.metric("Points", report.points_awarded or 0)
