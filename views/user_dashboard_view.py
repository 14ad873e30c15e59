import logging

import pandas as pd
import plotly.express as px
import streamlit as st

import ui
from services import leaderboard_service
from use_cases import report_flow, rewards_ledger
from use_cases.domain_models import WASTE_TYPES
from use_cases.errors import PCIError
from utils import session_manager

log = logging.getLogger(__name__)


def _reports_table(reports):
    return pd.DataFrame(
        [
            {
                "Waste type": r.waste_type,
                "Weight (kg)": r.weight,
                "Location": r.location or "",
                "Status": r.status.title(),
                "Points": r.points_awarded if r.status == "approved" else None,
                "Submitted": (r.created_at or "")[:10],
            }
            for r in reports
        ]
    )


def _render_report_form(profile):
    with st.form("report_form", clear_on_submit=True):
        st.subheader("Report waste")
        c1, c2 = st.columns(2)
        waste_type = c1.selectbox("Waste type", WASTE_TYPES, accept_new_options=True)
        weight = c2.number_input("Weight (kg)", min_value=0.0, step=0.5, format="%.2f")
        location = st.text_input("Pickup location")
        image_url = st.text_input("Photo link (optional)")
        submitted = st.form_submit_button("Submit report", type="primary")
    if submitted:
        try:
            report_flow.submit_report(profile, waste_type, weight, location=location, image_url=image_url)
        except PCIError as e:
            log.warning(f"Report submission rejected: {e}")
            ui.notify("error", str(e))
            return
        ui.flash("success", "Report submitted. An agent will review it shortly.")
        st.rerun()


def _render_rewards(store):
    profile = store.profile
    st.subheader("Rewards")
    rewards = rewards_ledger.list_available()
    if not rewards:
        st.info("No rewards are available yet.")
        return
    for reward in rewards:
        with st.container(border=True):
            c1, c2 = st.columns([3, 1])
            c1.markdown(f"**{reward.name}** · {reward.points_required} pts")
            if reward.description:
                c1.caption(reward.description)
            c1.caption(f"{reward.available_quantity} left" if reward.in_stock else "Out of stock")
            disabled = not (reward.in_stock and rewards_ledger.can_redeem(profile, reward))
            if c2.button("Redeem", key=f"redeem_{reward.id}", disabled=disabled, use_container_width=True):
                try:
                    redemption = rewards_ledger.redeem(profile, reward.id)
                except PCIError as e:
                    ui.notify("error", str(e))
                    return
                store.refresh_profile()
                ui.flash("success", f"Redeemed {redemption.reward_name} for {redemption.points_spent} points.")
                st.rerun()


def render_user_dashboard():
    store = session_manager.get_store()
    profile = store.profile
    st.title(f"Welcome, {profile.first_name or 'User'}!")

    reports = report_flow.list_reports_for_user(profile.id)
    approved_kg = sum(r.weight for r in reports if r.status == "approved")
    c1, c2, c3 = st.columns(3)
    c1.metric("Total reports", len(reports))
    c2.metric("Points balance", profile.points)
    c3.metric("Environmental impact", f"{approved_kg:,.2f} kg")

    tab_reports, tab_new, tab_rewards, tab_history = st.tabs(
        ["My reports", "Report waste", "Rewards", "Redemptions"]
    )

    with tab_reports:
        if not reports:
            st.info("You haven't submitted any waste reports yet.")
        else:
            st.dataframe(_reports_table(reports), use_container_width=True, hide_index=True)
            by_type = leaderboard_service.weight_by_type(reports)
            if not by_type.empty:
                fig = px.bar(by_type, x="waste_type", y="weight", title="Approved kilograms by waste type",
                             labels={"waste_type": "Waste type", "weight": "kg"},
                             color_discrete_sequence=["#3ccf91"])
                st.plotly_chart(ui.update_chart_layout(fig), use_container_width=True)

    with tab_new:
        _render_report_form(profile)

    with tab_rewards:
        _render_rewards(store)

    with tab_history:
        redemptions = rewards_ledger.list_redemptions(profile.id)
        if not redemptions:
            st.info("No redemptions yet.")
        else:
            st.dataframe(
                pd.DataFrame(
                    [{"Reward": r.reward_name, "Points": r.points_spent, "Date": r.redeemed_at[:10]}
                     for r in redemptions]
                ),
                use_container_width=True,
                hide_index=True,
            )
