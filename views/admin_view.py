import json
import logging

import pandas as pd
import streamlit as st

import ui
from infrastructure.repositories import get_audit_repo
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from services import leaderboard_service, settings_service
from use_cases import agent_approval, rbac_policy, rewards_ledger
from use_cases.errors import PCIError
from utils import session_manager

log = logging.getLogger(__name__)


def _render_overview():
    stats = leaderboard_service.platform_stats()
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Users", stats["users"])
    c2.metric("Approved agents", stats["approved_agents"])
    c3.metric("Pending agents", stats["pending_agents"])
    c4.metric("Kg collected", f"{stats['kg_collected']:,.1f}")
    c5, c6, c7, c8 = st.columns(4)
    c5.metric("Reports pending", stats["reports_pending"])
    c6.metric("Reports approved", stats["reports_approved"])
    c7.metric("Reports rejected", stats["reports_rejected"])
    c8.metric("Points awarded", stats["points_awarded"])


def _render_agents(profile):
    pending = agent_approval.list_pending_agents()
    if pending:
        st.warning(f"Awaiting approval: {len(pending)}")
        for agent in pending:
            with st.container(border=True):
                st.markdown(f"**{agent.company_name or agent.display_name}** · {agent.first_name} {agent.last_name}")
                st.caption(f"License: {agent.business_license or '-'} · Registered {(agent.created_at or '')[:10]}")
                c1, c2 = st.columns(2)
                if c1.button("✅ Approve", key=f"approve_agent_{agent.id}", use_container_width=True):
                    try:
                        agent_approval.approve_agent(agent.id, profile)
                    except PCIError as e:
                        ui.notify("error", str(e))
                    else:
                        ui.flash("success", f"{agent.display_name} approved.")
                        st.rerun()
                if c2.button("⛔ Reject", key=f"reject_agent_{agent.id}", use_container_width=True):
                    try:
                        agent_approval.reject_agent(agent.id, profile)
                    except PCIError as e:
                        ui.notify("error", str(e))
                    else:
                        ui.flash("success", f"Application from {agent.display_name} removed.")
                        st.rerun()
    else:
        st.info("No pending agent applications.")

    st.subheader("Approved agents")
    approved = agent_approval.list_approved_agents()
    if approved:
        st.dataframe(
            pd.DataFrame([
                {"Company": a.company_name, "Contact": f"{a.first_name} {a.last_name}",
                 "License": a.business_license, "Since": (a.created_at or "")[:10]}
                for a in approved
            ]),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("No approved agents yet.")


def _reward_form(key, reward=None):
    with st.form(key, clear_on_submit=reward is None):
        name = st.text_input("Name *", value=reward.name if reward else "")
        c1, c2 = st.columns(2)
        points = c1.number_input("Points required *", min_value=1, step=1,
                                 value=reward.points_required if reward else 100)
        quantity = c2.number_input("Available quantity", min_value=0, step=1,
                                   value=reward.available_quantity if reward else 0)
        category = st.text_input("Category", value=(reward.category or "") if reward else "")
        description = st.text_area("Description", value=(reward.description or "") if reward else "")
        image_url = st.text_input("Image URL", value=(reward.image_url or "") if reward else "")
        submitted = st.form_submit_button("Save" if reward else "➕ Add reward", type="primary")
    return submitted, dict(name=name, points_required=points, available_quantity=quantity,
                           description=description, category=category, image_url=image_url)


def _render_rewards(profile):
    with st.expander("➕ New reward", expanded=False):
        submitted, fields = _reward_form("new_reward_form")
        if submitted:
            try:
                reward = rewards_ledger.create_reward(profile, **fields)
            except PCIError as e:
                ui.notify("error", str(e))
            else:
                ui.flash("success", f"Reward '{reward.name}' created.")
                st.rerun()

    search = st.text_input("🔍 Search rewards", "")
    try:
        rewards = rewards_ledger.list_rewards(profile, search=search)
    except PCIError as e:
        st.error(str(e))
        return
    if not rewards:
        st.info("No rewards found.")
        return

    for reward in rewards:
        label = f"{reward.name} · {reward.points_required} pts · {reward.available_quantity} in stock"
        with st.expander(label):
            submitted, fields = _reward_form(f"edit_reward_{reward.id}", reward)
            if submitted:
                try:
                    rewards_ledger.update_reward(profile, reward.id, **fields)
                except PCIError as e:
                    ui.notify("error", str(e))
                else:
                    ui.flash("success", f"Reward '{fields['name'].strip()}' updated.")
                    st.rerun()
            if st.button("🗑 Delete", key=f"delete_reward_{reward.id}"):
                try:
                    rewards_ledger.delete_reward(profile, reward.id)
                except PCIError as e:
                    ui.notify("error", str(e))
                else:
                    ui.flash("success", f"Reward '{reward.name}' deleted.")
                    st.rerun()


def _render_settings(profile):
    current = settings_service.get_all()
    with st.form("settings_form"):
        ratio = st.number_input("Points per kilogram", min_value=0.0, step=0.5,
                                value=settings_service.get_points_per_kg())
        auto_approve = st.toggle("Approve new agents automatically",
                                 value=settings_service.get_default_agent_approval())
        emails = st.toggle("Send e-mail notifications", value=settings_service.get_email_notifications())
        submitted = st.form_submit_button("💾 Save settings", type="primary")
    if submitted:
        changes = {
            settings_service.POINTS_PER_KG: ratio,
            settings_service.DEFAULT_AGENT_APPROVAL: auto_approve,
            settings_service.EMAIL_NOTIFICATIONS: emails,
        }
        try:
            for key, value in changes.items():
                settings_service.update_setting(key, value, profile)
        except PCIError as e:
            ui.notify("error", str(e))
        else:
            ui.flash("success", "Settings saved.")
            st.rerun()
    st.caption(f"Stored values: {json.dumps(current)}")


def _render_audit_log(profile):
    if not rbac_policy.enforce(profile, rbac_policy.VIEW_AUDIT_LOG):
        st.error("You are not allowed to view the audit log.")
        return
    c1, c2 = st.columns(2)
    action = c1.selectbox("Action", ["All"] + [a.value for a in AuditAction])
    user = c2.text_input("User e-mail contains", "")
    rows = get_audit_repo().get_logs(limit=200, action_filter=action, user_filter=user.strip() or None)
    if not rows:
        st.info("No audit entries.")
        return
    st.dataframe(
        pd.DataFrame(rows, columns=["id", "Time (UTC)", "Actor", "Role", "Action", "Target", "Target id",
                                    "Metadata", "IP", "Result"]).drop(columns=["id"]),
        use_container_width=True,
        hide_index=True,
    )


def render_admin_panel():
    profile = session_manager.get_store().profile
    st.title("⚙️ Admin dashboard")

    tab_overview, tab_agents, tab_rewards, tab_settings, tab_audit = st.tabs(
        ["📊 Overview", "🧑‍🔧 Agents", "🎁 Rewards", "🛠 Settings", "📜 Audit log"]
    )
    with tab_overview:
        _render_overview()
    with tab_agents:
        _render_agents(profile)
    with tab_rewards:
        _render_rewards(profile)
    with tab_settings:
        _render_settings(profile)
    with tab_audit:
        _render_audit_log(profile)
