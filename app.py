import os
from datetime import datetime, timezone

import streamlit as st

from infrastructure.observability import setup_observability
setup_observability()

import ui
from use_cases import access_guard, auth_flow, bootstrap
from utils import session_manager
from views import (
    admin_view, agent_dashboard_view, login_view, pending_view,
    profile_view, public_view, user_dashboard_view,
)

# --- PAGE SETUP ---
st.set_page_config(page_title="PCI · Positive Climate Impact", page_icon="♻️", layout="wide",
                   initial_sidebar_state="expanded")

FORCE_HTTPS = os.getenv("FORCE_HTTPS", "False").lower() == "true"

# Health Check (Basic load-balancer heartbeat)
if st.query_params.get("health") == "1":
    st.write({"status": "ok", "version": "1.0", "time": datetime.now(timezone.utc).isoformat()})
    st.stop()

if FORCE_HTTPS:
    proto = st.context.headers.get("x-forwarded-proto", "http").lower()
    if proto != "https":
        # Streamlit cannot issue a 301 midway through a run, so halt instead.
        st.error("🚨 Insecure connection. Please use HTTPS.")
        st.stop()

ui.setup_style()

# --- STARTUP ORCHESTRATION ---
startup_result = bootstrap.run_startup()
if startup_result.status == "STOP":
    st.error(startup_result.message)
    st.stop()

# --- SESSION ---
auth_result = auth_flow.ensure_authenticated_session()
store = session_manager.get_store()
ui.show_flash()

PAGES = {
    "/": public_view.render_home,
    "/about": public_view.render_about,
    "/education": public_view.render_education,
    "/leaderboard": public_view.render_leaderboard,
    "/login": login_view.render_login,
    "/register": login_view.render_register,
    "/pending-approval": pending_view.render_pending,
    "/user-dashboard": user_dashboard_view.render_user_dashboard,
    "/agent-dashboard": agent_dashboard_view.render_agent_dashboard,
    "/admin-dashboard": admin_view.render_admin_panel,
    "/profile": profile_view.render_profile,
}

requested = st.query_params.get("page")
path = access_guard.resolve_route(requested)

# The approval poller only lives while the pending page is on screen.
if path != access_guard.PENDING_APPROVAL:
    session_manager.stop_approval_poller()

# Sentry user context
if auth_result.status == "CONTINUE":
    import sentry_sdk
    if sentry_sdk.get_client().is_active():
        sentry_sdk.set_user({"id": auth_result.user_id, "role": auth_result.role})
        sentry_sdk.set_tag("app.page", path)

# --- SIDEBAR ---
with st.sidebar:
    st.markdown("## ♻️ PCI")
    for label, target in (("🏠 Home", "/"), ("🌍 About", "/about"), ("📚 Education", "/education"),
                          ("🏆 Leaderboard", "/leaderboard")):
        if st.button(label, key=f"nav_{target}", use_container_width=True):
            session_manager.navigate(target)
    st.divider()

    if store.is_authenticated:
        profile = store.profile
        if profile is not None:
            ui.render_avatar(profile, size=48)
            st.caption(f"{profile.display_name} · {profile.role}")
            dashboard = access_guard.dashboard_for(profile.role)
            if profile.role == "agent" and not profile.is_approved:
                dashboard = access_guard.PENDING_APPROVAL
            if dashboard and st.button("📊 My dashboard", key="nav_dashboard", use_container_width=True):
                session_manager.navigate(dashboard)
        if st.button("👤 Profile", key="nav_profile", use_container_width=True):
            session_manager.navigate("/profile")
        if st.button("Sign out", key="logout_btn", type="secondary", use_container_width=True):
            session_manager.logout()
    else:
        if st.button("Sign in", key="nav_login", type="primary", use_container_width=True):
            session_manager.navigate(access_guard.LOGIN)
        if st.button("Register", key="nav_register", use_container_width=True):
            session_manager.navigate("/register")

# --- ROUTING ---
if path == access_guard.NOT_FOUND:
    public_view.render_not_found(requested)
    st.stop()

if path in (access_guard.LOGIN, "/register") and store.is_authenticated and not st.query_params.get("reset_token"):
    session_manager.navigate(login_view.landing_for(store.profile))

required_role = access_guard.required_role_for(path)
if required_role is not None:
    decision = access_guard.decide(store.identity, store.profile, store.is_loading, required_role=required_role)
    if decision.kind == access_guard.DecisionKind.WAIT:
        public_view.render_loading()
        st.stop()
    if decision.is_redirect:
        session_manager.navigate(decision.target)

PAGES[path]()
