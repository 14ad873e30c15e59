import html

import streamlit as st

import config
import ui
from use_cases import access_guard
from use_cases.agent_approval import ApprovalPoller
from utils import session_manager


def _ensure_poller(store):
    poller = st.session_state.get("approval_poller")
    if poller is None or not poller.running:
        poller = ApprovalPoller(store, interval=config.APPROVAL_POLL_SECONDS).start()
        st.session_state.approval_poller = poller
    return poller


def check_approval(store):
    """Re-read the profile and return where the pending page should send its visitor, or None."""
    if store.identity is not None:
        store.refresh_profile()
    return access_guard.pending_redirect(store.identity, store.profile)


@st.fragment(run_every=config.APPROVAL_POLL_SECONDS)
def _watch_approval():
    store = session_manager.get_store()
    target = check_approval(store)
    if target is None:
        st.caption("We check for a decision every minute. This page updates by itself.")
        return
    session_manager.stop_approval_poller()
    if target == access_guard.DASHBOARDS["agent"]:
        ui.flash("success", "Your agent account has been approved!")
    st.query_params["page"] = target
    st.rerun(scope="app")


def render_pending():
    store = session_manager.get_store()
    target = access_guard.pending_redirect(store.identity, store.profile)
    if target is None and store.profile is None:
        target = access_guard.HOME
    if target is not None:
        session_manager.stop_approval_poller()
        session_manager.navigate(target)
        return

    profile = store.profile
    _ensure_poller(store)

    st.markdown(
        f"""
        <div class="pci-hero">
          <h2>Application under review</h2>
          <p>Thanks for registering <b>{html.escape(profile.display_name)}</b> as a collection agent.
          An administrator is verifying your company details and business license.</p>
          <p>You will get access to the agent dashboard as soon as the application is approved.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )
    st.write("")
    with st.container(border=True):
        st.write(f"**Company:** {profile.company_name or '-'}")
        st.write(f"**License:** {profile.business_license or '-'}")
        st.write(f"**E-mail:** {store.identity.email}")

    _watch_approval()

    if st.button("Sign out", key="pending_logout"):
        session_manager.logout()
