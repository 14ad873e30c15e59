import logging
from urllib.parse import unquote

import streamlit as st
import streamlit.components.v1 as components

import auth
import config
from infrastructure.repositories import get_profile_repo
from services import settings_service
from use_cases.session_store import SessionStore

log = logging.getLogger(__name__)

"""
SESSION STATE CONTRACT

Keys owned by this module in st.session_state:

session_store: SessionStore
    identity, profile and runtime token of the signed-in visitor
    default: fresh SessionStore with nobody signed in

approval_poller: ApprovalPoller | None
    background profile refresher while an agent waits for approval
    default: None
    owner: views/pending_view

session_diag_seen: bool
    keeps the "could not restore session" warning to a single display
    default: False

flash: tuple[str, str] | None
    (kind, message) toast to show after the next rerun
    default: None
    owner: ui
"""

AUTH_COOKIE = "pci_auth_token"


def _new_store() -> SessionStore:
    return SessionStore(auth, get_profile_repo(), settings=settings_service)


def init_session_state():
    if "session_store" not in st.session_state:
        st.session_state.session_store = _new_store()
    if "approval_poller" not in st.session_state:
        st.session_state.approval_poller = None
    if "session_diag_seen" not in st.session_state:
        st.session_state.session_diag_seen = False
    if "flash" not in st.session_state:
        st.session_state.flash = None


def get_store() -> SessionStore:
    init_session_state()
    return st.session_state.session_store


def current_user_agent():
    try:
        return st.context.headers.get("user-agent")
    except AttributeError:
        return None


def _cookie_token():
    try:
        token = st.context.cookies.get(AUTH_COOKIE)
    except AttributeError:
        return None
    return unquote(token) if token else None


def persist_browser_auth_token(token):
    max_age = config.SESSION_TTL_DAYS * 24 * 3600
    components.html(
        f"""
        <script>
            var cookieStr = "{AUTH_COOKIE}=" + encodeURIComponent("{token}") + "; path=/; max-age={max_age}; SameSite=Lax";
            document.cookie = cookieStr;
            try {{ window.parent.document.cookie = cookieStr; }} catch (e) {{}}
        </script>
        """,
        height=0,
    )


def clear_browser_auth_token():
    components.html(
        f"""
        <script>
          var cookieStr = "{AUTH_COOKIE}=; path=/; max-age=0; SameSite=Lax";
          document.cookie = cookieStr;
          try {{ window.parent.document.cookie = cookieStr; }} catch (e) {{}}
        </script>
        """,
        height=0,
    )


def check_and_restore_session():
    store = get_store()
    if store.is_authenticated:
        return True
    token = _cookie_token()
    if not token:
        return False
    if store.restore(token, user_agent=current_user_agent()):
        return True
    if not st.session_state.session_diag_seen:
        st.warning("Your session has expired. Please sign in again.")
        st.session_state.session_diag_seen = True
    clear_browser_auth_token()
    return False


def validate_current_session():
    """Re-read the profile; a deleted account ends the session."""
    store = get_store()
    if not store.is_authenticated:
        return
    if store.refresh_profile() is None:
        clear_browser_auth_token()
        st.warning("Your account is no longer available.")


def navigate(path):
    st.query_params["page"] = path
    st.rerun()


def stop_approval_poller():
    poller = st.session_state.get("approval_poller")
    if poller is not None:
        poller.stop()
        st.session_state.approval_poller = None


def logout():
    stop_approval_poller()
    get_store().sign_out()
    clear_browser_auth_token()
    navigate("/")
