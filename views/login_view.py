import time

import streamlit as st

import auth
import ui
from use_cases import access_guard
from use_cases.errors import AuthenticationFailure, ValidationFailure
from utils import session_manager


def landing_for(profile):
    if profile is None:
        return access_guard.HOME
    if profile.role == "agent" and not profile.is_approved:
        return access_guard.PENDING_APPROVAL
    return access_guard.dashboard_for(profile.role) or access_guard.HOME


def _render_reset_completion(token):
    st.subheader("Choose a new password")
    with st.form("reset_complete_form"):
        new_password = st.text_input("New password", type="password")
        confirm = st.text_input("Confirm new password", type="password")
        submitted = st.form_submit_button("Update password", type="primary")
    if submitted:
        if new_password != confirm:
            ui.notify("error", "Passwords do not match.")
            return
        try:
            auth.complete_password_reset(token, new_password)
        except (ValidationFailure, AuthenticationFailure) as e:
            ui.notify("error", str(e))
            return
        del st.query_params["reset_token"]
        ui.flash("success", "Password updated. You can now sign in.")
        st.rerun()


def render_login():
    reset_token = st.query_params.get("reset_token")
    if reset_token:
        _render_reset_completion(reset_token)
        return

    store = session_manager.get_store()
    st.title("Sign in to PCI")
    tab_login, tab_forgot = st.tabs(["Sign in", "Forgot password"])

    with tab_login:
        with st.form("login_form", clear_on_submit=False):
            email = st.text_input("E-mail")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")
        if submitted:
            result = store.sign_in(email, password, user_agent=session_manager.current_user_agent())
            if not result.ok:
                ui.notify("error", result.message)
            else:
                session_manager.persist_browser_auth_token(store.token)
                ui.flash("success", result.message)
                time.sleep(1)  # Give JS time to write the cookie
                session_manager.navigate(landing_for(store.profile))
        st.caption("No account yet?")
        if st.button("Create an account", key="goto_register"):
            session_manager.navigate("/register")

    with tab_forgot:
        with st.form("forgot_form", clear_on_submit=True):
            reset_email = st.text_input("Account e-mail")
            reset_submitted = st.form_submit_button("Send reset link")
        if reset_submitted:
            result = store.reset_password(reset_email)
            ui.notify("success" if result.ok else "error", result.message)


def render_register():
    store = session_manager.get_store()
    st.title("Join PCI")
    account_type = st.radio(
        "I want to",
        ["user", "agent"],
        format_func=lambda r: "Report plastic waste and earn rewards" if r == "user" else "Collect waste as an agent",
        horizontal=True,
    )

    with st.form("register_form", clear_on_submit=False):
        c1, c2 = st.columns(2)
        first_name = c1.text_input("First name *")
        last_name = c2.text_input("Last name *")
        email = st.text_input("E-mail *")
        company_name = business_license = None
        if account_type == "agent":
            company_name = st.text_input("Company name *")
            business_license = st.text_input("Business license number *")
        password = st.text_input("Password *", type="password")
        password_confirm = st.text_input("Confirm password *", type="password")
        submitted = st.form_submit_button("Register", type="primary")

    if submitted:
        if not all([first_name.strip(), last_name.strip(), email.strip(), password]):
            ui.notify("error", "Please fill in all required fields.")
            return
        if password != password_confirm:
            ui.notify("error", "Passwords do not match.")
            return
        result = store.sign_up(
            email, password, role=account_type,
            first_name=first_name, last_name=last_name,
            company_name=company_name, business_license=business_license,
        )
        if not result.ok:
            ui.notify("error", result.message)
            return
        ui.flash("success", result.message)
        session_manager.navigate(access_guard.LOGIN)

    if st.button("Already registered? Sign in", key="goto_login"):
        session_manager.navigate(access_guard.LOGIN)
