import streamlit as st

import ui
from services import profile_service
from use_cases.errors import PCIError
from utils import session_manager


def render_profile():
    store = session_manager.get_store()
    profile = store.profile
    st.title("My profile")

    c_avatar, c_info = st.columns([1, 4])
    with c_avatar:
        ui.render_avatar(profile, size=96)
    with c_info:
        st.subheader(profile.display_name)
        st.caption(f"{store.identity.email} · {profile.role.title()}")
        if profile.role == "user":
            st.metric("Points", profile.points)

    with st.form("avatar_form", clear_on_submit=True):
        uploaded = st.file_uploader("New avatar", type=sorted(profile_service.ALLOWED_AVATAR_EXTENSIONS))
        upload_clicked = st.form_submit_button("Upload avatar")
    if upload_clicked:
        if uploaded is None:
            ui.notify("error", "You must select an image to upload.")
        else:
            try:
                profile_service.upload_avatar(profile, uploaded.name, uploaded.getvalue())
            except PCIError as e:
                ui.notify("error", str(e))
            else:
                store.refresh_profile()
                ui.flash("success", "Avatar updated.")
                st.rerun()

    with st.form("profile_form"):
        c1, c2 = st.columns(2)
        first_name = c1.text_input("First name", value=profile.first_name)
        last_name = c2.text_input("Last name", value=profile.last_name)
        company_name = business_license = None
        if profile.role == "agent":
            company_name = st.text_input("Company name", value=profile.company_name or "")
            business_license = st.text_input("Business license", value=profile.business_license or "")
        saved = st.form_submit_button("Save changes", type="primary")
    if saved:
        try:
            profile_service.update_profile(profile, first_name, last_name,
                                           company_name=company_name, business_license=business_license)
        except PCIError as e:
            ui.notify("error", str(e))
        else:
            store.refresh_profile()
            ui.flash("success", "Profile updated.")
            st.rerun()
