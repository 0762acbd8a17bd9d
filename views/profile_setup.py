import streamlit as st

from domain.constants import ROLE_ADMIN, ROLE_STUDENT
from domain.errors import PortalError
from services.session import SessionResolver

ROLE_LABELS = {ROLE_STUDENT: "Student", ROLE_ADMIN: "Admin"}


def view(resolver: SessionResolver, controller=None):
    st.header("Set Up Your Profile")
    if resolver.identity and resolver.identity.email:
        st.caption(f"Signed in as {resolver.identity.email}")

    role = st.selectbox("Role", list(ROLE_LABELS), format_func=ROLE_LABELS.get, key="profile_role")
    with st.form("form_profile"):
        name = st.text_input("Full Name", key="profile_name")
        student_id = ''
        if role == ROLE_STUDENT:
            student_id = st.text_input("Student ID", key="profile_student_id")
        submitted = st.form_submit_button("Create Profile")

    if submitted:
        try:
            profile = resolver.create_profile(name, role=role, student_id=student_id)
        except PortalError as e:
            st.error(str(e))
            return
        st.success(f"Profile created successfully! Welcome, {profile.name}.")
        st.session_state.requested_page = resolver.landing_page
        for k in ("profile_name", "profile_student_id"):
            st.session_state.pop(k, None)
        st.rerun()
