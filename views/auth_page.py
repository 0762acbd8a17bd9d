import streamlit as st

from domain.constants import PAGE_REGISTER_PROFILE
from domain.errors import AuthError
from services.session import SessionResolver


def view(resolver: SessionResolver, controller=None):
    if 'auth_is_login' not in st.session_state:
        st.session_state.auth_is_login = True
    is_login = st.session_state.auth_is_login
    st.header("Login" if is_login else "Sign Up")

    with st.form("form_auth"):
        email = st.text_input("Email", key="auth_email")
        password = st.text_input("Password", type="password", key="auth_password")
        submitted = st.form_submit_button("Login" if is_login else "Sign Up")

    if submitted:
        if not (email and password):
            st.error("Email and password are required.")
        else:
            try:
                if is_login:
                    resolver.auth.sign_in_with_email_and_password(email, password)
                    st.success("Logged in successfully!")
                else:
                    resolver.auth.create_user_with_email_and_password(email, password)
                    st.success("Account created successfully! Please set up your profile.")
                    st.session_state.requested_page = PAGE_REGISTER_PROFILE
                resolver.auth_error = None
                st.rerun()
            except AuthError as e:
                st.error(str(e))

    prompt = "Don't have an account?" if is_login else "Already have an account?"
    st.caption(prompt)
    if st.button("Sign Up" if is_login else "Login", key="auth_toggle"):
        st.session_state.auth_is_login = not is_login
        st.rerun()
