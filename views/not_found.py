import streamlit as st

from services.router import home_page
from services.session import SessionResolver


def view(resolver: SessionResolver, controller=None):
    st.header("Page Not Found")
    st.write("The page you are looking for does not exist or you do not have access to it.")
    if st.button("Go to Dashboard") and resolver.role is not None:
        st.session_state.requested_page = home_page(resolver.role)
        st.rerun()
