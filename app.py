import logging

import streamlit as st

from domain.config import AppConfig
from domain.constants import (
    PAGE_ADMIN_DASHBOARD, PAGE_AUTH, PAGE_NOT_FOUND, PAGE_REGISTER_PROFILE,
    PAGE_STUDENT_DASHBOARD,
)
from domain.models import role_name
from services.auth import AuthClient, AuthService
from services.persistence import DocumentStore
from services.router import route
from services.session import ERROR, LOADING, SessionResolver
from ui.components import banner

# Import the page rendering functions from the view modules
from views import admin_dashboard, auth_page, not_found, profile_setup, student_dashboard

logger = logging.getLogger(__name__)

# --- Page Registry ---
# Maps a router page key to its label, rendering function and, for pages that
# hold live subscriptions, the factory of the controller that owns them.
PAGE_REGISTRY = {
    PAGE_AUTH: {
        "label": "🔐 Login / Sign Up",
        "render_func": auth_page.view,
        "controller": None,
    },
    PAGE_REGISTER_PROFILE: {
        "label": "📝 Profile Setup",
        "render_func": profile_setup.view,
        "controller": None,
    },
    PAGE_STUDENT_DASHBOARD: {
        "label": "🎓 Student Dashboard",
        "render_func": student_dashboard.view,
        "controller": student_dashboard.make_controller,
    },
    PAGE_ADMIN_DASHBOARD: {
        "label": "🛠️ Admin Dashboard",
        "render_func": admin_dashboard.view,
        "controller": admin_dashboard.make_controller,
    },
    PAGE_NOT_FOUND: {
        "label": "❓ Not Found",
        "render_func": not_found.view,
        "controller": None,
    },
}


@st.cache_resource
def get_backend():
    """Process-wide backend: config, document store and auth service shared by all sessions."""
    config = AppConfig.from_env()
    logging.basicConfig(level=config.log_level,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    store = DocumentStore(config.data_dir)
    logger.info("Backend ready (deployment=%s, data_dir=%s)", config.deployment_id, config.data_dir)
    return config, store, AuthService(store, config)


def _get_resolver() -> SessionResolver:
    if 'resolver' not in st.session_state:
        config, store, auth_service = get_backend()
        resolver = SessionResolver(AuthClient(auth_service), store, config)
        st.session_state.resolver = resolver
        resolver.bootstrap()
    return st.session_state.resolver


def _sync_requested_page(resolver: SessionResolver) -> str:
    """Follow the resolver's landing page whenever a new auth/profile outcome arrives."""
    if st.session_state.get('seen_transitions') != resolver.transitions:
        st.session_state.seen_transitions = resolver.transitions
        st.session_state.requested_page = resolver.landing_page
    return st.session_state.get("requested_page", resolver.landing_page)


def release_controller():
    """Close the controller of the page being left; releases its subscriptions."""
    active = st.session_state.pop('active_controller', None)
    if active is not None:
        _key, controller = active
        controller.close()


def _controller_for(page: str, resolver: SessionResolver):
    uid = resolver.identity.uid if resolver.identity else None
    key = (page, uid)
    active = st.session_state.get('active_controller')
    if active is not None and active[0] == key:
        return active[1]
    release_controller()
    factory = PAGE_REGISTRY[page]["controller"]
    if factory is None:
        return None
    config, store, _auth = get_backend()
    controller = factory(store, config, resolver.profile)
    st.session_state.active_controller = (key, controller)
    return controller


def _render_sidebar(resolver: SessionResolver):
    st.sidebar.title("Exam Portal")
    if resolver.profile is not None:
        role_label = role_name(resolver.profile.role).capitalize()
        st.sidebar.write(f"Welcome, **{resolver.profile.name}** ({role_label})")
    elif resolver.identity is not None:
        st.sidebar.caption("Signed in, profile not set up yet.")
    if st.sidebar.button("🔄 Refresh"):
        st.rerun()
    if resolver.identity is not None and st.sidebar.button("Logout"):
        release_controller()
        resolver.sign_out()
        st.rerun()


def main():
    """
    Main application router.

    Resolves the session, asks the router which page to render for the
    requested page, and keeps exactly one page controller (and its live
    subscriptions) alive at a time.
    """
    st.set_page_config(page_title="Exam Registration Portal", layout="wide")
    banner("Exam Registration Portal", "Register for exams and manage payments")

    resolver = _get_resolver()
    _render_sidebar(resolver)

    if resolver.auth_error:
        st.error(resolver.auth_error)

    if resolver.status == LOADING:
        st.info("Loading your profile...")
        return
    if resolver.status == ERROR:
        release_controller()
        st.error(resolver.error or "Could not load your profile.")
        if st.button("Retry"):
            resolver.retry()
            st.rerun()
        return

    requested = _sync_requested_page(resolver)
    page = route(resolver.is_authenticated, resolver.has_profile, resolver.role, requested)

    # --- Page Rendering ---
    controller = _controller_for(page, resolver)
    PAGE_REGISTRY[page]["render_func"](resolver, controller)


if __name__ == "__main__":
    main()
