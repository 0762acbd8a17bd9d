import streamlit as st

from domain.config import AppConfig
from domain.models import Profile
from services.catalog import ExamCatalogManager
from services.ledger import RegistrationLedger
from services.persistence import DocumentStore
from services.session import SessionResolver
from views.admin_tabs.manage_exams import render_manage_exams_tab
from views.admin_tabs.overview import render_overview_tab
from views.admin_tabs.registrations import render_registrations_tab


class AdminConsole:
    """Controllers backing the admin dashboard; closed together on teardown."""

    def __init__(self, store: DocumentStore, config: AppConfig):
        self.config = config
        self.catalog = ExamCatalogManager(store, config)
        try:
            self.ledger = RegistrationLedger(store, config)
        except Exception:
            self.catalog.close()
            raise

    @property
    def closed(self) -> bool:
        return self.catalog.closed and self.ledger.closed

    def close(self):
        try:
            self.catalog.close()
        finally:
            self.ledger.close()


def make_controller(store: DocumentStore, config: AppConfig, profile: Profile) -> AdminConsole:
    return AdminConsole(store, config)


def view(resolver: SessionResolver, console: AdminConsole):
    st.header("Admin Dashboard")
    st.markdown("Manage exam listings and review student registrations.")

    tabs = st.tabs(["📈 Overview", "🗂️ Manage Exams", "🧾 View Registrations"])
    with tabs[0]:
        render_overview_tab(console)
    with tabs[1]:
        render_manage_exams_tab(console)
    with tabs[2]:
        render_registrations_tab(console)
