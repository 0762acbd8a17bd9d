import streamlit as st

from domain.config import AppConfig
from domain.errors import PortalError
from domain.models import Profile
from services.persistence import DocumentStore
from services.registration import RegistrationWorkflow
from services.session import SessionResolver
from ui.components import exam_card, registration_card
from utils.formatting import format_fee


def make_controller(store: DocumentStore, config: AppConfig, profile: Profile) -> RegistrationWorkflow:
    return RegistrationWorkflow(store, config, profile)


def _render_payment_panel(workflow: RegistrationWorkflow, currency: str):
    exam = workflow.find_exam(workflow.payment_exam_id)
    with st.container(border=True):
        st.subheader("Simulate Payment")
        if exam is None:
            st.warning("The selected exam is no longer available.")
        else:
            st.write(f"You are simulating payment for: **{exam.name}**")
            st.write(f"Amount: **{format_fee(exam.fee, currency)}**")
        c1, c2 = st.columns(2)
        if c1.button("Cancel", key="pay_cancel"):
            workflow.cancel_payment()
            st.rerun()
        if c2.button("Confirm Payment", key="pay_confirm", type="primary"):
            try:
                workflow.confirm_payment()
                st.session_state.student_flash = "Payment simulated successfully! Your registration is now paid."
                st.rerun()
            except PortalError as e:
                st.error(f"Failed to simulate payment. {e}")


def _render_available_exams(workflow: RegistrationWorkflow, currency: str):
    exams = workflow.list_exams()
    if not exams:
        st.info("No exams available at the moment.")
        return
    for exam in sorted(exams, key=lambda e: e.registration_deadline):
        registration = workflow.registration_for(exam.id)
        with st.container(border=True):
            exam_card(exam, currency, registration)
            if registration is None and st.button("Register for this Exam", key=f"reg_{exam.id}"):
                try:
                    workflow.register(exam.id)
                    st.session_state.student_flash = "Successfully registered for the exam. Please proceed to payment."
                    st.rerun()
                except PortalError as e:
                    st.error(str(e))


def _render_my_registrations(workflow: RegistrationWorkflow, currency: str):
    views = workflow.registrations_with_details()
    if not views:
        st.info("You have not registered for any exams yet.")
        return
    for v in views:
        with st.container(border=True):
            registration_card(v.registration, v.exam, currency)
            if not v.registration.is_paid and st.button("Simulate Payment", key=f"pay_{v.registration.id}"):
                try:
                    workflow.open_payment(v.exam.id)
                    st.rerun()
                except PortalError as e:
                    st.error(str(e))


def view(resolver: SessionResolver, workflow: RegistrationWorkflow):
    st.header("Student Dashboard")
    st.caption(f"Student ID: {workflow.student_id}")
    currency = workflow.config.currency

    flash = st.session_state.pop('student_flash', None)
    if flash:
        st.success(flash)
    if workflow.load_error:
        st.error(f"Could not load exam data: {workflow.load_error}")

    if workflow.payment_exam_id:
        _render_payment_panel(workflow, currency)

    tabs = st.tabs(["📚 Available Exams", "🧾 My Registrations"])
    with tabs[0]:
        _render_available_exams(workflow, currency)
    with tabs[1]:
        _render_my_registrations(workflow, currency)
