import streamlit as st
from typing import Optional

from .base import status_badge
from domain.models import Exam, Registration
from utils.formatting import format_date, format_fee


def exam_card(exam: Exam, currency: str = 'KES', registration: Optional[Registration] = None):
    """
    Displays an exam listing: name, course code, fee, deadline and, when the
    student already registered, the registration status.
    """
    badges = []
    if not exam.is_open():
        badges.append(status_badge('closed'))
    if registration is not None:
        badges.append(status_badge(registration.status))
    st.markdown(f"#### {exam.name} ({exam.course_code}) {' '.join(badges)}", unsafe_allow_html=True)
    st.write(exam.description)
    c1, c2 = st.columns(2)
    c1.markdown(f"**Fee:** {format_fee(exam.fee, currency)}")
    c2.markdown(f"**Deadline:** {format_date(exam.registration_deadline)}")


def registration_card(registration: Registration, exam: Exam, currency: str = 'KES'):
    st.markdown(f"#### {exam.name} ({exam.course_code}) {status_badge(registration.status)}",
                unsafe_allow_html=True)
    c1, c2, c3 = st.columns(3)
    c1.markdown(f"**Fee:** {format_fee(exam.fee, currency)}")
    c2.markdown(f"**Registered:** {format_date(registration.timestamp)}")
    if registration.payment_timestamp:
        c3.markdown(f"**Paid:** {format_date(registration.payment_timestamp)}")
