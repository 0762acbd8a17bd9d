import datetime as dt

import streamlit as st

from domain.constants import DATE_FORMAT
from domain.errors import ExamValidationError, PortalError
from domain.models import ExamForm
from utils.formatting import format_date, format_fee


def _deadline_default(raw: str):
    try:
        return dt.datetime.strptime(raw, DATE_FORMAT).date()
    except ValueError:
        return None


def _render_exam_form(catalog, currency: str):
    form = catalog.form
    prefix = f"exam_form_{catalog.form_version}"
    title = "Edit Exam" if catalog.is_editing else "Add New Exam"
    with st.form(prefix):
        st.subheader(title)
        name = st.text_input("Exam Name", value=form.name, key=f"{prefix}_name")
        course_code = st.text_input("Course Code", value=form.course_code, key=f"{prefix}_course")
        description = st.text_area("Description", value=form.description, key=f"{prefix}_desc")
        fee = st.text_input(f"Fee ({currency})", value=form.fee, key=f"{prefix}_fee")
        deadline = st.date_input("Registration Deadline", value=_deadline_default(form.deadline),
                                 format="YYYY-MM-DD", key=f"{prefix}_deadline")
        submitted = st.form_submit_button("Update Exam" if catalog.is_editing else "Add Exam")

    if catalog.is_editing and st.button("Cancel Edit", key=f"{prefix}_cancel"):
        catalog.cancel_edit()
        st.rerun()

    if submitted:
        submitted_form = ExamForm(
            name=name, course_code=course_code, description=description, fee=fee,
            deadline=deadline.strftime(DATE_FORMAT) if deadline else '',
        )
        was_editing = catalog.is_editing
        try:
            catalog.create_or_update_exam(submitted_form)
        except ExamValidationError as e:
            st.error(str(e))
            return
        except PortalError as e:
            st.error(f"Failed to save exam. {e}")
            return
        st.session_state.admin_flash = "Exam updated successfully!" if was_editing else "Exam added successfully!"
        st.rerun()


def _render_exam_list(catalog, currency: str):
    st.subheader("Existing Exams")
    exams = catalog.list_exams()
    if not exams:
        st.info("No exams added yet.")
        return
    for exam in exams:
        with st.container(border=True):
            st.markdown(f"**{exam.name}** ({exam.course_code})")
            st.caption(f"Fee: {format_fee(exam.fee, currency)} | Deadline: {format_date(exam.registration_deadline)}")
            c1, c2 = st.columns(2)
            if c1.button("Edit", key=f"edit_{exam.id}"):
                catalog.begin_edit(exam)
                st.rerun()
            if c2.button("Delete", key=f"del_{exam.id}"):
                catalog.request_delete(exam.id)
                st.rerun()

            if catalog.pending_delete_id == exam.id:
                st.warning("Are you sure you want to delete this exam? This action cannot be undone.")
                d1, d2 = st.columns(2)
                if d1.button("Yes, delete", key=f"del_yes_{exam.id}", type="primary"):
                    try:
                        catalog.confirm_delete()
                        st.session_state.admin_flash = "Exam deleted successfully!"
                    except PortalError as e:
                        st.session_state.admin_error = f"Failed to delete exam. {e}"
                    st.rerun()
                if d2.button("Cancel", key=f"del_no_{exam.id}"):
                    catalog.cancel_delete()
                    st.rerun()


def render_manage_exams_tab(console):
    """Exam form (create/edit) and the list of existing exams."""
    catalog = console.catalog

    flash = st.session_state.pop('admin_flash', None)
    if flash:
        st.success(flash)
    error = st.session_state.pop('admin_error', None)
    if error:
        st.error(error)

    col_form, col_list = st.columns(2)
    with col_form:
        _render_exam_form(catalog, console.config.currency)
    with col_list:
        _render_exam_list(catalog, console.config.currency)
