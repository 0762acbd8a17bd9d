import pandas as pd
import streamlit as st

from utils.formatting import format_fee


def render_overview_tab(console):
    """Displays registration and payment totals."""
    st.subheader("📈 Overview")

    summary = console.ledger.summary()

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Exams", summary.total_exams)
    c2.metric("Registrations", summary.total_registrations)
    c3.metric("Pending / Paid", f"{summary.pending}/{summary.paid}")
    c4.metric("Fees Collected", format_fee(summary.fees_collected, console.config.currency))
    if summary.unresolved:
        st.caption(f"{summary.unresolved} registration(s) reference exams that no longer exist.")

    st.write("---")
    st.subheader("Registrations per Exam")
    if summary.by_exam:
        chart_data = pd.DataFrame({
            "Course": list(summary.by_exam.keys()),
            "Registrations": list(summary.by_exam.values()),
        })
        st.bar_chart(chart_data, x="Course", y="Registrations")
    else:
        st.caption("No registrations yet.")
