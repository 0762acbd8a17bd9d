import streamlit as st


def render_registrations_tab(console):
    """Read-only ledger of all registrations."""
    st.subheader("🧾 All Registrations")

    df = console.ledger.to_dataframe()
    if df.empty:
        st.info("No registrations found.")
        return

    st.dataframe(df, hide_index=True, use_container_width=True)
    st.download_button("Download: registrations.csv", console.ledger.export_csv(),
                       "registrations.csv", "text/csv")
