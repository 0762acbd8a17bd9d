import streamlit as st

GREEN = "#059669"  # emerald-600
YELLOW = "#D97706"  # amber-600
RED = "#DC2626"  # red-600
CHIP_BG = "#374151"


def inject_base_css():
    """Badge and banner styles; must run on every script run, `banner()` does it."""
    st.markdown(
        f"""
        <style>
        .badge {{
            display:inline-block; padding:2px 8px; border-radius:12px;
            font-size:12px; line-height:16px; font-weight:600;
            background:{CHIP_BG}; color:#F9FAFB; margin-right:4px; margin-bottom:4px;
        }}
        .badge.green {{background:{GREEN};}}
        .badge.yellow {{background:{YELLOW};}}
        .badge.red {{background:{RED};}}
        .portal-banner {{padding:0.9rem 1.1rem; border-radius:10px;
            background:linear-gradient(135deg,#047857,#10b981); color:white; margin-bottom:1rem;}}
        </style>
        """,
        unsafe_allow_html=True,
    )


def status_badge(status: str) -> str:
    status = (status or '').lower()
    if status == 'paid':
        cls = "green"
    elif status == 'closed':
        cls = "red"
    else:
        cls = "yellow"
    return f'<span class="badge {cls}">{status.upper()}</span>'


def banner(title: str, subtitle: str = ""):
    inject_base_css()
    st.markdown(
        f"""<div class='portal-banner'>
        <div style='font-size:1.05rem; font-weight:600;'>{title}</div>
        <div style='font-size:0.75rem; opacity:0.85;'>{subtitle}</div>
        </div>""",
        unsafe_allow_html=True,
    )
