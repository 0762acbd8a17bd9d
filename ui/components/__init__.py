"""
Reusable UI components for the Streamlit application.

- `base`: CSS injection, status badges and the page banner (which injects the CSS).
- `cards`: exam and registration cards used by the student dashboard.

Import from here (`from ui.components import exam_card`) rather than from
the individual modules.
"""

from .base import (
    inject_base_css,
    status_badge,
    banner,
)

from .cards import (
    exam_card,
    registration_card,
)
