"""Navigation state machine.

`route()` is a pure function of the session state and the requested page.
It gates navigation only; data operations are not authorized here.
"""
from typing import FrozenSet, Optional

from domain.constants import (
    PAGE_ADMIN_DASHBOARD, PAGE_AUTH, PAGE_NOT_FOUND, PAGE_REGISTER_PROFILE,
    PAGE_STUDENT_DASHBOARD,
)
from domain.models import Admin, Role, Student


def home_page(role: Role) -> str:
    if isinstance(role, Admin):
        return PAGE_ADMIN_DASHBOARD
    if isinstance(role, Student):
        return PAGE_STUDENT_DASHBOARD
    raise TypeError(f"Unknown role variant: {role!r}")


def permitted_pages(role: Role) -> FrozenSet[str]:
    if isinstance(role, Admin):
        return frozenset({PAGE_ADMIN_DASHBOARD})
    if isinstance(role, Student):
        return frozenset({PAGE_STUDENT_DASHBOARD})
    raise TypeError(f"Unknown role variant: {role!r}")


def route(is_authenticated: bool, has_profile: bool, role: Optional[Role], requested_page: str) -> str:
    """Map session state and requested page to the page to render.

    Priority: unauthenticated -> auth; no profile -> registerProfile; page in
    the role's permitted set -> that page; auth/registerProfile with a profile
    -> role home; anything else -> notFound.
    """
    if not is_authenticated:
        return PAGE_AUTH
    if not has_profile or role is None:
        return PAGE_REGISTER_PROFILE
    if requested_page in permitted_pages(role):
        return requested_page
    if requested_page in (PAGE_AUTH, PAGE_REGISTER_PROFILE):
        return home_page(role)
    return PAGE_NOT_FOUND
