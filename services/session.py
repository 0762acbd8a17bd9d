"""Session resolution: authentication state -> profile -> role.

The resolver listens to the `AuthClient` identity stream. Each transition
ends in one of the session statuses below and sets `landing_page`, the page
the router should be asked for next:

- ``signed_out``: no identity, profile cleared, land on ``auth``
- ``needs_profile``: identity without a profile document, land on ``registerProfile``
- ``ready``: profile loaded, land on the role's dashboard
- ``error``: the profile lookup kept failing; `retry()` runs it again

One profile lookup (with bounded retries on store failures) per sign-in
event; the resolver never polls.
"""
import logging
import time
from typing import Callable, Optional

from domain.config import AppConfig
from domain.constants import (
    PAGE_AUTH, PAGE_REGISTER_PROFILE, ROLE_ADMIN, ROLE_STUDENT, ROLES,
)
from domain.errors import AuthError, ProfileError, StoreError
from domain.models import Admin, Identity, Profile, Role, Student, profile_from_dict
from services.auth import AuthClient
from services.persistence import SERVER_TIMESTAMP, DocumentStore
from services.router import home_page

logger = logging.getLogger(__name__)

LOADING = 'loading'
SIGNED_OUT = 'signed_out'
NEEDS_PROFILE = 'needs_profile'
READY = 'ready'
ERROR = 'error'


class SessionResolver:
    def __init__(self, auth: AuthClient, store: DocumentStore, config: AppConfig,
                 sleep: Callable[[float], None] = time.sleep):
        self.auth = auth
        self.store = store
        self.config = config
        self._sleep = sleep
        self.status = LOADING
        self.identity: Optional[Identity] = None
        self.profile: Optional[Profile] = None
        self.error: Optional[str] = None
        self.auth_error: Optional[str] = None
        self.landing_page: str = PAGE_AUTH
        # incremented on every landing so the app can tell a new outcome from a rerun
        self.transitions = 0
        self._bootstrapped = False
        self._unsubscribe: Optional[Callable[[], None]] = auth.on_auth_state_changed(self._on_auth_state)

    # --- derived state ---

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def has_profile(self) -> bool:
        return self.profile is not None

    @property
    def role(self) -> Optional[Role]:
        return self.profile.role if self.profile else None

    def _land(self, status: str, page: str):
        self.status = status
        self.landing_page = page
        self.transitions += 1

    # --- auth stream ---

    def _on_auth_state(self, identity: Optional[Identity]):
        self.identity = identity
        self.profile = None
        self.error = None
        if identity is None:
            self._land(SIGNED_OUT, PAGE_AUTH)
            return
        self.status = LOADING
        self._resolve_profile()

    def _resolve_profile(self):
        uid = self.identity.uid
        attempts = max(1, self.config.profile_fetch_retries)
        last_error: Optional[StoreError] = None
        for attempt in range(1, attempts + 1):
            try:
                doc = self.store.get(self.config.profile_path(uid), uid)
            except StoreError as e:
                last_error = e
                logger.warning("Profile fetch for %s failed (attempt %d/%d): %s",
                               uid, attempt, attempts, e)
                if attempt < attempts:
                    self._sleep(self.config.retry_delay)
                continue
            if doc is None:
                self._land(NEEDS_PROFILE, PAGE_REGISTER_PROFILE)
                return
            try:
                self.profile = profile_from_dict(doc)
            except ValueError as e:
                logger.error("Unusable profile for %s: %s", uid, e)
                self.status = ERROR
                self.error = str(e)
                return
            self._land(READY, home_page(self.profile.role))
            return
        self.status = ERROR
        self.error = f"Could not load your profile: {last_error}"

    def retry(self):
        if self.identity is None:
            return
        self.status = LOADING
        self.error = None
        self._resolve_profile()

    # --- sign-in entry points ---

    def bootstrap(self):
        """Initial sign-in for a fresh session: pre-issued token, else anonymous."""
        if self._bootstrapped:
            return
        self._bootstrapped = True
        if self.identity is not None:
            return
        try:
            if self.config.initial_auth_token:
                self.auth.sign_in_with_custom_token(self.config.initial_auth_token)
            elif self.config.allow_anonymous:
                self.auth.sign_in_anonymously()
        except AuthError as e:
            logger.error("Initial authentication failed: %s", e)
            self.auth_error = f"Authentication failed: {e}"
        if self.identity is None:
            self._land(SIGNED_OUT, PAGE_AUTH)

    def sign_out(self):
        self.auth.sign_out()

    # --- profile creation ---

    def create_profile(self, name: str, role: str = ROLE_STUDENT,
                       student_id: Optional[str] = None) -> Profile:
        if self.identity is None:
            raise ProfileError("User not authenticated.")
        name = (name or '').strip()
        student_id = (student_id or '').strip()
        if not name:
            raise ProfileError("Full name is required.")
        if role not in ROLES:
            raise ProfileError(f"Unknown role: {role}")
        if role == ROLE_STUDENT and not student_id:
            raise ProfileError("Student ID is required for students.")

        uid = self.identity.uid
        path = self.config.profile_path(uid)
        if self.store.get(path, uid) is not None:
            raise ProfileError("A profile already exists for this account.")

        profile = Profile(uid=uid, name=name,
                          role=Admin() if role == ROLE_ADMIN else Student(student_id),
                          email=self.identity.email)
        stored = self.store.set(path, uid, {**profile.to_dict(), 'createdAt': SERVER_TIMESTAMP})
        profile.created_at = stored.get('createdAt')
        logger.info("Created %s profile for %s", role, uid)

        self.profile = profile
        self._land(READY, home_page(profile.role))
        return profile

    def close(self):
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
