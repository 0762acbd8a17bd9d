"""Authentication provider.

`AuthService` is the shared backend part: it owns the accounts collection,
hashes passwords with bcrypt and signs/verifies custom tokens (HS256 JWTs)
with the configured ``token_secret``. `AuthClient` is the per-browser-session
part: it holds the current identity and pushes every change to its listeners,
the way a hosted auth SDK does.
"""
from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from domain.config import AppConfig
from domain.constants import MIN_PASSWORD_LENGTH
from domain.errors import AuthError, StoreError
from domain.models import Identity
from services.persistence import SERVER_TIMESTAMP, DocumentStore, Where
from utils.ids import create_id_with_prefix

logger = logging.getLogger(__name__)

ACCOUNTS_PATH = 'auth/accounts'
JWT_ALGORITHM = 'HS256'
EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

AuthListener = Callable[[Optional[Identity]], None]


def hash_password(password: str, rounds: int = 12) -> str:
    # Bcrypt has a 72 byte limit
    password_bytes = password.encode('utf-8')[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds)).decode('utf-8')


def check_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8')[:72], hashed.encode('utf-8'))
    except ValueError:
        # not a bcrypt hash
        return False


class AuthService:
    def __init__(self, store: DocumentStore, config: AppConfig):
        self.store = store
        self.config = config

    def _backend_call(self, fn, *args):
        try:
            return fn(*args)
        except StoreError as e:
            logger.exception("Auth backend unavailable")
            raise AuthError('auth/internal-error', 'Authentication backend unavailable.') from e

    def _find_account(self, email: str):
        matches = self._backend_call(self.store.query, ACCOUNTS_PATH, [Where('email', '==', email)])
        return matches[0] if matches else None

    def create_account(self, email: str, password: str) -> Identity:
        email = (email or '').strip().lower()
        if not EMAIL_RE.match(email):
            raise AuthError('auth/invalid-email', 'The email address is badly formatted.')
        if len(password or '') < MIN_PASSWORD_LENGTH:
            raise AuthError('auth/weak-password',
                            f'Password should be at least {MIN_PASSWORD_LENGTH} characters.')
        if self._find_account(email):
            raise AuthError('auth/email-already-in-use',
                            'The email address is already in use by another account.')
        uid = create_id_with_prefix('u')
        self._backend_call(self.store.set, ACCOUNTS_PATH, uid, {
            'email': email,
            'password': hash_password(password, self.config.bcrypt_rounds),
            'createdAt': SERVER_TIMESTAMP,
        })
        logger.info("Created account %s", uid)
        return Identity(uid=uid, email=email)

    def verify_password(self, email: str, password: str) -> Identity:
        email = (email or '').strip().lower()
        account = self._find_account(email)
        if not account or not check_password(password or '', account.get('password', '')):
            logger.warning("Rejected password sign-in for %s", email)
            raise AuthError('auth/invalid-credential', 'Invalid email or password.')
        return Identity(uid=account['id'], email=account['email'])

    def _secret(self) -> str:
        secret = self.config.token_secret
        if not secret:
            raise AuthError('auth/configuration-not-found',
                            'Custom tokens are not configured for this deployment.')
        return secret

    def issue_custom_token(self, uid: str, email: Optional[str] = None, expires_in: int = 3600) -> str:
        expire = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        to_encode = {'uid': uid, 'email': email, 'exp': expire}
        return jwt.encode(to_encode, self._secret(), algorithm=JWT_ALGORITHM)

    def verify_custom_token(self, token: str) -> Identity:
        secret = self._secret()
        try:
            payload = jwt.decode(token or '', secret, algorithms=[JWT_ALGORITHM])
        except ExpiredSignatureError as e:
            raise AuthError('auth/invalid-custom-token', 'The custom token has expired.') from e
        except JWTError as e:
            raise AuthError('auth/invalid-custom-token', 'The custom token is invalid.') from e
        if not payload.get('uid'):
            raise AuthError('auth/invalid-custom-token', 'The custom token has no uid.')
        return Identity(uid=payload['uid'], email=payload.get('email'))

    def new_anonymous_identity(self) -> Identity:
        if not self.config.allow_anonymous:
            raise AuthError('auth/operation-not-allowed',
                            'Anonymous sign-in is disabled for this deployment.')
        return Identity(uid=create_id_with_prefix('anon'), is_anonymous=True)


class AuthClient:
    def __init__(self, service: AuthService):
        self.service = service
        self._current: Optional[Identity] = None
        self._listeners: List[AuthListener] = []
        self._lock = threading.Lock()

    @property
    def current_user(self) -> Optional[Identity]:
        return self._current

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener; it is called at once with the current identity."""
        with self._lock:
            self._listeners.append(listener)
        listener(self._current)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def _set_current(self, identity: Optional[Identity]):
        self._current = identity
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(identity)

    def sign_in_anonymously(self) -> Identity:
        identity = self.service.new_anonymous_identity()
        logger.info("Signed in anonymously as %s", identity.uid)
        self._set_current(identity)
        return identity

    def sign_in_with_custom_token(self, token: str) -> Identity:
        identity = self.service.verify_custom_token(token)
        logger.info("Signed in with custom token as %s", identity.uid)
        self._set_current(identity)
        return identity

    def sign_in_with_email_and_password(self, email: str, password: str) -> Identity:
        identity = self.service.verify_password(email, password)
        logger.info("Signed in %s", identity.uid)
        self._set_current(identity)
        return identity

    def create_user_with_email_and_password(self, email: str, password: str) -> Identity:
        identity = self.service.create_account(email, password)
        self._set_current(identity)
        return identity

    def sign_out(self):
        if self._current is not None:
            logger.info("Signed out %s", self._current.uid)
        self._set_current(None)
