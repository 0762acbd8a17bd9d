"""Explicit application configuration.

Every service receives an `AppConfig` at construction instead of reading
process-wide values on its own. Fields are read from ``EXAM_PORTAL_*``
environment variables by pydantic-settings; `AppConfig.from_env()` is the
single place where that happens in the app.
"""
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.paths import default_data_dir

ENV_PREFIX = 'EXAM_PORTAL_'


class AppConfig(BaseSettings):
    """Portal settings - all configurable via ``EXAM_PORTAL_*`` variables"""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        extra='ignore',
        frozen=True,
        populate_by_name=True,
    )

    deployment_id: str = Field(
        default='default-app-id',
        validation_alias=AliasChoices('deployment_id', ENV_PREFIX + 'APP_ID'),
    )
    # JSON object; `token_secret` signs custom tokens
    backend_credentials: Dict[str, Any] = Field(default_factory=dict)
    initial_auth_token: Optional[str] = None
    data_dir: str = Field(default_factory=default_data_dir)
    allow_anonymous: bool = True
    profile_fetch_retries: int = 3
    retry_delay: float = 0.2
    bcrypt_rounds: int = 12
    currency: str = 'KES'
    log_level: str = 'INFO'

    @field_validator('log_level')
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def token_secret(self) -> Optional[str]:
        return self.backend_credentials.get('token_secret')

    def collection_path(self, name: str) -> str:
        """Namespaced path of a shared collection (`exams`, `registrations`)."""
        return f"artifacts/{self.deployment_id}/public/data/{name}"

    def profile_path(self, uid: str) -> str:
        return f"artifacts/{self.deployment_id}/users/{uid}/profiles"

    @classmethod
    def from_env(cls) -> 'AppConfig':
        return cls()
