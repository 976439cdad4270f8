"""Configuration for the onboarding utility.

Configuration is loaded from:
- a `KEY=value` config file (default `.essesseff`)
- environment variables, which take precedence over the file

Which keys are required depends on the requested operation, so loading never
fails on a missing key; :func:`validate_settings` does that once the CLI knows
what it is about to do.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from essesseff_onboard.errors import ConfigurationError, InvalidApiKeyError

DEFAULT_CONFIG_FILE = Path(".essesseff")
DEFAULT_API_BASE_URL = "https://essesseff.com/api/v1"

API_KEY_PATTERN = re.compile(r"^ess_[a-zA-Z0-9]{32}$")

BASE_REQUIRED_KEYS: tuple[str, ...] = (
    "ESSESSEFF_API_KEY",
    "ESSESSEFF_ACCOUNT_SLUG",
    "GITHUB_ORG",
    "APP_NAME",
)
CREATE_APP_REQUIRED_KEYS: tuple[str, ...] = ("TEMPLATE_NAME", "TEMPLATE_IS_GLOBAL")
SETUP_ARGOCD_REQUIRED_KEYS: tuple[str, ...] = (
    "ARGOCD_MACHINE_USER",
    "GITHUB_TOKEN",
    "ARGOCD_MACHINE_EMAIL",
)


class OnboardSettings(BaseSettings):
    """Settings for a single onboarding run.

    Notes:
        Tests can bypass the config file with `OnboardSettings(_env_file=None, ...)`.
    """

    api_key: str = Field(default="", validation_alias="ESSESSEFF_API_KEY")
    account_slug: str = Field(default="", validation_alias="ESSESSEFF_ACCOUNT_SLUG")
    github_org: str = Field(default="", validation_alias="GITHUB_ORG")
    app_name: str = Field(default="", validation_alias="APP_NAME")

    template_name: str = Field(default="", validation_alias="TEMPLATE_NAME")
    template_is_global: bool | None = Field(
        default=None,
        validation_alias="TEMPLATE_IS_GLOBAL",
        description="Whether TEMPLATE_NAME refers to a global (platform) template",
    )
    app_description: str = Field(default="", validation_alias="APP_DESCRIPTION")
    repository_visibility: str = Field(default="private", validation_alias="REPOSITORY_VISIBILITY")

    argocd_machine_user: str = Field(default="", validation_alias="ARGOCD_MACHINE_USER")
    github_token: str = Field(default="", validation_alias="GITHUB_TOKEN")
    argocd_machine_email: str = Field(default="", validation_alias="ARGOCD_MACHINE_EMAIL")

    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        validation_alias="ESSESSEFF_API_BASE_URL",
        description="essesseff API base URL",
    )
    rate_limit_delay_seconds: float = Field(
        default=4.0,
        ge=0.0,
        validation_alias="ESSESSEFF_RATE_LIMIT_DELAY_SECONDS",
        description="Pause before every API call (3 requests per 10 seconds budget)",
    )
    rate_limit_backoff_seconds: float = Field(
        default=10.0,
        ge=0.0,
        validation_alias="ESSESSEFF_RATE_LIMIT_BACKOFF_SECONDS",
        description="Pause after an HTTP 429 before retrying the same request",
    )
    max_rate_limit_retries: int | None = Field(
        default=None,
        ge=0,
        validation_alias="ESSESSEFF_MAX_RATE_LIMIT_RETRIES",
        description="Retry ceiling for HTTP 429; unset means retry until the API accepts the call",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["text", "json"] = Field(default="text", validation_alias="LOG_FORMAT")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=DEFAULT_CONFIG_FILE,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("api_key", mode="before")
    @classmethod
    def _strip_api_key(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().strip("\"'")
        return value

    @field_validator("template_is_global", "max_rate_limit_retries", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper() or "WARNING"
        return value

    @field_validator("repository_visibility", mode="before")
    @classmethod
    def _default_visibility(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "private"
        return value

    @classmethod
    def from_file(cls, path: Path) -> OnboardSettings:
        """Load settings from a config file, failing if the file is absent."""

        if not path.is_file():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                help_text=(
                    "Create a .essesseff file or specify a different file with --config-file"
                ),
            )
        return cls(_env_file=path)

    def value_for(self, key: str) -> object:
        """Return the value bound to a config key such as ``GITHUB_ORG``."""

        for name, field in type(self).model_fields.items():
            if field.validation_alias == key:
                return getattr(self, name)
        raise KeyError(key)


def required_keys(*, create_app: bool, setup_argocd: bool) -> list[str]:
    keys = list(BASE_REQUIRED_KEYS)
    if create_app:
        keys.extend(CREATE_APP_REQUIRED_KEYS)
    if setup_argocd:
        keys.extend(SETUP_ARGOCD_REQUIRED_KEYS)
    return keys


def validate_settings(
    settings: OnboardSettings, *, create_app: bool = False, setup_argocd: bool = False
) -> None:
    """Check required settings for the requested operations.

    Raises:
        InvalidApiKeyError: If an API key is present but malformed.
        ConfigurationError: Listing every required key that is missing.
    """

    if settings.api_key and not API_KEY_PATTERN.fullmatch(settings.api_key):
        raise InvalidApiKeyError(settings.api_key)

    missing: list[str] = []
    for key in required_keys(create_app=create_app, setup_argocd=setup_argocd):
        value = settings.value_for(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(key)

    if missing:
        raise ConfigurationError(
            f"Missing required configuration variables: {' '.join(missing)}",
            missing=missing,
            help_text="Ensure all required variables are set in the configuration file",
        )
