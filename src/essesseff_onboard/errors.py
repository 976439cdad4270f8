"""Exception hierarchy for the onboarding utility.

Every exception carries a human-readable message and, where it helps, a
``help_text`` with the next thing the user should check. Exceptions that wrap
an upstream payload keep it verbatim so it can be echoed for diagnosis.
"""

from __future__ import annotations


class OnboardError(Exception):
    """Base class for all onboarding failures."""

    def __init__(self, message: str, help_text: str | None = None) -> None:
        self.message = message
        self.help_text = help_text
        super().__init__(message)

    def __str__(self) -> str:
        if self.help_text:
            return f"{self.message}\n\nHelp: {self.help_text}"
        return self.message


class ConfigurationError(OnboardError):
    """Required settings are missing or the config file cannot be read."""

    def __init__(
        self,
        message: str,
        *,
        missing: list[str] | None = None,
        help_text: str | None = None,
    ) -> None:
        super().__init__(message, help_text)
        self.missing = list(missing or [])


class InvalidApiKeyError(ConfigurationError):
    """The API key does not look like ``ess_`` followed by 32 alphanumerics."""

    def __init__(self, api_key: str) -> None:
        super().__init__(
            "Invalid API key format. API key must start with 'ess_' and be 36 characters total.",
            help_text=(
                f"Current API key length: {len(api_key)} characters; "
                f"starts with: {api_key[:4]!r}"
            ),
        )


class InvalidAppNameError(OnboardError):
    """App name does not conform to GitHub repository naming rules."""

    def __init__(self, app_name: str, reason: str) -> None:
        super().__init__(f"{reason}: {app_name!r}" if app_name else reason)
        self.app_name = app_name
        self.reason = reason


class ApiError(OnboardError):
    """The platform API answered with a non-retryable error status."""

    def __init__(self, *, method: str, path: str, status_code: int, body: str) -> None:
        super().__init__(f"API request failed: HTTP {status_code} ({method} {path})")
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        if self.body:
            return f"{self.message}\n{self.body}"
        return self.message


class RateLimitExhaustedError(OnboardError):
    """Raised only when a retry ceiling is configured and HTTP 429 persists."""

    def __init__(self, *, method: str, path: str, attempts: int) -> None:
        super().__init__(
            f"Rate limit still exceeded after {attempts} attempts ({method} {path})",
            help_text="Wait a few minutes and try again, or raise ESSESSEFF_MAX_RATE_LIMIT_RETRIES",
        )
        self.attempts = attempts


class _RawPayloadError(OnboardError):
    def __init__(self, message: str, raw: str, help_text: str | None = None) -> None:
        super().__init__(message, help_text)
        self.raw = raw

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base}\nResponse: {self.raw}"


class InvalidResponseError(_RawPayloadError):
    """The API returned a body that is not the structured data we expected."""


class TemplateError(_RawPayloadError):
    """The template descriptor is missing information needed to create the app."""


class AppCreationError(_RawPayloadError):
    """The create-app call did not report success."""


class AppAlreadyExistsError(OnboardError):
    def __init__(self, *, app_name: str, github_org: str) -> None:
        super().__init__(f"App '{app_name}' already exists in organization '{github_org}'")
        self.app_name = app_name
        self.github_org = github_org


class EnvironmentSetupError(OnboardError):
    """A single environment could not be set up.

    Never aborts the run: the orchestrator turns it into a failed outcome and
    moves on to the next environment.
    """

    def __init__(
        self,
        message: str,
        *,
        environment: str,
        state: str,
        help_text: str | None = None,
    ) -> None:
        super().__init__(message, help_text)
        self.environment = environment
        self.state = state
