"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
import requests

from essesseff_onboard.argocd.tools import CommandResult
from essesseff_onboard.config import OnboardSettings

VALID_API_KEY = "ess_" + "a1B2c3D4" * 4

CONFIG_KEYS = (
    "ESSESSEFF_API_KEY",
    "ESSESSEFF_ACCOUNT_SLUG",
    "GITHUB_ORG",
    "APP_NAME",
    "TEMPLATE_NAME",
    "TEMPLATE_IS_GLOBAL",
    "APP_DESCRIPTION",
    "REPOSITORY_VISIBILITY",
    "ARGOCD_MACHINE_USER",
    "GITHUB_TOKEN",
    "ARGOCD_MACHINE_EMAIL",
    "ESSESSEFF_API_BASE_URL",
    "ESSESSEFF_RATE_LIMIT_DELAY_SECONDS",
    "ESSESSEFF_RATE_LIMIT_BACKOFF_SECONDS",
    "ESSESSEFF_MAX_RATE_LIMIT_RETRIES",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def _isolate_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer/CI environment variables from leaking into settings."""
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_settings() -> Callable[..., OnboardSettings]:
    """Build settings without reading any config file."""

    def _make(**overrides: Any) -> OnboardSettings:
        values: dict[str, Any] = {
            "api_key": VALID_API_KEY,
            "account_slug": "acme",
            "github_org": "acme-org",
            "app_name": "hello-app",
            "template_name": "go-hello-world",
            "template_is_global": True,
            "app_description": "Hello app",
            "argocd_machine_user": "argocd-bot",
            "github_token": "ghp_test",
            "argocd_machine_email": "argocd-bot@example.com",
            "api_base_url": "https://api.example.test/v1",
            "rate_limit_delay_seconds": 0.0,
            "rate_limit_backoff_seconds": 0.0,
        }
        values.update(overrides)
        return OnboardSettings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., OnboardSettings]) -> OnboardSettings:
    return make_settings()


def _make_response(status_code: int, body: str | bytes = "") -> Mock:
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    if isinstance(body, bytes):
        response.content = body
        response.text = body.decode("utf-8")
    else:
        response.text = body
        response.content = body.encode("utf-8")
    return response


@pytest.fixture
def make_response() -> Callable[..., Mock]:
    """A stand-in for requests.Response carrying only what the client reads."""
    return _make_response


@pytest.fixture
def session() -> Mock:
    mock_session = Mock(spec=requests.Session)
    mock_session.headers = {}
    return mock_session


@dataclass
class FakeToolRunner:
    """Records commands instead of running them.

    ``results`` maps the first two words of a command (e.g. ``"git clone"``)
    to the result to return; unmatched commands succeed. ``on_run`` lets a
    test simulate side effects such as a clone creating its directory.
    """

    available: set[str] = field(default_factory=lambda: {"git", "kubectl"})
    results: dict[str, CommandResult] = field(default_factory=dict)
    on_run: Callable[[list[str], Path | None], None] | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.available else None

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = list(args)
        self.calls.append({"args": argv, "cwd": cwd, "env": dict(env or {}), "capture": capture})
        if self.on_run is not None:
            self.on_run(argv, cwd)
        key = " ".join(argv[:2])
        return self.results.get(key, self.results.get(argv[0], CommandResult(returncode=0)))

    def commands(self) -> list[list[str]]:
        return [call["args"] for call in self.calls]


@pytest.fixture
def fake_tools() -> FakeToolRunner:
    return FakeToolRunner()


@pytest.fixture
def valid_api_key() -> str:
    return VALID_API_KEY
