"""Unit tests for the rate-limited essesseff API client (mocked session)."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

import essesseff_onboard.api.client as client_module
from essesseff_onboard.api.client import USER_AGENT, EssesseffClient
from essesseff_onboard.errors import ApiError, RateLimitExhaustedError

CALL_DELAY = 4.0
BACKOFF = 10.0


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr(client_module.time, "sleep", recorded.append)
    return recorded


def _client(session: Mock, valid_api_key: str, **kwargs) -> EssesseffClient:
    return EssesseffClient(
        api_key=valid_api_key,
        base_url="https://api.example.test/v1/",
        call_delay_seconds=CALL_DELAY,
        rate_limit_backoff_seconds=BACKOFF,
        session=session,
        **kwargs,
    )


def test_client_sets_auth_and_user_agent_headers(session: Mock, valid_api_key: str) -> None:
    _client(session, valid_api_key)

    assert session.headers["X-API-Key"] == valid_api_key
    assert session.headers["User-Agent"] == USER_AGENT


def test_request_returns_body_after_pre_call_delay(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str
) -> None:
    session.request.return_value = make_response(200, '[{"name": "t"}]')
    client = _client(session, valid_api_key)

    body = client.request("get", "/global/templates", params={"language": "go"})

    assert body == '[{"name": "t"}]'
    assert sleeps == [CALL_DELAY]
    session.request.assert_called_once_with(
        "GET",
        "https://api.example.test/v1/global/templates",
        params={"language": "go"},
        json=None,
        timeout=30.0,
        allow_redirects=True,
    )


def test_429_is_retried_until_success(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str
) -> None:
    session.request.side_effect = [
        make_response(429, "slow down"),
        make_response(429, "slow down"),
        make_response(200, "ok"),
    ]
    client = _client(session, valid_api_key)

    assert client.request("POST", "/things", {"a": 1}) == "ok"

    assert sleeps == [CALL_DELAY, BACKOFF, CALL_DELAY, BACKOFF, CALL_DELAY]
    assert sleeps.count(CALL_DELAY) == 3
    assert sleeps.count(BACKOFF) == 2
    # Every retry is the identical request.
    assert session.request.call_count == 3
    first, *rest = session.request.call_args_list
    assert all(call == first for call in rest)
    assert first.kwargs["json"] == {"a": 1}


def test_429_retry_is_unbounded_by_default(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str
) -> None:
    session.request.side_effect = [make_response(429)] * 25 + [make_response(200, "finally")]
    client = _client(session, valid_api_key)

    assert client.request("GET", "/x") == "finally"
    assert session.request.call_count == 26


def test_429_retry_ceiling_when_configured(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str
) -> None:
    session.request.side_effect = [make_response(429)] * 3
    client = _client(session, valid_api_key, max_rate_limit_retries=2)

    with pytest.raises(RateLimitExhaustedError) as exc_info:
        client.request("GET", "/x")

    assert exc_info.value.attempts == 3
    assert session.request.call_count == 3
    assert sleeps.count(BACKOFF) == 2


@pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 500, 503])
def test_error_status_fails_without_retry(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str, status: int
) -> None:
    session.request.return_value = make_response(status, '{"error": "nope"}')
    client = _client(session, valid_api_key)

    with pytest.raises(ApiError) as exc_info:
        client.request("GET", "/accounts/acme/templates")

    err = exc_info.value
    assert err.status_code == status
    assert err.body == '{"error": "nope"}'
    assert f"HTTP {status}" in str(err)
    assert '{"error": "nope"}' in str(err)
    assert session.request.call_count == 1
    assert sleeps == [CALL_DELAY]


def test_download_returns_raw_bytes(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str
) -> None:
    session.request.return_value = make_response(200, b"apiVersion: v1\nkind: Secret\n")
    client = _client(session, valid_api_key)

    assert client.download("/secret") == b"apiVersion: v1\nkind: Secret\n"


def test_download_fails_on_404(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str
) -> None:
    session.request.return_value = make_response(404, "not found")
    client = _client(session, valid_api_key)

    with pytest.raises(ApiError):
        client.download("/secret")


def test_exists_probe_404_means_absent(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str
) -> None:
    session.request.return_value = make_response(404, "")
    client = _client(session, valid_api_key)

    assert client.exists("/accounts/acme/organizations/org/apps/app") is False


@pytest.mark.parametrize("status", [200, 201, 204, 299])
def test_exists_probe_success_means_present(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str, status: int
) -> None:
    session.request.return_value = make_response(status, "{}")
    client = _client(session, valid_api_key)

    assert client.exists("/accounts/acme/organizations/org/apps/app") is True


@pytest.mark.parametrize("status", [400, 401, 403, 500])
def test_exists_probe_other_errors_are_hard_failures(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str, status: int
) -> None:
    session.request.return_value = make_response(status, "boom")
    client = _client(session, valid_api_key)

    with pytest.raises(ApiError) as exc_info:
        client.exists("/accounts/acme/organizations/org/apps/app")
    assert exc_info.value.status_code == status


def test_exists_probe_retries_on_429(
    session: Mock, make_response, sleeps: list[float], valid_api_key: str
) -> None:
    session.request.side_effect = [make_response(429), make_response(404)]
    client = _client(session, valid_api_key)

    assert client.exists("/apps/app") is False
    assert sleeps == [CALL_DELAY, BACKOFF, CALL_DELAY]


def test_from_settings_uses_configured_delays(settings, session: Mock) -> None:
    client = EssesseffClient.from_settings(settings, session=session)

    assert client.base_url == "https://api.example.test/v1"
    assert client.url_for("global/templates") == "https://api.example.test/v1/global/templates"


def test_client_requires_api_key(session: Mock) -> None:
    with pytest.raises(ValueError, match="API key"):
        EssesseffClient(api_key="", base_url="https://x", session=session)
