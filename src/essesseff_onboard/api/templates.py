"""Template catalog: global (platform-provided) and account-scoped templates."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from essesseff_onboard.api.client import EssesseffClient
from essesseff_onboard.errors import InvalidResponseError

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True, slots=True)
class TemplateSummary:
    """One row of a template listing."""

    name: str
    language: str
    description: str

    @staticmethod
    def from_json(obj: dict[str, Any]) -> TemplateSummary:
        def _text(key: str) -> str:
            value = obj.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                return NOT_AVAILABLE
            return str(value)

        return TemplateSummary(
            name=_text("name"),
            language=_text("language"),
            description=_text("description"),
        )


@dataclass(frozen=True, slots=True)
class TemplateListing:
    global_templates: list[TemplateSummary]
    account_templates: list[TemplateSummary]


@dataclass(frozen=True, slots=True)
class TemplateDescriptor:
    """Metadata for the source repository a new app is scaffolded from.

    ``raw`` keeps the response body verbatim so that validation failures can
    echo exactly what the API returned.
    """

    org_login: str
    source_repo: str
    is_global: bool
    language: str
    replacement_string: str
    raw: str

    @staticmethod
    def from_json(obj: dict[str, Any], *, raw: str) -> TemplateDescriptor:
        def _text(key: str) -> str:
            value = obj.get(key)
            return value.strip() if isinstance(value, str) else ""

        is_global = obj.get("is_global_template")
        if isinstance(is_global, str):
            is_global = is_global.strip().lower() == "true"

        return TemplateDescriptor(
            org_login=_text("template_org_login"),
            source_repo=_text("source_template_repo"),
            is_global=is_global is True,
            language=_text("language"),
            replacement_string=_text("replacement_string"),
            raw=raw,
        )

    def missing_fields(self) -> list[str]:
        """Names of the fields required for app creation that came back empty."""

        required = {
            "template_org_login": self.org_login,
            "source_template_repo": self.source_repo,
            "language": self.language,
        }
        return [name for name, value in required.items() if not value]


class TemplateCatalog:
    """Reads template metadata through the rate-limited client. Nothing is cached."""

    def __init__(self, *, client: EssesseffClient, account_slug: str) -> None:
        if not account_slug:
            raise ValueError("account_slug is required")
        self._client = client
        self._account_slug = account_slug

    def list_templates(self, language: str | None = None) -> TemplateListing:
        """List global and account-specific templates.

        Both calls must succeed; there is no partial listing.
        """

        params = {"language": language} if language else None

        logger.info("Fetching global templates...", extra={"language": language})
        global_raw = self._client.request("GET", "/global/templates", params=params)

        logger.info("Fetching account-specific templates...", extra={"language": language})
        account_raw = self._client.request(
            "GET", f"/accounts/{self._account_slug}/templates", params=params
        )

        return TemplateListing(
            global_templates=_parse_summaries(global_raw, kind="global"),
            account_templates=_parse_summaries(account_raw, kind="account"),
        )

    def fetch_template(self, name: str, *, is_global: bool) -> TemplateDescriptor:
        if not name:
            raise ValueError("template name is required")

        if is_global:
            path = f"/global/templates/{name}"
        else:
            path = f"/accounts/{self._account_slug}/templates/{name}"

        logger.info(
            "Fetching template details", extra={"template": name, "is_global": is_global}
        )
        raw = self._client.request("GET", path)

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            raise InvalidResponseError("Invalid JSON response from template API", raw) from None
        if not isinstance(data, dict):
            raise InvalidResponseError("Unexpected template response: expected an object", raw)

        return TemplateDescriptor.from_json(data, raw=raw)


def _parse_summaries(raw: str, *, kind: str) -> list[TemplateSummary]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        raise InvalidResponseError(f"Invalid JSON response listing {kind} templates", raw) from None
    if not isinstance(data, list):
        raise InvalidResponseError(
            f"Unexpected {kind} template listing: expected an array", raw
        )
    return [TemplateSummary.from_json(item) for item in data if isinstance(item, dict)]
