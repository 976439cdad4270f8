"""App creation: name validation, existence check, template resolution, submission.

Every step is a hard gate; the first failure aborts app creation.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from essesseff_onboard.api.client import EssesseffClient
from essesseff_onboard.api.templates import TemplateCatalog, TemplateDescriptor
from essesseff_onboard.config import OnboardSettings
from essesseff_onboard.errors import (
    AppAlreadyExistsError,
    AppCreationError,
    InvalidAppNameError,
    TemplateError,
)

logger = logging.getLogger(__name__)

APP_NAME_PATTERN = re.compile(r"^[a-z0-9-]+$")


def validate_app_name(app_name: str) -> None:
    """Check an app name against GitHub repository naming rules.

    Raises:
        InvalidAppNameError: With the first rule the name breaks.
    """

    if not app_name:
        raise InvalidAppNameError(app_name, "App name cannot be empty")
    if app_name.startswith("-") or app_name.endswith("-"):
        raise InvalidAppNameError(app_name, "App name cannot start or end with a dash")
    if not APP_NAME_PATTERN.fullmatch(app_name):
        raise InvalidAppNameError(
            app_name, "App name must contain only lowercase letters, numbers, and dashes"
        )


class TemplateReference(BaseModel):
    template_org_login: str
    source_template_repo: str
    is_global_template: bool
    # Global templates leave this unset; the server derives it.
    replacement_string: str | None = Field(default=None)


class AppCreationRequest(BaseModel):
    """Body of the create-app call."""

    programming_language: str
    template: TemplateReference
    repository_visibility: str = Field(default="private")
    description: str = Field(default="")

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True, slots=True)
class CreatedApp:
    app_name: str
    resultant_repos: dict[str, str] = field(default_factory=dict)


def build_creation_request(
    descriptor: TemplateDescriptor, *, visibility: str, description: str
) -> AppCreationRequest:
    """Build the create-app body from a template descriptor.

    Raises:
        TemplateError: If an account-scoped template has no replacement string.
    """

    if descriptor.is_global:
        template = TemplateReference(
            template_org_login=descriptor.org_login,
            source_template_repo=descriptor.source_repo,
            is_global_template=True,
        )
    else:
        if not descriptor.replacement_string:
            raise TemplateError(
                "replacement_string is required for account-specific templates "
                "but was not found in template response",
                descriptor.raw,
            )
        template = TemplateReference(
            template_org_login=descriptor.org_login,
            source_template_repo=descriptor.source_repo,
            is_global_template=False,
            replacement_string=descriptor.replacement_string,
        )

    return AppCreationRequest(
        programming_language=descriptor.language,
        template=template,
        repository_visibility=visibility or "private",
        description=description,
    )


class AppProvisioner:
    """Creates one essesseff app from the configured template."""

    def __init__(
        self,
        *,
        client: EssesseffClient,
        catalog: TemplateCatalog,
        settings: OnboardSettings,
    ) -> None:
        self._client = client
        self._catalog = catalog
        self._settings = settings

    @property
    def app_path(self) -> str:
        s = self._settings
        return f"/accounts/{s.account_slug}/organizations/{s.github_org}/apps/{s.app_name}"

    def create_app(self) -> CreatedApp:
        settings = self._settings
        app_name = settings.app_name
        logger.info("Creating essesseff app", extra={"app_name": app_name})

        validate_app_name(app_name)

        logger.info("Checking if app already exists", extra={"app_name": app_name})
        if self._client.exists(self.app_path):
            raise AppAlreadyExistsError(app_name=app_name, github_org=settings.github_org)

        descriptor = self._catalog.fetch_template(
            settings.template_name, is_global=bool(settings.template_is_global)
        )
        missing = descriptor.missing_fields()
        if missing:
            raise TemplateError(
                "Failed to extract required template information "
                f"(missing: {', '.join(missing)})",
                descriptor.raw,
            )

        request = build_creation_request(
            descriptor,
            visibility=settings.repository_visibility,
            description=settings.app_description,
        )

        logger.info("Calling essesseff API to create app", extra={"app_name": app_name})
        raw = self._client.request(
            "POST",
            f"/accounts/{settings.account_slug}/organizations/{settings.github_org}/apps",
            request.to_payload(),
            params={"app_name": app_name},
        )
        created = _parse_creation_response(app_name, raw)

        logger.info(
            "App created",
            extra={"app_name": app_name, "repositories": sorted(created.resultant_repos)},
        )
        return created


def _parse_creation_response(app_name: str, raw: str) -> CreatedApp:
    # A 2xx with success=false is still a failure.
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        raise AppCreationError("Failed to create app: response is not valid JSON", raw) from None
    if not isinstance(data, dict) or data.get("success") is not True:
        raise AppCreationError("Failed to create app", raw)

    repos: dict[str, str] = {}
    payload = data.get("data")
    resultant = payload.get("resultant_repos") if isinstance(payload, dict) else None
    if isinstance(resultant, dict):
        repos = {str(key): str(value) for key, value in resultant.items()}
    return CreatedApp(app_name=app_name, resultant_repos=repos)
