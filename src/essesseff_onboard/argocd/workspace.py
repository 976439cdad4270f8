"""Per-environment GitOps workspace layout and generated files."""

from __future__ import annotations

from pathlib import Path

from essesseff_onboard.config import OnboardSettings

ENV_FILE_NAME = ".env"
SECRET_FILE_NAME = "notifications-secret.yaml"
ENTRYPOINT_NAME = "setup-argocd.sh"

GIT_HOST = "github.com"


def workspace_name(app_name: str, environment: str) -> str:
    return f"{app_name}-argocd-{environment}"


def repository_url(github_org: str, repo_name: str) -> str:
    return f"git@{GIT_HOST}:{github_org}/{repo_name}.git"


def render_env_file(settings: OnboardSettings, environment: str) -> str:
    """Render the `.env` handed to the setup script.

    Only the machine-user credentials and the org/app/environment identifiers
    are included; the essesseff API key and app-creation settings never reach
    the GitOps repository.
    """

    lines = [
        "# GitHub Machine User Credentials",
        f'ARGOCD_MACHINE_USER="{settings.argocd_machine_user}"',
        f'GITHUB_TOKEN="{settings.github_token}"',
        f'ARGOCD_MACHINE_EMAIL="{settings.argocd_machine_email}"',
        "",
        "# Organization/App Config",
        f'GITHUB_ORG="{settings.github_org}"',
        f'APP_NAME="{settings.app_name}"',
        f'ENVIRONMENT="{environment}"',
    ]
    return "\n".join(lines) + "\n"


def write_env_file(workspace: Path, settings: OnboardSettings, environment: str) -> Path:
    path = workspace / ENV_FILE_NAME
    path.write_text(render_env_file(settings, environment), encoding="utf-8")
    return path
