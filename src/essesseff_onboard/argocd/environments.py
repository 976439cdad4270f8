"""Argo CD environment setup.

For a comma-separated list of environments the orchestrator downloads the
app's notifications secret once, then walks each environment through the
provisioning state machine. A failure in one environment is recorded and the
next environment is attempted; only a failure to fetch the shared secret
aborts the whole operation.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from essesseff_onboard.api.client import EssesseffClient
from essesseff_onboard.argocd.state_machine import (
    ENVIRONMENTS,
    EnvironmentState,
    ProvisioningSnapshot,
    is_valid_environment,
    transition,
)
from essesseff_onboard.argocd.tools import ToolRunner
from essesseff_onboard.argocd.workspace import (
    ENTRYPOINT_NAME,
    SECRET_FILE_NAME,
    repository_url,
    workspace_name,
    write_env_file,
)
from essesseff_onboard.config import OnboardSettings
from essesseff_onboard.errors import EnvironmentSetupError

logger = logging.getLogger(__name__)

CLUSTER_CHECK_TIMEOUT_SECONDS = 30.0

_NEXT_STATE: dict[EnvironmentState, EnvironmentState] = {
    EnvironmentState.VALIDATE: EnvironmentState.CLONE_OR_REUSE,
    EnvironmentState.CLONE_OR_REUSE: EnvironmentState.CONFIGURE_WORKSPACE,
    EnvironmentState.CONFIGURE_WORKSPACE: EnvironmentState.PREFLIGHT,
    EnvironmentState.PREFLIGHT: EnvironmentState.EXECUTE,
    EnvironmentState.EXECUTE: EnvironmentState.DONE,
}


def parse_environment_list(value: str) -> list[str]:
    """Split a comma-separated list, trimming names. Order and duplicates are kept."""

    return [part.strip() for part in value.split(",")]


@dataclass(frozen=True, slots=True)
class EnvironmentOutcome:
    environment: str
    state: EnvironmentState
    message: str
    workspace: Path
    failed_at: EnvironmentState | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is EnvironmentState.DONE


@dataclass(slots=True)
class EnvironmentSetupReport:
    """Per-environment results of one run, in the order environments were listed."""

    outcomes: list[EnvironmentOutcome] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> list[EnvironmentOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> list[EnvironmentOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and not self.succeeded


class EnvironmentProvisioner:
    """Runs the provisioning state machine for one environment at a time."""

    def __init__(
        self,
        *,
        settings: OnboardSettings,
        tools: ToolRunner,
        workspace_root: Path,
        secret_file: Path,
    ) -> None:
        self._settings = settings
        self._tools = tools
        self._workspace_root = workspace_root
        self._secret_file = secret_file

    def workspace_for(self, environment: str) -> Path:
        return self._workspace_root / workspace_name(self._settings.app_name, environment)

    def provision(self, environment: str) -> EnvironmentOutcome:
        workspace = self.workspace_for(environment)
        steps: dict[EnvironmentState, Callable[[str, Path], None]] = {
            EnvironmentState.VALIDATE: self._validate,
            EnvironmentState.CLONE_OR_REUSE: self._clone_or_reuse,
            EnvironmentState.CONFIGURE_WORKSPACE: self._configure_workspace,
            EnvironmentState.PREFLIGHT: self._preflight,
            EnvironmentState.EXECUTE: self._execute,
        }

        snapshot = ProvisioningSnapshot(environment=environment, state=EnvironmentState.VALIDATE)
        while not snapshot.state.is_terminal:
            step = steps[snapshot.state]
            try:
                step(environment, workspace)
            except EnvironmentSetupError as e:
                snapshot = transition(current=snapshot, to=EnvironmentState.FAILED)
                return EnvironmentOutcome(
                    environment=environment,
                    state=snapshot.state,
                    message=str(e),
                    workspace=workspace,
                    failed_at=snapshot.failed_at,
                )
            snapshot = transition(current=snapshot, to=_NEXT_STATE[snapshot.state])

        logger.info("Argo CD setup completed", extra={"environment": environment})
        return EnvironmentOutcome(
            environment=environment,
            state=snapshot.state,
            message=f"Argo CD setup completed for environment: {environment}",
            workspace=workspace,
        )

    def _fail(
        self, environment: str, state: EnvironmentState, message: str, help_text: str | None = None
    ) -> EnvironmentSetupError:
        return EnvironmentSetupError(
            message, environment=environment, state=state.value, help_text=help_text
        )

    def _validate(self, environment: str, _workspace: Path) -> None:
        if not is_valid_environment(environment):
            raise self._fail(
                environment,
                EnvironmentState.VALIDATE,
                f"Invalid environment name: {environment!r} "
                f"(must be one of: {', '.join(ENVIRONMENTS)})",
            )

    def _clone_or_reuse(self, environment: str, workspace: Path) -> None:
        if workspace.is_dir():
            logger.info("Repository already exists locally", extra={"workspace": str(workspace)})
            return
        if workspace.exists():
            raise self._fail(
                environment,
                EnvironmentState.CLONE_OR_REUSE,
                f"Workspace path exists but is not a directory: {workspace}",
            )

        url = repository_url(self._settings.github_org, workspace.name)
        logger.info("Cloning repository", extra={"url": url, "workspace": str(workspace)})
        result = self._tools.run(["git", "clone", url, str(workspace)], capture=True)
        if not result.ok:
            logger.debug("git clone output", extra={"stderr": result.stderr})
            raise self._fail(
                environment,
                EnvironmentState.CLONE_OR_REUSE,
                f"Failed to clone repository: {workspace.name}",
                help_text="Please ensure the repository exists and you have access to it",
            )

    def _configure_workspace(self, environment: str, workspace: Path) -> None:
        try:
            env_file = write_env_file(workspace, self._settings, environment)
            logger.info("Created .env file", extra={"path": str(env_file)})
            shutil.copyfile(self._secret_file, workspace / SECRET_FILE_NAME)
            logger.info("Copied notifications secret", extra={"workspace": str(workspace)})
        except OSError as e:
            raise self._fail(
                environment,
                EnvironmentState.CONFIGURE_WORKSPACE,
                f"Failed to configure workspace {workspace}: {e}",
            ) from e

    def _preflight(self, environment: str, workspace: Path) -> None:
        entrypoint = workspace / ENTRYPOINT_NAME
        if not entrypoint.is_file():
            raise self._fail(
                environment,
                EnvironmentState.PREFLIGHT,
                f"{ENTRYPOINT_NAME} not found in repository: {workspace.name}",
            )
        try:
            entrypoint.chmod(entrypoint.stat().st_mode | 0o111)
        except OSError as e:
            raise self._fail(
                environment,
                EnvironmentState.PREFLIGHT,
                f"Cannot make {ENTRYPOINT_NAME} executable in {workspace.name}: {e}",
            ) from e

        if self._tools.which("kubectl") is None:
            raise self._fail(
                environment,
                EnvironmentState.PREFLIGHT,
                "kubectl is not installed or not in PATH",
                help_text=(
                    "kubectl must be installed and configured before running the "
                    "onboarding utility"
                ),
            )

        result = self._tools.run(
            ["kubectl", "cluster-info"], capture=True, timeout=CLUSTER_CHECK_TIMEOUT_SECONDS
        )
        if not result.ok:
            raise self._fail(
                environment,
                EnvironmentState.PREFLIGHT,
                "kubectl is not properly configured or cannot connect to cluster",
                help_text=(
                    f"Please configure kubectl for environment '{environment}' before "
                    "running the onboarding utility"
                ),
            )

    def _execute(self, environment: str, workspace: Path) -> None:
        logger.info(
            "Executing setup script",
            extra={"environment": environment, "script": ENTRYPOINT_NAME},
        )
        env = {**os.environ, "ENVIRONMENT": environment}
        result = self._tools.run([f"./{ENTRYPOINT_NAME}"], cwd=workspace, env=env, capture=False)
        if not result.ok:
            raise self._fail(
                environment,
                EnvironmentState.EXECUTE,
                f"{ENTRYPOINT_NAME} failed for environment: {environment} "
                f"(exit code {result.returncode})"
                + (f": {result.stderr}" if result.stderr else ""),
            )


class EnvironmentSetupOrchestrator:
    """Drives Argo CD setup across the environments of one app."""

    def __init__(
        self,
        *,
        client: EssesseffClient,
        settings: OnboardSettings,
        tools: ToolRunner,
        workspace_root: Path,
    ) -> None:
        self._client = client
        self._settings = settings
        self._tools = tools
        self._workspace_root = workspace_root

    @property
    def secret_path(self) -> str:
        s = self._settings
        return (
            f"/accounts/{s.account_slug}/organizations/{s.github_org}"
            f"/apps/{s.app_name}/notifications-secret"
        )

    def setup_environments(self, environments: str) -> EnvironmentSetupReport:
        """Set up every listed environment.

        Raises:
            ApiError: If the notifications secret cannot be downloaded. No
                environment is attempted in that case.
        """

        names = parse_environment_list(environments)
        logger.info("Setting up Argo CD", extra={"environments": names})

        logger.info("Downloading notifications-secret.yaml...")
        secret = self._client.download(self.secret_path)

        report = EnvironmentSetupReport()
        self._workspace_root.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix="essesseff-onboard-") as temp_dir:
            secret_file = Path(temp_dir) / SECRET_FILE_NAME
            secret_file.write_bytes(secret)
            logger.debug("Notifications secret stored", extra={"path": str(secret_file)})

            provisioner = EnvironmentProvisioner(
                settings=self._settings,
                tools=self._tools,
                workspace_root=self._workspace_root,
                secret_file=secret_file,
            )
            for name in names:
                outcome = provisioner.provision(name)
                if outcome.failed_at is EnvironmentState.VALIDATE:
                    logger.warning(outcome.message, extra={"environment": name})
                    report.skipped.append(name)
                    continue
                if not outcome.succeeded:
                    logger.error(
                        outcome.message,
                        extra={"environment": name, "failed_at": outcome.failed_at},
                    )
                report.outcomes.append(outcome)

        logger.info(
            "Argo CD setup finished",
            extra={
                "succeeded": [o.environment for o in report.succeeded],
                "failed": [o.environment for o in report.failed],
                "skipped": report.skipped,
            },
        )
        return report
