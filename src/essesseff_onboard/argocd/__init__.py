"""Per-environment Argo CD (GitOps repository) setup."""

from essesseff_onboard.argocd.environments import (
    EnvironmentOutcome,
    EnvironmentProvisioner,
    EnvironmentSetupOrchestrator,
    EnvironmentSetupReport,
    parse_environment_list,
)
from essesseff_onboard.argocd.state_machine import ENVIRONMENTS, EnvironmentState
from essesseff_onboard.argocd.tools import CommandResult, SubprocessToolRunner, ToolRunner

__all__ = [
    "ENVIRONMENTS",
    "CommandResult",
    "EnvironmentOutcome",
    "EnvironmentProvisioner",
    "EnvironmentSetupOrchestrator",
    "EnvironmentSetupReport",
    "EnvironmentState",
    "SubprocessToolRunner",
    "ToolRunner",
    "parse_environment_list",
]
