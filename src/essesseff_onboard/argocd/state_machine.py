"""Provisioning states for one environment and the transitions allowed between them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

ENVIRONMENTS: tuple[str, ...] = ("dev", "qa", "staging", "prod")


class EnvironmentState(str, Enum):
    VALIDATE = "validate"
    CLONE_OR_REUSE = "clone_or_reuse"
    CONFIGURE_WORKSPACE = "configure_workspace"
    PREFLIGHT = "preflight"
    EXECUTE = "execute"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {EnvironmentState.DONE, EnvironmentState.FAILED}


ALLOWED_TRANSITIONS: dict[EnvironmentState, set[EnvironmentState]] = {
    EnvironmentState.VALIDATE: {EnvironmentState.CLONE_OR_REUSE, EnvironmentState.FAILED},
    EnvironmentState.CLONE_OR_REUSE: {
        EnvironmentState.CONFIGURE_WORKSPACE,
        EnvironmentState.FAILED,
    },
    EnvironmentState.CONFIGURE_WORKSPACE: {EnvironmentState.PREFLIGHT, EnvironmentState.FAILED},
    EnvironmentState.PREFLIGHT: {EnvironmentState.EXECUTE, EnvironmentState.FAILED},
    EnvironmentState.EXECUTE: {EnvironmentState.DONE, EnvironmentState.FAILED},
    EnvironmentState.DONE: set(),
    EnvironmentState.FAILED: set(),
}


class IllegalTransitionError(ValueError):
    pass


def is_valid_environment(name: str) -> bool:
    return name in ENVIRONMENTS


@dataclass(frozen=True, slots=True)
class ProvisioningSnapshot:
    """Where a single environment's setup currently stands.

    ``failed_at`` records the state that was active when setup failed.
    """

    environment: str
    state: EnvironmentState
    failed_at: EnvironmentState | None = None


def transition(*, current: ProvisioningSnapshot, to: EnvironmentState) -> ProvisioningSnapshot:
    allowed = ALLOWED_TRANSITIONS.get(current.state, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.state.value} -> {to.value}")
    failed_at = current.state if to is EnvironmentState.FAILED else None
    return ProvisioningSnapshot(environment=current.environment, state=to, failed_at=failed_at)
