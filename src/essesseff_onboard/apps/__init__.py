"""essesseff app creation."""

from essesseff_onboard.apps.provisioner import (
    AppCreationRequest,
    AppProvisioner,
    CreatedApp,
    build_creation_request,
    validate_app_name,
)

__all__ = [
    "AppCreationRequest",
    "AppProvisioner",
    "CreatedApp",
    "build_creation_request",
    "validate_app_name",
]
