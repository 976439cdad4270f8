"""essesseff onboarding utility.

Provides a CLI with:
- template listing (global and account-specific)
- essesseff app creation from a template
- per-environment Argo CD setup for the created app
"""

__version__ = "0.1.0"

from essesseff_onboard.config import OnboardSettings

__all__ = ["__version__", "OnboardSettings"]
