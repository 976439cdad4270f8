"""essesseff platform API access: the rate-limited client and the template catalog."""

from essesseff_onboard.api.client import EssesseffClient
from essesseff_onboard.api.templates import (
    TemplateCatalog,
    TemplateDescriptor,
    TemplateListing,
    TemplateSummary,
)

__all__ = [
    "EssesseffClient",
    "TemplateCatalog",
    "TemplateDescriptor",
    "TemplateListing",
    "TemplateSummary",
]
