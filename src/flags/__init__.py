"""Flag resolution for the pipeline generator."""

from flags.config import (
    INTEGRATION_NAMES,
    GeneratorConfig,
    IntegrationToggle,
    Role,
    resolve_flags,
)
from flags.tags import TagSet, parse_tag, parse_tags

__all__ = [
    "INTEGRATION_NAMES",
    "GeneratorConfig",
    "IntegrationToggle",
    "Role",
    "TagSet",
    "parse_tag",
    "parse_tags",
    "resolve_flags",
]
