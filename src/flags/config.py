"""Validated generator configuration built from CLI flags."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError
from flags.tags import TagPolicy, TagSet, parse_tags

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

DEFAULT_SCRAPE_INTERVAL = 120
DEFAULT_SAMPLE_RATE = 10

IntegrationName = Literal["kresd", "consul", "nomad", "cloudflared", "esm", "vault"]

# Declaration order of optional integrations in the generated document.
INTEGRATION_NAMES: tuple[IntegrationName, ...] = get_args(IntegrationName)


class Role(str, Enum):
    """Instance role; selects the secret namespace in the object store."""

    SERVER = "server"
    CLIENT = "client"
    BASTION = "bastion"


class IntegrationToggle(BaseModel):
    """Whether an optional integration is scraped on this host."""

    model_config = ConfigDict(frozen=True)

    name: IntegrationName
    enabled: bool = False


class GeneratorConfig(BaseModel):
    """Fully validated input of a generation run."""

    model_config = ConfigDict(frozen=True)

    role: Role
    secrets_bucket_name: str = Field(min_length=1)
    cloudwatch_group_name: str = Field(min_length=1)
    amp_workspace_id: str = Field(min_length=1)
    metrics_scrape_interval: int = Field(default=DEFAULT_SCRAPE_INTERVAL, gt=0)
    logs_sample_rate: int = Field(default=DEFAULT_SAMPLE_RATE, gt=0)
    tags: TagSet = Field(default_factory=TagSet)
    integrations: tuple[IntegrationToggle, ...] = ()
    service_discovery: bool = False

    @field_validator(
        "secrets_bucket_name",
        "cloudwatch_group_name",
        "amp_workspace_id",
        mode="before",
    )
    @classmethod
    def strip_required_strings(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("integrations")
    @classmethod
    def unique_integrations(
        cls, v: tuple[IntegrationToggle, ...]
    ) -> tuple[IntegrationToggle, ...]:
        names = [toggle.name for toggle in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            msg = f"integration toggled more than once: {', '.join(duplicates)}"
            raise ValueError(msg)
        return v

    def is_enabled(self, name: str) -> bool:
        return any(t.name == name and t.enabled for t in self.integrations)

    @property
    def enabled_integrations(self) -> list[IntegrationName]:
        """Enabled integration names in declaration order."""
        return [name for name in INTEGRATION_NAMES if self.is_enabled(name)]


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "flags"
        parts.append(f"{location.replace('_', '-')}: {error['msg']}")
    return "; ".join(parts)


def resolve_flags(
    *,
    role: str,
    secrets_bucket_name: str,
    cloudwatch_group_name: str,
    amp_workspace_id: str,
    metrics_scrape_interval: str | int = DEFAULT_SCRAPE_INTERVAL,
    logs_sample_rate: str | int = DEFAULT_SAMPLE_RATE,
    tags: Iterable[str] = (),
    enable: Mapping[str, bool] | None = None,
    service_discovery: bool = False,
    tag_policy: TagPolicy = "skip",
) -> GeneratorConfig:
    """Validate and normalize raw CLI flags.

    Raises:
        ValidationError: If the role is unknown, a required string is empty,
            a numeric flag is not a positive integer, an unknown integration
            is named, or (with ``tag_policy="fail"``) a tag is malformed.
    """
    enable = dict(enable or {})
    unknown = sorted(set(enable) - set(INTEGRATION_NAMES))
    if unknown:
        msg = f"unknown integration(s): {', '.join(unknown)}"
        raise ValidationError(msg)

    tag_set = parse_tags(tags, policy=tag_policy)

    try:
        return GeneratorConfig(
            role=role,
            secrets_bucket_name=secrets_bucket_name,
            cloudwatch_group_name=cloudwatch_group_name,
            amp_workspace_id=amp_workspace_id,
            metrics_scrape_interval=metrics_scrape_interval,
            logs_sample_rate=logs_sample_rate,
            tags=tag_set,
            integrations=tuple(
                IntegrationToggle(name=name, enabled=bool(enable.get(name, False)))
                for name in INTEGRATION_NAMES
            ),
            service_discovery=service_discovery,
        )
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc)) from exc


__all__ = [
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_SCRAPE_INTERVAL",
    "INTEGRATION_NAMES",
    "GeneratorConfig",
    "IntegrationName",
    "IntegrationToggle",
    "Role",
    "resolve_flags",
]
