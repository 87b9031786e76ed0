from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Any

import tomllib
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError
from flags.tags import TAG_VALUE_PATTERN, TagPolicy

CONFIG_PATH = "/etc/observability/observability.toml"

DEFAULT_SAMPLE_EXCLUDE = 'includes(["0", "1", "2", "3"], .PRIORITY)'


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PathsConfig(_StrictModel):
    """Host paths read or written by a generation run.

    All paths are absolute host paths; they are re-rooted under the CLI
    ``--root`` before use.
    """

    ec2_environment_file: str = Field(
        default="/etc/ec2-environment",
        description="Pre-existing EC2 identity environment file",
    )
    pipeline_file: str = Field(
        default="/etc/vector/observability.yaml",
        description="Generated Vector pipeline document",
    )
    environment_file: str = Field(
        default="/etc/vector/observability.env",
        description="Generated environment file with secrets and parameters",
    )
    manifest_file: str = Field(
        default="/etc/vector/observability-manifest.json",
        description="Generated manifest describing the last run",
    )
    vector_dropin_file: str = Field(
        default="/etc/systemd/system/vector.service.d/observability.conf",
        description="Generated systemd drop-in for vector.service",
    )
    node_exporter_unit_file: str = Field(
        default="/etc/systemd/system/node-exporter.service",
        description="Generated systemd unit for node-exporter",
    )
    vector_binary: str = Field(default="/usr/bin/vector")
    node_exporter_binary: str = Field(default="/usr/bin/node-exporter")

    @field_validator("*")
    @classmethod
    def require_absolute(cls, v: str) -> str:
        if not PurePosixPath(v).is_absolute():
            msg = f"path '{v}' must be absolute"
            raise ValueError(msg)
        return v


class SecretsConfig(_StrictModel):
    """Object store access for the secret fetcher."""

    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Connect and read timeout for each secret fetch",
    )
    endpoint_url: str | None = Field(
        default=None,
        description="Custom S3 endpoint (VPC endpoint or test double)",
    )


class TagsConfig(_StrictModel):
    """Handling of user-supplied tags."""

    policy: TagPolicy = Field(
        default="skip",
        description="'skip' logs and drops malformed tags, 'fail' aborts",
    )
    default_value: str = Field(
        default="false",
        description="Value used when a tag variable is unset at runtime",
    )

    @field_validator("default_value")
    @classmethod
    def validate_default_value(cls, v: str) -> str:
        if not TAG_VALUE_PATTERN.match(v):
            msg = f"default_value must match {TAG_VALUE_PATTERN.pattern}"
            raise ValueError(msg)
        return v


class PipelineSettings(_StrictModel):
    """Tunables of the generated pipeline that are not CLI flags."""

    tenant: str = Field(default="infrastructure")
    node_exporter_address: str = Field(default="127.0.0.1:9100")
    exporter_address: str = Field(
        default="0.0.0.0:9598",
        description="Listen address of the service-discovery exporter sink",
    )
    logs_sample_exclude: str = Field(
        default=DEFAULT_SAMPLE_EXCLUDE,
        description="VRL predicate; matching log events bypass sampling",
    )


class ObservabilitySettings(_StrictModel):
    """Settings file for the observability provisioner."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)
    tags: TagsConfig = Field(default_factory=TagsConfig)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    env_file_group: str | None = Field(
        default=None,
        description="Group given read access to the environment file",
    )


class ConfigError(ValidationError):
    """Raised when a settings file exists but cannot be parsed."""


def resolve_under_root(root: Path, host_path: str) -> Path:
    """Map an absolute host path into ``root``.

    Only the parent directory is resolved. The final component is kept as
    is, so a symlink there is replaced by a write instead of followed. The
    parent must stay within ``root``; paths escaping it through ``..``
    segments or symlinked directories are rejected.
    """
    relative = PurePosixPath(host_path)
    if not relative.is_absolute():
        msg = f"host path '{host_path}' must be absolute"
        raise ConfigError(msg)
    if relative.name in ("", ".", ".."):
        msg = f"host path '{host_path}' must name a file"
        raise ConfigError(msg)

    resolved_root = root.resolve()
    parent = (resolved_root / relative.parent.relative_to("/")).resolve()
    try:
        parent.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"host path '{host_path}' escapes the root {resolved_root}"
        raise ConfigError(msg) from exc
    return parent / relative.name


def load_settings(root: Path, config_path: Path | None = None) -> ObservabilitySettings:
    """Load settings from TOML.

    Without ``config_path`` the default location under ``root`` is used, and
    a missing file yields defaults. An explicitly given path must exist.
    """
    if config_path is None:
        path = resolve_under_root(root, CONFIG_PATH)
        if not path.is_file():
            return ObservabilitySettings()
    else:
        path = config_path
        if not path.is_file():
            msg = f"Settings file not found: {path}"
            raise ConfigError(msg)

    try:
        with path.open("rb") as f:
            data: dict[str, Any] = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e

    try:
        return ObservabilitySettings.model_validate(data)
    except PydanticValidationError as e:
        msg = f"Invalid settings in {path}: {e}"
        raise ConfigError(msg) from e


__all__ = [
    "CONFIG_PATH",
    "ConfigError",
    "ObservabilitySettings",
    "PathsConfig",
    "PipelineSettings",
    "SecretsConfig",
    "TagsConfig",
    "load_settings",
    "resolve_under_root",
]
