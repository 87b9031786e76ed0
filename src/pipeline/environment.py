"""Environment file consumed by vector.service at start.

The pipeline document only references these variables; their values
(runtime parameters, tag values and fetched secrets) live here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from flags.config import GeneratorConfig

AMP_WORKSPACE_VAR = "AMP_WORKSPACE_ID"
LOG_GROUP_VAR = "CLOUDWATCH_GROUP_NAME"
SAMPLE_RATE_VAR = "LOGS_SAMPLE_RATE"
SCRAPE_INTERVAL_VAR = "METRICS_SCRAPE_INTERVAL"
ROLE_VAR = "OBSERVABILITY_ROLE"
TAG_VAR_PREFIX = "OBSERVABILITY_TAG_"


def tag_variable(tag_name: str) -> str:
    return f"{TAG_VAR_PREFIX}{tag_name}"


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def environment_values(
    config: GeneratorConfig, secrets: Mapping[str, str]
) -> dict[str, str]:
    """Variables in file order: parameters, tags, then secrets."""
    values = {
        AMP_WORKSPACE_VAR: config.amp_workspace_id,
        LOG_GROUP_VAR: config.cloudwatch_group_name,
        SAMPLE_RATE_VAR: str(config.logs_sample_rate),
        SCRAPE_INTERVAL_VAR: str(config.metrics_scrape_interval),
        ROLE_VAR: config.role.value,
    }
    for name, value in config.tags.entries:
        values[tag_variable(name)] = value
    values.update(secrets)
    return values


def render_environment_file(
    config: GeneratorConfig, secrets: Mapping[str, str]
) -> str:
    lines = ["# Generated by run-observability. Contains secrets."]
    lines.extend(
        f"{key}={_quote(value)}"
        for key, value in environment_values(config, secrets).items()
    )
    return "\n".join(lines) + "\n"


__all__ = [
    "AMP_WORKSPACE_VAR",
    "LOG_GROUP_VAR",
    "ROLE_VAR",
    "SAMPLE_RATE_VAR",
    "SCRAPE_INTERVAL_VAR",
    "TAG_VAR_PREFIX",
    "environment_values",
    "render_environment_file",
    "tag_variable",
]
