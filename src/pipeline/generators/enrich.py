"""Enrichment, allow-list filtering and log sampling."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from host.environment import IDENTITY_FIELDS
from pipeline.catalogue import GLOBAL_RULES, scopes_for
from pipeline.environment import SAMPLE_RATE_VAR, tag_variable
from pipeline.models.blocks import Block, EnvVar, Transform
from pipeline.vrl import allow_condition, string_literal

if TYPE_CHECKING:
    from flags.config import GeneratorConfig
    from pipeline.generators.sources import AssembledStreams
    from settings.config import PipelineSettings

METRICS_ENRICH = "metrics_enrich"
METRICS_FILTER = "metrics_filter"
LOGS_ENRICH = "journald_enrich"
LOGS_SAMPLE = "journald_sample"


@dataclass
class EnrichedStreams:
    blocks: list[Block] = field(default_factory=list)
    metrics_output: str = METRICS_FILTER
    logs_output: str = LOGS_SAMPLE


def identity_program(
    config: GeneratorConfig, *, prefix: str, tag_default: str
) -> str:
    """VRL attaching instance identity and user tags under ``prefix``.

    Identity values come from the EC2 environment file loaded by the unit;
    ``host`` is deleted and rewritten so upstream values never survive.
    Tag values are read at runtime and fall back to ``tag_default``.
    """
    lines = [
        f'{prefix}{field_name} = get_env_var!("{variable}")'
        for field_name, variable in IDENTITY_FIELDS.items()
    ]
    lines.append(f"del({prefix}host)")
    lines.append(f"{prefix}host = get_hostname!()")
    lines.append(f"{prefix}role = {string_literal(config.role.value)}")
    for name in config.tags.names():
        lines.append(
            f"{prefix}{name} = get_env_var({string_literal(tag_variable(name))})"
            f" ?? {string_literal(tag_default)}"
        )
    return "\n".join(lines) + "\n"


class EnrichmentGenerator:
    """Generator for the merge, enrichment, filter and sampling stages."""

    @property
    def name(self) -> str:
        """Generator name for logging and identification."""
        return "enrichment"

    def generate(
        self,
        config: GeneratorConfig,
        streams: AssembledStreams,
        *,
        settings: PipelineSettings,
        tag_default: str,
    ) -> EnrichedStreams:
        enriched = EnrichedStreams()

        enriched.blocks.append(
            Transform(
                name=METRICS_ENRICH,
                type="remap",
                input_names=tuple(streams.metric_outputs),
                options={
                    "source": identity_program(
                        config, prefix=".tags.", tag_default=tag_default
                    )
                },
            )
        )
        enriched.blocks.append(
            Transform(
                name=METRICS_FILTER,
                type="filter",
                input_names=(METRICS_ENRICH,),
                options={
                    "condition": {
                        "type": "vrl",
                        "source": allow_condition(
                            GLOBAL_RULES, scopes_for(streams.services)
                        ),
                    }
                },
            )
        )

        enriched.blocks.append(
            Transform(
                name=LOGS_ENRICH,
                type="remap",
                input_names=tuple(streams.log_outputs),
                options={
                    "source": identity_program(
                        config, prefix=".", tag_default=tag_default
                    )
                },
            )
        )
        enriched.blocks.append(
            Transform(
                name=LOGS_SAMPLE,
                type="sample",
                input_names=(LOGS_ENRICH,),
                options={
                    "rate": EnvVar(SAMPLE_RATE_VAR),
                    "exclude": {
                        "type": "vrl",
                        "source": settings.logs_sample_exclude,
                    },
                },
            )
        )
        return enriched


__all__ = [
    "LOGS_ENRICH",
    "LOGS_SAMPLE",
    "METRICS_ENRICH",
    "METRICS_FILTER",
    "EnrichedStreams",
    "EnrichmentGenerator",
    "identity_program",
]
