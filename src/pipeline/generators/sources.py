"""Source and tagging-transform assembly."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pipeline.catalogue import INTEGRATIONS, NODE_EXPORTER_SERVICE, VECTOR_SERVICE
from pipeline.models.blocks import Block, EnvVar, Source, Transform
from pipeline.models.targets import ScrapeTarget
from pipeline.vrl import string_literal

if TYPE_CHECKING:
    from flags.config import GeneratorConfig
    from settings.config import PipelineSettings

NODE_EXPORTER_SOURCE = "node_exporter"
VECTOR_METRICS_SOURCE = "vector_metrics"
JOURNALD_SOURCE = "journald"

TAG_TRANSFORM_PREFIX = "tag_"


@dataclass
class AssembledStreams:
    """Blocks emitted by the assembler and the streams they leave open."""

    blocks: list[Block] = field(default_factory=list)
    metric_outputs: list[str] = field(default_factory=list)
    log_outputs: list[str] = field(default_factory=list)
    services: list[str] = field(default_factory=list)


def scrape_targets(
    config: GeneratorConfig, settings: PipelineSettings
) -> list[tuple[ScrapeTarget, str]]:
    """Scrape targets with their service names, node-exporter first."""
    targets = [
        (
            ScrapeTarget(
                source_name=NODE_EXPORTER_SOURCE,
                endpoint=f"http://{settings.node_exporter_address}/metrics",
                scrape_interval_seconds=config.metrics_scrape_interval,
            ),
            NODE_EXPORTER_SERVICE,
        )
    ]
    for name in config.enabled_integrations:
        spec = INTEGRATIONS[name]
        target = ScrapeTarget(
            source_name=name,
            endpoint=spec.endpoint,
            scrape_interval_seconds=config.metrics_scrape_interval,
            token_env=spec.token_env,
        )
        targets.append((target, spec.service))
    return targets


def scrape_source(target: ScrapeTarget) -> Source:
    options: dict[str, object] = {
        "endpoints": [target.endpoint],
        "scrape_interval_secs": target.scrape_interval_seconds,
    }
    if target.token_env:
        options["auth"] = {
            "strategy": "bearer",
            "token": EnvVar(target.token_env, quoted=True),
        }
    return Source(name=target.source_name, type="prometheus_scrape", options=options)


def tag_transform(source_name: str, service: str, tenant: str) -> Transform:
    """Stamp the originating service and tenant onto every metric."""
    program = (
        f".tags.service = {string_literal(service)}\n"
        f".tags.tenant = {string_literal(tenant)}\n"
    )
    return Transform(
        name=f"{TAG_TRANSFORM_PREFIX}{source_name}",
        type="remap",
        input_names=(source_name,),
        options={"source": program},
    )


class SourcesGenerator:
    """Generator for sources and their tagging transforms."""

    @property
    def name(self) -> str:
        """Generator name for logging and identification."""
        return "sources"

    def generate(
        self, config: GeneratorConfig, *, settings: PipelineSettings
    ) -> AssembledStreams:
        """Emit baseline sources, then one pair per enabled integration.

        Order: node-exporter, Vector's own metrics, journald, then the
        integrations in declaration order. Disabled integrations emit nothing.
        """
        streams = AssembledStreams()
        targets = scrape_targets(config, settings)

        node_target, node_service = targets[0]
        streams.blocks.append(scrape_source(node_target))
        streams.blocks.append(
            Source(
                name=VECTOR_METRICS_SOURCE,
                type="internal_metrics",
                options={"scrape_interval_secs": config.metrics_scrape_interval},
            )
        )
        streams.blocks.append(Source(name=JOURNALD_SOURCE, type="journald"))
        streams.log_outputs.append(JOURNALD_SOURCE)

        tagged = [
            (node_target.source_name, node_service),
            (VECTOR_METRICS_SOURCE, VECTOR_SERVICE),
        ]
        for target, service in targets[1:]:
            streams.blocks.append(scrape_source(target))
            tagged.append((target.source_name, service))

        for source_name, service in tagged:
            transform = tag_transform(source_name, service, settings.tenant)
            streams.blocks.append(transform)
            streams.metric_outputs.append(transform.name)
            streams.services.append(service)

        return streams


__all__ = [
    "JOURNALD_SOURCE",
    "NODE_EXPORTER_SOURCE",
    "TAG_TRANSFORM_PREFIX",
    "VECTOR_METRICS_SOURCE",
    "AssembledStreams",
    "SourcesGenerator",
    "scrape_source",
    "scrape_targets",
    "tag_transform",
]
