"""Egress sinks: remote write, log group and optional local exporter."""

from __future__ import annotations

from typing import TYPE_CHECKING

from host.environment import REGION_VAR
from pipeline.models.blocks import EnvVar, Sink

if TYPE_CHECKING:
    from flags.config import GeneratorConfig
    from pipeline.generators.enrich import EnrichedStreams
    from settings.config import PipelineSettings

AMP_SINK = "amp_remote_write"
CLOUDWATCH_SINK = "cloudwatch_logs"
EXPORTER_SINK = "metrics_exporter"

_DELIVERY_OPTIONS = {
    "healthcheck": {"enabled": False},
    "request": {"concurrency": "adaptive"},
}


def remote_write_endpoint(workspace_id: str) -> str:
    return (
        f"https://aps-workspaces.{EnvVar(REGION_VAR)}.amazonaws.com"
        f"/workspaces/{workspace_id}/api/v1/remote_write"
    )


class SinksGenerator:
    """Generator for the sink blocks."""

    @property
    def name(self) -> str:
        """Generator name for logging and identification."""
        return "sinks"

    def generate(
        self,
        config: GeneratorConfig,
        enriched: EnrichedStreams,
        *,
        settings: PipelineSettings,
    ) -> list[Sink]:
        """Emit the two mandatory sinks, plus the exporter for discovery.

        Healthchecks are disabled and request concurrency is adaptive.
        """
        sinks = [
            Sink(
                name=AMP_SINK,
                type="prometheus_remote_write",
                input_names=(enriched.metrics_output,),
                options={
                    "endpoint": remote_write_endpoint(config.amp_workspace_id),
                    "auth": {"strategy": "aws"},
                    "aws": {"region": EnvVar(REGION_VAR, quoted=True)},
                    **_delivery_options(),
                },
            ),
            Sink(
                name=CLOUDWATCH_SINK,
                type="aws_cloudwatch_logs",
                input_names=(enriched.logs_output,),
                options={
                    "region": EnvVar(REGION_VAR, quoted=True),
                    "group_name": config.cloudwatch_group_name,
                    "stream_name": "{{ host }}",
                    "create_missing_group": False,
                    "encoding": {"codec": "json"},
                    **_delivery_options(),
                },
            ),
        ]
        if config.service_discovery:
            sinks.append(
                Sink(
                    name=EXPORTER_SINK,
                    type="prometheus_exporter",
                    input_names=(enriched.metrics_output,),
                    options={"address": settings.exporter_address},
                )
            )
        return sinks


def _delivery_options() -> dict[str, dict[str, object]]:
    return {key: dict(value) for key, value in _DELIVERY_OPTIONS.items()}


__all__ = [
    "AMP_SINK",
    "CLOUDWATCH_SINK",
    "EXPORTER_SINK",
    "SinksGenerator",
    "remote_write_endpoint",
]
