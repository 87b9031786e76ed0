"""systemd unit files and drop-ins for the observability agents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pipeline.catalogue import INTEGRATIONS

if TYPE_CHECKING:
    from flags.config import GeneratorConfig
    from settings.config import ObservabilitySettings

NETWORK_ONLINE_TARGET = "network-online.target"
NODE_EXPORTER_UNIT = "node-exporter.service"
VECTOR_UNIT = "vector.service"

RESTART_DELAY = "5s"

HEADER = "# Generated by run-observability. Local changes are overwritten.\n"


@dataclass(frozen=True)
class UnitSection:
    name: str
    directives: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class UnitFile:
    """Sections of directives; a key may repeat, as systemd allows."""

    sections: tuple[UnitSection, ...]

    def render(self) -> str:
        blocks = []
        for section in self.sections:
            lines = [f"[{section.name}]"]
            lines.extend(f"{key}={value}" for key, value in section.directives)
            blocks.append("\n".join(lines))
        return HEADER + "\n\n".join(blocks) + "\n"

    def values(self, section: str, key: str) -> list[str]:
        return [
            value
            for s in self.sections
            if s.name == section
            for k, value in s.directives
            if k == key
        ]


def vector_dropin(
    config: GeneratorConfig, settings: ObservabilitySettings
) -> UnitFile:
    """Drop-in that orders, configures and supervises vector.service."""
    paths = settings.paths
    prerequisites = [NETWORK_ONLINE_TARGET, NODE_EXPORTER_UNIT]
    integration_units = [
        INTEGRATIONS[name].systemd_unit for name in config.enabled_integrations
    ]

    unit = (
        ("Wants", " ".join(prerequisites)),
        ("After", " ".join(prerequisites)),
    )
    if integration_units:
        unit += (("After", " ".join(integration_units)),)

    service = (
        ("EnvironmentFile", paths.ec2_environment_file),
        ("EnvironmentFile", paths.environment_file),
        ("ExecStartPre", ""),
        (
            "ExecStartPre",
            f"{paths.vector_binary} validate --no-environment "
            f"--config-yaml {paths.pipeline_file}",
        ),
        ("ExecStart", ""),
        (
            "ExecStart",
            f"{paths.vector_binary} -qq --watch-config "
            f"--config-yaml {paths.pipeline_file}",
        ),
        ("Restart", "always"),
        ("RestartSec", RESTART_DELAY),
    )
    return UnitFile(
        sections=(
            UnitSection(name="Unit", directives=unit),
            UnitSection(name="Service", directives=service),
        )
    )


def node_exporter_unit(settings: ObservabilitySettings) -> UnitFile:
    """Standalone unit for the local Prometheus node exporter."""
    paths = settings.paths
    exec_start = (
        f"{paths.node_exporter_binary} "
        f"--web.listen-address={settings.pipeline.node_exporter_address} "
        "--collector.systemd"
    )
    return UnitFile(
        sections=(
            UnitSection(
                name="Unit",
                directives=(
                    ("Description", "Prometheus node exporter"),
                    ("Wants", NETWORK_ONLINE_TARGET),
                    ("After", NETWORK_ONLINE_TARGET),
                ),
            ),
            UnitSection(
                name="Service",
                directives=(
                    ("User", "node-exporter"),
                    ("Group", "node-exporter"),
                    ("ExecStart", exec_start),
                    ("Restart", "always"),
                    ("RestartSec", RESTART_DELAY),
                    ("NoNewPrivileges", "true"),
                    ("ProtectSystem", "strict"),
                    ("ProtectHome", "true"),
                ),
            ),
            UnitSection(
                name="Install",
                directives=(("WantedBy", "multi-user.target"),),
            ),
        )
    )


__all__ = [
    "NODE_EXPORTER_UNIT",
    "VECTOR_UNIT",
    "UnitFile",
    "UnitSection",
    "node_exporter_unit",
    "vector_dropin",
]
