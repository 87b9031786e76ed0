"""Compiled-in tables: scrape endpoints, secrets and metric allow rules.

Adding an integration or admitting another metric family is a change to
these tables only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from flags.config import IntegrationName

MatchKind = Literal["prefix", "exact", "regex"]

GLOBAL_SCOPE = "global"


@dataclass(frozen=True)
class MetricAllowRule:
    matcher: str
    kind: MatchKind = "prefix"
    scope: str = GLOBAL_SCOPE


@dataclass(frozen=True)
class ScopeCatalogue:
    """Allow rules of one scope.

    An exclusive scope admits only metrics matching one of its rules; a
    permissive one admits everything its service emits.
    """

    scope: str
    exclusive: bool
    rules: tuple[MetricAllowRule, ...] = ()


@dataclass(frozen=True)
class IntegrationSpec:
    """How an optional integration is scraped and what it needs."""

    name: IntegrationName
    service: str
    endpoint: str
    systemd_unit: str
    token_secret: str | None = None
    token_env: str | None = None


NODE_EXPORTER_SERVICE = "node-exporter"
VECTOR_SERVICE = "vector"

INTEGRATIONS: dict[IntegrationName, IntegrationSpec] = {
    "kresd": IntegrationSpec(
        name="kresd",
        service="kresd",
        endpoint="http://127.0.0.1:8453/metrics",
        systemd_unit="kresd@1.service",
    ),
    "consul": IntegrationSpec(
        name="consul",
        service="consul",
        endpoint="http://127.0.0.1:8500/v1/agent/metrics?format=prometheus",
        systemd_unit="consul.service",
        token_secret="consul-token",
        token_env="CONSUL_HTTP_TOKEN",
    ),
    "nomad": IntegrationSpec(
        name="nomad",
        service="nomad",
        endpoint="http://127.0.0.1:4646/v1/metrics?format=prometheus",
        systemd_unit="nomad.service",
        token_secret="nomad-token",
        token_env="NOMAD_TOKEN",
    ),
    "cloudflared": IntegrationSpec(
        name="cloudflared",
        service="cloudflared",
        endpoint="http://127.0.0.1:2000/metrics",
        systemd_unit="cloudflared.service",
    ),
    "esm": IntegrationSpec(
        name="esm",
        service="consul-esm",
        endpoint="http://127.0.0.1:8080/metrics",
        systemd_unit="consul-esm.service",
    ),
    "vault": IntegrationSpec(
        name="vault",
        service="vault",
        endpoint="http://127.0.0.1:8200/v1/sys/metrics?format=prometheus",
        systemd_unit="vault.service",
        token_secret="vault-token",
        token_env="VAULT_TOKEN",
    ),
}


def _rules(
    scope: str, *prefixes: str, exact: tuple[str, ...] = ()
) -> tuple[MetricAllowRule, ...]:
    return tuple(MetricAllowRule(matcher=p, scope=scope) for p in prefixes) + tuple(
        MetricAllowRule(matcher=e, kind="exact", scope=scope) for e in exact
    )


GLOBAL_RULES: tuple[MetricAllowRule, ...] = (
    MetricAllowRule(matcher="up", kind="exact"),
    MetricAllowRule(matcher="scrape_"),
)

ALLOW_RULES: dict[str, ScopeCatalogue] = {
    NODE_EXPORTER_SERVICE: ScopeCatalogue(
        scope=NODE_EXPORTER_SERVICE,
        exclusive=True,
        rules=_rules(
            NODE_EXPORTER_SERVICE,
            "node_cpu_seconds_total",
            "node_memory_",
            "node_filesystem_",
            "node_disk_",
            "node_network_receive_",
            "node_network_transmit_",
            "node_load",
            "node_pressure_",
            "node_systemd_unit_state",
            "node_textfile_",
            exact=("node_boot_time_seconds", "node_time_seconds", "node_uname_info"),
        ),
    ),
    VECTOR_SERVICE: ScopeCatalogue(
        scope=VECTOR_SERVICE,
        exclusive=True,
        rules=(
            *_rules(
                VECTOR_SERVICE,
                "vector_buffer_",
                exact=(
                    "vector_build_info",
                    "vector_uptime_seconds",
                    "vector_component_errors_total",
                    "vector_component_received_events_total",
                    "vector_component_sent_events_total",
                ),
            ),
            MetricAllowRule(
                matcher="^vector_component_discarded_events_total$",
                kind="regex",
                scope=VECTOR_SERVICE,
            ),
        ),
    ),
    "consul": ScopeCatalogue(
        scope="consul",
        exclusive=True,
        rules=_rules(
            "consul",
            "consul_autopilot_",
            "consul_catalog_",
            "consul_health_",
            "consul_raft_",
            "consul_rpc_",
            "consul_runtime_",
            "consul_serf_",
        ),
    ),
    "nomad": ScopeCatalogue(
        scope="nomad",
        exclusive=True,
        rules=_rules(
            "nomad",
            "nomad_client_allocs_",
            "nomad_client_host_",
            "nomad_nomad_blocked_evals_",
            "nomad_nomad_job_summary_",
            "nomad_raft_",
            "nomad_runtime_",
        ),
    ),
    "vault": ScopeCatalogue(
        scope="vault",
        exclusive=True,
        rules=(
            *_rules(
                "vault",
                "vault_barrier_",
                "vault_core_",
                "vault_expire_",
                "vault_raft_",
                "vault_runtime_",
                "vault_token_",
            ),
            MetricAllowRule(
                matcher="^vault_.+_seal_status$", kind="regex", scope="vault"
            ),
        ),
    ),
    "kresd": ScopeCatalogue(scope="kresd", exclusive=False),
    "cloudflared": ScopeCatalogue(scope="cloudflared", exclusive=False),
    "consul-esm": ScopeCatalogue(scope="consul-esm", exclusive=False),
}


def scopes_for(services: list[str]) -> list[ScopeCatalogue]:
    """Catalogues for the services present in a document, in that order."""
    return [ALLOW_RULES[service] for service in services if service in ALLOW_RULES]


__all__ = [
    "ALLOW_RULES",
    "GLOBAL_RULES",
    "GLOBAL_SCOPE",
    "INTEGRATIONS",
    "NODE_EXPORTER_SERVICE",
    "VECTOR_SERVICE",
    "IntegrationSpec",
    "MatchKind",
    "MetricAllowRule",
    "ScopeCatalogue",
    "scopes_for",
]
