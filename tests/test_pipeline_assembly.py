from __future__ import annotations

import itertools
from typing import Any

import pytest
import yaml

from flags.config import INTEGRATION_NAMES, resolve_flags
from pipeline.catalogue import ALLOW_RULES, INTEGRATIONS
from pipeline.document import BlockEntry, find_reference_errors
from pipeline.generators.enrich import (
    LOGS_ENRICH,
    LOGS_SAMPLE,
    METRICS_ENRICH,
    METRICS_FILTER,
    identity_program,
)
from pipeline.generators.sinks import AMP_SINK, CLOUDWATCH_SINK, EXPORTER_SINK
from pipeline.render import render_document
from pipeline.write import build_document
from settings.config import ObservabilitySettings


def _config(**overrides: Any):
    kwargs: dict[str, Any] = {
        "role": "server",
        "secrets_bucket_name": "b",
        "cloudwatch_group_name": "g",
        "amp_workspace_id": "w",
    }
    kwargs.update(overrides)
    return resolve_flags(**kwargs)


def _entries(rendered: str) -> list[BlockEntry]:
    parsed = yaml.safe_load(rendered)
    entries = []
    for section, kind in (
        ("sources", "source"),
        ("transforms", "transform"),
        ("sinks", "sink"),
    ):
        for name, body in (parsed.get(section) or {}).items():
            entries.append(
                BlockEntry(kind=kind, name=name, inputs=tuple(body.get("inputs", [])))
            )
    return entries


def test_catalogue_covers_every_integration_in_order() -> None:
    assert tuple(INTEGRATIONS) == INTEGRATION_NAMES
    for spec in INTEGRATIONS.values():
        assert spec.service in ALLOW_RULES


def test_baseline_document() -> None:
    document = build_document(_config(), ObservabilitySettings())

    assert document.names("source") == ["node_exporter", "vector_metrics", "journald"]
    assert document.names("transform") == [
        "tag_node_exporter",
        "tag_vector_metrics",
        METRICS_ENRICH,
        METRICS_FILTER,
        LOGS_ENRICH,
        LOGS_SAMPLE,
    ]
    assert document.names("sink") == [AMP_SINK, CLOUDWATCH_SINK]
    for name in INTEGRATION_NAMES:
        assert name not in document.names()


def test_consul_and_vault_scenario() -> None:
    document = build_document(
        _config(enable={"consul": True, "vault": True}), ObservabilitySettings()
    )

    assert document.names("source")[3:] == ["consul", "vault"]
    enrich = document.get(METRICS_ENRICH)
    assert "tag_consul" in enrich.inputs
    assert "tag_vault" in enrich.inputs

    consul = document.get("consul").to_mapping()
    assert consul["type"] == "prometheus_scrape"
    assert consul["auth"]["strategy"] == "bearer"
    assert str(consul["auth"]["token"]) == "${CONSUL_HTTP_TOKEN}"

    rendered = render_document(document)
    assert 'token: "${VAULT_TOKEN}"' in rendered


def test_tag_transforms_stamp_service_and_tenant() -> None:
    document = build_document(_config(enable={"esm": True}), ObservabilitySettings())

    program = document.get("tag_esm").options["source"]
    assert '.tags.service = "consul-esm"' in program
    assert '.tags.tenant = "infrastructure"' in program


def test_sample_rate_is_env_reference() -> None:
    document = build_document(_config(logs_sample_rate="5"), ObservabilitySettings())

    rendered = render_document(document)

    assert "rate: ${LOGS_SAMPLE_RATE}\n" in rendered
    assert "rate: 5" not in rendered


def test_service_discovery_adds_exporter_sink() -> None:
    document = build_document(_config(service_discovery=True), ObservabilitySettings())

    assert document.names("sink") == [AMP_SINK, CLOUDWATCH_SINK, EXPORTER_SINK]
    assert document.get(EXPORTER_SINK).options["address"] == "0.0.0.0:9598"


def test_remote_write_endpoint_and_log_group() -> None:
    document = build_document(_config(), ObservabilitySettings())

    amp = document.get(AMP_SINK).to_mapping()
    assert amp["endpoint"] == (
        "https://aps-workspaces.${EC2_REGION}.amazonaws.com"
        "/workspaces/w/api/v1/remote_write"
    )
    assert amp["inputs"] == [METRICS_FILTER]
    assert amp["healthcheck"] == {"enabled": False}

    logs = document.get(CLOUDWATCH_SINK).to_mapping()
    assert logs["group_name"] == "g"
    assert logs["inputs"] == [LOGS_SAMPLE]


def test_identity_program_attaches_tags_with_default() -> None:
    program = identity_program(
        _config(tags=["team=infra"]), prefix=".tags.", tag_default="unset"
    )

    assert '.tags.region = get_env_var!("EC2_REGION")' in program
    assert "del(.tags.host)" in program
    assert '.tags.role = "server"' in program
    assert '.tags.team = get_env_var("OBSERVABILITY_TAG_team") ?? "unset"' in program


def test_identical_inputs_render_identically() -> None:
    settings = ObservabilitySettings()
    config = _config(enable={"nomad": True}, tags=["a=b"])

    first = render_document(build_document(config, settings))
    second = render_document(build_document(config, settings))

    assert first == second


@pytest.mark.parametrize(
    "enabled",
    [
        combo
        for size in range(len(INTEGRATION_NAMES) + 1)
        for combo in itertools.combinations(INTEGRATION_NAMES, size)
    ],
    ids=lambda combo: "+".join(combo) or "none",
)
def test_every_toggle_combination_is_closed(enabled: tuple[str, ...]) -> None:
    config = _config(enable={name: True for name in enabled})

    rendered = render_document(build_document(config, ObservabilitySettings()))
    entries = _entries(rendered)

    assert find_reference_errors(entries) == []
    sources = [e.name for e in entries if e.kind == "source"]
    assert sources == ["node_exporter", "vector_metrics", "journald", *enabled]
    for name in INTEGRATION_NAMES:
        assert (f"tag_{name}" in {e.name for e in entries}) == (name in enabled)


def test_reserved_tags_never_reach_enrichment() -> None:
    document = build_document(
        _config(tags=["service=web", "message=x", "team=infra"]),
        ObservabilitySettings(),
    )

    metrics_program = document.get(METRICS_ENRICH).options["source"]
    logs_program = document.get(LOGS_ENRICH).options["source"]
    assert "OBSERVABILITY_TAG_service" not in metrics_program
    assert "OBSERVABILITY_TAG_message" not in logs_program
    assert '.tags.team = get_env_var("OBSERVABILITY_TAG_team")' in metrics_program
    assert '.team = get_env_var("OBSERVABILITY_TAG_team")' in logs_program


def _filter_source(document) -> str:
    return document.get(METRICS_FILTER).options["condition"]["source"]


def test_baseline_filter_has_exclusive_scopes() -> None:
    source = _filter_source(build_document(_config(), ObservabilitySettings()))

    assert source.startswith('scope = string(.tags.service) ?? ""\n')
    assert 'if .name == "up" || starts_with(.name, "scrape_") {\n  true\n}' in source
    assert '} else if scope == "node-exporter" {\n  starts_with(.name, "node_cpu_' in (
        source
    )
    assert '} else if scope == "vector" {\n  starts_with(.name, "vector_buffer_")' in (
        source
    )
    assert "match(.name, r'^vector_component_discarded_events_total$')" in source
    assert source.endswith("} else {\n  true\n}\n")
    for scope in ("consul", "nomad", "vault", "kresd", "cloudflared", "consul-esm"):
        assert f'scope == "{scope}"' not in source


def test_integration_filter_branches() -> None:
    config = _config(
        enable={
            "consul": True,
            "vault": True,
            "kresd": True,
            "cloudflared": True,
            "esm": True,
        }
    )

    source = _filter_source(build_document(config, ObservabilitySettings()))

    assert '} else if scope == "consul" {\n  starts_with(.name, "consul_autopilot_")' in (
        source
    )
    assert "match(.name, r'^vault_.+_seal_status$')" in source
    for scope in ("kresd", "cloudflared", "consul-esm"):
        assert f'}} else if scope == "{scope}" {{\n  true\n}}' in source
    assert 'scope == "nomad"' not in source

    rendered = render_document(build_document(config, ObservabilitySettings()))
    parsed = yaml.safe_load(rendered)
    assert parsed["transforms"][METRICS_FILTER]["condition"]["source"] == source
