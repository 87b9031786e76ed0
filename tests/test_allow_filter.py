from __future__ import annotations

import pytest

from pipeline.catalogue import (
    GLOBAL_RULES,
    MetricAllowRule,
    ScopeCatalogue,
    scopes_for,
)
from pipeline.vrl import allow_condition, any_of, raw_regex, rule_expression


def test_rule_expressions() -> None:
    assert rule_expression(MetricAllowRule("up", kind="exact")) == '.name == "up"'
    assert (
        rule_expression(MetricAllowRule("node_"))
        == 'starts_with(.name, "node_")'
    )
    assert (
        rule_expression(MetricAllowRule("^vault_.+$", kind="regex"))
        == "match(.name, r'^vault_.+$')"
    )


def test_raw_regex_rejects_single_quote() -> None:
    with pytest.raises(ValueError):
        raw_regex("it's")


def test_any_of() -> None:
    assert any_of([]) == "false"
    assert any_of(["a"]) == "a"
    assert any_of(["a", "b"]) == "a || b"


def test_allow_condition_branches() -> None:
    scopes = [
        ScopeCatalogue("node-exporter", True, (MetricAllowRule("node_memory_"),)),
        ScopeCatalogue("kresd", False),
    ]

    condition = allow_condition(GLOBAL_RULES, scopes)

    assert condition == (
        'scope = string(.tags.service) ?? ""\n'
        'if .name == "up" || starts_with(.name, "scrape_") {\n'
        "  true\n"
        '} else if scope == "node-exporter" {\n'
        '  starts_with(.name, "node_memory_")\n'
        '} else if scope == "kresd" {\n'
        "  true\n"
        "} else {\n"
        "  true\n"
        "}\n"
    )


def test_allow_condition_without_rules_admits_everything() -> None:
    assert allow_condition([], []) == 'scope = string(.tags.service) ?? ""\ntrue\n'


def test_scopes_for_keeps_order_and_skips_unknown() -> None:
    scopes = scopes_for(["vault", "unknown", "node-exporter"])

    assert [s.scope for s in scopes] == ["vault", "node-exporter"]
    assert scopes[0].exclusive
