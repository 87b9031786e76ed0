"""Helpers that build Vector Remap Language (VRL) snippets."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from pipeline.catalogue import MetricAllowRule, ScopeCatalogue


def string_literal(value: str) -> str:
    """Quote ``value`` as a VRL string literal.

    Values are ASCII identifiers and service names, for which JSON quoting
    and VRL quoting agree.
    """
    return json.dumps(value)


def raw_regex(pattern: str) -> str:
    if "'" in pattern:
        msg = f"regex {pattern!r} cannot contain a single quote"
        raise ValueError(msg)
    return f"r'{pattern}'"


def rule_expression(rule: MetricAllowRule, field: str = ".name") -> str:
    if rule.kind == "exact":
        return f"{field} == {string_literal(rule.matcher)}"
    if rule.kind == "prefix":
        return f"starts_with({field}, {string_literal(rule.matcher)})"
    return f"match({field}, {raw_regex(rule.matcher)})"


def any_of(expressions: Sequence[str]) -> str:
    if not expressions:
        return "false"
    if len(expressions) == 1:
        return expressions[0]
    return " || ".join(expressions)


def allow_condition(
    global_rules: Sequence[MetricAllowRule],
    scopes: Iterable[ScopeCatalogue],
    *,
    scope_field: str = ".tags.service",
) -> str:
    """Build the filter condition for the metric allow-list.

    Global rules admit a metric regardless of its scope. An exclusive scope
    admits only metrics matching one of its rules, a permissive scope admits
    all of its metrics, and an unknown scope falls through to ``true``.
    """
    lines = [f"scope = string({scope_field}) ?? \"\""]
    branches: list[str] = []
    if global_rules:
        branches.append(
            f"if {any_of([rule_expression(r) for r in global_rules])} {{\n"
            "  true\n"
            "}"
        )
    for scope in scopes:
        if scope.exclusive:
            body = any_of([rule_expression(r) for r in scope.rules])
        else:
            body = "true"
        condition = f"scope == {string_literal(scope.scope)}"
        keyword = "else if" if branches else "if"
        branch = f"{keyword} {condition} {{\n  {body}\n}}"
        branches.append(branch)
    if branches:
        lines.append(" ".join(branches) + " else {\n  true\n}")
    else:
        lines.append("true")
    return "\n".join(lines) + "\n"


__all__ = [
    "allow_condition",
    "any_of",
    "raw_regex",
    "rule_expression",
    "string_literal",
]
