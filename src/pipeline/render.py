"""Serialization of a pipeline document to Vector YAML."""

from __future__ import annotations

from typing import TYPE_CHECKING

import yaml

from pipeline.models.blocks import EnvVar

if TYPE_CHECKING:
    from pipeline.document import PipelineDocument

HEADER = "# Generated by run-observability. Local changes are overwritten.\n"


class _PipelineDumper(yaml.SafeDumper):
    """SafeDumper that keeps VRL programs readable."""


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    if "\n" in value:
        return dumper.represent_scalar("tag:yaml.org,2002:str", value, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", value)


def _represent_env_var(dumper: yaml.SafeDumper, value: EnvVar) -> yaml.ScalarNode:
    style = '"' if value.quoted else ""
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(value), style=style)


_PipelineDumper.add_representer(str, _represent_str)
_PipelineDumper.add_representer(EnvVar, _represent_env_var)


def render_document(document: PipelineDocument) -> str:
    """Check ``document`` and serialize it in declaration order."""
    document.check()
    body = yaml.dump(
        document.to_mapping(),
        Dumper=_PipelineDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=4096,
    )
    return HEADER + body


__all__ = ["HEADER", "render_document"]
