"""Output contract definitions.

This module names every file a generation run writes, its format and its
mode. The manifest, validator and determinism check all work from this table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from settings.config import PathsConfig

# Manifest schema version (manifest-v1).
MANIFEST_SCHEMA_VERSION = 1

# Output identifiers (stable keys of the manifest's ``files`` table).
PIPELINE_DOCUMENT = "pipeline"
ENVIRONMENT_FILE = "environment"
VECTOR_DROPIN = "vector_dropin"
NODE_EXPORTER_UNIT_FILE = "node_exporter_unit"
MANIFEST = "manifest"

OutputFormat = Literal["yaml", "env", "unit", "json"]


@dataclass(frozen=True)
class OutputSpec:
    """Specification for one generated file.

    ``path_field`` names the ``PathsConfig`` attribute holding its host path.
    """

    path_field: str
    format: OutputFormat
    mode: int
    secret: bool = False

    def host_path(self, paths: PathsConfig) -> str:
        return str(getattr(paths, self.path_field))


# Written in this order: units and variables before the watched pipeline
# document, the manifest last.
OUTPUT_SPECS: dict[str, OutputSpec] = {
    ENVIRONMENT_FILE: OutputSpec(
        path_field="environment_file", format="env", mode=0o640, secret=True
    ),
    VECTOR_DROPIN: OutputSpec(
        path_field="vector_dropin_file", format="unit", mode=0o644
    ),
    NODE_EXPORTER_UNIT_FILE: OutputSpec(
        path_field="node_exporter_unit_file", format="unit", mode=0o644
    ),
    PIPELINE_DOCUMENT: OutputSpec(
        path_field="pipeline_file", format="yaml", mode=0o644
    ),
    MANIFEST: OutputSpec(
        path_field="manifest_file", format="json", mode=0o644
    ),
}

# Top-level tables allowed in a pipeline document.
PIPELINE_SECTIONS = ("sources", "transforms", "sinks")


__all__ = [
    "ENVIRONMENT_FILE",
    "MANIFEST",
    "MANIFEST_SCHEMA_VERSION",
    "NODE_EXPORTER_UNIT_FILE",
    "OUTPUT_SPECS",
    "PIPELINE_DOCUMENT",
    "PIPELINE_SECTIONS",
    "VECTOR_DROPIN",
    "OutputFormat",
    "OutputSpec",
]
