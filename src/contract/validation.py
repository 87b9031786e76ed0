"""Validation helpers for generated outputs."""

from __future__ import annotations

import stat
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import orjson
import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from contract.artifacts import (
    ENVIRONMENT_FILE,
    MANIFEST,
    MANIFEST_SCHEMA_VERSION,
    OUTPUT_SPECS,
    PIPELINE_DOCUMENT,
    PIPELINE_SECTIONS,
)
from contract.models import GenerationManifest
from pipeline.document import BlockEntry, find_reference_errors
from pipeline.environment import SAMPLE_RATE_VAR
from pipeline.generators.sinks import AMP_SINK, CLOUDWATCH_SINK
from settings.config import resolve_under_root
from utils import sha256_hex

if TYPE_CHECKING:
    from pathlib import Path

    from pipeline.models.blocks import BlockKind
    from settings.config import ObservabilitySettings

_KIND_FOR_SECTION: dict[str, BlockKind] = {
    "sources": "source",
    "transforms": "transform",
    "sinks": "sink",
}

MANDATORY_SINKS = (AMP_SINK, CLOUDWATCH_SINK)


@dataclass(frozen=True)
class ValidationMessage:
    artifact: str
    path: Path
    message: str
    line: int | None = None

    def location(self) -> str:
        if self.line is None:
            return str(self.path)
        return f"{self.path}:{self.line}"

    def to_dict(self) -> dict[str, object]:
        return {
            "artifact": self.artifact,
            "path": str(self.path),
            "line": self.line,
            "message": self.message,
        }


@dataclass
class ValidationResult:
    errors: list[ValidationMessage] = field(default_factory=list)
    warnings: list[ValidationMessage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def error(self, artifact: str, path: Path, message: str) -> None:
        self.errors.append(ValidationMessage(artifact, path, message))


def validate_outputs(root: Path, settings: ObservabilitySettings) -> ValidationResult:
    """Re-read the outputs of the last run under ``root`` and check them."""
    result = ValidationResult()
    paths = {
        key: resolve_under_root(root, spec.host_path(settings.paths))
        for key, spec in OUTPUT_SPECS.items()
    }

    manifest = _load_manifest(paths[MANIFEST], result)

    for key, spec in OUTPUT_SPECS.items():
        if key == MANIFEST:
            continue
        path = paths[key]
        if not path.is_file():
            result.error(key, path, "Required output file is missing.")
            continue

        actual_mode = stat.S_IMODE(path.stat().st_mode)
        if actual_mode != spec.mode:
            result.warnings.append(
                ValidationMessage(
                    key,
                    path,
                    f"File mode is 0{actual_mode:o}, expected 0{spec.mode:o}.",
                )
            )
        if spec.secret and actual_mode & stat.S_IRWXO:
            result.error(key, path, "Secret file is accessible by others.")

        if manifest is not None:
            record = manifest.files.get(key)
            if record is None:
                result.error(key, path, "File is not listed in the manifest.")
            elif record.sha256 != sha256_hex(path.read_bytes()):
                result.error(
                    key, path, "Content does not match the manifest digest."
                )

    if paths[PIPELINE_DOCUMENT].is_file():
        _validate_pipeline(paths[PIPELINE_DOCUMENT], result)
    if paths[ENVIRONMENT_FILE].is_file():
        _validate_environment(paths[ENVIRONMENT_FILE], result)

    return result


def _load_manifest(path: Path, result: ValidationResult) -> GenerationManifest | None:
    if not path.is_file():
        result.error(MANIFEST, path, "Required output file is missing.")
        return None
    try:
        data = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as exc:
        result.error(MANIFEST, path, f"Invalid JSON: {exc}.")
        return None
    try:
        manifest = GenerationManifest.model_validate(data)
    except ValidationError as exc:
        result.error(MANIFEST, path, f"Schema validation failed: {exc}.")
        return None
    if manifest.schema_version != MANIFEST_SCHEMA_VERSION:
        result.error(
            MANIFEST,
            path,
            "Schema version mismatch: "
            f"expected {MANIFEST_SCHEMA_VERSION}, got {manifest.schema_version}.",
        )
        return None
    return manifest


def _validate_pipeline(path: Path, result: ValidationResult) -> None:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        result.error(PIPELINE_DOCUMENT, path, f"Invalid YAML: {exc}.")
        return

    if not isinstance(data, dict):
        result.error(PIPELINE_DOCUMENT, path, "Expected a mapping at top level.")
        return

    unknown = sorted(set(data) - set(PIPELINE_SECTIONS))
    if unknown:
        result.error(
            PIPELINE_DOCUMENT,
            path,
            f"Unknown top-level tables: {', '.join(map(str, unknown))}.",
        )

    entries: list[BlockEntry] = []
    for section in PIPELINE_SECTIONS:
        tables = data.get(section) or {}
        if not isinstance(tables, dict):
            result.error(PIPELINE_DOCUMENT, path, f"'{section}' must be a mapping.")
            continue
        kind = _KIND_FOR_SECTION[section]
        for name, body in tables.items():
            entry = _block_entry(kind, name, body, path, result)
            if entry is not None:
                entries.append(entry)

    for message in find_reference_errors(entries):
        result.error(PIPELINE_DOCUMENT, path, f"{message}.")

    sinks = {entry.name for entry in entries if entry.kind == "sink"}
    for sink in MANDATORY_SINKS:
        if sink not in sinks:
            result.error(
                PIPELINE_DOCUMENT, path, f"Mandatory sink '{sink}' is missing."
            )


def _block_entry(
    kind: BlockKind,
    name: object,
    body: object,
    path: Path,
    result: ValidationResult,
) -> BlockEntry | None:
    if not isinstance(body, dict) or not isinstance(body.get("type"), str):
        result.error(PIPELINE_DOCUMENT, path, f"{kind} '{name}' has no type.")
        return None
    inputs = body.get("inputs", [])
    if not isinstance(inputs, list) or not all(isinstance(i, str) for i in inputs):
        result.error(
            PIPELINE_DOCUMENT,
            path,
            f"{kind} '{name}' inputs must be a list of names.",
        )
        return None
    if kind != "source" and not inputs:
        result.error(PIPELINE_DOCUMENT, path, f"{kind} '{name}' has no inputs.")
    return BlockEntry(kind=kind, name=str(name), inputs=tuple(inputs))


def _validate_environment(path: Path, result: ValidationResult) -> None:
    values = dotenv_values(path)
    rate = values.get(SAMPLE_RATE_VAR)
    if rate is None:
        result.error(ENVIRONMENT_FILE, path, f"{SAMPLE_RATE_VAR} is not set.")
    elif not rate.isdigit() or int(rate) < 1:
        result.error(
            ENVIRONMENT_FILE,
            path,
            f"{SAMPLE_RATE_VAR} must be a positive integer, got '{rate}'.",
        )


__all__ = [
    "MANDATORY_SINKS",
    "ValidationMessage",
    "ValidationResult",
    "validate_outputs",
]
