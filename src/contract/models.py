"""Manifest models exposed by the output contract."""

from __future__ import annotations

from pydantic import BaseModel, Field

from contract.artifacts import MANIFEST_SCHEMA_VERSION


class FileRecord(BaseModel):
    """One generated file, by host path."""

    path: str
    mode: str = Field(pattern=r"^0[0-7]{3}$")
    sha256: str = Field(pattern=r"^[0-9a-f]{64}$")


class GenerationManifest(BaseModel):
    """What a generation run wrote, without timestamps."""

    schema_version: int = Field(default=MANIFEST_SCHEMA_VERSION)
    role: str
    integrations: list[str] = Field(default_factory=list)
    service_discovery: bool = False
    tags: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    transforms: list[str] = Field(default_factory=list)
    sinks: list[str] = Field(default_factory=list)
    files: dict[str, FileRecord] = Field(default_factory=dict)


__all__ = ["FileRecord", "GenerationManifest"]
