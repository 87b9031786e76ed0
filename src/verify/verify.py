"""Determinism verification for generated outputs."""

from __future__ import annotations

import filecmp
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import orjson
from pydantic import ValidationError

from host.environment import load_instance_identity
from pipeline.write import generate_all
from contract.models import GenerationManifest
from settings.config import resolve_under_root

if TYPE_CHECKING:
    from flags.config import GeneratorConfig
    from host.environment import InstanceIdentity
    from secretstore.fetch import SecretFetcher
    from settings.config import ObservabilitySettings


@dataclass(frozen=True)
class DeterminismResult:
    ok: bool
    mismatches: tuple[str, ...] = field(default_factory=tuple)
    missing: tuple[str, ...] = field(default_factory=tuple)
    extra: tuple[str, ...] = field(default_factory=tuple)


def _load_manifest(path: Path) -> GenerationManifest:
    try:
        return GenerationManifest.model_validate(orjson.loads(path.read_bytes()))
    except (orjson.JSONDecodeError, ValidationError) as exc:
        msg = f"Manifest is not valid: {path}: {exc}"
        raise ValueError(msg) from exc


def _listed_paths(manifest: GenerationManifest, manifest_path: str) -> set[str]:
    return {record.path for record in manifest.files.values()} | {manifest_path}


def verify_determinism(
    *,
    root: Path,
    config: GeneratorConfig,
    settings: ObservabilitySettings,
    fetcher: SecretFetcher | None = None,
    identity: InstanceIdentity | None = None,
) -> DeterminismResult:
    """Verify that the outputs under ``root`` are what ``config`` produces.

    Regenerates every output into a temporary root and compares the files
    listed in both manifests byte-for-byte. Paths are compared as host paths,
    so the temporary root never shows up in the result.

    Args:
        root: Root the existing outputs were generated under.
        config: Flags the existing outputs are expected to come from.
        settings: Settings file contents.
        fetcher: Secret fetcher for the regeneration.
        identity: EC2 identity; read from ``root`` if omitted.

    Returns:
        DeterminismResult with ok status and sorted missing, extra and
        mismatched host paths.

    Raises:
        FileNotFoundError: If the manifest under ``root`` does not exist.
        ValueError: If that manifest cannot be parsed.
    """
    manifest_host_path = settings.paths.manifest_file
    manifest_path = resolve_under_root(root, manifest_host_path)
    if not manifest_path.is_file():
        msg = f"Manifest does not exist: {manifest_path}"
        raise FileNotFoundError(msg)
    existing = _load_manifest(manifest_path)

    if identity is None:
        identity = load_instance_identity(
            resolve_under_root(root, settings.paths.ec2_environment_file)
        )

    with tempfile.TemporaryDirectory() as temp_dir:
        temp_root = Path(temp_dir)
        generate_all(
            config=config,
            settings=settings,
            root=temp_root,
            fetcher=fetcher,
            identity=identity,
        )
        regenerated = _load_manifest(resolve_under_root(temp_root, manifest_host_path))

        original_files = _listed_paths(existing, manifest_host_path)
        regenerated_files = _listed_paths(regenerated, manifest_host_path)

        missing = sorted(original_files - regenerated_files)
        extra = sorted(regenerated_files - original_files)

        mismatches: list[str] = []
        for host_path in sorted(original_files & regenerated_files):
            original_path = resolve_under_root(root, host_path)
            regenerated_path = resolve_under_root(temp_root, host_path)
            if not original_path.is_file() or not filecmp.cmp(
                original_path, regenerated_path, shallow=False
            ):
                mismatches.append(host_path)

    ok = not missing and not extra and not mismatches
    return DeterminismResult(
        ok=ok,
        mismatches=tuple(mismatches),
        missing=tuple(missing),
        extra=tuple(extra),
    )
