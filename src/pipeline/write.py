from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import orjson

from contract.artifacts import (
    ENVIRONMENT_FILE,
    MANIFEST,
    NODE_EXPORTER_UNIT_FILE,
    OUTPUT_SPECS,
    PIPELINE_DOCUMENT,
    VECTOR_DROPIN,
)
from contract.models import FileRecord, GenerationManifest
from host.environment import load_instance_identity, require_binaries
from host.systemd import SYSTEMCTL, reload_services
from pipeline.document import PipelineDocument
from pipeline.environment import render_environment_file
from pipeline.generators import EnrichmentGenerator, SinksGenerator, SourcesGenerator
from pipeline.render import render_document
from secretstore.fetch import S3SecretFetcher, fetch_secrets
from settings.config import resolve_under_root
from units.files import (
    NODE_EXPORTER_UNIT,
    VECTOR_UNIT,
    node_exporter_unit,
    vector_dropin,
)
from utils import atomic_write_bytes, sha256_hex

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from pathlib import Path

    from flags.config import GeneratorConfig
    from host.environment import InstanceIdentity
    from secretstore.fetch import SecretFetcher
    from settings.config import ObservabilitySettings, PathsConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedOutput:
    """A generated file held in memory until every output is ready."""

    key: str
    host_path: str
    target: Path
    content: bytes
    mode: int
    group: str | None = None


def resolve_targets(root: Path, paths: PathsConfig) -> dict[str, Path]:
    """Resolve the path of every output under ``root``, in write order."""
    return {
        key: resolve_under_root(root, spec.host_path(paths))
        for key, spec in OUTPUT_SPECS.items()
    }


def build_document(
    config: GeneratorConfig, settings: ObservabilitySettings
) -> PipelineDocument:
    """Assemble sources, enrichment and sinks into one checked document."""
    document = PipelineDocument()

    sources_gen = SourcesGenerator()
    streams = sources_gen.generate(config, settings=settings.pipeline)
    document.extend(streams.blocks)

    enrichment_gen = EnrichmentGenerator()
    enriched = enrichment_gen.generate(
        config,
        streams,
        settings=settings.pipeline,
        tag_default=settings.tags.default_value,
    )
    document.extend(enriched.blocks)

    sinks_gen = SinksGenerator()
    document.extend(sinks_gen.generate(config, enriched, settings=settings.pipeline))

    document.check()
    logger.debug(
        "document has %d sources, %d transforms, %d sinks",
        len(document.sources),
        len(document.transforms),
        len(document.sinks),
    )
    return document


def render_outputs(
    config: GeneratorConfig,
    settings: ObservabilitySettings,
    document: PipelineDocument,
    secrets: Mapping[str, str],
    targets: Mapping[str, Path],
) -> list[RenderedOutput]:
    """Render every output except the manifest, in write order.

    ``targets`` maps each output key to its already resolved path.
    """
    contents = {
        ENVIRONMENT_FILE: render_environment_file(config, secrets),
        VECTOR_DROPIN: vector_dropin(config, settings).render(),
        NODE_EXPORTER_UNIT_FILE: node_exporter_unit(settings).render(),
        PIPELINE_DOCUMENT: render_document(document),
    }
    outputs = []
    for key, spec in OUTPUT_SPECS.items():
        if key == MANIFEST:
            continue
        outputs.append(
            RenderedOutput(
                key=key,
                host_path=spec.host_path(settings.paths),
                target=targets[key],
                content=contents[key].encode("utf-8"),
                mode=spec.mode,
                group=settings.env_file_group if spec.secret else None,
            )
        )
    return outputs


def build_manifest(
    config: GeneratorConfig,
    document: PipelineDocument,
    outputs: list[RenderedOutput],
) -> GenerationManifest:
    return GenerationManifest(
        role=config.role.value,
        integrations=list(config.enabled_integrations),
        service_discovery=config.service_discovery,
        tags=list(config.tags.names()),
        sources=document.names("source"),
        transforms=document.names("transform"),
        sinks=document.names("sink"),
        files={
            output.key: FileRecord(
                path=output.host_path,
                mode=f"0{output.mode:o}",
                sha256=sha256_hex(output.content),
            )
            for output in outputs
        },
    )


def render_manifest(manifest: GenerationManifest) -> bytes:
    opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
    return orjson.dumps(manifest.model_dump(), option=opts) + b"\n"


def generate_all(
    *,
    config: GeneratorConfig,
    settings: ObservabilitySettings,
    root: Path,
    fetcher: SecretFetcher | None = None,
    identity: InstanceIdentity | None = None,
    reload: bool = False,
    runner: Callable[..., subprocess.CompletedProcess[Any]] = subprocess.run,
) -> dict[str, object]:
    """Generate the pipeline document and its companion files under ``root``.

    Every check, path resolution, secret fetch and render happens before
    the first write, so a failure in any of them leaves the previous outputs
    in place.

    Args:
        config: Validated flags.
        settings: Settings file contents.
        root: Directory the host paths are re-rooted under.
        fetcher: Secret fetcher; defaults to S3 in the instance's region.
        identity: EC2 identity; read from the EC2 environment file if omitted.
        reload: Restart node-exporter and Vector after writing.
        runner: Command runner used for systemctl.

    Returns:
        Dictionary with counts and the list of written host paths.
    """
    paths = settings.paths

    if identity is None:
        identity = load_instance_identity(
            resolve_under_root(root, paths.ec2_environment_file)
        )
    if reload:
        require_binaries(
            [
                SYSTEMCTL,
                str(resolve_under_root(root, paths.vector_binary)),
                str(resolve_under_root(root, paths.node_exporter_binary)),
            ]
        )
    targets = resolve_targets(root, paths)

    document = build_document(config, settings)

    if fetcher is None:
        fetcher = S3SecretFetcher(
            region=identity.region,
            timeout_seconds=settings.secrets.timeout_seconds,
            endpoint_url=settings.secrets.endpoint_url,
        )
    secrets = fetch_secrets(config, region=identity.region, fetcher=fetcher)

    outputs = render_outputs(config, settings, document, secrets, targets)
    manifest = build_manifest(config, document, outputs)
    outputs.append(
        RenderedOutput(
            key=MANIFEST,
            host_path=OUTPUT_SPECS[MANIFEST].host_path(paths),
            target=targets[MANIFEST],
            content=render_manifest(manifest),
            mode=OUTPUT_SPECS[MANIFEST].mode,
        )
    )

    for output in outputs:
        atomic_write_bytes(
            output.target,
            output.content,
            mode=output.mode,
            group=output.group,
        )

    if reload:
        reload_services([NODE_EXPORTER_UNIT, VECTOR_UNIT], runner=runner)

    return {
        "integration_count": len(manifest.integrations),
        "tag_count": len(manifest.tags),
        "secret_count": len(secrets),
        "source_count": len(manifest.sources),
        "transform_count": len(manifest.transforms),
        "sink_count": len(manifest.sinks),
        "outputs": [output.host_path for output in outputs],
    }


__all__ = [
    "RenderedOutput",
    "build_document",
    "build_manifest",
    "generate_all",
    "render_manifest",
    "render_outputs",
    "resolve_targets",
]
