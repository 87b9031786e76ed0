"""Pipeline generation entry points."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from flags.config import GeneratorConfig
    from secretstore.fetch import SecretFetcher
    from settings.config import ObservabilitySettings


def generate_all(
    *,
    config: GeneratorConfig,
    settings: ObservabilitySettings,
    root: Path,
    fetcher: SecretFetcher | None = None,
    reload: bool = False,
) -> dict[str, object]:
    """Generate outputs via lazy import to avoid package import cycles."""
    from pipeline.write import generate_all as _generate_all

    return _generate_all(
        config=config, settings=settings, root=root, fetcher=fetcher, reload=reload
    )


__all__ = ["generate_all"]
