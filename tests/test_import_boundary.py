from __future__ import annotations

import ast
from pathlib import Path

import pytest

_SRC = Path(__file__).parent.parent / "src"

# Builders of the document and unit files work from flags and settings only.
_PURE_MODULES = [
    "pipeline/document.py",
    "pipeline/render.py",
    "pipeline/vrl.py",
    "pipeline/catalogue.py",
    "pipeline/generators/sources.py",
    "pipeline/generators/enrich.py",
    "pipeline/generators/sinks.py",
    "units/files.py",
]

_FORBIDDEN = ("boto3", "botocore", "secretstore", "subprocess", "host.systemd")


def _imported_names(path: Path) -> list[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"))
    names: list[str] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            names.extend(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            names.append(node.module)
    return names


@pytest.mark.parametrize("rel_path", _PURE_MODULES)
def test_builders_do_not_import_io_modules(rel_path: str) -> None:
    imported = _imported_names(_SRC / rel_path)

    offending = [
        name
        for name in imported
        if any(name == f or name.startswith(f"{f}.") for f in _FORBIDDEN)
    ]
    assert offending == []


def test_cli_import_does_not_create_s3_client() -> None:
    import cli  # noqa: F401
    from pipeline.write import S3SecretFetcher

    fetcher = S3SecretFetcher(region="eu-west-1")

    assert fetcher._client is None
