"""Stable output contract of the observability provisioner.

Treat these exports as the authoritative description of what a generation
run leaves on the host.
"""

from contract.artifacts import (
    ENVIRONMENT_FILE,
    MANIFEST,
    MANIFEST_SCHEMA_VERSION,
    NODE_EXPORTER_UNIT_FILE,
    OUTPUT_SPECS,
    PIPELINE_DOCUMENT,
    VECTOR_DROPIN,
    OutputSpec,
)


def __getattr__(name: str) -> object:
    if name in {"FileRecord", "GenerationManifest"}:
        from contract.models import FileRecord, GenerationManifest

        return {
            "FileRecord": FileRecord,
            "GenerationManifest": GenerationManifest,
        }[name]

    if name in {"ValidationMessage", "ValidationResult", "validate_outputs"}:
        from contract.validation import (
            ValidationMessage,
            ValidationResult,
            validate_outputs,
        )

        return {
            "ValidationMessage": ValidationMessage,
            "ValidationResult": ValidationResult,
            "validate_outputs": validate_outputs,
        }[name]

    msg = f"module 'contract' has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "ENVIRONMENT_FILE",
    "MANIFEST",
    "MANIFEST_SCHEMA_VERSION",
    "NODE_EXPORTER_UNIT_FILE",
    "OUTPUT_SPECS",
    "PIPELINE_DOCUMENT",
    "VECTOR_DROPIN",
    "FileRecord",
    "GenerationManifest",
    "OutputSpec",
    "ValidationMessage",
    "ValidationResult",
    "validate_outputs",
]
