"""Error taxonomy for the observability provisioner.

Every error raised on purpose by the generator derives from
``GeneratorError``; the CLI turns any of them into exit code 1.
"""

from __future__ import annotations


class GeneratorError(Exception):
    """Base class for errors that abort a generation run."""

    exit_code = 1


class ValidationError(GeneratorError):
    """Raised when CLI input or the settings file is invalid."""


class PrerequisiteMissingError(GeneratorError):
    """Raised when a required host file or binary is absent."""


class FetchError(GeneratorError):
    """Raised when a secret cannot be retrieved from the object store."""


class WriteError(GeneratorError):
    """Raised when an output file cannot be written."""


class ReloadError(GeneratorError):
    """Raised when the init system refuses a reload or restart."""


class PipelineStructureError(GeneratorError):
    """Raised when a pipeline document breaks its structural invariants."""


__all__ = [
    "FetchError",
    "GeneratorError",
    "PipelineStructureError",
    "PrerequisiteMissingError",
    "ReloadError",
    "ValidationError",
    "WriteError",
]
