"""Block models for the Vector pipeline document.

A pipeline document is an ordered list of blocks. Each block is one of three
tagged variants (source, transform, sink) carrying a unique name, a Vector
component type and ordered component options.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

BlockKind = Literal["source", "transform", "sink"]

BLOCK_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"


@dataclass(frozen=True)
class EnvVar:
    """Reference to a variable interpolated by Vector when it loads the file.

    Unquoted references let the substituted value keep its YAML type.
    """

    name: str
    quoted: bool = False

    def __str__(self) -> str:
        return f"${{{self.name}}}"


class Block(BaseModel):
    """Common shape of every pipeline block."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ClassVar[BlockKind]

    name: str = Field(pattern=BLOCK_NAME_PATTERN)
    type: str = Field(min_length=1)
    options: dict[str, Any] = Field(default_factory=dict)

    @property
    def inputs(self) -> tuple[str, ...]:
        return ()

    def to_mapping(self) -> dict[str, Any]:
        """Component table as Vector expects it, ``type`` and ``inputs`` first."""
        body: dict[str, Any] = {"type": self.type}
        if self.inputs:
            body["inputs"] = list(self.inputs)
        body.update(self.options)
        return body


class Source(Block):
    kind: ClassVar[BlockKind] = "source"


class Transform(Block):
    kind: ClassVar[BlockKind] = "transform"

    input_names: tuple[str, ...] = Field(min_length=1)

    @property
    def inputs(self) -> tuple[str, ...]:
        return self.input_names


class Sink(Block):
    kind: ClassVar[BlockKind] = "sink"

    input_names: tuple[str, ...] = Field(min_length=1)

    @property
    def inputs(self) -> tuple[str, ...]:
        return self.input_names


__all__ = [
    "BLOCK_NAME_PATTERN",
    "Block",
    "BlockKind",
    "EnvVar",
    "Sink",
    "Source",
    "Transform",
]
