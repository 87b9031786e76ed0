"""Ordered pipeline document with structural checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from errors import PipelineStructureError
from pipeline.models.blocks import Block, Sink, Source, Transform

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pipeline.models.blocks import BlockKind

SECTION_FOR_KIND: dict[BlockKind, str] = {
    "source": "sources",
    "transform": "transforms",
    "sink": "sinks",
}

# Block kinds each kind may take its inputs from.
ALLOWED_INPUT_KINDS: dict[BlockKind, frozenset[BlockKind]] = {
    "source": frozenset(),
    "transform": frozenset({"source", "transform"}),
    "sink": frozenset({"transform"}),
}


@dataclass(frozen=True)
class BlockEntry:
    """Kind, name and inputs of a block; enough to check references."""

    kind: BlockKind
    name: str
    inputs: tuple[str, ...] = ()


def find_reference_errors(entries: Iterable[BlockEntry]) -> list[str]:
    """Check names and references of blocks given in document order.

    Returns one message per problem: a duplicate name, an input naming a
    block that is not declared earlier, or an input of a kind the block may
    not consume (sinks only read transforms).
    """
    declared: dict[str, BlockKind] = {}
    errors: list[str] = []
    for entry in entries:
        if entry.name in declared:
            errors.append(f"duplicate block name '{entry.name}'")
            continue
        allowed = ALLOWED_INPUT_KINDS[entry.kind]
        for input_name in entry.inputs:
            input_kind = declared.get(input_name)
            if input_kind is None:
                errors.append(
                    f"{entry.kind} '{entry.name}' reads undeclared input "
                    f"'{input_name}'"
                )
            elif input_kind not in allowed:
                errors.append(
                    f"{entry.kind} '{entry.name}' may not read {input_kind} "
                    f"'{input_name}'"
                )
        declared[entry.name] = entry.kind
    return errors


@dataclass
class PipelineDocument:
    """Blocks in declaration order.

    ``add`` enforces the invariants eagerly, so a document built through it
    is always referentially closed.
    """

    blocks: list[Block] = field(default_factory=list)

    def add(self, block: Block) -> None:
        entries = [*self.entries(), _entry(block)]
        errors = find_reference_errors(entries)
        if errors:
            raise PipelineStructureError("; ".join(errors))
        self.blocks.append(block)

    def extend(self, blocks: Iterable[Block]) -> None:
        for block in blocks:
            self.add(block)

    def entries(self) -> list[BlockEntry]:
        return [_entry(block) for block in self.blocks]

    def check(self) -> None:
        """Re-run the structural checks over the whole document."""
        errors = find_reference_errors(self.entries())
        if errors:
            raise PipelineStructureError("; ".join(errors))

    def names(self, kind: BlockKind | None = None) -> list[str]:
        return [
            block.name for block in self.blocks if kind is None or block.kind == kind
        ]

    def get(self, name: str) -> Block:
        for block in self.blocks:
            if block.name == name:
                return block
        raise KeyError(name)

    @property
    def sources(self) -> list[Source]:
        return [b for b in self.blocks if isinstance(b, Source)]

    @property
    def transforms(self) -> list[Transform]:
        return [b for b in self.blocks if isinstance(b, Transform)]

    @property
    def sinks(self) -> list[Sink]:
        return [b for b in self.blocks if isinstance(b, Sink)]

    def to_mapping(self) -> dict[str, dict[str, Any]]:
        """Group blocks into Vector's top-level tables, keeping block order."""
        mapping: dict[str, dict[str, Any]] = {}
        for kind, section in SECTION_FOR_KIND.items():
            tables = {
                block.name: block.to_mapping()
                for block in self.blocks
                if block.kind == kind
            }
            if tables:
                mapping[section] = tables
        return mapping


def _entry(block: Block) -> BlockEntry:
    return BlockEntry(kind=block.kind, name=block.name, inputs=block.inputs)


__all__ = [
    "ALLOWED_INPUT_KINDS",
    "SECTION_FOR_KIND",
    "BlockEntry",
    "PipelineDocument",
    "find_reference_errors",
]
