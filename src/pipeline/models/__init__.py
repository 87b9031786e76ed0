"""Model namespace for pipeline document blocks."""

from pipeline.models.blocks import Block, BlockKind, EnvVar, Sink, Source, Transform
from pipeline.models.targets import ScrapeTarget

__all__ = [
    "Block",
    "BlockKind",
    "EnvVar",
    "ScrapeTarget",
    "Sink",
    "Source",
    "Transform",
]
