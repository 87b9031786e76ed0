"""Block generators for the pipeline document."""

from pipeline.generators.enrich import EnrichmentGenerator
from pipeline.generators.sinks import SinksGenerator
from pipeline.generators.sources import SourcesGenerator

__all__ = [
    "EnrichmentGenerator",
    "SinksGenerator",
    "SourcesGenerator",
]
