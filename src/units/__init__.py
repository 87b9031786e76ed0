"""systemd units for the observability agents."""

from units.files import (
    NODE_EXPORTER_UNIT,
    VECTOR_UNIT,
    UnitFile,
    UnitSection,
    node_exporter_unit,
    vector_dropin,
)

__all__ = [
    "NODE_EXPORTER_UNIT",
    "VECTOR_UNIT",
    "UnitFile",
    "UnitSection",
    "node_exporter_unit",
    "vector_dropin",
]
