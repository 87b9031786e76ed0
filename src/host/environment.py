"""Host prerequisites: EC2 identity file and required binaries."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from typing import TYPE_CHECKING

from dotenv import dotenv_values

from errors import PrerequisiteMissingError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

REGION_VAR = "EC2_REGION"
INSTANCE_ID_VAR = "EC2_INSTANCE_ID"
INSTANCE_TYPE_VAR = "EC2_INSTANCE_TYPE"
AVAILABILITY_ZONE_VAR = "EC2_AVAILABILITY_ZONE"

# Field name on enriched events -> variable in the EC2 environment file.
IDENTITY_FIELDS: dict[str, str] = {
    "region": REGION_VAR,
    "instance_id": INSTANCE_ID_VAR,
    "instance_type": INSTANCE_TYPE_VAR,
    "availability_zone": AVAILABILITY_ZONE_VAR,
}


@dataclass(frozen=True)
class InstanceIdentity:
    region: str
    instance_id: str
    instance_type: str
    availability_zone: str


def load_instance_identity(path: Path) -> InstanceIdentity:
    """Read the EC2 environment file written earlier in provisioning.

    Raises:
        PrerequisiteMissingError: If the file is absent or lacks one of the
            identity variables.
    """
    if not path.is_file():
        msg = f"EC2 environment file not found: {path}"
        raise PrerequisiteMissingError(msg)

    values = dotenv_values(path)
    missing = [var for var in IDENTITY_FIELDS.values() if not values.get(var)]
    if missing:
        msg = f"EC2 environment file {path} is missing: {', '.join(missing)}"
        raise PrerequisiteMissingError(msg)

    identity = InstanceIdentity(
        **{field: str(values[var]) for field, var in IDENTITY_FIELDS.items()}
    )
    logger.info(
        "instance %s (%s) in %s",
        identity.instance_id,
        identity.instance_type,
        identity.availability_zone,
    )
    return identity


def require_binaries(binaries: Iterable[str]) -> None:
    """Fail unless every binary is an executable path or found on PATH."""
    missing = [binary for binary in binaries if shutil.which(binary) is None]
    if missing:
        msg = f"required binaries not found: {', '.join(missing)}"
        raise PrerequisiteMissingError(msg)


__all__ = [
    "AVAILABILITY_ZONE_VAR",
    "IDENTITY_FIELDS",
    "INSTANCE_ID_VAR",
    "INSTANCE_TYPE_VAR",
    "REGION_VAR",
    "InstanceIdentity",
    "load_instance_identity",
    "require_binaries",
]
