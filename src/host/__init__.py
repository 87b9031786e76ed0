"""Host-side prerequisites and service control."""

from host.environment import (
    InstanceIdentity,
    load_instance_identity,
    require_binaries,
)
from host.systemd import reload_services

__all__ = [
    "InstanceIdentity",
    "load_instance_identity",
    "reload_services",
    "require_binaries",
]
