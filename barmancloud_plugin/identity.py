"""Identity services that tell the operator what the plugin can do."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from barmancloud_plugin.kube import NamespacedName


class ServiceType(enum.Enum):
    """The plugin services a capability can name."""

    RECONCILER_HOOKS = "TYPE_RECONCILER_HOOKS"
    LIFECYCLE_SERVICE = "TYPE_LIFECYCLE_SERVICE"
    RESTORE_JOB = "TYPE_RESTORE_JOB"
    WAL_SERVICE = "TYPE_WAL_SERVICE"


@dataclass
class OperatorIdentity:
    """Identity of the plugin as run next to the operator."""

    def get_plugin_capabilities(self) -> list[ServiceType]:
        """Reconciler hooks and the lifecycle service."""
        return [ServiceType.RECONCILER_HOOKS, ServiceType.LIFECYCLE_SERVICE]

    def probe(self) -> bool:
        """The plugin is always ready."""
        return True


@dataclass
class RestoreIdentity:
    """Identity of the plugin as run inside a restore job or instance."""

    barman_object_key: NamespacedName | None = None
    client: Any = None

    def get_plugin_capabilities(self) -> list[ServiceType]:
        """The restore job and the WAL service."""
        return [ServiceType.RESTORE_JOB, ServiceType.WAL_SERVICE]

    def probe(self) -> bool:
        """The plugin is always ready."""
        return True