"""Reading the plugin configuration out of a cluster definition."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from barmancloud_plugin.kube import NamespacedName

PLUGIN_NAME = "barman-cloud.cloudnative-pg.io"


class ConfigurationError(Exception):
    """A mistake in the plugin configuration."""

    def __init__(self, messages: list[str] | None = None) -> None:
        self.messages = list(messages or [])
        super().__init__(",".join(self.messages))

    def __str__(self) -> str:
        return ",".join(self.messages)

    def with_message(self, msg: str) -> ConfigurationError:
        """Return a new error holding these messages and one more."""
        return ConfigurationError([*self.messages, msg])

    def is_empty(self) -> bool:
        """True when there are no messages."""
        return not self.messages


def _spec(cluster: dict[str, Any]) -> dict[str, Any]:
    return cluster.get("spec") or {}


def _name(cluster: dict[str, Any]) -> str:
    return (cluster.get("metadata") or {}).get("name", "")


def _namespace(cluster: dict[str, Any]) -> str:
    return (cluster.get("metadata") or {}).get("namespace", "")


def _is_enabled(plugin: dict[str, Any]) -> bool:
    return plugin.get("enabled") is not False


def _external_cluster(cluster: dict[str, Any], name: str) -> dict[str, Any] | None:
    return next(
        (ext for ext in _spec(cluster).get("externalClusters") or [] if ext.get("name") == name),
        None,
    )


@dataclass
class PluginConfiguration:
    """The object stores and server names the plugin works with."""

    cluster: dict[str, Any] = field(default_factory=dict)
    barman_object_name: str = ""
    server_name: str = ""
    recovery_barman_object_name: str = ""
    recovery_server_name: str = ""
    replica_source_barman_object_name: str = ""
    replica_source_server_name: str = ""

    @property
    def namespace(self) -> str:
        return _namespace(self.cluster)

    def barman_object_key(self) -> NamespacedName:
        return NamespacedName(self.namespace, self.barman_object_name)

    def recovery_barman_object_key(self) -> NamespacedName:
        return NamespacedName(self.namespace, self.recovery_barman_object_name)

    def replica_source_barman_object_key(self) -> NamespacedName:
        return NamespacedName(self.namespace, self.replica_source_barman_object_name)

    def referred_barman_object_keys(self) -> list[NamespacedName]:
        """Keys of every object store referred to, sorted by name, without repeats."""
        names = {
            name
            for name in (
                self.barman_object_name,
                self.recovery_barman_object_name,
                self.replica_source_barman_object_name,
            )
            if name
        }
        return [NamespacedName(self.namespace, name) for name in sorted(names)]

    def validate(self) -> None:
        """Raise ConfigurationError unless a barman object is referred to."""
        if not self.barman_object_name and not self.recovery_barman_object_name:
            raise ConfigurationError().with_message(
                "no reference to barmanObjectName have been included"
            )


@dataclass
class Plugin:
    """A plugin entry of a cluster with its parameters."""

    cluster: dict[str, Any]
    parameters: dict[str, str] = field(default_factory=dict)
    plugin_index: int = -1


def new_plugin(cluster: dict[str, Any], plugin_name: str) -> Plugin:
    """Find the named plugin among the cluster plugins; the last match wins."""
    result = Plugin(cluster=cluster)
    for index, entry in enumerate(_spec(cluster).get("plugins") or []):
        if entry.get("name") == plugin_name:
            result.plugin_index = index
            result.parameters = dict(entry.get("parameters") or {})
    return result


def get_recovery_source_plugin(cluster: dict[str, Any]) -> dict[str, Any] | None:
    """The plugin configuration of the cluster's recovery source, if any."""
    recovery = (_spec(cluster).get("bootstrap") or {}).get("recovery")
    if not recovery or not recovery.get("source"):
        return None
    external = _external_cluster(cluster, recovery["source"])
    if external is None:
        return None
    return external.get("plugin")


def get_replica_source_plugin(cluster: dict[str, Any]) -> dict[str, Any] | None:
    """The plugin configuration of the cluster's replica source, if any."""
    replica = _spec(cluster).get("replica")
    if not replica or not replica.get("source"):
        return None
    external = _external_cluster(cluster, replica["source"])
    if external is None:
        return None
    return external.get("plugin")


def _own_parameters(plugin: dict[str, Any] | None) -> dict[str, str] | None:
    if plugin is None or plugin.get("name") != PLUGIN_NAME:
        return None
    return plugin.get("parameters") or {}


def new_from_cluster(cluster: dict[str, Any]) -> PluginConfiguration:
    """Extract the plugin configuration from a cluster definition."""
    helper = new_plugin(cluster, PLUGIN_NAME)
    cluster_name = _name(cluster)

    server_name = cluster_name
    for entry in _spec(cluster).get("plugins") or []:
        if _is_enabled(entry) and entry.get("name") == PLUGIN_NAME:
            parameters = entry.get("parameters") or {}
            if "serverName" in parameters:
                server_name = parameters["serverName"]

    recovery_server_name = ""
    recovery_barman_object_name = ""
    recovery = _own_parameters(get_recovery_source_plugin(cluster))
    if recovery is not None:
        recovery_barman_object_name = recovery.get("barmanObjectName", "")
        recovery_server_name = recovery.get("serverName", "") or cluster_name

    replica_server_name = ""
    replica_barman_object_name = ""
    replica = _own_parameters(get_replica_source_plugin(cluster))
    if replica is not None:
        replica_barman_object_name = replica.get("barmanObjectName", "")
        replica_server_name = replica.get("serverName", "") or cluster_name

    return PluginConfiguration(
        cluster=cluster,
        barman_object_name=helper.parameters.get("barmanObjectName", ""),
        server_name=server_name,
        recovery_barman_object_name=recovery_barman_object_name,
        recovery_server_name=recovery_server_name,
        replica_source_barman_object_name=replica_barman_object_name,
        replica_source_server_name=replica_server_name,
    )


def new_from_cluster_json(cluster_json: str | bytes) -> PluginConfiguration:
    """Decode a JSON cluster definition and extract the plugin configuration."""
    cluster = json.loads(cluster_json)
    if not isinstance(cluster, dict):
        raise ValueError("cluster definition is not a JSON object")
    return new_from_cluster(cluster)