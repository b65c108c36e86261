"""Reconciler hooks that keep the RBAC objects of a cluster in place."""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any

from barmancloud_plugin.config import new_from_cluster
from barmancloud_plugin.kube import MemoryClient, NamespacedName, NotFoundError
from barmancloud_plugin.ownership import set_owner_reference
from barmancloud_plugin.specs import build_role, build_role_binding, get_rbac_name

logger = logging.getLogger(__name__)

OBJECT_STORE_KIND = "ObjectStore"
ROLE_KIND = "Role"
ROLE_BINDING_KIND = "RoleBinding"


class Behavior(enum.Enum):
    """What the operator should do after a hook ran."""

    CONTINUE = "BEHAVIOR_CONTINUE"
    REQUEUE = "BEHAVIOR_REQUEUE"


@dataclass
class ReconcilerHooksRequest:
    """A resource the operator is reconciling, in its JSON form."""

    resource_definition: bytes | str = b""


def _decode_object(data: bytes | str) -> dict[str, Any]:
    obj = json.loads(data)
    if not isinstance(obj, dict):
        raise ValueError("resource definition is not a JSON object")
    return obj


@dataclass
class ReconcilerImplementation:
    """Runs before and after the operator reconciles a cluster."""

    client: MemoryClient

    def get_capabilities(self) -> list[str]:
        """The kinds of resources the hooks are called for."""
        return ["CLUSTER", "BACKUP"]

    def pre(self, request: ReconcilerHooksRequest) -> Behavior:
        """Ensure the Role and RoleBinding of a cluster before it is reconciled.

        Asks for a requeue while a referred object store does not exist yet.
        """
        logger.info("pre hook reconciliation start")
        resource = _decode_object(request.resource_definition)
        if resource.get("kind", "") != "Cluster":
            return Behavior.CONTINUE

        cluster = resource
        metadata = cluster.get("metadata") or {}
        namespace = metadata.get("namespace", "")
        plugin_configuration = new_from_cluster(cluster)

        barman_objects = []
        for key in plugin_configuration.referred_barman_object_keys():
            try:
                barman_objects.append(self.client.get(OBJECT_STORE_KIND, key))
            except NotFoundError:
                logger.info(
                    "barman object configuration %s not found in %s, requeuing",
                    key.name,
                    namespace,
                )
                return Behavior.REQUEUE

        self._ensure_role(cluster, barman_objects)
        self._ensure_role_binding(cluster)

        logger.info("pre hook reconciliation completed")
        return Behavior.CONTINUE

    def post(self, request: ReconcilerHooksRequest) -> Behavior:
        """Nothing to do after reconciliation."""
        return Behavior.CONTINUE

    def _ensure_role(self, cluster: dict[str, Any], barman_objects: list[dict[str, Any]]) -> None:
        new_role = build_role(cluster, barman_objects)
        key = NamespacedName.of(new_role)
        try:
            role = self.client.get(ROLE_KIND, key)
        except NotFoundError:
            logger.info("creating role %s", key)
            set_owner_reference(cluster, new_role)
            self.client.create(ROLE_KIND, new_role)
            return

        if role.get("rules") == new_role["rules"]:
            return

        logger.info("patching role %s", key)
        role["rules"] = new_role["rules"]
        self.client.patch(ROLE_KIND, role)

    def _ensure_role_binding(self, cluster: dict[str, Any]) -> None:
        metadata = cluster.get("metadata") or {}
        key = NamespacedName(metadata.get("namespace", ""), get_rbac_name(metadata.get("name", "")))
        try:
            self.client.get(ROLE_BINDING_KIND, key)
        except NotFoundError:
            role_binding = build_role_binding(cluster)
            set_owner_reference(cluster, role_binding)
            self.client.create(ROLE_BINDING_KIND, role_binding)