"""Lifecycle hooks that add the plugin sidecar to instance pods and recovery jobs."""

from __future__ import annotations

import copy
import json
import logging
import posixpath
from dataclasses import dataclass
from typing import Any

from barmancloud_plugin.config import (
    PLUGIN_NAME,
    ConfigurationError,
    PluginConfiguration,
    get_recovery_source_plugin,
    new_from_cluster,
)
from barmancloud_plugin.kube import MemoryClient, NamespacedName
from barmancloud_plugin.podspec import (
    SidecarConfiguration,
    create_patch,
    get_cnpg_job_role,
    reconcile_pod_spec,
)

logger = logging.getLogger(__name__)

OBJECT_STORE_KIND = "ObjectStore"
BARMAN_CERTIFICATES_FILE_NAME = "barman-ca.crt"
RECOVERY_JOB_ROLES = ("full-recovery", "snapshot-recovery")


@dataclass
class OperatorLifecycleRequest:
    """A request to review an object before the operator creates or evaluates it."""

    object_definition: bytes | str = b""
    cluster_definition: bytes | str = b""
    operation_type: str | None = "CREATE"


@dataclass
class OperatorLifecycleResponse:
    """The JSON patch to apply to the reviewed object."""

    json_patch: bytes


def _decode_object(data: bytes | str, what: str) -> dict[str, Any]:
    obj = json.loads(data)
    if not isinstance(obj, dict):
        raise ValueError(f"{what} is not a JSON object")
    return obj


def _decode_job(data: bytes | str) -> dict[str, Any]:
    job = _decode_object(data, "job definition")
    if job.get("kind") != "Job" or job.get("apiVersion") != "batch/v1":
        raise ValueError(
            f"expected batch/v1 Job, got {job.get('apiVersion', '')} {job.get('kind', '')}"
        )
    return job


def reconcile_job(
    cluster: dict[str, Any],
    request: OperatorLifecycleRequest,
    config: SidecarConfiguration,
    sidecar_image: str,
) -> OperatorLifecycleResponse | None:
    """Patch a recovery job so that it runs the restore sidecar.

    Returns None when the cluster does not recover through this plugin
    or the job is not a recovery job.
    """
    plugin = get_recovery_source_plugin(cluster)
    if plugin is None or plugin.get("name") != PLUGIN_NAME:
        logger.debug("cluster does not use this plugin for recovery, skipping")
        return None

    job = _decode_job(request.object_definition)
    job_name = (job.get("metadata") or {}).get("name", "")

    job_role = get_cnpg_job_role(job)
    if job_role not in RECOVERY_JOB_ROLES:
        logger.debug("job %s is not a recovery job, skipping", job_name)
        return None

    mutated = copy.deepcopy(job)
    pod_spec = mutated.setdefault("spec", {}).setdefault("template", {}).setdefault("spec", {})
    try:
        reconcile_pod_spec(cluster, pod_spec, job_role, {"args": ["restore"]}, config, sidecar_image)
    except ValueError as err:
        raise ValueError(f"while reconciling pod spec for job: {err}") from err

    patch = create_patch(mutated, job)
    logger.debug("generated patch for job %s: %s", job_name, patch.decode())
    return OperatorLifecycleResponse(json_patch=patch)


def reconcile_pod(
    cluster: dict[str, Any],
    request: OperatorLifecycleRequest,
    plugin_configuration: PluginConfiguration,
    config: SidecarConfiguration,
    sidecar_image: str,
) -> OperatorLifecycleResponse:
    """Patch an instance pod so that it runs the instance sidecar."""
    pod = _decode_object(request.object_definition, "pod definition")
    pod_name = (pod.get("metadata") or {}).get("name", "")
    mutated = copy.deepcopy(pod)

    if (
        plugin_configuration.barman_object_name
        or plugin_configuration.replica_source_barman_object_name
    ):
        try:
            reconcile_pod_spec(
                cluster,
                mutated.setdefault("spec", {}),
                "postgres",
                {"args": ["instance"]},
                config,
                sidecar_image,
            )
        except ValueError as err:
            raise ValueError(f"while reconciling pod spec for pod: {err}") from err
    else:
        logger.debug("no need to mutate pod %s without backup or archiving", pod_name)

    patch = create_patch(mutated, pod)
    logger.debug("generated patch for pod %s: %s", pod_name, patch.decode())
    return OperatorLifecycleResponse(json_patch=patch)


@dataclass
class LifecycleImplementation:
    """Handles the operator lifecycle hooks, reading object stores through ``client``."""

    client: MemoryClient
    sidecar_image: str = ""

    def get_capabilities(self) -> list[dict[str, Any]]:
        """The kinds and operations this plugin wants to review."""
        return [
            {"group": "", "kind": "Pod", "operationTypes": ["CREATE", "EVALUATE"]},
            {"group": "batch", "kind": "Job", "operationTypes": ["CREATE"]},
        ]

    def lifecycle_hook(
        self, request: OperatorLifecycleRequest
    ) -> OperatorLifecycleResponse | None:
        """Review a pod or job; None when the plugin is not configured for the cluster."""
        logger.info("lifecycle hook reconciliation start")
        if request.operation_type is None:
            raise ValueError("no operation set")

        kind = _decode_object(request.object_definition, "object definition").get("kind", "")
        cluster = _decode_object(request.cluster_definition, "cluster definition")
        plugin_configuration = new_from_cluster(cluster)

        try:
            plugin_configuration.validate()
        except ConfigurationError as err:
            logger.info("plugin configuration invalid, skipping lifecycle: %s", err)
            return None

        if kind == "Pod":
            return self._reconcile_pod(cluster, request, plugin_configuration)
        if kind == "Job":
            return self._reconcile_job(cluster, request, plugin_configuration)
        raise ValueError(f"unsupported kind: {kind}")

    def _sidecar_configuration(
        self,
        cluster: dict[str, Any],
        plugin_configuration: PluginConfiguration,
        resources: dict[str, Any],
    ) -> SidecarConfiguration:
        namespace = (cluster.get("metadata") or {}).get("namespace", "")
        return SidecarConfiguration(
            env=self.collect_additional_envs(namespace, plugin_configuration),
            certificates=self.collect_additional_certificates(plugin_configuration),
            resources=resources,
        )

    def _reconcile_job(
        self,
        cluster: dict[str, Any],
        request: OperatorLifecycleRequest,
        plugin_configuration: PluginConfiguration,
    ) -> OperatorLifecycleResponse | None:
        config = self._sidecar_configuration(
            cluster,
            plugin_configuration,
            self.collect_sidecar_resources_for_recovery_job(plugin_configuration),
        )
        return reconcile_job(cluster, request, config, self.sidecar_image)

    def _reconcile_pod(
        self,
        cluster: dict[str, Any],
        request: OperatorLifecycleRequest,
        plugin_configuration: PluginConfiguration,
    ) -> OperatorLifecycleResponse:
        config = self._sidecar_configuration(
            cluster,
            plugin_configuration,
            self.collect_sidecar_resources_for_pod(plugin_configuration),
        )
        return reconcile_pod(cluster, request, plugin_configuration, config, self.sidecar_image)

    def _object_store(self, key: NamespacedName) -> dict[str, Any]:
        return self.client.get(OBJECT_STORE_KIND, key)

    @staticmethod
    def _sidecar_settings(object_store: dict[str, Any]) -> dict[str, Any]:
        return (object_store.get("spec") or {}).get("instanceSidecarConfiguration") or {}

    def collect_additional_envs(
        self, namespace: str, plugin_configuration: PluginConfiguration
    ) -> list[dict[str, Any]]:
        """Sidecar environment variables of every object store the cluster uses."""
        names = (
            plugin_configuration.barman_object_name,
            plugin_configuration.recovery_barman_object_name,
            plugin_configuration.replica_source_barman_object_name,
        )
        return [
            variable
            for name in names
            if name
            for variable in self._sidecar_settings(
                self._object_store(NamespacedName(namespace, name))
            ).get("env")
            or []
        ]

    def collect_additional_certificates(
        self, plugin_configuration: PluginConfiguration
    ) -> list[dict[str, Any]]:
        """Secret projections of the endpoint CAs of the referred object stores."""
        projections = []
        for store_key in plugin_configuration.referred_barman_object_keys():
            configuration = (
                (self._object_store(store_key).get("spec") or {}).get("configuration") or {}
            )
            endpoint_ca = configuration.get("endpointCA")
            if endpoint_ca is None:
                continue
            ca_name = endpoint_ca.get("name", "")
            ca_entry = endpoint_ca.get("key", "")
            item_path = posixpath.join(store_key.name, BARMAN_CERTIFICATES_FILE_NAME)
            ca_source = {
                "name": ca_name,
                "items": [{"key": ca_entry, "path": item_path}],
            }
            projections.append({"secret": ca_source})
        return projections

    def collect_sidecar_resources_for_recovery_job(
        self, configuration: PluginConfiguration
    ) -> dict[str, Any]:
        """Sidecar resources of the recovery object store, if there is one."""
        if configuration.recovery_barman_object_name:
            store = self._object_store(configuration.recovery_barman_object_key())
            return self._sidecar_settings(store).get("resources") or {}
        return {}

    def collect_sidecar_resources_for_pod(
        self, configuration: PluginConfiguration
    ) -> dict[str, Any]:
        """Sidecar resources of the archiving object store, else of the recovery one."""
        if configuration.barman_object_name:
            store = self._object_store(configuration.barman_object_key())
            return self._sidecar_settings(store).get("resources") or {}
        if configuration.recovery_barman_object_name:
            store = self._object_store(configuration.recovery_barman_object_key())
            return self._sidecar_settings(store).get("resources") or {}
        return {}