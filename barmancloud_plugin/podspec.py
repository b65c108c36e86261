"""Injecting the plugin sidecar into pod specifications, and JSON patches."""

from __future__ import annotations

import copy
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

SIDECAR_NAME = "plugin-barman-cloud"
SPOOL_DIRECTORY = "/controller/wal-restore-spool"
BARMAN_CERTIFICATES_VOLUME_NAME = "barman-certificates"
BARMAN_CERTIFICATES_PATH = "/barman-certificates"
PLUGIN_VOLUME_NAME = "plugins"
PLUGIN_MOUNT_PATH = "/plugins"
JOB_ROLE_LABEL_SUFFIX = "/jobRole"


@dataclass
class SidecarConfiguration:
    """Extra environment, certificates and resources for the sidecar."""

    env: list[dict[str, Any]] = field(default_factory=list)
    certificates: list[dict[str, Any]] = field(default_factory=list)
    resources: dict[str, Any] = field(default_factory=dict)


def ensure_volume(
    volumes: Iterable[Mapping[str, Any]] | None, volume: Mapping[str, Any]
) -> list[dict[str, Any]]:
    """Return the volumes with ``volume`` added, or replacing those of the same name."""
    result = []
    found = False
    for existing in volumes or []:
        if existing.get("name") == volume.get("name"):
            found = True
            result.append(dict(volume))
        else:
            result.append(dict(existing))
    if not found:
        result.append(dict(volume))
    return result


def ensure_volume_mount(
    mounts: Iterable[Mapping[str, Any]] | None, *args: Mapping[str, Any]
) -> list[dict[str, Any]]:
    """Return the mounts with each given mount added, or replacing the first of its name."""
    result = [dict(mount) for mount in mounts or []]
    for mount in args:
        index = next(
            (i for i, existing in enumerate(result) if existing.get("name") == mount.get("name")),
            None,
        )
        if index is None:
            result.append(dict(mount))
        else:
            result[index] = dict(mount)
    return result


def remove_volume(
    volumes: Iterable[Mapping[str, Any]] | None, name: str
) -> list[dict[str, Any]]:
    """Return the volumes without those called ``name``."""
    return [dict(volume) for volume in volumes or [] if volume.get("name") != name]


def remove_volume_mount(
    mounts: Iterable[Mapping[str, Any]] | None, name: str
) -> list[dict[str, Any]]:
    """Return the mounts without those called ``name``."""
    return [dict(mount) for mount in mounts or [] if mount.get("name") != name]


def _set_or_drop(target: dict[str, Any], key: str, items: list[Any]) -> None:
    if items:
        target[key] = items
    else:
        target.pop(key, None)


def inject_plugin_volume_pod_spec(spec: dict[str, Any], main_container_name: str) -> None:
    """Add the shared plugins volume and mount it in the main container."""
    if any(volume.get("name") == PLUGIN_VOLUME_NAME for volume in spec.get("volumes") or []):
        return

    spec["volumes"] = ensure_volume(
        spec.get("volumes"), {"name": PLUGIN_VOLUME_NAME, "emptyDir": {}}
    )
    for container in spec.get("containers") or []:
        if container.get("name") == main_container_name:
            container["volumeMounts"] = ensure_volume_mount(
                container.get("volumeMounts"),
                {"name": PLUGIN_VOLUME_NAME, "mountPath": PLUGIN_MOUNT_PATH},
            )


def inject_plugin_sidecar_pod_spec(
    spec: dict[str, Any], sidecar: Mapping[str, Any], main_container_name: str
) -> None:
    """Add the sidecar as an init container sharing the main container's mounts.

    Raises ValueError when the main container is not in the spec.
    """
    sidecar = copy.deepcopy(dict(sidecar))
    inject_plugin_volume_pod_spec(spec, main_container_name)

    main_found = False
    for container in spec.get("containers") or []:
        if container.get("name") == main_container_name:
            sidecar["volumeMounts"] = ensure_volume_mount(
                sidecar.get("volumeMounts"), *(container.get("volumeMounts") or [])
            )
            main_found = True
    if not main_found:
        raise ValueError("main container not found")

    init_containers = spec.get("initContainers") or []
    sidecar_found = False
    for index, container in enumerate(init_containers):
        if container.get("name") == sidecar.get("name"):
            sidecar_found = True
            init_containers[index] = copy.deepcopy(sidecar)
    if not sidecar_found:
        init_containers.append(sidecar)
    spec["initContainers"] = init_containers


def _group_version(cluster: Mapping[str, Any]) -> tuple[str, str]:
    api_version = cluster.get("apiVersion", "")
    if "/" in api_version:
        group, _, version = api_version.partition("/")
        return group, version
    return "", api_version


def _merge_env(env: list[dict[str, Any]], extra: Iterable[Mapping[str, Any]]) -> None:
    for variable in extra:
        if not any(existing.get("name") == variable.get("name") for existing in env):
            env.append(dict(variable))


def reconcile_pod_spec(
    cluster: Mapping[str, Any],
    spec: dict[str, Any],
    main_container_name: str,
    sidecar_template: Mapping[str, Any],
    config: SidecarConfiguration,
    sidecar_image: str,
) -> None:
    """Configure the plugin sidecar from ``sidecar_template`` and inject it into ``spec``."""
    metadata = cluster.get("metadata") or {}
    group, version = _group_version(cluster)
    envs = [
        {"name": "NAMESPACE", "value": metadata.get("namespace", "")},
        {"name": "CLUSTER_NAME", "value": metadata.get("name", "")},
        {"name": "SPOOL_DIRECTORY", "value": SPOOL_DIRECTORY},
        {"name": "CUSTOM_CNPG_GROUP", "value": group},
        {"name": "CUSTOM_CNPG_VERSION", "value": version},
        *config.env,
    ]

    sidecar = copy.deepcopy(dict(sidecar_template))
    sidecar["name"] = SIDECAR_NAME
    sidecar["image"] = sidecar_image
    pull_policy = (cluster.get("spec") or {}).get("imagePullPolicy", "")
    if pull_policy:
        sidecar["imagePullPolicy"] = pull_policy
    else:
        sidecar.pop("imagePullPolicy", None)
    sidecar["startupProbe"] = {
        "failureThreshold": 10,
        "timeoutSeconds": 10,
        "exec": {"command": ["/manager", "healthcheck", "unix"]},
    }
    sidecar["securityContext"] = {
        "allowPrivilegeEscalation": False,
        "runAsNonRoot": True,
        "privileged": False,
        "readOnlyRootFilesystem": True,
        "seccompProfile": {"type": "RuntimeDefault"},
        "capabilities": {"drop": ["ALL"]},
    }
    sidecar["restartPolicy"] = "Always"
    sidecar["resources"] = copy.deepcopy(config.resources)

    env = list(sidecar.get("env") or [])
    main = next(
        (c for c in spec.get("containers") or [] if c.get("name") == main_container_name),
        None,
    )
    if main is not None:
        _merge_env(env, main.get("env") or [])
    _merge_env(env, envs)
    _set_or_drop(sidecar, "env", env)

    if config.certificates:
        sidecar["volumeMounts"] = ensure_volume_mount(
            sidecar.get("volumeMounts"),
            {"name": BARMAN_CERTIFICATES_VOLUME_NAME, "mountPath": BARMAN_CERTIFICATES_PATH},
        )
        spec["volumes"] = ensure_volume(
            spec.get("volumes"),
            {
                "name": BARMAN_CERTIFICATES_VOLUME_NAME,
                "projected": {"sources": copy.deepcopy(config.certificates)},
            },
        )
    else:
        _set_or_drop(
            sidecar,
            "volumeMounts",
            remove_volume_mount(sidecar.get("volumeMounts"), BARMAN_CERTIFICATES_VOLUME_NAME),
        )
        _set_or_drop(
            spec, "volumes", remove_volume(spec.get("volumes"), BARMAN_CERTIFICATES_VOLUME_NAME)
        )

    inject_plugin_sidecar_pod_spec(spec, sidecar, main_container_name)


def get_cnpg_job_role(job: Mapping[str, Any]) -> str:
    """The role of a job, from its pod template label ending in ``/jobRole``."""
    template = (job.get("spec") or {}).get("template") or {}
    labels = (template.get("metadata") or {}).get("labels") or {}
    return next(
        (value for key, value in labels.items() if key.endswith(JOB_ROLE_LABEL_SUFFIX)), ""
    )


def _pointer(path: str, token: Any) -> str:
    return f"{path}/{str(token).replace('~', '~0').replace('/', '~1')}"


def _diff(original: Any, modified: Any, path: str, ops: list[dict[str, Any]]) -> None:
    if isinstance(original, dict) and isinstance(modified, dict):
        for key in original:
            if key not in modified:
                ops.append({"op": "remove", "path": _pointer(path, key)})
        for key, value in modified.items():
            if key not in original:
                ops.append({"op": "add", "path": _pointer(path, key), "value": value})
            else:
                _diff(original[key], value, _pointer(path, key), ops)
    elif (
        isinstance(original, list)
        and isinstance(modified, list)
        and len(original) == len(modified)
    ):
        for index, (before, after) in enumerate(zip(original, modified)):
            _diff(before, after, _pointer(path, index), ops)
    elif type(original) is not type(modified) or original != modified:
        ops.append({"op": "replace", "path": path, "value": modified})


def create_patch(modified: Mapping[str, Any], original: Mapping[str, Any]) -> bytes:
    """A JSON patch, as bytes, turning ``original`` into ``modified``."""
    ops: list[dict[str, Any]] = []
    _diff(dict(original), dict(modified), "", ops)
    return json.dumps(ops).encode()