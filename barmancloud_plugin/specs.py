"""Kubernetes objects the plugin creates for a cluster."""

from __future__ import annotations

from typing import Any

_CREDENTIAL_FIELDS = (
    ("s3Credentials", ("accessKeyId", "secretAccessKey", "region", "sessionToken")),
    (
        "azureCredentials",
        ("connectionString", "storageAccount", "storageKey", "storageSasToken"),
    ),
    ("googleCredentials", ("applicationCredentials",)),
)


def get_rbac_name(cluster_name: str) -> str:
    """Name of the RBAC objects of the plugin for a cluster."""
    return f"{cluster_name}-barman-cloud"


def collect_secret_names_from_credentials(credentials: dict[str, Any]) -> list[str]:
    """Names of the secrets referred to by a set of object store credentials."""
    names = []
    for provider, fields in _CREDENTIAL_FIELDS:
        provider_credentials = credentials.get(provider)
        if provider_credentials is None:
            continue
        for name in fields:
            reference = provider_credentials.get(name)
            if reference is not None:
                names.append(reference.get("name", ""))
    return names


def _metadata(cluster: dict[str, Any]) -> dict[str, Any]:
    return cluster.get("metadata") or {}


def build_role(cluster: dict[str, Any], barman_objects: list[dict[str, Any]]) -> dict[str, Any]:
    """The Role granting the cluster access to its object stores and secrets."""
    metadata = _metadata(cluster)
    object_names: set[str] = set()
    secret_names: set[str] = set()
    for barman_object in barman_objects:
        object_names.add((barman_object.get("metadata") or {}).get("name", ""))
        configuration = (barman_object.get("spec") or {}).get("configuration") or {}
        secret_names.update(collect_secret_names_from_credentials(configuration))

    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "Role",
        "metadata": {
            "namespace": metadata.get("namespace", ""),
            "name": get_rbac_name(metadata.get("name", "")),
        },
        "rules": [
            {
                "apiGroups": ["barmancloud.cnpg.io"],
                "resources": ["objectstores"],
                "verbs": ["get", "watch", "list"],
                "resourceNames": sorted(object_names),
            },
            {
                "apiGroups": ["barmancloud.cnpg.io"],
                "resources": ["objectstores/status"],
                "verbs": ["update"],
                "resourceNames": sorted(object_names),
            },
            {
                "apiGroups": [""],
                "resources": ["secrets"],
                "verbs": ["get", "watch", "list"],
                "resourceNames": sorted(secret_names),
            },
        ],
    }


def build_role_binding(cluster: dict[str, Any]) -> dict[str, Any]:
    """The RoleBinding tying the cluster service account to its Role."""
    metadata = _metadata(cluster)
    name = metadata.get("name", "")
    namespace = metadata.get("namespace", "")
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "RoleBinding",
        "metadata": {"namespace": namespace, "name": get_rbac_name(name)},
        "subjects": [
            {
                "kind": "ServiceAccount",
                "apiGroup": "",
                "name": name,
                "namespace": namespace,
            }
        ],
        "roleRef": {
            "apiGroup": "rbac.authorization.k8s.io",
            "kind": "Role",
            "name": get_rbac_name(name),
        },
    }