"""Owner references between Kubernetes objects."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any


def set_owner_reference(owner: Mapping[str, Any], controlled: MutableMapping[str, Any]) -> None:
    """Make ``owner`` the controlling owner of ``controlled``.

    The owner must carry its own apiVersion and kind, with an API group.
    """
    if not isinstance(owner, Mapping):
        raise TypeError(f"{type(owner).__name__} is not an object, cannot set owner reference")

    api_version = owner.get("apiVersion", "")
    group = api_version.rpartition("/")[0] if "/" in api_version else ""
    if not group:
        raise ValueError(
            f"{owner.get('kind') or type(owner).__name__} metadata have not been set, "
            "cannot set owner reference"
        )

    owner_metadata = owner.get("metadata") or {}
    controlled.setdefault("metadata", {})["ownerReferences"] = [
        {
            "apiVersion": api_version,
            "kind": owner.get("kind", ""),
            "name": owner_metadata.get("name", ""),
            "uid": owner_metadata.get("uid", ""),
            "blockOwnerDeletion": True,
            "controller": True,
        }
    ]