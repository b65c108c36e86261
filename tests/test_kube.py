import pytest

from barmancloud_plugin.kube import (
    AlreadyExistsError,
    MemoryClient,
    NamespacedName,
    NotFoundError,
)


def _role(name="r", namespace="ns", rules=None):
    return {"metadata": {"name": name, "namespace": namespace}, "rules": rules or []}


def test_namespaced_name_string_form():
    assert str(NamespacedName(namespace="default", name="store")) == "default/store"


def test_namespaced_name_of_object():
    assert NamespacedName.of(_role("a", "b")) == NamespacedName("b", "a")


def test_create_then_get_round_trip():
    client = MemoryClient()
    role = _role(rules=[{"verbs": ["get"]}])
    client.create("Role", role)
    assert client.get("Role", NamespacedName("ns", "r")) == role


def test_get_missing_raises_not_found():
    client = MemoryClient()
    with pytest.raises(NotFoundError) as info:
        client.get("Role", NamespacedName("ns", "missing"))
    assert info.value.key == NamespacedName("ns", "missing")


def test_kind_is_part_of_the_key():
    client = MemoryClient([("Role", _role())])
    with pytest.raises(NotFoundError):
        client.get("RoleBinding", NamespacedName("ns", "r"))


def test_create_twice_raises_already_exists():
    client = MemoryClient()
    client.create("Role", _role())
    with pytest.raises(AlreadyExistsError):
        client.create("Role", _role())


def test_get_returns_independent_copy():
    client = MemoryClient([("Role", _role())])
    fetched = client.get("Role", NamespacedName("ns", "r"))
    fetched["rules"].append({"verbs": ["delete"]})
    assert client.get("Role", NamespacedName("ns", "r"))["rules"] == []


def test_patch_replaces_object():
    client = MemoryClient([("Role", _role())])
    updated = _role(rules=[{"verbs": ["list"]}])
    client.patch("Role", updated)
    assert client.get("Role", NamespacedName("ns", "r")) == updated


def test_patch_missing_raises_not_found():
    client = MemoryClient()
    with pytest.raises(NotFoundError):
        client.patch("Role", _role())