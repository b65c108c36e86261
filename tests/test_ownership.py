import pytest

from barmancloud_plugin.ownership import set_owner_reference

OWNER = {
    "apiVersion": "postgresql.cnpg.io/v1",
    "kind": "Cluster",
    "metadata": {"name": "pg", "namespace": "db", "uid": "uid-1"},
}


def test_sets_controller_reference():
    role = {"metadata": {"name": "pg-barman-cloud"}}
    set_owner_reference(OWNER, role)
    assert role["metadata"]["ownerReferences"] == [
        {
            "apiVersion": "postgresql.cnpg.io/v1",
            "kind": "Cluster",
            "name": "pg",
            "uid": "uid-1",
            "blockOwnerDeletion": True,
            "controller": True,
        }
    ]


def test_replaces_existing_references():
    role = {"metadata": {"ownerReferences": [{"name": "old"}, {"name": "older"}]}}
    set_owner_reference(OWNER, role)
    assert [ref["name"] for ref in role["metadata"]["ownerReferences"]] == ["pg"]


def test_creates_metadata_when_missing():
    role = {}
    set_owner_reference(OWNER, role)
    assert role["metadata"]["ownerReferences"][0]["kind"] == "Cluster"


@pytest.mark.parametrize("api_version", ["v1", ""])
def test_owner_without_group_is_rejected(api_version):
    owner = dict(OWNER, apiVersion=api_version)
    role = {"metadata": {}}
    with pytest.raises(ValueError):
        set_owner_reference(owner, role)
    assert "ownerReferences" not in role["metadata"]


def test_owner_must_be_an_object():
    with pytest.raises(TypeError):
        set_owner_reference(["not", "an", "object"], {})