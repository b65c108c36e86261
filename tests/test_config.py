import json

import pytest

from barmancloud_plugin.config import (
    PLUGIN_NAME,
    ConfigurationError,
    PluginConfiguration,
    get_recovery_source_plugin,
    get_replica_source_plugin,
    new_from_cluster,
    new_from_cluster_json,
    new_plugin,
)
from barmancloud_plugin.kube import NamespacedName


def _cluster(**spec_extra):
    spec = {
        "bootstrap": {"recovery": {"source": "origin-server"}},
        "externalClusters": [
            {
                "name": "origin-server",
                "plugin": {
                    "name": PLUGIN_NAME,
                    "parameters": {"barmanObjectName": "minio-store-source"},
                },
            }
        ],
        "plugins": [
            {"name": PLUGIN_NAME, "parameters": {"barmanObjectName": "minio-store-dest"}}
        ],
    }
    spec.update(spec_extra)
    return {"metadata": {"name": "cluster-example", "namespace": "default"}, "spec": spec}


def test_backup_and_recovery_names():
    config = new_from_cluster(_cluster())
    assert config.barman_object_name == "minio-store-dest"
    assert config.server_name == "cluster-example"
    assert config.recovery_barman_object_name == "minio-store-source"
    assert config.recovery_server_name == "cluster-example"
    assert config.replica_source_barman_object_name == ""


def test_server_name_parameter_overrides_cluster_name():
    cluster = _cluster(
        plugins=[{"name": PLUGIN_NAME, "parameters": {"barmanObjectName": "a", "serverName": "srv"}}]
    )
    assert new_from_cluster(cluster).server_name == "srv"


def test_disabled_plugin_keeps_cluster_server_name():
    cluster = _cluster(
        plugins=[
            {
                "name": PLUGIN_NAME,
                "enabled": False,
                "parameters": {"barmanObjectName": "a", "serverName": "srv"},
            }
        ]
    )
    config = new_from_cluster(cluster)
    assert config.server_name == "cluster-example"
    assert config.barman_object_name == "a"


def test_recovery_from_another_plugin_is_ignored():
    cluster = _cluster()
    cluster["spec"]["externalClusters"][0]["plugin"]["name"] = "other"
    config = new_from_cluster(cluster)
    assert config.recovery_barman_object_name == ""
    assert config.recovery_server_name == ""


def test_replica_source_parameters():
    cluster = _cluster(replica={"source": "origin-server"})
    config = new_from_cluster(cluster)
    assert config.replica_source_barman_object_name == "minio-store-source"
    assert config.replica_source_server_name == "cluster-example"


def test_source_plugins_absent():
    cluster = _cluster(bootstrap={"recovery": {"source": "missing"}})
    assert get_recovery_source_plugin(cluster) is None
    assert get_replica_source_plugin(cluster) is None


def test_referred_keys_sorted_and_unique():
    cluster = _cluster(replica={"source": "origin-server"})
    keys = new_from_cluster(cluster).referred_barman_object_keys()
    assert keys == [
        NamespacedName("default", "minio-store-dest"),
        NamespacedName("default", "minio-store-source"),
    ]


def test_object_keys_use_cluster_namespace():
    config = new_from_cluster(_cluster())
    assert config.barman_object_key() == NamespacedName("default", "minio-store-dest")
    assert config.recovery_barman_object_key() == NamespacedName("default", "minio-store-source")
    assert config.replica_source_barman_object_key() == NamespacedName("default", "")


def test_validate_requires_an_object_name():
    with pytest.raises(ConfigurationError) as info:
        PluginConfiguration().validate()
    assert str(info.value) == "no reference to barmanObjectName have been included"


def test_validate_accepts_recovery_only():
    config = PluginConfiguration(recovery_barman_object_name="store")
    config.validate()
    assert config.referred_barman_object_keys() == [NamespacedName("", "store")]


def test_configuration_error_messages():
    error = ConfigurationError()
    assert error.is_empty()
    combined = error.with_message("a").with_message("b")
    assert not combined.is_empty()
    assert str(combined) == "a,b"
    assert error.is_empty()


def test_new_plugin_last_match_and_missing():
    cluster = _cluster(
        plugins=[
            {"name": PLUGIN_NAME, "parameters": {"barmanObjectName": "first"}},
            {"name": "other"},
            {"name": PLUGIN_NAME, "parameters": {"barmanObjectName": "second"}},
        ]
    )
    plugin = new_plugin(cluster, PLUGIN_NAME)
    assert plugin.plugin_index == 2
    assert plugin.parameters == {"barmanObjectName": "second"}
    assert new_plugin(cluster, "absent").plugin_index == -1


def test_from_json_matches_from_cluster():
    cluster = _cluster()
    assert new_from_cluster_json(json.dumps(cluster).encode()) == new_from_cluster(cluster)


@pytest.mark.parametrize("payload", [b"invalid-json", b"[1, 2]"])
def test_from_json_rejects_invalid(payload):
    with pytest.raises(ValueError):
        new_from_cluster_json(payload)