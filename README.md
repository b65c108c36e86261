# barmancloud-plugin

Plugin logic for backing up and restoring PostgreSQL clusters to cloud
object stores. Every object is a plain Python dictionary in the JSON form of
a Kubernetes object. The package covers:

- reading the plugin configuration out of a cluster definition
  (`barmancloud_plugin.config`);
- building the Role and RoleBinding a cluster needs (`barmancloud_plugin.specs`)
  and setting owner references (`barmancloud_plugin.ownership`);
- injecting the backup sidecar into instance pods and recovery jobs and
  producing the JSON patch for it (`barmancloud_plugin.podspec`,
  `barmancloud_plugin.lifecycle`);
- answering identity and reconciler-hook requests (`barmancloud_plugin.identity`,
  `barmancloud_plugin.reconciler`);
- restore-side helpers for the WAL directory and backup catalogs
  (`barmancloud_plugin.restore`);
- an in-memory object store with Kubernetes-like errors (`barmancloud_plugin.kube`).

## Installation

```
pip install .
```

With the test dependencies:

```
pip install ".[test]"
```

## Reading the configuration

```python
from barmancloud_plugin.config import new_from_cluster

cluster = {
    "apiVersion": "postgresql.cnpg.io/v1",
    "kind": "Cluster",
    "metadata": {"name": "pg", "namespace": "default"},
    "spec": {
        "plugins": [
            {
                "name": "barman-cloud.cloudnative-pg.io",
                "parameters": {"barmanObjectName": "minio-store"},
            }
        ]
    },
}

configuration = new_from_cluster(cluster)
configuration.validate()   # raises ConfigurationError when no object store is referred to
print(configuration.referred_barman_object_keys())
# [NamespacedName(namespace='default', name='minio-store')]
```

`new_from_cluster_json` does the same from a JSON string or bytes. The
recovery and replica-source object stores are read from the external cluster
named by `spec.bootstrap.recovery.source` and `spec.replica.source`, when that
external cluster uses this plugin.

## Building RBAC objects

```python
from barmancloud_plugin.specs import build_role, build_role_binding, get_rbac_name

role = build_role(cluster, object_stores)   # object_stores: list of ObjectStore dicts
binding = build_role_binding(cluster)
assert role["metadata"]["name"] == get_rbac_name("pg") == "pg-barman-cloud"
```

The Role grants read access to the named object stores, update access to
their status, and read access to the secrets their credentials refer to
(`collect_secret_names_from_credentials`).

## Lifecycle hooks

`LifecycleImplementation(client, sidecar_image)` takes a client with `get`,
`create` and `patch` methods, such as `barmancloud_plugin.kube.MemoryClient`,
from which it reads `ObjectStore` objects. Pass an `OperatorLifecycleRequest`
holding the object and cluster definitions as JSON to `lifecycle_hook`:

- for a `Pod`, the result is an `OperatorLifecycleResponse` whose `json_patch`
  adds the `plugin-barman-cloud` init container running `instance`;
- for a `Job` whose role is `full-recovery` or `snapshot-recovery`, on a
  cluster recovering through this plugin, the patch adds the sidecar running
  `restore`; other jobs give `None`;
- when the cluster refers to no object store, the result is `None`;
- any other kind raises `ValueError`.

`get_capabilities` lists the kinds and operations the hook wants to see.

## Reconciler hooks

`ReconcilerImplementation(client).pre(ReconcilerHooksRequest(...))` makes sure
the Role and RoleBinding of a cluster exist, patching the Role's rules when
they changed. It returns `Behavior.REQUEUE` while an object store the cluster
refers to is missing, and `Behavior.CONTINUE` otherwise. `post` always
returns `Behavior.CONTINUE`.

## Identity

`OperatorIdentity` and `RestoreIdentity` report their capabilities as
`ServiceType` members and answer `probe()` with `True`.

## Restore helpers

`restore_custom_wal_dir(pg_data_path, wal_folder)` moves the contents of
`pg_wal` into a separate WAL directory and replaces `pg_wal` with a symlink to
it, returning whether anything changed. `shortened_catalog` reduces a list of
catalog entries to `ShortBackupCatalogEntry` items for logging.

## What this package does not do

It has no command-line program, no gRPC server and no client for a live
Kubernetes API: callers supply the client object. It does not download
backup catalogs, fetch WAL files or run the restore of a data directory; only
the helpers listed above are included.

## Running the tests

```
pytest
```