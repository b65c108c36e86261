from barmancloud_plugin.identity import OperatorIdentity, RestoreIdentity, ServiceType
from barmancloud_plugin.kube import NamespacedName


def test_operator_capabilities():
    assert OperatorIdentity().get_plugin_capabilities() == [
        ServiceType.RECONCILER_HOOKS,
        ServiceType.LIFECYCLE_SERVICE,
    ]


def test_restore_capabilities():
    identity = RestoreIdentity(barman_object_key=NamespacedName("default", "store"))
    assert identity.get_plugin_capabilities() == [
        ServiceType.RESTORE_JOB,
        ServiceType.WAL_SERVICE,
    ]


def test_capabilities_do_not_overlap():
    operator = set(OperatorIdentity().get_plugin_capabilities())
    restore = set(RestoreIdentity().get_plugin_capabilities())
    assert operator.isdisjoint(restore)
    assert operator | restore == set(ServiceType)


def test_probe_reports_ready():
    assert OperatorIdentity().probe() is True
    assert RestoreIdentity().probe() is True


def test_service_type_wire_names():
    assert ServiceType.RECONCILER_HOOKS.value == "TYPE_RECONCILER_HOOKS"
    assert ServiceType("TYPE_WAL_SERVICE") is ServiceType.WAL_SERVICE