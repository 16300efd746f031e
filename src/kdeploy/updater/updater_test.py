from typing import Any
from unittest.mock import MagicMock

import pytest
from kubernetes.client import AppsV1Api, CoreV1Api
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError

from kdeploy.errors import ClusterAPIError
from kdeploy.manifest import Manifest, ManifestDocument
from kdeploy.registry import ResourceKindBinding, ResourceOperations
from kdeploy.updater import ResourceManager, ResourceUpdateMonitor, UpdaterState
from kdeploy.updater.typed import ServiceUpdater, TypedResourceUpdater

DEPLOYMENT = ResourceKindBinding(
    api_version="apps/v1",
    kind="Deployment",
    api=AppsV1Api,
    operations=ResourceOperations.namespaced("deployment"),
    namespaced=True,
    updater_factory=TypedResourceUpdater,
)

NAMESPACE = ResourceKindBinding(
    api_version="v1",
    kind="Namespace",
    api=CoreV1Api,
    operations=ResourceOperations.cluster("namespace"),
    namespaced=False,
    updater_factory=TypedResourceUpdater,
)

SERVICE = ResourceKindBinding(
    api_version="v1",
    kind="Service",
    api=CoreV1Api,
    operations=ResourceOperations.namespaced("service"),
    namespaced=True,
    updater_factory=ServiceUpdater,
)


class RecordingMonitor(ResourceUpdateMonitor):
    def __init__(self) -> None:
        self.updates: list[tuple[str, Any, Any]] = []

    def on_update(self, binding: ResourceKindBinding, original: Any, current: Any) -> None:
        self.updates.append((binding.kind, original, current))


def _document(kind: str, name: str, namespace: str | None = None, **extra: Any) -> ManifestDocument:
    metadata: dict[str, Any] = {"name": name}
    if namespace:
        metadata["namespace"] = namespace
    return ManifestDocument(Manifest({"apiVersion": "v1", "kind": kind, "metadata": metadata, **extra}))


@pytest.fixture
def api() -> MagicMock:
    return MagicMock()


@pytest.fixture
def monitor() -> RecordingMonitor:
    return RecordingMonitor()


@pytest.fixture
def manager(api: MagicMock, monitor: RecordingMonitor) -> ResourceManager:
    return ResourceManager(MagicMock(), monitor, api_factory=lambda api_class: api)


def test__create_or_apply__creates_absent_resource(
    api: MagicMock, manager: ResourceManager, monitor: RecordingMonitor
) -> None:
    api.read_namespaced_deployment.side_effect = ApiException(status=404, reason="Not Found")
    document = _document("Deployment", "web", "demo")

    updater = DEPLOYMENT.new_updater(manager, document)
    result = updater.create_or_apply()

    api.read_namespaced_deployment.assert_called_once_with(name="web", namespace="demo")
    api.create_namespaced_deployment.assert_called_once_with(body=document.manifest, namespace="demo")
    api.replace_namespaced_deployment.assert_not_called()
    assert result is api.create_namespaced_deployment.return_value
    assert monitor.updates == [("Deployment", None, result)]
    assert updater.state == UpdaterState.NOTIFIED


def test__create_or_apply__replaces_present_resource(
    api: MagicMock, manager: ResourceManager, monitor: RecordingMonitor
) -> None:
    current = api.read_namespaced_deployment.return_value
    document = _document("Deployment", "web", "demo")

    result = DEPLOYMENT.new_updater(manager, document).create_or_apply()

    api.replace_namespaced_deployment.assert_called_once_with(name="web", body=document.manifest, namespace="demo")
    api.create_namespaced_deployment.assert_not_called()
    assert monitor.updates == [("Deployment", current, result)]


def test__create_or_apply__cluster_scoped_resource(api: MagicMock, manager: ResourceManager) -> None:
    api.read_namespace.side_effect = ApiException(status=404)
    document = _document("Namespace", "demo")

    NAMESPACE.new_updater(manager, document).create_or_apply()

    api.read_namespace.assert_called_once_with(name="demo")
    api.create_namespace.assert_called_once_with(body=document.manifest)


def test__create_or_apply__defaults_to_default_namespace(api: MagicMock, manager: ResourceManager) -> None:
    DEPLOYMENT.new_updater(manager, _document("Deployment", "web")).create_or_apply()
    api.read_namespaced_deployment.assert_called_once_with(name="web", namespace="default")


def test__create_or_apply__sends_a_copy_of_the_manifest(api: MagicMock, manager: ResourceManager) -> None:
    api.read_namespaced_deployment.side_effect = ApiException(status=404)
    document = _document("Deployment", "web", "demo")

    DEPLOYMENT.new_updater(manager, document).create_or_apply()

    body = api.create_namespaced_deployment.call_args.kwargs["body"]
    assert body == document.manifest
    assert body is not document.manifest


def test__create_or_apply__fetch_error_aborts(api: MagicMock, manager: ResourceManager) -> None:
    api.read_namespaced_deployment.side_effect = ApiException(status=403, reason="Forbidden")
    updater = DEPLOYMENT.new_updater(manager, _document("Deployment", "web", "demo"))

    with pytest.raises(ClusterAPIError) as excinfo:
        updater.create_or_apply()

    assert excinfo.value.operation == "read"
    assert excinfo.value.status == 403
    assert excinfo.value.reason == "Forbidden"
    assert str(excinfo.value) == "Failed to read Deployment demo/web (status 403): Forbidden"
    api.create_namespaced_deployment.assert_not_called()
    api.replace_namespaced_deployment.assert_not_called()
    assert updater.state == UpdaterState.UNRESOLVED


def test__create_or_apply__create_error_uses_status_message(api: MagicMock, manager: ResourceManager) -> None:
    api.read_namespaced_deployment.side_effect = ApiException(status=404)
    error = ApiException(status=422, reason="Unprocessable Entity")
    error.body = '{"kind": "Status", "message": "spec.selector: Required value"}'
    api.create_namespaced_deployment.side_effect = error

    with pytest.raises(ClusterAPIError) as excinfo:
        DEPLOYMENT.new_updater(manager, _document("Deployment", "web", "demo")).create_or_apply()

    assert excinfo.value.operation == "create"
    assert excinfo.value.reason == "spec.selector: Required value"


def test__create_or_apply__monitor_failure_does_not_abort(api: MagicMock) -> None:
    monitor = MagicMock()
    monitor.on_update.side_effect = RuntimeError("boom")
    manager = ResourceManager(MagicMock(), monitor, api_factory=lambda api_class: api)

    updater = DEPLOYMENT.new_updater(manager, _document("Deployment", "web", "demo"))
    updater.create_or_apply()

    assert updater.state == UpdaterState.NOTIFIED


def test__delete__absent_resource_is_a_no_op(api: MagicMock, manager: ResourceManager) -> None:
    api.read_namespaced_deployment.side_effect = ApiException(status=404)

    updater = DEPLOYMENT.new_updater(manager, _document("Deployment", "web", "demo"))
    updater.delete()

    api.delete_namespaced_deployment.assert_not_called()
    assert updater.state == UpdaterState.DELETED


def test__delete__present_resource(api: MagicMock, manager: ResourceManager) -> None:
    updater = DEPLOYMENT.new_updater(manager, _document("Deployment", "web", "demo"))
    updater.delete()

    api.delete_namespaced_deployment.assert_called_once_with(name="web", namespace="demo")
    assert updater.state == UpdaterState.DELETED


def test__delete__resource_vanishing_during_delete(api: MagicMock, manager: ResourceManager) -> None:
    api.delete_namespaced_deployment.side_effect = ApiException(status=404)
    updater = DEPLOYMENT.new_updater(manager, _document("Deployment", "web", "demo"))
    updater.delete()
    assert updater.state == UpdaterState.DELETED


def test__delete__error(api: MagicMock, manager: ResourceManager) -> None:
    api.delete_namespaced_deployment.side_effect = ApiException(status=500, reason="Internal Server Error")
    with pytest.raises(ClusterAPIError):
        DEPLOYMENT.new_updater(manager, _document("Deployment", "web", "demo")).delete()


def test__ServiceUpdater__carries_cluster_ip_forward(api: MagicMock, manager: ResourceManager) -> None:
    current = api.read_namespaced_service.return_value
    current.spec.cluster_ip = "10.0.0.12"
    current.spec.cluster_i_ps = ["10.0.0.12"]
    document = _document("Service", "web", "demo", spec={"ports": [{"port": 80}]})

    SERVICE.new_updater(manager, document).create_or_apply()

    body = api.replace_namespaced_service.call_args.kwargs["body"]
    assert body["spec"] == {"ports": [{"port": 80}], "clusterIP": "10.0.0.12", "clusterIPs": ["10.0.0.12"]}
    assert "clusterIP" not in document.manifest["spec"]


def test__ServiceUpdater__keeps_declared_cluster_ip(api: MagicMock, manager: ResourceManager) -> None:
    api.read_namespaced_service.return_value.spec.cluster_ip = "10.0.0.12"
    document = _document("Service", "web", "demo", spec={"clusterIP": "None"})

    SERVICE.new_updater(manager, document).create_or_apply()

    assert api.replace_namespaced_service.call_args.kwargs["body"]["spec"] == {"clusterIP": "None"}


def test__ServiceUpdater__null_spec(api: MagicMock, manager: ResourceManager) -> None:
    api.read_namespaced_service.return_value.spec.cluster_ip = "10.0.0.12"
    api.read_namespaced_service.return_value.spec.cluster_i_ps = None
    document = _document("Service", "web", "demo", spec=None)

    SERVICE.new_updater(manager, document).create_or_apply()

    assert api.replace_namespaced_service.call_args.kwargs["body"]["spec"] == {"clusterIP": "10.0.0.12"}
    assert document.manifest["spec"] is None


def test__ResourceManager__caches_apis() -> None:
    client = MagicMock()
    client.configuration.host = "https://cluster.example:6443"
    manager = ResourceManager(client)
    assert manager.api(CoreV1Api) is manager.api(CoreV1Api)
    assert manager.api(CoreV1Api).api_client is client
    assert manager.master_host == "https://cluster.example:6443"


def test__create_or_apply__connection_error(api: MagicMock, manager: ResourceManager) -> None:
    error = MaxRetryError(None, "/apis/apps/v1/namespaces/demo/deployments/web", None)  # type: ignore[arg-type]
    api.read_namespaced_deployment.side_effect = error

    with pytest.raises(ClusterAPIError) as excinfo:
        DEPLOYMENT.new_updater(manager, _document("Deployment", "web", "demo")).create_or_apply()

    assert excinfo.value.operation == "read"
    assert excinfo.value.status is None
