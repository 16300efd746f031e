"""
The per-kind update state machine that creates, replaces or deletes a single resource in the cluster.

An updater first fetches the current state of its resource. If the resource does not exist it is created, otherwise
it is replaced with the desired state as a whole (there is no structural merge). After a create or replace, the
#ResourceUpdateMonitor of the #ResourceManager is notified.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from kubernetes.client.api_client import ApiClient
from loguru import logger

from kdeploy.manifest import Manifest, ManifestDocument

if TYPE_CHECKING:
    from kdeploy.registry import ResourceKindBinding

T = TypeVar("T")

DEFAULT_NAMESPACE = "default"


class UpdaterState(str, Enum):
    UNRESOLVED = "Unresolved"
    FETCHED_PRESENT = "FetchedPresent"
    FETCHED_ABSENT = "FetchedAbsent"
    CREATED = "Created"
    REPLACED = "Replaced"
    DELETED = "Deleted"
    NOTIFIED = "Notified"


class ResourceUpdateMonitor:
    """
    Observes resources after they have been created or replaced, e.g. to capture the identifiers that the cluster
    assigned to them. The default implementation does nothing.
    """

    def on_update(self, binding: "ResourceKindBinding", original: Any | None, current: Any) -> None:
        """
        Args:
            binding: The binding of the resource kind that was updated.
            original: The resource as it was in the cluster before the update, or `None` if it was created.
            current: The resource as returned by the cluster after the create or replace call.
        """


class ResourceManager:
    """
    Gives updaters access to the typed APIs of the Kubernetes client and to the update monitor.
    """

    def __init__(
        self,
        client: ApiClient,
        monitor: ResourceUpdateMonitor | None = None,
        api_factory: Callable[[type[Any]], Any] | None = None,
    ) -> None:
        """
        Args:
            client: Kubernetes API client.
            monitor: Notified after every create or replace.
            api_factory: Creates the typed API objects (e.g. `AppsV1Api`). Defaults to instantiating the API class
                with *client*.
        """

        self.client = client
        self.monitor = monitor or ResourceUpdateMonitor()
        self._api_factory = api_factory or (lambda api_class: api_class(client))
        self._apis: dict[type[Any], Any] = {}

    def api(self, api_class: type[T]) -> T:
        """
        Return the (cached) instance of a typed API class.
        """

        if api_class not in self._apis:
            self._apis[api_class] = self._api_factory(api_class)
        return self._apis[api_class]  # type: ignore[no-any-return]

    @property
    def master_host(self) -> str:
        """
        The URL of the cluster's API server.
        """

        configuration = getattr(self.client, "configuration", None)
        return getattr(configuration, "host", None) or "Unknown"


class ResourceUpdater(ABC):
    """
    Base class for updaters. An updater is created for exactly one resource and used once.
    """

    def __init__(self, manager: ResourceManager, binding: "ResourceKindBinding", document: ManifestDocument) -> None:
        self.manager = manager
        self.binding = binding
        self.document = document
        self.state = UpdaterState.UNRESOLVED

    @property
    def name(self) -> str:
        return self.document.name

    @property
    def namespace(self) -> str | None:
        """
        The namespace of the resource, or `None` if the resource kind is cluster scoped. Namespaced resources that do
        not declare a namespace go to the `default` namespace.
        """

        if not self.binding.namespaced:
            return None
        return self.document.namespace or DEFAULT_NAMESPACE

    @abstractmethod
    def get_current_resource(self) -> Any | None:
        """
        Fetch the resource from the cluster. Returns `None` if it does not exist.
        """

    @abstractmethod
    def create_resource(self, current: Manifest) -> Any:
        """
        Create the resource in the cluster and return the created object.
        """

    @abstractmethod
    def apply_resource(self, original: Any, current: Manifest) -> Any:
        """
        Replace the *original* resource in the cluster with the desired state *current* and return the updated object.
        """

    @abstractmethod
    def delete_resource(self) -> None:
        """
        Delete the resource from the cluster. A resource that is already gone is not an error.
        """

    def notify_update(self, original: Any | None, current: Any) -> None:
        """
        Notify the monitor about an update. A failing monitor is logged but never aborts the update.
        """

        try:
            self.manager.monitor.on_update(self.binding, original, current)
        except Exception:
            logger.opt(exception=True).warning("Update monitor failed for {}", self.document)

    def create_or_apply(self) -> Any:
        """
        Create the resource if it does not exist, or replace it otherwise.
        """

        if self.binding.namespaced and not self.document.namespace:
            logger.warning("{} does not declare a namespace, using '{}'.", self.document, DEFAULT_NAMESPACE)

        original = self.get_current_resource()
        desired = self.document.copy_manifest()
        if original is None:
            self.state = UpdaterState.FETCHED_ABSENT
            result = self.create_resource(desired)
            self.state = UpdaterState.CREATED
            logger.info("Created {}", self.document)
        else:
            self.state = UpdaterState.FETCHED_PRESENT
            result = self.apply_resource(original, desired)
            self.state = UpdaterState.REPLACED
            logger.info("Replaced {}", self.document)

        self.notify_update(original, result)
        self.state = UpdaterState.NOTIFIED
        return result

    def delete(self) -> None:
        """
        Delete the resource. If the resource does not exist, this is a no-op.
        """

        original = self.get_current_resource()
        if original is None:
            self.state = UpdaterState.FETCHED_ABSENT
            logger.info("{} does not exist, nothing to delete", self.document)
        else:
            self.state = UpdaterState.FETCHED_PRESENT
            self.delete_resource()
            logger.info("Deleted {}", self.document)
        self.state = UpdaterState.DELETED
