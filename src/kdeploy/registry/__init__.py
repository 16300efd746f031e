"""
The registry of resource kinds that can be applied to a cluster. Each kind is bound to the typed API of the Kubernetes
Python client that serves it and to the updater that drives the create-or-replace cycle for it.

The registry is built once at start-up by #ResourceTypeRegistry.default() and only read afterwards.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace
from typing import Any

from kubernetes.client.api_client import ApiClient
from loguru import logger

from kdeploy.errors import RegistryError
from kdeploy.manifest import ManifestDocument
from kdeploy.registry.apitypes import build_model_map, resolve_model
from kdeploy.updater import ResourceManager, ResourceUpdateMonitor, ResourceUpdater


@dataclass(frozen=True)
class ResourceOperations:
    """
    Names of the typed API methods for one resource kind.
    """

    read: str
    create: str
    replace: str
    delete: str

    @staticmethod
    def namespaced(resource: str) -> "ResourceOperations":
        """
        Operations of a namespaced resource, e.g. `read_namespaced_deployment` for *resource* `deployment`.
        """

        return ResourceOperations(
            read=f"read_namespaced_{resource}",
            create=f"create_namespaced_{resource}",
            replace=f"replace_namespaced_{resource}",
            delete=f"delete_namespaced_{resource}",
        )

    @staticmethod
    def cluster(resource: str) -> "ResourceOperations":
        """
        Operations of a cluster scoped resource, e.g. `read_namespace` for *resource* `namespace`.
        """

        return ResourceOperations(
            read=f"read_{resource}",
            create=f"create_{resource}",
            replace=f"replace_{resource}",
            delete=f"delete_{resource}",
        )

    def __iter__(self) -> Iterator[str]:
        return iter((self.read, self.create, self.replace, self.delete))


ManagerFactory = Callable[..., ResourceManager]
UpdaterFactory = Callable[[ResourceManager, "ResourceKindBinding", ManifestDocument], ResourceUpdater]


@dataclass(frozen=True)
class ResourceKindBinding:
    """
    Binds a resource kind to the API and updater that handle it.
    """

    api_version: str
    kind: str
    api: type[Any]
    """ The typed API class of the Kubernetes client, e.g. `AppsV1Api`. """

    operations: ResourceOperations
    namespaced: bool
    updater_factory: UpdaterFactory
    manager_factory: ManagerFactory = ResourceManager
    model: str | None = None
    """ The name of the Kubernetes client model class for this kind, e.g. `V1Deployment`. """

    @property
    def key(self) -> tuple[str, str]:
        return (self.api_version, self.kind)

    def new_manager(self, client: ApiClient, monitor: ResourceUpdateMonitor | None = None) -> ResourceManager:
        return self.manager_factory(client, monitor)

    def new_updater(self, manager: ResourceManager, document: ManifestDocument) -> ResourceUpdater:
        return self.updater_factory(manager, self, document)


@dataclass
class ResourceTypeRegistry:
    """
    Maps `(apiVersion, kind)` to a #ResourceKindBinding. There is at most one binding per key.
    """

    bindings: dict[tuple[str, str], ResourceKindBinding] = field(default_factory=dict)

    @staticmethod
    def default() -> "ResourceTypeRegistry":
        """
        Create the registry with the bindings of all built-in resource kinds. Every binding is checked against the
        Kubernetes client that is installed.

        Raises:
            RegistryError: If a binding refers to an API method or model that does not exist.
        """

        from kdeploy.registry.kinds import DEFAULT_BINDINGS

        try:
            model_map = build_model_map()
        except ImportError as exc:
            raise RegistryError(f"Kubernetes client models could not be loaded: {exc}") from exc

        registry = ResourceTypeRegistry()
        for binding in DEFAULT_BINDINGS:
            model = resolve_model(model_map, binding.api_version, binding.kind)
            if model is None:
                raise RegistryError(f"no Kubernetes client model for {binding.api_version}/{binding.kind}")
            registry.register(replace(binding, model=model))

        logger.debug("Registered {} resource kind(s)", len(registry.bindings))
        return registry

    def register(self, binding: ResourceKindBinding) -> None:
        """
        Register a binding.

        Raises:
            RegistryError: If a binding for the same `(apiVersion, kind)` already exists, or the API class does not
                implement one of the operations.
        """

        if binding.key in self.bindings:
            raise RegistryError(f"duplicate binding for {binding.api_version}/{binding.kind}")
        for method in binding.operations:
            if not callable(getattr(binding.api, method, None)):
                raise RegistryError(f"{binding.api.__name__} has no method {method}() for {binding.kind}")
        self.bindings[binding.key] = binding

    def lookup(self, api_version: str, kind: str) -> ResourceKindBinding | None:
        return self.bindings.get((api_version, kind))

    def kinds(self) -> list[tuple[str, str]]:
        """
        Return the `(apiVersion, kind)` keys of all registered bindings.
        """

        return list(self.bindings)
