"""
Applies the resources of manifest files to a cluster.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any
import warnings

from kubernetes.client.api_client import ApiClient
from loguru import logger

from kdeploy.errors import UnknownKindWarning
from kdeploy.governance import GovernanceContext, inject_governance
from kdeploy.governance.authz import NamespaceAllowSet, check_namespace
from kdeploy.loader import load_manifests
from kdeploy.manifest import ManifestDocument
from kdeploy.registry import ManagerFactory, ResourceKindBinding, ResourceTypeRegistry
from kdeploy.secrets.dockercfg import RegistryCredential, build_registry_secret
from kdeploy.updater import ResourceManager, ResourceUpdateMonitor

NO_GOVERNANCE = GovernanceContext()


class ManifestApplier:
    """
    Applies manifest files resource by resource. For every resource, the kind binding is looked up in the registry,
    the namespace is checked against the allow-set, governance labels are injected, and the resource is created,
    replaced or deleted through the kind's updater.

    A failure aborts the remaining resources. Resources that were already applied are not rolled back.
    """

    def __init__(
        self,
        client: ApiClient,
        registry: ResourceTypeRegistry,
        monitor: ResourceUpdateMonitor | None = None,
        substitute: Callable[[str], str] | None = None,
        delete: bool = False,
    ) -> None:
        """
        Args:
            client: Kubernetes API client.
            registry: The resource kinds that can be applied.
            monitor: Notified after every resource that was created or replaced.
            substitute: Applied to the content of every manifest file before it is parsed.
            delete: Delete the resources instead of creating or replacing them.
        """

        self.client = client
        self.registry = registry
        self.monitor = monitor
        self.substitute = substitute
        self.delete = delete
        self._managers: dict[ManagerFactory, ResourceManager] = {}

    def _get_manager(self, binding: ResourceKindBinding) -> ResourceManager:
        """
        Return the manager for the binding. Bindings with the same manager factory share one manager.
        """

        if binding.manager_factory not in self._managers:
            self._managers[binding.manager_factory] = binding.new_manager(self.client, self.monitor)
        return self._managers[binding.manager_factory]

    def apply(
        self,
        files: list[Path],
        allow_set: NamespaceAllowSet | None = None,
        governance: GovernanceContext = NO_GOVERNANCE,
    ) -> None:
        """
        Apply the resources of every file, in order. Namespaces are applied before all other resources of the same
        file because the other resources may be placed in them.
        """

        for file in files:
            logger.info("Loading configuration from '{}'", file)
            documents = load_manifests(file, self.substitute)
            if not documents:
                logger.warning("No resources loaded from '{}', skipping", file)
                continue

            namespaces = [d for d in documents if d.is_namespace]
            others = [d for d in documents if not d.is_namespace]

            for document in namespaces:
                self.handle_resource(document, allow_set, NO_GOVERNANCE)
            for document in others:
                self.handle_resource(document, allow_set, governance)

    def handle_resource(
        self,
        document: ManifestDocument,
        allow_set: NamespaceAllowSet | None,
        governance: GovernanceContext,
    ) -> Any | None:
        """
        Apply a single resource. Returns the object returned by the cluster, or `None` if the resource was skipped or
        deleted.
        """

        binding = self.registry.lookup(document.api_version, document.kind)
        if binding is None:
            kind = f"{document.api_version}/{document.kind}"
            logger.warning("Skipping {} from '{}': unsupported kind {}", document, document.source, kind)
            warnings.warn(f"Skipped {document}: unsupported kind {kind}", UnknownKindWarning, stacklevel=2)
            return None

        check_namespace(document, allow_set, governance)
        document = inject_governance(document, governance)

        updater = binding.new_updater(self._get_manager(binding), document)
        if self.delete:
            updater.delete()
            return None
        return updater.create_or_apply()

    def create_or_replace_secrets(self, namespace: str, name: str, credentials: list[RegistryCredential]) -> Any:
        """
        Create or replace the image-pull secret *name* in *namespace* with a `.dockercfg` for the *credentials*.
        """

        logger.info("Preparing image-pull secret '{}' in namespace '{}'", name, namespace)
        document = ManifestDocument(build_registry_secret(namespace, name, credentials))
        return self.handle_resource(document, None, NO_GOVERNANCE)
