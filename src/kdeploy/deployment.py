"""
A deployment run: applies the manifest files of a workspace to a cluster and reports the outcome as a #TaskResult.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from kubernetes.client.api_client import ApiClient
from loguru import logger

from kdeploy.applier import NO_GOVERNANCE, ManifestApplier
from kdeploy.errors import ConfigurationError, DeployError
from kdeploy.governance import GovernanceContext
from kdeploy.governance.authz import AppManagerEndpoint, NamespaceAllowSet
from kdeploy.loader import find_config_files
from kdeploy.registry import ResourceTypeRegistry
from kdeploy.secrets.dockercfg import RegistryCredential
from kdeploy.secrets.naming import derive_secret_name
from kdeploy.tools.envsubst import substitution
from kdeploy.updater import ResourceManager, ResourceUpdateMonitor

KUBERNETES_SECRET_NAME_PROP = "KUBERNETES_SECRET_NAME"
""" The variable under which the name of the image-pull secret is exported. """


class CommandState(str, Enum):
    UNKNOWN = "Unknown"
    SUCCESS = "Success"
    HAS_ERROR = "HasError"


@dataclass(frozen=True)
class ErrorInfo:
    kind: str
    message: str


@dataclass
class TaskResult:
    """
    The outcome of a #DeploymentTask run.
    """

    state: CommandState = CommandState.UNKNOWN
    master_host: str = "Unknown"
    extra_env_vars: dict[str, str] = field(default_factory=dict)
    """ Variables that the run exports to later pipeline steps. """

    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.state == CommandState.SUCCESS


@dataclass(kw_only=True)
class DeploymentTask:
    """
    Applies the manifest files matching #config_paths in the #workspace.

    If registry credentials are given, an image-pull secret is created in #secret_namespace first and its name is
    exported as `KUBERNETES_SECRET_NAME`, also to the variables that are substituted into the manifests. If an
    app-manager endpoint is given, the namespaces that the run may deploy into are fetched before any resource is
    applied and checked for every resource when governance is enabled.
    """

    workspace: Path
    config_paths: str
    client: ApiClient
    registry: ResourceTypeRegistry
    env: dict[str, str] = field(default_factory=dict)
    secret_namespace: str = "default"
    secret_name: str = ""
    default_secret_name_seed: str = ""
    registry_credentials: list[RegistryCredential] = field(default_factory=list)
    enable_substitution: bool = False
    delete_resource: bool = False
    governance: GovernanceContext = NO_GOVERNANCE
    app_manager: AppManagerEndpoint | None = None
    allow_namespaces: NamespaceAllowSet | None = None
    """ A fixed allow-set, used when no app-manager endpoint is configured. """

    monitor: ResourceUpdateMonitor | None = None

    def run(self) -> TaskResult:
        """
        Run the deployment. Failures are reported in the result rather than raised, with the exception of
        #KeyboardInterrupt which stops the run.
        """

        result = TaskResult(master_host=ResourceManager(self.client).master_host)
        logger.info("Deploying to {}", result.master_host)

        try:
            self._run(result)
        except DeployError as exc:
            logger.error("Deployment failed: {}", exc)
            result.state = CommandState.HAS_ERROR
            result.error = ErrorInfo(exc.error_kind, str(exc))
        else:
            result.state = CommandState.SUCCESS
            logger.info("Deployment finished")

        return result

    def _run(self, result: TaskResult) -> None:
        if not self.secret_namespace or not self.secret_namespace.strip():
            raise ConfigurationError("The secret namespace must not be empty")
        if not self.config_paths or not self.config_paths.strip():
            raise ConfigurationError("The configuration file patterns must not be empty")

        files = find_config_files(self.workspace, self.config_paths)
        if not files:
            raise ConfigurationError(f"No configuration files match '{self.config_paths}' in '{self.workspace}'")

        allow_set = self.allow_namespaces
        if self.app_manager is not None:
            allow_set = self.app_manager.fetch_allowed_namespaces()

        variables = dict(self.env)
        applier = ManifestApplier(self.client, self.registry, self.monitor, delete=self.delete_resource)

        if self.registry_credentials:
            name = derive_secret_name(self.secret_name, self.default_secret_name_seed, variables)
            applier.create_or_replace_secrets(self.secret_namespace, name, self.registry_credentials)
            logger.info("Exporting image-pull secret name '{}' as ${}", name, KUBERNETES_SECRET_NAME_PROP)
            variables[KUBERNETES_SECRET_NAME_PROP] = name
            result.extra_env_vars[KUBERNETES_SECRET_NAME_PROP] = name

        if self.enable_substitution:
            applier.substitute = substitution(variables)

        applier.apply(files, allow_set, self.governance)
