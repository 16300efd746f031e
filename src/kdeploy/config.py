"""
The `kdeploy.yaml` configuration file. Options given on the command line take precedence over the file.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from kdeploy.errors import ConfigurationError
from kdeploy.governance import GovernanceContext
from kdeploy.governance.authz import AppManagerEndpoint
from kdeploy.secrets.dockercfg import DEFAULT_REGISTRY_URL, RegistryCredential
from kdeploy.tools.fs import find_config_file


def _resolve_password(password: str | None, password_env: str | None, env: Mapping[str, str], what: str) -> str:
    if password:
        return password
    if password_env and env.get(password_env):
        return env[password_env]
    if password_env:
        raise ConfigurationError(f"No password for {what}: ${password_env} is not set")
    raise ConfigurationError(f"No password for {what}")


@dataclass(kw_only=True)
class GovernanceConfig:
    app_code: str = ""
    tenant_code: str = ""
    project_name: str = ""

    def to_context(self) -> GovernanceContext:
        return GovernanceContext(app_code=self.app_code, tenant_code=self.tenant_code, project_name=self.project_name)


@dataclass(kw_only=True)
class AppManagerConfig:
    """
    Where to fetch the namespaces that the run may deploy into.
    """

    url: str
    username: str
    password: str | None = None
    password_env: str | None = "KDEPLOY_APP_MANAGER_PASSWORD"
    """ The environment variable to read the password from if #password is not set. """

    def resolve(self, env: Mapping[str, str]) -> AppManagerEndpoint:
        password = _resolve_password(self.password, self.password_env, env, f"app-manager user '{self.username}'")
        return AppManagerEndpoint(url=self.url, username=self.username, password=password)


@dataclass(kw_only=True)
class RegistryConfig:
    """
    Credentials for a private container registry, from which an image-pull secret is created.
    """

    url: str = DEFAULT_REGISTRY_URL
    username: str
    password: str | None = None
    password_env: str | None = None
    email: str = ""

    def resolve(self, env: Mapping[str, str]) -> RegistryCredential:
        password = _resolve_password(self.password, self.password_env, env, f"registry '{self.url}'")
        return RegistryCredential(url=self.url, username=self.username, password=password, email=self.email)


@dataclass(kw_only=True)
class DeployConfig:
    configs: str = ""
    """ Comma-separated glob patterns of the manifest files, relative to the workspace. """

    secret_namespace: str = "default"
    secret_name: str = ""
    enable_substitution: bool = False
    delete_resource: bool = False
    kubeconfig: Path | None = None
    context: str | None = None
    in_cluster: bool = False
    governance: GovernanceConfig = field(default_factory=GovernanceConfig)
    app_manager: AppManagerConfig | None = None
    registries: list[RegistryConfig] = field(default_factory=list)


@dataclass
class DeployConfigFile:
    """
    Wrapper for the deployment configuration file.
    """

    FILENAME = "kdeploy.yaml"

    file: Path | None
    config: DeployConfig

    @property
    def workspace(self) -> Path:
        """
        The directory that manifest patterns are resolved against: the directory of the configuration file, or the
        current working directory if there is none.
        """

        return self.file.parent if self.file else Path.cwd()

    @staticmethod
    def load(file: Path | None = None, /, cwd: Path | None = None) -> "DeployConfigFile":
        """
        Load the configuration from the given file, or from a `kdeploy.yaml` in *cwd* or one of its parents. If there
        is no configuration file, the default configuration is returned.

        Raises:
            ConfigurationError: If the file cannot be parsed.
        """

        from databind.core import ConversionError
        from databind.json import load as deser
        from yaml import YAMLError, safe_load

        if file is None:
            file = find_config_file(DeployConfigFile.FILENAME, cwd, required=False)
        if file is None:
            logger.debug("No '{}' found, using the default configuration", DeployConfigFile.FILENAME)
            return DeployConfigFile(None, DeployConfig())

        logger.debug("Loading deployment configuration from '{}'", file)
        try:
            config = deser(safe_load(file.read_text()) or {}, DeployConfig, filename=str(file))
        except (OSError, YAMLError, ConversionError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid configuration file '{file}': {exc}") from exc

        if config.kubeconfig is not None and not config.kubeconfig.is_absolute():
            config.kubeconfig = file.parent / config.kubeconfig

        return DeployConfigFile(file, config)
