import os
from pathlib import Path
import shlex

from loguru import logger
from typer import Option

from kdeploy.config import AppManagerConfig, DeployConfigFile, RegistryConfig
from kdeploy.deployment import DeploymentTask
from kdeploy.errors import DeployError
from kdeploy.governance import GovernanceContext
from kdeploy.kube import new_api_client
from kdeploy.registry import ResourceTypeRegistry

from . import app


@app.command()
def apply(
    config_file: Path | None = Option(
        None, "--config", "-c", help="The configuration file to use. Defaults to the closest `kdeploy.yaml`."
    ),
    workspace: Path | None = Option(
        None, help="The directory that manifest patterns are relative to. Defaults to the configuration file's."
    ),
    configs: str | None = Option(None, help="Comma-separated glob patterns of the manifest files to apply."),
    kubeconfig: Path | None = Option(None, help="The kubeconfig file. Defaults to $KUBECONFIG or ~/.kube/config."),
    context: str | None = Option(None, help="The kubeconfig context to use."),
    in_cluster: bool = Option(False, help="Use the in-cluster Kubernetes configuration."),
    secret_namespace: str | None = Option(None, help="The namespace to create the image-pull secret in."),
    secret_name: str | None = Option(
        None, help="The name of the image-pull secret. May reference environment variables, e.g. `$BUILD_ID`."
    ),
    secret_name_seed: str | None = Option(
        None,
        envvar="KDEPLOY_SECRET_NAME_SEED",
        help="The seed for a generated image-pull secret name. Defaults to the workspace directory name.",
    ),
    enable_substitution: bool | None = Option(
        None, help="Substitute environment variables (`$VAR`, `${VAR}`) in the manifest files."
    ),
    delete: bool | None = Option(None, help="Delete the resources instead of creating or replacing them."),
    app_code: str | None = Option(None, help="The application code for governance labels."),
    tenant_code: str | None = Option(None, help="The tenant code for governance labels."),
    project_name: str | None = Option(None, help="The project name for governance labels."),
    app_manager_url: str | None = Option(None, help="The app-manager service to fetch allowed namespaces from."),
    app_manager_username: str | None = Option(None, help="The app-manager user."),
    app_manager_password: str | None = Option(
        None, envvar="KDEPLOY_APP_MANAGER_PASSWORD", help="The app-manager password.", show_default=False
    ),
    registry_url: str | None = Option(None, help="A private container registry to create an image-pull secret for."),
    registry_username: str | None = Option(None, help="The user for --registry-url."),
    registry_password: str | None = Option(
        None, envvar="KDEPLOY_REGISTRY_PASSWORD", help="The password for --registry-url.", show_default=False
    ),
) -> None:
    """
    Apply manifest files to a cluster.

    Variables that the run exports (e.g. `KUBERNETES_SECRET_NAME`) are printed as `export NAME=value` lines, so that
    they can be passed on with `eval "$(kdeploy apply)"`.
    """

    env = dict(os.environ)

    try:
        loaded = DeployConfigFile.load(config_file)
        config = loaded.config

        if app_manager_url:
            config.app_manager = AppManagerConfig(
                url=app_manager_url,
                username=app_manager_username or (config.app_manager.username if config.app_manager else ""),
                password=app_manager_password,
            )
        elif config.app_manager and app_manager_password:
            config.app_manager.password = app_manager_password

        if registry_url:
            config.registries.append(
                RegistryConfig(url=registry_url, username=registry_username or "", password=registry_password)
            )

        workspace = workspace or loaded.workspace
        governance = GovernanceContext(
            app_code=app_code or config.governance.app_code,
            tenant_code=tenant_code or config.governance.tenant_code,
            project_name=project_name or config.governance.project_name,
        )

        client = new_api_client(
            kubeconfig or config.kubeconfig,
            context=context or config.context,
            in_cluster=in_cluster or config.in_cluster,
        )

        task = DeploymentTask(
            workspace=workspace,
            config_paths=configs or config.configs,
            client=client,
            registry=ResourceTypeRegistry.default(),
            env=env,
            secret_namespace=secret_namespace or config.secret_namespace,
            secret_name=secret_name if secret_name is not None else config.secret_name,
            default_secret_name_seed=secret_name_seed or workspace.resolve().name,
            registry_credentials=[registry.resolve(env) for registry in config.registries],
            enable_substitution=config.enable_substitution if enable_substitution is None else enable_substitution,
            delete_resource=config.delete_resource if delete is None else delete,
            governance=governance,
            app_manager=config.app_manager.resolve(env) if config.app_manager else None,
        )
    except DeployError as exc:
        logger.error("{}", exc)
        exit(1)

    result = task.run()
    for key, value in result.extra_env_vars.items():
        print(f"export {key}={shlex.quote(value)}")

    if not result.ok:
        exit(1)
