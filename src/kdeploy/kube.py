"""
Construction of the Kubernetes API client that a deployment run talks to.
"""

import base64
from pathlib import Path
from typing import Any

import yaml
from kubernetes.client.api_client import ApiClient
from kubernetes.client.configuration import Configuration
from kubernetes.config.config_exception import ConfigException
from kubernetes.config.incluster_config import load_incluster_config
from kubernetes.config.kube_config import load_kube_config, load_kube_config_from_dict
from loguru import logger

from kdeploy.errors import ConfigurationError

CERTIFICATE_CONTEXT = "kdeploy"


def new_api_client(
    kubeconfig: Path | None = None,
    *,
    content: str | None = None,
    context: str | None = None,
    in_cluster: bool = False,
) -> ApiClient:
    """
    Create an API client.

    Args:
        kubeconfig: The kubeconfig file to use. Defaults to `$KUBECONFIG` or `~/.kube/config`.
        content: The content of a kubeconfig file, used instead of *kubeconfig*.
        context: The kubeconfig context to use instead of the file's current context.
        in_cluster: Use the service account of the pod that the process runs in. Other arguments are ignored.
    Raises:
        ConfigurationError: If the configuration cannot be loaded.
    """

    configuration = Configuration()
    try:
        if in_cluster:
            logger.info("Using in-cluster configuration.")
            load_incluster_config(client_configuration=configuration)
        elif content is not None:
            logger.info("Using kubeconfig from content.")
            load_kube_config_from_dict(_parse_kubeconfig(content), context=context, client_configuration=configuration)
        else:
            logger.info("Using kubeconfig '{}'.", kubeconfig or "<default>")
            load_kube_config(
                config_file=str(kubeconfig) if kubeconfig else None,
                context=context,
                client_configuration=configuration,
            )
    except ConfigException as exc:
        raise ConfigurationError(f"Invalid Kubernetes configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Kubeconfig could not be read: {exc}") from exc

    return ApiClient(configuration)


def new_api_client_from_certificates(
    server: str,
    certificate_authority_data: str,
    client_certificate_data: str,
    client_key_data: str,
) -> ApiClient:
    """
    Create an API client that authenticates with a client certificate. The certificates and key are PEM encoded.
    """

    content = yaml.safe_dump(
        certificate_kubeconfig(server, certificate_authority_data, client_certificate_data, client_key_data)
    )
    return new_api_client(content=content)


def certificate_kubeconfig(
    server: str,
    certificate_authority_data: str,
    client_certificate_data: str,
    client_key_data: str,
) -> dict[str, Any]:
    """
    Build a kubeconfig with a single context for *server*, authenticating with a client certificate.
    """

    return {
        "apiVersion": "v1",
        "kind": "Config",
        "current-context": CERTIFICATE_CONTEXT,
        "clusters": [
            {
                "name": CERTIFICATE_CONTEXT,
                "cluster": {
                    "server": server,
                    "certificate-authority-data": _b64(certificate_authority_data),
                },
            }
        ],
        "users": [
            {
                "name": CERTIFICATE_CONTEXT,
                "user": {
                    "client-certificate-data": _b64(client_certificate_data),
                    "client-key-data": _b64(client_key_data),
                },
            }
        ],
        "contexts": [
            {
                "name": CERTIFICATE_CONTEXT,
                "context": {"cluster": CERTIFICATE_CONTEXT, "user": CERTIFICATE_CONTEXT},
            }
        ],
    }


def _b64(data: str) -> str:
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


def _parse_kubeconfig(content: str) -> dict[str, Any]:
    try:
        config = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Kubeconfig is not valid YAML: {exc}") from exc
    if not isinstance(config, dict):
        raise ConfigurationError("Kubeconfig must be a mapping")
    return config
