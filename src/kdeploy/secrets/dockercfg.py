"""
Image-pull secrets for private container registries.

See https://kubernetes.io/docs/tasks/configure-pod-container/pull-image-private-registry/
"""

import base64
from dataclasses import dataclass
import json

from kdeploy.manifest import Manifest

DEFAULT_REGISTRY_URL = "https://index.docker.io/v1/"
DOCKERCFG_KEY = ".dockercfg"
DOCKERCFG_SECRET_TYPE = "kubernetes.io/dockercfg"


@dataclass(kw_only=True)
class RegistryCredential:
    """
    Resolved credentials for one container registry.
    """

    url: str = DEFAULT_REGISTRY_URL
    username: str
    password: str
    email: str = ""

    @property
    def auth(self) -> str:
        return base64.b64encode(f"{self.username}:{self.password}".encode("utf-8")).decode("ascii")


def build_dockercfg(credentials: list[RegistryCredential]) -> str:
    """
    Build the content of a `.dockercfg` file with an entry for every registry. A later entry for the same registry
    URL replaces an earlier one.
    """

    config: dict[str, dict[str, str]] = {}
    for credential in credentials:
        config[credential.url or DEFAULT_REGISTRY_URL] = {"email": credential.email, "auth": credential.auth}
    return json.dumps(config, sort_keys=True)


def build_registry_secret(namespace: str, name: str, credentials: list[RegistryCredential]) -> Manifest:
    """
    Build the manifest of a Secret that Pods can reference in `imagePullSecrets`.
    """

    return Manifest(
        {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": name, "namespace": namespace},
            "type": DOCKERCFG_SECRET_TYPE,
            "stringData": {DOCKERCFG_KEY: build_dockercfg(credentials)},
        }
    )
