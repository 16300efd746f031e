"""
The namespace authorization gate. The namespaces that a principal may deploy into are fetched once per run from the
app-manager service and every resource is checked against them before it is applied.
"""

from dataclasses import dataclass
from typing import Any

import requests
from loguru import logger

from kdeploy.errors import AuthorizationError
from kdeploy.governance import GovernanceContext
from kdeploy.manifest import ManifestDocument

NamespaceAllowSet = frozenset[str]

STATUS_OK = 200
DEFAULT_TIMEOUT = 30


def check_namespace(
    document: ManifestDocument,
    allow_set: NamespaceAllowSet | None,
    governance: GovernanceContext,
) -> None:
    """
    Check that *document* may be applied. The check is skipped if governance is disabled for the run and for
    Namespace resources.

    Raises:
        AuthorizationError: If the resource declares no namespace, or a namespace that is not in *allow_set*.
    """

    if not governance.enabled or document.is_namespace:
        return

    namespace = document.namespace
    if not namespace:
        raise AuthorizationError(f"{document} must declare a namespace")

    if allow_set is None or namespace not in allow_set:
        logger.debug("Namespace '{}' of {} is not in the allowed namespaces {}", namespace, document, allow_set)
        raise AuthorizationError(f"Not authorized to deploy {document} into namespace '{namespace}'", namespace)


def fetch_allowed_namespaces(
    url: str,
    username: str,
    password: str,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> NamespaceAllowSet:
    """
    Log in to the app-manager service at *url* and return the namespaces that the user may deploy into.

    The service responds with a JSON document `{"code": 200, "msg": "...", "data": {"namespaces": [...]}}`.

    Raises:
        AuthorizationError: If the request fails or the service does not respond with code 200.
    """

    endpoint = url.rstrip("/") + "/login"
    logger.info("Fetching allowed namespaces for user '{}' from {}", username, endpoint)

    session = session or requests.Session()
    try:
        response = session.post(
            endpoint,
            params={"username": username, "password": password},
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
        response.raise_for_status()
        body: Any = response.json()
    except requests.RequestException as exc:
        raise AuthorizationError(f"Failed to log in to app-manager at {endpoint}: {exc}") from exc
    except ValueError as exc:
        raise AuthorizationError(f"App-manager at {endpoint} returned an invalid response: {exc}") from exc

    if not isinstance(body, dict) or body.get("code") != STATUS_OK:
        message = body.get("msg") if isinstance(body, dict) else None
        raise AuthorizationError(f"Login to app-manager failed: {message or 'unexpected response'}")

    data = body.get("data") or {}
    if not isinstance(data, dict):
        raise AuthorizationError("App-manager returned an invalid response")

    namespaces = data.get("namespaces") or []
    if not isinstance(namespaces, list):
        raise AuthorizationError("App-manager returned an invalid list of namespaces")

    logger.debug("Allowed namespaces: {}", namespaces)
    return frozenset(str(x) for x in namespaces)


@dataclass(kw_only=True)
class AppManagerEndpoint:
    """
    The app-manager service that knows which namespaces a user may deploy into.
    """

    url: str
    username: str
    password: str

    def fetch_allowed_namespaces(self, session: requests.Session | None = None) -> NamespaceAllowSet:
        return fetch_allowed_namespaces(self.url, self.username, self.password, session)
