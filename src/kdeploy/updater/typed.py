"""
Updaters that call the typed APIs of the Kubernetes Python client (e.g. `AppsV1Api.replace_namespaced_deployment`).
"""

import json
from typing import Any

from kubernetes.client.exceptions import ApiException
from loguru import logger
from urllib3.exceptions import HTTPError

from kdeploy.errors import ClusterAPIError
from kdeploy.manifest import Manifest
from kdeploy.updater import ResourceUpdater

HTTP_NOT_FOUND = 404


class TypedResourceUpdater(ResourceUpdater):
    """
    Dispatches to the operations configured in the resource kind binding.
    """

    def _scope(self) -> dict[str, Any]:
        if self.binding.namespaced:
            return {"namespace": self.namespace}
        return {}

    def _call(self, operation: str, **kwargs: Any) -> Any:
        """
        Call the API method that the binding configures for *operation* (one of `read`, `create`, `replace` and
        `delete`). Transport errors are raised as #ClusterAPIError, API errors are passed through to the caller.
        """

        method = getattr(self.binding.operations, operation)
        api = self.manager.api(self.binding.api)
        logger.debug("Calling {}.{}() for {}", self.binding.api.__name__, method, self.document)
        try:
            return getattr(api, method)(**kwargs, **self._scope())
        except HTTPError as exc:
            raise ClusterAPIError(
                operation=operation,
                kind=self.document.kind,
                name=self.name,
                namespace=self.namespace,
                reason=str(exc),
            ) from exc

    def _error(self, operation: str, exc: ApiException) -> ClusterAPIError:
        return ClusterAPIError(
            operation=operation,
            kind=self.document.kind,
            name=self.name,
            namespace=self.namespace,
            status=exc.status,
            reason=_get_reason(exc),
        )

    def get_current_resource(self) -> Any | None:
        try:
            return self._call("read", name=self.name)
        except ApiException as exc:
            if exc.status == HTTP_NOT_FOUND:
                return None
            raise self._error("read", exc) from exc

    def create_resource(self, current: Manifest) -> Any:
        try:
            return self._call("create", body=current)
        except ApiException as exc:
            raise self._error("create", exc) from exc

    def apply_resource(self, original: Any, current: Manifest) -> Any:
        try:
            return self._call("replace", name=self.name, body=current)
        except ApiException as exc:
            raise self._error("replace", exc) from exc

    def delete_resource(self) -> None:
        try:
            self._call("delete", name=self.name)
        except ApiException as exc:
            if exc.status == HTTP_NOT_FOUND:
                logger.debug("{} disappeared before it could be deleted", self.document)
                return
            raise self._error("delete", exc) from exc


class ServiceUpdater(TypedResourceUpdater):
    """
    The cluster IP of a Service cannot be changed after creation. When the desired state does not set it, the value of
    the existing Service is carried over into the replacement.
    """

    def apply_resource(self, original: Any, current: Manifest) -> Any:
        original_spec = getattr(original, "spec", None)
        if not isinstance(current.get("spec"), dict):
            current["spec"] = {}
        spec = current["spec"]
        cluster_ip = getattr(original_spec, "cluster_ip", None)
        if cluster_ip and not spec.get("clusterIP"):
            spec["clusterIP"] = cluster_ip
            cluster_ips = getattr(original_spec, "cluster_i_ps", None)
            if cluster_ips and not spec.get("clusterIPs"):
                spec["clusterIPs"] = list(cluster_ips)
        return super().apply_resource(original, current)


def _get_reason(exc: ApiException) -> str | None:
    """
    Return the message of the Kubernetes `Status` object in the response body, or the HTTP reason.
    """

    if exc.body:
        try:
            status = json.loads(exc.body)
        except (TypeError, ValueError):
            pass
        else:
            if isinstance(status, dict) and status.get("message"):
                return str(status["message"])
    return exc.reason
