"""
Multi-tenant governance: ownership labels that are injected into resources and the namespace authorization gate.

Governance is opt-in per run. It is enabled when the application code, tenant code and project name are all given.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from kdeploy.errors import GovernanceValidationError
from kdeploy.governance.labels import (
    SECRET_TYPE_ANNOTATIONS,
    PodLoadType,
    build_autoscaler_labels,
    build_ingress_labels,
    build_pod_labels,
    build_service_labels,
    build_workload_labels,
)
from kdeploy.manifest import ManifestDocument


@dataclass(frozen=True)
class GovernanceContext:
    """
    Identifies the owner of the resources applied in a run.
    """

    app_code: str = ""
    tenant_code: str = ""
    project_name: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.app_code and self.tenant_code and self.project_name)


Injector = Callable[[ManifestDocument, GovernanceContext], ManifestDocument]


def inject_governance(document: ManifestDocument, governance: GovernanceContext) -> ManifestDocument:
    """
    Return a copy of *document* with the governance labels and annotations for its kind merged in. Kinds without
    governance metadata, and all documents when governance is disabled, are returned unchanged.

    Raises:
        GovernanceValidationError: If the labels cannot be injected consistently.
    """

    if not governance.enabled:
        return document

    injector = INJECTORS.get(document.kind)
    if injector is None:
        return document

    logger.debug("Injecting governance labels into {}", document)
    return injector(document, governance)


def check_selector_subset(document: ManifestDocument) -> None:
    """
    Check that the selector of a workload only matches labels that its pod template carries. Otherwise the workload
    would not select its own pods.

    Raises:
        GovernanceValidationError: If the selector is not a subset of the pod template labels.
    """

    spec = document.spec
    match_labels = (spec.get("selector") or {}).get("matchLabels") or {}
    template_labels = ((spec.get("template") or {}).get("metadata") or {}).get("labels") or {}
    mismatched = sorted(k for k, v in match_labels.items() if template_labels.get(k) != v)
    if mismatched:
        raise GovernanceValidationError(
            f"Selector of {document} does not match its pod template labels: {', '.join(mismatched)}"
        )


def _mapping(parent: dict[str, Any], key: str) -> dict[str, Any]:
    """
    Return the mapping at *parent[key]*, inserting an empty one if it is missing or null.
    """

    if not isinstance(parent.get(key), dict):
        parent[key] = {}
    return parent[key]  # type: ignore[no-any-return]


def _merge_labels(parent: dict[str, Any], labels: dict[str, str]) -> None:
    parent["labels"] = {**(parent.get("labels") or {}), **labels}


def _workload_injector(load_type: PodLoadType) -> Injector:
    def _inject(document: ManifestDocument, governance: GovernanceContext) -> ManifestDocument:
        # The workload's own labels, user labels included, are propagated to its pods and selector. The pod
        # template and the selector receive the same map, so the selector stays a subset of the template.
        workload_labels = {**document.metadata.labels, **build_workload_labels(governance.app_code, load_type)}
        pod_labels = {**build_pod_labels(document.name, governance.tenant_code, load_type), **workload_labels}

        manifest = document.copy_manifest()
        _merge_labels(_mapping(manifest, "metadata"), workload_labels)
        spec = _mapping(manifest, "spec")
        _merge_labels(_mapping(_mapping(spec, "template"), "metadata"), pod_labels)
        selector = _mapping(spec, "selector")
        selector["matchLabels"] = {**(selector.get("matchLabels") or {}), **pod_labels}

        result = document.replace(manifest)
        check_selector_subset(result)
        return result

    return _inject


def _inject_service(document: ManifestDocument, governance: GovernanceContext) -> ManifestDocument:
    selector = document.spec.get("selector") or {}
    labels = build_service_labels(selector, governance.tenant_code, governance.project_name)
    return document.with_metadata(labels=labels)


def _inject_ingress(document: ManifestDocument, governance: GovernanceContext) -> ManifestDocument:
    return document.with_metadata(labels=build_ingress_labels(governance.tenant_code, governance.project_name))


def _inject_autoscaler(document: ManifestDocument, governance: GovernanceContext) -> ManifestDocument:
    target = document.spec.get("scaleTargetRef") or {}
    if not target.get("name"):
        raise GovernanceValidationError(f"{document} has no 'spec.scaleTargetRef.name'")
    load_type = PodLoadType.parse(target.get("kind"))
    labels = build_autoscaler_labels(target["name"], load_type, governance.tenant_code, governance.project_name)
    return document.with_metadata(labels=labels)


def _inject_secret(document: ManifestDocument, governance: GovernanceContext) -> ManifestDocument:
    return document.with_metadata(annotations=SECRET_TYPE_ANNOTATIONS)


INJECTORS: dict[str, Injector] = {
    "Deployment": _workload_injector(PodLoadType.DEPLOYMENT),
    "StatefulSet": _workload_injector(PodLoadType.STATEFUL_SET),
    "Service": _inject_service,
    "Ingress": _inject_ingress,
    "HorizontalPodAutoscaler": _inject_autoscaler,
    "Secret": _inject_secret,
}
""" Governance injectors by resource kind. """
