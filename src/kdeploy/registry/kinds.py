"""
The built-in resource kinds. Kinds that are not listed here are skipped when they are encountered in a manifest.
"""

from typing import Any

from kubernetes.client import (
    ApiextensionsV1Api,
    AppsV1Api,
    AutoscalingV1Api,
    AutoscalingV2Api,
    BatchV1Api,
    CoreV1Api,
    NetworkingV1Api,
    PolicyV1Api,
    RbacAuthorizationV1Api,
    SchedulingV1Api,
    StorageV1Api,
)

from kdeploy.registry import ResourceKindBinding, ResourceOperations, UpdaterFactory
from kdeploy.updater.typed import ServiceUpdater, TypedResourceUpdater


def _namespaced(
    api_version: str,
    kind: str,
    api: type[Any],
    resource: str,
    updater_factory: UpdaterFactory = TypedResourceUpdater,
) -> ResourceKindBinding:
    return ResourceKindBinding(
        api_version=api_version,
        kind=kind,
        api=api,
        operations=ResourceOperations.namespaced(resource),
        namespaced=True,
        updater_factory=updater_factory,
    )


def _cluster(api_version: str, kind: str, api: type[Any], resource: str) -> ResourceKindBinding:
    return ResourceKindBinding(
        api_version=api_version,
        kind=kind,
        api=api,
        operations=ResourceOperations.cluster(resource),
        namespaced=False,
        updater_factory=TypedResourceUpdater,
    )


DEFAULT_BINDINGS: list[ResourceKindBinding] = [
    # core/v1
    _cluster("v1", "Namespace", CoreV1Api, "namespace"),
    _namespaced("v1", "ConfigMap", CoreV1Api, "config_map"),
    _namespaced("v1", "LimitRange", CoreV1Api, "limit_range"),
    _cluster("v1", "PersistentVolume", CoreV1Api, "persistent_volume"),
    _namespaced("v1", "PersistentVolumeClaim", CoreV1Api, "persistent_volume_claim"),
    _namespaced("v1", "Pod", CoreV1Api, "pod"),
    _namespaced("v1", "ReplicationController", CoreV1Api, "replication_controller"),
    _namespaced("v1", "ResourceQuota", CoreV1Api, "resource_quota"),
    _namespaced("v1", "Secret", CoreV1Api, "secret"),
    _namespaced("v1", "Service", CoreV1Api, "service", ServiceUpdater),
    _namespaced("v1", "ServiceAccount", CoreV1Api, "service_account"),
    # apps/v1
    _namespaced("apps/v1", "DaemonSet", AppsV1Api, "daemon_set"),
    _namespaced("apps/v1", "Deployment", AppsV1Api, "deployment"),
    _namespaced("apps/v1", "ReplicaSet", AppsV1Api, "replica_set"),
    _namespaced("apps/v1", "StatefulSet", AppsV1Api, "stateful_set"),
    # batch/v1
    _namespaced("batch/v1", "CronJob", BatchV1Api, "cron_job"),
    _namespaced("batch/v1", "Job", BatchV1Api, "job"),
    # autoscaling
    _namespaced("autoscaling/v1", "HorizontalPodAutoscaler", AutoscalingV1Api, "horizontal_pod_autoscaler"),
    _namespaced("autoscaling/v2", "HorizontalPodAutoscaler", AutoscalingV2Api, "horizontal_pod_autoscaler"),
    # networking.k8s.io/v1
    _namespaced("networking.k8s.io/v1", "Ingress", NetworkingV1Api, "ingress"),
    _cluster("networking.k8s.io/v1", "IngressClass", NetworkingV1Api, "ingress_class"),
    _namespaced("networking.k8s.io/v1", "NetworkPolicy", NetworkingV1Api, "network_policy"),
    # policy/v1
    _namespaced("policy/v1", "PodDisruptionBudget", PolicyV1Api, "pod_disruption_budget"),
    # rbac.authorization.k8s.io/v1
    _cluster("rbac.authorization.k8s.io/v1", "ClusterRole", RbacAuthorizationV1Api, "cluster_role"),
    _cluster("rbac.authorization.k8s.io/v1", "ClusterRoleBinding", RbacAuthorizationV1Api, "cluster_role_binding"),
    _namespaced("rbac.authorization.k8s.io/v1", "Role", RbacAuthorizationV1Api, "role"),
    _namespaced("rbac.authorization.k8s.io/v1", "RoleBinding", RbacAuthorizationV1Api, "role_binding"),
    # others
    _cluster("apiextensions.k8s.io/v1", "CustomResourceDefinition", ApiextensionsV1Api, "custom_resource_definition"),
    _cluster("scheduling.k8s.io/v1", "PriorityClass", SchedulingV1Api, "priority_class"),
    _cluster("storage.k8s.io/v1", "StorageClass", StorageV1Api, "storage_class"),
]
