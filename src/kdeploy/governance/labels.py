"""
The fixed vocabulary of governance labels and helpers to build the label sets for each resource kind. All keys share
the `appmgr-` prefix so they do not collide with labels that users put on their resources.
"""

from enum import Enum

from kdeploy.errors import IllegalStateError

LABEL_PREFIX = "appmgr-"

LABEL_APP = "appmgr-app"
""" The application that a resource belongs to. """

LABEL_LOADTYPE = "appmgr-loadType"
""" The workload type of a resource, see #PodLoadType. """

LABEL_POD_APP = "appmgr-pod-app"
""" The workload that a pod belongs to. """

LABEL_POD_TENANT = "appmgr-pod-tenant"
LABEL_POD_LOADTYPE = "appmgr-pod-loadType"
LABEL_POD_DEPLOYMENT = "appmgr-pod-deployment"
LABEL_POD_STATEFULSET = "appmgr-pod-statefulset"
LABEL_POD_JOB = "appmgr-pod-job"

LABEL_SERVICE_APP = "appmgr-service-app"
LABEL_SERVICE_TENANT = "appmgr-service-tenant"
LABEL_SERVICE_PROJECT = "appmgr-service-project"

LABEL_INGRESS_TENANT = "appmgr-ingress-tenant"
LABEL_INGRESS_PROJECT = "appmgr-ingress-project"

LABEL_AUTOSCALER_APP = "appmgr-autoscaler-app"
LABEL_AUTOSCALER_LOADTYPE = "appmgr-autoscaler-loadType"
LABEL_AUTOSCALER_TENANT = "appmgr-autoscaler-tenant"
LABEL_AUTOSCALER_PROJECT = "appmgr-autoscaler-project"

SECRET_TYPE_ANNOTATIONS = {
    "appmgr.secrets.type": "KEY_VALUE_SECRET",
    "mlog.secrets.type": "KEY_VALUE_SECRET",
}
""" Annotations that mark a Secret as a key-value secret. """


class PodLoadType(str, Enum):
    """
    The type of workload that runs a pod.
    """

    STATEFUL_SET = "StatefulSet"
    DEPLOYMENT = "Deployment"
    JOB = "Job"
    CRON_JOB = "CronJob"

    @property
    def description(self) -> str:
        return _LOAD_TYPE_DESCRIPTIONS[self]

    @staticmethod
    def parse(value: str | None) -> "PodLoadType":
        """
        Raises:
            IllegalStateError: If *value* is not the code of a known load type.
        """

        for load_type in PodLoadType:
            if load_type.value == value:
                return load_type
        raise IllegalStateError(f"Unknown workload load type: {value!r}")


_LOAD_TYPE_DESCRIPTIONS = {
    PodLoadType.STATEFUL_SET: "stateful",
    PodLoadType.DEPLOYMENT: "stateless",
    PodLoadType.JOB: "job",
    PodLoadType.CRON_JOB: "scheduled job",
}

_POD_WORKLOAD_LABELS = {
    PodLoadType.DEPLOYMENT: LABEL_POD_DEPLOYMENT,
    PodLoadType.STATEFUL_SET: LABEL_POD_STATEFULSET,
    PodLoadType.JOB: LABEL_POD_JOB,
}


def build_workload_labels(app_code: str, load_type: PodLoadType) -> dict[str, str]:
    """
    Labels for the metadata of a workload (e.g. a Deployment).
    """

    return {LABEL_APP: app_code, LABEL_LOADTYPE: load_type.value}


def build_pod_labels(workload_name: str, tenant_code: str, load_type: PodLoadType) -> dict[str, str]:
    """
    Labels for the pod template of a workload. The same set is used for the workload's selector.
    """

    labels = {
        LABEL_POD_LOADTYPE: load_type.value,
        LABEL_POD_APP: workload_name,
        LABEL_POD_TENANT: tenant_code,
    }
    if load_type in _POD_WORKLOAD_LABELS:
        labels[_POD_WORKLOAD_LABELS[load_type]] = workload_name
    return labels


def build_service_labels(selector: dict[str, str], tenant_code: str, project_name: str) -> dict[str, str]:
    """
    Labels for a Service. The Service's *selector* must already target a labeled workload, i.e. it carries the pod
    app and load type labels.

    Raises:
        IllegalStateError: If the selector does not reference a workload or references an unknown load type.
    """

    pod_app = selector.get(LABEL_POD_APP)
    if not pod_app:
        raise IllegalStateError(f"Service selector has no {LABEL_POD_APP!r} label")
    load_type = PodLoadType.parse(selector.get(LABEL_POD_LOADTYPE))
    return {
        LABEL_POD_APP: pod_app,
        LABEL_SERVICE_APP: pod_app,
        LABEL_POD_LOADTYPE: load_type.value,
        LABEL_SERVICE_TENANT: tenant_code,
        LABEL_SERVICE_PROJECT: project_name,
    }


def build_ingress_labels(tenant_code: str, project_name: str) -> dict[str, str]:
    return {LABEL_INGRESS_TENANT: tenant_code, LABEL_INGRESS_PROJECT: project_name}


def build_autoscaler_labels(
    target_name: str, target_load_type: PodLoadType, tenant_code: str, project_name: str
) -> dict[str, str]:
    return {
        LABEL_AUTOSCALER_APP: target_name,
        LABEL_AUTOSCALER_LOADTYPE: target_load_type.value,
        LABEL_AUTOSCALER_TENANT: tenant_code,
        LABEL_AUTOSCALER_PROJECT: project_name,
    }


def build_autoscaler_label_selector(app: str | None, load_type: str | None) -> str | None:
    """
    Build a label selector that finds the autoscalers of a workload. Returns `None` if neither *app* nor *load_type*
    is given.
    """

    terms = []
    if app:
        terms.append(f"{LABEL_AUTOSCALER_APP}={app}")
    if load_type:
        terms.append(f"{LABEL_AUTOSCALER_LOADTYPE}={load_type}")
    return ",".join(terms) or None
