"""
Derivation of the `(apiGroup, apiVersion, kind)` triple from the model class names of the Kubernetes Python client.

Model classes are named after the resource kind, prefixed by the API version and, for some groups, the API group
(e.g. `V1Deployment`, `V2HorizontalPodAutoscaler`, `AdmissionregistrationV1ServiceReference`). The prefixes are
matched in a fixed order; more specific prefixes come before the ones they start with.
"""

from dataclasses import dataclass
import inspect

from loguru import logger

API_GROUP_PREFIXES: tuple[tuple[str, str], ...] = (
    ("Admissionregistration", "admissionregistration.k8s.io"),
    ("Apiextensions", "apiextensions.k8s.io"),
    ("Apiregistration", "apiregistration.k8s.io"),
    ("Apps", "apps"),
    ("Authentication", "authentication.k8s.io"),
    ("Authorization", "authorization.k8s.io"),
    ("Autoscaling", "autoscaling"),
    ("Extensions", "extensions"),
    ("Batch", "batch"),
    ("Certificates", "certificates.k8s.io"),
    ("Coordination", "coordination.k8s.io"),
    ("Discovery", "discovery.k8s.io"),
    ("Events", "events.k8s.io"),
    ("Flowcontrol", "flowcontrol.apiserver.k8s.io"),
    ("Networking", "networking.k8s.io"),
    ("Node", "node.k8s.io"),
    ("Policy", "policy"),
    ("RbacAuthorization", "rbac.authorization.k8s.io"),
    ("Scheduling", "scheduling.k8s.io"),
    ("Settings", "settings.k8s.io"),
    ("Storagemigration", "storagemigration.k8s.io"),
    ("Storage", "storage.k8s.io"),
)
""" Ordered (class name prefix, API group) pairs. """

API_VERSION_PREFIXES: tuple[str, ...] = (
    "V2beta1",
    "V2beta2",
    "V2alpha1",
    "V1beta2",
    "V1beta1",
    "V1beta3",
    "V1alpha1",
    "V1alpha2",
    "V1alpha3",
    "V1",
    "V2",
)
""" Ordered class name prefixes of API versions. `V1` must come after every `V1...` version. """

_GROUP_TO_PREFIX = {group: prefix for prefix, group in API_GROUP_PREFIXES}


@dataclass(frozen=True)
class ApiType:
    """
    The API group, version and kind derived from a model class name. The group and version are `None` if the name
    carries no matching prefix.
    """

    group: str | None
    version: str | None
    kind: str

    @property
    def api_version(self) -> str:
        """
        The `apiVersion` as it appears in manifests, e.g. `apps/v1` or `v1`.
        """

        return "/".join(x for x in (self.group, self.version) if x)

    @property
    def group_prefix(self) -> str:
        """
        The class name prefix of the API group, e.g. `RbacAuthorization`. Empty for the core group.
        """

        return _GROUP_TO_PREFIX[self.group] if self.group else ""

    @property
    def model_name(self) -> str:
        """
        Reconstruct the model class name that this triple was derived from.
        """

        version_prefix = self.version.capitalize() if self.version else ""
        return self.group_prefix + version_prefix + self.kind


def derive_api_type(model_name: str) -> ApiType:
    """
    Derive the #ApiType from the name of a Kubernetes client model class.
    """

    group: str | None = None
    remainder = model_name
    for prefix, api_group in API_GROUP_PREFIXES:
        if remainder.startswith(prefix):
            group = api_group
            remainder = remainder[len(prefix) :]
            break

    version: str | None = None
    for prefix in API_VERSION_PREFIXES:
        if remainder.startswith(prefix):
            version = prefix.lower()
            remainder = remainder[len(prefix) :]
            break

    return ApiType(group, version, remainder)


def is_object_model(cls: type) -> bool:
    """
    Check if *cls* is a model of a top-level Kubernetes object, i.e. it has a `kind` and `metadata`. List types are
    excluded.
    """

    attributes = getattr(cls, "attribute_map", None)
    if not isinstance(attributes, dict):
        return False
    return "kind" in attributes and "metadata" in attributes and not cls.__name__.endswith("List")


def build_model_map() -> dict[tuple[str, str], str]:
    """
    Introspect the models of the Kubernetes Python client and map every `(apiVersion, kind)` pair derived from a
    model class name to that name. If two models derive the same pair, the first one in alphabetical order wins.
    """

    from kubernetes.client import models

    result: dict[tuple[str, str], str] = {}
    for name, cls in sorted(inspect.getmembers(models, inspect.isclass)):
        if not is_object_model(cls):
            continue
        api_type = derive_api_type(name)
        key = (api_type.api_version, api_type.kind)
        if key in result:
            logger.trace("Model {} derives {}, which is already mapped to {}", name, key, result[key])
            continue
        result[key] = name

    logger.debug("Loaded {} Kubernetes object model(s)", len(result))
    return result


def resolve_model(model_map: dict[tuple[str, str], str], api_version: str, kind: str) -> str | None:
    """
    Find the model class name for a manifest's *api_version* and *kind*. Most models carry no API group in their
    name, so the bare version is tried if the full `group/version` is not mapped.
    """

    if (api_version, kind) in model_map:
        return model_map[(api_version, kind)]
    version = api_version.rpartition("/")[2]
    return model_map.get((version, kind))
