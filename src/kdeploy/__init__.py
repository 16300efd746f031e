"""
Applies Kubernetes manifest files to a cluster with multi-tenant governance: resources are only deployed into
namespaces that the principal is allowed to use, ownership labels are injected into workloads, services, ingresses
and autoscalers, and image-pull secrets are created for private container registries.
"""

__version__ = "0.1.0"
