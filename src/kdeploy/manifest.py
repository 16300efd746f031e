"""
The data model for Kubernetes manifests read from configuration files.
"""

from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NewType

Manifest = NewType("Manifest", dict[str, Any])
""" Represents a Kubernetes manifest. """

Manifests = NewType("Manifests", list[Manifest])
""" Represents a list of Kubernetes manifests. """


@dataclass(frozen=True)
class ObjectMetadata:
    """
    The subset of Kubernetes object metadata that the deployment engine looks at.
    """

    name: str
    namespace: str | None = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    @staticmethod
    def of(manifest: Manifest) -> "ObjectMetadata":
        metadata = manifest.get("metadata") or {}
        return ObjectMetadata(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace") or None,
            labels=dict(metadata.get("labels") or {}),
            annotations=dict(metadata.get("annotations") or {}),
        )


@dataclass(frozen=True)
class ManifestDocument:
    """
    One resource decoded from a configuration file. The wrapped manifest is treated as immutable; operations that
    change the resource return a new document built from a copy.
    """

    manifest: Manifest
    source: Path | None = None
    """ The file that the document was loaded from. """

    index: int = 0
    """ The position of the document in its source file. """

    @property
    def api_version(self) -> str:
        return str(self.manifest["apiVersion"])

    @property
    def kind(self) -> str:
        return str(self.manifest["kind"])

    @property
    def metadata(self) -> ObjectMetadata:
        return ObjectMetadata.of(self.manifest)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    @property
    def spec(self) -> dict[str, Any]:
        return self.manifest.get("spec") or {}

    @property
    def is_namespace(self) -> bool:
        return self.api_version == "v1" and self.kind == "Namespace"

    def copy_manifest(self) -> Manifest:
        """
        Return a deep copy of the wrapped manifest that can be modified freely.
        """

        return Manifest(deepcopy(self.manifest))

    def replace(self, manifest: Manifest) -> "ManifestDocument":
        """
        Return a new document for *manifest* that keeps the source location of this document.
        """

        return ManifestDocument(manifest, self.source, self.index)

    def with_metadata(
        self,
        labels: dict[str, str] | None = None,
        annotations: dict[str, str] | None = None,
    ) -> "ManifestDocument":
        """
        Return a new document with *labels* and *annotations* merged into the object metadata. Keys that already exist
        are overwritten.
        """

        manifest = self.copy_manifest()
        metadata = manifest.setdefault("metadata", {})
        if labels:
            metadata["labels"] = {**(metadata.get("labels") or {}), **labels}
        if annotations:
            metadata["annotations"] = {**(metadata.get("annotations") or {}), **annotations}
        return self.replace(manifest)

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"
