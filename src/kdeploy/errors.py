"""
Errors raised while applying manifests to a cluster. Every error except #UnknownKindWarning aborts the current run.
"""

from dataclasses import dataclass
from pathlib import Path
import textwrap


class DeployError(Exception):
    """
    Base class for errors that abort a deployment run.
    """

    @property
    def error_kind(self) -> str:
        """
        The name of the error kind, transferred as part of a failed run's result.
        """

        return type(self).__name__


@dataclass
class InvalidManifestError(DeployError):
    """
    Raised when a manifest file does not contain well-formed Kubernetes resources.
    """

    file: Path | None
    message: str
    index: int | None = None

    def __str__(self) -> str:
        location = str(self.file) if self.file else "<input>"
        if self.index is not None:
            location += f" (document #{self.index})"
        if "\n" in self.message:
            return f"Invalid manifest in {location}:\n\n" + textwrap.indent(self.message, "  ")
        return f"Invalid manifest in {location}: {self.message}"


@dataclass
class AuthorizationError(DeployError):
    """
    Raised when a resource targets a namespace outside of the allow-set, or the allow-set could not be fetched.
    """

    message: str
    namespace: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class GovernanceValidationError(DeployError):
    """
    Raised when governance labels cannot be injected consistently into a resource.
    """

    message: str

    def __str__(self) -> str:
        return self.message


class IllegalStateError(GovernanceValidationError):
    """
    Raised when a resource references a workload load type that is not known.
    """


@dataclass
class InvalidNameError(DeployError, ValueError):
    """
    Raised when a configured Kubernetes object name violates the length or pattern constraints.
    """

    name: str
    message: str

    def __str__(self) -> str:
        return f"{self.message}: {self.name!r}"


@dataclass
class ClusterAPIError(DeployError):
    """
    Raised when a call against the Kubernetes API fails for any reason other than a not-found on fetch or delete.
    """

    operation: str
    kind: str
    name: str
    namespace: str | None
    status: int | None = None
    reason: str | None = None

    def __str__(self) -> str:
        target = f"{self.kind} {self.namespace}/{self.name}" if self.namespace else f"{self.kind} {self.name}"
        message = f"Failed to {self.operation} {target}"
        if self.status is not None:
            message += f" (status {self.status})"
        if self.reason:
            message += f": {self.reason}"
        return message


@dataclass
class RegistryError(DeployError):
    """
    Raised at start-up when the resource type registry cannot be built.
    """

    message: str

    def __str__(self) -> str:
        return f"Resource type registry is broken: {self.message}"


@dataclass
class ConfigurationError(DeployError):
    """
    Raised when the inputs of a deployment run are incomplete or inconsistent.
    """

    message: str

    def __str__(self) -> str:
        return self.message


class UnknownKindWarning(UserWarning):
    """
    Emitted when a manifest has a kind for which no binding is registered. The resource is skipped.
    """
