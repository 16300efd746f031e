"""
Loading of Kubernetes manifests from multi-document YAML files.
"""

from collections.abc import Callable
from pathlib import Path

import yaml
from loguru import logger

from kdeploy.errors import InvalidManifestError
from kdeploy.manifest import Manifest, ManifestDocument
from kdeploy.tools.fs import glob_files


def load_manifests(file: Path, substitute: Callable[[str], str] | None = None) -> list[ManifestDocument]:
    """
    Load all resources from a YAML file.

    Args:
        file: The file to read.
        substitute: An optional function that is applied to the raw file content before it is parsed, e.g. to
            expand variables.
    Raises:
        InvalidManifestError: If the file is not valid YAML or a document is not a Kubernetes resource.
    """

    logger.trace("Loading manifests from '{}'", file)
    try:
        content = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InvalidManifestError(file, f"could not be read: {exc}") from exc
    if substitute is not None:
        content = substitute(content)

    try:
        documents = list(yaml.safe_load_all(content))
    except yaml.YAMLError as exc:
        raise InvalidManifestError(file, f"not valid YAML: {exc}") from exc

    result: list[ManifestDocument] = []
    for index, document in enumerate(documents):
        # Empty documents, e.g. from a trailing `---`.
        if document is None:
            continue
        _validate(file, index, document)
        result.append(ManifestDocument(Manifest(document), file, index))

    logger.trace("Loaded {} resource(s) from '{}'", len(result), file)

    return result


def find_config_files(workspace: Path, patterns: str) -> list[Path]:
    """
    Find the configuration files matching the comma-separated glob *patterns* in the *workspace*.
    """

    files = glob_files(workspace, patterns)
    logger.trace("Configuration files matching '{}': {}", patterns, files)
    return files


def _validate(file: Path, index: int, document: object) -> None:
    if not isinstance(document, dict):
        raise InvalidManifestError(file, f"expected a mapping, got {type(document).__name__}", index)
    for key in ("apiVersion", "kind"):
        if not isinstance(document.get(key), str) or not document[key]:
            raise InvalidManifestError(file, f"missing or invalid '{key}'", index)
    metadata = document.get("metadata")
    if not isinstance(metadata, dict):
        raise InvalidManifestError(file, f"{document['kind']} has no 'metadata'", index)
    if not isinstance(metadata.get("name"), str) or not metadata["name"]:
        raise InvalidManifestError(file, f"{document['kind']} has no 'metadata.name'", index)
    for key in ("labels", "annotations"):
        value = metadata.get(key)
        if value is not None and not isinstance(value, dict):
            raise InvalidManifestError(file, f"'metadata.{key}' of {document['kind']} must be a mapping", index)
