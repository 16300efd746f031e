from dataclasses import replace
from typing import Any
from unittest.mock import MagicMock

import pytest

from kdeploy.registry import ResourceTypeRegistry
from kdeploy.updater import ResourceManager


@pytest.fixture
def registry(api: MagicMock) -> ResourceTypeRegistry:
    """
    The default registry, with every typed API replaced by the *api* mock of the test module.
    """

    def manager_factory(client: Any, monitor: Any) -> ResourceManager:
        return ResourceManager(client, monitor, api_factory=lambda api_class: api)

    default = ResourceTypeRegistry.default()
    return ResourceTypeRegistry({k: replace(b, manager_factory=manager_factory) for k, b in default.bindings.items()})
