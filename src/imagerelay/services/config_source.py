"""In-process admin configuration source."""

import copy
from typing import Any, Optional


class InMemoryAdminConfigSource:
    """AdminConfigSource backed by a dict, for tests and embedded use."""

    def __init__(self, config: Optional[dict[str, Any]] = None):
        self._config = copy.deepcopy(config) if config is not None else None

    async def get_admin_config(self) -> Optional[dict[str, Any]]:
        if self._config is None:
            return None
        return copy.deepcopy(self._config)

    def update(self, config: Optional[dict[str, Any]]) -> None:
        """Replace the stored configuration."""
        self._config = copy.deepcopy(config) if config is not None else None
