"""Protocol interfaces for collaborators of the orchestration engine."""

from typing import Any, Optional, Protocol

from typing_extensions import runtime_checkable


@runtime_checkable
class AdminConfigSource(Protocol):
    """Read-only view of the admin-managed configuration store."""

    async def get_admin_config(self) -> Optional[dict[str, Any]]:
        """Return the stored admin configuration, or None when unset."""
        ...


@runtime_checkable
class ImageStore(Protocol):
    """Binary storage for generated images."""

    async def store(self, image_bytes: bytes, name_hint: str) -> str:
        """Persist image bytes and return their public URL."""
        ...
