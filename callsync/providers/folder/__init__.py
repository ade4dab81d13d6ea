from pydantic import Field

from ..base import ProviderConfig


class FolderConfig(ProviderConfig):
    """Configuration for the folder-backed store (NAS mounts, synced drives)."""

    root: str = Field(
        default="~/CallSyncUploads",
        description="Directory receiving uploaded recordings and catalog entries"
    )


# Alias for Config loader
Config = FolderConfig

__all__ = ['FolderConfig', 'Config']
