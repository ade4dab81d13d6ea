from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel

from ..core.models import CallLogEntry, Identity, RemoteReference, UploadMetadata


class ProviderConfig(BaseModel):
    """Base configuration for all providers."""
    pass


class Provider(ABC):
    """
    Abstract base class for all providers.

    Attributes:
        name (str): The unique name of the provider (e.g., 'http', 'folder').
        config (ProviderConfig): The configuration object for this provider.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the unique name of the provider."""
        pass

    @classmethod
    @abstractmethod
    def get_config_model(cls) -> type[ProviderConfig]:
        """Return the Pydantic model class used for this provider's configuration."""
        pass


class RemoteStore(Provider):
    """Remote object store plus metadata catalog."""

    @abstractmethod
    def upload(self, local_file: Path, storage_key: str, metadata: UploadMetadata) -> RemoteReference:
        """
        Upload a recording and its catalog entry.

        Raises:
            RemoteStoreError: the store rejected the object or the catalog entry.
        """
        pass

    @abstractmethod
    def delete(self, storage_path: str, recording_id: Optional[str] = None) -> None:
        """
        Remove a previously uploaded object and, when known, its catalog entry.

        Raises:
            RemoteStoreError: the deletion failed.
        """
        pass


class IdentityProvider(ABC):
    """Answers who is signed in and whether they may upload."""

    @abstractmethod
    def current_identity(self) -> Optional[Identity]:
        pass

    @abstractmethod
    def is_authorized(self, identity_id: str) -> bool:
        pass


class CallHistorySource(ABC):
    """Read-only view of the device call log."""

    @abstractmethod
    def query_calls(self, start_ms: int, end_ms: int) -> List[CallLogEntry]:
        """
        Return calls whose timestamp lies in [start_ms, end_ms], newest first.

        Raises:
            PermissionError: the call log may not be read.
        """
        pass


class ContactsSource(ABC):
    """Read-only reverse lookup from phone number to contact name."""

    @abstractmethod
    def lookup_name(self, phone_number: str) -> Optional[str]:
        pass
