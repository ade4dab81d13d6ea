import os
import threading
from pathlib import Path
from typing import List, Optional, Set

from callsync.core.errors import RemoteStoreError
from callsync.core.models import Identity, RemoteReference, UploadMetadata
from callsync.providers.base import IdentityProvider, ProviderConfig, RemoteStore


def write_audio(path: Path, mtime_ms: Optional[int] = None, content: bytes = b"\x00" * 64) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    if mtime_ms is not None:
        os.utime(path, (mtime_ms / 1000, mtime_ms / 1000))
    return path


class FakeIdentity(IdentityProvider):
    def __init__(self, identity: Optional[Identity] = None, authorized: bool = True):
        self.identity = identity
        self.authorized = authorized

    def current_identity(self) -> Optional[Identity]:
        return self.identity

    def is_authorized(self, identity_id: str) -> bool:
        return self.authorized


def signed_in(authorized: bool = True) -> FakeIdentity:
    return FakeIdentity(Identity(id="u1", display_name="Kim", email="kim@example.com"), authorized)


class FakeRemote(RemoteStore):
    """Records calls; fails for file names in fail_names; can block until released."""

    def __init__(self, fail_names: Optional[Set[str]] = None, block: bool = False):
        super().__init__(ProviderConfig())
        self.fail_names = fail_names or set()
        self.uploads: List[tuple] = []
        self.deletes: List[tuple] = []
        self.entered = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "fake"

    @classmethod
    def get_config_model(cls):
        return ProviderConfig

    def upload(self, local_file: Path, storage_key: str, metadata: UploadMetadata) -> RemoteReference:
        with self._lock:
            self.uploads.append((local_file, storage_key, metadata))
        self.entered.set()
        self.release.wait(timeout=5)
        if local_file.name in self.fail_names:
            raise RemoteStoreError("store rejected object")
        return RemoteReference(url=f"https://store.example/{storage_key}", storage_path=f"recordings/{metadata.uploader_id}/{storage_key}")

    def delete(self, storage_path: str, recording_id: Optional[str] = None) -> None:
        self.deletes.append((storage_path, recording_id))
