import json
import shutil
import logging
from pathlib import Path
from typing import Optional

from ...core.errors import RemoteStoreError
from ...core.models import RemoteReference, UploadMetadata
from ..base import RemoteStore
from . import FolderConfig

logger = logging.getLogger("CallSync.Plugin.Folder")


class FolderRemoteStore(RemoteStore):
    """
    Copies recordings into a directory tree:

        {root}/recordings/{uploader_id}/{storage_key}
        {root}/catalog/{recording_id}.json
    """

    def __init__(self, config: FolderConfig):
        super().__init__(config)
        self.root = Path(config.root).expanduser()

    @property
    def name(self) -> str:
        return "folder"

    @classmethod
    def get_config_model(cls) -> type[FolderConfig]:
        return FolderConfig

    def catalog_path(self, recording_id: str) -> Path:
        return self.root / "catalog" / f"{recording_id}.json"

    def upload(self, local_file: Path, storage_key: str, metadata: UploadMetadata) -> RemoteReference:
        storage_path = f"recordings/{metadata.uploader_id}/{storage_key}"
        destination = self.root / storage_path
        url = destination.absolute().as_uri()

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(local_file, destination)

            catalog_file = self.catalog_path(metadata.id)
            catalog_file.parent.mkdir(parents=True, exist_ok=True)
            entry = metadata.model_dump(mode="json")
            entry.update({"download_url": url, "storage_path": storage_path})
            catalog_file.write_text(json.dumps(entry, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise RemoteStoreError(f"Could not copy {local_file.name} to {destination}: {e}") from e

        logger.debug(f"Copied {local_file.name} to {destination}")
        return RemoteReference(url=url, storage_path=storage_path)

    def delete(self, storage_path: str, recording_id: Optional[str] = None) -> None:
        try:
            (self.root / storage_path).unlink(missing_ok=True)
            if recording_id:
                self.catalog_path(recording_id).unlink(missing_ok=True)
        except OSError as e:
            raise RemoteStoreError(f"Could not delete {storage_path}: {e}") from e
