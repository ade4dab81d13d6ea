import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, Optional
import requests

from ...core.errors import RemoteStoreError
from ...core.models import Identity, IdentityConfig, RemoteReference, UploadMetadata
from ..base import IdentityProvider, RemoteStore
from . import HttpConfig

logger = logging.getLogger("CallSync.Plugin.Http")


class HttpClient:
    """Helper class for recording service API interactions."""

    def __init__(self, config: HttpConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = config.base_url.rstrip('/')
        self.timeout = config.timeout
        self.session = session or requests.Session()
        if config.api_key:
            self.session.headers["Authorization"] = f"Bearer {config.api_key.get_secret_value()}"

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str, allow_404: bool = False, **kwargs) -> Optional[requests.Response]:
        try:
            response = self.session.request(method, self.url(path), timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise RemoteStoreError(f"{method} {path} failed: {e}") from e

        if allow_404 and response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise RemoteStoreError(f"{method} {path} returned {response.status_code}: {response.text[:200]}")
        return response


class HttpRemoteStore(RemoteStore):
    """Stores audio objects and catalog entries on the recording service."""

    def __init__(self, config: HttpConfig, session: Optional[requests.Session] = None):
        super().__init__(config)
        self.client = HttpClient(config, session)

    @property
    def name(self) -> str:
        return "http"

    @classmethod
    def get_config_model(cls) -> type[HttpConfig]:
        return HttpConfig

    def upload(self, local_file: Path, storage_key: str, metadata: UploadMetadata) -> RemoteReference:
        storage_path = f"recordings/{metadata.uploader_id}/{storage_key}"
        content_type = mimetypes.guess_type(local_file.name)[0] or "application/octet-stream"

        with open(local_file, "rb") as f:
            response = self.client.request(
                "PUT", f"objects/{storage_path}", data=f, headers={"Content-Type": content_type}
            )

        url = self.client.url(f"objects/{storage_path}")
        body = _json_or_empty(response)
        url = body.get("url", url)

        catalog_entry = metadata.model_dump(mode="json")
        catalog_entry.update({"download_url": url, "storage_path": storage_path})
        self.client.request("PUT", f"recordings/{metadata.id}", json=catalog_entry)

        logger.debug(f"Uploaded {local_file.name} to {storage_path}")
        return RemoteReference(url=url, storage_path=storage_path)

    def delete(self, storage_path: str, recording_id: Optional[str] = None) -> None:
        self.client.request("DELETE", f"objects/{storage_path}", allow_404=True)
        if recording_id:
            self.client.request("DELETE", f"recordings/{recording_id}", allow_404=True)


class HttpIdentityProvider(IdentityProvider):
    """
    Signed-in identity from config; approval from the service's user record.

    A user may upload once GET /users/{id} reports status "approved".
    """

    def __init__(self, identity: IdentityConfig, config: HttpConfig, session: Optional[requests.Session] = None):
        self.identity = identity
        self.client = HttpClient(config, session)

    def current_identity(self) -> Optional[Identity]:
        if not self.identity.user_id:
            return None
        return Identity(
            id=self.identity.user_id,
            display_name=self.identity.display_name,
            email=self.identity.email,
        )

    def is_authorized(self, identity_id: str) -> bool:
        response = self.client.request("GET", f"users/{identity_id}", allow_404=True)
        if response is None:
            logger.warning(f"No user profile for {identity_id}")
            return False
        return _json_or_empty(response).get("status", "pending") == "approved"


def _json_or_empty(response: Optional[requests.Response]) -> Dict[str, Any]:
    if response is None or not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
