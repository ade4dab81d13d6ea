import hashlib
import time
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Any
from pydantic import BaseModel, Field, field_validator


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_retryable(self) -> bool:
        return self in (UploadStatus.PENDING, UploadStatus.FAILED)

    def can_transition_to(self, target: "UploadStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


# done is terminal; uploading -> failed also covers recovery after an unclean shutdown
_ALLOWED_TRANSITIONS: Dict[UploadStatus, FrozenSet[UploadStatus]] = {
    UploadStatus.PENDING: frozenset({UploadStatus.UPLOADING}),
    UploadStatus.UPLOADING: frozenset({UploadStatus.DONE, UploadStatus.FAILED}),
    UploadStatus.FAILED: frozenset({UploadStatus.UPLOADING}),
    UploadStatus.DONE: frozenset(),
}


class CallType(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: Any) -> "CallType":
        """Map any call-history direction onto the three recording call types."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


def recording_id_for(path: Path) -> str:
    """Stable identifier derived from the file's absolute path."""
    absolute = str(Path(path).absolute())
    return hashlib.sha256(absolute.encode("utf-8")).hexdigest()[:16]


def now_millis() -> int:
    return int(time.time() * 1000)


class CallerInfo(BaseModel):
    """Who was on the other end of a recorded call, as far as we can tell."""
    phone_number: str = ""
    contact_name: str = ""
    call_type: CallType = CallType.UNKNOWN


class CallLogEntry(BaseModel):
    phone_number: str = ""
    contact_name: str = ""
    call_type: CallType = CallType.UNKNOWN
    timestamp: int
    duration: int = 0

    @field_validator("call_type", mode="before")
    @classmethod
    def normalize_call_type(cls, v: Any) -> CallType:
        return CallType.coerce(v)

    def to_caller_info(self) -> CallerInfo:
        return CallerInfo(
            phone_number=self.phone_number,
            contact_name=self.contact_name,
            call_type=self.call_type,
        )


class Recording(BaseModel):
    """One call-recording file and its processing/upload state."""
    id: str
    file_name: str
    file_path: str
    phone_number: str = ""
    contact_name: str = ""
    call_type: CallType = CallType.UNKNOWN
    duration: int = 0
    recorded_at: int
    upload_status: UploadStatus = UploadStatus.PENDING
    created_at: int = Field(default_factory=now_millis)
    remote_url: Optional[str] = None
    storage_path: Optional[str] = None

    @field_validator("duration")
    @classmethod
    def duration_must_be_non_negative(cls, v: int) -> int:
        return max(v, 0)

    @property
    def caller(self) -> CallerInfo:
        return CallerInfo(
            phone_number=self.phone_number,
            contact_name=self.contact_name,
            call_type=self.call_type,
        )


class DeviceFile(BaseModel):
    """Scan-time view of a file in the recording directory. Never persisted."""
    path: Path
    caller: CallerInfo = Field(default_factory=CallerInfo)
    recorded_at: int
    is_already_added: bool = False

    @property
    def file_name(self) -> str:
        return self.path.name

    @property
    def absolute_path(self) -> str:
        return str(self.path.absolute())


class Identity(BaseModel):
    id: str
    display_name: str = ""
    email: str = ""


class UploadMetadata(BaseModel):
    """Metadata bundle stored in the remote catalog next to the audio object."""
    id: str
    file_name: str
    phone_number: str = ""
    contact_name: str = ""
    call_type: CallType = CallType.UNKNOWN
    duration: int = 0
    recorded_at: int
    uploaded_at: int = Field(default_factory=now_millis)
    uploader_id: str
    uploader_name: str = ""
    uploader_email: str = ""
    file_size: int = 0


class RemoteReference(BaseModel):
    url: str
    storage_path: str


# Configuration models

DEFAULT_RECORDING_DIRS = [
    "Recordings/Call",
    "Call",
    "DCIM/Call",
    "Sounds/Call",
]

AUDIO_EXTENSIONS = frozenset({".m4a", ".mp3", ".amr", ".3gp", ".wav"})


class PathsConfig(BaseModel):
    storage_root: str = "~"
    recording_dirs: List[str] = Field(default_factory=lambda: list(DEFAULT_RECORDING_DIRS))
    database: str = "~/.local/state/callsync/recordings.db"

    def candidate_dirs(self) -> List[Path]:
        """Recording directory candidates in priority order."""
        root = Path(self.storage_root).expanduser()
        return [root / d for d in self.recording_dirs]


class WatcherConfig(BaseModel):
    settle_delay_seconds: float = 3.0
    scan_on_start: bool = True
    auto_upload: bool = True


class CorrelatorConfig(BaseModel):
    tolerance_minutes: float = 5.0
    call_log_file: Optional[str] = None
    contacts_file: Optional[str] = None


class UploadConfig(BaseModel):
    remote: str = "folder"
    max_workers: int = 4


class IdentityConfig(BaseModel):
    provider: str = "static"
    user_id: Optional[str] = None
    display_name: str = ""
    email: str = ""
    approved: bool = False


class ConfigContext(BaseModel):
    paths: PathsConfig = Field(default_factory=PathsConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    correlator: CorrelatorConfig = Field(default_factory=CorrelatorConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    providers: Dict[str, Any] = Field(default_factory=dict)
    debug: bool = False
