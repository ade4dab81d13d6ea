"""Exception hierarchy shared across the ingestion and upload pipeline."""


class CallSyncError(Exception):
    """Base class for all callsync errors."""
    pass


class StorageError(CallSyncError):
    """The local recording store could not complete an operation."""
    pass


class IngestError(CallSyncError):
    """A file could not be turned into a persisted Recording."""
    pass


class RemoteStoreError(CallSyncError):
    """The remote object store or metadata catalog rejected a request."""
    pass


class AuthorizationError(CallSyncError):
    """No signed-in identity, or the identity is not approved to upload."""
    pass


class MissingFileError(CallSyncError):
    """The local recording file no longer exists."""
    pass

