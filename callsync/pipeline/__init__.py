from .ingest import IngestionPipeline
from .upload import InFlightSet, UploadOrchestrator, storage_key_for

__all__ = ["IngestionPipeline", "InFlightSet", "UploadOrchestrator", "storage_key_for"]
