from bidsload.ingest import IngestOptions, ingest
from bidsload.recording import Recording

__all__ = ["IngestOptions", "Recording", "ingest"]
