"""Exceptions raised while ingesting a BIDS recording.

Everything fatal to an ingest call derives from ``BidsLoadError``. Recoverable
conditions are not exceptions; they are logged and recorded as diagnostics on
the recording.
"""

from __future__ import annotations


class BidsLoadError(Exception):
    """Base class for ingest failures."""


class MissingFileError(BidsLoadError, FileNotFoundError):
    """A requested sidecar or a required companion file does not exist."""


class SchemaMismatchError(BidsLoadError, ValueError):
    """A table, descriptor or matrix does not have the expected shape."""


class CapabilityUnavailableError(BidsLoadError, RuntimeError):
    """A subsystem needed for the requested merge is not installed."""


class UnsupportedFormatError(BidsLoadError, ValueError):
    """The data file type is not handled by the reader."""


class BidsNamingError(BidsLoadError, ValueError):
    """A sidecar path cannot be derived from the data file name."""
