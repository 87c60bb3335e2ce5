from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from bidsload.errors import SchemaMismatchError

log = logging.getLogger(__name__)

FIDUCIAL_TYPE = "FID"


class Outcome(enum.Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    NODATA = "nodata"
    CHANNEL_MARK = "channel_mark"
    COMPONENT_MARK = "component_mark"
    TIME_MARK = "time_mark"
    UNCLASSIFIED = "unclassified"
    CLIPPED = "clipped"
    INCOMPLETE_OPTION = "incomplete_option"
    MISSING_SIDECAR = "missing_sidecar"


@dataclass(frozen=True)
class Diagnostic:
    outcome: Outcome
    subject: str
    message: str = ""


@dataclass
class Channel:
    label: str
    position: tuple[float, float, float] | None = None
    type: str = "EEG"
    is_data_channel: bool = True


@dataclass
class Event:
    latency: int
    type: str
    duration: int = 0


@dataclass
class IcaDecomposition:
    weights: np.ndarray
    sphere: np.ndarray
    chansind: list[int]
    winv: np.ndarray | None = None

    @property
    def n_components(self) -> int:
        return int(self.weights.shape[0])

    @property
    def channel_indices(self) -> list[int]:
        """0-based positions in the channel list."""
        return [idx - 1 for idx in self.chansind]


@dataclass
class TimeMark:
    label: str
    flags: np.ndarray
    color: tuple[float, float, float] | None = None

    @classmethod
    def empty(cls, label: str, width: int) -> "TimeMark":
        return cls(label=label, flags=np.zeros(width, dtype=bool))

    def set_range(self, start: int, end: int) -> bool:
        """Set flags ``start..end`` (inclusive). Returns False if the range had to be clipped."""
        width = self.flags.shape[0]
        lo = max(start, 0)
        hi = min(end, width - 1)
        if lo <= hi:
            self.flags[lo : hi + 1] = True
        return lo == start and hi == end


@dataclass
class MarkSet:
    chan_marks: dict[str, set[str]] = field(default_factory=dict)
    comp_marks: dict[str, set[str]] = field(default_factory=dict)
    time_info: list[TimeMark] = field(default_factory=list)
    component_width: int = 0

    def find_time_mark(self, label: str) -> TimeMark | None:
        for mark in self.time_info:
            if mark.label == label:
                return mark
        return None


@dataclass
class Recording:
    channels: list[Channel]
    srate: float
    n_samples: int
    events: list[Event] = field(default_factory=list)
    nodata_channels: list[Channel] = field(default_factory=list)
    ica: IcaDecomposition | None = None
    marks: MarkSet | None = None
    source: Path | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def labels(self) -> list[str]:
        return [ch.label for ch in self.channels]

    def report(self, outcome: Outcome, subject: str, message: str = "") -> None:
        self.diagnostics.append(Diagnostic(outcome=outcome, subject=subject, message=message))

    def count(self, outcome: Outcome) -> int:
        return sum(1 for d in self.diagnostics if d.outcome is outcome)


def _check_ica(ica: IcaDecomposition, n_channels: int) -> None:
    weights = ica.weights
    sphere = ica.sphere
    if weights.ndim != 2 or sphere.ndim != 2:
        raise SchemaMismatchError("ICA weights and sphere must be 2-D matrices.")
    if sphere.shape[0] != sphere.shape[1]:
        raise SchemaMismatchError(f"ICA sphere must be square, got {sphere.shape}.")
    if weights.shape[1] != sphere.shape[0]:
        raise SchemaMismatchError(
            f"ICA weights {weights.shape} do not match sphere {sphere.shape}."
        )
    if len(ica.chansind) != weights.shape[1]:
        raise SchemaMismatchError(
            f"icachansind lists {len(ica.chansind)} channels but weights use {weights.shape[1]}."
        )
    # icachansind follows the EEGLAB convention: 1-based channel numbers.
    bad = [idx for idx in ica.chansind if idx < 1 or idx > n_channels]
    if bad:
        raise SchemaMismatchError(f"icachansind out of range for {n_channels} channels: {bad}")


def rebuild(recording: Recording) -> Recording:
    """Bring derived fields back in line after a structural change."""
    for ch in recording.channels:
        ch.is_data_channel = True
    for ch in recording.nodata_channels:
        ch.is_data_channel = False
        ch.type = FIDUCIAL_TYPE

    if not math.isfinite(recording.srate) or recording.srate <= 0:
        raise SchemaMismatchError(f"Invalid sampling rate: {recording.srate}")

    if recording.ica is not None:
        _check_ica(recording.ica, len(recording.channels))
        unmixing = recording.ica.weights @ recording.ica.sphere
        recording.ica.winv = np.linalg.pinv(unmixing)
        log.debug("Rebuilt ICA inverse with %d components", recording.ica.n_components)
    return recording
