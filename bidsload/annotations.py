"""Rebuild the marks structure of a recording from BIDS annotation files.

An annotations table mixes two kinds of rows. Rows with neither onset nor
duration are discrete marks attached to channels (``chan*`` labels) or ICA
components (``comp*`` labels). Rows with timing information flag an interval
on a per-sample track (a ``TimeMark``) named after the row label; rows
sharing a label extend the same track.

Two companion files sit next to the table: a JSON descriptor, which must
exist, and an optional MATLAB ``.mat`` file whose ``timeAccum`` cell array
holds pre-built continuous marks that are appended as they are.
"""

from __future__ import annotations

import enum
import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import numpy as np

from bidsload.errors import CapabilityUnavailableError, SchemaMismatchError
from bidsload.recording import Diagnostic, MarkSet, Outcome, Recording, TimeMark
from bidsload.tables import REQUIRED_COLUMNS, Table, companion_path, read_json, read_table, safe_float

log = logging.getLogger(__name__)

_CHANNEL_SPLIT_RE = re.compile(r"[,\s]+")
PREFIX_LEN = 4


class MergeState(enum.Enum):
    IDLE = "idle"
    INGESTING = "ingesting"
    DONE = "done"


@dataclass(frozen=True)
class AnnotationRow:
    onset: float | None
    duration: float | None
    label: str
    channels: str

    @property
    def is_discrete(self) -> bool:
        return self.onset is None and self.duration is None


def rows_from_table(table: Table) -> list[AnnotationRow]:
    return [
        AnnotationRow(
            onset=safe_float(row.get("onset")),
            duration=safe_float(row.get("duration")),
            label=(row.get("label") or "").strip(),
            channels=(row.get("channels") or "").strip(),
        )
        for row in table.rows
    ]


def to_sample(seconds: float, srate: float) -> int:
    """Round half away from zero, the way MATLAB-written annotations expect."""
    scaled = seconds * srate
    return int(math.copysign(math.floor(abs(scaled) + 0.5), scaled))


def _category(label: str, prefix: str) -> str:
    rest = label[PREFIX_LEN:].lstrip("_")
    return prefix + rest


def _split_channels(channels: str) -> set[str]:
    return {item for item in _CHANNEL_SPLIT_RE.split(channels.strip()) if item}


def _require_marks_capability() -> Any:
    try:
        import scipy.io
    except ImportError as exc:
        raise CapabilityUnavailableError(
            "scipy is required to ingest annotations (marks support not found)."
        ) from exc
    return scipy.io


class AnnotationMerger:
    """Applies annotation rows to a recording's marks, one ingest at a time."""

    def __init__(self, recording: Recording) -> None:
        self.recording = recording
        self.state = MergeState.IDLE
        self.width = 0
        self.outcomes: list[Diagnostic] = []

    @property
    def marks(self) -> MarkSet:
        if self.recording.marks is None:
            raise RuntimeError("Annotation merge has not started.")
        return self.recording.marks

    def begin(self) -> None:
        if self.state is not MergeState.IDLE:
            raise RuntimeError(f"Cannot begin annotation merge from state {self.state.value}")
        self.width = int(self.recording.n_samples)
        ica = self.recording.ica
        components = 0 if ica is None else int(min(ica.weights.shape))
        self.recording.marks = MarkSet(component_width=components)
        self.state = MergeState.INGESTING

    def _record(self, outcome: Outcome, subject: str, message: str = "") -> None:
        diagnostic = Diagnostic(outcome, subject, message)
        self.outcomes.append(diagnostic)
        if outcome in (Outcome.UNCLASSIFIED, Outcome.CLIPPED):
            self.recording.diagnostics.append(diagnostic)

    def process(self, row: AnnotationRow) -> Outcome:
        if self.state is not MergeState.INGESTING:
            raise RuntimeError(f"Cannot process annotation rows in state {self.state.value}")
        if row.is_discrete:
            return self._process_discrete(row)
        return self._process_range(row)

    def _process_discrete(self, row: AnnotationRow) -> Outcome:
        prefix = row.label[:PREFIX_LEN].lower()
        if prefix == "chan":
            bucket = self.marks.chan_marks.setdefault(_category(row.label, "chan_"), set())
            outcome = Outcome.CHANNEL_MARK
        elif prefix == "comp":
            bucket = self.marks.comp_marks.setdefault(_category(row.label, "comp_"), set())
            outcome = Outcome.COMPONENT_MARK
        else:
            log.warning("Mark ingest not defined for mark of this type: %r", row.label)
            self._record(Outcome.UNCLASSIFIED, row.label, "discrete mark without chan/comp prefix")
            return Outcome.UNCLASSIFIED
        bucket.update(_split_channels(row.channels))
        self._record(outcome, row.label)
        return outcome

    def _process_range(self, row: AnnotationRow) -> Outcome:
        mark = self.marks.find_time_mark(row.label)
        if mark is None:
            mark = TimeMark.empty(row.label, self.width)
            self.marks.time_info.append(mark)

        if row.onset is None or row.duration is None:
            log.warning("Mark %r needs both onset and duration; no samples flagged", row.label)
            self._record(Outcome.TIME_MARK, row.label, "incomplete timing")
            return Outcome.TIME_MARK

        onset = row.onset
        duration = row.duration
        srate = self.recording.srate
        start = to_sample(onset, srate)
        end = to_sample(onset + duration, srate)
        if not mark.set_range(start, end):
            log.warning(
                "Mark %r range %d..%d clipped to %d flags", row.label, start, end, self.width
            )
            self._record(Outcome.CLIPPED, row.label, f"{start}..{end} outside 0..{self.width - 1}")
        log.debug("Flagged %s samples %d..%d", row.label, start, end)
        self._record(Outcome.TIME_MARK, row.label)
        return Outcome.TIME_MARK

    def extend(self, marks: Iterable[TimeMark]) -> None:
        if self.state is not MergeState.INGESTING:
            raise RuntimeError(f"Cannot append time marks in state {self.state.value}")
        self.marks.time_info.extend(marks)

    def finish(self) -> Recording:
        self.state = MergeState.DONE
        return self.recording


def _field(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def _time_mark_from_record(record: Any, source: Path) -> TimeMark:
    label = _field(record, "label")
    flags = _field(record, "flags")
    if label is None or flags is None:
        raise SchemaMismatchError(f"timeAccum entry in {source} needs 'label' and 'flags'")
    color = _field(record, "color")
    if color is not None:
        values = np.asarray(color, dtype=np.float64).ravel()
        color = tuple(float(v) for v in values) if values.size == 3 else None
    return TimeMark(
        label=str(label).strip(),
        flags=np.asarray(flags).astype(bool).ravel(),
        color=color,
    )


def read_continuous_marks(mat_path: Path) -> list[TimeMark]:
    scipy_io = _require_marks_capability()
    data = scipy_io.loadmat(str(mat_path), squeeze_me=True, struct_as_record=False)
    if "timeAccum" not in data:
        raise SchemaMismatchError(f"timeAccum not found in {mat_path}")
    entries = np.atleast_1d(np.asarray(data["timeAccum"], dtype=object))
    return [_time_mark_from_record(entry, mat_path) for entry in entries.ravel()]


def _check_declared_columns(descriptor: dict[str, Any], json_path: Path) -> None:
    columns = descriptor.get("Columns")
    if columns is None:
        return
    if not isinstance(columns, list):
        raise SchemaMismatchError(f"Columns in {json_path} must be a list")
    declared = {str(c).strip() for c in columns}
    missing = [c for c in REQUIRED_COLUMNS["annotations"] if c not in declared]
    if missing:
        raise SchemaMismatchError(f"{json_path} does not declare column(s): {', '.join(missing)}")


def merge_annotations(recording: Recording, anno_path: str | Path) -> Recording:
    """Clear and rebuild ``recording.marks`` from an annotations table."""
    anno_path = Path(anno_path)
    _require_marks_capability()
    json_path = companion_path(anno_path, ".json")
    descriptor = read_json(json_path)
    _check_declared_columns(descriptor, json_path)

    log.info("Rebuilding marks structure via %s and %s", anno_path, json_path)
    table = read_table(anno_path, "annotations")

    merger = AnnotationMerger(recording)
    merger.begin()
    for row in rows_from_table(table):
        merger.process(row)

    mat_path = companion_path(anno_path, ".mat")
    if mat_path.exists():
        log.info("Continuous mark file found. Loading %s", mat_path)
        merger.extend(read_continuous_marks(mat_path))
    return merger.finish()
