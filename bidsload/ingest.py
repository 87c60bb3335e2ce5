"""Load a single BIDS recording and merge its sidecars into it.

For EDF data the directory of the data file is searched for an events table
and an electrodes table (or explicit paths are used), and both are read back
into the recording. ICA matrices and annotation tables are merged only when
their paths are given. ``.set`` files are loaded as they are; ICA and
annotations still apply to them.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from bidsload import electrodes, events
from bidsload.annotations import merge_annotations
from bidsload.errors import BidsNamingError, MissingFileError, SchemaMismatchError
from bidsload.ica import merge_ica
from bidsload.readers import read_recording
from bidsload.recording import Outcome, Recording, rebuild
from bidsload.tables import Table, derive_sidecar_path, read_json, read_table

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestOptions:
    elec_loc: str = ""
    event_loc: str = ""
    ica_sphere: str = ""
    ica_weights: str = ""
    anno_loc: str = ""
    redraw: bool = True


OPTION_NAMES = tuple(f.name for f in dataclasses.fields(IngestOptions))


def load_options(path: Path) -> IngestOptions:
    data = read_json(path)
    unknown = sorted(set(data) - set(OPTION_NAMES))
    if unknown:
        raise SchemaMismatchError(f"Unknown ingest option(s) in {path}: {', '.join(unknown)}")
    return IngestOptions(**data)


def _sidecar_table(recording: Recording, data_path: Path, explicit: str, kind: str) -> Table | None:
    if explicit:
        return read_table(Path(explicit), kind)
    try:
        derived = derive_sidecar_path(data_path, kind)
    except BidsNamingError as exc:
        log.warning("%s", exc)
        recording.report(Outcome.MISSING_SIDECAR, kind, str(exc))
        return None
    if not derived.exists():
        log.warning("No %s sidecar found at %s; skipping.", kind, derived)
        recording.report(Outcome.MISSING_SIDECAR, kind, str(derived))
        return None
    return read_table(derived, kind)


def apply_bids_sidecars(recording: Recording, data_path: Path, options: IngestOptions) -> Recording:
    event_table = _sidecar_table(recording, data_path, options.event_loc, "events")
    if event_table is not None:
        recording.events = events.relabel_from_table(recording.events, event_table)

    elec_table = _sidecar_table(recording, data_path, options.elec_loc, "electrodes")
    if elec_table is not None:
        result = electrodes.reconcile(
            recording.channels,
            electrodes.rows_from_table(elec_table),
            recording.nodata_channels,
        )
        recording.channels = result.channels
        recording.nodata_channels = result.nodata_channels
        recording.diagnostics.extend(d for d in result.outcomes if d.outcome is Outcome.UNMATCHED)
    return rebuild(recording)


def ingest(
    file_location: str | Path,
    options: IngestOptions | None = None,
    *,
    reader: Callable[[Path], Recording] = read_recording,
    redraw_hook: Callable[[Recording], Any] | None = None,
    **overrides: Any,
) -> Recording:
    """Ingest one BIDS data file and return the populated recording.

    ``overrides`` replace individual fields of ``options``. Fatal problems
    raise a ``BidsLoadError``; on failure the recording may be partially
    updated and should be discarded.
    """
    options = dataclasses.replace(options or IngestOptions(), **overrides)
    data_path = Path(file_location)
    if not data_path.exists():
        raise MissingFileError(f"Data file not found: {data_path}")

    suffix = data_path.suffix.lower()
    recording = reader(data_path)
    if suffix == ".set":
        log.info("Set file detected. Loading as normal.")
    else:
        log.info("BIDS parsing needed for %s", data_path.name)
        recording = apply_bids_sidecars(recording, data_path, options)

    recording = merge_ica(recording, options.ica_weights, options.ica_sphere)

    if options.anno_loc:
        recording = merge_annotations(recording, options.anno_loc)

    if options.redraw and redraw_hook is not None:
        redraw_hook(recording)
    return recording
