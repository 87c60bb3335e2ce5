from __future__ import annotations

import math
from pathlib import Path

import mne
import numpy as np

from bidsload.errors import MissingFileError, UnsupportedFormatError
from bidsload.recording import Channel, Event, Recording

SUPPORTED_SUFFIXES = (".edf", ".set")


def _channel_position(loc: np.ndarray) -> tuple[float, float, float] | None:
    xyz = np.asarray(loc[:3], dtype=np.float64)
    if not np.all(np.isfinite(xyz)) or not np.any(xyz):
        return None
    return (float(xyz[0]), float(xyz[1]), float(xyz[2]))


def recording_from_raw(raw: "mne.io.BaseRaw", source: Path | None = None) -> Recording:
    sfreq = float(raw.info["sfreq"])
    ch_types = raw.get_channel_types()
    channels = [
        Channel(
            label=ch["ch_name"],
            position=_channel_position(ch["loc"]),
            type=ch_type.upper(),
        )
        for ch, ch_type in zip(raw.info["chs"], ch_types)
    ]
    events = [
        Event(
            latency=int(round(float(onset) * sfreq)),
            type=str(description),
            duration=int(round(float(duration) * sfreq)) if math.isfinite(duration) else 0,
        )
        for onset, duration, description in zip(
            raw.annotations.onset, raw.annotations.duration, raw.annotations.description
        )
    ]
    return Recording(
        channels=channels,
        srate=sfreq,
        n_samples=int(raw.n_times),
        events=events,
        source=source,
    )


def read_recording(path: Path) -> Recording:
    path = Path(path)
    if not path.exists():
        raise MissingFileError(f"Data file not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".edf":
        raw = mne.io.read_raw_edf(path, preload=False, verbose="ERROR")
    elif suffix == ".set":
        raw = mne.io.read_raw_eeglab(path, preload=False, verbose="ERROR")
    else:
        raise UnsupportedFormatError(
            f"Unsupported data file {path.name}; expected one of {', '.join(SUPPORTED_SUFFIXES)}"
        )
    return recording_from_raw(raw, source=path)
