from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Iterable

import pytest

from bidsload.recording import Channel, Event, Recording


def write_tsv(path: Path, fieldnames: list[str], rows: Iterable[dict[str, Any]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, delimiter="\t", lineterminator="\n")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path


def write_json(path: Path, data: dict[str, Any]) -> Path:
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


def write_matrix(path: Path, rows: list[list[float]]) -> Path:
    path.write_text("\n".join("\t".join(str(v) for v in row) for row in rows) + "\n", encoding="utf-8")
    return path


@pytest.fixture()
def recording() -> Recording:
    return Recording(
        channels=[Channel("Cz"), Channel("Fz"), Channel("X1")],
        srate=10.0,
        n_samples=100,
        events=[Event(latency=5, type="1"), Event(latency=20, type="2"), Event(latency=40, type="3")],
    )


@pytest.fixture()
def eeg_dir(tmp_path: Path) -> Path:
    path = tmp_path / "sub-01" / "eeg"
    path.mkdir(parents=True)
    return path


@pytest.fixture()
def data_file(eeg_dir: Path) -> Path:
    # The reader is replaced in tests, the file only has to exist.
    path = eeg_dir / "sub-01_task-rest_eeg.edf"
    path.write_bytes(b"")
    return path
