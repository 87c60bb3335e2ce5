from __future__ import annotations

import csv
import json
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from bidsload.errors import BidsNamingError, MissingFileError, SchemaMismatchError

REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
    "events": ("value",),
    "electrodes": ("name", "x", "y", "z"),
    "annotations": ("onset", "duration", "label", "channels"),
}
MISSING_VALUES = {"", "n/a", "N/A", "nan", "NaN"}

_DATA_SUFFIX_RE = re.compile(r"_eeg\.[A-Za-z0-9]+$")


@dataclass(frozen=True)
class Table:
    path: Path
    kind: str
    columns: list[str]
    rows: list[dict[str, str]]

    def __len__(self) -> int:
        return len(self.rows)

    def column(self, name: str) -> list[str]:
        if name not in self.columns:
            raise SchemaMismatchError(f"Column '{name}' missing from {self.path}")
        return [(row.get(name) or "").strip() for row in self.rows]


def safe_float(value: str | None) -> float | None:
    if value is None:
        return None
    text = value.strip()
    if text in MISSING_VALUES:
        return None
    try:
        number = float(text)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def read_table(path: Path, kind: str) -> Table:
    path = Path(path)
    if not path.exists():
        raise MissingFileError(f"{kind} table not found: {path}")
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f, delimiter="\t")
        rows = list(reader)
        if reader.fieldnames is None:
            raise SchemaMismatchError(f"Missing header in {path}")
        columns = [name.strip() for name in reader.fieldnames]
    # Header cells may carry stray whitespace; rekey rows on the trimmed names.
    rows = [{key.strip(): value for key, value in row.items() if key is not None} for row in rows]

    missing = [col for col in REQUIRED_COLUMNS.get(kind, ()) if col not in columns]
    if missing:
        raise SchemaMismatchError(f"{path} is missing {kind} column(s): {', '.join(missing)}")
    return Table(path=path, kind=kind, columns=columns, rows=rows)


def read_json(path: Path) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise MissingFileError(f"JSON sidecar not found: {path}")
    data = json.loads(path.read_text(encoding="utf-8-sig"))
    if not isinstance(data, dict):
        raise SchemaMismatchError(f"{path} must contain a JSON object.")
    return data


def read_matrix(path: Path) -> np.ndarray:
    path = Path(path)
    if not path.exists():
        raise MissingFileError(f"Matrix file not found: {path}")
    try:
        return np.loadtxt(path, delimiter="\t", dtype=np.float64, ndmin=2)
    except ValueError as exc:
        raise SchemaMismatchError(f"Could not parse numeric matrix {path}: {exc}") from exc


def derive_sidecar_path(data_path: Path, kind: str) -> Path:
    data_path = Path(data_path)
    if not _DATA_SUFFIX_RE.search(data_path.name):
        raise BidsNamingError(
            f"Cannot derive {kind} sidecar: {data_path.name} does not end in _eeg.<ext>"
        )
    name = _DATA_SUFFIX_RE.sub(f"_{kind}.tsv", data_path.name)
    return data_path.with_name(name)


def companion_path(table_path: Path, extension: str) -> Path:
    table_path = Path(table_path)
    name = table_path.name
    if name.endswith(".tsv"):
        base = name[: -len(".tsv")]
    else:
        base = table_path.stem
    return table_path.with_name(base + extension)
