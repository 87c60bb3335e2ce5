from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from bidsload.errors import BidsNamingError, MissingFileError, SchemaMismatchError
from bidsload.tables import companion_path, derive_sidecar_path, read_json, read_matrix, read_table, safe_float

from conftest import write_matrix, write_tsv


def test_derive_sidecar_path_replaces_eeg_suffix():
    data = Path("/data/sub-01/eeg/sub-01_task-rest_eeg.edf")

    assert derive_sidecar_path(data, "events") == data.with_name("sub-01_task-rest_events.tsv")
    assert derive_sidecar_path(data, "electrodes") == data.with_name("sub-01_task-rest_electrodes.tsv")


def test_derive_sidecar_path_requires_bids_name():
    with pytest.raises(BidsNamingError):
        derive_sidecar_path(Path("recording.edf"), "events")


def test_companion_path_swaps_extension():
    table = Path("/data/sub-01_task-rest_annotations.tsv")

    assert companion_path(table, ".json").name == "sub-01_task-rest_annotations.json"
    assert companion_path(table, ".mat").name == "sub-01_task-rest_annotations.mat"


@pytest.mark.parametrize("text", ["", "n/a", "NaN", "inf", "abc", None])
def test_safe_float_missing_values(text):
    assert safe_float(text) is None


def test_safe_float_parses_padded_number():
    assert safe_float(" 1.25 ") == 1.25


def test_read_table_trims_header_and_values(tmp_path):
    path = tmp_path / "t.tsv"
    path.write_text("\ufeffname \tx\ty\tz\n Cz\t1\t2\t3\n", encoding="utf-8")

    table = read_table(path, "electrodes")

    assert table.columns == ["name", "x", "y", "z"]
    assert table.column("name") == ["Cz"]
    assert len(table) == 1


def test_read_table_missing_file(tmp_path):
    with pytest.raises(MissingFileError):
        read_table(tmp_path / "absent.tsv", "events")


def test_read_table_missing_columns(tmp_path):
    path = write_tsv(tmp_path / "e.tsv", ["name", "x"], [{"name": "Cz", "x": "0"}])

    with pytest.raises(SchemaMismatchError, match="y, z"):
        read_table(path, "electrodes")


def test_read_json_requires_object(tmp_path):
    path = tmp_path / "x.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(SchemaMismatchError):
        read_json(path)


def test_read_matrix_single_row_is_2d(tmp_path):
    path = write_matrix(tmp_path / "m.tsv", [[1.0, 2.0, 3.0]])

    matrix = read_matrix(path)

    assert matrix.shape == (1, 3)
    np.testing.assert_array_equal(matrix, [[1.0, 2.0, 3.0]])


def test_read_matrix_rejects_text(tmp_path):
    path = tmp_path / "m.tsv"
    path.write_text("a\tb\n", encoding="utf-8")

    with pytest.raises(SchemaMismatchError):
        read_matrix(path)
