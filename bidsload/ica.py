from __future__ import annotations

import logging
from pathlib import Path

from bidsload.errors import SchemaMismatchError
from bidsload.recording import IcaDecomposition, Outcome, Recording, rebuild
from bidsload.tables import companion_path, read_json, read_matrix

log = logging.getLogger(__name__)


def _read_chansind(descriptor: Path) -> list[int]:
    data = read_json(descriptor)
    raw = data.get("icachansind")
    if raw is None:
        raise SchemaMismatchError(f"Missing icachansind in {descriptor}")
    if isinstance(raw, (int, float)):
        raw = [raw]
    if not isinstance(raw, list):
        raise SchemaMismatchError(f"icachansind in {descriptor} must be a list of indices")
    indices: list[int] = []
    for value in raw:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
            raise SchemaMismatchError(f"Non-integer channel index {value!r} in {descriptor}")
        indices.append(int(value))
    return indices


def merge_ica(
    recording: Recording,
    weights_path: str | Path | None,
    sphere_path: str | Path | None,
) -> Recording:
    """Attach an ICA decomposition when both matrices are given.

    A single matrix on its own is reported and ignored; neither is a no-op.
    """
    has_weights = bool(weights_path)
    has_sphere = bool(sphere_path)
    if not has_weights and not has_sphere:
        return recording
    if has_weights != has_sphere:
        given = "icaWeights" if has_weights else "icaSphere"
        log.warning("Only one ICA option given (%s). Both are required.", given)
        recording.report(Outcome.INCOMPLETE_OPTION, given, "ICA needs both weights and sphere")
        return recording

    weights_path = Path(weights_path)
    sphere_path = Path(sphere_path)
    log.info("Attempting to load ICA decomposition via %s and %s", sphere_path, weights_path)

    chansind = _read_chansind(companion_path(weights_path, ".json"))
    weights = read_matrix(weights_path)
    sphere = read_matrix(sphere_path)

    recording.ica = IcaDecomposition(weights=weights, sphere=sphere, chansind=chansind)
    return rebuild(recording)
