from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from bidsload.recording import FIDUCIAL_TYPE, Channel, Diagnostic, Outcome
from bidsload.tables import Table, safe_float

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElectrodeRow:
    name: str
    x: float
    y: float
    z: float

    @property
    def position(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass
class ElectrodeReconciliation:
    channels: list[Channel]
    nodata_channels: list[Channel]
    outcomes: list[Diagnostic] = field(default_factory=list)


def _coord(value: str) -> float:
    number = safe_float(value)
    return float("nan") if number is None else number


def rows_from_table(table: Table) -> list[ElectrodeRow]:
    return [
        ElectrodeRow(
            name=(row.get("name") or "").strip(),
            x=_coord(row.get("x", "")),
            y=_coord(row.get("y", "")),
            z=_coord(row.get("z", "")),
        )
        for row in table.rows
    ]


def _fiducial_from(template: Channel, row: ElectrodeRow) -> Channel:
    return dataclasses.replace(
        template,
        label=row.name,
        position=row.position,
        type=FIDUCIAL_TYPE,
        is_data_channel=False,
    )


def reconcile(
    channels: Sequence[Channel],
    rows: Sequence[ElectrodeRow],
    nodata_channels: Iterable[Channel] = (),
) -> ElectrodeReconciliation:
    """Assign electrode positions to ``channels`` by label.

    Channels with no electrode row keep an unset position and are reported as
    unmatched. Electrode rows never claimed by a channel are appended, in
    table order, to the non-data (fiducial) channel list.
    """
    lookup: dict[str, int] = {}
    for idx, row in enumerate(rows):
        lookup.setdefault(row.name.strip(), idx)

    consumed: set[int] = set()
    outcomes: list[Diagnostic] = []
    updated: list[Channel] = []
    for ch in channels:
        idx = lookup.get(ch.label)
        if idx is None:
            log.warning("%s not found. Adding to nodatchans", ch.label)
            outcomes.append(Diagnostic(Outcome.UNMATCHED, ch.label, "no electrode row"))
            updated.append(dataclasses.replace(ch))
            continue
        consumed.add(idx)
        updated.append(dataclasses.replace(ch, position=rows[idx].position))
        outcomes.append(Diagnostic(Outcome.MATCHED, ch.label))

    nodata = list(nodata_channels)
    for idx, row in enumerate(rows):
        if idx in consumed:
            continue
        log.info("Moving %s to nodatchans", row.name)
        if nodata:
            template = nodata[0]
        elif updated:
            template = updated[0]
        else:
            template = Channel(label=row.name)
        nodata.append(_fiducial_from(template, row))
        outcomes.append(Diagnostic(Outcome.NODATA, row.name))

    return ElectrodeReconciliation(channels=updated, nodata_channels=nodata, outcomes=outcomes)
