from __future__ import annotations

import dataclasses
from typing import Sequence

from bidsload.errors import SchemaMismatchError
from bidsload.recording import Event
from bidsload.tables import Table


def relabel(events: Sequence[Event], values: Sequence[str]) -> list[Event]:
    """Overwrite each event's type with the value at the same position."""
    if len(values) != len(events):
        raise SchemaMismatchError(
            f"events table has {len(values)} value(s) but the recording has {len(events)} event(s)"
        )
    return [dataclasses.replace(ev, type=value.strip()) for ev, value in zip(events, values)]


def relabel_from_table(events: Sequence[Event], table: Table) -> list[Event]:
    return relabel(events, table.column("value"))
