from __future__ import annotations

import argparse
import logging
from pathlib import Path

from bidsload.ingest import IngestOptions, ingest, load_options
from bidsload.recording import Recording


def _summary(recording: Recording) -> list[str]:
    lines = [
        f"Channels: {len(recording.channels)} data, {len(recording.nodata_channels)} non-data",
        f"Events: {len(recording.events)}",
        f"Samples: {recording.n_samples} at {recording.srate:g} Hz",
    ]
    if recording.ica is not None:
        lines.append(
            f"ICA: {recording.ica.n_components} components over {len(recording.ica.chansind)} channels"
        )
    if recording.marks is not None:
        marks = recording.marks
        lines.append(
            f"Marks: {len(marks.chan_marks)} channel, {len(marks.comp_marks)} component, "
            f"{len(marks.time_info)} time ({marks.component_width} components)"
        )
    for diagnostic in recording.diagnostics:
        lines.append(f"Warning [{diagnostic.outcome.value}] {diagnostic.subject}: {diagnostic.message}")
    return lines


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Load a BIDS EEG recording and merge its events, electrodes, ICA and annotation sidecars."
    )
    parser.add_argument("file", help="Data file (.edf or .set).")
    parser.add_argument("--options", help="JSON file with ingest options.")
    parser.add_argument("--elec-loc", help="Explicit location of the electrodes TSV.")
    parser.add_argument("--event-loc", help="Explicit location of the events TSV.")
    parser.add_argument("--ica-sphere", help="ICA sphering matrix TSV. Requires --ica-weights.")
    parser.add_argument(
        "--ica-weights",
        help="ICA weights TSV. Requires --ica-sphere; its .json lists the ICA channel indices.",
    )
    parser.add_argument(
        "--anno-loc",
        help="Annotations TSV. The paired .json (and optional .mat) must sit beside it.",
    )
    parser.add_argument("--no-redraw", action="store_true", help="Do not request a display refresh.")
    parser.add_argument("--verbose", action="store_true", help="Log per-row details.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    options = load_options(Path(args.options)) if args.options else IngestOptions()
    overrides = {
        name: value
        for name, value in (
            ("elec_loc", args.elec_loc),
            ("event_loc", args.event_loc),
            ("ica_sphere", args.ica_sphere),
            ("ica_weights", args.ica_weights),
            ("anno_loc", args.anno_loc),
        )
        if value
    }
    if args.no_redraw:
        overrides["redraw"] = False

    recording = ingest(Path(args.file), options, **overrides)
    print(f"Ingested {args.file}")
    for line in _summary(recording):
        print(line)


if __name__ == "__main__":  # pragma: no cover
    main()
