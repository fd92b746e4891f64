"""Parse heart-rate exports into an ordered BPM series.

Only a header field literally named ``BPM`` (any case) is recognised. Rows that
are too short or carry a non-numeric BPM value are skipped, since sensor
exports are often ragged.
"""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path

from .errors import (
    EmptyFileError,
    FileReadError,
    MissingBpmColumnError,
    MissingHeaderOrDataError,
    NoValidDataError,
)
from .schema import BpmSeries

BPM_COLUMN = "BPM"
_LINE_SPLIT = re.compile(r"\r?\n")
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_LOGGER = logging.getLogger("heartart.csv_parser")


def parse_number(text: str) -> float | None:
    """Parse the leading decimal literal of ``text``.

    Returns ``None`` when there is none or when it overflows to infinity.
    """
    match = _LEADING_NUMBER.match(text.strip())
    if match is None:
        return None
    value = float(match.group(0))
    return value if math.isfinite(value) else None


def find_bpm_column(header_line: str) -> int:
    fields = [field.strip().upper() for field in header_line.split(",")]
    try:
        return fields.index(BPM_COLUMN)
    except ValueError as exc:
        raise MissingBpmColumnError() from exc


def extract_bpm(text: str) -> BpmSeries:
    lines = [line for line in _LINE_SPLIT.split(text) if line.strip()]
    if not lines:
        raise EmptyFileError()
    if len(lines) < 2:
        raise MissingHeaderOrDataError()

    bpm_index = find_bpm_column(lines[0])

    series: BpmSeries = []
    skipped = 0
    for line in lines[1:]:
        values = line.split(",")
        if len(values) <= bpm_index:
            skipped += 1
            continue
        value = parse_number(values[bpm_index])
        if value is None:
            skipped += 1
            continue
        series.append(value)

    if not series:
        raise NoValidDataError()
    if skipped:
        _LOGGER.debug("Skipped %d malformed BPM rows.", skipped)
    return series


def read_bpm_csv(path: str | Path) -> BpmSeries:
    return extract_bpm(read_csv_text(path))


def read_csv_text(path: str | Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        _LOGGER.warning("Failed to read %s: %s", path, exc)
        raise FileReadError("Failed to read the file.") from exc
