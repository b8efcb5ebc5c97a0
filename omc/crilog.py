"""Filtering of container logs in CRI format by log level."""

from __future__ import annotations

import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, TextIO

from omc.helpers import OmcError

TIME_FORMAT_IN = "2006-01-02T15:04:05.999999999Z07:00"

_TIMESTAMP = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(\.\d{1,9})?(Z|[+-]\d{2}:\d{2})"
)

_LEVEL_PREFIX = {"info": "I", "warning": "W", "error": "E"}


def _valid_timestamp(text: str) -> bool:
    m = _TIMESTAMP.fullmatch(text)
    if not m:
        return False
    try:
        datetime(*(int(m.group(i)) for i in range(1, 7)))
    except ValueError:
        return False
    zone = m.group(8)
    if zone != "Z" and (int(zone[1:3]) > 23 or int(zone[4:6]) > 59):
        return False
    return True


def parse_cri_log(line: str, levels: Iterable[str]) -> str:
    """Return the line if its level is among levels, else an empty string."""
    idx = line.find(" ")
    if idx < 0:
        raise OmcError("timestamp is not found")
    stamp = line[:idx]
    if not _valid_timestamp(stamp):
        raise OmcError(f'unexpected timestamp format "{TIME_FORMAT_IN}": {stamp!r}')
    rest = line[idx + 1:]
    idx = rest.find(" ")
    if idx < 0:
        raise OmcError("stream type is not found")
    stream = rest[:idx]
    if not stream:
        return ""
    wanted = {_LEVEL_PREFIX[lv] for lv in levels if lv in _LEVEL_PREFIX}
    return line if stream[0] in wanted else ""


def filter_log_lines(lines: Iterable[str], levels: Iterable[str]) -> Iterator[str]:
    levels = list(levels)
    for line in lines:
        kept = parse_cri_log(line.rstrip("\n").rstrip("\r"), levels)
        if kept:
            yield kept


def filter_cat_logs(
    path: str | Path, log_levels: Iterable[str], stream: TextIO | None = None
) -> None:
    """Write the lines of a log file whose level is selected."""
    stream = stream or sys.stdout
    p = Path(path)
    if not p.exists():
        raise OmcError(f"error: file {path} does not exist")
    try:
        with p.open(encoding="utf-8", errors="replace") as fh:
            for line in filter_log_lines(fh, log_levels):
                stream.write(line + "\n")
    except OSError as exc:
        raise OmcError(f"error: can't open file {path}") from exc