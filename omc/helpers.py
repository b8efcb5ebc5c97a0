"""Shared helpers: tables, ages, labels, selectors and output formatting."""

from __future__ import annotations

import json
import math
import os
import random
import string
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Sequence, TextIO

import yaml

from omc.jsonpath import render_jsonpath

CHARSET = string.ascii_lowercase + string.ascii_uppercase + string.digits


class OmcError(Exception):
    """A user-facing error; its message is printed and the command fails."""


@dataclass
class GetOptions:
    """Options shared by the resource listing commands."""

    namespace: str = ""
    resource_name: str = ""
    all_namespaces: bool = False
    output: str = ""
    show_labels: bool = False
    jsonpath_template: str = ""
    selector: str = ""
    all_resources: bool = False


def random_string(length: int, charset: str = CHARSET) -> str:
    return "".join(random.choice(charset) for _ in range(length))


def render_table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Render a borderless, left-aligned table with upper-case headers."""
    head = [h.replace("_", " ").strip().upper() for h in headers]
    lines = [head] + [list(r) for r in rows]
    ncols = max(len(line) for line in lines)
    widths = [
        max((len(line[i]) for line in lines if i < len(line)), default=0)
        for i in range(ncols)
    ]
    out = []
    for line in lines:
        cells = [
            (line[i] if i < len(line) else "").ljust(widths[i]) for i in range(ncols)
        ]
        out.append("   ".join(cells).rstrip())
    return "\n".join(out) + "\n"


def _gomod(a: int, b: int) -> int:
    return int(math.fmod(a, b))


def format_diff_time(diff: timedelta) -> str:
    """Format a duration the way resource ages are shown."""
    seconds = diff.total_seconds()
    minutes = seconds / 60
    hours = minutes / 60
    if hours > 48:
        if hours > 200000:
            return "Unknown"
        return f"{int(hours / 24)}d"
    if 10 < hours < 48:
        return f"{int(minutes / 60)}h"
    if minutes > 60:
        remain = _gomod(int(minutes), 60)
        if remain > 0:
            return f"{int(minutes / 60)}h{remain}m"
        return f"{int(minutes / 60)}h"
    if seconds > 60:
        remain = _gomod(int(seconds), 60)
        if remain > 0 and minutes < 4:
            return f"{int(seconds / 60)}m{remain}s"
        return f"{int(seconds / 60)}m"
    return f"{int(seconds)}s"


def get_row(
    all_namespaces: bool,
    show_labels: bool,
    labels: str,
    output: str,
    column: int,
    values: Sequence[str],
) -> list[str]:
    """Select the cells of one table row for the requested output."""
    row: list[str] = []
    start = 0 if all_namespaces else 1
    if output == "":
        row = list(values[start:column])
    elif output == "wide":
        row = list(values[start:])
    if show_labels:
        row.append(labels)
    return row


def extract_labels(labels: dict[str, str] | None) -> str:
    text = ",".join(f"{k}={v}" for k, v in (labels or {}).items())
    return text or "<none>"


def extract_label(labels: dict[str, str] | None, name: str) -> str:
    return (labels or {}).get(name, "")


def read_yaml(path: str | Path) -> str:
    """Read a YAML file, dropping lines of exactly three bytes."""
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise OmcError(str(exc)) from exc
    kept = [line for line in raw.split(b"\n") if len(line) != 3]
    if raw.endswith(b"\n") and kept and kept[-1] == b"":
        kept.pop()
    text = b"".join(line + b"\n" for line in kept)
    return text.decode("utf-8", errors="replace")


def _to_datetime(value: datetime | str) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def get_age(path: str | Path, created: datetime | str | None) -> str:
    """Age of a resource relative to the modification time of its file."""
    if not created:
        return "Unknown"
    mtime = datetime.fromtimestamp(os.stat(path).st_mtime, timezone.utc)
    return format_diff_time(mtime - _to_datetime(created))


def is_directory(path: str | Path) -> bool:
    return Path(path).is_dir()


def exists(path: str | Path) -> bool:
    return Path(path).exists()


def cat(path: str | Path, stream: TextIO | None = None) -> None:
    """Copy a file's lines to the stream."""
    stream = stream or sys.stdout
    p = Path(path)
    if not p.exists():
        raise OmcError(f"error: file {path} does not exist")
    try:
        with p.open(encoding="utf-8", errors="replace") as fh:
            for line in fh:
                stream.write(line.rstrip("\n").rstrip("\r") + "\n")
    except OSError as exc:
        raise OmcError(f"error: can't open file {path}") from exc


def get_json_template(output: str) -> str:
    if not output.startswith("jsonpath="):
        return ""
    template = output[len("jsonpath="):]
    if not template:
        raise OmcError("error: template format specified but no template given")
    return template


def match_labels(labels: str, selector: str) -> bool:
    """Check a comma-joined label string against a simple selector."""
    if selector == "":
        return True
    present = labels.split(",")
    for term in selector.split(","):
        if "=" not in term:
            term = "app=" + term
        if "!=" in term:
            if term.replace("!=", "=") in present:
                return False
        elif "==" in term:
            if term.replace("==", "=") not in present:
                return False
        elif term not in present:
            return False
    return True


def format_resource(resource: Any, output: str, jsonpath_template: str = "") -> str:
    """Render a resource as yaml, json or a jsonpath template."""
    if output == "yaml":
        return yaml.safe_dump(resource, default_flow_style=False) + "\n"
    if output == "json":
        return json.dumps(resource, indent=2, default=str) + "\n"
    if output.startswith("jsonpath="):
        return render_jsonpath(resource, jsonpath_template)
    return ""