"""Listing cluster roles and cluster role bindings stored in a must-gather."""

from __future__ import annotations

import re
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Sequence, TextIO

import yaml

from omc.helpers import (
    GetOptions,
    OmcError,
    extract_labels,
    format_resource,
    get_age,
    get_row,
    match_labels,
    read_yaml,
    render_table,
)
from omc.jsonpath import JSONPathError

_RBAC = "cluster-scoped-resources/rbac.authorization.k8s.io"
_ZERO_TIME = "0001-01-01T00:00:00Z"

_TIMESTAMP = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|z|[+-]\d{2}:\d{2})"
)


class _Loader(yaml.SafeLoader):
    """Safe loader that keeps timestamps as plain strings."""


_Loader.yaml_implicit_resolvers = {
    key: [(tag, rx) for tag, rx in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for key, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _section(obj: dict[str, Any], key: str) -> dict[str, Any]:
    value = obj.get(key)
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _parse_timestamp(value: Any) -> tuple[datetime, str] | None:
    """Parse an RFC 3339 timestamp into a UTC datetime and its fraction digits."""
    if not isinstance(value, str):
        return None
    m = _TIMESTAMP.fullmatch(value.strip())
    if not m:
        return None
    zone = m.group(8)
    if zone in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    try:
        moment = datetime(*(int(m.group(i)) for i in range(1, 7)), tzinfo=tz)
    except ValueError:
        return None
    return moment.astimezone(timezone.utc), m.group(7) or ""


def _created_at(value: Any) -> str:
    parsed = _parse_timestamp(value)
    if parsed is None:
        return _ZERO_TIME
    moment, fraction = parsed
    fraction = fraction[:9].rstrip("0")
    base = moment.strftime("%Y-%m-%dT%H:%M:%S")
    return base + ("." + fraction if fraction else "") + "Z"


def _age(path: str, created: Any) -> str:
    parsed = _parse_timestamp(created)
    return get_age(path, parsed[0] if parsed else None)


def _resource_files(directory: str) -> list[str]:
    try:
        names = sorted(entry.name for entry in Path(directory).iterdir())
    except OSError:
        return []
    return [directory + name for name in names]


def _load(path: str) -> dict[str, Any]:
    text = read_yaml(path)
    try:
        data = yaml.load(text, Loader=_Loader)
    except yaml.YAMLError as exc:
        raise OmcError(f"Error when trying to unmarshal file: {path}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise OmcError(f"Error when trying to unmarshal file: {path}")
    return data


def _get(
    root: str,
    options: GetOptions,
    stream: TextIO | None,
    *,
    folder: str,
    prefix: str,
    headers: Sequence[str],
    short_headers: int,
    columns: int,
    row: Callable[[dict[str, Any], str], list[str]],
) -> bool:
    stream = stream or sys.stdout
    output = options.output
    resource_name = options.resource_name
    directory = f"{root}/{folder}/"

    rows: list[list[str]] = []
    collected: list[dict[str, Any]] = []
    for path in _resource_files(directory):
        resource = _load(path)
        meta = _section(resource, "metadata")
        name = _text(meta.get("name"))
        labels = extract_labels(meta.get("labels"))
        if not match_labels(labels, options.selector):
            continue
        if resource_name and resource_name != name:
            continue
        if output == "name":
            stream.write(f"{prefix}/{name}\n")
            continue
        if output in ("yaml", "json") or output.startswith("jsonpath="):
            collected.append(resource)
            continue
        rows.append(
            get_row(True, options.show_labels, labels, output, columns, row(resource, path))
        )

    if output in ("", "wide"):
        shown = list(headers[:short_headers] if output == "" else headers)
        if options.show_labels:
            shown.append("labels")
        stream.write(render_table(shown, rows))
        return False
    if output == "name":
        return False

    if resource_name:
        if not collected:
            raise OmcError("No resources found.")
        target: Any = collected[0]
    else:
        target = {"apiVersion": "v1", "items": collected}
    try:
        stream.write(format_resource(target, output, options.jsonpath_template))
    except JSONPathError as exc:
        raise OmcError(
            f"error: error parsing jsonpath {options.jsonpath_template}, {exc}"
        ) from exc
    return False


def _binding_row(binding: dict[str, Any], path: str) -> list[str]:
    meta = _section(binding, "metadata")
    role_ref = _section(binding, "roleRef")
    role = f"{_text(role_ref.get('kind'))}/{_text(role_ref.get('name'))}"
    by_kind: dict[str, list[str]] = {"User": [], "Group": [], "ServiceAccount": []}
    for subject in binding.get("subjects") or []:
        if not isinstance(subject, dict):
            continue
        kind = _text(subject.get("kind"))
        if kind in by_kind:
            by_kind[kind].append(
                _text(subject.get("namespace")) + _text(subject.get("name"))
            )
    return [
        _text(meta.get("name")),
        role,
        _age(path, meta.get("creationTimestamp")),
        ", ".join(by_kind["User"]),
        ", ".join(by_kind["Group"]),
        ", ".join(by_kind["ServiceAccount"]),
    ]


def _role_row(role: dict[str, Any], path: str) -> list[str]:
    meta = _section(role, "metadata")
    return [_text(meta.get("name")), _created_at(meta.get("creationTimestamp"))]


def get_cluster_role_bindings(
    root: str, options: GetOptions, stream: TextIO | None = None
) -> bool:
    """List cluster role bindings as a table, names, yaml, json or jsonpath."""
    return _get(
        root,
        options,
        stream,
        folder=f"{_RBAC}/clusterrolebindings",
        prefix="clusterrolebinding",
        headers=("name", "role", "age", "users", "groups", "serviceaccounts"),
        short_headers=2,
        columns=3,
        row=_binding_row,
    )


def get_cluster_roles(
    root: str, options: GetOptions, stream: TextIO | None = None
) -> bool:
    """List cluster roles as a table, names, yaml, json or jsonpath."""
    return _get(
        root,
        options,
        stream,
        folder=f"{_RBAC}/clusterroles",
        prefix="clusterrole",
        headers=("name", "created at"),
        short_headers=2,
        columns=2,
        row=_role_row,
    )