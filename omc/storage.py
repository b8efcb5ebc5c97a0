"""Listing storage classes stored in a must-gather."""

from __future__ import annotations

import re
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, TextIO

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

_FOLDER = "cluster-scoped-resources/storage.k8s.io/storageclasses"
_HEADERS = (
    "name",
    "provisioner",
    "reclaimpolicy",
    "volumebindingmode",
    "allowvolumeexpansion",
    "age",
)
_DEFAULT_ANNOTATION = "storageclass.kubernetes.io/is-default-class"

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


def _parse_timestamp(value: Any) -> datetime | None:
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
        return datetime(*(int(m.group(i)) for i in range(1, 7)), tzinfo=tz)
    except ValueError:
        return None


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


def _row(storage_class: dict[str, Any], path: str) -> list[str]:
    meta = _section(storage_class, "metadata")
    name = _text(meta.get("name"))
    annotations = _section(meta, "annotations")
    if _text(annotations.get(_DEFAULT_ANNOTATION)) == "true":
        name += " (default)"
    expansion = storage_class.get("allowVolumeExpansion")
    return [
        name,
        _text(storage_class.get("provisioner")),
        _text(storage_class.get("reclaimPolicy")),
        _text(storage_class.get("volumeBindingMode")),
        "true" if expansion is True else "false",
        get_age(path, _parse_timestamp(meta.get("creationTimestamp"))),
    ]


def get_storage_classes(
    root: str, options: GetOptions, stream: TextIO | None = None
) -> bool:
    """List storage classes as a table, names, yaml, json or jsonpath."""
    stream = stream or sys.stdout
    output = options.output
    resource_name = options.resource_name

    rows: list[list[str]] = []
    collected: list[dict[str, Any]] = []
    for path in _resource_files(f"{root}/{_FOLDER}/"):
        resource = _load(path)
        meta = _section(resource, "metadata")
        name = _text(meta.get("name"))
        labels = extract_labels(meta.get("labels"))
        if not match_labels(labels, options.selector):
            continue
        if resource_name and resource_name != name:
            continue
        if output == "name":
            stream.write(f"storageclass.storage.k8s.io/{name}\n")
            continue
        if output in ("yaml", "json") or output.startswith("jsonpath="):
            collected.append(resource)
            continue
        rows.append(
            get_row(True, options.show_labels, labels, output, 6, _row(resource, path))
        )

    if output in ("", "wide"):
        headers = list(_HEADERS)
        if options.show_labels:
            headers.append("labels")
        stream.write(render_table(headers, rows))
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