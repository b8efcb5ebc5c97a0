"""Listing arbitrary Kubernetes objects read from YAML files."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, TextIO

import yaml

from omc.helpers import (
    OmcError,
    extract_labels,
    get_age,
    get_json_template,
    match_labels,
    render_table,
)
from omc.jsonpath import JSONPathError, render_jsonpath, to_json_path


class _Loader(yaml.SafeLoader):
    """Safe loader that keeps timestamps as plain strings."""


_Loader.yaml_implicit_resolvers = {
    key: [(tag, rx) for tag, rx in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for key, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


@dataclass
class Column:
    """A custom column: a header and the JSONPath that fills it."""

    name: str = ""
    json_path: str = ""
    description: str = ""
    type: str = ""


def match_kind(kinds: Iterable[str], kind: str) -> bool:
    """True if kinds is empty or holds the lower-cased kind."""
    kinds = list(kinds)
    if not kinds:
        return True
    return kind.lower() in kinds


def path_exists(path: str | Path) -> bool:
    return os.path.exists(path)


def load_columns(path: str | Path) -> list[Column]:
    """Read a custom columns file; an empty path gives no columns."""
    if not path:
        return []
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        text = ""
    try:
        data = yaml.load(text, Loader=_Loader)
    except yaml.YAMLError as exc:
        raise OmcError(str(exc)) from exc
    if data is None:
        return []
    if not isinstance(data, dict):
        raise OmcError(f"error unmarshaling columns file {path}")
    entries = data.get("columns") or []
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise OmcError(f"error unmarshaling columns file {path}")
    return [
        Column(
            name=str(e.get("name", "") or ""),
            json_path=str(e.get("jsonPath", "") or ""),
            description=str(e.get("description", "") or ""),
            type=str(e.get("type", "") or ""),
        )
        for e in entries
    ]


def _invalid(path: str, reason: str) -> OmcError:
    return OmcError(f"File: {path}  does not contain a valid k8s object, {reason}")


def _load_object(path: str) -> dict[str, Any]:
    try:
        data = yaml.load(Path(path).read_text(encoding="utf-8"), Loader=_Loader)
    except (OSError, yaml.YAMLError) as exc:
        raise _invalid(path, str(exc)) from exc
    if not isinstance(data, dict) or not data.get("kind"):
        raise _invalid(path, "Object 'Kind' is missing")
    return data


def _list_items(obj: dict[str, Any], path: str) -> list[dict[str, Any]]:
    item_kind = str(obj.get("kind", "")).removesuffix("List")
    items = []
    for item in obj["items"]:
        if not isinstance(item, dict):
            raise _invalid(path, "items member is not an object")
        item = dict(item)
        if not item.get("kind") and not item.get("apiVersion"):
            item["kind"] = item_kind
            item["apiVersion"] = obj.get("apiVersion", "")
        items.append(item)
    return items


def _metadata(obj: dict[str, Any]) -> dict[str, Any]:
    meta = obj.get("metadata")
    return meta if isinstance(meta, dict) else {}


def _jsonpath(data: Any, template: str) -> str:
    try:
        return render_jsonpath(data, template)
    except JSONPathError as exc:
        raise OmcError(f"error: error parsing jsonpath {template}, {exc}") from exc


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sorted(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, list):
        return [_sorted(v) for v in value]
    return value


def _object_files(objects_path: str) -> list[str]:
    base = Path(objects_path)
    if not base.is_dir():
        return [objects_path]
    prefix = objects_path.removesuffix("/")
    return [
        f"{prefix}/{entry.name}"
        for entry in sorted(base.iterdir(), key=lambda e: e.name)
        if not entry.is_dir()
    ]


def uget(
    objects_path: str,
    names: Iterable[str] = (),
    columns_path: str = "",
    kind: str = "",
    output: str = "",
    selector: str = "",
    show_labels: bool = False,
    stream: TextIO | None = None,
) -> None:
    """List the objects in a file or directory as a table, json, yaml or jsonpath."""
    stream = stream or sys.stdout
    objects_path = str(objects_path)
    names = list(names)
    if not path_exists(objects_path):
        raise OmcError(f"Path {objects_path} does not exist.")
    if columns_path and not path_exists(columns_path):
        raise OmcError(f"File {columns_path} does not exist.")

    default_columns = not columns_path
    headers = ["kind", "name"] if default_columns else []
    columns = load_columns(columns_path)
    headers += [c.name for c in columns]

    kinds = kind.lower().removesuffix(",").split(",") if kind else []

    rows: list[list[str]] = []
    items: list[dict[str, Any]] = []
    for file in _object_files(objects_path):
        obj = _load_object(file)
        created = _metadata(obj).get("creationTimestamp")
        candidates = _list_items(obj, file) if isinstance(obj.get("items"), list) else [obj]
        for resource in candidates:
            meta = _metadata(resource)
            name = str(meta.get("name", "") or "")
            labels = extract_labels(meta.get("labels"))
            if not (
                match_kind(kinds, str(resource.get("kind", "")))
                and match_labels(labels, selector)
                and (not names or name in names)
            ):
                continue
            if output:
                items.append(resource)
                continue
            row: list[str] = []
            if default_columns:
                row += [str(resource.get("kind", "")), name]
            for column in columns:
                value = _jsonpath(resource, to_json_path(column.json_path))
                if column.type == "date":
                    value = get_age(file, created)
                row.append(value)
            if show_labels:
                row.append(labels)
            if row:
                rows.append(row)

    if output == "":
        if not rows:
            raise OmcError("No resources found.")
        if show_labels:
            headers.append("labels")
        stream.write(render_table(headers, rows))
        return

    if not items:
        raise OmcError("No resources found.")
    if len(items) == 1:
        target: Any = items[0]
    else:
        target = {"apiVersion": "v1", "kind": "List", "items": items}
    if output == "json":
        if len(items) == 1:
            document = _sorted(target)
        else:
            document = {
                "apiVersion": "v1",
                "kind": "List",
                "items": [_sorted(i) for i in items],
            }
        stream.write(json.dumps(document, indent=2, ensure_ascii=False, default=str) + "\n")
    elif output == "yaml":
        stream.write(
            yaml.safe_dump(target, default_flow_style=False, allow_unicode=True) + "\n"
        )
    elif output.startswith("jsonpath="):
        template = get_json_template(output)
        stream.write(_jsonpath(target, template))