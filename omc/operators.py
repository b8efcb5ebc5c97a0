"""Listing Operator Lifecycle Manager resources stored in a must-gather."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TextIO

import yaml

from omc.helpers import (
    GetOptions,
    OmcError,
    extract_labels,
    format_resource,
    get_row,
    match_labels,
    render_table,
)
from omc.jsonpath import JSONPathError


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


@dataclass(frozen=True)
class _Kind:
    directory: str
    qualified: str
    headers: tuple[str, ...]
    columns: int
    row: Callable[[dict[str, Any], str], list[str]]


def _csv_row(obj: dict[str, Any], namespace: str) -> list[str]:
    meta = _section(obj, "metadata")
    spec = _section(obj, "spec")
    status = _section(obj, "status")
    version = _text(spec.get("version")) or "0.0.0"
    return [
        _text(meta.get("namespace")),
        _text(meta.get("name")),
        _text(spec.get("displayName")),
        version,
        _text(spec.get("replaces")),
        _text(status.get("phase")),
    ]


def _install_plan_row(obj: dict[str, Any], namespace: str) -> list[str]:
    meta = _section(obj, "metadata")
    spec = _section(obj, "spec")
    names = [_text(n) for n in spec.get("clusterServiceVersionNames") or []]
    if len(names) == 1:
        csv = names[0]
    elif len(names) > 1:
        csv = "[" + ", ".join(names) + "]"
    else:
        csv = ""
    approved = "true" if spec.get("approved") is True else "false"
    return [namespace, _text(meta.get("name")), csv, _text(spec.get("approval")), approved]


def _subscription_row(obj: dict[str, Any], namespace: str) -> list[str]:
    meta = _section(obj, "metadata")
    spec = _section(obj, "spec")
    return [
        namespace,
        _text(meta.get("name")),
        _text(spec.get("name")),
        _text(spec.get("source")),
        _text(spec.get("channel")),
    ]


_CSV = _Kind(
    "clusterserviceversions",
    "clusterserviceversion.operators.coreos.com",
    ("namespace", "name", "display", "version", "replaces", "phase"),
    6,
    _csv_row,
)
_INSTALL_PLAN = _Kind(
    "installplans",
    "installplan.operators.coreos.com",
    ("namespace", "name", "csv", "approval", "approved"),
    5,
    _install_plan_row,
)
_SUBSCRIPTION = _Kind(
    "subscriptions",
    "subscription.operators.coreos.com",
    ("namespace", "name", "package", "source", "channel"),
    5,
    _subscription_row,
)


def _entry_names(directory: str) -> list[str]:
    try:
        return sorted(entry.name for entry in Path(directory).iterdir())
    except OSError:
        return []


def _resource_files(directory: str) -> list[str]:
    try:
        entries = sorted(Path(directory).iterdir(), key=lambda e: e.name)
    except OSError:
        return []
    return [directory + entry.name for entry in entries if not entry.is_dir()]


def _load(path: str) -> dict[str, Any]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        text = ""
    try:
        data = yaml.load(text, Loader=_Loader)
    except yaml.YAMLError as exc:
        raise OmcError(f"Error when trying to unmarshal file: {path}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise OmcError(f"Error when trying to unmarshal file: {path}")
    return data


def _get(kind: _Kind, root: str, options: GetOptions, stream: TextIO | None) -> bool:
    stream = stream or sys.stdout
    output = options.output
    resource_name = options.resource_name
    namespace = options.namespace
    if options.all_namespaces:
        namespace = "all"
        namespaces = _entry_names(f"{root}/namespaces/")
    else:
        namespaces = [namespace]

    rows: list[list[str]] = []
    collected: list[dict[str, Any]] = []
    for ns in namespaces:
        directory = f"{root}/namespaces/{ns}/operators.coreos.com/{kind.directory}/"
        resources = [_load(path) for path in _resource_files(directory)]
        for resource in resources:
            meta = _section(resource, "metadata")
            name = _text(meta.get("name"))
            labels = extract_labels(meta.get("labels"))
            if not match_labels(labels, options.selector):
                continue
            if resource_name and resource_name != name:
                continue
            if output == "name":
                stream.write(f"{kind.qualified}/{name}\n")
                continue
            if output in ("yaml", "json") or output.startswith("jsonpath="):
                collected.append(resource)
                continue
            rows.append(
                get_row(
                    options.all_namespaces,
                    options.show_labels,
                    labels,
                    output,
                    kind.columns,
                    kind.row(resource, ns),
                )
            )
            if resource_name and resource_name == name:
                break
        if namespace and ns == namespace:
            break

    not_found = f"No resources found in {namespace} namespace.\n"
    if output in ("", "wide"):
        if not rows:
            if not options.all_resources:
                stream.write(not_found)
            return True
        start = 0 if options.all_namespaces else 1
        end = kind.columns if output == "" else len(kind.headers)
        headers = list(kind.headers[start:end])
        if options.show_labels:
            headers.append("labels")
        stream.write(render_table(headers, rows))
        return False

    if not collected:
        if not options.all_resources:
            stream.write(not_found)
        return True
    target: Any = collected[0] if resource_name else {"metadata": {}, "items": collected}
    try:
        stream.write(format_resource(target, output, options.jsonpath_template))
    except JSONPathError as exc:
        raise OmcError(
            f"error: error parsing jsonpath {options.jsonpath_template}, {exc}"
        ) from exc
    return False


def get_cluster_service_versions(
    root: str, options: GetOptions, stream: TextIO | None = None
) -> bool:
    """List cluster service versions; True when none were found."""
    return _get(_CSV, root, options, stream)


def get_install_plans(
    root: str, options: GetOptions, stream: TextIO | None = None
) -> bool:
    """List install plans; True when none were found."""
    return _get(_INSTALL_PLAN, root, options, stream)


def get_subscriptions(
    root: str, options: GetOptions, stream: TextIO | None = None
) -> bool:
    """List subscriptions; True when none were found."""
    return _get(_SUBSCRIPTION, root, options, stream)