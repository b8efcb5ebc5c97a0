"""Printing container logs stored in a must-gather."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Sequence, TextIO

import yaml

from omc.crilog import filter_cat_logs
from omc.helpers import OmcError, cat, exists

_POD_KINDS = ("po", "pod", "pods")


def resolve_must_gather_root(path: str) -> str:
    """Return the must-gather root, descending into a "quay*" directory if needed."""
    if path == "":
        raise OmcError("There are no must-gather resources defined.")
    if exists(path + "/namespaces"):
        return path
    try:
        names = sorted(entry.name for entry in Path(path).iterdir())
    except OSError as exc:
        raise OmcError(str(exc)) from exc
    quay = next((name for name in names if name.startswith("quay")), None)
    if quay is None:
        raise OmcError("Some error occurred, wrong must-gather file composition")
    return path + "/" + quay


def parse_logs_args(args: Sequence[str], container: str = "") -> tuple[str, str]:
    """Work out (pod, container) from the logs command arguments."""
    if len(args) == 0 or len(args) > 2:
        raise OmcError(
            "error: expected 'logs [-p] (POD | TYPE/NAME) [-c CONTAINER]'.\n"
            "POD or TYPE/NAME is a required argument for the logs command\n"
            "See 'omc logs -h' for help and examples"
        )
    parts = args[0].split("/")
    resource_form = len(parts) == 2 and parts[0] in _POD_KINDS
    if len(args) == 1:
        if resource_form:
            if parts[1] == "":
                raise OmcError(
                    "arguments in resource/name form must have a single resource and name"
                )
            return parts[1], container
        return parts[0], container
    if container != "":
        raise OmcError("error: only one of -c or an inline [CONTAINER] arg is allowed")
    if resource_form:
        if parts[1] == "":
            raise OmcError(
                "error: arguments in resource/name form must have a single resource and name"
            )
        return parts[1], args[1]
    return args[0], args[1]


def _names(containers: Any) -> list[str]:
    return [c.get("name", "") for c in containers or [] if isinstance(c, dict)]


def _emit(path: str, log_levels: Sequence[str], stream: TextIO) -> None:
    if log_levels:
        filter_cat_logs(path, log_levels, stream)
    else:
        cat(path, stream)


def logs_pods(
    root: str,
    namespace: str,
    pod_name: str,
    container_name: str = "",
    previous: bool = False,
    all_containers: bool = False,
    log_levels: Sequence[str] = (),
    stream: TextIO | None = None,
) -> None:
    """Write the logs of a pod's container to stream."""
    stream = stream or sys.stdout
    log_levels = list(log_levels)
    log_file = "previous.log" if previous else "current.log"
    ns_path = f"{root}/namespaces/{namespace}"
    pods_file = ns_path + "/core/pods.yaml"
    try:
        text = Path(pods_file).read_text(encoding="utf-8")
    except OSError as exc:
        raise OmcError(f"error: namespace {namespace} not found.") from exc
    try:
        pod_list = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise OmcError(f"Error when trying to unmarshal file {pods_file}") from exc
    if not isinstance(pod_list, dict):
        raise OmcError(f"Error when trying to unmarshal file {pods_file}")

    pod_found = False
    for pod in pod_list.get("items") or []:
        name = (pod.get("metadata") or {}).get("name", "")
        if name != pod_name:
            continue
        pod_found = True
        spec = pod.get("spec") or {}
        containers = _names(spec.get("containers"))
        init_containers = _names(spec.get("initContainers"))
        pod_dir = f"{ns_path}/pods/{name}"

        match = ""
        seen: list[str] = []
        if len(containers) == 1 and container_name == "":
            match = containers[0]
        elif all_containers:
            for c in containers:
                _emit(f"{pod_dir}/{c}/{c}/logs/{log_file}", log_levels, stream)
            return
        else:
            for c in containers + init_containers:
                if c == container_name:
                    match = container_name
                    break
                seen.append(c)
        if match == "" and container_name in init_containers:
            match = container_name

        if match == "":
            if container_name != "":
                raise OmcError(
                    f"error: container {container_name} is not valid for pod {name}"
                )
            raise OmcError(
                f"error: a container name must be specified for pod {name}, "
                f"choose one of: [{' '.join(seen)}]"
            )
        _emit(f"{pod_dir}/{match}/{match}/logs/{log_file}", log_levels, stream)

    if not pod_found:
        raise OmcError(f"error: pods {pod_name} not found")