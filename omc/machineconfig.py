"""Comparing machine configs and extracting the files they carry."""

from __future__ import annotations

import base64
import binascii
import json
import shutil
import subprocess
from pathlib import Path
from typing import Any
from urllib.parse import unquote, unquote_to_bytes

import yaml

from omc.helpers import OmcError

_MACHINECONFIGS = (
    "cluster-scoped-resources/machineconfiguration.openshift.io/machineconfigs"
)


def machine_config_path(root: str, name: str) -> str:
    return f"{root}/{_MACHINECONFIGS}/{name}.yaml"


def diff_machine_configs(root: str, first: str, second: str, diff_cmd: str = "") -> None:
    """Open two machine configs in a diff tool (vimdiff by default)."""
    command = diff_cmd or "vimdiff"
    if shutil.which(command) is None:
        raise OmcError(f'exec: "{command}": executable file not found in $PATH')
    try:
        result = subprocess.run(
            [command, machine_config_path(root, first), machine_config_path(root, second)],
            check=False,
        )
    except OSError as exc:
        raise OmcError(str(exc)) from exc
    if result.returncode != 0:
        raise OmcError(f"exit status {result.returncode}")


def decode_data_url(url: str) -> bytes:
    """Decode the payload of a data: URL."""
    if not url.startswith("data:"):
        raise OmcError(f"invalid data URL: {url[:32]!r}")
    header, sep, payload = url[len("data:"):].partition(",")
    if not sep:
        raise OmcError("invalid data URL: missing comma")
    params = header.split(";")
    if len(params) > 1 and params[-1].strip().lower() == "base64":
        try:
            return base64.b64decode(unquote(payload), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise OmcError(f"invalid base64 data URL: {exc}") from exc
    return unquote_to_bytes(payload)


def extract_ignition_storage(ignition: dict[str, Any], destination: str | Path) -> list[Path]:
    """Write the files of an ignition config below destination/storage/files."""
    files_root = f"{destination}/storage/files"
    written: list[Path] = []
    storage = ignition.get("storage") or {}
    for entry in storage.get("files") or []:
        file_path = str(entry.get("path", "") or "")
        parent = file_path[: file_path.rfind("/")] if "/" in file_path else ""
        Path(files_root + parent).mkdir(parents=True, exist_ok=True)
        source = (entry.get("contents") or {}).get("source")
        if source is None:
            continue
        target = Path(files_root + file_path)
        target.write_bytes(decode_data_url(str(source)))
        written.append(target)
    return written


def extract_machine_config(root: str, name: str) -> list[Path]:
    """Extract the files of a machine config below root/extracted-machine-configs."""
    path = machine_config_path(root, name)
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise OmcError(str(exc)) from exc
    try:
        machine_config = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise OmcError(f"Error when trying to unmarshal file: {path}") from exc
    if not isinstance(machine_config, dict):
        raise OmcError(f"Error when trying to unmarshal file: {path}")

    config = (machine_config.get("spec") or {}).get("config") or {}
    if isinstance(config, str):
        try:
            config = json.loads(config)
        except ValueError:
            config = {}
    if not isinstance(config, dict):
        config = {}

    mc_name = (machine_config.get("metadata") or {}).get("name", "")
    destination = f"{root}/extracted-machine-configs/{mc_name}"
    Path(destination).mkdir(parents=True, exist_ok=True)
    return extract_ignition_storage(config, destination)