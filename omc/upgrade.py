"""Checking for newer releases and replacing the installed executable."""

from __future__ import annotations

import os
import sys
from typing import Any, Iterable

import requests
import semver
from tqdm import tqdm

from omc.helpers import OmcError

RELEASES_API = "https://api.github.com/repos/{repo}/releases"
DOWNLOAD_BASE = "https://github.com/{repo}/releases"
FALLBACK_VERSION = "v2.0.1"

_ASSETS = {"darwin": "omc_Darwin_x86_64", "linux": "omc_Linux_x86_64"}
_ISSUE_HINT = "Open an issue on the project repository if you want it implemented.\n"


def parse_version(tag: str) -> semver.Version:
    """Parse a release tag such as "v1.2.3"; the first character is dropped."""
    try:
        return semver.Version.parse(tag[1:])
    except (ValueError, TypeError) as exc:
        raise OmcError(f"invalid semantic version {tag!r}: {exc}") from exc


def available_updates(releases: Iterable[dict[str, Any]], current_tag: str) -> list[str]:
    """Return the release tags newer than current_tag, in the order given."""
    current = parse_version(current_tag or FALLBACK_VERSION)
    updates = []
    for release in releases:
        tag = release.get("tag_name") if isinstance(release, dict) else None
        if isinstance(tag, str) and current < parse_version(tag):
            updates.append(tag)
    return updates


def check_releases(repo_name: str, current_tag: str = "") -> str:
    """Fetch the published releases and describe the available updates."""
    current_tag = current_tag or FALLBACK_VERSION
    try:
        response = requests.get(RELEASES_API.format(repo=repo_name), timeout=30)
        releases = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise OmcError(str(exc)) from exc
    if not isinstance(releases, list):
        raise OmcError(f"unexpected releases response for {repo_name}")
    lines = [f"omc version is {current_tag}", "", "Available updates:", ""]
    lines += available_updates(releases, current_tag)
    return "\n".join(lines) + "\n"


def download_url(repo_name: str, desired_version: str, os_name: str) -> str | None:
    """URL of the release asset for the system, or None if there is none."""
    asset = _ASSETS.get(os_name)
    if asset is None:
        return None
    base = DOWNLOAD_BASE.format(repo=repo_name)
    if desired_version == "latest":
        return f"{base}/latest/download/{asset}"
    return f"{base}/download/{desired_version}/{asset}"


def update_executable(executable_path: str, url: str, desired_version: str) -> None:
    """Download url over executable_path, showing progress on stderr."""
    try:
        response = requests.get(url, stream=True, timeout=60)
    except requests.RequestException as exc:
        raise OmcError(str(exc)) from exc
    with response:
        if response.status_code != 200:
            raise OmcError(
                f"error: Expected status code 200 requesting {url}, "
                f"received {response.status_code}"
            )
        try:
            os.remove(executable_path)
        except OSError as exc:
            raise OmcError(str(exc)) from exc
        total = int(response.headers.get("Content-Length") or 0) or None
        try:
            fd = os.open(executable_path, os.O_CREAT | os.O_WRONLY, 0o777)
            with os.fdopen(fd, "wb") as fh, tqdm(
                total=total,
                unit="B",
                unit_scale=True,
                unit_divisor=1024,
                desc="upgrading",
                file=sys.stderr,
                mininterval=0.065,
            ) as bar:
                for chunk in response.iter_content(chunk_size=32768):
                    fh.write(chunk)
                    bar.update(len(chunk))
        except (OSError, requests.RequestException) as exc:
            raise OmcError(str(exc)) from exc
    sys.stderr.write(f"\romc upgraded to {desired_version}\n")


def _current_os() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform in ("win32", "cygwin"):
        return "windows"
    return sys.platform


def _default_executable() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(sys.argv[0])), "omc")


def upgrade_binary(
    repo_name: str,
    desired_version: str = "",
    current_tag: str = "",
    executable_path: str | None = None,
    os_name: str | None = None,
) -> str:
    """List updates, or replace the executable with desired_version.

    Returns the text to show on standard output.
    """
    executable_path = executable_path or _default_executable()
    os_name = os_name or _current_os()
    if desired_version == "":
        return check_releases(repo_name, current_tag)
    if desired_version != "latest" and not desired_version.startswith("v"):
        raise OmcError(
            "error: --to must be a semantic version (e.g. v4.0.5): "
            "No Major.Minor.Patch elements found"
        )
    if desired_version != "latest":
        desired = parse_version(desired_version)
        current = parse_version(current_tag or FALLBACK_VERSION)
        if desired < current:
            raise OmcError(
                f"error: The update {desired_version} is not one of the available "
                'updates (check them by running "omc upgrade")'
            )
    if os_name == "windows":
        return "This command is not available for windows.\n" + _ISSUE_HINT
    url = download_url(repo_name, desired_version, os_name)
    if url is None:
        return "This command is not available for the OS you are using.\n" + _ISSUE_HINT
    update_executable(executable_path, url, desired_version)
    return ""