"""Selecting the must-gather in use and the project (namespace) within it."""

from __future__ import annotations

from pathlib import Path

from omc.config import Config, Context, load_config, save_config
from omc.helpers import OmcError, random_string


def find_must_gather_in(path: str | Path) -> str:
    """Locate the must-gather root below path; the result ends with "/".

    A directory holding "namespaces" is the root. A directory without a
    "timestamp" file and with a single sub-directory is descended into.
    """
    base = str(path)
    try:
        entries = sorted(Path(base).iterdir(), key=lambda e: e.name)
    except OSError as exc:
        raise OmcError(str(exc)) from exc
    dirs = [e.name for e in entries if e.is_dir()]
    timestamp_found = any(e.name == "timestamp" and not e.is_dir() for e in entries)
    trimmed = base[:-1] if base.endswith("/") else base
    if "namespaces" in dirs:
        return trimmed + "/"
    if timestamp_found and len(dirs) != 1:
        raise OmcError(
            f'Expected one directory in path: "{base}", found: {len(dirs)}.'
        )
    if not timestamp_found and len(dirs) == 1:
        return find_must_gather_in(trimmed + "/" + dirs[-1])
    return trimmed + "/"


def use_context(path: str, config_file: str | Path, context_id: str = "") -> Config:
    """Make the must-gather at path (or with context_id) the current one.

    An unknown must-gather is added with project "default". The updated
    configuration is written to config_file and returned.
    """
    if path:
        resolved = find_must_gather_in(path)
        path = resolved.rsplit("/", 1)[0]
        if path.endswith("/"):
            path = path[:-1]

    existing = load_config(config_file)
    contexts: list[Context] = []
    found = False
    for ctx in existing.contexts:
        if ctx.id == context_id or ctx.path == path:
            contexts.append(Context(ctx.id, ctx.path, "*", ctx.project))
            found = True
        else:
            contexts.append(Context(ctx.id, ctx.path, "", ctx.project))

    config_id = context_id
    if not found:
        new_id = context_id or random_string(8)
        contexts.append(Context(new_id, path, "*", "default"))
        config_id = new_id

    config = Config(id=config_id, contexts=contexts)
    save_config(config, config_file)
    return config


def project_default(
    config_file: str | Path, must_gather_root: str | Path, project: str = ""
) -> list[str]:
    """Show or switch the project of the current must-gather.

    Returns the messages to report. Raises OmcError if the project is not a
    namespace of the must-gather; the configuration is then left untouched.
    """
    ns_dir = Path(str(must_gather_root) + "/namespaces/")
    try:
        namespaces = {entry.name for entry in ns_dir.iterdir()}
    except OSError:
        namespaces = set()

    existing = load_config(config_file)
    contexts: list[Context] = []
    messages: list[str] = []
    for ctx in existing.contexts:
        if ctx.current == "*":
            if project == "":
                messages.append(
                    f'Using project "{ctx.project}" on must-gather "{ctx.path}".'
                )
                contexts.append(Context(ctx.id, ctx.path, ctx.current, ctx.project))
            else:
                if project not in namespaces:
                    raise OmcError(
                        f"Error: namespace {project} does not exists in "
                        f'must-gather "{ctx.path}".'
                    )
                contexts.append(Context(ctx.id, ctx.path, ctx.current, project))
                messages.append(
                    f'Now using project "{project}" on must-gather "{ctx.path}".'
                )
        else:
            contexts.append(Context(ctx.id, ctx.path, ctx.current, ctx.project))

    save_config(Config(contexts=contexts), config_file)
    return messages