"""The omc configuration file: known must-gathers and the current one."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class Context:
    """One must-gather known to omc."""

    id: str = ""
    path: str = ""
    current: str = ""
    project: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "path": self.path,
            "current": self.current,
            "project": self.project,
        }


@dataclass
class Config:
    """Contents of the omc configuration file."""

    id: str = ""
    contexts: list[Context] = field(default_factory=list)
    use_local_crds: bool = False
    diff_command: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out empty fields."""
        data: dict[str, Any] = {}
        if self.id:
            data["id"] = self.id
        if self.contexts:
            data["contexts"] = [c.to_dict() for c in self.contexts]
        if self.use_local_crds:
            data["use_local_crds"] = True
        if self.diff_command:
            data["diff_command"] = self.diff_command
        return data

    def current_context(self) -> Context | None:
        """Return the context marked current, if any."""
        return next((c for c in self.contexts if c.current == "*"), None)


def config_from_dict(data: dict[str, Any]) -> Config:
    contexts = [
        Context(
            id=str(c.get("id", "") or ""),
            path=str(c.get("path", "") or ""),
            current=str(c.get("current", "") or ""),
            project=str(c.get("project", "") or ""),
        )
        for c in data.get("contexts") or []
        if isinstance(c, dict)
    ]
    return Config(
        id=str(data.get("id", "") or ""),
        contexts=contexts,
        use_local_crds=bool(data.get("use_local_crds", False)),
        diff_command=str(data.get("diff_command", "") or ""),
    )


def load_config(path: str | Path) -> Config:
    """Read a configuration file; a missing or unreadable one gives an empty config."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return Config()
    if not isinstance(data, dict):
        return Config()
    return config_from_dict(data)


def save_config(config: Config, path: str | Path) -> None:
    Path(path).write_text(json.dumps(config.to_dict(), indent=1), encoding="utf-8")


def create_config_file(path: str | Path) -> None:
    """Write an empty configuration file."""
    save_config(Config(), path)