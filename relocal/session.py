"""
Session naming and the per-session remote layout

A session name is embedded verbatim in remote paths and shell commands
(`~/relocal/<name>/`, `~/relocal/.fifos/<name>-request`), so it is restricted
to characters that never need quoting.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import config as _cfg
from .errors import InvalidSessionNameError


def validate_session_name(name: str):
    """Raise InvalidSessionNameError unless *name* is non-empty and only [alnum _ -]."""
    if not name:
        raise InvalidSessionNameError(name, "must not be empty")
    if not all(c.isalnum() or c in "-_" for c in name):
        raise InvalidSessionNameError(
            name, "must contain only alphanumeric characters, hyphens, and underscores"
        )


def default_session_name(path: Path) -> str:
    """Derive a session name from a directory's final component (`/home/u/my-proj` → `my-proj`)."""
    name = Path(path).name
    if not name:
        raise InvalidSessionNameError(str(path), "cannot derive session name from directory path")
    validate_session_name(name)
    return name


def remote_work_dir(name: str) -> str:
    return f"{_cfg.REMOTE_BASE}/{name}"


@dataclass(frozen=True)
class Session:
    """One synchronization context: a name, the remote host and both roots."""

    name: str
    remote: str
    local_root: Path

    def __post_init__(self):
        validate_session_name(self.name)

    @property
    def remote_root(self) -> str:
        return remote_work_dir(self.name)

    @classmethod
    def resolve(cls, name: Optional[str], local_root: Path, remote: Optional[str] = None) -> "Session":
        """Explicit name if given, else the project directory's name."""
        if name is None:
            name = default_session_name(local_root)
        return cls(name=name, remote=remote or _cfg.ssh_target(), local_root=Path(local_root))
