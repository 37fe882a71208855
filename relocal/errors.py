"""
Error types raised across relocal

Messages are user-facing: the CLI prints them as-is and the relay worker
forwards them to the remote agent inside an `error:` ack.
"""
from pathlib import Path
from typing import Optional


class RelocalError(Exception):
    """Base class for every error relocal reports to the user."""


class ConfigNotFoundError(RelocalError):
    def __init__(self, start_dir: Path):
        self.start_dir = start_dir
        super().__init__(
            f"relocal.yaml not found in {start_dir} or any parent. "
            "Run relocal from the project root, or run 'relocal init' to create one."
        )


class ConfigError(RelocalError):
    """relocal.yaml exists but cannot be used."""


class InvalidSessionNameError(RelocalError):
    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"invalid session name {name!r}: {reason}")


class UnsafePullTargetError(RelocalError):
    """A pull would mirror (with --delete) into a directory that is not a project root."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"refusing to pull into {path}: {reason}")


class TransferError(RelocalError):
    """rsync exited non-zero. The message is rsync's own diagnostic text."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(message)


class RemoteCommandError(RelocalError):
    def __init__(self, command: str, returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"remote command exited {returncode}: {command!r}{detail}")


class ChannelError(RelocalError):
    """The request/ack pipes of a session could not be reached."""


class StaleSessionError(RelocalError):
    def __init__(self, session: str):
        self.session = session
        super().__init__(
            f"stale session {session}: FIFOs already exist. Another session may be running. "
            f"Use 'relocal destroy {session}' if the previous session crashed."
        )


class RemoteRepoCheckError(RelocalError):
    def __init__(self, session: str, stderr: str):
        self.session = session
        self.stderr = stderr
        super().__init__(
            f"refusing to pull: remote session {session} failed git fsck "
            f"(not a git repo or repository is corrupted): {stderr.strip()}"
        )
