"""
rsync transfers (push and pull)

build_transfer() turns a session and a direction into the complete rsync
argument list. It is pure, so the filter ordering can be tested without
running anything; execute_transfer() validates and runs the result.

Filter rules are first-match-wins, so the order of the list is part of its
meaning. The .claude/ subtree is excluded except for an allow-list of
subdirectories (both directions) and settings.json (push only: the remote
copy carries injected hooks and must never overwrite the local one).
"""
import enum
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from .. import config as _cfg
from ..core.ssh_manager import ssh_option_args
from ..errors import TransferError, UnsafePullTargetError
from ..session import Session
from ..utils.logging import vlog


class Direction(enum.Enum):
    PUSH = "push"   # local → remote
    PULL = "pull"   # remote → local


@dataclass(frozen=True)
class TransferSpec:
    """One rsync invocation. args, direction and local_path come from the same build_transfer() call."""

    args: tuple[str, ...]
    direction: Direction
    local_path: Path


def _scoped_subtree_filters(sync_dirs: Sequence[str], direction: Direction) -> list[str]:
    subtree = _cfg.SCOPED_SUBTREE
    # rsync only descends into .claude/ if the directory itself is included
    rules = [f"--include={subtree}/"]
    for name in sync_dirs:
        name = name.strip("/")
        rules.append(f"--include={subtree}/{name}/")
        rules.append(f"--include={subtree}/{name}/**")
    if direction is Direction.PUSH:
        rules.append(f"--include={subtree}/settings.json")
    # must stay after every include above
    rules.append(f"--exclude={subtree}/**")
    return rules


def build_transfer(
    session: Session,
    direction: Direction,
    exclude: Sequence[str] = (),
    claude_sync_dirs: Sequence[str] = (),
    verbose: bool = False,
    rsh: Optional[str] = None,
) -> TransferSpec:
    """Build the full rsync argument list for one push or pull of *session*."""
    args = ["-az", "--delete"]
    if rsh:
        args += ["-e", rsh]

    # Respect .gitignore at every directory level
    args.append("--filter=:- .gitignore")

    for pattern in exclude:
        args.append(f"--exclude={pattern}")

    args += _scoped_subtree_filters(claude_sync_dirs, direction)

    if verbose:
        args.append("--progress")

    # Trailing slashes: sync the contents, not the directory itself
    local = f"{session.local_root}/"
    remote = f"{session.remote}:{session.remote_root}/"
    if direction is Direction.PUSH:
        args += [local, remote]
    else:
        args += [remote, local]

    return TransferSpec(args=tuple(args), direction=direction, local_path=Path(session.local_root))


def default_rsh() -> Optional[str]:
    """`ssh -p N -i KEY` for rsync's -e when the profile needs it, else None."""
    opts = ssh_option_args()
    return " ".join(["ssh", *opts]) if opts else None


def validate_pull_target(local_path: Path, direction: Direction):
    """
    Refuse to pull (rsync --delete into local_path) unless local_path is a
    project root, i.e. holds relocal.yaml directly. Push is never checked:
    the remote side is fully owned by relocal.
    """
    if direction is Direction.PUSH:
        return
    try:
        resolved = Path(local_path).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise UnsafePullTargetError(Path(local_path), f"cannot resolve path ({exc})")
    if not (resolved / _cfg.PROJECT_MARKER).is_file():
        raise UnsafePullTargetError(resolved, f"{_cfg.PROJECT_MARKER} not found there")


def run_rsync(args: Sequence[str]) -> subprocess.CompletedProcess:
    """Run the local rsync binary and capture its output."""
    return subprocess.run(["rsync", *args], capture_output=True, text=True, check=False)


RsyncRunner = Callable[[Sequence[str]], subprocess.CompletedProcess]


def execute_transfer(spec: TransferSpec, rsync: RsyncRunner = run_rsync) -> subprocess.CompletedProcess:
    """Validate *spec* and run it. Raises TransferError on non-zero exit."""
    validate_pull_target(spec.local_path, spec.direction)
    vlog(f"  [{spec.direction.value.upper()}] rsync {' '.join(spec.args)}")
    try:
        result = rsync(list(spec.args))
    except FileNotFoundError:
        raise TransferError("rsync not found; install rsync locally")
    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise TransferError(stderr or f"rsync exited with status {result.returncode}",
                            returncode=result.returncode)
    return result
