"""
Interactive agent session for relocal

Pushes the project to the remote, launches `claude` there attached to this
terminal, and keeps a relay worker running for the whole session so the
remote hooks can ask for pushes and pulls. FIFOs are removed on every exit
path; a non-zero or interrupted session is reported as a dirty shutdown.
"""
from typing import Callable, Optional, Sequence

from .core import remote_cmds
from .core.relay import RelayWorker
from .core.ssh_manager import SSHManager
from .errors import RelocalError, StaleSessionError
from .operations.sync import sync_push
from .operations.transfer import RsyncRunner, run_rsync
from .session import Session
from .utils.logging import log, warn


def setup(ssh: SSHManager, session: Session, verbose: bool = False,
          rsync: RsyncRunner = run_rsync):
    """
    Everything that must finish before the relay starts listening:
    stale-session check, claude check, work dir, FIFOs, initial push (which
    also installs the hooks).
    """
    log("[claude] checking for a stale session …")
    rc, _, _ = ssh.exec_status(remote_cmds.check_fifos_exist(session.name))
    if rc == 0:
        raise StaleSessionError(session.name)

    log("[claude] checking Claude installation …")
    rc, _, _ = ssh.exec_status(remote_cmds.check_claude_installed())
    if rc != 0:
        raise RelocalError(
            f"Claude Code is not installed on {session.remote}. Run 'relocal remote install' first."
        )

    log("[claude] creating remote working directory …")
    ssh.exec(remote_cmds.mkdir_work_dir(session.name))
    ssh.exec(remote_cmds.mkdir_fifos_dir())

    log("[claude] creating FIFOs …")
    ssh.exec(remote_cmds.create_fifos(session.name))

    try:
        sync_push(ssh, session, verbose, rsync)
    except Exception:
        cleanup(ssh, session)
        raise


def cleanup(ssh: SSHManager, session: Session):
    log("[claude] cleaning up FIFOs …")
    ssh.exec(remote_cmds.remove_fifos(session.name))


def run_session(ssh: SSHManager, session: Session, claude_args: Sequence[str] = (),
                verbose: bool = False, rsync: RsyncRunner = run_rsync,
                relay_ssh_factory: Callable[[], SSHManager] = SSHManager) -> bool:
    """
    Full session: setup, relay + interactive claude, cleanup, summary.
    Returns True for a clean exit.
    """
    setup(ssh, session, verbose, rsync)

    status: Optional[int] = None
    relay_ssh = relay_ssh_factory()
    try:
        with RelayWorker(relay_ssh, session, verbose=verbose, rsync=rsync):
            try:
                status = ssh.exec_interactive(
                    remote_cmds.start_claude_session(session.name, tuple(claude_args))
                )
            except KeyboardInterrupt:
                warn("[claude] interrupted")
            except OSError as exc:
                warn(f"[claude] SSH session error: {exc}")
    finally:
        relay_ssh.disconnect()
        try:
            cleanup(ssh, session)
        except Exception as exc:
            warn(f"[claude] FIFO cleanup failed: {exc}")
            warn(f"You may need to run: relocal destroy {session.name}")

    clean = status == 0
    if clean:
        _print_summary(session)
    else:
        _print_dirty_shutdown(session)
    return clean


def _print_summary(session: Session):
    print(
        f"\nSession ended: {session.name}\n"
        f"Remote dir:    {session.remote_root}\n"
        f"Remote host:   {session.remote}\n\n"
        f"To pull latest changes: relocal sync pull {session.name}\n"
        f"To push local changes:  relocal sync push {session.name}"
    )


def _print_dirty_shutdown(session: Session):
    print(
        f"\nSession interrupted: {session.name}\n"
        f"Remote dir:  {session.remote_root}\n"
        f"Remote host: {session.remote}\n\n"
        "There may be unsynchronized work on the remote.\n"
        f"Use 'relocal sync pull {session.name}' to fetch remote changes,\n"
        f"or 'relocal sync push {session.name}' to overwrite with local state."
    )
