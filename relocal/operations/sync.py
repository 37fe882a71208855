"""
Push and pull for one session

Push mirrors the local tree to the remote and then re-injects the hooks into
the remote settings.json (the push may just have replaced it with the local
copy). Pull mirrors the remote tree back, after checking that the remote copy
is a sound git repository.
"""
from .. import config as _cfg
from ..core import remote_cmds
from ..core.ssh_manager import SSHManager
from ..errors import RemoteRepoCheckError
from ..session import Session
from ..utils.logging import log, vlog
from .hooks import HookSettings, merge_hooks
from .transfer import Direction, RsyncRunner, build_transfer, default_rsh, execute_transfer, run_rsync


def _build(session: Session, direction: Direction, verbose: bool):
    return build_transfer(
        session,
        direction,
        exclude=_cfg.EXCLUDE,
        claude_sync_dirs=_cfg.CLAUDE_SYNC_DIRS,
        verbose=verbose,
        rsh=default_rsh(),
    )


def sync_push(ssh: SSHManager, session: Session, verbose: bool = False,
              rsync: RsyncRunner = run_rsync):
    """Push local files to the remote, then re-inject hooks."""
    log(f"[push] {session.local_root} → {session.remote}:{session.remote_root}")
    execute_transfer(_build(session, Direction.PUSH, verbose), rsync)
    reinject_hooks(ssh, session)
    log("[push] complete.")


def sync_pull(ssh: SSHManager, session: Session, verbose: bool = False,
              rsync: RsyncRunner = run_rsync):
    """Pull remote files into the local project root."""
    log(f"[pull] {session.remote}:{session.remote_root} → {session.local_root}")
    if _cfg.GIT_FSCK:
        check_remote_repo(ssh, session)
    execute_transfer(_build(session, Direction.PULL, verbose), rsync)
    log("[pull] complete.")


def check_remote_repo(ssh: SSHManager, session: Session):
    """Raise RemoteRepoCheckError unless `git fsck` passes in the remote working copy."""
    rc, _, err = ssh.exec_status(remote_cmds.git_fsck(session.name))
    if rc != 0:
        raise RemoteRepoCheckError(session.name, err)


def reinject_hooks(ssh: SSHManager, session: Session):
    """Read the remote settings.json (if any), merge relocal's hooks, write it back."""
    vlog("[hooks] re-injecting hooks …")
    rc, out, _ = ssh.exec_status(remote_cmds.read_settings_json(session.name))
    existing = HookSettings.from_json(out if rc == 0 else None).document
    merged = merge_hooks(existing, session.name)
    content = HookSettings(merged).to_json()
    ssh.exec(remote_cmds.write_settings_json(session.name, content))
