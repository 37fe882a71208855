"""
Remote administration for relocal

install() prepares a fresh host (packages, Claude Code, authentication, hook
script, FIFO and log directories). Every step checks before it acts, so
running it again is safe. nuke() and destroy() delete remote state and ask
for confirmation first unless told not to.
"""
import sys

from . import config as _cfg
from .core import remote_cmds
from .core.ssh_manager import SSHManager
from .operations.hooks import hook_script_content
from .session import Session, remote_work_dir
from .utils.logging import log

BASE_APT_PACKAGES = ["build-essential", "nodejs", "npm"]
CLAUDE_NPM_PACKAGE = "@anthropic-ai/claude-code"


def _confirm(prompt: str) -> bool:
    """Ask a yes/no question on the terminal; anything but y/yes is a no."""
    try:
        answer = input(f"{prompt} [y/N]: ").strip().lower()
    except EOFError:
        return False
    return answer in ("y", "yes")


# ── install ──────────────────────────────────────────────────────────────────

def apt_install_command(extra_packages=()) -> str:
    packages = BASE_APT_PACKAGES + [p for p in extra_packages if p not in BASE_APT_PACKAGES]
    return f"sudo apt-get update && sudo apt-get install -y {' '.join(packages)}"


def install_apt_packages(ssh: SSHManager):
    log("[install] installing APT packages …")
    ssh.exec(apt_install_command(_cfg.APT_PACKAGES), timeout=None)


def install_claude_code(ssh: SSHManager):
    log("[install] checking for Claude Code …")
    rc, _, _ = ssh.exec_status(remote_cmds.check_claude_installed())
    if rc == 0:
        log("[install] Claude Code already installed, skipping.")
        return
    log("[install] installing Claude Code via npm …")
    ssh.exec(f"npm install -g {CLAUDE_NPM_PACKAGE}", timeout=None)


def authenticate_claude(ssh: SSHManager):
    log("[install] checking Claude authentication …")
    rc, _, _ = ssh.exec_status("claude auth status")
    if rc == 0:
        log("[install] Claude already authenticated, skipping.")
        return
    log("[install] running claude login (interactive) …")
    ssh.exec_interactive("claude login")


def install_hook_script(ssh: SSHManager):
    log("[install] installing hook script …")
    ssh.exec(remote_cmds.mkdir_bin_dir())
    ssh.exec(remote_cmds.write_hook_script(hook_script_content()))


def install(ssh: SSHManager):
    install_apt_packages(ssh)
    install_claude_code(ssh)
    authenticate_claude(ssh)
    install_hook_script(ssh)
    log("[install] creating FIFO and log directories …")
    ssh.exec(remote_cmds.mkdir_fifos_dir())
    ssh.exec(remote_cmds.mkdir_logs_dir())
    log("[install] remote installation complete.")


# ── teardown ─────────────────────────────────────────────────────────────────

def nuke(ssh: SSHManager, confirm: bool = True) -> bool:
    """Remove ~/relocal entirely. Returns False if the user declined."""
    if confirm and not _confirm(
        f"Delete ALL relocal data on {ssh.target}? This removes {_cfg.REMOTE_BASE}/ entirely "
        "(all sessions, FIFOs, and the hook script)."
    ):
        print("Aborted.", file=sys.stderr)
        return False
    log(f"[nuke] removing {_cfg.REMOTE_BASE} on {ssh.target} …")
    ssh.exec(remote_cmds.rm_relocal_dir())
    print("Done. Run `relocal remote install` to set up again.", file=sys.stderr)
    return True


def destroy(ssh: SSHManager, session_name: str, confirm: bool = True) -> bool:
    """Remove one session's working directory and FIFOs. Returns False if the user declined."""
    if confirm and not _confirm(
        f"Remove session '{session_name}' on {ssh.target}? "
        f"This deletes {remote_work_dir(session_name)} and its FIFOs."
    ):
        print("Aborted.", file=sys.stderr)
        return False
    log("[destroy] removing remote working directory …")
    ssh.exec(remote_cmds.rm_work_dir(session_name))
    log("[destroy] removing FIFOs …")
    ssh.exec(remote_cmds.remove_fifos(session_name))
    print(f"Session '{session_name}' destroyed.", file=sys.stderr)
    return True


# ── inspection ───────────────────────────────────────────────────────────────

def list_sessions(ssh: SSHManager) -> list[tuple[str, str]]:
    """(name, size) for every session directory on the remote."""
    rc, out, _ = ssh.exec_status(remote_cmds.list_sessions())
    if rc != 0:
        return []
    sessions = []
    for line in out.splitlines():
        line = line.strip()
        if not line:
            continue
        name, _, size = line.partition("\t")
        sessions.append((name, size))
    return sessions


def print_sessions(ssh: SSHManager):
    sessions = list_sessions(ssh)
    if not sessions:
        print(f"No sessions found on {ssh.target}.")
        return
    for name, size in sessions:
        print(f"{name}\t{size}" if size else name)


def status(ssh: SSHManager, session: Session) -> dict:
    """Query the remote about one session and print a short report."""
    def ok(cmd: str) -> bool:
        return ssh.exec_status(cmd)[0] == 0

    info = {
        "dir_exists": ok(remote_cmds.check_work_dir_exists(session.name)),
        "claude_installed": ok(remote_cmds.check_claude_installed()),
        "fifos_exist": ok(remote_cmds.check_fifos_exist(session.name)),
    }
    print(f"\nSession    : {session.name}")
    print(f"Remote     : {session.remote}")
    print(f"Remote dir : {session.remote_root}")
    print(f"Local      : {session.local_root}")
    print(f"Directory  : {'exists' if info['dir_exists'] else 'not found'}")
    print(f"Claude     : {'installed' if info['claude_installed'] else 'not installed'}")
    print(f"FIFOs      : {'exist (session may be active)' if info['fifos_exist'] else 'not found'}")
    return info
