"""
Remote shell command strings

Pure string builders; nothing here talks to the network. Callers hand the
result to SSHManager.
"""
from .. import config as _cfg
from ..session import remote_work_dir

HOOK_SCRIPT_NAME = "relocal-hook.sh"


def shell_quote(value: str) -> str:
    """Wrap *value* in single quotes, escaping embedded single quotes ('\\'')."""
    return "'" + value.replace("'", "'\\''") + "'"


# ── session working directory ────────────────────────────────────────────────

def mkdir_work_dir(session: str) -> str:
    return f"mkdir -p {remote_work_dir(session)}"


def rm_work_dir(session: str) -> str:
    return f"rm -rf {remote_work_dir(session)}"


def check_work_dir_exists(session: str) -> str:
    return f"test -d {remote_work_dir(session)}"


# ── request / ack FIFOs ──────────────────────────────────────────────────────

def fifo_dir() -> str:
    return f"{_cfg.REMOTE_BASE}/.fifos"


def fifo_request_path(session: str) -> str:
    return f"{fifo_dir()}/{session}-request"


def fifo_ack_path(session: str) -> str:
    return f"{fifo_dir()}/{session}-ack"


def create_fifos(session: str) -> str:
    return f"mkfifo {fifo_request_path(session)} {fifo_ack_path(session)}"


def check_fifos_exist(session: str) -> str:
    """Exit status 0 when either FIFO exists."""
    return f"test -e {fifo_request_path(session)} -o -e {fifo_ack_path(session)}"


def remove_fifos(session: str) -> str:
    return f"rm -f {fifo_request_path(session)} {fifo_ack_path(session)}"


def read_request_fifo(session: str) -> str:
    """
    Stream every request written to the FIFO.
    Each `cat` returns once its writer closes, hence the loop; the loop ends
    by itself once the FIFO has been removed.
    """
    path = fifo_request_path(session)
    return f"while [ -p {path} ]; do cat {path}; done"


def write_ack(session: str, message: str) -> str:
    """Write one ack line. Blocks on the remote until the hook reads it."""
    # printf, not echo: some shells' echo expands backslash escapes
    return f"printf '%s\\n' {shell_quote(message)} > {fifo_ack_path(session)}"


# ── .claude/settings.json ────────────────────────────────────────────────────

def settings_json_path(session: str) -> str:
    return f"{remote_work_dir(session)}/{_cfg.SCOPED_SUBTREE}/settings.json"


def read_settings_json(session: str) -> str:
    return f"cat {settings_json_path(session)}"


def write_settings_json(session: str, content: str) -> str:
    """Heredoc with a quoted delimiter, so the JSON is written byte for byte."""
    return (
        f"mkdir -p {remote_work_dir(session)}/{_cfg.SCOPED_SUBTREE} && "
        f"cat > {settings_json_path(session)} << 'RELOCAL_EOF'\n{content}\nRELOCAL_EOF"
    )


# ── install / admin ──────────────────────────────────────────────────────────

def bin_dir() -> str:
    return f"{_cfg.REMOTE_BASE}/.bin"


def logs_dir() -> str:
    return f"{_cfg.REMOTE_BASE}/.logs"


def mkdir_fifos_dir() -> str:
    return f"mkdir -p {fifo_dir()}"


def mkdir_bin_dir() -> str:
    return f"mkdir -p {bin_dir()}"


def mkdir_logs_dir() -> str:
    return f"mkdir -p {logs_dir()}"


def hook_script_path() -> str:
    return f"{bin_dir()}/{HOOK_SCRIPT_NAME}"


def write_hook_script(content: str) -> str:
    path = hook_script_path()
    return f"cat > {path} << 'RELOCAL_HOOK_EOF'\n{content}\nRELOCAL_HOOK_EOF\nchmod +x {path}"


def rm_relocal_dir() -> str:
    return f"rm -rf {_cfg.REMOTE_BASE}"


def list_sessions() -> str:
    """One `<name>\\t<size>` line per session directory (dot directories skipped)."""
    return (
        f"cd {_cfg.REMOTE_BASE} 2>/dev/null && "
        "for d in $(ls -1 | grep -v '^\\.bin$' | grep -v '^\\.fifos$' | grep -v '^\\.logs$'); do "
        "size=$(du -sh \"$d\" 2>/dev/null | cut -f1); printf '%s\\t%s\\n' \"$d\" \"$size\"; done"
    )


def git_fsck(session: str) -> str:
    """Gate before a pull: the remote copy must be a sound git repository."""
    return f"cd {remote_work_dir(session)} && git fsck --strict --full --no-dangling"


def check_claude_installed() -> str:
    return "command -v claude"


def start_claude_session(session: str, extra_args: tuple = ()) -> str:
    cmd = f"cd {remote_work_dir(session)} && claude --dangerously-skip-permissions"
    if extra_args:
        cmd += " " + " ".join(shell_quote(a) for a in extra_args)
    return cmd
