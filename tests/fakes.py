"""
In-memory stand-ins for the remote side, shared by the test modules.

FakeSSH records every remote command in a shared event log, keeps a
settings.json for the session the way the remote filesystem would, and
collects acks. FakeRsync records transfers in the same log so tests can
check the order in which things happened across threads.
"""
import queue
import subprocess
import threading
from pathlib import Path

import relocal.config as cfg
from relocal.errors import RemoteCommandError

_EOF = object()
ACK_PREFIX = "printf '%s\\n' "


def reset_config():
    """Put relocal.config back to its defaults (tests mutate the module globals)."""
    cfg.SSH_HOST = "example.com"
    cfg.SSH_PORT = 22
    cfg.SSH_USER = None
    cfg.SSH_KEY_PATH = None
    cfg.SSH_PASSWORD = None
    cfg.LOCAL_ROOT = Path(".")
    cfg.EXCLUDE = []
    cfg.CLAUDE_SYNC_DIRS = []
    cfg.APT_PACKAGES = []
    cfg.GIT_FSCK = True
    cfg.RETRY_MAX = 1
    cfg.RETRY_BASE_DELAY = 0.0


def make_project(root: Path) -> Path:
    """Turn *root* into a project root (holds the marker)."""
    (root / cfg.PROJECT_MARKER).write_text("profiles:\n  - name: default\n    remote: 'user@host'\n",
                                           encoding="utf-8")
    return root


class EventLog:
    def __init__(self):
        self._lock = threading.Lock()
        self.items = []

    def add(self, *event):
        with self._lock:
            self.items.append(event)

    def kinds(self):
        with self._lock:
            return [e[0] for e in self.items]


class FakeStream:
    """Queue-backed RemoteStream. close() ends iteration the way a hangup would."""

    def __init__(self):
        self._queue = queue.Queue()
        self.closed = False

    def feed(self, *lines):
        for line in lines:
            self._queue.put(line if line.endswith("\n") else line + "\n")

    def __iter__(self):
        while True:
            item = self._queue.get()
            if item is _EOF:
                return
            yield item

    def close(self):
        self.closed = True
        self._queue.put(_EOF)


def _unquote(value: str) -> str:
    return value[1:-1].replace("'\\''", "'")


class FakeSSH:
    """Records commands instead of running them. exec_status answers come from *responses*."""

    target = "user@host"

    def __init__(self, events=None, responses=None, remote_settings=None):
        self.events = events or EventLog()
        # (substring, (rc, out, err)); first match wins, default is success
        self.responses = list(responses or [])
        self.remote_settings = remote_settings
        self.stream = FakeStream()
        self.commands = []
        self.acks = []
        self.interactive = []
        self.interactive_status = 0
        self.on_interactive = None
        self.fail_on = None
        self.disconnected = False
        self._ack_cond = threading.Condition()

    # ── lifecycle ──────────────────────────────────────────────────────────

    def connect(self):
        pass

    def disconnect(self):
        self.disconnected = True
        self.events.add("disconnect")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.disconnect()

    # ── commands ───────────────────────────────────────────────────────────

    def _record(self, cmd):
        self.commands.append(cmd)
        if "<< 'RELOCAL_EOF'\n" in cmd:
            content = cmd.split("<< 'RELOCAL_EOF'\n", 1)[1].rsplit("\nRELOCAL_EOF", 1)[0]
            self.remote_settings = content
            self.events.add("write_settings", content)
        else:
            self.events.add("exec", cmd)

    def exec(self, cmd, timeout=60):
        self._record(cmd)
        if self.fail_on and self.fail_on in cmd:
            raise RemoteCommandError(cmd, 1, "boom")
        return "", ""

    def exec_status(self, cmd, timeout=60):
        self.commands.append(cmd)
        self.events.add("exec_status", cmd)
        for needle, answer in self.responses:
            if needle in cmd:
                return answer
        if cmd.startswith("cat ") and cmd.endswith("settings.json"):
            if self.remote_settings is None:
                return 1, "", "No such file or directory"
            return 0, self.remote_settings, ""
        return 0, "", ""

    def exec_once(self, cmd, timeout=None):
        self.commands.append(cmd)
        if cmd.startswith(ACK_PREFIX):
            ack = _unquote(cmd[len(ACK_PREFIX):].rsplit(" > ", 1)[0])
            self.events.add("ack", ack)
            with self._ack_cond:
                self.acks.append(ack)
                self._ack_cond.notify_all()
        else:
            self.events.add("exec_once", cmd)
        return "", ""

    def open_stream(self, cmd):
        self.commands.append(cmd)
        self.events.add("open_stream", cmd)
        return self.stream

    def exec_interactive(self, cmd):
        self.interactive.append(cmd)
        self.events.add("interactive", cmd)
        if self.on_interactive is not None:
            self.on_interactive()
        return self.interactive_status

    # ── helpers for assertions ─────────────────────────────────────────────

    def wait_for_acks(self, count, timeout=5.0):
        with self._ack_cond:
            return self._ack_cond.wait_for(lambda: len(self.acks) >= count, timeout)


class FakeRsync:
    """
    Callable with run_rsync's signature. Results are consumed in order; once
    they run out every call succeeds.
    """

    def __init__(self, events=None, results=()):
        self.events = events or EventLog()
        self.results = list(results)
        self.calls = []
        self.on_call = None

    def __call__(self, args):
        args = list(args)
        self.calls.append(args)
        direction = "push" if ":" in args[-1] else "pull"
        self.events.add("rsync", direction)
        if self.on_call is not None:
            self.on_call(args)
        returncode, stderr = self.results.pop(0) if self.results else (0, "")
        return subprocess.CompletedProcess(["rsync", *args], returncode, "", stderr)
