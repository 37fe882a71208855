"""
Sync relay worker

The remote hook script writes `push` or `pull` into the session's request
FIFO and then blocks on the ack FIFO. RelayWorker streams the request FIFO
over SSH on a background thread, runs the matching sync and answers every
recognized request with `ok` or `error:<message>`.

Requests are served strictly one at a time, in arrival order: nothing else
touches the local tree or the remote working copy while a transfer runs.

    STARTING → LISTENING ⇄ DISPATCHING → … → SHUTTING_DOWN → STOPPED

Usage:
    with RelayWorker(SSHManager(), session, verbose=True):
        ssh.exec_interactive(...)
"""
import enum
import threading
from typing import Optional

from ..operations.sync import sync_pull, sync_push
from ..operations.transfer import RsyncRunner, run_rsync
from ..session import Session
from ..utils.logging import vlog, warn
from . import remote_cmds
from .ssh_manager import RemoteStream, SSHManager

REQUEST_HANDLERS = {
    "push": sync_push,
    "pull": sync_pull,
}


class RelayState(enum.Enum):
    STARTING = "starting"
    LISTENING = "listening"
    DISPATCHING = "dispatching"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


def escape_ack_text(text: str) -> str:
    """Backslash-escape control characters (and backslashes) so the message stays on one line."""
    return "".join(
        "\\\\" if ch == "\\" else
        ch if ch.isprintable() else ch.encode("unicode_escape").decode("ascii")
        for ch in text.strip()
    )


def format_ack(error: Optional[BaseException]) -> str:
    if error is None:
        return "ok"
    # some exceptions (socket.timeout) have no message
    return f"error:{escape_ack_text(str(error)) or type(error).__name__}"


def handle_request(ssh: SSHManager, session: Session, request: str,
                   verbose: bool = False, rsync: RsyncRunner = run_rsync) -> bool:
    """
    Run the sync a request asks for. Returns False (after a warning) when the
    request is not recognized; sync failures propagate.
    """
    handler = REQUEST_HANDLERS.get(request)
    if handler is None:
        warn(f"[relay] unknown request: {request!r}")
        return False
    handler(ssh, session, verbose, rsync)
    return True


class RelayWorker:
    """
    Background relay for one session.

    start() opens the request stream and the thread; shutdown() closes the
    stream (which is what wakes a thread blocked on it) and joins the thread.
    A transfer already running is allowed to finish and its ack is still sent.
    Use it as a context manager so shutdown() runs on every exit path.
    """

    def __init__(self, ssh: SSHManager, session: Session, verbose: bool = False,
                 rsync: RsyncRunner = run_rsync):
        self._ssh = ssh
        self._session = session
        self._verbose = verbose
        self._rsync = rsync

        self._stream: Optional[RemoteStream] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._state_lock = threading.Lock()
        self._state = RelayState.STARTING

    @property
    def state(self) -> RelayState:
        return self._state

    def _set_state(self, state: RelayState, unless_stopping: bool = False):
        with self._state_lock:
            if unless_stopping and self._stop.is_set():
                return
            if self._state is RelayState.STOPPED:
                return
            self._state = state

    # ── lifecycle ─────────────────────────────────────────────────────────

    def start(self):
        if self._thread is not None:
            raise RuntimeError("relay worker already started")
        if self._state is RelayState.STOPPED:
            raise RuntimeError("relay worker already stopped; create a new one")
        name = self._session.name
        self._stream = self._ssh.open_stream(remote_cmds.read_request_fifo(name))
        self._thread = threading.Thread(
            target=self._run,
            name=f"relocal-relay-{name}",
            daemon=True,
        )
        self._thread.start()
        vlog(f"[relay] listening for sync requests for session {name}")

    def shutdown(self, timeout: Optional[float] = None):
        self._stop.set()
        self._set_state(RelayState.SHUTTING_DOWN)
        if self._stream is not None:
            self._stream.close()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                warn("[relay] worker still finishing a transfer; leaving it behind")
            self._thread = None
        self._set_state(RelayState.STOPPED)
        vlog("[relay] stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.shutdown()

    # ── worker thread ─────────────────────────────────────────────────────

    def _run(self):
        self._set_state(RelayState.LISTENING, unless_stopping=True)
        try:
            for line in self._stream:
                if self._stop.is_set():
                    break
                request = line.strip()
                if request:
                    self._dispatch(request)
        except Exception as exc:
            vlog(f"[relay] request stream ended: {exc}")
        finally:
            self._set_state(RelayState.STOPPED)

    def _dispatch(self, request: str):
        self._set_state(RelayState.DISPATCHING)
        error: Optional[BaseException] = None
        try:
            handled = handle_request(self._ssh, self._session, request, self._verbose, self._rsync)
        except Exception as exc:
            warn(f"[relay] {request} failed: {exc}")
            handled, error = True, exc
        if handled:
            # Sent even during shutdown: the remote hook blocks until it reads this.
            self._write_ack(format_ack(error))
        self._set_state(RelayState.LISTENING, unless_stopping=True)

    def _write_ack(self, ack: str):
        try:
            self._ssh.exec_once(remote_cmds.write_ack(self._session.name, ack))
        except Exception as exc:
            warn(f"[relay] could not write ack {ack!r}: {exc}")
