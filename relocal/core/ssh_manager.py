"""
SSH connection manager with auto-reconnect and keep-alive
"""
import subprocess
from typing import Iterator, Optional

import paramiko

from .. import config as _cfg
from ..errors import ChannelError, RemoteCommandError
from ..utils.logging import vlog
from ..utils.retry import retried


def ssh_option_args() -> list[str]:
    """Extra `ssh` CLI options for a non-default port or an explicit key."""
    opts: list[str] = []
    if _cfg.SSH_PORT != 22:
        opts += ["-p", str(_cfg.SSH_PORT)]
    if _cfg.SSH_KEY_PATH:
        opts += ["-i", _cfg.SSH_KEY_PATH]
    return opts


class RemoteStream:
    """
    Line stream from a long-running remote command.

    Iterating blocks until the next line arrives and stops at end of stream.
    close() ends the stream from any thread: the remote side gets a hangup
    (the channel holds a pty) and a blocked reader sees end of stream.
    """

    def __init__(self, channel: paramiko.Channel):
        self._channel = channel
        self._file = channel.makefile("r")

    def __iter__(self) -> Iterator[str]:
        return iter(self._file)

    def close(self):
        try:
            self._channel.close()
        except (OSError, EOFError, paramiko.SSHException):
            pass


class SSHManager:
    """
    Wraps paramiko SSHClient.
    Automatically reconnects on channel errors.
    Sends SSH keep-alives so long-idle sessions survive NAT timeouts.
    """

    def __init__(self):
        self._ssh: Optional[paramiko.SSHClient] = None

    @property
    def target(self) -> str:
        return _cfg.ssh_target()

    # ── connection ─────────────────────────────────────────────────────────

    def connect(self):
        if self._ssh:
            try:
                self._ssh.get_transport().send_ignore()  # test if alive
                return
            except Exception:
                self._close_quietly()

        vlog(f"[SSH] connecting to {self.target}:{_cfg.SSH_PORT} …")
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        kw: dict = dict(hostname=_cfg.SSH_HOST, port=_cfg.SSH_PORT,
                        timeout=20, banner_timeout=30, auth_timeout=30)
        if _cfg.SSH_USER:
            kw["username"] = _cfg.SSH_USER
        if _cfg.SSH_KEY_PATH:
            kw["key_filename"] = _cfg.SSH_KEY_PATH
        if _cfg.SSH_PASSWORD:
            kw["password"] = _cfg.SSH_PASSWORD

        client.connect(**kw)

        # Keep-alive: send a NOP every 30s
        transport = client.get_transport()
        transport.set_keepalive(30)

        self._ssh = client
        vlog("[SSH] connected ✓")

    def _close_quietly(self):
        try:
            if self._ssh:
                self._ssh.close()
        except Exception:
            pass
        self._ssh = None

    def disconnect(self):
        self._close_quietly()
        vlog("[SSH] disconnected.")

    def ensure_connected(self):
        """Call before any remote operation."""
        try:
            if self._ssh and self._ssh.get_transport().is_active():
                return
        except Exception:
            pass
        self.connect()

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *exc):
        self.disconnect()

    # ── raw exec ────────────────────────────────────────────────────────────

    def _run(self, cmd: str, timeout: Optional[float]) -> tuple[int, str, str]:
        self.ensure_connected()
        _, stdout, stderr = self._ssh.exec_command(cmd, timeout=timeout)
        out = stdout.read().decode("utf-8", errors="replace")
        err = stderr.read().decode("utf-8", errors="replace")
        rc = stdout.channel.recv_exit_status()
        return rc, out, err

    @retried
    def exec(self, cmd: str, timeout: Optional[float] = 60) -> tuple[str, str]:
        """Run a command; return (stdout, stderr). Raises RemoteCommandError on non-zero exit."""
        rc, out, err = self._run(cmd, timeout)
        if rc != 0:
            raise RemoteCommandError(cmd, rc, err)
        return out, err

    @retried
    def exec_status(self, cmd: str, timeout: Optional[float] = 60) -> tuple[int, str, str]:
        """Run a command; return (exit status, stdout, stderr). Never raises on non-zero exit."""
        return self._run(cmd, timeout)

    def exec_once(self, cmd: str, timeout: Optional[float] = None) -> tuple[str, str]:
        """Like exec(), but never retried (for writes that must not happen twice)."""
        rc, out, err = self._run(cmd, timeout)
        if rc != 0:
            raise RemoteCommandError(cmd, rc, err)
        return out, err

    def open_stream(self, cmd: str) -> RemoteStream:
        """Start *cmd* on a pty-backed channel and return its output as a line stream."""
        try:
            self.ensure_connected()
            channel = self._ssh.get_transport().open_session()
            channel.get_pty()
            channel.exec_command(cmd)
        except (OSError, paramiko.SSHException) as exc:
            raise ChannelError(f"could not open remote stream on {self.target}: {exc}") from exc
        return RemoteStream(channel)

    def exec_interactive(self, cmd: str) -> int:
        """
        Run *cmd* through the system ssh client with a tty, attached to this
        terminal. Returns ssh's exit status.
        """
        argv = ["ssh", "-t", *ssh_option_args(), self.target, cmd]
        vlog(f"[SSH] interactive: {' '.join(argv)}")
        return subprocess.run(argv, check=False).returncode
