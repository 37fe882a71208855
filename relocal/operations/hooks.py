"""
Hook configuration for the remote agent

The remote agent calls relocal-hook.sh from two hooks: UserPromptSubmit asks
for a push before the agent starts working, Stop asks for a pull when it goes
idle. merge_hooks() injects those entries into .claude/settings.json without
touching anything the user (or other tooling) put there.

The document itself stays a plain dict so unknown keys survive a round trip;
HookSettings is the only code that knows where the hook lists live and how a
relocal-owned entry is recognized.
"""
import copy
import json
from typing import Optional

from .. import config as _cfg
from ..core.remote_cmds import HOOK_SCRIPT_NAME

# Substring that marks a hook entry as relocal-owned
RELAY_MARKER = HOOK_SCRIPT_NAME

# (event key, request the hook sends)
HOOK_EVENTS = (
    ("UserPromptSubmit", "push"),
    ("Stop", "pull"),
)


def hook_command(session_name: str, direction: str) -> str:
    return f"RELOCAL_SESSION={session_name} {_cfg.REMOTE_BASE}/.bin/{HOOK_SCRIPT_NAME} {direction}"


def relay_entry(session_name: str, direction: str) -> dict:
    """A matcher group holding the single relocal hook handler."""
    return {
        "hooks": [
            {
                "type": "command",
                "command": hook_command(session_name, direction),
            }
        ]
    }


def is_relay_entry(entry) -> bool:
    """True if any handler in the matcher group runs relocal-hook.sh."""
    if not isinstance(entry, dict):
        return False
    handlers = entry.get("hooks")
    if not isinstance(handlers, list):
        return False
    return any(
        isinstance(h, dict)
        and isinstance(h.get("command"), str)
        and RELAY_MARKER in h["command"]
        for h in handlers
    )


def upsert_relay_entry(entries: list, entry: dict):
    """Replace the first relocal entry in place, or append *entry* if there is none."""
    for i, existing in enumerate(entries):
        if is_relay_entry(existing):
            entries[i] = entry
            return
    entries.append(entry)


class HookSettings:
    """Typed view over an untyped settings.json document."""

    def __init__(self, document: Optional[dict] = None):
        self.document = document if isinstance(document, dict) else {}

    @classmethod
    def from_json(cls, text: Optional[str]) -> "HookSettings":
        """Absent, malformed or non-object JSON all start from an empty document."""
        if not text or not text.strip():
            return cls()
        try:
            return cls(json.loads(text))
        except ValueError:
            return cls()

    def _hooks(self) -> dict:
        hooks = self.document.get("hooks")
        if not isinstance(hooks, dict):
            hooks = self.document["hooks"] = {}
        return hooks

    def entries(self, event: str) -> list:
        """The entry list for *event*, created empty if missing or not a list."""
        hooks = self._hooks()
        entries = hooks.get(event)
        if not isinstance(entries, list):
            entries = hooks[event] = []
        return entries

    def upsert_relay(self, event: str, session_name: str, direction: str):
        upsert_relay_entry(self.entries(event), relay_entry(session_name, direction))

    def to_json(self) -> str:
        return json.dumps(self.document, indent=2, ensure_ascii=False)


def merge_hooks(existing: Optional[dict], session_name: str) -> dict:
    """
    Return a copy of *existing* with exactly one up-to-date relocal entry in
    each hook list. Merging a result again with the same name is a no-op.
    """
    settings = HookSettings(copy.deepcopy(existing) if isinstance(existing, dict) else None)
    for event, direction in HOOK_EVENTS:
        settings.upsert_relay(event, session_name, direction)
    return settings.document


def hook_script_content() -> str:
    """
    The relocal-hook.sh script installed on the remote.

    Writes its direction to the session's request FIFO, then blocks on the ack
    FIFO. `ok` exits 0; `error:<msg>` prints msg to stderr and exits 1 so the
    agent sees why the sync failed. Events are logged to
    ~/relocal/.logs/<session>-<direction>.log through fd 3, keeping stdout and
    stderr clean for the agent.
    """
    return r'''#!/bin/bash
set -euo pipefail

DIRECTION="${1:?Usage: relocal-hook.sh <push|pull>}"
FIFO_DIR="$HOME/relocal/.fifos"
LOG_DIR="$HOME/relocal/.logs"
REQUEST_FIFO="$FIFO_DIR/${RELOCAL_SESSION}-request"
ACK_FIFO="$FIFO_DIR/${RELOCAL_SESSION}-ack"

mkdir -p "$LOG_DIR"
exec 3>"$LOG_DIR/${RELOCAL_SESSION}-${DIRECTION}.log"

echo "[$(date -Iseconds)] hook start: direction=$DIRECTION session=$RELOCAL_SESSION" >&3

# blocks until the local relay reads it
echo "$DIRECTION" > "$REQUEST_FIFO"
echo "[$(date -Iseconds)] request sent, waiting for ack" >&3

# blocks until the local relay answers
ACK=$(cat "$ACK_FIFO")

if [ "$ACK" = "ok" ]; then
    echo "[$(date -Iseconds)] ack received: ok" >&3
    exec 3>&-
    exit 0
else
    MSG="${ACK#error:}"
    echo "[$(date -Iseconds)] ack received: error: $MSG" >&3
    exec 3>&-
    echo "$MSG" >&2
    exit 1
fi
'''
