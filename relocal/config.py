"""
Configuration constants for relocal
"""
import os
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError, ConfigNotFoundError

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS  ── overridden by YAML config or apply_profile()
# ══════════════════════════════════════════════════════════════════════════════

SSH_HOST = "example.com"
SSH_PORT = 22
SSH_USER: Optional[str] = None  # None lets ssh/paramiko pick the local user
# Path to your private key, or None to use ssh-agent / ~/.ssh/id_*
SSH_KEY_PATH: Optional[str] = None
SSH_PASSWORD: Optional[str] = None  # only if you use password auth

LOCAL_ROOT = Path(".")

# rsync exclusions, in declared order
EXCLUDE: list[str] = []
# .claude/ subdirectories mirrored in both directions (everything else in .claude/ stays put)
CLAUDE_SYNC_DIRS: list[str] = []
# extra packages for `relocal remote install`
APT_PACKAGES: list[str] = []
# run `git fsck` on the remote copy before every pull
GIT_FSCK = True

# Retry settings
RETRY_MAX = 5
RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt

# Project marker. Its directory is the project root, and a pull refuses to run
# into any directory that does not contain it.
PROJECT_MARKER = "relocal.yaml"

# Remote layout
REMOTE_BASE = "~/relocal"
SCOPED_SUBTREE = ".claude"


def ssh_target() -> str:
    """Return the `user@host` (or bare `host`) descriptor used by ssh and rsync."""
    return f"{SSH_USER}@{SSH_HOST}" if SSH_USER else SSH_HOST


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/relocal/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for relocal."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "relocal"
    return Path.home() / ".config" / "relocal"


def load_global_config() -> dict:
    """Load global config from the relocal config directory. Unreadable files are ignored."""
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


# ══════════════════════════════════════════════════════════════════════════════
#  PROJECT CONFIG FILE  ── relocal.yaml (searched upward)
# ══════════════════════════════════════════════════════════════════════════════

def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a relocal.yaml file.
    Returns the Path if found, or None if no relocal.yaml exists in any parent.
    The nearest one wins.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / PROJECT_MARKER
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config_file(path: Path) -> dict:
    """Parse a relocal.yaml file and return its contents as a dict."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"failed to parse {path}: top level must be a mapping")
    return data


def get_profile(data: dict, profile_name: str = "default") -> dict:
    """
    Extract a named profile from a relocal.yaml or config.yaml data dict.
    Falls back to the first profile if the named one is not found.
    Returns a flat profile dict merged with top-level defaults.
    """
    defaults = data.get("defaults", {}) or {}
    profiles = data.get("profiles", []) or []
    if not isinstance(defaults, dict):
        raise ConfigError("'defaults' must be a mapping")
    if not isinstance(profiles, list) or not all(isinstance(p, dict) for p in profiles):
        raise ConfigError("'profiles' must be a list of mappings")
    if not profiles:
        return defaults.copy()
    profile = next((p for p in profiles if p.get("name") == profile_name), None)
    if profile is None:
        profile = profiles[0]
    merged = defaults.copy()
    merged.update(profile)
    return merged


def load_profile(config_path: Path, profile_name: str = "default") -> dict:
    """Global defaults, then the project file's defaults and profile on top."""
    g_defaults = load_global_config().get("defaults", {}) or {}
    profile = dict(g_defaults) if isinstance(g_defaults, dict) else {}
    profile.update(get_profile(load_config_file(config_path), profile_name))
    return profile


# ══════════════════════════════════════════════════════════════════════════════
#  APPLY PROFILE  ── mutates module-level variables
# ══════════════════════════════════════════════════════════════════════════════

def _str_list(profile: dict, key: str) -> list[str]:
    value = profile.get(key) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list of strings")
    return [str(v) for v in value]


def apply_profile(profile: dict):
    """
    Apply a profile dict to the module-level config variables.
    Supports keys: remote (user@host[:port] shorthand), server, port, user,
                   ssh_key, ssh_password, exclude,
                   claude_sync_dirs, apt_packages, git_fsck.
    """
    global SSH_HOST, SSH_PORT, SSH_USER, SSH_KEY_PATH, SSH_PASSWORD
    global EXCLUDE, CLAUDE_SYNC_DIRS, APT_PACKAGES, GIT_FSCK

    if "remote" in profile:
        remote = str(profile["remote"])
        if "@" in remote:
            SSH_USER, remote = remote.split("@", 1)
        if ":" in remote:
            remote, port = remote.rsplit(":", 1)
            try:
                SSH_PORT = int(port)
            except ValueError:
                raise ConfigError(f"invalid port in remote {profile['remote']!r}")
        SSH_HOST = remote
    if "server" in profile:
        SSH_HOST = str(profile["server"])
    if "port" in profile:
        try:
            SSH_PORT = int(profile["port"])
        except (TypeError, ValueError):
            raise ConfigError(f"invalid port {profile['port']!r}")
    if "user" in profile:
        SSH_USER = str(profile["user"]) if profile["user"] else None
    elif "username" in profile:
        SSH_USER = str(profile["username"])
    if "ssh_key" in profile:
        SSH_KEY_PATH = str(Path(profile["ssh_key"]).expanduser()) if profile["ssh_key"] else None
    if "ssh_password" in profile:
        SSH_PASSWORD = str(profile["ssh_password"]) if profile["ssh_password"] else None
    if "exclude" in profile:
        EXCLUDE = _str_list(profile, "exclude")
    if "claude_sync_dirs" in profile:
        CLAUDE_SYNC_DIRS = _str_list(profile, "claude_sync_dirs")
    if "apt_packages" in profile:
        APT_PACKAGES = _str_list(profile, "apt_packages")
    if "git_fsck" in profile:
        GIT_FSCK = bool(profile["git_fsck"])


def load_project(profile_name: str = "default", start: Optional[Path] = None) -> Path:
    """
    Find the nearest relocal.yaml, apply its profile and return the config
    file path. Its directory becomes LOCAL_ROOT.
    """
    global LOCAL_ROOT

    path = find_config(start)
    if path is None:
        raise ConfigNotFoundError((start or Path.cwd()).resolve())
    apply_profile(load_profile(path, profile_name))
    LOCAL_ROOT = path.parent
    return path
