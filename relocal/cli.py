#!/usr/bin/env python3
"""
relocal: run Claude Code on a remote host against a local project
====================================================================

Subcommands:
  init           Create a relocal.yaml config file in the current directory.
  remote         Prepare (install) or wipe (nuke) the remote host.
  claude         Start an interactive Claude session on the remote, kept in sync.
  sync           Push or pull the project manually.
  status         Show what the remote knows about a session.
  list           List sessions on the remote.
  destroy        Remove a session's remote working copy and FIFOs.

Arguments after `--` are forwarded to claude:
  relocal claude my-session -- --model opus

Run 'relocal <subcommand> --help' for more details.
"""
import sys
import argparse
from pathlib import Path

from .errors import RelocalError


def _load(args):
    """Apply the nearest relocal.yaml and return the session named on the command line (or the default one)."""
    from relocal import config as _cfg
    from relocal.session import Session
    from relocal.utils.logging import set_verbose, vlog

    set_verbose(args.verbose)
    config_path = _cfg.load_project(args.profile or "default")
    vlog(f"[config] Using {config_path}")
    return Session.resolve(getattr(args, "session", None), _cfg.LOCAL_ROOT)


# ── init ─────────────────────────────────────────────────────────────────────

def _split_list(value) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def _yq(value: str) -> str:
    """Wrap a string in YAML single quotes, escaping embedded single quotes."""
    return "'" + value.replace("'", "''") + "'"


def render_config(remote: str, exclude=(), claude_sync_dirs=(), apt_packages=(),
                  profile_name: str = "default") -> str:
    lines = [
        "# relocal.yaml: relocal project configuration",
        "#",
        "# The directory holding this file is the project root: it is what gets",
        "# pushed to the remote, and the only place a pull will write into.",
        "profiles:",
        f"  - name: {profile_name}",
        f"    remote: {_yq(remote)}",
    ]
    for key, values in (("exclude", exclude),
                        ("claude_sync_dirs", claude_sync_dirs),
                        ("apt_packages", apt_packages)):
        if values:
            lines.append(f"    {key}:")
            lines += [f"      - {_yq(v)}" for v in values]
    return "\n".join(lines) + "\n"


def cmd_init(args):
    """Create a relocal.yaml profile file in the current directory."""
    from relocal import config as _cfg

    target = Path.cwd() / _cfg.PROJECT_MARKER

    if target.exists() and not args.force:
        print(f"error: {_cfg.PROJECT_MARKER} already exists in {Path.cwd()}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        sys.exit(1)

    g_defaults = _cfg.load_global_config().get("defaults", {}) or {}

    remote = args.remote or g_defaults.get("remote", "")
    if not args.remote and sys.stdin.isatty():
        prompt_hint = f" [{remote}]" if remote else ""
        val = input(f"Remote (user@host){prompt_hint}: ").strip()
        if val:
            remote = val
    if not remote:
        print("error: remote is required (user@host).", file=sys.stderr)
        sys.exit(1)

    exclude = _split_list(args.exclude)
    if args.exclude is None and sys.stdin.isatty():
        exclude = _split_list(input("Exclude patterns (comma-separated, or empty): "))

    apt_packages = _split_list(args.apt_packages)
    if args.apt_packages is None and sys.stdin.isatty():
        apt_packages = _split_list(input("APT packages (comma-separated, or empty): "))

    content = render_config(
        remote,
        exclude=exclude,
        claude_sync_dirs=_split_list(args.claude_sync_dirs),
        apt_packages=apt_packages,
        profile_name=args.profile or "default",
    )

    if args.dry_run:
        print(f"[dry-run] Would write {target}:")
        print(content)
        return

    target.write_text(content, encoding="utf-8")
    print(f"Created {target}")
    if args.verbose:
        print(content)


# ── remote ───────────────────────────────────────────────────────────────────

def cmd_remote(args):
    """Dispatch remote sub-subcommands."""
    from relocal import config as _cfg
    from relocal.core.ssh_manager import SSHManager
    from relocal.remote_cmd import install, nuke
    from relocal.utils.logging import set_verbose, vlog

    set_verbose(args.verbose)
    config_path = _cfg.load_project(args.profile or "default")
    vlog(f"[config] Using {config_path}")

    with SSHManager() as ssh:
        if args.remote_sub == "install":
            install(ssh)
        else:
            nuke(ssh, confirm=not args.yes)


# ── claude ───────────────────────────────────────────────────────────────────

def cmd_claude(args):
    """Start an interactive, synced Claude session on the remote."""
    from relocal.claude_cmd import run_session
    from relocal.core.ssh_manager import SSHManager

    session = _load(args)
    with SSHManager() as ssh:
        clean = run_session(ssh, session, args.claude_args, verbose=args.verbose)
    if not clean:
        sys.exit(1)


# ── sync ─────────────────────────────────────────────────────────────────────

def cmd_sync(args):
    """Push or pull once, outside of a session."""
    from relocal.core.ssh_manager import SSHManager
    from relocal.operations.sync import sync_pull, sync_push

    session = _load(args)
    with SSHManager() as ssh:
        if args.direction == "push":
            sync_push(ssh, session, verbose=args.verbose)
        else:
            sync_pull(ssh, session, verbose=args.verbose)


# ── status / list / destroy ──────────────────────────────────────────────────

def cmd_status(args):
    from relocal.core.ssh_manager import SSHManager
    from relocal.remote_cmd import status

    session = _load(args)
    with SSHManager() as ssh:
        status(ssh, session)


def cmd_list(args):
    from relocal import config as _cfg
    from relocal.core.ssh_manager import SSHManager
    from relocal.remote_cmd import print_sessions
    from relocal.utils.logging import set_verbose

    set_verbose(args.verbose)
    _cfg.load_project(args.profile or "default")
    with SSHManager() as ssh:
        print_sessions(ssh)


def cmd_destroy(args):
    from relocal.core.ssh_manager import SSHManager
    from relocal.remote_cmd import destroy

    session = _load(args)
    with SSHManager() as ssh:
        destroy(ssh, session.name, confirm=not args.yes)


# ── main ──────────────────────────────────────────────────────────────────────

def _add_common(p):
    p.add_argument("--profile", metavar="NAME", default="default",
                   help="Profile to use (default: default)")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Show extra output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relocal",
        description="Run Claude Code on a remote host against a local project",
        epilog="Arguments after `--` are forwarded to claude (claude subcommand only).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── init ──────────────────────────────────────────────────────────────────
    init_p = subparsers.add_parser(
        "init",
        help="Create a relocal.yaml config file in the current directory",
        description="Create a relocal.yaml config file for this project.",
    )
    init_p.add_argument("--remote", metavar="USER@HOST",
                        help="Remote host, optionally user@host:port")
    init_p.add_argument("--exclude", metavar="PATTERNS",
                        help="Comma-separated rsync exclude patterns")
    init_p.add_argument("--claude-sync-dirs", metavar="DIRS",
                        help="Comma-separated .claude/ subdirectories to sync")
    init_p.add_argument("--apt-packages", metavar="PKGS",
                        help="Comma-separated extra APT packages for `remote install`")
    init_p.add_argument("--force", action="store_true",
                        help="Overwrite existing relocal.yaml")
    init_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Preview without writing files")
    _add_common(init_p)

    # ── remote ────────────────────────────────────────────────────────────────
    remote_p = subparsers.add_parser(
        "remote",
        help="Prepare or wipe the remote host",
        description="Install relocal's remote side, or remove it entirely.",
    )
    remote_sub = remote_p.add_subparsers(dest="remote_sub", metavar="ACTION")
    install_p = remote_sub.add_parser(
        "install",
        help="Install packages, Claude Code and the hook script on the remote",
    )
    _add_common(install_p)
    nuke_p = remote_sub.add_parser("nuke", help="Delete ~/relocal on the remote")
    nuke_p.add_argument("-y", "--yes", action="store_true",
                        help="Do not ask for confirmation")
    _add_common(nuke_p)

    # ── claude ────────────────────────────────────────────────────────────────
    claude_p = subparsers.add_parser(
        "claude",
        help="Start an interactive Claude session on the remote",
        description="Push the project, start claude on the remote and keep both sides in sync.",
    )
    claude_p.add_argument("session", nargs="?", metavar="SESSION",
                          help="Session name (default: project directory name)")
    _add_common(claude_p)

    # ── sync ──────────────────────────────────────────────────────────────────
    sync_p = subparsers.add_parser(
        "sync",
        help="Push or pull the project once",
        description="Mirror the project to (push) or from (pull) the remote.",
    )
    sync_p.add_argument("direction", choices=["push", "pull"],
                        help="push: local → remote, pull: remote → local")
    sync_p.add_argument("session", nargs="?", metavar="SESSION",
                        help="Session name (default: project directory name)")
    _add_common(sync_p)

    # ── status / list / destroy ───────────────────────────────────────────────
    status_p = subparsers.add_parser("status", help="Show remote status of a session")
    status_p.add_argument("session", nargs="?", metavar="SESSION",
                          help="Session name (default: project directory name)")
    _add_common(status_p)

    list_p = subparsers.add_parser("list", help="List sessions on the remote")
    _add_common(list_p)

    destroy_p = subparsers.add_parser("destroy", help="Remove a session from the remote")
    destroy_p.add_argument("session", nargs="?", metavar="SESSION",
                           help="Session name (default: project directory name)")
    destroy_p.add_argument("-y", "--yes", action="store_true",
                           help="Do not ask for confirmation")
    _add_common(destroy_p)

    return parser


def main(argv=None):
    """CLI entry point for relocal"""
    argv = list(sys.argv[1:] if argv is None else argv)

    # Everything after the first `--` belongs to claude, untouched by argparse
    claude_args: list[str] = []
    if "--" in argv:
        idx = argv.index("--")
        argv, claude_args = argv[:idx], argv[idx + 1:]

    parser = build_parser()
    args = parser.parse_args(argv)
    args.claude_args = claude_args
    if claude_args and args.command != "claude":
        parser.error("arguments after `--` are only accepted by `relocal claude`")

    handlers = {
        "init": cmd_init,
        "remote": cmd_remote,
        "claude": cmd_claude,
        "sync": cmd_sync,
        "status": cmd_status,
        "list": cmd_list,
        "destroy": cmd_destroy,
    }
    handler = handlers.get(args.command)
    if handler is None or (args.command == "remote" and not args.remote_sub):
        parser.print_help()
        sys.exit(1)

    try:
        handler(args)
    except RelocalError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
