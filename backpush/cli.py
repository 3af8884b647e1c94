#!/usr/bin/env python3
"""
backpush: one-way local → SFTP sync with remote backups
==========================================================

Subcommands:
  init      Create a .backpush config file in the current directory.
  sync      Push the local tree to the remote using the nearest .backpush config.
            Files that would be overwritten or deleted on the remote are first
            copied to <backup_base>/<YYYYmmdd_HHMMSS>/.

Run 'backpush <subcommand> --help' for more details.
"""
import sys
import argparse
from pathlib import Path


# ── init ─────────────────────────────────────────────────────────────────────

def _yq(value: str) -> str:
    """Wrap a string in YAML single quotes, escaping embedded single quotes."""
    return "'" + value.replace("'", "''") + "'"


def _prompt(label: str, default):
    """Ask on a terminal, return *default* otherwise or on empty input."""
    if not sys.stdin.isatty():
        return default
    val = input(f"{label} [{default}]: ").strip()
    return val or default


def cmd_init(args):
    """Create a .backpush profile file in the current directory."""
    from backpush import config as _cfg

    target = Path.cwd() / _cfg.PROJECT_FILE

    if target.exists() and not args.force:
        print(f"error: {_cfg.PROJECT_FILE} already exists in {Path.cwd()}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        sys.exit(1)

    global_cfg = _cfg.load_global_config()
    g_defaults = global_cfg.get("defaults", {})

    local_root = str(Path(args.local or Path.cwd()).expanduser())
    base_remote = args.base_remote or g_defaults.get("base_remote", "")

    remote_root = args.remote
    if not remote_root:
        remote_root = _prompt("Remote path (relative to base_remote)", Path.cwd().name)

    backup_base = args.backup or g_defaults.get("backup_base") or str(_cfg.BACKUP_BASE)
    if not args.backup:
        backup_base = _prompt("Remote backup base", backup_base)

    server = args.server or g_defaults.get("server", "example.com")
    if not args.server:
        server = _prompt("Server hostname", server)

    user = args.user or g_defaults.get("user", "root")
    if not args.user:
        user = _prompt("SSH user", user)

    port = args.port or int(g_defaults.get("port", 22))
    if not args.port:
        try:
            port = int(_prompt("SSH port", port))
        except ValueError:
            print("error: port must be a number.", file=sys.stderr)
            sys.exit(1)

    # Always use forward slashes in paths to avoid YAML backslash escape issues
    local_root_yaml = local_root.replace("\\", "/")

    lines = [
        "# .backpush — backpush project configuration",
        "#",
        "# profiles: list of sync profiles for this project.",
        "# remote_root and backup_base are relative to defaults.base_remote",
        "# when they do not start with '/'.",
        "profiles:",
        f"  - name: {args.profile or 'default'}",
        f"    server: {_yq(server)}",
        f"    port: {port}",
        f"    user: {_yq(user)}",
        f"    local_root: {_yq(local_root_yaml)}",
        f"    remote_root: {_yq(remote_root)}",
        f"    backup_base: {_yq(backup_base)}",
        f"    mtime_tolerance: {_cfg.MTIME_TOLERANCE}",
    ]

    if base_remote:
        lines += [
            "defaults:",
            f"  base_remote: {_yq(base_remote)}",
        ]

    content = "\n".join(lines) + "\n"

    if args.dry_run:
        print(f"[dry-run] Would write {target}:")
        print(content)
        return

    target.write_text(content, encoding="utf-8")
    print(f"Created {target}")
    if args.verbose:
        print(content)


# ── sync ─────────────────────────────────────────────────────────────────────

def cmd_sync(args):
    """Run a sync using the nearest .backpush config file."""
    import backpush.config as _cfg
    from backpush.core.sync_engine import run_sync
    from backpush.errors import SyncError

    project_file = _cfg.find_project_file()
    if project_file is None:
        print(f"error: no {_cfg.PROJECT_FILE} file found in this directory or any parent.",
              file=sys.stderr)
        print("Run 'backpush init' to create one.", file=sys.stderr)
        sys.exit(1)

    if args.verbose:
        print(f"[config] Using {project_file}")

    data = _cfg.load_project_file(project_file)
    profile = _cfg.get_profile(data, args.profile or "default")
    _cfg.apply_profile(profile)

    try:
        run_sync(
            dry_run=args.dry_run,
            verbose=args.verbose,
            progress=not args.no_progress,
            strict_remote_scan=True if args.strict_remote_scan else None,
            tolerance=args.tolerance,
        )
    except SyncError as exc:
        print(f"error: sync aborted: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\ninterrupted.", file=sys.stderr)
        sys.exit(130)


# ── main ──────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="backpush",
        description="One-way local → SFTP sync that backs up what it replaces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── init ──────────────────────────────────────────────────────────────────
    init_p = subparsers.add_parser(
        "init",
        help="Create a .backpush config file in the current directory",
        description="Create a .backpush YAML config file for this project.",
    )
    init_p.add_argument("--local", metavar="PATH",
                        help="Local root directory (default: current directory)")
    init_p.add_argument("--remote", metavar="PATH",
                        help="Remote root path (relative to base_remote or absolute)")
    init_p.add_argument("--backup", metavar="PATH",
                        help="Remote backup base (relative to base_remote or absolute)")
    init_p.add_argument("--server", metavar="HOST",
                        help="Remote server hostname or IP")
    init_p.add_argument("--user", metavar="NAME",
                        help="SSH username (default: root)")
    init_p.add_argument("--port", type=int, metavar="N",
                        help="SSH port (default: 22)")
    init_p.add_argument("--base-remote", metavar="PATH",
                        help="Base remote path prepended to relative remote paths")
    init_p.add_argument("--profile", metavar="NAME", default="default",
                        help="Profile name to create (default: default)")
    init_p.add_argument("--force", action="store_true",
                        help="Overwrite existing .backpush")
    init_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Preview without writing files")
    init_p.add_argument("-v", "--verbose", action="store_true",
                        help="Show extra output")

    # ── sync ──────────────────────────────────────────────────────────────────
    sync_p = subparsers.add_parser(
        "sync",
        help="Push local changes to the remote using the nearest .backpush config",
        description="Make the remote tree match the local one, backing up "
                    "every remote file that gets overwritten or deleted.",
    )
    sync_p.add_argument("--profile", metavar="NAME", default="default",
                        help="Profile to use (default: default)")
    sync_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Classify every file but change nothing")
    sync_p.add_argument("-v", "--verbose", action="store_true",
                        help="Show every file, not just actions")
    sync_p.add_argument("--no-progress", action="store_true",
                        help="Do not draw a progress bar")
    sync_p.add_argument("--strict-remote-scan", action="store_true",
                        help="Abort when any remote directory cannot be listed")
    sync_p.add_argument("--tolerance", type=float, default=None, metavar="SECONDS",
                        help="mtime difference still treated as equal (default: 2)")
    return parser


def main(argv=None):
    """CLI entry point for backpush"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "init":
        cmd_init(args)
    elif args.command == "sync":
        if args.tolerance is not None and args.tolerance < 0:
            parser.error("--tolerance must not be negative")
        cmd_sync(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
