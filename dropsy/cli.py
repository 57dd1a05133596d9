#!/usr/bin/env python3
"""
dropsy  —  one-way directory sync over SSH
==========================================

Subcommands:
  watch     Push local changes under one or more directories to a remote host,
            once or every --interval seconds.
  status    Show the stored state for a target, or list every known target.

Targets are written user@host:directory.

Run 'dropsy <subcommand> --help' for more details.
"""
import argparse
import getpass
import os
import sys

from . import config as _cfg
from .core.monitor import Monitor
from .core.ssh_manager import SSHManager
from .errors import AuthenticationError, ConfigError, DropsyError, EXIT_FATAL
from .operations.transfer import DryRunTransport, SFTPTransport
from .state.state_manager import list_state_files, load_state, state_file_for
from .utils.logging import log, set_verbose, vtrace, warn


def _load_profile(args) -> dict:
    data = _cfg.load_global_config()
    return _cfg.get_profile(data, args.profile or "default")


def _resolve_password(config):
    """Profile → $DROPSY_PASSWORD → interactive prompt."""
    if config.password or config.dry_run:
        return
    env = os.environ.get(_cfg.PASSWORD_ENV)
    if env:
        config.password = env
        return
    if config.ssh_key:
        return
    if not sys.stdin.isatty():
        raise ConfigError(f"no password: set {_cfg.PASSWORD_ENV} or use --key")
    config.password = getpass.getpass(f"{config.username}@{config.hostname}'s password: ")


# ── watch ─────────────────────────────────────────────────────────────────────

def cmd_watch(args) -> int:
    """Build the monitor, authenticate and run the poll loop."""
    config = _cfg.build_config(
        args.targets,
        _load_profile(args),
        port=args.port,
        ssh_key=args.key,
        parallelism=args.jobs,
        poll_interval=args.interval,
        remote_root=args.remote_root,
        dry_run=args.dry_run,
        force=args.force,
    )

    print(f"\n{'=' * 64}")
    for d in config.directories:
        print(f"  Watch  {d}")
    print(f"    →    {config.username}@{config.hostname}:{config.port}")
    print(f"{'=' * 64}")
    if config.dry_run:
        print("  *** DRY-RUN — no files will be changed ***")
    print()

    monitor = Monitor()
    try:
        monitor.init(config, install_signals=False)
        if config.dry_run:
            monitor.transport = DryRunTransport()
        else:
            _resolve_password(config)
            mgr = SSHManager(config.hostname, config.username, config.password,
                             port=config.port, key_filename=config.ssh_key)
            monitor.transport = SFTPTransport(mgr, config.directories, config.remote_root)
            if not monitor.transport.authenticate():
                raise AuthenticationError(
                    f"authentication failed for {config.username}@{config.hostname}"
                )
        monitor.install_signal_handlers()
        cycles = monitor.monitor()
        log(f"[watch] stopped after {cycles} cycle(s)")
        return 0
    except KeyboardInterrupt:
        print()
        warn("Interrupted by user.")
        return 0
    finally:
        monitor.shutdown()


# ── status ────────────────────────────────────────────────────────────────────

def cmd_status(args) -> int:
    """Show the stored snapshot for a target set, or list all known targets."""
    if not args.targets:
        known = list_state_files()
        if not known:
            print("No state files found.")
            return 0
        for path, (user, host, directory) in known:
            snapshot = load_state(path) or {}
            print(f"{user}@{host}:{directory}")
            print(f"    state   : {path}")
            print(f"    tracked : {len(snapshot)} file(s)")
        return 0

    config = _cfg.build_config(args.targets)
    state_file = state_file_for(config.username, config.hostname,
                                os.pathsep.join(config.directories))
    snapshot = load_state(state_file)
    print(f"\nTarget  : {config.username}@{config.hostname}:"
          f"{os.pathsep.join(config.directories)}")
    print(f"State   : {state_file}")
    if snapshot is None:
        print("\nNo state yet — next watch will transfer every file.")
        return 0
    print(f"Tracked : {len(snapshot)} file(s)")
    if args.verbose:
        for path in sorted(snapshot):
            rec = snapshot[path]
            print(f"  {rec.mtime:>12}  {rec.size:>10}  {path}")
    return 0


# ── main ──────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=_cfg.PROGRAM_NAME,
        description="One-way directory sync over SSH",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── watch ─────────────────────────────────────────────────────────────────
    watch_p = subparsers.add_parser(
        "watch",
        help="Push local changes to the remote host",
        description="Scan the directories and push additions, modifications "
                    "and deletions to the remote host.",
    )
    watch_p.add_argument("targets", nargs="+", metavar="TARGET",
                         help="user@host:directory (all targets share user and host)")
    watch_p.add_argument("-i", "--interval", type=int, default=None, metavar="N",
                         help="Seconds between scans; 0 runs once (default: 0)")
    watch_p.add_argument("-j", "--jobs", type=int, default=None, metavar="N",
                         help="Parallel transfer jobs (default: CPU count)")
    watch_p.add_argument("-p", "--port", type=int, default=None, metavar="N",
                         help="SSH port (default: 22)")
    watch_p.add_argument("--key", metavar="PATH",
                         help="Private key file for SSH authentication")
    watch_p.add_argument("--remote-root", metavar="PATH",
                         help="Remote base directory (default: login directory)")
    watch_p.add_argument("--profile", metavar="NAME", default="default",
                         help="Profile from the global config (default: default)")
    watch_p.add_argument("-f", "--force", action="store_true",
                         help="Ignore stored state and transfer every file")
    watch_p.add_argument("-n", "--dry-run", action="store_true",
                         help="Preview without transferring or saving state")
    watch_p.add_argument("-v", "--verbose", action="store_true",
                         help="Show every file operation")

    # ── status ────────────────────────────────────────────────────────────────
    status_p = subparsers.add_parser(
        "status",
        help="Show stored state",
        description="Show the stored state for a target, or list every known target.",
    )
    status_p.add_argument("targets", nargs="*", metavar="TARGET",
                          help="user@host:directory (omit to list all)")
    status_p.add_argument("-v", "--verbose", action="store_true",
                          help="List every tracked file")

    return parser


def main(argv=None):
    """CLI entry point for dropsy"""
    parser = build_parser()
    args = parser.parse_args(argv)
    set_verbose(getattr(args, "verbose", False))

    if args.command == "watch":
        handler = cmd_watch
    elif args.command == "status":
        handler = cmd_status
    else:
        parser.print_help()
        sys.exit(1)

    try:
        rc = handler(args)
    except DropsyError as exc:
        warn(f"FATAL: {exc}")
        vtrace()
        sys.exit(exc.exit_code)
    except OSError as exc:
        warn(f"FATAL: {exc}")
        sys.exit(EXIT_FATAL)
    sys.exit(rc)


if __name__ == "__main__":
    main()
