"""CLI entry point for Storage Manager.

Usage:
    python -m storage_manager init
    python -m storage_manager save [--bye]
    python -m storage_manager fetch NAME
    python -m storage_manager status [--json]

Commands:
    init     Restore or seed every folder locally and link it into HOME
    save     Persist every local folder to remote storage
    fetch    Restore a single folder from remote storage
    status   Show the state of every managed folder

Exit status: 0 if every folder succeeded or was skipped, 1 if any folder
failed, 2 if the run could not start.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from storage_manager import __version__
from storage_manager.config import ConfigurationError, StorageConfig, SyncVariant
from storage_manager.orchestrator import TaskOrchestrator, ToolUnavailableError
from storage_manager.results import FolderOutcome, RunReport
from storage_manager.session import LockAndLogoutHooks
from storage_manager.transport import get_mirror_copy
from storage_manager.utils.logging import configure_logging

logger = logging.getLogger("storage_manager")

EXIT_OK = 0
EXIT_FOLDER_FAILED = 1
EXIT_STARTUP_ERROR = 2

STATUS_MARKS = {
    FolderOutcome.SUCCESS: "ok",
    FolderOutcome.SKIPPED: "skipped",
    FolderOutcome.FAILED: "FAILED",
}


def load_config(args: argparse.Namespace) -> StorageConfig:
    """Build the run configuration from the environment and CLI options.

    Raises:
        ConfigurationError: If the user, home or config file are unusable.
    """
    if args.config:
        config = StorageConfig.load(Path(args.config))
        if args.variant and SyncVariant(args.variant) != config.variant:
            raise ConfigurationError("--variant conflicts with the variant in the config file")
    else:
        variant = SyncVariant(args.variant) if args.variant else SyncVariant.ARCHIVE
        config = StorageConfig.from_environment(variant=variant)

    if args.verify:
        config.verify_integrity = True
    return config


def print_report(report: RunReport) -> None:
    """Print one line per folder and a summary."""
    for result in report.results:
        mark = STATUS_MARKS[result.outcome]
        detail = f" ({result.message})" if result.message and not result.success else ""
        print(f"  [{mark:>7}] {result.folder}{detail}")
    print(
        f"{report.operation.value}: {len(report.succeeded)} ok, "
        f"{len(report.skipped)} skipped, {len(report.failed)} failed"
    )


def cmd_init(args: argparse.Namespace, config: StorageConfig) -> int:
    """Handle the 'init' command."""
    orchestrator = TaskOrchestrator(config)
    report = orchestrator.init()
    print_report(report)
    return report.exit_code


def cmd_save(args: argparse.Namespace, config: StorageConfig) -> int:
    """Handle the 'save' command, optionally locking and logging out."""
    hooks = LockAndLogoutHooks() if args.bye else None
    orchestrator = TaskOrchestrator(config, hooks=hooks)
    report = orchestrator.save()
    print_report(report)
    return report.exit_code


def cmd_fetch(args: argparse.Namespace, config: StorageConfig) -> int:
    """Handle the 'fetch' command."""
    mirror = get_mirror_copy(show_progress=args.progress)
    orchestrator = TaskOrchestrator(config, mirror=mirror)
    report = orchestrator.fetch(args.name)
    print_report(report)
    return report.exit_code


def cmd_status(args: argparse.Namespace, config: StorageConfig) -> int:
    """Handle the 'status' command."""
    orchestrator = TaskOrchestrator(config)
    folders = orchestrator.status()

    if args.json:
        print(json.dumps({"config": config.to_dict(), "folders": folders}, indent=2))
        return EXIT_OK

    print(f"Variant: {config.variant.value}")
    print(f"Local:   {config.local_root}")
    print(f"Remote:  {config.remote_root}")
    print()
    for info in folders:
        print(f"  [{info['folder']}]")
        print(f"    Home:   {info['home']}{' (linked)' if info['linked'] else ''}")
        print(f"    Local:  {info['local']}")
        print(f"    Remote: {'present' if info['remote'] else 'absent'}")
        if info["backup"]:
            print("    Backup: present")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="storage_manager",
        description="Keep home folders on fast local storage, saved to remote storage",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug output")
    parser.add_argument("--json-logs", action="store_true", help="Log as JSON lines")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument(
        "--variant", choices=[v.value for v in SyncVariant],
        help="Remote storage form (default: archive)",
    )
    parser.add_argument("--verify", action="store_true", help="Hash-verify mirror copies")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init", help="Restore or seed folders and link them into HOME")

    save_parser = subparsers.add_parser("save", help="Persist local folders to remote storage")
    save_parser.add_argument(
        "-b", "--bye", action="store_true",
        help="Lock the screen during the save and log out afterwards",
    )

    fetch_parser = subparsers.add_parser("fetch", help="Restore a single folder from remote storage")
    fetch_parser.add_argument("name", help="Folder name under the remote root")
    fetch_parser.add_argument("--no-progress", dest="progress", action="store_false",
                              help="Do not show rsync progress")

    status_parser = subparsers.add_parser("status", help="Show the state of managed folders")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_output=args.json_logs,
        log_file=Path(args.log_file) if args.log_file else None,
    )

    commands = {
        "init": cmd_init,
        "save": cmd_save,
        "fetch": cmd_fetch,
        "status": cmd_status,
    }

    try:
        config = load_config(args)
        return commands[args.command](args, config)
    except (ConfigurationError, ToolUnavailableError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_STARTUP_ERROR


if __name__ == "__main__":
    sys.exit(main())
