"""Command-line entry point for the legacy store migration."""

import argparse
import logging
import sys
from typing import List, Optional

from .config import MigrationConfig
from .errors import MigrationError
from .orchestrator import MigrationOrchestrator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Migrate users and leads from the legacy JSON store into MongoDB"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migration
    run_parser = subparsers.add_parser("run", help="Run the migration")
    _add_file_arguments(run_parser)
    run_parser.add_argument("--report-dir", help="Directory for the JSON run report")
    run_parser.add_argument("--database", help="MongoDB database name (overrides the URI)")
    run_parser.add_argument(
        "--tie-break",
        choices=["strict", "first"],
        help="How to resolve an assignee name shared by several users",
    )
    run_parser.add_argument("--dry-run", action="store_true", help="Simulate without writing to MongoDB")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Backup only
    backup_parser = subparsers.add_parser("backup", help="Back up the legacy files only")
    _add_file_arguments(backup_parser)
    backup_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    return parser


def _add_file_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--users-file", help="Path to the legacy users.json")
    parser.add_argument("--leads-file", help="Path to the legacy leads.json")
    parser.add_argument("--backup-dir", help="Directory receiving the backup copies")


def apply_overrides(config: MigrationConfig, args: argparse.Namespace) -> MigrationConfig:
    """Apply command-line flags on top of the environment configuration."""
    if getattr(args, "users_file", None):
        config.users_file = args.users_file
    if getattr(args, "leads_file", None):
        config.leads_file = args.leads_file
    if getattr(args, "backup_dir", None):
        config.backup_dir = args.backup_dir
    if getattr(args, "report_dir", None):
        config.report_dir = args.report_dir
    if getattr(args, "database", None):
        config.database = args.database
    if getattr(args, "tie_break", None):
        config.assignment_tie_break = args.tie_break
    if getattr(args, "dry_run", False):
        config.dry_run = True
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.command == "run":
        return run_migration(args)
    elif args.command == "backup":
        return run_backup(args)

    parser.print_help()
    return EXIT_FATAL


def run_migration(args: argparse.Namespace) -> int:
    """Run the full migration."""
    try:
        config = apply_overrides(MigrationConfig.from_env(), args)
        orchestrator = MigrationOrchestrator(config)
        report = orchestrator.run()
    except MigrationError as e:
        logger.error(f"Fatal: {e}")
        return EXIT_FATAL

    print()
    print(report.format_summary())
    print(f"Status: {report.status.value}")
    if report.dry_run:
        print("Dry run: nothing was written to MongoDB")
    if report.admin_created:
        print(f"Default admin created: {config.default_admin_email}")
        print("PLEASE CHANGE THIS PASSWORD IMMEDIATELY!")
    if report.duration_seconds is not None:
        print(f"Duration: {report.duration_seconds:.2f} seconds")

    return EXIT_OK


def run_backup(args: argparse.Namespace) -> int:
    """Back up the legacy files without connecting to MongoDB."""
    try:
        config = apply_overrides(MigrationConfig.from_env(), args)
        created = MigrationOrchestrator(config).run_backup()
    except MigrationError as e:
        logger.error(f"Fatal: {e}")
        return EXIT_FATAL

    for path in created:
        print(f"Backup created: {path}")
    if not created:
        print("No legacy files found to back up")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
