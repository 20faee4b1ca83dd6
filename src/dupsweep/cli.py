#!/usr/bin/env python3
"""
dupsweep CLI: command line interface for duplicate file removal.
Scans one directory tree, keeps one copy of every set of identical files and
permanently deletes the rest. Prints one status line per event.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import logging
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import NoReturn, Optional

# === EARLY DEPENDENCY VALIDATION ===
_MISSING_DEPS = []
try:
    import xxhash  # noqa: F401
except ImportError:
    _MISSING_DEPS.append("xxhash")

if _MISSING_DEPS:
    print("Missing required dependencies:", file=sys.stderr)
    print(f"   pip install {' '.join(_MISSING_DEPS)}", file=sys.stderr)
    sys.exit(1)

# === NORMAL IMPORTS (after validation) ===
from dupsweep.core.errors import RootDirectoryError
from dupsweep.core.models import (
    DeduplicationParams, DeduplicationStats, Deleted, DeleteFailed, DuplicateFound, Event,
    RaceAnomaly, ScanError, UnhandledEntry,
)
from dupsweep.commands import DeduplicationCommand
from dupsweep.utils.convert_utils import ConvertUtils
from dupsweep.aliases import KEEP_POLICY_CHOICES, KEEP_POLICY_HELP_TEXT, EPILOG_TEXT

LOG_FORMAT = "%(levelname)-8s | %(name)-25s | %(message)s"


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False
        self._stop_requested: bool = False

        # Fix encoding for Windows consoles to prevent UnicodeEncodeError
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding='utf-8')
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding='utf-8')

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parser = argparse.ArgumentParser(
            prog="dupsweep",
            description="dupsweep: keep one copy of every set of identical files",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        # Required arguments
        parser.add_argument(
            "--input", "-i",
            required=True,
            type=str,
            help="Root directory to scan for duplicates"
        )

        # Run options
        parser.add_argument(
            "--workers", "-w",
            default=None,
            type=str,
            metavar='',
            help="Number of parallel hashing workers. Default: CPU count + 4 (max 32)"
        )
        parser.add_argument(
            "--keep",
            choices=KEEP_POLICY_CHOICES,
            default="oldest",
            type=str,
            help=KEEP_POLICY_HELP_TEXT
        )
        parser.add_argument(
            "--excluded-dirs", '-e',
            nargs="+",
            default=[],
            type=str,
            metavar='',
            dest="excluded_dirs",
            help="Excluded/ignored directories (space separated)"
        )
        parser.add_argument(
            "--no-quick-check",
            action="store_false",
            dest="quick_check",
            help="Hash every same-size file in full instead of comparing the first 64KB first"
        )
        parser.add_argument(
            "--no-verify-size",
            action="store_false",
            dest="verify_size",
            help="Do not report files whose size changed between scanning and hashing"
        )

        # Actions
        parser.add_argument(
            "--dry-run", "-n",
            action="store_true",
            help="Report duplicates without deleting anything"
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Skip confirmation prompt before deleting (for automation/scripts)"
        )

        # Output options
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Print only the final summary"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show debug logging and detailed statistics"
        )

        return parser.parse_args(args)

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before execution."""
        if args.force and args.dry_run:
            self.error_exit("--force cannot be combined with --dry-run")

        # Prevent interactive confirmation in non-TTY environments
        if not args.dry_run and not args.force:
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Cannot request interactive confirmation in non-interactive session.\n"
                    "Use --force to delete without confirmation, or --dry-run to only report."
                )

        root_path = Path(args.input).resolve()
        if not root_path.exists():
            self.error_exit(f"Directory not found: {args.input}")
        if not root_path.is_dir():
            self.error_exit(f"Path is not a directory: {args.input}")

        if args.workers is not None:
            try:
                ConvertUtils.parse_workers(args.workers)
            except ValueError as e:
                self.error_exit(str(e))

        for excl_dir in args.excluded_dirs:
            excl_path = Path(excl_dir).resolve()
            if not excl_path.exists():
                self.warning(f"Excluded directory not found: {excl_dir}")
            elif not excl_path.is_dir():
                self.warning(f"Excluded path is not a directory: {excl_dir}")

    def create_params(self, args: argparse.Namespace) -> DeduplicationParams:
        """Create DeduplicationParams from CLI arguments."""
        try:
            workers = ConvertUtils.parse_workers(args.workers) if args.workers is not None else None
            return DeduplicationParams.from_cli_values(
                root_dir=args.input,
                workers=workers,
                keep=args.keep,
                quick_check=args.quick_check,
                verify_size=args.verify_size,
                dry_run=args.dry_run,
                excluded_dirs=args.excluded_dirs,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    def confirm(self, params: DeduplicationParams) -> bool:
        """Ask before a run that deletes files."""
        # Safety check: confirm we're still in interactive mode
        if not sys.stdin.isatty() or not sys.stdout.isatty():
            self.error_exit(
                "Lost interactive terminal during operation. "
                "Use --force to proceed in non-interactive environments."
            )
        response = input(
            f"Permanently delete duplicate files under {params.root_dir} "
            f"(keeping the {params.keep_policy.value} copy)? [y/N]: "
        )
        return response.strip().lower() in ("y", "yes")

    def format_event(self, event: Event, dry_run: bool = False) -> Optional[str]:
        """One status line per event; None for events hidden at the current verbosity."""
        if isinstance(event, DuplicateFound):
            suffix = " (would be deleted)" if dry_run else ""
            return f"[DUP]  {event.removed}{suffix}\n       same as {event.kept}"
        if isinstance(event, Deleted):
            return f"[DEL]  {event.path} ({ConvertUtils.bytes_to_human(event.size)})"
        if isinstance(event, DeleteFailed):
            return f"[FAIL] {event.path}: {event.reason}"
        if isinstance(event, ScanError):
            return f"[ERR]  {event.path}: {event.reason}"
        if isinstance(event, RaceAnomaly):
            return (f"[RACE] {event.path}: size changed from {event.expected_size} "
                    f"to {event.actual_size} bytes, skipped")
        if isinstance(event, UnhandledEntry):
            return f"[SKIP] {event.path} ({event.entry_type})" if self.verbose else None
        return None

    def make_event_printer(self, dry_run: bool):
        def on_event(event: Event) -> None:
            if self.quiet:
                return
            line = self.format_event(event, dry_run=dry_run)
            if line is None:
                return
            stream = sys.stderr if isinstance(event, (DeleteFailed, ScanError, RaceAnomaly)) else sys.stdout
            print(line, file=stream)
        return on_event

    def stopped_flag(self) -> bool:
        """Check if operation should stop."""
        return self._stop_requested

    def _request_stop(self, signum, frame) -> None:
        """SIGINT handler: let running workers finish their file, start no new ones."""
        if not self._stop_requested:
            print("\nStopping after files in progress... (Ctrl+C again to abort)", file=sys.stderr)
            self._stop_requested = True
        else:
            raise KeyboardInterrupt

    def run_deduplication(self, params: DeduplicationParams) -> DeduplicationStats:
        """Execute the scan-and-delete workflow."""
        command = DeduplicationCommand()
        previous_handler = None
        if threading.current_thread() is threading.main_thread():
            previous_handler = signal.signal(signal.SIGINT, self._request_stop)
        try:
            _, stats = command.execute(
                params,
                on_event=self.make_event_printer(params.dry_run),
                stopped_flag=self.stopped_flag
            )
        except RootDirectoryError as e:
            self.error_exit(str(e))
        finally:
            if previous_handler is not None:
                signal.signal(signal.SIGINT, previous_handler)
        return stats

    def output_summary(self, stats: DeduplicationStats, dry_run: bool) -> None:
        print()
        print("=" * 60)
        if dry_run:
            print(f"Dry run: {stats.duplicates_found} duplicate files found, nothing deleted.")
        else:
            print(f"Duplicates found: {stats.duplicates_found}, "
                  f"deleted: {stats.files_deleted}, failed: {stats.delete_failures}")
            print(f"Total space freed: {ConvertUtils.bytes_to_human(stats.bytes_freed)}")
        if stats.errors:
            print(f"Files or directories with errors: {stats.errors}")

        if self.verbose:
            print()
            print(stats.print_summary())

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"Warning: {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"Error: {message}", file=sys.stderr)
        sys.exit(code)

    def run(self, argv=None) -> None:
        """Main entry point with conditional output behavior."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet

        logging.basicConfig(
            level=logging.DEBUG if self.verbose else logging.ERROR,
            format=LOG_FORMAT
        )

        self.validate_args(args)
        params = self.create_params(args)

        if not params.dry_run and not args.force:
            if not self.confirm(params):
                print("Deletion cancelled by user.")
                return

        if not self.quiet:
            print(f"Scanning directory: {params.root_dir}")

        stats = self.run_deduplication(params)
        self.output_summary(stats, params.dry_run)

        # Show completion time
        elapsed = time.time() - self.start_time
        if self.verbose:
            print(f"\nCompleted in {elapsed:.2f} seconds")


def main() -> None:
    """Application entry point. Exit code is 0 even when individual files failed."""
    app = CLIApplication()
    try:
        app.run()
    except KeyboardInterrupt:
        print("\nOperation cancelled by user (Ctrl+C)")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
