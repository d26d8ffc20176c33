"""
Main entry point for ctxmirror.

This module handles:
- Command line argument parsing
- Logging configuration
- Environment detection and data source selection
- Running export/import on a background worker
- Path conversion between WSL and Windows
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Optional, List

from PyQt6.QtCore import QCoreApplication

from ctxmirror import __version__
from ctxmirror.core.filters import create_filter
from ctxmirror.core.models import ExportSetupError, OverwritePolicy
from ctxmirror.core.paths.converter import windows_to_wsl, wsl_to_windows
from ctxmirror.services.data_sources import create_data_source
from ctxmirror.services.environment import Environment
from ctxmirror.services.export_service import (
    ExportImportService,
    ExportOptions,
    GitignoreDecision,
    ImportOptions,
    format_failures,
)
from ctxmirror.services.file_system import LocalFileSystem
from ctxmirror.services.settings import ApplicationSettings, EnvironmentKind, SettingsManager
from ctxmirror.services.tree_provider import ClaudeTreeProvider
from ctxmirror.workers import BaseWorker, ExportWorker, ImportWorker, WorkerThread


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "ctxmirror"

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_SETUP_ERROR = 2


# =============================================================================
# Enums
# =============================================================================

class Command(Enum):
    """Sub-command selected on the command line."""
    EXPORT = auto()
    IMPORT = auto()
    PLAN = auto()
    CONVERT = auto()


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    command: Command = Command.PLAN
    directory: Optional[str] = None
    scope: Optional[str] = None
    workers: Optional[int] = None
    create_gitignore: Optional[bool] = None
    gitignore_policy: str = "keep"
    overwrite: Optional[bool] = None
    as_json: bool = False

    # convert
    path: str = ""
    to_windows: bool = False
    legacy: bool = False

    # environment
    environment: Optional[str] = None
    distro: Optional[str] = None
    wsl_user: Optional[str] = None
    windows_user: Optional[str] = None

    settings_file: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """Log formatter with colors for the console."""

    COLORS = {
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors:
            color = self.COLORS.get(record.levelno, '')
            return f"{color}{formatted}{self.RESET}"

        return formatted


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure application logging.

    Console output goes to stderr so that command output on stdout
    stays machine readable.

    Args:
        level: Log level string
        log_file: Optional file path for logging

    Returns:
        Root logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(LogFormatter(use_colors=True))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(LogFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    logging.getLogger('chardet').setLevel(logging.WARNING)

    return root_logger


# =============================================================================
# Command Line Parsing
# =============================================================================

def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Export, import and convert paths of Claude configuration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s export --target ~/claude-backup        Export global config and projects
  %(prog)s import --source ~/claude-backup        Restore without overwriting
  %(prog)s plan --scope projects --json           Show what would be exported
  %(prog)s convert 'C:\\Users\\me'                  Windows path to WSL path
  %(prog)s convert /home/me --to-windows --distro Ubuntu
        """
    )

    # Environment
    parser.add_argument(
        '--environment',
        choices=[kind.value for kind in EnvironmentKind],
        default=None,
        help='Configuration to operate on (default: from settings, else native)'
    )
    parser.add_argument('--distro', help='WSL distribution name')
    parser.add_argument('--wsl-user', help='Linux user inside the WSL distribution (default: current user)')
    parser.add_argument('--windows-user', help='Windows user name, when running inside WSL')

    # Configuration
    parser.add_argument('-c', '--settings', help='Settings file path')

    # Logging
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='INFO',
        help='Log level'
    )
    parser.add_argument('--log-file', help='Also write the log to this file')

    parser.add_argument(
        '--version',
        action='version',
        version=f'{APP_NAME} {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    scope_help = 'Limit to the global configuration or to projects'

    export_parser = subparsers.add_parser('export', help='Export configuration to a directory')
    export_parser.add_argument('-t', '--target', help='Export directory (default: from settings)')
    export_parser.add_argument('--scope', choices=['global', 'projects'], help=scope_help)
    export_parser.add_argument('-w', '--workers', type=int, help='Parallel file copies (1-10)')
    export_parser.add_argument(
        '--no-gitignore',
        action='store_true',
        help='Do not write a .gitignore into the export directory'
    )
    export_parser.add_argument(
        '--gitignore-policy',
        choices=['keep', 'overwrite', 'ask'],
        default='keep',
        help='What to do with an existing, different .gitignore'
    )

    import_parser = subparsers.add_parser('import', help='Import configuration from a directory')
    import_parser.add_argument('-s', '--source', required=True, help='Directory of a previous export')
    import_parser.add_argument('--scope', choices=['global', 'projects'], help=scope_help)
    import_parser.add_argument('--overwrite', action='store_true', help='Replace existing files')

    plan_parser = subparsers.add_parser('plan', help='Show the export plan without copying')
    plan_parser.add_argument('--scope', choices=['global', 'projects'], help=scope_help)
    plan_parser.add_argument('--json', action='store_true', help='Print the plan as JSON')

    convert_parser = subparsers.add_parser('convert', help='Convert a path between WSL and Windows')
    convert_parser.add_argument('path', help='Path to convert')
    convert_parser.add_argument(
        '--to-windows',
        action='store_true',
        help='Convert a WSL path to a UNC path (default: Windows to WSL)'
    )
    convert_parser.add_argument('--legacy', action='store_true', help=r'Use the \\wsl$\ prefix')

    parsed = parser.parse_args(args)

    result = CommandLineArgs()
    result.command = Command[parsed.command.upper()]
    result.environment = parsed.environment
    result.distro = parsed.distro
    result.wsl_user = parsed.wsl_user
    result.windows_user = parsed.windows_user
    result.settings_file = parsed.settings
    result.log_file = parsed.log_file
    result.log_level = 'DEBUG' if parsed.verbose else parsed.log_level

    if result.command == Command.EXPORT:
        result.directory = parsed.target
        result.scope = parsed.scope
        result.workers = parsed.workers
        result.create_gitignore = False if parsed.no_gitignore else None
        result.gitignore_policy = parsed.gitignore_policy
    elif result.command == Command.IMPORT:
        result.directory = parsed.source
        result.scope = parsed.scope
        result.overwrite = True if parsed.overwrite else None
    elif result.command == Command.PLAN:
        result.scope = parsed.scope
        result.as_json = parsed.json
    elif result.command == Command.CONVERT:
        result.path = parsed.path
        result.to_windows = parsed.to_windows
        result.legacy = parsed.legacy

    return result


# =============================================================================
# Wiring
# =============================================================================

def gitignore_resolver(policy: str):
    """Resolver for an existing .gitignore that differs from ours."""
    def resolve(path: str, existing: str, new: str) -> GitignoreDecision:
        if policy == 'overwrite':
            return GitignoreDecision.OVERWRITE
        if policy == 'ask':
            answer = input(f"{path} already exists with different content. Overwrite? [y/N] ")
            if answer.strip().lower() in ('y', 'yes'):
                return GitignoreDecision.OVERWRITE
        return GitignoreDecision.KEEP
    return resolve


def build_provider(args: CommandLineArgs, settings: ApplicationSettings) -> ClaudeTreeProvider:
    """Detect the environment once and build the tree provider for it."""
    environment = Environment.detect()
    env_settings = settings.environment

    kind = args.environment or env_settings.kind.value
    data_source = create_data_source(
        kind,
        environment,
        distro=args.distro or env_settings.wsl_distro or None,
        legacy=env_settings.use_legacy_unc,
        windows_user=args.windows_user or env_settings.windows_user or None,
        ttl=env_settings.config_cache_ttl,
        wsl_user=args.wsl_user or env_settings.wsl_user or None,
    )
    logging.info(f"Using configuration {data_source.describe()}")
    return ClaudeTreeProvider(data_source)


def build_service(
    provider: ClaudeTreeProvider,
    settings: ApplicationSettings,
    workers: Optional[int] = None,
    gitignore_policy: str = 'keep',
) -> ExportImportService:
    export_settings = settings.export
    file_system = LocalFileSystem(
        entry_filter=create_filter(export_settings.include_patterns, export_settings.exclude_patterns)
    )
    return ExportImportService.create(
        provider,
        file_system=file_system,
        max_workers=workers or export_settings.max_workers,
        gitignore_resolver=gitignore_resolver(gitignore_policy),
    )


def run_worker(worker: BaseWorker) -> BaseWorker:
    """
    Run a worker on its own thread and wait for it.

    Ctrl+C requests cancellation; the worker stops between items.
    """
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    thread = WorkerThread(worker)

    worker.signals.status.connect(lambda message: logging.info(message))
    worker.signals.progress.connect(
        lambda percent, message: logging.debug(f"[{percent:3d}%] {message}")
    )
    worker.signals.error.connect(
        lambda error_type, message: logging.error(f"{error_type}: {message}")
    )
    thread.finished.connect(app.quit)

    previous = signal.signal(signal.SIGINT, lambda signum, frame: worker.cancel())
    try:
        thread.start()
        app.exec()
        thread.wait()
    finally:
        signal.signal(signal.SIGINT, previous)

    return worker


# =============================================================================
# Commands
# =============================================================================

def run_convert(args: CommandLineArgs) -> int:
    if args.to_windows:
        distro = args.distro or Environment.detect().distro_name
        if not distro:
            logging.error("A distribution name is needed, pass --distro")
            return EXIT_SETUP_ERROR
        print(wsl_to_windows(args.path, distro, args.legacy))
    else:
        print(windows_to_wsl(args.path))
    return EXIT_OK


def run_plan(args: CommandLineArgs, settings: ApplicationSettings) -> int:
    provider = build_provider(args, settings)
    service = build_service(provider, settings)
    plan = service.plan(provider.select(args.scope))

    if args.as_json:
        print(json.dumps({
            'timestamp': plan.metadata.timestamp,
            'source_roots': list(plan.metadata.source_roots),
            'directories_to_create': [d.dst_relative_path for d in plan.directories_to_create],
            'directories_to_copy': {d.dst_relative_path: d.src_abs_path for d in plan.directories_to_copy},
            'files_to_copy': {f.dst_relative_path: f.src_abs_path for f in plan.files_to_copy},
        }, indent=2))
        return EXIT_OK

    for directory in plan.directories_to_create:
        print(f"mkdir  {directory.dst_relative_path}")
    for directory in plan.directories_to_copy:
        print(f"tree   {directory.src_abs_path} -> {directory.dst_relative_path}")
    for file in plan.files_to_copy:
        print(f"file   {file.src_abs_path} -> {file.dst_relative_path}")
    logging.info(f"Plan: {plan.summary()}")
    return EXIT_OK


def run_export(args: CommandLineArgs, settings_manager: SettingsManager) -> int:
    settings = settings_manager.settings
    target = args.directory or settings.export.export_directory
    if not target:
        logging.error("No export directory given, pass --target")
        return EXIT_SETUP_ERROR

    provider = build_provider(args, settings)
    service = build_service(provider, settings, args.workers, args.gitignore_policy)
    create_gitignore = settings.export.create_gitignore if args.create_gitignore is None else args.create_gitignore

    options = ExportOptions(
        target_directory=target,
        create_gitignore=create_gitignore,
        gitignore_content=settings.export.gitignore_content,
        overwrite=OverwritePolicy.OVERWRITE,
    )
    worker = ExportWorker(service, provider.select(args.scope), options)
    run_worker(worker)

    if worker.error:
        return EXIT_SETUP_ERROR
    summary = worker.result
    if summary is None:
        logging.warning("Export cancelled")
        return EXIT_FAILURES

    settings_manager.add_recent_export_directory(target)

    result = summary.result
    logging.info(
        f"Exported {result.files_copied_count} files and "
        f"{result.directories_copied_count} directories to {target}"
    )
    if result.has_failures:
        logging.error(f"{len(result.failures)} item(s) failed:\n{format_failures(result.failures)}")
        return EXIT_FAILURES
    return EXIT_OK if not result.cancelled else EXIT_FAILURES


def run_import(args: CommandLineArgs, settings: ApplicationSettings) -> int:
    provider = build_provider(args, settings)
    service = build_service(provider, settings)
    overwrite = settings.export.overwrite_on_import if args.overwrite is None else args.overwrite

    options = ImportOptions(source_directory=args.directory or "", overwrite=overwrite)
    worker = ImportWorker(service, provider.select(args.scope), options)
    run_worker(worker)

    if worker.error:
        return EXIT_SETUP_ERROR
    summary = worker.result
    if summary is None:
        logging.warning("Import cancelled")
        return EXIT_FAILURES

    result = summary.result
    logging.info(
        f"Imported {summary.file_count} of {summary.files_found} files, "
        f"{summary.skipped_count} skipped"
    )
    if result.has_failures:
        logging.error(f"{len(result.failures)} item(s) failed:\n{format_failures(result.failures)}")
        return EXIT_FAILURES
    return EXIT_OK if not result.cancelled else EXIT_FAILURES


# =============================================================================
# Main Function
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Application main entry point.

    Returns:
        Exit code (0 success, 1 item failures, 2 setup error)
    """
    args = parse_arguments(argv)

    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(args.log_level, log_file)
    logging.debug(f"Starting {APP_NAME} v{__version__}")

    if args.command == Command.CONVERT:
        return run_convert(args)

    settings_path = Path(args.settings_file) if args.settings_file else None
    settings_manager = SettingsManager(settings_path)

    try:
        if args.command == Command.PLAN:
            return run_plan(args, settings_manager.settings)
        if args.command == Command.EXPORT:
            return run_export(args, settings_manager)
        return run_import(args, settings_manager.settings)

    except (ExportSetupError, ValueError) as e:
        logging.error(str(e))
        return EXIT_SETUP_ERROR


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    sys.exit(main())
