"""Command-line interface for ludotheque."""

import sys
import logging
import argparse
import asyncio
import shutil
from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from ludotheque import __version__
from ludotheque.config.loader import load_config, ConfigError
from ludotheque.config.validator import validate_config, ValidationError
from ludotheque.catalog.store import EntryNotFoundError
from ludotheque.archive.composer import ArchiveError
from ludotheque.cancellation import SyncCancelled
from ludotheque.scanner.rom_scanner import list_systems
from ludotheque.service import LibraryService, ServiceValidationError
from ludotheque.workflow.options import SyncOptions

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog='ludotheque',
        description='ROM library catalog with ScreenScraper metadata and media sync',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync new and incomplete entries of two systems
  ludotheque sync nes snes

  # Re-process every file, including videos
  ludotheque sync nes --full --video

  # Sync every system found in the ROM directory
  ludotheque sync --all

  # Force a refresh of one catalog entry
  ludotheque refresh 42

  # Write the merged arcade archive of an entry
  ludotheque compose 1234 -o sf2ce.zip
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=Path,
        metavar='PATH',
        help='Path to config.yaml (default: ./config.yaml)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    sync = subparsers.add_parser('sync', help='Sync systems with the ROM directory')
    sync.add_argument('systems', nargs='*', metavar='SYSTEM', help='System directory names')
    sync.add_argument('--all', action='store_true', help='Sync every system directory')
    sync.add_argument('--full', action='store_true',
                      help='Process every file, not only new or incomplete ones')
    sync.add_argument('--overwrite', action='store_true', help='Re-download existing media')
    sync.add_argument('--no-info', action='store_true', help='Keep existing descriptive metadata')
    sync.add_argument('--no-images', action='store_true', help='Skip covers and screenshots')
    sync.add_argument('--no-marquees', action='store_true', help='Skip marquee logos')
    sync.add_argument('--video', action='store_true', help='Download video snaps')
    sync.add_argument('--box-art', action='store_true', help='Download and composite box textures')

    refresh = subparsers.add_parser('refresh', help='Force a refresh of one catalog entry')
    refresh.add_argument('entry_id', type=int, metavar='ENTRY_ID')
    refresh.add_argument('--video', action='store_true', help='Download video snap')
    refresh.add_argument('--box-art', action='store_true', help='Download and composite box texture')

    subparsers.add_parser('systems', help='List cataloged systems')
    subparsers.add_parser('import-gamelists', help='Import gamelist.xml files into the catalog')

    compose = subparsers.add_parser('compose', help='Write the download package of an entry')
    compose.add_argument('entry_id', type=int, metavar='ENTRY_ID')
    compose.add_argument('-o', '--output', type=Path, required=True, metavar='FILE')

    return parser


def _setup_logging(config: dict) -> None:
    """
    Setup logging configuration from config.

    Args:
        config: Configuration dictionary
    """
    logging_config = config.get('logging', {})

    level_str = str(logging_config.get('level', 'INFO')).upper()
    level = getattr(logging, level_str, logging.INFO)

    handlers = []

    if logging_config.get('console', True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        handlers.append(console_handler)

    log_file = logging_config.get('file')
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            file_handler.setFormatter(
                logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            )
            handlers.append(file_handler)
        except OSError as e:
            print(f"Error: Could not create log file '{log_file}': {e}", file=sys.stderr)
            sys.exit(1)

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True
    )

    # httpx logs full request URLs (with credentials) at DEBUG
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)

    # Pillow chunk parsing is noisy at DEBUG
    logging.getLogger('PIL').setLevel(logging.INFO)


def options_from_args(args: argparse.Namespace) -> SyncOptions:
    """Build sync options from parsed sync arguments."""
    return SyncOptions.bulk(
        sync_info=not args.no_info,
        sync_images=not args.no_images,
        sync_video=args.video,
        sync_marquees=not args.no_marquees,
        sync_box_art=args.box_art,
        incremental=not args.full,
        overwrite=args.overwrite,
    )


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the ludotheque CLI.

    Args:
        argv: Command-line arguments (default: sys.argv)

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        validate_config(config)
    except (ConfigError, ValidationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    _setup_logging(config)

    try:
        return asyncio.run(run_command(config, args))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.", file=sys.stderr)
        return 130


async def run_command(config: dict, args: argparse.Namespace) -> int:
    """
    Dispatch a parsed command against a LibraryService.

    Returns:
        Exit code
    """
    console = Console()

    async with LibraryService(config) as service:
        try:
            if args.command == 'sync':
                return await _run_sync(service, args, console)
            if args.command == 'refresh':
                options = SyncOptions.refresh(sync_video=args.video, sync_box_art=args.box_art)
                entry = await service.refresh_entry(args.entry_id, options)
                console.print(f"Refreshed [bold]{entry['filename']}[/bold] -> {entry['name']}")
                return 0
            if args.command == 'systems':
                _print_systems(service, console)
                return 0
            if args.command == 'import-gamelists':
                counts = await service.import_gamelists()
                for system, count in sorted(counts.items()):
                    console.print(f"{system}: {count} games")
                console.print(f"Imported {sum(counts.values())} games from {len(counts)} gamelists")
                return 0
            if args.command == 'compose':
                return await _run_compose(service, args, console)
        except (EntryNotFoundError, ServiceValidationError) as e:
            console.print(f"[bold red]ERROR:[/bold red] {e}")
            return 2
        except (ArchiveError, SyncCancelled) as e:
            console.print(f"[bold red]ERROR:[/bold red] {e}")
            return 1

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return 2


async def _run_sync(service: LibraryService, args: argparse.Namespace, console: Console) -> int:
    if args.all:
        systems = list_systems(service.rom_root)
    else:
        systems = args.systems
    if not systems:
        console.print("[bold yellow]WARNING:[/bold yellow] no systems given (use SYSTEM... or --all)")
        return 2

    options = options_from_args(args)
    for system in systems:
        result = service.request_sync(system, options)
        console.print(f"{system}: {result['status']} ({result['message']})")

    try:
        await service.scheduler.wait_idle()
    except asyncio.CancelledError:
        service.stop_sync()
        raise

    status = service.status()
    for line in status['logs'][-10:]:
        console.print(line, markup=False)
    return 0


async def _run_compose(service: LibraryService, args: argparse.Namespace, console: Console) -> int:
    download = await service.open_download(args.entry_id)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    if download.content is not None:
        args.output.write_bytes(download.content)
    else:
        shutil.copyfile(download.path, args.output)
    console.print(f"Wrote {download.filename} to {args.output}")
    return 0


def _print_systems(service: LibraryService, console: Console) -> None:
    table = Table(title="Systems", box=box.ROUNDED)
    table.add_column("Name", style="bold")
    table.add_column("Full name")
    table.add_column("Maker")
    table.add_column("Year", justify="right")
    table.add_column("Core")
    table.add_column("Games", justify="right")

    for system in service.list_systems():
        year = system['year'] if system['year'] != '0000' else '-'
        table.add_row(
            system['name'],
            system['fullname'],
            system['maker'],
            year,
            system['core'] or '-',
            str(system['count']),
        )
    console.print(table)


if __name__ == '__main__':
    sys.exit(main())
