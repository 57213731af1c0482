"""
Command-line interface for tune-sync.

This module implements the CLI using Click, providing the commands that
sync an iTunes / Music library into a flat directory of .m4a files.
rich-click is used for the output colors.

Commands:
    tunesync sync                       Convert new tracks, then write playlists
    tunesync sync --force               Re-convert every track
    tunesync sync --no-playlists        Convert only
    tunesync playlists                  Write playlists only
    tunesync info                       Show library statistics

Options:
    --config <path>                     Use another config.yaml
    --verbose                           Show debug messages on the console

Configuration:
    The CLI requires a config.yaml file in the current directory (or the
    one given with --config) with:
    - Path to the library XML export
    - Output directory path
    - Optional conversion settings (bitrate, workers, ffmpeg path)

Exit Status:
    0   Success
    1   Configuration error, or at least one track failed to convert
    2   Library could not be read
    3   Output directory could not be written
    130 Interrupted by user
"""

import sys
from pathlib import Path
from typing import Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100

from tune_sync import __version__
from tune_sync.core import (
    Config,
    ConfigError,
    ConversionProgressBar,
    FilesystemError,
    LibraryError,
    ProgressTracker,
    TuneSyncError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from tune_sync.convert import TagRebuilder, Transcoder
from tune_sync.library import ITunesXmlLibrary
from tune_sync.sync import ConversionConfig, SyncOrchestrator, materialize_playlists

logger = get_logger(__name__)


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show debug messages on the console"
)
@click.version_option(__version__, prog_name="tune-sync")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """
    tune-sync: Mirror an iTunes / Music library as a flat folder of M4A files.

    Every track is converted once to AAC and named after its persistent id,
    so repeated runs only convert what is new. Playlists are written as
    .m3u files next to the tracks.

    \b
    BASIC USAGE:
        tunesync sync                 # Convert new tracks and write playlists
        tunesync sync --force         # Convert everything again
        tunesync playlists            # Only rewrite the .m3u files
        tunesync info                 # Show what the library contains
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Re-convert tracks whose output already exists"
)
@click.option(
    "--no-playlists",
    is_flag=True,
    help="Do not write .m3u playlist files"
)
@click.pass_context
def sync(ctx: click.Context, force: bool, no_playlists: bool) -> None:
    """Convert new library tracks, then write the playlists."""
    _run(ctx, lambda config: _run_sync(config, force=force, write_playlists=not no_playlists))


@cli.command()
@click.pass_context
def playlists(ctx: click.Context) -> None:
    """Rewrite the .m3u playlist files without converting tracks."""
    _run(ctx, _run_playlists)


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show library version and track / playlist counts."""
    _run(ctx, _run_info)


def _run(ctx: click.Context, action) -> None:
    """
    Load configuration, set up logging, run action and map errors to exit codes.

    action receives the Config and returns True on full success.
    """
    try:
        config = _load_configuration(ctx.obj["config_path"])
        setup_logging(config.output.log_directory, verbose=ctx.obj["verbose"])

        if not action(config):
            sys.exit(1)

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except LibraryError as e:
        click.echo(f"Library error: {e.message}", err=True)
        logger.error(f"Library error: {e.message}", exc_info=True)
        sys.exit(2)

    except FilesystemError as e:
        click.echo(f"Filesystem error: {e.message}", err=True)
        logger.error(f"Filesystem error: {e.message}", exc_info=True)
        sys.exit(3)

    except TuneSyncError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(1)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    finally:
        shutdown_logging()


def _load_configuration(config_path: Optional[Path]) -> Config:
    """
    Load and validate configuration from config.yaml.

    Raises:
        ConfigError: If configuration is invalid or missing.
    """
    return load_config(config_path)


def _run_sync(config: Config, force: bool, write_playlists: bool) -> bool:
    library = ITunesXmlLibrary(config.library.xml_path)
    output_dir = config.output.directory

    logger.info(f"Library: {config.library.xml_path}")
    logger.info(f"Output:  {output_dir}")

    transcoder = Transcoder(ffmpeg_path=config.conversion.ffmpeg)

    with SyncOrchestrator(
        library,
        transcoder=transcoder,
        tagger=TagRebuilder(),
        max_workers=config.conversion.workers
    ) as orchestrator:
        with ConversionProgressBar() as bar:
            conversion_config = ConversionConfig(
                bitrate_kbps=config.conversion.bitrate,
                force=force or config.conversion.force,
                progress=ProgressTracker(on_change=bar.update),
            )
            gate = orchestrator.check_sync(_log_file_ready, conversion_config, output_dir)
            gate.wait()

        failures = gate.failures
        stats = orchestrator.last_stats

        if write_playlists:
            orchestrator.materialize_playlists(output_dir, _log_file_ready)

    converted = stats.total - stats.skipped - len(failures)
    _print_sync_stats(stats.total, stats.skipped, converted, len(failures))
    return not failures


def _run_playlists(config: Config) -> bool:
    library = ITunesXmlLibrary(config.library.xml_path)
    materialize_playlists(library, config.output.directory, _log_file_ready)
    return True


def _log_file_ready(path: Path) -> None:
    logger.debug(f"Ready: {path.name}")


def _run_info(config: Config) -> bool:
    library = ITunesXmlLibrary(config.library.xml_path)

    all_tracks = list(library.tracks())
    convertible = sum(1 for track in all_tracks if track.is_convertible)
    playlist_count = sum(1 for _ in library.playlists())

    click.echo(f"Library file:       {config.library.xml_path}")
    click.echo(f"Application:        {library.version or 'unknown'}")
    click.echo(f"Tracks:             {len(all_tracks)}")
    click.echo(f"Convertible tracks: {convertible}")
    click.echo(f"Playlists:          {playlist_count}")
    return True


def _print_sync_stats(total: int, skipped: int, converted: int, failed: int) -> None:
    logger.info("=" * 60)
    logger.info("SYNC STATISTICS")
    logger.info("=" * 60)
    logger.info(f"Convertible tracks: {total}")
    logger.info(f"Already converted:  {skipped}")
    logger.info(f"Converted:          {converted}")
    logger.info(f"Failed:             {failed}")
    logger.info("=" * 60)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `tunesync` from the command line.
    It invokes the Click CLI group.
    """
    cli()


if __name__ == "__main__":
    main()
