"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from zonetunes import __version__
from zonetunes.core.sync_manager import SyncManager
from zonetunes.exceptions import ZoneTunesError
from zonetunes.models.config import SyncConfig
from zonetunes.models.results import ProcessOptions
from zonetunes.models.zone import ZoneRegistry
from zonetunes.storage.cache import CacheManager
from zonetunes.storage.config_manager import ConfigManager
from zonetunes.storage.save_file import SaveFileEditor
from zonetunes.utils.path import detect_save_file

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_summary_panel,
    print_validation_table,
    print_zone_table,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("zonetunes")

app = typer.Typer(
    name="zonetunes",
    help=(
        "Put any song from the web into a game zone: downloads it, builds its"
        " beatmap and wires it into the save file. Use 'zonetunes <command>"
        " --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if override := os.getenv("ZONETUNES_CONFIG_DIR"):
        return Path(override).expanduser()
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "zonetunes"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _fail(error: Exception) -> typer.Exit:
    console.print(format_error_with_suggestions(error))
    log.debug("Full traceback:", exc_info=True)
    return typer.Exit(code=1)


def _path_options(**paths: Path | None) -> dict[str, str]:
    """Config overrides for the path options given on the command line."""
    return {
        key: str(path.expanduser().absolute())
        for key, path in paths.items()
        if path is not None
    }


def _load(cli_options: dict | None = None) -> tuple[ConfigManager, SyncConfig]:
    config_manager = ConfigManager(CONFIG_FILE)
    return config_manager, config_manager.load_config(cli_options)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    clear_cache: bool = typer.Option(
        False, "--clear-cache", help="Clear the media info cache and exit."
    ),
):
    """Zone Tunes CLI"""
    if version:
        console.print(f"[bold]zonetunes[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("zonetunes").setLevel(log_level)

    if clear_cache:
        cache = CacheManager(CONFIG_DIR)
        console.print("[cyan]Clearing media info cache...[/cyan]")
        if cache.clear():
            console.print("[green]✓ Cache cleared successfully.[/green]")
        else:
            console.print("[red]✗ Failed to clear cache.[/red]")
        raise typer.Exit()

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]zonetunes init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        print_config(CONFIG_FILE, config_manager.get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    game_dir: Path = typer.Argument(  # noqa: B008
        ..., help="The game's installation directory (the one containing 'data')."
    ),
    save_file: Path | None = typer.Option(  # noqa: B008
        None, "--save-file", help="Save file to edit. Auto-detected when omitted."
    ),
    beat_tracker: Path | None = typer.Option(  # noqa: B008
        None, "--beat-tracker", help="Beat tracker executable to use by default."
    ),
    library_dir: Path | None = typer.Option(  # noqa: B008
        None,
        "--library-dir",
        help="Where downloaded songs, beatmaps and song links are kept.",
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Create the configuration for a game installation."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    game_dir = game_dir.expanduser().absolute()
    if not game_dir.is_dir():
        console.print(f"[red]✗ '{game_dir}' is not a directory.[/red]")
        raise typer.Exit(code=1)

    settings: dict[str, str] = {"game_dir": str(game_dir)}
    if save_file:
        settings["save_file"] = str(save_file.expanduser().absolute())
    elif detected := detect_save_file(game_dir):
        settings["save_file"] = detected.name
        console.print(f"[green]✓ Detected save file[/green] [dim]{detected}[/dim]")
    else:
        console.print(
            "[yellow]⚠️  No save file found yet. It will be detected on first use."
            "[/yellow]"
        )
    if beat_tracker:
        settings["beat_tracker"] = str(beat_tracker.expanduser().absolute())
    if library_dir:
        settings["library_dir"] = str(library_dir.expanduser().absolute())

    try:
        ConfigManager(CONFIG_FILE).save_new_config(settings)
    except ZoneTunesError as e:
        raise _fail(e) from e
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready! Try: [cyan]zonetunes process <LINK> <ZONE>[/cyan]")


@app.command(name="process")
def process_command(
    link: str = typer.Argument(..., help="Media link, anything yt-dlp can fetch."),
    zone: str = typer.Argument(..., help="Zone to assign the song to (see 'zones')."),
    bpm: float | None = typer.Option(
        None, "--bpm", help="Song tempo; builds a uniform beatmap instead of detecting."
    ),
    offset: float = typer.Option(
        0.0, "--offset", help="Seconds before the first beat (with --bpm)."
    ),
    beat_tracker: Path | None = typer.Option(  # noqa: B008
        None, "--beat-tracker", help="Beat tracker executable to use for this run."
    ),
    force_reload: bool = typer.Option(
        False,
        "--force-reload",
        help="Download the song and rebuild its beatmap even if they exist.",
    ),
    force_download: bool = typer.Option(
        False, "--force-download", help="Download the song even if it exists."
    ),
    force_beatmap: bool = typer.Option(
        False, "--force-beatmap", help="Rebuild the beatmap even if it exists."
    ),
    save_file: Path | None = typer.Option(  # noqa: B008
        None, "--save-file", help="Save file to edit for this run."
    ),
    backup: bool | None = typer.Option(
        None, "--backup/--no-backup", help="Back up the save file before editing."
    ),
    prepare_links: bool | None = typer.Option(
        None,
        "--prepare-links/--no-prepare-links",
        help="Point every zone at its song link, not only the target zone.",
    ),
):
    """Download a song, build its beatmap and assign it to a zone."""
    options = ProcessOptions(
        link=link,
        zone=zone,
        bpm=bpm,
        offset=offset,
        force_download=force_reload or force_download,
        force_beatmap=force_reload or force_beatmap,
        backup_save_file=backup,
        prepare_all_links=prepare_links,
    )
    cli_options = _path_options(save_file=save_file, beat_tracker=beat_tracker)

    try:
        config_manager, config = _load(cli_options)
        manager = SyncManager(config, config_manager=config_manager)
        start_time = time.monotonic()
        result = asyncio.run(manager.full_process(options))
    except ZoneTunesError as e:
        raise _fail(e) from e

    print_summary_panel(result, time.monotonic() - start_time)


@app.command()
def reset(
    zones: list[str] = typer.Argument(  # noqa: B008
        ..., help="Zones to reset to the game's own music, or 'all'."
    ),
    save_file: Path | None = typer.Option(  # noqa: B008
        None, "--save-file", help="Save file to edit."
    ),
):
    """Reset zones to the game's default music."""
    try:
        config_manager, config = _load(_path_options(save_file=save_file))
        manager = SyncManager(config, config_manager=config_manager)
        reset_zones = asyncio.run(manager.reset_zones(None, zones))
    except ZoneTunesError as e:
        raise _fail(e) from e

    names = ", ".join(zone.id for zone in reset_zones)
    console.print(f"[green]✓ Reset {len(reset_zones)} zone(s):[/green] {names}")


@app.command(name="link-all")
def link_all(
    save_file: Path | None = typer.Option(  # noqa: B008
        None, "--save-file", help="Save file to edit."
    ),
):
    """Point every zone's save entry at its stable song link."""
    try:
        config_manager, config = _load(_path_options(save_file=save_file))
        manager = SyncManager(config, config_manager=config_manager)
        written = asyncio.run(manager.prepare_zone_links())
    except ZoneTunesError as e:
        raise _fail(e) from e

    if written:
        console.print("[green]✓ All zones now point at their song links.[/green]")
    else:
        console.print("[yellow]○ All zones already point at their song links.[/yellow]")


@app.command()
def zones(
    save_file: Path | None = typer.Option(  # noqa: B008
        None, "--save-file", help="Show current values from this save file."
    ),
):
    """List all zones, with their current songs when a save file is available."""

    async def _read_current(path: Path) -> dict[str, str | None]:
        editor = SaveFileEditor(path, registry)
        await editor.load()
        return {zone.id: editor.get_custom_song(zone) for zone in registry}

    if not CONFIG_FILE.is_file():
        registry = ZoneRegistry.default()
        if save_file is None:
            print_zone_table(registry)
            return
        try:
            print_zone_table(registry, asyncio.run(_read_current(save_file)))
        except ZoneTunesError as e:
            raise _fail(e) from e
        return

    try:
        _, config = _load()
        registry = config.load_registry()
    except ZoneTunesError as e:
        raise _fail(e) from e

    try:
        path = SyncManager(config, registry=registry).locate_save_file(save_file)
        current = asyncio.run(_read_current(path))
    except ZoneTunesError as e:
        log.warning(f"[yellow]Could not read save file:[/] {e}")
        current = None
    print_zone_table(registry, current)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        _, config = _load()
        config.load_registry()
        print_validation_table(config)
    except ZoneTunesError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
