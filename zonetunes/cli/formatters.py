"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from zonetunes.models.config import SyncConfig
from zonetunes.models.results import ProcessResult
from zonetunes.models.zone import ZoneRegistry
from zonetunes.storage.save_file import NO_CUSTOM_SONG


def format_elapsed(seconds: float) -> str:
    """Formats a run time, e.g. '4.2s' or '3m 07s'."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s"


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "UnknownZoneError": [
            "• Run `zonetunes zones` to list every zone and its aliases.",
            "• Zone names are case-insensitive.",
        ],
        "ConfigurationError": [
            "• Run `zonetunes init <GAME_DIR>` to create a configuration.",
            "• Run `zonetunes validate` to check the current settings.",
        ],
        "SaveFileNotFoundError": [
            "• Start the game once so it creates its save file.",
            "• Pass the file explicitly with --save-file.",
        ],
        "SaveFileParseError": [
            "• The save file is not valid XML. Restore a backup created with --backup.",
        ],
        "BackupExistsError": [
            "• Another backup was created at the same moment. Run the command again.",
        ],
        "FetchFailedError": [
            "• Check that yt-dlp is installed and up to date (`yt-dlp -U`).",
            "• Check your internet connection and that the link is playable.",
        ],
        "BeatmapSourceMissingError": [
            "• Pass the song's tempo with --bpm (and optionally --offset).",
            "• Or point --beat-tracker at a beat tracker executable.",
        ],
        "InvalidBpmError": [
            "• BPM must be a number between 0 and 60000.",
        ],
        "InvalidOffsetError": [
            "• Offset is a number of seconds and cannot be negative.",
        ],
        "BeatDetectionError": [
            "• The beat tracker failed on this file. Try --bpm instead.",
        ],
        "InvalidTargetError": [
            "• The downloaded file disappeared. Re-run with --force-reload.",
        ],
        "LinkError": [
            "• Creating symlinks may need extra privileges (Developer Mode on Windows).",
            "• Remove regular files that sit where a song link should be.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type,
        [
            "• Run the command again with -vv for more detail.",
        ],
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration file contents."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def _enabled(flag: bool) -> str:
    return "✓ Enabled" if flag else "✗ Disabled"


def print_validation_table(config: SyncConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Game Directory:", f"[green]{config.game_path}[/green]")
    table.add_row(
        "Save File:",
        str(config.save_file_path) if config.save_file_path else "[dim]auto-detect[/dim]",
    )
    table.add_row("Music Cache:", f"[dim]{config.music_dir}[/dim]")
    table.add_row("Beatmaps:", f"[dim]{config.beatmap_dir}[/dim]")
    table.add_row("Song Links:", f"[dim]{config.audio_link_dir}[/dim]")
    table.add_row("Beatmap Links:", f"[dim]{config.beatmap_link_path}[/dim]")
    tracker = config.beat_tracker_path
    table.add_row(
        "Beat Tracker:",
        f"{tracker}" + ("" if tracker.is_file() else " [yellow](not found)[/yellow]"),
    )
    table.add_row("Zone Map:", config.zone_map or "[dim]built-in[/dim]")
    table.add_row("Backup Save File:", _enabled(config.backup_save_file))
    table.add_row("Prepare All Links:", _enabled(config.prepare_all_links))
    table.add_row("Always Write Save:", _enabled(config.always_persist))

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_zone_table(registry: ZoneRegistry, current: dict[str, str | None] | None = None):
    """Lists all zones, optionally with their current save file values."""
    console = Console()
    table = Table(box=box.ROUNDED)
    table.add_column("Zone", style="bold cyan", no_wrap=True)
    table.add_column("Aliases")
    table.add_column("Attribute", style="dim")
    if current is not None:
        table.add_column("Current Song")

    for zone in registry:
        aliases = ", ".join(sorted(a for a in zone.aliases if a != zone.id))
        row = [zone.id, aliases, zone.attribute]
        if current is not None:
            value = current.get(zone.id)
            if value is None:
                row.append("[dim]never set[/dim]")
            elif value == NO_CUSTOM_SONG:
                row.append("[dim]default music[/dim]")
            else:
                row.append(value)
        table.add_row(*row)

    console.print(table)


def print_summary_panel(result: ProcessResult, duration_s: float):
    """Displays the final summary of a process run."""
    console = Console()
    pipeline = result.pipeline

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=16)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("Zone:", f"[bold green]{result.zone.id}[/bold green]")
    if pipeline.title:
        stats_table.add_row("Title:", pipeline.title)
    stats_table.add_row(
        "Audio:",
        "[yellow]○ reused[/yellow]" if pipeline.download_skipped else "[green]✓ downloaded[/green]",
    )
    if pipeline.beatmap_skipped:
        beatmap_state = "[yellow]○ reused[/yellow]"
    else:
        beatmap_state = (
            f"[green]✓ {pipeline.beat_count} beats[/green] "
            f"[dim]({pipeline.beat_source})[/dim]"
        )
    stats_table.add_row("Beatmap:", beatmap_state)
    stats_table.add_row(
        "Save File:",
        "[green]✓ written[/green]" if result.save_written else "[yellow]○ unchanged[/yellow]",
    )
    if result.backup_file:
        stats_table.add_row("Backup:", f"[dim]{result.backup_file.name}[/dim]")

    stats_table.add_row("", "")  # Spacer
    stats_table.add_row("Media File:", f"[dim]{result.media_file}[/dim]")
    stats_table.add_row("Beatmap File:", f"[dim]{result.beatmap_file}[/dim]")
    stats_table.add_row("Song Link:", f"[dim]{result.audio_link}[/dim]")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_elapsed(duration_s)}[/blue]")

    console.print()
    console.print(
        Panel(
            stats_table,
            title="🎵 [bold]All done![/bold]",
            border_style="green",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
