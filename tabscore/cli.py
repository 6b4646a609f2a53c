"""TabScore CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from tabscore import __version__
from tabscore.artist import Artist
from tabscore.compiler import TabCompiler
from tabscore.directives import read_directives
from tabscore.errors import TabScoreError
from tabscore.midi_exporter import MidiExporter
from tabscore.player import Player
from tabscore.renderers import JsonLayoutRenderer, ScoreRenderer, VexflowMarkdownRenderer

DEFAULT_WIDTH = 600


def _get_renderer(output_format: str, title: str) -> ScoreRenderer:
    """Return the ScoreRenderer for the requested output format."""
    if output_format == "json":
        return JsonLayoutRenderer()
    return VexflowMarkdownRenderer(title=title)


def _compile(input_file: str, width: int) -> Artist:
    """Compile a directive file into a fresh Artist, exiting on errors."""
    artist = Artist(width=width)
    compiler = TabCompiler(artist)
    try:
        compiler.compile(read_directives(input_file))
    except OSError as exc:
        click.echo(f"  ERROR: Could not read '{input_file}': {exc}", err=True)
        sys.exit(1)
    except TabScoreError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)
    return artist


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="tabscore")
@click.option("--verbose", "-v", is_flag=True, help="Log compiler activity to stderr.")
def main(verbose: bool) -> None:
    """TabScore: compile guitar tab directives into tab and notation scores."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


# ── render subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination file path. Defaults to extension based on --format.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["md-vexflow", "json"], case_sensitive=False),
    default="md-vexflow",
    show_default=True,
    help="Output format: Markdown with VexFlow script, or the raw layout as JSON.",
)
@click.option(
    "--title",
    default=None,
    metavar="TEXT",
    help="Title shown in the output header. Defaults to the input filename stem.",
)
@click.option(
    "--width",
    type=click.IntRange(100, 4000),
    default=DEFAULT_WIDTH,
    show_default=True,
    help="Score width in pixels, unless an options directive sets one.",
)
def render(
    input_file: str,
    output: str | None,
    output_format: str,
    title: str | None,
    width: int,
) -> None:
    """
    Compile a directive file and render the score.

    INPUT_FILE is a JSON list of directives produced by the tab grammar.

    \b
    Examples:
      tabscore render song.json
      tabscore render song.json -o score.md --title "My Song"
      tabscore render song.json --format json -o layout.json
    """
    input_path = Path(input_file)
    resolved_title = title if title is not None else input_path.stem.replace("_", " ")
    normalized_format = output_format.lower()
    renderer = _get_renderer(normalized_format, resolved_title)
    resolved_output = (
        output if output is not None else str(input_path.with_suffix(renderer.default_extension))
    )

    click.echo(f"tabscore v{__version__}")
    click.echo(f"  Input  : {input_file}")
    click.echo(f"  Format : {normalized_format}")
    click.echo(f"  Output : {resolved_output}")
    click.echo()

    click.echo("[1/3] Compiling directives...")
    artist = _compile(input_file, width)
    click.echo(f"      Staves : {len(artist.score.staves)}")

    click.echo("[2/3] Rendering score...")
    content = artist.render(renderer)

    click.echo("[3/3] Writing output file...")
    try:
        Path(resolved_output).write_text(content, encoding="utf-8")
    except OSError as exc:
        click.echo(f"  ERROR: Could not write output file: {exc}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"Done!  Wrote '{resolved_output}'.")


# ── midi subcommand ────────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file path. Defaults to <input>.mid.",
)
@click.option(
    "--tempo",
    type=click.IntRange(20, 300),
    default=None,
    help="Playback tempo in BPM. Defaults to the score's tempo option.",
)
def midi(input_file: str, output: str | None, tempo: int | None) -> None:
    """
    Compile a directive file and export its playback as MIDI.

    \b
    Examples:
      tabscore midi song.json
      tabscore midi song.json -o song.mid --tempo 90
    """
    resolved_output = output if output is not None else str(Path(input_file).with_suffix(".mid"))

    click.echo(f"tabscore v{__version__}")
    click.echo(f"  Input  : {input_file}")
    click.echo(f"  Output : {resolved_output}")
    click.echo()

    click.echo("[1/3] Compiling directives...")
    artist = _compile(input_file, DEFAULT_WIDTH)

    click.echo("[2/3] Scheduling playback...")
    player = Player.from_customizations(artist.customizations)
    if tempo is not None:
        player.set_tempo(tempo)
    events = player.schedule(artist.get_player_data())
    click.echo(
        f"      {len(events)} event(s), {player.seconds_for_ticks(player.total_ticks):.1f} s "
        f"at {player.tempo} BPM ({player.instrument})"
    )

    click.echo(f"[3/3] Writing MIDI file → '{resolved_output}'...")
    exporter = MidiExporter(player)
    try:
        exporter.export(events, resolved_output)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write MIDI file: {exc}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"Done!  Open '{resolved_output}' in any MIDI player.")
