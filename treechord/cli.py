"""TreeChord CLI entry point."""

import sys
from pathlib import Path
from typing import assert_never

import click

from treechord import __version__
from treechord.duration_resolver import DurationResolver
from treechord.errors import DomainError
from treechord.fraction import Fraction
from treechord.rhythm_models import IrregularGroupElement, NoteElement, RenderableElement
from treechord.sheet_exporter import SUPPORTED_FORMATS, SheetExporter, load_tree
from treechord.tree_converter import tree_to_vexflow
from treechord.vexflow_builder import VexflowScoreBuilder

_DEFAULT_SUFFIXES = {"html": ".html", "md-vexflow": ".md", "json": ".json"}


def _parse_meter(ctx: click.Context, param: click.Parameter, value: str) -> Fraction:
    """click callback: turn ``"5/4"`` into an unreduced Fraction."""
    try:
        meter = Fraction.parse(value)
    except DomainError as exc:
        raise click.BadParameter(str(exc)) from exc
    if meter.numerator < 1:
        raise click.BadParameter(f"meter '{value}' must be positive.")
    return meter


def _describe(element: RenderableElement, depth: int = 0) -> list[str]:
    """Return an indented outline of ``element`` for ``inspect``."""
    indent = "  " * depth
    if isinstance(element, NoteElement):
        kind = "rest" if element.is_rest else "note"
        flags = [flag for flag, on in (("tied", element.is_tied), ("accent", element.is_accented)) if on]
        extra = f"  [{', '.join(flags)}]" if flags else ""
        return [f"{indent}{kind} 1/{element.duration}  ({element.id}){extra}"]
    elif isinstance(element, IrregularGroupElement):
        lines = [f"{indent}tuplet {element.ratio} of 1/{element.suffix}  ({element.id})"]
        for child in element.children:
            lines.extend(_describe(child, depth + 1))
        return lines
    else:
        assert_never(element)


meter_option = click.option(
    "--meter",
    "-m",
    required=True,
    callback=_parse_meter,
    metavar="N/D",
    help="Meter of the bar, e.g. 4/4 or 5/7 (the denominator is normalized).",
)
max_tied_option = click.option(
    "--max-tied",
    type=click.IntRange(min=1),
    default=DurationResolver.DEFAULT_MAX_TIED,
    show_default=True,
    help="Longest run of tied notes before falling back to a tuplet.",
)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="treechord")
def main() -> None:
    """TreeChord — rhythm tree to sheet music converter."""


# ── render subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("tree_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@meter_option
@max_tied_option
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination file path. Defaults to <tree>-score with an extension based on --format.",
)
@click.option(
    "--title",
    default=None,
    metavar="TEXT",
    help="Title shown in the output header. Defaults to the tree filename stem.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(sorted(SUPPORTED_FORMATS), case_sensitive=False),
    default="md-vexflow",
    show_default=True,
    help="Output format: HTML (verovio), Markdown with VexFlow script, or JSON.",
)
@click.option(
    "--note-name",
    default=VexflowScoreBuilder.DEFAULT_NOTE_NAME,
    show_default=True,
    help="Staff position every note is drawn on.",
)
def render(
    tree_file: str,
    meter: Fraction,
    max_tied: int,
    output: str | None,
    title: str | None,
    output_format: str,
    note_name: str,
) -> None:
    """
    Render a rhythm tree JSON file as one bar of sheet music.

    TREE_FILE is a JSON object with id, size, children, isRest, isAccented
    and beamID keys.

    \b
    Examples:
      treechord render tree.json --meter 4/4
      treechord render tree.json --meter 5/8 --format html -o bar.html
      treechord render tree.json --meter 3/4 --max-tied 2 --format json
    """
    tree_path = Path(tree_file)
    resolved_title = title if title is not None else tree_path.stem.replace("_", " ")
    normalized_format = output_format.lower()
    resolved_output = (
        output
        if output is not None
        else str(tree_path.with_name(f"{tree_path.stem}-score{_DEFAULT_SUFFIXES[normalized_format]}"))
    )

    click.echo(f"treechord v{__version__}")
    click.echo(f"  Tree   : {tree_file}")
    click.echo(f"  Meter  : {meter}")
    click.echo(f"  Format : {normalized_format}")
    click.echo(f"  Output : {resolved_output}")
    click.echo()

    exporter = SheetExporter(
        title=resolved_title,
        output_format=normalized_format,
        max_tied=max_tied,
        note_name=note_name,
    )
    try:
        exporter.export(tree_file, meter, resolved_output)
    except DomainError as exc:
        click.echo(f"  ERROR: Could not notate rhythm tree — {exc}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write output file — {exc}", err=True)
        sys.exit(1)
    except ValueError as exc:
        click.echo(f"  ERROR: Could not render score — {exc}", err=True)
        sys.exit(1)

    click.echo(f"Done!  Wrote '{resolved_output}'.")


# ── inspect subcommand ─────────────────────────────────────────────────────────

@main.command()
@click.argument("tree_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@meter_option
@max_tied_option
def inspect(tree_file: str, meter: Fraction, max_tied: int) -> None:
    """
    Print the notes and tuplets a rhythm tree resolves to.

    \b
    Example:
      treechord inspect tree.json --meter 4/4
    """
    try:
        result = tree_to_vexflow(load_tree(tree_file), meter, max_tied=max_tied)
    except DomainError as exc:
        click.echo(f"ERROR: {exc}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"ERROR: Could not read tree file — {exc}", err=True)
        sys.exit(1)
    except ValueError as exc:
        click.echo(f"ERROR: Could not resolve rhythm tree — {exc}", err=True)
        sys.exit(1)

    click.echo(f"Meter: {result.valid_meter_string}")
    for element in result.elements:
        for line in _describe(element):
            click.echo(line)
