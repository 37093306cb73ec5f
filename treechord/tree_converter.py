"""tree_to_vexflow: one-call conversion from a rhythm tree to rendered VexFlow records."""

from __future__ import annotations

from dataclasses import dataclass

from treechord.duration_resolver import DurationResolver, normalize_meter
from treechord.fraction import Fraction
from treechord.rhythm_models import RenderableElement, RhythmNode
from treechord.sheet_models import RenderedScore
from treechord.vexflow_builder import VexflowScoreBuilder


@dataclass
class ConversionResult:
    """
    Everything a front end needs to draw one bar and map clicks back to the tree.

    Attributes:
        elements:           Flat resolved elements (notes and tuplets).
        valid_meter_string: Meter with its denominator normalized, e.g. ``"5/4"``.
        visual_to_source:   Rendered id → RhythmNode id.
        source_to_visual:   RhythmNode id → rendered note ids, then tie ids.
        score:              The rendered visual records themselves.
    """

    elements: list[RenderableElement]
    valid_meter_string: str
    visual_to_source: dict[str, str]
    source_to_visual: dict[str, list[str]]
    score: RenderedScore


def as_meter(meter: Fraction | tuple[int, int]) -> Fraction:
    """Accept a Fraction or a ``(numerator, denominator)`` pair."""
    if isinstance(meter, Fraction):
        return meter
    numerator, denominator = meter
    return Fraction(numerator, denominator)


def tree_to_vexflow(
    root: RhythmNode,
    meter: Fraction | tuple[int, int],
    *,
    max_tied: int = DurationResolver.DEFAULT_MAX_TIED,
    note_name: str = VexflowScoreBuilder.DEFAULT_NOTE_NAME,
) -> ConversionResult:
    """
    Resolve ``root`` against ``meter`` and build the VexFlow visual records.

    Raises:
        DomainError: If the tree cannot be notated in this meter.
    """
    bar_meter = as_meter(meter)
    elements = DurationResolver(max_tied=max_tied).resolve(bar_meter, root)
    score = VexflowScoreBuilder(note_name=note_name).build(elements)

    return ConversionResult(
        elements=elements,
        valid_meter_string=str(normalize_meter(bar_meter)),
        visual_to_source=score.visual_to_source,
        source_to_visual=score.source_to_visual,
        score=score,
    )
