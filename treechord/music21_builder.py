"""Music21ScoreBuilder: builds a music21 score from resolved elements for MusicXML export."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Final, assert_never

from treechord.errors import DomainError
from treechord.rhythm_models import IrregularGroupElement, NoteElement, RenderableElement

#: music21 duration type names keyed by note value.
DURATION_TYPES: Final[dict[int, str]] = {
    1: "whole",
    2: "half",
    4: "quarter",
    8: "eighth",
    16: "16th",
    32: "32nd",
    64: "64th",
    128: "128th",
    256: "256th",
}

_GroupChain = tuple[IrregularGroupElement, ...]


class Music21ScoreBuilder:
    """
    Build a one-bar music21 Score from resolved elements.

    Each note is typed from its note value and carries one music21 Tuplet per
    enclosing irregular group, outermost first, so nested tuplets keep their
    exact quarter lengths. Tied runs get start/continue/stop ties.
    """

    DEFAULT_PITCH = "B4"

    def __init__(self, pitch: str = DEFAULT_PITCH) -> None:
        self.pitch = pitch

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, elements: Sequence[RenderableElement], meter_string: str, title: str = "") -> Any:
        """
        Create a Score with a single part and a single measure.

        Args:
            elements:     Resolved elements with tuplet suffixes assigned.
            meter_string: Normalized meter, e.g. ``"5/4"``.
            title:        Stored in the score metadata when not empty.

        Raises:
            DomainError: If a duration is not notatable or a suffix is missing.
        """
        from music21 import clef, metadata, meter, stream

        leaves = self._flatten(elements, ())
        first_leaf: dict[int, int] = {}
        last_leaf: dict[int, int] = {}
        for index, (_, chain) in enumerate(leaves):
            for group in chain:
                first_leaf.setdefault(id(group), index)
                last_leaf[id(group)] = index

        measure = stream.Measure(number=1)
        measure.append(clef.TrebleClef())
        measure.append(meter.TimeSignature(meter_string))

        for index, (element, chain) in enumerate(leaves):
            previous = leaves[index - 1][0] if index > 0 else None
            tied_in = (
                previous is not None
                and previous.is_tied
                and not previous.is_rest
                and previous.id == element.id
            )
            tuplet_types = [
                self._bracket_type(index, first_leaf[id(group)], last_leaf[id(group)]) for group in chain
            ]
            measure.append(self._create_note(element, chain, tuplet_types, tied_in))

        part = stream.Part()
        part.append(measure)

        score = stream.Score()
        if title:
            score.metadata = metadata.Metadata(title=title)
        score.insert(0, part)
        return score

    def to_musicxml_bytes(self, score: Any) -> bytes:
        from music21.musicxml.m21ToXml import GeneralObjectExporter

        exporter = GeneralObjectExporter(score)
        return exporter.parse()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _flatten(
        self, elements: Sequence[RenderableElement], chain: _GroupChain
    ) -> list[tuple[NoteElement, _GroupChain]]:
        leaves: list[tuple[NoteElement, _GroupChain]] = []
        for element in elements:
            if isinstance(element, NoteElement):
                leaves.append((element, chain))
            elif isinstance(element, IrregularGroupElement):
                if not element.suffix:
                    raise DomainError(
                        f"Tuplet {element.id} does not have an initialized suffix.",
                        node_id=element.id,
                    )
                leaves.extend(self._flatten(element.children, chain + (element,)))
            else:
                assert_never(element)
        return leaves

    def _bracket_type(self, index: int, first: int, last: int) -> str | None:
        if first == last:
            return "startStop"
        if index == first:
            return "start"
        if index == last:
            return "stop"
        return None

    def _create_note(
        self,
        element: NoteElement,
        chain: _GroupChain,
        tuplet_types: list[str | None],
        tied_in: bool,
    ) -> Any:
        from music21 import articulations, duration, note, tie

        try:
            type_name = DURATION_TYPES[element.duration]
        except KeyError:
            raise DomainError(f"Unsupported duration: {element.duration}", node_id=element.id) from None

        if element.is_rest:
            general_note = note.Rest()
        else:
            general_note = note.Note(self.pitch)

        general_note.duration = duration.Duration(type_name)
        for group, bracket in zip(chain, tuplet_types):
            tuplet = duration.Tuplet(
                numberNotesActual=group.num_notes,
                numberNotesNormal=group.notes_occupied,
            )
            tuplet.setDurationType(DURATION_TYPES.get(group.suffix or 0, type_name))
            tuplet.type = bracket
            general_note.duration.appendTuplet(tuplet)

        if element.is_rest:
            return general_note

        if element.is_accented:
            general_note.articulations.append(articulations.Accent())

        if tied_in and element.is_tied:
            general_note.tie = tie.Tie("continue")
        elif element.is_tied:
            general_note.tie = tie.Tie("start")
        elif tied_in:
            general_note.tie = tie.Tie("stop")
        return general_note
