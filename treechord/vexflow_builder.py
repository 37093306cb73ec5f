"""VexflowScoreBuilder: allocates VexFlow visual objects for resolved elements."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Final, assert_never

from treechord.errors import DomainError
from treechord.rhythm_models import IrregularGroupElement, NoteElement, RenderableElement
from treechord.sheet_models import RenderedScore, VexflowBeam, VexflowNote, VexflowTie, VexflowTuplet

logger = logging.getLogger(__name__)

#: VexFlow duration codes keyed by note value.
DURATION_CODES: Final[dict[int, str]] = {
    1: "w",
    2: "h",
    4: "q",
    8: "8",
    16: "16",
    32: "32",
    64: "64",
    128: "128",
    256: "256",
}

#: Eighth notes and shorter carry flags, so they can be beamed.
SHORTEST_UNBEAMABLE: Final[int] = 4


def duration_to_code(duration: int, is_rest: bool = False) -> str:
    """
    Return the VexFlow duration string for a note value, e.g. ``8`` or ``qr``.

    Raises:
        DomainError: If ``duration`` is not a notatable note value.
    """
    try:
        code = DURATION_CODES[duration]
    except KeyError:
        raise DomainError(f"Unsupported duration: {duration}") from None
    return f"{code}r" if is_rest else code


def is_valid_to_beam(duration: int) -> bool:
    return duration > SHORTEST_UNBEAMABLE


@dataclass
class _BuildState:
    """Everything allocated during one ``build`` call."""

    score: RenderedScore = field(default_factory=RenderedScore)
    ids: Iterator[int] = field(default_factory=lambda: itertools.count(1))
    sources: list[NoteElement] = field(default_factory=list)
    note_map: dict[str, list[str]] = field(default_factory=dict)
    tie_map: dict[str, list[str]] = field(default_factory=dict)

    def next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self.ids)}"


class VexflowScoreBuilder:
    """
    Converts resolved elements into VexFlow-shaped visual records.

    For each build:

    1. Every NoteElement becomes a VexflowNote with a fresh id.
    2. Every IrregularGroupElement becomes a VexflowTuplet over all the notes
       it contains, nested groups included.
    3. Tied notes get a VexflowTie to the next note of the same source node.
    4. Notes sharing a beam id get a VexflowBeam when there are at least two
       of them and every one is short enough to be beamed.

    Ids are only unique within one build; nothing is kept between builds.
    """

    DEFAULT_NOTE_NAME = "b/4"  # middle line of the treble staff

    def __init__(self, note_name: str = DEFAULT_NOTE_NAME) -> None:
        """
        Args:
            note_name: VexFlow key every note is drawn on. Only the rhythm matters.
        """
        self.note_name = note_name

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, elements: Sequence[RenderableElement]) -> RenderedScore:
        """
        Allocate notes, tuplets, ties and beams for ``elements``.

        Args:
            elements: Output of ``DurationResolver.resolve`` (suffixes assigned).

        Returns:
            RenderedScore with both id mappings filled in.

        Raises:
            DomainError: If a duration is not notatable or a suffix is missing.
        """
        state = _BuildState()

        for element in elements:
            self._process_element(state, element)

        self._generate_ties(state)
        self._beam_by_group(state)

        score = state.score
        for source_id, visual_ids in state.note_map.items():
            score.source_to_visual[source_id] = visual_ids + state.tie_map.get(source_id, [])
        return score

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _process_element(self, state: _BuildState, element: RenderableElement) -> list[str]:
        if isinstance(element, NoteElement):
            return [self._render_note(state, element)]
        elif isinstance(element, IrregularGroupElement):
            return self._render_tuplet(state, element)
        else:
            assert_never(element)

    def _render_note(self, state: _BuildState, element: NoteElement) -> str:
        note = VexflowNote(
            id=state.next_id("vf"),
            keys=[self.note_name],
            duration=duration_to_code(element.duration, element.is_rest),
            accented=element.is_accented and not element.is_rest,
        )
        state.score.notes.append(note)
        state.sources.append(element)
        self._map_visual(state.note_map, state.score.visual_to_source, element.id, note.id)
        return note.id

    def _render_tuplet(self, state: _BuildState, element: IrregularGroupElement) -> list[str]:
        if not element.suffix:
            raise DomainError(f"Tuplet {element.id} does not have an initialized suffix.", node_id=element.id)

        note_ids: list[str] = []
        for child in element.children:
            note_ids.extend(self._process_element(state, child))

        tuplet = VexflowTuplet(
            id=state.next_id("vf-tuplet"),
            note_ids=note_ids,
            num_notes=element.num_notes,
            notes_occupied=element.notes_occupied,
            suffix=element.suffix,
        )
        state.score.tuplets.append(tuplet)
        self._map_visual(state.note_map, state.score.visual_to_source, element.id, tuplet.id)
        return note_ids

    def _generate_ties(self, state: _BuildState) -> None:
        notes = state.score.notes
        for index, source in enumerate(state.sources):
            if not source.is_tied or source.is_rest:
                continue

            following = state.sources[index + 1] if index + 1 < len(state.sources) else None
            if following is None or following.id != source.id or following.is_rest:
                logger.warning("Could not find the note to tie %s to for node %s", notes[index].id, source.id)
                continue

            tie = VexflowTie(
                id=state.next_id("vf-tie"),
                first_note=notes[index].id,
                last_note=notes[index + 1].id,
            )
            state.score.ties.append(tie)
            self._map_visual(state.tie_map, state.score.visual_to_source, source.id, tie.id)

    def _beam_by_group(self, state: _BuildState) -> None:
        groups: dict[str, list[int]] = {}
        for index, source in enumerate(state.sources):
            if source.beam_id:
                groups.setdefault(source.beam_id, []).append(index)

        for beam_id, indices in groups.items():
            if len(indices) < 2:
                continue
            if not all(is_valid_to_beam(state.sources[i].duration) for i in indices):
                logger.debug("Beam group %s has notes that cannot be beamed", beam_id)
                continue
            state.score.beams.append(
                VexflowBeam(
                    id=state.next_id("vf-beam"),
                    note_ids=[state.score.notes[i].id for i in indices],
                )
            )

    def _map_visual(
        self,
        source_map: dict[str, list[str]],
        visual_map: dict[str, str],
        source_id: str,
        visual_id: str,
    ) -> None:
        source_map.setdefault(source_id, []).append(visual_id)
        visual_map[visual_id] = source_id
