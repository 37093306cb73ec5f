"""DurationResolver: turns a rhythm tree into a flat list of notes and tuplets."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Final, assert_never

from treechord.errors import DomainError
from treechord.fraction import Fraction
from treechord.rhythm_models import (
    IrregularGroupElement,
    NoteElement,
    RenderableElement,
    RhythmNode,
    is_valid_duration,
)

logger = logging.getLogger(__name__)

# Upper bounds (inclusive) of each denominator range and the note value it maps to.
# The break points come from looking at scores and asking musicians, so they are
# a table rather than a nearest-power-of-two rule.
_DENOMINATOR_BREAKPOINTS: Final[list[tuple[int, int]]] = [
    (1, 1),
    (3, 2),
    (7, 4),
    (12, 8),
    (24, 16),
    (54, 32),
    (114, 64),
    (239, 128),
]
_LARGEST_DURATION: Final[int] = 256


def normalize_denominator(denominator: int) -> int:
    """
    Map any meter denominator to the closest notatable note value.

    Args:
        denominator: Positive integer, e.g. the 7 of a 5/7 meter.

    Returns:
        One of 1, 2, 4, ... 256.

    Raises:
        DomainError: If ``denominator`` is not a positive integer.
    """
    if isinstance(denominator, bool) or not isinstance(denominator, int) or denominator < 1:
        raise DomainError(f"Meter denominator must be a positive integer, got {denominator!r}.")

    for upper_bound, duration in _DENOMINATOR_BREAKPOINTS:
        if denominator <= upper_bound:
            return duration
    return _LARGEST_DURATION


def element_span(element: RenderableElement) -> Fraction:
    """
    Return how much of a whole note an element actually fills.

    A note fills ``1/duration``; a tuplet fills ``notes_occupied/suffix``.

    Raises:
        DomainError: If a tuplet's suffix has not been assigned yet.
    """
    if isinstance(element, NoteElement):
        return Fraction(1, element.duration)
    elif isinstance(element, IrregularGroupElement):
        if not element.suffix:
            raise DomainError(
                f"Suffix not created correctly for tuplet {element.id}.",
                node_id=element.id,
            )
        return Fraction(element.notes_occupied, element.suffix)
    else:
        assert_never(element)


def total_span(elements: Iterable[RenderableElement]) -> Fraction:
    """Sum of ``element_span`` over ``elements``."""
    total = Fraction.zero()
    for element in elements:
        total = total.add(element_span(element))
    return total.reduce()


class DurationResolver:
    """
    Classifies every node of a rhythm tree as plain notes, tied notes or a tuplet.

    Algorithm overview
    ------------------
    Starting from the normalized meter as the root span, each node is handled
    as follows:

    1. **Leaf** – the span ``n/d`` becomes ``n`` notes of value ``d``, tied
       together unless the node is a rest.

    2. **Plain subdivision** – the span is divided by the sum of the children's
       sizes. If that unit has a notatable denominator and no resulting tied
       run would be longer than *max_tied*, every child gets ``unit × size``.

    3. **Tuplet** – otherwise the node becomes one IrregularGroupElement. Its
       children are measured against ``1/d`` of the node's own denominator, so
       five equal parts of a 2/8 span become five eighths in the time of two
       rather than an unnotatable 1/20 note. A group of n notes in the time of
       n would leave its children's spans unchanged, so an over-long tied run
       there is an error rather than a tuplet.

    A final pass assigns each tuplet its suffix, innermost groups first.
    """

    DEFAULT_MAX_TIED = 3

    def __init__(self, max_tied: int = DEFAULT_MAX_TIED) -> None:
        """
        Args:
            max_tied: Longest run of tied notes allowed before a subdivision
                      falls back to tuplet notation.

        Raises:
            ValueError: If ``max_tied`` is not a positive integer.
        """
        if isinstance(max_tied, bool) or not isinstance(max_tied, int) or max_tied < 1:
            raise ValueError(f"max_tied must be a positive integer, got {max_tied!r}.")
        self.max_tied = max_tied

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, meter: Fraction, root: RhythmNode) -> list[RenderableElement]:
        """
        Convert a rhythm tree for one bar into renderable elements.

        Args:
            meter: Time signature of the bar. Its denominator is normalized
                   first, so 5/6 is treated as 5/4.
            root:  Root of the rhythm tree.

        Returns:
            Flat, ordered elements with every tuplet suffix assigned.

        Raises:
            DomainError: If the tree cannot be notated in this meter.
        """
        if meter.numerator < 1:
            raise DomainError(f"Meter {meter} must have a positive numerator.", node_id=root.id, span=meter)

        root_span = normalize_meter(meter)
        if root.is_leaf:
            # a lone leaf fills the bar with as few notes as it can
            root_span = root_span.reduce()
            self._check_tied_run(root, root_span)

        elements = self._convert_node(root, root_span)
        return self.assign_suffixes(elements)

    def assign_suffixes(self, elements: Sequence[RenderableElement]) -> list[RenderableElement]:
        """
        Return ``elements`` with every tuplet's suffix computed.

        The suffix is the denominator of the tuplet's unit note:
        ``(sum of child spans / num_notes)`` in lowest terms. Nested tuplets are
        resolved before the tuplet containing them.

        Raises:
            DomainError: If a tuplet has no children or ``num_notes`` is 0.
        """
        return [self._with_suffix(element) for element in elements]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _convert_node(self, node: RhythmNode, containing_span: Fraction) -> list[RenderableElement]:
        if node.is_leaf:
            return list(self._convert_to_notes(node, containing_span))

        child_unit = containing_span.divide(node.children_size).reduce()

        if self._fits_plain_notation(node, child_unit):
            logger.debug("Node %s: plain subdivision with unit %s", node.id, child_unit)
            return self._convert_children(node.children, child_unit)

        if node.children_size == containing_span.numerator:
            # an n:n tuplet would hand every child the same span again
            for child in node.children:
                if child.is_leaf:
                    self._check_tied_run(child, child_unit.multiply(child.size))

        logger.debug("Node %s: unit %s needs a tuplet in span %s", node.id, child_unit, containing_span)
        return [self._convert_to_tuplet(node, containing_span)]

    def _fits_plain_notation(self, node: RhythmNode, child_unit: Fraction) -> bool:
        if not is_valid_duration(child_unit.denominator):
            return False
        if child_unit.numerator > self.max_tied:
            return False
        # leaf children become tied runs; rests are never tied so they are exempt
        return all(
            child_unit.numerator * child.size <= self.max_tied
            for child in node.children
            if child.is_leaf and not child.is_rest
        )

    def _check_tied_run(self, node: RhythmNode, span: Fraction) -> None:
        if not node.is_rest and span.numerator > self.max_tied:
            raise DomainError(
                f"Node {node.id} spans {span} and would need {span.numerator} tied notes; "
                f"max_tied is {self.max_tied}.",
                node_id=node.id,
                span=span,
            )

    def _convert_children(
        self, children: Sequence[RhythmNode], child_unit: Fraction
    ) -> list[RenderableElement]:
        converted: list[RenderableElement] = []
        for child in children:
            converted.extend(self._convert_node(child, child_unit.multiply(child.size)))
        return converted

    def _convert_to_tuplet(self, node: RhythmNode, containing_span: Fraction) -> IrregularGroupElement:
        rebased_unit = Fraction(1, containing_span.denominator)
        children = self._convert_children(node.children, rebased_unit)
        return IrregularGroupElement(
            id=node.id,
            children=tuple(children),
            num_notes=node.children_size,
            notes_occupied=containing_span.numerator,
        )

    def _convert_to_notes(self, node: RhythmNode, containing_span: Fraction) -> tuple[NoteElement, ...]:
        note_value = containing_span.denominator

        if not is_valid_duration(note_value):
            raise DomainError(
                f"Tried to create note with duration 1/{note_value} for node {node.id}.",
                node_id=node.id,
                span=containing_span,
            )
        if containing_span.numerator < 1:
            raise DomainError(
                f"Node {node.id} has a span of {containing_span}; a leaf needs at least one note.",
                node_id=node.id,
                span=containing_span,
            )

        if containing_span.numerator == 1:
            return (
                NoteElement(
                    id=node.id,
                    duration=note_value,
                    is_rest=node.is_rest,
                    is_accented=node.is_accented and not node.is_rest,
                    beam_id=node.beam_id,
                ),
            )
        return self._create_tied_run(node, containing_span.numerator, note_value)

    def _create_tied_run(self, node: RhythmNode, count: int, note_value: int) -> tuple[NoteElement, ...]:
        if node.is_rest:
            # Rests are not tied: just repeat them
            return tuple(
                NoteElement(id=node.id, duration=note_value, is_rest=True, beam_id=node.beam_id)
                for _ in range(count)
            )

        return tuple(
            NoteElement(
                id=node.id,
                duration=note_value,
                is_accented=node.is_accented and index == 0,
                is_tied=index < count - 1,
                beam_id=node.beam_id,
            )
            for index in range(count)
        )

    def _with_suffix(self, element: RenderableElement) -> RenderableElement:
        if isinstance(element, NoteElement):
            return element
        elif isinstance(element, IrregularGroupElement):
            if not element.children:
                raise DomainError(
                    f"Tuplet {element.id} has no children; cannot calculate suffix.",
                    node_id=element.id,
                )
            if element.num_notes == 0:
                raise DomainError(f"Tuplet {element.id} has 0 notes; invalid.", node_id=element.id)

            children = tuple(self._with_suffix(child) for child in element.children)
            unit_size = total_span(children).divide(element.num_notes).reduce()

            if unit_size.numerator != 1:
                logger.warning("Non-unit fraction encountered in %s: %s", element.id, unit_size)

            return replace(element, children=children, suffix=unit_size.denominator)
        else:
            assert_never(element)


def normalize_meter(meter: Fraction) -> Fraction:
    """Return ``meter`` with its denominator normalized (never reduced)."""
    return Fraction(meter.numerator, normalize_denominator(meter.denominator))
