"""Data models for the rhythm tree input and the flat renderable output."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final, TypeAlias

from treechord.errors import DomainError

#: Note values that can be notated directly, as "1/n of a whole note".
VALID_DURATIONS: Final[tuple[int, ...]] = (1, 2, 4, 8, 16, 32, 64, 128, 256)


def is_valid_duration(value: int) -> bool:
    """Return True if ``value`` is one of the notatable note values."""
    return value in VALID_DURATIONS


class RhythmType(Enum):
    NOTE = "note"
    TUPLET = "tuplet"


# ── Input tree ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RhythmNode:
    """
    One node of a rhythm tree.

    A node's span is split among its children in proportion to their ``size``.
    A node without children is a leaf and becomes one or more notes.

    Attributes:
        id:          Opaque identifier, reported back in the id mappings.
        size:        Weight relative to the node's siblings (positive integer).
        children:    Ordered child nodes; empty for a leaf.
        is_rest:     Render the leaf as a rest.
        is_accented: Put an accent on the leaf's first note.
        beam_id:     Notes sharing a beam id are beamed together when possible.
    """

    id: str
    size: int = 1
    children: tuple[RhythmNode, ...] = ()
    is_rest: bool = False
    is_accented: bool = False
    beam_id: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size <= 0:
            raise DomainError(
                f"Node {self.id} has size {self.size!r}; sizes must be positive integers.",
                node_id=self.id,
            )

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def children_size(self) -> int:
        """Sum of the children's sizes (0 for a leaf)."""
        return sum(child.size for child in self.children)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RhythmNode:
        """
        Build a tree from nested dicts, e.g. parsed JSON.

        Both camelCase keys (``isRest``, ``isAccented``, ``beamID``) and
        snake_case keys are accepted.

        Raises:
            DomainError: If a node is not an object, has no id, an invalid size
                         or a children value that is not a list.
        """
        if not isinstance(data, dict):
            raise DomainError(f"Rhythm node must be an object, got {data!r}")
        if "id" not in data:
            raise DomainError(f"Rhythm node is missing an 'id': {data!r}")

        children = data.get("children", [])
        if not isinstance(children, list):
            raise DomainError(
                f"Children of rhythm node {data['id']} must be a list, got {children!r}",
                node_id=str(data["id"]),
            )

        beam_id = data.get("beamID", data.get("beam_id"))
        return cls(
            id=str(data["id"]),
            size=data.get("size", 1),
            children=tuple(cls.from_dict(child) for child in children),
            is_rest=bool(data.get("isRest", data.get("is_rest", False))),
            is_accented=bool(data.get("isAccented", data.get("is_accented", False))),
            beam_id=None if beam_id is None else str(beam_id),
        )


# ── Flat renderable output ──────────────────────────────────────────────────

@dataclass(frozen=True)
class NoteElement:
    """
    A single note or rest of a notatable duration.

    Attributes:
        id:          Id of the RhythmNode this note came from.
        duration:    Note value as "1/duration of a whole note" (1, 2, 4, ... 256).
        is_tied:     Tied to the next note that shares the same source id.
    """

    id: str
    duration: int
    is_rest: bool = False
    is_accented: bool = False
    is_tied: bool = False
    beam_id: str | None = None
    kind: RhythmType = field(default=RhythmType.NOTE, init=False)


@dataclass(frozen=True)
class IrregularGroupElement:
    """
    A tuplet: ``num_notes`` notated units played in the time of ``notes_occupied``.

    ``suffix`` is the note value of one tuplet unit. It is filled in by the
    suffix post-pass and is None before that.
    """

    id: str
    children: tuple[RenderableElement, ...]
    num_notes: int
    notes_occupied: int
    suffix: int | None = None
    kind: RhythmType = field(default=RhythmType.TUPLET, init=False)

    @property
    def ratio(self) -> str:
        return f"{self.num_notes}:{self.notes_occupied}"


RenderableElement: TypeAlias = NoteElement | IrregularGroupElement
