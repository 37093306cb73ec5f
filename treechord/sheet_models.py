"""Data models for sheet music rendering outputs."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class VexflowNote:
    """A single VexFlow note or rest token."""

    id: str
    keys: list[str]
    duration: str
    accented: bool = False


@dataclass(frozen=True)
class VexflowTie:
    """A tie between two consecutive notes of the same source node."""

    id: str
    first_note: str
    last_note: str


@dataclass(frozen=True)
class VexflowBeam:
    """A beam spanning notes that share a beam id."""

    id: str
    note_ids: list[str]


@dataclass(frozen=True)
class VexflowTuplet:
    """A tuplet bracket over every note inside an irregular group."""

    id: str
    note_ids: list[str]
    num_notes: int
    notes_occupied: int
    suffix: int


@dataclass
class RenderedScore:
    """
    Visual objects for one bar plus the id mappings back to the rhythm tree.

    Attributes:
        visual_to_source: Rendered id (note, tie or tuplet) → RhythmNode id.
        source_to_visual: RhythmNode id → rendered note ids, then tie ids.
    """

    notes: list[VexflowNote] = field(default_factory=list)
    ties: list[VexflowTie] = field(default_factory=list)
    beams: list[VexflowBeam] = field(default_factory=list)
    tuplets: list[VexflowTuplet] = field(default_factory=list)
    visual_to_source: dict[str, str] = field(default_factory=dict)
    source_to_visual: dict[str, list[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class ScoreDocument:
    """Neutral score representation consumed by non-Verovio renderers."""

    title: str
    time_signature: str
    beats: int
    beat_value: int
    notes: list[VexflowNote]
    ties: list[VexflowTie]
    beams: list[VexflowBeam]
    tuplets: list[VexflowTuplet]
