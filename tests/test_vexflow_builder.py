"""Unit tests for VexflowScoreBuilder and tree_to_vexflow."""

import pytest

from treechord.duration_resolver import DurationResolver
from treechord.errors import DomainError
from treechord.fraction import Fraction
from treechord.rhythm_models import IrregularGroupElement, NoteElement, RenderableElement, RhythmNode
from treechord.tree_converter import tree_to_vexflow
from treechord.vexflow_builder import VexflowScoreBuilder, duration_to_code, is_valid_to_beam


def _resolve(meter: Fraction, root: RhythmNode) -> list[RenderableElement]:
    return DurationResolver().resolve(meter, root)


def _triplet() -> RhythmNode:
    return RhythmNode(id="t", children=tuple(RhythmNode(id=f"c{i}") for i in range(3)))


def test_duration_codes() -> None:
    assert duration_to_code(1) == "w"
    assert duration_to_code(4) == "q"
    assert duration_to_code(4, is_rest=True) == "qr"
    assert duration_to_code(256) == "256"


def test_duration_code_rejects_unknown_value() -> None:
    with pytest.raises(DomainError):
        duration_to_code(3)


@pytest.mark.parametrize("duration, expected", [(2, False), (4, False), (8, True), (32, True)])
def test_is_valid_to_beam(duration: int, expected: bool) -> None:
    assert is_valid_to_beam(duration) is expected


def test_tied_run_gets_ties_and_maps() -> None:
    elements = _resolve(Fraction(3, 8), RhythmNode(id="a", is_accented=True))
    score = VexflowScoreBuilder().build(elements)

    note_ids = [note.id for note in score.notes]
    tie_ids = [tie.id for tie in score.ties]

    assert [note.duration for note in score.notes] == ["8", "8", "8"]
    assert [note.accented for note in score.notes] == [True, False, False]
    assert [note.keys for note in score.notes] == [["b/4"]] * 3
    assert [(tie.first_note, tie.last_note) for tie in score.ties] == [
        (note_ids[0], note_ids[1]),
        (note_ids[1], note_ids[2]),
    ]
    assert score.source_to_visual == {"a": note_ids + tie_ids}
    assert score.visual_to_source == {visual_id: "a" for visual_id in note_ids + tie_ids}


def test_rest_run_has_no_ties() -> None:
    elements = _resolve(Fraction(3, 8), RhythmNode(id="r", is_rest=True))
    score = VexflowScoreBuilder().build(elements)

    assert [note.duration for note in score.notes] == ["8r", "8r", "8r"]
    assert score.ties == []
    assert len(score.source_to_visual["r"]) == 3


def test_tuplet_is_built_and_mapped() -> None:
    elements = _resolve(Fraction(2, 8), _triplet())
    score = VexflowScoreBuilder().build(elements)

    assert len(score.tuplets) == 1
    tuplet = score.tuplets[0]
    assert tuplet.note_ids == [note.id for note in score.notes]
    assert (tuplet.num_notes, tuplet.notes_occupied, tuplet.suffix) == (3, 2, 8)
    assert score.visual_to_source[tuplet.id] == "t"
    assert score.source_to_visual["t"] == [tuplet.id]
    assert [score.visual_to_source[note.id] for note in score.notes] == ["c0", "c1", "c2"]


def test_nested_tuplet_brackets_cover_inner_notes() -> None:
    inner = RhythmNode(id="inner", children=tuple(RhythmNode(id=f"q{i}") for i in range(5)))
    root = RhythmNode(id="outer", children=(inner, RhythmNode(id="b"), RhythmNode(id="c")))
    score = VexflowScoreBuilder().build(_resolve(Fraction(2, 8), root))

    by_source = {score.visual_to_source[t.id]: t for t in score.tuplets}
    assert len(by_source["inner"].note_ids) == 5
    assert len(by_source["outer"].note_ids) == 7
    assert set(by_source["inner"].note_ids) < set(by_source["outer"].note_ids)


def test_beam_groups_eighths() -> None:
    root = RhythmNode(id="r", children=tuple(RhythmNode(id=f"e{i}", beam_id="b1") for i in range(4)))
    score = VexflowScoreBuilder().build(_resolve(Fraction(2, 4), root))

    assert len(score.beams) == 1
    assert score.beams[0].note_ids == [note.id for note in score.notes]


def test_beam_skipped_when_a_member_is_too_long() -> None:
    pair = RhythmNode(id="pair", children=(RhythmNode(id="a", beam_id="b1"), RhythmNode(id="b", beam_id="b1")))
    root = RhythmNode(id="r", children=(pair, RhythmNode(id="c", beam_id="b1")))
    # a and b are eighths, c is a quarter
    score = VexflowScoreBuilder().build(_resolve(Fraction(2, 4), root))
    assert score.beams == []


def test_single_note_beam_group_is_ignored() -> None:
    root = RhythmNode(id="r", children=(RhythmNode(id="a", beam_id="b1"), RhythmNode(id="b")))
    score = VexflowScoreBuilder().build(_resolve(Fraction(1, 4), root))
    assert score.beams == []


def test_custom_note_name() -> None:
    score = VexflowScoreBuilder(note_name="c/5").build([NoteElement(id="a", duration=4)])
    assert score.notes[0].keys == ["c/5"]


def test_rest_is_never_accented() -> None:
    score = VexflowScoreBuilder().build([NoteElement(id="a", duration=4, is_rest=True, is_accented=True)])
    assert score.notes[0].accented is False


def test_tuplet_without_suffix_raises() -> None:
    group = IrregularGroupElement(
        id="g", children=(NoteElement(id="n", duration=8),), num_notes=1, notes_occupied=1
    )
    with pytest.raises(DomainError):
        VexflowScoreBuilder().build([group])


def test_each_build_starts_fresh() -> None:
    builder = VexflowScoreBuilder()
    elements = _resolve(Fraction(3, 8), RhythmNode(id="a"))

    first = builder.build(elements)
    second = builder.build(elements)

    assert first.visual_to_source == second.visual_to_source
    assert first.visual_to_source is not second.visual_to_source
    assert len(second.notes) == 3


# ---------------------------------------------------------------------------
# tree_to_vexflow
# ---------------------------------------------------------------------------

def test_tree_to_vexflow_result() -> None:
    root = RhythmNode(id="r", children=(_triplet(), RhythmNode(id="b", size=2), RhythmNode(id="c")))
    result = tree_to_vexflow(root, (4, 6))

    assert result.valid_meter_string == "4/4"
    assert isinstance(result.elements[0], IrregularGroupElement)
    assert result.visual_to_source is result.score.visual_to_source
    assert set(result.source_to_visual) == {"t", "c0", "c1", "c2", "b", "c"}
    # b is two tied quarters: two notes and one tie
    assert len(result.source_to_visual["b"]) == 3


def test_tree_to_vexflow_respects_max_tied() -> None:
    halves = tuple(
        RhythmNode(id=half, children=tuple(RhythmNode(id=f"{half}{i}") for i in range(3))) for half in "ab"
    )
    root = RhythmNode(id="r", children=halves)

    # each half of 6/8 is a 3/8 unit, over a cap of 2
    plain = tree_to_vexflow(root, Fraction(6, 8))
    capped = tree_to_vexflow(root, Fraction(6, 8), max_tied=2)

    assert all(isinstance(e, NoteElement) for e in plain.elements)
    assert isinstance(capped.elements[0], IrregularGroupElement)
