"""SheetExporter: converts rhythm-tree JSON files to HTML, Markdown or JSON sheet outputs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Final

from treechord.duration_resolver import DurationResolver
from treechord.errors import DomainError
from treechord.fraction import Fraction
from treechord.music21_builder import Music21ScoreBuilder
from treechord.rhythm_models import RhythmNode
from treechord.sheet_models import ScoreDocument
from treechord.sheet_renderers import (
    JsonRenderer,
    SheetRenderer,
    VerovioHtmlRenderer,
    VexflowMarkdownRenderer,
)
from treechord.tree_converter import ConversionResult, tree_to_vexflow
from treechord.vexflow_builder import VexflowScoreBuilder

SUPPORTED_FORMATS: Final[set[str]] = {"html", "md-vexflow", "json"}


def load_tree(tree_path: str | Path) -> RhythmNode:
    """
    Read a rhythm tree from a JSON file.

    Raises:
        OSError:     If the file cannot be read.
        DomainError: If the JSON is not a valid rhythm tree.
    """
    with open(tree_path, encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise DomainError(f"{tree_path} is not valid JSON: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise DomainError(f"{tree_path} is not UTF-8 text: {exc}") from exc

    if not isinstance(data, dict):
        raise DomainError(f"{tree_path} must contain a JSON object for the root node.")
    return RhythmNode.from_dict(data)


class SheetExporter:
    """
    Convert a rhythm tree into sheet output via a pluggable renderer.

    Supported formats:
    - ``html``: music21 score -> MusicXML -> Verovio -> inline SVG in an HTML file.
    - ``md-vexflow``: markdown file with embedded VexFlow JavaScript renderer.
    - ``json``: the VexFlow score document as JSON.
    """

    def __init__(
        self,
        title: str = "",
        output_format: str = "html",
        max_tied: int = DurationResolver.DEFAULT_MAX_TIED,
        note_name: str = VexflowScoreBuilder.DEFAULT_NOTE_NAME,
    ) -> None:
        self.title = title
        normalized = output_format.strip().lower()
        if normalized not in SUPPORTED_FORMATS:
            supported = ", ".join(sorted(SUPPORTED_FORMATS))
            raise ValueError(f"Unsupported output format '{output_format}'. Use one of: {supported}.")
        self.output_format = normalized
        self.max_tied = max_tied
        self.note_name = note_name
        self.renderer = self._build_renderer(normalized)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_renderer(self, output_format: str) -> SheetRenderer:
        if output_format == "html":
            return VerovioHtmlRenderer()
        if output_format == "json":
            return JsonRenderer()
        return VexflowMarkdownRenderer()

    def _result_to_document(self, result: ConversionResult) -> ScoreDocument:
        beats, beat_value = (int(part) for part in result.valid_meter_string.split("/"))
        return ScoreDocument(
            title=self.title,
            time_signature=result.valid_meter_string,
            beats=beats,
            beat_value=beat_value,
            notes=result.score.notes,
            ties=result.score.ties,
            beams=result.score.beams,
            tuplets=result.score.tuplets,
        )

    def _result_to_musicxml_bytes(self, result: ConversionResult) -> bytes:
        builder = Music21ScoreBuilder(pitch=self._note_name_to_pitch(self.note_name))
        score = builder.build(result.elements, result.valid_meter_string, title=self.title)
        return builder.to_musicxml_bytes(score)

    def _note_name_to_pitch(self, note_name: str) -> str:
        """Convert a VexFlow key such as ``b/4`` or ``f#/5`` to a music21 pitch name."""
        name, _, octave = note_name.partition("/")
        if not name:
            return Music21ScoreBuilder.DEFAULT_PITCH
        step, accidental = name[0].upper(), name[1:].replace("b", "-")
        return f"{step}{accidental}{octave or 4}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def convert(self, root: RhythmNode, meter: Fraction) -> ConversionResult:
        return tree_to_vexflow(root, meter, max_tied=self.max_tied, note_name=self.note_name)

    def render(self, root: RhythmNode, meter: Fraction) -> str:
        """
        Convert a rhythm tree and render it in the selected format.

        Raises:
            DomainError: If the tree cannot be notated in this meter.
            ValueError:  If rendering fails.
        """
        result = self.convert(root, meter)

        if self.output_format == "html":
            return self.renderer.render(
                title=self.title,
                musicxml_bytes=self._result_to_musicxml_bytes(result),
            )
        return self.renderer.render(
            title=self.title,
            score_document=self._result_to_document(result),
        )

    def export(self, tree_path: str, meter: Fraction, output_path: str) -> None:
        """
        Convert a rhythm-tree JSON file into the selected sheet format and write it to disk.

        Raises:
            DomainError: If the tree is malformed or cannot be notated in this meter.
            ValueError:  If rendering fails or required data is missing.
            OSError:     If a file cannot be read or written.
        """
        content = self.render(load_tree(tree_path), meter)

        with open(output_path, "w", encoding="utf-8") as fh:
            fh.write(content)
