"""Renderer implementations for sheet music output formats."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Any, cast

from treechord.sheet_models import ScoreDocument


def _escape_html(text: str) -> str:
    """Escape the three characters that are unsafe in HTML text content."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _score_json(score_document: ScoreDocument, **dump_options: Any) -> str:
    return json.dumps(asdict(score_document), **dump_options)


class SheetRenderer(ABC):
    """Abstract sheet renderer."""

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Default filename extension for this renderer."""

    @abstractmethod
    def render(
        self,
        *,
        title: str,
        musicxml_bytes: bytes | None = None,
        score_document: ScoreDocument | None = None,
    ) -> str:
        """Render output into a file content string."""


class VerovioHtmlRenderer(SheetRenderer):
    """Render one bar of MusicXML into an HTML page with a single inline SVG."""

    # One bar never breaks, so verovio lays it out on a single page whose
    # height shrinks to fit the staff.
    _TOOLKIT_OPTIONS: dict[str, Any] = {
        "pageWidth": 2100,
        "scale": 50,
        "adjustPageHeight": True,
        "breaks": "none",
    }

    @property
    def default_extension(self) -> str:
        return ".html"

    def render(
        self,
        *,
        title: str,
        musicxml_bytes: bytes | None = None,
        score_document: ScoreDocument | None = None,
    ) -> str:
        if musicxml_bytes is None:
            raise ValueError("musicxml_bytes is required for HTML rendering.")

        return self.build_html(title, self.render_svg(musicxml_bytes))

    def render_svg(self, musicxml_bytes: bytes) -> str:
        """
        Render a one-bar MusicXML document to SVG via verovio.

        Raises:
            ValueError: If verovio cannot load the MusicXML data.
        """
        import verovio

        tk = verovio.toolkit()
        tk.setOptions(self._TOOLKIT_OPTIONS)
        if not tk.loadData(musicxml_bytes.decode("utf-8")):
            raise ValueError("verovio could not load the MusicXML data.")
        return cast(str, tk.renderToSVG(1))

    def build_html(self, title: str, svg: str) -> str:
        """Wrap an SVG string in a self-contained HTML document."""
        title_safe = _escape_html(title)
        heading = f"  <h1>{title_safe}</h1>\n" if title else ""

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <title>{title_safe}</title>
  <style>
    body {{ font-family: Georgia, serif; margin: 1.5rem; }}
    .bar svg {{ display: block; max-width: 960px; height: auto; }}
  </style>
</head>
<body>
{heading}  <div class="bar">{svg}</div>
</body>
</html>"""


class VexflowMarkdownRenderer(SheetRenderer):
    """Render a score document into Markdown with an embedded VexFlow script."""

    @property
    def default_extension(self) -> str:
        return ".md"

    def render(
        self,
        *,
        title: str,
        musicxml_bytes: bytes | None = None,
        score_document: ScoreDocument | None = None,
    ) -> str:
        if score_document is None:
            raise ValueError("score_document is required for md-vexflow rendering.")

        title_safe = _escape_html(title)
        score_json = _score_json(score_document, separators=(",", ":"))
        score_json = score_json.replace("</", "<\\/")

        return f"""# {title_safe}

This Markdown uses embedded JavaScript + VexFlow. Open it in a Markdown viewer that allows script execution.

<div id="treechord-score"></div>
<script id="treechord-score-data" type="application/json">{score_json}</script>
<script type="module">
  import {{
    Articulation,
    Beam,
    Formatter,
    Modifier,
    Renderer,
    Stave,
    StaveNote,
    StaveTie,
    Tuplet,
    Voice
  }} from "https://cdn.jsdelivr.net/npm/vexflow@4.2.3/build/esm/entry/vexflow.js";

  const host = document.getElementById("treechord-score");
  const payloadNode = document.getElementById("treechord-score-data");

  if (!host || !payloadNode) {{
    throw new Error("Missing VexFlow score container.");
  }}

  const payload = JSON.parse(payloadNode.textContent || "{{}}");
  const notesById = new Map();

  const staveNotes = payload.notes.map((entry) => {{
    const staveNote = new StaveNote({{ keys: entry.keys, duration: entry.duration }});
    staveNote.setAttribute("id", entry.id);
    if (entry.accented) {{
      staveNote.addModifier(new Articulation("a>").setPosition(Modifier.Position.BELOW));
    }}
    notesById.set(entry.id, staveNote);
    return staveNote;
  }});

  const lookup = (ids) => ids.map((id) => notesById.get(id));

  const tuplets = payload.tuplets.map((entry) => new Tuplet(lookup(entry.note_ids), {{
    num_notes: entry.num_notes,
    notes_occupied: entry.notes_occupied,
    ratioed: true,
  }}));
  const beams = payload.beams.map((entry) => new Beam(lookup(entry.note_ids)));
  const ties = payload.ties.map((entry) => new StaveTie({{
    first_note: notesById.get(entry.first_note),
    last_note: notesById.get(entry.last_note),
    first_indices: [0],
    last_indices: [0],
  }}));

  const width = Math.max(320, staveNotes.length * 48);
  const renderer = new Renderer(host, Renderer.Backends.SVG);
  renderer.resize(width + 60, 180);
  const context = renderer.getContext();

  const stave = new Stave(20, 30, width);
  stave.addClef("treble").addTimeSignature(payload.time_signature);
  stave.setContext(context).draw();

  const voice = new Voice({{ num_beats: payload.beats, beat_value: payload.beat_value }});
  voice.setMode(Voice.Mode.SOFT);
  voice.addTickables(staveNotes);
  new Formatter().joinVoices([voice]).format([voice], width - 80);
  voice.draw(context, stave);

  [...beams, ...tuplets, ...ties].forEach((item) => item.setContext(context).draw());
</script>
"""


class JsonRenderer(SheetRenderer):
    """Render a score document as indented JSON for other front ends."""

    @property
    def default_extension(self) -> str:
        return ".json"

    def render(
        self,
        *,
        title: str,
        musicxml_bytes: bytes | None = None,
        score_document: ScoreDocument | None = None,
    ) -> str:
        if score_document is None:
            raise ValueError("score_document is required for json rendering.")
        return _score_json(score_document, indent=2) + "\n"
