"""Renderers that hand a compiled score layout to a layout engine."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Any

from tabscore.notes import NoteLink, Tuplet
from tabscore.score_models import NotationStave, ScoreLayout, StaveLayout, TabStave, VoiceLayout


def _escape_html(text: str) -> str:
    """Escape the three characters that are unsafe in HTML text content."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def layout_to_dict(layout: ScoreLayout) -> dict[str, Any]:
    """
    Convert a layout into plain JSON-compatible data.

    Notes are serialised inline in their voices; links refer to notes by id.
    """
    return {
        "width": layout.width,
        "height": layout.height,
        "scale": layout.scale,
        "font": asdict(layout.font),
        "staves": [_stave_to_dict(stave) for stave in layout.staves],
        "tab_links": [_link_to_dict(link) for link in layout.tab_links],
        "notation_links": [_link_to_dict(link) for link in layout.notation_links],
    }


class ScoreRenderer(ABC):
    """Abstract score renderer."""

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Default filename extension for this renderer."""

    @abstractmethod
    def render(self, layout: ScoreLayout) -> str:
        """Render a layout into a file content string."""


class JsonLayoutRenderer(ScoreRenderer):
    """Serialise the layout as JSON for an external layout engine."""

    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent

    @property
    def default_extension(self) -> str:
        return ".json"

    def render(self, layout: ScoreLayout) -> str:
        return json.dumps(layout_to_dict(layout), indent=self.indent)


class VexflowMarkdownRenderer(ScoreRenderer):
    """Render a layout into Markdown with an embedded VexFlow script."""

    def __init__(self, title: str = "") -> None:
        self.title = title

    @property
    def default_extension(self) -> str:
        return ".md"

    def render(self, layout: ScoreLayout) -> str:
        title_safe = _escape_html(self.title or "Score")
        score_json = json.dumps(layout_to_dict(layout), separators=(",", ":"))
        score_json = score_json.replace("</", "<\\/")

        return f"""# {title_safe}

This Markdown uses embedded JavaScript + VexFlow. Open it in a Markdown viewer that allows script execution.

<style>
  #tabscore-score {{
    border: 1px solid #d8d8d8;
    border-radius: 8px;
    background: #ffffff;
    padding: 0.5rem;
    margin-top: 1rem;
    overflow-x: auto;
  }}
</style>

<div id="tabscore-score"></div>
<script id="tabscore-score-data" type="application/json">{score_json}</script>
<script type="module">
  import {{
    Accidental,
    Annotation,
    Articulation,
    BarNote,
    BarlineType,
    Beam,
    Bend,
    Dot,
    Formatter,
    Fraction,
    FretHandFinger,
    GhostNote,
    Modifier,
    Renderer,
    Stave,
    StaveConnector,
    StaveNote,
    StaveTie,
    StringNumber,
    Stroke,
    TabNote,
    TabSlide,
    TabStave,
    TabTie,
    TextNote,
    Tuplet,
    Vibrato,
    Voice
  }} from "https://cdn.jsdelivr.net/npm/vexflow@4.2.3/build/esm/entry/vexflow.js";

  const host = document.getElementById("tabscore-score");
  const payloadNode = document.getElementById("tabscore-score-data");

  if (!host || !payloadNode) {{
    throw new Error("Missing VexFlow score container.");
  }}

  const payload = JSON.parse(payloadNode.textContent || "{{}}");
  const renderer = new Renderer(host, Renderer.Backends.SVG);
  renderer.resize(payload.width || 600, payload.height || 200);
  const context = renderer.getContext();
  context.scale(payload.scale || 1, payload.scale || 1);

  const POSITIONS = {{
    left: Modifier.Position.LEFT,
    right: Modifier.Position.RIGHT,
    above: Modifier.Position.ABOVE,
    below: Modifier.Position.BELOW,
  }};
  const BARS = {{
    "single": BarlineType.SINGLE,
    "double": BarlineType.DOUBLE,
    "end": BarlineType.END,
    "repeat-begin": BarlineType.REPEAT_BEGIN,
    "repeat-end": BarlineType.REPEAT_END,
    "repeat-both": BarlineType.REPEAT_BOTH,
  }};
  const STROKES = {{
    brush_up: Stroke.Type.BRUSH_UP,
    brush_down: Stroke.Type.BRUSH_DOWN,
    roll_up: Stroke.Type.ROLL_UP,
    roll_down: Stroke.Type.ROLL_DOWN,
    rasquedo_up: Stroke.Type.RASQUEDO_UP,
    rasquedo_down: Stroke.Type.RASQUEDO_DOWN,
  }};
  const JUSTIFY = {{
    left: TextNote.Justification.LEFT,
    center: TextNote.Justification.CENTER,
    right: TextNote.Justification.RIGHT,
  }};

  const notesById = new Map();

  const makeModifier = (spec) => {{
    switch (spec.kind) {{
      case "Accidental": {{
        const accidental = new Accidental(spec.type);
        if (spec.cautionary) accidental.setAsCautionary();
        return accidental;
      }}
      case "Annotation": {{
        const annotation = new Annotation(spec.text);
        if (spec.font) annotation.setFont(spec.font.family, spec.font.size, spec.font.style || "");
        annotation.setVerticalJustification(
          spec.vertical_justification === "top"
            ? Annotation.VerticalJustify.TOP
            : Annotation.VerticalJustify.BOTTOM,
        );
        return annotation;
      }}
      case "Articulation":
        return new Articulation(spec.type).setPosition(POSITIONS[spec.position]);
      case "Vibrato":
        return new Vibrato().setHarsh(spec.harsh);
      case "Bend":
        return new Bend(null, null, spec.phrase.map((p) => ({{
          type: p.type === "down" ? Bend.DOWN : Bend.UP,
          text: p.text,
        }})));
      case "Stroke":
        return new Stroke(STROKES[spec.type]);
      case "StringNumber":
        return new StringNumber(spec.number).setPosition(POSITIONS[spec.position]);
      case "FretHandFinger":
        return new FretHandFinger(spec.number).setPosition(POSITIONS[spec.position]);
      default:
        return null;
    }}
  }};

  const makeNote = (spec) => {{
    let note;
    switch (spec.kind) {{
      case "tab":
        note = new TabNote({{
          positions: spec.positions.map((p) => ({{ fret: p.fret, str: p.string }})),
          duration: spec.duration,
        }}, spec.draw_stem);
        if (spec.ghost) note.setGhost(true);
        break;
      case "stave":
        note = new StaveNote({{
          keys: spec.keys,
          duration: spec.duration,
          clef: spec.clef,
          auto_stem: spec.auto_stem,
        }});
        break;
      case "bar":
        note = new BarNote(BARS[spec.bar_type]);
        break;
      case "text": {{
        const font = spec.font || {{}};
        note = new TextNote({{
          text: spec.text,
          duration: spec.duration,
          smooth: spec.smooth,
          ignore_ticks: spec.ignore_ticks,
          glyph: spec.glyph || undefined,
          font: {{ family: font.family, size: font.size, weight: font.style || "" }},
        }}).setLine(spec.line).setJustification(JUSTIFY[spec.justification]);
        break;
      }}
      default:
        note = new GhostNote(spec.duration);
    }}

    spec.modifiers.forEach((modifierSpec) => {{
      if (modifierSpec.kind === "Dot") {{
        Dot.buildAndAttach([note], {{ index: modifierSpec.index }});
        return;
      }}
      const modifier = makeModifier(modifierSpec);
      if (modifier) note.addModifier(modifier, modifierSpec.index);
    }});

    notesById.set(spec.id, note);
    return note;
  }};

  const makeVoice = (notes, stave) => {{
    notes.forEach((note) => note.setStave(stave));
    const voice = new Voice({{ num_beats: 4, beat_value: 4 }}).setMode(Voice.Mode.SOFT);
    voice.addTickables(notes);
    return voice;
  }};

  const makeBeams = (notes, beam) => {{
    if (!beam) return [];
    return Beam.generateBeams(notes, {{
      groups: beam.groups.map((group) => {{
        const [num, den] = group.split("/").map(Number);
        return new Fraction(num, den);
      }}),
      beam_rests: beam.beam_rests,
      show_stemlets: beam.show_stemlets,
      beam_middle_only: beam.beam_middle_only,
      stem_direction: beam.stem_direction === null ? undefined : beam.stem_direction,
    }});
  }};

  const makeLink = (spec) => {{
    const notes = {{
      first_note: spec.first_note === null ? null : notesById.get(spec.first_note),
      last_note: spec.last_note === null ? null : notesById.get(spec.last_note),
      first_indices: spec.first_indices,
      last_indices: spec.last_indices,
    }};
    switch (spec.kind) {{
      case "tab_slide":
        return new TabSlide(notes);
      case "tab_tie":
        return new TabTie(notes, spec.label);
      case "stave_tie":
        return new StaveTie(notes);
      default:
        return null;
    }}
  }};

  const tuplets = [...payload.tab_links, ...payload.notation_links].filter((l) => l.kind === "tuplet");

  payload.staves.forEach((staveSpec) => {{
    let notation = null;
    let tab = null;

    if (staveSpec.notation) {{
      const s = staveSpec.notation;
      notation = new Stave(s.x, s.y, s.width, {{ left_bar: false }});
      if (s.clef) notation.addClef(s.clef);
      notation.addKeySignature(s.key);
      if (s.time) notation.addTimeSignature(s.time);
      if (s.end_bar_type) notation.setEndBarType(BARS[s.end_bar_type]);
      notation.setContext(context).draw();
    }}
    if (staveSpec.tab) {{
      const s = staveSpec.tab;
      tab = new TabStave(s.x, s.y, s.width, {{ left_bar: false }}).setNumLines(s.num_lines);
      if (s.show_tab_glyph) tab.addTabGlyph();
      if (notation) tab.setNoteStartX(notation.getNoteStartX());
      if (s.end_bar_type) tab.setEndBarType(BARS[s.end_bar_type]);
      tab.setContext(context).draw();
    }}

    const build = (voiceSpecs, stave) => voiceSpecs.map((voiceSpec) => {{
      const notes = voiceSpec.notes.map(makeNote);
      return {{ voice: makeVoice(notes, stave), notes, beam: voiceSpec.beam }};
    }});
    const tabVoices = tab ? build(staveSpec.tab_voices, tab) : [];
    const notationVoices = notation ? build(staveSpec.notation_voices, notation) : [];
    const textStave = notation || tab;
    const textVoices = staveSpec.text_voices.map((notes) => makeVoice(notes.map(makeNote), textStave));

    tuplets.forEach((spec) => {{
      const notes = spec.notes.map((id) => notesById.get(id));
      if (notes.every((note) => note) && !spec.built) {{
        spec.tuplet = new Tuplet(notes, {{ num_notes: spec.num_notes, notes_occupied: spec.notes_occupied }});
        spec.built = true;
      }}
    }});

    const beams = [...tabVoices, ...notationVoices].flatMap((v) => makeBeams(v.notes, v.beam));
    const formatter = new Formatter();
    const allVoices = [];
    [tabVoices, notationVoices].forEach((group) => {{
      const voices = group.map((v) => v.voice);
      if (voices.length > 0) {{
        formatter.joinVoices(voices);
        allVoices.push(...voices);
      }}
    }});
    if (textVoices.length > 0) {{
      formatter.joinVoices(textVoices);
      allVoices.push(...textVoices);
    }}
    if (allVoices.length > 0) {{
      formatter.formatToStave(allVoices, notation || tab, {{ align_rests: staveSpec.align_rests }});
    }}

    tabVoices.forEach((v) => v.voice.draw(context, tab));
    notationVoices.forEach((v) => v.voice.draw(context, notation));
    beams.forEach((beam) => beam.setContext(context).draw());
    textVoices.forEach((voice) => voice.draw(context, textStave));

    if (staveSpec.connected) {{
      new StaveConnector(notation, tab)
        .setType(StaveConnector.type.BRACKET)
        .setContext(context)
        .draw();
    }}
  }});

  [...payload.tab_links, ...payload.notation_links].forEach((spec) => {{
    if (spec.kind === "tuplet") {{
      if (spec.tuplet) spec.tuplet.setContext(context).draw();
      return;
    }}
    const link = makeLink(spec);
    if (link) link.setContext(context).draw();
  }});
</script>
"""


# ----- Private helpers -----

def _stave_to_dict(stave: StaveLayout) -> dict[str, Any]:
    return {
        "tab": _view_to_dict(stave.tab),
        "notation": _view_to_dict(stave.notation),
        "tab_voices": [_voice_to_dict(voice) for voice in stave.tab_voices],
        "notation_voices": [_voice_to_dict(voice) for voice in stave.notation_voices],
        "text_voices": [[note.to_dict() for note in voice] for voice in stave.text_voices],
        "align_rests": stave.align_rests,
        "connected": stave.connected,
    }


def _view_to_dict(view: TabStave | NotationStave | None) -> dict[str, Any] | None:
    if view is None:
        return None
    return {**asdict(view), "height": view.height}


def _voice_to_dict(voice: VoiceLayout) -> dict[str, Any]:
    return {
        "notes": [note.to_dict() for note in voice.notes],
        "beam": None if voice.beam is None else asdict(voice.beam),
    }


def _link_to_dict(link: NoteLink | Tuplet) -> dict[str, Any]:
    return link.to_dict()
