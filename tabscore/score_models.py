"""Data models for the compiled score and its hand-off to layout engines and players."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tabscore.config import Customizations
from tabscore.errors import StructureError
from tabscore.notes import BarNote, Font, NoteLink, TextNote, Tickable, Tuplet

NOTATION_LINE_SPACING = 10
TAB_LINE_SPACING = 13
# Blank lines' worth of padding above and below the stave lines.
STAVE_PADDING_LINES = 8


@dataclass
class NotationStave:
    """A five-line standard notation stave."""

    x: float
    y: float
    width: float
    clef: str | None = "treble"
    key: str = "C"
    time: str | None = None
    num_lines: int = 5
    end_bar_type: str | None = None

    @property
    def height(self) -> int:
        return (self.num_lines + STAVE_PADDING_LINES) * NOTATION_LINE_SPACING


@dataclass
class TabStave:
    """A tablature stave with one line per string."""

    x: float
    y: float
    width: float
    num_lines: int = 6
    show_tab_glyph: bool = True
    end_bar_type: str | None = None

    @property
    def height(self) -> int:
        return (self.num_lines + STAVE_PADDING_LINES) * TAB_LINE_SPACING


@dataclass
class StaveGroup:
    """
    One measure-group: an optional tab stave and an optional notation stave.

    ``tab_notes`` and ``notation_notes`` are the buffers of the voice being
    written; finished voices move to ``tab_voices`` / ``notation_voices``.
    """

    tab: TabStave | None
    notation: NotationStave | None
    beam_groups: list[str] = field(default_factory=list)
    tab_notes: list[Tickable] = field(default_factory=list)
    notation_notes: list[Tickable] = field(default_factory=list)
    tab_voices: list[list[Tickable]] = field(default_factory=list)
    notation_voices: list[list[Tickable]] = field(default_factory=list)
    text_voices: list[list[TextNote]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.tab is None and self.notation is None:
            raise StructureError("A stave needs a tablature or a notation view")

    def close_voice(self) -> None:
        """Move the in-progress buffers to the finished voices and start new ones."""
        if self.tab_notes:
            self.tab_voices.append(self.tab_notes)
            self.tab_notes = []
        if self.notation_notes:
            self.notation_voices.append(self.notation_notes)
            self.notation_notes = []

    def flush_trailing_bars(self) -> None:
        """Turn a trailing inline barline into the stave's end barline."""
        if self.tab is not None and self.tab_notes and isinstance(self.tab_notes[-1], BarNote):
            self.tab.end_bar_type = self.tab_notes.pop().bar_type
        if (
            self.notation is not None
            and self.notation_notes
            and isinstance(self.notation_notes[-1], BarNote)
        ):
            self.notation.end_bar_type = self.notation_notes.pop().bar_type

    def playable_voices(self) -> list[list[Tickable]]:
        """Finished plus in-progress voices of the view that carries pitch."""
        if self.notation is not None:
            voices, current = self.notation_voices, self.notation_notes
        else:
            voices, current = self.tab_voices, self.tab_notes
        return [*voices, current] if current else list(voices)


@dataclass
class Score:
    """The compiled score: staves in order plus free-floating links."""

    customizations: Customizations
    staves: list[StaveGroup] = field(default_factory=list)
    tab_links: list[NoteLink | Tuplet] = field(default_factory=list)
    notation_links: list[NoteLink | Tuplet] = field(default_factory=list)


# ── Layout hand-off ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BeamConfig:
    """
    Beaming policy for one voice.

    ``stem_direction`` is 1 (up), -1 (down) or None (automatic).
    """

    groups: list[str]
    beam_rests: bool
    show_stemlets: bool
    beam_middle_only: bool
    stem_direction: int | None = None


@dataclass(frozen=True)
class VoiceLayout:
    """Notes of one voice and how to beam them (no beams when ``beam`` is None)."""

    notes: list[Tickable]
    beam: BeamConfig | None = None


@dataclass(frozen=True)
class StaveLayout:
    tab: TabStave | None
    notation: NotationStave | None
    tab_voices: list[VoiceLayout]
    notation_voices: list[VoiceLayout]
    text_voices: list[list[TextNote]]
    align_rests: bool = False

    @property
    def connected(self) -> bool:
        """Tab and notation are bracketed together when both are shown."""
        return self.tab is not None and self.notation is not None


@dataclass(frozen=True)
class ScoreLayout:
    """Everything a layout engine needs to format and draw a compiled score."""

    width: float
    height: float
    scale: float
    font: Font
    staves: list[StaveLayout]
    tab_links: list[NoteLink | Tuplet]
    notation_links: list[NoteLink | Tuplet]


@dataclass(frozen=True)
class PlayerData:
    """
    Input for a playback scheduler.

    Attributes:
        voices:  Per stave, the list of voices (each a list of tickables).
        context: Whatever the renderer returned as its drawing context.
        scale:   Display scale factor.
    """

    voices: list[list[list[Tickable]]]
    context: Any
    scale: float
