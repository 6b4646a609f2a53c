"""Abstract note, modifier and link objects assembled by the compiler."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from fractions import Fraction
from typing import Any, ClassVar, TypeVar

from tabscore.theory import parse_duration

ModifierT = TypeVar("ModifierT", bound="Modifier")

# Modifier positions relative to a note head.
POSITION_LEFT = "left"
POSITION_RIGHT = "right"
POSITION_ABOVE = "above"
POSITION_BELOW = "below"

BEND_UP = "up"
BEND_DOWN = "down"


# ── Modifiers ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Font:
    family: str
    size: int | str
    style: str | None = None


@dataclass
class Modifier:
    """Base class of everything attached to a single note (or one of its keys)."""

    def to_dict(self) -> dict[str, Any]:
        return {"kind": type(self).__name__, **asdict(self)}


@dataclass
class Accidental(Modifier):
    type: str
    cautionary: bool = False


@dataclass
class Dot(Modifier):
    pass


@dataclass
class Annotation(Modifier):
    text: str
    font: Font | None = None
    vertical_justification: str = "bottom"
    justification: str = "center"


@dataclass
class Articulation(Modifier):
    """A score glyph articulation such as ``a.`` (staccato) or ``a|`` (up stroke)."""

    type: str
    position: str = POSITION_ABOVE


@dataclass
class Vibrato(Modifier):
    harsh: bool = False


@dataclass(frozen=True)
class BendPhrase:
    """One transition of a bend chain. Releases are ``down`` with empty text."""

    type: str
    text: str


@dataclass
class Bend(Modifier):
    phrase: list[BendPhrase] = field(default_factory=list)


@dataclass
class Stroke(Modifier):
    type: str


@dataclass
class StringNumber(Modifier):
    number: str
    position: str = POSITION_RIGHT


@dataclass
class FretHandFinger(Modifier):
    number: str
    position: str = POSITION_RIGHT


# ── Tickables ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TabPosition:
    """
    A fret on a string. Muted positions use the fret ``"X"``.

    Letter-name pitches entered without a string have no string.
    """

    fret: str
    string: int | None


class Tickable:
    """
    Base class for every element that occupies a slot in a voice.

    Attributes:
        id:              Identifier unique within one compilation, assigned
                         when the note is added to a score.
        duration:        Duration code including dots and type suffix.
        intrinsic_ticks: Ticks of the written duration.
        tick_multiplier: Correction applied by tuplets.
        ignore_ticks:    True for elements that take no time (bars, labels).
        modifiers:       ``(modifier, key index)`` pairs in attachment order.
        play_note:       Sounding ``note/octave`` keys, when they differ from
                         what is engraved (octave shift, tab positions).
    """

    kind: ClassVar[str] = "tickable"

    def __init__(self, duration: str, ignore_ticks: bool = False) -> None:
        parsed = parse_duration(duration)
        self.id: int | None = None
        self.duration = duration
        self.dots = parsed.dots
        self.ignore_ticks = ignore_ticks
        self.intrinsic_ticks = parsed.ticks
        self.tick_multiplier = Fraction(1)
        self.modifiers: list[tuple[Modifier, int]] = []
        self.play_note: list[str] | None = None

    @property
    def ticks(self) -> Fraction:
        if self.ignore_ticks:
            return Fraction(0)
        return self.intrinsic_ticks * self.tick_multiplier

    def add_modifier(self, modifier: Modifier, index: int = 0) -> Tickable:
        self.modifiers.append((modifier, index))
        return self

    def modifiers_of(self, cls: type[ModifierT]) -> list[ModifierT]:
        """All attached modifiers of the given type, in attachment order."""
        return [modifier for modifier, _ in self.modifiers if isinstance(modifier, cls)]

    def apply_tick_multiplier(self, numerator: int, denominator: int) -> None:
        self.tick_multiplier *= Fraction(numerator, denominator)

    def set_play_note(self, keys: list[str]) -> None:
        self.play_note = list(keys)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "duration": self.duration,
            "ticks": str(self.ticks),
            "ignore_ticks": self.ignore_ticks,
            "modifiers": [
                {**modifier.to_dict(), "index": index} for modifier, index in self.modifiers
            ],
            "play_note": self.play_note,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} duration={self.duration!r}>"


class TabNote(Tickable):
    """A tablature chord: one or more fret/string positions sounded together."""

    kind = "tab"

    def __init__(self, positions: list[TabPosition], duration: str, draw_stem: bool = False) -> None:
        super().__init__(duration)
        self.positions = list(positions)
        self.draw_stem = draw_stem
        self.ghost = False

    @property
    def strings(self) -> list[int | None]:
        return [position.string for position in self.positions]

    def set_ghost(self, ghost: bool) -> None:
        self.ghost = ghost

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "positions": [asdict(position) for position in self.positions],
            "draw_stem": self.draw_stem,
            "ghost": self.ghost,
        }


class StaveNote(Tickable):
    """A notation note, chord or rest."""

    kind = "stave"

    def __init__(
        self,
        keys: list[str],
        duration: str,
        clef: str = "treble",
        auto_stem: bool = True,
    ) -> None:
        super().__init__(duration)
        self.keys = list(keys)
        self.clef = clef
        self.auto_stem = auto_stem
        self.is_rest = parse_duration(duration).is_rest

    def add_stroke(self, index: int, stroke: Stroke) -> StaveNote:
        self.add_modifier(stroke, index)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "keys": self.keys,
            "clef": self.clef,
            "auto_stem": self.auto_stem,
            "is_rest": self.is_rest,
        }


class BarNote(Tickable):
    """An inline barline. Takes no time."""

    kind = "bar"

    def __init__(self, bar_type: str = "single") -> None:
        super().__init__("b", ignore_ticks=True)
        self.bar_type = bar_type

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "bar_type": self.bar_type}


class SpacerNote(Tickable):
    """An invisible placeholder keeping tablature aligned with a notation rest."""

    kind = "spacer"


class TextNote(Tickable):
    """A text label in a text voice."""

    kind = "text"

    def __init__(
        self,
        text: str,
        duration: str,
        line: int = 0,
        justification: str = "center",
        smooth: bool = True,
        ignore_ticks: bool = False,
        font: Font | None = None,
        glyph: str | None = None,
    ) -> None:
        super().__init__(duration, ignore_ticks=ignore_ticks)
        self.text = text
        self.line = line
        self.justification = justification
        self.smooth = smooth
        self.font = font
        self.glyph = glyph

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "text": self.text,
            "line": self.line,
            "justification": self.justification,
            "smooth": self.smooth,
            "font": None if self.font is None else asdict(self.font),
            "glyph": self.glyph,
        }


# ── Links ────────────────────────────────────────────────────────────────────

@dataclass(eq=False)
class NoteLink:
    """
    A free-floating modifier connecting two notes.

    Indices select keys (or tab positions) on each note. ``first_note`` is
    None when the destination has no predecessor, in which case the link is
    drawn from the stave start.
    """

    first_note: Tickable | None
    last_note: Tickable | None
    first_indices: list[int]
    last_indices: list[int]

    kind: ClassVar[str] = "link"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "first_note": None if self.first_note is None else self.first_note.id,
            "last_note": None if self.last_note is None else self.last_note.id,
            "first_indices": list(self.first_indices),
            "last_indices": list(self.last_indices),
        }


@dataclass(eq=False)
class TabSlide(NoteLink):
    kind: ClassVar[str] = "tab_slide"


@dataclass(eq=False)
class TabTie(NoteLink):
    """Hammer-on (``H``), pull-off (``P``) or tap (blank label) between tab notes."""

    label: str = ""

    kind: ClassVar[str] = "tab_tie"

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "label": self.label}


@dataclass(eq=False)
class StaveTie(NoteLink):
    kind: ClassVar[str] = "stave_tie"


class Tuplet:
    """
    A tuplet bracket over consecutive notes.

    Construction scales each note's ticks by ``notes_occupied / num_notes``,
    so the object must be built even when it is never drawn.
    """

    kind = "tuplet"

    def __init__(self, notes: list[Tickable], num_notes: int, notes_occupied: int = 2) -> None:
        self.notes = list(notes)
        self.num_notes = num_notes
        self.notes_occupied = notes_occupied
        for note in self.notes:
            note.apply_tick_multiplier(notes_occupied, num_notes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "notes": [note.id for note in self.notes],
            "num_notes": self.num_notes,
            "notes_occupied": self.notes_occupied,
        }
