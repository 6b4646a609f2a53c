"""
Parser for the annotation mini-language used by ``$...$`` annotation tokens.

Each token is one of:

- a score articulation, ``.a<type>/<t|b>.`` (``.a./t.`` = staccato above),
- a stroke, ``.stroke/<bu|bd|ru|rd|qu|qd>.``,
- a fingering list, ``.fingering/<note>:<l|r|a|b>:<f|s>:<label>-....``,
- annotation text, optionally prefixed by a ``.face-size-style.`` font
  override or one of the ``.big.`` ``.italic.`` ``.medium.`` ``.top.``
  ``.bottom.`` shortcuts.

The parsers return typed tokens and never touch compiler state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Final

from tabscore.errors import MiniLanguageError
from tabscore.notes import (
    POSITION_ABOVE,
    POSITION_BELOW,
    POSITION_LEFT,
    POSITION_RIGHT,
    Annotation,
    Articulation,
    Font,
    FretHandFinger,
    Stroke,
    StringNumber,
)

STROKE_TYPES: Final[dict[str, str]] = {
    "bu": "brush_up",
    "bd": "brush_down",
    "ru": "roll_up",
    "rd": "roll_down",
    "qu": "rasquedo_up",
    "qd": "rasquedo_down",
}

FINGERING_POSITIONS: Final[dict[str, str]] = {
    "l": POSITION_LEFT,
    "r": POSITION_RIGHT,
    "a": POSITION_ABOVE,
    "b": POSITION_BELOW,
}

_RE_SCORE_ARTICULATION = re.compile(r"^\.(a[^/]*)/(t|b)[^.]*\.")
_RE_STROKE = re.compile(r"^\.stroke/([^.]+)\.")
_RE_FINGERING = re.compile(r"^\.fingering/([^.]+)\.")
_RE_FINGER = re.compile(r"(\d+):([ablr]):([fs]):([^-.]+)")
_RE_FONT_OVERRIDE = re.compile(r"^\.([^-]*)-([^-]*)-([^.]*)\.(.*)$")
_RE_SHORTCUT = re.compile(r"^\.([^.]*)\.(.*)$")
_RE_TEXT_FONT = re.compile(r"([^-]*)-([^-]*)-([^.]*)")


# ── Tokens ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ScoreArticulationToken:
    type: str
    position: str

    def build(self) -> Articulation:
        return Articulation(type=self.type, position=self.position)


@dataclass(frozen=True)
class StrokeToken:
    type: str

    def build(self) -> Stroke:
        return Stroke(type=self.type)


@dataclass(frozen=True)
class Fingering:
    """A finger or string number for the zero-based key ``note_index``."""

    note_index: int
    modifier: StringNumber | FretHandFinger


@dataclass(frozen=True)
class FingeringToken:
    fingerings: tuple[Fingering, ...]


@dataclass(frozen=True)
class AnnotationToken:
    """Annotation text with its resolved font and vertical position."""

    text: str
    font: Font
    vertical_justification: str

    def build(self) -> Annotation:
        return Annotation(
            text=self.text,
            font=self.font,
            vertical_justification=self.vertical_justification,
        )


# ── Parsers ──────────────────────────────────────────────────────────────────

def is_score_articulation(text: str) -> bool:
    return _RE_SCORE_ARTICULATION.match(text) is not None


def is_stroke(text: str) -> bool:
    return _RE_STROKE.match(text) is not None


def parse_score_articulation(text: str) -> ScoreArticulationToken | None:
    match = _RE_SCORE_ARTICULATION.match(text)
    if match is None:
        return None
    position = POSITION_ABOVE if match.group(2) == "t" else POSITION_BELOW
    return ScoreArticulationToken(type=match.group(1), position=position)


def parse_stroke(text: str) -> StrokeToken | None:
    """
    Parse a ``.stroke/<type>.`` token.

    Raises:
        MiniLanguageError: If the stroke type is unknown.
    """
    match = _RE_STROKE.match(text)
    if match is None:
        return None
    stroke_type = STROKE_TYPES.get(match.group(1))
    if stroke_type is None:
        raise MiniLanguageError(f"Invalid stroke type: {match.group(1)}")
    return StrokeToken(type=stroke_type)


def parse_fingering(text: str) -> FingeringToken | None:
    """
    Parse a ``.fingering/...`` token into per-note modifiers.

    Note numbers are written 1-based and returned zero-based. Range checks
    against the actual chord happen where the token is applied.

    Raises:
        MiniLanguageError: If any dash-separated entry is malformed.
    """
    match = _RE_FINGERING.match(text)
    if match is None:
        return None

    fingerings: list[Fingering] = []
    for piece in match.group(1).split("-"):
        parts = _RE_FINGER.fullmatch(piece.strip())
        if parts is None:
            raise MiniLanguageError(f"Bad fingering: {match.group(1)}")
        note_number, position_code, kind, label = parts.groups()
        position = FINGERING_POSITIONS[position_code]
        modifier: StringNumber | FretHandFinger
        if kind == "s":
            modifier = StringNumber(number=label, position=position)
        else:
            modifier = FretHandFinger(number=label, position=position)
        fingerings.append(Fingering(note_index=int(note_number) - 1, modifier=modifier))
    return FingeringToken(fingerings=tuple(fingerings))


def parse_annotation(text: str, font: Font, position: str = "bottom") -> AnnotationToken | None:
    """
    Parse annotation text, applying any font override or style shortcut.

    Args:
        text:     The raw token.
        font:     Font in effect for annotations.
        position: Default vertical position (``top`` or ``bottom``).

    Returns:
        The token, or None when nothing is left to display after the prefix.
    """
    match = _RE_FONT_OVERRIDE.match(text)
    if match is not None:
        face, size, style, body = match.groups()
        if not body:
            return None
        return AnnotationToken(
            text=body,
            font=Font(family=face, size=_font_size(size), style=style or None),
            vertical_justification=position,
        )

    match = _RE_SHORTCUT.match(text)
    if match is not None:
        shortcut, body = match.groups()
        justification = position
        if shortcut == "big":
            font = replace(font, style="bold", size=14)
        elif shortcut in ("italic", "italics"):
            font = replace(font, family="Times", style="italic")
        elif shortcut == "medium":
            font = replace(font, size=12)
        elif shortcut in ("top", "bottom"):
            justification = shortcut
        if not body:
            return None
        return AnnotationToken(text=body, font=font, vertical_justification=justification)

    if not text:
        return None
    return AnnotationToken(text=text, font=font, vertical_justification=position)


def position_shortcut(text: str) -> str | None:
    """
    The ``top``/``bottom`` shortcut of a token, if any.

    These shortcuts also become the default position for later annotations,
    even when the token itself carries no text.
    """
    if _RE_FONT_OVERRIDE.match(text) is not None:
        return None
    match = _RE_SHORTCUT.match(text)
    if match is not None and match.group(1) in ("top", "bottom"):
        return match.group(1)
    return None


def parse_text_font(spec: str) -> Font | None:
    """Parse a ``Face-size-style`` font spec as used by ``.font=`` in text lines."""
    match = _RE_TEXT_FONT.match(spec)
    if match is None:
        return None
    face, size, style = match.groups()
    try:
        font_size = int(size)
    except ValueError:
        raise MiniLanguageError(f"Invalid font size in '{spec}'") from None
    return Font(family=face, size=font_size, style=style or None)


# ----- Private helpers -----

def _font_size(size: str) -> int | str:
    return int(size) if size.isdigit() else size
