"""Unit tests for the annotation mini-language parser."""

import pytest

from tabscore.annotations import (
    is_score_articulation,
    is_stroke,
    parse_annotation,
    parse_fingering,
    parse_score_articulation,
    parse_stroke,
    parse_text_font,
    position_shortcut,
)
from tabscore.errors import MiniLanguageError
from tabscore.notes import Annotation, Articulation, Font, FretHandFinger, Stroke, StringNumber

DEFAULT_FONT = Font(family="Arial", size=10)


# ── Articulations and strokes ────────────────────────────────────────────────

def test_score_articulation_above() -> None:
    token = parse_score_articulation(".a./t.")
    assert token is not None
    assert token.build() == Articulation(type="a.", position="above")


def test_score_articulation_below() -> None:
    token = parse_score_articulation(".a>/b.")
    assert token is not None
    assert token.position == "below"


def test_plain_text_is_not_articulation() -> None:
    assert parse_score_articulation("hello") is None
    assert not is_score_articulation(".big.text")


def test_stroke_types() -> None:
    token = parse_stroke(".stroke/rd.")
    assert token is not None
    assert token.build() == Stroke(type="roll_down")
    assert is_stroke(".stroke/bu.")


def test_invalid_stroke_type() -> None:
    with pytest.raises(MiniLanguageError, match="Invalid stroke type"):
        parse_stroke(".stroke/zz.")


# ── Fingerings ───────────────────────────────────────────────────────────────

def test_fingering_converts_note_numbers_to_zero_based() -> None:
    token = parse_fingering(".fingering/1:l:f:1-2:r:s:3.")
    assert token is not None
    first, second = token.fingerings
    assert first.note_index == 0
    assert first.modifier == FretHandFinger(number="1", position="left")
    assert second.note_index == 1
    assert second.modifier == StringNumber(number="3", position="right")


def test_bad_fingering_entry() -> None:
    with pytest.raises(MiniLanguageError, match="Bad fingering"):
        parse_fingering(".fingering/1:x:f:1.")


def test_non_fingering_text() -> None:
    assert parse_fingering("1:l:f:1") is None


# ── Annotation text ──────────────────────────────────────────────────────────

def test_plain_annotation_uses_default_position() -> None:
    token = parse_annotation("let ring", DEFAULT_FONT, "top")
    assert token is not None
    assert token.build() == Annotation(text="let ring", font=DEFAULT_FONT, vertical_justification="top")


def test_font_override() -> None:
    token = parse_annotation(".Times-12-italic.Slowly", DEFAULT_FONT)
    assert token is not None
    assert token.text == "Slowly"
    assert token.font == Font(family="Times", size=12, style="italic")


def test_big_shortcut() -> None:
    token = parse_annotation(".big.Loud", DEFAULT_FONT)
    assert token is not None
    assert token.font == Font(family="Arial", size=14, style="bold")


def test_italic_shortcut() -> None:
    token = parse_annotation(".italics.rit.", DEFAULT_FONT)
    assert token is not None
    assert token.font.family == "Times"
    assert token.font.style == "italic"


def test_position_shortcut_applies_to_token() -> None:
    token = parse_annotation(".top.Up here", DEFAULT_FONT, "bottom")
    assert token is not None
    assert token.vertical_justification == "top"


def test_empty_text_yields_no_token() -> None:
    assert parse_annotation("", DEFAULT_FONT) is None
    assert parse_annotation(".top.", DEFAULT_FONT) is None
    assert parse_annotation(".Arial-10-bold.", DEFAULT_FONT) is None


def test_position_shortcut_detection() -> None:
    assert position_shortcut(".top.") == "top"
    assert position_shortcut(".bottom.text") == "bottom"
    assert position_shortcut(".big.text") is None
    assert position_shortcut("plain") is None


# ── Text fonts ───────────────────────────────────────────────────────────────

def test_parse_text_font() -> None:
    assert parse_text_font("Georgia-14-bold") == Font(family="Georgia", size=14, style="bold")
    assert parse_text_font("Georgia-14-") == Font(family="Georgia", size=14, style=None)


def test_parse_text_font_rejects_bad_size() -> None:
    with pytest.raises(MiniLanguageError):
        parse_text_font("Georgia-big-bold")


def test_parse_text_font_without_dashes() -> None:
    assert parse_text_font("Georgia") is None
