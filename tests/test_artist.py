"""Unit tests for the Artist: chords, links, bends, tuplets, annotations and output."""

import json
from fractions import Fraction

import pytest

from tabscore.artist import Artist
from tabscore.directives import AbcPitch, NoteElement
from tabscore.errors import ArityError, ConfigurationError, ResolutionError, StructureError
from tabscore.notes import (
    Accidental,
    Annotation,
    Articulation,
    BarNote,
    Bend,
    BendPhrase,
    Dot,
    FretHandFinger,
    SpacerNote,
    StaveNote,
    StaveTie,
    TabNote,
    TabSlide,
    TabTie,
    TextNote,
    Tuplet,
    Vibrato,
)
from tabscore.renderers import JsonLayoutRenderer
from tabscore.theory import RESOLUTION

QUARTER = Fraction(RESOLUTION, 4)


def _fret(fret: str, string: int, **kwargs: object) -> NoteElement:
    return NoteElement(fret=fret, string=string, **kwargs)  # type: ignore[arg-type]


def _tab_artist(**options: str) -> Artist:
    artist = Artist()
    artist.add_stave("tabstave", options)
    return artist


def _dual_artist(**options: str) -> Artist:
    artist = Artist()
    artist.add_stave("tabstave", {"notation": "true", **options})
    return artist


# ── Scenarios ────────────────────────────────────────────────────────────────

def test_tabstave_builds_tab_notes_only() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("10", 2))
    artist.add_note(_fret("10", 3))

    stave = artist.current_stave
    assert stave.notation is None
    assert len(stave.tab_notes) == 2
    assert stave.notation_notes == []


def test_slide_links_two_notes_on_shared_string() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("10", 3))
    artist.add_note(_fret("11", 3, articulation="s"))

    tab_notes = artist.current_stave.tab_notes
    (slide,) = artist.score.tab_links
    assert isinstance(slide, TabSlide)
    assert slide.first_note is tab_notes[0]
    assert slide.last_note is tab_notes[1]
    assert slide.first_indices == [0]
    assert slide.last_indices == [0]
    assert tab_notes[1].positions[0].string == 3  # type: ignore[attr-defined]


def test_bend_closed_by_unrelated_chord() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("10", 3))
    artist.add_note(_fret("11", 3, articulation="b"))
    artist.add_chord([_fret("5", 1), _fret("5", 2)])

    anchor, bent, chord = artist.current_stave.tab_notes
    assert anchor.modifiers_of(Bend) == [Bend(phrase=[BendPhrase(type="up", text="1/2")])]
    assert isinstance(bent, TabNote) and bent.ghost
    assert isinstance(chord, TabNote) and not chord.ghost


def test_triplet_needs_three_notes() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("5", 1))
    artist.add_note(_fret("7", 1))
    with pytest.raises(ArityError, match="Not enough notes for tuplet"):
        artist.make_tuplets(3)


def test_more_annotations_than_notes() -> None:
    artist = _tab_artist()
    artist.add_chord([_fret("5", 1), _fret("7", 2)])
    with pytest.raises(ArityError, match="More annotations than note elements"):
        artist.add_annotations(["a", "b", "c"])


# ── Chord grouping and durations ─────────────────────────────────────────────

def test_string_change_stacks_positions_into_one_chord() -> None:
    artist = _tab_artist()
    artist.add_chord([_fret("5", 1), _fret("5", 2), _fret("7", 3)])

    (chord,) = artist.current_stave.tab_notes
    assert isinstance(chord, TabNote)
    assert chord.strings == [1, 2, 3]


def test_same_string_entries_become_consecutive_notes() -> None:
    artist = _tab_artist()
    artist.add_chord([_fret("5", 1), _fret("7", 1)])
    assert len(artist.current_stave.tab_notes) == 2


def test_local_duration_is_restored() -> None:
    artist = _tab_artist()
    artist.add_chord([_fret("5", 1, time="8")])
    artist.add_note(_fret("7", 1))

    first, second = artist.current_stave.tab_notes
    assert first.duration == "8"
    assert second.duration == "q"
    assert artist.current_duration == "q"


def test_dotted_duration_adds_dot_modifier() -> None:
    artist = _tab_artist()
    artist.set_duration(":8", dot=True)
    artist.add_note(_fret("5", 1))

    (note,) = artist.current_stave.tab_notes
    assert note.duration == "8d"
    assert note.modifiers_of(Dot) == [Dot()]


def test_invalid_duration() -> None:
    with pytest.raises(ResolutionError):
        _tab_artist().set_duration("3")


# ── Pitch resolution into notation ───────────────────────────────────────────

def test_notation_accidentals_reset_at_bar() -> None:
    artist = _dual_artist()
    artist.add_note(_fret("2", 2))
    artist.add_note(_fret("2", 2))
    artist.add_bar()
    artist.add_note(_fret("2", 2))

    first, second, _, third = artist.current_stave.notation_notes
    assert isinstance(first, StaveNote)
    assert first.keys == ["c#/5"]
    assert first.modifiers_of(Accidental) == [Accidental(type="#")]
    assert second.modifiers_of(Accidental) == []
    assert third.modifiers_of(Accidental) == [Accidental(type="#")]


def test_cautionary_accidentals_option() -> None:
    artist = Artist()
    artist.set_options({"accidentals": "cautionary"})
    artist.add_stave("tabstave", {"notation": "true", "key": "F"})
    artist.add_note(_fret("3", 3))

    (note,) = artist.current_stave.notation_notes
    assert note.modifiers_of(Accidental) == [Accidental(type="b", cautionary=True)]


def test_abc_note_sets_notation_and_muted_tab() -> None:
    artist = _dual_artist()
    artist.add_note(NoteElement(abc=AbcPitch(key="f", accidental="#"), octave=4))

    (stave_note,) = artist.current_stave.notation_notes
    (tab_note,) = artist.current_stave.tab_notes
    assert isinstance(stave_note, StaveNote) and isinstance(tab_note, TabNote)
    assert stave_note.keys == ["f/4"]
    assert stave_note.play_note == ["f#/4"]
    assert tab_note.positions[0].fret == "X"


def test_muted_fret_without_pitch_is_located() -> None:
    artist = _tab_artist()
    with pytest.raises(ResolutionError) as excinfo:
        artist.add_note(_fret("X", 1, line=4, column=9))
    assert excinfo.value.line == 4
    assert excinfo.value.column == 9


def test_octave_shift_changes_play_note() -> None:
    artist = _tab_artist()
    artist.run_command("octave-shift 1")
    artist.add_note(_fret("0", 1))
    assert artist.current_stave.tab_notes[0].play_note == ["E/6"]


def test_unknown_command_names_location() -> None:
    with pytest.raises(StructureError, match="in line 3 column 7"):
        _tab_artist().run_command("tempo 90", 3, 7)


# ── Articulation links ───────────────────────────────────────────────────────

def test_hammer_on_skips_barline() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("5", 3))
    artist.add_bar()
    artist.add_note(_fret("7", 3, articulation="h"))

    tab_notes = artist.current_stave.tab_notes
    (tie,) = artist.score.tab_links
    assert isinstance(tie, TabTie)
    assert tie.label == "H"
    assert tie.first_note is tab_notes[0]
    assert isinstance(tab_notes[1], BarNote)


def test_tap_marks_note_and_adds_blank_tie() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("5", 3))
    artist.add_note(_fret("12", 3, articulation="t"))

    (tie,) = artist.score.tab_links
    assert isinstance(tie, TabTie) and tie.label == " "
    annotations = artist.current_stave.tab_notes[1].modifiers_of(Annotation)
    assert annotations == [Annotation(text="T", vertical_justification="top")]


def test_slide_between_different_strings_is_dropped() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("5", 3))
    artist.add_note(_fret("7", 2, articulation="s"))
    assert artist.score.tab_links == []


def test_chord_articulation_links_every_entry() -> None:
    artist = _tab_artist()
    artist.add_chord([_fret("5", 2), _fret("5", 3)])
    artist.add_chord([_fret("7", 2), _fret("7", 3)], articulation="s")

    (slide,) = artist.score.tab_links
    assert slide.first_indices == [0, 1]
    assert slide.last_indices == [0, 1]


def test_dual_stave_adds_notation_tie() -> None:
    artist = _dual_artist()
    artist.add_note(_fret("5", 3))
    artist.add_note(_fret("7", 3, articulation="h"))

    stave = artist.current_stave
    (tie,) = artist.score.notation_links
    assert isinstance(tie, StaveTie)
    assert tie.first_note is stave.notation_notes[0]
    assert tie.last_note is stave.notation_notes[1]


def test_bend_chain_accumulates_release() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("7", 3))
    artist.add_note(_fret("9", 3, articulation="b"))
    artist.add_note(_fret("7", 3, articulation="b"))

    anchor = artist.current_stave.tab_notes[0]
    artist.close_bends()
    (bend,) = anchor.modifiers_of(Bend)
    assert [phrase.type for phrase in bend.phrase] == ["up", "down"]


def _open_bend_chain() -> tuple[Artist, list[TabNote]]:
    artist = _tab_artist()
    artist.add_note(_fret("7", 3))
    artist.add_note(_fret("9", 3, articulation="b"))
    artist.add_note(_fret("7", 3, articulation="b"))
    notes = list(artist.current_stave.tab_notes)
    assert artist.bend_chain.is_open
    return artist, notes  # type: ignore[return-value]


def _assert_bend_chain_closed(artist: Artist, notes: list[TabNote]) -> None:
    assert [(note.ghost, len(note.modifiers_of(Bend))) for note in notes] == [(False, 1), (True, 0), (True, 0)]
    assert not artist.bend_chain.is_open


def test_bar_closes_open_bend_chain() -> None:
    artist, notes = _open_bend_chain()
    artist.add_bar()
    _assert_bend_chain_closed(artist, notes)


def test_new_stave_closes_open_bend_chain() -> None:
    artist, notes = _open_bend_chain()
    artist.add_stave("tabstave")
    _assert_bend_chain_closed(artist, notes)


def test_new_voice_closes_open_bend_chain() -> None:
    artist, notes = _open_bend_chain()
    artist.add_voice()
    _assert_bend_chain_closed(artist, notes)


def test_render_closes_open_bend_chain() -> None:
    artist, notes = _open_bend_chain()
    artist.render(JsonLayoutRenderer())
    _assert_bend_chain_closed(artist, notes)


# ── Decorators, rests and tuplets ────────────────────────────────────────────

def test_vibrato_decorator_is_tab_only() -> None:
    artist = _dual_artist()
    artist.add_note(_fret("5", 3, decorator="v"))
    assert artist.current_stave.tab_notes[0].modifiers_of(Vibrato) == [Vibrato()]
    assert artist.current_stave.notation_notes[0].modifiers_of(Vibrato) == []


def test_stroke_decorator_marks_both_views() -> None:
    artist = _dual_artist()
    artist.add_chord([_fret("5", 3), _fret("5", 4)], decorator="d")
    expected = [Articulation(type="am", position="below")]
    assert artist.current_stave.tab_notes[0].modifiers_of(Articulation) == expected
    assert artist.current_stave.notation_notes[0].modifiers_of(Articulation) == expected


def test_unknown_decorator_is_ignored() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("5", 3, decorator="z"))
    assert artist.current_stave.tab_notes[0].modifiers == []


def test_rest_adds_notation_rest_and_tab_spacer() -> None:
    artist = _dual_artist()
    artist.add_rest({})

    (rest,) = artist.current_stave.notation_notes
    assert isinstance(rest, StaveNote) and rest.is_rest
    assert rest.keys == ["r/4"]
    assert isinstance(artist.current_stave.tab_notes[0], SpacerNote)


def test_positioned_rest_uses_lowest_string() -> None:
    artist = _dual_artist()
    artist.add_rest({"position": 1})
    rest = artist.current_stave.notation_notes[0]
    assert isinstance(rest, StaveNote)
    assert rest.keys == ["E/4"]


def test_rest_with_tab_stems_is_drawn_on_tab() -> None:
    artist = Artist()
    artist.set_options({"tab-stems": "true"})
    artist.add_stave("tabstave")
    artist.add_rest({})
    tab_rest = artist.current_stave.tab_notes[0]
    assert isinstance(tab_rest, StaveNote) and tab_rest.is_rest


def test_tuplet_corrects_both_buffers_identically() -> None:
    artist = _dual_artist()
    for fret in ("5", "7", "8"):
        artist.add_note(_fret(fret, 3))
    artist.make_tuplets(3)

    stave = artist.current_stave
    expected = QUARTER * Fraction(2, 3)
    assert [note.ticks for note in stave.tab_notes] == [expected] * 3
    assert [note.ticks for note in stave.notation_notes] == [expected] * 3
    assert [type(link) for link in artist.score.notation_links] == [Tuplet]
    assert artist.score.tab_links == []


def test_tuplet_on_tab_is_drawn_with_tab_stems() -> None:
    artist = Artist()
    artist.set_options({"tab-stems": "true"})
    artist.add_stave("tabstave")
    for fret in ("5", "7", "8", "9", "10"):
        artist.add_note(_fret(fret, 3))
    artist.make_tuplets(5, 5)

    (tuplet,) = artist.score.tab_links
    assert isinstance(tuplet, Tuplet)
    assert tuplet.num_notes == 5


# ── Annotations ──────────────────────────────────────────────────────────────

def test_annotation_text_on_tab() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("5", 3))
    artist.add_note(_fret("7", 3))
    artist.add_annotations(["let", "ring"])

    texts = [note.modifiers_of(Annotation)[0].text for note in artist.current_stave.tab_notes]
    assert texts == ["let", "ring"]


def test_score_articulation_on_both_views() -> None:
    artist = _dual_artist()
    artist.add_note(_fret("5", 3))
    artist.add_annotations([".a./t."])

    expected = [Articulation(type="a.", position="above")]
    assert artist.current_stave.tab_notes[0].modifiers_of(Articulation) == expected
    assert artist.current_stave.notation_notes[0].modifiers_of(Articulation) == expected


def test_position_shortcut_sticks_for_later_annotations() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("5", 3))
    artist.add_note(_fret("7", 3))
    artist.add_annotations([".top.", "later"])

    first, second = artist.current_stave.tab_notes
    assert first.modifiers_of(Annotation) == []
    assert second.modifiers_of(Annotation)[0].vertical_justification == "top"


def test_fingering_goes_to_notation_key() -> None:
    artist = _dual_artist()
    artist.add_chord([_fret("5", 2), _fret("5", 3)])
    artist.add_annotations([".fingering/2:l:f:3."])

    note = artist.current_stave.notation_notes[0]
    assert [(m, i) for m, i in note.modifiers if isinstance(m, FretHandFinger)] == [
        (FretHandFinger(number="3", position="left"), 1)
    ]


def test_fingering_for_missing_key() -> None:
    artist = _dual_artist()
    artist.add_chord([_fret("5", 2), _fret("5", 3)])
    with pytest.raises(ArityError, match="Bad note number in fingering"):
        artist.add_annotations([".fingering/3:l:f:3."])


# ── Text voices ──────────────────────────────────────────────────────────────

def test_text_note_needs_text_voice() -> None:
    with pytest.raises(StructureError):
        _tab_artist().add_text_note("Am")


def test_text_notes_use_current_duration_and_font() -> None:
    artist = _tab_artist()
    artist.add_text_voice()
    artist.set_text_font("Georgia-14-bold")
    artist.add_text_note("Am")
    artist.add_text_note("#segno", ignore_ticks=True)

    chord, sign = artist.current_stave.text_voices[0]
    assert isinstance(chord, TextNote) and isinstance(sign, TextNote)
    assert chord.ticks == QUARTER
    assert chord.font is not None and chord.font.family == "Georgia"
    assert sign.ticks == 0
    assert sign.glyph == "segno"


# ── Staves, options and output ───────────────────────────────────────────────

def test_both_views_hidden_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        Artist().add_stave("stave", {"tablature": "false", "notation": "false"})


def test_staves_stack_vertically() -> None:
    artist = Artist()
    artist.set_options({"space": "20"})
    first = artist.add_stave("tabstave")
    second = artist.add_stave("tabstave")

    assert first.tab is not None and second.tab is not None
    assert first.tab.y == 30
    assert second.tab.y == 30 + first.tab.height + 10


def test_unknown_option_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        Artist().set_options({"colour": "red"})


def test_voice_without_stave_shows_both_views() -> None:
    artist = Artist()
    artist.add_voice()
    assert artist.current_stave.tab is not None
    assert artist.current_stave.notation is not None


def test_render_flushes_trailing_bar_and_is_repeatable() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("5", 3))
    artist.add_bar("double")

    renderer = JsonLayoutRenderer()
    first = artist.render(renderer)
    second = artist.render(renderer)

    assert first == second
    assert artist.is_rendered()
    payload = json.loads(first)
    (stave,) = payload["staves"]
    assert stave["tab"]["end_bar_type"] == "double"
    assert [note["kind"] for note in stave["tab_voices"][0]["notes"]] == ["tab"]


def test_multiple_voices_get_opposite_stems() -> None:
    artist = _dual_artist()
    artist.add_note(_fret("5", 3))
    artist.add_voice()
    artist.add_note(_fret("7", 4))

    artist.render(JsonLayoutRenderer())
    layout = artist.build_layout()
    directions = [voice.beam.stem_direction for voice in layout.staves[0].notation_voices if voice.beam]
    assert directions == [1, -1]


def test_player_data_prefers_notation_voices() -> None:
    artist = _dual_artist()
    artist.add_note(_fret("5", 3))
    data = artist.get_player_data()
    assert data.voices == [[artist.current_stave.notation_notes]]


def test_reset_discards_score() -> None:
    artist = _tab_artist()
    artist.add_note(_fret("5", 3))
    artist.reset()
    assert artist.score.staves == []
    with pytest.raises(StructureError):
        _ = artist.current_stave
