"""Unit tests for MidiExporter."""

from pathlib import Path

import pytest

from tabscore.artist import Artist
from tabscore.directives import NoteElement
from tabscore.midi_exporter import MidiExporter
from tabscore.player import TICKS_PER_BEAT, Player, TickEvent


def _events(player: Player) -> list[TickEvent]:
    artist = Artist()
    artist.add_stave("tabstave", {"notation": "true"})
    artist.add_chord([NoteElement(fret="0", string=1), NoteElement(fret="0", string=2)])
    artist.add_rest({})
    artist.add_note(NoteElement(fret="3", string=1))
    return player.schedule(artist.get_player_data())


def test_export_writes_standard_midi_file(tmp_path: Path) -> None:
    output = tmp_path / "song.mid"
    written = MidiExporter().export(_events(Player()), str(output))

    assert written == 3
    assert output.read_bytes().startswith(b"MThd")


def test_export_uses_player_instrument(tmp_path: Path) -> None:
    output = tmp_path / "guitar.mid"
    player = Player(tempo=90, instrument="acoustic_guitar_nylon")
    MidiExporter(player).export(_events(player), str(output))

    data = output.read_bytes()
    assert b"acoustic_guitar_nylon" in data
    # Program change on channel 0 to program 24.
    assert bytes([0xC0, 24]) in data


def test_ticks_to_beats() -> None:
    assert MidiExporter()._ticks_to_beats(TICKS_PER_BEAT * 3) == 3.0


def test_export_to_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        MidiExporter().export([], str(tmp_path / "missing" / "out.mid"))
