"""Playback scheduling: turn compiled voices into absolute-tick note events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction

from tabscore.config import INSTRUMENTS, Customizations
from tabscore.errors import ConfigurationError
from tabscore.notes import SpacerNote, StaveNote, Tickable
from tabscore.score_models import PlayerData
from tabscore.theory import RESOLUTION, key_to_midi

logger = logging.getLogger(__name__)

#: Ticks in one quarter-note beat.
TICKS_PER_BEAT = RESOLUTION // 4


@dataclass(frozen=True)
class TickEvent:
    """All notes starting at the same absolute tick."""

    tick: Fraction
    notes: list[Tickable]


class Player:
    """
    Schedules compiled voices for playback.

    Staves play one after another: every voice of a stave starts at the
    stave's offset, and the offset advances by the stave's longest voice.
    Notes that take no time (bars, free labels) are skipped.
    """

    DEFAULT_TEMPO = 120
    DEFAULT_INSTRUMENT = "acoustic_grand_piano"

    def __init__(self, tempo: int = DEFAULT_TEMPO, instrument: str = DEFAULT_INSTRUMENT) -> None:
        """
        Args:
            tempo:      Playback tempo in quarter-note beats per minute.
            instrument: A key of ``INSTRUMENTS``.

        Raises:
            ConfigurationError: If the instrument is unknown.
        """
        self.tempo = tempo
        self.instrument = instrument
        self.set_instrument(instrument)
        self.total_ticks = Fraction(0)

    @classmethod
    def from_customizations(cls, customizations: Customizations) -> Player:
        return cls(tempo=customizations.tempo, instrument=customizations.instrument)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def ticks_per_minute(self) -> int:
        return self.tempo * TICKS_PER_BEAT

    @property
    def program(self) -> int:
        """General MIDI program number of the instrument."""
        return INSTRUMENTS[self.instrument]

    def set_tempo(self, tempo: int) -> None:
        if tempo <= 0:
            raise ConfigurationError(f"Invalid tempo: {tempo}")
        self.tempo = tempo

    def set_instrument(self, instrument: str) -> None:
        if instrument not in INSTRUMENTS:
            raise ConfigurationError(f"Invalid instrument: {instrument}")
        self.instrument = instrument

    def schedule(self, data: PlayerData) -> list[TickEvent]:
        """
        Group every timed note by its absolute start tick.

        Returns:
            Events sorted by tick. ``total_ticks`` is updated to the end of
            the last stave.
        """
        events: dict[Fraction, list[Tickable]] = {}
        stave_offset = Fraction(0)
        for voices in data.voices:
            longest = Fraction(0)
            for voice in voices:
                voice_ticks = Fraction(0)
                for note in voice:
                    if note.ignore_ticks:
                        continue
                    events.setdefault(stave_offset + voice_ticks, []).append(note)
                    voice_ticks += note.ticks
                longest = max(longest, voice_ticks)
            stave_offset += longest

        self.total_ticks = stave_offset
        logger.debug("scheduled %d events over %s ticks", len(events), stave_offset)
        return [TickEvent(tick=tick, notes=events[tick]) for tick in sorted(events)]

    def seconds_for_ticks(self, ticks: Fraction | int) -> float:
        return float(Fraction(ticks) / Fraction(self.ticks_per_minute, 60))

    @staticmethod
    def midi_notes(note: Tickable) -> list[int]:
        """MIDI numbers sounded by a note; rests and spacers sound nothing."""
        if isinstance(note, SpacerNote) or (isinstance(note, StaveNote) and note.is_rest):
            return []
        return [key_to_midi(key) for key in note.play_note or []]
