"""MidiExporter: writes scheduled playback events to a Standard MIDI File."""

from __future__ import annotations

import logging
from fractions import Fraction

from midiutil import MIDIFile

from tabscore.player import TICKS_PER_BEAT, Player, TickEvent

logger = logging.getLogger(__name__)

# In midiutil Format 1 MIDI, track 0 is the conductor/tempo track.
# Note data written to track 0 is ignored by most players and notation apps.
TRACK_CONDUCTOR = 0  # Tempo only, never receives notes
TRACK_NOTES = 1

CHANNEL = 0


class MidiExporter:
    """
    Writes a score's playback schedule as a two-track MIDI file.

    Track layout (Format 1)
    -----------------------
    Track 0: conductor track (tempo only, no notes)

    Track 1: every sounding note, on one channel, with a program change
        selecting the player's instrument.

    Timing
    ------
    Event ticks are converted to quarter-note beats using
    ``beats = ticks / (RESOLUTION / 4)``. Tempo does not affect beat
    positions, only the tempo event.
    """

    DEFAULT_VELOCITY = 100  # MIDI velocity (0-127)

    def __init__(self, player: Player | None = None, velocity: int = DEFAULT_VELOCITY) -> None:
        """
        Args:
            player:   Supplies tempo and instrument. Defaults to a new Player.
            velocity: MIDI note-on velocity.
        """
        self.player = player or Player()
        self.velocity = velocity

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _ticks_to_beats(self, ticks: Fraction) -> float:
        """Convert ticks to quarter-note beats."""
        return float(ticks / TICKS_PER_BEAT)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def export(self, events: list[TickEvent], output_path: str) -> int:
        """
        Render playback events to a Standard MIDI File (SMF format 1).

        Args:
            events:      Events from ``Player.schedule``.
            output_path: Destination file path (e.g. "output.mid").

        Returns:
            The number of notes written.

        Raises:
            OSError: If the output file cannot be opened for writing.
        """
        midi = MIDIFile(numTracks=2, removeDuplicates=False, deinterleave=False)

        midi.addTempo(TRACK_CONDUCTOR, 0, self.player.tempo)
        midi.addTrackName(TRACK_NOTES, 0, self.player.instrument)
        midi.addProgramChange(TRACK_NOTES, CHANNEL, 0, self.player.program)

        written = 0
        for event in events:
            start_beat = self._ticks_to_beats(event.tick)
            for note in event.notes:
                duration_beats = self._ticks_to_beats(note.ticks)
                for pitch in Player.midi_notes(note):
                    midi.addNote(
                        track=TRACK_NOTES,
                        channel=CHANNEL,
                        pitch=pitch,
                        time=start_beat,
                        duration=duration_beats,
                        volume=self.velocity,
                    )
                    written += 1

        with open(output_path, "wb") as f:
            midi.writeFile(f)
        logger.debug("wrote %d notes to %s", written, output_path)
        return written
