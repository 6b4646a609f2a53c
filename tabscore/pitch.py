"""Resolve tab positions and letter-name pitches into engraved and sounding keys."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tabscore.directives import AbcPitch
from tabscore.errors import ConfigurationError
from tabscore.theory import KeyManager, Tuning, key_properties, note_parts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PitchBinding:
    """
    A resolved pitch for one chord position.

    Attributes:
        note:       Spelled note name in lower case, e.g. ``"bb"``.
        octave:     Octave of the spelled note.
        accidental: Accidental to engrave: a glyph such as ``"#"`` or ``"n"``,
                    a cautionary glyph such as ``"#_c"``, or None.
        play_key:   Sounding ``note/octave`` key with the octave shift applied.
    """

    note: str
    octave: int
    accidental: str | None
    play_key: str

    @property
    def key(self) -> str:
        return f"{self.note}/{self.octave}"


class PitchResolver:
    """
    Spells pitches against the current tuning and key.

    The tuning and key manager are shared with the artist, so retuning or
    changing key on them is seen here immediately. Accidental memory lives
    in the key manager and is therefore measure-scoped.
    """

    def __init__(self, tuning: Tuning, key_manager: KeyManager) -> None:
        self.tuning = tuning
        self.key_manager = key_manager

    def resolve_fret(
        self,
        fret: str,
        string: int,
        strategy: str = "standard",
        octave_shift: int = 0,
    ) -> PitchBinding:
        """
        Resolve a fret on a string.

        Args:
            fret:         Fret number.
            string:       String number, 1 being the highest string.
            strategy:     ``standard`` marks only spelling changes;
                          ``cautionary`` also marks unchanged accidentals.
            octave_shift: Octaves added to the sounding pitch only.

        Raises:
            ResolutionError:    If the fret or string does not exist.
            ConfigurationError: If the strategy is unknown.
        """
        spec = self.tuning.note_for_fret(fret, string)
        props = key_properties(spec)
        selected = self.key_manager.select_note(props.key)

        if strategy == "standard":
            accidental = (selected.accidental or "n") if selected.change else None
        elif strategy == "cautionary":
            if selected.change:
                accidental = selected.accidental or "n"
            else:
                accidental = f"{selected.accidental}_c" if selected.accidental else None
        else:
            raise ConfigurationError(f"Invalid value for option 'accidentals': {strategy}")

        octave = props.octave
        old_root, _ = note_parts(props.key)
        new_root, _ = note_parts(selected.note)
        if new_root == "b" and old_root == "c":
            octave -= 1
        elif new_root == "c" and old_root == "b":
            octave += 1

        logger.debug("fret %s string %s -> %s/%s (%s)", fret, string, selected.note, octave, accidental)
        return PitchBinding(
            note=selected.note,
            octave=octave,
            accidental=accidental,
            play_key=f"{props.key}/{props.octave + octave_shift}",
        )

    def resolve_abc(self, abc: AbcPitch, octave: int, octave_shift: int = 0) -> PitchBinding:
        """
        Resolve a letter-name pitch.

        The accidental is taken as written (with ``_c`` appended for
        cautionary ones). The pitch is still registered with the key manager
        so later fret-based notes in the measure see its accidental.
        """
        accidental = abc.accidental
        if accidental and abc.accidental_type:
            accidental = f"{accidental}_{abc.accidental_type}"

        written = abc.key + (abc.accidental if abc.accidental and abc.accidental != "n" else "")
        self.key_manager.select_note(written)

        sounding = abc.key + (abc.accidental or "")
        return PitchBinding(
            note=abc.key,
            octave=octave,
            accidental=accidental,
            play_key=f"{sounding}/{octave + octave_shift}",
        )
