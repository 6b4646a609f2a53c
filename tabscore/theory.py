"""Music theory primitives: note names, key signatures, tunings, durations and meters."""

from __future__ import annotations

import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Final

from tabscore.errors import ResolutionError

# ── Pitch constants ─────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
LETTERS_PER_OCTAVE = 7

#: Ticks in a whole note. Every duration is an integral fraction of this.
RESOLUTION: Final[int] = 16384

ROOTS: Final[list[str]] = ["c", "d", "e", "f", "g", "a", "b"]
ROOT_VALUES: Final[list[int]] = [0, 2, 4, 5, 7, 9, 11]
ROOT_INDICES: Final[dict[str, int]] = {root: i for i, root in enumerate(ROOTS)}

ACCIDENTAL_OFFSETS: Final[dict[str, int]] = {"bb": -2, "b": -1, "n": 0, "#": 1, "##": 2}

#: Canonical (sharp) spelling of each pitch class, as produced by fret lookups.
CANONICAL_NOTES: Final[list[str]] = [
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B",
]

#: Root position major / natural minor scales as semitone steps.
MAJOR_SCALE: Final[list[int]] = [2, 2, 1, 2, 2, 2, 1]
MINOR_SCALE: Final[list[int]] = [2, 1, 2, 2, 1, 2, 2]
SCALE_TYPES: Final[dict[str, list[int]]] = {"M": MAJOR_SCALE, "m": MINOR_SCALE}

#: Key signature name -> (accidental glyph, number of accidentals).
KEY_SIGNATURES: Final[dict[str, tuple[str | None, int]]] = {
    "C": (None, 0), "Am": (None, 0),
    "F": ("b", 1), "Dm": ("b", 1),
    "Bb": ("b", 2), "Gm": ("b", 2),
    "Eb": ("b", 3), "Cm": ("b", 3),
    "Ab": ("b", 4), "Fm": ("b", 4),
    "Db": ("b", 5), "Bbm": ("b", 5),
    "Gb": ("b", 6), "Ebm": ("b", 6),
    "Cb": ("b", 7), "Abm": ("b", 7),
    "G": ("#", 1), "Em": ("#", 1),
    "D": ("#", 2), "Bm": ("#", 2),
    "A": ("#", 3), "F#m": ("#", 3),
    "E": ("#", 4), "C#m": ("#", 4),
    "B": ("#", 5), "G#m": ("#", 5),
    "F#": ("#", 6), "D#m": ("#", 6),
    "C#": ("#", 7), "A#m": ("#", 7),
}

NAMED_TUNINGS: Final[dict[str, str]] = {
    "standard": "E/5,B/4,G/4,D/4,A/3,E/3",
    "dagdad": "D/5,A/4,G/4,D/4,A/3,D/3",
    "dropd": "E/5,B/4,G/4,D/4,A/3,D/3",
    "eb": "Eb/5,Bb/4,Gb/4,Db/4,Ab/3,Eb/3",
    "standardBanjo": "D/5,B/4,G/4,D/4,G/5",
}

_RE_NOTE = re.compile(r"^([cdefgab])(bb|b|n|##|#)?$")
_RE_KEY = re.compile(r"^([A-Ga-g])(b|#)?(m|M)?$")


def note_parts(name: str) -> tuple[str, str | None]:
    """
    Split a note name such as ``"C#"`` or ``"bb"`` into root and accidental.

    Returns:
        (root letter in lower case, accidental or None)

    Raises:
        ResolutionError: If the name is not a letter plus an optional accidental.
    """
    match = _RE_NOTE.match(name.strip().lower()) if name else None
    if match is None:
        raise ResolutionError(f"Invalid note name: {name!r}")
    return match.group(1), match.group(2)


def note_value(name: str) -> int:
    """Pitch class (0-11) of a note name."""
    root, accidental = note_parts(name)
    offset = ACCIDENTAL_OFFSETS[accidental] if accidental else 0
    return (ROOT_VALUES[ROOT_INDICES[root]] + offset) % SEMITONES_PER_OCTAVE


def integer_to_note(value: int) -> str:
    """Canonical sharp spelling for a pitch class."""
    if not 0 <= value < SEMITONES_PER_OCTAVE:
        raise ResolutionError(f"Unknown note value: {value}")
    return CANONICAL_NOTES[value]


def relative_note_name(root: str, value: int) -> str:
    """
    Spell the pitch class *value* using the letter *root*.

    The letter may be raised or lowered by at most two semitones; anything
    further away is not a spelling of that letter.
    """
    root_letter, _ = note_parts(root)
    interval = (value - note_value(root_letter) + 6) % SEMITONES_PER_OCTAVE - 6
    if abs(interval) > 2:
        raise ResolutionError(f"Notes not related: {root}, {value}")
    if interval > 0:
        return root_letter + "#" * interval
    return root_letter + "b" * -interval


def scale_tones(key_value: int, intervals: list[int]) -> list[int]:
    """Pitch classes of a scale starting at *key_value*."""
    tones = [key_value]
    next_tone = key_value
    for step in intervals:
        next_tone = (next_tone + step) % SEMITONES_PER_OCTAVE
        tones.append(next_tone)
    return tones


def has_key_signature(key: str) -> bool:
    return key in KEY_SIGNATURES


def key_parts(key: str) -> tuple[str, str | None, str]:
    """Split a key signature name into (root, accidental, type) where type is M or m."""
    match = _RE_KEY.match(key.strip())
    if match is None:
        raise ResolutionError(f"Invalid key: {key!r}")
    return match.group(1).lower(), match.group(2), match.group(3) or "M"


@dataclass(frozen=True)
class KeyProperties:
    """A parsed ``note/octave`` key."""

    key: str
    octave: int
    int_value: int


def key_properties(spec: str) -> KeyProperties:
    """
    Parse a ``"C#/4"`` style key into its note, octave and absolute value.

    The absolute value counts semitones from C0 and is not wrapped, so
    ``Cb/4`` sits one semitone below ``C/4``.
    """
    pieces = spec.split("/")
    if len(pieces) < 2:
        raise ResolutionError(f"Key must have note + octave: {spec!r}")
    root, accidental = note_parts(pieces[0])
    try:
        octave = int(pieces[1])
    except ValueError:
        raise ResolutionError(f"Invalid octave in key: {spec!r}") from None
    offset = ACCIDENTAL_OFFSETS[accidental] if accidental else 0
    int_value = octave * SEMITONES_PER_OCTAVE + ROOT_VALUES[ROOT_INDICES[root]] + offset
    return KeyProperties(key=pieces[0].strip().upper(), octave=octave, int_value=int_value)


def key_to_midi(spec: str) -> int:
    """
    Convert a ``note/octave`` key to a MIDI note number.

    MIDI octave numbering: C-1 = 0, C0 = 12, ... C4 (Middle C) = 60.
    """
    return key_properties(spec).int_value + SEMITONES_PER_OCTAVE


# ── Key spelling ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SelectedNote:
    """
    Result of spelling a note in the current key.

    Attributes:
        note:       The spelling to engrave, e.g. ``"bb"``.
        accidental: Accidental carried by that spelling, or None.
        change:     True when the spelling differs from the one prevailing in
                    the current measure, so an accidental must be printed.
    """

    note: str
    accidental: str | None
    change: bool


class KeyManager:
    """
    Spells notes against a key signature and remembers accidentals.

    The memory is measure-scoped: ``reset()`` (called at every bar) restores
    the plain key signature.
    """

    def __init__(self, key: str = "C") -> None:
        self.key = key
        self._scale_map: dict[str, str] = {}
        self._scale_map_by_value: dict[int, str] = {}
        self._original_scale_map_by_value: dict[int, str] = {}
        self.set_key(key)

    def set_key(self, key: str) -> KeyManager:
        self.key = key
        self.reset()
        return self

    def reset(self) -> KeyManager:
        root, accidental, key_type = key_parts(self.key)
        if key_type not in SCALE_TYPES:
            raise ResolutionError(f"Unsupported key type: {self.key}")

        key_value = note_value(root + (accidental or ""))
        tones = scale_tones(key_value, SCALE_TYPES[key_type])

        self._scale_map = {}
        self._scale_map_by_value = {}
        self._original_scale_map_by_value = {}
        location = ROOT_INDICES[root]
        for i in range(LETTERS_PER_OCTAVE):
            letter = ROOTS[(location + i) % LETTERS_PER_OCTAVE]
            spelled = relative_note_name(letter, tones[i])
            self._scale_map[letter] = spelled
            self._scale_map_by_value[tones[i]] = spelled
            self._original_scale_map_by_value[tones[i]] = spelled
        return self

    def select_note(self, note: str) -> SelectedNote:
        """
        Spell *note* in the current key and update the measure's memory.

        Lookup order: the letter's current spelling, any current spelling of
        the same pitch, the key signature's spelling of the same pitch,
        cancelling an altered letter back to natural, and finally the note
        as given.
        """
        note = note.lower()
        root, accidental = note_parts(note)
        scale_note = self._scale_map[root]

        if scale_note == note:
            return SelectedNote(note=scale_note, accidental=accidental, change=False)

        value = note_value(note)
        value_note = self._scale_map_by_value.get(value)
        if value_note is not None:
            return SelectedNote(note=value_note, accidental=note_parts(value_note)[1], change=False)

        original_note = self._original_scale_map_by_value.get(value)
        if original_note is not None:
            self._scale_map[root] = original_note
            self._scale_map_by_value.pop(note_value(scale_note), None)
            self._scale_map_by_value[value] = original_note
            return SelectedNote(
                note=original_note, accidental=note_parts(original_note)[1], change=True
            )

        if root == note:
            self._scale_map_by_value.pop(note_value(scale_note), None)
            self._scale_map_by_value[note_value(root)] = root
            self._scale_map[root] = root
            return SelectedNote(note=root, accidental=None, change=True)

        self._scale_map_by_value.pop(note_value(scale_note), None)
        self._scale_map_by_value[value] = note
        self._scale_map[root] = note
        return SelectedNote(note=note, accidental=accidental, change=True)


# ── Tunings ──────────────────────────────────────────────────────────────────

class Tuning:
    """
    Open-string pitches of a fretted instrument.

    String 1 is the highest-pitched string, matching tablature line order.
    """

    def __init__(self, tuning: str = "standard") -> None:
        self.tuning_string = ""
        self.values: list[int] = []
        self.set_tuning(tuning)

    @property
    def num_strings(self) -> int:
        return len(self.values)

    def set_tuning(self, tuning: str) -> None:
        """
        Load a named tuning or a comma-separated ``note/octave`` list.

        Raises:
            ResolutionError: If any string's pitch cannot be parsed.
        """
        spec = NAMED_TUNINGS.get(tuning, tuning)
        keys = re.split(r"\s*,\s*", spec.strip())
        try:
            values = [key_properties(key).int_value for key in keys]
        except ResolutionError:
            raise ResolutionError(f"Invalid tuning string: {tuning}") from None
        self.tuning_string = spec
        self.values = values

    def value_for_string(self, string: int | str) -> int:
        try:
            number = int(string)
        except (TypeError, ValueError):
            raise ResolutionError(f"Invalid string number: {string!r}") from None
        if number < 1 or number > self.num_strings:
            raise ResolutionError(
                f"String number must be between 1 and {self.num_strings}: {string}"
            )
        return self.values[number - 1]

    def value_for_fret(self, fret: int | str, string: int | str) -> int:
        try:
            fret_number = int(fret)
        except (TypeError, ValueError):
            raise ResolutionError(f"Fret has no pitch: {fret!r}") from None
        if fret_number < 0:
            raise ResolutionError(f"Fret number must be 0 or higher: {fret}")
        return self.value_for_string(string) + fret_number

    def note_for_fret(self, fret: int | str, string: int | str) -> str:
        """Canonical ``note/octave`` key sounded at *fret* on *string*."""
        value = self.value_for_fret(fret, string)
        octave, pitch_class = divmod(value, SEMITONES_PER_OCTAVE)
        return f"{integer_to_note(pitch_class)}/{octave}"


# ── Durations ────────────────────────────────────────────────────────────────

DURATION_ALIASES: Final[dict[str, str]] = {"w": "1", "h": "2", "q": "4", "b": "256"}
VALID_DURATIONS: Final[set[str]] = {"1", "2", "4", "8", "16", "32", "64", "128", "256"}

_RE_DURATION = re.compile(r"^(\d+|[whqb])(d*)([nrhmsS]?)$")


@dataclass(frozen=True)
class Duration:
    """
    A parsed duration code such as ``"8d"``, ``"q"`` or ``"16r"``.

    Attributes:
        value: Canonical note value (``"4"`` for a quarter).
        dots:  Number of augmentation dots.
        kind:  ``"n"`` (normal), ``"r"`` (rest), ``"s"`` (slash), ``"h"``, ``"m"``.
    """

    value: str
    dots: int
    kind: str

    @property
    def ticks(self) -> Fraction:
        base = Fraction(RESOLUTION, int(self.value))
        total = base
        for _ in range(self.dots):
            base /= 2
            total += base
        return total

    @property
    def is_rest(self) -> bool:
        return self.kind == "r"


def parse_duration(code: str) -> Duration:
    """
    Parse a duration code.

    Raises:
        ResolutionError: If the code is not a known note value.
    """
    match = _RE_DURATION.match(code.strip())
    if match is None:
        raise ResolutionError(f"Invalid duration: {code!r}")
    value = DURATION_ALIASES.get(match.group(1), match.group(1))
    if value not in VALID_DURATIONS:
        raise ResolutionError(f"Invalid duration: {code!r}")
    kind = (match.group(3) or "n").lower()
    return Duration(value=value, dots=len(match.group(2)), kind=kind)


def make_duration(time: str, dot: bool = False) -> str:
    """Build the sticky duration code from a time value and dot flag."""
    return time + ("d" if dot else "")


# ── Meters ───────────────────────────────────────────────────────────────────

DEFAULT_BEAM_GROUPS: Final[dict[str, list[str]]] = {
    "1/2": ["1/2"], "2/2": ["1/2"], "3/2": ["1/2"], "4/2": ["1/2"],
    "1/4": ["1/4"], "2/4": ["1/4"], "3/4": ["1/4"], "4/4": ["1/4"],
    "1/8": ["1/8"], "2/8": ["2/8"], "3/8": ["3/8"], "4/8": ["2/8"],
    "1/16": ["1/16"], "2/16": ["2/16"], "3/16": ["3/16"], "4/16": ["2/16"],
}

_RE_TIME_SIGNATURE = re.compile(r"^(\d+(?:\+\d+)*)/(\d+)$")


def is_valid_time_signature(time: str) -> bool:
    return time in ("C", "C|") or _RE_TIME_SIGNATURE.match(time) is not None


def default_beam_groups(time: str | None) -> list[str]:
    """
    Beam grouping for a time signature, as ``"num/den"`` strings.

    Triple meters group in threes of the beat value, compound values over a
    quarter group in pairs, everything else beams per beat.
    """
    if not time or time == "C":
        time = "4/4"
    elif time == "C|":
        time = "2/2"

    groups = DEFAULT_BEAM_GROUPS.get(time)
    if groups is not None:
        return list(groups)

    match = _RE_TIME_SIGNATURE.match(time)
    if match is None:
        return ["1/4"]
    beat_total = sum(int(part) for part in match.group(1).split("+"))
    beat_value = int(match.group(2))
    if beat_total % 3 == 0:
        return [f"3/{beat_value}"]
    if beat_value > 4:
        return [f"2/{beat_value}"]
    return [f"1/{beat_value}"]
