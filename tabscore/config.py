"""Configuration surface: construction-time artist options and score-wide customizations."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Final

from tabscore.errors import ConfigurationError

ACCIDENTAL_STRATEGIES: Final[set[str]] = {"standard", "cautionary"}
STEM_DIRECTIONS: Final[set[str]] = {"up", "down"}
ANNOTATION_POSITIONS: Final[set[str]] = {"top", "bottom"}

#: General MIDI program numbers for the playable instruments.
INSTRUMENTS: Final[dict[str, int]] = {
    "acoustic_grand_piano": 0,
    "acoustic_guitar_nylon": 24,
    "acoustic_guitar_steel": 25,
    "electric_guitar_jazz": 26,
    "distortion_guitar": 30,
    "electric_bass_finger": 33,
    "electric_bass_pick": 34,
    "trumpet": 56,
    "brass_section": 61,
    "soprano_sax": 64,
    "alto_sax": 65,
    "tenor_sax": 66,
    "baritone_sax": 67,
    "flute": 73,
    "synth_drum": 118,
}


@dataclass
class ArtistOptions:
    """Construction-time defaults for an Artist."""

    font_face: str = "Arial"
    font_size: int = 10
    font_style: str | None = None
    bottom_spacing: int = 20
    tab_stave_lower_spacing: int = 10
    note_stave_lower_spacing: int = 0
    scale: float = 1.0


@dataclass
class Customizations:
    """
    Score-wide options settable from ``options`` directives.

    Field names are the option keys with dashes replaced by underscores;
    the set of fields is exactly the set of accepted keys.
    """

    font_face: str = "Arial"
    font_size: int = 10
    font_style: str | None = None
    annotation_position: str = "bottom"
    scale: float = 1.0
    width: int = 600
    stave_distance: int = 0
    space: int = 0
    player: bool = False
    tempo: int = 120
    instrument: str = "acoustic_grand_piano"
    accidentals: str = "standard"
    tab_stems: bool = False
    tab_stem_direction: str = "up"
    beam_rests: bool = True
    beam_stemlets: bool = True
    beam_middle_only: bool = False
    connector_space: int = 5

    @classmethod
    def from_options(cls, options: ArtistOptions, width: int) -> Customizations:
        return cls(
            font_face=options.font_face,
            font_size=options.font_size,
            font_style=options.font_style,
            scale=options.scale,
            width=width,
        )

    def set_option(self, key: str, value: str) -> None:
        """
        Set one option from its directive string value.

        Raises:
            ConfigurationError: If the key is unknown or the value invalid.
        """
        coerce = _COERCERS.get(key)
        if coerce is None:
            raise ConfigurationError(f"Invalid option '{key}'")
        try:
            converted = coerce(value)
        except ValueError:
            raise ConfigurationError(f"Invalid value for option '{key}': {value}") from None
        setattr(self, key.replace("-", "_"), converted)

    def set_options(self, options: dict[str, str]) -> None:
        for key, value in options.items():
            self.set_option(key, value)


# ----- Private helpers -----

def _to_bool(value: str) -> bool:
    text = str(value).strip().lower()
    if text not in ("true", "false"):
        raise ValueError(value)
    return text == "true"


def _to_int(value: str) -> int:
    return int(str(value).strip())


def _to_positive_int(value: str) -> int:
    number = _to_int(value)
    if number <= 0:
        raise ValueError(value)
    return number


def _to_positive_float(value: str) -> float:
    number = float(str(value).strip())
    if number <= 0:
        raise ValueError(value)
    return number


def _one_of(choices: set[str] | dict[str, int]) -> Callable[[str], str]:
    def coerce(value: str) -> str:
        text = str(value).strip()
        if text not in choices:
            raise ValueError(value)
        return text

    return coerce


def _to_text(value: str) -> str:
    return str(value)


def _to_optional_text(value: str) -> str | None:
    return str(value) or None


_COERCERS: dict[str, Callable[[str], Any]] = {
    "font-face": _to_text,
    "font-size": _to_positive_int,
    "font-style": _to_optional_text,
    "annotation-position": _one_of(ANNOTATION_POSITIONS),
    "scale": _to_positive_float,
    "width": _to_positive_int,
    "stave-distance": _to_int,
    "space": _to_int,
    "player": _to_bool,
    "tempo": _to_positive_int,
    "instrument": _one_of(INSTRUMENTS),
    "accidentals": _one_of(ACCIDENTAL_STRATEGIES),
    "tab-stems": _to_bool,
    "tab-stem-direction": _one_of(STEM_DIRECTIONS),
    "beam-rests": _to_bool,
    "beam-stemlets": _to_bool,
    "beam-middle-only": _to_bool,
    "connector-space": _to_int,
}
