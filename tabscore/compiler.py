"""Walk a directive stream and drive an Artist to build the score."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Final

from tabscore.artist import Artist
from tabscore.directives import Directive, NoteElement, Option, TextElement
from tabscore.errors import (
    ConfigurationError,
    MiniLanguageError,
    ResolutionError,
    StructureError,
    TabScoreError,
)
from tabscore.theory import Tuning, has_key_signature, is_valid_time_signature

logger = logging.getLogger(__name__)

CLEFS: Final[tuple[str, ...]] = ("treble", "bass", "tenor", "alto", "percussion", "none")
VOICE_POSITIONS: Final[tuple[str, ...]] = ("top", "bottom", "new")
MIN_STRINGS = 4
MAX_STRINGS = 8

_RE_TEXT_FONT = re.compile(r"\.font=(.*)")


class TabCompiler:
    """
    Compiles directives into the artist's score.

    A compilation either completes or raises; after an error the artist's
    score is partial and ``reset()`` must be called before compiling again.
    """

    def __init__(self, artist: Artist) -> None:
        self.artist = artist
        self.valid = False
        self.directives: list[Directive] = []

    def reset(self) -> None:
        """Forget the previous compilation and reset the artist."""
        self.valid = False
        self.directives = []
        self.artist.reset()

    def is_valid(self) -> bool:
        return self.valid

    def compile(self, directives: Sequence[Directive]) -> list[Directive]:
        """
        Compile directives in order.

        Returns:
            The compiled directives.

        Raises:
            TabScoreError: On the first invalid directive, with its location.
        """
        if not directives:
            raise StructureError("Nothing to compile")

        self.directives = list(directives)
        for directive in self.directives:
            try:
                self._compile_directive(directive)
            except TabScoreError as exc:
                exc.locate(directive.line, directive.column)
                raise
        self.artist.close_bends()
        self.valid = True
        logger.debug("compiled %d directives", len(self.directives))
        return self.directives

    def parse_stave_options(self, options: Sequence[Option]) -> dict[str, str]:
        """
        Validate stave options and return them as a mapping.

        Raises:
            ConfigurationError: On an unknown key, an invalid value, or when
                                both notation and tablature are disabled.
        """
        params: dict[str, str] = {}
        notation_option: Option | None = None
        for option in options:
            params[option.key] = option.value
            try:
                if option.key in ("notation", "tablature"):
                    notation_option = option
                    _validate_boolean(option)
                else:
                    _validate_stave_option(option)
            except TabScoreError as exc:
                exc.locate(option.line, option.column)
                raise

        if params.get("notation") == "false" and params.get("tablature") == "false":
            raise ConfigurationError(
                "Both 'notation' and 'tablature' can't be invisible",
                notation_option.line if notation_option else None,
                notation_option.column if notation_option else None,
            )
        return params

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _compile_directive(self, directive: Directive) -> None:
        logger.debug("directive %s at %s:%s", directive.kind, directive.line, directive.column)
        if directive.kind in ("stave", "tabstave"):
            self.artist.add_stave(directive.kind, self.parse_stave_options(directive.options))
        elif directive.kind == "voice":
            self.artist.add_voice(self.parse_stave_options(directive.options))
        elif directive.kind == "options":
            self.artist.set_options({option.key: option.value for option in directive.options})
            return
        else:
            raise StructureError(f"Invalid keyword '{directive.kind}'")

        self._compile_notes(directive.notes)
        self._compile_text(directive.text)

    def _compile_notes(self, notes: Sequence[NoteElement]) -> None:
        for element in notes:
            try:
                if element.time:
                    self.artist.set_duration(element.time, element.dot)
                if element.command:
                    self._run_command(element)
                if element.chord is not None:
                    self.artist.add_chord(element.chord, element.articulation, element.decorator)
                if element.abc is not None or element.fret is not None:
                    self.artist.add_note(element)
            except TabScoreError as exc:
                exc.locate(element.line, element.column)
                raise

    def _run_command(self, element: NoteElement) -> None:
        command = element.command
        params = element.params
        if command == "bar":
            self.artist.add_bar(element.type)
        elif command == "tuplet":
            if not isinstance(params, dict) or "tuplet" not in params:
                raise StructureError(f"Malformed tuplet: {params!r}")
            notes = params.get("notes")
            self.artist.make_tuplets(
                _to_int(params["tuplet"], "tuplet"),
                None if notes is None else _to_int(notes, "tuplet note count"),
            )
        elif command == "annotations":
            self.artist.add_annotations([str(token) for token in params or []])
        elif command == "rest":
            self.artist.add_rest(params if isinstance(params, dict) else {})
        elif command == "command":
            self.artist.run_command(str(params or ""), element.line, element.column)
        else:
            raise StructureError(f"Invalid command '{command}'")

    def _compile_text(self, text_line: Sequence[TextElement]) -> None:
        if not text_line:
            return
        self.artist.add_text_voice()

        position = 0
        justification = "center"
        smooth = True

        for element in text_line:
            text = element.text.strip()
            try:
                font_match = _RE_TEXT_FONT.search(text)
                if font_match is not None:
                    self.artist.set_text_font(font_match.group(1))
                elif text.startswith(":"):
                    self.artist.set_duration(text)
                elif text.startswith("."):
                    command = text[1:]
                    if command in ("center", "left", "right"):
                        justification = command
                    elif command == "strict":
                        smooth = False
                    elif command == "smooth":
                        smooth = True
                    elif command in ("bar", "|"):
                        self.artist.add_text_note("", 0, justification, False, True)
                    else:
                        try:
                            position = int(command)
                        except ValueError:
                            raise MiniLanguageError(f"Invalid text command '{text}'") from None
                elif text == "|":
                    self.artist.add_text_note("", 0, justification, False, True)
                elif text.startswith("++"):
                    self.artist.add_text_voice()
                else:
                    ignore_ticks = text.startswith("|")
                    if ignore_ticks:
                        text = text[1:]
                    self.artist.add_text_note(text, position, justification, smooth, ignore_ticks)
            except TabScoreError as exc:
                exc.locate(element.line, element.column)
                raise


# ----- Private helpers -----

def _validate_boolean(option: Option) -> None:
    if option.value not in ("true", "false"):
        raise ConfigurationError(f"'{option.key}' must be 'true' or 'false'")


def _validate_stave_option(option: Option) -> None:
    key, value = option.key, option.value
    if key == "key":
        if not has_key_signature(value):
            raise ConfigurationError(f"Invalid key signature '{value}'")
    elif key == "clef":
        if value not in CLEFS:
            raise ConfigurationError(f"'clef' must be one of {', '.join(CLEFS)}")
    elif key == "voice":
        if value not in VOICE_POSITIONS:
            raise ConfigurationError(f"'voice' must be one of {', '.join(VOICE_POSITIONS)}")
    elif key == "time":
        if not is_valid_time_signature(value):
            raise ConfigurationError(f"Invalid time signature: '{value}'")
    elif key == "tuning":
        try:
            Tuning(value)
        except ResolutionError:
            raise ConfigurationError(f"Invalid tuning: '{value}'") from None
    elif key == "strings":
        try:
            num_strings = int(value)
        except ValueError:
            raise ConfigurationError(f"Invalid number of strings: {value}") from None
        if not MIN_STRINGS <= num_strings <= MAX_STRINGS:
            raise ConfigurationError(f"Invalid number of strings: {num_strings}")
    else:
        raise ConfigurationError(f"Invalid option '{key}'")


def _to_int(value: object, what: str) -> int:
    try:
        return int(str(value))
    except ValueError:
        raise StructureError(f"Invalid {what}: {value!r}") from None
