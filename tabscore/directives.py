"""Typed records for the directive stream emitted by the tablature grammar."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tabscore.errors import StructureError

# Grammar glyphs that differ from the engraving vocabulary.
_ACCIDENTAL_GLYPHS = {"@": "b", "@@": "bb", "=": "n"}
_ACCIDENTAL_TYPE_GLYPHS = {"~": "c"}


@dataclass(frozen=True)
class Option:
    """A ``key=value`` pair from a stave or options directive."""

    key: str
    value: str
    line: int | None = None
    column: int | None = None


@dataclass(frozen=True)
class AbcPitch:
    """A pitch given by letter name rather than fret (``C#/5``)."""

    key: str
    accidental: str | None = None
    accidental_type: str | None = None


@dataclass
class NoteElement:
    """
    One element of a ``notes`` line.

    The same record carries every element kind the grammar produces: a time
    change (``time``/``dot``), a command (``command`` with ``type`` for bars
    and ``params`` for tuplets, annotations, rests and inline commands), a
    chord (``chord`` holding position specs) or a single position given by
    fret and string or by ABC pitch and octave.
    """

    time: str | None = None
    dot: bool = False
    command: str | None = None
    type: str | None = None
    params: Any = None
    chord: list[NoteElement] | None = None
    fret: str | None = None
    string: int | None = None
    abc: AbcPitch | None = None
    octave: int | None = None
    articulation: str | None = None
    decorator: str | None = None
    line: int | None = None
    column: int | None = None


@dataclass(frozen=True)
class TextElement:
    """A token of a ``text`` line."""

    text: str
    line: int | None = None
    column: int | None = None


@dataclass
class Directive:
    """
    A top-level element: ``options``, ``stave``, ``tabstave`` or ``voice``.

    Kinds are not checked here; the compiler rejects unknown ones so that the
    error carries the directive's location.
    """

    kind: str
    options: list[Option] = field(default_factory=list)
    notes: list[NoteElement] = field(default_factory=list)
    text: list[TextElement] = field(default_factory=list)
    line: int | None = None
    column: int | None = None


# ── Loading ──────────────────────────────────────────────────────────────────

def load_directives(data: Iterable[Mapping[str, Any]]) -> list[Directive]:
    """
    Build directive records from the grammar's JSON-compatible output.

    Args:
        data: A list of element dicts with ``element``, ``options`` or
              ``params``, ``notes``, ``text`` and ``_l``/``_c`` positions.

    Raises:
        StructureError: If an element is not a mapping or has no kind.
    """
    if isinstance(data, (str, bytes)) or not isinstance(data, Iterable):
        raise StructureError("Directive data must be a list of elements")
    return [_load_directive(raw) for raw in data]


def read_directives(path: str | Path) -> list[Directive]:
    """
    Load directives from a JSON file.

    Raises:
        OSError:        If the file cannot be read.
        StructureError: If the file is not valid directive JSON.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise StructureError(f"Invalid directive JSON: {exc.msg}", exc.lineno, exc.colno) from exc
    return load_directives(data)


# ----- Private helpers -----

def _load_directive(raw: Any) -> Directive:
    if not isinstance(raw, Mapping):
        raise StructureError(f"Directive must be an object, got {type(raw).__name__}")
    kind = raw.get("element")
    if not kind:
        raise StructureError("Directive has no element kind", _as_int(raw.get("_l")), _as_int(raw.get("_c")))

    raw_options = raw.get("params") if kind == "options" else raw.get("options")
    return Directive(
        kind=str(kind),
        options=[_load_option(option) for option in raw_options or []],
        notes=[_load_note(note) for note in raw.get("notes") or []],
        text=[_load_text(text) for text in raw.get("text") or []],
        line=_as_int(raw.get("_l")),
        column=_as_int(raw.get("_c")),
    )


def _load_option(raw: Any) -> Option:
    if not isinstance(raw, Mapping) or "key" not in raw:
        raise StructureError(f"Malformed option: {raw!r}")
    value = raw.get("value")
    return Option(
        key=str(raw["key"]),
        value="" if value is None else str(value),
        line=_as_int(raw.get("_l")),
        column=_as_int(raw.get("_c")),
    )


def _load_note(raw: Any) -> NoteElement:
    if not isinstance(raw, Mapping):
        raise StructureError(f"Malformed note element: {raw!r}")

    chord = raw.get("chord")
    fret = raw.get("fret")
    time = raw.get("time")
    return NoteElement(
        time=None if time is None else str(time),
        dot=bool(raw.get("dot", False)),
        command=raw.get("command"),
        type=raw.get("type"),
        params=raw.get("params"),
        chord=None if chord is None else [_load_note(entry) for entry in chord],
        fret=None if fret is None else str(fret),
        string=_as_int(raw.get("string")),
        abc=_load_abc(raw.get("abc")),
        octave=_as_int(raw.get("octave")),
        articulation=raw.get("articulation"),
        decorator=raw.get("decorator"),
        line=_as_int(raw.get("_l")),
        column=_as_int(raw.get("_c")),
    )


def _load_abc(raw: Any) -> AbcPitch | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping) or not raw.get("key"):
        raise StructureError(f"Malformed ABC pitch: {raw!r}")
    accidental = raw.get("accidental")
    accidental_type = raw.get("accidental_type")
    return AbcPitch(
        key=str(raw["key"]),
        accidental=_ACCIDENTAL_GLYPHS.get(accidental, accidental) or None,
        accidental_type=_ACCIDENTAL_TYPE_GLYPHS.get(accidental_type, accidental_type) or None,
    )


def _load_text(raw: Any) -> TextElement:
    if isinstance(raw, str):
        return TextElement(text=raw)
    if not isinstance(raw, Mapping) or "text" not in raw:
        raise StructureError(f"Malformed text element: {raw!r}")
    return TextElement(
        text=str(raw["text"]),
        line=_as_int(raw.get("_l")),
        column=_as_int(raw.get("_c")),
    )


def _as_int(value: Any) -> int | None:
    """Coerce numeric strings from the grammar to int; leave None alone."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise StructureError(f"Expected a number, got {value!r}") from None
