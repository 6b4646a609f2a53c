"""
The Artist builds a score from compiler calls.

It owns the score being built, a cursor to the active stave and the session
state that sticks across events: current duration, clef, octave shift,
tuning, key (with its accidental memory) and the open bend chain.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Final, cast

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
from tabscore.bends import BendChain
from tabscore.config import ArtistOptions, Customizations
from tabscore.directives import NoteElement
from tabscore.errors import (
    ArityError,
    ConfigurationError,
    ResolutionError,
    StructureError,
    TabScoreError,
)
from tabscore.notes import (
    POSITION_BELOW,
    Accidental,
    Annotation,
    Articulation,
    BarNote,
    Dot,
    Font,
    Modifier,
    NoteLink,
    SpacerNote,
    StaveNote,
    StaveTie,
    TabNote,
    TabPosition,
    TabSlide,
    TabTie,
    TextNote,
    Tickable,
    Tuplet,
    Vibrato,
)
from tabscore.pitch import PitchBinding, PitchResolver
from tabscore.renderers import ScoreRenderer
from tabscore.score_models import (
    BeamConfig,
    NotationStave,
    PlayerData,
    Score,
    ScoreLayout,
    StaveGroup,
    StaveLayout,
    TabStave,
    VoiceLayout,
)
from tabscore.theory import KeyManager, Tuning, default_beam_groups, make_duration, parse_duration

logger = logging.getLogger(__name__)

BAR_TYPES: Final[set[str]] = {
    "single", "double", "end", "repeat-begin", "repeat-end", "repeat-both",
}

#: Articulation tags that link a note to its predecessor, in linking order.
LINK_TAGS: Final[tuple[str, ...]] = ("b", "s", "h", "p", "t", "T")

TEXT_JUSTIFICATIONS: Final[set[str]] = {"center", "left", "right"}

# Vertical room reserved for playback controls when the player is enabled.
PLAYER_CONTROLS_HEIGHT = 15
# Staves are inset from the full width by this much.
STAVE_WIDTH_INSET = 20


@dataclass
class _ChordSlice:
    """One vertical position of a chord event, collected before notes are built."""

    keys: list[str] = field(default_factory=list)
    play_keys: list[str] = field(default_factory=list)
    accidentals: list[str | None] = field(default_factory=list)
    positions: list[TabPosition] = field(default_factory=list)
    tags: list[list[str]] = field(default_factory=list)
    duration: tuple[str, bool] | None = None
    decorator: str | None = None


class Artist:
    """
    Stateful builder of a tab + notation score.

    Args:
        x:       Left edge of every stave.
        y:       Top of the first stave.
        width:   Score width; staves are inset from it.
        options: Construction-time defaults.
    """

    def __init__(
        self,
        x: float = 10,
        y: float = 10,
        width: int = 600,
        options: ArtistOptions | None = None,
    ) -> None:
        self.x = x
        self.y = y
        self.width = width
        self.options = options or ArtistOptions()
        self.reset()

    def reset(self) -> None:
        """Discard everything built so far and restore the initial session state."""
        self.tuning = Tuning()
        self.key_manager = KeyManager("C")
        self.resolver = PitchResolver(self.tuning, self.key_manager)
        self.customizations = Customizations.from_options(self.options, self.width)
        self.score = Score(customizations=self.customizations)
        self.bend_chain = BendChain()

        self.last_y = self.y
        self.current_duration = "q"
        self.current_clef = "treble"
        self.current_octave_shift = 0

        self.rendered = False
        self.rendered_content: str | None = None
        self.renderer_context: Any = None

        self._stave: StaveGroup | None = None
        self._note_ids: Iterator[int] = itertools.count()

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    @property
    def current_stave(self) -> StaveGroup:
        if self._stave is None:
            raise StructureError("No stave declared")
        return self._stave

    def set_options(self, options: Mapping[str, str]) -> None:
        """
        Apply global options and reserve the vertical room they ask for.

        Raises:
            ConfigurationError: On an unknown key or invalid value.
        """
        logger.debug("set_options: %s", dict(options))
        self.customizations.set_options(dict(options))
        self.last_y += self.customizations.space
        if self.customizations.player:
            self.last_y += PLAYER_CONTROLS_HEIGHT

    def set_duration(self, time: str, dot: bool = False) -> None:
        """Set the sticky duration, e.g. ``("8", True)`` for a dotted eighth."""
        words = time.split()
        code = words[0].lstrip(":") if words else ""
        duration = make_duration(code, dot)
        parse_duration(duration)
        logger.debug("set_duration: %s", duration)
        self.current_duration = duration

    def run_command(self, line: str, line_no: int | None = None, column: int | None = None) -> None:
        """
        Run an inline command. Only ``octave-shift N`` is known.

        Raises:
            StructureError: For any other command or a malformed shift.
        """
        words = line.split()
        command = words[0] if words else ""
        if command != "octave-shift":
            raise StructureError(f"Invalid command '{command}'", line_no, column)
        try:
            self.current_octave_shift = int(words[1])
        except (IndexError, ValueError):
            raise StructureError(f"Invalid octave shift '{line}'", line_no, column) from None
        logger.debug("octave shift: %d", self.current_octave_shift)

    # ------------------------------------------------------------------
    # Staves and voices
    # ------------------------------------------------------------------

    def add_stave(self, kind: str = "stave", options: Mapping[str, str] | None = None) -> StaveGroup:
        """
        Start a new stave group below the previous one.

        ``tabstave`` hides notation and ``stave`` hides tablature unless the
        options say otherwise; any other kind shows both.

        Raises:
            ConfigurationError: If both views end up hidden.
        """
        opts: dict[str, str] = {
            "tuning": "standard",
            "clef": "treble",
            "key": "C",
            "notation": "false" if kind == "tabstave" else "true",
            "tablature": "false" if kind == "stave" else "true",
            "strings": "6",
        }
        opts.update(options or {})
        logger.debug("add_stave: %s %s", kind, opts)

        show_notation = opts["notation"] == "true"
        show_tablature = opts["tablature"] == "true"
        if not show_notation and not show_tablature:
            raise ConfigurationError("Both 'notation' and 'tablature' can't be invisible")

        self.close_bends()

        start_x = self.x + self.customizations.connector_space
        width = self.customizations.width - STAVE_WIDTH_INSET
        clef = None if opts["clef"] == "none" else opts["clef"]

        notation: NotationStave | None = None
        if show_notation:
            notation = NotationStave(
                x=start_x, y=self.last_y, width=width, clef=clef, key=opts["key"], time=opts.get("time")
            )
            self.last_y += (
                notation.height
                + self.options.note_stave_lower_spacing
                + self.customizations.stave_distance
            )
            self.current_clef = clef or "treble"

        tab: TabStave | None = None
        if show_tablature:
            tab = TabStave(
                x=start_x,
                y=self.last_y,
                width=width,
                num_lines=int(opts["strings"]),
                show_tab_glyph=clef is not None,
            )
            self.last_y += tab.height + self.options.tab_stave_lower_spacing

        stave = StaveGroup(tab=tab, notation=notation, beam_groups=default_beam_groups(opts.get("time")))
        self.score.staves.append(stave)
        self._stave = stave

        self.tuning.set_tuning(opts["tuning"])
        self.key_manager.set_key(opts["key"])
        return stave

    def add_voice(self, options: Mapping[str, str] | None = None) -> None:
        """Finish the current voice of the active stave and start a new one."""
        self.close_bends()
        if self._stave is None:
            self.add_stave("voice", options)
            return
        self._stave.close_voice()

    def add_bar(self, bar_type: str | None = "single") -> None:
        """Close bends, forget measure accidentals and insert a barline."""
        logger.debug("add_bar: %s", bar_type)
        self.close_bends()
        self.key_manager.reset()
        stave = self.current_stave

        resolved = bar_type if bar_type in BAR_TYPES else "single"
        stave.tab_notes.append(self._track(BarNote(resolved)))
        if stave.notation is not None:
            stave.notation_notes.append(self._track(BarNote(resolved)))

    # ------------------------------------------------------------------
    # Notes and chords
    # ------------------------------------------------------------------

    def add_note(self, entry: NoteElement) -> None:
        self.add_chord([entry])

    def add_chord(
        self,
        entries: list[NoteElement],
        articulation: str | None = None,
        decorator: str | None = None,
    ) -> None:
        """
        Add a chord event.

        Entries are grouped into vertical positions: a letter-name entry or a
        change of string starts again at position 0, otherwise each entry
        moves one position to the right. Each position becomes one tab note
        (and one notation note when the stave shows notation).

        Args:
            entries:      Position specs in written order.
            articulation: Articulation applying to every entry of the last
                          position.
            decorator:    Decorator for the last note built.

        Raises:
            ResolutionError: If an entry has neither a pitch nor a fret.
        """
        if not entries:
            return
        logger.debug("add_chord: %d entries", len(entries))
        stave = self.current_stave

        slices: list[_ChordSlice] = []
        current_string = entries[0].string
        position = 0
        for entry in entries:
            if entry.abc is not None or entry.string != current_string:
                position = 0
                current_string = entry.string
            if position == len(slices):
                slices.append(_ChordSlice())

            binding, tab_position = self._resolve(entry)
            chord_slice = slices[position]
            chord_slice.keys.append(binding.key)
            chord_slice.play_keys.append(binding.play_key)
            chord_slice.accidentals.append(binding.accidental)
            chord_slice.positions.append(tab_position)
            chord_slice.tags.append([entry.articulation] if entry.articulation else [])
            if entry.time is not None:
                chord_slice.duration = (entry.time, entry.dot)
            if entry.decorator is not None:
                chord_slice.decorator = entry.decorator
            position += 1

        last = len(slices) - 1
        for index, chord_slice in enumerate(slices):
            saved_duration = self.current_duration
            if chord_slice.duration is not None:
                self.set_duration(*chord_slice.duration)
            self._add_tab_note(chord_slice.positions, chord_slice.play_keys)
            if stave.notation is not None:
                self._add_stave_note(
                    chord_slice.keys, chord_slice.accidentals, play_keys=chord_slice.play_keys
                )
            self.current_duration = saved_duration

            tags = chord_slice.tags
            if articulation is not None and index == last:
                tags = [[*entry_tags, articulation] for entry_tags in tags]
            self._link_articulations(tags)
            self.add_decorator(chord_slice.decorator)

        self.add_decorator(decorator)

    def add_rest(self, params: Mapping[str, Any] | None = None) -> None:
        """
        Add a rest. Position 0 is a plain rest; other positions place the
        rest at the height of a fret on the lowest string (at most the 6th).
        """
        logger.debug("add_rest: %s", params)
        self.close_bends()
        stave = self.current_stave

        try:
            position = int((params or {}).get("position", 0) or 0)
        except (TypeError, ValueError):
            raise ResolutionError(f"Invalid rest position: {params!r}") from None
        if position == 0:
            key = "r/4"
        else:
            key = self.tuning.note_for_fret((position + 5) * 2, min(6, self.tuning.num_strings))

        if stave.notation is not None:
            self._add_stave_note([key], [], is_rest=True)

        tab_rest: Tickable
        if self.customizations.tab_stems:
            tab_rest = StaveNote([key], self.current_duration + "r", clef="treble", auto_stem=False)
            if tab_rest.dots:
                tab_rest.add_modifier(Dot(), 0)
        else:
            tab_rest = SpacerNote(self.current_duration)
        stave.tab_notes.append(self._track(tab_rest))

    def add_decorator(self, decorator: str | None) -> None:
        """
        Decorate the last note: ``v`` vibrato, ``V`` harsh vibrato (tab only),
        ``u``/``d`` up/down strokes (tab and notation).
        """
        if decorator is None:
            return
        logger.debug("add_decorator: %s", decorator)
        stave = self.current_stave

        tab_modifier: Modifier | None = None
        score_modifier: Modifier | None = None
        if decorator == "v":
            tab_modifier = Vibrato()
        elif decorator == "V":
            tab_modifier = Vibrato(harsh=True)
        elif decorator == "u":
            tab_modifier = Articulation(type="a|", position=POSITION_BELOW)
            score_modifier = Articulation(type="a|", position=POSITION_BELOW)
        elif decorator == "d":
            tab_modifier = Articulation(type="am", position=POSITION_BELOW)
            score_modifier = Articulation(type="am", position=POSITION_BELOW)
        else:
            logger.debug("ignoring unknown decorator %r", decorator)

        if tab_modifier is not None and stave.tab_notes:
            stave.tab_notes[-1].add_modifier(tab_modifier, 0)
        if score_modifier is not None and stave.notation_notes:
            stave.notation_notes[-1].add_modifier(score_modifier, 0)

    def make_tuplets(self, tuplets: int, notes: int | None = None) -> None:
        """
        Group the last ``notes`` notes (default ``tuplets``) into a tuplet.

        Both buffers get a tuplet so their ticks stay in step; the tab one is
        only drawn when tab stems are shown.

        Raises:
            ArityError: If the stave has fewer notes than requested.
        """
        count = tuplets if notes is None else notes
        logger.debug("make_tuplets: %s over %s notes", tuplets, count)
        stave = self.current_stave

        reference = stave.notation_notes if stave.notation is not None else stave.tab_notes
        if count < 1 or tuplets < 1 or len(reference) < count:
            raise ArityError("Not enough notes for tuplet")

        if stave.notation is not None:
            self.score.notation_links.append(Tuplet(stave.notation_notes[-count:], num_notes=tuplets))

        tab_tuplet = Tuplet(stave.tab_notes[-count:], num_notes=tuplets)
        if self.customizations.tab_stems:
            self.score.tab_links.append(tab_tuplet)

    def add_annotations(self, annotations: list[str]) -> None:
        """
        Attach one annotation token to each of the last notes.

        On the tab (or, for notation-only staves, the notation) each token
        becomes a score articulation, a stroke or annotation text. On the
        notation the same tokens also yield glyph articulations, strokes
        and fingerings.

        Raises:
            ArityError:        If there are more tokens than notes, or a
                               fingering names a key the note does not have.
            MiniLanguageError: On a malformed stroke or fingering.
        """
        stave = self.current_stave
        count = len(annotations)
        if count > len(stave.tab_notes):
            raise ArityError("More annotations than note elements")
        if count == 0:
            return

        if stave.tab is not None:
            for note, text in zip(stave.tab_notes[-count:], annotations):
                articulation = parse_score_articulation(text)
                if articulation is not None:
                    note.add_modifier(articulation.build(), 0)
                    continue
                stroke = parse_stroke(text)
                if stroke is not None:
                    note.add_modifier(stroke.build(), 0)
                    continue
                annotation = self._make_annotation(text)
                if annotation is not None:
                    note.add_modifier(annotation, 0)
        else:
            for note, text in zip(stave.notation_notes[-count:], annotations):
                if is_score_articulation(text) or is_stroke(text):
                    continue
                annotation = self._make_annotation(text)
                if annotation is not None:
                    note.add_modifier(annotation, 0)

        if stave.notation is None:
            return
        for note, text in zip(stave.notation_notes[-count:], annotations):
            articulation = parse_score_articulation(text)
            if articulation is not None:
                note.add_modifier(articulation.build(), 0)

            stroke = parse_stroke(text)
            if stroke is not None and isinstance(note, StaveNote):
                note.add_stroke(0, stroke.build())

            fingering = parse_fingering(text)
            if fingering is None:
                continue
            num_keys = len(note.keys) if isinstance(note, StaveNote) else 0
            for finger in fingering.fingerings:
                if not 0 <= finger.note_index < num_keys:
                    raise ArityError(f"Bad note number in fingering: {text}")
                note.add_modifier(finger.modifier, finger.note_index)

    # ------------------------------------------------------------------
    # Text voices
    # ------------------------------------------------------------------

    def add_text_voice(self) -> None:
        self.current_stave.text_voices.append([])

    def set_text_font(self, spec: str | None) -> None:
        """Set the font for text notes and annotations from ``Face-size-style``."""
        if spec is None:
            return
        font = parse_text_font(spec)
        if font is None:
            return
        self.customizations.font_face = font.family
        self.customizations.font_size = int(font.size)
        self.customizations.font_style = font.style

    def add_text_note(
        self,
        text: str,
        position: int = 0,
        justification: str = "center",
        smooth: bool = True,
        ignore_ticks: bool = False,
    ) -> None:
        """
        Append a text note to the latest text voice.

        Raises:
            StructureError: If the stave has no text voice.
        """
        voices = self.current_stave.text_voices
        if not voices:
            raise StructureError("Can't add text note without text voice")

        note = TextNote(
            text,
            "b" if ignore_ticks else self.current_duration,
            line=position,
            justification=justification if justification in TEXT_JUSTIFICATIONS else "center",
            smooth=smooth,
            ignore_ticks=ignore_ticks,
            font=self._current_font(),
            glyph=text[1:] if text.startswith("#") else None,
        )
        voices[-1].append(self._track(note))

    # ------------------------------------------------------------------
    # Bends
    # ------------------------------------------------------------------

    def close_bends(self, offset: int = 1) -> None:
        """Close the open bend chain on the active stave, if any."""
        if self._stave is None or not self.bend_chain.is_open:
            return
        self.bend_chain.close(self._stave.tab_notes, offset)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def render(self, renderer: ScoreRenderer) -> str:
        """
        Flush every stave and hand the layout to a renderer.

        Trailing barlines become end barlines and in-progress buffers become
        finished voices, so rendering again re-renders the same notes.

        Returns:
            The renderer's output, also kept in ``rendered_content``.
        """
        self.close_bends()
        for stave in self.score.staves:
            stave.flush_trailing_bars()
            stave.close_voice()

        layout = self.build_layout()
        self.rendered_content = renderer.render(layout)
        self.renderer_context = layout
        self.rendered = True
        logger.debug("rendered %d staves", len(layout.staves))
        return self.rendered_content

    def is_rendered(self) -> bool:
        return self.rendered

    def build_layout(self) -> ScoreLayout:
        """Describe the score for a layout engine."""
        custom = self.customizations
        staves = [self._stave_layout(stave) for stave in self.score.staves]
        return ScoreLayout(
            width=custom.width * custom.scale,
            height=(self.last_y + self.options.bottom_spacing) * custom.scale,
            scale=custom.scale,
            font=Font(self.options.font_face, self.options.font_size, self.options.font_style),
            staves=staves,
            tab_links=list(self.score.tab_links),
            notation_links=list(self.score.notation_links),
        )

    def get_player_data(self) -> PlayerData:
        return PlayerData(
            voices=[stave.playable_voices() for stave in self.score.staves],
            context=self.renderer_context,
            scale=self.customizations.scale,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _track(self, note: Tickable) -> Tickable:
        note.id = next(self._note_ids)
        return note

    def _current_font(self) -> Font:
        custom = self.customizations
        return Font(custom.font_face, custom.font_size, custom.font_style)

    def _make_annotation(self, text: str) -> Annotation | None:
        token = parse_annotation(text, self._current_font(), self.customizations.annotation_position)
        sticky = position_shortcut(text)
        if sticky is not None:
            self.customizations.annotation_position = sticky
        return None if token is None else token.build()

    def _resolve(self, entry: NoteElement) -> tuple[PitchBinding, TabPosition]:
        try:
            if entry.abc is not None:
                octave = entry.octave if entry.octave is not None else entry.string
                if octave is None:
                    raise ResolutionError(f"No octave for note {entry.abc.key}")
                binding = self.resolver.resolve_abc(entry.abc, octave, self.current_octave_shift)
                fret = entry.fret if entry.fret is not None else "X"
            elif entry.fret is not None:
                if entry.string is None:
                    raise ResolutionError(f"No string for fret {entry.fret}")
                binding = self.resolver.resolve_fret(
                    entry.fret,
                    entry.string,
                    self.customizations.accidentals,
                    self.current_octave_shift,
                )
                fret = entry.fret
            else:
                raise ResolutionError("No note specified")
        except TabScoreError as exc:
            exc.locate(entry.line, entry.column)
            raise
        return binding, TabPosition(fret=fret, string=entry.string)

    def _add_tab_note(self, positions: list[TabPosition], play_keys: list[str]) -> None:
        note = TabNote(positions, self.current_duration, draw_stem=self.customizations.tab_stems)
        note.set_play_note(play_keys)
        if note.dots:
            note.add_modifier(Dot(), 0)
        self.current_stave.tab_notes.append(self._track(note))

    def _add_stave_note(
        self,
        keys: list[str],
        accidentals: list[str | None],
        play_keys: list[str] | None = None,
        is_rest: bool = False,
    ) -> None:
        note = StaveNote(
            keys,
            self.current_duration + ("r" if is_rest else ""),
            clef="treble" if is_rest else self.current_clef,
            auto_stem=not is_rest,
        )
        for index, accidental in enumerate(accidentals):
            if accidental:
                glyph, _, kind = accidental.partition("_")
                note.add_modifier(Accidental(type=glyph, cautionary=kind == "c"), index)
        if note.dots:
            for index in range(len(keys)):
                note.add_modifier(Dot(), index)
        if play_keys is not None:
            note.set_play_note(play_keys)
        self.current_stave.notation_notes.append(self._track(note))

    def _previous_note_index(self) -> int | None:
        """Index of the nearest visible tab note before the last one."""
        tab_notes = self.current_stave.tab_notes
        for index in range(len(tab_notes) - 2, -1, -1):
            note = tab_notes[index]
            if isinstance(note, TabNote) and not note.ghost:
                return index
        return None

    def _link_articulations(self, tags: list[list[str]]) -> None:
        """
        Link the last tab note to its predecessor for each articulation tag.

        Links only join positions on strings both notes share. A slice with
        no bend tag closes any open bend chain, keeping itself visible.
        """
        stave = self.current_stave
        tab_notes = stave.tab_notes
        if not tab_notes or not any(tags):
            self.close_bends(0)
            return

        current = tab_notes[-1]
        if not isinstance(current, TabNote):
            self.close_bends(0)
            return

        has_bends = False
        for kind in LINK_TAGS:
            indices = [i for i, entry_tags in enumerate(tags) if kind in entry_tags]
            if not indices:
                continue
            if kind == "b":
                has_bends = True

            previous_index = self._previous_note_index()
            previous: TabNote | None = None
            previous_indices: list[int] = []
            current_indices: list[int] = []
            if previous_index is not None:
                previous = cast(TabNote, tab_notes[previous_index])
                strings = {current.positions[i].string for i in indices}
                shared = {p.string for p in previous.positions if p.string in strings}
                previous_indices = [i for i, p in enumerate(previous.positions) if p.string in shared]
                current_indices = [i for i, p in enumerate(current.positions) if p.string in shared]

            if stave.tab is not None:
                self._add_tab_link(kind, previous_index, previous, current, previous_indices, current_indices)
            if stave.notation is not None and previous_indices:
                first = stave.notation_notes[previous_index] if previous_index is not None else None
                self.score.notation_links.append(
                    StaveTie(first, stave.notation_notes[-1], previous_indices, current_indices)
                )

        if not has_bends:
            self.close_bends(0)

    def _add_tab_link(
        self,
        kind: str,
        previous_index: int | None,
        first: TabNote | None,
        last: TabNote,
        first_indices: list[int],
        last_indices: list[int],
    ) -> None:
        logger.debug("tab link %s: %s -> %s %s %s", kind, first, last, first_indices, last_indices)
        if kind == "t":
            last.add_modifier(Annotation(text="T", vertical_justification="top"), 0)

        if first is None or previous_index is None or (not first_indices and not last_indices):
            return

        link: NoteLink
        if kind == "s":
            link = TabSlide(first, last, first_indices, last_indices)
        elif kind in ("h", "p"):
            link = TabTie(first, last, first_indices, last_indices, label=kind.upper())
        elif kind in ("t", "T"):
            link = TabTie(first, last, first_indices, last_indices, label=" ")
        else:
            self.bend_chain.extend(previous_index, first, last, first_indices, last_indices)
            return
        self.score.tab_links.append(link)

    def _stave_layout(self, stave: StaveGroup) -> StaveLayout:
        custom = self.customizations

        tab_voices: list[VoiceLayout] = []
        if stave.tab is not None:
            multi_voice = len(stave.tab_voices) > 1
            for index, notes in enumerate(stave.tab_voices):
                if not notes:
                    continue
                beam: BeamConfig | None = None
                if custom.tab_stems:
                    if multi_voice:
                        direction = 1 if index == 0 else -1
                    else:
                        direction = -1 if custom.tab_stem_direction == "down" else 1
                    beam = BeamConfig(
                        groups=stave.beam_groups,
                        beam_rests=False,
                        show_stemlets=custom.beam_stemlets,
                        beam_middle_only=custom.beam_middle_only,
                        stem_direction=direction,
                    )
                tab_voices.append(VoiceLayout(notes=notes, beam=beam))

        notation_voices: list[VoiceLayout] = []
        if stave.notation is not None:
            multi_voice = len(stave.notation_voices) > 1
            for index, notes in enumerate(stave.notation_voices):
                if not notes:
                    continue
                beam = BeamConfig(
                    groups=stave.beam_groups,
                    beam_rests=custom.beam_rests,
                    show_stemlets=custom.beam_stemlets,
                    beam_middle_only=custom.beam_middle_only,
                    stem_direction=(1 if index == 0 else -1) if multi_voice else None,
                )
                notation_voices.append(VoiceLayout(notes=notes, beam=beam))

        return StaveLayout(
            tab=stave.tab,
            notation=stave.notation,
            tab_voices=tab_voices,
            notation_voices=notation_voices,
            text_voices=[voice for voice in stave.text_voices if voice],
            align_rests=len(notation_voices) > 1,
        )
