"""Bend chain accumulation: several bent notes engraved as one bend on the first."""

from __future__ import annotations

import logging

from tabscore.errors import ResolutionError
from tabscore.notes import BEND_DOWN, BEND_UP, Bend, BendPhrase, TabNote, Tickable

logger = logging.getLogger(__name__)

_BEND_LABELS = {1: "1/2", 2: "Full", 3: "1 1/2"}


def make_bend(from_fret: str, to_fret: str) -> BendPhrase:
    """
    Describe the bend from one fret to another.

    A bend to a lower fret is a release. Otherwise the label names the
    interval in steps, falling back to the target fret.
    """
    try:
        start, end = int(from_fret), int(to_fret)
    except ValueError:
        raise ResolutionError(f"Cannot bend between frets {from_fret} and {to_fret}") from None
    if start > end:
        return BendPhrase(type=BEND_DOWN, text="")
    return BendPhrase(type=BEND_UP, text=_BEND_LABELS.get(end - start, f"Bend to {end}"))


class BendChain:
    """
    An open run of bends on one or more strings.

    The chain is anchored at the note the first bend starts from. Every later
    bend on the same strings appends a phrase; closing the chain attaches one
    ``Bend`` per string to the anchor and hides the notes it absorbed.
    """

    def __init__(self) -> None:
        self.anchor_index: int | None = None
        self._anchor_strings: list[int | None] = []
        self._phrases: dict[int | None, list[BendPhrase]] = {}

    @property
    def is_open(self) -> bool:
        return self.anchor_index is not None

    def extend(
        self,
        anchor_index: int,
        first_note: TabNote,
        last_note: TabNote,
        first_indices: list[int],
        last_indices: list[int],
    ) -> None:
        """
        Add the bends from ``first_note`` to ``last_note``.

        Args:
            anchor_index:  Buffer index of ``first_note``; used only when the
                           chain is not open yet.
            first_note:    Note the bend starts from.
            last_note:     Note the bend arrives at.
            first_indices: Bent positions on ``first_note``.
            last_indices:  Matching positions on ``last_note``.
        """
        if not self.is_open:
            self.anchor_index = anchor_index
            self._anchor_strings = [first_note.positions[i].string for i in first_indices]
            logger.debug("bend chain opened at %d on strings %s", anchor_index, self._anchor_strings)

        for first_index, last_index in zip(first_indices, last_indices):
            start = first_note.positions[first_index]
            if start.string not in self._anchor_strings:
                logger.debug("string %s is not part of the open bend chain", start.string)
                continue
            end = last_note.positions[last_index]
            self._phrases.setdefault(start.string, []).append(make_bend(start.fret, end.fret))

    def close(self, tab_notes: list[Tickable], offset: int = 1) -> None:
        """
        Attach the accumulated bends and ghost the absorbed notes.

        Notes from ``anchor + 1`` through ``len(tab_notes) - 2 + offset`` are
        ghosted: with offset 1 that runs to the end of the buffer, with
        offset 0 the last note (the one that ended the chain) stays visible.
        """
        if self.anchor_index is None:
            return

        anchor = tab_notes[self.anchor_index]
        if isinstance(anchor, TabNote):
            for string, phrase in self._phrases.items():
                anchor.add_modifier(Bend(phrase=list(phrase)), anchor.strings.index(string))

        end_index = len(tab_notes) - 2 + offset
        for note in tab_notes[self.anchor_index + 1 : end_index + 1]:
            if isinstance(note, TabNote):
                note.set_ghost(True)

        logger.debug("bend chain closed: anchor %d, ghosted through %d", self.anchor_index, end_index)
        self.reset()

    def reset(self) -> None:
        self.anchor_index = None
        self._anchor_strings = []
        self._phrases = {}
