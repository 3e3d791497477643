"""Voice reduction for chords denser than the ensemble"""
import logging
from typing import List, Sequence

from .dissonance import DissonanceCalculator

logger = logging.getLogger(__name__)


class VoiceReducer:
    def __init__(self, max_voices: int = 4):
        if max_voices < 1:
            raise ValueError("max_voices must be positive")
        self.max_voices = max_voices
        self.dissonance_calc = DissonanceCalculator()

    def select_notes(self, notes: Sequence[int]) -> List[int]:
        """
        Select notes based on dissonance rules:
        1. Always keep the lowest note (bass)
        2. Keep the highest note unless it doubles the bass pitch class
        3. Fill the remaining voices with the most dissonant intervals first,
           so sevenths and tritones survive and doubled fifths/octaves go
        """
        notes = sorted(set(notes))  # Remove duplicates and sort
        if len(notes) <= self.max_voices:
            return notes

        bass_note = notes[0]
        selected = [bass_note]

        treble_note = notes[-1]
        if self.max_voices > 1 and self.dissonance_calc.get_interval_from_root(bass_note, treble_note) != 0:
            selected.append(treble_note)

        remaining = [n for n in notes if n not in selected]
        leftovers = []
        for note in self.dissonance_calc.rank_notes(bass_note, remaining):
            if len(selected) >= self.max_voices:
                break
            # Prefer pitch classes not already present before doubling any
            if note % 12 in {s % 12 for s in selected}:
                leftovers.append(note)
                continue
            selected.append(note)
        for note in leftovers:
            if len(selected) >= self.max_voices:
                break
            selected.append(note)

        logger.debug(f"Reduced {notes} to {sorted(selected)}")
        return sorted(selected)
