"""Dissonance calculation and ranking"""
from itertools import combinations
from typing import Dict, List, Optional, Sequence

from utils.music_theory import DISSONANCE_RANKING, DISSONANCE_WEIGHTS, get_interval_from_root

_RANKED_INTERVALS = list(DISSONANCE_RANKING.keys())


class DissonanceCalculator:
    def __init__(self, weights: Optional[Dict[int, float]] = None):
        self.weights = dict(DISSONANCE_WEIGHTS if weights is None else weights)

    def get_interval_from_root(self, root_note: int, note: int) -> int:
        """Calculate semitone interval from root note"""
        return get_interval_from_root(root_note, note)

    def tension_score(self, pitches: Sequence[int]) -> float:
        """
        0-1 tension of a pitch collection.

        Every unordered pair contributes the weight of its interval class
        (higher minus lower, mod 12); the sum is averaged over the pair count.
        """
        ordered = sorted(pitches)
        pairs = list(combinations(ordered, 2))
        if not pairs:
            return 0.0
        total = sum(self.weights.get((high - low) % 12, 0.0) for low, high in pairs)
        return max(0.0, min(1.0, total / len(pairs)))

    def get_dissonance_rank(self, root_note: int, note: int) -> int:
        """Rank of the interval above root_note; 0 is the most dissonant"""
        interval = self.get_interval_from_root(root_note, note)
        if interval == 0:
            interval = 12
        if interval in DISSONANCE_RANKING:
            return _RANKED_INTERVALS.index(interval)
        return len(_RANKED_INTERVALS)  # Unknown interval, least priority

    def rank_notes(self, root_note: int, notes: Sequence[int]) -> List[int]:
        """Notes ordered from most to least dissonant against root_note (stable)"""
        return [note for _, _, note in sorted(
            (self.get_dissonance_rank(root_note, note), index, note)
            for index, note in enumerate(notes)
        )]
