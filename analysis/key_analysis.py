"""
Key analysis - scale tables, key context and key detection.

Two detectors live here: the chord-based weighted histogram used by live
recognition (tonic, dominant and third weighted highest) and the
Krumhansl-Schmuckler correlation for estimating major/minor mode.
"""
import logging
import numpy as np
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from dataclasses import dataclass

from utils.music_theory import (
    MAJOR_KEY_PROFILE, MINOR_KEY_PROFILE, KEY_DEGREE_WEIGHTS, get_key_name
)

logger = logging.getLogger(__name__)

SCALES: Dict[str, Tuple[int, ...]] = {
    # Major modes
    'ionian': (0, 2, 4, 5, 7, 9, 11),
    'dorian': (0, 2, 3, 5, 7, 9, 10),
    'phrygian': (0, 1, 3, 5, 7, 8, 10),
    'lydian': (0, 2, 4, 6, 7, 9, 11),
    'mixolydian': (0, 2, 4, 5, 7, 9, 10),
    'aeolian': (0, 2, 3, 5, 7, 8, 10),
    'locrian': (0, 1, 3, 5, 6, 8, 10),

    # Other scales
    'harmonic_minor': (0, 2, 3, 5, 7, 8, 11),
    'melodic_minor': (0, 2, 3, 5, 7, 9, 11),
    'whole_tone': (0, 2, 4, 6, 8, 10),
    'diminished': (0, 2, 3, 5, 6, 8, 9, 11),
    'chromatic': tuple(range(12)),

    # Pentatonic
    'major_pentatonic': (0, 2, 4, 7, 9),
    'minor_pentatonic': (0, 3, 5, 7, 10),
    'blues': (0, 3, 5, 6, 7, 10),

    # Exotic scales
    'hungarian_minor': (0, 2, 3, 6, 7, 8, 11),
    'arabic': (0, 1, 4, 5, 7, 8, 11),
    'japanese': (0, 1, 5, 7, 8),
    'bebop_major': (0, 2, 4, 5, 7, 8, 9, 11),
    'bebop_dominant': (0, 2, 4, 5, 7, 9, 10, 11),
}

SCALE_ALIASES = {'major': 'ionian', 'minor': 'aeolian', 'natural_minor': 'aeolian'}


def get_scale(name: str) -> Tuple[int, ...]:
    """Scale intervals by name; unknown names fall back to major"""
    key = SCALE_ALIASES.get(name, name)
    if key not in SCALES:
        logger.warning(f"Unknown scale '{name}', using major")
        key = 'ionian'
    return SCALES[key]


@dataclass(frozen=True)
class KeyContext:
    """A key: root pitch class plus the scale it is read against"""
    root: int = 0
    scale: str = 'major'
    reference_pitch: int = 60

    def __post_init__(self):
        object.__setattr__(self, 'root', self.root % 12)

    @property
    def intervals(self) -> Tuple[int, ...]:
        return get_scale(self.scale)

    @property
    def root_pitch(self) -> int:
        """Tonic placed in the reference octave"""
        return self.reference_pitch - (self.reference_pitch % 12) + self.root

    @property
    def mode(self) -> str:
        return 'minor' if 3 in self.intervals and 4 not in self.intervals else 'major'

    @property
    def name(self) -> str:
        return get_key_name(self.root, self.mode)

    def contains(self, pitch: int) -> bool:
        return (pitch - self.root) % 12 in self.intervals

    def degree_root(self, degree: int) -> int:
        """Pitch of a 1-based scale degree; out-of-range degrees read as the tonic"""
        index = degree - 1
        if index < 0 or index >= len(self.intervals):
            index = 0
        return self.root_pitch + self.intervals[index]


def pitch_class_histogram(pitches: Iterable[int]) -> np.ndarray:
    values = np.fromiter((p % 12 for p in pitches), dtype=int)
    return np.bincount(values, minlength=12).astype(float)


def score_keys(histogram: np.ndarray, weights: Sequence[float] = KEY_DEGREE_WEIGHTS) -> np.ndarray:
    """Score all 12 key roots: sum(histogram[pc] * weight[(pc - root) % 12])"""
    weight_vector = np.asarray(weights, dtype=float)
    return np.array([np.dot(histogram, np.roll(weight_vector, root)) for root in range(12)])


def detect_key(pitches: Iterable[int]) -> int:
    """
    Most likely key root (pitch class) for a multiset of chord pitches.
    Ties go to the lowest pitch class; an empty input reads as C.
    """
    histogram = pitch_class_histogram(pitches)
    if not histogram.any():
        return 0
    # argmax returns the first maximum, i.e. the lowest pitch class on ties
    return int(np.argmax(score_keys(histogram)))


class KeyAnalyzer:
    """Simple key analysis using Krumhansl-Schmuckler method"""

    def __init__(self, confidence_threshold: float = 0.65):
        self.confidence_threshold = confidence_threshold

    def analyze_key_context(self, notes: List[int]) -> Optional[Tuple[int, str, float]]:
        """Analyze key context from note list; None when atonal or empty"""
        if not notes:
            return None

        pitch_counts = pitch_class_histogram(notes)
        result = self._analyze_pitch_class_profile(pitch_counts)
        if result and result[2] >= self.confidence_threshold:
            return result
        return None

    def estimate_context(self, notes: List[int], reference_pitch: int = 60) -> KeyContext:
        """Best key context for notes; tonic from the weighted detector when atonal"""
        result = self.analyze_key_context(notes)
        if result is None:
            return KeyContext(root=detect_key(notes), scale='major', reference_pitch=reference_pitch)
        root, mode, _ = result
        return KeyContext(root=root, scale=mode, reference_pitch=reference_pitch)

    def _analyze_pitch_class_profile(self, pitch_weights: np.ndarray) -> Optional[Tuple[int, str, float]]:
        if not np.sum(pitch_weights):
            return None

        pitch_profile = pitch_weights / np.sum(pitch_weights)

        best_key = None
        best_correlation = -1.0

        # Test all 24 keys (12 major + 12 minor)
        for root in range(12):
            for mode in ('major', 'minor'):
                correlation = self._calculate_key_correlation(pitch_profile, root, mode)
                if correlation > best_correlation:
                    best_correlation = correlation
                    best_key = (root, mode)

        return (best_key[0], best_key[1], float(best_correlation)) if best_key else None

    def _calculate_key_correlation(self, pitch_profile: np.ndarray, root: int, mode: str) -> float:
        template = np.array(MAJOR_KEY_PROFILE if mode == 'major' else MINOR_KEY_PROFILE)
        rotated_template = np.roll(template, root)

        mean_profile = np.mean(pitch_profile)
        mean_template = np.mean(rotated_template)

        numerator = np.sum((pitch_profile - mean_profile) * (rotated_template - mean_template))
        profile_variance = np.sum((pitch_profile - mean_profile) ** 2)
        template_variance = np.sum((rotated_template - mean_template) ** 2)

        denominator = np.sqrt(profile_variance * template_variance)
        return float(numerator / denominator) if denominator > 0 else 0.0
