"""
Chord vocabulary - named chord qualities and their interval sets.

The order of CHORD_VOCABULARY is the identification priority: triads,
sevenths, extensions, altered, sus, add, power, sixths. Identification is a
first-exact-match scan over this list.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class ChordQuality:
    """A named chord quality.

    intervals: collapsed to one octave, sorted, unique, always containing 0
    spelling: the intervals as written above the root (9th = 14, 13th = 21)
    """
    name: str
    spelling: Tuple[int, ...]
    family: str

    @property
    def intervals(self) -> Tuple[int, ...]:
        return tuple(sorted({i % 12 for i in self.spelling}))

    @property
    def size(self) -> int:
        return len(self.intervals)

    @property
    def is_minor(self) -> bool:
        return 3 in self.intervals and 4 not in self.intervals

    @property
    def is_diminished(self) -> bool:
        return self.name in ('diminished', 'dim7', 'm7b5')

    def __post_init__(self):
        if not self.spelling or self.spelling[0] != 0:
            raise ValueError(f"Chord quality {self.name} must start at interval 0")
        if list(self.spelling) != sorted(set(self.spelling)):
            raise ValueError(f"Chord quality {self.name} spelling must be ascending and unique")


CHORD_VOCABULARY: Tuple[ChordQuality, ...] = (
    # Basic triads
    ChordQuality('major', (0, 4, 7), 'triad'),
    ChordQuality('minor', (0, 3, 7), 'triad'),
    ChordQuality('diminished', (0, 3, 6), 'triad'),
    ChordQuality('augmented', (0, 4, 8), 'triad'),

    # Seventh chords
    ChordQuality('maj7', (0, 4, 7, 11), 'seventh'),
    ChordQuality('7', (0, 4, 7, 10), 'seventh'),
    ChordQuality('m7', (0, 3, 7, 10), 'seventh'),
    ChordQuality('m7b5', (0, 3, 6, 10), 'seventh'),
    ChordQuality('dim7', (0, 3, 6, 9), 'seventh'),
    ChordQuality('mMaj7', (0, 3, 7, 11), 'seventh'),
    ChordQuality('7#5', (0, 4, 8, 10), 'seventh'),

    # Extended chords
    ChordQuality('9', (0, 4, 7, 10, 14), 'extended'),
    ChordQuality('maj9', (0, 4, 7, 11, 14), 'extended'),
    ChordQuality('m9', (0, 3, 7, 10, 14), 'extended'),
    ChordQuality('11', (0, 4, 7, 10, 14, 17), 'extended'),
    ChordQuality('maj11', (0, 4, 7, 11, 14, 17), 'extended'),
    ChordQuality('m11', (0, 3, 7, 10, 14, 17), 'extended'),
    ChordQuality('13', (0, 4, 7, 10, 14, 17, 21), 'extended'),
    ChordQuality('maj13', (0, 4, 7, 11, 14, 17, 21), 'extended'),
    ChordQuality('m13', (0, 3, 7, 10, 14, 17, 21), 'extended'),

    # Altered chords
    ChordQuality('7b5', (0, 4, 6, 10), 'altered'),
    ChordQuality('7#9', (0, 4, 7, 10, 15), 'altered'),
    ChordQuality('7b9', (0, 4, 7, 10, 13), 'altered'),
    ChordQuality('7#11', (0, 4, 7, 10, 18), 'altered'),
    ChordQuality('7b13', (0, 4, 7, 10, 20), 'altered'),
    ChordQuality('7alt', (0, 4, 6, 10, 13, 15), 'altered'),  # 7b5b9#9

    # Sus chords
    ChordQuality('sus2', (0, 2, 7), 'sus'),
    ChordQuality('sus4', (0, 5, 7), 'sus'),
    ChordQuality('7sus4', (0, 5, 7, 10), 'sus'),
    ChordQuality('9sus4', (0, 5, 7, 10, 14), 'sus'),

    # Add chords (add13 collapses onto the sixth chord, see QUALITY_ALIASES)
    ChordQuality('add9', (0, 4, 7, 14), 'add'),
    ChordQuality('madd9', (0, 3, 7, 14), 'add'),
    ChordQuality('add11', (0, 4, 7, 17), 'add'),

    # Power chords
    ChordQuality('5', (0, 7), 'power'),

    # Sixth chords
    ChordQuality('6', (0, 4, 7, 9), 'sixth'),
    ChordQuality('m6', (0, 3, 7, 9), 'sixth'),
    ChordQuality('6/9', (0, 4, 7, 9, 14), 'sixth'),
    ChordQuality('m6/9', (0, 3, 7, 9, 14), 'sixth'),
)

_QUALITIES_BY_NAME: Dict[str, ChordQuality] = {q.name: q for q in CHORD_VOCABULARY}

UNKNOWN_QUALITY = 'unknown'

# Quality name -> symbol suffix; anything missing uses its own name
QUALITY_SUFFIXES: Dict[str, str] = {
    'major': '',
    'minor': 'm',
    'diminished': '°',
    'augmented': '+',
    'maj7': 'maj7',
    '7': '7',
    'm7': 'm7',
    'dim7': '°7',
    'm7b5': 'ø7',
}

# Symbol suffix -> quality name, on top of the vocabulary names themselves
QUALITY_ALIASES: Dict[str, str] = {
    '': 'major',
    'M': 'major',
    'maj': 'major',
    'm': 'minor',
    'min': 'minor',
    '-': 'minor',
    'dim': 'diminished',
    '°': 'diminished',
    'o': 'diminished',
    'aug': 'augmented',
    '+': 'augmented',
    'M7': 'maj7',
    'Δ7': 'maj7',
    'Δ': 'maj7',
    'min7': 'm7',
    '-7': 'm7',
    '°7': 'dim7',
    'o7': 'dim7',
    'ø': 'm7b5',
    'ø7': 'm7b5',
    'm7-5': 'm7b5',
    'mM7': 'mMaj7',
    '+7': '7#5',
    'aug7': '7#5',
    'sus': 'sus4',
    'add13': '6',
    '69': '6/9',
    'm69': 'm6/9',
}


def get_quality(name: str) -> Optional[ChordQuality]:
    return _QUALITIES_BY_NAME.get(name)


def quality_names() -> List[str]:
    return [q.name for q in CHORD_VOCABULARY]


def resolve_quality_token(token: str) -> Optional[str]:
    """Map a symbol suffix to a vocabulary name; None when unrecognised"""
    if token in QUALITY_ALIASES:
        return QUALITY_ALIASES[token]
    if token in _QUALITIES_BY_NAME:
        return token
    return None


def quality_suffix(name: str) -> str:
    return QUALITY_SUFFIXES.get(name, name)


def match_quality(intervals: Iterable[int]) -> Optional[str]:
    """First vocabulary entry whose interval set equals the given set exactly"""
    wanted = tuple(sorted(set(intervals)))
    for quality in CHORD_VOCABULARY:
        if quality.intervals == wanted:
            return quality.name
    return None


def find_root(pitches: Iterable[int]) -> Optional[int]:
    """
    Lowest pitch that names the set as an exact vocabulary chord.
    Falls back to the bass when no pitch produces an exact match.
    """
    ordered = sorted(set(pitches))
    if not ordered:
        return None
    for candidate in ordered:
        if match_quality((p - candidate) % 12 for p in ordered) is not None:
            return candidate
    return ordered[0]
