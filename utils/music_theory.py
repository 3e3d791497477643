"""Music theory constants and basic functions"""
from typing import Iterable, List

# Key names for display
KEY_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']

# Letter name -> pitch class, accidentals applied separately
NATURAL_PITCH_CLASSES = {'C': 0, 'D': 2, 'E': 4, 'F': 5, 'G': 7, 'A': 9, 'B': 11}

# MIDI Constants
MIDDLE_C = 60
MIN_MIDI_NOTE = 0
MAX_MIDI_NOTE = 127

# Dissonance weight per interval class (semitones mod 12), used for tension
DISSONANCE_WEIGHTS = {
    1: 0.8,   # Minor second
    2: 0.3,   # Major second
    6: 0.6,   # Tritone
    10: 0.4,  # Minor seventh
    11: 0.5   # Major seventh
}

# Dissonance ranking from most to least dissonant
DISSONANCE_RANKING = {
    6: 'Tritone',           # Most dissonant
    10: 'Minor Seventh',
    11: 'Major Seventh',
    1: 'Minor Second',
    2: 'Major Second',
    8: 'Minor Sixth',
    9: 'Major Sixth',
    3: 'Minor Third',
    4: 'Major Third',
    5: 'Perfect Fourth',
    7: 'Perfect Fifth',
    12: 'Octave'            # Least dissonant
}

# Scale-degree emphasis for chord-based key detection (tonic, dominant, third highest)
KEY_DEGREE_WEIGHTS = [2, 0.1, 1, 0.1, 1.5, 1, 0.1, 2, 0.1, 1, 0.1, 0.5]

# Key profiles for major and minor keys (Krumhansl-Schmuckler)
MAJOR_KEY_PROFILE = [6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88]
MINOR_KEY_PROFILE = [6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17]


def get_key_name(root: int, mode: str) -> str:
    """Convert key root and mode to readable name"""
    return f"{KEY_NAMES[root % 12]} {mode}"


def get_interval_from_root(root_note: int, note: int) -> int:
    """Calculate semitone interval from root note"""
    return (note - root_note) % 12


def normalize_pitches(pitches: Iterable[int]) -> List[int]:
    """Deduplicate and sort a pitch collection; the first element is the bass."""
    return sorted(set(int(p) for p in pitches))


def note_name_to_pitch_class(name: str):
    """'C', 'F#', 'Bb' -> pitch class, or None when the name is not a note."""
    if not name or name[0] not in NATURAL_PITCH_CLASSES:
        return None
    pc = NATURAL_PITCH_CLASSES[name[0]]
    for accidental in name[1:]:
        if accidental == '#':
            pc += 1
        elif accidental == 'b':
            pc -= 1
        else:
            return None
    return pc % 12


def fold_into_range(pitch: int, low: int, high: int) -> int:
    """Shift a pitch by octaves until it sits inside [low, high]"""
    while pitch < low:
        pitch += 12
    while pitch > high:
        pitch -= 12
    return pitch


def nearest_octave(pc: int, target: float) -> int:
    """Place a pitch class in the octave closest to target (lower one on ties)"""
    base = int(target) - ((int(target) - pc) % 12)
    below, above = base, base + 12
    return below if abs(target - below) <= abs(above - target) else above

# Four-part voice roles, highest first
VOICE_ORDER = ('soprano', 'alto', 'tenor', 'bass')
