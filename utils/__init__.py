"""Music utility functions and constants"""
from .music_theory import (
    KEY_NAMES, MIDDLE_C, MIN_MIDI_NOTE, MAX_MIDI_NOTE, VOICE_ORDER,
    DISSONANCE_WEIGHTS, DISSONANCE_RANKING, KEY_DEGREE_WEIGHTS,
    MAJOR_KEY_PROFILE, MINOR_KEY_PROFILE,
    get_key_name, get_interval_from_root, normalize_pitches,
    note_name_to_pitch_class, fold_into_range, nearest_octave
)
from .logging import setup_logging

__all__ = [
    'KEY_NAMES', 'MIDDLE_C', 'MIN_MIDI_NOTE', 'MAX_MIDI_NOTE', 'VOICE_ORDER',
    'DISSONANCE_WEIGHTS', 'DISSONANCE_RANKING', 'KEY_DEGREE_WEIGHTS',
    'MAJOR_KEY_PROFILE', 'MINOR_KEY_PROFILE',
    'get_key_name', 'get_interval_from_root', 'normalize_pitches',
    'note_name_to_pitch_class', 'fold_into_range', 'nearest_octave',
    'setup_logging'
]
