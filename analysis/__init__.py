"""Music analysis and processing tools"""
from .chord_vocabulary import CHORD_VOCABULARY, ChordQuality, UNKNOWN_QUALITY, get_quality, find_root
from .chord_analysis import ChordAnalysis, ChordSuggestion, HarmonizedSegment, Inversion, MelodyNote
from .key_analysis import KeyAnalyzer, KeyContext, SCALES, detect_key
from .harmony import HarmonicAnalyzer
from .dissonance import DissonanceCalculator
from .voice_reduction import VoiceReducer
from .progression import classify_progression, estimate_function
from .find_parallel_motion import VoiceLeadingReport, ResolutionContext, check_voicing

__all__ = [
    'CHORD_VOCABULARY', 'ChordQuality', 'UNKNOWN_QUALITY', 'get_quality', 'find_root',
    'ChordAnalysis', 'ChordSuggestion', 'HarmonizedSegment', 'Inversion', 'MelodyNote',
    'KeyAnalyzer', 'KeyContext', 'SCALES', 'detect_key', 'HarmonicAnalyzer',
    'DissonanceCalculator', 'VoiceReducer', 'classify_progression', 'estimate_function',
    'VoiceLeadingReport', 'ResolutionContext', 'check_voicing'
]
