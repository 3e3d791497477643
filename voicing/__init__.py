"""Four-part voice leading"""
from .voice_leading import (
    VOICE_RANGES, VoiceAssignment, VoiceLeadingEngine, VoiceRange, VoicingOptions, VoicingSuggestion
)
from .voicing_styles import drop2_voicing, open_voicing, spread_voicing

__all__ = [
    'VOICE_RANGES', 'VoiceAssignment', 'VoiceLeadingEngine', 'VoiceRange',
    'VoicingOptions', 'VoicingSuggestion', 'drop2_voicing', 'open_voicing', 'spread_voicing'
]
