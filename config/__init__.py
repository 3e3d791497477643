"""Configuration for the harmony engine"""
from .settings import (
    AnalyzerSettings, ProgressionConfig, VoiceLeadingRules,
    RecognitionSettings, HarmonySettings,
    PROGRESSION_STYLES, ROOT_DETECTION_METHODS
)

__all__ = [
    'AnalyzerSettings', 'ProgressionConfig', 'VoiceLeadingRules',
    'RecognitionSettings', 'HarmonySettings',
    'PROGRESSION_STYLES', 'ROOT_DETECTION_METHODS'
]
