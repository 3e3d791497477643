"""Engine settings and per-operation configuration"""
from dataclasses import dataclass, field, fields, asdict, is_dataclass
from typing import Dict, Any, Optional
import json
import logging
import os

from utils.music_theory import MIDDLE_C

logger = logging.getLogger(__name__)

PROGRESSION_STYLES = ('pop', 'jazz', 'blues', 'classical')
ROOT_DETECTION_METHODS = ('bass', 'stack', 'context')


@dataclass
class AnalyzerSettings:
    # Key used when no key is given or detected
    default_key_root: int = 0
    default_scale: str = 'major'
    # Octave for chords built from symbols and functions (middle C)
    reference_pitch: int = MIDDLE_C
    max_history: int = 32


@dataclass
class ProgressionConfig:
    """Options for generating a chord progression"""
    length: int = 8
    style: str = 'pop'
    start_function: str = 'I'
    end_function: str = 'I'
    complexity: float = 0.5   # probability of a substitution per interior chord
    seed: Optional[int] = None

    def __post_init__(self):
        self.complexity = max(0.0, min(1.0, self.complexity))


@dataclass
class VoiceLeadingRules:
    max_leap: int = 12                # hard cap (octave)
    preferred_leap: int = 4           # soft threshold (major third)
    leap_penalty: float = 100.0
    common_tone_bonus: float = 5.0
    parallel_fifths_penalty: float = 50.0
    parallel_octaves_penalty: float = 50.0
    voice_crossing_penalty: float = 30.0
    voice_overlap_penalty: float = 20.0
    resolution_penalty: float = 25.0
    range_comfort_weight: float = 10.0
    avoid_parallel_fifths: bool = True
    avoid_parallel_octaves: bool = True
    avoid_voice_crossing: bool = True
    avoid_voice_overlap: bool = True
    resolve_leading_tone: bool = True
    resolve_seventh: bool = True
    max_history: int = 16


@dataclass
class RecognitionSettings:
    detection_delay_ms: float = 50.0     # debounce
    min_chord_notes: int = 2
    root_detection_method: str = 'bass'  # 'bass', 'stack', 'context'
    stack_confidence_threshold: float = 0.5
    infer_rootless_roots: bool = False   # stack also tries roots a third below the bass
    context_confidence_weight: float = 0.7
    detect_broken_chords: bool = True
    arpeggio_window_ms: float = 500.0
    broken_chord_confidence: float = 0.7
    max_history: int = 64
    max_progression: int = 16
    min_progression_for_analysis: int = 4
    suggestion_style: str = 'pop'

    def __post_init__(self):
        if self.root_detection_method not in ROOT_DETECTION_METHODS:
            raise ValueError(f"Unknown root detection method: {self.root_detection_method}")
        if self.detection_delay_ms < 0:
            raise ValueError("detection_delay_ms must be >= 0")


@dataclass
class HarmonySettings:
    analyzer: AnalyzerSettings = field(default_factory=AnalyzerSettings)
    progression: ProgressionConfig = field(default_factory=ProgressionConfig)
    voice_leading: VoiceLeadingRules = field(default_factory=VoiceLeadingRules)
    recognition: RecognitionSettings = field(default_factory=RecognitionSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HarmonySettings':
        settings = cls()
        for section in fields(cls):
            values = data.get(section.name)
            if not isinstance(values, dict):
                continue
            current = getattr(settings, section.name)
            known = {f.name for f in fields(current)}
            unknown = set(values) - known
            if unknown:
                logger.warning(f"Ignoring unknown {section.name} settings: {sorted(unknown)}")
            merged = {**asdict(current), **{k: v for k, v in values.items() if k in known}}
            setattr(settings, section.name, type(current)(**merged))
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: asdict(getattr(self, f.name)) for f in fields(self)
                if is_dataclass(getattr(self, f.name))}

    @classmethod
    def load(cls, config_path: str = "harmony.json") -> 'HarmonySettings':
        """Load settings from file"""
        if os.path.exists(config_path):
            try:
                with open(config_path, 'r') as f:
                    data = json.load(f)
                return cls.from_dict(data)
            except (OSError, ValueError, TypeError) as e:
                logger.warning(f"Error loading settings from {config_path}: {e}")
        return cls()  # Return defaults

    def save(self, config_path: str = "harmony.json") -> bool:
        """Save settings to file"""
        try:
            with open(config_path, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
            return True
        except OSError as e:
            logger.error(f"Error saving settings to {config_path}: {e}")
            return False
