"""Chord analysis records produced by the harmonic analyzer"""
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Inversion:
    """One root interpretation of a pitch set"""
    root: int
    bass: int
    inversion: int      # position of the candidate root in the sorted pitch set
    quality: str


@dataclass(frozen=True)
class VoicingProfile:
    intervals: Tuple[int, ...]
    spread: int
    density: float
    type: str           # 'close', 'open', 'drop', 'mixed' or 'unknown'


@dataclass(frozen=True)
class ChordAnalysis:
    """
    Immutable description of a chord. A changed interpretation is a new
    record, never an edit of an old one.
    """
    root: int
    quality: str
    pitches: Tuple[int, ...]
    bass: int
    inversion: int = 0
    symbol: str = ''
    function: str = ''
    extensions: Tuple[str, ...] = ()
    alterations: Tuple[str, ...] = ()
    tension: float = 0.0
    intervals: Tuple[int, ...] = ()
    inversions: Tuple[Inversion, ...] = ()
    voicing: Optional[VoicingProfile] = None
    is_modal_interchange: bool = False
    confidence: float = 1.0

    @property
    def root_pitch_class(self) -> int:
        return self.root % 12

    @property
    def pitch_classes(self) -> Tuple[int, ...]:
        return tuple(sorted({p % 12 for p in self.pitches}))

    def same_chord(self, other: Optional['ChordAnalysis']) -> bool:
        """Same root pitch class and quality"""
        return (other is not None and self.root_pitch_class == other.root_pitch_class
                and self.quality == other.quality)


@dataclass(frozen=True)
class ChordSuggestion:
    chord: ChordAnalysis
    probability: float
    movement: int
    score: float


@dataclass(frozen=True)
class MelodyNote:
    pitch: int
    time: float          # beats
    duration: float = 1.0


@dataclass(frozen=True)
class HarmonizedSegment:
    time: float
    duration: float
    chord: ChordAnalysis
    fitness: float
    melody: Tuple[int, ...] = field(default_factory=tuple)
