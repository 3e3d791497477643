"""
Voice-Leading Engine

Assigns chords to a four-voice ensemble (soprano, alto, tenor, bass) by
scoring every role permutation of the chord against the current assignment
and keeping the cheapest one.
"""
import logging
from collections import deque
from dataclasses import dataclass, asdict, replace
from itertools import permutations
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from analysis.chord_vocabulary import UNKNOWN_QUALITY, find_root, match_quality
from analysis.find_parallel_motion import ResolutionContext, VoiceLeadingReport, check_voicing
from analysis.key_analysis import KeyContext
from analysis.voice_reduction import VoiceReducer
from config.settings import VoiceLeadingRules
from utils.music_theory import VOICE_ORDER, fold_into_range, nearest_octave, normalize_pitches
from .voicing_styles import drop2_voicing, open_voicing, spread_voicing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoiceRange:
    low: int
    high: int

    def __post_init__(self):
        # An octave of room guarantees every pitch class has a home
        if self.high - self.low < 11:
            raise ValueError(f"Voice range {self.low}-{self.high} is narrower than an octave")

    @property
    def midpoint(self) -> float:
        return (self.low + self.high) / 2

    @property
    def width(self) -> int:
        return self.high - self.low

    def contains(self, pitch: int) -> bool:
        return self.low <= pitch <= self.high

    def fold(self, pitch: int) -> int:
        return fold_into_range(pitch, self.low, self.high)


VOICE_RANGES: Dict[str, VoiceRange] = {
    'soprano': VoiceRange(60, 81),   # C4 to A5
    'alto': VoiceRange(53, 74),      # F3 to D5
    'tenor': VoiceRange(48, 69),     # C3 to A4
    'bass': VoiceRange(36, 60),      # C2 to C4
}


@dataclass(frozen=True)
class VoiceAssignment:
    """Pitch per voice role; None while a role is silent"""
    soprano: Optional[int] = None
    alto: Optional[int] = None
    tenor: Optional[int] = None
    bass: Optional[int] = None

    @classmethod
    def from_pitches(cls, pitches: Sequence[int]) -> 'VoiceAssignment':
        """Four pitches listed soprano first"""
        if len(pitches) != len(VOICE_ORDER):
            raise ValueError(f"Expected {len(VOICE_ORDER)} pitches, got {len(pitches)}")
        return cls(**dict(zip(VOICE_ORDER, pitches)))

    def get(self, role: str, default=None) -> Optional[int]:
        pitch = getattr(self, role)
        return default if pitch is None else pitch

    def items(self) -> Iterator[Tuple[str, Optional[int]]]:
        return ((role, getattr(self, role)) for role in VOICE_ORDER)

    def as_dict(self) -> Dict[str, Optional[int]]:
        return asdict(self)

    def with_voice(self, role: str, pitch: Optional[int]) -> 'VoiceAssignment':
        return replace(self, **{role: pitch})

    @property
    def pitches(self) -> List[int]:
        """Sounding pitches, lowest first"""
        return sorted(p for _, p in self.items() if p is not None)

    @property
    def is_empty(self) -> bool:
        return all(p is None for _, p in self.items())

    @property
    def is_complete(self) -> bool:
        return all(p is not None for _, p in self.items())


@dataclass
class VoicingOptions:
    """Per-chord options for VoiceLeadingEngine.process_chord"""
    force_root: bool = False          # bass takes the chord root on an initial voicing
    root: Optional[int] = None        # explicit root when force_root is set
    open_voicing: bool = False
    drop2: bool = False
    spread: Optional[float] = None    # spread factor, None leaves the voicing as chosen


@dataclass(frozen=True)
class VoicingSuggestion:
    pitches: Tuple[int, ...]
    assignment: VoiceAssignment
    movement: int
    cost: float


class VoiceLeadingEngine:
    """Owns the current four-voice assignment for one part-writing session"""

    def __init__(self, rules: Optional[VoiceLeadingRules] = None,
                 ranges: Optional[Dict[str, VoiceRange]] = None,
                 key: Optional[KeyContext] = None):
        self.rules = rules or VoiceLeadingRules()
        self.ranges = dict(ranges or VOICE_RANGES)
        self.key = key or KeyContext()
        self.reducer = VoiceReducer(max_voices=len(VOICE_ORDER))

        self.current = VoiceAssignment()
        self.previous_chord: Optional[Tuple[int, str]] = None
        self.last_report = VoiceLeadingReport()
        self.history = deque(maxlen=self.rules.max_history)

    def set_key(self, key: KeyContext):
        self.key = key

    def reset(self):
        """Forget the current assignment, the previous chord and the history"""
        self.current = VoiceAssignment()
        self.previous_chord = None
        self.last_report = VoiceLeadingReport()
        self.history.clear()

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def process_chord(self, pitches: Sequence[int], options: Optional[VoicingOptions] = None) -> VoiceAssignment:
        """Voice a chord against the current assignment and make it current"""
        options = options or VoicingOptions()
        chord_root, quality, ordered = self._prepare(pitches, options)

        if self.current.is_empty:
            assignment = self.initial_voicing(ordered, chord_root, options)
        else:
            assignment, _ = self._choose(ordered, chord_root, quality)

        assignment = self.apply_voicing_style(assignment, options)

        context = self._resolution_context(chord_root, quality, assignment)
        previous = None if self.current.is_empty else self.current
        report = check_voicing(previous, assignment, self.rules, context)
        if not report.is_clean:
            logger.debug(f"Voice-leading flags for {assignment}: {report}")

        self.current = assignment
        self.previous_chord = (chord_root % 12, quality)
        self.last_report = report
        self.history.append((assignment, report))
        return assignment

    assign_voices = process_chord

    def check_voicing(self, previous: Optional[VoiceAssignment],
                      assignment: VoiceAssignment) -> VoiceLeadingReport:
        """Rule flags for a transition; nothing is repaired"""
        return check_voicing(previous, assignment, self.rules)

    def suggest_voicings(self, candidates: Sequence[Sequence[int]]) -> List[VoicingSuggestion]:
        """Rank candidate next chords by total voice movement from the current assignment"""
        suggestions = []
        for pitches in candidates:
            chord_root, quality, ordered = self._prepare(pitches, VoicingOptions())
            if self.current.is_empty:
                assignment, cost = self.initial_voicing(ordered, chord_root, VoicingOptions()), 0.0
            else:
                assignment, cost = self._choose(ordered, chord_root, quality)
            suggestions.append(VoicingSuggestion(
                pitches=tuple(ordered), assignment=assignment,
                movement=self.total_movement(self.current, assignment), cost=cost,
            ))
        suggestions.sort(key=lambda s: s.movement)
        return suggestions

    # ------------------------------------------------------------------
    # Voicing construction
    # ------------------------------------------------------------------

    def _prepare(self, pitches: Sequence[int], options: VoicingOptions) -> Tuple[int, str, List[int]]:
        ordered = normalize_pitches(pitches)
        if not ordered:
            raise ValueError("Cannot voice an empty chord")

        chord_root = options.root if options.force_root and options.root is not None else find_root(ordered)
        quality = match_quality((p - chord_root) % 12 for p in ordered) or UNKNOWN_QUALITY

        if len(ordered) > len(VOICE_ORDER):
            ordered = self.reducer.select_notes(ordered)
        return chord_root, quality, ordered

    def initial_voicing(self, ordered: Sequence[int], chord_root: int,
                        options: VoicingOptions) -> VoiceAssignment:
        """
        Bass gets the lowest pitch (or the root when forced); the rest go to
        tenor, alto and soprano in ascending order, each folded into its
        register. Missing upper voices double chord members above the top.
        """
        bass_pitch = chord_root if options.force_root else ordered[0]
        upper = [p for p in ordered if p != bass_pitch][-3:]

        doubling = [bass_pitch] + upper
        index = 0
        while len(upper) < 3:
            source = doubling[index % len(doubling)]
            top = max(upper + [bass_pitch])
            upper.append(source + 12 * ((top - source) // 12 + 1))
            index += 1

        tenor, alto, soprano = sorted(upper)
        return VoiceAssignment(
            soprano=self.ranges['soprano'].fold(soprano),
            alto=self.ranges['alto'].fold(alto),
            tenor=self.ranges['tenor'].fold(tenor),
            bass=self.ranges['bass'].fold(bass_pitch),
        )

    @staticmethod
    def pitch_class_variants(ordered: Sequence[int], chord_root: int) -> List[Tuple[int, ...]]:
        """
        Four-member pitch-class lists to permute. Triads give one variant per
        doubled member; smaller chords double the root first.
        """
        classes = list(dict.fromkeys(p % 12 for p in ordered))
        if len(classes) >= 4:
            return [tuple(classes[:4])]
        if len(classes) == 3:
            return [tuple(classes) + (member,) for member in classes]

        root_class = chord_root % 12
        fill = [root_class] + [c for c in classes if c != root_class]
        expanded = list(classes)
        index = 0
        while len(expanded) < 4:
            expanded.append(fill[index % len(fill)])
            index += 1
        return [tuple(expanded)]

    def generate_candidates(self, ordered: Sequence[int], chord_root: int) -> List[VoiceAssignment]:
        """Every role permutation of every variant, placed near each role's last pitch"""
        candidates = []
        for variant in self.pitch_class_variants(ordered, chord_root):
            for arrangement in dict.fromkeys(permutations(variant)):
                voices = {}
                for role, pc in zip(VOICE_ORDER, arrangement):
                    voice_range = self.ranges[role]
                    target = self.current.get(role, voice_range.midpoint)
                    voices[role] = voice_range.fold(nearest_octave(pc, target))
                candidates.append(VoiceAssignment(**voices))

        candidates = list(dict.fromkeys(candidates))
        assert all(c.is_complete for c in candidates), "voice-leading candidates must fill all four roles"
        return candidates

    def _choose(self, ordered: Sequence[int], chord_root: int, quality: str) -> Tuple[VoiceAssignment, float]:
        best, best_cost = None, float('inf')
        candidates = self.generate_candidates(ordered, chord_root)
        for candidate in candidates:
            context = self._resolution_context(chord_root, quality, candidate)
            cost = self.calculate_cost(self.current, candidate, context)
            # Strictly lower only, so ties keep the earliest candidate
            if cost < best_cost:
                best, best_cost = candidate, cost

        logger.debug(f"Scored {len(candidates)} candidates, best cost {best_cost:.2f}: {best}")
        return best, best_cost

    def apply_voicing_style(self, assignment: VoiceAssignment, options: VoicingOptions) -> VoiceAssignment:
        if options.open_voicing:
            assignment = open_voicing(assignment, self.ranges)
        if options.drop2:
            assignment = drop2_voicing(assignment, self.ranges)
        if options.spread is not None:
            assignment = spread_voicing(assignment, options.spread, self.ranges)
        return assignment

    def _resolution_context(self, chord_root: int, quality: str,
                            assignment: VoiceAssignment) -> Optional[ResolutionContext]:
        """Resolution checks only apply when the chord actually changes"""
        if self.previous_chord is None or self.previous_chord == (chord_root % 12, quality):
            return None
        previous_root, previous_quality = self.previous_chord
        return ResolutionContext(
            key_root=self.key.root,
            previous_root=previous_root,
            previous_quality=previous_quality,
            current_pitch_classes=tuple(sorted({p % 12 for p in assignment.pitches})),
        )

    # ------------------------------------------------------------------
    # Cost
    # ------------------------------------------------------------------

    def movement_cost(self, movement: int) -> float:
        """Cost of one voice moving by movement semitones"""
        if movement > self.rules.max_leap:
            return self.rules.leap_penalty
        if movement > self.rules.preferred_leap:
            return 2.0 * movement
        if movement == 0:
            return -self.rules.common_tone_bonus
        return float(movement)

    def calculate_cost(self, previous: VoiceAssignment, candidate: VoiceAssignment,
                       context: Optional[ResolutionContext] = None) -> float:
        """Total cost of moving from previous to candidate; lower is better"""
        rules = self.rules
        cost = 0.0
        for role in VOICE_ORDER:
            old, new = previous.get(role), candidate.get(role)
            if old is not None and new is not None:
                cost += self.movement_cost(abs(new - old))

        report = check_voicing(previous, candidate, rules, context)
        # One fixed penalty per rule broken, however many voices break it
        if report.has_parallel_fifths:
            cost += rules.parallel_fifths_penalty
        if report.has_parallel_octaves:
            cost += rules.parallel_octaves_penalty
        if report.has_voice_crossing:
            cost += rules.voice_crossing_penalty
        if report.has_voice_overlap:
            cost += rules.voice_overlap_penalty
        if report.unresolved_leading_tones:
            cost += rules.resolution_penalty
        if report.unresolved_sevenths:
            cost += rules.resolution_penalty

        # Stay near the middle of each register
        for role in VOICE_ORDER:
            pitch = candidate.get(role)
            if pitch is not None:
                voice_range = self.ranges[role]
                cost += rules.range_comfort_weight * abs(pitch - voice_range.midpoint) / voice_range.width
        return cost

    @staticmethod
    def total_movement(previous: VoiceAssignment, current: VoiceAssignment) -> int:
        """Summed semitone motion over roles sounding in both assignments"""
        movement = 0
        for role in VOICE_ORDER:
            old, new = previous.get(role), current.get(role)
            if old is not None and new is not None:
                movement += abs(new - old)
        return movement
