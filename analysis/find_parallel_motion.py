# Part-writing checks between two four-voice assignments: parallel motion
# at a chosen interval (perfect fifths and octaves by default), voice
# crossing, voice overlap, and resolution of leading tones and sevenths.
#
# Assignments are plain mappings of voice role -> pitch (None when the role
# is silent). The checks only flag; nothing here moves a voice.

from dataclasses import dataclass
from itertools import combinations
from typing import List, Mapping, Optional, Sequence, Tuple

from config.settings import VoiceLeadingRules
from utils.music_theory import VOICE_ORDER
from .chord_vocabulary import get_quality

Assignment = Mapping[str, Optional[int]]
VoicePair = Tuple[str, str]

# Interval classes the parallel-motion finder understands
PARALLEL_INTERVALS = {
    'Minor 2nd': 1,
    'Major 2nd': 2,
    'Minor 3rd': 3,
    'Major 3rd': 4,
    'Perfect 4th': 5,
    'Tritone': 6,
    'Perfect 5th': 7,
    'Minor 6th': 8,
    'Major 6th': 9,
    'Minor 7th': 10,
    'Major 7th': 11,
    'Octave': 0,
}


@dataclass(frozen=True)
class ResolutionContext:
    """What the resolution checks need to know about the chord being left"""
    key_root: int
    previous_root: int
    previous_quality: str
    current_pitch_classes: Tuple[int, ...]


@dataclass(frozen=True)
class VoiceLeadingReport:
    parallel_fifths: Tuple[VoicePair, ...] = ()
    parallel_octaves: Tuple[VoicePair, ...] = ()
    voice_crossing: Tuple[VoicePair, ...] = ()
    voice_overlap: Tuple[VoicePair, ...] = ()
    unresolved_leading_tones: Tuple[str, ...] = ()
    unresolved_sevenths: Tuple[str, ...] = ()

    @property
    def has_parallel_fifths(self) -> bool:
        return bool(self.parallel_fifths)

    @property
    def has_parallel_octaves(self) -> bool:
        return bool(self.parallel_octaves)

    @property
    def has_voice_crossing(self) -> bool:
        return bool(self.voice_crossing)

    @property
    def has_voice_overlap(self) -> bool:
        return bool(self.voice_overlap)

    @property
    def is_clean(self) -> bool:
        return not (self.parallel_fifths or self.parallel_octaves or self.voice_crossing
                    or self.voice_overlap or self.unresolved_leading_tones
                    or self.unresolved_sevenths)


def find_parallel_motion(previous: Assignment, current: Assignment, interval_class: int,
                         roles: Sequence[str] = VOICE_ORDER) -> List[VoicePair]:
    """
    Voice pairs that hold the same interval class in both chords while
    moving in the same direction.
    """
    found = []
    for upper, lower in combinations(roles, 2):
        prev_upper, prev_lower = previous.get(upper), previous.get(lower)
        curr_upper, curr_lower = current.get(upper), current.get(lower)
        if prev_upper is None or prev_lower is None or curr_upper is None or curr_lower is None:
            continue

        if abs(prev_upper - prev_lower) % 12 != interval_class:
            continue
        if abs(curr_upper - curr_lower) % 12 != interval_class:
            continue

        upper_motion = curr_upper - prev_upper
        lower_motion = curr_lower - prev_lower
        if (upper_motion > 0 and lower_motion > 0) or (upper_motion < 0 and lower_motion < 0):
            found.append((upper, lower))
    return found


def find_parallel_fifths(previous: Assignment, current: Assignment) -> List[VoicePair]:
    return find_parallel_motion(previous, current, PARALLEL_INTERVALS['Perfect 5th'])


def find_parallel_octaves(previous: Assignment, current: Assignment) -> List[VoicePair]:
    return find_parallel_motion(previous, current, PARALLEL_INTERVALS['Octave'])


def find_voice_crossing(assignment: Assignment) -> List[VoicePair]:
    """Adjacent roles sounding out of order (soprano < alto etc.)"""
    crossed = []
    for upper, lower in zip(VOICE_ORDER, VOICE_ORDER[1:]):
        high, low = assignment.get(upper), assignment.get(lower)
        if high is not None and low is not None and high < low:
            crossed.append((upper, lower))
    return crossed


def find_voice_overlap(previous: Assignment, current: Assignment) -> List[VoicePair]:
    """Adjacent roles where a voice moves past the neighbour's previous pitch"""
    overlapping = []
    for upper, lower in zip(VOICE_ORDER, VOICE_ORDER[1:]):
        prev_upper, prev_lower = previous.get(upper), previous.get(lower)
        curr_upper, curr_lower = current.get(upper), current.get(lower)
        if curr_lower is not None and prev_upper is not None and curr_lower > prev_upper:
            overlapping.append((upper, lower))
        elif curr_upper is not None and prev_lower is not None and curr_upper < prev_lower:
            overlapping.append((upper, lower))
    return overlapping


def find_unresolved_leading_tones(previous: Assignment, current: Assignment,
                                  context: ResolutionContext) -> List[str]:
    """
    After a dominant-function chord (root on degree 5 or 7) going to a chord
    that holds the tonic, every voice that had the leading tone must rise a
    semitone.
    """
    if (context.previous_root - context.key_root) % 12 not in (7, 11):
        return []
    if context.key_root % 12 not in context.current_pitch_classes:
        return []

    leading_tone = (context.key_root + 11) % 12
    unresolved = []
    for role in VOICE_ORDER:
        before, after = previous.get(role), current.get(role)
        if before is None or after is None or before % 12 != leading_tone:
            continue
        if after - before != 1:
            unresolved.append(role)
    return unresolved


def chord_seventh(root: int, quality: str) -> Optional[int]:
    """Pitch class of the chord's seventh, or None for chords without one"""
    chord_quality = get_quality(quality)
    if chord_quality is None:
        return None
    if 10 in chord_quality.intervals:
        return (root + 10) % 12
    if 11 in chord_quality.intervals:
        return (root + 11) % 12
    if quality == 'dim7':
        return (root + 9) % 12
    return None


def find_unresolved_sevenths(previous: Assignment, current: Assignment,
                             context: ResolutionContext) -> List[str]:
    """Voices that held the previous chord's seventh and did not step down"""
    seventh = chord_seventh(context.previous_root, context.previous_quality)
    if seventh is None:
        return []

    unresolved = []
    for role in VOICE_ORDER:
        before, after = previous.get(role), current.get(role)
        if before is None or after is None or before % 12 != seventh:
            continue
        if before - after not in (1, 2):
            unresolved.append(role)
    return unresolved


def check_voicing(previous: Optional[Assignment], current: Assignment,
                  rules: Optional[VoiceLeadingRules] = None,
                  context: Optional[ResolutionContext] = None) -> VoiceLeadingReport:
    """Run every enabled check; rules that are switched off report nothing"""
    rules = rules or VoiceLeadingRules()
    crossing = find_voice_crossing(current) if rules.avoid_voice_crossing else []
    if previous is None:
        return VoiceLeadingReport(voice_crossing=tuple(crossing))

    fifths = find_parallel_fifths(previous, current) if rules.avoid_parallel_fifths else []
    octaves = find_parallel_octaves(previous, current) if rules.avoid_parallel_octaves else []
    overlap = find_voice_overlap(previous, current) if rules.avoid_voice_overlap else []

    leading_tones, sevenths = [], []
    if context is not None:
        if rules.resolve_leading_tone:
            leading_tones = find_unresolved_leading_tones(previous, current, context)
        if rules.resolve_seventh:
            sevenths = find_unresolved_sevenths(previous, current, context)

    return VoiceLeadingReport(
        parallel_fifths=tuple(fifths),
        parallel_octaves=tuple(octaves),
        voice_crossing=tuple(crossing),
        voice_overlap=tuple(overlap),
        unresolved_leading_tones=tuple(leading_tones),
        unresolved_sevenths=tuple(sevenths),
    )
