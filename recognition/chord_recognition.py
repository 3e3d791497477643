"""
Chord Recognition - streams note-on/note-off events into chord, key and
progression detections.

A recognizer is one session: all state lives on the instance and is only
changed by its own methods, in event order. Time is logical milliseconds
taken from the events themselves; the debounce fires when an event or a
tick() reaches its deadline.
"""
import logging
from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from analysis.chord_analysis import ChordAnalysis, ChordSuggestion
from analysis.chord_vocabulary import UNKNOWN_QUALITY, get_quality
from analysis.harmony import HarmonicAnalyzer
from analysis.key_analysis import KeyContext, detect_key
from analysis.progression import classify_progression, estimate_function
from config.settings import RecognitionSettings
from core.midi_data import EventType, NoteEvent
from utils.music_theory import get_key_name
from .debounce import DeferredAction

logger = logging.getLogger(__name__)

UNKNOWN_CONFIDENCE = 0.3
PARTIAL_CONFIDENCE_SCALE = 0.8

# Root + third + seventh without the fifth
SHELL_VOICINGS = (
    ({0, 4, 10}, '7'),
    ({0, 3, 10}, 'm7'),
    ({0, 4, 11}, 'maj7'),
)

# Jazz voicings that leave the root to the bass player, read from the implied root
ROOTLESS_VOICINGS = (
    ({3, 7, 10}, 'm7'),
    ({4, 7, 11}, 'maj7'),
    ({4, 7, 10}, '7'),
    ({3, 6, 10}, 'm7b5'),
    ({2, 3, 7, 10}, 'm9'),
)

STARTING_SUGGESTIONS = (('I', 0.9), ('vi', 0.7), ('IV', 0.6))


@dataclass(frozen=True)
class RecognizedChord:
    """A detected chord and the logical time span it sounded"""
    analysis: ChordAnalysis
    start_time: float
    end_time: Optional[float] = None
    is_broken: bool = False

    @property
    def root(self) -> int:
        return self.analysis.root

    @property
    def quality(self) -> str:
        return self.analysis.quality

    @property
    def symbol(self) -> str:
        return self.analysis.symbol

    @property
    def function(self) -> str:
        return self.analysis.function

    @property
    def pitches(self) -> Tuple[int, ...]:
        return self.analysis.pitches

    @property
    def confidence(self) -> float:
        return self.analysis.confidence

    @property
    def duration(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


@dataclass(frozen=True)
class ProgressionReport:
    chords: Tuple[RecognizedChord, ...]
    functions: Tuple[str, ...]
    key: int
    key_name: str
    type: str
    start_time: float
    end_time: float

    @property
    def symbols(self) -> Tuple[str, ...]:
        return tuple(c.symbol for c in self.chords)


@dataclass(frozen=True)
class RecognitionSnapshot:
    active_notes: Tuple[int, ...]
    current_chord: Optional[RecognizedChord]
    recent_chords: Tuple[RecognizedChord, ...]
    progression: Tuple[RecognizedChord, ...]
    pending_deadline: Optional[float]
    detected_key: Optional[int]
    progression_type: Optional[str]


@dataclass(frozen=True)
class ActiveNote:
    velocity: int
    time: float


class ChordRecognizer:
    """Debounced chord detection over a live note stream"""

    def __init__(self, settings: Optional[RecognitionSettings] = None,
                 analyzer: Optional[HarmonicAnalyzer] = None):
        self.settings = settings or RecognitionSettings()
        self.analyzer = analyzer or HarmonicAnalyzer()
        self._debounce = DeferredAction(self.detect_chord, self.settings.detection_delay_ms)
        self._chord_listeners: List[Callable[[RecognizedChord], None]] = []
        self._progression_listeners: List[Callable[[ProgressionReport], None]] = []
        self.reset()

    def reset(self):
        """Clear active notes, the pending debounce and all chord state"""
        self._debounce.cancel()
        self.active_notes: Dict[int, ActiveNote] = {}
        self.recent_notes: Dict[int, float] = {}
        self.current_chord: Optional[RecognizedChord] = None
        self.previous_chord: Optional[RecognizedChord] = None
        self.history = deque(maxlen=self.settings.max_history)
        self.progression = deque(maxlen=self.settings.max_progression)
        self.detected_key: Optional[int] = None
        self.progression_type: Optional[str] = None
        self.last_event_time = 0.0

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def on_note_event(self, event: NoteEvent):
        """Apply one note event; events must arrive in non-decreasing time"""
        if event.time < self.last_event_time:
            logger.warning(f"Note event at {event.time}ms is earlier than {self.last_event_time}ms")
        self.last_event_time = max(self.last_event_time, event.time)

        # A debounce that came due before this event settles first
        self._debounce.poll(event.time)

        if event.is_note_on:
            self.add_note(event.pitch, event.velocity, event.time)
        else:
            self.remove_note(event.pitch)

        self._debounce.schedule(event.time)

    def process_note(self, pitch: int, velocity: int, time: float, note_on: bool = True):
        event_type = EventType.NOTE_ON if note_on else EventType.NOTE_OFF
        self.on_note_event(NoteEvent(event_type, pitch, velocity, time))

    def on_midi_message(self, msg, time: float):
        """Feed a mido message; anything other than a note message is ignored"""
        event = NoteEvent.from_mido(msg, time)
        if event is not None:
            self.on_note_event(event)

    def tick(self, now: float) -> bool:
        """Advance logical time; returns True if the debounce fired"""
        self.last_event_time = max(self.last_event_time, now)
        return self._debounce.poll(now)

    def add_note(self, pitch: int, velocity: int, time: float):
        self.active_notes[pitch] = ActiveNote(velocity=velocity, time=time)
        self.recent_notes[pitch] = time

        if self.settings.detect_broken_chords:
            self.check_broken_chord(time)

    def remove_note(self, pitch: int):
        self.active_notes.pop(pitch, None)

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect_chord(self, now: float):
        """Debounce callback: settle the active notes into a chord"""
        notes = sorted(self.active_notes)

        if len(notes) < self.settings.min_chord_notes:
            # Not enough notes for a chord
            if self.current_chord is not None:
                self.end_current_chord(now)
            return

        analysis = self.analyze_notes(notes)
        if analysis is None:
            return

        if self.current_chord is None or not self.current_chord.analysis.same_chord(analysis):
            self.set_current_chord(analysis, now)
        else:
            # Same chord, maybe with added notes; keep the original start time
            self.current_chord = replace(self.current_chord, analysis=analysis)

    def check_broken_chord(self, now: float):
        """Pitches played within the arpeggio window, held or not, read as one chord"""
        window = self.settings.arpeggio_window_ms
        self.recent_notes = {p: t for p, t in self.recent_notes.items() if now - t < window}
        if len(self.recent_notes) < 3:
            return

        times = self.recent_notes.values()
        # Block chords inside the debounce window go through the normal path
        if max(times) - min(times) <= self.settings.detection_delay_ms:
            return

        analysis = self.analyze_notes(sorted(self.recent_notes))
        if analysis is not None and analysis.confidence > self.settings.broken_chord_confidence:
            if self.current_chord is None or not self.current_chord.analysis.same_chord(analysis):
                logger.debug(f"Broken chord {analysis.symbol} from {sorted(self.recent_notes)}")
                self.set_current_chord(analysis, now, is_broken=True)

    def analyze_notes(self, notes: Sequence[int]) -> Optional[ChordAnalysis]:
        """Pick the best root interpretation of the notes for the configured method"""
        notes = sorted(set(notes))
        if len(notes) < 2:
            return None

        method = self.settings.root_detection_method
        interpretations = []

        # Bass note as root
        if method in ('bass', 'context'):
            interpretation = self.interpret_with_root(notes[0], notes)
            if interpretation is not None:
                interpretations.append(interpretation)

        # Every note as a potential root
        if method in ('stack', 'context'):
            for root in self.candidate_roots(notes):
                interpretation = self.interpret_with_root(root, notes)
                if interpretation is not None and interpretation.confidence > self.settings.stack_confidence_threshold:
                    interpretations.append(interpretation)

        if not interpretations:
            return self.create_unknown_chord(notes)

        interpretations.sort(key=lambda i: i.confidence, reverse=True)

        if method == 'context' and self.previous_chord is not None:
            return self.select_best_with_context(interpretations)

        logger.debug(f"{len(interpretations)} interpretations of {notes}, best {interpretations[0].symbol}")
        return interpretations[0]

    def candidate_roots(self, notes: Sequence[int]) -> List[int]:
        """Sounding pitches, then the implied roots of rootless voicings when enabled"""
        candidates = list(notes)
        if self.settings.infer_rootless_roots:
            # third in the bass: major third or minor third above the missing root
            candidates += [notes[0] - 4, notes[0] - 3]
        return candidates

    def interpret_with_root(self, root: int, notes: Sequence[int]) -> Optional[ChordAnalysis]:
        intervals = sorted({(n - root) % 12 for n in notes})

        # An implied root is never a template match on its own
        quality = self.analyzer.identify_chord_type(intervals) if 0 in intervals else UNKNOWN_QUALITY
        if quality == UNKNOWN_QUALITY:
            partial = self.identify_partial_chord(intervals)
            if partial is None:
                return None
            quality, confidence = partial
            return self._create_chord_analysis(root, notes, quality, confidence * PARTIAL_CONFIDENCE_SCALE)

        return self._create_chord_analysis(root, notes, quality, self.calculate_confidence(intervals, quality))

    @staticmethod
    def identify_partial_chord(intervals: Sequence[int]) -> Optional[Tuple[str, float]]:
        """Power chords, shell voicings and rootless voicings; None if nothing fits"""
        present = set(intervals)

        if present == {0, 7}:
            return '5', 0.9

        if 0 in present:
            for pattern, quality in SHELL_VOICINGS:
                if pattern <= present:
                    return quality, 0.85
            return None

        for pattern, quality in ROOTLESS_VOICINGS:
            if present == pattern:
                return quality, 0.7
        return None

    @staticmethod
    def calculate_confidence(intervals: Sequence[int], quality: str) -> float:
        """Matched template intervals over template size, minus 0.1 per extra interval"""
        chord_quality = get_quality(quality)
        if chord_quality is None:
            return 0.5

        template = chord_quality.intervals
        matches = sum(1 for interval in template if interval in intervals)
        extras = sum(1 for interval in intervals if interval not in template and interval != 0)
        return max(0.0, min(1.0, matches / len(template) - extras * 0.1))

    def select_best_with_context(self, interpretations: List[ChordAnalysis]) -> ChordAnalysis:
        """Re-rank by 70% own confidence and 30% voice-leading smoothness from the previous chord"""
        weight = self.settings.context_confidence_weight
        previous = self.previous_chord.pitches

        def context_score(interpretation: ChordAnalysis) -> float:
            smoothness = self.score_voice_leading(previous, interpretation.pitches)
            return interpretation.confidence * weight + smoothness * (1 - weight)

        return sorted(interpretations, key=context_score, reverse=True)[0]

    @staticmethod
    def score_voice_leading(first: Sequence[int], second: Sequence[int]) -> float:
        """1 - average per-position movement / 12, over min(len) sorted pairs"""
        if not first or not second:
            return 0.5
        notes1, notes2 = sorted(first), sorted(second)
        pairs = min(len(notes1), len(notes2))
        total_movement = sum(abs(notes2[i] - notes1[i]) for i in range(pairs))
        return max(0.0, 1 - (total_movement / pairs) / 12)

    def create_unknown_chord(self, notes: Sequence[int]) -> ChordAnalysis:
        return self.analyzer.describe_chord(notes[0], notes, UNKNOWN_QUALITY, key=self.key_context(),
                                            function='?', confidence=UNKNOWN_CONFIDENCE)

    def _create_chord_analysis(self, root: int, notes: Sequence[int], quality: str,
                               confidence: float) -> ChordAnalysis:
        return self.analyzer.describe_chord(root, notes, quality, key=self.key_context(),
                                            confidence=confidence)

    def key_context(self) -> KeyContext:
        """Detected key once a progression has been analysed, else the analyzer's key"""
        if self.detected_key is None:
            return self.analyzer.key
        return KeyContext(root=self.detected_key, scale='major',
                          reference_pitch=self.analyzer.settings.reference_pitch)

    # ------------------------------------------------------------------
    # Chord lifecycle
    # ------------------------------------------------------------------

    def set_current_chord(self, analysis: ChordAnalysis, now: float, is_broken: bool = False):
        if self.current_chord is not None:
            self.end_current_chord(now)

        self.current_chord = RecognizedChord(analysis=analysis, start_time=now, is_broken=is_broken)
        logger.info(f"Chord changed: {analysis.symbol} ({analysis.function}) "
                    f"confidence {analysis.confidence:.2f}")
        self._notify(self._chord_listeners, self.current_chord, 'chord change')

    def end_current_chord(self, now: float):
        if self.current_chord is None:
            return

        ended = replace(self.current_chord, end_time=now)
        self.history.append(ended)
        self.progression.append(ended)
        self.previous_chord = ended
        self.current_chord = None

        if len(self.progression) >= self.settings.min_progression_for_analysis:
            self.analyze_progression(now)

    def analyze_progression(self, now: float) -> Optional[ProgressionReport]:
        """Detect the key of the running progression and classify its function sequence"""
        chords = tuple(self.progression)
        if len(chords) < 2:
            return None

        key = detect_key(p for chord in chords for p in chord.pitches)
        functions = tuple(
            '?' if chord.quality == UNKNOWN_QUALITY else estimate_function(chord.root, chord.quality, key)
            for chord in chords
        )
        progression_type = classify_progression(functions)

        self.detected_key = key
        self.progression_type = progression_type
        report = ProgressionReport(
            chords=chords,
            functions=functions,
            key=key,
            key_name=get_key_name(key, 'major'),
            type=progression_type,
            start_time=chords[0].start_time,
            end_time=now,
        )
        logger.info(f"Progression {' - '.join(report.symbols)} in {report.key_name}: {progression_type}")
        self._notify(self._progression_listeners, report, 'progression')
        return report

    # ------------------------------------------------------------------
    # Listeners and queries
    # ------------------------------------------------------------------

    def on_chord_change(self, callback: Callable[[RecognizedChord], None]) -> Callable[[], None]:
        """Register a chord change listener; returns an unsubscribe function"""
        return self._subscribe(self._chord_listeners, callback)

    def on_progression_detected(self, callback: Callable[[ProgressionReport], None]) -> Callable[[], None]:
        """Register a progression listener; returns an unsubscribe function"""
        return self._subscribe(self._progression_listeners, callback)

    @staticmethod
    def _subscribe(listeners: list, callback: Callable) -> Callable[[], None]:
        listeners.append(callback)

        def unsubscribe():
            if callback in listeners:
                listeners.remove(callback)
        return unsubscribe

    @staticmethod
    def _notify(listeners: list, payload, kind: str):
        for callback in list(listeners):
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Error in {kind} listener {callback!r}")

    def get_state(self) -> RecognitionSnapshot:
        return RecognitionSnapshot(
            active_notes=tuple(sorted(self.active_notes)),
            current_chord=self.current_chord,
            recent_chords=tuple(self.history)[-8:],
            progression=tuple(self.progression),
            pending_deadline=self._debounce.deadline,
            detected_key=self.detected_key,
            progression_type=self.progression_type,
        )

    def get_chord_suggestions(self, limit: int = 5) -> List[ChordSuggestion]:
        """Common starting chords with no context, else successors of the previous chord"""
        key = self.key_context()
        if self.previous_chord is None:
            return [ChordSuggestion(chord=self.analyzer.function_to_chord(function, key),
                                    probability=likelihood, movement=0, score=likelihood)
                    for function, likelihood in STARTING_SUGGESTIONS][:limit]

        suggestions = self.analyzer.suggest_next_chord(self.previous_chord.pitches,
                                                       style=self.settings.suggestion_style, key=key)
        return suggestions[:limit]
