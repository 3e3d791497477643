"""
Harmonic Analyzer - chord identification, chord symbols, functional harmony
and probabilistic progression generation
"""
import logging
import re
from dataclasses import replace
from random import Random
from typing import Iterable, List, Optional, Sequence, Tuple

from config.settings import AnalyzerSettings, ProgressionConfig
from utils.music_theory import KEY_NAMES, normalize_pitches, note_name_to_pitch_class
from .chord_analysis import (
    ChordAnalysis, ChordSuggestion, HarmonizedSegment, Inversion, MelodyNote, VoicingProfile
)
from .chord_vocabulary import (
    UNKNOWN_QUALITY, find_root, get_quality, match_quality, quality_suffix, resolve_quality_token
)
from .dissonance import DissonanceCalculator
from .key_analysis import SCALES, KeyContext
from .progression import (
    TRANSITION_TABLES, FunctionSymbol, estimate_function, get_progression_templates,
    get_substitution, get_transitions, parse_function_symbol, weighted_choice
)

logger = logging.getLogger(__name__)

# <root><accidental?><quality?>(/<bass>)?  - the quality part is lazy so '6/9' survives
_SYMBOL_RE = re.compile(r'^([A-G][#b]?)(.*?)(?:/([A-G][#b]?))?$')

HARMONIC_RHYTHM_BEATS = {'sparse': 4, 'moderate': 2, 'dense': 1}
MELODY_QUALITIES = ('major', 'minor', '7', 'maj7', 'm7')


class HarmonicAnalyzer:
    """Stateless apart from the current key context"""

    def __init__(self, settings: Optional[AnalyzerSettings] = None):
        self.settings = settings or AnalyzerSettings()
        self.dissonance = DissonanceCalculator()
        self.key = KeyContext(root=self.settings.default_key_root,
                              scale=self.settings.default_scale,
                              reference_pitch=self.settings.reference_pitch)

    def set_key(self, root: int, scale: str = 'major'):
        """Set current key and scale"""
        self.key = KeyContext(root=root, scale=scale, reference_pitch=self.settings.reference_pitch)

    # ------------------------------------------------------------------
    # Identification
    # ------------------------------------------------------------------

    def identify_chord_type(self, intervals: Iterable[int]) -> str:
        """
        First exact vocabulary match for an interval set, else the
        major/minor third-and-fifth heuristic, else 'unknown'.
        """
        collapsed = sorted({i % 12 for i in intervals})
        quality = match_quality(collapsed)
        if quality is not None:
            return quality

        # Try to identify partial matches
        if 4 in collapsed and 7 in collapsed:
            return 'major'
        if 3 in collapsed and 7 in collapsed:
            return 'minor'
        return UNKNOWN_QUALITY

    def identify_quality(self, pitches: Iterable[int]) -> str:
        """Quality of a pitch set read from its bass; never raises"""
        ordered = normalize_pitches(pitches)
        if not ordered:
            return UNKNOWN_QUALITY
        bass = ordered[0]
        return self.identify_chord_type((p - bass) % 12 for p in ordered)

    def find_inversions(self, pitches: Iterable[int]) -> List[Inversion]:
        """Every pitch tried as the root; keeps the readings that name a chord"""
        ordered = normalize_pitches(pitches)
        inversions = []
        for index, candidate in enumerate(ordered):
            quality = self.identify_chord_type((p - candidate) % 12 for p in ordered)
            if quality != UNKNOWN_QUALITY:
                inversions.append(Inversion(root=candidate, bass=ordered[0],
                                            inversion=index, quality=quality))
        return inversions

    def calculate_tension(self, pitches: Sequence[int]) -> float:
        return self.dissonance.tension_score(pitches)

    @staticmethod
    def find_extensions(intervals: Iterable[int]) -> List[str]:
        """9/11/13 from compound (14/17/21) or collapsed (2/5/9) intervals"""
        present = set(intervals)
        extensions = []
        if 14 in present or 2 in present:
            extensions.append('9')
        if 17 in present or 5 in present:
            extensions.append('11')
        if 21 in present or 9 in present:
            extensions.append('13')
        return extensions

    @staticmethod
    def find_alterations(intervals: Iterable[int]) -> List[str]:
        """
        b5/#5 from in-octave intervals; b9/#9/#11/b13 only from compound
        intervals, since their collapsed values collide with chord tones.
        """
        present = set(intervals)
        alterations = []
        if 6 in present:
            alterations.append('b5')
        if 8 in present:
            alterations.append('#5')
        if 13 in present:
            alterations.append('b9')
        if 15 in present:
            alterations.append('#9')
        if 18 in present:
            alterations.append('#11')
        if 20 in present:
            alterations.append('b13')
        return alterations

    @staticmethod
    def chord_tone_inversion(root: int, bass: int, quality: str) -> int:
        """0 for root position, 1 with the third in the bass, and so on"""
        bass_interval = (bass - root) % 12
        if bass_interval == 0:
            return 0
        chord_quality = get_quality(quality)
        if chord_quality is None:
            return 0
        for index, interval in enumerate(chord_quality.spelling):
            if interval % 12 == bass_interval:
                return index
        return 0

    @staticmethod
    def analyze_voicing(pitches: Sequence[int]) -> VoicingProfile:
        ordered = sorted(pitches)
        if len(ordered) < 2:
            return VoicingProfile(intervals=(), spread=0, density=0.0, type='unknown')

        intervals = tuple(b - a for a, b in zip(ordered, ordered[1:]))
        spread = ordered[-1] - ordered[0]
        density = len(ordered) / (spread / 12) if spread else float(len(ordered))

        if spread < 12:
            voicing_type = 'close'
        elif spread > 24:
            voicing_type = 'open'
        elif any(i > 7 for i in intervals):
            voicing_type = 'drop'
        else:
            voicing_type = 'mixed'
        return VoicingProfile(intervals=intervals, spread=spread, density=density, type=voicing_type)

    def describe_chord(self, root: int, pitches: Iterable[int], quality: str,
                       key: Optional[KeyContext] = None, function: Optional[str] = None,
                       confidence: float = 1.0) -> ChordAnalysis:
        """Build the full analysis record for a chord whose root and quality are known"""
        key = key or self.key
        ordered = tuple(normalize_pitches(pitches))
        bass = ordered[0]
        collapsed = sorted({(p - root) % 12 for p in ordered})
        compound = {p - root if p >= root else (p - root) % 12 for p in ordered}
        position = ordered.index(root) if root in ordered else 0

        return ChordAnalysis(
            root=root,
            quality=quality,
            pitches=ordered,
            bass=bass,
            inversion=self.chord_tone_inversion(root, bass, quality),
            symbol=self.symbol_from_chord(root, quality, Inversion(root, bass, position, quality)),
            function=function if function is not None else estimate_function(root, quality, key.root),
            extensions=tuple(self.find_extensions(compound | set(collapsed))),
            alterations=tuple(self.find_alterations(compound | set(collapsed))),
            tension=self.calculate_tension(ordered),
            intervals=tuple(collapsed),
            voicing=self.analyze_voicing(ordered),
            is_modal_interchange=not key.contains(root),
            confidence=confidence,
        )

    def analyze_chord(self, pitches: Iterable[int], key: Optional[KeyContext] = None) -> Optional[ChordAnalysis]:
        """
        Analyze a chord and return detailed information.

        The root is the lowest pitch that names the set as an exact vocabulary
        chord, so the bass wins whenever it can; otherwise the bass is read
        with the major/minor fallback.
        """
        ordered = normalize_pitches(pitches)
        if not ordered:
            return None

        root = find_root(ordered)
        quality = self.identify_chord_type((p - root) % 12 for p in ordered)
        analysis = self.describe_chord(root, ordered, quality, key=key)
        return replace(analysis, inversions=tuple(self.find_inversions(ordered)))

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    @staticmethod
    def symbol_from_chord(root: int, quality: str, inversion: Optional[Inversion] = None) -> str:
        """'C', 'F#m7', 'C/E' ..."""
        if quality == UNKNOWN_QUALITY:
            return 'N.C.'
        symbol = KEY_NAMES[root % 12] + quality_suffix(quality)
        if inversion is not None and inversion.bass % 12 != root % 12:
            symbol += f"/{KEY_NAMES[inversion.bass % 12]}"
        return symbol

    @staticmethod
    def parse_chord_symbol(symbol: str) -> Optional[Tuple[int, str, Optional[int]]]:
        """Chord symbol -> (root pitch class, quality, bass pitch class or None)"""
        match = _SYMBOL_RE.match((symbol or '').strip())
        if not match:
            return None

        root_name, quality_token, bass_name = match.groups()
        quality = resolve_quality_token(quality_token)
        if quality is None:
            logger.debug(f"Unrecognised chord quality '{quality_token}' in '{symbol}'")
            return None

        root_pc = note_name_to_pitch_class(root_name)
        bass_pc = note_name_to_pitch_class(bass_name) if bass_name else None
        return root_pc, quality, bass_pc

    def chord_from_symbol(self, symbol: str) -> Optional[List[int]]:
        """
        Generate a chord from symbol (e.g. "Cmaj7", "Dm9", "G7/B").
        Returns MIDI pitches in ascending order, or None for malformed text.
        """
        parsed = self.parse_chord_symbol(symbol)
        if parsed is None:
            return None

        root_pc, quality, bass_pc = parsed
        chord_quality = get_quality(quality)
        if chord_quality is None:
            return None

        reference = self.settings.reference_pitch
        root = reference - (reference % 12) + root_pc
        notes = [root + interval for interval in chord_quality.spelling]

        # Handle slash chords: the bass goes below the root
        if bass_pc is not None and bass_pc != root_pc:
            bass = root - ((root_pc - bass_pc) % 12)
            notes = [n for n in notes if n >= bass and n != bass]
            notes.insert(0, bass)

        return self.voice_chord(notes)

    @staticmethod
    def voice_chord(notes: Sequence[int]) -> List[int]:
        """Stack notes upwards, each above the last and no more than an octave apart"""
        if not notes:
            return []
        voiced = [notes[0]]
        for note in notes[1:]:
            while note <= voiced[-1]:
                note += 12
            # Avoid too wide spacing
            if note - voiced[-1] > 12:
                note -= 12
            voiced.append(note)
        return voiced

    # ------------------------------------------------------------------
    # Functional harmony
    # ------------------------------------------------------------------

    def function_to_chord(self, function_symbol: str, key: Optional[KeyContext] = None) -> ChordAnalysis:
        """Convert a roman-numeral function to a chord in the key"""
        key = key or self.key
        parsed = parse_function_symbol(function_symbol)
        if parsed is None:
            logger.warning(f"Unparseable function symbol '{function_symbol}', using tonic")
            parsed = FunctionSymbol(degree=1, quality='major')

        root = key.degree_root(parsed.degree)
        if parsed.alteration == 'b':
            root -= 1
        elif parsed.alteration == '#':
            root += 1

        chord_quality = get_quality(parsed.quality) or get_quality('major')
        pitches = [root + interval for interval in chord_quality.spelling]
        return self.describe_chord(root, pitches, chord_quality.name, key=key, function=function_symbol)

    def generate_progression(self, config: Optional[ProgressionConfig] = None,
                             key: Optional[KeyContext] = None,
                             rng: Optional[Random] = None) -> List[ChordAnalysis]:
        """
        Random walk over the style's transition table.

        The first chord is config.start_function and the last is always
        config.end_function. Each interior chord may be swapped for a
        substitute with probability config.complexity; the walk itself
        continues from the drawn function.
        """
        config = config or ProgressionConfig()
        rng = rng or Random(config.seed)

        style = config.style
        if style not in TRANSITION_TABLES:
            logger.warning(f"Unknown progression style '{style}', using pop")
            style = 'pop'

        if config.length <= 0:
            return []
        if config.length == 1:
            return [self.function_to_chord(config.end_function, key)]

        functions = [config.start_function]
        current = config.start_function
        for _ in range(1, config.length - 1):
            current = weighted_choice(get_transitions(style, current), rng)
            emitted = current
            if rng.random() < config.complexity:
                substitution = get_substitution(current, rng)
                if substitution:
                    emitted = substitution
            functions.append(emitted)
        functions.append(config.end_function)

        logger.debug(f"Generated {style} progression: {' - '.join(functions)}")
        return [self.function_to_chord(function, key) for function in functions]

    def progression_from_template(self, style: str = 'pop', index: int = 0,
                                  key: Optional[KeyContext] = None) -> List[ChordAnalysis]:
        templates = get_progression_templates(style)
        template = templates[index % len(templates)]
        return [self.function_to_chord(function, key) for function in template]

    @staticmethod
    def calculate_movement(notes1: Sequence[int], notes2: Sequence[int]) -> int:
        """Total semitone motion pairing sorted pitches by position"""
        first, second = sorted(notes1), sorted(notes2)
        return sum(abs(b - a) for a, b in zip(first, second))

    def suggest_next_chord(self, pitches: Sequence[int], style: str = 'pop',
                           key: Optional[KeyContext] = None) -> List[ChordSuggestion]:
        """Successors of the chord's function, best first (probability and smoothness)"""
        analysis = self.analyze_chord(pitches, key=key)
        if analysis is None:
            return []

        suggestions = []
        for function, probability in get_transitions(style, analysis.function):
            chord = self.function_to_chord(function, key)
            movement = self.calculate_movement(analysis.pitches, chord.pitches)
            score = probability * 0.6 + (1 - movement / 24) * 0.4
            suggestions.append(ChordSuggestion(chord=chord, probability=probability,
                                               movement=movement, score=score))

        suggestions.sort(key=lambda s: s.score, reverse=True)
        return suggestions

    # ------------------------------------------------------------------
    # Harmonization and reharmonization
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_melody_fitness(melody_pitches: Sequence[int], chord_pitches: Sequence[int]) -> float:
        """Chord tones +1, common extensions (2/9/11 above root) +0.5, others -0.5, averaged"""
        if not melody_pitches:
            return 0.0
        chord_classes = {p % 12 for p in chord_pitches}
        root_class = chord_pitches[0] % 12
        fitness = 0.0
        for pitch in melody_pitches:
            if pitch % 12 in chord_classes:
                fitness += 1.0
            elif (pitch - root_class) % 12 in (2, 9, 11):
                fitness += 0.5
            else:
                fitness -= 0.5
        return fitness / len(melody_pitches)

    def find_best_chord(self, melody_pitches: Sequence[int],
                        key: Optional[KeyContext] = None) -> Tuple[ChordAnalysis, float]:
        key = key or self.key
        best = None
        best_fitness = 0.0
        for interval in key.intervals:
            chord_root = key.root_pitch + interval
            for quality in MELODY_QUALITIES:
                chord_quality = get_quality(quality)
                chord_pitches = [chord_root + i for i in chord_quality.spelling]
                fitness = self.calculate_melody_fitness(melody_pitches, chord_pitches)
                if fitness > best_fitness:
                    best = (chord_root, chord_pitches, quality)
                    best_fitness = fitness

        if best is None:
            return self.function_to_chord('I', key), 0.0
        chord_root, chord_pitches, quality = best
        return self.describe_chord(chord_root, chord_pitches, quality, key=key), best_fitness

    def harmonize_melody(self, melody: Sequence[MelodyNote], density: str = 'moderate',
                         key: Optional[KeyContext] = None) -> List[HarmonizedSegment]:
        """Group the melody by harmonic rhythm and fit a chord to each group"""
        beats_per_group = HARMONIC_RHYTHM_BEATS.get(density, 2)

        groups: List[Tuple[float, List[MelodyNote]]] = []
        group_start, group_notes = 0.0, []
        for note in sorted(melody, key=lambda n: n.time):
            if note.time >= group_start + beats_per_group:
                if group_notes:
                    groups.append((group_start, group_notes))
                group_start, group_notes = note.time, [note]
            else:
                group_notes.append(note)
        if group_notes:
            groups.append((group_start, group_notes))

        harmonization = []
        for start, notes in groups:
            pitches = [n.pitch for n in notes]
            chord, fitness = self.find_best_chord(pitches, key)
            harmonization.append(HarmonizedSegment(time=start, duration=beats_per_group,
                                                   chord=chord, fitness=fitness,
                                                   melody=tuple(pitches)))
        return harmonization

    def modal_interchange_chords(self, mode: str = 'aeolian',
                                 key: Optional[KeyContext] = None) -> List[ChordAnalysis]:
        """Diatonic triads of a parallel mode, labelled against the current key"""
        key = key or self.key
        scale = SCALES.get(mode)
        if not scale:
            return []

        borrowed = []
        size = len(scale)
        for degree, interval in enumerate(scale):
            third = (scale[(degree + 2) % size] - interval) % 12
            fifth = (scale[(degree + 4) % size] - interval) % 12
            quality = match_quality((0, third, fifth)) or 'major'
            root = key.root_pitch + interval
            chord_quality = get_quality(quality)
            borrowed.append(self.describe_chord(root, [root + i for i in chord_quality.spelling],
                                                quality, key=key))
        return borrowed

    def reharmonization_options(self, chord: ChordAnalysis,
                                key: Optional[KeyContext] = None) -> List[ChordAnalysis]:
        key = key or self.key
        options = []

        # Tritone substitution
        if chord.quality == '7':
            options.append(self._chord_on(chord.root - 6, '7', key))

        # Related ii-V
        if chord.function == 'I':
            options.append(self.function_to_chord('ii', key))
            options.append(self.function_to_chord('V', key))

        # Modal interchange
        borrowed = [c for c in self.modal_interchange_chords(key=key) if c.is_modal_interchange]
        options.extend(borrowed[:3])

        # Extended versions
        if chord.quality == 'major':
            options.append(self._chord_on(chord.root, 'maj7', key))
            options.append(self._chord_on(chord.root, 'maj9', key))

        return options

    def reharmonize(self, progression: Sequence[ChordAnalysis], level: float = 0.5,
                    maintain_bass_line: bool = False, key: Optional[KeyContext] = None,
                    rng: Optional[Random] = None) -> List[ChordAnalysis]:
        """Replace each chord with its first reharmonization option with probability level"""
        rng = rng or Random()
        reharmonized = []
        for chord in progression:
            if rng.random() > level:
                reharmonized.append(chord)
                continue

            alternatives = self.reharmonization_options(chord, key)
            if not alternatives:
                reharmonized.append(chord)
                continue

            selected = alternatives[0]
            if maintain_bass_line:
                selected = self.adjust_bass_note(selected, chord.bass, key)
            reharmonized.append(selected)
        return reharmonized

    def adjust_bass_note(self, chord: ChordAnalysis, target_bass: int,
                         key: Optional[KeyContext] = None) -> ChordAnalysis:
        upper = [p for p in chord.pitches[1:] if p > target_bass]
        return self.describe_chord(chord.root, [target_bass] + upper, chord.quality,
                                   key=key, function=chord.function)

    def _chord_on(self, root: int, quality: str, key: KeyContext) -> ChordAnalysis:
        chord_quality = get_quality(quality)
        return self.describe_chord(root, [root + i for i in chord_quality.spelling], quality, key=key)
