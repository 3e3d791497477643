"""
Functional harmony tables: roman-numeral parsing, style transition tables,
substitutions and progression classification.
"""
import logging
import re
from dataclasses import dataclass
from random import Random
from typing import Dict, List, Optional, Sequence, Tuple

from .chord_vocabulary import get_quality, resolve_quality_token

logger = logging.getLogger(__name__)

Transition = Tuple[str, float]

# Style -> current function -> weighted successors
TRANSITION_TABLES: Dict[str, Dict[str, List[Transition]]] = {
    'pop': {
        'I': [('IV', 0.3), ('V', 0.25), ('vi', 0.2), ('ii', 0.15), ('iii', 0.1)],
        'ii': [('V', 0.7), ('vii°', 0.2), ('IV', 0.1)],
        'iii': [('vi', 0.5), ('IV', 0.3), ('ii', 0.2)],
        'IV': [('V', 0.4), ('I', 0.3), ('ii', 0.2), ('vi', 0.1)],
        'V': [('I', 0.7), ('vi', 0.2), ('IV', 0.1)],
        'vi': [('ii', 0.4), ('IV', 0.3), ('V', 0.2), ('I', 0.1)],
        'vii°': [('I', 0.8), ('vi', 0.2)],
    },
    'jazz': {
        'I': [('ii7', 0.35), ('vi7', 0.25), ('IV', 0.15), ('iii7', 0.15), ('VI7', 0.1)],
        'ii7': [('V7', 0.8), ('bII7', 0.2)],
        'iii7': [('vi7', 0.6), ('VI7', 0.4)],
        'IV': [('ii7', 0.4), ('V7', 0.3), ('iv', 0.3)],
        'iv': [('I', 0.6), ('bVII7', 0.4)],
        'V7': [('I', 0.8), ('vi7', 0.2)],
        'bII7': [('I', 1.0)],
        'vi7': [('ii7', 0.7), ('II7', 0.3)],
        'VI7': [('ii7', 1.0)],
        'II7': [('ii7', 0.5), ('V7', 0.5)],
        'bVII7': [('I', 1.0)],
    },
    'blues': {
        'I': [('I7', 0.6), ('IV7', 0.4)],
        'I7': [('IV7', 0.5), ('I7', 0.3), ('V7', 0.2)],
        'IV7': [('I7', 0.6), ('V7', 0.3), ('IV7', 0.1)],
        'V7': [('IV7', 0.5), ('I7', 0.5)],
    },
    'classical': {
        'I': [('IV', 0.3), ('V', 0.3), ('ii', 0.2), ('vi', 0.15), ('iii', 0.05)],
        'ii': [('V', 0.6), ('vii°', 0.3), ('V7', 0.1)],
        'iii': [('vi', 0.6), ('IV', 0.4)],
        'IV': [('V', 0.45), ('I', 0.25), ('ii', 0.2), ('vii°', 0.1)],
        'V': [('I', 0.75), ('vi', 0.2), ('V7', 0.05)],
        'V7': [('I', 0.9), ('vi', 0.1)],
        'vi': [('ii', 0.5), ('IV', 0.4), ('V', 0.1)],
        'vii°': [('I', 1.0)],
    },
}

FALLBACK_TRANSITIONS: List[Transition] = [('I', 1.0)]

SUBSTITUTIONS: Dict[str, List[str]] = {
    'I': ['iii', 'vi'],
    'ii': ['IV'],
    'IV': ['ii', 'bVII'],
    'V': ['bII7', 'vii°'],
    'vi': ['I', 'IV'],
}

PROGRESSION_TEMPLATES: Dict[str, List[List[str]]] = {
    'pop': [
        ['I', 'V', 'vi', 'IV'],
        ['I', 'vi', 'IV', 'V'],
        ['vi', 'IV', 'I', 'V'],
        ['I', 'IV', 'V', 'I'],
    ],
    'jazz': [
        ['ii7', 'V7', 'IM7', 'IM7'],
        ['IM7', 'VI7', 'ii7', 'V7'],
        ['iii7', 'VI7', 'ii7', 'V7'],
        ['IM7', 'I7', 'IVM7', 'iv7'],
    ],
    'blues': [
        ['I7', 'I7', 'I7', 'I7'],
        ['IV7', 'IV7', 'I7', 'I7'],
        ['V7', 'IV7', 'I7', 'V7'],
    ],
    'classical': [
        ['I', 'IV', 'V', 'I'],
        ['I', 'ii', 'V', 'I'],
        ['I', 'vi', 'ii', 'V'],
        ['I', 'IV', 'ii', 'V'],
    ],
}

# Checked in order; the first pattern found as whole tokens wins
PROGRESSION_PATTERNS: Dict[str, str] = {
    'I-V-vi-IV': 'pop',
    'I-vi-IV-V': '50s',
    'ii-V-I': 'jazz_cadence',
    'I-IV-V-I': 'blues',
    'I-bVII-IV-I': 'mixolydian',
    'vi-IV-I-V': 'pop_variant',
    'I-V-I': 'authentic_cadence',
    'I-IV-I': 'plagal_cadence',
}

PARTIAL_PATTERNS: Dict[str, str] = {
    'ii-V': 'ii_v_movement',
    'V-I': 'dominant_resolution',
    'IV-I': 'subdominant_resolution',
}

CHROMATIC_NUMERALS = ['I', 'bII', 'II', 'bIII', 'III', 'IV', 'bV', 'V', 'bVI', 'VI', 'bVII', 'VII']

_ROMAN_DEGREES = {
    'I': 1, 'II': 2, 'III': 3, 'IV': 4, 'V': 5, 'VI': 6, 'VII': 7,
    'i': 1, 'ii': 2, 'iii': 3, 'iv': 4, 'v': 5, 'vi': 6, 'vii': 7,
}
_FUNCTION_RE = re.compile(r'^([b#]?)(VII|VI|IV|V|III|II|I|vii|vi|iv|v|iii|ii|i)(.*)$')

# Suffix -> (quality for uppercase numeral, quality for lowercase numeral)
_FUNCTION_SUFFIXES: Dict[str, Tuple[str, str]] = {
    '7': ('7', 'm7'),
    'M7': ('maj7', 'mMaj7'),
    'maj7': ('maj7', 'mMaj7'),
    'Δ7': ('maj7', 'mMaj7'),
    '9': ('9', 'm9'),
    '11': ('11', 'm11'),
    '13': ('13', 'm13'),
    '6': ('6', 'm6'),
    '°': ('diminished', 'diminished'),
    'o': ('diminished', 'diminished'),
    '°7': ('dim7', 'dim7'),
    'o7': ('dim7', 'dim7'),
    'ø': ('m7b5', 'm7b5'),
    'ø7': ('m7b5', 'm7b5'),
    '+': ('augmented', 'augmented'),
}


@dataclass(frozen=True)
class FunctionSymbol:
    degree: int
    quality: str
    alteration: Optional[str] = None


def parse_function_symbol(symbol: str) -> Optional[FunctionSymbol]:
    """'ii7' -> degree 2, m7; 'bVII' -> degree 7 flattened, major. None if unparseable."""
    match = _FUNCTION_RE.match(symbol or '')
    if not match:
        return None

    alteration, roman, suffix = match.groups()
    lowercase = roman.islower()
    quality = 'minor' if lowercase else 'major'

    if suffix:
        if suffix in _FUNCTION_SUFFIXES:
            upper_quality, lower_quality = _FUNCTION_SUFFIXES[suffix]
            quality = lower_quality if lowercase else upper_quality
        else:
            resolved = resolve_quality_token(suffix)
            if resolved is not None:
                quality = resolved
            else:
                logger.debug(f"Unknown function suffix '{suffix}' in '{symbol}', keeping {quality}")

    return FunctionSymbol(degree=_ROMAN_DEGREES[roman], quality=quality,
                          alteration=alteration or None)


def get_transitions(style: str, function: str) -> List[Transition]:
    table = TRANSITION_TABLES.get(style)
    if table is None:
        logger.warning(f"Unknown progression style '{style}', using pop")
        table = TRANSITION_TABLES['pop']
    return table.get(function, FALLBACK_TRANSITIONS)


def weighted_choice(options: Sequence[Transition], rng: Random) -> str:
    """Cumulative-weight draw over (function, weight) pairs"""
    total = sum(weight for _, weight in options)
    remaining = rng.random() * total
    for function, weight in options:
        remaining -= weight
        if remaining <= 0:
            return function
    return options[-1][0]


def get_substitution(function: str, rng: Random) -> Optional[str]:
    options = SUBSTITUTIONS.get(function)
    if not options:
        return None
    return options[rng.randrange(len(options))]


def get_progression_templates(style: str) -> List[List[str]]:
    return PROGRESSION_TEMPLATES.get(style, PROGRESSION_TEMPLATES['pop'])


def estimate_function(root: int, quality: str, key_root: int = 0) -> str:
    """Roman numeral for a chord by its chromatic degree above the key root"""
    numeral = CHROMATIC_NUMERALS[(root - key_root) % 12]
    chord_quality = get_quality(quality)
    if chord_quality is None:
        return numeral

    accidental = numeral[0] if numeral[0] in 'b#' else ''
    roman = numeral[len(accidental):]
    if quality == 'm7b5':
        return f"{accidental}{roman.lower()}ø"
    if chord_quality.is_diminished:
        return f"{accidental}{roman.lower()}°"
    if chord_quality.is_minor:
        return f"{accidental}{roman.lower()}"
    return numeral


def classify_progression(functions: Sequence[str]) -> str:
    """
    Name a function sequence by the first known pattern it contains.
    Patterns match whole '-'-separated tokens, so 'I-V-I' is not found in 'I-V-IV'.
    A plain substring search would report that sequence as an authentic cadence.
    """
    sequence = f"-{'-'.join(functions)}-"

    for pattern, name in PROGRESSION_PATTERNS.items():
        if f"-{pattern}-" in sequence:
            return name

    for pattern, name in PARTIAL_PATTERNS.items():
        if f"-{pattern}-" in sequence:
            return name

    return 'custom'
