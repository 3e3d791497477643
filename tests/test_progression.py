from random import Random

import pytest

from analysis.progression import (
    FALLBACK_TRANSITIONS, TRANSITION_TABLES, classify_progression, estimate_function,
    get_substitution, get_transitions, parse_function_symbol, weighted_choice
)


class FixedRandom(Random):
    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


@pytest.mark.parametrize('symbol, degree, quality, alteration', [
    ('I', 1, 'major', None),
    ('vi', 6, 'minor', None),
    ('ii7', 2, 'm7', None),
    ('V7', 5, '7', None),
    ('IM7', 1, 'maj7', None),
    ('vii°', 7, 'diminished', None),
    ('bVII', 7, 'major', 'b'),
    ('bII7', 2, '7', 'b'),
])
def test_parse_function_symbol(symbol, degree, quality, alteration):
    parsed = parse_function_symbol(symbol)
    assert parsed.degree == degree
    assert parsed.quality == quality
    assert parsed.alteration == alteration


def test_parse_function_symbol_rejects_garbage():
    assert parse_function_symbol('xyz') is None
    assert parse_function_symbol('') is None


@pytest.mark.parametrize('root, quality, expected', [
    (60, 'major', 'I'),
    (69, 'minor', 'vi'),
    (71, 'diminished', 'vii°'),
    (70, 'major', 'bVII'),
    (62, 'm7b5', 'iiø'),
    (67, '7', 'V'),
    (63, 'minor', 'biii'),
])
def test_estimate_function(root, quality, expected):
    assert estimate_function(root, quality, 0) == expected


def test_estimate_function_relative_to_key():
    assert estimate_function(62, 'major', key_root=7) == 'V'


@pytest.mark.parametrize('functions, expected', [
    (['I', 'V', 'vi', 'IV'], 'pop'),
    (['I', 'vi', 'IV', 'V'], '50s'),
    (['ii', 'V', 'I'], 'jazz_cadence'),
    (['I', 'IV', 'V', 'I'], 'blues'),
    (['vi', 'V', 'I'], 'dominant_resolution'),
    (['I', 'V', 'IV'], 'custom'),
    (['iii', 'vi', 'ii', 'V'], 'ii_v_movement'),
])
def test_classify_progression(functions, expected):
    assert classify_progression(functions) == expected


def test_weighted_choice_uses_cumulative_weights():
    options = [('IV', 0.3), ('V', 0.25), ('vi', 0.45)]
    assert weighted_choice(options, FixedRandom(0.0)) == 'IV'
    assert weighted_choice(options, FixedRandom(0.4)) == 'V'
    assert weighted_choice(options, FixedRandom(0.99)) == 'vi'


def test_weighted_choice_matches_table_frequencies():
    rng = Random(42)
    options = TRANSITION_TABLES['pop']['V']
    draws = [weighted_choice(options, rng) for _ in range(5000)]
    assert draws.count('I') / len(draws) == pytest.approx(0.7, abs=0.05)


def test_get_transitions_fallbacks():
    assert get_transitions('pop', 'IV') == TRANSITION_TABLES['pop']['IV']
    assert get_transitions('pop', 'bVI') == FALLBACK_TRANSITIONS
    assert get_transitions('polka', 'I') == TRANSITION_TABLES['pop']['I']


def test_get_substitution():
    assert get_substitution('I', Random(1)) in ('iii', 'vi')
    assert get_substitution('iii', Random(1)) is None


def test_every_table_target_is_parseable():
    for table in TRANSITION_TABLES.values():
        for source, successors in table.items():
            assert parse_function_symbol(source) is not None
            for function, weight in successors:
                assert parse_function_symbol(function) is not None
                assert weight > 0
