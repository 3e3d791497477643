import pytest

from analysis.dissonance import DissonanceCalculator
from analysis.voice_reduction import VoiceReducer


@pytest.fixture
def calculator():
    return DissonanceCalculator()


def test_tension_score_pairs(calculator):
    assert calculator.tension_score([60, 64, 67]) == 0.0
    # C-E-G-Bb: minor seventh C-Bb and tritone E-Bb, over six pairs
    assert calculator.tension_score([60, 64, 67, 70]) == pytest.approx((0.4 + 0.6) / 6)
    assert calculator.tension_score([]) == 0.0


def test_tension_score_is_order_independent(calculator):
    assert calculator.tension_score([71, 60, 65]) == calculator.tension_score([60, 65, 71])


def test_tension_score_clamped(calculator):
    loud = DissonanceCalculator(weights={1: 5.0})
    assert loud.tension_score([60, 61]) == 1.0


def test_dissonance_rank(calculator):
    assert calculator.get_dissonance_rank(60, 66) == 0       # tritone
    assert calculator.get_dissonance_rank(60, 70) == 1       # minor seventh
    assert calculator.get_dissonance_rank(60, 72) == 11      # octave


def test_rank_notes(calculator):
    assert calculator.rank_notes(60, [67, 66, 70]) == [66, 70, 67]


def test_voice_reducer_keeps_bass_top_and_dissonance():
    reducer = VoiceReducer(max_voices=4)
    assert reducer.select_notes([48, 52, 55, 58, 60, 64, 67]) == [48, 52, 58, 67]


def test_voice_reducer_small_chords_untouched():
    assert VoiceReducer(4).select_notes([67, 60, 64, 60]) == [60, 64, 67]


def test_voice_reducer_skips_doubled_treble():
    # top C doubles the bass pitch class, so it yields to new pitch classes
    reduced = VoiceReducer(3).select_notes([48, 52, 55, 58, 72])
    assert reduced[0] == 48
    assert 72 not in reduced
    assert len(reduced) == 3


def test_voice_reducer_rejects_zero_voices():
    with pytest.raises(ValueError):
        VoiceReducer(0)
