import numpy as np
import pytest

from analysis.key_analysis import (
    SCALES, KeyAnalyzer, KeyContext, detect_key, get_scale, pitch_class_histogram, score_keys
)

C_MAJOR_SCALE = [60, 62, 64, 65, 67, 69, 71]


def test_detect_key_c_f_g_c():
    chords = [[60, 64, 67], [65, 69, 72], [67, 71, 74], [60, 64, 67]]
    pitches = [p for chord in chords for p in chord]
    assert detect_key(pitches) == 0


def test_detect_key_transposed():
    chords = [[62, 66, 69], [67, 71, 74], [69, 73, 76], [62, 66, 69]]
    assert detect_key([p for chord in chords for p in chord]) == 2


def test_detect_key_empty_reads_as_c():
    assert detect_key([]) == 0


def test_detect_key_ties_go_to_lowest_pitch_class():
    # A lone G scores the same as tonic of G and as dominant of C
    scores = score_keys(pitch_class_histogram([67]))
    assert scores[0] == scores[7]
    assert detect_key([67]) == 0


def test_histogram_counts_pitch_classes():
    histogram = pitch_class_histogram([60, 72, 64])
    assert histogram[0] == 2
    assert histogram[4] == 1
    assert histogram.sum() == 3
    assert isinstance(histogram, np.ndarray)


def test_key_context():
    key = KeyContext(root=2, scale='minor')
    assert key.name == 'D minor'
    assert key.mode == 'minor'
    assert key.root_pitch == 62
    assert key.contains(65)
    assert not key.contains(66)
    assert key.degree_root(3) == 65
    # out-of-range degrees read as the tonic
    assert key.degree_root(9) == 62


def test_key_context_wraps_root():
    assert KeyContext(root=14).root == 2


def test_get_scale_aliases_and_fallback():
    assert get_scale('major') == SCALES['ionian']
    assert get_scale('minor') == SCALES['aeolian']
    assert get_scale('nope') == SCALES['ionian']


def test_key_analyzer_finds_c_major():
    notes = [60, 64, 67] * 3 + C_MAJOR_SCALE
    result = KeyAnalyzer().analyze_key_context(notes)
    assert result is not None
    root, mode, confidence = result
    assert (root, mode) == (0, 'major')
    assert confidence >= 0.65


def test_key_analyzer_empty():
    analyzer = KeyAnalyzer()
    assert analyzer.analyze_key_context([]) is None
    assert analyzer.estimate_context([]).root == 0


def test_estimate_context_uses_mode():
    context = KeyAnalyzer().estimate_context([60, 64, 67] * 3 + C_MAJOR_SCALE)
    assert context.root == 0
    assert context.mode == 'major'
