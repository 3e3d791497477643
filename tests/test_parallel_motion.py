from analysis.find_parallel_motion import (
    ResolutionContext, check_voicing, chord_seventh, find_parallel_fifths, find_parallel_motion,
    find_parallel_octaves, find_unresolved_leading_tones, find_unresolved_sevenths,
    find_voice_crossing, find_voice_overlap
)
from config.settings import VoiceLeadingRules

# G7 going to C major in C
G7_TO_C = ResolutionContext(key_root=0, previous_root=7, previous_quality='7', current_pitch_classes=(0, 4, 7))


def test_parallel_fifths_c3_g3_to_d3_a3():
    previous = {'tenor': 55, 'bass': 48}
    current = {'tenor': 57, 'bass': 50}
    assert find_parallel_fifths(previous, current) == [('tenor', 'bass')]
    assert check_voicing(previous, current).has_parallel_fifths


def test_compound_fifths_count():
    previous = {'soprano': 67, 'bass': 48}
    current = {'soprano': 69, 'bass': 50}
    assert find_parallel_fifths(previous, current) == [('soprano', 'bass')]


def test_contrary_fifths_not_flagged():
    previous = {'tenor': 55, 'bass': 48}
    current = {'tenor': 62, 'bass': 43}
    assert find_parallel_fifths(previous, current) == []


def test_fourths_are_not_fifths():
    previous = {'tenor': 53, 'bass': 48}
    current = {'tenor': 55, 'bass': 50}
    assert find_parallel_fifths(previous, current) == []
    assert find_parallel_motion(previous, current, 5) == [('tenor', 'bass')]


def test_static_voices_not_flagged():
    chord = {'tenor': 55, 'bass': 48}
    assert find_parallel_fifths(chord, dict(chord)) == []


def test_parallel_octaves():
    previous = {'soprano': 72, 'bass': 48}
    current = {'soprano': 74, 'bass': 50}
    assert find_parallel_octaves(previous, current) == [('soprano', 'bass')]


def test_missing_voices_are_skipped():
    assert find_parallel_fifths({'tenor': 55}, {'tenor': 57, 'bass': 50}) == []


def test_voice_crossing():
    assignment = {'soprano': 60, 'alto': 64, 'tenor': 55, 'bass': 48}
    assert find_voice_crossing(assignment) == [('soprano', 'alto')]
    assert find_voice_crossing({'soprano': 72, 'alto': 67, 'tenor': 64, 'bass': 48}) == []


def test_voice_overlap():
    previous = {'soprano': 67, 'alto': 64}
    assert find_voice_overlap(previous, {'soprano': 72, 'alto': 68}) == [('soprano', 'alto')]
    assert find_voice_overlap(previous, {'soprano': 62, 'alto': 60}) == [('soprano', 'alto')]
    assert find_voice_overlap(previous, {'soprano': 69, 'alto': 65}) == []


def test_leading_tone_resolution():
    previous = {'soprano': 71, 'alto': 65, 'tenor': 62, 'bass': 55}
    assert find_unresolved_leading_tones(previous, {'soprano': 72}, G7_TO_C) == []
    assert find_unresolved_leading_tones(previous, {'soprano': 67}, G7_TO_C) == ['soprano']


def test_leading_tone_ignored_without_dominant():
    context = ResolutionContext(key_root=0, previous_root=5, previous_quality='major',
                                current_pitch_classes=(0, 4, 7))
    assert find_unresolved_leading_tones({'soprano': 71}, {'soprano': 67}, context) == []


def test_seventh_resolution():
    previous = {'alto': 65}
    assert find_unresolved_sevenths(previous, {'alto': 64}, G7_TO_C) == []
    assert find_unresolved_sevenths(previous, {'alto': 67}, G7_TO_C) == ['alto']


def test_chord_seventh():
    assert chord_seventh(7, '7') == 5
    assert chord_seventh(0, 'maj7') == 11
    assert chord_seventh(11, 'dim7') == 8
    assert chord_seventh(0, 'major') is None


def test_disabled_rules_report_nothing():
    rules = VoiceLeadingRules(avoid_parallel_fifths=False, avoid_voice_crossing=False)
    report = check_voicing({'tenor': 55, 'bass': 48}, {'tenor': 47, 'bass': 50}, rules)
    assert not report.has_parallel_fifths
    assert not report.has_voice_crossing


def test_report_is_clean():
    previous = {'soprano': 72, 'alto': 67, 'tenor': 64, 'bass': 48}
    current = {'soprano': 72, 'alto': 69, 'tenor': 65, 'bass': 53}
    assert check_voicing(previous, current).is_clean
