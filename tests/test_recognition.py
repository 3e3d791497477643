import mido
import pytest

from config.settings import RecognitionSettings
from core.midi_data import EventType, NoteEvent
from recognition.chord_recognition import ChordRecognizer
from recognition.debounce import DeferredAction


def strike(recognizer, pitches, start):
    for offset, pitch in enumerate(pitches):
        recognizer.on_note_event(NoteEvent.note_on(pitch, 100, start + offset * 5))


def test_d_minor_after_debounce(recognizer):
    changes = []
    recognizer.on_chord_change(changes.append)
    strike(recognizer, [62, 65, 69], 0)
    assert changes == []

    recognizer.tick(70)
    assert len(changes) == 1
    chord = changes[0]
    assert chord.root == 62
    assert chord.quality == 'minor'
    assert chord.symbol == 'Dm'
    assert chord.start_time == 60
    assert not chord.is_broken


def test_debounce_deadline_is_last_event_plus_delay(recognizer):
    strike(recognizer, [62, 65, 69], 0)
    assert recognizer.get_state().pending_deadline == 60
    assert recognizer.tick(59) is False
    assert recognizer.current_chord is None
    assert recognizer.tick(60) is True
    assert recognizer.current_chord is not None


def test_velocity_zero_note_on_releases(recognizer):
    recognizer.on_note_event(NoteEvent.note_on(60, 100, 0))
    recognizer.on_note_event(NoteEvent(EventType.NOTE_ON, 60, 0, 10))
    assert recognizer.active_notes == {}


def test_chord_end_is_recorded(recognizer, play):
    play(recognizer, [60, 64, 67], 0, release=200)
    assert recognizer.current_chord is None
    assert len(recognizer.history) == 1
    ended = recognizer.history[0]
    assert ended.symbol == 'C'
    assert ended.start_time == 52
    # the last release at 202 settles 50ms later
    assert ended.end_time == 252
    assert ended.duration == 200
    assert recognizer.previous_chord == ended


def test_added_note_keeps_start_time(recognizer, play):
    changes = []
    recognizer.on_chord_change(changes.append)
    play(recognizer, [60, 64, 67], 0)
    recognizer.on_note_event(NoteEvent.note_on(72, 100, 150))
    recognizer.tick(300)

    assert len(changes) == 1
    assert recognizer.current_chord.start_time == 52
    assert recognizer.current_chord.pitches == (60, 64, 67, 72)


def test_progression_detection(recognizer, play):
    changes, reports = [], []
    recognizer.on_chord_change(changes.append)
    recognizer.on_progression_detected(reports.append)

    for i, chord in enumerate([[60, 64, 67], [65, 69, 72], [67, 71, 74], [60, 64, 67]]):
        base = i * 1000
        play(recognizer, chord, base, release=base + 500)

    assert [c.symbol for c in changes] == ['C', 'F', 'G', 'C']
    assert len(reports) == 1
    report = reports[0]
    assert report.key == 0
    assert report.key_name == 'C major'
    assert report.functions == ('I', 'IV', 'V', 'I')
    assert report.type == 'blues'
    assert report.start_time == 52
    assert recognizer.get_state().progression_type == 'blues'
    assert recognizer.detected_key == 0


def test_listener_error_is_isolated(recognizer, play):
    received = []

    def broken(chord):
        raise RuntimeError("listener failure")

    recognizer.on_chord_change(broken)
    recognizer.on_chord_change(received.append)
    play(recognizer, [60, 64, 67], 0)
    assert len(received) == 1


def test_unsubscribe(recognizer, play):
    received = []
    unsubscribe = recognizer.on_chord_change(received.append)
    unsubscribe()
    unsubscribe()
    play(recognizer, [60, 64, 67], 0)
    assert received == []
    assert recognizer.current_chord is not None


def test_broken_chord(recognizer):
    changes = []
    recognizer.on_chord_change(changes.append)
    recognizer.on_note_event(NoteEvent.note_on(60, 100, 0))
    recognizer.on_note_event(NoteEvent.note_off(60, 100))
    recognizer.on_note_event(NoteEvent.note_on(64, 100, 150))
    recognizer.on_note_event(NoteEvent.note_off(64, 250))
    recognizer.on_note_event(NoteEvent.note_on(67, 100, 300))

    assert len(changes) == 1
    chord = changes[0]
    assert chord.is_broken
    assert chord.root == 60
    assert chord.quality == 'major'


def test_broken_chord_detection_can_be_disabled():
    recognizer = ChordRecognizer(RecognitionSettings(detect_broken_chords=False))
    for pitch, time in ((60, 0), (64, 150), (67, 300)):
        recognizer.on_note_event(NoteEvent.note_on(pitch, 100, time))
        recognizer.on_note_event(NoteEvent.note_off(pitch, time + 100))
    recognizer.tick(1000)
    assert len(recognizer.history) == 0


def test_single_note_is_not_a_chord(recognizer):
    recognizer.on_note_event(NoteEvent.note_on(60, 100, 0))
    recognizer.tick(100)
    assert recognizer.current_chord is None


def test_reset(recognizer, play):
    play(recognizer, [60, 64, 67], 0)
    recognizer.on_note_event(NoteEvent.note_on(72, 100, 150))
    recognizer.reset()
    state = recognizer.get_state()
    assert state.active_notes == ()
    assert state.current_chord is None
    assert state.pending_deadline is None
    assert recognizer.tick(1000) is False


def test_stack_method_finds_inverted_root():
    recognizer = ChordRecognizer(RecognitionSettings(root_detection_method='stack'))
    analysis = recognizer.analyze_notes([64, 67, 72])
    assert analysis.root % 12 == 0
    assert analysis.quality == 'major'


def test_bass_method_reports_unknown_for_inversion(recognizer):
    analysis = recognizer.analyze_notes([64, 67, 72])
    assert analysis.symbol == 'N.C.'
    assert analysis.function == '?'
    assert analysis.confidence == pytest.approx(0.3)


def test_stack_method_reads_rootless_voicing():
    recognizer = ChordRecognizer(RecognitionSettings(root_detection_method='stack'))
    # E G B D over an implied C
    analysis = recognizer.interpret_with_root(60, [64, 67, 71])
    assert analysis.quality == 'maj7'
    assert analysis.confidence == pytest.approx(0.7 * 0.8)


def test_context_method_prefers_smooth_interpretation(play):
    recognizer = ChordRecognizer(RecognitionSettings(root_detection_method='context'))
    play(recognizer, [60, 64, 67], 0, release=200)
    describe = recognizer.analyzer.describe_chord
    # the octave-up reading is more confident but moves every voice by 12
    far = describe(72, [72, 76, 79], 'major', confidence=0.9)
    near = describe(60, [60, 64, 67], 'major', confidence=0.8)
    assert max([far, near], key=lambda i: i.confidence) == far
    assert recognizer.select_best_with_context([far, near]) == near


def test_stack_roots_are_sounding_pitches_by_default():
    recognizer = ChordRecognizer(RecognitionSettings(root_detection_method='stack'))
    assert recognizer.candidate_roots([64, 67, 71]) == [64, 67, 71]
    assert recognizer.analyze_notes([64, 67, 71]).quality == 'minor'


def test_stack_infers_rootless_roots_when_enabled():
    recognizer = ChordRecognizer(RecognitionSettings(root_detection_method='stack', infer_rootless_roots=True))
    assert recognizer.candidate_roots([64, 67, 71]) == [64, 67, 71, 60, 61]


def test_invalid_root_detection_method():
    with pytest.raises(ValueError):
        RecognitionSettings(root_detection_method='guess')


def test_identify_partial_chord():
    assert ChordRecognizer.identify_partial_chord([0, 7]) == ('5', 0.9)
    assert ChordRecognizer.identify_partial_chord([0, 4, 10]) == ('7', 0.85)
    assert ChordRecognizer.identify_partial_chord([3, 7, 10]) == ('m7', 0.7)
    assert ChordRecognizer.identify_partial_chord([0, 1]) is None


def test_calculate_confidence():
    assert ChordRecognizer.calculate_confidence([0, 4, 7], 'major') == pytest.approx(1.0)
    assert ChordRecognizer.calculate_confidence([0, 4, 7, 10], 'major') == pytest.approx(0.9)


def test_score_voice_leading():
    assert ChordRecognizer.score_voice_leading([60, 64, 67], [60, 64, 67]) == 1.0
    assert ChordRecognizer.score_voice_leading([60, 64, 67], [62, 65, 69]) == pytest.approx(1 - (5 / 3) / 12)
    assert ChordRecognizer.score_voice_leading([], [60]) == 0.5


def test_starting_suggestions(recognizer):
    suggestions = recognizer.get_chord_suggestions()
    assert [s.chord.function for s in suggestions] == ['I', 'vi', 'IV']
    assert [s.probability for s in suggestions] == [0.9, 0.7, 0.6]
    assert suggestions[0].chord.root % 12 == 0
    assert len(recognizer.get_chord_suggestions(limit=2)) == 2


def test_suggestions_follow_previous_chord(recognizer, play):
    play(recognizer, [60, 64, 67], 0, release=200)
    suggestions = recognizer.get_chord_suggestions(limit=3)
    assert 0 < len(suggestions) <= 3


def test_mido_messages(recognizer):
    recognizer.on_midi_message(mido.Message('note_on', note=60, velocity=90), 0)
    recognizer.on_midi_message(mido.Message('control_change', control=64, value=127), 1)
    assert list(recognizer.active_notes) == [60]
    recognizer.on_midi_message(mido.Message('note_off', note=60), 2)
    assert recognizer.active_notes == {}


def test_deferred_action_generations():
    fired = []
    action = DeferredAction(fired.append, 50)
    first = action.schedule(0)
    second = action.schedule(10)
    assert second == first + 1
    assert action.fire(first) is False
    assert action.poll(59) is False
    assert action.poll(60) is True
    assert fired == [60]
    assert not action.pending

    generation = action.schedule(100)
    action.cancel()
    assert action.fire(generation) is False
    assert action.poll(1000) is False
    assert fired == [60]
