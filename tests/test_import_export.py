import mido
import pytest

from analysis.harmony import HarmonicAnalyzer
from core.import_export import pitch_name, read_note_events, render_progression, render_voicings, save_midi
from core.midi_data import EventType, MidiNote, NoteEvent
from voicing.voice_leading import VoiceAssignment


def test_pitch_name():
    assert pitch_name(60) == 'C4'
    assert pitch_name(69) == 'A4'


def test_render_voicings_one_instrument_per_voice():
    assignments = [VoiceAssignment(72, 67, 64, 48), VoiceAssignment(72, 69, 65, 53)]
    pm = render_voicings(assignments, durations=[1.0, 0.5])
    assert [i.name for i in pm.instruments] == ['soprano', 'alto', 'tenor', 'bass']
    bass = pm.instruments[3].notes
    assert [n.pitch for n in bass] == [48, 53]
    assert bass[1].start == pytest.approx(1.0)
    assert bass[1].end == pytest.approx(1.5)


def test_render_voicings_rests_silent_roles():
    pm = render_voicings([VoiceAssignment(soprano=72, bass=48)])
    assert len(pm.instruments[1].notes) == 0
    assert len(pm.instruments[0].notes) == 1


def test_render_voicings_duration_mismatch():
    with pytest.raises(ValueError):
        render_voicings([VoiceAssignment(72, 67, 64, 48)], durations=[1.0, 2.0])


def test_render_progression():
    analyzer = HarmonicAnalyzer()
    chords = [analyzer.function_to_chord(f) for f in ('I', 'IV', 'V', 'I')]
    pm = render_progression(chords, duration=2.0)
    notes = pm.instruments[0].notes
    assert len(notes) == 12
    assert max(n.end for n in notes) == pytest.approx(8.0)


def test_read_note_events(tmp_path):
    path = str(tmp_path / 'chord.mid')
    mid = mido.MidiFile()
    track = mido.MidiTrack()
    mid.tracks.append(track)
    track.append(mido.Message('note_on', note=60, velocity=100, time=0))
    track.append(mido.Message('control_change', control=64, value=127, time=0))
    track.append(mido.Message('note_on', note=60, velocity=0, time=480))
    mid.save(path)

    events = read_note_events(path)
    assert len(events) == 2
    assert events[0].is_note_on
    assert events[0].time == 0
    assert events[1].type is EventType.NOTE_OFF
    # 480 ticks at the default 120 bpm
    assert events[1].time == pytest.approx(500.0)


def test_save_midi_round_trip(tmp_path):
    path = str(tmp_path / 'voicing.mid')
    assert save_midi(render_voicings([VoiceAssignment(72, 67, 64, 48)]), path)
    events = read_note_events(path)
    assert sorted(e.pitch for e in events if e.is_note_on) == [48, 64, 67, 72]


def test_note_event_clamping():
    event = NoteEvent(EventType.NOTE_ON, 200, 300, 0.0, 20)
    assert event.pitch == 127
    assert event.velocity == 127
    assert event.channel == 15
    assert NoteEvent.note_off(60).velocity == 0


def test_midi_note_clamping():
    note = MidiNote(start=-1.0, end=-2.0, pitch=-5, velocity=200)
    assert note.start == 0.0
    assert note.end == 0.0
    assert note.pitch == 0
    assert note.velocity == 127
    assert note.duration == 0.0


def test_midi_note_converts_to_pretty_midi():
    note = MidiNote(start=0.5, end=1.0, pitch=64, velocity=90)
    assert MidiNote.from_pretty_midi_note(note.to_pretty_midi_note()) == note


def test_from_mido():
    assert NoteEvent.from_mido(mido.Message('note_on', note=60, velocity=0)).type is EventType.NOTE_OFF
    event = NoteEvent.from_mido(mido.Message('note_on', note=61, velocity=10, channel=3), 12.5)
    assert (event.type, event.pitch, event.channel, event.time) == (EventType.NOTE_ON, 61, 3, 12.5)
    assert NoteEvent.from_mido(mido.Message('program_change', program=5)) is None
