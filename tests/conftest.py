import pytest

from analysis.harmony import HarmonicAnalyzer
from analysis.key_analysis import KeyContext
from config.settings import RecognitionSettings
from core.midi_data import NoteEvent
from recognition.chord_recognition import ChordRecognizer
from voicing.voice_leading import VoiceLeadingEngine


@pytest.fixture
def analyzer():
    return HarmonicAnalyzer()


@pytest.fixture
def c_major():
    return KeyContext(root=0, scale='major')


@pytest.fixture
def engine():
    return VoiceLeadingEngine()


@pytest.fixture
def recognizer():
    return ChordRecognizer(RecognitionSettings())


@pytest.fixture
def play():
    """Strike a block chord at start (1ms apart), release it at release, let both settle"""
    def _play(recognizer, pitches, start, release=None, settle=100):
        for offset, pitch in enumerate(pitches):
            recognizer.on_note_event(NoteEvent.note_on(pitch, 100, start + offset))
        recognizer.tick(start + settle)
        if release is not None:
            for offset, pitch in enumerate(pitches):
                recognizer.on_note_event(NoteEvent.note_off(pitch, release + offset))
            recognizer.tick(release + settle)
    return _play
