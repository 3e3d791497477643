"""Live chord recognition"""
from .chord_recognition import ChordRecognizer, ProgressionReport, RecognitionSnapshot, RecognizedChord
from .debounce import DeferredAction

__all__ = [
    'ChordRecognizer', 'ProgressionReport', 'RecognitionSnapshot', 'RecognizedChord', 'DeferredAction'
]
