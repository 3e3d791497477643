"""Core MIDI functionality"""
from .midi_data import EventType, MidiNote, NoteEvent
from .import_export import pitch_name, read_note_events, render_progression, render_voicings, save_midi

__all__ = [
    'EventType', 'MidiNote', 'NoteEvent',
    'pitch_name', 'read_note_events', 'render_progression', 'render_voicings', 'save_midi'
]
