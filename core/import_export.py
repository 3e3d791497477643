"""MIDI file import/export: note events in via mido, voicings out via pretty_midi"""
import logging
from typing import List, Optional, Sequence

import mido
import pretty_midi

from utils.music_theory import VOICE_ORDER
from .midi_data import MidiNote, NoteEvent

logger = logging.getLogger(__name__)

# General MIDI program for rendered parts (Acoustic Grand Piano)
DEFAULT_PROGRAM = 0


def pitch_name(pitch: int) -> str:
    """MIDI pitch -> 'C4' style name"""
    return pretty_midi.note_number_to_name(pitch)


def read_note_events(filename: str) -> List[NoteEvent]:
    """
    All note events of a Standard MIDI File, merged across tracks, in
    ascending time (milliseconds, tempo map applied).
    """
    mid = mido.MidiFile(filename)
    events = []
    current_time = 0.0
    # Iterating a MidiFile yields merged messages with delta times in seconds
    for msg in mid:
        current_time += msg.time
        event = NoteEvent.from_mido(msg, current_time * 1000.0)
        if event is not None:
            events.append(event)

    logger.info(f"Read {len(events)} note events from {filename}")
    return events


def render_voicings(assignments: Sequence, durations: Optional[Sequence[float]] = None,
                    velocity: int = 80, program: int = DEFAULT_PROGRAM) -> pretty_midi.PrettyMIDI:
    """
    One instrument per voice role; each assignment sounds for its duration
    in seconds (1.0 each when durations is omitted). Silent roles rest.
    """
    if durations is None:
        durations = [1.0] * len(assignments)
    if len(durations) != len(assignments):
        raise ValueError("durations must match assignments")

    pm = pretty_midi.PrettyMIDI()
    instruments = {role: pretty_midi.Instrument(program=program, name=role) for role in VOICE_ORDER}

    start = 0.0
    for assignment, duration in zip(assignments, durations):
        for role in VOICE_ORDER:
            pitch = assignment.get(role)
            if pitch is not None:
                note = MidiNote(start=start, end=start + duration, pitch=pitch, velocity=velocity)
                instruments[role].notes.append(note.to_pretty_midi_note())
        start += duration

    for role in VOICE_ORDER:
        pm.instruments.append(instruments[role])
    return pm


def render_progression(chords: Sequence, duration: float = 1.0, velocity: int = 80,
                       program: int = DEFAULT_PROGRAM) -> pretty_midi.PrettyMIDI:
    """Block chords, one after another, on a single instrument"""
    pm = pretty_midi.PrettyMIDI()
    instrument = pretty_midi.Instrument(program=program, name='chords')

    for index, chord in enumerate(chords):
        start = index * duration
        for pitch in chord.pitches:
            note = MidiNote(start=start, end=start + duration, pitch=pitch, velocity=velocity)
            instrument.notes.append(note.to_pretty_midi_note())
        logger.debug(f"{chord.symbol} at {start:.2f}s: {[pitch_name(p) for p in chord.pitches]}")

    pm.instruments.append(instrument)
    return pm


def save_midi(pm: pretty_midi.PrettyMIDI, filename: str) -> bool:
    """Save a rendered PrettyMIDI object to file"""
    try:
        pm.write(filename)
        return True
    except (OSError, ValueError) as e:
        logger.error(f"Error saving MIDI file {filename}: {e}")
        return False
