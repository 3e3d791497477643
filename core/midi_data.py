#!/usr/bin/env python3
"""
MIDI Data Model
Note events streamed into chord recognition and notes rendered with pretty_midi
"""

import pretty_midi
from typing import Optional
from dataclasses import dataclass
from enum import Enum

from utils.music_theory import MAX_MIDI_NOTE, MIN_MIDI_NOTE


class EventType(Enum):
    """MIDI event types for internal representation"""
    NOTE_ON = "note_on"
    NOTE_OFF = "note_off"


@dataclass(frozen=True)
class NoteEvent:
    """
    A timestamped note-on or note-off.
    Time is logical milliseconds; a note-on with velocity 0 counts as a note-off.
    """
    type: EventType
    pitch: int
    velocity: int = 64
    time: float = 0.0
    channel: int = 0

    def __post_init__(self):
        """Ensure valid ranges"""
        object.__setattr__(self, 'pitch', max(MIN_MIDI_NOTE, min(MAX_MIDI_NOTE, int(self.pitch))))
        object.__setattr__(self, 'velocity', max(0, min(127, int(self.velocity))))
        object.__setattr__(self, 'channel', max(0, min(15, int(self.channel))))

    @property
    def is_note_on(self) -> bool:
        return self.type is EventType.NOTE_ON and self.velocity > 0

    @property
    def pitch_class(self) -> int:
        return self.pitch % 12

    @classmethod
    def note_on(cls, pitch: int, velocity: int = 64, time: float = 0.0) -> 'NoteEvent':
        return cls(EventType.NOTE_ON, pitch, velocity, time)

    @classmethod
    def note_off(cls, pitch: int, time: float = 0.0) -> 'NoteEvent':
        return cls(EventType.NOTE_OFF, pitch, 0, time)

    @classmethod
    def from_mido(cls, msg, time: float = 0.0) -> Optional['NoteEvent']:
        """Convert a mido note message; any other message type gives None"""
        if msg.type not in ('note_on', 'note_off'):
            return None
        # Convert note_on with velocity 0 to note_off
        if msg.type == 'note_on' and msg.velocity > 0:
            event_type = EventType.NOTE_ON
        else:
            event_type = EventType.NOTE_OFF
        return cls(event_type, msg.note, msg.velocity, time, msg.channel)


@dataclass
class MidiNote:
    """A sounding note in seconds, as pretty_midi stores it"""
    start: float                    # Start time in seconds (pretty_midi standard)
    end: float                      # End time in seconds
    pitch: int                      # MIDI pitch (0-127)
    velocity: int = 64              # Velocity (0-127)

    def __post_init__(self):
        """Ensure valid ranges"""
        self.pitch = max(MIN_MIDI_NOTE, min(MAX_MIDI_NOTE, self.pitch))
        self.velocity = max(0, min(127, self.velocity))
        self.start = max(0.0, self.start)
        self.end = max(self.start, self.end)

    @property
    def duration(self) -> float:
        """Duration in seconds"""
        return max(0.0, self.end - self.start)

    @property
    def pitch_class(self) -> int:
        """Get pitch class (0-11) for harmonic analysis"""
        return self.pitch % 12

    def to_pretty_midi_note(self) -> pretty_midi.Note:
        """Convert to pretty_midi.Note object"""
        return pretty_midi.Note(
            start=self.start,
            end=self.end,
            pitch=self.pitch,
            velocity=self.velocity
        )

    @classmethod
    def from_pretty_midi_note(cls, pm_note: pretty_midi.Note) -> 'MidiNote':
        """Create MidiNote from pretty_midi.Note"""
        return cls(
            start=pm_note.start,
            end=pm_note.end,
            pitch=pm_note.pitch,
            velocity=pm_note.velocity
        )
