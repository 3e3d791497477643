#!/usr/bin/env python3
"""
Harmony Engine entry point

    python main.py recognize song.mid        # stream a MIDI file through chord recognition
    python main.py progression --style jazz  # generate, voice and write a progression
"""
import sys
import logging
import argparse
from pathlib import Path

from analysis.harmony import HarmonicAnalyzer
from config.settings import PROGRESSION_STYLES, HarmonySettings, ProgressionConfig
from core.import_export import read_note_events, render_voicings, save_midi
from recognition.chord_recognition import ChordRecognizer
from utils.logging import setup_logging
from voicing.voice_leading import VoiceLeadingEngine

logger = logging.getLogger(__name__)


def recognize_file(path: str, settings: HarmonySettings) -> int:
    """Feed every note event of a MIDI file to a recognizer and log what it finds"""
    try:
        events = read_note_events(path)
    except (OSError, ValueError, EOFError) as e:
        logger.error(f"Failed to load MIDI: {e}")
        return 1

    recognizer = ChordRecognizer(settings.recognition, HarmonicAnalyzer(settings.analyzer))
    recognizer.on_chord_change(lambda chord: print(f"{chord.start_time:10.1f} ms  {chord.symbol:8} {chord.function}"))
    recognizer.on_progression_detected(lambda report: print(f"  -> {report.type} in {report.key_name}"))

    for event in events:
        recognizer.on_note_event(event)
    if events:
        # Let the last chord settle and end
        recognizer.tick(events[-1].time + settings.recognition.detection_delay_ms)
    return 0


def write_progression(args, settings: HarmonySettings) -> int:
    """Generate a progression, voice it in four parts and write it as MIDI"""
    analyzer = HarmonicAnalyzer(settings.analyzer)
    config = ProgressionConfig(length=args.length, style=args.style,
                               complexity=args.complexity, seed=args.seed)
    chords = analyzer.generate_progression(config)

    engine = VoiceLeadingEngine(settings.voice_leading, key=analyzer.key)
    assignments = [engine.process_chord(chord.pitches) for chord in chords]
    for chord, assignment in zip(chords, assignments):
        print(f"{chord.function:6} {chord.symbol:8} {assignment.pitches}")

    if args.out:
        return 0 if save_midi(render_voicings(assignments), args.out) else 1
    return 0


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Harmony Engine")
    parser.add_argument('--config', default='harmony.json', help="settings file")
    parser.add_argument('--verbose', action='store_true')
    commands = parser.add_subparsers(dest='command', required=True)

    recognize = commands.add_parser('recognize', help="detect chords in a MIDI file")
    recognize.add_argument('midi_file')

    progression = commands.add_parser('progression', help="generate a voiced progression")
    progression.add_argument('--style', default='pop', choices=PROGRESSION_STYLES)
    progression.add_argument('--length', type=int, default=8)
    progression.add_argument('--complexity', type=float, default=0.5)
    progression.add_argument('--seed', type=int)
    progression.add_argument('--out', help="write the voiced progression to this MIDI file")

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, log_file=None)

    settings = HarmonySettings.load(args.config)
    if args.command == 'recognize':
        if not Path(args.midi_file).exists():
            logger.error(f"No such file: {args.midi_file}")
            return 1
        return recognize_file(args.midi_file, settings)
    return write_progression(args, settings)


if __name__ == "__main__":
    sys.exit(main())
