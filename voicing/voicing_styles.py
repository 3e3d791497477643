"""
Voicing transforms applied after the voice-leading choice.

The transforms move pitches by octaves without reordering roles, so the
result may leave a lower role above a higher one; check_voicing reports
that as voice crossing.
"""
import logging

from utils.music_theory import VOICE_ORDER, nearest_octave

logger = logging.getLogger(__name__)


def open_voicing(assignment, ranges):
    """
    Drop the alto an octave when its register allows, then pull the tenor
    down an octave if it sits closer than a perfect fifth below the alto.
    The dropped alto can end up under the tenor.
    """
    alto = assignment.alto
    if alto is not None and ranges['alto'].contains(alto - 12):
        assignment = assignment.with_voice('alto', alto - 12)

    alto, tenor = assignment.alto, assignment.tenor
    if alto is not None and tenor is not None and abs(alto - tenor) < 7:
        if ranges['tenor'].contains(tenor - 12):
            assignment = assignment.with_voice('tenor', tenor - 12)
    return assignment


def drop2_voicing(assignment, ranges):
    """
    Drop the second-highest sounding pitch an octave if its register permits.
    Roles keep their names, so the dropped voice may cross those below it.
    """
    sounding = sorted(((pitch, role) for role, pitch in assignment.items() if pitch is not None),
                      reverse=True)
    if len(sounding) < 2:
        return assignment

    pitch, role = sounding[1]
    if ranges[role].contains(pitch - 12):
        return assignment.with_voice(role, pitch - 12)
    logger.debug(f"Drop-2 skipped: {role} cannot go below {ranges[role].low}")
    return assignment


def spread_voicing(assignment, factor, ranges):
    """
    Scale every voice's distance from the soprano/bass midpoint by factor.
    Each voice keeps its pitch class and stays in its register.
    """
    if assignment.soprano is None or assignment.bass is None:
        return assignment

    center = (assignment.soprano + assignment.bass) / 2
    for role in VOICE_ORDER:
        pitch = assignment.get(role)
        if pitch is None:
            continue
        target = center + (pitch - center) * factor
        spread_pitch = ranges[role].fold(nearest_octave(pitch % 12, target))
        assignment = assignment.with_voice(role, spread_pitch)
    return assignment
