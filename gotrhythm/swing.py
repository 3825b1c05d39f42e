import dataclasses
import math
import typing

import gotrhythm.constants
import gotrhythm.patterns


def swing_enabled (difficulty: str) -> bool:

	"""Only the complex tier is played swung."""

	return difficulty == gotrhythm.constants.COMPLEX


def swing_beat_offset (beat_offset: float, first_fraction: float = gotrhythm.constants.SWING_FIRST_FRACTION) -> float:

	"""
	Move an offbeat eighth to its swung position.

	An offset whose fractional part is one half (``n + 0.5``) becomes
	``n + first_fraction``.  Every other offset is returned unchanged, so
	applying the transform twice gives the same result as applying it once.
	"""

	if not 0.5 < first_fraction < 1.0:
		raise ValueError("Swing fraction must be between 0.5 and 1.0")

	whole = math.floor(beat_offset)

	if abs((beat_offset - whole) - 0.5) < gotrhythm.constants.SWING_TOLERANCE:
		return whole + first_fraction

	return beat_offset


def apply_swing (pattern: gotrhythm.patterns.Pattern) -> gotrhythm.patterns.Pattern:

	"""
	Swing every offbeat eighth in a pattern, keeping onset order.
	"""

	return tuple(
		dataclasses.replace(onset, beat_offset=swing_beat_offset(onset.beat_offset))
		for onset in pattern
	)


def pattern_times (
	pattern: gotrhythm.patterns.Pattern,
	bar_start: float,
	beat_seconds: float,
	swing: bool = False
) -> typing.List[gotrhythm.patterns.TimedEvent]:

	"""
	Place a pattern's onsets on the clock for a bar starting at ``bar_start``.

	The same mapping is used for Listen playback and for the expected events
	of the Play bar, so the player is judged against exactly what they heard.
	"""

	if beat_seconds <= 0:
		raise ValueError("Beat duration must be positive")

	onsets = apply_swing(pattern) if swing else pattern

	return [
		gotrhythm.patterns.TimedEvent(time=bar_start + onset.beat_offset * beat_seconds, instrument=onset.instrument)
		for onset in onsets
	]
