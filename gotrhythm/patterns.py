import dataclasses
import logging
import random
import typing

import gotrhythm.constants


logger = logging.getLogger(__name__)


@dataclasses.dataclass (frozen=True)
class Onset:

	"""
	A single strike inside a one-bar pattern.

	Parameters:
		beat_offset: Position in beats from the start of the bar, in [0, 4).
		instrument: ``"kick"`` or ``"snare"``.
	"""

	beat_offset: float
	instrument: str

	def __post_init__ (self) -> None:

		if not 0.0 <= self.beat_offset < gotrhythm.constants.BEATS_PER_BAR:
			raise ValueError(f"Onset beat_offset must be in [0, {gotrhythm.constants.BEATS_PER_BAR}), got {self.beat_offset}")

		if self.instrument not in gotrhythm.constants.INSTRUMENTS:
			raise ValueError(f"Unknown instrument {self.instrument!r}")


@dataclasses.dataclass (frozen=True)
class TimedEvent:

	"""
	An instrument strike placed on the playback clock.
	"""

	time: float
	instrument: str


Pattern = typing.Tuple[Onset, ...]


def make_pattern (*onsets: typing.Tuple[float, str]) -> Pattern:

	"""
	Build a pattern from ``(beat_offset, instrument)`` pairs, ordered by offset.
	"""

	ordered = sorted(onsets, key=lambda onset: onset[0])

	return tuple(Onset(beat_offset=offset, instrument=instrument) for offset, instrument in ordered)


_K = gotrhythm.constants.KICK
_S = gotrhythm.constants.SNARE


PATTERNS: typing.Dict[str, typing.List[Pattern]] = {

	gotrhythm.constants.SIMPLE: [
		make_pattern((0, _K), (1, _S), (2, _K), (3, _S)),
		make_pattern((0, _K), (2, _S)),
		make_pattern((0, _K), (2, _K), (3, _S)),
		make_pattern((0, _K), (1, _S), (3, _S)),
		make_pattern((0, _K), (2, _S)),
		make_pattern((0, _K), (2, _K)),
		make_pattern((0, _S), (2, _K)),
	],

	gotrhythm.constants.MEDIUM: [
		make_pattern((0, _K), (1, _S), (2, _K), (3, _S), (3.5, _K)),
		make_pattern((0, _K), (0.5, _K), (1, _S), (2, _K), (3, _S)),
		make_pattern((0, _K), (1.5, _K), (2, _S), (3.5, _K)),
		make_pattern((0, _K), (1, _S), (2.5, _K), (3, _S)),
		make_pattern((0, _K), (1, _S), (2, _K), (2.5, _K), (3, _S)),
		make_pattern((0, _K), (1.5, _S), (2, _K), (3, _S)),
	],

	gotrhythm.constants.DIFFICULT: [
		make_pattern((0, _K), (0.75, _K), (1, _S), (2, _K), (2.5, _K), (3, _S)),
		make_pattern((0, _K), (0.5, _K), (1, _S), (1.75, _K), (2, _K), (3, _S)),
		make_pattern((0, _K), (1, _S), (2, _K), (2.25, _K), (2.5, _K), (3, _S)),
		make_pattern((0, _K), (0.25, _K), (1, _S), (2, _K), (2.75, _K), (3, _S)),
		make_pattern((0, _K), (1, _S), (1.5, _K), (2, _K), (2.75, _S), (3.25, _K)),
	],

	# Played swung - every offbeat eighth moves to the triplet position.
	gotrhythm.constants.COMPLEX: [
		make_pattern((0, _K), (1, _S), (2, _K), (2.5, _K), (3, _S)),
		make_pattern((0, _K), (0.5, _K), (1, _S), (2, _K), (3, _S)),
		make_pattern((0, _K), (1.5, _K), (2, _S), (3.5, _K)),
		make_pattern((0, _K), (1, _S), (1.5, _K), (2.5, _S), (3.5, _K)),
	],
}


class PatternLibrary:

	"""
	Hand-authored patterns per difficulty tier, drawn uniformly at random.

	Pass ``rng`` or ``seed`` for repeatable draws.  A tier that is unknown or
	has no patterns falls back to the default (``"simple"``) tier so a round
	never starts with an empty pattern.
	"""

	def __init__ (
		self,
		patterns: typing.Optional[typing.Mapping[str, typing.Sequence[Pattern]]] = None,
		rng: typing.Optional[random.Random] = None,
		seed: typing.Optional[int] = None
	) -> None:

		source = PATTERNS if patterns is None else patterns

		self._patterns: typing.Dict[str, typing.Tuple[Pattern, ...]] = {
			name: tuple(tuple(pattern) for pattern in tier) for name, tier in source.items()
		}

		self.rng = rng if rng is not None else random.Random(seed)

	def difficulties (self) -> typing.List[str]:

		"""Return the tier names that have at least one pattern."""

		return [name for name, tier in self._patterns.items() if tier]

	def tier_for (self, difficulty: str) -> str:

		"""
		Return the tier a draw for ``difficulty`` will actually use.

		Raises ``ValueError`` when neither the requested tier nor the default
		tier has any patterns.
		"""

		if self._patterns.get(difficulty):
			return difficulty

		fallback = gotrhythm.constants.DEFAULT_DIFFICULTY

		if not self._patterns.get(fallback):
			raise ValueError(f"Pattern library has no {fallback!r} patterns to fall back on")

		logger.warning(f"No patterns for difficulty {difficulty!r} - using {fallback!r}")

		return fallback

	def draw (self, difficulty: str) -> Pattern:

		"""Choose one pattern for ``difficulty``."""

		tier = self._patterns[self.tier_for(difficulty)]

		return self.rng.choice(tier)
