"""Hit matching and round scoring.

A round is scored by pairing each expected event with the closest unclaimed
hit of the same instrument.  The pairing is greedy and walks the expected
events in time order, so it is not globally optimal, but identical inputs
always produce identical results.

Scoring flow:

1. Each expected event claims the nearest same-instrument hit within
   ``match_ceiling_ms``.  No candidate means a miss.
2. Hits left unclaimed are extras.
3. The average error over matched pairs is inflated by the miss and extra
   fractions to give the effective error.
4. The effective error is looked up in the tier table (5 best, 1 worst).
   A 5 also requires no misses and no extras.

The weights and thresholds were tuned by ear and are kept as configuration
in ``ScoringConfig`` rather than derived.
"""

import dataclasses
import math
import random
import typing

import gotrhythm.capture
import gotrhythm.patterns


@dataclasses.dataclass (frozen=True)
class ScoringConfig:

	"""
	Match ceiling, penalty weights and tier thresholds (all in milliseconds).
	"""

	match_ceiling_ms: float = 180.0
	miss_weight: float = 0.85
	extra_weight: float = 0.55
	tier_5_ms: float = 55.0
	tier_4_ms: float = 90.0
	tier_3_ms: float = 125.0
	tier_2_ms: float = 165.0


DEFAULT_SCORING = ScoringConfig()


@dataclasses.dataclass (frozen=True)
class Match:

	"""An expected event paired with the hit that claimed it."""

	expected: gotrhythm.patterns.TimedEvent
	hit: gotrhythm.capture.Hit
	error_ms: float


def _round_half_up (value: float) -> int:

	return int(math.floor(value + 0.5))


@dataclasses.dataclass (frozen=True)
class ScoreResult:

	"""
	Outcome of one round.  ``avg_error_ms`` is the match ceiling when nothing matched.
	"""

	score: int
	matched_count: int
	miss_count: int
	extra_count: int
	avg_error_ms: float
	effective_error: float
	expected_count: int
	matches: typing.Tuple[Match, ...] = ()

	def summary_line (self) -> str:

		return (
			f"Matched {self.matched_count}/{self.expected_count}, "
			f"Missed {self.miss_count}, Extra {self.extra_count}, "
			f"Avg timing error ~{_round_half_up(self.avg_error_ms)}ms"
		)


def score_tier (effective_error: float, misses: int, extras: int, config: ScoringConfig = DEFAULT_SCORING) -> int:

	"""
	Map an effective error to a 1-5 score; the first tier that fits wins.
	"""

	if effective_error <= config.tier_5_ms and misses == 0 and extras == 0:
		return 5

	if effective_error <= config.tier_4_ms:
		return 4

	if effective_error <= config.tier_3_ms:
		return 3

	if effective_error <= config.tier_2_ms:
		return 2

	return 1


def score_round (
	expected: typing.Sequence[gotrhythm.patterns.TimedEvent],
	hits: typing.Sequence[gotrhythm.capture.Hit],
	config: ScoringConfig = DEFAULT_SCORING
) -> ScoreResult:

	"""
	Match hits against expected events and score the round.

	Never raises on empty input: with nothing matched the average error is
	taken as the match ceiling.
	"""

	ordered_expected = sorted(expected, key=lambda event: event.time)
	ordered_hits = sorted(hits, key=lambda hit: hit.time)

	claimed: typing.Set[int] = set()
	matches: typing.List[Match] = []

	for event in ordered_expected:

		best_index: typing.Optional[int] = None
		best_error = math.inf

		for index, hit in enumerate(ordered_hits):

			if index in claimed or hit.instrument != event.instrument:
				continue

			error_ms = abs(hit.time - event.time) * 1000.0

			if error_ms <= config.match_ceiling_ms and error_ms < best_error:
				best_index = index
				best_error = error_ms

		if best_index is not None:
			claimed.add(best_index)
			matches.append(Match(expected=event, hit=ordered_hits[best_index], error_ms=best_error))

	misses = len(ordered_expected) - len(matches)
	extras = len(ordered_hits) - len(claimed)

	if matches:
		avg_error_ms = sum(match.error_ms for match in matches) / len(matches)
	else:
		avg_error_ms = config.match_ceiling_ms

	denominator = max(1, len(ordered_expected))
	miss_fraction = misses / denominator
	extra_fraction = extras / denominator

	effective_error = avg_error_ms * (1.0 + config.miss_weight * miss_fraction + config.extra_weight * extra_fraction)

	return ScoreResult(
		score = score_tier(effective_error, misses, extras, config),
		matched_count = len(matches),
		miss_count = misses,
		extra_count = extras,
		avg_error_ms = avg_error_ms,
		effective_error = effective_error,
		expected_count = len(ordered_expected),
		matches = tuple(matches)
	)


@dataclasses.dataclass (frozen=True)
class RoundRecord:

	"""A scored round with the tempo and difficulty it was played at."""

	result: ScoreResult
	tempo: int
	difficulty: str


@dataclasses.dataclass (frozen=True)
class AggregateSnapshot:

	rounds: int
	last_score: typing.Optional[int]
	average_score: float
	last_error_ms: typing.Optional[float]
	average_error_ms: float


@dataclasses.dataclass
class AggregateState:

	"""
	Running totals across the rounds of one game.  Cleared only by ``reset()``.
	"""

	rounds: int = 0
	last_score: typing.Optional[int] = None
	total_score: int = 0
	last_error_ms: typing.Optional[float] = None
	total_avg_error_ms: float = 0.0
	history: typing.List[RoundRecord] = dataclasses.field(default_factory=list)

	@property
	def average_score (self) -> float:

		return self.total_score / self.rounds if self.rounds else 0.0

	@property
	def average_error_ms (self) -> float:

		return self.total_avg_error_ms / self.rounds if self.rounds else 0.0

	def record (self, result: ScoreResult, tempo: int, difficulty: str) -> RoundRecord:

		"""Fold a round into the totals and append it to the history."""

		entry = RoundRecord(result=result, tempo=tempo, difficulty=difficulty)

		self.rounds += 1
		self.last_score = result.score
		self.total_score += result.score
		self.last_error_ms = result.avg_error_ms
		self.total_avg_error_ms += result.avg_error_ms
		self.history.append(entry)

		return entry

	def reset (self) -> None:

		self.rounds = 0
		self.last_score = None
		self.total_score = 0
		self.last_error_ms = None
		self.total_avg_error_ms = 0.0
		self.history = []

	def snapshot (self) -> AggregateSnapshot:

		return AggregateSnapshot(
			rounds = self.rounds,
			last_score = self.last_score,
			average_score = self.average_score,
			last_error_ms = self.last_error_ms,
			average_error_ms = self.average_error_ms
		)


# Player-facing text

SCORE_WORDS: typing.Dict[int, str] = {
	1: "Poor",
	2: "Okay",
	3: "Good!",
	4: "Very Good!",
	5: "Excellent!",
}

FEEDBACK_TEXT: typing.Dict[int, str] = {
	1: "Hmmm, give it another go!",
	2: "A good start! Keep going!",
	3: "That's good! Let's get to 5 though!",
	4: "Very good! That was pretty accurate!",
	5: "Brilliant! You've got rhythm!",
}

_FINAL_TEXT: typing.Dict[int, str] = {
	1: "You're down but you're not out! Give it another go and see if you can improve.",
	2: "That's not a bad way to begin, but there's a higher score in you!",
	3: "That's not bad at all, though the higher scores are calling your name.",
	4: "That's pretty great! A score to be proud of, but can you go one further?",
}

_FINAL_TEXT_TOP = (
	"Hey that's awesome! The local samba band called to ask when you can start.",
	"A top result! Your heart really does beat to the beat of the drum.",
	"Excellent - you've got real skills!",
)


def round_feedback (result: ScoreResult) -> str:

	"""Three-line feedback shown after a round: score, encouragement, breakdown."""

	word = SCORE_WORDS.get(result.score, "")
	text = FEEDBACK_TEXT.get(result.score, "")

	return f"{result.score}/5 {word}\n{text}\n{result.summary_line()}"


def final_average_text (average: float, rng: typing.Optional[random.Random] = None) -> str:

	"""
	End-of-game message for an average score.  A 5 picks one of several messages.
	"""

	rounded = _round_half_up(average)
	prefix = f"You scored an average of {max(1, min(5, rounded))}/5 - "

	if rounded <= 1:
		return prefix + _FINAL_TEXT[1]

	if rounded < 5:
		return prefix + _FINAL_TEXT[rounded]

	chooser = rng if rng is not None else random.Random()

	return prefix + chooser.choice(_FINAL_TEXT_TOP) + " If you haven't already, try upping the difficulty!"


@dataclasses.dataclass (frozen=True)
class GameSummary:

	"""What the player is shown when a game is stopped."""

	rounds: int
	average_score: float
	average_error_ms: float
	message: str

	def lines (self) -> typing.List[str]:

		average = f"{self.average_score:.1f}/5" if self.rounds else "-"

		return [
			f"Rounds played: {self.rounds}",
			f"Average score: {average}",
			"",
			self.message,
		]
