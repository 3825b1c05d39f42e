"""Round phases.

After a four-beat count-in the game repeats a 16-beat cycle of four bars::

	Listen -> Ready -> Play -> Score -> Listen -> ...

- **Listen** draws a pattern and plays it.
- **Ready** opens the capture window for the coming Play bar, half a beat
  early so a keen player is still caught.
- **Play** is the player's bar; the pattern is laid onto it as the set of
  expected events.
- **Score** waits for the capture window to close (half a beat into the
  bar), then matches hits against expectations and updates the totals.

Which phase a beat starts is a pure function of its offset into the cycle,
counted from the beat after the count-in.  Beats are classified when they
are scheduled, but the phase is entered when the beat is heard.
"""

import dataclasses
import functools
import logging
import typing

import gotrhythm.capture
import gotrhythm.constants
import gotrhythm.event_emitter
import gotrhythm.patterns
import gotrhythm.scheduler
import gotrhythm.scoring
import gotrhythm.sound_bank
import gotrhythm.swing


logger = logging.getLogger(__name__)


IDLE = "idle"
COUNT_IN = "countin"
LISTEN = "listen"
READY = "ready"
PLAY = "play"
SCORE = "score"

# Cycle offset at which each phase begins.
PHASE_STARTS: typing.Dict[int, str] = {
	0: LISTEN,
	4: READY,
	8: PLAY,
	12: SCORE,
}


def cycle_offset (beat_index: int, anchor_beat: int) -> int:

	"""Position of a beat in the 16-beat cycle, always in [0, 16)."""

	return (beat_index - anchor_beat) % gotrhythm.constants.CYCLE_BEATS


def phase_for_offset (offset: int) -> str:

	"""The phase a cycle offset falls in."""

	offset %= gotrhythm.constants.CYCLE_BEATS

	if offset < 4:
		return LISTEN
	if offset < 8:
		return READY
	if offset < 12:
		return PLAY
	return SCORE


def boundary_phase (offset: int) -> typing.Optional[str]:

	"""The phase that starts at this offset, or ``None`` inside a phase."""

	return PHASE_STARTS.get(offset % gotrhythm.constants.CYCLE_BEATS)


@dataclasses.dataclass
class Round:

	"""
	One pass through Listen, Ready, Play and Score.

	Created when Listen starts and replaced by the next Listen.
	"""

	number: int
	difficulty: str
	pattern: gotrhythm.patterns.Pattern
	listen_bar_start: float
	play_bar_start: typing.Optional[float] = None
	capture_window: typing.Optional[gotrhythm.capture.CaptureWindow] = None
	expected: typing.List[gotrhythm.patterns.TimedEvent] = dataclasses.field(default_factory=list)
	hits: typing.List[gotrhythm.capture.Hit] = dataclasses.field(default_factory=list)
	result: typing.Optional[gotrhythm.scoring.ScoreResult] = None

	@property
	def swung (self) -> bool:

		return gotrhythm.swing.swing_enabled(self.difficulty)


class RoundStateMachine:

	"""
	Decides the phase of each beat and performs phase entry actions.

	Parameters:
		scheduler: Beat source; also used to defer phase entries and scoring.
		library: Pattern source for Listen.
		capture: Hit collection for the current round.
		events: Display sink.
		aggregate: Running totals updated at each Score.
		scoring: Scoring weights and thresholds.
		difficulty: Tier for the next Listen draw.
	"""

	def __init__ (
		self,
		scheduler: gotrhythm.scheduler.TimelineScheduler,
		library: gotrhythm.patterns.PatternLibrary,
		capture: gotrhythm.capture.InputCapture,
		events: gotrhythm.event_emitter.EventEmitter,
		aggregate: gotrhythm.scoring.AggregateState,
		scoring: gotrhythm.scoring.ScoringConfig = gotrhythm.scoring.DEFAULT_SCORING,
		difficulty: str = gotrhythm.constants.DEFAULT_DIFFICULTY
	) -> None:

		self.scheduler = scheduler
		self.library = library
		self.capture = capture
		self.events = events
		self.aggregate = aggregate
		self.scoring = scoring
		self.difficulty = difficulty

		self.phase = IDLE
		self.anchor_beat = 0
		self.current_round: typing.Optional[Round] = None
		self.input_enabled = False
		self.phase_label: typing.Tuple[str, str] = ("Ready", "Press begin to start.")

		self._counting_in = False
		self._count_in_remaining = 0
		self._rounds_started = 0

	def begin (self) -> None:

		"""Start a fresh count-in.  Any round in progress is discarded."""

		self.reset()
		self.phase = COUNT_IN
		self._counting_in = True
		self._count_in_remaining = gotrhythm.constants.COUNT_IN_BEATS

		self._show_phase("Starting", f"Beginning in {self._count_in_remaining}…")
		self.events.emit("feedback", f"Beginning in {self._count_in_remaining}…")

	def reset (self) -> None:

		"""Discard round state and go idle."""

		self.phase = IDLE
		self.anchor_beat = 0
		self.current_round = None
		self.input_enabled = False
		self.capture.clear()

		self._counting_in = False
		self._count_in_remaining = 0
		self._rounds_started = 0

	def plan_beat (self, beat: gotrhythm.scheduler.ScheduledBeat) -> typing.Optional[str]:

		"""
		Classify a beat as it is scheduled and defer whatever happens on it.

		Returns the phase that will be entered on this beat, if any.
		"""

		if self.phase == IDLE:
			return None

		if self._counting_in:
			shown = self._count_in_remaining
			self.scheduler.defer(beat.time, functools.partial(self._show_count_in, shown), label="count-in")

			self._count_in_remaining -= 1

			if self._count_in_remaining <= 0:
				self._counting_in = False
				self.anchor_beat = beat.index + 1

			return None

		phase = boundary_phase(cycle_offset(beat.index, self.anchor_beat))

		if phase is not None:
			self.scheduler.defer(beat.time, functools.partial(self.enter, phase, beat.time), label=f"enter {phase}")

		# The Play bar's start is fixed once its first beat is scheduled.
		if phase == PLAY and self.current_round is not None and self.current_round.capture_window is not None:
			self._place_play_bar(self.current_round, beat.time)

		return phase

	def enter (self, phase: str, bar_start: float) -> None:

		"""Run the entry action for ``phase``, whose bar starts at ``bar_start``."""

		self.phase = phase

		logger.debug(f"Entering {phase} at {bar_start:.3f}s")

		if phase == LISTEN:
			self._enter_listen(bar_start)
		elif phase == READY:
			self._enter_ready(bar_start)
		elif phase == PLAY:
			self._enter_play(bar_start)
		elif phase == SCORE:
			self._enter_score()
		else:
			raise ValueError(f"Cannot enter phase {phase!r}")

	def _enter_listen (self, bar_start: float) -> None:

		previous = self.current_round

		# A round is always scored before the next one replaces it.
		if previous is not None and previous.expected and previous.result is None:
			self._score(previous)

		tier = self.library.tier_for(self.difficulty)
		pattern = self.library.draw(tier)

		self.capture.clear()
		self.input_enabled = False
		self._rounds_started += 1

		self.current_round = Round(
			number = self._rounds_started,
			difficulty = tier,
			pattern = pattern,
			listen_bar_start = bar_start
		)

		self._show_phase("Listen", "Listen to the rhythm…")
		self.events.emit("feedback", "Listen to the 4-beat rhythm.")

		events = gotrhythm.swing.pattern_times(pattern, bar_start, self.scheduler.beat_seconds, swing=self.current_round.swung)

		for event in events:
			gotrhythm.sound_bank.play_token(self.scheduler.sound_bank, event.instrument, event.time, gotrhythm.constants.DRUM_GAIN)

		logger.info(f"Round {self._rounds_started}: {len(pattern)}-onset {tier} pattern")

	def _enter_ready (self, bar_start: float) -> None:

		current = self.current_round

		if current is None:
			return

		beat_seconds = self.scheduler.beat_seconds

		current.play_bar_start = bar_start + gotrhythm.constants.BEATS_PER_BAR * beat_seconds
		current.capture_window = gotrhythm.capture.CaptureWindow.around_bar(current.play_bar_start, beat_seconds)

		self.capture.open(current.capture_window)

		self._show_phase("Get ready!", "Get ready! Next bar is yours.")
		self.events.emit("feedback", "Get ready! (you can tap early - we'll catch it)")

	def _enter_play (self, bar_start: float) -> None:

		current = self.current_round

		if current is None:
			return

		self._place_play_bar(current, bar_start)
		current.expected = gotrhythm.swing.pattern_times(current.pattern, bar_start, self.scheduler.beat_seconds, swing=current.swung)

		self.input_enabled = True

		self._show_phase("Your turn", "Play it back now: kick / snare.")
		self.events.emit("feedback", "Your turn - copy the rhythm!")

	def _place_play_bar (self, current: Round, bar_start: float) -> None:

		"""
		Pin the Play bar to the start it is actually heard at and fit the capture window to it.

		The window opened at Ready assumed the tempo would not change.  Its end
		follows the real bar; its start only ever moves earlier, so taps
		already collected still count.
		"""

		current.play_bar_start = bar_start

		self.capture.reposition(gotrhythm.capture.CaptureWindow.around_bar(bar_start, self.scheduler.beat_seconds))
		current.capture_window = self.capture.window

	def _enter_score (self) -> None:

		current = self.current_round

		if current is None:
			return

		self._show_phase("Score", "Scoring…")

		window = current.capture_window

		if window is None or self.scheduler.clock.now() >= window.end:
			self._score(current)
		else:
			self.scheduler.defer(window.end, functools.partial(self._score, current), label="score")

	def _score (self, current: Round) -> None:

		if current is not self.current_round or current.result is not None:
			return

		self.capture.close()
		self.input_enabled = False

		current.hits = self.capture.hits
		current.result = gotrhythm.scoring.score_round(current.expected, current.hits, self.scoring)

		record = self.aggregate.record(current.result, tempo=self.scheduler.tempo, difficulty=current.difficulty)

		logger.debug(f"Round {current.number} scored {current.result.score}/5 ({current.result.summary_line()})")

		self.events.emit("round_scored", current.result, record)
		self.events.emit("aggregate", self.aggregate.snapshot())
		self.events.emit("feedback", gotrhythm.scoring.round_feedback(current.result))

		self._show_phase("Score", "Take a breath… next round is coming.")

	def _show_count_in (self, remaining: int) -> None:

		self._show_phase("Starting", f"Beginning in {max(0, remaining)}…")
		self.events.emit("feedback", f"Beginning in {max(0, remaining)}…")

	def _show_phase (self, title: str, sub_label: str) -> None:

		self.phase_label = (title, sub_label)
		self.events.emit("phase", title, sub_label)
