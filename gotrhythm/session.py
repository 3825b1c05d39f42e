import logging
import random
import typing

import gotrhythm.capture
import gotrhythm.clock
import gotrhythm.config
import gotrhythm.constants
import gotrhythm.event_emitter
import gotrhythm.patterns
import gotrhythm.rounds
import gotrhythm.scheduler
import gotrhythm.scoring
import gotrhythm.sound_bank


logger = logging.getLogger(__name__)


SoundBankFactory = typing.Callable[[], gotrhythm.sound_bank.SoundBank]


class GameSession:

	"""
	One player's game: scheduler, round logic, input capture and score totals.

	Everything runs from a single control loop that calls ``tick()`` every
	few milliseconds.  The session never blocks and holds no global state, so
	several sessions (or a simulated one in a test) can coexist.

	Displays subscribe to ``session.events``:

	- ``phase(title, sub_label)``
	- ``feedback(text)``
	- ``beat(index_in_bar)``
	- ``round_scored(result, record)``
	- ``aggregate(snapshot)``
	- ``summary(summary)``
	- ``tempo(bpm)`` and ``difficulty(tier)`` when settings change

	Parameters:
		sound_bank: Where sounds go.  When omitted, ``sound_bank_factory``
			creates one on ``begin()``.
		sound_bank_factory: Creates the sound bank lazily.  May raise
			``PlaybackUnavailableError``.
		clock: Playback clock; a ``MonotonicClock`` by default.
		tempo: Initial BPM (clamped to 40-140).
		difficulty: Initial tier.
		seed: Makes pattern draws and end-of-game messages repeatable.
		library: Pattern library; built from ``seed`` when omitted.
		scoring: Scoring weights and thresholds.

	Example:
		```python
		session = GameSession(sound_bank=bank, tempo=90, difficulty="medium")
		session.begin()

		while session.running:
			session.tick()
			...
		```
	"""

	def __init__ (
		self,
		sound_bank: typing.Optional[gotrhythm.sound_bank.SoundBank] = None,
		sound_bank_factory: typing.Optional[SoundBankFactory] = None,
		clock: typing.Optional[gotrhythm.clock.PlaybackClock] = None,
		tempo: typing.Any = gotrhythm.constants.DEFAULT_TEMPO,
		difficulty: str = gotrhythm.constants.DEFAULT_DIFFICULTY,
		seed: typing.Optional[int] = None,
		library: typing.Optional[gotrhythm.patterns.PatternLibrary] = None,
		scoring: gotrhythm.scoring.ScoringConfig = gotrhythm.scoring.DEFAULT_SCORING
	) -> None:

		self.events = gotrhythm.event_emitter.EventEmitter()
		self.clock: gotrhythm.clock.PlaybackClock = clock if clock is not None else gotrhythm.clock.MonotonicClock()

		# Child RNGs come from one master so a seed fixes every random choice.
		master = random.Random(seed)
		self._rng = random.Random(master.randint(0, 2 ** 63))

		self.library = library if library is not None else gotrhythm.patterns.PatternLibrary(rng=random.Random(master.randint(0, 2 ** 63)))
		self.capture = gotrhythm.capture.InputCapture()
		self.aggregate = gotrhythm.scoring.AggregateState()

		self._sound_bank = sound_bank
		self._sound_bank_factory = sound_bank_factory

		self.scheduler = gotrhythm.scheduler.TimelineScheduler(
			clock = self.clock,
			sound_bank = sound_bank if sound_bank is not None else gotrhythm.sound_bank.SilentSoundBank(),
			tempo = gotrhythm.config.clamp_tempo(tempo),
			on_beat_audible = self._on_beat_audible
		)

		self.rounds = gotrhythm.rounds.RoundStateMachine(
			scheduler = self.scheduler,
			library = self.library,
			capture = self.capture,
			events = self.events,
			aggregate = self.aggregate,
			scoring = scoring,
			difficulty = gotrhythm.config.normalize_difficulty(difficulty)
		)

		self.scheduler.on_beat = self.rounds.plan_beat

		self._running = False
		self._paused = False

	# ------------------------------------------------------------------
	# State
	# ------------------------------------------------------------------

	@property
	def running (self) -> bool:

		return self._running

	@property
	def paused (self) -> bool:

		return self._paused

	@property
	def phase (self) -> str:

		return self.rounds.phase

	@property
	def tempo (self) -> int:

		return self.scheduler.tempo

	@property
	def difficulty (self) -> str:

		return self.rounds.difficulty

	@property
	def current_round (self) -> typing.Optional[gotrhythm.rounds.Round]:

		return self.rounds.current_round

	@property
	def sound_bank (self) -> gotrhythm.sound_bank.SoundBank:

		return self.scheduler.sound_bank

	# ------------------------------------------------------------------
	# Lifecycle
	# ------------------------------------------------------------------

	def begin (self) -> None:

		"""
		Start a game with a four-beat count-in.  Restarts if already running.

		Raises ``PlaybackUnavailableError`` if no sound bank can be created;
		the game does not start in that case.
		"""

		if self._running:
			self.restart()
			return

		self._ensure_sound_bank()

		if self.clock.suspended:
			self.clock.resume()

		self._paused = False
		self.rounds.begin()
		self.scheduler.start(self.clock.now() + gotrhythm.constants.START_DELAY_SECONDS)
		self._running = True

		self.events.emit("aggregate", self.aggregate.snapshot())

		logger.info(f"Game started at {self.tempo} BPM ({self.difficulty})")

	def restart (self) -> None:

		"""Stop everything, clear the score totals and count in again."""

		self.sound_bank.stop_all(gotrhythm.constants.STOP_FADE_SECONDS)
		self.scheduler.stop()
		self.rounds.reset()
		self.aggregate.reset()
		self._running = False

		logger.info("Restarting game")

		self.begin()

	def stop (self) -> typing.Optional[gotrhythm.scoring.GameSummary]:

		"""
		End the game: fade out, cancel pending actions, drop the current round.

		Returns the end-of-game summary (also emitted as ``summary``), or
		``None`` if no game was running.  Score totals are cleared afterwards.
		"""

		if not self._running:
			return None

		if self.clock.suspended:
			self.clock.resume()

		summary = gotrhythm.scoring.GameSummary(
			rounds = self.aggregate.rounds,
			average_score = self.aggregate.average_score,
			average_error_ms = self.aggregate.average_error_ms,
			message = gotrhythm.scoring.final_average_text(self.aggregate.average_score, self._rng)
		)

		self.sound_bank.stop_all(gotrhythm.constants.STOP_FADE_SECONDS)
		self.scheduler.stop()
		self.rounds.reset()

		self._running = False
		self._paused = False

		logger.info(f"Game stopped after {summary.rounds} rounds")

		self.events.emit("summary", summary)

		self.aggregate.reset()
		self.events.emit("aggregate", self.aggregate.snapshot())
		self.rounds.phase_label = ("Ready", "Press begin to start.")
		self.events.emit("phase", *self.rounds.phase_label)

		return summary

	def pause (self) -> None:

		"""Freeze the playback clock.  Nothing is scheduled or captured while paused."""

		if not self._running or self._paused:
			return

		self._paused = True
		self.clock.suspend()

		logger.info("Paused")

		self.events.emit("phase", "Paused", "Press continue to resume exactly where you left off.")
		self.events.emit("feedback", "Paused.")

	def resume (self) -> None:

		"""Restart the clock and make sure no beat lands in the past."""

		if not self._running or not self._paused:
			return

		self.clock.resume()
		self._paused = False
		self.scheduler.rebase(self.clock.now())

		logger.info("Resumed")

		self.events.emit("phase", *self.rounds.phase_label)

	def toggle_pause (self) -> None:

		if self._paused:
			self.resume()
		else:
			self.pause()

	# ------------------------------------------------------------------
	# Control loop and input
	# ------------------------------------------------------------------

	def tick (self, now: typing.Optional[float] = None) -> typing.List[gotrhythm.scheduler.ScheduledBeat]:

		"""
		One poll of the scheduler.  Does nothing when stopped or paused.
		"""

		if not self._running or self._paused:
			return []

		return self.scheduler.poll(now)

	def register_hit (self, instrument: str, at: typing.Optional[float] = None) -> bool:

		"""
		Play an instrument and, if the capture window is open at that time, keep it for scoring.

		Parameters:
			instrument: ``"kick"`` or ``"snare"``.
			at: Clock time of the hit; defaults to now.

		Returns whether the hit was captured.  Hits while stopped or paused
		are ignored entirely.
		"""

		if not self._running or self._paused:
			return False

		if instrument not in gotrhythm.constants.INSTRUMENTS:
			logger.warning(f"Ignoring hit on unknown instrument {instrument!r}")
			return False

		time = self.clock.now() if at is None else at

		gotrhythm.sound_bank.play_token(self.sound_bank, instrument, time, gotrhythm.constants.DRUM_GAIN)

		captured = self.capture.record(instrument, time)

		logger.debug(f"Hit {instrument} at {time:.3f}s ({'captured' if captured else 'not scored'})")

		return captured

	def set_tempo (self, value: typing.Any) -> int:

		"""
		Change the tempo from the next beat not yet scheduled.  Returns the BPM applied.
		"""

		tempo = gotrhythm.config.clamp_tempo(value)

		self.scheduler.set_tempo(tempo)

		if self._running and not self._paused:
			self.scheduler.rebase(self.clock.now())

		logger.info(f"Tempo set to {tempo} BPM")

		self.events.emit("tempo", tempo)

		return tempo

	def set_difficulty (self, value: typing.Any) -> str:

		"""
		Change the tier for the next Listen draw.  The round in progress is unaffected.
		"""

		difficulty = gotrhythm.config.normalize_difficulty(value)

		self.rounds.difficulty = difficulty

		logger.info(f"Difficulty set to {difficulty}")

		self.events.emit("difficulty", difficulty)
		self.events.emit("feedback", "Difficulty updated - it will apply from the next round.")

		return difficulty

	# ------------------------------------------------------------------
	# Internal
	# ------------------------------------------------------------------

	def _ensure_sound_bank (self) -> gotrhythm.sound_bank.SoundBank:

		if self._sound_bank is None:

			if self._sound_bank_factory is None:
				raise gotrhythm.sound_bank.PlaybackUnavailableError("No sound bank configured for playback")

			try:
				self._sound_bank = self._sound_bank_factory()
			except gotrhythm.sound_bank.PlaybackUnavailableError:
				logger.error("Cannot initialize playback - game not started")
				raise

			self.scheduler.sound_bank = self._sound_bank

		return self._sound_bank

	def _on_beat_audible (self, beat: gotrhythm.scheduler.ScheduledBeat) -> None:

		self.events.emit("beat", beat.index_in_bar)
