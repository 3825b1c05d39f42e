"""Look-ahead beat scheduler.

The control loop that drives the game is slow and jittery; the playback clock
is not.  The scheduler bridges the two by planning ahead and notifying late:

- **Plan ahead.**  Each poll hands every beat that falls inside the
  look-ahead horizon to the sound bank with its exact clock time.  A poll
  that arrives late simply schedules several beats at once; the audio is
  still placed correctly.
- **Notify near time.**  Each scheduled beat also queues a one-shot action
  at its own clock time.  Phase changes and display updates hang off these
  actions, so they happen as the beat is heard rather than when it was
  planned.

Pending actions live in one min-heap ordered by due time, so stopping the
game cancels all of them at once.
"""

import dataclasses
import functools
import heapq
import itertools
import logging
import typing

import gotrhythm.clock
import gotrhythm.constants
import gotrhythm.sound_bank


logger = logging.getLogger(__name__)


@dataclasses.dataclass (order=True)
class TimedAction:

	"""
	A one-shot callback due at a clock time.  Ties run in the order they were queued.
	"""

	due: float
	sequence: int
	callback: typing.Callable[[], typing.Any] = dataclasses.field(compare=False)
	label: str = dataclasses.field(compare=False, default="")


@dataclasses.dataclass (frozen=True)
class ScheduledBeat:

	"""
	A metronome beat that has been handed to the sound bank.
	"""

	index: int
	time: float

	@property
	def index_in_bar (self) -> int:

		return self.index % gotrhythm.constants.BEATS_PER_BAR

	@property
	def is_downbeat (self) -> bool:

		return self.index_in_bar == 0


BeatCallback = typing.Callable[[ScheduledBeat], typing.Any]


class TimelineScheduler:

	"""
	Advances a beat index ahead of the playback clock.

	Parameters:
		clock: The playback clock.
		sound_bank: Where metronome clicks are sent.
		tempo: Beats per minute.  A change applies from the next beat that
			has not been scheduled yet.
		lookahead: Horizon in seconds; beats earlier than ``now + lookahead``
			are scheduled on each poll.
		on_beat: Called as each beat is scheduled (ahead of time) so the round
			logic can plan what happens on it.
		on_beat_audible: Called when a beat's clock time arrives.
	"""

	def __init__ (
		self,
		clock: gotrhythm.clock.PlaybackClock,
		sound_bank: gotrhythm.sound_bank.SoundBank,
		tempo: int = gotrhythm.constants.DEFAULT_TEMPO,
		lookahead: float = gotrhythm.constants.LOOKAHEAD_SECONDS,
		on_beat: typing.Optional[BeatCallback] = None,
		on_beat_audible: typing.Optional[BeatCallback] = None
	) -> None:

		if lookahead <= 0:
			raise ValueError("Look-ahead must be positive")

		self.clock = clock
		self.sound_bank = sound_bank
		self.lookahead = lookahead
		self.on_beat = on_beat
		self.on_beat_audible = on_beat_audible

		self.running = False
		self.beat_index = 0
		self.next_beat_time = 0.0

		self._pending: typing.List[TimedAction] = []
		self._sequence = itertools.count()

		self.tempo: int = gotrhythm.constants.DEFAULT_TEMPO
		self.set_tempo(tempo)

	@property
	def beat_seconds (self) -> float:

		return 60.0 / self.tempo

	@property
	def pending_count (self) -> int:

		return len(self._pending)

	def set_tempo (self, bpm: int) -> None:

		"""
		Change the tempo for beats not yet scheduled.  Already scheduled beats keep their times.
		"""

		if bpm <= 0:
			raise ValueError("Tempo must be positive")

		self.tempo = bpm

	def start (self, first_beat_time: float, beat_index: int = 0) -> None:

		"""Begin scheduling with the first beat at ``first_beat_time``."""

		self._pending = []
		self._sequence = itertools.count()
		self.beat_index = beat_index
		self.next_beat_time = first_beat_time
		self.running = True

		logger.debug(f"Scheduler started at {first_beat_time:.3f}s, {self.tempo} BPM")

	def stop (self) -> None:

		"""Stop scheduling and cancel every pending action."""

		self.running = False
		self._pending = []

	def rebase (self, now: float, margin: float = gotrhythm.constants.RESUME_MARGIN_SECONDS) -> None:

		"""
		Make sure the next beat is not scheduled in the past.
		"""

		self.next_beat_time = max(self.next_beat_time, now + margin)

	def defer (self, due: float, callback: typing.Callable[[], typing.Any], label: str = "") -> TimedAction:

		"""Queue ``callback`` to run on the first drain at or after ``due``."""

		action = TimedAction(due=due, sequence=next(self._sequence), callback=callback, label=label)
		heapq.heappush(self._pending, action)

		return action

	def next_due (self) -> typing.Optional[float]:

		"""
		Earliest clock time at which a poll has work to do.
		"""

		if not self.running:
			return None

		due = self.next_beat_time - self.lookahead

		if self._pending:
			due = min(due, self._pending[0].due)

		return due

	def poll (self, now: typing.Optional[float] = None) -> typing.List[ScheduledBeat]:

		"""
		Schedule every beat inside the look-ahead horizon, then run due actions.

		Never blocks.  Returns the beats scheduled by this poll.
		"""

		if not self.running:
			return []

		if now is None:
			now = self.clock.now()

		scheduled: typing.List[ScheduledBeat] = []

		while self.running and self.next_beat_time < now + self.lookahead:

			beat = ScheduledBeat(index=self.beat_index, time=self.next_beat_time)

			self._play_click(beat)
			self.defer(beat.time, functools.partial(self._notify_audible, beat), label=f"beat {beat.index}")

			if self.on_beat is not None:
				self.on_beat(beat)

			scheduled.append(beat)

			# Tempo is read here, so a change never moves a beat already planned.
			self.beat_index += 1
			self.next_beat_time += self.beat_seconds

		if len(scheduled) > 1:
			logger.debug(f"Scheduled {len(scheduled)} beats in one poll at {now:.3f}s")

		self.drain(now)

		return scheduled

	def drain (self, now: float) -> int:

		"""
		Run every pending action due at or before ``now``, earliest first.

		Actions queued by a running action are picked up in the same drain if
		they are already due.
		"""

		ran = 0

		while self._pending and self._pending[0].due <= now:
			action = heapq.heappop(self._pending)
			action.callback()
			ran += 1

		return ran

	def _play_click (self, beat: ScheduledBeat) -> None:

		role = gotrhythm.constants.METRONOME_HIGH if beat.is_downbeat else gotrhythm.constants.METRONOME_LOW

		gotrhythm.sound_bank.play_token(self.sound_bank, role, beat.time, gotrhythm.constants.METRONOME_GAIN)

	def _notify_audible (self, beat: ScheduledBeat) -> None:

		if self.on_beat_audible is not None:
			self.on_beat_audible(beat)
