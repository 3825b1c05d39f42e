"""Asyncio control loop that drives a game session in real time.

The loop wakes at least every ``POLL_INTERVAL_SECONDS`` (or sooner when the
scheduler or sound bank has something due, or when input arrives), collects
timestamped keyboard and pad hits, polls the scheduler and flushes due MIDI
messages.  Timing accuracy comes from the scheduler's look-ahead, not from
the loop, so a late wake-up only shortens the margin.
"""

import asyncio
import logging
import signal
import typing

import gotrhythm.constants
import gotrhythm.keystroke
import gotrhythm.session


logger = logging.getLogger(__name__)


class HitSource (typing.Protocol):

	def drain (self) -> typing.List[typing.Tuple[str, float]]: ...


class GameRunner:

	"""
	Runs a ``GameSession`` until it stops or ``stop()`` is called.

	Parameters:
		session: The game to drive.
		poll_interval: Longest sleep between polls.
		keystrokes: Source of ``(key, clock_time)`` pairs, dispatched via the key bindings.
		pads: Source of ``(instrument, clock_time)`` hits.
	"""

	def __init__ (
		self,
		session: gotrhythm.session.GameSession,
		poll_interval: float = gotrhythm.constants.POLL_INTERVAL_SECONDS,
		keystrokes: typing.Optional[HitSource] = None,
		pads: typing.Optional[HitSource] = None
	) -> None:

		self.session = session
		self.poll_interval = poll_interval
		self.keystrokes = keystrokes
		self.pads = pads

		self.running = False
		self.task: typing.Optional[asyncio.Task] = None

		self._wake: typing.Optional[asyncio.Event] = None
		self._loop: typing.Optional[asyncio.AbstractEventLoop] = None

	def notify (self) -> None:

		"""Wake the loop early.  Safe to call from any thread."""

		if self._loop is None or self._wake is None:
			return

		self._loop.call_soon_threadsafe(self._wake.set)

	async def start (self) -> None:

		"""
		Begin the game and start the loop task.

		Raises ``PlaybackUnavailableError`` (from the session) if there is
		nowhere to play sound; the loop is not started in that case.
		"""

		if self.running:
			return

		self._loop = asyncio.get_running_loop()
		self._wake = asyncio.Event()

		if not self.session.running:
			self.session.begin()

		self.running = True
		self.task = asyncio.create_task(self._run_loop())

	async def stop (self) -> None:

		"""Stop the loop, end the game and let the fade-out play."""

		self.running = False

		if self._wake is not None:
			self._wake.set()

		if self.task is not None:
			await self.task
			self.task = None

		self.session.stop()

		await self._fade_out()

	async def _run_loop (self) -> None:

		while self.running:

			self._process_input()

			if not self.session.running:
				break

			self.session.tick()
			self._flush_sound()

			await self._sleep(self._next_wake_delay())

		self.running = False

	def _process_input (self) -> None:

		if self.keystrokes is not None:
			for key, at in self.keystrokes.drain():
				gotrhythm.keystroke.dispatch_key(self.session, key, at)

		if self.pads is not None:
			for instrument, at in self.pads.drain():
				self.session.register_hit(instrument, at=at)

	def _flush_sound (self, now: typing.Optional[float] = None) -> None:

		flush = getattr(self.session.sound_bank, "flush", None)

		if callable(flush):
			flush(self.session.clock.now() if now is None else now)

	def _sound_due (self) -> typing.Optional[float]:

		next_due = getattr(self.session.sound_bank, "next_due", None)

		return next_due() if callable(next_due) else None

	def _next_wake_delay (self) -> float:

		delay = self.poll_interval

		if self.session.paused:
			return delay

		now = self.session.clock.now()

		for due in (self.session.scheduler.next_due(), self._sound_due()):
			if due is not None:
				delay = min(delay, max(0.0, due - now))

		return delay

	async def _sleep (self, delay: float) -> None:

		assert self._wake is not None, "Runner must be started before sleeping"

		try:
			await asyncio.wait_for(self._wake.wait(), timeout=delay)
		except asyncio.TimeoutError:
			pass

		self._wake.clear()

	async def _fade_out (self) -> None:

		# Let the stop fade and note-offs reach the device before exit.
		deadline = self.session.clock.now() + gotrhythm.constants.STOP_FADE_SECONDS + 0.25

		while self._sound_due() is not None and self.session.clock.now() < deadline:
			self._flush_sound()
			await asyncio.sleep(self.poll_interval / 5)

		if self._sound_due() is not None:
			self._flush_sound(float("inf"))


async def run_until_stopped (runner: GameRunner) -> None:

	"""
	Run the game until it stops or a stop signal is received.
	"""

	logger.info("Playing. Press q or Ctrl+C to stop.")

	await runner.start()

	stop_event = asyncio.Event()
	loop = asyncio.get_running_loop()

	def _request_stop () -> None:

		"""
		Signal handler to request a clean shutdown.
		"""

		stop_event.set()

	for sig in (signal.SIGINT, signal.SIGTERM):
		loop.add_signal_handler(sig, _request_stop)

	assert runner.task is not None, "Runner task should exist after start()"

	stop_task = asyncio.create_task(stop_event.wait())

	await asyncio.wait(
		[stop_task, runner.task],
		return_when = asyncio.FIRST_COMPLETED
	)

	stop_task.cancel()

	for sig in (signal.SIGINT, signal.SIGTERM):
		loop.remove_signal_handler(sig)

	await runner.stop()
