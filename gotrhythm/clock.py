"""Playback clocks.

The game reads time from a single playback clock.  It only moves forward,
and it stands still while suspended so that a paused game resumes exactly
where it left off.  ``MonotonicClock`` follows the wall clock for live play;
``ManualClock`` only moves when told to and makes simulations repeatable.
"""

import time
import typing


@typing.runtime_checkable
class PlaybackClock (typing.Protocol):

	"""
	Protocol for the time source the scheduler and scorer read.
	"""

	suspended: bool

	def now (self) -> float:

		"""Current clock time in seconds."""

		...

	def suspend (self) -> None:

		"""Stop the clock from advancing."""

		...

	def resume (self) -> None:

		"""Let the clock advance again from where it stopped."""

		...


class MonotonicClock:

	"""
	Wall-clock playback time based on ``time.perf_counter``.

	Starts at zero when created.  Time spent suspended is subtracted, so
	``now()`` reads the same value before and after a pause.
	"""

	def __init__ (self, time_fn: typing.Callable[[], float] = time.perf_counter) -> None:

		self._time_fn = time_fn
		self._origin = time_fn()
		self._suspended_at: typing.Optional[float] = None
		self._suspended_total = 0.0
		self.suspended = False

	def now (self) -> float:

		reference = self._suspended_at if self._suspended_at is not None else self._time_fn()

		return reference - self._origin - self._suspended_total

	def suspend (self) -> None:

		if self.suspended:
			return

		self._suspended_at = self._time_fn()
		self.suspended = True

	def resume (self) -> None:

		if not self.suspended or self._suspended_at is None:
			return

		self._suspended_total += self._time_fn() - self._suspended_at
		self._suspended_at = None
		self.suspended = False


class ManualClock:

	"""
	A clock that only moves when ``advance()`` or ``set()`` is called.

	``advance()`` models wall time passing, so it has no effect while the
	clock is suspended.
	"""

	def __init__ (self, start: float = 0.0) -> None:

		self._now = start
		self.suspended = False

	def now (self) -> float:

		return self._now

	def advance (self, seconds: float) -> float:

		"""Move the clock forward by ``seconds`` unless suspended."""

		if seconds < 0:
			raise ValueError("A playback clock cannot run backwards")

		if not self.suspended:
			self._now += seconds

		return self._now

	def set (self, value: float) -> None:

		"""Jump forward to an absolute time."""

		if value < self._now:
			raise ValueError("A playback clock cannot run backwards")

		self._now = value

	def suspend (self) -> None:

		self.suspended = True

	def resume (self) -> None:

		self.suspended = False
