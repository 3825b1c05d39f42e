import dataclasses
import logging
import typing

import gotrhythm.constants


logger = logging.getLogger(__name__)


@dataclasses.dataclass (frozen=True)
class Hit:

	"""
	A player strike, stamped with the playback clock time it happened at.
	"""

	time: float
	instrument: str


@dataclasses.dataclass (frozen=True)
class CaptureWindow:

	"""
	Closed clock interval ``[start, end]`` in which hits count toward a round.
	"""

	start: float
	end: float

	def __post_init__ (self) -> None:

		if self.end < self.start:
			raise ValueError("Capture window cannot end before it starts")

	def contains (self, time: float) -> bool:

		return self.start <= time <= self.end

	@classmethod
	def around_bar (
		cls,
		bar_start: float,
		beat_seconds: float,
		early_beats: float = gotrhythm.constants.CAPTURE_EARLY_BEATS,
		late_beats: float = gotrhythm.constants.CAPTURE_LATE_BEATS
	) -> "CaptureWindow":

		"""
		Cover a full bar plus a margin either side, so early and late taps still count.
		"""

		bar_end = bar_start + gotrhythm.constants.BEATS_PER_BAR * beat_seconds

		return cls(start=bar_start - early_beats * beat_seconds, end=bar_end + late_beats * beat_seconds)


class InputCapture:

	"""
	Collects hits while a capture window is open.

	Only one window exists at a time.  Opening a new window discards the hits
	collected for the previous one; closing keeps them so they can be scored.
	"""

	def __init__ (self) -> None:

		self.window: typing.Optional[CaptureWindow] = None
		self._hits: typing.List[Hit] = []

	@property
	def hits (self) -> typing.List[Hit]:

		return list(self._hits)

	def open (self, window: CaptureWindow) -> None:

		self.window = window
		self._hits = []

		logger.debug(f"Capture window open {window.start:.3f}s - {window.end:.3f}s")

	def reposition (self, window: CaptureWindow) -> None:

		"""
		Move the open window to end where ``window`` ends, keeping the earlier of the two starts.

		Hits already collected are kept, and the window still reaches back to
		cover them.
		"""

		if self.window is None:
			self.window = window
		else:
			self.window = CaptureWindow(start=min(self.window.start, window.start), end=window.end)

		logger.debug(f"Capture window now {self.window.start:.3f}s - {self.window.end:.3f}s")

	def close (self) -> None:

		self.window = None

	def clear (self) -> None:

		self.window = None
		self._hits = []

	def is_open_at (self, time: float) -> bool:

		return self.window is not None and self.window.contains(time)

	def record (self, instrument: str, time: float) -> bool:

		"""
		Keep a hit if it falls inside the open window.  Returns whether it was kept.
		"""

		if not self.is_open_at(time):
			return False

		self._hits.append(Hit(time=time, instrument=instrument))

		return True
