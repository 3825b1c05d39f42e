"""Live terminal dashboard for a game.

Keeps one persistent status line at the bottom of the terminal showing the
phase, tempo, difficulty, the current beat and the running score.  Round
feedback and log messages scroll above it without disruption.

The status line looks like::

	Your turn - Play it back now: kick / snare.  90 BPM  medium  [. . o .]  Last: 4/5  Avg: 3.5/5 ~42ms  Rounds: 2
"""

import logging
import sys
import typing

import gotrhythm.constants
import gotrhythm.scoring


if typing.TYPE_CHECKING:
	import gotrhythm.session


logger = logging.getLogger(__name__)


class DisplayLogHandler (logging.Handler):

	"""Logging handler that clears and redraws the status line around log output.

	Installed by ``Display.start()`` and removed by ``Display.stop()``.
	"""

	def __init__ (self, display: "Display") -> None:

		super().__init__()
		self._display = display

	def emit (self, record: logging.LogRecord) -> None:

		"""Clear the status line, write the log message, then redraw."""

		try:
			self._display.clear_line()

			msg = self.format(record)
			self._display.stream.write(msg + "\n")
			self._display.stream.flush()

			self._display.draw()

		except Exception:
			self.handleError(record)


class Display:

	"""Status line and scrolling feedback for a ``GameSession``.

	Driven by the session's events and never changes game state, so it can
	be attached or detached at any time.

	Example:
		```python
		display = Display(session)
		display.start()
		...
		display.stop()
		```
	"""

	def __init__ (self, session: "gotrhythm.session.GameSession", stream: typing.Optional[typing.TextIO] = None) -> None:

		self._session = session
		self.stream: typing.TextIO = stream if stream is not None else sys.stderr

		self._active: bool = False
		self._handler: typing.Optional[DisplayLogHandler] = None
		self._saved_handlers: typing.List[logging.Handler] = []
		self._last_line: str = ""
		self._drawn: bool = False

		self.phase_title: str = "Ready"
		self.phase_label: str = "Press begin to start."
		self.beat_in_bar: typing.Optional[int] = None
		self.aggregate: gotrhythm.scoring.AggregateSnapshot = session.aggregate.snapshot()

		self._listeners: typing.List[typing.Tuple[str, typing.Callable[..., typing.Any]]] = [
			("phase", self.on_phase),
			("beat", self.on_beat),
			("feedback", self.on_feedback),
			("aggregate", self.on_aggregate),
			("summary", self.on_summary),
			("tempo", self.on_settings),
			("difficulty", self.on_settings),
		]

	def start (self) -> None:

		"""Subscribe to the session and swap in the status-aware log handler."""

		if self._active:
			return

		self._active = True

		for event_name, callback in self._listeners:
			self._session.events.on(event_name, callback)

		root_logger = logging.getLogger()

		self._saved_handlers = list(root_logger.handlers)
		self._handler = DisplayLogHandler(self)

		if self._saved_handlers and self._saved_handlers[0].formatter:
			self._handler.setFormatter(self._saved_handlers[0].formatter)
		else:
			self._handler.setFormatter(logging.Formatter("%(message)s"))

		root_logger.handlers.clear()
		root_logger.addHandler(self._handler)

		self.update()

	def stop (self) -> None:

		"""Clear the status line, unsubscribe and restore the original log handlers."""

		if not self._active:
			return

		self.clear_line()
		self._active = False

		for event_name, callback in self._listeners:
			try:
				self._session.events.off(event_name, callback)
			except ValueError:
				pass

		root_logger = logging.getLogger()
		root_logger.handlers.clear()

		for handler in self._saved_handlers:
			root_logger.addHandler(handler)

		self._saved_handlers = []
		self._handler = None

	# ------------------------------------------------------------------
	# Session events
	# ------------------------------------------------------------------

	def on_phase (self, title: str, sub_label: str) -> None:

		self.phase_title = title
		self.phase_label = sub_label
		self.update()

	def on_beat (self, index_in_bar: int) -> None:

		self.beat_in_bar = index_in_bar
		self.update()

	def on_feedback (self, text: str) -> None:

		for line in text.splitlines():
			logger.info(line)

	def on_aggregate (self, snapshot: gotrhythm.scoring.AggregateSnapshot) -> None:

		self.aggregate = snapshot
		self.update()

	def on_settings (self, _: typing.Any = None) -> None:

		self.update()

	def on_summary (self, summary: gotrhythm.scoring.GameSummary) -> None:

		self.beat_in_bar = None

		for line in summary.lines():
			logger.info(line)

	# ------------------------------------------------------------------
	# Drawing
	# ------------------------------------------------------------------

	def update (self) -> None:

		"""Rebuild and redraw the status line."""

		if not self._active:
			return

		self._last_line = self._format_status()
		self.draw()

	def draw (self) -> None:

		"""Write the current status line to the terminal."""

		if not self._active or not self._last_line:
			return

		self.stream.write(f"\r\033[K{self._last_line}")
		self.stream.flush()
		self._drawn = True

	def clear_line (self) -> None:

		if not self._active or not self._drawn:
			return

		self.stream.write("\r\033[K")
		self.stream.flush()
		self._drawn = False

	def _format_beats (self) -> str:

		dots = ["o" if index == self.beat_in_bar else "." for index in range(gotrhythm.constants.BEATS_PER_BAR)]

		return "[" + " ".join(dots) + "]"

	def _format_status (self) -> str:

		"""Build the status string from the last events seen."""

		parts: typing.List[str] = []
		snapshot = self.aggregate

		parts.append(f"{self.phase_title} - {self.phase_label}")
		parts.append(f"{self._session.tempo} BPM")
		parts.append(self._session.difficulty)
		parts.append(self._format_beats())

		if snapshot.last_score is not None:
			parts.append(f"Last: {snapshot.last_score}/5")

		if snapshot.rounds:
			parts.append(f"Avg: {snapshot.average_score:.1f}/5 ~{round(snapshot.average_error_ms)}ms")

		parts.append(f"Rounds: {snapshot.rounds}")

		return "  ".join(parts)
