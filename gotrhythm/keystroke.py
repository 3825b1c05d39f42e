"""Keyboard input for playing along in a terminal.

A background thread reads single keystrokes from stdin in cbreak mode and
stamps each one with the playback clock time at which it arrived, so a hit
is judged by when it was played rather than when the control loop next got
round to it.  Arrow-key escape sequences are decoded into ``"left"``,
``"right"``, ``"up"`` and ``"down"``.

**Platform support:** Linux and macOS (needs :mod:`tty` and :mod:`termios`
and a real TTY on stdin).  Elsewhere :data:`KEYBOARD_SUPPORTED` is
``False`` and the listener logs a warning instead of starting.

Default bindings (see :data:`KEY_BINDINGS`):

	k j f <-     kick
	s l d ->     snare
	p space      pause / continue
	r            restart
	q            stop
	+ - up down  tempo +/- 5 BPM
	1 2 3 4      simple / medium / difficult / complex
"""

import logging
import queue
import select
import sys
import threading
import typing

import gotrhythm.constants


if typing.TYPE_CHECKING:
	import gotrhythm.session


logger = logging.getLogger(__name__)


KEYBOARD_SUPPORTED: bool = False
KEYBOARD_UNAVAILABLE_REASON: typing.Optional[str] = None

try:
	import termios
	import tty

	if not sys.stdin.isatty():
		raise OSError("stdin is not a TTY (running in a pipe or non-interactive context)")

	_fd = sys.stdin.fileno()
	_saved = termios.tcgetattr(_fd)
	termios.tcsetattr(_fd, termios.TCSADRAIN, _saved)

	KEYBOARD_SUPPORTED = True

except ImportError:
	KEYBOARD_UNAVAILABLE_REASON = (
		"The 'tty' and 'termios' modules are not available on this platform. "
		"Keyboard play requires a POSIX operating system (Linux or macOS)."
	)
except OSError as _e:
	KEYBOARD_UNAVAILABLE_REASON = f"Keyboard play requires an interactive terminal (TTY) on stdin. Reason: {_e}"
except Exception as _e:
	KEYBOARD_UNAVAILABLE_REASON = f"Keyboard play unavailable: {_e}"


TEMPO_STEP = 5

KEY_BINDINGS: typing.Dict[str, str] = {
	"k": gotrhythm.constants.KICK,
	"j": gotrhythm.constants.KICK,
	"f": gotrhythm.constants.KICK,
	"left": gotrhythm.constants.KICK,
	"s": gotrhythm.constants.SNARE,
	"l": gotrhythm.constants.SNARE,
	"d": gotrhythm.constants.SNARE,
	"right": gotrhythm.constants.SNARE,
	"p": "pause",
	" ": "pause",
	"r": "restart",
	"q": "stop",
	"+": "faster",
	"=": "faster",
	"up": "faster",
	"-": "slower",
	"down": "slower",
	"1": f"difficulty:{gotrhythm.constants.SIMPLE}",
	"2": f"difficulty:{gotrhythm.constants.MEDIUM}",
	"3": f"difficulty:{gotrhythm.constants.DIFFICULT}",
	"4": f"difficulty:{gotrhythm.constants.COMPLEX}",
}

_ESCAPE_SEQUENCES: typing.Dict[str, str] = {
	"\x1b[A": "up",
	"\x1b[B": "down",
	"\x1b[C": "right",
	"\x1b[D": "left",
}


class KeyDecoder:

	"""
	Turns a stream of characters into key names, folding arrow escape sequences.
	"""

	def __init__ (self) -> None:

		self._buffer = ""

	def feed (self, char: str) -> typing.Optional[str]:

		"""Return a key name once one is complete, else ``None``."""

		if not self._buffer and char != "\x1b":
			return char

		self._buffer += char

		if len(self._buffer) == 2 and self._buffer[1] != "[":
			self._buffer = ""
			return char

		if len(self._buffer) < 3:
			return None

		sequence, self._buffer = self._buffer, ""

		return _ESCAPE_SEQUENCES.get(sequence)


def dispatch_key (session: "gotrhythm.session.GameSession", key: str, at: typing.Optional[float] = None) -> typing.Optional[str]:

	"""
	Apply a key to the session.  Returns the action taken, or ``None`` for unbound keys.
	"""

	action = KEY_BINDINGS.get(key if len(key) > 1 else key.lower())

	if action is None:
		return None

	if action in gotrhythm.constants.INSTRUMENTS:
		session.register_hit(action, at=at)

	elif action == "pause":
		session.toggle_pause()

	elif action == "restart":
		session.begin()

	elif action == "stop":
		session.stop()

	elif action == "faster":
		session.set_tempo(session.tempo + TEMPO_STEP)

	elif action == "slower":
		session.set_tempo(session.tempo - TEMPO_STEP)

	elif action.startswith("difficulty:"):
		session.set_difficulty(action.split(":", 1)[1])

	return action


class KeystrokeListener:

	"""
	Background daemon thread that reads and timestamps keystrokes.

	Keys are queued as ``(key, clock_time)`` pairs and collected with
	:meth:`drain`.  ``notify`` is called from the listener thread after each
	key so an idle control loop can wake up at once; it must be thread-safe.

	Terminal settings are always restored when the thread exits.
	"""

	def __init__ (
		self,
		timestamp_fn: typing.Callable[[], float],
		notify: typing.Optional[typing.Callable[[], None]] = None
	) -> None:

		self._timestamp_fn = timestamp_fn
		self._notify = notify
		self._queue: "queue.Queue[typing.Tuple[str, float]]" = queue.Queue()
		self._thread: typing.Optional[threading.Thread] = None
		self._running: bool = False
		self._decoder = KeyDecoder()

		#: ``True`` after a successful :meth:`start` on a supported platform.
		self.active: bool = False

	def start (self) -> None:

		"""Start reading keys.  A second call while running is a no-op."""

		if self._running:
			return

		if not KEYBOARD_SUPPORTED:
			logger.warning(f"Keyboard play is not available on this system. {KEYBOARD_UNAVAILABLE_REASON}")
			return

		self._running = True
		self.active = True
		self._thread = threading.Thread(
			target = self._listen,
			name   = "gotrhythm-keystroke-listener",
			daemon = True,
		)
		self._thread.start()

	def stop (self) -> None:

		"""Ask the thread to exit; it restores the terminal within ~0.1 s."""

		self._running = False
		self.active = False

	def push (self, char: str) -> None:

		"""Feed one character as if it had been typed."""

		key = self._decoder.feed(char)

		if key is None:
			return

		self._queue.put((key, self._timestamp_fn()))

		if self._notify is not None:
			self._notify()

	def drain (self) -> typing.List[typing.Tuple[str, float]]:

		"""Return every ``(key, clock_time)`` received since the last drain."""

		keys: typing.List[typing.Tuple[str, float]] = []

		while True:
			try:
				keys.append(self._queue.get_nowait())
			except queue.Empty:
				break

		return keys

	def _listen (self) -> None:

		import termios  # noqa: PLC0415
		import tty      # noqa: PLC0415

		fd = sys.stdin.fileno()
		old_settings = termios.tcgetattr(fd)

		try:
			tty.setcbreak(fd)

			while self._running:
				ready, _, _ = select.select([sys.stdin], [], [], 0.1)
				if ready:
					char = sys.stdin.read(1)
					if char:
						self.push(char)

		except Exception:
			logger.exception("Keystroke listener stopped unexpectedly")

		finally:
			termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
			self.active = False
