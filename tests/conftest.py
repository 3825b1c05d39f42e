import typing

import mido
import pytest

import gotrhythm.clock
import gotrhythm.constants
import gotrhythm.patterns
import gotrhythm.session


class FakeMidiOut:

	"""MIDI output stub that remembers what was sent."""

	def __init__ (self, name: str = "Dummy MIDI") -> None:

		self.name = name
		self.sent: typing.List[mido.Message] = []
		self.closed = False

	def send (self, message: mido.Message) -> None:

		"""Record an outgoing MIDI message."""

		self.sent.append(message)

	def close (self) -> None:

		self.closed = True


class FakeMidiIn:

	"""Minimal MIDI input stub for tests."""

	def __init__ (self, callback: typing.Optional[typing.Callable] = None) -> None:

		"""Store the callback for injecting test messages."""

		self.callback = callback
		self.closed = False

	def close (self) -> None:

		self.closed = True

	def inject (self, message: mido.Message) -> None:

		"""Simulate receiving a MIDI message by calling the stored callback."""

		if self.callback is not None:
			self.callback(message)


# Module-level references so tests can reach the most recently opened fake ports.
_current_fake_output: typing.Optional[FakeMidiOut] = None
_current_fake_input: typing.Optional[FakeMidiIn] = None


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	fake = FakeMidiOut(name)
	_current_fake_output = fake
	return fake


def _fake_get_input_names () -> list[str]:

	"""Return a fixed list of MIDI input names for tests."""

	return ["Dummy MIDI"]


def _fake_open_input (name: str, callback: typing.Optional[typing.Callable] = None) -> FakeMidiIn:

	"""Return a fake MIDI input regardless of the name."""

	global _current_fake_input
	fake = FakeMidiIn(callback=callback)
	_current_fake_input = fake
	return fake


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use fake MIDI output and input for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)
	monkeypatch.setattr(mido, "get_input_names", _fake_get_input_names)
	monkeypatch.setattr(mido, "open_input", _fake_open_input)


class RecordingSoundBank:

	"""Sound bank that resolves every token to itself and records each play."""

	def __init__ (self, available: typing.Optional[typing.Iterable[str]] = None) -> None:

		self.available = None if available is None else set(available)
		self.played: typing.List[typing.Tuple[str, float, float]] = []
		self.stops: typing.List[float] = []

	def resolve (self, token: str) -> typing.Optional[str]:

		if self.available is not None and token not in self.available:
			return None

		return token

	def play (self, buffer: typing.Any, at: float, gain: float) -> None:

		self.played.append((buffer, at, gain))

	def stop_all (self, fade_seconds: float = gotrhythm.constants.STOP_FADE_SECONDS) -> None:

		self.stops.append(fade_seconds)

	def times (self, *tokens: str) -> typing.List[float]:

		"""Clock times of every play of the given tokens, in play order."""

		return [at for token, at, _ in self.played if token in tokens]

	def clicks (self) -> typing.List[float]:

		return self.times(gotrhythm.constants.METRONOME_HIGH, gotrhythm.constants.METRONOME_LOW)


# Kick, snare, kick, snare on the beat.  At 100 BPM it plays at 0.0, 0.6, 1.2, 1.8 s into the bar.
BACKBEAT = gotrhythm.patterns.make_pattern(
	(0.0, gotrhythm.constants.KICK),
	(1.0, gotrhythm.constants.SNARE),
	(2.0, gotrhythm.constants.KICK),
	(3.0, gotrhythm.constants.SNARE),
)


def run_until (session: gotrhythm.session.GameSession, clock: gotrhythm.clock.ManualClock, until: float, step: float = 0.025) -> None:

	"""Drive a session like the control loop would, polling every ``step`` seconds up to ``until``."""

	while clock.now() + step < until:
		clock.advance(step)
		session.tick()

	clock.set(until)
	session.tick()


@pytest.fixture
def clock () -> gotrhythm.clock.ManualClock:

	return gotrhythm.clock.ManualClock()


@pytest.fixture
def bank () -> RecordingSoundBank:

	return RecordingSoundBank()


@pytest.fixture
def backbeat_library () -> gotrhythm.patterns.PatternLibrary:

	"""A library with a single simple pattern so every round is the same."""

	return gotrhythm.patterns.PatternLibrary(patterns={gotrhythm.constants.SIMPLE: [BACKBEAT]}, seed=1)


@pytest.fixture
def session (clock: gotrhythm.clock.ManualClock, bank: RecordingSoundBank, backbeat_library: gotrhythm.patterns.PatternLibrary) -> gotrhythm.session.GameSession:

	"""A 100 BPM session on a manual clock: beats every 0.6 s from 0.1 s."""

	return gotrhythm.session.GameSession(
		sound_bank = bank,
		clock = clock,
		tempo = 100,
		library = backbeat_library,
		seed = 7,
	)
