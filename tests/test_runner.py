import asyncio
import typing

import pytest

import gotrhythm.clock
import gotrhythm.constants
import gotrhythm.runner
import gotrhythm.session
import gotrhythm.sound_bank

import conftest


class QueuedSource:

	"""Stand-in for the keystroke listener or pad input."""

	def __init__ (self) -> None:

		self.items: typing.List[typing.Tuple[str, float]] = []

	def drain (self) -> typing.List[typing.Tuple[str, float]]:

		items, self.items = self.items, []
		return items


def _session (bank: typing.Any = None) -> gotrhythm.session.GameSession:

	return gotrhythm.session.GameSession(
		sound_bank = bank if bank is not None else conftest.RecordingSoundBank(),
		clock = gotrhythm.clock.MonotonicClock(),
		tempo = 140,
		seed = 1,
	)


@pytest.mark.asyncio
async def test_runner_plays_beats_in_real_time () -> None:

	bank = conftest.RecordingSoundBank()
	session = _session(bank)
	runner = gotrhythm.runner.GameRunner(session, poll_interval=0.005)

	await runner.start()
	await asyncio.sleep(0.5)
	await runner.stop()

	clicks = bank.clicks()

	assert len(clicks) >= 2
	assert clicks[0] == pytest.approx(gotrhythm.constants.START_DELAY_SECONDS, abs=0.05)
	assert clicks[1] - clicks[0] == pytest.approx(60.0 / 140)
	assert session.running is False


@pytest.mark.asyncio
async def test_stop_key_ends_the_loop () -> None:

	session = _session()
	keys = QueuedSource()
	runner = gotrhythm.runner.GameRunner(session, poll_interval=0.005, keystrokes=keys)

	await runner.start()
	await asyncio.sleep(0.05)

	keys.items.append(("q", session.clock.now()))
	runner.notify()

	assert runner.task is not None
	await asyncio.wait_for(runner.task, timeout=1.0)

	assert session.running is False
	assert runner.running is False

	await runner.stop()


@pytest.mark.asyncio
async def test_pad_hits_are_registered_with_their_timestamps () -> None:

	bank = conftest.RecordingSoundBank()
	session = _session(bank)
	pads = QueuedSource()
	runner = gotrhythm.runner.GameRunner(session, poll_interval=0.005, pads=pads)

	await runner.start()

	pads.items.append((gotrhythm.constants.KICK, 0.123))
	runner.notify()
	await asyncio.sleep(0.05)

	await runner.stop()

	assert (gotrhythm.constants.KICK, 0.123, gotrhythm.constants.DRUM_GAIN) in bank.played


@pytest.mark.asyncio
async def test_wake_delay_never_exceeds_the_poll_interval () -> None:

	session = _session()
	runner = gotrhythm.runner.GameRunner(session, poll_interval=0.02)

	await runner.start()

	assert 0.0 <= runner._next_wake_delay() <= 0.02

	await runner.stop()


@pytest.mark.asyncio
async def test_stop_lets_the_midi_fade_out () -> None:

	port = conftest.FakeMidiOut()
	bank = gotrhythm.sound_bank.MidiSoundBank(port=port)
	session = _session(bank)
	runner = gotrhythm.runner.GameRunner(session, poll_interval=0.005)

	await runner.start()
	await asyncio.sleep(0.2)
	await runner.stop()

	controls = [message for message in port.sent if message.type == "control_change"]

	assert bank.pending == 0
	assert 123 in [message.control for message in controls]
	assert controls[-1].control == 7
	assert controls[-1].value == 100


@pytest.mark.asyncio
async def test_start_without_playback_raises () -> None:

	session = gotrhythm.session.GameSession(clock=gotrhythm.clock.MonotonicClock())
	runner = gotrhythm.runner.GameRunner(session)

	with pytest.raises(gotrhythm.sound_bank.PlaybackUnavailableError):
		await runner.start()

	assert runner.task is None
	assert runner.running is False


@pytest.mark.asyncio
async def test_run_until_stopped_returns_when_the_game_ends () -> None:

	session = _session()
	keys = QueuedSource()
	keys.items.append(("q", 0.0))

	runner = gotrhythm.runner.GameRunner(session, poll_interval=0.005, keystrokes=keys)

	await asyncio.wait_for(gotrhythm.runner.run_until_stopped(runner), timeout=2.0)

	assert session.running is False
	assert runner.task is None
