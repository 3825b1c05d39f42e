"""Tests for keyboard play.

Covers:
- KeystrokeListener platform detection and the unsupported-platform warning
- Timestamped key queueing and arrow-key decoding
- dispatch_key() routing keys to session actions
"""

import unittest.mock

import pytest

import gotrhythm.clock
import gotrhythm.constants
import gotrhythm.keystroke as keystroke_mod
import gotrhythm.rounds
import gotrhythm.session

from conftest import run_until


# ---------------------------------------------------------------------------
# KeystrokeListener - platform detection
# ---------------------------------------------------------------------------

class TestKeystrokeListenerPlatform:

	def test_supported_flag_is_bool (self):
		assert isinstance(keystroke_mod.KEYBOARD_SUPPORTED, bool)

	def test_reason_is_string_when_unsupported (self):
		if not keystroke_mod.KEYBOARD_SUPPORTED:
			assert isinstance(keystroke_mod.KEYBOARD_UNAVAILABLE_REASON, str)
			assert len(keystroke_mod.KEYBOARD_UNAVAILABLE_REASON) > 0

	def test_start_on_unsupported_platform_logs_warning_and_does_not_raise (self, caplog):
		listener = keystroke_mod.KeystrokeListener(lambda: 0.0)

		with unittest.mock.patch.object(keystroke_mod, "KEYBOARD_SUPPORTED", False):
			with unittest.mock.patch.object(keystroke_mod, "KEYBOARD_UNAVAILABLE_REASON", "Test: platform not supported"):
				listener.start()

		assert listener.active is False
		assert listener._thread is None
		assert "Test: platform not supported" in caplog.text

	def test_drain_returns_empty_when_never_started (self):
		assert keystroke_mod.KeystrokeListener(lambda: 0.0).drain() == []

	def test_stop_safe_when_never_started (self):
		keystroke_mod.KeystrokeListener(lambda: 0.0).stop()


# ---------------------------------------------------------------------------
# Key queueing and decoding
# ---------------------------------------------------------------------------

class TestKeyQueue:

	def test_keys_are_stamped_when_pushed (self):
		times = iter([1.0, 1.25])
		notified: list[bool] = []

		listener = keystroke_mod.KeystrokeListener(lambda: next(times), notify=lambda: notified.append(True))

		listener.push("k")
		listener.push("s")

		assert listener.drain() == [("k", 1.0), ("s", 1.25)]
		assert listener.drain() == []
		assert notified == [True, True]

	def test_arrow_keys_are_decoded (self):
		listener = keystroke_mod.KeystrokeListener(lambda: 2.0)

		for char in "\x1b[D\x1b[Cx\x1b[A\x1b[B":
			listener.push(char)

		assert [key for key, _ in listener.drain()] == ["left", "right", "x", "up", "down"]

	def test_escape_followed_by_a_plain_key_keeps_the_key (self):
		decoder = keystroke_mod.KeyDecoder()

		assert decoder.feed("\x1b") is None
		assert decoder.feed("q") == "q"
		assert decoder.feed("k") == "k"

	def test_unknown_escape_sequences_are_dropped (self):
		decoder = keystroke_mod.KeyDecoder()

		assert [decoder.feed(char) for char in "\x1b[Zk"] == [None, None, None, "k"]


# ---------------------------------------------------------------------------
# dispatch_key
# ---------------------------------------------------------------------------

class TestDispatchKey:

	@pytest.fixture
	def running (self, session: gotrhythm.session.GameSession, clock: gotrhythm.clock.ManualClock) -> gotrhythm.session.GameSession:

		"""A session in its first Play bar, with the capture window open."""

		session.begin()
		run_until(session, clock, 7.5)

		return session

	@pytest.mark.parametrize("key, instrument", [
		("k", "kick"), ("j", "kick"), ("f", "kick"), ("left", "kick"), ("K", "kick"),
		("s", "snare"), ("l", "snare"), ("d", "snare"), ("right", "snare"),
	])
	def test_hit_keys_play_and_capture (self, running: gotrhythm.session.GameSession, key: str, instrument: str):
		assert keystroke_mod.dispatch_key(running, key, at=7.6) == instrument
		assert running.capture.hits[-1].instrument == instrument
		assert running.capture.hits[-1].time == 7.6

	def test_pause_keys_toggle (self, running: gotrhythm.session.GameSession):
		keystroke_mod.dispatch_key(running, "p")

		assert running.paused is True

		keystroke_mod.dispatch_key(running, " ")

		assert running.paused is False

	def test_tempo_keys_step_by_five (self, running: gotrhythm.session.GameSession):
		keystroke_mod.dispatch_key(running, "+")

		assert running.tempo == 105

		keystroke_mod.dispatch_key(running, "-")
		keystroke_mod.dispatch_key(running, "down")

		assert running.tempo == 95

	def test_number_keys_pick_the_difficulty (self, running: gotrhythm.session.GameSession):
		assert keystroke_mod.dispatch_key(running, "3") == "difficulty:difficult"
		assert running.difficulty == gotrhythm.constants.DIFFICULT

	def test_restart_key_counts_in_again (self, running: gotrhythm.session.GameSession):
		keystroke_mod.dispatch_key(running, "r")

		assert running.running is True
		assert running.phase == gotrhythm.rounds.COUNT_IN

	def test_stop_key_ends_the_game (self, running: gotrhythm.session.GameSession):
		keystroke_mod.dispatch_key(running, "q")

		assert running.running is False

	def test_restart_key_starts_a_stopped_game (self, session: gotrhythm.session.GameSession):
		keystroke_mod.dispatch_key(session, "r")

		assert session.running is True

	def test_unbound_keys_do_nothing (self, running: gotrhythm.session.GameSession):
		assert keystroke_mod.dispatch_key(running, "z") is None
		assert keystroke_mod.dispatch_key(running, "pageup") is None
		assert running.capture.hits == []
