"""Sound output.

The game core never produces audio itself.  It asks a sound bank to resolve
an instrument or metronome role to something playable and to play it at an
absolute clock time.  Anything the bank cannot resolve is silently skipped,
so the game keeps running while sounds are still loading or missing.

``MidiSoundBank`` is the bank used for live play: every sound is a General
MIDI percussion note sent to a synth or drum module through ``mido``.
"""

import dataclasses
import heapq
import itertools
import logging
import typing

import mido

import gotrhythm.constants
import gotrhythm.midi_utils


logger = logging.getLogger(__name__)


class PlaybackUnavailableError (RuntimeError):

	"""
	No playback engine could be created.  The game cannot start without one.
	"""


@typing.runtime_checkable
class SoundBank (typing.Protocol):

	"""
	Protocol for the sound bank the game plays through.
	"""

	def resolve (self, token: str) -> typing.Optional[typing.Any]:

		"""Return a playable buffer for an instrument or role, or ``None`` if unavailable."""

		...

	def play (self, buffer: typing.Any, at: float, gain: float) -> None:

		"""Play ``buffer`` at clock time ``at``.  Fire-and-forget."""

		...

	def stop_all (self, fade_seconds: float = gotrhythm.constants.STOP_FADE_SECONDS) -> None:

		"""Fade out and halt everything sounding or queued."""

		...


def play_token (bank: SoundBank, token: str, at: float, gain: float) -> bool:

	"""
	Resolve and play a sound.  Returns ``False`` (and plays nothing) when unavailable.
	"""

	buffer = bank.resolve(token)

	if buffer is None:
		return False

	bank.play(buffer, at, gain)

	return True


class SilentSoundBank:

	"""
	A bank with nothing loaded.  Every sound is unavailable.
	"""

	def resolve (self, token: str) -> typing.Optional[typing.Any]:

		return None

	def play (self, buffer: typing.Any, at: float, gain: float) -> None:

		return None

	def stop_all (self, fade_seconds: float = gotrhythm.constants.STOP_FADE_SECONDS) -> None:

		return None


# General MIDI percussion (channel 10)

GM_DRUM_CHANNEL = 9

GM_NOTE_MAP: typing.Dict[str, int] = {
	gotrhythm.constants.KICK: 36,
	gotrhythm.constants.SNARE: 38,
	gotrhythm.constants.METRONOME_HIGH: 76,
	gotrhythm.constants.METRONOME_LOW: 77,
}

_VOLUME_CC = 7
_ALL_NOTES_OFF_CC = 123
_FULL_VOLUME = 100
_FADE_STEPS = 6


@dataclasses.dataclass (order=True)
class QueuedMessage:

	"""
	A MIDI message waiting for its clock time.
	"""

	time: float
	sequence: int
	message: mido.Message = dataclasses.field(compare=False)


class MidiSoundBank:

	"""
	Plays the game as MIDI percussion notes.

	``play()`` only queues messages; ``flush(now)`` sends everything that is
	due.  The runner flushes on every poll and wakes early for the next due
	message, so timing follows the queue rather than the poll cadence.

	Raises ``PlaybackUnavailableError`` if no MIDI output can be opened.
	"""

	def __init__ (
		self,
		output_device_name: typing.Optional[str] = None,
		port: typing.Optional[typing.Any] = None,
		channel: int = GM_DRUM_CHANNEL,
		note_seconds: float = 0.05,
		note_map: typing.Optional[typing.Mapping[str, int]] = None
	) -> None:

		if port is None:
			output_device_name, port = gotrhythm.midi_utils.select_output_device(output_device_name)

			if port is None:
				raise PlaybackUnavailableError("No MIDI output could be opened for playback")

		self.output_device_name = output_device_name
		self.channel = channel
		self.note_seconds = note_seconds
		self.note_map: typing.Dict[str, int] = dict(GM_NOTE_MAP if note_map is None else note_map)

		self._port: typing.Optional[typing.Any] = port
		self._queue: typing.List[QueuedMessage] = []
		self._counter = itertools.count()
		self._last_flush = 0.0

	@property
	def pending (self) -> int:

		return len(self._queue)

	def resolve (self, token: str) -> typing.Optional[int]:

		return self.note_map.get(token)

	def play (self, buffer: typing.Any, at: float, gain: float) -> None:

		if buffer is None or self._port is None:
			return

		velocity = max(1, min(127, int(round(gain * 127))))

		self._push(at, mido.Message('note_on', channel=self.channel, note=buffer, velocity=velocity))
		self._push(at + self.note_seconds, mido.Message('note_off', channel=self.channel, note=buffer, velocity=0))

	def next_due (self) -> typing.Optional[float]:

		return self._queue[0].time if self._queue else None

	def flush (self, now: float) -> int:

		"""Send every queued message due at or before ``now``.  Late messages go out immediately."""

		self._last_flush = now
		sent = 0

		while self._queue and self._queue[0].time <= now:
			item = heapq.heappop(self._queue)
			self._send(item.message)
			sent += 1

		return sent

	def stop_all (self, fade_seconds: float = gotrhythm.constants.STOP_FADE_SECONDS) -> None:

		"""
		Drop queued notes and ramp the channel volume down before silencing it.

		The ramp is queued from the last flush time, so the runner must keep
		flushing for ``fade_seconds`` for it to be heard.  Volume is restored
		afterwards so the next game starts at full level.
		"""

		if self._port is None:
			return

		fade = max(gotrhythm.constants.MIN_FADE_SECONDS, fade_seconds)
		start = self._last_flush

		self._queue = [item for item in self._queue if item.message.type == 'note_off']
		heapq.heapify(self._queue)

		for step in range(1, _FADE_STEPS + 1):
			value = int(round(_FULL_VOLUME * (1.0 - step / _FADE_STEPS)))
			self._push(start + fade * step / _FADE_STEPS, mido.Message('control_change', channel=self.channel, control=_VOLUME_CC, value=value))

		end = start + fade + 0.02
		self._push(end, mido.Message('control_change', channel=self.channel, control=_ALL_NOTES_OFF_CC, value=0))
		self._push(end, mido.Message('control_change', channel=self.channel, control=_VOLUME_CC, value=_FULL_VOLUME))

		logger.debug(f"Fading out over {fade:.3f}s")

	def close (self) -> None:

		"""Silence the channel and release the port."""

		if self._port is None:
			return

		self._queue = []
		self._send(mido.Message('control_change', channel=self.channel, control=_ALL_NOTES_OFF_CC, value=0))

		try:
			self._port.close()
		except Exception:
			logger.exception("Failed to close MIDI output")

		self._port = None

	def _push (self, time: float, message: mido.Message) -> None:

		heapq.heappush(self._queue, QueuedMessage(time=time, sequence=next(self._counter), message=message))

	def _send (self, message: mido.Message) -> None:

		if self._port is None:
			return

		try:
			self._port.send(message)
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")
