import logging
import queue
import typing

import gotrhythm.constants
import gotrhythm.midi_utils


logger = logging.getLogger(__name__)


# General MIDI kick and snare notes sent by most drum pads.
PAD_NOTE_MAP: typing.Dict[int, str] = {
	35: gotrhythm.constants.KICK,
	36: gotrhythm.constants.KICK,
	38: gotrhythm.constants.SNARE,
	40: gotrhythm.constants.SNARE,
}


class MidiPadInput:

	"""
	Hits from a MIDI drum pad or keyboard.

	mido delivers messages on its own thread; each mapped note-on is stamped
	with the playback clock time on arrival and queued for the control loop
	to collect with :meth:`drain`.
	"""

	def __init__ (
		self,
		device_name: str,
		timestamp_fn: typing.Callable[[], float],
		notify: typing.Optional[typing.Callable[[], None]] = None,
		note_map: typing.Optional[typing.Mapping[int, str]] = None
	) -> None:

		self.device_name = device_name
		self.note_map: typing.Dict[int, str] = dict(PAD_NOTE_MAP if note_map is None else note_map)

		self._timestamp_fn = timestamp_fn
		self._notify = notify
		self._queue: "queue.Queue[typing.Tuple[str, float]]" = queue.Queue()
		self._port: typing.Optional[typing.Any] = None

	@property
	def active (self) -> bool:

		return self._port is not None

	def start (self) -> bool:

		"""Open the input.  Returns ``False`` (and logs) when the device is missing."""

		if self._port is not None:
			return True

		name, port = gotrhythm.midi_utils.select_input_device(self.device_name, self._on_message)

		if port is None:
			return False

		self.device_name = name or self.device_name
		self._port = port

		return True

	def stop (self) -> None:

		if self._port is None:
			return

		try:
			self._port.close()
		except Exception:
			logger.exception("Failed to close MIDI input")

		self._port = None

	def drain (self) -> typing.List[typing.Tuple[str, float]]:

		"""Return every ``(instrument, clock_time)`` received since the last drain."""

		hits: typing.List[typing.Tuple[str, float]] = []

		while True:
			try:
				hits.append(self._queue.get_nowait())
			except queue.Empty:
				break

		return hits

	def _on_message (self, message: typing.Any) -> None:

		# A note-on with velocity 0 is a note-off.
		if message.type != 'note_on' or message.velocity == 0:
			return

		instrument = self.note_map.get(message.note)

		if instrument is None:
			return

		self._queue.put((instrument, self._timestamp_fn()))

		if self._notify is not None:
			self._notify()
