import logging
import typing

import mido


logger = logging.getLogger(__name__)


def _prompt_for_device (kind: str, names: typing.List[str]) -> str:

	"""Ask on the console which of several devices to use."""

	print(f"\nAvailable MIDI {kind} devices:\n")

	for i, name in enumerate(names, 1):
		print(f"  {i}. {name}")

	print()

	while True:
		try:
			choice = int(input(f"Select a device (1-{len(names)}): "))
			if 1 <= choice <= len(names):
				break
		except (ValueError, EOFError):
			pass
		print(f"Enter a number between 1 and {len(names)}.")

	selected = names[choice - 1]

	print(f"\nTip: pass --output \"{selected}\" (or set midi.output_device in config.yaml) to skip this prompt.\n")

	return selected


def select_output_device (device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Open a MIDI output for playback.

	With ``device_name`` that device is opened.  Without it, a single
	available device is used directly and several prompt on the console.

	Returns:
		``(device_name, port)``, or ``(None, None)`` when nothing could be opened.
	"""

	try:
		outputs = mido.get_output_names()
		logger.info(f"Available MIDI outputs: {outputs}")

		if not outputs:
			logger.error("No MIDI output devices found.")
			return None, None

		if device_name is not None:
			if device_name not in outputs:
				logger.error(f"MIDI output device '{device_name}' not found. Available devices: {outputs}")
				return None, None
			selected = device_name

		elif len(outputs) == 1:
			selected = outputs[0]
			logger.info(f"One MIDI output found - using '{selected}'")

		else:
			selected = _prompt_for_device("output", outputs)

		port = mido.open_output(selected)
		logger.info(f"Opened MIDI output: {selected}")

		return selected, port

	except Exception as e:
		logger.error(f"Failed to open MIDI output: {e}")
		return None, None


def select_input_device (
	device_name: typing.Optional[str],
	callback: typing.Callable[[typing.Any], None]
) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Open a MIDI input (a drum pad) by name.  Input is optional, so there is no prompt.

	Returns:
		``(device_name, port)``, or ``(None, None)`` when the device is missing.
	"""

	if device_name is None:
		return None, None

	try:
		inputs = mido.get_input_names()
		logger.info(f"Available MIDI inputs: {inputs}")

		if device_name not in inputs:
			logger.warning(f"MIDI input device '{device_name}' not found - pad input disabled.")
			return None, None

		port = mido.open_input(device_name, callback=callback)
		logger.info(f"Opened MIDI input: {device_name}")

		return device_name, port

	except Exception as e:
		logger.error(f"Failed to open MIDI input: {e}")
		return None, None
