import argparse
import asyncio
import logging
import typing

import gotrhythm.config
import gotrhythm.constants
import gotrhythm.display
import gotrhythm.keystroke
import gotrhythm.midi_input
import gotrhythm.runner
import gotrhythm.session
import gotrhythm.sound_bank


logger = logging.getLogger(__name__)


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(
		prog = "gotrhythm",
		description = "Listen to a one-bar drum rhythm, then play it back in time.",
	)

	parser.add_argument("--bpm", type=float, default=None, help=f"tempo ({gotrhythm.constants.MIN_TEMPO}-{gotrhythm.constants.MAX_TEMPO})")
	parser.add_argument("--difficulty", choices=gotrhythm.constants.DIFFICULTIES, default=None, help="pattern tier")
	parser.add_argument("--output", default=None, help="MIDI output device for playback")
	parser.add_argument("--input", default=None, help="MIDI input device (drum pad) for hits")
	parser.add_argument("--seed", type=int, default=None, help="make pattern choices repeatable")
	parser.add_argument("--config", default="config.yaml", help="YAML config file")
	parser.add_argument("--no-display", action="store_true", help="plain log output instead of the status line")
	parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="logging level")

	return parser


async def play (config: gotrhythm.config.GameConfig, sound_bank: gotrhythm.sound_bank.SoundBank) -> None:

	"""
	Run one game with keyboard and optional pad input until the player stops it.
	"""

	session = gotrhythm.session.GameSession(
		sound_bank = sound_bank,
		tempo = config.tempo,
		difficulty = config.difficulty,
		seed = config.seed,
	)

	display = gotrhythm.display.Display(session) if config.display else None
	keystrokes: typing.Optional[gotrhythm.keystroke.KeystrokeListener] = None
	pads: typing.Optional[gotrhythm.midi_input.MidiPadInput] = None

	runner = gotrhythm.runner.GameRunner(session)

	if config.hotkeys:
		keystrokes = gotrhythm.keystroke.KeystrokeListener(session.clock.now, notify=runner.notify)
		runner.keystrokes = keystrokes

	if config.input_device:
		pads = gotrhythm.midi_input.MidiPadInput(config.input_device, session.clock.now, notify=runner.notify)
		runner.pads = pads

	if display is not None:
		display.start()

	try:
		await runner.start()

		if keystrokes is not None:
			keystrokes.start()

		if pads is not None:
			pads.start()

		await gotrhythm.runner.run_until_stopped(runner)

	finally:
		if keystrokes is not None:
			keystrokes.stop()

		if pads is not None:
			pads.stop()

		if display is not None:
			display.stop()


def main (argv: typing.Optional[typing.Sequence[str]] = None) -> int:

	"""
	Entry point for ``python -m gotrhythm``.  Returns the process exit status.
	"""

	args = build_parser().parse_args(argv)

	logging.basicConfig(level=getattr(logging, args.log_level), format="%(message)s")

	config = gotrhythm.config.load_config(args.config).override(
		tempo = args.bpm,
		difficulty = args.difficulty,
		seed = args.seed,
		output_device = args.output,
		input_device = args.input,
	)

	if args.no_display:
		config = config.override(display=False)

	try:
		sound_bank = gotrhythm.sound_bank.MidiSoundBank(output_device_name=config.output_device)
	except gotrhythm.sound_bank.PlaybackUnavailableError as e:
		logger.error(f"Cannot start: {e}")
		return 1

	try:
		asyncio.run(play(config, sound_bank))
	finally:
		sound_bank.close()

	return 0


if __name__ == "__main__":
	raise SystemExit(main())
