"""Game configuration.

Settings come from an optional YAML file and are overridden by command-line
flags.  Bad values never stop the game: a tempo that is not a number falls
back to the default and is clamped to 40-140 BPM, and an unknown difficulty
falls back to ``simple``.

Example ``config.yaml``::

	game:
	  bpm: 90
	  difficulty: medium
	  seed: 42
	midi:
	  output_device: "Midi Through Port-0"
	  input_device: "Drum Pad"
	display: true
	hotkeys: true
"""

import dataclasses
import logging
import math
import os
import typing

import yaml

import gotrhythm.constants


logger = logging.getLogger(__name__)


def clamp_tempo (value: typing.Any) -> int:

	"""
	Coerce any input to a whole BPM in [40, 140].  Non-numeric input gives the default.
	"""

	try:
		bpm = float(value)
	except (TypeError, ValueError):
		return gotrhythm.constants.DEFAULT_TEMPO

	if not math.isfinite(bpm):
		return gotrhythm.constants.DEFAULT_TEMPO

	return int(max(gotrhythm.constants.MIN_TEMPO, min(gotrhythm.constants.MAX_TEMPO, round(bpm))))


def normalize_difficulty (value: typing.Any) -> str:

	"""Return a known difficulty tier, or the default for anything else."""

	name = str(value).strip().lower() if value is not None else ""

	if name in gotrhythm.constants.DIFFICULTIES:
		return name

	return gotrhythm.constants.DEFAULT_DIFFICULTY


def _section (data: typing.Mapping[str, typing.Any], name: str) -> typing.Mapping[str, typing.Any]:

	"""A config section as a mapping.  Anything else is ignored with a warning."""

	section = data.get(name)

	if section is None:
		return {}

	if not isinstance(section, dict):
		logger.warning(f"Config section '{name}' is not a mapping. Using defaults for it.")
		return {}

	return section


@dataclasses.dataclass
class GameConfig:

	tempo: int = gotrhythm.constants.DEFAULT_TEMPO
	difficulty: str = gotrhythm.constants.DEFAULT_DIFFICULTY
	seed: typing.Optional[int] = None
	output_device: typing.Optional[str] = None
	input_device: typing.Optional[str] = None
	display: bool = True
	hotkeys: bool = True

	@classmethod
	def from_mapping (cls, data: typing.Optional[typing.Mapping[str, typing.Any]]) -> "GameConfig":

		"""Build a config from parsed YAML, ignoring anything unrecognised."""

		data = data or {}
		game = _section(data, "game")
		midi = _section(data, "midi")

		seed = game.get("seed")

		return cls(
			tempo = clamp_tempo(game.get("bpm", gotrhythm.constants.DEFAULT_TEMPO)),
			difficulty = normalize_difficulty(game.get("difficulty")),
			seed = int(seed) if isinstance(seed, int) else None,
			output_device = midi.get("output_device"),
			input_device = midi.get("input_device"),
			display = bool(data.get("display", True)),
			hotkeys = bool(data.get("hotkeys", True))
		)

	def override (self, **values: typing.Any) -> "GameConfig":

		"""Return a copy with every non-``None`` value applied."""

		updates = {key: value for key, value in values.items() if value is not None}

		if "tempo" in updates:
			updates["tempo"] = clamp_tempo(updates["tempo"])

		if "difficulty" in updates:
			updates["difficulty"] = normalize_difficulty(updates["difficulty"])

		return dataclasses.replace(self, **updates)


def load_config (config_path: str = "config.yaml") -> GameConfig:

	"""
	Load configuration from a YAML file.  A missing file gives the defaults.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return GameConfig()

	with open(config_path, "r") as f:
		data = yaml.safe_load(f)

	if data is not None and not isinstance(data, dict):
		logger.warning(f"Config file {config_path} is not a mapping. Using defaults.")
		return GameConfig()

	return GameConfig.from_mapping(data)
