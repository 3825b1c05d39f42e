import mido
import pytest

import gotrhythm.midi_input
import gotrhythm.midi_utils

import conftest


def _pads (notified: list | None = None) -> gotrhythm.midi_input.MidiPadInput:

	notify = (lambda: notified.append(True)) if notified is not None else None

	return gotrhythm.midi_input.MidiPadInput("Dummy MIDI", timestamp_fn=lambda: 4.25, notify=notify)


def test_pad_hits_are_timestamped_on_arrival (patch_midi: None) -> None:

	notified: list[bool] = []
	pads = _pads(notified)

	assert pads.start() is True
	assert pads.active is True

	conftest._current_fake_input.inject(mido.Message("note_on", note=36, velocity=100, channel=9))
	conftest._current_fake_input.inject(mido.Message("note_on", note=38, velocity=90, channel=9))

	assert pads.drain() == [("kick", 4.25), ("snare", 4.25)]
	assert pads.drain() == []
	assert notified == [True, True]


@pytest.mark.parametrize("note, instrument", [(35, "kick"), (36, "kick"), (38, "snare"), (40, "snare")])
def test_general_midi_drum_notes_are_mapped (patch_midi: None, note: int, instrument: str) -> None:

	pads = _pads()
	pads.start()

	conftest._current_fake_input.inject(mido.Message("note_on", note=note, velocity=100))

	assert pads.drain() == [(instrument, 4.25)]


def test_note_offs_and_unmapped_notes_are_ignored (patch_midi: None) -> None:

	pads = _pads()
	pads.start()

	conftest._current_fake_input.inject(mido.Message("note_on", note=36, velocity=0))
	conftest._current_fake_input.inject(mido.Message("note_off", note=36))
	conftest._current_fake_input.inject(mido.Message("note_on", note=42, velocity=100))
	conftest._current_fake_input.inject(mido.Message("control_change", control=7, value=10))

	assert pads.drain() == []


def test_missing_device_disables_pad_input (patch_midi: None, caplog: pytest.LogCaptureFixture) -> None:

	pads = gotrhythm.midi_input.MidiPadInput("Nope", timestamp_fn=lambda: 0.0)

	assert pads.start() is False
	assert pads.active is False
	assert "not found" in caplog.text


def test_stop_closes_the_port (patch_midi: None) -> None:

	pads = _pads()
	pads.start()
	port = conftest._current_fake_input

	pads.stop()

	assert port.closed is True
	assert pads.active is False

	pads.stop()


def test_no_input_device_opens_nothing () -> None:

	assert gotrhythm.midi_utils.select_input_device(None, lambda message: None) == (None, None)


def test_named_output_device_is_opened (patch_midi: None) -> None:

	name, port = gotrhythm.midi_utils.select_output_device("Dummy MIDI")

	assert name == "Dummy MIDI"
	assert isinstance(port, conftest.FakeMidiOut)


def test_several_outputs_prompt_for_a_choice (monkeypatch: pytest.MonkeyPatch, patch_midi: None) -> None:

	monkeypatch.setattr(mido, "get_output_names", lambda: ["Synth A", "Synth B"])
	answers = iter(["9", "x", "2"])
	monkeypatch.setattr("builtins.input", lambda prompt: next(answers))

	name, port = gotrhythm.midi_utils.select_output_device()

	assert name == "Synth B"
	assert port.name == "Synth B"
