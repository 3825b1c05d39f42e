import random

import pytest

import gotrhythm.constants
import gotrhythm.patterns


def test_onset_rejects_offsets_outside_the_bar () -> None:

	with pytest.raises(ValueError):
		gotrhythm.patterns.Onset(beat_offset=4.0, instrument=gotrhythm.constants.KICK)

	with pytest.raises(ValueError):
		gotrhythm.patterns.Onset(beat_offset=-0.25, instrument=gotrhythm.constants.KICK)


def test_onset_rejects_unknown_instruments () -> None:

	with pytest.raises(ValueError):
		gotrhythm.patterns.Onset(beat_offset=0.0, instrument="cowbell")


def test_make_pattern_orders_by_offset () -> None:

	pattern = gotrhythm.patterns.make_pattern((2, "kick"), (0, "kick"), (1, "snare"))

	assert [onset.beat_offset for onset in pattern] == [0, 1, 2]


def test_built_in_tiers_are_valid () -> None:

	"""Every tier has patterns, each non-empty and inside one bar."""

	library = gotrhythm.patterns.PatternLibrary(seed=1)

	assert library.difficulties() == list(gotrhythm.constants.DIFFICULTIES)

	for tier in gotrhythm.constants.DIFFICULTIES:
		for pattern in gotrhythm.patterns.PATTERNS[tier]:
			assert len(pattern) > 0
			assert all(0 <= onset.beat_offset < 4 for onset in pattern)


def test_seeded_draws_are_repeatable () -> None:

	first = gotrhythm.patterns.PatternLibrary(seed=42)
	second = gotrhythm.patterns.PatternLibrary(seed=42)

	draws_a = [first.draw("medium") for _ in range(10)]
	draws_b = [second.draw("medium") for _ in range(10)]

	assert draws_a == draws_b


def test_draw_comes_from_the_requested_tier () -> None:

	library = gotrhythm.patterns.PatternLibrary(rng=random.Random(5))

	for _ in range(20):
		assert library.draw("difficult") in gotrhythm.patterns.PATTERNS["difficult"]


def test_unknown_tier_falls_back_to_simple (caplog: pytest.LogCaptureFixture) -> None:

	library = gotrhythm.patterns.PatternLibrary(seed=1)

	assert library.tier_for("impossible") == gotrhythm.constants.SIMPLE
	assert library.draw("impossible") in gotrhythm.patterns.PATTERNS["simple"]
	assert "impossible" in caplog.text


def test_empty_tier_falls_back_to_simple () -> None:

	simple = gotrhythm.patterns.make_pattern((0, "kick"))
	library = gotrhythm.patterns.PatternLibrary(patterns={"simple": [simple], "complex": []}, seed=1)

	assert library.difficulties() == ["simple"]
	assert library.draw("complex") == simple


def test_missing_fallback_tier_raises () -> None:

	library = gotrhythm.patterns.PatternLibrary(patterns={"simple": []})

	with pytest.raises(ValueError):
		library.draw("medium")
