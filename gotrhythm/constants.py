"""Timing, audio and game constants.

Times are in seconds on the playback clock unless the name says otherwise.
Beat positions are in beats relative to the start of a 4-beat bar.

Scheduling:
- ``LOOKAHEAD_SECONDS`` - how far ahead of the clock beats are handed to the
  sound bank.
- ``POLL_INTERVAL_SECONDS`` - cadence of the control loop that drives the
  scheduler.  The loop may lag; the look-ahead absorbs it.
"""

# Scheduler

LOOKAHEAD_SECONDS = 0.14
POLL_INTERVAL_SECONDS = 0.025
START_DELAY_SECONDS = 0.10
RESUME_MARGIN_SECONDS = 0.05

# Bar and cycle layout (4/4 only)

BEATS_PER_BAR = 4
CYCLE_BEATS = 16
COUNT_IN_BEATS = 4

# Capture window margins around the play bar, in beats

CAPTURE_EARLY_BEATS = 0.5
CAPTURE_LATE_BEATS = 0.5

# Tempo

MIN_TEMPO = 40
MAX_TEMPO = 140
DEFAULT_TEMPO = 70

# Gains (0.0 - 1.0)

METRONOME_GAIN = 0.55
DRUM_GAIN = 0.95

# Fades

STOP_FADE_SECONDS = 0.06
MIN_FADE_SECONDS = 0.02

# Swing: an offbeat eighth lands two thirds of the way through the beat

SWING_FIRST_FRACTION = 2.0 / 3.0
SWING_TOLERANCE = 1e-6

# Instruments the player can hit

KICK = "kick"
SNARE = "snare"
INSTRUMENTS = (KICK, SNARE)

# Metronome roles

METRONOME_HIGH = "metronome_high"
METRONOME_LOW = "metronome_low"

# Difficulty tiers, easiest first

SIMPLE = "simple"
MEDIUM = "medium"
DIFFICULT = "difficult"
COMPLEX = "complex"
DIFFICULTIES = (SIMPLE, MEDIUM, DIFFICULT, COMPLEX)
DEFAULT_DIFFICULTY = SIMPLE
