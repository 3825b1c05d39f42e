"""
Got Rhythm - a call-and-response rhythm game over MIDI.

The game plays a one-bar drum pattern (kick and snare), gives the player a
bar to get ready, listens while they play it back on the keyboard or a MIDI
drum pad, and scores how closely the hits matched.  Then it does it again,
forever, with a steady metronome underneath and a running average.

- **Steady timing.** Beats, pattern notes and hits all
  live on one playback clock; a look-ahead scheduler hands sounds to the
  output ahead of time so a busy control loop never makes the music late.
- **Fair scoring.** Hits are matched greedily to the nearest unclaimed
  expected event of the same instrument, and a round is judged on timing
  error plus weighted penalties for misses and extras.
- **Four tiers.** Simple, medium, difficult and complex (swung) patterns;
  difficulty and tempo can change mid-game and apply from the next round
  or beat.
- **Pause that really pauses.** The playback clock stops, so a resumed
  game carries on exactly where it left off.

Play from the command line:

```
python -m gotrhythm --bpm 90 --difficulty medium
```

Or drive a session yourself:

```python
import gotrhythm

session = gotrhythm.GameSession(sound_bank=my_bank, seed=1)
session.begin()

while session.running:
	session.tick()
	...
```
"""

import gotrhythm.capture
import gotrhythm.clock
import gotrhythm.patterns
import gotrhythm.scoring
import gotrhythm.session
import gotrhythm.sound_bank


GameSession = gotrhythm.session.GameSession
PatternLibrary = gotrhythm.patterns.PatternLibrary
Onset = gotrhythm.patterns.Onset
TimedEvent = gotrhythm.patterns.TimedEvent
Hit = gotrhythm.capture.Hit
ScoreResult = gotrhythm.scoring.ScoreResult
ScoringConfig = gotrhythm.scoring.ScoringConfig
score_round = gotrhythm.scoring.score_round
MonotonicClock = gotrhythm.clock.MonotonicClock
ManualClock = gotrhythm.clock.ManualClock
MidiSoundBank = gotrhythm.sound_bank.MidiSoundBank
PlaybackUnavailableError = gotrhythm.sound_bank.PlaybackUnavailableError
