"""Global constants for Cadenza."""

# Pitch names
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Reference pitch
A4_FREQUENCY = 440.0
A4_MIDI = 69

# Audio processing defaults
DEFAULT_SR = 44100
DEFAULT_BUFFER_SIZE = 4096
DEFAULT_MIN_FREQUENCY = 60.0  # ~B1
DEFAULT_MAX_FREQUENCY = 2000.0  # ~B6
DEFAULT_RMS_THRESHOLD = 0.01

# Musical defaults
DEFAULT_TEMPO = 120.0
DEFAULT_TIME_SIGNATURE = "4/4"
DEFAULT_SUBDIVISION = 8  # eighth-note grid
DEFAULT_TEMPO_SUBDIVISION = 4  # quarter note gets the beat
DEFAULT_MEASURE_COUNT = 2
DEFAULT_CHORD_TOLERANCE_MS = 50.0

# Note values from whole to thirty-second
DENOMINATORS = (1, 2, 4, 8, 16, 32)

# Rhythm practice uses a fixed pitch (B4 sits on the middle line)
RHYTHM_NOTE_NAME = "B4"
RHYTHM_PITCH_DECI_HZ = 4939

# MIDI ranges
MIDI_MIN = 0
MIDI_MAX = 127
