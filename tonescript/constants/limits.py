"""Pitch bounds, expansion ceiling and numeric tolerances."""

# MIDI pitch range
MIN_PITCH = 0
MAX_PITCH = 127

# Octave numbering: C3 = 60, so C-2 = 0 and G8 = 127
MIN_OCTAVE = -2
MAX_OCTAVE = 8
OCTAVE_OFFSET = 2

# Largest number of elements a single notation string may expand to
DEFAULT_MAX_ELEMENTS = 10000

# Two start times closer than this are treated as simultaneous
TIME_EPSILON = 0.001

# Decimal places used when writing numbers back to text
FORMAT_DECIMALS = 6
BAR_BEAT_DECIMALS = 3
