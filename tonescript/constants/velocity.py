"""MIDI velocity constants.

Velocity is the MIDI attack strength (0-127). A note event always carries a
velocity of at least 1; velocity 0 is only meaningful in notation, where it
marks a note that should not sound.
"""

# Primary default
DEFAULT_VELOCITY = 100

# Notation accepts the full MIDI range
MIN_VELOCITY = 0
MAX_VELOCITY = 127

# Emitted note events never go below this
MIN_EVENT_VELOCITY = 1

# Spread added on top of the base velocity by the host on each trigger
DEFAULT_VELOCITY_DEVIATION = 0
MAX_VELOCITY_DEVIATION = 127
