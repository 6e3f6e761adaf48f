"""Beat-based duration constants for note timing.

All values are in **beats**, where 1.0 = one quarter note. Notation values are
written in musical beats (the time signature denominator's note value) and
scaled to quarter-note beats by ``4 / denominator``::

    import tonescript.constants.durations as dur

    # A dotted eighth in 4/4
    length = dur.DOTTED_EIGHTH     # 0.75 beats
"""

SIXTEENTH = 0.25
EIGHTH = 0.5
DOTTED_EIGHTH = 0.75
QUARTER = 1.0
HALF = 2.0
WHOLE = 4.0

# Interpreter defaults
DEFAULT_DURATION = QUARTER
DEFAULT_PROBABILITY = 1.0

# Modulation never shortens a note below this
MIN_DURATION = 0.001

# The beat unit every note event is expressed in
QUARTER_NOTE_DENOMINATOR = 4
