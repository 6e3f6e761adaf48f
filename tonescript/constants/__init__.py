"""Constants for tonescript.

This package contains three sets of constants:

- ``tonescript.constants.velocity`` - MIDI velocity defaults and limits
- ``tonescript.constants.durations`` - Beat-based defaults for note timing
- ``tonescript.constants.limits`` - MIDI pitch bounds, expansion ceiling and numeric tolerances

Import the submodule you need::

    import tonescript.constants.velocity

    tonescript.constants.velocity.DEFAULT_VELOCITY    # 100
"""
