"""Periodic waveforms for modulation.

Each waveform maps a *phase* (cycles, any real number) to an output in
[-1, 1]. Only the fractional part of the phase matters, so ``phase`` and
``phase + 1`` give the same value.

They back the ``cos()``, ``sin()``, ``tri()``, ``saw()`` and ``square()``
functions of the modulation language, where the phase is
``(position / period) % 1 + offset``:

    velocity += 20 * cos(1:0t)          # one cycle per bar, peak on the downbeat
    velocity += 20 * square(2t, 0, .25) # on for the first quarter of every 2 beats

Available shapes:
    "cos"     1 at phase 0, -1 at 0.5.
    "sin"     0 at phase 0, 1 at 0.25.
    "tri"     0 at phase 0, 1 at 0.25, -1 at 0.75.
    "saw"     0 at phase 0, rising towards 1 and jumping to -1 at 0.5.
    "square"  1 while the phase is below the pulse width, otherwise -1.
"""

import math
import typing


# ─── Waveforms ────────────────────────────────────────────────────────────────

def cos (phase: float) -> float:
    """Cosine: starts at the peak."""
    return math.cos(2 * math.pi * phase)


def sin (phase: float) -> float:
    """Sine: starts at zero, rising."""
    return math.sin(2 * math.pi * phase)


def tri (phase: float) -> float:

    """Triangle with the same zero crossings and peaks as ``sin``."""

    p = phase % 1.0

    if p < 0.25:
        return 4 * p

    if p < 0.75:
        return 2 - 4 * p

    return 4 * p - 4


def saw (phase: float) -> float:

    """Rising sawtooth, zero at phase 0, wrapping from 1 to -1 at half a cycle."""

    return 2 * ((phase + 0.5) % 1.0) - 1


def square (phase: float, pulse_width: float = 0.5) -> float:

    """Pulse wave: 1 for the first ``pulse_width`` of each cycle, -1 for the rest."""

    return 1.0 if (phase % 1.0) < pulse_width else -1.0


# ─── Registry and lookup ──────────────────────────────────────────────────────

WaveformFn = typing.Callable[..., float]

WAVEFORMS: typing.Dict[str, WaveformFn] = {
    "cos":    cos,
    "sin":    sin,
    "tri":    tri,
    "saw":    saw,
    "square": square,
}


def get_waveform (name: str) -> WaveformFn:

    """Return the waveform called *name*.

    Raises :class:`ValueError` for unknown names.
    """

    if name not in WAVEFORMS:
        available = ", ".join(f'"{k}"' for k in sorted(WAVEFORMS))
        raise ValueError(
            f"Unknown waveform {name!r}. Available waveforms: {available}"
        )

    return WAVEFORMS[name]


def phase_at (position: float, period: float, offset: float = 0.0) -> float:

    """Phase of a waveform with *period* beats at *position*, plus *offset* cycles."""

    return (position / period) % 1.0 + offset
