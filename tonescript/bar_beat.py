"""Bar|beat time conversion.

Two textual forms describe musical time:

- **Position** ``bar|beat`` - 1-indexed bar, 1-indexed (possibly fractional)
  beat. ``1|1`` is the very start.
- **Duration** ``bars:beats`` - a length with no offset. ``1:0`` is one bar.

Beats inside the text are *musical* beats: one beat is one note of the time
signature's denominator. Results are always in quarter-note beats (the unit
note events are stored in), so a musical beat is scaled by ``4 / denominator``.

Fractional beats may be written as a decimal (``2.5``), a fraction (``4/3``)
or a whole number plus a fraction (``2+1/3``).

Example:
	```python
	bar_beat_to_beats("2|1", 4, 4)    # 4.0
	bar_beat_to_beats("2|1", 6, 8)    # 3.0
	bar_beat_duration_to_beats("1:2", 4, 4)    # 6.0
	```
"""

import math
import re
import typing

import tonescript.constants.durations
import tonescript.constants.limits
import tonescript.errors


_BEAT_VALUE = r"-?\d+(?:\+\d+/\d+|\.\d+|/\d+)?"

POSITION_PATTERN = re.compile(rf"^(-?\d+)\|({_BEAT_VALUE})$")
DURATION_PATTERN = re.compile(rf"^(-?\d+):({_BEAT_VALUE})$")
BEAT_PATTERN = re.compile(r"^-?(?:\d+(?:\+\d+/\d+|\.\d*|/\d+)?|\.\d+)$")


def _check_time_signature (numerator: int, denominator: int) -> None:

	if numerator <= 0 or denominator <= 0:
		raise ValueError(f"Time signature must be positive, got {numerator}/{denominator}")


def beats_per_bar (numerator: int, denominator: int) -> float:

	"""Return the length of one bar in quarter-note beats."""

	_check_time_signature(numerator, denominator)

	return numerator * tonescript.constants.durations.QUARTER_NOTE_DENOMINATOR / denominator


def musical_to_beats (value: float, denominator: int) -> float:

	"""Scale musical beats (denominator notes) to quarter-note beats."""

	return value * tonescript.constants.durations.QUARTER_NOTE_DENOMINATOR / denominator


def beats_to_musical (value: float, denominator: int) -> float:

	"""Scale quarter-note beats to musical beats (denominator notes)."""

	return value * denominator / tonescript.constants.durations.QUARTER_NOTE_DENOMINATOR


def parse_beat_value (text: str, context: typing.Optional[str] = None, format_type: str = "duration") -> float:

	"""
	Parse a beat count written as ``2``, ``2.5``, ``.5``, ``4/3`` or ``2+1/3``.

	Raises `FormatError` when the text is not one of those forms or divides by
	zero.
	"""

	context = text if context is None else context

	if not BEAT_PATTERN.match(text):
		raise tonescript.errors.FormatError(f"Invalid {format_type} format: {context!r}")

	if "/" in text:
		whole = 0
		fraction = text

		if "+" in text:
			whole_text, fraction = text.split("+", 1)
			whole = int(whole_text)

		top, bottom = fraction.split("/", 1)

		if int(bottom) == 0:
			raise tonescript.errors.FormatError(f"Invalid {format_type} format: division by zero in {context!r}")

		return whole + int(top) / int(bottom)

	return float(text)


def bar_beat_to_beats (position: str, numerator: int = 4, denominator: int = 4) -> float:

	"""
	Convert a ``bar|beat`` position to 0-indexed quarter-note beats.

	Parameters:
		position: Text such as ``"1|1"``, ``"3|2.5"``, ``"1|4/3"`` or ``"2|2+1/3"``.
		numerator: Time signature numerator (musical beats per bar).
		denominator: Time signature denominator (the note value of one beat).

	Returns:
		``((bar - 1) * numerator + (beat - 1)) * 4 / denominator``

	Raises:
		FormatError: If the text is not a ``bar|beat`` position.
		ValueError: If the bar or beat is below 1.
	"""

	_check_time_signature(numerator, denominator)

	match = POSITION_PATTERN.match(position.strip())

	if not match:
		raise tonescript.errors.FormatError(
			f"Invalid bar|beat format: {position!r}. Expected \"{{int}}|{{beat}}\" like \"1|2\", \"2|3.5\", \"1|4/3\" or \"1|2+1/3\""
		)

	bar = int(match.group(1))
	beat = parse_beat_value(match.group(2), position, "bar|beat")

	if bar < 1:
		raise ValueError(f"Bar number must be 1 or greater, got: {bar}")

	if beat < 1:
		raise ValueError(f"Beat must be 1 or greater, got: {format_number(beat)}")

	return musical_to_beats((bar - 1) * numerator + (beat - 1), denominator)


def bar_beat_duration_to_beats (duration: str, numerator: int = 4, denominator: int = 4) -> float:

	"""
	Convert a ``bars:beats`` duration to quarter-note beats.

	A plain beat count (``"2"``, ``"1.5"``, ``"4/3"``) is accepted too and
	means that many musical beats. Positions (``|``) are rejected.

	Example:
		```python
		bar_beat_duration_to_beats("1:0", 4, 4)     # 4.0
		bar_beat_duration_to_beats("0:1.5", 6, 8)   # 0.75
		bar_beat_duration_to_beats("2", 4, 4)       # 2.0
		```
	"""

	_check_time_signature(numerator, denominator)

	text = duration.strip()

	if "|" in text:
		raise tonescript.errors.FormatError(f"Invalid duration format: {duration!r} is a bar|beat position, use bars:beats")

	if ":" in text:
		match = DURATION_PATTERN.match(text)

		if not match:
			raise tonescript.errors.FormatError(
				f"Invalid bar:beat duration format: {duration!r}. Expected \"{{int}}:{{beat}}\" like \"1:2\", \"2:1.5\" or \"0:4/3\""
			)

		bars = int(match.group(1))
		beats = parse_beat_value(match.group(2), duration)

		if bars < 0:
			raise ValueError(f"Bars in duration must be 0 or greater, got: {bars}")

		if beats < 0:
			raise ValueError(f"Beats in duration must be 0 or greater, got: {format_number(beats)}")

		return musical_to_beats(bars * numerator + beats, denominator)

	beats = parse_beat_value(text, duration)

	if beats < 0:
		raise ValueError(f"Duration cannot be negative, got: {format_number(beats)}")

	return musical_to_beats(beats, denominator)


def format_number (value: float, decimals: int = tonescript.constants.limits.BAR_BEAT_DECIMALS) -> str:

	"""
	Format a number with at most ``decimals`` places and no trailing zeros.

	``2.0`` becomes ``"2"``, ``0.5`` becomes ``"0.5"`` and ``1/3`` becomes
	``"0.333"`` at the default precision.
	"""

	text = f"{value:.{decimals}f}"

	if "." in text:
		text = text.rstrip("0").rstrip(".")

	if text in ("-0", ""):
		text = "0"

	return text


def beats_to_bar_beat (beats: float, numerator: int = 4, denominator: int = 4) -> str:

	"""
	Convert 0-indexed quarter-note beats back to a ``bar|beat`` position.

	Raises `ValueError` for negative input.
	"""

	_check_time_signature(numerator, denominator)

	if beats < 0:
		raise ValueError(f"Position cannot be negative, got: {beats}")

	musical = beats_to_musical(beats, denominator)
	bar = math.floor(musical / numerator + 1e-9) + 1
	beat = musical - (bar - 1) * numerator + 1

	return f"{bar}|{format_number(max(beat, 1.0))}"


def beats_to_bar_beat_duration (beats: float, numerator: int = 4, denominator: int = 4) -> str:

	"""Convert quarter-note beats back to a ``bars:beats`` duration."""

	_check_time_signature(numerator, denominator)

	if beats < 0:
		raise ValueError(f"Duration cannot be negative, got: {beats}")

	musical = beats_to_musical(beats, denominator)
	bars = math.floor(musical / numerator + 1e-9)
	remaining = max(musical - bars * numerator, 0.0)

	return f"{bars}:{format_number(remaining)}"


def bar_beat_of (beats: float, numerator: int = 4, denominator: int = 4) -> typing.Tuple[int, float]:

	"""Return ``(bar, beat)`` numbers (both 1-indexed) for a quarter-note position."""

	_check_time_signature(numerator, denominator)

	musical = beats_to_musical(max(beats, 0.0), denominator)
	bar = math.floor(musical / numerator + 1e-9) + 1

	return bar, max(musical - (bar - 1) * numerator + 1, 1.0)
