"""Write note events back as notation text.

`format_notation` produces canonical tone notation: notes sorted by start,
simultaneous notes gathered into chords, every modifier written only when it
differs from what the interpreter would carry forward, and gaps written as
rests or ``t`` suffixes. Repetition is never re-inferred, so the text is
always in expanded form.

`format_barbeat` writes the same notes in the bar|beat dialect.

Interpreting the parsed output of either function reproduces the input notes
(up to enharmonic spelling and float precision).
"""

import collections
import dataclasses
import typing

import tonescript.bar_beat
import tonescript.constants.durations
import tonescript.constants.limits
import tonescript.constants.velocity
import tonescript.events
import tonescript.notation.interpreter
import tonescript.pitch


@dataclasses.dataclass
class _Carried:

	"""What the interpreter will have in force when it reads the next element."""

	velocity: int
	velocity_deviation: int
	duration: float
	probability: float
	time_until_next: typing.Optional[float] = None


def format_notation (notes: typing.Sequence[tonescript.events.NoteEvent], numerator: int = 4, denominator: int = 4, spelling: typing.Optional[typing.Sequence[str]] = None, defaults: typing.Optional[tonescript.notation.interpreter.InterpreterDefaults] = None, compact: bool = False) -> str:

	"""
	Format note events as canonical tone notation.

	Parameters:
		notes: Events to format, in any order.
		numerator: Time signature numerator.
		denominator: Time signature denominator. Times are written in
			musical beats, so a quarter-note beat is written as 2 in x/8.
		spelling: Twelve pitch-class names, one per pitch class. Defaults to
			`tonescript.pitch.DEFAULT_SPELLING`.
		defaults: The interpreter defaults the text will be read with.
		compact: Drop the leading zero of fractional numbers (``.5``).

	Returns:
		Notation text, or ``""`` for no notes.

	Example:
		```python
		format_notation([
			NoteEvent(pitch=60, start=0.0, duration=1.0, velocity=90),
			NoteEvent(pitch=64, start=0.0, duration=1.0, velocity=90),
			NoteEvent(pitch=67, start=2.0, duration=1.0),
		])
		# "[C3 E3]v90 R1 G3v100"
		```
	"""

	if not notes:
		return ""

	tonescript.bar_beat.beats_per_bar(numerator, denominator)

	defaults = defaults if defaults is not None else tonescript.notation.interpreter.InterpreterDefaults()
	groups = group_simultaneous(notes)

	carried = _Carried(
		velocity = defaults.velocity,
		velocity_deviation = tonescript.constants.velocity.DEFAULT_VELOCITY_DEVIATION,
		duration = tonescript.bar_beat.musical_to_beats(defaults.duration, denominator),
		probability = defaults.probability,
	)

	def number (beats: float) -> str:
		return _number(tonescript.bar_beat.beats_to_musical(beats, denominator), compact)

	parts: typing.List[str] = []
	first_start = groups[0][0].start

	if first_start > tonescript.constants.limits.TIME_EPSILON:
		parts.append(f"R{number(first_start)}")

	for index, group in enumerate(groups):

		velocity = _most_common([(note.velocity, note.velocity_deviation) for note in group])
		duration = _most_common([note.duration for note in group])
		probability = _most_common([note.probability for note in group])

		suffix = ""

		if velocity != (carried.velocity, carried.velocity_deviation):
			suffix += _velocity_token(*velocity)
			carried.velocity, carried.velocity_deviation = velocity

		if not _same(duration, carried.duration):
			suffix += f"n{number(duration)}"
			carried.duration = duration

		longest = max(note.duration for note in group)
		natural = carried.time_until_next if carried.time_until_next is not None else longest
		trailing_rest = 0.0

		if index + 1 < len(groups):
			gap = groups[index + 1][0].start - group[0].start

			if _same(gap, natural):
				pass
			elif carried.time_until_next is None and gap > longest:
				trailing_rest = gap - longest
			else:
				suffix += f"t{number(gap)}"
				carried.time_until_next = gap

		if not _same(probability, carried.probability):
			suffix += f"p{_number(probability, compact)}"
			carried.probability = probability

		if len(group) == 1:
			parts.append(f"{_pitch_name(group[0].pitch, spelling)}{suffix}")
		else:
			members = [
				_pitch_name(note.pitch, spelling) + _note_overrides(note, velocity, duration, probability, number, compact)
				for note in group
			]
			parts.append(f"[{' '.join(members)}]{suffix}")

		if trailing_rest > tonescript.constants.limits.TIME_EPSILON:
			parts.append(f"R{number(trailing_rest)}")

	return " ".join(parts)


def format_barbeat (notes: typing.Sequence[tonescript.events.NoteEvent], numerator: int = 4, denominator: int = 4, spelling: typing.Optional[typing.Sequence[str]] = None) -> str:

	"""
	Format note events in the bar|beat dialect.

	Each group of simultaneous notes becomes its pitches followed by a
	``bar|beat`` position; ``v``, ``t`` and ``p`` are written just before the
	first pitch that needs a new value.

	Example:
		```python
		format_barbeat(tonescript.parse_notation("C3 E3 G3"))
		# "C3 1|1 E3 1|2 G3 1|3"
		```
	"""

	if not notes:
		return ""

	default_duration = tonescript.bar_beat.musical_to_beats(tonescript.constants.durations.DEFAULT_DURATION, denominator)

	carried = _Carried(
		velocity = tonescript.constants.velocity.DEFAULT_VELOCITY,
		velocity_deviation = tonescript.constants.velocity.DEFAULT_VELOCITY_DEVIATION,
		duration = default_duration,
		probability = tonescript.constants.durations.DEFAULT_PROBABILITY,
	)

	parts: typing.List[str] = []

	for group in group_simultaneous(notes):

		for note in group:

			if (note.velocity, note.velocity_deviation) != (carried.velocity, carried.velocity_deviation):
				parts.append(_velocity_token(note.velocity, note.velocity_deviation))
				carried.velocity, carried.velocity_deviation = note.velocity, note.velocity_deviation

			if not _same(note.duration, carried.duration):
				parts.append(f"t{_number(tonescript.bar_beat.beats_to_musical(note.duration, denominator), False)}")
				carried.duration = note.duration

			if not _same(note.probability, carried.probability):
				parts.append(f"p{_number(note.probability, False)}")
				carried.probability = note.probability

			parts.append(_pitch_name(note.pitch, spelling))

		parts.append(tonescript.bar_beat.beats_to_bar_beat(group[0].start, numerator, denominator))

	return " ".join(parts)


def group_simultaneous (notes: typing.Sequence[tonescript.events.NoteEvent]) -> typing.List[typing.List[tonescript.events.NoteEvent]]:

	"""
	Sort notes by start then pitch, and gather notes starting together.

	Two notes start together when their starts are within
	`TIME_EPSILON` of the first note of the group.
	"""

	groups: typing.List[typing.List[tonescript.events.NoteEvent]] = []

	for note in sorted(notes, key=tonescript.events.sort_key):

		if groups and abs(note.start - groups[-1][0].start) < tonescript.constants.limits.TIME_EPSILON:
			groups[-1].append(note)
		else:
			groups.append([note])

	return groups


def _note_overrides (note: tonescript.events.NoteEvent, velocity: typing.Tuple[int, int], duration: float, probability: float, number: typing.Callable[[float], str], compact: bool) -> str:

	"""Per-note modifiers for a chord member that differs from the chord."""

	suffix = ""

	if (note.velocity, note.velocity_deviation) != velocity:
		suffix += _velocity_token(note.velocity, note.velocity_deviation)

	if not _same(note.duration, duration):
		suffix += f"n{number(note.duration)}"

	if not _same(note.probability, probability):
		suffix += f"p{_number(note.probability, compact)}"

	return suffix


def _velocity_token (velocity: int, deviation: int) -> str:

	if deviation > 0:
		return f"v{velocity}-{min(tonescript.constants.velocity.MAX_VELOCITY, velocity + deviation)}"

	return f"v{velocity}"


def _pitch_name (pitch: int, spelling: typing.Optional[typing.Sequence[str]]) -> str:
	return tonescript.pitch.midi_to_name(pitch, spelling)


def _most_common (values: typing.List[typing.Any]) -> typing.Any:

	"""The most frequent value; ties go to the value seen first (the lowest pitch)."""

	return collections.Counter(values).most_common(1)[0][0]


def _same (a: float, b: float) -> bool:
	return abs(a - b) < tonescript.constants.limits.TIME_EPSILON


def _number (value: float, compact: bool) -> str:

	text = tonescript.bar_beat.format_number(value, tonescript.constants.limits.FORMAT_DECIMALS)

	if compact and text.startswith("0."):
		text = text[1:]

	return text
