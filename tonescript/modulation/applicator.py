"""Apply modulation text to note events.

Assignments run one after another over the whole note list, so a later line
sees what earlier lines did:

    velocity = 100
    velocity += 10 * cos(4t)    // works from 100, not from the original velocity

The input list is never modified; every function returns modified copies.
"""

import dataclasses
import logging
import random
import typing

import tonescript.bar_beat
import tonescript.constants.durations
import tonescript.constants.limits
import tonescript.constants.velocity
import tonescript.events
import tonescript.modulation.evaluator
import tonescript.modulation.functions
import tonescript.modulation.nodes
import tonescript.modulation.parser


logger = logging.getLogger(__name__)


def apply_modulation (notes: typing.Sequence[tonescript.events.NoteEvent], modulation: typing.Union[str, typing.Sequence[tonescript.modulation.nodes.Assignment]], numerator: int = 4, denominator: int = 4, time_range: typing.Optional[tonescript.modulation.nodes.TimeRange] = None, clip_position: typing.Optional[float] = None, rng: typing.Optional[random.Random] = None) -> typing.List[tonescript.events.NoteEvent]:

	"""
	Return modulated copies of ``notes``, sorted by start then pitch.

	Parameters:
		notes: Note events (quarter-note beats). Left untouched.
		modulation: Modulation text, or assignments already parsed from it.
		numerator: Time signature numerator.
		denominator: Time signature denominator.
		time_range: Active window in musical beats for ``ramp()`` and
			``curve()``. Defaults to the span of the notes, from the earliest
			start to the latest end.
		clip_position: The clip's position on the arrangement timeline in
			musical beats, needed by waveforms called with ``sync``.
		rng: Random source for ``rand()`` and ``choose()``.

	Returns:
		The modulated notes.

	Raises:
		ExpressionParseError: If ``modulation`` is text that does not parse.
		EvaluationError, ArgumentRangeError, SyncError: If an expression fails
			for any note. Nothing is skipped silently.

	Example:
		```python
		notes = tonescript.parse_notation("C3 D3 E3 F3")
		accented = apply_modulation(notes, "velocity = 80 + 20 * cos(2t)")
		[note.velocity for note in accented]    # [100, 60, 100, 60]
		```
	"""

	tonescript.bar_beat.beats_per_bar(numerator, denominator)

	if isinstance(modulation, str):
		assignments = tonescript.modulation.parser.parse_modulation(modulation)
	else:
		assignments = list(modulation)

	result = sorted((dataclasses.replace(note) for note in notes), key=tonescript.events.sort_key)

	if not result or not assignments:
		return result

	rng = rng if rng is not None else random.Random()

	if time_range is None:
		time_range = clip_time_range(result, denominator)

	for assignment in assignments:
		result = apply_assignment(result, assignment, numerator, denominator, time_range, clip_position, rng)

	return result


def clip_time_range (notes: typing.Sequence[tonescript.events.NoteEvent], denominator: int) -> tonescript.modulation.nodes.TimeRange:

	"""The span from the earliest start to the latest end, in musical beats."""

	start = min(note.start for note in notes)
	end = max(note.start + note.duration for note in notes)

	return tonescript.modulation.nodes.TimeRange(
		tonescript.bar_beat.beats_to_musical(start, denominator),
		tonescript.bar_beat.beats_to_musical(end, denominator),
	)


def apply_assignment (notes: typing.List[tonescript.events.NoteEvent], assignment: tonescript.modulation.nodes.Assignment, numerator: int, denominator: int, time_range: tonescript.modulation.nodes.TimeRange, clip_position: typing.Optional[float], rng: random.Random) -> typing.List[tonescript.events.NoteEvent]:

	"""
	Apply one assignment to every note its selectors match.

	With a pitch selector, ``note.index`` and ``note.count`` count only the
	notes in that pitch range. A time selector narrows the notes further and
	replaces the active time range for this line, but notes it skips still
	count towards ``note.index``.
	"""

	matching = [
		index for index, note in enumerate(notes)
		if assignment.pitch_range is None or assignment.pitch_range.contains(note.pitch)
	]

	active_range = time_range

	if assignment.time_range is not None:
		active_range = tonescript.modulation.nodes.TimeRange(
			tonescript.bar_beat.beats_to_musical(tonescript.bar_beat.bar_beat_to_beats(assignment.time_range.start, numerator, denominator), denominator),
			tonescript.bar_beat.beats_to_musical(tonescript.bar_beat.bar_beat_to_beats(assignment.time_range.end, numerator, denominator), denominator),
		)

	clip_properties = {
		"clip.position": clip_position,
		"clip.duration": time_range.end - time_range.start,
		"clip.bar_duration": float(numerator),
	}

	result = list(notes)
	touched = 0

	for filtered_index, index in enumerate(matching):

		note = notes[index]
		position = tonescript.bar_beat.beats_to_musical(note.start, denominator)

		if assignment.time_range is not None and not (active_range.start <= position < active_range.end):
			continue

		properties = note_properties(note, filtered_index, len(matching), numerator, denominator)
		properties.update(clip_properties)

		value = tonescript.modulation.evaluator.evaluate(
			assignment.expression,
			position,
			numerator,
			denominator,
			active_range,
			properties,
			rng,
		)

		result[index] = apply_value(note, assignment.parameter, assignment.operator, value, denominator)
		touched += 1

	logger.debug(f"Line {assignment.line}: {assignment.parameter} applied to {touched} of {len(notes)} notes")

	return result


def note_properties (note: tonescript.events.NoteEvent, index: int, count: int, numerator: int, denominator: int) -> typing.Dict[str, typing.Optional[float]]:

	"""Values for the ``note.*`` variables, with times in musical beats."""

	bar, beat = tonescript.bar_beat.bar_beat_of(note.start, numerator, denominator)

	return {
		"note.pitch": float(note.pitch),
		"note.start": tonescript.bar_beat.beats_to_musical(note.start, denominator),
		"note.velocity": float(note.velocity),
		"note.deviation": float(note.velocity_deviation),
		"note.duration": tonescript.bar_beat.beats_to_musical(note.duration, denominator),
		"note.probability": note.probability,
		"note.index": float(index),
		"note.count": float(count),
		"note.bar": float(bar),
		"note.beat": beat,
	}


def apply_value (note: tonescript.events.NoteEvent, parameter: str, operator: str, value: float, denominator: int) -> tonescript.events.NoteEvent:

	"""
	Return a copy of ``note`` with one parameter set or shifted by ``value``.

	Clamping:
	- velocity: rounded, 1-127
	- timing: unclamped; ``value`` is musical beats
	- duration: at least 0.001 beats; ``value`` is musical beats
	- probability: 0-1
	- deviation: rounded, 0-127
	- pitch: rounded, 0-127
	"""

	add = operator == "add"

	if parameter == "velocity":
		raw = note.velocity + value if add else value
		velocity = int(max(tonescript.constants.velocity.MIN_EVENT_VELOCITY, min(tonescript.constants.velocity.MAX_VELOCITY, _round(raw))))
		return dataclasses.replace(note, velocity=velocity)

	if parameter == "timing":
		shift = tonescript.bar_beat.musical_to_beats(value, denominator)
		return dataclasses.replace(note, start=note.start + shift if add else shift)

	if parameter == "duration":
		length = tonescript.bar_beat.musical_to_beats(value, denominator)
		raw = note.duration + length if add else length
		return dataclasses.replace(note, duration=max(tonescript.constants.durations.MIN_DURATION, raw))

	if parameter == "probability":
		raw = note.probability + value if add else value
		return dataclasses.replace(note, probability=max(0.0, min(1.0, raw)))

	if parameter == "deviation":
		raw = note.velocity_deviation + value if add else value
		deviation = int(max(0, min(tonescript.constants.velocity.MAX_VELOCITY_DEVIATION, _round(raw))))
		return dataclasses.replace(note, velocity_deviation=deviation)

	if parameter == "pitch":
		raw = note.pitch + value if add else value
		pitch = int(max(tonescript.constants.limits.MIN_PITCH, min(tonescript.constants.limits.MAX_PITCH, _round(raw))))
		return dataclasses.replace(note, pitch=pitch)

	raise ValueError(f"Unknown modulation parameter: {parameter}")


def _round (value: float) -> float:

	return tonescript.modulation.functions.round_half_up(value)
