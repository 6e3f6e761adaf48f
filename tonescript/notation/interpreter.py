"""Turn parsed notation elements into note events.

Each voice is a left fold over its elements. The fold carries an immutable
`ModifierState` and a beat cursor; every element step returns the events it
produced together with the next state and cursor.
"""

import dataclasses
import logging
import random
import typing

import tonescript.bar_beat
import tonescript.constants.durations
import tonescript.constants.velocity
import tonescript.errors
import tonescript.events
import tonescript.notation.ast


logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class InterpreterDefaults:

	"""
	Values used before any element sets a modifier.

	``duration`` is in musical beats, like every time value written in
	notation, so the default note is one beat of the time signature.
	"""

	velocity: int = tonescript.constants.velocity.DEFAULT_VELOCITY
	duration: float = tonescript.constants.durations.DEFAULT_DURATION
	probability: float = tonescript.constants.durations.DEFAULT_PROBABILITY


@dataclasses.dataclass(frozen=True)
class ModifierState:

	"""
	The modifiers in force at one point of a voice.

	``None`` means nothing has set the field yet, so the default applies. An
	unset ``time_until_next`` means "advance by the duration".
	"""

	velocity: typing.Optional[int] = None
	velocity_deviation: typing.Optional[int] = None
	duration: typing.Optional[float] = None
	time_until_next: typing.Optional[float] = None
	probability: typing.Optional[float] = None

	def apply (self, modifiers: tonescript.notation.ast.Modifiers) -> "ModifierState":

		"""Return the state after an element's modifiers take effect."""

		if modifiers.velocity is None and modifiers.duration is None and modifiers.time_until_next is None and modifiers.probability is None:
			return self

		return ModifierState(
			velocity = modifiers.velocity if modifiers.velocity is not None else self.velocity,
			velocity_deviation = modifiers.velocity_deviation if modifiers.velocity is not None else self.velocity_deviation,
			duration = modifiers.duration if modifiers.duration is not None else self.duration,
			time_until_next = modifiers.time_until_next if modifiers.time_until_next is not None else self.time_until_next,
			probability = modifiers.probability if modifiers.probability is not None else self.probability,
		)

	def restore (self, saved: "ModifierState", modifiers: tonescript.notation.ast.Modifiers) -> "ModifierState":

		"""Put back the fields ``modifiers`` set, taking their values from ``saved``."""

		return ModifierState(
			velocity = saved.velocity if modifiers.velocity is not None else self.velocity,
			velocity_deviation = saved.velocity_deviation if modifiers.velocity is not None else self.velocity_deviation,
			duration = saved.duration if modifiers.duration is not None else self.duration,
			time_until_next = saved.time_until_next if modifiers.time_until_next is not None else self.time_until_next,
			probability = saved.probability if modifiers.probability is not None else self.probability,
		)


@dataclasses.dataclass(frozen=True)
class _Context:

	defaults: InterpreterDefaults
	default_duration: float
	sample_velocity: bool
	rng: random.Random


StepResult = typing.Tuple[typing.List[tonescript.events.NoteEvent], ModifierState, float]


def interpret (elements: typing.Sequence[tonescript.notation.ast.Element], numerator: int = 4, denominator: int = 4, defaults: typing.Optional[InterpreterDefaults] = None, sample_velocity: bool = False, rng: typing.Optional[random.Random] = None) -> typing.List[tonescript.events.NoteEvent]:

	"""
	Interpret parsed elements and return every voice's events, voice after voice.

	Parameters:
		elements: Output of `tonescript.notation.parser.parse` or
			`tonescript.notation.barbeat.parse_barbeat`.
		numerator: Time signature numerator.
		denominator: Time signature denominator.
		defaults: Velocity, duration and probability used until a modifier
			sets them.
		sample_velocity: When True, a velocity range is resolved to one
			concrete velocity per event at interpretation time. When False (the
			default) the event keeps the range's minimum as its velocity and
			the width as ``velocity_deviation``, so the host rolls a new value
			on every trigger.
		rng: Random source for ``sample_velocity``.

	Returns:
		Note events in voice order, each voice in the order it was written.

	Example:
		```python
		elements = tonescript.notation.parser.parse("C3n1t0.5 D3")
		notes = interpret(elements)
		notes[1].start    # 0.5
		```
	"""

	events: typing.List[tonescript.events.NoteEvent] = []

	for voice in interpret_voices(elements, numerator, denominator, defaults, sample_velocity, rng):
		events.extend(voice)

	return events


def interpret_voices (elements: typing.Sequence[tonescript.notation.ast.Element], numerator: int = 4, denominator: int = 4, defaults: typing.Optional[InterpreterDefaults] = None, sample_velocity: bool = False, rng: typing.Optional[random.Random] = None) -> typing.List[typing.List[tonescript.events.NoteEvent]]:

	"""Interpret parsed elements and keep each voice's events in its own list."""

	tonescript.bar_beat.beats_per_bar(numerator, denominator)

	defaults = defaults if defaults is not None else InterpreterDefaults()

	context = _Context(
		defaults = defaults,
		default_duration = tonescript.bar_beat.musical_to_beats(defaults.duration, denominator),
		sample_velocity = sample_velocity,
		rng = rng if rng is not None else random.Random(),
	)

	voices: typing.List[typing.List[tonescript.events.NoteEvent]] = []

	for index, voice in enumerate(tonescript.notation.ast.split_voices(elements)):

		events, _, cursor = interpret_sequence(voice, ModifierState(), 0.0, context)

		logger.debug(f"Voice {index}: {len(events)} notes, cursor ends at beat {cursor}")

		voices.append(events)

	return voices


def interpret_sequence (elements: typing.Sequence[tonescript.notation.ast.Element], state: ModifierState, cursor: float, context: _Context) -> StepResult:

	"""Fold a run of elements from ``state`` and ``cursor``."""

	events: typing.List[tonescript.events.NoteEvent] = []

	for element in elements:
		produced, state, cursor = interpret_element(element, state, cursor, context)
		events.extend(produced)

	return events, state, cursor


def interpret_element (element: tonescript.notation.ast.Element, state: ModifierState, cursor: float, context: _Context) -> StepResult:

	"""
	Interpret one element.

	Returns the events it emits, the modifier state after it and the cursor
	position for the next element.
	"""

	if isinstance(element, tonescript.notation.ast.Note):
		chord = tonescript.notation.ast.Chord(
			notes = (dataclasses.replace(element, modifiers=tonescript.notation.ast.NO_MODIFIERS),),
			modifiers = element.modifiers,
			position = element.position,
		)
		return interpret_element(chord, state, cursor, context)

	if isinstance(element, tonescript.notation.ast.Chord):
		events: typing.List[tonescript.events.NoteEvent] = []

		for _ in range(element.modifiers.repeat):
			produced, state, cursor = _chord_step(element, state, cursor, context)
			events.extend(produced)

		return events, state, cursor

	if isinstance(element, tonescript.notation.ast.Rest):
		length = element.duration

		if length is None:
			length = state.duration if state.duration is not None else context.default_duration

		return [], state, cursor + length * element.modifiers.repeat

	if isinstance(element, tonescript.notation.ast.RepetitionGroup):
		saved = state
		state = state.apply(element.modifiers)
		events = []

		for _ in range(element.multiplier):
			produced, state, cursor = interpret_sequence(element.body, state, cursor, context)
			events.extend(produced)

		return events, state.restore(saved, element.modifiers), cursor

	if isinstance(element, tonescript.notation.ast.VoiceSeparator):
		raise tonescript.errors.StructureError("Voice separators are handled by interpret_voices", element.position)

	raise TypeError(f"Unknown notation element: {element!r}")


def _chord_step (chord: tonescript.notation.ast.Chord, state: ModifierState, cursor: float, context: _Context) -> StepResult:

	state = state.apply(chord.modifiers)
	start = chord.at if chord.at is not None else cursor
	events: typing.List[tonescript.events.NoteEvent] = []
	longest = 0.0

	for note in chord.notes:

		resolved = state.apply(note.modifiers)
		duration = resolved.duration if resolved.duration is not None else context.default_duration

		if duration <= 0:
			raise tonescript.errors.DurationError(
				f"Note {note.pitch_class}{note.octave} resolves to duration {duration}, which must be greater than 0",
				note.position,
			)

		longest = max(longest, duration)
		velocity, deviation = _resolve_velocity(resolved, context)

		if velocity == 0 and deviation == 0:
			continue

		events.append(
			tonescript.events.NoteEvent(
				pitch = note.pitch,
				start = start,
				duration = duration,
				velocity = velocity,
				velocity_deviation = deviation,
				probability = resolved.probability if resolved.probability is not None else context.defaults.probability,
			).sanitized()
		)

	if chord.at is not None:
		return events, state, cursor

	advance = state.time_until_next if state.time_until_next is not None else longest

	return events, state, cursor + advance


def _resolve_velocity (state: ModifierState, context: _Context) -> typing.Tuple[int, int]:

	"""Return ``(velocity, deviation)`` for one event."""

	if state.velocity is None:
		return context.defaults.velocity, tonescript.constants.velocity.DEFAULT_VELOCITY_DEVIATION

	deviation = state.velocity_deviation or 0

	if context.sample_velocity and deviation > 0:
		return int(round(context.rng.uniform(state.velocity, state.velocity + deviation))), 0

	return state.velocity, deviation
