"""Bar|beat notation parser.

In the bar|beat dialect, modifiers come *before* the notes they affect and
every note is placed at an explicit position rather than on a running cursor.

**Syntax:**
- `v90`, `v80-120`: Set the velocity (or velocity range) for following pitches.
- `t0.5`, `t1:2`, `t1/3`: Set the duration (musical beats, or `bars:beats`).
- `p0.8`: Set the probability.
- `C3`, `Eb4`: Add a pitch to the pending chord.
- `1|1`, `2|3.5`, `1|4/3`, `1|2+1/3`: Emit the pending chord at that position.
- `|3`: Same bar as the previous position.
- `1|1,2,3,4`: Emit at several beats of one bar.
- `1|1x4@1`: Emit 4 times, 1 beat apart, starting at 1|1. Without `@step`
  the current duration is used as the step.
- `@2=1`: Copy everything placed in bar 1 into bar 2.
- `@3=`: Copy the previous bar (bar 2) into bar 3.
- `@5=1-2`: Copy bars 1 and 2 into bars 5 and 6.
- `@3-10=1-2`: Tile bars 1 and 2 across bars 3 to 10.
- `@clear`: Forget what was placed so far as a copy source.

Pitches stay pending after a position, so a later position plays them again
until a new pitch starts a new chord. A note with velocity 0 removes any note
of the same pitch already placed at the same position.

A copy takes every chord that starts inside the source bar's time span,
including chords that were themselves copied there, so copies chain. After a
copy, `|beat` refers to the first destination bar. Copies that cannot be made
(bar 0, a reversed range, an empty source bar, a bar onto itself) are skipped
with a warning.

The result is the same element list the tone parser produces, with every chord
pinned to its position through `Chord.at`, so it is interpreted by
`tonescript.notation.interpreter` unchanged.

Example:
	```python
	elements = parse_barbeat("v90 C3 E3 G3 1|1 v70 t0.5 C4 |3x4@0.5 @2=1")
	```
"""

import dataclasses
import logging
import typing

import lark

import tonescript.bar_beat
import tonescript.constants.durations
import tonescript.constants.limits
import tonescript.errors
import tonescript.notation.ast
import tonescript.notation.parser
import tonescript.pitch


logger = logging.getLogger(__name__)

_BEAT = r"\d+(?:\+\d+\/\d+|\.\d+|\/\d+)?"
_BEAT_ENTRY = rf"{_BEAT}(?:x\d+(?:@{_BEAT})?)?"
_TIME_VALUE = r"(?:\d+:\d+(?:\.\d+)?|\d+\/\d+|\d+(?:\.\d*)?|\.\d+)"

BARBEAT_GRAMMAR = r"""
	start: _token*

	_token: PITCH
		| VELOCITY
		| DURATION
		| PROBABILITY
		| POSITION
		| COPY
		| CLEAR

	PITCH: /[A-G][#b]?-?\d+/
	VELOCITY: /v\d+(?:-\d+)?/
	DURATION: /tTIME_VALUE/
	PROBABILITY: /p(?:\d+(?:\.\d*)?|\.\d+)/
	POSITION: /(?:\d+)?\|BEAT_ENTRY(?:,BEAT_ENTRY)*/
	COPY: /@\d+(?:-\d+)?=(?:\d+(?:-\d+)?)?/
	CLEAR: "@clear"
	COMMENT: /\/\/[^\n]*/

	%import common.WS
	%ignore WS
	%ignore COMMENT
""".replace("TIME_VALUE", _TIME_VALUE).replace("BEAT_ENTRY", _BEAT_ENTRY)

_PARSER = lark.Lark(BARBEAT_GRAMMAR, parser="lalr")


@dataclasses.dataclass(frozen=True)
class _State:

	velocity: typing.Optional[int] = None
	velocity_deviation: typing.Optional[int] = None
	duration: typing.Optional[float] = None
	probability: typing.Optional[float] = None


# (start in beats, sounding notes, source offset)
_Placed = typing.Tuple[float, typing.List[tonescript.notation.ast.Note], int]


def parse_barbeat (notation: str, numerator: int = 4, denominator: int = 4, max_elements: int = tonescript.constants.limits.DEFAULT_MAX_ELEMENTS) -> typing.List[tonescript.notation.ast.Element]:

	"""
	Parse bar|beat notation into position-pinned chords.

	Parameters:
		notation: The notation text.
		numerator: Time signature numerator.
		denominator: Time signature denominator.
		max_elements: Ceiling on the number of chords produced.

	Returns:
		`Chord` elements in placement order, each with ``at`` set.

	Raises:
		NotationSyntaxError: Unknown tokens.
		PitchRangeError: A note outside MIDI 0-127.
		ArgumentRangeError: A velocity or probability outside its range.
		FormatError / ValueError: A malformed or out-of-range position.
		LimitError: More than ``max_elements`` chords.
	"""

	tonescript.bar_beat.beats_per_bar(numerator, denominator)

	try:
		tree = _PARSER.parse(notation)
	except lark.UnexpectedInput as exc:
		raise tonescript.notation.parser.syntax_error_from_lark(notation, exc) from exc

	default_duration = tonescript.bar_beat.musical_to_beats(tonescript.constants.durations.DEFAULT_DURATION, denominator)

	state = _State()
	pending: typing.List[tonescript.notation.ast.Note] = []
	pending_closed = False
	current_bar: typing.Optional[int] = None
	placed: typing.List[_Placed] = []
	copy_from = 0

	for token in tree.children:

		text = str(token)

		if token.type == "VELOCITY":
			velocity, deviation = tonescript.notation.parser.parse_velocity(text[1:], token.start_pos)
			state = dataclasses.replace(state, velocity=velocity, velocity_deviation=deviation)

		elif token.type == "DURATION":
			state = dataclasses.replace(state, duration=tonescript.notation.parser.parse_time_value(text[1:], numerator, denominator))

		elif token.type == "PROBABILITY":
			state = dataclasses.replace(state, probability=tonescript.notation.parser.parse_probability(text[1:], token.start_pos))

		elif token.type == "PITCH":

			if pending_closed:
				pending = []
				pending_closed = False

			pending.append(_pending_note(token, state, default_duration))

		elif token.type == "POSITION":

			if not pending:
				raise tonescript.errors.NotationSyntaxError(f"Position {text} has no pitches to place", token.start_pos, text)

			step = state.duration if state.duration is not None else default_duration
			starts, current_bar = _expand_position(text, current_bar, step, numerator, denominator, token.start_pos, max_elements - len(placed))

			for start in starts:
				_place(placed, start, pending, token.start_pos)

			pending_closed = True

		elif token.type in ("COPY", "CLEAR"):

			if pending and not pending_closed:
				logger.warning(f"{len(pending)} pitch(es) buffered but never placed before {text}")

			if token.type == "CLEAR":
				copy_from = len(placed)
			else:
				copied_bar = _copy_bars(text, placed, copy_from, numerator, denominator, max_elements, token.start_pos)

				if copied_bar is not None:
					current_bar = copied_bar

			pending = []
			pending_closed = False

	if pending and not pending_closed:
		logger.warning(f"{len(pending)} pitch(es) buffered but never placed at a position")

	elements: typing.List[tonescript.notation.ast.Element] = [
		tonescript.notation.ast.Chord(notes=tuple(notes), at=start, position=position)
		for start, notes, position in placed
		if notes
	]

	logger.debug(f"Parsed {len(elements)} bar|beat chords")

	return elements


def _pending_note (token: lark.Token, state: _State, default_duration: float) -> tonescript.notation.ast.Note:

	"""Capture a pitch together with the modifiers in force when it was written."""

	match = tonescript.pitch.NOTE_NAME_PATTERN.match(str(token))
	letter, accidental, octave = match.groups()

	try:
		midi = tonescript.pitch.note_to_midi(letter + accidental, int(octave))
	except tonescript.errors.PitchRangeError as exc:
		raise tonescript.errors.PitchRangeError(exc.message, token.start_pos) from None

	return tonescript.notation.ast.Note(
		pitch_class = letter + accidental,
		octave = int(octave),
		pitch = midi,
		modifiers = tonescript.notation.ast.Modifiers(
			velocity = state.velocity,
			velocity_deviation = state.velocity_deviation,
			duration = state.duration if state.duration is not None else default_duration,
			probability = state.probability,
		),
		position = token.start_pos,
	)


def _expand_position (text: str, current_bar: typing.Optional[int], step: float, numerator: int, denominator: int, offset: int, budget: int) -> typing.Tuple[typing.List[float], int]:

	"""
	Turn one position token into start times in beats.

	Returns the starts and the bar the token refers to, which later ``|beat``
	tokens reuse. ``budget`` is how many more chords may be placed; a token
	that would produce more raises `LimitError` before any repeat is unrolled.
	"""

	bar_text, beats_text = text.split("|", 1)

	if bar_text:
		bar = int(bar_text)
	elif current_bar is not None:
		bar = current_bar
	else:
		raise tonescript.errors.NotationSyntaxError(f"Position {text} omits the bar but no bar was given before", offset, text)

	starts: typing.List[float] = []

	for entry in beats_text.split(","):

		beat_text, _, repeat_text = entry.partition("x")
		bar_start = tonescript.bar_beat.bar_beat_to_beats(f"{bar}|{beat_text}", numerator, denominator)

		count_text, _, step_text = repeat_text.partition("@")
		count = int(count_text) if count_text else 1

		if len(starts) + count > budget:
			raise tonescript.errors.LimitError(f"Position {text} places more chords than the element ceiling allows", offset)

		if not repeat_text:
			starts.append(bar_start)
			continue

		repeat_step = step

		if step_text:
			repeat_step = tonescript.bar_beat.musical_to_beats(tonescript.bar_beat.parse_beat_value(step_text, text), denominator)

		if repeat_step <= 0:
			raise tonescript.errors.ArgumentRangeError(f"Repeat step in {text} must be greater than 0", offset)

		starts.extend(bar_start + index * repeat_step for index in range(count))

	return starts, bar


def _bar_span (text: str) -> typing.Tuple[int, typing.Optional[int]]:

	"""Split ``"3"`` or ``"3-10"`` into its first and last bar (``None`` when no range is given)."""

	first, _, last = text.partition("-")

	return int(first), int(last) if last else None


def _copy_bars (text: str, placed: typing.List[_Placed], copy_from: int, numerator: int, denominator: int, max_elements: int, offset: int) -> typing.Optional[int]:

	"""
	Apply one ``@destination=source`` token to ``placed``.

	Only chords at index ``copy_from`` or later (those placed since the last
	``@clear``) are copy sources. A single destination bar with a source range
	receives the range bar by bar; a destination range repeats the source
	bars until the range is full.

	Returns:
		The first destination bar if anything was copied, otherwise ``None``.
	"""

	destination_text, source_text = text[1:].split("=", 1)
	first, last = _bar_span(destination_text)

	if source_text:
		source_first, source_last = _bar_span(source_text)
		source_last = source_first if source_last is None else source_last
	else:
		source_first = source_last = first - 1

	if last is None:
		last = first + source_last - source_first

	if first < 1 or source_first < 1:
		logger.warning(f"{text}: bar numbers start at 1, nothing copied")
		return None

	if last < first or source_last < source_first:
		logger.warning(f"{text}: range ends before it starts, nothing copied")
		return None

	if last - first + 1 > max_elements:
		raise tonescript.errors.LimitError(f"{text} copies into more than {max_elements} bars", offset)

	bar_length = tonescript.bar_beat.beats_per_bar(numerator, denominator)
	source_count = source_last - source_first + 1
	epsilon = tonescript.constants.limits.TIME_EPSILON
	copied = False

	for index, destination in enumerate(range(first, last + 1)):

		source = source_first + index % source_count

		if source == destination:
			logger.warning(f"{text}: skipping copy of bar {source} onto itself")
			continue

		source_start = (source - 1) * bar_length

		chords = [
			(start, notes)
			for start, notes, _ in placed[copy_from:]
			if notes and source_start - epsilon <= start < source_start + bar_length - epsilon
		]

		if not chords:
			logger.warning(f"{text}: bar {source} is empty, nothing to copy")
			continue

		shift = (destination - source) * bar_length
		placed.extend((start + shift, list(notes), offset) for start, notes in chords)
		copied = True

		if len(placed) > max_elements:
			raise tonescript.errors.LimitError(f"Notation expands to more than {max_elements} elements", offset)

	logger.debug(f"{text}: copied into bars {first}-{last}" if copied else f"{text}: nothing copied")

	return first if copied else None


def _place (placed: list, start: float, notes: typing.Sequence[tonescript.notation.ast.Note], position: int) -> None:

	"""Add a chord at ``start``; velocity-0 notes delete earlier notes instead."""

	sounding: typing.List[tonescript.notation.ast.Note] = []

	for note in notes:

		if note.modifiers.velocity == 0 and not note.modifiers.velocity_deviation:

			for other_start, other_notes, _ in placed:
				if abs(other_start - start) < tonescript.constants.limits.TIME_EPSILON:
					other_notes[:] = [other for other in other_notes if other.pitch != note.pitch]

		else:
			sounding.append(note)

	placed.append((start, sounding, position))
