"""Tone notation parser.

The tone dialect writes notes left to right with their modifiers trailing the
pitch. A voice keeps one time cursor that every element moves forward.

**Syntax:**
- `C3`, `F#4`, `Bb-1`: A note. Octave 3 holds middle C (MIDI 60); octaves run
  from -2 to 8.
- `v90`, `v80-120`: Velocity, or a velocity range (base plus random deviation).
- `n0.5`: Duration in beats.
- `t0.25`: Time until the next element starts (defaults to the duration).
- `p0.8`: Probability that the note sounds.
- `*3`: Play the element three times.
- `[C3 E3 G3]`: A chord. Modifiers after `]` apply to every note unless the
  note sets its own.
- `R`, `R2`, `R.5`: A rest, optionally with its own length.
- `( ... )*N`: A repetition group. Groups nest, and may carry modifiers that
  apply to their body.
- `;`: Starts another voice at beat 0.
- `// ...`: Comment to end of line.

Durations are musical beats (one denominator note) and may also be written as
`bars:beats` (`n1:0` is one bar) or as a fraction (`n1/3`). The parser stores
every time value in quarter-note beats.

Example:
	```python
	elements = parse("C3v90 [E3 G3]n2 R (A3 B3)*2; C2n8")
	```
"""

import dataclasses
import logging
import typing

import lark
import lark.exceptions
import lark.tree

import tonescript.bar_beat
import tonescript.constants.limits
import tonescript.constants.velocity
import tonescript.errors
import tonescript.notation.ast
import tonescript.pitch


logger = logging.getLogger(__name__)

_TIME_VALUE = r"(?:\d+:\d+(?:\.\d+)?|\d+\/\d+|\d+(?:\.\d*)?|\.\d+)"

TONE_GRAMMAR = r"""
	start: voice (SEMICOLON voice)*

	voice: _element*

	_element: note
		| chord
		| rest
		| group

	note: PITCH _modifier*
	chord: "[" chord_note+ "]" _modifier*
	chord_note: PITCH _modifier*
	rest: REST REPEAT?
	group: "(" _group_item* ")" _modifier*

	_group_item: _element
		| SEMICOLON

	_modifier: VELOCITY
		| DURATION
		| TIMING
		| PROBABILITY
		| REPEAT

	PITCH: /[A-G][#b]?-?\d+/
	REST: /R(TIME_VALUE)?/
	VELOCITY: /v\d+(?:-\d+)?/
	DURATION: /n(TIME_VALUE)/
	TIMING: /t(TIME_VALUE)/
	PROBABILITY: /p(?:\d+(?:\.\d*)?|\.\d+)/
	REPEAT: /\*-?\d+/
	SEMICOLON: ";"
	COMMENT: /\/\/[^\n]*/

	%import common.WS
	%ignore WS
	%ignore COMMENT
""".replace("TIME_VALUE", _TIME_VALUE)

_PARSER = lark.Lark(TONE_GRAMMAR, parser="lalr", propagate_positions=True)

_MODIFIER_NAMES = {
	"VELOCITY": "velocity",
	"DURATION": "duration",
	"TIMING": "time-until-next",
	"PROBABILITY": "probability",
	"REPEAT": "repetition",
}


def parse (notation: str, numerator: int = 4, denominator: int = 4, max_elements: int = tonescript.constants.limits.DEFAULT_MAX_ELEMENTS) -> typing.List[tonescript.notation.ast.Element]:

	"""
	Parse tone notation into a flat list of elements.

	Voices are separated in the result by `VoiceSeparator` elements.

	Parameters:
		notation: The notation text.
		numerator: Time signature numerator, used for `bars:beats` values.
		denominator: Time signature denominator; musical beats are scaled by
			`4 / denominator`.
		max_elements: Ceiling on the number of elements after every repetition
			is unrolled.

	Returns:
		Parsed elements in source order.

	Raises:
		NotationSyntaxError: Unknown or misplaced tokens.
		StructureError: A voice separator inside a repetition group.
		PitchRangeError: A note outside MIDI 0-127.
		ArgumentRangeError: A velocity or probability outside its range.
		LimitError: The notation would expand past ``max_elements``.
	"""

	tonescript.bar_beat.beats_per_bar(numerator, denominator)

	try:
		tree = _PARSER.parse(notation)
	except lark.UnexpectedInput as exc:
		raise syntax_error_from_lark(notation, exc) from exc

	try:
		elements = _ToneTransformer(numerator, denominator).transform(tree)
	except lark.exceptions.VisitError as exc:
		if isinstance(exc.orig_exc, tonescript.errors.TonescriptError):
			raise exc.orig_exc from None
		raise

	size = tonescript.notation.ast.expanded_size(elements, max_elements)

	logger.debug(f"Parsed {len(elements)} elements ({size} after expansion)")

	return elements


def syntax_error_from_lark (text: str, exc: lark.UnexpectedInput) -> tonescript.errors.NotationSyntaxError:

	"""Translate a lark parse failure into a `NotationSyntaxError` with token and offset."""

	position = exc.pos_in_stream if isinstance(exc.pos_in_stream, int) and exc.pos_in_stream >= 0 else len(text)
	token: typing.Optional[str] = None

	if isinstance(exc, lark.exceptions.UnexpectedCharacters):
		token = text[position:position + 1]

	elif isinstance(exc, lark.exceptions.UnexpectedToken) and exc.token.type != "$END":
		token = str(exc.token)

	if token is None:
		return tonescript.errors.NotationSyntaxError(f"Unexpected end of input at position {position}", position, None)

	return tonescript.errors.NotationSyntaxError(f"Unexpected {token!r} at position {position}", position, token)


def parse_time_value (text: str, numerator: int, denominator: int) -> float:

	"""Read a modifier time value (`1`, `.5`, `1/3` or `1:2`) as quarter-note beats."""

	if ":" in text:
		return tonescript.bar_beat.bar_beat_duration_to_beats(text, numerator, denominator)

	return tonescript.bar_beat.musical_to_beats(tonescript.bar_beat.parse_beat_value(text), denominator)


def parse_velocity (text: str, position: typing.Optional[int] = None) -> typing.Tuple[int, int]:

	"""
	Read `80` or `80-120` into ``(velocity, deviation)``.

	Raises `ArgumentRangeError` for values outside 0-127 or a range whose
	minimum is above its maximum.
	"""

	if "-" in text:
		low_text, high_text = text.split("-", 1)
		low, high = int(low_text), int(high_text)
	else:
		low = high = int(text)

	for value in (low, high):
		if value < tonescript.constants.velocity.MIN_VELOCITY or value > tonescript.constants.velocity.MAX_VELOCITY:
			raise tonescript.errors.ArgumentRangeError(f"Velocity {value} is outside 0-127", position)

	if low > high:
		raise tonescript.errors.ArgumentRangeError(f"Velocity range {low}-{high} has minimum above maximum", position)

	return low, high - low


def parse_probability (text: str, position: typing.Optional[int] = None) -> float:

	"""Read a probability and check it lies in [0, 1]."""

	value = float(text)

	if value > 1.0:
		raise tonescript.errors.ArgumentRangeError(f"Probability {text} is outside 0-1", position)

	return value


class _ToneTransformer(lark.Transformer):

	"""
	Build `tonescript.notation.ast` elements from the lark tree.
	"""

	def __init__ (self, numerator: int, denominator: int) -> None:

		super().__init__()

		self.numerator = numerator
		self.denominator = denominator

	def _modifiers (self, tokens: typing.Sequence[lark.Token], allowed: typing.Collection[str], context: str) -> tonescript.notation.ast.Modifiers:

		"""Fold trailing modifier tokens into one `Modifiers`, rejecting duplicates."""

		seen: typing.Set[str] = set()
		fields: typing.Dict[str, typing.Any] = {}

		for token in tokens:

			if token.type not in allowed:
				raise tonescript.errors.NotationSyntaxError(
					f"{_MODIFIER_NAMES[token.type].capitalize()} modifier is not allowed on {context}",
					token.start_pos,
					str(token),
				)

			if token.type in seen:
				raise tonescript.errors.NotationSyntaxError(
					f"Duplicate modifier {_MODIFIER_NAMES[token.type]} ({token!s}) at position {token.start_pos}",
					token.start_pos,
					str(token),
				)

			seen.add(token.type)
			value = str(token)[1:]

			if token.type == "VELOCITY":
				fields["velocity"], fields["velocity_deviation"] = parse_velocity(value, token.start_pos)

			elif token.type == "DURATION":
				fields["duration"] = parse_time_value(value, self.numerator, self.denominator)

			elif token.type == "TIMING":
				fields["time_until_next"] = parse_time_value(value, self.numerator, self.denominator)

			elif token.type == "PROBABILITY":
				fields["probability"] = parse_probability(value, token.start_pos)

			elif token.type == "REPEAT":
				repeat = int(value)
				if repeat < 1:
					raise tonescript.errors.NotationSyntaxError(
						f"Repetition count must be 1 or greater, got {token!s}",
						token.start_pos,
						str(token),
					)
				fields["repeat"] = repeat

		return tonescript.notation.ast.Modifiers(**fields)

	def _note (self, token: lark.Token, modifiers: tonescript.notation.ast.Modifiers) -> tonescript.notation.ast.Note:

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
			modifiers = modifiers,
			position = token.start_pos,
		)

	def start (self, children: list) -> typing.List[tonescript.notation.ast.Element]:

		elements: typing.List[tonescript.notation.ast.Element] = []

		for child in children:

			if isinstance(child, lark.Token):
				elements.append(tonescript.notation.ast.VoiceSeparator(position=child.start_pos))
			else:
				elements.extend(child)

		return elements

	def voice (self, children: list) -> list:
		return list(children)

	def note (self, children: list) -> tonescript.notation.ast.Note:

		pitch_token, *modifier_tokens = children

		return self._note(pitch_token, self._modifiers(modifier_tokens, _MODIFIER_NAMES, "a note"))

	def chord_note (self, children: list) -> tonescript.notation.ast.Note:

		pitch_token, *modifier_tokens = children

		return self._note(pitch_token, self._modifiers(modifier_tokens, ("VELOCITY", "DURATION", "PROBABILITY"), "a note inside a chord"))

	@lark.v_args(meta=True)
	def chord (self, meta: lark.tree.Meta, children: list) -> tonescript.notation.ast.Chord:

		notes = tuple(child for child in children if isinstance(child, tonescript.notation.ast.Note))
		modifier_tokens = [child for child in children if isinstance(child, lark.Token)]

		return tonescript.notation.ast.Chord(
			notes = notes,
			modifiers = self._modifiers(modifier_tokens, _MODIFIER_NAMES, "a chord"),
			position = meta.start_pos,
		)

	def rest (self, children: list) -> tonescript.notation.ast.Rest:

		rest_token, *modifier_tokens = children
		text = str(rest_token)[1:]
		duration = parse_time_value(text, self.numerator, self.denominator) if text else None

		return tonescript.notation.ast.Rest(
			duration = duration,
			modifiers = self._modifiers(modifier_tokens, ("REPEAT",), "a rest"),
			position = rest_token.start_pos,
		)

	@lark.v_args(meta=True)
	def group (self, meta: lark.tree.Meta, children: list) -> tonescript.notation.ast.RepetitionGroup:

		body: typing.List[tonescript.notation.ast.Element] = []
		modifier_tokens: typing.List[lark.Token] = []

		for child in children:

			if isinstance(child, lark.Token) and child.type == "SEMICOLON":
				raise tonescript.errors.StructureError(
					f"Voice separator ';' is not allowed inside a repetition group (position {child.start_pos})",
					child.start_pos,
				)

			if isinstance(child, lark.Token):
				modifier_tokens.append(child)
			else:
				body.append(child)

		modifiers = self._modifiers(modifier_tokens, _MODIFIER_NAMES, "a group")

		if modifiers.repeat == 1 and modifiers == tonescript.notation.ast.NO_MODIFIERS:
			logger.debug(f"Group at position {meta.start_pos} has no multiplier or modifiers")

		return tonescript.notation.ast.RepetitionGroup(
			body = tuple(body),
			multiplier = modifiers.repeat,
			modifiers = dataclasses.replace(modifiers, repeat=1),
			position = meta.start_pos,
		)
