"""
Tonescript - text notation for MIDI clips, and expressions that modulate them.

A clip is written as a short string. Notes carry their own modifiers, state
carries forward from note to note, and the text expands to a flat list of
note events (pitch, start, duration, velocity, velocity deviation,
probability) in quarter-note beats:

- **Tone notation.** ``C3v90n.5 D3 [E3 G3]n2 R (A3 B3)*2; C2n8`` - trailing
  modifiers, chords, rests, nested repetition and independent voices.
- **Bar|beat notation.** ``v90 t.5 C3 1|1,2,3,4 t2 G2 2|1`` - leading
  modifiers and absolute positions, for step-sequencer style input.
- **Formatting.** Any list of note events can be written back as canonical
  text that parses to the same notes.
- **Modulation.** Lines such as ``velocity += 20 * cos(1:0t)`` or
  ``C1-C2: probability = rand(.5, 1)`` reshape a clip note by note, with
  waveforms, ramps, curves, randomness and per-note variables.

Time signatures are ``(numerator, denominator)``. Values written in notation
and modulation text are musical beats (one denominator note); note events are
always stored in quarter-note beats.

Minimal example:

	```python
	import tonescript

	notes = tonescript.parse_notation("C3v90 E3 G3 C4n2")
	notes = tonescript.apply_modulation(notes, "velocity += 10 * cos(2t)")
	tonescript.format_notation(notes)    # "C3 E3v80 G3v100 C4v80n2"
	```

Package-level exports: ``parse_notation``, ``format_notation``,
``apply_modulation``, ``NoteEvent``, ``TonescriptError``.
"""

import random
import typing

import tonescript.constants.limits
import tonescript.errors
import tonescript.events
import tonescript.modulation.applicator
import tonescript.notation.barbeat
import tonescript.notation.formatter
import tonescript.notation.interpreter
import tonescript.notation.parser


NoteEvent = tonescript.events.NoteEvent
TonescriptError = tonescript.errors.TonescriptError
apply_modulation = tonescript.modulation.applicator.apply_modulation
format_notation = tonescript.notation.formatter.format_notation

DIALECTS = ("tone", "barbeat")


def parse_notation (
	notation: str,
	numerator: int = 4,
	denominator: int = 4,
	dialect: str = "tone",
	defaults: typing.Optional[tonescript.notation.interpreter.InterpreterDefaults] = None,
	sample_velocity: bool = False,
	rng: typing.Optional[random.Random] = None,
	max_elements: int = tonescript.constants.limits.DEFAULT_MAX_ELEMENTS,
) -> typing.List[tonescript.events.NoteEvent]:

	"""
	Parse notation text and interpret it into note events.

	Parameters:
		notation: The notation text.
		numerator: Time signature numerator.
		denominator: Time signature denominator.
		dialect: ``"tone"`` (trailing modifiers) or ``"barbeat"`` (leading
			modifiers and ``bar|beat`` positions).
		defaults: Velocity, duration and probability used before any element
			sets them.
		sample_velocity: Pick a concrete velocity for every note written with
			a velocity range instead of recording the range as a deviation.
		rng: Random source for ``sample_velocity``.
		max_elements: Upper bound on the expanded element count.

	Returns:
		Note events for every voice, voice by voice.

	Raises:
		TonescriptError: Any parse or interpretation failure (see
			`tonescript.errors`).
		ValueError: An unknown dialect or an invalid time signature.
	"""

	if dialect == "tone":
		elements = tonescript.notation.parser.parse(notation, numerator, denominator, max_elements)

	elif dialect == "barbeat":
		elements = tonescript.notation.barbeat.parse_barbeat(notation, numerator, denominator, max_elements)

	else:
		available = ", ".join(f'"{name}"' for name in DIALECTS)
		raise ValueError(f"Unknown notation dialect {dialect!r}. Available dialects: {available}")

	return tonescript.notation.interpreter.interpret(
		elements,
		numerator,
		denominator,
		defaults = defaults,
		sample_velocity = sample_velocity,
		rng = rng,
	)
