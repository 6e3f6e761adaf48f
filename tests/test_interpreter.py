import random
import typing

import pytest

import tonescript.errors
import tonescript.events
import tonescript.notation.interpreter
import tonescript.notation.parser


def _notes (notation: str, numerator: int = 4, denominator: int = 4, **kwargs: typing.Any) -> typing.List[tonescript.events.NoteEvent]:

	"""Parse and interpret in one step."""

	elements = tonescript.notation.parser.parse(notation, numerator, denominator)

	return tonescript.notation.interpreter.interpret(elements, numerator, denominator, **kwargs)


def test_defaults ():

	"""Unmodified notes get velocity 100, duration 1 and probability 1, back to back."""

	notes = _notes("C3 D3 E3")

	assert [note.start for note in notes] == [0.0, 1.0, 2.0]
	assert all(note.velocity == 100 for note in notes)
	assert all(note.duration == 1.0 for note in notes)
	assert all(note.probability == 1.0 for note in notes)
	assert all(note.velocity_deviation == 0 for note in notes)


def test_time_until_next_overlap ():

	"""A t shorter than the duration makes the next note overlap."""

	notes = _notes("C3n1t0.5 D3")

	assert notes[1].start == 0.5


def test_time_until_next_defaults_to_duration ():

	"""Without t, the next note starts when this one ends."""

	notes = _notes("C3n1 D3")

	assert notes[1].start == 1.0


def test_time_until_next_gap ():

	"""A t longer than the duration leaves a gap."""

	notes = _notes("C3n1t1.5 D3")

	assert notes[1].start == 1.5


def test_modifiers_carry_forward ():

	"""A modifier stays in force until something changes it."""

	notes = _notes("C3v90n.5 D3 E3v70 F3")

	assert [note.velocity for note in notes] == [90, 90, 70, 70]
	assert [note.duration for note in notes] == [0.5, 0.5, 0.5, 0.5]
	assert [note.start for note in notes] == [0.0, 0.5, 1.0, 1.5]


def test_time_until_next_carries_forward ():

	"""t persists like the other modifiers."""

	notes = _notes("C3t.5 D3 E3")

	assert [note.start for note in notes] == [0.0, 0.5, 1.0]


def test_repetition_group_matches_written_out_form ():

	"""(C3 D3)*2 plays exactly like C3 D3 C3 D3."""

	assert _notes("(C3 D3)*2") == _notes("C3 D3 C3 D3")


def test_own_repetition ():

	"""A note, chord or rest with *N plays N times."""

	assert [note.start for note in _notes("C3*3")] == [0.0, 1.0, 2.0]
	assert [note.start for note in _notes("[C3 E3]*2")] == [0.0, 0.0, 1.0, 1.0]
	assert _notes("R*2 C3")[0].start == 2.0


def test_chord_precedence ():

	"""Per-note modifiers beat chord modifiers, which beat the carried state."""

	notes = _notes("[C3v90 E3]v80n2")

	assert notes[0].pitch == 60
	assert notes[0].velocity == 90
	assert notes[1].pitch == 64
	assert notes[1].velocity == 80
	assert notes[0].duration == notes[1].duration == 2.0


def test_chord_modifiers_update_state_note_modifiers_do_not ():

	"""Only chord-level modifiers carry on to later elements."""

	notes = _notes("[C3v90 E3]v80 G3")

	assert notes[2].velocity == 80


def test_chord_advances_by_longest_note ():

	"""Without t, a chord moves the cursor by its longest duration."""

	notes = _notes("[C3n3 E3] D3")

	assert notes[2].start == 3.0
	assert notes[1].duration == 1.0


def test_chord_time_until_next ():

	"""A chord-level t overrides the longest duration."""

	notes = _notes("[C3 E3]n2t.5 G3")

	assert notes[2].start == 0.5


def test_multi_voice ():

	"""Each voice starts at beat 0 with its own state."""

	voices = tonescript.notation.interpreter.interpret_voices(tonescript.notation.parser.parse("C3v90 D3; E2 F2"))

	assert len(voices) == 2
	assert [(note.pitch, note.start) for note in voices[0]] == [(60, 0.0), (62, 1.0)]
	assert [(note.pitch, note.start) for note in voices[1]] == [(52, 0.0), (53, 1.0)]
	assert voices[1][0].velocity == 100


def test_interpret_concatenates_voices ():

	"""interpret returns the voices one after another."""

	notes = _notes("C3 D3; E2 F2")

	assert [note.pitch for note in notes] == [60, 62, 52, 53]


def test_empty_voices ():

	"""Empty voices emit nothing."""

	notes = _notes("C3;; D3;")

	assert [(note.pitch, note.start) for note in notes] == [(60, 0.0), (62, 0.0)]


def test_rest_uses_current_duration ():

	"""A bare rest lasts as long as the current duration."""

	notes = _notes("C3n2 R C3")

	assert notes[1].start == 4.0


def test_rest_with_own_length ():

	"""A rest's own length does not change the duration state."""

	notes = _notes("C3 R.5 D3 R3 E3")

	assert [note.start for note in notes] == [0.0, 1.5, 5.5]
	assert all(note.duration == 1.0 for note in notes)


def test_group_modifiers_are_scoped ():

	"""Group modifiers apply inside the group and are undone after it."""

	notes = _notes("C3v70 (D3 E3)v90n.5 F3")

	assert [note.velocity for note in notes] == [70, 90, 90, 70]
	assert [note.duration for note in notes] == [1.0, 0.5, 0.5, 1.0]


def test_group_state_carries_across_iterations ():

	"""State set inside the body carries into the next iteration."""

	notes = _notes("(C3 D3v80)*2 E3")

	assert [note.velocity for note in notes] == [100, 80, 80, 80, 80]


def test_velocity_range_is_kept_as_deviation ():

	"""By default a range becomes base velocity plus deviation."""

	note = _notes("C3v80-120")[0]

	assert note.velocity == 80
	assert note.velocity_deviation == 40


def test_velocity_range_sampling (rng: random.Random):

	"""sample_velocity picks one concrete velocity per event."""

	notes = _notes("C3v80-120*20", sample_velocity=True, rng=rng)

	assert all(80 <= note.velocity <= 120 for note in notes)
	assert all(note.velocity_deviation == 0 for note in notes)
	assert len({note.velocity for note in notes}) > 1


def test_velocity_sampling_is_repeatable ():

	"""The same seed gives the same velocities."""

	first = _notes("C3v1-127*8", sample_velocity=True, rng=random.Random(3))
	second = _notes("C3v1-127*8", sample_velocity=True, rng=random.Random(3))

	assert first == second


def test_velocity_zero_is_silent ():

	"""A note resolving to velocity 0 is not emitted but still takes time."""

	notes = _notes("C3v0 D3v100")

	assert len(notes) == 1
	assert notes[0].pitch == 62
	assert notes[0].start == 1.0


def test_zero_duration ():

	"""A note that resolves to duration 0 is an error."""

	with pytest.raises(tonescript.errors.DurationError, match="must be greater than 0"):
		_notes("C3n0")


def test_six_eight ():

	"""In 6/8 one written beat is an eighth note."""

	notes = _notes("C3 D3n3", 6, 8)

	assert notes[0].duration == 0.5
	assert notes[1].start == 0.5
	assert notes[1].duration == 1.5


def test_custom_defaults ():

	"""InterpreterDefaults replaces the built-in starting values."""

	defaults = tonescript.notation.interpreter.InterpreterDefaults(velocity=64, duration=0.5, probability=0.5)
	notes = _notes("C3 D3", defaults=defaults)

	assert [note.start for note in notes] == [0.0, 0.5]
	assert notes[0].velocity == 64
	assert notes[0].probability == 0.5


def test_modifier_state_apply_and_restore ():

	"""restore only puts back the fields the modifiers touched."""

	state = tonescript.notation.interpreter.ModifierState(velocity=70, duration=2.0)
	modifiers = tonescript.notation.parser.parse("C3v90")[0].modifiers

	changed = state.apply(modifiers)
	assert changed.velocity == 90
	assert changed.duration == 2.0

	later = tonescript.notation.interpreter.ModifierState(velocity=90, duration=0.5)
	restored = later.restore(state, modifiers)

	assert restored.velocity == 70
	assert restored.duration == 0.5
