import logging
import random
import typing

import pytest

import tonescript.errors
import tonescript.events
import tonescript.modulation.applicator
import tonescript.modulation.nodes
import tonescript.modulation.parser


def _apply (notes: typing.List[tonescript.events.NoteEvent], text: str, **kwargs: typing.Any) -> typing.List[tonescript.events.NoteEvent]:

	return tonescript.modulation.applicator.apply_modulation(notes, text, **kwargs)


def test_waveform_accents (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""A two-beat cosine accents every other beat."""

	notes = _apply(four_quarters, "velocity = 80 + 20 * cos(2t)")

	assert [note.velocity for note in notes] == [100, 60, 100, 60]


def test_input_is_not_modified (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""The caller's notes are left exactly as they were."""

	before = [tonescript.events.NoteEvent(**vars(note)) for note in four_quarters]

	notes = _apply(four_quarters, "velocity = 10\ntiming += 1")

	assert four_quarters == before
	assert all(a is not b for a, b in zip(notes, four_quarters))


def test_result_is_sorted (note_factory: typing.Callable[..., tonescript.events.NoteEvent]):

	"""The result is ordered by start, then pitch."""

	notes = _apply([note_factory(64, 1.0), note_factory(62, 0.0), note_factory(60, 0.0)], "velocity += 0")

	assert [(note.start, note.pitch) for note in notes] == [(0.0, 60), (0.0, 62), (1.0, 64)]


def test_assignments_apply_in_order (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""Later lines see what earlier lines did."""

	notes = _apply(four_quarters, "velocity = 100\nvelocity += 10\nvelocity += note.velocity / 10")

	assert all(note.velocity == 121 for note in notes)


def test_velocity_clamping (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""Velocity is rounded and kept within 1-127."""

	assert {note.velocity for note in _apply(four_quarters, "velocity = 200")} == {127}
	assert {note.velocity for note in _apply(four_quarters, "velocity = -5")} == {1}
	assert {note.velocity for note in _apply(four_quarters, "velocity = 64.5")} == {65}


def test_timing (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""timing sets or shifts the start, without clamping."""

	assert [note.start for note in _apply(four_quarters, "timing += 0.25")] == [0.25, 1.25, 2.25, 3.25]
	assert [note.start for note in _apply(four_quarters, "timing = note.index")] == [0.0, 1.0, 2.0, 3.0]
	assert _apply(four_quarters, "timing += -1")[0].start == -1.0


def test_timing_in_six_eight (note_factory: typing.Callable[..., tonescript.events.NoteEvent]):

	"""Modulation values are musical beats, so 1 is an eighth note in 6/8."""

	notes = _apply([note_factory(60, 0.5)], "timing += 1", numerator=6, denominator=8)

	assert notes[0].start == 1.0


def test_duration (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""duration never drops below a thousandth of a beat."""

	assert {note.duration for note in _apply(four_quarters, "duration = 0.5")} == {0.5}
	assert {note.duration for note in _apply(four_quarters, "duration += -5")} == {0.001}


def test_probability_deviation_and_pitch (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""Probability, deviation and pitch are clamped to their ranges."""

	assert {note.probability for note in _apply(four_quarters, "probability = 2")} == {1.0}
	assert {note.probability for note in _apply(four_quarters, "probability = -1")} == {0.0}
	assert {note.velocity_deviation for note in _apply(four_quarters, "deviation = 300")} == {127}
	assert [note.pitch for note in _apply(four_quarters, "pitch += 12")] == [72, 74, 76, 77]
	assert {note.pitch for note in _apply(four_quarters, "pitch = G8 + 10")} == {127}


def test_pitch_selector_counts_only_matching_notes (note_factory: typing.Callable[..., tonescript.events.NoteEvent]):

	"""note.index and note.count see only the notes in the pitch range."""

	clip = [note_factory(60, 0.0), note_factory(62, 1.0), note_factory(60, 2.0), note_factory(64, 3.0)]
	notes = _apply(clip, "C3: velocity = note.index * 10 + note.count")

	assert [note.velocity for note in notes] == [2, 100, 12, 100]


def test_time_selector (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""A time selector limits the line to notes starting inside it."""

	notes = _apply(four_quarters, "1|3-2|1: velocity = 10")

	assert [note.velocity for note in notes] == [100, 100, 10, 10]


def test_time_selector_is_the_ramp_range (note_factory: typing.Callable[..., tonescript.events.NoteEvent]):

	"""ramp travels across the selected span rather than the whole clip."""

	clip = [note_factory(60, float(beat)) for beat in range(8)]
	notes = _apply(clip, "2|1-3|1: velocity = ramp(20, 100)")

	assert [note.velocity for note in notes] == [100, 100, 100, 100, 20, 40, 60, 80]


def test_clip_range_is_the_default_ramp_range (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""Without a selector the ramp runs from the first start to the last end."""

	notes = _apply(four_quarters, "velocity = ramp(0, 100)")

	assert [note.velocity for note in notes] == [1, 25, 50, 75]


def test_explicit_time_range (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""A caller-supplied range replaces the clip range."""

	notes = _apply(four_quarters, "velocity = ramp(0, 100)", time_range=tonescript.modulation.nodes.TimeRange(0.0, 2.0))

	assert [note.velocity for note in notes] == [1, 50, 100, 100]


def test_note_variables (note_factory: typing.Callable[..., tonescript.events.NoteEvent]):

	"""Bar, beat and the other note properties are available."""

	clip = [note_factory(60, 0.0, duration=0.5), note_factory(67, 5.0, duration=2.0, velocity=90)]

	assert [note.velocity for note in _apply(clip, "velocity = note.bar * 10 + note.beat")] == [11, 22]
	assert [note.velocity for note in _apply(clip, "velocity = note.duration * 10")] == [5, 20]
	assert [note.velocity for note in _apply(clip, "velocity = note.pitch - note.velocity")] == [1, 1]
	assert [note.velocity for note in _apply(clip, "velocity = clip.duration + clip.bar_duration")] == [11, 11]


def test_sync_needs_clip_position (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""Waveforms with sync need to know where the clip sits."""

	with pytest.raises(tonescript.errors.SyncError):
		_apply(four_quarters, "velocity += 10 * sin(4t, sync)")

	notes = _apply(four_quarters, "velocity = 64 + 63 * sin(4t, sync)", clip_position=1.0)

	assert notes[0].velocity == 127


def test_errors_propagate (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""Evaluation errors are raised, not skipped."""

	with pytest.raises(tonescript.errors.EvaluationError):
		_apply(four_quarters, "velocity = clip.position")

	with pytest.raises(tonescript.errors.ExpressionParseError):
		_apply(four_quarters, "velocity = nope(1)")


def test_seeded_randomness (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""rand() repeats when the same seed is given."""

	first = _apply(four_quarters, "velocity = 64 + 32 * rand()", rng=random.Random(5))
	second = _apply(four_quarters, "velocity = 64 + 32 * rand()", rng=random.Random(5))

	assert first == second


def test_parsed_assignments (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""Assignments parsed earlier can be applied directly."""

	assignments = tonescript.modulation.parser.parse_modulation("velocity = 50")

	assert {note.velocity for note in tonescript.modulation.applicator.apply_modulation(four_quarters, assignments)} == {50}


def test_empty_input (four_quarters: typing.List[tonescript.events.NoteEvent]):

	"""No notes or no assignments give plain copies."""

	assert tonescript.modulation.applicator.apply_modulation([], "velocity = 1") == []
	assert tonescript.modulation.applicator.apply_modulation(four_quarters, "// nothing") == four_quarters


def test_logs_touched_notes (four_quarters: typing.List[tonescript.events.NoteEvent], caplog: pytest.LogCaptureFixture):

	"""Each assignment logs how many notes it changed."""

	with caplog.at_level(logging.DEBUG, logger="tonescript.modulation.applicator"):
		_apply(four_quarters, "1|1-1|3: velocity = 1")

	assert "applied to 2 of 4 notes" in caplog.text
