import random
import typing

import pytest

import tonescript.events


def make_note (pitch: int, start: float, duration: float = 1.0, velocity: int = 100, velocity_deviation: int = 0, probability: float = 1.0) -> tonescript.events.NoteEvent:

	"""Build a note event with the library defaults for anything not given."""

	return tonescript.events.NoteEvent(
		pitch = pitch,
		start = start,
		duration = duration,
		velocity = velocity,
		velocity_deviation = velocity_deviation,
		probability = probability,
	)


@pytest.fixture
def rng () -> random.Random:

	"""A seeded random source so random functions repeat between runs."""

	return random.Random(42)


@pytest.fixture
def four_quarters () -> typing.List[tonescript.events.NoteEvent]:

	"""C3 D3 E3 F3 on the four beats of one 4/4 bar."""

	return [make_note(pitch, float(index)) for index, pitch in enumerate([60, 62, 64, 65])]


@pytest.fixture
def note_factory () -> typing.Callable[..., tonescript.events.NoteEvent]:

	"""Expose make_note to tests that build their own clips."""

	return make_note
