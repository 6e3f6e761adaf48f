"""Parsed notation elements shared by every notation front-end.

Both the tone dialect (``tonescript.notation.parser``) and the bar|beat
dialect (``tonescript.notation.barbeat``) produce lists of these elements, and
one interpreter (``tonescript.notation.interpreter``) turns them into note
events. All times stored here are already in quarter-note beats.
"""

import dataclasses
import typing

import tonescript.errors


@dataclasses.dataclass(frozen=True)
class Modifiers:

	"""
	Optional per-element overrides.

	``None`` means "inherit". A velocity range ``v80-120`` is stored as
	``velocity=80, velocity_deviation=40``; a single ``v90`` stores a deviation
	of 0 so that it also clears an inherited range.
	"""

	velocity: typing.Optional[int] = None
	velocity_deviation: typing.Optional[int] = None
	duration: typing.Optional[float] = None
	time_until_next: typing.Optional[float] = None
	probability: typing.Optional[float] = None
	repeat: int = 1


NO_MODIFIERS = Modifiers()


@dataclasses.dataclass(frozen=True)
class Note:

	"""A single pitch. Inside a chord its modifiers override the chord's."""

	pitch_class: str
	octave: int
	pitch: int
	modifiers: Modifiers = NO_MODIFIERS
	position: int = 0


@dataclasses.dataclass(frozen=True)
class Chord:

	"""
	Notes sharing one start time.

	``at`` pins the chord to an absolute position in beats instead of the voice
	cursor; the bar|beat dialect sets it on every chord it produces.
	"""

	notes: typing.Tuple[Note, ...]
	modifiers: Modifiers = NO_MODIFIERS
	at: typing.Optional[float] = None
	position: int = 0


@dataclasses.dataclass(frozen=True)
class Rest:

	"""Silence. ``duration`` of ``None`` means the current note duration."""

	duration: typing.Optional[float] = None
	modifiers: Modifiers = NO_MODIFIERS
	position: int = 0


@dataclasses.dataclass(frozen=True)
class RepetitionGroup:

	"""
	A body played ``multiplier`` times.

	Group-level modifiers apply to the body and are restored once the group
	finishes.
	"""

	body: typing.Tuple["Element", ...]
	multiplier: int = 1
	modifiers: Modifiers = NO_MODIFIERS
	position: int = 0


@dataclasses.dataclass(frozen=True)
class VoiceSeparator:

	"""Starts a new voice with its own cursor at beat 0."""

	position: int = 0


Element = typing.Union[Note, Chord, Rest, RepetitionGroup, VoiceSeparator]


def expanded_size (elements: typing.Sequence[Element], ceiling: int) -> int:

	"""
	Count how many elements the sequence plays once every repetition is unrolled.

	Counting stops as soon as the total passes ``ceiling``, so absurd nesting
	such as ``((C3)*1000)*1000`` is rejected without being walked in full.
	Every pass through a group counts as at least one element, even when the
	body is empty.

	Raises:
		LimitError: If the expanded size exceeds ``ceiling``.
	"""

	total = 0

	for element in elements:

		if isinstance(element, VoiceSeparator):
			continue

		if isinstance(element, RepetitionGroup):
			size = max(1, expanded_size(element.body, ceiling)) * element.multiplier
		else:
			size = element.modifiers.repeat

		total += size

		if total > ceiling:
			raise tonescript.errors.LimitError(
				f"Notation expands to more than {ceiling} elements",
				getattr(element, "position", None),
			)

	return total


def split_voices (elements: typing.Sequence[Element]) -> typing.List[typing.List[Element]]:

	"""Split a flat element list on voice separators. Always returns at least one voice."""

	voices: typing.List[typing.List[Element]] = [[]]

	for element in elements:

		if isinstance(element, VoiceSeparator):
			voices.append([])
		else:
			voices[-1].append(element)

	return voices
