"""Pitch names and MIDI note numbers.

Convention: **C3 = 60**, so the playable MIDI range 0-127 runs from ``C-2`` to
``G8``. A note name is a letter ``A``-``G``, an optional ``#`` or ``b`` and a
signed octave.

Module-level constants:
- `PITCH_CLASSES`: Maps written pitch-class names to their semitone offset from
  C in the same written octave. ``Cb`` is -1 and ``B#`` is 12, so ``Cb4`` is the
  same key as ``B3``.
- `DEFAULT_SPELLING`: Sharps, except ``Eb`` and ``Bb`` which read better flat.
- `SHARP_SPELLING` / `FLAT_SPELLING`: Uniform alternatives for the formatter.
"""

import re
import typing

import tonescript.constants.limits
import tonescript.errors


PITCH_CLASSES: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"E#": 5,
	"Fb": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
	"B#": 12,
	"Cb": -1,
}

DEFAULT_SPELLING: typing.List[str] = ["C", "C#", "D", "Eb", "E", "F", "F#", "G", "G#", "A", "Bb", "B"]
SHARP_SPELLING: typing.List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
FLAT_SPELLING: typing.List[str] = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

NOTE_NAME_PATTERN = re.compile(r"^([A-G])([#b]?)(-?\d+)$")


def pitch_class_offset (name: str) -> int:

	"""
	Return the semitone offset for a written pitch-class name.

	Raises `ValueError` for names that are not in `PITCH_CLASSES`.
	"""

	if name not in PITCH_CLASSES:
		raise ValueError(f"Unknown pitch class: {name!r}")

	return PITCH_CLASSES[name]


def note_to_midi (pitch_class: str, octave: int) -> int:

	"""
	Combine a pitch-class name and an octave into a MIDI note number.

	Parameters:
		pitch_class: Written name such as ``"C"``, ``"F#"`` or ``"Bb"``.
		octave: Octave number, where octave 3 contains middle C (60).

	Returns:
		The MIDI note number.

	Raises:
		PitchRangeError: If the result falls outside 0-127.

	Example:
		```python
		note_to_midi("C", 3)     # 60
		note_to_midi("G", 8)     # 127
		note_to_midi("G#", 8)    # PitchRangeError
		```
	"""

	offset = pitch_class_offset(pitch_class)
	midi = (octave + tonescript.constants.limits.OCTAVE_OFFSET) * 12 + offset

	if midi < tonescript.constants.limits.MIN_PITCH or midi > tonescript.constants.limits.MAX_PITCH:
		raise tonescript.errors.PitchRangeError(f"Pitch {pitch_class}{octave} is outside valid range (MIDI 0-127)")

	return midi


def name_to_midi (name: str) -> int:

	"""Parse a full note name such as ``"Eb4"`` or ``"C-2"`` into a MIDI note number."""

	match = NOTE_NAME_PATTERN.match(name)

	if not match:
		raise ValueError(f"Invalid note name: {name!r}")

	letter, accidental, octave = match.groups()

	return note_to_midi(letter + accidental, int(octave))


def midi_to_name (pitch: int, spelling: typing.Optional[typing.Sequence[str]] = None) -> str:

	"""
	Return the note name for a MIDI note number using a spelling table.

	The spelling table lists one name per pitch class, 0-11. Only single
	accidentals that stay inside the written octave are valid table entries
	(``Cb`` and ``B#`` would change the octave and are rejected).
	"""

	if pitch < tonescript.constants.limits.MIN_PITCH or pitch > tonescript.constants.limits.MAX_PITCH:
		raise tonescript.errors.PitchRangeError(f"MIDI pitch {pitch} is outside valid range (0-127)")

	if spelling is None:
		spelling = DEFAULT_SPELLING

	if len(spelling) != 12:
		raise ValueError("A spelling table needs exactly 12 names")

	name = spelling[pitch % 12]

	if PITCH_CLASSES.get(name) != pitch % 12:
		raise ValueError(f"Spelling {name!r} does not match pitch class {pitch % 12}")

	octave = pitch // 12 - tonescript.constants.limits.OCTAVE_OFFSET

	return f"{name}{octave}"
