"""Note events exchanged with the host, in quarter-note beats."""

import dataclasses
import typing

import tonescript.constants.durations
import tonescript.constants.limits
import tonescript.constants.velocity


@dataclasses.dataclass
class NoteEvent:

	"""
	A single note as exchanged with the host.

	Times are in quarter-note beats from the start of the clip.

	Attributes:
		pitch: MIDI note number (0-127).
		start: Onset in beats (>= 0).
		duration: Length in beats (> 0).
		velocity: MIDI velocity (1-127).
		velocity_deviation: Random spread (0-127) the host adds on each trigger.
		probability: Chance the note sounds (0.0-1.0).
	"""

	pitch: int
	start: float
	duration: float = tonescript.constants.durations.DEFAULT_DURATION
	velocity: int = tonescript.constants.velocity.DEFAULT_VELOCITY
	velocity_deviation: int = tonescript.constants.velocity.DEFAULT_VELOCITY_DEVIATION
	probability: float = tonescript.constants.durations.DEFAULT_PROBABILITY

	def sanitized (self) -> "NoteEvent":

		"""
		Return a copy with every ranged field pulled into its legal range.

		Raises `ValueError` if the duration is not positive, since there is no
		sensible value to clamp it to.
		"""

		if self.duration <= 0:
			raise ValueError(f"Note duration must be positive, got {self.duration}")

		return dataclasses.replace(
			self,
			pitch = _clamp(int(round(self.pitch)), tonescript.constants.limits.MIN_PITCH, tonescript.constants.limits.MAX_PITCH),
			start = max(0.0, float(self.start)),
			duration = float(self.duration),
			velocity = _clamp(int(round(self.velocity)), tonescript.constants.velocity.MIN_EVENT_VELOCITY, tonescript.constants.velocity.MAX_VELOCITY),
			velocity_deviation = _clamp(int(round(self.velocity_deviation)), 0, tonescript.constants.velocity.MAX_VELOCITY_DEVIATION),
			probability = _clamp(float(self.probability), 0.0, 1.0),
		)

	def to_dict (self) -> typing.Dict[str, typing.Any]:

		"""Return the host's persisted note shape."""

		return {
			"pitch": self.pitch,
			"start_time": self.start,
			"duration": self.duration,
			"velocity": self.velocity,
			"velocity_deviation": self.velocity_deviation,
			"probability": self.probability,
		}

	@classmethod
	def from_dict (cls, data: typing.Mapping[str, typing.Any]) -> "NoteEvent":

		"""
		Build a note from the host's persisted shape.

		``pitch`` and ``start_time`` are required; everything else falls back to
		the defaults.
		"""

		try:
			pitch = data["pitch"]
			start = data["start_time"]
		except KeyError as exc:
			raise ValueError(f"Note dict is missing required key {exc.args[0]!r}") from exc

		return cls(
			pitch = int(pitch),
			start = float(start),
			duration = float(data.get("duration", tonescript.constants.durations.DEFAULT_DURATION)),
			velocity = int(data.get("velocity", tonescript.constants.velocity.DEFAULT_VELOCITY)),
			velocity_deviation = int(data.get("velocity_deviation", tonescript.constants.velocity.DEFAULT_VELOCITY_DEVIATION)),
			probability = float(data.get("probability", tonescript.constants.durations.DEFAULT_PROBABILITY)),
		)


def _clamp (value: typing.Any, low: typing.Any, high: typing.Any) -> typing.Any:

	return max(low, min(high, value))


def sort_key (note: NoteEvent) -> typing.Tuple[float, int]:

	"""Order notes by start, then pitch."""

	return (note.start, note.pitch)
