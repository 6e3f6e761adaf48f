"""Expression tree and assignment types for modulation text."""

import dataclasses
import typing


@dataclasses.dataclass(frozen=True)
class NumberLiteral:

	value: float


@dataclasses.dataclass(frozen=True)
class Variable:

	"""A named note or clip property such as ``note.velocity`` or ``clip.position``."""

	name: str


@dataclasses.dataclass(frozen=True)
class PeriodLiteral:

	"""
	A length of musical time written with a ``t`` suffix.

	``1t`` is one beat; ``1/3t`` is a third of a beat; ``2:1t`` is two bars and
	one beat (``unit == "bars"``). Values are musical beats, so the bar part is
	only resolved once the time signature is known.
	"""

	value: float
	unit: str = "beats"
	bars: int = 0


@dataclasses.dataclass(frozen=True)
class FunctionCall:

	name: str
	args: typing.Tuple["ExpressionNode", ...] = ()
	sync: bool = False


@dataclasses.dataclass(frozen=True)
class BinaryOp:

	op: str
	left: "ExpressionNode"
	right: "ExpressionNode"


@dataclasses.dataclass(frozen=True)
class UnaryOp:

	op: str
	operand: "ExpressionNode"


ExpressionNode = typing.Union[NumberLiteral, Variable, PeriodLiteral, FunctionCall, BinaryOp, UnaryOp]


@dataclasses.dataclass(frozen=True)
class PitchRange:

	"""Inclusive MIDI pitch bounds for a line's pitch selector."""

	low: int
	high: int

	def contains (self, pitch: int) -> bool:
		return self.low <= pitch <= self.high


@dataclasses.dataclass(frozen=True)
class TimeSelector:

	"""
	A ``bar|beat-bar|beat`` selector, kept as text until a time signature is known.
	"""

	start: str
	end: str


@dataclasses.dataclass(frozen=True)
class TimeRange:

	"""The active window, in musical beats, for ``ramp``, ``curve`` and time selectors."""

	start: float
	end: float


@dataclasses.dataclass(frozen=True)
class Assignment:

	"""
	One modulation line: ``[selectors:] parameter (= | +=) expression``.

	``operator`` is ``"set"`` for ``=`` and ``"add"`` for ``+=``.
	"""

	parameter: str
	operator: str
	expression: ExpressionNode
	pitch_range: typing.Optional[PitchRange] = None
	time_range: typing.Optional[TimeSelector] = None
	line: int = 1
