"""Error types raised by tonescript.

Every error carries a ``kind`` (a short, stable category name), a human
readable ``message`` and an optional ``position``. For notation errors the
position is a character offset into the source text; for modulation errors it
is the 1-based line number. ``to_dict()`` produces the shape handed back to
callers that cannot catch Python exceptions.
"""

import typing


class TonescriptError(Exception):

	"""
	Base class for every error raised by the library.
	"""

	kind = "Error"

	def __init__ (self, message: str, position: typing.Optional[int] = None) -> None:

		super().__init__(message)

		self.message = message
		self.position = position

	def to_dict (self) -> typing.Dict[str, typing.Any]:

		"""Return ``{kind, message, position}`` for callers outside Python."""

		return {"kind": self.kind, "message": self.message, "position": self.position}


class NotationSyntaxError(TonescriptError):

	"""
	Notation text could not be tokenized or parsed.

	``token`` holds the offending text (or ``None`` at end of input) and
	``position`` its character offset.
	"""

	kind = "SyntaxError"

	def __init__ (self, message: str, position: typing.Optional[int] = None, token: typing.Optional[str] = None) -> None:

		super().__init__(message, position)

		self.token = token


class StructureError(TonescriptError):

	"""A well-formed token appears somewhere it is not allowed (e.g. ``;`` inside a group)."""

	kind = "StructureError"


class PitchRangeError(TonescriptError):

	"""A pitch falls outside MIDI 0-127."""

	kind = "PitchRangeError"


class DurationError(TonescriptError):

	"""A note resolved to a duration that is not positive."""

	kind = "DurationError"


class ArgumentRangeError(TonescriptError):

	"""A function or modifier argument is outside its domain."""

	kind = "RangeError"


class SyncError(TonescriptError):

	"""A waveform asked for sync but no absolute arrangement position is available."""

	kind = "SyncError"


class FormatError(TonescriptError, ValueError):

	"""Malformed ``bar|beat`` or ``bars:beats`` text."""

	kind = "FormatError"


class LimitError(TonescriptError):

	"""Notation would expand past the caller's element ceiling."""

	kind = "LimitError"


class ExpressionParseError(TonescriptError):

	"""
	Modulation text could not be parsed.

	``position`` is the 1-based line number; ``line`` is an alias for it.
	"""

	kind = "ParseError"

	@property
	def line (self) -> typing.Optional[int]:
		return self.position


class EvaluationError(TonescriptError):

	"""An expression could not be evaluated (unknown variable, wrong argument count)."""

	kind = "EvaluationError"
