"""Function library for modulation expressions.

Every function receives its already-evaluated arguments and a `CallContext`
describing where it is being evaluated (position, active time range, note
properties, random source and whether ``sync`` was requested).

Available functions:
    rand()              Uniform in [-1, 1].
    rand(max)           Uniform in [0, max).
    rand(min, max)      Uniform in [min, max).
    choose(a, b, ...)   One of the arguments, uniformly.
    round(x) floor(x) ceil(x) abs(x)
    clamp(x, lo, hi)    Bounds may be given in either order.
    min(a, b, ...) max(a, b, ...)
    pow(base, exp)
    cos/sin/tri/saw(period, offset?)
    square(period, offset?, pulse_width?)
    ramp(start, end, speed?)   Linear across the active time range.
    curve(start, end, exp)     Exponential across the active time range.
"""

import dataclasses
import math
import random
import typing

import tonescript.errors
import tonescript.modulation.nodes
import tonescript.modulation.waveforms


@dataclasses.dataclass(frozen=True)
class CallContext:

	position: float
	time_range: tonescript.modulation.nodes.TimeRange
	note_properties: typing.Mapping[str, typing.Optional[float]]
	rng: random.Random
	sync: bool = False


FunctionImpl = typing.Callable[[typing.List[float], CallContext], float]


@dataclasses.dataclass(frozen=True)
class FunctionSpec:

	"""Arity bounds (``max_args`` of ``None`` means unlimited) and implementation."""

	min_args: int
	max_args: typing.Optional[int]
	impl: FunctionImpl


# ─── Random ───────────────────────────────────────────────────────────────────

def _rand (args: typing.List[float], context: CallContext) -> float:

	if not args:
		return context.rng.uniform(-1.0, 1.0)

	if len(args) == 1:
		return context.rng.random() * args[0]

	low, high = args
	return low + context.rng.random() * (high - low)


def _choose (args: typing.List[float], context: CallContext) -> float:
	return context.rng.choice(args)


# ─── Arithmetic ───────────────────────────────────────────────────────────────

def round_half_up (value: float) -> float:

	"""Round to the nearest integer, halves upward (``round(2.5) == 3``, ``round(-2.5) == -2``)."""

	return float(math.floor(value + 0.5))


def _clamp (args: typing.List[float], context: CallContext) -> float:

	value, a, b = args
	low, high = min(a, b), max(a, b)

	return max(low, min(high, value))


def _pow (args: typing.List[float], context: CallContext) -> float:

	base, exponent = args

	try:
		result = math.pow(base, exponent)
	except (OverflowError, ValueError) as exc:
		raise tonescript.errors.ArgumentRangeError(f"pow({base}, {exponent}) has no finite result") from exc

	if not math.isfinite(result):
		raise tonescript.errors.ArgumentRangeError(f"pow({base}, {exponent}) has no finite result")

	return result


# ─── Waveforms ────────────────────────────────────────────────────────────────

def _waveform (name: str) -> FunctionImpl:

	"""Wrap a waveform so it reads period, offset and pulse width from its arguments."""

	shape = tonescript.modulation.waveforms.get_waveform(name)

	def evaluate (args: typing.List[float], context: CallContext) -> float:

		period = args[0]

		if period <= 0:
			raise tonescript.errors.ArgumentRangeError(f"{name}() period must be greater than 0, got {period}")

		position = context.position

		if context.sync:
			arrangement = context.note_properties.get("clip.position")

			if arrangement is None:
				raise tonescript.errors.SyncError("sync requires an arrangement clip (no clip.position available)")

			position += arrangement

		offset = args[1] if len(args) > 1 else 0.0
		phase = tonescript.modulation.waveforms.phase_at(position, period, offset)

		if name == "square" and len(args) > 2:
			return shape(phase, args[2])

		return shape(phase)

	return evaluate


# ─── Envelopes ────────────────────────────────────────────────────────────────

def range_phase (position: float, time_range: tonescript.modulation.nodes.TimeRange) -> float:

	"""How far *position* is through the time range, 0 at its start and 1 at its end."""

	span = time_range.end - time_range.start

	if span <= 0:
		return 0.0

	return (position - time_range.start) / span


def _ramp (args: typing.List[float], context: CallContext) -> float:

	start, end = args[0], args[1]
	speed = args[2] if len(args) > 2 else 1.0

	if speed <= 0:
		raise tonescript.errors.ArgumentRangeError(f"ramp() speed must be greater than 0, got {speed}")

	phase = min(1.0, range_phase(context.position, context.time_range) * speed)

	return start + (end - start) * phase


def _curve (args: typing.List[float], context: CallContext) -> float:

	start, end, exponent = args

	if exponent <= 0:
		raise tonescript.errors.ArgumentRangeError(f"curve() exponent must be greater than 0, got {exponent}")

	phase = min(1.0, max(0.0, range_phase(context.position, context.time_range)))

	return start + (end - start) * phase ** exponent


# ─── Registry and lookup ──────────────────────────────────────────────────────

FUNCTIONS: typing.Dict[str, FunctionSpec] = {
	"rand":   FunctionSpec(0, 2, _rand),
	"choose": FunctionSpec(1, None, _choose),
	"round":  FunctionSpec(1, 1, lambda args, context: round_half_up(args[0])),
	"floor":  FunctionSpec(1, 1, lambda args, context: float(math.floor(args[0]))),
	"ceil":   FunctionSpec(1, 1, lambda args, context: float(math.ceil(args[0]))),
	"abs":    FunctionSpec(1, 1, lambda args, context: abs(args[0])),
	"clamp":  FunctionSpec(3, 3, _clamp),
	"min":    FunctionSpec(2, None, lambda args, context: min(args)),
	"max":    FunctionSpec(2, None, lambda args, context: max(args)),
	"pow":    FunctionSpec(2, 2, _pow),
	"cos":    FunctionSpec(1, 2, _waveform("cos")),
	"sin":    FunctionSpec(1, 2, _waveform("sin")),
	"tri":    FunctionSpec(1, 2, _waveform("tri")),
	"saw":    FunctionSpec(1, 2, _waveform("saw")),
	"square": FunctionSpec(1, 3, _waveform("square")),
	"ramp":   FunctionSpec(2, 3, _ramp),
	"curve":  FunctionSpec(3, 3, _curve),
}

WAVEFORM_FUNCTIONS = frozenset(tonescript.modulation.waveforms.WAVEFORMS)


def call (name: str, args: typing.List[float], context: CallContext) -> float:

	"""
	Call function *name* with evaluated *args*.

	Raises:
		EvaluationError: Unknown function or wrong number of arguments.
		ArgumentRangeError: An argument outside the function's domain.
		SyncError: ``sync`` requested without ``clip.position``.
	"""

	spec = FUNCTIONS.get(name)

	if spec is None:
		raise tonescript.errors.EvaluationError(f"Unknown function: {name}()")

	if len(args) < spec.min_args or (spec.max_args is not None and len(args) > spec.max_args):

		if spec.max_args is None:
			expected = f"at least {spec.min_args}"
		elif spec.min_args == spec.max_args:
			expected = f"exactly {spec.min_args}"
		else:
			expected = f"{spec.min_args} to {spec.max_args}"

		raise tonescript.errors.EvaluationError(f"{name}() takes {expected} argument(s), got {len(args)}")

	return spec.impl(args, context)
