import random
import typing

import pytest

import tonescript.errors
import tonescript.modulation.evaluator
import tonescript.modulation.nodes
import tonescript.modulation.parser


BAR = tonescript.modulation.nodes.TimeRange(0.0, 4.0)


def _evaluate (expression: str, position: float = 0.0, numerator: int = 4, denominator: int = 4, time_range: tonescript.modulation.nodes.TimeRange = BAR, properties: typing.Optional[typing.Dict[str, typing.Optional[float]]] = None, rng: typing.Optional[random.Random] = None) -> float:

	"""Parse ``velocity = <expression>`` and evaluate the right-hand side."""

	node = tonescript.modulation.parser.parse_modulation(f"velocity = {expression}")[0].expression

	return tonescript.modulation.evaluator.evaluate(node, position, numerator, denominator, time_range, properties, rng)


def test_arithmetic ():

	"""Operators follow the usual precedence."""

	assert _evaluate("1 + 2 * 3") == 7.0
	assert _evaluate("(1 + 2) * 3") == 9.0
	assert _evaluate("10 - 4 - 3") == 3.0
	assert _evaluate("-(2 + 3)") == -5.0
	assert _evaluate("7 / 2") == 3.5


def test_division_by_zero ():

	"""Dividing by zero gives 0 rather than failing."""

	assert _evaluate("5 / 0") == 0.0
	assert _evaluate("5 / (2 - 2)") == 0.0


def test_modulo_wraps ():

	"""% wraps into the divisor's range and gives 0 for a zero divisor."""

	assert _evaluate("7 % 3") == 1.0
	assert _evaluate("-1 % 4") == 3.0
	assert _evaluate("5 % -3") == -1.0
	assert _evaluate("5.5 % 2") == 1.5
	assert _evaluate("5 % 0") == 0.0
	assert _evaluate("2 * 5 % 4") == 2.0


def test_variables ():

	"""Variables read from the note properties."""

	assert _evaluate("note.velocity / 2", properties={"note.velocity": 90.0}) == 45.0


def test_missing_variable ():

	"""A variable with no value is an evaluation error."""

	with pytest.raises(tonescript.errors.EvaluationError, match="clip.position"):
		_evaluate("clip.position", properties={"clip.position": None})

	with pytest.raises(tonescript.errors.EvaluationError):
		_evaluate("note.pitch")


def test_period_literals_use_time_signature ():

	"""A bars:beats period is resolved with the numerator."""

	assert _evaluate("1:0t") == 4.0
	assert _evaluate("1:0t", numerator=3) == 3.0
	assert _evaluate("2:1t", numerator=6, denominator=8) == 13.0


def test_waveform_is_deterministic ():

	"""The same position gives the same waveform value."""

	assert _evaluate("sin(4t)", position=1.0) == pytest.approx(1.0)
	assert _evaluate("sin(4t)", position=1.0) == _evaluate("sin(4)", position=1.0)
	assert _evaluate("cos(1:0t)", position=2.0) == pytest.approx(-1.0)
	assert _evaluate("cos(1:0t)", position=1.5, numerator=3) == pytest.approx(-1.0)


def test_waveform_offset_and_pulse_width ():

	"""Offsets shift the phase and square takes a pulse width."""

	assert _evaluate("sin(4t, .25)", position=0.0) == pytest.approx(1.0)
	assert _evaluate("square(4t, 0, .25)", position=0.5) == 1.0
	assert _evaluate("square(4t, 0, .25)", position=1.5) == -1.0


def test_waveform_sync ():

	"""sync adds the clip's arrangement position."""

	properties = {"clip.position": 1.0}

	assert _evaluate("sin(4t, sync)", position=0.0, properties=properties) == pytest.approx(1.0)

	with pytest.raises(tonescript.errors.SyncError):
		_evaluate("sin(4t, sync)", position=0.0, properties={"clip.position": None})


def test_waveform_period_must_be_positive ():

	"""A zero or negative period is a range error."""

	with pytest.raises(tonescript.errors.ArgumentRangeError, match="period"):
		_evaluate("cos(0)")

	with pytest.raises(tonescript.errors.ArgumentRangeError):
		_evaluate("tri(-1)")


def test_ramp ():

	"""ramp travels linearly across the active time range."""

	assert _evaluate("ramp(0, 100)", position=0.0) == 0.0
	assert _evaluate("ramp(0, 100)", position=2.0) == 50.0
	assert _evaluate("ramp(0, 100, 2)", position=2.0) == 100.0
	assert _evaluate("ramp(0, 100, 2)", position=3.0) == 100.0
	assert _evaluate("ramp(0, 100)", position=3.0, time_range=tonescript.modulation.nodes.TimeRange(2.0, 4.0)) == 50.0


def test_ramp_empty_range ():

	"""An empty range holds the start value."""

	assert _evaluate("ramp(10, 20)", position=3.0, time_range=tonescript.modulation.nodes.TimeRange(3.0, 3.0)) == 10.0


def test_curve ():

	"""curve raises the ramp phase to the exponent."""

	assert _evaluate("curve(0, 100, 2)", position=2.0) == pytest.approx(25.0)
	assert _evaluate("curve(0, 100, .5)", position=1.0) == pytest.approx(50.0)


def test_envelope_argument_errors ():

	"""Speed and exponent must be positive."""

	with pytest.raises(tonescript.errors.ArgumentRangeError, match="speed"):
		_evaluate("ramp(0, 1, 0)")

	with pytest.raises(tonescript.errors.ArgumentRangeError, match="exponent"):
		_evaluate("curve(0, 1, -1)")


def test_rounding_functions ():

	"""round goes half up; floor, ceil and abs behave as usual."""

	assert _evaluate("round(2.5)") == 3.0
	assert _evaluate("round(-2.5)") == -2.0
	assert _evaluate("floor(2.7)") == 2.0
	assert _evaluate("ceil(2.1)") == 3.0
	assert _evaluate("abs(-4)") == 4.0


def test_clamp_min_max ():

	"""clamp takes its bounds in either order; min and max take any count."""

	assert _evaluate("clamp(150, 0, 127)") == 127.0
	assert _evaluate("clamp(-5, 127, 0)") == 0.0
	assert _evaluate("min(3, 1, 2)") == 1.0
	assert _evaluate("max(3, 1, 2)") == 3.0


def test_pow ():

	"""pow works until the result stops being a real number."""

	assert _evaluate("pow(2, 3)") == 8.0

	with pytest.raises(tonescript.errors.ArgumentRangeError):
		_evaluate("pow(-1, .5)")

	with pytest.raises(tonescript.errors.ArgumentRangeError):
		_evaluate("pow(10, 1000)")


def test_rand_ranges (rng: random.Random):

	"""rand forms stay inside their documented ranges."""

	for _ in range(50):
		assert -1.0 <= _evaluate("rand()", rng=rng) <= 1.0
		assert 0.0 <= _evaluate("rand(10)", rng=rng) < 10.0
		assert 5.0 <= _evaluate("rand(5, 6)", rng=rng) < 6.0


def test_random_is_seedable ():

	"""The same seed gives the same random values."""

	first = [_evaluate("rand() + choose(1, 2, 3)", rng=random.Random(9)) for _ in range(3)]
	second = [_evaluate("rand() + choose(1, 2, 3)", rng=random.Random(9)) for _ in range(3)]

	assert first == second


def test_choose (rng: random.Random):

	"""choose returns one of its arguments."""

	values = {_evaluate("choose(1, 2, 3)", rng=rng) for _ in range(50)}

	assert values <= {1.0, 2.0, 3.0}
	assert len(values) > 1


@pytest.mark.parametrize("expression", ["choose()", "min(1)", "round(1, 2)", "clamp(1, 2)", "curve(0, 1)", "cos()", "rand(1, 2, 3)"])
def test_wrong_argument_count (expression: str):

	"""Arity mismatches are evaluation errors."""

	with pytest.raises(tonescript.errors.EvaluationError, match="argument"):
		_evaluate(expression)
