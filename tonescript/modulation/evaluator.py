"""Evaluate modulation expressions."""

import random
import typing

import tonescript.errors
import tonescript.modulation.functions
import tonescript.modulation.nodes


NoteProperties = typing.Mapping[str, typing.Optional[float]]


def evaluate (node: tonescript.modulation.nodes.ExpressionNode, position: float, numerator: int, denominator: int, time_range: tonescript.modulation.nodes.TimeRange, note_properties: typing.Optional[NoteProperties] = None, rng: typing.Optional[random.Random] = None) -> float:

	"""
	Evaluate an expression for one note.

	Parameters:
		node: Expression tree from `tonescript.modulation.parser`.
		position: The note's position in musical beats from the clip start.
		numerator: Time signature numerator; ``1:0t`` is this many beats.
		denominator: Time signature denominator.
		time_range: Active window (musical beats) for ``ramp()`` and
			``curve()``.
		note_properties: Values for ``note.*`` and ``clip.*`` variables.
		rng: Random source for ``rand()`` and ``choose()``.

	Returns:
		The value as a float. Division or modulo by zero gives 0.

	Raises:
		EvaluationError: A variable with no value, or a function called with
			the wrong number of arguments.
		ArgumentRangeError: A function argument outside its domain.
		SyncError: ``sync`` without ``clip.position``.

	Example:
		```python
		node = tonescript.modulation.parser.parse_modulation("velocity += sin(4t)")[0].expression
		evaluate(node, 1.0, 4, 4, TimeRange(0.0, 4.0))    # 1.0
		```
	"""

	properties = note_properties if note_properties is not None else {}
	rng = rng if rng is not None else random.Random()

	return _evaluate(node, position, numerator, denominator, time_range, properties, rng)


def _evaluate (node: tonescript.modulation.nodes.ExpressionNode, position: float, numerator: int, denominator: int, time_range: tonescript.modulation.nodes.TimeRange, properties: NoteProperties, rng: random.Random) -> float:

	if isinstance(node, tonescript.modulation.nodes.NumberLiteral):
		return node.value

	if isinstance(node, tonescript.modulation.nodes.PeriodLiteral):
		return node.bars * numerator + node.value

	if isinstance(node, tonescript.modulation.nodes.Variable):
		value = properties.get(node.name)

		if value is None:
			raise tonescript.errors.EvaluationError(f"Variable {node.name} is not available here")

		return float(value)

	if isinstance(node, tonescript.modulation.nodes.UnaryOp):
		operand = _evaluate(node.operand, position, numerator, denominator, time_range, properties, rng)
		return -operand if node.op == "-" else operand

	if isinstance(node, tonescript.modulation.nodes.BinaryOp):
		left = _evaluate(node.left, position, numerator, denominator, time_range, properties, rng)
		right = _evaluate(node.right, position, numerator, denominator, time_range, properties, rng)

		if node.op == "+":
			return left + right

		if node.op == "-":
			return left - right

		if node.op == "*":
			return left * right

		if node.op == "/":
			return 0.0 if right == 0 else left / right

		if node.op == "%":
			# Result takes the divisor's sign: -1 % 4 == 3
			return 0.0 if right == 0 else left % right

		raise tonescript.errors.EvaluationError(f"Unknown operator: {node.op}")

	if isinstance(node, tonescript.modulation.nodes.FunctionCall):
		args = [_evaluate(arg, position, numerator, denominator, time_range, properties, rng) for arg in node.args]

		context = tonescript.modulation.functions.CallContext(
			position = position,
			time_range = time_range,
			note_properties = properties,
			rng = rng,
			sync = node.sync,
		)

		return tonescript.modulation.functions.call(node.name, args, context)

	raise TypeError(f"Unknown expression node: {node!r}")
