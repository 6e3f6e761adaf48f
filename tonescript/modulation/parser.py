"""Modulation text parser.

Modulation text is a list of assignments, one per line (or separated by ``;``):

    [pitch selector] [time selector]: parameter = expression
    [pitch selector] [time selector]: parameter += expression

``=`` sets the parameter to the value; ``+=`` adds the value to it.

**Parameters:** ``velocity``, ``timing``, ``duration``, ``probability``,
``deviation``, ``pitch``.

**Selectors** (optional, either order, followed by ``:``):
- ``C3`` or ``C3-C5``: only notes in that pitch range.
- ``1|1-3|1``: only notes starting inside that span; the span also becomes the
  range ``ramp()`` and ``curve()`` travel across.

**Expressions:** numbers (``-5``, ``.5``), pitch names (``C3`` = 60), periods
(``1t``, ``1/3t``, ``1:0t``), variables (``note.velocity``, ``clip.position``
...), ``+ - * / %`` with parentheses, and the functions listed in
`tonescript.modulation.functions`. ``%`` wraps into the divisor's range, so
``-1 % 4`` is 3. Waveform calls take a trailing ``sync`` flag to follow the
arrangement timeline instead of the clip.

Comments: ``// ...``, ``# ...`` and ``/* ... */``.

Example:
	```python
	assignments = parse_modulation(\"\"\"
		velocity += 20 * cos(1:0t)      // accent every downbeat
		C1-C2: probability = 0.5
		1|1-5|1: velocity = ramp(40, 120)
	\"\"\")
	```
"""

import logging
import typing

import lark
import lark.exceptions
import lark.tree

import tonescript.bar_beat
import tonescript.errors
import tonescript.modulation.functions
import tonescript.modulation.nodes
import tonescript.pitch


logger = logging.getLogger(__name__)

PARAMETERS = ("velocity", "timing", "duration", "probability", "deviation", "pitch")

VARIABLES = frozenset({
	"note.pitch",
	"note.start",
	"note.velocity",
	"note.deviation",
	"note.duration",
	"note.probability",
	"note.index",
	"note.count",
	"note.bar",
	"note.beat",
	"clip.position",
	"clip.duration",
	"clip.bar_duration",
})

MODULATION_GRAMMAR = r"""
	start: line (_SEPARATOR line)*

	line: assignment?

	assignment: selectors? PARAMETER OPERATOR expression

	selectors: _selector+ ":"
	_selector: pitch_selector
		| time_selector

	pitch_selector: PITCH ("-" PITCH)?
	time_selector: POSITION "-" POSITION

	?expression: sum

	?sum: product
		| sum "+" product -> add
		| sum "-" product -> subtract

	?product: unary
		| product "*" unary -> multiply
		| product "/" unary -> divide
		| product "%" unary -> modulo

	?unary: atom
		| "-" unary -> negate
		| "+" unary

	?atom: NUMBER -> number
		| PERIOD -> period
		| PITCH -> pitch_literal
		| VARIABLE -> variable
		| NAME "(" [arguments] ")" -> call
		| NAME -> bare_name
		| "(" expression ")"

	arguments: _argument ("," _argument)*
	_argument: expression
		| SYNC

	PARAMETER: "velocity" | "timing" | "duration" | "probability" | "deviation" | "pitch"
	OPERATOR: "+=" | "="
	SYNC: "sync"
	PERIOD.2: /(?:\d+:\d+(?:\.\d+)?|\d+\/\d+|\d+(?:\.\d*)?|\.\d+)t/
	NUMBER: /\d+(?:\.\d*)?|\.\d+/
	PITCH: /[A-G][#b]?-?\d+/
	POSITION: /\d+\|\d+(?:\+\d+\/\d+|\.\d+|\/\d+)?/
	VARIABLE.2: /[a-z_]+\.[a-z_]+/
	NAME: /[a-z_][a-z0-9_]*/

	_SEPARATOR: /\r?\n/ | ";"

	LINE_COMMENT: /\/\/[^\n]*/
	HASH_COMMENT: /#[^\n]*/
	BLOCK_COMMENT: /\/\*[\s\S]*?\*\//

	%import common.WS_INLINE
	%ignore WS_INLINE
	%ignore LINE_COMMENT
	%ignore HASH_COMMENT
	%ignore BLOCK_COMMENT
"""

_PARSER = lark.Lark(MODULATION_GRAMMAR, parser="lalr", propagate_positions=True)


def parse_modulation (text: str) -> typing.List[tonescript.modulation.nodes.Assignment]:

	"""
	Parse modulation text into assignments, in the order written.

	Raises:
		ExpressionParseError: Malformed text, an unknown parameter, function
			or variable, a missing expression or unbalanced parentheses. The
			error's ``line`` is the 1-based line number.
	"""

	try:
		tree = _PARSER.parse(text)
	except lark.UnexpectedInput as exc:
		raise _parse_error(text, exc) from exc

	try:
		assignments = _ModulationTransformer().transform(tree)
	except lark.exceptions.VisitError as exc:
		if isinstance(exc.orig_exc, tonescript.errors.TonescriptError):
			raise exc.orig_exc from None
		raise

	logger.debug(f"Parsed {len(assignments)} modulation assignments")

	return assignments


def parse_modulation_map (text: str) -> typing.Dict[str, tonescript.modulation.nodes.Assignment]:

	"""
	Parse modulation text into a mapping of parameter to assignment.

	When a parameter is assigned more than once, the last assignment wins.
	"""

	return {assignment.parameter: assignment for assignment in parse_modulation(text)}


def _parse_error (text: str, exc: lark.UnexpectedInput) -> tonescript.errors.ExpressionParseError:

	line = exc.line if isinstance(exc.line, int) and exc.line > 0 else text.count("\n") + 1

	if isinstance(exc, lark.exceptions.UnexpectedCharacters):
		position = exc.pos_in_stream
		detail = f"unexpected character {text[position:position + 1]!r}"

	elif isinstance(exc, lark.exceptions.UnexpectedToken) and exc.token.type not in ("$END", "_SEPARATOR"):
		detail = f"unexpected {str(exc.token)!r}"

	else:
		detail = "unexpected end of line"

	return tonescript.errors.ExpressionParseError(f"Modulation line {line}: {detail}", line)


class _ModulationTransformer(lark.Transformer):

	"""
	Build `tonescript.modulation.nodes` from the lark tree.
	"""

	def start (self, children: list) -> typing.List[tonescript.modulation.nodes.Assignment]:
		return [child for child in children if child is not None]

	def line (self, children: list) -> typing.Optional[tonescript.modulation.nodes.Assignment]:
		return children[0] if children else None

	@lark.v_args(meta=True)
	def assignment (self, meta: lark.tree.Meta, children: list) -> tonescript.modulation.nodes.Assignment:

		pitch_range = None
		time_range = None

		if len(children) == 4:
			selectors, parameter, operator, expression = children

			for selector in selectors:
				if isinstance(selector, tonescript.modulation.nodes.PitchRange):
					pitch_range = selector
				else:
					time_range = selector

		else:
			parameter, operator, expression = children

		return tonescript.modulation.nodes.Assignment(
			parameter = str(parameter),
			operator = "set" if str(operator) == "=" else "add",
			expression = expression,
			pitch_range = pitch_range,
			time_range = time_range,
			line = meta.line,
		)

	def selectors (self, children: list) -> list:

		kinds = [type(child.value) for child in children]

		if len(set(kinds)) != len(kinds):
			raise tonescript.errors.ExpressionParseError("Only one pitch selector and one time selector are allowed per line", children[0].line)

		return [child.value for child in children]

	def pitch_selector (self, children: list) -> "_Located":

		low = self._pitch(children[0])
		high = self._pitch(children[-1])

		if high < low:
			raise tonescript.errors.ExpressionParseError(
				f"Invalid pitch range {children[0]}-{children[-1]}: end is below start",
				children[0].line,
			)

		return _Located(tonescript.modulation.nodes.PitchRange(low, high), children[0].line)

	def time_selector (self, children: list) -> "_Located":

		start, end = str(children[0]), str(children[1])

		try:
			start_beats = tonescript.bar_beat.bar_beat_to_beats(start)
			end_beats = tonescript.bar_beat.bar_beat_to_beats(end)
		except ValueError as exc:
			raise tonescript.errors.ExpressionParseError(f"Invalid time range {start}-{end}: {exc}", children[0].line) from exc

		if end_beats < start_beats:
			raise tonescript.errors.ExpressionParseError(f"Invalid time range {start}-{end}: end is before start", children[0].line)

		return _Located(tonescript.modulation.nodes.TimeSelector(start, end), children[0].line)

	def _pitch (self, token: lark.Token) -> int:

		try:
			return tonescript.pitch.name_to_midi(str(token))
		except tonescript.errors.PitchRangeError as exc:
			raise tonescript.errors.ExpressionParseError(f"{exc.message}", token.line) from exc

	def number (self, children: list) -> tonescript.modulation.nodes.NumberLiteral:
		return tonescript.modulation.nodes.NumberLiteral(float(children[0]))

	def pitch_literal (self, children: list) -> tonescript.modulation.nodes.NumberLiteral:
		return tonescript.modulation.nodes.NumberLiteral(float(self._pitch(children[0])))

	def period (self, children: list) -> tonescript.modulation.nodes.PeriodLiteral:

		text = str(children[0])[:-1]

		try:
			if ":" in text:
				bars_text, beats_text = text.split(":", 1)
				return tonescript.modulation.nodes.PeriodLiteral(float(beats_text), "bars", int(bars_text))

			return tonescript.modulation.nodes.PeriodLiteral(tonescript.bar_beat.parse_beat_value(text))

		except ValueError as exc:
			raise tonescript.errors.ExpressionParseError(f"Invalid period {children[0]}: {exc}", children[0].line) from exc

	def variable (self, children: list) -> tonescript.modulation.nodes.Variable:

		name = str(children[0])

		if name not in VARIABLES:
			raise tonescript.errors.ExpressionParseError(f"Unknown variable: {name}", children[0].line)

		return tonescript.modulation.nodes.Variable(name)

	def call (self, children: list) -> tonescript.modulation.nodes.FunctionCall:

		name_token, arguments = children
		name = str(name_token)
		args = list(arguments) if arguments is not None else []
		sync = False

		if name not in tonescript.modulation.functions.FUNCTIONS:
			raise tonescript.errors.ExpressionParseError(f"Unknown function: {name}()", name_token.line)

		if args and isinstance(args[-1], lark.Token):
			sync = True
			args.pop()

			if name not in tonescript.modulation.functions.WAVEFORM_FUNCTIONS:
				raise tonescript.errors.ExpressionParseError(f"sync is only allowed on waveform functions, not {name}()", name_token.line)

		if any(isinstance(arg, lark.Token) for arg in args):
			raise tonescript.errors.ExpressionParseError(f"sync must be the last argument of {name}()", name_token.line)

		return tonescript.modulation.nodes.FunctionCall(name, tuple(args), sync)

	def bare_name (self, children: list) -> typing.NoReturn:

		token = children[0]
		name = str(token)

		if name == "sync":
			raise tonescript.errors.ExpressionParseError("sync is only allowed as the last argument of a waveform function", token.line)

		if name in tonescript.modulation.functions.FUNCTIONS:
			raise tonescript.errors.ExpressionParseError(f"Function {name} needs parentheses: {name}(...)", token.line)

		raise tonescript.errors.ExpressionParseError(f"Unknown name: {name}", token.line)

	def arguments (self, children: list) -> list:
		return list(children)

	def add (self, children: list) -> tonescript.modulation.nodes.BinaryOp:
		return tonescript.modulation.nodes.BinaryOp("+", children[0], children[1])

	def subtract (self, children: list) -> tonescript.modulation.nodes.BinaryOp:
		return tonescript.modulation.nodes.BinaryOp("-", children[0], children[1])

	def multiply (self, children: list) -> tonescript.modulation.nodes.BinaryOp:
		return tonescript.modulation.nodes.BinaryOp("*", children[0], children[1])

	def divide (self, children: list) -> tonescript.modulation.nodes.BinaryOp:
		return tonescript.modulation.nodes.BinaryOp("/", children[0], children[1])

	def modulo (self, children: list) -> tonescript.modulation.nodes.BinaryOp:
		return tonescript.modulation.nodes.BinaryOp("%", children[0], children[1])

	def negate (self, children: list) -> tonescript.modulation.nodes.ExpressionNode:

		operand = children[0]

		if isinstance(operand, tonescript.modulation.nodes.NumberLiteral):
			return tonescript.modulation.nodes.NumberLiteral(-operand.value)

		return tonescript.modulation.nodes.UnaryOp("-", operand)


class _Located:

	"""A selector value together with the line it was written on."""

	def __init__ (self, value: typing.Any, line: int) -> None:

		self.value = value
		self.line = line
