"""
Notation front-ends, interpreter and formatter.

Two dialects share one AST (`tonescript.notation.ast`) and one interpreter:

- ``tonescript.notation.parser`` - the tone dialect (``C3v90n2 [E3 G3]``)
- ``tonescript.notation.barbeat`` - the bar|beat dialect (``v90 t2 C3 1|1``)
"""
