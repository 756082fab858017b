"""Safe boolean expressions over a row.

Expressions use a subset of Python syntax. They are parsed with `ast` and
turned into a tree of closures once; nothing is passed to `eval`.

Supported: constants, field names, `row.<field>`, attribute and subscript
access, comparisons (chained, `in`, `is`), `and`/`or`/`not`, unary `+`/`-`,
`+ - * / // %`, `x if c else y`, list/tuple/set literals, calls to a fixed set
of pure builtins and calls to read-only methods of values (`name.strip()`).

A row type with a field named `row` gives up the row name: `row` then means
that field.
"""

from __future__ import annotations

import ast
import operator
from typing import Any, Callable, FrozenSet, List, Tuple

from .errors import ConfigurationError
from .fields import field_names

Evaluator = Callable[[Any], Any]

ROW_NAME = "row"

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda x, y: x in y,
    ast.NotIn: lambda x, y: x not in y,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_FUNCTIONS = {
    "len": len,
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
}

# Value methods callable from expressions. All are read-only; mutators such as
# `list.clear` or `dict.update` and `str.format` (reaches attributes) are absent.
_ALLOWED_METHODS = frozenset(
    """
    strip lstrip rstrip lower upper casefold title capitalize
    startswith endswith find rfind replace split rsplit zfill
    isdigit isdecimal isnumeric isalpha isalnum isspace islower isupper
    count index get keys values items isoformat weekday isoweekday
    """.split()
)


class CompiledExpression:
    """A compiled predicate bound to one row type."""

    __slots__ = ("expression", "row_type", "_evaluate")

    def __init__(self, expression: str, row_type: type, evaluate: Evaluator) -> None:
        self.expression = expression
        self.row_type = row_type
        self._evaluate = evaluate

    def __call__(self, row: Any) -> bool:
        return bool(self._evaluate(row))

    def __repr__(self) -> str:
        return f"CompiledExpression({self.expression!r}, {self.row_type.__name__})"


def compile_expression(expression: str, row_type: type) -> CompiledExpression:
    """Compile `expression` for rows of `row_type`.

    Raises `ConfigurationError` for syntax errors, unsupported constructs and
    names that are not fields of `row_type`.
    """
    if not isinstance(expression, str) or not expression.strip():
        raise ConfigurationError("Inline validation expression must be a non-empty string.")

    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as exc:
        raise ConfigurationError(
            f"Failed to compile inline validation expression '{expression}': {exc.msg}"
        ) from exc

    builder = _ClosureBuilder(expression, frozenset(field_names(row_type)), row_type.__name__)
    return CompiledExpression(expression, row_type, builder.build(tree.body))


class _ClosureBuilder:
    def __init__(self, expression: str, fields: FrozenSet[str], type_name: str) -> None:
        self._expression = expression
        self._fields = fields
        self._type_name = type_name
        # A field called `row` shadows the row itself.
        self._row_shadowed = ROW_NAME in fields

    def _reject(self, reason: str) -> ConfigurationError:
        return ConfigurationError(
            f"Failed to compile inline validation expression '{self._expression}': {reason}"
        )

    def _is_row(self, node: ast.AST) -> bool:
        return isinstance(node, ast.Name) and node.id == ROW_NAME and not self._row_shadowed

    def _check_field(self, name: str) -> None:
        if name not in self._fields:
            raise self._reject(f"'{name}' is not a field of {self._type_name}")

    def build(self, node: ast.AST) -> Evaluator:
        method = getattr(self, f"_build_{type(node).__name__}", None)
        if method is None:
            raise self._reject(f"unsupported syntax '{type(node).__name__}'")
        return method(node)

    def _build_many(self, nodes: List[ast.expr]) -> Tuple[Evaluator, ...]:
        return tuple(self.build(n) for n in nodes)

    def _build_Constant(self, node: ast.Constant) -> Evaluator:
        value = node.value
        return lambda row: value

    def _build_Name(self, node: ast.Name) -> Evaluator:
        name = node.id
        if self._is_row(node):
            return lambda row: row
        self._check_field(name)
        return lambda row: getattr(row, name)

    def _build_Attribute(self, node: ast.Attribute) -> Evaluator:
        attr = node.attr
        if attr.startswith("_"):
            raise self._reject(f"access to '{attr}' is not allowed")
        if self._is_row(node.value):
            self._check_field(attr)
            return lambda row: getattr(row, attr)
        target = self.build(node.value)
        return lambda row: getattr(target(row), attr)

    def _build_Subscript(self, node: ast.Subscript) -> Evaluator:
        target = self.build(node.value)
        index = self.build(node.slice)
        return lambda row: target(row)[index(row)]

    def _build_Slice(self, node: ast.Slice) -> Evaluator:
        parts = tuple(
            self.build(part) if part is not None else None
            for part in (node.lower, node.upper, node.step)
        )
        return lambda row: slice(*(p(row) if p is not None else None for p in parts))

    def _build_Compare(self, node: ast.Compare) -> Evaluator:
        left = self.build(node.left)
        steps = []
        for op, comparator in zip(node.ops, node.comparators):
            fn = _COMPARE_OPS.get(type(op))
            if fn is None:
                raise self._reject(f"unsupported operator '{type(op).__name__}'")
            steps.append((fn, self.build(comparator)))

        def _compare(row: Any) -> bool:
            current = left(row)
            for fn, right_eval in steps:
                right = right_eval(row)
                if not fn(current, right):
                    return False
                current = right
            return True

        return _compare

    def _build_BoolOp(self, node: ast.BoolOp) -> Evaluator:
        values = self._build_many(node.values)
        if isinstance(node.op, ast.And):

            def _and(row: Any) -> Any:
                result: Any = True
                for value in values:
                    result = value(row)
                    if not result:
                        return result
                return result

            return _and

        def _or(row: Any) -> Any:
            result: Any = False
            for value in values:
                result = value(row)
                if result:
                    return result
            return result

        return _or

    def _build_UnaryOp(self, node: ast.UnaryOp) -> Evaluator:
        fn = _UNARY_OPS.get(type(node.op))
        if fn is None:
            raise self._reject(f"unsupported operator '{type(node.op).__name__}'")
        operand = self.build(node.operand)
        return lambda row: fn(operand(row))

    def _build_BinOp(self, node: ast.BinOp) -> Evaluator:
        fn = _BINARY_OPS.get(type(node.op))
        if fn is None:
            raise self._reject(f"unsupported operator '{type(node.op).__name__}'")
        left = self.build(node.left)
        right = self.build(node.right)
        return lambda row: fn(left(row), right(row))

    def _build_IfExp(self, node: ast.IfExp) -> Evaluator:
        test = self.build(node.test)
        body = self.build(node.body)
        orelse = self.build(node.orelse)
        return lambda row: body(row) if test(row) else orelse(row)

    def _build_Tuple(self, node: ast.Tuple) -> Evaluator:
        items = self._build_many(node.elts)
        return lambda row: tuple(item(row) for item in items)

    def _build_List(self, node: ast.List) -> Evaluator:
        items = self._build_many(node.elts)
        return lambda row: [item(row) for item in items]

    def _build_Set(self, node: ast.Set) -> Evaluator:
        items = self._build_many(node.elts)
        return lambda row: {item(row) for item in items}

    def _build_Call(self, node: ast.Call) -> Evaluator:
        if node.keywords or any(isinstance(arg, ast.Starred) for arg in node.args):
            raise self._reject("keyword and star arguments are not allowed")
        args = self._build_many(node.args)

        if isinstance(node.func, ast.Name):
            fn = _FUNCTIONS.get(node.func.id)
            if fn is None:
                raise self._reject(f"function '{node.func.id}' is not allowed")
            return lambda row: fn(*(arg(row) for arg in args))

        if isinstance(node.func, ast.Attribute):
            name = node.func.attr
            if name not in _ALLOWED_METHODS:
                raise self._reject(f"method '{name}' is not allowed")
            if self._is_row(node.func.value):
                raise self._reject(f"methods of the row itself cannot be called ('{name}')")
            target = self.build(node.func.value)
            return lambda row: getattr(target(row), name)(*(arg(row) for arg in args))

        raise self._reject("only builtin functions and value methods can be called")
