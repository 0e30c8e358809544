import ast
import logging
import operator
from collections.abc import Mapping
from typing import Any, Callable

from .registry import parse_to_target

logger = logging.getLogger(__name__)

EXPRESSION_MARKER = "="
RECEIVER_NAME = "_this"

MAX_EXPONENT = 1000
MAX_SEQUENCE_LENGTH = 100_000

SAFE_BUILTINS: dict[str, Any] = {
    "True": True,
    "False": False,
    "None": None,
    "abs": abs,
    "bool": bool,
    "dict": dict,
    "float": float,
    "int": int,
    "len": len,
    "list": list,
    "max": max,
    "min": min,
    "round": round,
    "sorted": sorted,
    "str": str,
    "sum": sum,
    "tuple": tuple,
}

_BINARY_OPERATORS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS: dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARE_OPERATORS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
}


def is_expression(value: Any) -> bool:
    return isinstance(value, str) and EXPRESSION_MARKER in value


class ExpressionError(Exception):
    """Raised inside the interpreter for constructs it refuses to run."""


def _check_exponent(exponent: Any) -> None:
    if isinstance(exponent, (int, float)) and abs(exponent) > MAX_EXPONENT:
        raise ExpressionError(
            "Exponent {} exceeds the limit of {}".format(exponent, MAX_EXPONENT)
        )


def _check_repeat(sequence: Any, times: Any) -> None:
    if not isinstance(sequence, (str, bytes, list, tuple)) or not isinstance(times, int):
        return
    if len(sequence) * times > MAX_SEQUENCE_LENGTH:
        raise ExpressionError(
            "Repeated sequence exceeds the limit of {} items".format(MAX_SEQUENCE_LENGTH)
        )


class DependencyContext(dict):
    """Helper values that every expression of a seeding run can see."""

    def require(self, dependencies: Mapping[str, str]) -> None:
        for name, source in dependencies.items():
            # Do nothing if the dependency is already defined
            if name in self:
                continue
            self[name] = parse_to_target(source)
            logger.debug("Bound dependency '%s' to '%s'", name, source)


class _Interpreter(ast.NodeVisitor):
    def __init__(self, scope: Mapping[str, Any]) -> None:
        self.scope = scope

    def run(self, source: str) -> Any:
        tree = ast.parse(source.strip(), mode="eval")
        return self.visit(tree)

    def generic_visit(self, node: ast.AST) -> Any:
        raise ExpressionError(
            "Unsupported syntax '{}'".format(type(node).__name__)
        )

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id not in self.scope:
            raise NameError("name '{}' is not defined".format(node.id))
        return self.scope[node.id]

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        if node.attr.startswith("__"):
            raise ExpressionError("Access to '{}' is not allowed".format(node.attr))
        value = self.visit(node.value)
        if value is None:
            raise TypeError(
                "Cannot read property '{}' of None".format(node.attr)
            )
        # Absent fields read as None, like undefined properties.
        if isinstance(value, Mapping):
            return value.get(node.attr)
        return getattr(value, node.attr, None)

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        return self.visit(node.value)[self.visit(node.slice)]

    def visit_Slice(self, node: ast.Slice) -> slice:
        return slice(
            self.visit(node.lower) if node.lower else None,
            self.visit(node.upper) if node.upper else None,
            self.visit(node.step) if node.step else None,
        )

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        op = _BINARY_OPERATORS.get(type(node.op))
        if op is None:
            return self.generic_visit(node.op)
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Pow):
            _check_exponent(right)
        elif isinstance(node.op, ast.Mult):
            _check_repeat(left, right)
            _check_repeat(right, left)
        return op(left, right)

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        op = _UNARY_OPERATORS.get(type(node.op))
        if op is None:
            return self.generic_visit(node.op)
        return op(self.visit(node.operand))

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        result = None
        for value in node.values:
            result = self.visit(value)
            if isinstance(node.op, ast.And) and not result:
                return result
            if isinstance(node.op, ast.Or) and result:
                return result
        return result

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for op_node, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            if not _COMPARE_OPERATORS[type(op_node)](left, right):
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)

    def visit_Call(self, node: ast.Call) -> Any:
        func = self.visit(node.func)
        args = []
        for arg in node.args:
            if isinstance(arg, ast.Starred):
                return self.generic_visit(arg)
            args.append(self.visit(arg))
        kwargs = {}
        for keyword in node.keywords:
            if keyword.arg is None:
                return self.generic_visit(keyword)
            kwargs[keyword.arg] = self.visit(keyword.value)
        return func(*args, **kwargs)

    def visit_List(self, node: ast.List) -> list:
        return [self.visit(elt) for elt in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> tuple:
        return tuple(self.visit(elt) for elt in node.elts)

    def visit_Set(self, node: ast.Set) -> set:
        return {self.visit(elt) for elt in node.elts}

    def visit_Dict(self, node: ast.Dict) -> dict:
        result = {}
        for key, value in zip(node.keys, node.values):
            if key is None:
                return self.generic_visit(value)
            result[self.visit(key)] = self.visit(value)
        return result

    def visit_JoinedStr(self, node: ast.JoinedStr) -> str:
        return "".join(str(self.visit(value)) for value in node.values)

    def visit_FormattedValue(self, node: ast.FormattedValue) -> str:
        value = self.visit(node.value)
        if node.conversion == ord("r"):
            value = repr(value)
        elif node.conversion == ord("s"):
            value = str(value)
        elif node.conversion == ord("a"):
            value = ascii(value)
        spec = self.visit(node.format_spec) if node.format_spec else ""
        return format(value, spec)


class ExpressionEvaluator:
    """
    Evaluates ``=``-prefixed field values against the record that holds them.

    ``this.<field>`` refers to the receiver record; names bound in the
    dependency context are available as plain names. A failing expression
    is not an error: the literal string is handed back so the field keeps
    its authored text.
    """

    def __init__(self, context: DependencyContext | None = None) -> None:
        self.context = context if context is not None else DependencyContext()

    def evaluate(self, value: str, receiver: Any) -> Any:
        source = value[1:].replace("this.", RECEIVER_NAME + ".")
        scope = {**SAFE_BUILTINS, **self.context, RECEIVER_NAME: receiver}
        try:
            return _Interpreter(scope).run(source)
        except Exception as err:
            logger.debug("Keeping literal value %r: %s", value, err)
            return value
