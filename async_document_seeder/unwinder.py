from collections.abc import Mapping
from typing import Any

from .evaluator import ExpressionEvaluator, is_expression
from .resolver import ReferenceResolver, is_reference


class Unwinder:
    """Turns an authored record into a plain record ready to be inserted."""

    def __init__(
        self, evaluator: ExpressionEvaluator, resolver: ReferenceResolver
    ) -> None:
        self.evaluator = evaluator
        self.resolver = resolver

    def unwind(self, record: Mapping[str, Any]) -> dict[str, Any]:
        return {key: self.parse_value(record, value) for key, value in record.items()}

    def parse_value(self, parent: Mapping[str, Any], value: Any) -> Any:
        """
        Parse one field value of ``parent``.

        Nested objects are unwound with themselves as the receiver, list items
        keep ``parent`` as theirs. Expressions are checked before references,
        so a reference containing ``=`` is evaluated as an expression.
        """
        if isinstance(value, Mapping):
            return self.unwind(value)
        if isinstance(value, (list, tuple)):
            return [self.parse_value(parent, item) for item in value]
        if is_expression(value):
            return self.evaluator.evaluate(value, parent)
        if is_reference(value):
            return self.resolver.resolve(value)
        return value
