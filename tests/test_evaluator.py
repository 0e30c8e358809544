"""Tests for expression evaluation."""

import math
from datetime import datetime

import pytest

from async_document_seeder.evaluator import DependencyContext, ExpressionEvaluator, is_expression


@pytest.fixture
def evaluator() -> ExpressionEvaluator:
    context = DependencyContext()
    context.require({"math": "math", "datetime": "datetime:datetime"})
    return ExpressionEvaluator(context)


@pytest.mark.unit
class TestIsExpression:
    def test_marker_anywhere(self) -> None:
        assert is_expression("=1")
        assert is_expression("a=b")
        assert not is_expression("->users.foo")
        assert not is_expression(42)


@pytest.mark.unit
class TestExpressionEvaluator:
    """Tests for ExpressionEvaluator."""

    def test_self_reference(self, evaluator: ExpressionEvaluator) -> None:
        receiver = {"firstName": "Foo", "lastName": "Bar"}
        value = evaluator.evaluate("=this.firstName + ' ' + this.lastName", receiver)

        assert value == "Foo Bar"

    def test_arithmetic_and_builtins(self, evaluator: ExpressionEvaluator) -> None:
        assert evaluator.evaluate("=1 + 2 * 3", {}) == 7
        assert evaluator.evaluate("=-this.n ** 2", {"n": 3}) == -9
        assert evaluator.evaluate("=len(this.tags)", {"tags": ["a", "b"]}) == 2
        assert evaluator.evaluate("=[x for x in this.tags]", {"tags": []}) == "=[x for x in this.tags]"

    def test_conditionals_and_comparisons(self, evaluator: ExpressionEvaluator) -> None:
        expression = "=this.age * 2 if 1 < this.age <= 10 else 0"

        assert evaluator.evaluate(expression, {"age": 4}) == 8
        assert evaluator.evaluate(expression, {"age": 40}) == 0
        assert evaluator.evaluate("=this.a or this.b", {"a": "", "b": "b"}) == "b"
        assert evaluator.evaluate("=not this.a and this.b", {"a": 0, "b": 5}) == 5

    def test_collections_and_subscripts(self, evaluator: ExpressionEvaluator) -> None:
        receiver = {"tags": ["x", "y", "z"], "meta": {"level": 2}}

        assert evaluator.evaluate("=this.tags[1:]", receiver) == ["y", "z"]
        assert evaluator.evaluate("=this.meta['level']", receiver) == 2
        assert evaluator.evaluate("={'n': this.meta.level, 'l': [1, (2, 3)]}", receiver) == {
            "n": 2,
            "l": [1, (2, 3)],
        }

    def test_f_string(self, evaluator: ExpressionEvaluator) -> None:
        assert evaluator.evaluate("=f'{this.name}!{this.n:03d}'", {"name": "Foo", "n": 7}) == "Foo!007"

    def test_dependencies(self, evaluator: ExpressionEvaluator) -> None:
        assert evaluator.evaluate("=math.floor(2.7)", {}) == 2
        assert evaluator.evaluate("=datetime(2018, 5, 6)", {}) == datetime(2018, 5, 6)
        assert evaluator.evaluate("=datetime(year=2018, month=5, day=6).year", {}) == 2018

    def test_missing_fields_read_as_none(self, evaluator: ExpressionEvaluator) -> None:
        assert evaluator.evaluate("=this.missing", {"a": 1}) is None
        assert evaluator.evaluate("=this.nick or 'anon'", {"name": "Foo"}) == "anon"
        assert evaluator.evaluate("=this.nick or 'anon'", {"nick": "foo"}) == "foo"
        assert evaluator.evaluate("=math.not_there", {}) is None

    def test_bounded_operations_still_run(self, evaluator: ExpressionEvaluator) -> None:
        assert evaluator.evaluate("=2 ** 10", {}) == 1024
        assert evaluator.evaluate("='ab' * 3", {}) == "ababab"
        assert evaluator.evaluate("=3 * [0]", {}) == [0, 0, 0]

    def test_receiver_is_the_given_object(self, evaluator: ExpressionEvaluator) -> None:
        assert evaluator.evaluate("=this", {"a": 1}) == "=this"
        assert evaluator.evaluate("=_this", {"a": 1}) == {"a": 1}

    @pytest.mark.parametrize(
        "value",
        [
            "=undefinedName + 1",
            "=this.missing.name",
            "=1 +",
            "a=b",
            "=this.__class__",
            "=__import__('os')",
            "=open('/etc/passwd')",
            "=1 / 0",
            "=lambda: 1",
            "=9 ** 9 ** 9 ** 9",
            "=2 ** -100000",
            "='x' * 10 ** 9",
            "=[0] * 200000",
            "=new Date()",
        ],
    )
    def test_failure_keeps_literal(self, evaluator: ExpressionEvaluator, value: str) -> None:
        assert evaluator.evaluate(value, {"a": 1}) == value


@pytest.mark.unit
class TestDependencyContext:
    def test_require_modules_and_attributes(self) -> None:
        context = DependencyContext()
        context.require({"math": "math", "floor": "math:floor"})

        assert context["math"] is math
        assert context["floor"] is math.floor

    def test_bound_names_are_kept(self) -> None:
        sentinel = object()
        context = DependencyContext(math=sentinel)
        context.require({"math": "math"})

        assert context["math"] is sentinel

    def test_missing_module_error_is_not_wrapped(self) -> None:
        context = DependencyContext()

        with pytest.raises(ModuleNotFoundError):
            context.require({"nope": "a_module_that_does_not_exist"})

    def test_missing_attribute_error_is_not_wrapped(self) -> None:
        with pytest.raises(AttributeError):
            DependencyContext().require({"nope": "math:not_there"})

    def test_dependencies_shadow_builtins(self) -> None:
        context = DependencyContext(len=lambda value: "shadowed")

        assert ExpressionEvaluator(context).evaluate("=len('abc')", {}) == "shadowed"
