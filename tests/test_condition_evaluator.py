"""Tests for condition parsing and ConditionEvaluator."""

from __future__ import annotations

import asyncio

import pytest
from pydantic import TypeAdapter, ValidationError

from ruleflow.graph.condition import (
    AndCondition,
    Condition,
    ConditionEvaluator,
    LeafCondition,
    NotCondition,
    OrCondition,
)
from ruleflow.graph.operators import OperatorRegistry
from ruleflow.runtime.context_store import MISSING, ContextStore

condition_adapter = TypeAdapter(Condition)


def parse(raw: dict):
    return condition_adapter.validate_python(raw)


def leaf(field: str, operator: str, value=MISSING) -> dict:
    condition = {"type": "field", "field": field, "operator": operator}
    if value is not MISSING:
        condition["value"] = value
    return condition


@pytest.fixture
def evaluator() -> ConditionEvaluator:
    return ConditionEvaluator(OperatorRegistry.with_builtins())


@pytest.fixture
def store() -> ContextStore:
    return ContextStore({"user": {"age": 30, "status": "active", "tags": ["a", "b"]}})


class TestParsing:
    def test_variants(self):
        assert isinstance(parse({"type": "and", "conditions": []}), AndCondition)
        assert isinstance(parse({"type": "or", "conditions": []}), OrCondition)
        assert isinstance(
            parse({"type": "not", "condition": leaf("x", "defined")}), NotCondition
        )
        assert isinstance(parse(leaf("x", "eq", 1)), LeafCondition)

    def test_nested_tree(self):
        tree = parse(
            {
                "type": "and",
                "conditions": [
                    leaf("a", "eq", 1),
                    {"type": "or", "conditions": [leaf("b", "truthy"), leaf("c", "null")]},
                ],
            }
        )
        assert isinstance(tree.conditions[1], OrCondition)
        assert isinstance(tree.conditions[1].conditions[0], LeafCondition)

    def test_leaf_without_value_keeps_missing(self):
        assert parse(leaf("x", "defined")).value is MISSING

    def test_leaf_type_label_is_free_form(self):
        condition = parse({"type": "whatever", "field": "x", "operator": "eq", "value": 1})
        assert isinstance(condition, LeafCondition)
        assert condition.type == "whatever"

    @pytest.mark.parametrize(
        "raw",
        [
            {"type": "and"},
            {"type": "not"},
            {"type": "leaf", "field": "x"},
            {"operator": "eq"},
            "eq",
        ],
    )
    def test_malformed_conditions_are_rejected(self, raw):
        with pytest.raises(ValidationError):
            condition_adapter.validate_python(raw)


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_leaf(self, evaluator, store):
        assert await evaluator.evaluate(parse(leaf("user.age", "gte", 18)), store)
        assert not await evaluator.evaluate(parse(leaf("user.age", "lt", 18)), store)

    @pytest.mark.asyncio
    async def test_leaf_reads_nested_and_indexed_paths(self, evaluator, store):
        assert await evaluator.evaluate(parse(leaf("user.tags[1]", "eq", "b")), store)
        assert await evaluator.evaluate(parse(leaf("user.missing", "notdefined")), store)

    @pytest.mark.asyncio
    async def test_empty_and_is_true_and_empty_or_is_false(self, evaluator, store):
        assert await evaluator.evaluate(AndCondition(conditions=[]), store) is True
        assert await evaluator.evaluate(OrCondition(conditions=[]), store) is False

    @pytest.mark.asyncio
    async def test_and_or_not(self, evaluator, store):
        active = leaf("user.status", "eq", "active")
        minor = leaf("user.age", "lt", 18)
        both = parse({"type": "and", "conditions": [active, minor]})
        either = parse({"type": "or", "conditions": [active, minor]})
        assert not await evaluator.evaluate(both, store)
        assert await evaluator.evaluate(either, store)
        assert await evaluator.evaluate(parse({"type": "not", "condition": minor}), store)

    @pytest.mark.asyncio
    async def test_unknown_operator_is_false(self, evaluator, store):
        assert await evaluator.evaluate(parse(leaf("user.age", "nope", 1)), store) is False
        negated = parse({"type": "not", "condition": leaf("user.age", "nope", 1)})
        assert await evaluator.evaluate(negated, store) is True

    @pytest.mark.asyncio
    async def test_async_operator(self, store):
        async def slow_eq(a, b=None):
            await asyncio.sleep(0)
            return a == b

        evaluator = ConditionEvaluator(OperatorRegistry.with_builtins({"slowEq": slow_eq}))
        assert await evaluator.evaluate(parse(leaf("user.age", "slowEq", 30)), store)

    @pytest.mark.asyncio
    async def test_and_evaluates_every_child(self, store):
        calls = []

        def record(a, b=None):
            calls.append(b)
            return b

        evaluator = ConditionEvaluator(OperatorRegistry({"record": record}))
        tree = parse(
            {
                "type": "and",
                "conditions": [leaf("x", "record", False), leaf("x", "record", True)],
            }
        )
        assert await evaluator.evaluate(tree, store) is False
        assert sorted(calls) == [False, True]

    @pytest.mark.asyncio
    async def test_or_children_run_concurrently(self, store):
        ready = asyncio.Event()

        async def waiter(a, b=None):
            await ready.wait()
            return True

        async def setter(a, b=None):
            ready.set()
            return False

        evaluator = ConditionEvaluator(OperatorRegistry({"wait": waiter, "set": setter}))
        tree = parse({"type": "or", "conditions": [leaf("x", "wait"), leaf("x", "set")]})
        # A sequential evaluation would block forever on the first child.
        assert await asyncio.wait_for(evaluator.evaluate(tree, store), timeout=1) is True

    @pytest.mark.asyncio
    async def test_operator_exception_propagates(self, store):
        def boom(a, b=None):
            raise RuntimeError("operator failed")

        evaluator = ConditionEvaluator(OperatorRegistry({"boom": boom}))
        with pytest.raises(RuntimeError, match="operator failed"):
            await evaluator.evaluate(parse(leaf("x", "boom")), store)

    @pytest.mark.asyncio
    async def test_failing_child_cancels_and_joins_siblings(self, store):
        finished = []
        cancelled = []

        async def slow(a, b=None):
            try:
                await asyncio.sleep(0.05)
            except asyncio.CancelledError:
                cancelled.append("slow")
                raise
            finished.append("slow")
            return True

        async def boom(a, b=None):
            raise RuntimeError("operator failed")

        evaluator = ConditionEvaluator(OperatorRegistry({"slow": slow, "boom": boom}))
        tree = parse({"type": "and", "conditions": [leaf("x", "slow"), leaf("x", "boom")]})
        with pytest.raises(RuntimeError, match="operator failed"):
            await evaluator.evaluate(tree, store)

        assert cancelled == ["slow"]
        current = asyncio.current_task()
        assert [t for t in asyncio.all_tasks() if t is not current and not t.done()] == []
        await asyncio.sleep(0.1)
        assert finished == []


class TestCheckConditions:
    @pytest.mark.asyncio
    async def test_empty_or_none_is_true(self, evaluator, store):
        assert await evaluator.check_conditions([], store) is True
        assert await evaluator.check_conditions(None, store) is True

    @pytest.mark.asyncio
    async def test_stops_at_first_false(self, store):
        calls = []

        def record(a, b=None):
            calls.append(b)
            return b

        evaluator = ConditionEvaluator(OperatorRegistry({"record": record}))
        conditions = [parse(leaf("x", "record", v)) for v in (True, False, True)]
        assert await evaluator.check_conditions(conditions, store) is False
        assert calls == [True, False]

    @pytest.mark.asyncio
    async def test_all_pass(self, evaluator, store):
        conditions = [
            parse(leaf("user.status", "eq", "active")),
            parse(leaf("user.tags", "contains", "a")),
        ]
        assert await evaluator.check_conditions(conditions, store) is True
