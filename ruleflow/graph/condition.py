"""
Condition Protocol - boolean expression trees over the context store.

A condition is one of:
- and:  {"type": "and", "conditions": [...]}
- or:   {"type": "or", "conditions": [...]}
- not:  {"type": "not", "condition": {...}}
- leaf: {"type": <label>, "field": "user.status", "operator": "eq", "value": "active"}

The leaf ``type`` is a free-form label; only ``field``, ``operator`` and
``value`` take part in evaluation.

Evaluation asymmetry:
- ``and``/``or`` nodes fan out and evaluate every child concurrently, then
  combine. There is no short-circuit, so every operator always runs. If a
  child raises, its siblings are cancelled and awaited before the error
  propagates.
- ``check_conditions`` (node gates and edge guards) walks a list
  sequentially and stops at the first False.
"""

import asyncio
import inspect
import logging
from collections.abc import Sequence
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Discriminator, Field, Tag

from ruleflow.graph.operators import OperatorRegistry
from ruleflow.runtime.context_store import MISSING, ContextStore

logger = logging.getLogger(__name__)


class AndCondition(BaseModel):
    """True when every child is true (vacuously true when empty)."""

    type: Literal["and"] = "and"
    conditions: list["Condition"] = Field(default_factory=list)


class OrCondition(BaseModel):
    """True when any child is true (false when empty)."""

    type: Literal["or"] = "or"
    conditions: list["Condition"] = Field(default_factory=list)


class NotCondition(BaseModel):
    type: Literal["not"] = "not"
    condition: "Condition"


class LeafCondition(BaseModel):
    """Applies ``operator`` to the value at ``field`` and ``value``."""

    type: str = ""
    field: str = Field(description="Dotted path into the context store")
    operator: str = Field(description="Name looked up in the operator registry")
    value: Any = MISSING


def _condition_tag(value: Any) -> str | None:
    """Pick the condition variant from a raw dict or an existing model."""
    if isinstance(value, dict):
        kind = value.get("type")
        keys = value.keys()
    elif isinstance(value, BaseModel):
        kind = getattr(value, "type", None)
        keys = type(value).model_fields.keys()
    else:
        return None

    if kind in ("and", "or") and "conditions" in keys:
        return kind
    if kind == "not" and "condition" in keys:
        return "not"
    if "field" in keys and "operator" in keys:
        return "leaf"
    return None


Condition = Annotated[
    Union[
        Annotated[AndCondition, Tag("and")],
        Annotated[OrCondition, Tag("or")],
        Annotated[NotCondition, Tag("not")],
        Annotated[LeafCondition, Tag("leaf")],
    ],
    Discriminator(_condition_tag),
]

AndCondition.model_rebuild()
OrCondition.model_rebuild()
NotCondition.model_rebuild()


class ConditionEvaluator:
    """
    Evaluates condition trees against a :class:`ContextStore`.

    Example:
        evaluator = ConditionEvaluator(OperatorRegistry.with_builtins())
        ok = await evaluator.evaluate(
            LeafCondition(field="user.age", operator="gte", value=18),
            store,
        )
    """

    def __init__(self, operators: OperatorRegistry):
        self.operators = operators

    async def evaluate(self, condition: Condition, store: ContextStore) -> bool:
        """Evaluate a single condition tree."""
        if isinstance(condition, AndCondition):
            return all(await self._evaluate_children(condition.conditions, store))

        if isinstance(condition, OrCondition):
            return any(await self._evaluate_children(condition.conditions, store))

        if isinstance(condition, NotCondition):
            return not await self.evaluate(condition.condition, store)

        if isinstance(condition, LeafCondition):
            return await self._evaluate_leaf(condition, store)

        return False

    async def _evaluate_children(
        self, children: Sequence[Condition], store: ContextStore
    ) -> list[bool]:
        """Evaluate ``children`` concurrently. A failing child cancels and joins the rest."""
        tasks = [asyncio.create_task(self.evaluate(child, store)) for child in children]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _evaluate_leaf(self, leaf: LeafCondition, store: ContextStore) -> bool:
        operator = self.operators.get(leaf.operator)
        if operator is None:
            logger.debug(f"Unknown operator '{leaf.operator}' on field '{leaf.field}'")
            return False

        outcome = operator(store.resolve(leaf.field), leaf.value)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return bool(outcome)

    async def check_conditions(
        self, conditions: Sequence[Condition] | None, store: ContextStore
    ) -> bool:
        """Sequential AND over ``conditions`` with early exit; empty is True."""
        for condition in conditions or ():
            if not await self.evaluate(condition, store):
                return False
        return True
