"""
Node Protocol - the units of workflow behaviour.

Nodes are tagged on ``type``:
- start / end: terminal markers
- action: gate, delay, transform, render templates, call an executor
- condition: pure branch node, routes along "passed" / "failed" edges

Unknown ``type`` values are kept as plain :class:`NodeSpec` instances so a
workflow still loads; the executor rejects them when it reaches one.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ruleflow.graph.condition import Condition


class Operation(BaseModel):
    """
    Opaque payload handed to the executor registered for ``type``.

    Any extra fields are kept as-is and readable as attributes or through
    ``operation.get("key")``.

    Example:
        Operation(type="http", method="POST", url="https://example.com/hook")
    """

    model_config = ConfigDict(extra="allow")

    type: str

    def get(self, key: str, default: Any = None) -> Any:
        if key == "type":
            return self.type
        return (self.model_extra or {}).get(key, default)


class Transformation(BaseModel):
    """Render ``value`` as a template and write it at ``field``."""

    field: str = Field(description="Dotted path written in the context store")
    value: str = Field(description="Template string rendered against the context store")


class NodeSpec(BaseModel):
    """Base node. Instances of this exact class carry an unrecognized type."""

    model_config = ConfigDict(extra="allow")

    id: str
    type: str


class StartNode(NodeSpec):
    type: Literal["start"] = "start"


class EndNode(NodeSpec):
    type: Literal["end"] = "end"


class ConditionNode(NodeSpec):
    """Branch node: evaluates ``conditions`` and follows the matching tag."""

    type: Literal["condition"] = "condition"
    conditions: list[Condition] = Field(default_factory=list)


class ActionNode(NodeSpec):
    """
    Node that performs a side effect through an executor.

    Example:
        ActionNode(
            id="notify",
            delay=250,
            transformations=[Transformation(field="user.greeting", value="Hi {{ user.name }}")],
            templates={"body": "{{ user.greeting }}!"},
            operation=Operation(type="email", to="ops@example.com"),
            conditions=[LeafCondition(field="user.active", operator="true")],
        )
    """

    type: Literal["action"] = "action"
    delay: float | None = Field(default=None, description="Milliseconds to wait before running")
    templates: dict[str, str] | None = None
    transformations: list[Transformation] | None = None
    operation: Operation
    conditions: list[Condition] | None = None


NODE_TYPES: dict[str, type[NodeSpec]] = {
    "start": StartNode,
    "end": EndNode,
    "action": ActionNode,
    "condition": ConditionNode,
}


def parse_node(raw: Any) -> NodeSpec:
    """Build the node model matching ``raw["type"]`` (generic NodeSpec otherwise)."""
    if isinstance(raw, NodeSpec):
        if type(raw) is NodeSpec and raw.type in NODE_TYPES:
            return NODE_TYPES[raw.type].model_validate(raw.model_dump())
        return raw
    if not isinstance(raw, dict):
        raise ValueError(f"Node definition must be a mapping, got {type(raw).__name__}")
    node_cls = NODE_TYPES.get(raw.get("type"), NodeSpec)
    return node_cls.model_validate(raw)
