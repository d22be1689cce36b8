"""
Edge Protocol - How nodes connect in a workflow.

Edges define:
1. Source and target nodes
2. A coarse ``condition`` tag matched against the source's branch outcome
   ("passed" / "failed" for condition nodes; untagged edges always match)
3. Optional fine-grained ``conditions`` guards evaluated at selection time

Example:
    Workflow(
        initial_node_id="start",
        nodes=[
            StartNode(id="start"),
            ConditionNode(id="is_active", conditions=[
                LeafCondition(field="user.status", operator="eq", value="active"),
            ]),
            EndNode(id="welcome"),
            EndNode(id="reject"),
        ],
        edges=[
            EdgeSpec(source="start", target="is_active"),
            EdgeSpec(source="is_active", target="welcome", condition="passed"),
            EdgeSpec(source="is_active", target="reject", condition="failed"),
        ],
    )

Workflows are usually loaded from JSON, where camelCase keys are accepted:

    {"initialNodeId": "start", "nodes": [...], "edges": [...]}
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, SerializeAsAny, field_validator

from ruleflow.graph.condition import Condition
from ruleflow.graph.node import NodeSpec, parse_node


class EdgeSpec(BaseModel):
    """Specification for an edge between nodes."""

    model_config = ConfigDict(extra="allow")

    source: str = Field(description="Source node ID")
    target: str = Field(description="Target node ID")
    condition: str | None = Field(
        default=None,
        description="Outcome tag this edge requires, e.g. 'passed' or 'failed'",
    )
    conditions: list[Condition] | None = Field(
        default=None,
        description="Guards that must all pass for the edge to be preferred",
    )

    def matches_outcome(self, outcome: str | None) -> bool:
        """Untagged edges match every outcome; tagged edges need an exact match."""
        return not self.condition or self.condition == outcome

    @property
    def is_guarded(self) -> bool:
        return bool(self.conditions)


class Workflow(BaseModel):
    """
    Complete specification of a workflow graph.

    Node ids are expected to be unique; duplicates resolve last-wins in
    :meth:`get_node`. Construction does not check that edge targets exist,
    use :meth:`validate` for a structural report.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    initial_node_id: str = Field(alias="initialNodeId", description="ID of the first node")
    nodes: list[SerializeAsAny[NodeSpec]] = Field(default_factory=list)
    edges: list[EdgeSpec] = Field(default_factory=list)

    _node_map: dict[str, NodeSpec] = PrivateAttr(default_factory=dict)

    @field_validator("nodes", mode="before")
    @classmethod
    def _parse_nodes(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list | tuple):
            return value
        return [parse_node(raw) for raw in value]

    @field_validator("edges", mode="before")
    @classmethod
    def _default_edges(cls, value: Any) -> Any:
        return [] if value is None else value

    def model_post_init(self, __context: Any) -> None:
        self._node_map = {node.id: node for node in self.nodes}

    @classmethod
    def from_json(cls, data: str | bytes) -> "Workflow":
        """Deserialize a workflow from a JSON document."""
        return cls.model_validate_json(data)

    def get_node(self, node_id: str) -> NodeSpec | None:
        """Get a node by ID."""
        return self._node_map.get(node_id)

    def get_outgoing_edges(self, node_id: str) -> list[EdgeSpec]:
        """Get all edges leaving a node, in declaration order."""
        return [edge for edge in self.edges if edge.source == node_id]

    def get_incoming_edges(self, node_id: str) -> list[EdgeSpec]:
        """Get all edges entering a node."""
        return [edge for edge in self.edges if edge.target == node_id]

    def validate(self) -> list[str]:
        """Validate the graph structure. Returns error messages, never raises."""
        errors = []

        if not self.get_node(self.initial_node_id):
            errors.append(f"Initial node '{self.initial_node_id}' not found")

        seen_ids: set[str] = set()
        for node in self.nodes:
            if node.id in seen_ids:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen_ids.add(node.id)

        for index, edge in enumerate(self.edges):
            if not self.get_node(edge.source):
                errors.append(f"Edge #{index} references missing source '{edge.source}'")
            if not self.get_node(edge.target):
                errors.append(f"Edge #{index} references missing target '{edge.target}'")

        reachable: set[str] = set()
        to_visit = [self.initial_node_id]
        while to_visit:
            current = to_visit.pop()
            if current in reachable:
                continue
            reachable.add(current)
            for edge in self.get_outgoing_edges(current):
                to_visit.append(edge.target)

        for node_id in self._node_map:
            if node_id not in reachable:
                errors.append(f"Node '{node_id}' is unreachable from entry")

        return errors


def load_workflow(path: str | Path) -> Workflow:
    """Load a workflow definition from a JSON file."""
    return Workflow.from_json(Path(path).read_text(encoding="utf-8"))
