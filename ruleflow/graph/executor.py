"""
Workflow Executor - Runs workflow graphs.

The executor:
1. Deep-copies the initial context into a ContextStore
2. Walks the graph from the initial node, visiting each node at most once
3. Dispatches per node type (start, condition, action, end)
4. Picks the next node from the outgoing edges
5. Records every step in the execution log and returns data + logs

Failure model:
- Unknown executor, unknown node type, renderer or executor failures raise
  and abort the run (no result is returned).
- An edge pointing at a node id that does not exist ends the run normally
  with an ``error`` log entry.
- An unknown operator inside a condition simply evaluates to False.
"""

import asyncio
import inspect
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ruleflow.config import EngineConfig
from ruleflow.graph.condition import ConditionEvaluator
from ruleflow.graph.edge import Workflow
from ruleflow.graph.errors import UnknownNodeTypeError
from ruleflow.graph.node import ActionNode, ConditionNode, EndNode, NodeSpec, StartNode
from ruleflow.graph.operators import ConditionOperator, OperatorRegistry
from ruleflow.graph.templates import (
    JinjaTemplateRenderer,
    TemplateRenderer,
    apply_transformations,
    render_templates,
)
from ruleflow.observability import reset_trace_context, set_trace_context
from ruleflow.runner.action_registry import ActionExecutor, ExecutorRegistry
from ruleflow.runtime.context_store import ContextStore
from ruleflow.runtime.execution_log import ExecutionLog, ExecutionLogEntry, LogStep

OUTCOME_PASSED = "passed"
OUTCOME_FAILED = "failed"


@dataclass
class WorkflowEngineOptions:
    """Host-supplied collaborators for a run."""

    custom_executors: dict[str, ActionExecutor] = field(default_factory=dict)
    custom_operators: dict[str, ConditionOperator] = field(default_factory=dict)
    template_renderer: TemplateRenderer | None = None
    max_delay_ms: float | None = None


@dataclass
class WorkflowResult:
    """Result of running a workflow."""

    data: dict[str, Any]
    logs: list[ExecutionLogEntry] = field(default_factory=list)
    run_id: str = ""
    path: list[str] = field(default_factory=list)  # Node IDs entered, in order

    @property
    def steps(self) -> list[LogStep]:
        return [entry.step for entry in self.logs]

    @property
    def errors(self) -> list[ExecutionLogEntry]:
        """``error`` entries (a missing node ended the run)."""
        return [entry for entry in self.logs if entry.step == LogStep.ERROR]

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "logs": [entry.to_dict() for entry in self.logs]}


class WorkflowExecutor:
    """
    Executes workflow graphs.

    Example:
        executor = WorkflowExecutor(
            executors={"log": log_executor},
            operators={"even": lambda a, b=None: a % 2 == 0},
        )

        result = await executor.run(workflow, {"name": "Alice"})
        result.data["__templates"]["greet"]["msg"]
    """

    def __init__(
        self,
        executors: ExecutorRegistry | Mapping[str, ActionExecutor] | None = None,
        operators: OperatorRegistry | Mapping[str, ConditionOperator] | None = None,
        renderer: TemplateRenderer | None = None,
        max_delay_ms: float | None = None,
        config: EngineConfig | None = None,
    ):
        """
        Initialize the executor.

        Args:
            executors: Action executors by operation type
            operators: Extra condition operators, layered over the built-ins by name
            renderer: Template renderer (Jinja2 by default)
            max_delay_ms: Upper bound for action node delays
            config: Engine configuration (loaded from disk when omitted)
        """
        self.logger = logging.getLogger(__name__)

        if isinstance(executors, ExecutorRegistry):
            self.executors = executors
        else:
            self.executors = ExecutorRegistry(executors)

        if isinstance(operators, OperatorRegistry):
            self.operators = operators
        else:
            self.operators = OperatorRegistry.with_builtins(operators)

        if renderer is None or max_delay_ms is None:
            config = config or EngineConfig()
            renderer = renderer or JinjaTemplateRenderer(strict_undefined=config.strict_templates)
            max_delay_ms = max_delay_ms if max_delay_ms is not None else config.max_delay_ms

        self.renderer = renderer
        self.max_delay_ms = max_delay_ms
        self.evaluator = ConditionEvaluator(self.operators)

    @classmethod
    def from_options(cls, options: WorkflowEngineOptions) -> "WorkflowExecutor":
        return cls(
            executors=options.custom_executors,
            operators=options.custom_operators,
            renderer=options.template_renderer,
            max_delay_ms=options.max_delay_ms,
        )

    async def run(
        self,
        workflow: Workflow,
        context: dict[str, Any] | None = None,
    ) -> WorkflowResult:
        """
        Run a workflow against an initial context.

        Args:
            workflow: The workflow graph
            context: Initial data; deep-copied, never mutated

        Returns:
            WorkflowResult with the final data and the execution log
        """
        run_id = uuid.uuid4().hex
        token = set_trace_context(run_id=run_id, workflow_id=workflow.id, node_id=None)
        try:
            return await self._drive(workflow, context, run_id)
        finally:
            reset_trace_context(token)

    async def _drive(
        self,
        workflow: Workflow,
        context: dict[str, Any] | None,
        run_id: str,
    ) -> WorkflowResult:
        """Walk the graph from the entry node until it halts."""
        store = ContextStore(context)
        log = ExecutionLog()
        visited: set[str] = set()
        path: list[str] = []

        self.logger.info(f"🚀 Starting workflow run (entry node: {workflow.initial_node_id})")

        current_node_id: str | None = workflow.initial_node_id
        while current_node_id is not None:
            if current_node_id in visited:
                self.logger.debug(f"Node '{current_node_id}' already visited, stopping")
                break
            visited.add(current_node_id)

            node = workflow.get_node(current_node_id)
            if node is None:
                message = f"Node {current_node_id} not found"
                self.logger.warning(f"⚠ {message}")
                log.error(current_node_id, message)
                break

            set_trace_context(node_id=node.id)
            path.append(node.id)
            log.node_enter(node.id)
            self.logger.debug(
                f"→ Entering {node.type} node '{node.id}'", extra={"step": "node_enter"}
            )
            try:
                current_node_id = await self._visit(workflow, node, store, log)
            except Exception as e:
                self.logger.error(f"✗ Node '{node.id}' failed: {e}")
                raise
            finally:
                log.node_exit(node.id)

        set_trace_context(node_id=None)
        log.complete(store.snapshot())
        self.logger.info(f"✓ Workflow run complete ({len(path)} nodes: {' → '.join(path)})")

        return WorkflowResult(data=store.data, logs=log.entries, run_id=run_id, path=path)

    async def _visit(
        self,
        workflow: Workflow,
        node: NodeSpec,
        store: ContextStore,
        log: ExecutionLog,
    ) -> str | None:
        """Run one node and return the id of the next node (None to stop)."""
        if isinstance(node, StartNode):
            return await self.select_next(workflow, node.id, store)

        if isinstance(node, ConditionNode):
            passed = await self.evaluator.check_conditions(node.conditions, store)
            outcome = OUTCOME_PASSED if passed else OUTCOME_FAILED
            self.logger.info(f"   Condition '{node.id}': {outcome}")
            return await self.select_next(workflow, node.id, store, outcome)

        if isinstance(node, ActionNode):
            await self.process_action(node, store, log)
            return await self.select_next(workflow, node.id, store)

        if isinstance(node, EndNode):
            return None

        raise UnknownNodeTypeError(node.type, node.id)

    async def process_action(
        self,
        node: ActionNode,
        store: ContextStore,
        log: ExecutionLog,
    ) -> None:
        """Gate, delay, transform, render, execute and record an action node."""
        if node.conditions and not await self.evaluator.check_conditions(node.conditions, store):
            self.logger.info(f"   ⏭ Action '{node.id}' skipped: conditions not met")
            return

        delay = self._effective_delay(node.delay)
        if delay > 0:
            await asyncio.sleep(delay / 1000)

        await apply_transformations(node.transformations, store, self.renderer)

        rendered = await render_templates(node.templates, store, self.renderer)
        store.set_templates(node.id, rendered)

        executor = self.executors.require(node.operation.type, node_id=node.id)
        result = executor(node.operation, rendered, store)
        if inspect.isawaitable(result):
            result = await result
        store.set_action_result(node.id, result)

        log.action_executed(node.id, result, rendered)
        self.logger.info(
            f"   ✓ Action '{node.id}' executed",
            extra={"step": "action_executed", "operation": node.operation.type},
        )

    def _effective_delay(self, delay: float | None) -> float:
        if not delay or delay <= 0:
            return 0
        if self.max_delay_ms is not None:
            return min(delay, self.max_delay_ms)
        return delay

    async def select_next(
        self,
        workflow: Workflow,
        node_id: str,
        store: ContextStore,
        outcome: str | None = None,
    ) -> str | None:
        """
        Determine the next node by following edges.

        Edges whose tag does not match ``outcome`` are ignored. The first
        remaining edge that is unguarded or whose guards pass wins. When every
        guard fails, the first remaining edge is followed anyway.
        """
        candidates = [
            edge for edge in workflow.get_outgoing_edges(node_id) if edge.matches_outcome(outcome)
        ]

        for edge in candidates:
            if not edge.is_guarded:
                return edge.target
            if await self.evaluator.check_conditions(edge.conditions, store):
                return edge.target

        if candidates:
            # Every guard failed: the first candidate is still followed.
            self.logger.debug(
                f"No guard passed on edges from '{node_id}', "
                f"falling back to '{candidates[0].target}'"
            )
            return candidates[0].target

        return None


async def run_workflow(
    workflow: Workflow | dict[str, Any],
    context: dict[str, Any] | None = None,
    options: WorkflowEngineOptions | None = None,
) -> WorkflowResult:
    """
    Run ``workflow`` once and return its data and execution log.

    Example:
        async def log_executor(operation, rendered, store):
            print(rendered["msg"])
            return {"logged": True}

        result = await run_workflow(
            {
                "initialNodeId": "start",
                "nodes": [
                    {"id": "start", "type": "start"},
                    {
                        "id": "action1",
                        "type": "action",
                        "templates": {"msg": "Hello {{ name }}"},
                        "operation": {"type": "log"},
                    },
                    {"id": "end", "type": "end"},
                ],
                "edges": [
                    {"source": "start", "target": "action1"},
                    {"source": "action1", "target": "end"},
                ],
            },
            {"name": "Alice"},
            WorkflowEngineOptions(custom_executors={"log": log_executor}),
        )
    """
    if not isinstance(workflow, Workflow):
        workflow = Workflow.model_validate(workflow)
    executor = WorkflowExecutor.from_options(options or WorkflowEngineOptions())
    return await executor.run(workflow, context)
