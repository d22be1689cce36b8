"""Graph structures: Nodes, Edges, Conditions and the Workflow Executor."""

from ruleflow.graph.condition import (
    AndCondition,
    Condition,
    ConditionEvaluator,
    LeafCondition,
    NotCondition,
    OrCondition,
)
from ruleflow.graph.edge import EdgeSpec, Workflow, load_workflow
from ruleflow.graph.errors import (
    UnknownExecutorError,
    UnknownNodeTypeError,
    WorkflowExecutionError,
)
from ruleflow.graph.executor import (
    OUTCOME_FAILED,
    OUTCOME_PASSED,
    WorkflowEngineOptions,
    WorkflowExecutor,
    WorkflowResult,
    run_workflow,
)
from ruleflow.graph.node import (
    ActionNode,
    ConditionNode,
    EndNode,
    NodeSpec,
    Operation,
    StartNode,
    Transformation,
)
from ruleflow.graph.operators import BUILTIN_OPERATORS, ConditionOperator, OperatorRegistry
from ruleflow.graph.templates import (
    JinjaTemplateRenderer,
    TemplateRenderer,
    apply_transformations,
    render_templates,
)

__all__ = [
    # Conditions
    "Condition",
    "AndCondition",
    "OrCondition",
    "NotCondition",
    "LeafCondition",
    "ConditionEvaluator",
    # Operators
    "ConditionOperator",
    "OperatorRegistry",
    "BUILTIN_OPERATORS",
    # Nodes
    "NodeSpec",
    "StartNode",
    "EndNode",
    "ActionNode",
    "ConditionNode",
    "Operation",
    "Transformation",
    # Edges / Workflow
    "EdgeSpec",
    "Workflow",
    "load_workflow",
    # Templates
    "TemplateRenderer",
    "JinjaTemplateRenderer",
    "render_templates",
    "apply_transformations",
    # Executor
    "WorkflowExecutor",
    "WorkflowEngineOptions",
    "WorkflowResult",
    "run_workflow",
    "OUTCOME_PASSED",
    "OUTCOME_FAILED",
    # Errors
    "WorkflowExecutionError",
    "UnknownExecutorError",
    "UnknownNodeTypeError",
]
