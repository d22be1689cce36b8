"""ruleflow: a declarative workflow interpreter for rule-driven automation."""

from ruleflow.graph import (
    ActionNode,
    ConditionNode,
    EdgeSpec,
    EndNode,
    LeafCondition,
    Operation,
    StartNode,
    UnknownExecutorError,
    UnknownNodeTypeError,
    Workflow,
    WorkflowEngineOptions,
    WorkflowExecutionError,
    WorkflowExecutor,
    WorkflowResult,
    load_workflow,
    run_workflow,
)
from ruleflow.runtime import MISSING, ContextStore, LogStep

__version__ = "0.1.0"

__all__ = [
    "run_workflow",
    "Workflow",
    "WorkflowExecutor",
    "WorkflowEngineOptions",
    "WorkflowResult",
    "StartNode",
    "EndNode",
    "ActionNode",
    "ConditionNode",
    "EdgeSpec",
    "LeafCondition",
    "Operation",
    "load_workflow",
    "ContextStore",
    "MISSING",
    "LogStep",
    "WorkflowExecutionError",
    "UnknownExecutorError",
    "UnknownNodeTypeError",
]
