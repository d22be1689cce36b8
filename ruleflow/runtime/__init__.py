"""Per-run state: the context store and the execution log."""

from ruleflow.runtime.context_store import (
    ACTION_RESULTS_KEY,
    MISSING,
    TEMPLATES_KEY,
    ContextStore,
    assign_path,
    parse_path,
    resolve_path,
)
from ruleflow.runtime.execution_log import ExecutionLog, ExecutionLogEntry, LogStep

__all__ = [
    "ContextStore",
    "MISSING",
    "TEMPLATES_KEY",
    "ACTION_RESULTS_KEY",
    "parse_path",
    "resolve_path",
    "assign_path",
    "ExecutionLog",
    "ExecutionLogEntry",
    "LogStep",
]
