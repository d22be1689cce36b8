"""Host-facing registration of action executors."""

from ruleflow.runner.action_registry import ActionExecutor, ExecutorRegistry

__all__ = ["ActionExecutor", "ExecutorRegistry"]
