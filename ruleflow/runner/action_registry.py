"""Action executor registration for the workflow runner."""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from ruleflow.graph.errors import UnknownExecutorError

# (operation, rendered_templates, context_store) -> result
ActionExecutor = Callable[[Any, dict[str, str], Any], Awaitable[Any]]


class ExecutorRegistry:
    """
    Maps ``operation.type`` names to async action executors.

    There are no built-in executors; everything comes from the host.

    Example:
        async def send_email(operation, rendered, store):
            await mailer.send(to=operation.to, body=rendered["body"])
            return {"sent": True}

        registry = ExecutorRegistry({"email": send_email})
        executor = registry.require("email")
    """

    def __init__(self, executors: Mapping[str, ActionExecutor] | None = None):
        self._executors: dict[str, ActionExecutor] = {}
        for name, executor in (executors or {}).items():
            self.register(name, executor)

    def register(self, name: str, executor: ActionExecutor) -> None:
        """
        Register an executor under ``name``.

        Raises:
            ValueError: If the name is empty, already taken, or the executor
                is not callable.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Executor name must be a non-empty string, got {name!r}")
        if not callable(executor):
            raise ValueError(f"Executor '{name}' is not callable")
        if name in self._executors:
            raise ValueError(f"Executor '{name}' is already registered")
        self._executors[name] = executor

    def get(self, name: str) -> ActionExecutor | None:
        return self._executors.get(name)

    def require(self, name: str, node_id: str | None = None) -> ActionExecutor:
        """Return the executor for ``name`` or raise :class:`UnknownExecutorError`."""
        executor = self._executors.get(name)
        if executor is None:
            raise UnknownExecutorError(name, node_id=node_id)
        return executor

    def names(self) -> list[str]:
        return list(self._executors)

    def __contains__(self, name: object) -> bool:
        return name in self._executors

    def __len__(self) -> int:
        return len(self._executors)
