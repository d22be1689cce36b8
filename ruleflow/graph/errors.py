"""Failures that abort a workflow run."""


class WorkflowExecutionError(RuntimeError):
    """Base class for fatal engine errors. The run returns no result."""


class UnknownExecutorError(WorkflowExecutionError):
    """No executor is registered for an action's ``operation.type``."""

    def __init__(self, operation_type: str, node_id: str | None = None):
        self.operation_type = operation_type
        self.node_id = node_id
        super().__init__(f"Unknown executor: {operation_type}")


class UnknownNodeTypeError(WorkflowExecutionError):
    """Traversal reached a node whose ``type`` the engine cannot dispatch."""

    def __init__(self, node_type: str, node_id: str):
        self.node_type = node_type
        self.node_id = node_id
        super().__init__(f"Unknown node type: {node_type} (node '{node_id}')")
