"""Pydantic models for the execution log of a workflow run.

Every run produces one ordered, append-only list of entries:

    node_enter       the driver entered a node
    action_executed  an action node's executor returned
    node_exit        the driver left a node
    error            traversal reached an id with no node (run halts)
    complete         the run finished; carries a snapshot of the data
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LogStep(StrEnum):
    """Closed set of log entry kinds."""

    NODE_ENTER = "node_enter"
    NODE_EXIT = "node_exit"
    ACTION_EXECUTED = "action_executed"
    ERROR = "error"
    COMPLETE = "complete"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ExecutionLogEntry(BaseModel):
    """One immutable record in the execution log."""

    model_config = ConfigDict(frozen=True)

    step: LogStep
    node: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)
    # action_executed:
    result: Any = None
    rendered: dict[str, str] | None = None
    # error:
    message: str | None = None
    # complete:
    data: dict[Any, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Plain dict with only the fields relevant to this step."""
        payload = self.model_dump(exclude_unset=True)
        payload["step"] = str(self.step)
        payload["timestamp"] = self.timestamp.isoformat()
        return payload


class ExecutionLog:
    """Append-only sequence of :class:`ExecutionLogEntry`."""

    def __init__(self) -> None:
        self._entries: list[ExecutionLogEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def append(self, entry: ExecutionLogEntry) -> ExecutionLogEntry:
        self._entries.append(entry)
        return entry

    def node_enter(self, node_id: str) -> ExecutionLogEntry:
        return self.append(ExecutionLogEntry(step=LogStep.NODE_ENTER, node=node_id))

    def node_exit(self, node_id: str) -> ExecutionLogEntry:
        return self.append(ExecutionLogEntry(step=LogStep.NODE_EXIT, node=node_id))

    def action_executed(
        self, node_id: str, result: Any, rendered: dict[str, str]
    ) -> ExecutionLogEntry:
        return self.append(
            ExecutionLogEntry(
                step=LogStep.ACTION_EXECUTED,
                node=node_id,
                result=result,
                rendered=rendered,
            )
        )

    def error(self, node_id: str, message: str) -> ExecutionLogEntry:
        return self.append(
            ExecutionLogEntry(step=LogStep.ERROR, node=node_id, message=message)
        )

    def complete(self, snapshot: dict[str, Any]) -> ExecutionLogEntry:
        return self.append(ExecutionLogEntry(step=LogStep.COMPLETE, data=snapshot))

    @property
    def entries(self) -> list[ExecutionLogEntry]:
        """Copy of the entries recorded so far."""
        return list(self._entries)

    def steps(self) -> list[LogStep]:
        return [entry.step for entry in self._entries]
