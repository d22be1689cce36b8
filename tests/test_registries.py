"""Tests for ExecutorRegistry."""

from __future__ import annotations

import pytest

from ruleflow.graph.errors import UnknownExecutorError, WorkflowExecutionError
from ruleflow.runner import ExecutorRegistry


async def noop(operation, rendered, store):
    return None


class TestExecutorRegistry:
    def test_register_and_require(self):
        registry = ExecutorRegistry({"noop": noop})
        assert registry.require("noop") is noop
        assert registry.get("noop") is noop
        assert "noop" in registry
        assert len(registry) == 1
        assert registry.names() == ["noop"]

    def test_require_unknown(self):
        with pytest.raises(UnknownExecutorError) as exc_info:
            ExecutorRegistry().require("email", node_id="notify")
        error = exc_info.value
        assert str(error) == "Unknown executor: email"
        assert error.operation_type == "email"
        assert error.node_id == "notify"
        assert isinstance(error, WorkflowExecutionError)

    def test_get_unknown_returns_none(self):
        assert ExecutorRegistry().get("email") is None

    def test_rejects_duplicates(self):
        registry = ExecutorRegistry({"noop": noop})
        with pytest.raises(ValueError, match="already registered"):
            registry.register("noop", noop)

    @pytest.mark.parametrize("name", ["", " ", None])
    def test_rejects_empty_names(self, name):
        with pytest.raises(ValueError):
            ExecutorRegistry().register(name, noop)

    def test_rejects_non_callables(self):
        with pytest.raises(ValueError, match="not callable"):
            ExecutorRegistry({"noop": object()})
