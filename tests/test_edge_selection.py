"""Tests for WorkflowExecutor.select_next edge routing."""

from __future__ import annotations

import pytest

from ruleflow.graph.edge import Workflow
from ruleflow.graph.executor import OUTCOME_FAILED, OUTCOME_PASSED, WorkflowExecutor
from ruleflow.runtime.context_store import ContextStore


def make_workflow(edges: list[dict]) -> Workflow:
    targets = {edge["target"] for edge in edges}
    return Workflow.model_validate(
        {
            "initialNodeId": "src",
            "nodes": [{"id": "src", "type": "start"}]
            + [{"id": target, "type": "end"} for target in sorted(targets)],
            "edges": edges,
        }
    )


def guard(operator: str, value=None) -> list[dict]:
    return [{"type": "field", "field": "flag", "operator": operator, "value": value}]


@pytest.fixture
def executor() -> WorkflowExecutor:
    return WorkflowExecutor()


@pytest.fixture
def store() -> ContextStore:
    return ContextStore({"flag": True})


class TestSelectNext:
    @pytest.mark.asyncio
    async def test_no_edges(self, executor, store):
        workflow = make_workflow([])
        assert await executor.select_next(workflow, "src", store) is None

    @pytest.mark.asyncio
    async def test_first_unguarded_edge_in_declaration_order(self, executor, store):
        workflow = make_workflow(
            [{"source": "src", "target": "b"}, {"source": "src", "target": "a"}]
        )
        assert await executor.select_next(workflow, "src", store) == "b"

    @pytest.mark.asyncio
    async def test_outcome_tag_filters_edges(self, executor, store):
        workflow = make_workflow(
            [
                {"source": "src", "target": "yes", "condition": OUTCOME_PASSED},
                {"source": "src", "target": "no", "condition": OUTCOME_FAILED},
            ]
        )
        assert await executor.select_next(workflow, "src", store, OUTCOME_PASSED) == "yes"
        assert await executor.select_next(workflow, "src", store, OUTCOME_FAILED) == "no"

    @pytest.mark.asyncio
    async def test_tagged_edges_ignored_without_outcome(self, executor, store):
        workflow = make_workflow(
            [
                {"source": "src", "target": "tagged", "condition": OUTCOME_PASSED},
                {"source": "src", "target": "plain"},
            ]
        )
        assert await executor.select_next(workflow, "src", store) == "plain"

    @pytest.mark.asyncio
    async def test_only_tagged_edges_without_outcome(self, executor, store):
        workflow = make_workflow(
            [{"source": "src", "target": "tagged", "condition": OUTCOME_PASSED}]
        )
        assert await executor.select_next(workflow, "src", store) is None

    @pytest.mark.asyncio
    async def test_untagged_edges_match_any_outcome(self, executor, store):
        workflow = make_workflow([{"source": "src", "target": "any"}])
        assert await executor.select_next(workflow, "src", store, OUTCOME_FAILED) == "any"

    @pytest.mark.asyncio
    async def test_failing_guard_skipped_for_later_edge(self, executor, store):
        workflow = make_workflow(
            [
                {"source": "src", "target": "guarded", "conditions": guard("false")},
                {"source": "src", "target": "open"},
            ]
        )
        assert await executor.select_next(workflow, "src", store) == "open"

    @pytest.mark.asyncio
    async def test_passing_guard_wins(self, executor, store):
        workflow = make_workflow(
            [
                {"source": "src", "target": "guarded", "conditions": guard("true")},
                {"source": "src", "target": "open"},
            ]
        )
        assert await executor.select_next(workflow, "src", store) == "guarded"

    @pytest.mark.asyncio
    async def test_all_guards_fail_falls_back_to_first_candidate(self, executor, store):
        workflow = make_workflow(
            [
                {"source": "src", "target": "first", "conditions": guard("false")},
                {"source": "src", "target": "second", "conditions": guard("eq", "nope")},
            ]
        )
        assert await executor.select_next(workflow, "src", store) == "first"

    @pytest.mark.asyncio
    async def test_empty_guard_list_counts_as_unguarded(self, executor, store):
        workflow = make_workflow([{"source": "src", "target": "t", "conditions": []}])
        assert await executor.select_next(workflow, "src", store) == "t"
