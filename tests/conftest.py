"""Shared fixtures for ruleflow tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from ruleflow.graph.templates import JinjaTemplateRenderer
from ruleflow.observability import clear_trace_context


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path: Path):
    """Point the engine at an empty config so a developer's ~/.ruleflow never leaks in."""
    monkeypatch.setenv("RULEFLOW_CONFIG", str(tmp_path / "missing-configuration.json"))
    yield
    clear_trace_context()


@pytest.fixture
def renderer() -> JinjaTemplateRenderer:
    return JinjaTemplateRenderer()
