"""Tests for configuration loading."""

from __future__ import annotations

import json

import pytest

from ruleflow.config import (
    RULEFLOW_CONFIG_FILE,
    EngineConfig,
    get_config_path,
    get_ruleflow_config,
)
from ruleflow.graph.executor import WorkflowExecutor


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "configuration.json"
    monkeypatch.setenv("RULEFLOW_CONFIG", str(path))
    return path


def test_defaults_without_file():
    config = EngineConfig()
    assert config.log_level == "INFO"
    assert config.log_format == "auto"
    assert config.strict_templates is False
    assert config.max_delay_ms is None


def test_env_override(config_file):
    assert get_config_path() == config_file


def test_default_path(monkeypatch):
    monkeypatch.delenv("RULEFLOW_CONFIG", raising=False)
    assert get_config_path() == RULEFLOW_CONFIG_FILE


def test_reads_file(config_file):
    config_file.write_text(
        json.dumps(
            {
                "logging": {"level": "DEBUG", "format": "json"},
                "templates": {"strict": True},
                "engine": {"max_delay_ms": 500},
            }
        ),
        encoding="utf-8",
    )
    config = EngineConfig()
    assert config.log_level == "DEBUG"
    assert config.log_format == "json"
    assert config.strict_templates is True
    assert config.max_delay_ms == 500.0


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_unreadable_file_falls_back_to_defaults(config_file, content):
    config_file.write_text(content, encoding="utf-8")
    assert get_ruleflow_config() == {}
    assert EngineConfig().log_level == "INFO"


def test_executor_picks_up_config(config_file):
    config_file.write_text(
        json.dumps({"templates": {"strict": True}, "engine": {"max_delay_ms": 50}}),
        encoding="utf-8",
    )
    executor = WorkflowExecutor()
    assert executor.renderer.strict_undefined is True
    assert executor.max_delay_ms == 50.0


def test_explicit_arguments_win_over_config(config_file):
    config_file.write_text(json.dumps({"engine": {"max_delay_ms": 50}}), encoding="utf-8")
    assert WorkflowExecutor(max_delay_ms=10).max_delay_ms == 10
