"""Tests for settings, logging and metrics helpers."""

import logging

import pytest
from pydantic import ValidationError

from flowpatterns.core import MetricsCollector, Settings, StepStatus, get_logger, load_settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        settings = load_settings({})
        assert settings == Settings()
        assert settings.step_timeout is None
        assert settings.rain_threshold == 30.0
        assert settings.provider == "ollama"
        assert settings.geocoding_url.startswith("https://geocoding-api.open-meteo.com")

    def test_reads_environment(self):
        settings = load_settings({
            "FLOWPATTERNS_STEP_TIMEOUT": "2.5",
            "FLOWPATTERNS_LOG_LEVEL": "DEBUG",
            "RAIN_THRESHOLD": "50",
            "PROVIDER": "openai",
            "PLANNING_MODEL": "gpt-4o-mini",
            "FORECAST_URL": "http://localhost:8080/forecast",
        })
        assert settings.step_timeout == 2.5
        assert settings.log_level == "DEBUG"
        assert settings.rain_threshold == 50
        assert settings.provider == "openai"
        assert settings.planning_model == "gpt-4o-mini"
        assert settings.forecast_url == "http://localhost:8080/forecast"

    def test_empty_values_ignored(self):
        settings = load_settings({"FLOWPATTERNS_STEP_TIMEOUT": "", "PROVIDER": ""})
        assert settings.step_timeout is None
        assert settings.provider == "ollama"

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("SYNTHESIZE_MODEL", "qwen2.5:14b")
        assert load_settings().synthesize_model == "qwen2.5:14b"

    @pytest.mark.parametrize("env", [
        {"PROVIDER": "cohere"},
        {"RAIN_THRESHOLD": "150"},
        {"FLOWPATTERNS_STEP_TIMEOUT": "0"},
        {"FLOWPATTERNS_HTTP_TIMEOUT": "soon"},
    ])
    def test_invalid_values(self, env):
        with pytest.raises(ValidationError):
            load_settings(env)


class TestLogger:
    """Tests for get_logger."""

    def test_default_logger(self):
        logger = get_logger()
        assert logger.name == "flowpatterns"
        assert logger.level == logging.INFO

    def test_level_by_name(self):
        logger = get_logger("flowpatterns.test", "debug")
        assert logger.level == logging.DEBUG

    def test_single_handler(self):
        first = get_logger("flowpatterns.handlers")
        second = get_logger("flowpatterns.handlers")
        assert first is second
        assert len(second.handlers) == 1


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_workflow_metrics(self):
        metrics = MetricsCollector("wf")
        metrics.start()
        metrics.record_step("a", StepStatus.SUCCESS, 12.0)
        metrics.record_step("b", StepStatus.SKIPPED)
        metrics.record_step("c", StepStatus.SUCCESS, 3.0, warnings=["slow model"])
        metrics.stop()

        summary = metrics.get_workflow_metrics()
        assert summary["workflow_name"] == "wf"
        assert summary["overall_status"] == "success"
        assert summary["nodes_executed"] == 2
        assert summary["nodes_skipped"] == 1
        assert summary["total_warnings"] == 1
        assert summary["warnings"] == ["slow model"]
        assert summary["nodes"]["a"]["duration_ms"] == 12.0
        assert summary["total_duration_ms"] >= 0

    def test_failure_status(self):
        metrics = MetricsCollector("wf")
        metrics.record_step("a", StepStatus.SUCCESS, 1.0)
        metrics.record_step("b", StepStatus.TIMEOUT, 5.0, error="timed out after 5s")
        summary = metrics.get_workflow_metrics()
        assert summary["overall_status"] == "failed"
        assert summary["nodes"]["b"]["error_message"] == "timed out after 5s"

    def test_unknown_status_when_empty(self):
        assert MetricsCollector("wf").get_workflow_metrics()["overall_status"] == "unknown"

    def test_summary(self):
        metrics = MetricsCollector()
        metrics.record("a", 10.0, StepStatus.SUCCESS.value)
        metrics.record("a", 30.0, StepStatus.FAILED.value)
        summary = metrics.get_summary()["a"]
        assert summary["count"] == 2
        assert summary["avg_ms"] == 20.0
        assert summary["min_ms"] == 10.0
        assert summary["max_ms"] == 30.0
        assert summary["success_rate"] == 0.5

    def test_merge(self):
        """Test merging appends another collector's history."""
        total = MetricsCollector("wf")
        for duration in (10.0, 20.0):
            run = MetricsCollector("wf")
            run.record_step("a", StepStatus.SUCCESS, duration)
            total.merge(run)
        assert total.get_summary()["a"]["count"] == 2
        assert total.get_summary()["a"]["avg_ms"] == 15.0
