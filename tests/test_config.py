"""
Smoke tests for config / settings loading.
Run: python -m pytest tests/ -v
"""
import sys
import os
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from career_readiness.config import _is_placeholder, configure_logging, get_settings


class TestIsPlaceholder:
    def test_empty_string_is_placeholder(self):
        assert _is_placeholder("")

    def test_angle_bracket_is_placeholder(self):
        assert _is_placeholder("<your-key-here>")

    def test_your_prefix_is_placeholder(self):
        assert _is_placeholder("your-endpoint")

    def test_literal_PLACEHOLDER_is_placeholder(self):
        assert _is_placeholder("PLACEHOLDER")

    def test_real_value_not_placeholder(self):
        assert not _is_placeholder("https://my-resource.openai.azure.com")


class TestSettingsLoading:
    def test_defaults(self, monkeypatch):
        for key in ("AUTOSAVE_DEBOUNCE_SECONDS", "AUTOSAVE_MAX_ATTEMPTS", "REPORT_MAX_ATTEMPTS",
                    "REPORT_STAGE_INTERVAL_SECONDS", "LEAD_SOURCE_TAG", "ASSESSMENT_CONFIG_PATH"):
            monkeypatch.delenv(key, raising=False)
        s = get_settings()
        assert s.autosave.debounce_seconds == 1.5
        assert s.autosave.max_attempts == 3
        assert s.report.stage_interval_seconds == 2.0
        assert s.report.max_attempts == 2
        assert s.app.lead_source_tag == "assessment"
        assert s.app.config_path == ""

    def test_force_mock_defaults_false(self, monkeypatch):
        monkeypatch.delenv("FORCE_MOCK_MODE", raising=False)
        assert not get_settings().app.force_mock_mode

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("AUTOSAVE_DEBOUNCE_SECONDS", "0.25")
        monkeypatch.setenv("REPORT_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        s = get_settings()
        assert s.autosave.debounce_seconds == 0.25
        assert s.report.timeout_seconds == 5.0
        assert s.app.log_level == "DEBUG"

    def test_live_mode_false_with_placeholders(self, monkeypatch):
        monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "<placeholder>")
        monkeypatch.setenv("AZURE_OPENAI_API_KEY", "<placeholder>")
        monkeypatch.setenv("FORCE_MOCK_MODE", "false")
        assert not get_settings().live_mode

    def test_live_mode_true_with_real_creds(self, monkeypatch):
        monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://my-resource.openai.azure.com/")
        monkeypatch.setenv("AZURE_OPENAI_API_KEY", "abc123defgh456ijkl789mnop")
        monkeypatch.setenv("FORCE_MOCK_MODE", "false")
        s = get_settings()
        assert s.live_mode
        assert s.openai.endpoint == "https://my-resource.openai.azure.com"

    def test_force_mock_overrides_real_creds(self, monkeypatch):
        monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://my-resource.openai.azure.com")
        monkeypatch.setenv("AZURE_OPENAI_API_KEY", "abc123defgh456ijkl789mnop")
        monkeypatch.setenv("FORCE_MOCK_MODE", "true")
        assert not get_settings().live_mode

    def test_status_summary_keys(self):
        summary = get_settings().status_summary()
        assert "Azure OpenAI" in summary
        assert "Report generation" in summary
        assert "Session database" in summary


class TestConfigureLogging:
    def test_applies_level(self, mocker):
        basic = mocker.patch("career_readiness.config.logging.basicConfig")
        configure_logging("warning")
        kwargs = basic.call_args.kwargs
        assert kwargs["level"] == logging.WARNING
        assert "%(name)s" in kwargs["format"]
