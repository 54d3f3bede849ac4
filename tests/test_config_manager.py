"""Tests for the YAML-backed triage configuration manager."""

import pytest

from casedesk.config import Settings
from casedesk.core import ConfigurationException
from casedesk.sla.infrastructure import TriageConfigManager


def write(path, text):
    path.write_text(text)
    return path


class TestLoad:

    def test_missing_file_uses_defaults(self, tmp_path):
        config = TriageConfigManager().load(tmp_path / "absent.yaml")

        assert config.faq_threshold == 0.76
        assert config.sla_targets["express"] == 15

    def test_file_overlays_defaults(self, tmp_path):
        path = write(tmp_path / "triage.yaml", "faq_threshold: 0.9\nsla_targets:\n  batched: 240\n")

        config = TriageConfigManager().load(path)

        assert config.faq_threshold == 0.9
        assert config.compute_sla("low", "cool").target_minutes == 240
        assert config.case_memory_threshold == 0.72

    def test_settings_supply_defaults(self, tmp_path):
        settings = Settings(faq_similarity_threshold=0.5, agent_only_ttl_seconds=60)
        config = TriageConfigManager(settings).load(tmp_path / "absent.yaml")

        assert config.faq_threshold == 0.5
        assert config.agent_only_ttl_seconds == 60

    @pytest.mark.parametrize("text", [
        "faq_threshold: 5\n",
        "sla_targets:\n  urgent: 5\n",
        "- just\n- a list\n",
        "faq_threshold: [unclosed\n",
    ])
    def test_invalid_file_raises(self, tmp_path, text):
        path = write(tmp_path / "triage.yaml", text)
        with pytest.raises(ConfigurationException):
            TriageConfigManager().load(path)

    def test_config_before_load(self):
        with pytest.raises(RuntimeError):
            TriageConfigManager().get_config()


class TestReload:

    def test_reload_picks_up_changes(self, tmp_path):
        path = write(tmp_path / "triage.yaml", "faq_top_k: 3\n")
        manager = TriageConfigManager()
        manager.load(path)

        write(path, "faq_top_k: 5\n")

        assert manager.reload() is True
        assert manager.get_config().faq_top_k == 5

    def test_invalid_reload_keeps_previous_config(self, tmp_path):
        path = write(tmp_path / "triage.yaml", "faq_top_k: 4\n")
        manager = TriageConfigManager()
        manager.load(path)

        write(path, "faq_top_k: 0\n")

        assert manager.reload() is False
        assert manager.get_config().faq_top_k == 4

    def test_reload_without_load(self):
        assert TriageConfigManager().reload() is False

    def test_watching_missing_file_is_skipped(self, tmp_path):
        manager = TriageConfigManager()
        manager.load(tmp_path / "absent.yaml")

        manager.start_watching()
        manager.stop_watching()
