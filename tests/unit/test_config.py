"""Tests for configuration models and YAML loading."""

from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from autoapply.core.config import (
    AIConfig,
    BrowserConfig,
    CampaignConfig,
    DatabaseConfig,
    DelayConfig,
    MatchingConfig,
    QuotaConfig,
    Settings,
)


class TestCampaignConfig:
    def test_numbers_kept_as_text(self) -> None:
        c = CampaignConfig.model_validate({
            "title": "Python Developer",
            "timer_minutes": 30,
            "locations": [{"name": "Berlin", "timer_minutes": 10}],
        })
        assert c.timer_minutes == "30"
        assert c.locations[0].timer_minutes == "10"

    def test_missing_fields_blank(self) -> None:
        c = CampaignConfig.model_validate({"locations": [{"name": None, "timer_minutes": None}]})
        assert c.title == ""
        assert c.locations[0].name == ""
        assert c.locations[0].timer_minutes == ""
        assert c.job_types == []
        assert c.workplace_types == []

    def test_values_stripped(self) -> None:
        c = CampaignConfig.model_validate({"title": "  Backend Engineer ", "job_types": [{"name": " Contract "}]})
        assert c.title == "Backend Engineer"
        assert c.job_types[0].name == "Contract"


class TestDelayConfig:
    def test_defaults(self) -> None:
        d = DelayConfig()
        assert d.very_short_s == 1.0
        assert d.short_s == 5.0
        assert d.long_s == 7.0

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DelayConfig(short_s=-1)


class TestMatchingConfig:
    def test_defaults(self) -> None:
        m = MatchingConfig()
        assert m.min_score == 3
        assert m.apply_to_product_companies is True
        assert m.apply_to_service_companies is True
        assert m.ignore_companies == []

    def test_comma_separated_ignore_list(self) -> None:
        m = MatchingConfig(ignore_companies="Acme Staffing, , Example Outsourcing ")  # type: ignore[arg-type]
        assert m.ignore_companies == ["Acme Staffing", "Example Outsourcing"]

    def test_ignore_list_as_yaml_list(self) -> None:
        m = MatchingConfig(ignore_companies=["Acme"])
        assert m.ignore_companies == ["Acme"]

    def test_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            MatchingConfig(min_score=0)
        with pytest.raises(ValidationError):
            MatchingConfig(min_score=6)


class TestQuotaConfig:
    def test_default_is_fifty(self) -> None:
        assert QuotaConfig().max_applications_per_day == 50

    def test_min_one(self) -> None:
        with pytest.raises(ValidationError):
            QuotaConfig(max_applications_per_day=0)


class TestAIConfig:
    def test_defaults(self) -> None:
        a = AIConfig()
        assert a.provider == "gemini"
        assert a.model is None

    def test_provider_normalized(self) -> None:
        assert AIConfig(provider=" Anthropic ").provider == "anthropic"

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValidationError, match="provider must be one of"):
            AIConfig(provider="mystery")


class TestBrowserConfig:
    def test_defaults(self) -> None:
        b = BrowserConfig()
        assert b.timeout_ms == 30000
        assert b.save_cookies_on_exit is True

    def test_timeout_min(self) -> None:
        with pytest.raises(ValidationError):
            BrowserConfig(timeout_ms=500)


class TestDatabaseConfig:
    def test_default_path(self) -> None:
        assert DatabaseConfig().path == "data/autoapply.db"


class TestSettings:
    def test_load_from_yaml(self, tmp_path: Path) -> None:
        yaml_content = dedent("""\
            database:
              path: data/test.db
            loop_mode: true
            campaigns:
              - title: Python Developer
                locations:
                  - name: Berlin
                    timer_minutes: 10
                job_types:
                  - name: Full-time
            matching:
              min_score: 4
              ignore_companies: "Acme"
            quota:
              max_applications_per_day: 20
            ai:
              provider: ollama
        """)
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml_content)

        settings = Settings.from_yaml(config_file)

        assert settings.database.path == "data/test.db"
        assert settings.loop_mode is True
        assert settings.campaigns[0].title == "Python Developer"
        assert settings.campaigns[0].locations[0].timer_minutes == "10"
        assert settings.matching.min_score == 4
        assert settings.matching.ignore_companies == ["Acme"]
        assert settings.quota.max_applications_per_day == 20
        assert settings.ai.provider == "ollama"

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("")
        settings = Settings.from_yaml(config_file)
        assert settings.campaigns == []
        assert settings.abort_run_on_real_run_validation is False
        assert settings.max_segment_redirects == 3

    def test_file_not_found(self) -> None:
        with pytest.raises(FileNotFoundError):
            Settings.from_yaml("/nonexistent/path.yaml")

    def test_load_example_settings(self) -> None:
        """The shipped example config must be valid."""
        settings = Settings.from_yaml("config/settings.example.yaml")
        assert len(settings.campaigns) == 2
        assert settings.campaigns[0].title == "Python Developer"
        assert [loc.name for loc in settings.campaigns[0].locations] == ["Berlin", "Remote"]
        assert settings.matching.ignore_companies == ["Acme Staffing", "Example Outsourcing"]
