"""Configuration models and YAML loader for the apply automation."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from autoapply.ai import available_providers


class FacetConfig(BaseModel):
    """One member of a search facet list: a name plus an optional timer.

    Timers are kept as text because campaigns are edited by hand; the
    budget resolver treats anything unparseable as zero.
    """

    name: str = ""
    timer_minutes: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def name_to_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("timer_minutes", mode="before")
    @classmethod
    def timer_to_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()


class LocationConfig(FacetConfig):
    """A location facet. The only level that requires its own timer."""


class JobTypeConfig(FacetConfig):
    """A job type facet (full-time, contract, ...)."""


class WorkplaceTypeConfig(FacetConfig):
    """A workplace type facet (remote, hybrid, on-site)."""


class CampaignConfig(BaseModel):
    """One search intent and the facets iterated underneath it."""

    title: str = ""
    timer_minutes: str = ""
    locations: list[LocationConfig] = Field(default_factory=list)
    job_types: list[JobTypeConfig] = Field(default_factory=list)
    workplace_types: list[WorkplaceTypeConfig] = Field(default_factory=list)

    @field_validator("title", "timer_minutes", mode="before")
    @classmethod
    def to_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()


class DelayConfig(BaseModel):
    """Durations of the three named delay points, in seconds."""

    very_short_s: float = Field(default=1.0, ge=0.0)
    short_s: float = Field(default=5.0, ge=0.0)
    long_s: float = Field(default=7.0, ge=0.0)
    jitter: float = Field(default=0.25, ge=0.0, le=2.0)


class MatchingConfig(BaseModel):
    """Relevance gates applied before a candidate is opened."""

    min_score: int = Field(default=3, ge=1, le=5)
    apply_to_product_companies: bool = True
    apply_to_service_companies: bool = True
    ignore_companies: list[str] = Field(default_factory=list)

    @field_validator("ignore_companies", mode="before")
    @classmethod
    def split_comma_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v


class QuotaConfig(BaseModel):
    """Daily submission cap."""

    max_applications_per_day: int = Field(default=50, ge=1)


class AIConfig(BaseModel):
    """Which LLM provider answers classification, scoring and form questions."""

    provider: str = "gemini"
    model: str | None = None
    timeout_s: float = Field(default=60.0, gt=0.0)

    @field_validator("provider")
    @classmethod
    def provider_known(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in available_providers():
            msg = f"provider must be one of {available_providers()}, got '{v}'"
            raise ValueError(msg)
        return v


class BrowserConfig(BaseModel):
    """Browser session configuration."""

    cookies_path: str = "config/linkedin_cookies.json"
    timeout_ms: int = Field(default=30000, ge=1000)
    slow_mo_ms: int = Field(default=0, ge=0)
    start_url: str = "https://www.linkedin.com/jobs/"
    save_cookies_on_exit: bool = True


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/autoapply.db"


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    campaigns: list[CampaignConfig] = Field(default_factory=list)
    delays: DelayConfig = Field(default_factory=DelayConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    quota: QuotaConfig = Field(default_factory=QuotaConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    profile_path: str = "config/profile.yaml"
    loop_mode: bool = False
    abort_run_on_real_run_validation: bool = False
    max_segment_redirects: int = Field(default=3, ge=1)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
