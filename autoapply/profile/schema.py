"""ProfileData model for config/profile.yaml."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator


class ProfileData(BaseModel):
    """The candidate's personal fields and resume text.

    Sent to the AI when answering form questions, and used directly as a
    fallback for personal text fields the AI left unanswered.
    """

    name: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    city: str = ""
    headline: str = ""
    years_of_experience: int | None = Field(default=None, ge=0)
    extra_answers: dict[str, str] = Field(default_factory=dict)
    resume_text: str = ""

    @field_validator("name", "first_name", "last_name", "email", "phone", "city", "headline")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("email")
    @classmethod
    def email_has_at(cls, v: str) -> str:
        if v and "@" not in v:
            msg = f"email must contain '@', got '{v}'"
            raise ValueError(msg)
        return v

    @property
    def resolved_first_name(self) -> str:
        if self.first_name:
            return self.first_name
        return self.name.split()[0] if self.name.split() else ""

    @property
    def resolved_last_name(self) -> str:
        if self.last_name:
            return self.last_name
        parts = self.name.split()
        return parts[-1] if len(parts) > 1 else ""

    def default_for(self, label: str) -> str | None:
        """Profile value for a personal text field, matched on its label."""
        text = label.lower()
        for key, value in self.extra_answers.items():
            if key.lower() in text:
                return value
        if "first name" in text or "firstname" in text:
            return self.resolved_first_name or None
        if "last name" in text or "lastname" in text or "surname" in text:
            return self.resolved_last_name or None
        if "email" in text:
            return self.email or None
        if "phone" in text or "mobile" in text:
            return self.phone or None
        if "city" in text or "location" in text:
            return self.city or None
        if "name" in text:
            return self.name or None
        return None

    def prompt_context(self) -> dict[str, Any]:
        """Fields sent to the AI alongside form questions."""
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "city": self.city,
            "headline": self.headline,
            "years_of_experience": self.years_of_experience,
            "known_answers": self.extra_answers,
            "resume": self.resume_text,
        }

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ProfileData":
        """Load profile from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Profile file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)

    def to_yaml(self, path: str | Path) -> None:
        """Write profile to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump()
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))
