"""Core data models for the apply automation."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from autoapply.core.config import CampaignConfig

MAX_RENDERED_OPTIONS = 10


class CandidateItem(BaseModel):
    """A result-list item discovered on the current page.

    Frozen and ephemeral. ``handle`` is the live page element and is never
    serialized.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    title: str
    company: str
    job_id: str = ""
    location: str = ""
    applied_status: str = ""
    position: float = 0.0
    handle: Any = Field(default=None, exclude=True, repr=False)


class JobDetail(BaseModel):
    """Fields read from the detail pane of the selected item."""

    title: str = ""
    company: str = ""
    location: str = ""
    description: str = ""
    job_id: str = ""


class AppliedRecord(BaseModel):
    """One submitted application, as stored in the date-bucketed ledger."""

    title: str
    company: str
    location: str = ""
    job_id: str = ""
    match_score: int | None = None
    submitted_at: datetime = Field(default_factory=datetime.now)
    form_snapshot: dict[str, str] = Field(default_factory=dict)


class ControlKind(str, Enum):
    TEXT = "text"
    RADIO = "radio"
    SELECT = "select"
    CHECKBOX = "checkbox"


class FormControl(BaseModel):
    """A labelled control inside the submission dialog."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: ControlKind
    label: str
    options: list[str] = Field(default_factory=list)
    value: str = ""
    checked: bool = False
    multiline: bool = False
    required: bool = False
    handle: Any = Field(default=None, exclude=True, repr=False)

    @property
    def is_empty(self) -> bool:
        if self.kind is ControlKind.CHECKBOX:
            return not self.checked
        if self.kind is ControlKind.SELECT:
            return not self.value or (bool(self.options) and self.value == self.options[0])
        return not self.value.strip()


_SECTION_BY_KIND: dict[ControlKind, str] = {
    ControlKind.TEXT: "inputs",
    ControlKind.RADIO: "radios",
    ControlKind.SELECT: "dropdowns",
    ControlKind.CHECKBOX: "checkboxes",
}


def render_question(control: FormControl) -> str:
    """Render a control as the question string sent to the AI.

    Choice controls list at most MAX_RENDERED_OPTIONS options.
    """
    label = " ".join(control.label.split())
    if control.kind not in (ControlKind.RADIO, ControlKind.SELECT) or not control.options:
        return label
    options = [o for o in control.options if o.strip()]
    shown = ", ".join(options[:MAX_RENDERED_OPTIONS])
    if len(options) > MAX_RENDERED_OPTIONS:
        shown += ", ... (more options available)"
    return f"question: {label} || options: {shown}"


def question_label(question: str) -> str:
    """Strip the ``question: ... || options: ...`` wrapping back to the label."""
    text = question.strip()
    if text.lower().startswith("question:"):
        text = text[len("question:"):]
    return text.split("||", 1)[0].strip()


class QuestionSet(BaseModel):
    """Questions recorded during the dry run, grouped by control kind."""

    inputs: list[str] = Field(default_factory=list)
    radios: list[str] = Field(default_factory=list)
    dropdowns: list[str] = Field(default_factory=list)
    checkboxes: list[str] = Field(default_factory=list)

    def add(self, control: FormControl) -> None:
        if not control.label.strip():
            return
        section: list[str] = getattr(self, _SECTION_BY_KIND[control.kind])
        question = render_question(control)
        if question not in section:
            section.append(question)

    def count(self) -> int:
        return len(self.inputs) + len(self.radios) + len(self.dropdowns) + len(self.checkboxes)

    def is_empty(self) -> bool:
        return self.count() == 0


def _answer_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value).strip()


class AnswerSet(BaseModel):
    """AI-resolved answers keyed by the recorded question strings."""

    inputs: dict[str, str] = Field(default_factory=dict)
    radios: dict[str, str] = Field(default_factory=dict)
    dropdowns: dict[str, str] = Field(default_factory=dict)
    checkboxes: dict[str, str] = Field(default_factory=dict)

    @field_validator("inputs", "radios", "dropdowns", "checkboxes", mode="before")
    @classmethod
    def values_to_text(cls, v: Any) -> Any:
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        result: dict[str, str] = {}
        for key, value in v.items():
            text = _answer_text(value)
            if text is not None:
                result[str(key)] = text
        return result

    def is_empty(self) -> bool:
        return not (self.inputs or self.radios or self.dropdowns or self.checkboxes)

    def find(self, kind: ControlKind, label: str) -> str | None:
        """Look up the answer for a control label.

        Exact label match first, then case-insensitive containment in either
        direction. The control's own section is searched before the others.
        """
        wanted = " ".join(label.split()).lower()
        if not wanted:
            return None
        own = _SECTION_BY_KIND[kind]
        order = [own] + [s for s in _SECTION_BY_KIND.values() if s != own]
        for section_name in order:
            section: dict[str, str] = getattr(self, section_name)
            for key, value in section.items():
                if question_label(key).lower() == wanted:
                    return value
        for section_name in order:
            section = getattr(self, section_name)
            for key, value in section.items():
                key_label = question_label(key).lower()
                if key_label and (key_label in wanted or wanted in key_label):
                    return value
        return None


class ActionKind(str, Enum):
    NEXT = "next"
    SUBMIT = "submit"
    EXTERNAL = "external"
    NONE = "none"


class DialogAction(BaseModel):
    """The visible primary action of the open dialog."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: ActionKind = ActionKind.NONE
    label: str = ""
    handle: Any = Field(default=None, exclude=True, repr=False)


class ReopenStrategy(str, Enum):
    """Apply-control lookups, narrowest first."""

    SCOPED = "scoped"
    GLOBAL = "global"
    IDENTIFIER = "identifier"
    ANY = "any"


class TargetQuery(BaseModel):
    """Canonical search query for one segment."""

    model_config = ConfigDict(frozen=True)

    keyword: str
    location: str = ""
    job_type_code: str = ""
    workplace_code: str = ""
    quick_apply: bool = True


class EffectiveFacet(BaseModel):
    """A facet member after timer propagation. Timer is in minutes."""

    name: str = ""
    timer_minutes: float = 0.0


class EffectiveCampaignConfig(BaseModel):
    """A campaign with every level's timer filled in."""

    title: str = ""
    timer_minutes: float = 0.0
    locations: list[EffectiveFacet] = Field(default_factory=list)
    job_types: list[EffectiveFacet] = Field(default_factory=list)
    workplace_types: list[EffectiveFacet] = Field(default_factory=list)


class ResumableCursor(BaseModel):
    """Persisted position inside the campaign x workplace x job type x location space.

    Times are epoch milliseconds.
    """

    running: bool = True
    paused: bool = False
    campaign_index: int = 0
    location_index: int = 0
    type_index: int = 0
    workplace_index: int = 0
    segment_start_time: int = 0
    segment_duration_ms: int = 0
    campaigns: list[CampaignConfig] = Field(default_factory=list)
