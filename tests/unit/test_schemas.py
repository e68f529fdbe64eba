"""Tests for core schemas: form controls, question rendering, question and answer sets."""

import pytest
from pydantic import ValidationError

from autoapply.core.schemas import (
    MAX_RENDERED_OPTIONS,
    AnswerSet,
    CandidateItem,
    ControlKind,
    FormControl,
    QuestionSet,
    question_label,
    render_question,
)


def _control(kind: ControlKind = ControlKind.TEXT, label: str = "Years of experience", **kw: object) -> FormControl:
    return FormControl(kind=kind, label=label, **kw)  # type: ignore[arg-type]


class TestCandidateItem:
    def test_frozen(self) -> None:
        item = CandidateItem(title="Engineer", company="Acme")
        with pytest.raises(ValidationError):
            item.title = "Other"  # type: ignore[misc]

    def test_handle_not_serialized(self) -> None:
        item = CandidateItem(title="Engineer", company="Acme", handle=object())
        assert "handle" not in item.model_dump()


class TestFormControlIsEmpty:
    def test_text(self) -> None:
        assert _control().is_empty is True
        assert _control(value="  ").is_empty is True
        assert _control(value="5").is_empty is False

    def test_checkbox_follows_checked(self) -> None:
        assert _control(ControlKind.CHECKBOX, "I agree").is_empty is True
        assert _control(ControlKind.CHECKBOX, "I agree", checked=True).is_empty is False

    def test_select_on_first_option_is_empty(self) -> None:
        options = ["Select an option", "Yes", "No"]
        assert _control(ControlKind.SELECT, "Q", options=options, value="Select an option").is_empty is True
        assert _control(ControlKind.SELECT, "Q", options=options, value="Yes").is_empty is False
        assert _control(ControlKind.SELECT, "Q", options=options).is_empty is True

    def test_radio_without_value(self) -> None:
        assert _control(ControlKind.RADIO, "Q", options=["Yes", "No"]).is_empty is True


class TestRenderQuestion:
    def test_text_is_normalized_label(self) -> None:
        assert render_question(_control(label="  Years   of experience ")) == "Years of experience"

    def test_choice_lists_options(self) -> None:
        control = _control(ControlKind.RADIO, "Willing to relocate?", options=["Yes", "No"])
        assert render_question(control) == "question: Willing to relocate? || options: Yes, No"

    def test_long_option_list_truncated(self) -> None:
        options = [f"Option {n}" for n in range(MAX_RENDERED_OPTIONS + 5)]
        rendered = render_question(_control(ControlKind.SELECT, "Country", options=options))
        assert "Option 9" in rendered
        assert "Option 10" not in rendered
        assert rendered.endswith(", ... (more options available)")

    def test_question_label_roundtrip(self) -> None:
        control = _control(ControlKind.SELECT, "English level", options=["Native", "Fluent"])
        assert question_label(render_question(control)) == "English level"
        assert question_label("Plain label") == "Plain label"


class TestQuestionSet:
    def test_grouped_by_kind(self) -> None:
        qs = QuestionSet()
        qs.add(_control())
        qs.add(_control(ControlKind.RADIO, "Relocate?", options=["Yes", "No"]))
        qs.add(_control(ControlKind.SELECT, "Level", options=["A", "B"]))
        qs.add(_control(ControlKind.CHECKBOX, "I agree"))
        assert qs.inputs == ["Years of experience"]
        assert qs.radios == ["question: Relocate? || options: Yes, No"]
        assert qs.dropdowns == ["question: Level || options: A, B"]
        assert qs.checkboxes == ["I agree"]
        assert qs.count() == 4

    def test_duplicates_and_blank_labels_ignored(self) -> None:
        qs = QuestionSet()
        qs.add(_control())
        qs.add(_control(label="Years  of experience"))
        qs.add(_control(label="   "))
        assert qs.count() == 1

    def test_empty(self) -> None:
        assert QuestionSet().is_empty() is True


class TestAnswerSet:
    def test_values_coerced_to_text(self) -> None:
        answers = AnswerSet.model_validate({
            "inputs": {"Years": 6, "Skip": None},
            "checkboxes": {"I agree": True, "Newsletter": False},
            "dropdowns": {"Languages": ["English", "German"]},
            "radios": None,
        })
        assert answers.inputs == {"Years": "6"}
        assert answers.checkboxes == {"I agree": "Yes", "Newsletter": "No"}
        assert answers.dropdowns == {"Languages": "English, German"}
        assert answers.radios == {}

    def test_non_object_section_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AnswerSet.model_validate({"inputs": ["6"]})

    def test_find_exact_in_own_section_first(self) -> None:
        answers = AnswerSet(inputs={"Experience": "6"}, radios={"Experience": "Yes"})
        assert answers.find(ControlKind.RADIO, "Experience") == "Yes"
        assert answers.find(ControlKind.TEXT, "experience") == "6"

    def test_find_by_rendered_question(self) -> None:
        answers = AnswerSet(radios={"question: Willing to relocate? || options: Yes, No": "No"})
        assert answers.find(ControlKind.RADIO, "Willing to relocate?") == "No"

    def test_find_by_containment(self) -> None:
        answers = AnswerSet(inputs={"Years of experience": "6"})
        assert answers.find(ControlKind.TEXT, "How many years of experience do you have?") == "6"

    def test_find_falls_back_to_other_sections(self) -> None:
        answers = AnswerSet(inputs={"Notice period": "30"})
        assert answers.find(ControlKind.SELECT, "Notice period") == "30"

    def test_find_missing(self) -> None:
        answers = AnswerSet(inputs={"Notice period": "30"})
        assert answers.find(ControlKind.TEXT, "Salary expectation") is None
        assert answers.find(ControlKind.TEXT, "  ") is None
        assert AnswerSet().is_empty() is True
