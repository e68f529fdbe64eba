"""SubmissionProtocol: the two-pass quick-apply dialog driver.

Phases:
  dry run     — placeholder-fill every page to enumerate its questions
  discard     — close the placeholder application without saving it
  fetch       — ask the AI for real answers to the recorded questions
  reopen      — get back to the item and open the dialog again
  real run    — fill with real answers and submit

A dry run that records no questions goes straight to the real run on the
still-open dialog; discard, fetch and reopen are skipped.
"""

import asyncio
import contextlib
import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from autoapply.ai.client import AIClient, AIRequest, AIRequestKind
from autoapply.core.errors import (
    AIUnavailableError,
    ControlNotFoundError,
    DialogNotFoundError,
    RunStoppedError,
    ValidationBlockedError,
)
from autoapply.core.schemas import (
    ActionKind,
    AnswerSet,
    AppliedRecord,
    CandidateItem,
    ControlKind,
    DialogAction,
    FormControl,
    JobDetail,
    QuestionSet,
    ReopenStrategy,
)
from autoapply.core.store import PersistenceStore
from autoapply.pipeline.context import DelayKind, RunContext
from autoapply.platforms.base import PageAdapter
from autoapply.profile.schema import ProfileData

logger = logging.getLogger(__name__)

DRY_RUN_MAX_PAGES = 50
REAL_RUN_MAX_PAGES = 100
DISMISS_ATTEMPTS = 20
DISCARD_ATTEMPTS = 3

CHECKED_ANSWERS = {"yes", "true", "checked", "y"}

PLACEHOLDER_FIRST_NAME = "John"
PLACEHOLDER_LAST_NAME = "Doe"
PLACEHOLDER_EMAIL = "john.doe@example.com"
PLACEHOLDER_PHONE = "1234567890"
PLACEHOLDER_CITY = "New York, New York, United States"
PLACEHOLDER_SENTENCE = "I have extensive experience in this field and I am very interested."
PLACEHOLDER_NUMBER = "1"


class SubmissionPhase(str, Enum):
    IDLE = "idle"
    DRY_RUN = "dry_run"
    DISCARD = "discard"
    FETCH_ANSWERS = "fetch_answers"
    REOPEN = "reopen"
    REAL_RUN = "real_run"
    CLOSED = "closed"


class SubmissionResult(BaseModel):
    """Outcome of one submission attempt."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    submitted: bool = False
    questions: QuestionSet = Field(default_factory=QuestionSet)
    answers: AnswerSet = Field(default_factory=AnswerSet)
    record: AppliedRecord | None = None
    duplicate: bool = False


def placeholder_for(control: FormControl) -> str:
    """Value that satisfies the dialog's validation during the dry run."""
    if control.kind is ControlKind.RADIO:
        return control.options[0] if control.options else ""
    if control.kind is ControlKind.SELECT:
        if len(control.options) > 1:
            return control.options[1]
        return control.options[0] if control.options else ""
    if control.kind is ControlKind.CHECKBOX:
        return "true"

    label = control.label.lower()
    if "first name" in label or "firstname" in label:
        return PLACEHOLDER_FIRST_NAME
    if "last name" in label or "lastname" in label or "surname" in label:
        return PLACEHOLDER_LAST_NAME
    if "email" in label:
        return PLACEHOLDER_EMAIL
    if "phone" in label or "mobile" in label:
        return PLACEHOLDER_PHONE
    if "city" in label or "location" in label:
        return PLACEHOLDER_CITY
    if "name" in label:
        return f"{PLACEHOLDER_FIRST_NAME} {PLACEHOLDER_LAST_NAME}"
    if control.multiline or "summary" in label or "description" in label:
        return PLACEHOLDER_SENTENCE
    return PLACEHOLDER_NUMBER


def match_option(options: list[str], answer: str) -> str | None:
    """The option an answer refers to: exact, then containment either way."""
    wanted = " ".join(answer.split()).lower()
    if not wanted:
        return None
    normalized = [(o, " ".join(o.split()).lower()) for o in options if o.strip()]
    for option, text in normalized:
        if text == wanted:
            return option
    for option, text in normalized:
        if wanted in text or text in wanted:
            return option
    return None


class SubmissionProtocol:
    """Drives one item's quick-apply dialog from closed to submitted."""

    def __init__(
        self,
        adapter: PageAdapter,
        ai: AIClient,
        store: PersistenceStore,
        profile: ProfileData,
        ctx: RunContext,
        *,
        sweep_interval_s: float = 2.0,
    ) -> None:
        self._adapter = adapter
        self._ai = ai
        self._store = store
        self._profile = profile
        self._ctx = ctx
        self._sweep_interval_s = sweep_interval_s
        self.phase = SubmissionPhase.IDLE
        self._duplicate = False

    async def apply(
        self,
        item: CandidateItem,
        detail: JobDetail | None = None,
        *,
        match_score: int | None = None,
    ) -> SubmissionResult:
        """Run both passes for an item that is already selected.

        Raises DialogNotFoundError, ControlNotFoundError, ValidationBlockedError,
        AIUnavailableError or RunStoppedError; the caller decides how fatal each is.
        """
        detail = detail or JobDetail(title=item.title, company=item.company, location=item.location)
        result = SubmissionResult()

        self.phase = SubmissionPhase.DRY_RUN
        await self._open_dialog(item)
        result.questions = await self._dry_run()
        logger.info("Dry run recorded %d question(s) for '%s'", result.questions.count(), item.title)

        if not result.questions.is_empty():
            self.phase = SubmissionPhase.DISCARD
            await self.discard()

            self.phase = SubmissionPhase.FETCH_ANSWERS
            result.answers = await self._fetch_answers(result.questions, detail)

            self.phase = SubmissionPhase.REOPEN
            await self._reopen(item)

        self.phase = SubmissionPhase.REAL_RUN
        self._duplicate = False
        try:
            record = await self._real_run(item, detail, result.answers, match_score)
        finally:
            self.phase = SubmissionPhase.CLOSED
        result.submitted = record is not None
        result.record = record
        result.duplicate = self._duplicate
        return result

    async def discard(self) -> bool:
        """Close the open dialog and confirm the discard.

        Missing controls are tolerated. Returns True once the dialog is gone.
        """
        for attempt in range(1, DISCARD_ATTEMPTS + 1):
            if not await self._adapter.dialog_open():
                return True
            closed = await self._adapter.close_dialog()
            await self._ctx.delay(DelayKind.VERY_SHORT)
            confirmed = await self._adapter.confirm_discard()
            logger.debug("Discard attempt %d: close=%s confirm=%s", attempt, closed, confirmed)
            await self._ctx.delay(DelayKind.VERY_SHORT)
        if await self._adapter.dialog_open():
            logger.warning("Dialog still open after %d discard attempts", DISCARD_ATTEMPTS)
            return False
        return True

    async def discard_if_open(self) -> None:
        """Cleanup after an aborted item. Never raises."""
        try:
            if await self._adapter.dialog_open():
                await self.discard()
        except Exception:
            logger.warning("Could not clean up the dialog", exc_info=True)

    # --- phases ---

    async def _open_dialog(self, item: CandidateItem) -> None:
        """Click the apply control, trying each lookup strategy in turn."""
        for strategy in ReopenStrategy:
            handle = await self._adapter.find_apply_control(strategy, item)
            if handle is None:
                logger.debug("Apply control not found via %s strategy", strategy.value)
                continue
            await self._adapter.dispatch_click(handle)
            if await self._adapter.wait_for_dialog():
                logger.debug("Dialog opened via %s strategy", strategy.value)
                return
        msg = f"Could not open the apply dialog for '{item.title}' @ {item.company}"
        raise DialogNotFoundError(msg)

    async def _dry_run(self) -> QuestionSet:
        questions = QuestionSet()
        for page in range(1, DRY_RUN_MAX_PAGES + 1):
            await self._check_stop()
            await self._dismiss_interstitials()
            action = await self._current_action()

            if action.kind is ActionKind.SUBMIT:
                logger.debug("Dry run reached the submit page after %d page(s)", page)
                return questions
            if action.kind is not ActionKind.NEXT:
                msg = f"Dry run found no next or submit action (got '{action.label or action.kind.value}')"
                raise ControlNotFoundError(msg)

            for control in await self._adapter.list_controls():
                questions.add(control)
                if control.is_empty:
                    await self._adapter.set_control_value(control, placeholder_for(control))

            await self._adapter.dispatch_click(action.handle)
            await self._ctx.delay(DelayKind.VERY_SHORT)
            await self._adapter.wait_for_dom_settled()
            if await self._adapter.has_validation_error():
                msg = f"Placeholder answers were rejected on page {page}"
                raise ValidationBlockedError(msg, phase=SubmissionPhase.DRY_RUN.value)

        msg = f"Dry run did not reach the submit page within {DRY_RUN_MAX_PAGES} pages"
        raise ControlNotFoundError(msg)

    async def _fetch_answers(self, questions: QuestionSet, detail: JobDetail) -> AnswerSet:
        response = await self._ai.request(
            AIRequest(
                kind=AIRequestKind.ANSWER_QUESTIONS,
                payload={
                    "questions": questions.model_dump(),
                    "profile": self._profile.prompt_context(),
                    "job": detail.model_dump(include={"title", "company", "location"}),
                },
            ),
        )
        if not response.success:
            msg = f"No answers from the AI: {response.error or 'unknown error'}"
            raise AIUnavailableError(msg)
        if not isinstance(response.data, dict):
            msg = "Malformed answers from the AI: expected an object"
            raise AIUnavailableError(msg)
        try:
            answers = AnswerSet.model_validate(response.data)
        except ValidationError as e:
            msg = f"Malformed answers from the AI: {e}"
            raise AIUnavailableError(msg) from e
        if answers.is_empty():
            msg = "The AI returned no answers"
            raise AIUnavailableError(msg)
        return answers

    async def _reopen(self, item: CandidateItem) -> None:
        await self._ctx.delay(DelayKind.VERY_SHORT)
        if not await self._adapter.is_showing_item(item):
            logger.info("Page moved away from '%s', selecting it again", item.title)
            if not await self._adapter.reselect_item(item):
                logger.warning("Could not find '%s' in the list again", item.title)
            await self._adapter.wait_for_dom_settled()
        await self._open_dialog(item)

    async def _real_run(
        self,
        item: CandidateItem,
        detail: JobDetail,
        answers: AnswerSet,
        match_score: int | None,
    ) -> AppliedRecord | None:
        snapshot: dict[str, str] = {}
        sweeper = asyncio.create_task(self._sweep_post_submit_dialogs())
        try:
            for page in range(1, REAL_RUN_MAX_PAGES + 1):
                await self._check_stop()
                await self._dismiss_interstitials()

                if await self._adapter.submission_confirmed():
                    logger.info("Confirmation shown without an explicit submit")
                    return await self._finish(item, detail, snapshot, match_score)

                action = await self._current_action()
                if action.kind is ActionKind.SUBMIT:
                    await self._adapter.uncheck_follow_toggle()
                    await self._adapter.dispatch_click(action.handle)
                    logger.info("Submitted '%s' @ %s", item.title, item.company)
                    return await self._finish(item, detail, snapshot, match_score)
                if action.kind is not ActionKind.NEXT:
                    msg = f"Real run found no next or submit action on page {page}"
                    raise ControlNotFoundError(msg)

                for control in await self._adapter.list_controls():
                    value = self._answer_for(control, answers)
                    if value is None:
                        continue
                    await self._adapter.set_control_value(control, value)
                    snapshot[" ".join(control.label.split())] = value

                await self._adapter.dispatch_click(action.handle)
                await self._ctx.delay(DelayKind.VERY_SHORT)
                await self._adapter.wait_for_dom_settled()
                if await self._adapter.submission_confirmed():
                    logger.info("Confirmation shown after page %d without an explicit submit", page)
                    return await self._finish(item, detail, snapshot, match_score)
                if await self._adapter.has_validation_error():
                    await self.discard()
                    msg = f"Answers were rejected on page {page}"
                    raise ValidationBlockedError(msg, phase=SubmissionPhase.REAL_RUN.value)

            msg = f"Real run did not reach submit within {REAL_RUN_MAX_PAGES} pages"
            raise ControlNotFoundError(msg)
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    async def _finish(
        self,
        item: CandidateItem,
        detail: JobDetail,
        snapshot: dict[str, str],
        match_score: int | None,
    ) -> AppliedRecord:
        record = AppliedRecord(
            title=item.title,
            company=item.company,
            location=detail.location or item.location,
            job_id=item.job_id or detail.job_id,
            match_score=match_score,
            form_snapshot=snapshot,
        )
        if not self._store.record_applied(record):
            self._duplicate = True
            logger.info("'%s' @ %s was already in today's ledger", item.title, item.company)
        await self._ctx.delay(DelayKind.SHORT)
        for attempt in range(1, DISMISS_ATTEMPTS + 1):
            dismissed = await self._adapter.dismiss_post_submit_dialog()
            if not dismissed and not await self._adapter.dialog_open():
                break
            if not dismissed:
                await self._adapter.close_dialog()
            logger.debug("Post-submit dismissal attempt %d", attempt)
            await self._ctx.delay(DelayKind.VERY_SHORT)
        return record

    # --- Private helpers ---

    def _answer_for(self, control: FormControl, answers: AnswerSet) -> str | None:
        answer = answers.find(control.kind, control.label)
        if answer is None and control.kind is ControlKind.TEXT:
            answer = self._profile.default_for(control.label)
        if answer is None:
            return None
        if control.kind is ControlKind.CHECKBOX:
            return "true" if answer.strip().lower() in CHECKED_ANSWERS else "false"
        if control.kind in (ControlKind.RADIO, ControlKind.SELECT):
            option = match_option(control.options, answer)
            if option is None:
                logger.debug("Answer '%s' matches no option of '%s'", answer, control.label)
            return option
        return answer

    async def _current_action(self) -> DialogAction:
        action = await self._adapter.primary_action()
        if action.kind is ActionKind.NONE:
            await self._adapter.wait_for_dom_settled()
            if not await self._adapter.dialog_open():
                msg = "The apply dialog closed unexpectedly"
                raise DialogNotFoundError(msg)
            action = await self._adapter.primary_action()
        return action

    async def _dismiss_interstitials(self) -> None:
        if await self._adapter.dismiss_safety_reminder():
            logger.debug("Dismissed safety reminder")
        if await self._adapter.dismiss_save_confirmation():
            logger.debug("Dismissed save-application prompt")

    async def _check_stop(self) -> None:
        if self._ctx.stopped:
            msg = f"Stopped during {self.phase.value}"
            raise RunStoppedError(msg)

    async def _sweep_post_submit_dialogs(self) -> None:
        """Clear upsell dialogs during the real run.

        The confirmation dialog stays open: it is how the real run learns the
        application went through.
        """
        while True:
            try:
                await self._adapter.dismiss_post_submit_dialog(include_confirmation=False)
            except Exception:
                logger.debug("Post-submit sweep failed", exc_info=True)
            if not await self._ctx.sleep(self._sweep_interval_s):
                return
