"""LinkedIn DOM selector constants with fallbacks.

Ordered by stability: data-* > aria-* > class names.
Each constant is a tuple so callers iterate until a match is found.
"""

# --- Result list item container (most specific first) ---
ITEM_SELECTORS: tuple[str, ...] = (
    "li.scaffold-layout__list-item[data-occludable-job-id]",
    "li[data-occludable-job-id]",
    "li.scaffold-layout__list-item",
    "li.jobs-search-results__list-item",
    "div.job-card-container",
)

# --- Scrollable results pane ---
RESULTS_PANE_SELECTORS: tuple[str, ...] = (
    ".scaffold-layout__list > div",
    ".jobs-search-results-list",
    ".scaffold-layout__list",
)

# --- Job ID attributes on the item element ---
JOB_ID_ATTR: str = "data-occludable-job-id"
JOB_ID_ATTR_FALLBACK: str = "data-job-id"

# --- Fields inside an item ---
ITEM_TITLE_SELECTORS: tuple[str, ...] = (
    ".artdeco-entity-lockup__title a",
    "a.job-card-list__title",
    "a.job-card-container__link",
    'a[href*="/jobs/view/"]',
)

ITEM_COMPANY_SELECTORS: tuple[str, ...] = (
    ".artdeco-entity-lockup__subtitle span",
    ".artdeco-entity-lockup__subtitle",
    "span.job-card-container__primary-description",
)

ITEM_LOCATION_SELECTORS: tuple[str, ...] = (
    ".artdeco-entity-lockup__caption li",
    ".artdeco-entity-lockup__caption",
    "li.job-card-container__metadata-item",
)

ITEM_STATE_SELECTORS: tuple[str, ...] = (
    ".job-card-container__footer-job-state",
    ".job-card-container__footer-item--highlighted",
)

# --- Detail pane ---
DETAIL_CONTAINER_SELECTORS: tuple[str, ...] = (
    ".job-details-jobs-unified-top-card",
    ".jobs-search__job-details--container",
    ".jobs-details__main-content",
)

DETAIL_TITLE_SELECTORS: tuple[str, ...] = (
    ".job-details-jobs-unified-top-card__job-title",
    ".jobs-unified-top-card__job-title",
    "h1",
)

DETAIL_COMPANY_SELECTORS: tuple[str, ...] = (
    ".job-details-jobs-unified-top-card__company-name",
    ".jobs-unified-top-card__company-name",
)

DETAIL_LOCATION_SELECTORS: tuple[str, ...] = (
    ".job-details-jobs-unified-top-card__primary-description-container span",
    ".job-details-jobs-unified-top-card__tertiary-description-container span",
)

DETAIL_DESCRIPTION_SELECTORS: tuple[str, ...] = (
    "#job-details",
    ".jobs-description__content",
    ".jobs-box__html-content",
)

APPLY_BUTTON_TEXT: str = "easy apply"
APPLY_BUTTON_BY_ID: str = 'button[data-job-id="{job_id}"]'
PILL_CLASS: str = "artdeco-pill"

# --- Reselect from the list ---
RESELECT_SELECTORS: tuple[str, ...] = (
    'a[href*="{job_id}"]',
    '[data-job-id="{job_id}"]',
    '[data-occludable-job-id="{job_id}"]',
)

# --- Pagination ---
NEXT_PAGE_SELECTORS: tuple[str, ...] = (
    'button[aria-label="View next page"]',
    'button[aria-label="Next"]',
    "button.jobs-search-pagination__button--next",
)

# --- Submission dialog ---
DIALOG_SELECTORS: tuple[str, ...] = (
    ".jobs-easy-apply-modal",
    'div[data-test-modal][role="dialog"]',
)

DIALOG_HEADER_SELECTORS: tuple[str, ...] = (
    ".artdeco-modal__header h2",
    ".artdeco-modal__header h3",
    "h2",
    "h3",
)

CONTROL_GROUP_SELECTORS: tuple[str, ...] = (
    ".jobs-easy-apply-form-section__grouping",
    ".fb-dash-form-element",
    "[data-test-form-element]",
)

VALIDATION_ERROR_SELECTORS: tuple[str, ...] = (
    ".artdeco-inline-feedback--error",
    '[data-test-form-element-error-messages]',
)

DISMISS_SELECTOR: str = ".artdeco-modal__dismiss"
DISCARD_CONFIRM_SELECTOR: str = 'button[data-control-name="discard_application_confirm_btn"]'
FOLLOW_CHECKBOX_ID: str = "follow-company-checkbox"
ANY_MODAL_SELECTOR: str = ".artdeco-modal"

# --- Button labels (lowercase) ---
SUBMIT_LABELS: tuple[str, ...] = ("submit application", "submit")
NEXT_LABELS: tuple[str, ...] = ("next", "review", "continue to next step")
EXTERNAL_LABELS: tuple[str, ...] = ("continue applying",)

# --- Header texts (lowercase) ---
CONFIRMATION_HEADERS: tuple[str, ...] = ("application sent",)
SAFETY_REMINDER_HEADER: str = "job search safety reminder"
SAVE_CONFIRMATION_HEADER: str = "save this application?"
POST_SUBMIT_HEADERS: tuple[str, ...] = (
    "application sent",
    "ready for your next",
    "don't miss out",
    "saved",
    "follow",
)
POST_SUBMIT_BODY_TEXTS: tuple[str, ...] = (
    "notified about similar jobs",
    "work from home",
    "get the app",
)
FORM_DIALOG_MARKERS: tuple[str, ...] = ("apply to", "contact info")
POST_SUBMIT_BUTTON_LABELS: tuple[str, ...] = ("not now", "done", "dismiss", "cancel", "close")
