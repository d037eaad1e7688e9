"""
Submission pipeline.

One request walks these stages in order and stops at the first failure:

  origin check → method check → field extraction → field validation
  → body composition → dispatch

Everything a stage needs is passed in explicitly; the only state is the
request's own Submission. Guards and validators return ValidationOutcome,
and ``raise_for_outcome`` turns the first rejection into the matching
SubmissionError for the HTTP layer.
"""

import logging
from typing import Callable, Iterable, Mapping, Optional

from formrelay.config import Settings
from formrelay.errors import MethodNotAllowed, OriginRejected
from formrelay.models.outcome import ValidationOutcome
from formrelay.models.submission import FormKind, Submission
from formrelay.services.mailer import Mailer, dispatch
from formrelay.services.resolver import DomainResolver
from formrelay.services.validators import (
    validate_email,
    validate_honeypot,
    validate_message,
    validate_name,
    validate_star_rating,
)

logger = logging.getLogger(__name__)

Check = Callable[[], ValidationOutcome]


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def check_origin(origin: Optional[str], site: str) -> ValidationOutcome:
    """Exact match of the Origin header against the configured site. A missing header never matches."""
    if origin != site:
        return ValidationOutcome.reject(OriginRejected())
    return ValidationOutcome.accept()


def check_method(method: str) -> ValidationOutcome:
    if method != "POST":
        return ValidationOutcome.reject(MethodNotAllowed(method))
    return ValidationOutcome.accept()


def raise_for_outcome(outcome: ValidationOutcome) -> None:
    if not outcome.ok:
        raise outcome.error


def first_rejection(checks: Iterable[Check]) -> ValidationOutcome:
    """Run ``checks`` in order and return the first rejection, or Ok if all pass."""
    for check in checks:
        outcome = check()
        if not outcome.ok:
            return outcome
    return ValidationOutcome.accept()


# ---------------------------------------------------------------------------
# Submission Assembler / Composer
# ---------------------------------------------------------------------------

def _field(form: Mapping, name: str) -> str:
    value = form.get(name)
    # Multipart uploads arrive as file objects; a text field is all we accept.
    return value if isinstance(value, str) else ""


def assemble_submission(form: Mapping, form_kind: FormKind) -> Submission:
    """
    Read the fields for ``form_kind`` by name.

    Extra fields are ignored and absent ones read as "". ``hp`` is the
    exception: its absence is kept as None.
    """
    honeypot = _field(form, "hp") if "hp" in form else None

    if form_kind is FormKind.REVIEW:
        return Submission(
            reply_to_email=_field(form, "email"),
            name=_field(form, "name"),
            star_rating=_field(form, "stars"),
            review=_field(form, "review"),
            honeypot=honeypot,
        )

    return Submission(
        reply_to_email=_field(form, "email"),
        body=_field(form, "message"),
        honeypot=honeypot,
    )


def compose_review_body(submission: Submission) -> str:
    return f"Name: {submission.name}\nStars: {submission.star_rating}\nReview: {submission.review}"


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class SubmissionPipeline:
    """
    Request-independent wiring of settings and collaborators.

    One instance is created per app and shared by every request; it holds no
    per-request data, so concurrent calls do not interfere.
    """

    def __init__(self, settings: Settings, mailer: Mailer, resolver: DomainResolver):
        self.settings = settings
        self.mailer = mailer
        self.resolver = resolver

    @property
    def form_kind(self) -> FormKind:
        return self.settings.form_kind

    def guard(self, origin: Optional[str], method: str) -> None:
        """
        Run the origin and method guards, in that order.

        Raises:
            OriginRejected: Origin header does not match the configured site
            MethodNotAllowed: Method is not POST
        """
        raise_for_outcome(
            first_rejection([
                lambda: check_origin(origin, self.settings.site),
                lambda: check_method(method),
            ])
        )

    def field_checks(self, submission: Submission) -> list[Check]:
        """Ordered validators for this form kind."""
        honeypot = lambda: validate_honeypot(
            submission.honeypot,
            enabled=self.settings.honeypot_enabled,
            required=self.form_kind is FormKind.INQUIRY,
        )
        email = lambda: validate_email(submission.reply_to_email, self.resolver)

        if self.form_kind is FormKind.REVIEW:
            return [
                lambda: validate_name(submission.name),
                email,
                lambda: validate_star_rating(submission.star_rating),
                lambda: validate_message(submission.review, label="Review"),
                honeypot,
            ]

        return [
            email,
            lambda: validate_message(submission.body),
            honeypot,
        ]

    def validate(self, submission: Submission) -> ValidationOutcome:
        return first_rejection(self.field_checks(submission))

    def compose(self, submission: Submission) -> Submission:
        if self.form_kind is FormKind.REVIEW:
            return submission.model_copy(update={"body": compose_review_body(submission)})
        return submission

    def process(self, submission: Submission) -> None:
        """
        Validate, compose and dispatch one submission.

        Blocking: the MX lookup and the mail send both do network I/O.

        Raises:
            FieldInvalid / BotDetected: First failing validator
            DispatchFailed: The mailer reported an error
        """
        outcome = self.validate(submission)
        if not outcome.ok:
            logger.info(f"Submission rejected: {outcome!r}")
            raise_for_outcome(outcome)

        dispatch(self.compose(submission), self.settings, self.mailer)
