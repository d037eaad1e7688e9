"""
Unit tests for the submission pipeline: guards, assembly, composition,
ordered validation and dispatch.
"""

import pytest
from unittest.mock import MagicMock

from formrelay.config import load_settings
from formrelay.errors import (
    BotDetected,
    DispatchFailed,
    FieldInvalid,
    MethodNotAllowed,
    OriginRejected,
    SendError,
)
from formrelay.models.outcome import ValidationOutcome
from formrelay.models.submission import FormKind, Submission
from formrelay.services.pipeline import (
    SubmissionPipeline,
    assemble_submission,
    check_method,
    check_origin,
    compose_review_body,
    first_rejection,
)
from formrelay.services.resolver import StaticMxResolver


def _make_settings(**overrides):
    env = {
        "CLIENT_ID": "client-id",
        "CLIENT_SECRET": "client-secret",
        "ACCESS_TOKEN": "access-token",
        "REFRESH_TOKEN": "refresh-token",
        "EMAIL_FROM": "forms@example.com",
        "EMAIL_TO": "owner@example.com",
        "SUBJECT": "New website inquiry",
        "SITE": "example.com",
    }
    env.update(overrides)
    return load_settings(env)


def _make_pipeline(**overrides):
    mailer = MagicMock()
    resolver = StaticMxResolver(["example.com"])
    return SubmissionPipeline(_make_settings(**overrides), mailer, resolver), mailer


class TestGuards:

    def test_origin_must_match_exactly(self):
        assert check_origin("https://example.com", "https://example.com").ok
        for origin in ["http://example.com", "https://example.com/", "https://evil.example", "", None]:
            outcome = check_origin(origin, "https://example.com")
            assert isinstance(outcome.error, OriginRejected)
            assert outcome.status_code == 403

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "OPTIONS", "post"])
    def test_only_post_allowed(self, method):
        outcome = check_method(method)
        assert outcome.status_code == 405
        assert outcome.error.headers == {"Allow": "POST"}
        assert outcome.message == f"Error: Method {method} not allowed. Only POST allowed."

    def test_origin_checked_before_method(self):
        pipeline, _ = _make_pipeline()
        with pytest.raises(OriginRejected):
            pipeline.guard("https://evil.example", "GET")

    def test_method_checked_after_origin(self):
        pipeline, _ = _make_pipeline()
        with pytest.raises(MethodNotAllowed):
            pipeline.guard("https://example.com", "GET")

    def test_guard_passes(self):
        pipeline, _ = _make_pipeline()
        pipeline.guard("https://example.com", "POST")


class TestFirstRejection:

    def test_stops_at_first_failure(self):
        calls = []

        def make(name, outcome):
            def check():
                calls.append(name)
                return outcome
            return check

        rejected = ValidationOutcome.reject(BotDetected())
        result = first_rejection([
            make("a", ValidationOutcome.accept()),
            make("b", rejected),
            make("c", ValidationOutcome.accept()),
        ])

        assert result is rejected
        assert calls == ["a", "b"]

    def test_all_pass(self):
        assert first_rejection([ValidationOutcome.accept, ValidationOutcome.accept]).ok


class TestAssembleSubmission:

    def test_inquiry_fields(self):
        submission = assemble_submission(
            {"email": "user@example.com", "message": "hello", "hp": "", "extra": "ignored"},
            FormKind.INQUIRY,
        )
        assert submission == Submission(reply_to_email="user@example.com", body="hello", honeypot="")

    def test_missing_fields_read_as_empty(self):
        submission = assemble_submission({}, FormKind.INQUIRY)
        assert submission.reply_to_email == ""
        assert submission.body == ""
        assert submission.honeypot is None

    def test_review_fields(self):
        submission = assemble_submission(
            {"name": "Jane", "email": "jane@example.com", "stars": "4", "review": "Great!"},
            FormKind.REVIEW,
        )
        assert submission.name == "Jane"
        assert submission.star_rating == "4"
        assert submission.review == "Great!"
        assert submission.body == ""
        assert submission.honeypot is None

    def test_non_text_values_are_ignored(self):
        submission = assemble_submission({"email": object(), "message": "hi"}, FormKind.INQUIRY)
        assert submission.reply_to_email == ""


class TestCompose:

    def test_review_template(self):
        submission = Submission(name="Jane", star_rating="4", review="Great!")
        assert compose_review_body(submission) == "Name: Jane\nStars: 4\nReview: Great!"

    def test_inquiry_body_is_message(self):
        pipeline, _ = _make_pipeline()
        submission = Submission(reply_to_email="user@example.com", body="hello")
        assert pipeline.compose(submission) is submission

    def test_review_compose_returns_copy(self):
        pipeline, _ = _make_pipeline(FORM_KIND="review")
        original = Submission(name="Jane", star_rating="4", review="Great!")
        composed = pipeline.compose(original)
        assert composed.body == "Name: Jane\nStars: 4\nReview: Great!"
        assert original.body == ""


class TestProcessInquiry:

    def test_valid_submission_dispatched(self):
        pipeline, mailer = _make_pipeline()
        pipeline.process(Submission(reply_to_email="user@example.com", body="hello", honeypot=""))

        mailer.send.assert_called_once()
        message = mailer.send.call_args.args[0]
        assert message.reply_to == "user@example.com"
        assert message.body == "hello"
        assert message.sender == "forms@example.com"
        assert message.recipient == "owner@example.com"
        assert message.subject == "New website inquiry"

    def test_email_checked_before_message(self):
        pipeline, mailer = _make_pipeline()
        with pytest.raises(FieldInvalid) as exc_info:
            pipeline.process(Submission(reply_to_email="bad", body="", honeypot=""))
        assert exc_info.value.field == "email"
        mailer.send.assert_not_called()

    def test_honeypot_checked_last(self):
        pipeline, _ = _make_pipeline()
        with pytest.raises(FieldInvalid) as exc_info:
            pipeline.process(Submission(reply_to_email="user@example.com", body="", honeypot="bot"))
        assert exc_info.value.field == "message"

    def test_filled_honeypot_rejected(self):
        pipeline, mailer = _make_pipeline()
        with pytest.raises(BotDetected):
            pipeline.process(Submission(reply_to_email="user@example.com", body="hello", honeypot="x"))
        mailer.send.assert_not_called()

    def test_missing_honeypot_rejected_for_inquiry(self):
        pipeline, _ = _make_pipeline()
        with pytest.raises(BotDetected):
            pipeline.process(Submission(reply_to_email="user@example.com", body="hello"))

    def test_honeypot_disabled(self):
        pipeline, mailer = _make_pipeline(HONEYPOT="false")
        pipeline.process(Submission(reply_to_email="user@example.com", body="hello", honeypot="x"))
        mailer.send.assert_called_once()

    def test_mailer_failure_becomes_dispatch_failed(self):
        pipeline, mailer = _make_pipeline()
        mailer.send.side_effect = SendError("quota exceeded")
        with pytest.raises(DispatchFailed):
            pipeline.process(Submission(reply_to_email="user@example.com", body="hello", honeypot=""))

    def test_identical_submissions_dispatch_twice(self):
        pipeline, mailer = _make_pipeline()
        submission = Submission(reply_to_email="user@example.com", body="hello", honeypot="")
        pipeline.process(submission)
        pipeline.process(submission)
        assert mailer.send.call_count == 2


class TestProcessReview:
    """Review form order: name, email, stars, review, honeypot."""

    def _valid(self, **overrides) -> Submission:
        fields = {
            "name": "Jane",
            "reply_to_email": "jane@example.com",
            "star_rating": "4",
            "review": "Great!",
        }
        fields.update(overrides)
        return Submission(**fields)

    def test_valid_review_composed_and_dispatched(self):
        pipeline, mailer = _make_pipeline(FORM_KIND="review")
        pipeline.process(self._valid())

        message = mailer.send.call_args.args[0]
        assert message.body == "Name: Jane\nStars: 4\nReview: Great!"
        assert message.reply_to == "jane@example.com"

    def test_absent_honeypot_is_fine_for_review(self):
        pipeline, mailer = _make_pipeline(FORM_KIND="review")
        pipeline.process(self._valid(honeypot=None))
        mailer.send.assert_called_once()

    @pytest.mark.parametrize("overrides,field", [
        ({"name": "", "reply_to_email": "bad"}, "name"),
        ({"reply_to_email": "bad", "star_rating": "9"}, "email"),
        ({"star_rating": "9", "review": ""}, "stars"),
        ({"review": "", "honeypot": "bot"}, "review"),
    ])
    def test_first_failing_field_reported(self, overrides, field):
        pipeline, mailer = _make_pipeline(FORM_KIND="review")
        with pytest.raises(FieldInvalid) as exc_info:
            pipeline.process(self._valid(**overrides))
        assert exc_info.value.field == field
        mailer.send.assert_not_called()

    def test_filled_honeypot_rejected(self):
        pipeline, _ = _make_pipeline(FORM_KIND="review")
        with pytest.raises(BotDetected):
            pipeline.process(self._valid(honeypot="x"))
