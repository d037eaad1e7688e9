"""
Request-scoped submission models.

A Submission is built from the posted form for exactly one request and is
dropped when the response goes out. Nothing here is shared between requests.

Models:
  FormKind         - which form this process serves (inquiry or review)
  Submission       - canonical record extracted from the form body
  OutboundMessage  - what the Dispatch Adapter hands to the Mailer
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class FormKind(str, Enum):
    """The two supported forms."""

    INQUIRY = "inquiry"
    REVIEW = "review"


class Submission(BaseModel):
    """
    Canonical record of one form submission.

    Absent form fields are stored as empty strings, except ``honeypot``
    which is None when the ``hp`` field was not posted at all. The honeypot
    rule needs to tell "missing" from "empty" for the inquiry form.

    ``body`` is the raw message for inquiries and stays empty for reviews
    until the composer fills it in.
    """

    reply_to_email: str = ""
    body: str = ""
    honeypot: Optional[str] = None

    # Review form only
    name: str = ""
    star_rating: str = ""
    review: str = ""


class OutboundMessage(BaseModel):
    """A fully populated email, ready for the Mailer."""

    model_config = {"frozen": True}

    sender: str
    recipient: str
    subject: str
    reply_to: str
    body: str
