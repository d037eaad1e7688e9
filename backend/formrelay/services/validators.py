"""
Field validators.

Each validator takes one field value (plus, for email, the resolver and, for
the honeypot, the rule switches) and returns a ValidationOutcome. None of
them raise for bad input and none of them touch shared state, so they are
safe to call from any number of concurrent requests.

Lengths are counted in UTF-8 bytes, so a multibyte character uses up more
of a limit than an ASCII one.
"""

import re
from typing import Optional

from formrelay.errors import BotDetected, FieldInvalid
from formrelay.models.outcome import ValidationOutcome
from formrelay.services.resolver import DomainResolver

NAME_MAX_LENGTH = 100
EMAIL_MIN_LENGTH = 5
EMAIL_MAX_LENGTH = 50
MESSAGE_MAX_LENGTH = 2000
STARS_MIN = 1
STARS_MAX = 5

_HOST_LABEL = r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
EMAIL_PATTERN = re.compile(
    r"[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@" + _HOST_LABEL + r"(?:\." + _HOST_LABEL + r")*"
)

# Any number of leading zeros; at most 10 significant digits reach int()
_INTEGER_PATTERN = re.compile(r"([+-]?)0*([0-9]{1,10})")


def _byte_length(value: str) -> int:
    return len(value.encode("utf-8"))


def validate_name(name: str) -> ValidationOutcome:
    if not name or _byte_length(name) > NAME_MAX_LENGTH:
        return ValidationOutcome.reject(
            FieldInvalid("name", "length", "Error: Name is blank or too long.")
        )
    return ValidationOutcome.accept()


def validate_email(email: str, resolver: DomainResolver) -> ValidationOutcome:
    """
    Check an email address in three steps, stopping at the first failure:

    1. length within [EMAIL_MIN_LENGTH, EMAIL_MAX_LENGTH]
    2. full match against EMAIL_PATTERN
    3. the domain has at least one MX record (via ``resolver``)

    Step 3 is the only one with I/O; it runs last so obviously bad input
    never costs a DNS round-trip.
    """
    length = _byte_length(email)
    if length < EMAIL_MIN_LENGTH or length > EMAIL_MAX_LENGTH:
        return ValidationOutcome.reject(
            FieldInvalid("email", "length", "Error: Email is too short or too long.")
        )

    if not EMAIL_PATTERN.fullmatch(email):
        return ValidationOutcome.reject(
            FieldInvalid("email", "format", "Error: Email is not a valid format.")
        )

    domain = email.split("@", 1)[1]
    if not resolver.has_mx(domain):
        return ValidationOutcome.reject(
            FieldInvalid("email", "domain", "Error: Domain given is not a valid email domain.")
        )

    return ValidationOutcome.accept()


def validate_star_rating(stars: str) -> ValidationOutcome:
    match = _INTEGER_PATTERN.fullmatch(stars)
    if match and STARS_MIN <= int(match.group(1) + match.group(2)) <= STARS_MAX:
        return ValidationOutcome.accept()
    return ValidationOutcome.reject(
        FieldInvalid("stars", "range", "Error: Star rating must be between 1-5.")
    )


def validate_message(message: str, label: str = "Message") -> ValidationOutcome:
    """Non-empty and at most MESSAGE_MAX_LENGTH bytes. ``label`` names the field in the error."""
    if not message or _byte_length(message) > MESSAGE_MAX_LENGTH:
        return ValidationOutcome.reject(
            FieldInvalid(label.lower(), "length", f"Error: {label} is too long or empty.")
        )
    return ValidationOutcome.accept()


def validate_honeypot(
    honeypot: Optional[str],
    enabled: bool,
    required: bool,
) -> ValidationOutcome:
    """
    Reject submissions that filled in the hidden ``hp`` field.

    Args:
        honeypot: Posted value, or None if the field was absent
        enabled:  Whether honeypot checking is switched on at all
        required: Whether an absent field counts as a bot (inquiry form)

    The rejection message is deliberately generic.
    """
    if not enabled:
        return ValidationOutcome.accept()
    if honeypot is None:
        return ValidationOutcome.reject(BotDetected()) if required else ValidationOutcome.accept()
    if honeypot != "":
        return ValidationOutcome.reject(BotDetected())
    return ValidationOutcome.accept()
