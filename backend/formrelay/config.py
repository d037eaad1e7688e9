"""
Process configuration.

Settings are read once from the environment (and a .env file, if present)
when the service starts, validated, and then passed explicitly into the app
factory. Nothing reads os.environ after startup.

Missing or invalid values raise ConfigError; the entry point treats that as
fatal.
"""

import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from formrelay.errors import ConfigError
from formrelay.models.submission import FormKind


_REQUIRED = (
    "CLIENT_ID",
    "CLIENT_SECRET",
    "ACCESS_TOKEN",
    "REFRESH_TOKEN",
    "EMAIL_FROM",
    "EMAIL_TO",
    "SUBJECT",
    "SITE",
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class Settings(BaseModel):
    """Immutable configuration shared by every request."""

    model_config = {"frozen": True}

    client_id: str
    client_secret: str
    access_token: str
    refresh_token: str
    email_from: str
    email_to: str
    subject: str
    site: str
    honeypot_enabled: bool = True
    form_kind: FormKind = FormKind.INQUIRY

    host: str = "0.0.0.0"
    port: int = 8080
    dns_timeout: float = 5.0
    send_timeout: float = 30.0


def normalize_site(value: str) -> str:
    """
    Turn the SITE value into the exact string browsers send as Origin.

    A bare host (``example.com``) gets an ``https://`` scheme. A value that
    already carries a scheme is kept, minus any trailing slash.
    """
    value = value.strip()
    if "://" in value:
        return value.rstrip("/")
    return f"https://{value}"


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean (true/false), got {raw!r}")


def _parse_number(name: str, raw: str, cast):
    try:
        value = cast(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    When ``environ`` is None, a .env file in the working directory is loaded
    first (existing variables win) and os.environ is used. Tests pass a plain
    dict instead.

    Raises:
        ConfigError: If a required variable is missing or a value is invalid
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    missing = [name for name in _REQUIRED if not environ.get(name, "").strip()]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    form_kind_raw = environ.get("FORM_KIND", FormKind.INQUIRY.value).strip().lower()
    try:
        form_kind = FormKind(form_kind_raw)
    except ValueError:
        raise ConfigError(
            f"FORM_KIND must be one of {[k.value for k in FormKind]}, got {form_kind_raw!r}"
        )

    return Settings(
        client_id=environ["CLIENT_ID"].strip(),
        client_secret=environ["CLIENT_SECRET"].strip(),
        access_token=environ["ACCESS_TOKEN"].strip(),
        refresh_token=environ["REFRESH_TOKEN"].strip(),
        email_from=environ["EMAIL_FROM"].strip(),
        email_to=environ["EMAIL_TO"].strip(),
        subject=environ["SUBJECT"].strip(),
        site=normalize_site(environ["SITE"]),
        honeypot_enabled=_parse_bool("HONEYPOT", environ.get("HONEYPOT", "true")),
        form_kind=form_kind,
        host=environ.get("HOST", "0.0.0.0").strip() or "0.0.0.0",
        port=_parse_number("PORT", environ.get("PORT", "8080"), int),
        dns_timeout=_parse_number("DNS_TIMEOUT", environ.get("DNS_TIMEOUT", "5"), float),
        send_timeout=_parse_number("SEND_TIMEOUT", environ.get("SEND_TIMEOUT", "30"), float),
    )
