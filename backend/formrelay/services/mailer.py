"""
Outbound mail: the Mailer interface, the Gmail implementation and the
Dispatch Adapter that connects a validated Submission to a Mailer.

The router and pipeline only ever see the Mailer protocol; swapping Gmail
for another transport means writing one class with ``authenticate`` and
``send`` and passing it to ``create_app``.

Gmail credentials
-----------------
The four OAuth values (client id/secret, access token, refresh token) come
from Settings. ``authenticate`` refreshes the access token once at startup
and builds the Gmail API client; google-auth refreshes again on its own when
the token expires mid-run.
"""

import base64
import logging
from email.message import EmailMessage
from typing import Protocol

import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiError

from formrelay.config import Settings
from formrelay.errors import AuthenticationError, DispatchFailed, SendError
from formrelay.models.submission import OutboundMessage, Submission

logger = logging.getLogger(__name__)

GMAIL_TOKEN_URI = "https://oauth2.googleapis.com/token"
GMAIL_SEND_SCOPE = "https://www.googleapis.com/auth/gmail.send"


class Mailer(Protocol):
    def authenticate(self) -> None:
        ...

    def send(self, message: OutboundMessage) -> None:
        ...


# ---------------------------------------------------------------------------
# Gmail implementation
# ---------------------------------------------------------------------------

def build_mime_message(message: OutboundMessage) -> EmailMessage:
    """Turn an OutboundMessage into a plain-text RFC 5322 message."""
    mime = EmailMessage()
    mime["From"] = message.sender
    mime["To"] = message.recipient
    mime["Reply-To"] = message.reply_to
    mime["Subject"] = message.subject
    mime.set_content(message.body)
    return mime


class GmailMailer:
    """
    Send mail through the Gmail API as the authenticated user.

    Args:
        settings: Source of the OAuth credentials
        timeout:  Socket timeout in seconds for token refresh and API calls
    """

    def __init__(self, settings: Settings, timeout: float | None = None):
        self.timeout = timeout if timeout is not None else settings.send_timeout
        self.credentials = Credentials(
            token=settings.access_token,
            refresh_token=settings.refresh_token,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            token_uri=GMAIL_TOKEN_URI,
            scopes=[GMAIL_SEND_SCOPE],
        )
        self._service = None

    def _new_http(self) -> google_auth_httplib2.AuthorizedHttp:
        # httplib2.Http is not thread-safe; each send gets its own connection.
        return google_auth_httplib2.AuthorizedHttp(
            self.credentials, http=httplib2.Http(timeout=self.timeout)
        )

    def authenticate(self) -> None:
        """
        Refresh the access token and build the Gmail API client.

        Raises:
            AuthenticationError: If Google rejects the credentials or is unreachable
        """
        http = httplib2.Http(timeout=self.timeout)
        try:
            self.credentials.refresh(google_auth_httplib2.Request(http))
            self._service = build("gmail", "v1", http=self._new_http(), cache_discovery=False)
        except (GoogleAuthError, GoogleApiError, httplib2.HttpLib2Error, OSError) as e:
            logger.error(f"Gmail authentication failed: {e}")
            raise AuthenticationError(
                "Could not authenticate with Gmail OAuth using credentials."
            ) from e
        logger.info("Authenticated with Gmail API")

    def send(self, message: OutboundMessage) -> None:
        """
        Send ``message`` via users.messages.send.

        Raises:
            SendError: If the client is not authenticated or the API call fails
        """
        if self._service is None:
            raise SendError("GmailMailer.send called before authenticate()")

        raw = base64.urlsafe_b64encode(build_mime_message(message).as_bytes()).decode()
        request = self._service.users().messages().send(userId="me", body={"raw": raw})
        try:
            request.execute(http=self._new_http())
        except (GoogleAuthError, GoogleApiError, httplib2.HttpLib2Error, OSError) as e:
            raise SendError(str(e)) from e


# ---------------------------------------------------------------------------
# Dispatch Adapter
# ---------------------------------------------------------------------------

def build_outbound_message(submission: Submission, settings: Settings) -> OutboundMessage:
    return OutboundMessage(
        sender=settings.email_from,
        recipient=settings.email_to,
        subject=settings.subject,
        reply_to=submission.reply_to_email,
        body=submission.body,
    )


def dispatch(submission: Submission, settings: Settings, mailer: Mailer) -> None:
    """
    Hand a validated submission to the mailer.

    Raises:
        DispatchFailed: On any mailer failure; the transport error is logged only
    """
    message = build_outbound_message(submission, settings)
    try:
        mailer.send(message)
    except Exception as e:
        logger.error(f"Mail dispatch failed: {e}")
        raise DispatchFailed() from e
    logger.info("Mail dispatched")
