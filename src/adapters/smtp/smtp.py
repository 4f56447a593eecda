"""
SMTP notifier adapter - Implements Notifier protocol.

Delivers the rendered verification email through an SMTP relay.
Authentication is a swappable credential strategy, so plain password,
app password and OAuth2 setups share one delivery path:

- PasswordLogin: AUTH LOGIN with username and (app) password
- OAuth2Login: AUTH XOAUTH2 with a bearer token from a token source

Port 465 uses implicit TLS; any other port upgrades with STARTTLS.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Protocol

from src.adapters.smtp.oauth import RefreshTokenSource, TokenRefreshError
from src.domain.exceptions import NotifierError

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465


class SmtpCredentials(Protocol):
    """Authenticates an open SMTP connection."""

    def authenticate(self, server: smtplib.SMTP) -> None:
        ...


class PasswordLogin:
    """Username/password login. Also used for provider app passwords."""

    def __init__(self, username: str, password: str) -> None:
        self._username = username
        self._password = password

    def authenticate(self, server: smtplib.SMTP) -> None:
        server.login(self._username, self._password)


class OAuth2Login:
    """XOAUTH2 login with an access token fetched from a token source."""

    def __init__(self, username: str, token_source: RefreshTokenSource) -> None:
        self._username = username
        self._token_source = token_source

    def authenticate(self, server: smtplib.SMTP) -> None:
        token = self._token_source.access_token()
        auth_string = f"user={self._username}\x01auth=Bearer {token}\x01\x01"

        # On failure the server sends a 334 error challenge; answer it with
        # an empty line so it completes with 535.
        def xoauth2(challenge: bytes | None = None) -> str:
            return auth_string if challenge is None else ""

        server.ehlo_or_helo_if_needed()
        server.auth("XOAUTH2", xoauth2)


class SmtpNotifier:
    """
    Implements Notifier protocol over SMTP.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Each send opens its own connection with a bounded timeout.
    """

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        credentials: SmtpCredentials,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._credentials = credentials
        self._timeout = timeout

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Send an HTML message.

        Raises:
            NotifierError: On any connection, TLS, authentication or
                delivery failure (detail is logged, not exposed)
        """
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content(html_body, subtype="html")

        try:
            self._deliver(message, to_address)
        except (smtplib.SMTPException, OSError, TokenRefreshError) as e:
            logger.error("SMTP delivery to %s via %s:%s failed: %s", to_address, self._host, self._port, e)
            raise NotifierError(f"SMTP delivery failed: {e}") from e

        logger.info("Verification email sent to %s", to_address)

    def _deliver(self, message: EmailMessage, to_address: str) -> None:
        # Recipient is passed explicitly; header parsing may yield a different mailbox
        context = ssl.create_default_context()
        if self._port == IMPLICIT_TLS_PORT:
            with smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout, context=context) as server:
                self._credentials.authenticate(server)
                server.send_message(message, to_addrs=[to_address])
        else:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                server.ehlo()
                server.starttls(context=context)
                server.ehlo()
                self._credentials.authenticate(server)
                server.send_message(message, to_addrs=[to_address])
