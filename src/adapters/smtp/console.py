"""
Console notifier adapter - Implements Notifier protocol.

This module provides a console-based implementation of the domain's
notifier port, logging messages to stdout for development.
"""

import logging
import re

logger = logging.getLogger(__name__)

_TAG = re.compile(r"<[^>]+>")
_SPACE = re.compile(r"\s+")


class ConsoleNotifier:
    """
    Implements Notifier protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For development - never fails, so issue() always completes.
    """

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Log the message to console (simulates email delivery).

        The HTML is flattened to text so the code is readable in logs.

        Args:
            to_address: Recipient email address
            subject: Message subject
            html_body: Rendered HTML body
        """
        text = _SPACE.sub(" ", _TAG.sub(" ", html_body)).strip()
        logger.info("[NOTIFY] To: %s Subject: %s Body: %s", to_address, subject, text)
