"""Input checks shared by the registry."""

import re

# local@domain.tld with no whitespace and a single @
_EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def is_valid_email(email: str) -> bool:
    """Return True if email is syntactically plausible."""
    return _EMAIL_PATTERN.fullmatch(email) is not None
