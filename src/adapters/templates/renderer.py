"""
Jinja2 message renderer - Implements MessageRenderer protocol.

Renders the HTML verification email from the template shipped next to
this module.
"""

from datetime import date
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.domain.ports import VerificationMessage

TEMPLATE_DIR = Path(__file__).parent
TEMPLATE_NAME = "verification_code.html"


class JinjaMessageRenderer:
    """Implements MessageRenderer protocol with a Jinja2 template."""

    def __init__(self, app_name: str, template_dir: Path = TEMPLATE_DIR) -> None:
        self._app_name = app_name
        self._env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, code: str, expires_in_minutes: int) -> VerificationMessage:
        template = self._env.get_template(TEMPLATE_NAME)
        html_body = template.render(
            app_name=self._app_name,
            code=code,
            expires_in_minutes=expires_in_minutes,
            year=date.today().year,
        )
        return VerificationMessage(
            subject=f"Your verification code - {self._app_name}",
            html_body=html_body,
        )
