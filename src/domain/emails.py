"""
Confirmation email rendering.

Builds the confirmation link and renders the HTML and plain text bodies
from the Jinja2 templates shipped in src/domain/templates.
"""

from dataclasses import dataclass
from functools import lru_cache
from uuid import UUID

from jinja2 import Environment, PackageLoader, select_autoescape

from .models import CONFIRMATION_TOKEN_TTL

CONFIRM_EMAIL_SUBJECT = "Please confirm your email address"


@lru_cache
def _environment() -> Environment:
    return Environment(
        loader=PackageLoader("src.domain", "templates"),
        autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def confirmation_link(base_url: str, user_id: UUID, token: str) -> str:
    """Link consumed by GET /api/v1/users/{id}/email/confirmation."""
    return f"{base_url}/api/v1/users/{user_id}/email/confirmation?token={token}"


@dataclass(frozen=True)
class ConfirmEmailAddressTemplate:
    """Confirm-email-address message for one issued token."""

    link: str
    subject: str = CONFIRM_EMAIL_SUBJECT

    @classmethod
    def for_token(cls, base_url: str, user_id: UUID, token: str) -> "ConfirmEmailAddressTemplate":
        return cls(link=confirmation_link(base_url, user_id, token))

    def render_html(self) -> str:
        return self._render("confirm_email_address.html")

    def render_plain(self) -> str:
        return self._render("confirm_email_address.txt")

    def _render(self, template_name: str) -> str:
        template = _environment().get_template(template_name)
        return template.render(
            link=self.link,
            subject=self.subject,
            valid_for_hours=int(CONFIRMATION_TOKEN_TTL.total_seconds() // 3600),
        )
