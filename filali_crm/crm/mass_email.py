"""Mass email composition and dispatch.

Emails are rendered per recipient from the branded template and sent to the
dispatcher as one batch. Each successfully emailed client then gets an
"Email sent to ..." activity note.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, select_autoescape
from markupsafe import Markup, escape
from pydantic import BaseModel, ConfigDict, Field

from filali_crm.core.logging import get_logger
from filali_crm.core.redis import submission_lock
from filali_crm.crm.models import ContactAction
from filali_crm.crm.validation import ensure_valid, validate_url

if TYPE_CHECKING:
    import redis.asyncio as redis

    from filali_crm.crm.service import ClientService
    from filali_crm.integrations.dispatcher import DispatcherClient
    from filali_crm.models.client import Client

logger = get_logger(__name__)

NAME_PLACEHOLDER = "{name}"

EMAIL_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width,initial-scale=1">
  <title>{{ SUBJECT_LINE }}</title>
  <style>
    body{ margin:0; padding:0; width:100%!important; background:#0b0d12 }
    .wrap{ width:100%; max-width:640px; margin:0 auto }
    .card{ background:#141922; border:1px solid #2b3341; border-radius:16px; overflow:hidden }
    .band{ height:10px; line-height:10px; background:#e53935 }
    .h1{ color:#ffffff; font-weight:900; font-size:30px; line-height:1.2; margin:0 0 12px }
    .note p{ color:#f0f2f5; font-size:16px; line-height:1.7; margin:0 0 12px }
    .btn a{ display:inline-block; background:#e53935; color:#fff!important; font-weight:900;
            padding:14px 24px; border-radius:12px; text-decoration:none }
    .muted{ color:#9aa3b2; font-size:12px }
  </style>
</head>
<body>
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0">
    <tr><td align="center" style="padding:20px">
      <table role="presentation" class="wrap card" cellspacing="0" cellpadding="0">
        <tr><td class="band"></td></tr>
        <tr><td style="padding:28px;text-align:center">
          <img src="https://i.imgur.com/F2oLMY3.png" alt="FILALI" width="140">
        </td></tr>
        <tr><td style="padding:32px">
          <h1 class="h1" style="text-align:center">{{ SUBJECT_LINE }}</h1>
          <div class="note">{{ EMAIL_BODY }}</div>
          <p class="btn" style="text-align:center">
            <a href="{{ URL }}" target="_blank">{{ CALL_TO_ACTION }}</a>
          </p>
        </td></tr>
        <tr><td class="muted" style="padding:20px;text-align:center">
          {{ FOOTER_LINKS }}<br>
          <a href="{{ MANAGE_PREFERENCES_URL }}">Manage preferences</a> &middot;
          <a href="{{ UNSUBSCRIBE_URL }}">Unsubscribe</a>
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>
"""

_environment = Environment(autoescape=select_autoescape(default_for_string=True))
_template = _environment.from_string(EMAIL_TEMPLATE)


class TemplateVars(BaseModel):
    """Variables substituted into the branded email template."""

    model_config = ConfigDict(populate_by_name=True)

    subject_line: str = Field(default="Elite Coaching Opportunity", alias="SUBJECT_LINE")
    email_body: str = Field(
        default=(
            "Hi {name}, I wanted to reach out about your elite transformation journey."
            "\n\nAre you ready to take your leadership and performance to the next level?"
            "\n\nI help elite entrepreneurs and leaders break through their limitations "
            "and achieve extraordinary results."
        ),
        alias="EMAIL_BODY",
    )
    call_to_action: str = Field(default="START YOUR TRANSFORMATION", alias="CALL_TO_ACTION")
    url: str = Field(default="https://filaligroup.com", alias="URL")
    footer_links: str = Field(default="filaligroup.com", alias="FOOTER_LINKS")
    manage_preferences_url: str = Field(
        default="https://filaligroup.com", alias="MANAGE_PREFERENCES_URL"
    )
    unsubscribe_url: str = Field(default="https://filaligroup.com", alias="UNSUBSCRIBE_URL")


class MassEmailResult(BaseModel):
    sent: int
    skipped_client_ids: list[str] = Field(default_factory=list)
    message: str


def convert_text_to_html(text: str) -> Markup:
    """Turn plain text into HTML paragraphs.

    Blank lines separate paragraphs, single newlines become <br>, and the text
    itself is escaped.

    Example:
        >>> str(convert_text_to_html("Hi there\\nfriend\\n\\nBye"))
        '<p>Hi there<br>friend</p><p>Bye</p>'
    """
    paragraphs = [p.strip() for p in text.split("\n\n")]
    return Markup("").join(
        Markup("<p>{}</p>").format(Markup("<br>").join(escape(line) for line in p.split("\n")))
        for p in paragraphs
        if p
    )


def personalize(text: str, recipient_name: str | None) -> str:
    """Replace the {name} placeholder with the recipient's name."""
    return text.replace(NAME_PLACEHOLDER, recipient_name or "there")


def render_email_html(template_vars: TemplateVars, recipient_name: str | None = None) -> str:
    """Render the full branded email for one recipient."""
    context = template_vars.model_dump(by_alias=True)
    context["EMAIL_BODY"] = convert_text_to_html(
        personalize(template_vars.email_body, recipient_name)
    )
    return _template.render(**context)


def build_email_items(
    clients: list[Client], template_vars: TemplateVars
) -> tuple[list[dict[str, Any]], list[str]]:
    """Build the per-recipient payloads for one batch.

    Clients without an email address cannot be emailed and are skipped.

    Returns:
        Tuple of (items to send, ids of skipped clients).
    """
    items: list[dict[str, Any]] = []
    skipped: list[str] = []
    for client in clients:
        if not client.email:
            skipped.append(client.id)
            continue
        rendered_vars = template_vars.model_dump(by_alias=True)
        rendered_vars["EMAIL_BODY"] = str(
            convert_text_to_html(personalize(template_vars.email_body, client.full_name))
        )
        items.append(
            {
                "recipient": client.email,
                "subject": template_vars.subject_line,
                "template_vars": rendered_vars,
                "client": {
                    "id": client.id,
                    "name": client.full_name,
                    "email": client.email,
                    "company": client.company,
                },
                "body": render_email_html(template_vars, client.full_name),
            }
        )
    return items, skipped


def validate_mass_email(client_ids: list[str], template_vars: TemplateVars) -> list[str]:
    """Validate a mass-email request before anything is sent."""
    errors: list[str] = []
    if not client_ids:
        errors.append("Please select clients to send mass email")
    if not template_vars.subject_line.strip():
        errors.append("Subject line is required")
    if not template_vars.email_body.strip():
        errors.append("Email body is required")
    if not validate_url(template_vars.url):
        errors.append("Call-to-action URL must be a valid http(s) URL")
    return errors


def batch_fingerprint(client_ids: list[str], template_vars: TemplateVars) -> str:
    """Stable key identifying one batch, used for the in-flight lock."""
    digest = hashlib.sha256()
    digest.update(",".join(sorted(client_ids)).encode("utf-8"))
    digest.update(template_vars.model_dump_json().encode("utf-8"))
    return digest.hexdigest()


async def send_mass_email(
    service: ClientService,
    dispatcher: DispatcherClient,
    redis_pool: redis.Redis,
    client_ids: list[str],
    template_vars: TemplateVars,
) -> MassEmailResult:
    """Render, dispatch, and log one mass email.

    Raises:
        ValidationFailedError: If the request is invalid or nobody is emailable.
        ClientNotFoundError: If a selected client does not exist.
        SubmissionInProgressError: If the same batch is already being sent.
        DispatchError: If the dispatcher rejects the batch; nothing is logged.
    """
    ensure_valid(validate_mass_email(client_ids, template_vars))

    clients = [await service.get_client(client_id) for client_id in dict.fromkeys(client_ids)]
    items, skipped = build_email_items(clients, template_vars)
    ensure_valid(
        [] if items else ["None of the selected clients has an email address"]
    )

    async with submission_lock(
        redis_pool, "mass_email", batch_fingerprint(client_ids, template_vars)
    ):
        receipt = await dispatcher.send_mass_email(items)

    for client in clients:
        if client.email:
            await service.log_contact(client.id, ContactAction.EMAIL, email=client.email)

    logger.info("mass_email_completed", sent=receipt.recipients, skipped=len(skipped))
    return MassEmailResult(
        sent=receipt.recipients,
        skipped_client_ids=skipped,
        message=receipt.message,
    )
