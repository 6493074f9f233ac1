"""
Notification Senders

Creator, respondent and reauthorization emails, rendered from the Jinja2
templates in templates/ and sent through the form's MailApp quota.
Running out of quota is not an error: the email is skipped.
"""

from datetime import date
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from apps_script_host import ADDON_TITLE, NOTICE
from form_models import Form, FormResponse
from settings_store import ConnectorSettings, LAST_AUTH_EMAIL_DATE


class TemplateRenderer:
    def __init__(self, templates_dir: Optional[Path] = None):
        if templates_dir is None:
            templates_dir = Path(__file__).parent / "templates"

        self.templates_dir = templates_dir
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        template = self.env.get_template(template_name)
        return template.render(notice=NOTICE, **context)


class NotificationSender:
    """Composes and sends the add-on's emails through a host mail service."""

    def __init__(self, mail, settings_store, renderer: Optional[TemplateRenderer] = None):
        self.mail = mail
        self.settings_store = settings_store
        self.renderer = renderer or TemplateRenderer()

    def send_creator_notification(self, form: Form, settings: ConnectorSettings) -> bool:
        """
        Notify the form creator(s) every `responseStep` responses.

        With a step of 10, emails go out at 10, 20, 30... total responses.
        """
        total = len(form.responses)
        if total == 0 or total % settings.response_step != 0:
            return False

        addresses = settings.creator_addresses
        if not addresses:
            print(f"⚠️ Creator notification enabled for {form.formId} but no creatorEmail set")
            return False

        if self.mail.get_remaining_daily_quota() <= len(addresses):
            print(f"⚠️ Mail quota too low for creator notification on {form.formId}")
            return False

        body = self.renderer.render("creator_notification.html", {
            "summary": form.summary_url,
            "responses": total,
            "title": form.title,
            "response_step": settings.response_step,
            "form_url": form.edit_url,
        })
        self.mail.send_email(
            ",".join(addresses),
            f"{form.title}: Form submissions detected",
            body,
            name=ADDON_TITLE,
            html_body=body
        )
        return True

    def send_respondent_notification(self, form: Form, response: FormResponse, settings: ConnectorSettings) -> bool:
        if not settings.respondent_email_item_id:
            print(f"⚠️ Respondent notification enabled for {form.formId} but no email item chosen")
            return False

        email_answer = response.response_for_item(settings.respondent_email_item_id)
        respondent_email = email_answer.value if email_answer else None
        if not respondent_email or not isinstance(respondent_email, str):
            return False

        body = self.renderer.render("respondent_notification.html", {
            "paragraphs": settings.response_text.split("\n"),
        })
        self.mail.send_email(
            respondent_email,
            settings.response_subject,
            body,
            name=form.title,
            html_body=body
        )
        return True

    def send_reauthorization_request(
        self,
        form_id: str,
        settings: ConnectorSettings,
        authorization_url: Optional[str],
        today: Optional[date] = None
    ) -> bool:
        """Ask the script owner to reauthorize, at most once a day."""
        today_str = (today or date.today()).isoformat()
        if settings.last_auth_email_date == today_str:
            return False

        sent = False
        if self.mail.get_remaining_daily_quota() > 0:
            recipient = self.mail.get_effective_user_email()
            if recipient:
                body = self.renderer.render("authorization_email.html", {"url": authorization_url})
                self.mail.send_email(
                    recipient,
                    "Authorization Required",
                    body,
                    name=ADDON_TITLE,
                    html_body=body
                )
                sent = True
        else:
            print(f"⚠️ Mail quota exhausted, reauthorization email skipped for {form_id}")

        self.settings_store.set_option(form_id, LAST_AUTH_EMAIL_DATE, today_str)
        return sent
