"""
Submission Responder

Handles one form submission. plan_submission_response() decides what should
happen and returns commands; apply_commands() carries them out. Nothing is
exported here: the reporting store is only refreshed on connect/disconnect.
"""

from dataclasses import dataclass
from typing import Optional, Union

from form_models import AuthorizationInfo, FormResponse, SubmissionEvent
from settings_store import ConnectorSettings


@dataclass(frozen=True)
class SendCreatorNotification:
    pass


@dataclass(frozen=True)
class SendRespondentNotification:
    response: FormResponse


@dataclass(frozen=True)
class SendReauthorizationRequest:
    authorization_url: Optional[str] = None


Command = Union[SendCreatorNotification, SendRespondentNotification, SendReauthorizationRequest]


def plan_submission_response(
    settings: ConnectorSettings,
    auth_info: AuthorizationInfo,
    response: Optional[FormResponse],
    remaining_quota: int
) -> list[Command]:
    if auth_info.required:
        return [SendReauthorizationRequest(auth_info.authorizationUrl)]

    commands: list[Command] = []
    if settings.creator_notify:
        commands.append(SendCreatorNotification())
    if settings.respondent_notify and remaining_quota > 0 and response is not None:
        commands.append(SendRespondentNotification(response))
    return commands


def command_name(command: Command) -> str:
    return type(command).__name__


def apply_commands(commands: list[Command], form_id: str, settings: ConnectorSettings, load_form, sender) -> list[dict]:
    """Execute commands in order; load_form() is only called when a command needs the form."""
    results = []
    form = None
    for command in commands:
        if isinstance(command, SendReauthorizationRequest):
            sent = sender.send_reauthorization_request(form_id, settings, command.authorization_url)
        else:
            if form is None:
                form = load_form()
            if isinstance(command, SendCreatorNotification):
                sent = sender.send_creator_notification(form, settings)
            else:
                sent = sender.send_respondent_notification(form, command.response, settings)
        results.append({"command": command_name(command), "sent": sent})
    return results


def respond_to_form_submit(event: SubmissionEvent, settings_store, host, forms, sender) -> list[dict]:
    """
    Run one submission event end to end.

    Settings are read once. The quota is only queried when respondent
    notifications are on, and the response only fetched when it will be used.
    """
    settings = settings_store.load(event.formId)
    auth_info = host.get_authorization_info()

    if auth_info.required:
        print(f"⚠️ Authorization required for form {event.formId}, skipping submission {event.responseId}")
        commands = plan_submission_response(settings, auth_info, None, 0)
        return apply_commands(commands, event.formId, settings, lambda: None, sender)

    response = None
    remaining_quota = 0
    form = None
    if settings.respondent_notify:
        remaining_quota = host.get_remaining_daily_quota()
        if remaining_quota > 0:
            form = forms.get_form(event.formId, include_responses=settings.creator_notify)
            response = forms.get_response(form, event.responseId)

    commands = plan_submission_response(settings, auth_info, response, remaining_quota)
    print(f"📥 Submission {event.responseId} on form {event.formId}: "
          f"{[command_name(c) for c in commands] or 'no notifications'}")

    def load_form():
        return form if form is not None else forms.get_form(event.formId)

    return apply_commands(commands, event.formId, settings, load_form, sender)
