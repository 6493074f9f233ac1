"""
Tests for the submission responder.
"""

from form_models import AuthorizationInfo, SubmissionEvent, AUTHORIZATION_REQUIRED
from settings_store import ConnectorSettings
from submission_responder import (
    SendCreatorNotification,
    SendRespondentNotification,
    SendReauthorizationRequest,
    plan_submission_response,
    apply_commands,
    respond_to_form_submit,
)

from conftest import FakeFormsSource

GRANTED = AuthorizationInfo()
REQUIRED = AuthorizationInfo(status=AUTHORIZATION_REQUIRED, authorizationUrl="https://auth")
BOTH = ConnectorSettings(creator_notify=True, respondent_notify=True)


class RecordingSender:
    def __init__(self):
        self.calls = []

    def send_creator_notification(self, form, settings):
        self.calls.append(("creator", form.formId))
        return True

    def send_respondent_notification(self, form, response, settings):
        self.calls.append(("respondent", response.responseId))
        return True

    def send_reauthorization_request(self, form_id, settings, authorization_url):
        self.calls.append(("reauth", authorization_url))
        return True


class StoreStub:
    def __init__(self, settings):
        self.settings = settings

    def load(self, form_id):
        return self.settings


# ============================================================================
# Planning
# ============================================================================

class TestPlanSubmissionResponse:

    def test_authorization_required_sends_no_notifications(self, survey):
        commands = plan_submission_response(BOTH, REQUIRED, survey.responses[0], 100)
        assert commands == [SendReauthorizationRequest("https://auth")]

    def test_both_notifications(self, survey):
        commands = plan_submission_response(BOTH, GRANTED, survey.responses[0], 100)
        assert commands == [SendCreatorNotification(), SendRespondentNotification(survey.responses[0])]

    def test_no_quota_skips_respondent_only(self, survey):
        commands = plan_submission_response(BOTH, GRANTED, survey.responses[0], 0)
        assert commands == [SendCreatorNotification()]

    def test_respondent_only(self, survey):
        settings = ConnectorSettings(respondent_notify=True)
        commands = plan_submission_response(settings, GRANTED, survey.responses[0], 5)
        assert commands == [SendRespondentNotification(survey.responses[0])]

    def test_nothing_enabled(self, survey):
        assert plan_submission_response(ConnectorSettings(), GRANTED, survey.responses[0], 5) == []


class TestApplyCommands:

    def test_form_loaded_once_and_lazily(self, survey):
        sender = RecordingSender()
        loads = []

        def load_form():
            loads.append(1)
            return survey

        results = apply_commands(
            [SendCreatorNotification(), SendRespondentNotification(survey.responses[1])],
            "form-1", BOTH, load_form, sender
        )

        assert sender.calls == [("creator", "form-1"), ("respondent", "r2")]
        assert len(loads) == 1
        assert results == [
            {"command": "SendCreatorNotification", "sent": True},
            {"command": "SendRespondentNotification", "sent": True},
        ]

    def test_reauthorization_does_not_load_form(self):
        sender = RecordingSender()
        results = apply_commands([SendReauthorizationRequest("u")], "form-1", BOTH, lambda: 1 / 0, sender)
        assert results == [{"command": "SendReauthorizationRequest", "sent": True}]


# ============================================================================
# End to end
# ============================================================================

class TestRespondToFormSubmit:

    def test_authorization_required_skips_everything(self, host, survey):
        host.require_authorization()
        forms = FakeFormsSource(survey)
        sender = RecordingSender()

        respond_to_form_submit(SubmissionEvent(formId="form-1", responseId="r1"), StoreStub(BOTH), host, forms, sender)

        assert [c[0] for c in sender.calls] == ["reauth"]
        assert forms.get_form_calls == 0
        assert host.quota_queries == 0

    def test_quota_not_queried_without_respondent_notify(self, host, survey):
        sender = RecordingSender()
        respond_to_form_submit(
            SubmissionEvent(formId="form-1", responseId="r1"),
            StoreStub(ConnectorSettings(creator_notify=True)),
            host, FakeFormsSource(survey), sender
        )

        assert host.quota_queries == 0
        assert sender.calls == [("creator", "form-1")]

    def test_respondent_gets_triggering_response(self, host, survey):
        sender = RecordingSender()
        respond_to_form_submit(
            SubmissionEvent(formId="form-1", responseId="r2"),
            StoreStub(ConnectorSettings(respondent_notify=True)),
            host, FakeFormsSource(survey), sender
        )

        assert sender.calls == [("respondent", "r2")]

    def test_exhausted_quota_still_notifies_creator(self, host, survey):
        host.quota = 0
        sender = RecordingSender()
        respond_to_form_submit(SubmissionEvent(formId="form-1", responseId="r1"), StoreStub(BOTH), host, FakeFormsSource(survey), sender)

        assert sender.calls == [("creator", "form-1")]

    def test_form_fetched_once_for_both(self, host, survey):
        forms = FakeFormsSource(survey)
        respond_to_form_submit(SubmissionEvent(formId="form-1", responseId="r1"), StoreStub(BOTH), host, forms, RecordingSender())
        assert forms.get_form_calls == 1
