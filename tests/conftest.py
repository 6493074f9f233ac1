"""
Shared fakes for the form connector tests.

FakeHost stands in for the companion Apps Script, FakeFormsSource for the
Forms API and FakeSupabase for the Supabase client's query builder.
"""

import pytest
from typing import Optional

from apps_script_host import HostApiError
from form_models import (
    Form,
    FormItem,
    FormResponse,
    ItemResponse,
    Trigger,
    AuthorizationInfo,
    FORM_SUBMIT_EVENT,
    AUTHORIZATION_REQUIRED,
)


# ============================================================================
# Builders
# ============================================================================

def text_item(item_id: str = "name", title: str = "Name") -> FormItem:
    return FormItem(itemId=item_id, title=title, type="TEXT", questionIds=[f"q-{item_id}"])


def grid_item(item_id: str = "grid", title: str = "Rate us", rows=("Food", "Service"), checkbox: bool = False) -> FormItem:
    return FormItem(
        itemId=item_id,
        title=title,
        type="CHECKBOX_GRID" if checkbox else "GRID",
        rows=list(rows),
        questionIds=[f"q-{item_id}-{i}" for i in range(len(rows))],
    )


def response(response_id: str, answers: list[tuple[FormItem, object]], email: Optional[str] = None) -> FormResponse:
    return FormResponse(
        responseId=response_id,
        respondentEmail=email,
        itemResponses=[ItemResponse(item=item, value=value) for item, value in answers],
    )


def make_form(responses: list[FormResponse] = (), items: list[FormItem] = (), form_id: str = "form-1") -> Form:
    return Form(
        formId=form_id,
        title="Customer Survey",
        description="Tell us how we did",
        items=list(items),
        responses=list(responses),
    )


# ============================================================================
# Fakes
# ============================================================================

class FakeHost:
    """Records every call in a shared log so ordering can be asserted."""

    def __init__(self, log: list, triggers: Optional[list] = None):
        self.log = log
        self.triggers = list(triggers or [])
        self.auth_info = AuthorizationInfo()
        self.quota = 100
        self.effective_email = "owner@example.com"
        self.sent = []
        self.fail_on = set()
        self.quota_queries = 0

    def _check(self, function: str):
        if function in self.fail_on:
            raise HostApiError(function, "Service invoked too many times", "ScriptError")

    def list_triggers(self):
        self.log.append("list_triggers")
        self._check("listFormTriggers")
        return list(self.triggers)

    def create_submission_trigger(self, handler: str = "respondToFormSubmit"):
        self.log.append("create_trigger")
        self._check("createFormSubmitTrigger")
        trigger = Trigger(triggerId=f"t-{len(self.triggers) + 1}", eventType=FORM_SUBMIT_EVENT, handlerFunction=handler)
        self.triggers.append(trigger)
        return trigger

    def delete_trigger(self, trigger):
        self.log.append("delete_trigger")
        self._check("deleteTriggerById")
        self.triggers = [t for t in self.triggers if t.triggerId != trigger.triggerId]

    def get_authorization_info(self):
        return self.auth_info

    def require_authorization(self, url: str = "https://script.google.com/auth"):
        self.auth_info = AuthorizationInfo(status=AUTHORIZATION_REQUIRED, authorizationUrl=url)

    def get_remaining_daily_quota(self):
        self.quota_queries += 1
        return self.quota

    def get_effective_user_email(self):
        return self.effective_email

    def send_email(self, to, subject, body, name, html_body=None):
        self.log.append("send_email")
        self.sent.append({"to": to, "subject": subject, "body": body, "name": name})


class FakeSink:
    def __init__(self, log: list):
        self.log = log
        self.stored = []

    def purge(self, form_id):
        self.log.append("purge")

    def store(self, bundle):
        self.log.append("store")
        self.stored.append(bundle)
        return len(bundle.dbResponses)


class FakeFormsSource:
    def __init__(self, form: Form):
        self.form = form
        self.get_form_calls = 0

    def get_form(self, form_id, include_responses=True):
        self.get_form_calls += 1
        if include_responses:
            return self.form
        return self.form.model_copy(update={"responses": []})

    def get_response(self, form, response_id):
        for r in self.form.responses:
            if r.responseId == response_id:
                return r
        raise HostApiError("responses.get", f"Response {response_id} not found")


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, db: "FakeSupabase", name: str):
        self.db = db
        self.name = name
        self.op = "select"
        self.payload = None
        self.filters = []
        self.on_conflict = None

    def select(self, columns: str = "*"):
        self.op = "select"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def insert(self, rows):
        self.op = "insert"
        self.payload = rows if isinstance(rows, list) else [rows]
        return self

    def upsert(self, row, on_conflict=None):
        self.op = "upsert"
        self.payload = row
        self.on_conflict = on_conflict
        return self

    def delete(self):
        self.op = "delete"
        return self

    def _matches(self, row):
        return all(row.get(c) == v for c, v in self.filters)

    def execute(self):
        rows = self.db.tables.setdefault(self.name, [])
        self.db.calls.append((self.name, self.op))

        if self.op == "select":
            return FakeResult([dict(r) for r in rows if self._matches(r)])
        if self.op == "insert":
            rows.extend(dict(r) for r in self.payload)
            return FakeResult(self.payload)
        if self.op == "upsert":
            keys = (self.on_conflict or "id").split(",")
            for existing in rows:
                if all(existing.get(k) == self.payload.get(k) for k in keys):
                    existing.update(self.payload)
                    return FakeResult([existing])
            rows.append(dict(self.payload))
            return FakeResult([self.payload])
        if self.op == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.db.tables[self.name] = [r for r in rows if not self._matches(r)]
            return FakeResult(removed)
        raise AssertionError(f"unexpected op {self.op}")


class FakeSupabase:
    def __init__(self):
        self.tables: dict[str, list] = {}
        self.calls = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def log():
    return []


@pytest.fixture
def host(log):
    return FakeHost(log)


@pytest.fixture
def sink(log):
    return FakeSink(log)


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def name_item():
    return text_item()


@pytest.fixture
def survey(name_item):
    return make_form(
        items=[name_item],
        responses=[
            response("r1", [(name_item, "Ada")], email="ada@example.com"),
            response("r2", [(name_item, "Grace")]),
        ],
    )
