"""
Connection Reconciler

Keeps the form's submission trigger in line with the `connect` setting and
decides when the reporting store must be purged and re-seeded.

    connect=true,  no trigger  -> create trigger, purge, export
    connect=false, trigger     -> delete trigger, purge
    anything else              -> nothing to do
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Iterable

from apps_script_host import HostApiError, RESPONDER_FUNCTION
from export_transformer import flatten
from form_models import Trigger, FORM_SUBMIT_EVENT
from settings_store import ConnectorSettings


@dataclass(frozen=True)
class ReconcileActions:
    create_trigger: bool = False
    delete_trigger: bool = False
    export_now: bool = False
    purge_now: bool = False

    @property
    def is_noop(self) -> bool:
        return not (self.create_trigger or self.delete_trigger or self.export_now or self.purge_now)


@dataclass
class ReconcileResult:
    form_id: str
    actions: ReconcileActions
    trigger: Optional[Trigger] = None
    exported_records: int = 0
    reconciled_at: str = ""

    def to_dict(self) -> dict:
        return {
            "form_id": self.form_id,
            "create_trigger": self.actions.create_trigger,
            "delete_trigger": self.actions.delete_trigger,
            "purge_now": self.actions.purge_now,
            "export_now": self.actions.export_now,
            "exported_records": self.exported_records,
            "trigger_id": self.trigger.triggerId if self.trigger else None,
            "reconciled_at": self.reconciled_at,
        }


class ReconcileError(Exception):
    """The trigger could not be brought in line with the saved settings."""

    def __init__(self, form_id: str, desired_connect: Optional[bool], cause: HostApiError):
        super().__init__(f"Trigger update failed for form {form_id}: {cause.message}")
        self.form_id = form_id
        self.desired_connect = desired_connect
        self.cause = cause


def find_submission_trigger(triggers: Iterable[Trigger]) -> Optional[Trigger]:
    for trigger in triggers:
        if trigger.eventType == FORM_SUBMIT_EVENT:
            return trigger
    return None


def plan_reconciliation(desired_connect: Optional[bool], existing_trigger: Optional[Trigger]) -> ReconcileActions:
    if desired_connect is True and existing_trigger is None:
        return ReconcileActions(create_trigger=True, purge_now=True, export_now=True)
    if desired_connect is False and existing_trigger is not None:
        return ReconcileActions(delete_trigger=True, purge_now=True)
    return ReconcileActions()


def reconcile_connection(form_id: str, settings: ConnectorSettings, host, forms, sink) -> ReconcileResult:
    """
    Bring the trigger in line with settings.connect and refresh the store.

    Trigger failures are raised as ReconcileError; settings are left as saved.
    Purge always runs before export so the store never holds mixed data.
    """
    triggers = host.list_triggers()
    print(f"🔎 Triggers found for form {form_id}: {len(triggers)}")
    existing_trigger = find_submission_trigger(triggers)

    actions = plan_reconciliation(settings.connect, existing_trigger)
    result = ReconcileResult(
        form_id=form_id,
        actions=actions,
        trigger=existing_trigger,
        reconciled_at=datetime.utcnow().isoformat()
    )

    if actions.is_noop:
        print(f"ℹ️ Form {form_id} already in desired state (connect={settings.connect})")
        return result

    try:
        if actions.create_trigger:
            result.trigger = host.create_submission_trigger(RESPONDER_FUNCTION)
            print(f"✅ Created submission trigger for form {form_id}")
        elif actions.delete_trigger:
            host.delete_trigger(existing_trigger)
            result.trigger = None
            print(f"🔌 Deleted submission trigger for form {form_id}")
    except HostApiError as e:
        print(f"❌ Trigger update failed for form {form_id}: {e}")
        raise ReconcileError(form_id, settings.connect, e) from e

    if actions.purge_now:
        sink.purge(form_id)

    if actions.export_now:
        bundle = flatten(forms.get_form(form_id))
        result.exported_records = sink.store(bundle)

    return result
