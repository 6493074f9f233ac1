"""
Form Sync Endpoints

HTTP surface of the form connector. The companion Apps Script posts
submissions here; the add-on UI and the CLI client read and save settings.

Usage:
1. configure_services(...) once at start-up (see main.py)
2. Include the router: app.include_router(form_sync_router)
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Any

from apps_script_host import ADDON_TITLE, NOTICE, HostApiError
from export_transformer import flatten
from form_models import SettingUpdate, SubmissionEvent, InstallRequest
from reconciler import reconcile_connection, find_submission_trigger, ReconcileError
from submission_responder import respond_to_form_submit
from notification_senders import NotificationSender

# =============================================================================
# Router
# =============================================================================

form_sync_router = APIRouter(prefix="/form-sync", tags=["Form Sync"])

# =============================================================================
# Services
# =============================================================================

@dataclass
class ConnectorServices:
    settings_store: Any
    sink: Any
    host_for: Callable[[str], Any]
    forms_source: Callable[[], Any]
    install_for: Optional[Callable[[str, str], Any]] = None
    renderer: Any = None

    def sender_for(self, host) -> NotificationSender:
        return NotificationSender(host, self.settings_store, self.renderer)


_services: Optional[ConnectorServices] = None


def configure_services(services: ConnectorServices):
    global _services
    _services = services


def get_services() -> ConnectorServices:
    if _services is None:
        raise HTTPException(status_code=503, detail="Form connector services not configured")
    return _services

# =============================================================================
# State Management
# =============================================================================

# Counters per form, reset on restart
form_sync_status: dict[str, dict] = {}


def _status_for(form_id: str) -> dict:
    if form_id not in form_sync_status:
        form_sync_status[form_id] = {
            "first_seen": datetime.utcnow().isoformat(),
            "last_reconcile": None,
            "last_submission": None,
            "submissions_received": 0,
            "notifications_sent": 0,
            "records_exported": 0
        }
    return form_sync_status[form_id]


def host_error_response(e: HostApiError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={
            "success": False,
            "error": "Apps Script execution error",
            "message": e.message,
            "function": e.function,
            "type": e.error_type
        }
    )


def _reconcile(form_id: str, services: ConnectorServices):
    settings = services.settings_store.load(form_id)
    try:
        result = reconcile_connection(
            form_id,
            settings,
            services.host_for(form_id),
            services.forms_source(),
            services.sink
        )
    except ReconcileError as e:
        return JSONResponse(
            status_code=502,
            content={
                "success": False,
                "error": "Trigger update failed",
                "message": str(e),
                "settings_saved": True,
                "desired_connect": e.desired_connect
            }
        )
    except HostApiError as e:
        return host_error_response(e)

    status = _status_for(form_id)
    status["last_reconcile"] = result.reconciled_at
    status["records_exported"] += result.exported_records
    return {"success": True, **result.to_dict()}

# =============================================================================
# Settings Endpoints
# =============================================================================

@form_sync_router.get("/{form_id}/settings")
async def get_settings(form_id: str, check_trigger: bool = False, services: ConnectorServices = Depends(get_services)):
    """
    Settings for the add-on sidebar.
    With check_trigger, also report whether the trigger matches `connect`.
    """
    settings = services.settings_store.get_settings(form_id)
    body = {"form_id": form_id, "settings": settings}

    if check_trigger:
        try:
            trigger = find_submission_trigger(services.host_for(form_id).list_triggers())
        except HostApiError as e:
            return host_error_response(e)
        desired = services.settings_store.load(form_id).connect
        body["trigger_present"] = trigger is not None
        body["in_sync"] = desired is None or desired == (trigger is not None)

    return body


@form_sync_router.post("/{form_id}/settings")
async def save_settings(form_id: str, data: SettingUpdate, services: ConnectorServices = Depends(get_services)):
    """Save one option, then reconcile the trigger (the sidebar's save button)."""
    services.settings_store.set_option(form_id, data.property, data.value)
    return _reconcile(form_id, services)


@form_sync_router.post("/{form_id}/options")
async def set_option(form_id: str, data: SettingUpdate, services: ConnectorServices = Depends(get_services)):
    """Persist one option without touching the trigger."""
    services.settings_store.set_option(form_id, data.property, data.value)
    return {"success": True, "form_id": form_id, "property": data.property, "value": data.value}


@form_sync_router.post("/{form_id}/reconcile")
async def reconcile(form_id: str, services: ConnectorServices = Depends(get_services)):
    """Bring the trigger and the reporting store in line with saved settings."""
    return _reconcile(form_id, services)

# =============================================================================
# Export
# =============================================================================

@form_sync_router.get("/{form_id}/export")
async def export_form(form_id: str, services: ConnectorServices = Depends(get_services)):
    """Build the export bundle without sending it anywhere."""
    try:
        form = services.forms_source().get_form(form_id)
    except HostApiError as e:
        return host_error_response(e)
    return flatten(form).model_dump()

# =============================================================================
# Form Submissions (from the companion script's trigger)
# =============================================================================

@form_sync_router.post("/form-submit")
async def receive_form_submit(data: SubmissionEvent, services: ConnectorServices = Depends(get_services)):
    status = _status_for(data.formId)
    status["submissions_received"] += 1
    status["last_submission"] = datetime.utcnow().isoformat()

    try:
        host = services.host_for(data.formId)
        results = respond_to_form_submit(
            data,
            services.settings_store,
            host,
            services.forms_source(),
            services.sender_for(host)
        )
    except HostApiError as e:
        return host_error_response(e)

    status["notifications_sent"] += sum(1 for r in results if r["sent"])
    return {"status": "processed", "form_id": data.formId, "response_id": data.responseId, "results": results}

# =============================================================================
# Companion Script Installation
# =============================================================================

@form_sync_router.post("/{form_id}/install")
async def install(form_id: str, data: InstallRequest, services: ConnectorServices = Depends(get_services)):
    """Inject the companion Apps Script into the form and point it at this service."""
    if services.install_for is None:
        raise HTTPException(status_code=501, detail="Companion script installation not configured")

    try:
        result = services.install_for(form_id, data.service_url)
    except HostApiError as e:
        return host_error_response(e)

    print(f"✅ Installed companion script for form {form_id} -> {data.service_url}")
    return {"success": True, "form_id": form_id, "result": result}

# =============================================================================
# About & Stats
# =============================================================================

@form_sync_router.get("/about")
async def about():
    return {"title": f"About {ADDON_TITLE}", "addon": ADDON_TITLE, "notice": NOTICE}


@form_sync_router.get("/stats")
async def form_sync_stats():
    """Get form sync statistics"""
    return {
        "forms": list(form_sync_status.keys()),
        "sync_status": form_sync_status
    }
