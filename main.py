from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from googleapiclient.discovery import build
import os
from dotenv import load_dotenv
from supabase import create_client, Client

from apps_script_host import (
    ADDON_TITLE,
    AppsScriptHost,
    get_google_credentials,
    get_or_create_bound_script,
    install_companion_script,
    script_id_cache,
)
from data_sink import SupabaseFormDataSink
from form_sync_router import form_sync_router, configure_services, form_sync_status, ConnectorServices
from forms_source import GoogleFormsSource
from notification_senders import TemplateRenderer
from settings_store import SettingsStore

# Load environment variables
load_dotenv()

# Initialize Supabase client
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
    raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment variables")

supabase: Client = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)

app = FastAPI(title=ADDON_TITLE)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def host_for(form_id: str) -> AppsScriptHost:
    return AppsScriptHost.for_form(form_id, get_google_credentials())


def forms_source() -> GoogleFormsSource:
    return GoogleFormsSource.from_credentials(get_google_credentials())


def install_for(form_id: str, service_url: str):
    credentials = get_google_credentials()
    drive = build('drive', 'v3', credentials=credentials)
    script = build('script', 'v1', credentials=credentials)

    script_id = get_or_create_bound_script(drive, script, form_id)
    result = install_companion_script(script, script_id, service_url)
    script_id_cache[form_id] = script_id
    return result


configure_services(ConnectorServices(
    settings_store=SettingsStore(supabase, os.getenv("FORM_SETTINGS_TABLE", "form_settings")),
    sink=SupabaseFormDataSink(
        supabase,
        responses_table=os.getenv("FORM_RESPONSES_TABLE", "form_responses"),
        summaries_table=os.getenv("FORM_SUMMARIES_TABLE", "form_summaries")
    ),
    host_for=host_for,
    forms_source=forms_source,
    install_for=install_for,
    renderer=TemplateRenderer(),
))

app.include_router(form_sync_router)


@app.get("/")
async def root():
    return {
        "service": f"{ADDON_TITLE} Service",
        "tracked_forms": len(form_sync_status),
        "form_ids": list(form_sync_status.keys()),
        "instructions": "Install the companion script via POST /form-sync/{form_id}/install"
    }
