"""
Apps Script Host

Everything that only the Apps Script runtime bound to a form can do
(installable triggers, authorization status, MailApp quota and sending) is
reached by running functions of the companion script through the Apps Script
Execution API. The companion script itself is injected by install_companion_script().
"""

from fastapi import HTTPException
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from typing import Optional
import json
import os

from form_models import Trigger, AuthorizationInfo, FORM_SUBMIT_EVENT

ADDON_TITLE = "FormConnector"

NOTICE = (
    f"{ADDON_TITLE} is meant for connecting your form with the {ADDON_TITLE} application. "
    f"The {ADDON_TITLE} application allows you to create awesome reports based on the data "
    "you receive from Google Forms. That is why it is called Forms on Steroids!"
)

RESPONDER_FUNCTION = "respondToFormSubmit"

GOOGLE_SCOPES = [
    'https://www.googleapis.com/auth/userinfo.email',
    'https://www.googleapis.com/auth/forms.body.readonly',
    'https://www.googleapis.com/auth/forms.responses.readonly',
    'https://www.googleapis.com/auth/drive.file',
    'https://www.googleapis.com/auth/drive.scripts',
    'https://www.googleapis.com/auth/script.projects',
    'https://www.googleapis.com/auth/script.scriptapp',
    'https://www.googleapis.com/auth/script.send_mail',
    'https://www.googleapis.com/auth/script.external_request',
]

# Form -> bound script ID
script_id_cache: dict[str, str] = {}


class HostApiError(Exception):
    """An Apps Script or Google API call failed."""

    def __init__(self, function: str, message: str, error_type: str = "UNKNOWN"):
        super().__init__(f"{function}: {message}")
        self.function = function
        self.message = message
        self.error_type = error_type


def execute_request(request, name: str) -> dict:
    """Execute a Google API request, raising HostApiError on HTTP failures"""
    try:
        return request.execute()
    except HttpError as e:
        print(f"❌ Google API call {name} failed: {e}")
        raise HostApiError(name, str(e)) from e

# =============================================================================
# Credentials & Script Discovery
# =============================================================================

def get_google_credentials():
    """Load Google credentials from environment"""

    service_account_json = os.getenv('GOOGLE_SERVICE_ACCOUNT_JSON')
    if service_account_json:
        info = json.loads(service_account_json)
        return service_account.Credentials.from_service_account_info(info, scopes=GOOGLE_SCOPES)

    service_account_file = os.getenv('GOOGLE_SERVICE_ACCOUNT_FILE')
    if service_account_file and os.path.exists(service_account_file):
        return service_account.Credentials.from_service_account_file(
            service_account_file,
            scopes=GOOGLE_SCOPES
        )

    raise HTTPException(
        status_code=500,
        detail="No Google credentials configured. Set GOOGLE_SERVICE_ACCOUNT_JSON"
    )


def get_script_id_for_form(form_id: str, drive) -> str:
    """Get the Apps Script ID bound to a form"""

    if form_id in script_id_cache:
        return script_id_cache[form_id]

    files = execute_request(drive.files().list(
        q=f"mimeType='application/vnd.google-apps.script' and '{form_id}' in parents",
        fields='files(id, name)'
    ), 'drive.files.list')

    if files.get('files'):
        script_id = files['files'][0]['id']
        script_id_cache[form_id] = script_id
        return script_id

    raise HTTPException(
        status_code=404,
        detail=f"No Apps Script found for form: {form_id}"
    )


def get_or_create_bound_script(drive, script, form_id: str) -> str:
    """Get existing or create new bound script project"""

    files = execute_request(drive.files().list(
        q=f"mimeType='application/vnd.google-apps.script' and '{form_id}' in parents",
        fields='files(id)'
    ), 'drive.files.list')

    if files.get('files'):
        return files['files'][0]['id']

    response = execute_request(script.projects().create(
        body={
            'title': f'{ADDON_TITLE} Companion',
            'parentId': form_id
        }
    ), 'projects.create')

    return response['scriptId']

# =============================================================================
# Host Adapter
# =============================================================================

class AppsScriptHost:
    """Trigger registry, authorization and mail services of one bound script."""

    def __init__(self, service, script_id: str):
        self.service = service
        self.script_id = script_id

    @classmethod
    def for_form(cls, form_id: str, credentials) -> "AppsScriptHost":
        drive = build('drive', 'v3', credentials=credentials)
        service = build('script', 'v1', credentials=credentials)
        return cls(service, get_script_id_for_form(form_id, drive))

    def run(self, function_name: str, *parameters):
        response = execute_request(self.service.scripts().run(
            scriptId=self.script_id,
            body={
                'function': function_name,
                'parameters': list(parameters)
            }
        ), function_name)

        if 'error' in response:
            error_details = response['error'].get('details', [{}])[0]
            raise HostApiError(
                function_name,
                error_details.get('errorMessage', str(response['error'])),
                error_details.get('errorType', 'UNKNOWN')
            )

        return response.get('response', {}).get('result')

    # --- Trigger registry ---

    def list_triggers(self) -> list[Trigger]:
        return [Trigger(**t) for t in (self.run('listFormTriggers') or [])]

    def create_submission_trigger(self, handler: str = RESPONDER_FUNCTION) -> Trigger:
        result = self.run('createFormSubmitTrigger', handler)
        return Trigger(
            triggerId=(result or {}).get('triggerId'),
            eventType=FORM_SUBMIT_EVENT,
            handlerFunction=handler
        )

    def delete_trigger(self, trigger: Trigger) -> None:
        self.run('deleteTriggerById', trigger.triggerId)

    # --- Authorization ---

    def get_authorization_info(self) -> AuthorizationInfo:
        return AuthorizationInfo(**(self.run('getAuthorizationStatus') or {}))

    # --- Mail ---

    def get_remaining_daily_quota(self) -> int:
        return int(self.run('getRemainingDailyQuota') or 0)

    def get_effective_user_email(self) -> Optional[str]:
        return self.run('getEffectiveUserEmail')

    def send_email(self, to: str, subject: str, body: str, name: str, html_body: Optional[str] = None) -> None:
        self.run('sendConnectorEmail', to, subject, body, {'name': name, 'htmlBody': html_body or body})
        print(f"📧 Sent '{subject}' to {to}")

# =============================================================================
# Companion Script Injection
# =============================================================================

def install_companion_script(script, script_id: str, service_url: str):
    """Inject the companion script into the project and point it at this service"""

    # A failed read must not fall through to updateContent, which replaces every file
    content = execute_request(script.projects().getContent(scriptId=script_id), 'projects.getContent')
    existing_files = content.get('files', [])

    companion_file = {
        'name': 'formconnector',
        'type': 'SERVER_JS',
        'source': get_companion_script_content()
    }

    companion_index = next(
        (i for i, f in enumerate(existing_files) if f['name'] == 'formconnector'), None
    )

    if companion_index is not None:
        existing_files[companion_index] = companion_file
    else:
        existing_files.append(companion_file)

    manifest_index = next((i for i, f in enumerate(existing_files) if f['name'] == 'appsscript'), None)
    if manifest_index is None:
        existing_files.append({
            'name': 'appsscript',
            'type': 'JSON',
            'source': json.dumps({
                'timeZone': 'Etc/UTC',
                'dependencies': {},
                'exceptionLogging': 'STACKDRIVER',
                'runtimeVersion': 'V8',
                'executionApi': {'access': 'MYSELF'}
            })
        })
    else:
        # scripts.run only reaches projects whose manifest enables the Execution API
        manifest = json.loads(existing_files[manifest_index].get('source') or '{}')
        if 'executionApi' not in manifest:
            manifest['executionApi'] = {'access': 'MYSELF'}
            existing_files[manifest_index] = {
                **existing_files[manifest_index],
                'source': json.dumps(manifest)
            }

    execute_request(script.projects().updateContent(
        scriptId=script_id,
        body={'files': existing_files}
    ), 'projects.updateContent')

    host = AppsScriptHost(script, script_id)
    return host.run('initializeConnector', service_url)


def get_companion_script_content() -> str:
    """Return the companion script source for injection"""

    gs_path = os.getenv('CONNECTOR_GS_PATH', 'formconnector.gs')
    if os.path.exists(gs_path):
        with open(gs_path, 'r') as f:
            return f.read()

    return '''
/**
 * @OnlyCurrentDoc
 */
var ADDON_TITLE = '%(title)s';
var NOTICE = '%(notice)s';
var SERVICE_URL_KEY = 'FORM_CONNECTOR_URL';

function onOpen(e) {
  FormApp.getUi()
    .createAddonMenu()
    .addItem('About', 'showAbout')
    .addToUi();
}

function onInstall(e) {
  onOpen(e);
}

function showAbout() {
  FormApp.getUi().alert('About ' + ADDON_TITLE, NOTICE, FormApp.getUi().ButtonSet.OK);
}

function initializeConnector(serviceUrl) {
  PropertiesService.getDocumentProperties().setProperty(SERVICE_URL_KEY, serviceUrl);
  return { success: true, formId: FormApp.getActiveForm().getId() };
}

function listFormTriggers() {
  return ScriptApp.getUserTriggers(FormApp.getActiveForm()).map(function (t) {
    return {
      triggerId: t.getUniqueId(),
      eventType: String(t.getEventType()),
      handlerFunction: t.getHandlerFunction()
    };
  });
}

function createFormSubmitTrigger(handler) {
  var trigger = ScriptApp.newTrigger(handler)
    .forForm(FormApp.getActiveForm())
    .onFormSubmit()
    .create();
  return { triggerId: trigger.getUniqueId() };
}

function deleteTriggerById(triggerId) {
  var triggers = ScriptApp.getUserTriggers(FormApp.getActiveForm());
  for (var i = 0; i < triggers.length; i++) {
    if (triggers[i].getUniqueId() === triggerId) {
      ScriptApp.deleteTrigger(triggers[i]);
      return { deleted: true };
    }
  }
  return { deleted: false };
}

function getAuthorizationStatus() {
  var info = ScriptApp.getAuthorizationInfo(ScriptApp.AuthMode.FULL);
  return {
    status: String(info.getAuthorizationStatus()),
    authorizationUrl: info.getAuthorizationUrl()
  };
}

function getRemainingDailyQuota() {
  return MailApp.getRemainingDailyQuota();
}

function getEffectiveUserEmail() {
  return Session.getEffectiveUser().getEmail();
}

function sendConnectorEmail(to, subject, body, options) {
  MailApp.sendEmail(to, subject, body, options);
  return { sent: true };
}

function respondToFormSubmit(e) {
  var serviceUrl = PropertiesService.getDocumentProperties().getProperty(SERVICE_URL_KEY);
  if (!serviceUrl) return;
  UrlFetchApp.fetch(serviceUrl + '/form-sync/form-submit', {
    method: 'POST',
    contentType: 'application/json',
    payload: JSON.stringify({
      formId: FormApp.getActiveForm().getId(),
      responseId: e.response.getId()
    })
  });
}
''' % {'title': ADDON_TITLE, 'notice': NOTICE.replace("'", "\\'")}
