"""
Form Connector Models

Host-neutral shapes for forms, responses, triggers and the export bundle.
Field names are camelCase because they travel as-is to the Apps Script side
and to the reporting application.
"""

from pydantic import BaseModel, Field
from typing import Optional, Any

# =============================================================================
# Item Types
# =============================================================================

GRID = "GRID"
CHECKBOX_GRID = "CHECKBOX_GRID"
GRID_ITEM_TYPES = (GRID, CHECKBOX_GRID)

FORM_SUBMIT_EVENT = "ON_FORM_SUBMIT"
AUTHORIZATION_REQUIRED = "REQUIRED"
AUTHORIZATION_NOT_REQUIRED = "NOT_REQUIRED"

# =============================================================================
# Form Structure
# =============================================================================

class FormItem(BaseModel):
    itemId: str
    title: str = ""
    type: str
    rows: list[str] = []
    questionIds: list[str] = []


class ItemResponse(BaseModel):
    item: FormItem
    value: Any = None


class FormResponse(BaseModel):
    responseId: str
    respondentEmail: Optional[str] = None
    createTime: Optional[str] = None
    itemResponses: list[ItemResponse] = []

    def response_for_item(self, item_id: str) -> Optional[ItemResponse]:
        for item_response in self.itemResponses:
            if item_response.item.itemId == item_id:
                return item_response
        return None


class Form(BaseModel):
    formId: str
    title: str = ""
    description: str = ""
    items: list[FormItem] = []
    responses: list[FormResponse] = []

    @property
    def edit_url(self) -> str:
        return f"https://docs.google.com/forms/d/{self.formId}/edit"

    @property
    def summary_url(self) -> str:
        return f"https://docs.google.com/forms/d/{self.formId}/viewanalytics"

# =============================================================================
# Host State
# =============================================================================

class Trigger(BaseModel):
    triggerId: Optional[str] = None
    eventType: str
    handlerFunction: str = ""


class AuthorizationInfo(BaseModel):
    status: str = AUTHORIZATION_NOT_REQUIRED
    authorizationUrl: Optional[str] = None

    @property
    def required(self) -> bool:
        return self.status == AUTHORIZATION_REQUIRED

# =============================================================================
# Export Bundle
# =============================================================================

class DbResponse(BaseModel):
    formId: str
    responseId: str
    emailId: Optional[str] = None
    title: str
    type: str
    value: Any = None
    itemId: str


class ScaffoldEntry(BaseModel):
    """Chart-ready placeholder filled in by the reporting application."""
    title: str
    labels: list[str] = []
    graphType: str = ""
    availableGraphType: list[str] = []
    data: list[Any] = []


class FormExportBundle(BaseModel):
    formId: str
    title: str = ""
    description: str = ""
    dbResponses: list[DbResponse] = []
    fbResponseScaffold: dict[str, ScaffoldEntry] = Field(default_factory=dict)

# =============================================================================
# Inbound Messages
# =============================================================================

class SubmissionEvent(BaseModel):
    formId: str
    responseId: str


class SettingUpdate(BaseModel):
    property: str
    value: str


class InstallRequest(BaseModel):
    service_url: str
