"""
Form Settings Store

Per-form key/value options kept in a Supabase table, and the typed view of
them the reconciler and responder work with. Values are stored as strings
exactly as the add-on UI sends them; they are parsed once, here.
"""

from dataclasses import dataclass
from typing import Optional, Mapping

# =============================================================================
# Setting Keys
# =============================================================================

CONNECT = "connect"
CREATOR_NOTIFY = "creatorNotify"
RESPONDENT_NOTIFY = "respondentNotify"
RESPONSE_STEP = "responseStep"
CREATOR_EMAIL = "creatorEmail"
RESPONDENT_EMAIL_ITEM_ID = "respondentEmailItemId"
RESPONSE_TEXT = "responseText"
RESPONSE_SUBJECT = "responseSubject"
LAST_AUTH_EMAIL_DATE = "lastAuthEmailDate"

DEFAULT_RESPONSE_STEP = 10


def parse_bool(value: Optional[str]) -> Optional[bool]:
    """'true' -> True, 'false' -> False, anything else -> None (unset)."""
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def parse_int(value: Optional[str], default: int) -> int:
    try:
        parsed = int(value) if value else default
    except ValueError:
        return default
    return parsed if parsed > 0 else default


@dataclass(frozen=True)
class ConnectorSettings:
    connect: Optional[bool] = None
    creator_notify: bool = False
    respondent_notify: bool = False
    response_step: int = DEFAULT_RESPONSE_STEP
    creator_email: Optional[str] = None
    respondent_email_item_id: Optional[str] = None
    response_text: str = ""
    response_subject: str = ""
    last_auth_email_date: Optional[str] = None

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> "ConnectorSettings":
        return cls(
            connect=parse_bool(properties.get(CONNECT)),
            creator_notify=parse_bool(properties.get(CREATOR_NOTIFY)) is True,
            respondent_notify=parse_bool(properties.get(RESPONDENT_NOTIFY)) is True,
            response_step=parse_int(properties.get(RESPONSE_STEP), DEFAULT_RESPONSE_STEP),
            creator_email=properties.get(CREATOR_EMAIL) or None,
            respondent_email_item_id=properties.get(RESPONDENT_EMAIL_ITEM_ID) or None,
            response_text=properties.get(RESPONSE_TEXT) or "",
            response_subject=properties.get(RESPONSE_SUBJECT) or "",
            last_auth_email_date=properties.get(LAST_AUTH_EMAIL_DATE) or None,
        )

    @property
    def creator_addresses(self) -> list[str]:
        if not self.creator_email:
            return []
        return [a.strip() for a in self.creator_email.split(",") if a.strip()]

# =============================================================================
# Supabase Store
# =============================================================================

class SettingsStore:
    """Document-scoped properties for one or more forms."""

    def __init__(self, client, table: str = "form_settings"):
        self.client = client
        self.table = table

    def get_settings(self, form_id: str) -> dict[str, str]:
        result = self.client.table(self.table).select("key, value").eq("form_id", form_id).execute()
        return {row["key"]: row["value"] for row in (result.data or [])}

    def load(self, form_id: str) -> ConnectorSettings:
        return ConnectorSettings.from_properties(self.get_settings(form_id))

    def set_option(self, form_id: str, key: str, value: str) -> None:
        self.client.table(self.table).upsert(
            {"form_id": form_id, "key": key, "value": value},
            on_conflict="form_id,key"
        ).execute()
        print(f"💾 Saved {key}={value!r} for form {form_id}")
