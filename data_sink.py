"""
Reporting Data Sink

Supabase tables the reporting application reads from. The contract is full
replace: purge everything for a form, then store a freshly built bundle.
"""

from datetime import datetime

from form_models import FormExportBundle

INSERT_BATCH_SIZE = 500


class SupabaseFormDataSink:

    def __init__(
        self,
        client,
        responses_table: str = "form_responses",
        summaries_table: str = "form_summaries"
    ):
        self.client = client
        self.responses_table = responses_table
        self.summaries_table = summaries_table

    def purge(self, form_id: str) -> None:
        self.client.table(self.responses_table).delete().eq("form_id", form_id).execute()
        self.client.table(self.summaries_table).delete().eq("form_id", form_id).execute()
        print(f"🗑️ Purged stored data for form {form_id}")

    def store(self, bundle: FormExportBundle) -> int:
        rows = [
            {
                "form_id": record.formId,
                "response_id": record.responseId,
                "email_id": record.emailId,
                "title": record.title,
                "type": record.type,
                "value": record.value,
                "item_id": record.itemId,
            }
            for record in bundle.dbResponses
        ]

        for start in range(0, len(rows), INSERT_BATCH_SIZE):
            self.client.table(self.responses_table).insert(
                rows[start:start + INSERT_BATCH_SIZE]
            ).execute()

        self.client.table(self.summaries_table).upsert({
            "form_id": bundle.formId,
            "title": bundle.title,
            "description": bundle.description,
            "scaffold": {
                item_id: entry.model_dump()
                for item_id, entry in bundle.fbResponseScaffold.items()
            },
            "exported_at": datetime.utcnow().isoformat()
        }, on_conflict="form_id").execute()

        print(f"📤 Stored {len(rows)} response records for form {bundle.formId}")
        return len(rows)
