"""
Export Transformer

Flattens a form's full response history into the bundle the reporting
application ingests: one record per answered item per response, plus a
per-question scaffold its charts are built from.
"""

from form_models import (
    Form,
    DbResponse,
    ScaffoldEntry,
    FormExportBundle,
    GRID_ITEM_TYPES,
)


def flatten(form: Form) -> FormExportBundle:
    """
    Build a fresh FormExportBundle from every response recorded on the form.

    Records keep the host's response order, then item order within each
    response. Scaffold entries are keyed by item id and rebuilt on every
    answer, so the last answer seen for an item wins.
    """
    db_responses = []
    scaffold = {}

    for response in form.responses:
        for item_response in response.itemResponses:
            item = item_response.item
            record = DbResponse(
                formId=form.formId,
                responseId=response.responseId,
                emailId=response.respondentEmail,
                title=item.title,
                type=item.type,
                value=item_response.value,
                itemId=item.itemId,
            )

            entry = ScaffoldEntry(title=record.title)
            if record.type in GRID_ITEM_TYPES:
                entry.labels = list(item.rows)
            scaffold[record.itemId] = entry

            db_responses.append(record)

    return FormExportBundle(
        formId=form.formId,
        title=form.title,
        description=form.description,
        dbResponses=db_responses,
        fbResponseScaffold=scaffold,
    )
