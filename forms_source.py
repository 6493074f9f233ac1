"""
Google Forms Source

Reads form structure and responses through the Forms API and converts them
into the host-neutral models. Item types and answer values follow the shapes
Apps Script's FormApp hands out, so the export bundle looks the same whichever
side produced it.
"""

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from typing import Optional, Any

from form_models import Form, FormItem, FormResponse, ItemResponse, GRID, CHECKBOX_GRID
from apps_script_host import HostApiError

CHOICE_TYPES = {
    "RADIO": "MULTIPLE_CHOICE",
    "CHECKBOX": "CHECKBOX",
    "DROP_DOWN": "LIST",
}


def item_type_for_question(question: dict) -> Optional[str]:
    if "textQuestion" in question:
        return "PARAGRAPH_TEXT" if question["textQuestion"].get("paragraph") else "TEXT"
    if "choiceQuestion" in question:
        return CHOICE_TYPES.get(question["choiceQuestion"].get("type"), "MULTIPLE_CHOICE")
    if "scaleQuestion" in question:
        return "SCALE"
    if "dateQuestion" in question:
        return "DATETIME" if question["dateQuestion"].get("includeTime") else "DATE"
    if "timeQuestion" in question:
        return "DURATION" if question["timeQuestion"].get("duration") else "TIME"
    if "fileUploadQuestion" in question:
        return "FILE_UPLOAD"
    if "ratingQuestion" in question:
        return "RATING"
    return None


def item_from_api(raw: dict) -> Optional[FormItem]:
    """Convert a Forms API item. Non-question items (page breaks, images) give None."""
    if "questionItem" in raw:
        question = raw["questionItem"].get("question", {})
        item_type = item_type_for_question(question)
        if item_type is None:
            return None
        return FormItem(
            itemId=raw["itemId"],
            title=raw.get("title", ""),
            type=item_type,
            questionIds=[question["questionId"]],
        )

    if "questionGroupItem" in raw:
        group = raw["questionGroupItem"]
        if "grid" not in group:
            return None
        columns = group["grid"].get("columns", {})
        questions = group.get("questions", [])
        return FormItem(
            itemId=raw["itemId"],
            title=raw.get("title", ""),
            type=CHECKBOX_GRID if columns.get("type") == "CHECKBOX" else GRID,
            rows=[q.get("rowQuestion", {}).get("title", "") for q in questions],
            questionIds=[q["questionId"] for q in questions],
        )

    return None


def _answer_values(answer: Optional[dict]) -> list[str]:
    if not answer:
        return []
    if "fileUploadAnswers" in answer:
        return [a["fileId"] for a in answer["fileUploadAnswers"].get("answers", [])]
    return [a.get("value", "") for a in answer.get("textAnswers", {}).get("answers", [])]


def answer_value(item: FormItem, answers: dict) -> Any:
    """FormApp-shaped value of one item, or None when it was not answered."""
    if not any(qid in answers for qid in item.questionIds):
        return None

    if item.type == GRID:
        return [(_answer_values(answers.get(qid)) or [None])[0] for qid in item.questionIds]
    if item.type == CHECKBOX_GRID:
        return [_answer_values(answers.get(qid)) or None for qid in item.questionIds]

    values = _answer_values(answers.get(item.questionIds[0]))
    if item.type in ("CHECKBOX", "FILE_UPLOAD"):
        return values
    return values[0] if values else None


def response_from_api(raw: dict, items: list[FormItem]) -> FormResponse:
    answers = raw.get("answers", {})
    item_responses = []
    for item in items:
        value = answer_value(item, answers)
        if value is not None:
            item_responses.append(ItemResponse(item=item, value=value))

    return FormResponse(
        responseId=raw["responseId"],
        respondentEmail=raw.get("respondentEmail"),
        createTime=raw.get("createTime"),
        itemResponses=item_responses,
    )


class GoogleFormsSource:

    def __init__(self, service):
        self.service = service

    @classmethod
    def from_credentials(cls, credentials) -> "GoogleFormsSource":
        return cls(build('forms', 'v1', credentials=credentials))

    def _execute(self, request, name: str) -> dict:
        try:
            return request.execute()
        except HttpError as e:
            print(f"❌ Forms API call {name} failed: {e}")
            raise HostApiError(name, str(e)) from e

    def _items(self, raw_form: dict) -> list[FormItem]:
        items = (item_from_api(raw) for raw in raw_form.get("items", []))
        return [item for item in items if item is not None]

    def get_form(self, form_id: str, include_responses: bool = True) -> Form:
        raw_form = self._execute(self.service.forms().get(formId=form_id), "forms.get")
        info = raw_form.get("info", {})
        items = self._items(raw_form)

        responses = []
        if include_responses:
            raw_responses = []
            page_token = None
            while True:
                page = self._execute(
                    self.service.forms().responses().list(formId=form_id, pageToken=page_token),
                    "forms.responses.list"
                )
                raw_responses.extend(page.get("responses", []))
                page_token = page.get("nextPageToken")
                if not page_token:
                    break
            # Oldest first, the order FormApp.getResponses() returns
            raw_responses.sort(key=lambda r: (r.get("createTime", ""), r["responseId"]))
            responses = [response_from_api(r, items) for r in raw_responses]

        return Form(
            formId=form_id,
            title=info.get("title", ""),
            description=info.get("description", ""),
            items=items,
            responses=responses,
        )

    def get_response(self, form: Form, response_id: str) -> FormResponse:
        raw = self._execute(
            self.service.forms().responses().get(formId=form.formId, responseId=response_id),
            "forms.responses.get"
        )
        return response_from_api(raw, form.items)
