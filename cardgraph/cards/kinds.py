"""Concrete card model kinds."""

from __future__ import annotations

from collections import Counter
from typing import Any, ClassVar

from .model import CardModel
from .payload import CardPayload, ChoiceItem, ChoicePayload, LinkPayload, TextPayload


class TextModel(CardModel):
    MIME_TYPE: ClassVar[str] = "application/vnd.layer.card.text+json"
    LABEL: ClassVar[str] = "Text"
    PAYLOAD: ClassVar[type[CardPayload]] = TextPayload
    BODY_FIELDS: ClassVar[tuple[str, ...]] = ("title", "subtitle", "text", "author")

    title: str
    subtitle: str
    text: str
    author: str

    def get_description(self) -> str:
        return self.subtitle

    def get_footer(self) -> str:
        return self.author

    def get_one_line_summary(self) -> str:
        return self.title or self.text or self.LABEL


class LinkModel(CardModel):
    MIME_TYPE: ClassVar[str] = "application/vnd.layer.card.link+json"
    LABEL: ClassVar[str] = "Link"
    DEFAULT_ACTION: ClassVar[str] = "open-url"
    PAYLOAD: ClassVar[type[CardPayload]] = LinkPayload
    BODY_FIELDS: ClassVar[tuple[str, ...]] = ("url", "title", "description", "image_url")

    url: str
    title: str
    description: str
    image_url: str

    @property
    def action_data(self) -> dict[str, Any]:
        return {"url": self.url, **self.action.data}

    def get_description(self) -> str:
        return self.description

    def get_footer(self) -> str:
        return self.url


class ChoiceModel(CardModel):
    """A question with a fixed set of answers.

    Participants' answers arrive in a ``response_summary`` child part as
    ``{"participant_data": {identity_id: {"selection": choice_id}}}``.
    """

    MIME_TYPE: ClassVar[str] = "application/vnd.layer.card.choice+json"
    LABEL: ClassVar[str] = "Choice"
    PAYLOAD: ClassVar[type[CardPayload]] = ChoicePayload
    BODY_FIELDS: ClassVar[tuple[str, ...]] = ("label", "choices", "allow_reselect")

    label: str
    choices: list[ChoiceItem]
    allow_reselect: bool

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.selections: dict[str, str] = {}
        super().__init__(*args, **kwargs)

    def _process_new_responses(self) -> None:
        participants = (self.responses or {}).get("participantData") or {}
        self.selections = {
            identity_id: data["selection"]
            for identity_id, data in participants.items()
            if isinstance(data, dict) and data.get("selection")
        }

    def get_selection(self, identity_id: str) -> str | None:
        return self.selections.get(identity_id)

    def get_choice(self, choice_id: str) -> ChoiceItem | None:
        return next((c for c in self.choices if c.id == choice_id), None)

    def selection_counts(self) -> dict[str, int]:
        counts = Counter(self.selections.values())
        return {choice.id: counts.get(choice.id, 0) for choice in self.choices}

    def get_title(self) -> str:
        return self.label


DEFAULT_MODEL_TYPES: tuple[type[CardModel], ...] = (TextModel, LinkModel, ChoiceModel)
