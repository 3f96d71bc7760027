"""Typed field tables for card payloads.

Each card kind declares a pydantic model listing the payload keys it
understands together with their defaults.  Unknown top-level keys are kept
as extras so newer servers can add fields without breaking older clients.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ParseFailure
from ..util.result import Result

RESPONSE_SUMMARY_ROLE = "response_summary"


class ActionSpec(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str | None = Field(default=None, description="Action name, e.g. open-url.")
    data: dict[str, Any] = Field(default_factory=dict, description="Arguments for the action.")

    @property
    def is_empty(self) -> bool:
        return not self.event and not self.data


class CardPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    action: ActionSpec = Field(default_factory=ActionSpec, description="Action triggered on selection.")
    purpose: str = Field(default="", description="Purpose string for integration services.")
    custom_data: dict[str, Any] = Field(default_factory=dict, description="Opaque app-specific data.")


class TextPayload(CardPayload):
    title: str = ""
    subtitle: str = ""
    text: str = ""
    author: str = ""


class LinkPayload(CardPayload):
    url: str = ""
    title: str = ""
    description: str = ""
    image_url: str = ""


class ChoiceItem(BaseModel):
    id: str
    text: str = ""


class ChoicePayload(CardPayload):
    label: str = ""
    choices: list[ChoiceItem] = Field(default_factory=list)
    allow_reselect: bool = False


def decode_payload(body: str | None, *, part_id: str | None = None) -> Result:
    """JSON-decode a part body into a dict; an absent body decodes to ``{}``."""
    if body is None or body == "":
        return Result.ok(value={})
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        return Result.fail(
            f"Invalid JSON in {part_id or 'part'}: {exc}",
            error=ParseFailure(f"Invalid JSON: {exc}", part_id=part_id),
        )
    if not isinstance(data, dict):
        return Result.fail(
            f"Payload of {part_id or 'part'} is not a JSON object",
            error=ParseFailure("Payload must be a JSON object", part_id=part_id),
        )
    return Result.ok(value=data)
