"""Card models -- typed views over message part trees."""

from .kinds import DEFAULT_MODEL_TYPES, ChoiceModel, LinkModel, TextModel
from .model import MODEL_PREFIX, CardModel, ModelState, model_id_for_part
from .payload import (
    RESPONSE_SUMMARY_ROLE,
    ActionSpec,
    CardPayload,
    ChoiceItem,
    ChoicePayload,
    LinkPayload,
    TextPayload,
    decode_payload,
)

__all__ = [
    "ActionSpec",
    "CardModel",
    "CardPayload",
    "ChoiceItem",
    "ChoiceModel",
    "ChoicePayload",
    "DEFAULT_MODEL_TYPES",
    "LinkModel",
    "LinkPayload",
    "MODEL_PREFIX",
    "ModelState",
    "RESPONSE_SUMMARY_ROLE",
    "TextModel",
    "TextPayload",
    "decode_payload",
    "model_id_for_part",
]
