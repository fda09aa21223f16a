"""Dataclasses describing the in-memory objects of gijiroku."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

UNKNOWN_SPEAKER = "不明"
SYSTEM_SPEAKER = "システム応答"
SPEAKER_PREFIX = "Speaker-"


def new_id() -> str:
    return uuid.uuid4().hex


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return str(value)


@dataclass(slots=True)
class Utterance:
    """One row of the transcript table."""

    id: str = field(default_factory=new_id)
    original_speaker: str = ""
    default_speaker: str = ""
    display_speaker: str = ""
    text: str = ""

    def speaker_or_unknown(self) -> str:
        return self.display_speaker or UNKNOWN_SPEAKER

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "original_speaker": self.original_speaker,
            "default_speaker": self.default_speaker,
            "display_speaker": self.display_speaker,
            "text": self.text,
        }


@dataclass(slots=True)
class ActionItem:
    """A task extracted from the conversation."""

    assignee: Optional[str]
    task: Optional[str]
    due_date: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ActionItem":
        return cls(
            assignee=_as_text(payload.get("assignee")),
            task=_as_text(payload.get("task")),
            due_date=_as_text(payload.get("dueDate") or None),
        )

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"assignee": self.assignee, "task": self.task, "dueDate": self.due_date}


@dataclass(frozen=True, slots=True)
class ModelOption:
    id: str
    name: str


AVAILABLE_MODELS: Tuple[ModelOption, ...] = (
    ModelOption("gemini-1.5-pro-latest", "Gemini 1.5 Pro (Latest)"),
    ModelOption("gemini-1.5-flash-latest", "Gemini 1.5 Flash (Latest)"),
    ModelOption("gemini-2.5-pro-exp-03-25", "Gemini 2.5 Pro (Experimental)"),
)
DEFAULT_MODEL = "gemini-2.5-pro-exp-03-25"


def model_label(model_id: str) -> str:
    for option in AVAILABLE_MODELS:
        if option.id == model_id:
            return option.name
    return model_id


@dataclass(slots=True)
class Config:
    """User configuration stored on disk."""

    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    speaker_count: Optional[int] = None
    export_format: str = "txt"
    api_timeout: float = 600.0
