"""Default speaker groups and the pending bulk-rename map."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import ValidationError
from .models import Utterance

RenameMap = Dict[str, str]


def editable_speakers(rows: Iterable[Utterance]) -> List[str]:
    """Distinct non-empty default speakers, sorted for display."""

    return sorted({row.default_speaker for row in rows if row.default_speaker})


def derive_rename_map(rows: Iterable[Utterance], previous: Optional[Mapping[str, str]] = None) -> RenameMap:
    """Recompute the rename map for the current rows.

    Keys follow the rows' default speakers; pending values of keys that are
    still present survive, new keys start empty and stale keys are dropped.
    """

    previous = previous or {}
    return {speaker: previous.get(speaker, "") for speaker in editable_speakers(rows)}


def set_pending_rename(renames: Mapping[str, str], default_speaker: str, new_name: str) -> RenameMap:
    if default_speaker not in renames:
        raise ValidationError(f"不明な話者です: {default_speaker}")
    updated = dict(renames)
    updated[default_speaker] = new_name
    return updated


def apply_renames(rows: Iterable[Utterance], renames: Mapping[str, str]) -> List[Utterance]:
    result = []
    for row in rows:
        new_name = (renames.get(row.default_speaker) or "").strip() if row.default_speaker else ""
        result.append(replace(row, display_speaker=new_name) if new_name else row)
    return result
