"""Ordered, editable collection of transcript rows."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from .errors import ValidationError
from .models import UNKNOWN_SPEAKER, Utterance

FIELDS = ("speaker", "text")


@dataclass(slots=True)
class EditCursor:
    """The single cell currently being edited and its pending value."""

    row_id: str
    field: str
    buffer: str


def _check_field(field: str) -> None:
    if field not in FIELDS:
        raise ValidationError(f"不明なフィールドです: {field}")


class TranscriptTable:
    """Owns the utterance rows and the edit cursor.

    Row order is the only ordering signal. Row ids are never reused, so a
    cursor pointing at a deleted row can be detected on commit.
    """

    def __init__(self, rows: Optional[Iterable[Utterance]] = None) -> None:
        self._rows: List[Utterance] = list(rows or [])
        self.cursor: Optional[EditCursor] = None

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self):
        return iter(self._rows)

    @property
    def rows(self) -> List[Utterance]:
        return list(self._rows)

    def snapshot(self) -> List[Utterance]:
        return copy.deepcopy(self._rows)

    def get(self, row_id: str) -> Optional[Utterance]:
        for row in self._rows:
            if row.id == row_id:
                return row
        return None

    def index_of(self, row_id: str) -> int:
        for index, row in enumerate(self._rows):
            if row.id == row_id:
                return index
        return -1

    def replace_all(self, rows: Iterable[Utterance]) -> None:
        self._rows = list(rows)
        self.cursor = None

    def clear(self) -> None:
        self.replace_all([])

    def map_rows(self, func: Callable[[List[Utterance]], Iterable[Utterance]]) -> None:
        """Replace the rows with ``func(rows)`` keeping the cursor open."""

        self._rows = list(func(list(self._rows)))
        if self.cursor is not None and self.get(self.cursor.row_id) is None:
            self.cursor = None

    def insert_at(self, index: int, row: Optional[Utterance] = None) -> Utterance:
        if row is None:
            row = Utterance()
        if self.get(row.id) is not None:
            raise ValidationError(f"行IDが重複しています: {row.id}")
        index = max(0, min(index, len(self._rows)))
        self._rows.insert(index, row)
        return row

    def delete_by_id(self, row_id: str) -> bool:
        index = self.index_of(row_id)
        if index < 0:
            return False
        del self._rows[index]
        if self.cursor is not None and self.cursor.row_id == row_id:
            self.cursor = None
        return True

    def update_field(self, row_id: str, field: str, value: str) -> bool:
        _check_field(field)
        row = self.get(row_id)
        if row is None:
            return False
        if field == "speaker":
            row.display_speaker = value.strip() or row.default_speaker or UNKNOWN_SPEAKER
        else:
            row.text = value
        return True

    # edit cursor

    def begin_edit(self, row_id: str, field: str) -> EditCursor:
        _check_field(field)
        row = self.get(row_id)
        if row is None:
            raise ValidationError(f"行が見つかりません: {row_id}")
        current = row.display_speaker if field == "speaker" else row.text
        self.cursor = EditCursor(row_id=row_id, field=field, buffer=current)
        return self.cursor

    def set_edit_buffer(self, value: str) -> None:
        if self.cursor is None:
            raise ValidationError("編集中のセルがありません。")
        self.cursor.buffer = value

    def commit_edit(self) -> bool:
        """Write the buffer into the row; returns False when nothing was written."""

        cursor, self.cursor = self.cursor, None
        if cursor is None:
            return False
        return self.update_field(cursor.row_id, cursor.field, cursor.buffer)

    def cancel_edit(self) -> None:
        self.cursor = None
