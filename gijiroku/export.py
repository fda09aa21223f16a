"""Download formats for transcripts and summaries."""

from __future__ import annotations

import csv
import io
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

from .models import Utterance

CSV_HEADER = ("話者", "発言内容")
BOM = "\ufeff"
FORMATS = {
    "csv": "text/csv;charset=utf-8",
    "md": "text/markdown;charset=utf-8",
    "txt": "text/plain;charset=utf-8",
}


def to_csv(rows: Iterable[Utterance]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow((row.speaker_or_unknown(), row.text))
    # no trailing newline after the last record
    return BOM + buffer.getvalue()[: -len("\r\n")]


def to_markdown(rows: Iterable[Utterance]) -> str:
    return "\n\n".join(f"**{row.speaker_or_unknown()}:** {row.text}" for row in rows)


def to_text(rows: Iterable[Utterance]) -> str:
    return "\n\n".join(f"{row.speaker_or_unknown()}: {row.text}" for row in rows)


def render(rows: Iterable[Utterance], fmt: str) -> str:
    if fmt == "csv":
        return to_csv(rows)
    if fmt == "md":
        return to_markdown(rows)
    if fmt == "txt":
        return to_text(rows)
    raise ValueError(f"Unsupported export format: {fmt}")


def export_filename(kind: str, ext: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{kind}_{now:%Y%m%d_%H%M%S}.{ext}"


def write_export(path: Union[str, Path], content: str) -> Path:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(content, encoding="utf-8", newline="")
    return destination
