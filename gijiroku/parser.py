"""Turn the line oriented transcription response into utterance rows."""

from __future__ import annotations

import logging
import re
import string
from typing import Dict, List

from .models import SPEAKER_PREFIX, SYSTEM_SPEAKER, UNKNOWN_SPEAKER, Utterance

logger = logging.getLogger(__name__)

_LINE_RE = re.compile(r"^(.+?):\s*(.*)$")


def speaker_label(index: int) -> str:
    """Return the generated label for the ``index``-th distinct speaker.

    Letters count in bijective base 26, so index 25 is ``Speaker-Z`` and
    index 26 is ``Speaker-AA``.
    """

    if index < 0:
        raise ValueError("index must not be negative")
    letters = ""
    n = index + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = string.ascii_uppercase[rem] + letters
    return SPEAKER_PREFIX + letters


def parse_transcription(raw_text: str) -> List[Utterance]:
    """Parse ``raw_text`` into utterances.

    Each non-blank line becomes one row. Lines of the form ``<label>: <content>``
    are attributed to ``<label>``; anything else is kept whole under the
    unknown speaker. Parsing never fails.
    """

    stripped = raw_text.strip()
    speakers: Dict[str, str] = {}
    rows: List[Utterance] = []

    for line in stripped.split("\n"):
        line = line.strip()
        if not line:
            continue

        original = UNKNOWN_SPEAKER
        content = line
        match = _LINE_RE.match(line)
        if match and match.group(1) and match.group(2):
            original = match.group(1).strip()
            content = match.group(2).strip()
        else:
            logger.warning("Could not parse speaker from line: %s", line)

        default = speakers.get(original)
        if default is None:
            default = speaker_label(len(speakers))
            speakers[original] = default

        rows.append(
            Utterance(
                original_speaker=original,
                default_speaker=default,
                display_speaker=default,
                text=content,
            )
        )

    if not rows and stripped:
        logger.warning("Could not parse the response into lines. Keeping raw text.")
        default = speaker_label(len(speakers))
        rows.append(
            Utterance(
                original_speaker=SYSTEM_SPEAKER,
                default_speaker=default,
                display_speaker=default,
                text=stripped,
            )
        )
    return rows
