"""In-memory state of one transcription session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .enrichment import (
    ActionItemsRequester,
    EnrichmentSlot,
    KeywordsRequester,
    SlotStatus,
    SummaryRequester,
)
from .errors import ValidationError, classify_api_error
from .models import DEFAULT_MODEL, ActionItem, Utterance
from .parser import parse_transcription
from .prompts import transcription_prompt
from .speakers import RenameMap, apply_renames, derive_rename_map, set_pending_rename
from .transcriber import BackendFactory, get_backend
from .transcript import EditCursor, TranscriptTable

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "APIキー、モデル、音声ファイルを選択してください。"
NOT_AUDIO_MESSAGE = "音声ファイルを選択してください。"


@dataclass(frozen=True, slots=True)
class AudioSource:
    data: bytes
    mime_type: str
    filename: Optional[str] = None


def parse_speaker_count(value: Union[str, int, None]) -> Optional[int]:
    """Validate the optional speaker count hint; blank clears it."""

    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("話者数は1以上の整数で指定してください。")
    if isinstance(value, int):
        if value < 1:
            raise ValidationError("話者数は1以上の整数で指定してください。")
        return value
    text = value.strip()
    if not text:
        return None
    if not text.isdigit() or text.startswith("0") or not text.isascii():
        raise ValidationError("話者数は1以上の整数で指定してください。")
    return int(text)


class TranscriptionSession:
    """Everything a user works on between loading an audio file and exporting.

    The session owns the transcript table and re-derives the rename map after
    each table mutation. The transcription slot and the three enrichment slots
    run independently of one another.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        speaker_count: Union[str, int, None] = None,
        backend_factory: BackendFactory = get_backend,
    ) -> None:
        self.api_key = api_key or None
        self.model = model
        self.speaker_count = parse_speaker_count(speaker_count)
        self.audio: Optional[AudioSource] = None
        self.table = TranscriptTable()
        self.renames: RenameMap = {}
        self.transcription: EnrichmentSlot[int] = EnrichmentSlot()
        self.progress = ""
        self._backend_factory = backend_factory
        self.summary = SummaryRequester(backend_factory)
        self.keywords = KeywordsRequester(backend_factory)
        self.action_items = ActionItemsRequester(backend_factory)

    # settings

    def set_api_key(self, api_key: Optional[str]) -> None:
        self.api_key = (api_key or "").strip() or None

    def set_model(self, model: str) -> None:
        if not model or not model.strip():
            raise ValidationError("モデルを選択してください。")
        self.model = model.strip()

    def set_speaker_count(self, value: Union[str, int, None]) -> None:
        self.speaker_count = parse_speaker_count(value)

    @property
    def busy(self) -> bool:
        return any(
            slot.running
            for slot in (
                self.transcription,
                self.summary.slot,
                self.keywords.slot,
                self.action_items.slot,
            )
        )

    # audio

    def set_audio(self, data: bytes, mime_type: str, filename: Optional[str] = None) -> AudioSource:
        if not mime_type or not mime_type.startswith("audio/"):
            self.audio = None
            raise ValidationError(NOT_AUDIO_MESSAGE, detail=f"mime type: {mime_type!r}")
        if not data:
            self.audio = None
            raise ValidationError("ファイルの読み込みに失敗しました。")
        self.audio = AudioSource(data=data, mime_type=mime_type, filename=filename)
        self._reset_results()
        logger.info("Loaded audio %s (%s, %d bytes)", filename or "<memory>", mime_type, len(data))
        return self.audio

    def clear_audio(self) -> None:
        self.audio = None
        self.speaker_count = None
        self._reset_results()

    def _reset_results(self) -> None:
        self.table.clear()
        self.renames = {}
        self.transcription = EnrichmentSlot()
        self.progress = ""
        self.summary.reset()
        self.keywords.reset()
        self.action_items.reset()

    def _report(self, message: str) -> None:
        self.progress = message
        logger.info(message)

    async def transcribe(self) -> bool:
        """Transcribe the loaded audio into the table; returns success."""

        if not self.api_key or self.audio is None or not self.model:
            self.transcription = EnrichmentSlot(
                status=SlotStatus.FAILED, error=ValidationError(MISSING_INPUT_MESSAGE)
            )
            return False

        audio, model = self.audio, self.model
        self._reset_results()
        self.transcription = EnrichmentSlot(status=SlotStatus.RUNNING)
        slot = self.transcription
        self._report("処理を開始します...")
        try:
            self._report("APIクライアントを初期化中...")
            backend = self._backend_factory(self.api_key)
            prompt = transcription_prompt(self.speaker_count)
            self._report(f"Gemini API ({model}) にリクエスト送信中...")
            text = await backend.transcribe(audio.data, audio.mime_type, prompt, model)
            self._report("APIからの応答を受信しました")
            logger.debug("Raw transcription response: %s", text)
            self._report("応答を解析中...")
            rows = parse_transcription(text)
        except Exception as exc:
            logger.error("Transcription failed: %s", exc)
            slot.status = SlotStatus.FAILED
            slot.error = classify_api_error(exc, model)
            self.table.clear()
            self._sync_renames()
            self._report("エラーが発生しました")
            return False

        self.table.replace_all(rows)
        self._sync_renames()
        slot.status = SlotStatus.SUCCEEDED
        slot.result = len(rows)
        self._report("完了")
        return True

    # table

    @property
    def rows(self) -> List[Utterance]:
        return self.table.rows

    def _sync_renames(self) -> None:
        self.renames = derive_rename_map(self.table, self.renames)

    def insert_row(self, index: int) -> Utterance:
        row = self.table.insert_at(index)
        self._sync_renames()
        return row

    def delete_row(self, row_id: str) -> bool:
        deleted = self.table.delete_by_id(row_id)
        self._sync_renames()
        return deleted

    def update_field(self, row_id: str, field: str, value: str) -> bool:
        updated = self.table.update_field(row_id, field, value)
        self._sync_renames()
        return updated

    def begin_edit(self, row_id: str, field: str) -> Optional[EditCursor]:
        if self.busy:
            return None
        return self.table.begin_edit(row_id, field)

    def set_edit_buffer(self, value: str) -> None:
        self.table.set_edit_buffer(value)

    def commit_edit(self) -> bool:
        committed = self.table.commit_edit()
        self._sync_renames()
        return committed

    def cancel_edit(self) -> None:
        self.table.cancel_edit()

    # speakers

    def set_pending_rename(self, default_speaker: str, new_name: str) -> None:
        self.renames = set_pending_rename(self.renames, default_speaker, new_name)

    def apply_renames(self) -> None:
        renames = dict(self.renames)
        self.table.map_rows(lambda rows: apply_renames(rows, renames))
        self._sync_renames()

    def rename_speakers(self, names: Dict[str, str]) -> None:
        for default_speaker, new_name in names.items():
            self.set_pending_rename(default_speaker, new_name)
        self.apply_renames()

    # enrichment

    async def summarize(self) -> EnrichmentSlot[str]:
        return await self.summary.run(self.table.snapshot(), self.api_key, self.model)

    async def extract_keywords(self) -> EnrichmentSlot[List[str]]:
        return await self.keywords.run(self.table.snapshot(), self.api_key, self.model)

    async def extract_action_items(self) -> EnrichmentSlot[List[ActionItem]]:
        return await self.action_items.run(self.table.snapshot(), self.api_key, self.model)
