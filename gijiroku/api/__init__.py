"""FastAPI application exposing an interactive gijiroku session."""

from __future__ import annotations

import os
from typing import Dict, List, Optional, Union

from fastapi import (
    FastAPI,
    File,
    HTTPException,
    Response,
    UploadFile,
    status,
)
from pydantic import BaseModel, Field

from ..config import load_config, resolve_api_key
from ..enrichment import EnrichmentSlot
from ..errors import GijirokuError, ValidationError
from ..export import FORMATS, export_filename, render
from ..models import AVAILABLE_MODELS, DEFAULT_MODEL, Utterance
from ..session import TranscriptionSession
from ..speakers import editable_speakers

app = FastAPI(
    title="gijiroku API",
    description="Transcribe meetings with Gemini and edit the speaker attributed transcript.",
    version="0.1.0",
)


def _new_session() -> TranscriptionSession:
    config = load_config()
    return TranscriptionSession(
        api_key=resolve_api_key(config),
        model=os.getenv("GIJIROKU_MODEL", config.model or DEFAULT_MODEL),
        speaker_count=config.speaker_count,
    )


_session: Optional[TranscriptionSession] = None


def get_session() -> TranscriptionSession:
    global _session
    if _session is None:
        _session = _new_session()
    return _session


class HealthResponse(BaseModel):
    status: str = "ok"
    model: str
    has_api_key: bool


class ModelPayload(BaseModel):
    id: str
    name: str


class SettingsRequest(BaseModel):
    api_key: Optional[str] = None
    model: Optional[str] = None
    speaker_count: Optional[Union[int, str]] = None


class ErrorPayload(BaseModel):
    kind: str
    message: str
    detail: Optional[str] = None


class SlotPayload(BaseModel):
    status: str
    error: Optional[ErrorPayload] = None


class UtterancePayload(BaseModel):
    id: str
    original_speaker: str
    default_speaker: str
    display_speaker: str
    text: str


class AudioPayload(BaseModel):
    filename: Optional[str]
    mime_type: str
    size: int


class CursorPayload(BaseModel):
    row_id: str
    field: str
    buffer: str


class TranscriptState(BaseModel):
    rows: List[UtterancePayload]
    speakers: List[str]
    renames: Dict[str, str]
    editing: Optional[CursorPayload] = None
    transcription: SlotPayload
    progress: str
    audio: Optional[AudioPayload] = None
    speaker_count: Optional[int] = None
    model: str


class SummaryPayload(SlotPayload):
    result: Optional[str] = None


class KeywordsPayload(SlotPayload):
    result: List[str] = Field(default_factory=list)


class ActionItemPayload(BaseModel):
    assignee: Optional[str] = None
    task: Optional[str] = None
    dueDate: Optional[str] = None


class ActionItemsPayload(SlotPayload):
    result: List[ActionItemPayload] = Field(default_factory=list)


class EnrichmentState(BaseModel):
    summary: SummaryPayload
    keywords: KeywordsPayload
    action_items: ActionItemsPayload


class InsertRowRequest(BaseModel):
    index: int = 0


class UpdateFieldRequest(BaseModel):
    field: str
    value: str


class BeginEditRequest(BaseModel):
    row_id: str
    field: str


class EditBufferRequest(BaseModel):
    value: str


class RenameRequest(BaseModel):
    name: str = ""


def _error_payload(error: Optional[GijirokuError]) -> Optional[ErrorPayload]:
    if error is None:
        return None
    return ErrorPayload(**error.to_dict())


def _slot_fields(slot: EnrichmentSlot) -> Dict[str, object]:
    return {"status": slot.status.value, "error": _error_payload(slot.error)}


def _row_payload(row: Utterance) -> UtterancePayload:
    return UtterancePayload(**row.to_dict())


def _bad_request(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict())


def _transcript_state(session: TranscriptionSession) -> TranscriptState:
    cursor = session.table.cursor
    audio = session.audio
    return TranscriptState(
        rows=[_row_payload(row) for row in session.rows],
        speakers=editable_speakers(session.rows),
        renames=session.renames,
        editing=CursorPayload(row_id=cursor.row_id, field=cursor.field, buffer=cursor.buffer) if cursor else None,
        transcription=SlotPayload(**_slot_fields(session.transcription)),
        progress=session.progress,
        audio=AudioPayload(filename=audio.filename, mime_type=audio.mime_type, size=len(audio.data)) if audio else None,
        speaker_count=session.speaker_count,
        model=session.model,
    )


def _enrichment_state(session: TranscriptionSession) -> EnrichmentState:
    actions = session.action_items.slot
    return EnrichmentState(
        summary=SummaryPayload(result=session.summary.slot.result, **_slot_fields(session.summary.slot)),
        keywords=KeywordsPayload(result=session.keywords.slot.result or [], **_slot_fields(session.keywords.slot)),
        action_items=ActionItemsPayload(
            result=[ActionItemPayload(**item.to_dict()) for item in actions.result or []],
            **_slot_fields(actions),
        ),
    )


@app.get("/health", response_model=HealthResponse)
async def healthcheck() -> HealthResponse:
    session = get_session()
    return HealthResponse(model=session.model, has_api_key=bool(session.api_key))


@app.get("/models", response_model=list[ModelPayload])
async def list_models() -> list[ModelPayload]:
    return [ModelPayload(id=option.id, name=option.name) for option in AVAILABLE_MODELS]


@app.put("/settings", response_model=TranscriptState)
async def update_settings(payload: SettingsRequest) -> TranscriptState:
    session = get_session()
    try:
        if payload.api_key is not None:
            session.set_api_key(payload.api_key)
        if payload.model is not None:
            session.set_model(payload.model)
        if "speaker_count" in payload.model_fields_set:
            session.set_speaker_count(payload.speaker_count)
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    return _transcript_state(session)


@app.post("/audio", response_model=TranscriptState, status_code=status.HTTP_201_CREATED)
async def upload_audio(file: UploadFile = File(...)) -> TranscriptState:
    session = get_session()
    data = await file.read()
    try:
        session.set_audio(data, file.content_type or "", filename=file.filename)
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    return _transcript_state(session)


@app.delete("/audio", response_model=TranscriptState)
async def clear_audio() -> TranscriptState:
    session = get_session()
    session.clear_audio()
    return _transcript_state(session)


@app.post("/transcribe", response_model=TranscriptState)
async def transcribe() -> TranscriptState:
    session = get_session()
    if session.transcription.running:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Transcription already running")
    await session.transcribe()
    return _transcript_state(session)


@app.get("/transcript", response_model=TranscriptState)
async def get_transcript() -> TranscriptState:
    return _transcript_state(get_session())


@app.post("/transcript/rows", response_model=UtterancePayload, status_code=status.HTTP_201_CREATED)
async def insert_row(payload: InsertRowRequest) -> UtterancePayload:
    return _row_payload(get_session().insert_row(payload.index))


@app.patch("/transcript/rows/{row_id}", response_model=UtterancePayload)
async def update_row(row_id: str, payload: UpdateFieldRequest) -> UtterancePayload:
    session = get_session()
    try:
        updated = session.update_field(row_id, payload.field, payload.value)
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Row {row_id} not found")
    return _row_payload(session.table.get(row_id))


@app.delete("/transcript/rows/{row_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_row(row_id: str) -> None:
    if not get_session().delete_row(row_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Row {row_id} not found")


@app.post("/transcript/edit", response_model=CursorPayload)
async def begin_edit(payload: BeginEditRequest) -> CursorPayload:
    session = get_session()
    try:
        cursor = session.begin_edit(payload.row_id, payload.field)
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    if cursor is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A request is still running")
    return CursorPayload(row_id=cursor.row_id, field=cursor.field, buffer=cursor.buffer)


@app.put("/transcript/edit", response_model=CursorPayload)
async def set_edit_buffer(payload: EditBufferRequest) -> CursorPayload:
    session = get_session()
    try:
        session.set_edit_buffer(payload.value)
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    cursor = session.table.cursor
    return CursorPayload(row_id=cursor.row_id, field=cursor.field, buffer=cursor.buffer)


@app.post("/transcript/edit/commit", response_model=TranscriptState)
async def commit_edit() -> TranscriptState:
    session = get_session()
    session.commit_edit()
    return _transcript_state(session)


@app.delete("/transcript/edit", response_model=TranscriptState)
async def cancel_edit() -> TranscriptState:
    session = get_session()
    session.cancel_edit()
    return _transcript_state(session)


@app.put("/speakers/{default_speaker}", response_model=TranscriptState)
async def set_pending_rename(default_speaker: str, payload: RenameRequest) -> TranscriptState:
    session = get_session()
    try:
        session.set_pending_rename(default_speaker, payload.name)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.to_dict()) from exc
    return _transcript_state(session)


@app.post("/speakers/apply", response_model=TranscriptState)
async def apply_renames() -> TranscriptState:
    session = get_session()
    session.apply_renames()
    return _transcript_state(session)


@app.post("/summary", response_model=EnrichmentState)
async def summarize() -> EnrichmentState:
    session = get_session()
    await session.summarize()
    return _enrichment_state(session)


@app.post("/keywords", response_model=EnrichmentState)
async def extract_keywords() -> EnrichmentState:
    session = get_session()
    await session.extract_keywords()
    return _enrichment_state(session)


@app.post("/action-items", response_model=EnrichmentState)
async def extract_action_items() -> EnrichmentState:
    session = get_session()
    await session.extract_action_items()
    return _enrichment_state(session)


@app.get("/enrichments", response_model=EnrichmentState)
async def get_enrichments() -> EnrichmentState:
    return _enrichment_state(get_session())


@app.get("/export/summary")
async def export_summary() -> Response:
    summary = get_session().summary.slot.result
    if not summary:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No summary available")
    filename = export_filename("summary", "md")
    return Response(
        content=summary.encode("utf-8"),
        media_type=FORMATS["md"],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/export/{fmt}")
async def export_transcript(fmt: str) -> Response:
    if fmt not in FORMATS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unsupported format: {fmt}")
    rows = get_session().rows
    if not rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No transcript available")
    filename = export_filename("transcription", fmt)
    return Response(
        content=render(rows, fmt).encode("utf-8"),
        media_type=FORMATS[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
