"""Error kinds surfaced to users and the mapping from API failures onto them."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from google.generativeai.types import BlockedPromptException, StopCandidateException
from google.protobuf.json_format import MessageToDict
from google.protobuf.message import Message

from .models import model_label

logger = logging.getLogger(__name__)

QUOTA_FAILURE_TYPE = "google.rpc.QuotaFailure"


class GijirokuError(RuntimeError):
    """Base class for every failure reported back to the user.

    ``message`` is the localized text shown to the user while ``detail`` keeps
    the underlying cause for diagnostics.
    """

    kind = "UnknownError"

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"kind": self.kind, "message": self.message, "detail": self.detail}


class ValidationError(GijirokuError):
    kind = "ValidationError"


class QuotaExceededError(GijirokuError):
    kind = "QuotaExceeded"

    def __init__(self, message: str, detail: Optional[str] = None, model_specific: bool = False) -> None:
        super().__init__(message, detail)
        self.model_specific = model_specific


class AuthError(GijirokuError):
    kind = "AuthError"


class ModelNotFoundError(GijirokuError):
    kind = "ModelNotFound"


class ContentBlockedError(GijirokuError):
    kind = "ContentBlocked"


class UnsupportedFormatError(GijirokuError):
    kind = "UnsupportedFormat"


class ParseError(GijirokuError):
    kind = "ParseError"


class UnknownError(GijirokuError):
    kind = "UnknownError"


def _status_code(exc: BaseException) -> Optional[int]:
    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return int(code)
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    return None


def _error_details(exc: BaseException) -> List[Any]:
    details = getattr(exc, "details", None)
    if callable(details):
        # grpc.RpcError exposes details as a method returning a string
        return []
    if isinstance(details, (list, tuple)):
        return list(details)
    return []


def _normalise_detail(detail: Any) -> Optional[Dict[str, Any]]:
    if isinstance(detail, Message):
        payload = MessageToDict(detail)
        payload["@type"] = f"type.googleapis.com/{detail.DESCRIPTOR.full_name}"
        return payload
    if isinstance(detail, dict):
        return detail
    return None


def _quota_violations(details: Iterable[Any]) -> List[Dict[str, Any]]:
    for detail in details:
        payload = _normalise_detail(detail)
        if payload is None:
            continue
        if str(payload.get("@type", "")).endswith(QUOTA_FAILURE_TYPE):
            violations = payload.get("violations")
            if isinstance(violations, list):
                return [v for v in violations if isinstance(v, dict)]
    return []


def is_model_quota_violation(details: Iterable[Any], model_id: str) -> bool:
    for violation in _quota_violations(details):
        dimensions = violation.get("quotaDimensions") or {}
        if isinstance(dimensions, dict) and dimensions.get("model") == model_id:
            return True
    return False


def classify_api_error(exc: BaseException, model_id: str) -> GijirokuError:
    """Translate an exception raised while calling the API into a ``GijirokuError``."""

    if isinstance(exc, GijirokuError):
        return exc

    text = str(getattr(exc, "message", "") or exc)
    status = _status_code(exc)
    details = _error_details(exc)
    if details:
        logger.error("Error details: %s", details)

    if status == 429 or "quota" in text or "RESOURCE_EXHAUSTED" in text:
        if is_model_quota_violation(details, model_id):
            return QuotaExceededError(
                f"選択されたモデル ({model_label(model_id)}) の無料利用枠の上限に達したか、"
                "一時的に利用が制限されています。他のモデルを試すか、時間をおいて再度お試しください。",
                detail=text,
                model_specific=True,
            )
        return QuotaExceededError(
            "APIの利用上限(クォータ)に達した可能性があります。プランを確認するか、時間をおいて再度お試しください。",
            detail=text,
        )
    if status == 400 and "API key not valid" in text:
        return AuthError(
            "APIキーが無効、または選択したモデルへのアクセス権がありません。キーとモデルの組み合わせを確認してください。",
            detail=text,
        )
    if status == 403:
        return AuthError(
            "選択したモデルへのアクセスが拒否されました。APIキーに必要な権限が付与されているか確認してください。",
            detail=text,
        )
    if status == 404 and "Model not found" in text:
        return ModelNotFoundError(f"選択されたモデル ({model_id}) が見つかりません。", detail=text)
    if isinstance(exc, (BlockedPromptException, StopCandidateException)) or "SAFETY" in text:
        return ContentBlockedError("コンテンツがセーフティポリシーによりブロックされました。", detail=text)
    if "Unsupported audio format" in text:
        return UnsupportedFormatError("サポートされていない音声ファイル形式です。", detail=text)
    return UnknownError(f"エラーが発生しました: {text}", detail=text)
