"""Summary, keyword and action item requests built on the current transcript.

Every requester owns one slot that moves ``idle -> running -> succeeded|failed``
and may be re-run at any time. A run reads a copy of the rows it was given, so
later edits never change a result that was already produced. Failures are kept
in the slot; ``run`` itself never raises.
"""

from __future__ import annotations

import copy
import enum
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Generic, Iterable, List, Optional, TypeVar

from .errors import GijirokuError, ParseError, ValidationError, classify_api_error
from .models import ActionItem, Utterance
from .prompts import action_items_prompt, keywords_prompt, summary_prompt
from .transcriber import BackendFactory, get_backend

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MARKDOWN_BLOCK_RE = re.compile(r"```(markdown)?\s*([\s\S]*?)\s*```")
_JSON_BLOCK_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")


class SlotStatus(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class EnrichmentSlot(Generic[T]):
    status: SlotStatus = SlotStatus.IDLE
    result: Optional[T] = None
    error: Optional[GijirokuError] = None

    @property
    def running(self) -> bool:
        return self.status is SlotStatus.RUNNING


def unwrap_markdown(text: str) -> str:
    """Strip one fenced block enclosing the whole response, if there is one."""

    stripped = text.strip()
    match = _MARKDOWN_BLOCK_RE.fullmatch(stripped)
    if match:
        stripped = match.group(2)
    return stripped.strip()


def extract_json(text: str) -> Any:
    match = _JSON_BLOCK_RE.search(text)
    payload = match.group(1) if match else text
    return json.loads(payload)


def parse_keywords(text: str) -> List[str]:
    try:
        items = extract_json(text)
        if not isinstance(items, list) or (items and not isinstance(items[0], str)):
            raise ValueError("API応答が期待されたJSON配列(文字列)形式ではありません。")
        if not all(isinstance(item, str) for item in items):
            raise ValueError("キーワードに文字列以外の要素が含まれています。")
    except (ValueError, RecursionError) as exc:
        logger.error("Failed to parse keywords JSON: %s Raw response text: %s", exc, text)
        raise ParseError(
            "キーワードリストの解析に失敗しました。応答が期待されるJSON配列形式ではありませんでした。"
            f"\n詳細: {exc}",
            detail=str(exc),
        ) from exc
    return [kw for kw in (item.strip() for item in items) if kw]


def parse_action_items(text: str) -> List[ActionItem]:
    try:
        items = extract_json(text)
        if not isinstance(items, list) or (
            items and (not isinstance(items[0], dict) or "assignee" not in items[0] or "task" not in items[0])
        ):
            raise ValueError("API応答が期待されたJSON形式ではありません。")
        if not all(isinstance(item, dict) for item in items):
            raise ValueError("アクションアイテムにオブジェクト以外の要素が含まれています。")
    except (ValueError, RecursionError) as exc:
        logger.error("Failed to parse action items JSON: %s Raw response text: %s", exc, text)
        raise ParseError(f"API応答の解析に失敗しました。\n詳細: {exc}", detail=str(exc)) from exc
    return [ActionItem.from_payload(item) for item in items]


def _with_prefix(error: GijirokuError, prefix: str) -> GijirokuError:
    wrapped = copy.copy(error)
    wrapped.message = f"{prefix} 詳細: {error.message}"
    wrapped.args = (wrapped.message,)
    return wrapped


class EnrichmentRequester(Generic[T]):
    """Shared request/parse cycle for one enrichment slot."""

    name = "enrichment"
    failure_prefix = ""
    missing_input_message = ""

    def __init__(self, backend_factory: BackendFactory = get_backend) -> None:
        self._backend_factory = backend_factory
        self.slot: EnrichmentSlot[T] = EnrichmentSlot()

    def build_prompt(self, rows: List[Utterance]) -> str:
        raise NotImplementedError

    def parse(self, text: str) -> T:
        raise NotImplementedError

    def reset(self) -> None:
        self.slot = EnrichmentSlot()

    async def run(self, rows: Iterable[Utterance], api_key: Optional[str], model_id: str) -> EnrichmentSlot[T]:
        snapshot = copy.deepcopy(list(rows))
        if not snapshot or not api_key:
            self.slot.status = SlotStatus.FAILED
            self.slot.error = ValidationError(self.missing_input_message)
            return self.slot

        self.slot = EnrichmentSlot(status=SlotStatus.RUNNING)
        slot = self.slot
        try:
            backend = self._backend_factory(api_key)
            text = await backend.generate(self.build_prompt(snapshot), model_id)
            logger.debug("Raw %s response: %s", self.name, text)
            result = self.parse(text)
        except Exception as exc:
            logger.error("Error during %s: %s", self.name, exc)
            slot.status = SlotStatus.FAILED
            slot.error = _with_prefix(classify_api_error(exc, model_id), self.failure_prefix)
        else:
            slot.status = SlotStatus.SUCCEEDED
            slot.result = result
        return slot


class SummaryRequester(EnrichmentRequester[str]):
    name = "summarization"
    failure_prefix = "要約中にエラーが発生しました。"
    missing_input_message = "要約する文字起こし結果またはAPIキーがありません。"

    def build_prompt(self, rows: List[Utterance]) -> str:
        return summary_prompt(rows)

    def parse(self, text: str) -> str:
        return unwrap_markdown(text)


class KeywordsRequester(EnrichmentRequester[List[str]]):
    name = "keyword extraction"
    failure_prefix = "キーワード抽出中にエラーが発生しました。"
    missing_input_message = "キーワードを抽出する文字起こし結果またはAPIキーがありません。"

    def build_prompt(self, rows: List[Utterance]) -> str:
        return keywords_prompt(rows)

    def parse(self, text: str) -> List[str]:
        return parse_keywords(text)


class ActionItemsRequester(EnrichmentRequester[List[ActionItem]]):
    name = "action item extraction"
    failure_prefix = "アクションアイテム抽出中にエラーが発生しました。"
    missing_input_message = "アクションアイテムを抽出する文字起こし結果またはAPIキーがありません。"

    def build_prompt(self, rows: List[Utterance]) -> str:
        return action_items_prompt(rows)

    def parse(self, text: str) -> List[ActionItem]:
        return parse_action_items(text)
