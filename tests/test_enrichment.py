import json

import pytest

from gijiroku.enrichment import (
    ActionItemsRequester,
    KeywordsRequester,
    SlotStatus,
    SummaryRequester,
    parse_action_items,
    parse_keywords,
    unwrap_markdown,
)
from gijiroku.errors import ParseError, QuotaExceededError
from gijiroku.parser import parse_transcription

ROWS = parse_transcription("A: 決済機能の設計を山田さんにお願いします。\nB: 金曜までに対応します。")


def test_unwrap_markdown_strips_enclosing_fence():
    assert unwrap_markdown("```markdown\n# 要約\n- 項目\n```") == "# 要約\n- 項目"
    assert unwrap_markdown("  ```\n**太字**\n```  ") == "**太字**"


def test_unwrap_markdown_ignores_partial_fences():
    text = "はじめに\n```markdown\n# 要約\n```"
    assert unwrap_markdown(text) == text


def test_parse_keywords_from_fenced_block():
    text = 'はい。\n```json\n["  納期 ", "", "仕様確認"]\n```'
    assert parse_keywords(text) == ["納期", "仕様確認"]


def test_parse_keywords_from_bare_json():
    assert parse_keywords('["a", "b"]') == ["a", "b"]
    assert parse_keywords("[]") == []


@pytest.mark.parametrize("text", ['{"a":1}', "[1, 2]", '["a", 3]', "not json"])
def test_parse_keywords_rejects_bad_shapes(text):
    with pytest.raises(ParseError) as info:
        parse_keywords(text)
    assert info.value.detail
    assert "キーワードリストの解析に失敗しました" in info.value.message


def test_parse_action_items_defaults_due_date():
    payload = [
        {"assignee": "山田", "task": "設計", "dueDate": "2024-05-10"},
        {"assignee": None, "task": "確認"},
        {"assignee": "田中", "task": "レビュー", "dueDate": ""},
    ]
    items = parse_action_items("```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```")

    assert [item.due_date for item in items] == ["2024-05-10", None, None]
    assert items[1].assignee is None
    assert items[0].to_dict() == {"assignee": "山田", "task": "設計", "dueDate": "2024-05-10"}


def test_parse_action_items_checks_key_presence():
    with pytest.raises(ParseError):
        parse_action_items('[{"task": "no assignee"}]')
    with pytest.raises(ParseError):
        parse_action_items('{"assignee": "x", "task": "y"}')
    assert parse_action_items('[{"assignee": null, "task": null}]')[0].task is None


@pytest.mark.asyncio
async def test_precondition_failure_skips_network(make_backend):
    backend = make_backend()
    requester = SummaryRequester(lambda api_key: backend)

    slot = await requester.run([], "key", "model")
    assert slot.status is SlotStatus.FAILED
    assert slot.error.kind == "ValidationError"

    slot = await requester.run(ROWS, None, "model")
    assert slot.status is SlotStatus.FAILED
    assert backend.calls == []


@pytest.mark.asyncio
async def test_summary_success(make_backend):
    backend = make_backend(responder=lambda prompt: "```markdown\n# 会議\n- 設計\n```")
    requester = SummaryRequester(lambda api_key: backend)

    slot = await requester.run(ROWS, "key", "gemini-test")

    assert slot.status is SlotStatus.SUCCEEDED
    assert slot.result == "# 会議\n- 設計"
    kind, prompt, model_id = backend.calls[0]
    assert model_id == "gemini-test"
    assert "Speaker-A: 決済機能の設計を山田さんにお願いします。" in prompt


@pytest.mark.asyncio
async def test_keywords_reject_non_array(make_backend):
    backend = make_backend(responder=lambda prompt: '{"a":1}')
    requester = KeywordsRequester(lambda api_key: backend)

    slot = await requester.run(ROWS, "key", "model")

    assert slot.status is SlotStatus.FAILED
    assert isinstance(slot.error, ParseError)
    assert slot.error.message.startswith("キーワード抽出中にエラーが発生しました。 詳細: ")
    assert slot.result is None


@pytest.mark.asyncio
async def test_failed_rerun_clears_previous_result(make_backend):
    replies = iter(['[{"assignee": "A", "task": "t"}]', "oops"])
    backend = make_backend(responder=lambda prompt: next(replies))
    requester = ActionItemsRequester(lambda api_key: backend)

    first = await requester.run(ROWS, "key", "model")
    assert first.status is SlotStatus.SUCCEEDED
    assert first.result[0].task == "t"

    second = await requester.run(ROWS, "key", "model")
    assert second.status is SlotStatus.FAILED
    assert requester.slot.result is None


class QuotaError(Exception):
    code = 429


@pytest.mark.asyncio
async def test_api_errors_are_classified(make_backend):
    backend = make_backend(error=QuotaError("quota exceeded"))
    requester = KeywordsRequester(lambda api_key: backend)

    slot = await requester.run(ROWS, "key", "model")

    assert isinstance(slot.error, QuotaExceededError)
    assert slot.error.message.startswith("キーワード抽出中にエラーが発生しました。")
    assert slot.error.detail == "quota exceeded"



def test_parse_action_items_stringifies_scalar_values():
    items = parse_action_items('[{"assignee": 7, "task": "設計", "dueDate": 20240510}]')

    assert items[0].assignee == "7"
    assert items[0].task == "設計"
    assert items[0].due_date == "20240510"


def test_deeply_nested_json_is_a_parse_error():
    with pytest.raises(ParseError):
        parse_keywords("[" * 100000 + "]" * 100000)


@pytest.mark.asyncio
async def test_missing_input_keeps_previous_result(make_backend):
    backend = make_backend(responder=lambda prompt: "# 要約")
    requester = SummaryRequester(lambda api_key: backend)
    await requester.run(ROWS, "key", "model")

    slot = await requester.run(ROWS, None, "model")

    assert slot.status is SlotStatus.FAILED
    assert slot.error.message == "要約する文字起こし結果またはAPIキーがありません。"
    assert slot.result == "# 要約"
    assert len(backend.calls) == 1
