"""Prompt texts sent to the generative model."""

from __future__ import annotations

from typing import Iterable, Optional

from .models import Utterance

TRANSCRIPTION_PROMPT = """以下の音声ファイルを文字起こしし、話者ごとに発言を分けてください。
出力形式は以下の例のように、各行を "話者X: 発言内容" の形式にしてください。

例:
話者A: こんにちは。
話者B: 今日は良い天気ですね。
話者A: そうですね、どこかへ出かけたい気分です。
"""

SUMMARY_PROMPT = (
    "以下の会話を簡潔に要約し、見出し、箇条書き、太字などを使用して分かりやすくMarkdown形式で出力してください:"
    "\n\n```\n{conversation}\n```"
)

KEYWORDS_PROMPT = """以下の会話から重要なキーワードやトピックを抽出し、JSON配列の形式で出力してください。各要素は文字列である必要があります。

例:
```json
[
  "決済機能設計(山田、田中)",
  "納期遅延の可能性",
  "追加仕様の確認"
]
```

会話:
```
{conversation}
```"""

ACTION_ITEMS_PROMPT = """以下の会話からアクションアイテム（担当者、タスク内容、期限）を抽出し、以下のJSON形式の配列で出力してください。該当する情報がない場合は省略するかnullを使用してください。期限はYYYY-MM-DD形式で記述してください。

出力形式:
```json
[
  {{ "assignee": "担当者名", "task": "タスク内容", "dueDate": "YYYY-MM-DD または null" }},
  ...
]
```

会話:
```
{conversation}
```"""


def transcription_prompt(speaker_count: Optional[int] = None) -> str:
    prompt = TRANSCRIPTION_PROMPT
    if speaker_count is not None and speaker_count > 0:
        prompt += f"\n\n注記: この会話には{speaker_count}人の話者が参加しています。これを考慮して話者を区別してください。"
    return prompt


def conversation_text(rows: Iterable[Utterance]) -> str:
    return "\n".join(f"{row.display_speaker}: {row.text}" for row in rows)


def summary_prompt(rows: Iterable[Utterance]) -> str:
    return SUMMARY_PROMPT.format(conversation=conversation_text(rows))


def keywords_prompt(rows: Iterable[Utterance]) -> str:
    return KEYWORDS_PROMPT.format(conversation=conversation_text(rows))


def action_items_prompt(rows: Iterable[Utterance]) -> str:
    return ACTION_ITEMS_PROMPT.format(conversation=conversation_text(rows))
