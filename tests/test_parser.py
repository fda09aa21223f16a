import logging

from gijiroku.models import UNKNOWN_SPEAKER
from gijiroku.parser import parse_transcription, speaker_label


def test_parses_example_conversation():
    rows = parse_transcription("話者A: こんにちは。\n話者B: 今日は良い天気ですね。\n話者A: そうですね。")

    assert len(rows) == 3
    assert [row.original_speaker for row in rows] == ["話者A", "話者B", "話者A"]
    assert [row.default_speaker for row in rows] == ["Speaker-A", "Speaker-B", "Speaker-A"]
    assert all(row.display_speaker == row.default_speaker for row in rows)
    assert rows[1].text == "今日は良い天気ですね。"


def test_speaker_labels_count_in_letters():
    assert speaker_label(0) == "Speaker-A"
    assert speaker_label(25) == "Speaker-Z"
    assert speaker_label(26) == "Speaker-AA"
    assert speaker_label(27) == "Speaker-AB"
    assert speaker_label(701) == "Speaker-ZZ"
    assert speaker_label(702) == "Speaker-AAA"


def test_default_labels_follow_first_appearance():
    names = [f"person{i}" for i in range(28)]
    text = "\n".join(f"{name}: hello" for name in names + list(reversed(names)))

    rows = parse_transcription(text)

    first_seen = {}
    for row in rows:
        first_seen.setdefault(row.original_speaker, row.default_speaker)
    assert [first_seen[name] for name in names] == [speaker_label(i) for i in range(28)]
    assert first_seen["person27"] == "Speaker-AB"


def test_line_without_colon_is_attributed_to_unknown(caplog):
    with caplog.at_level(logging.WARNING, logger="gijiroku.parser"):
        rows = parse_transcription("  just some words  ")

    assert len(rows) == 1
    assert rows[0].original_speaker == UNKNOWN_SPEAKER
    assert rows[0].default_speaker == "Speaker-A"
    assert rows[0].text == "just some words"
    assert "Could not parse speaker" in caplog.text


def test_label_without_content_is_kept_whole():
    rows = parse_transcription("話者A:")

    assert rows[0].original_speaker == UNKNOWN_SPEAKER
    assert rows[0].text == "話者A:"


def test_label_stops_at_first_colon():
    rows = parse_transcription("Alice:   meet at 10:30")

    assert rows[0].original_speaker == "Alice"
    assert rows[0].text == "meet at 10:30"


def test_blank_lines_and_carriage_returns_are_ignored():
    rows = parse_transcription("\r\nA: one\r\n\r\n   \nB: two\r\n")

    assert [(row.original_speaker, row.text) for row in rows] == [("A", "one"), ("B", "two")]


def test_unknown_lines_share_one_speaker_group():
    rows = parse_transcription("A: hi\nno label here\nstill nothing")

    assert [row.default_speaker for row in rows] == ["Speaker-A", "Speaker-B", "Speaker-B"]


def test_parsing_is_deterministic_but_ids_are_fresh():
    text = "A: one\nB: two\nthree"
    first = parse_transcription(text)
    second = parse_transcription(text)

    def fields(rows):
        return [(r.original_speaker, r.default_speaker, r.text) for r in rows]

    assert fields(first) == fields(second)
    assert {r.id for r in first}.isdisjoint({r.id for r in second})
    assert len({r.id for r in first}) == len(first)


def test_empty_input_yields_no_rows():
    assert parse_transcription("") == []
    assert parse_transcription("  \n \n") == []
