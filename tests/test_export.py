from datetime import datetime

import pytest

from gijiroku.export import export_filename, render, to_csv, to_markdown, to_text, write_export
from gijiroku.models import Utterance


@pytest.fixture
def rows():
    return [
        Utterance(display_speaker="Alice", text="こんにちは。"),
        Utterance(display_speaker="", text='He said "hi", then\nleft'),
    ]


def test_csv_format(rows):
    content = to_csv(rows)

    assert content.startswith("\ufeff")
    assert content == (
        '\ufeff"話者","発言内容"\r\n'
        '"Alice","こんにちは。"\r\n'
        '"不明","He said ""hi"", then\nleft"'
    )


def test_markdown_and_text_formats(rows):
    assert to_markdown(rows) == '**Alice:** こんにちは。\n\n**不明:** He said "hi", then\nleft'
    assert to_text(rows) == 'Alice: こんにちは。\n\n不明: He said "hi", then\nleft'


def test_render_rejects_unknown_format(rows):
    assert render(rows, "txt") == to_text(rows)
    with pytest.raises(ValueError):
        render(rows, "pdf")


def test_export_filename_uses_timestamp():
    now = datetime(2024, 5, 1, 9, 3, 7)

    assert export_filename("transcription", "csv", now) == "transcription_20240501_090307.csv"
    assert export_filename("summary", "md", now) == "summary_20240501_090307.md"


def test_write_export_keeps_bom_and_line_endings(tmp_path, rows):
    path = write_export(tmp_path / "out" / "t.csv", to_csv(rows))

    data = path.read_bytes()
    assert data.startswith(b"\xef\xbb\xbf")
    assert b"\r\n" in data
