import pytest

from gijiroku.errors import ValidationError
from gijiroku.models import UNKNOWN_SPEAKER, Utterance
from gijiroku.parser import parse_transcription
from gijiroku.transcript import EditCursor, TranscriptTable


@pytest.fixture
def table():
    return TranscriptTable(parse_transcription("A: one\nB: two\nA: three"))


def test_insert_clamps_index(table):
    first = table.insert_at(-5)
    last = table.insert_at(100)

    assert table.rows[0] is first
    assert table.rows[-1] is last
    assert first.text == "" and first.default_speaker == "" and first.display_speaker == ""
    assert len(table) == 5


def test_insert_then_delete_restores_rows(table):
    before = [(row.id, row.text) for row in table]

    for index in range(len(table) + 1):
        row = table.insert_at(index)
        assert table.rows[index] is row
        assert table.delete_by_id(row.id)
        assert [(r.id, r.text) for r in table] == before


def test_ids_stay_unique_after_edits(table):
    for index in (0, 2, 1, 5):
        table.insert_at(index)
    table.delete_by_id(table.rows[1].id)
    table.insert_at(1)

    ids = [row.id for row in table]
    assert len(ids) == len(set(ids))


def test_insert_rejects_duplicate_id(table):
    with pytest.raises(ValidationError):
        table.insert_at(0, Utterance(id=table.rows[0].id))


def test_delete_missing_row_is_noop(table):
    assert table.delete_by_id("missing") is False
    assert len(table) == 3


def test_update_speaker_trims_and_falls_back(table):
    row = table.rows[0]

    table.update_field(row.id, "speaker", "  Alice  ")
    assert row.display_speaker == "Alice"

    table.update_field(row.id, "speaker", "   ")
    assert row.display_speaker == "Speaker-A"

    manual = table.insert_at(0)
    table.update_field(manual.id, "speaker", "")
    assert manual.display_speaker == UNKNOWN_SPEAKER


def test_update_text_is_verbatim(table):
    row = table.rows[1]
    table.update_field(row.id, "text", "  line one\nline two  ")

    assert row.text == "  line one\nline two  "


def test_update_rejects_unknown_field(table):
    with pytest.raises(ValidationError):
        table.update_field(table.rows[0].id, "timestamp", "x")


def test_commit_writes_buffer(table):
    row = table.rows[0]
    cursor = table.begin_edit(row.id, "speaker")
    assert cursor.buffer == "Speaker-A"

    table.set_edit_buffer("Bob")
    assert table.commit_edit() is True
    assert row.display_speaker == "Bob"
    assert table.cursor is None


def test_cancel_discards_buffer(table):
    row = table.rows[2]
    table.begin_edit(row.id, "text")
    table.set_edit_buffer("changed")
    table.cancel_edit()

    assert row.text == "three"
    assert table.cursor is None


def test_deleting_edited_row_closes_cursor(table):
    row = table.rows[1]
    table.begin_edit(row.id, "text")
    table.delete_by_id(row.id)

    assert table.cursor is None
    assert table.commit_edit() is False


def test_commit_for_vanished_row_is_noop(table):
    table.cursor = EditCursor(row_id="gone", field="text", buffer="x")

    assert table.commit_edit() is False
    assert table.cursor is None
    assert [row.text for row in table] == ["one", "two", "three"]


def test_begin_edit_requires_existing_row(table):
    with pytest.raises(ValidationError):
        table.begin_edit("missing", "text")


def test_replace_all_closes_cursor(table):
    table.begin_edit(table.rows[0].id, "text")
    table.replace_all([])

    assert table.cursor is None
    assert len(table) == 0


def test_snapshot_is_detached(table):
    snapshot = table.snapshot()
    table.update_field(table.rows[0].id, "text", "edited")

    assert snapshot[0].text == "one"
