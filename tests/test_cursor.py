import pytest

from stepsql import Cursor, CursorInvalidatedError, MisuseError, StepError


@pytest.fixture
def stocked(store):
    store.executescript(
        "INSERT INTO store VALUES ('apple', 'fruit', 125);"
        "INSERT INTO store VALUES ('banana', 'fruit', 70);"
        "INSERT INTO store VALUES ('carrot', 'vegetable', 40);"
    )
    return store


def test_empty_result(store):
    statement = store.prepare("SELECT * FROM store")
    cursor = statement.begin()

    assert cursor.is_exhausted
    assert cursor == statement.end()
    assert list(statement) == []


def test_manual_stepping(stocked):
    statement = stocked.prepare("SELECT article, amount FROM store ORDER BY rowid")
    articles = []

    cursor = statement.begin()
    while cursor != statement.end():
        articles.append((cursor[0], cursor.as_int(1)))
        cursor.advance()

    assert articles == [("apple", 125), ("banana", 70), ("carrot", 40)]
    assert cursor.is_exhausted


def test_row_numbers(stocked):
    statement = stocked.prepare("SELECT article FROM store")
    cursor = statement.begin()

    assert cursor.row_number == 0
    cursor.advance()
    assert cursor.row_number == 1
    assert [row.row_number for row in statement] == [0, 1, 2]


def test_exhausted_cursor_misuse(store):
    cursor = store.prepare("SELECT * FROM store").begin()

    with pytest.raises(MisuseError):
        cursor[0]

    with pytest.raises(MisuseError):
        cursor.advance()

    with pytest.raises(StopIteration):
        next(cursor)


def test_new_iteration_invalidates_cursor(stocked):
    statement = stocked.prepare("SELECT article FROM store ORDER BY rowid")

    first = statement.begin()
    second = statement.begin()

    with pytest.raises(CursorInvalidatedError):
        first.advance()

    assert first.is_exhausted
    assert second[0] == "apple"


def test_reset_invalidates_cursor(stocked):
    statement = stocked.prepare("SELECT article FROM store")
    cursor = statement.begin()

    statement.reset()

    with pytest.raises(CursorInvalidatedError):
        cursor[0]


def test_finalize_invalidates_cursor(stocked):
    statement = stocked.prepare("SELECT article FROM store")
    cursor = statement.begin()

    statement.finalize()

    with pytest.raises(CursorInvalidatedError):
        cursor.as_str(0)


def test_row_invalid_after_advance(stocked):
    rows = list(stocked.prepare("SELECT article FROM store"))

    assert len(rows) == 3

    with pytest.raises(CursorInvalidatedError):
        rows[0][0]


def test_typed_reads(db):
    cursor = db.prepare("SELECT 42, 2.5, 'text', NULL, x'0102', 9000000000").begin()

    assert cursor.as_int(0) == 42
    assert cursor.as_float(1) == 2.5
    assert cursor.as_str(2) == "text"
    assert cursor.as_str(3) is None
    assert cursor.as_int(3) == 0
    assert cursor.as_int64(5) == 9000000000

    assert cursor.column(0) == 42
    assert cursor.column(1) == 2.5
    assert cursor.column(2) == "text"
    assert cursor.column(3) is None
    assert cursor.column(4) == b"\x01\x02"
    assert cursor.column(5) == 9000000000


def test_column_index_bounds(db):
    cursor = db.prepare("SELECT 1, 2").begin()

    assert cursor.column_count() == 2
    assert cursor.as_int(-1) == 2

    with pytest.raises(IndexError):
        cursor.as_int(2)

    with pytest.raises(IndexError):
        cursor.as_int(-3)


def test_row_helpers(stocked):
    statement = stocked.prepare(
        "SELECT article, amount FROM store WHERE article = 'apple'"
    )
    row = next(iter(statement))

    assert len(row) == 2
    assert tuple(row) == ("apple", "125")
    assert row.as_int(1) == 125
    assert row.value(1) == 125
    assert row.values() == ("apple", 125)
    assert row.keys() == ["article", "amount"]
    assert row.as_dict() == {"article": "apple", "amount": 125}


def test_step_error_exhausts_cursor(db):
    db.execute("CREATE TABLE numbers (x INTEGER)")
    db.execute("INSERT INTO numbers VALUES (?)", 1)
    db.execute("INSERT INTO numbers VALUES (?)", -(2**63))
    statement = db.prepare("SELECT abs(x) FROM numbers ORDER BY rowid")
    cursor = statement.begin()

    assert cursor.as_int(0) == 1

    with pytest.raises(StepError):
        cursor.advance()

    assert cursor.is_exhausted
    assert cursor == statement.end()


def test_step_error_on_first_row(db):
    statement = db.prepare("SELECT abs(-9223372036854775807 - 1)")

    with pytest.raises(StepError):
        statement.begin()

    with pytest.raises(StepError):
        list(statement)


def test_equality(stocked):
    first = stocked.prepare("SELECT 1").begin()
    second = stocked.prepare("SELECT 2").begin()

    assert first == first
    assert first != second
    assert first != Cursor()
    assert Cursor() == Cursor()


def test_cursor_is_not_hashable():
    with pytest.raises(TypeError):
        hash(Cursor())
