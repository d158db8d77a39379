import copy

import pytest

from stepsql import (
    BindError,
    MisuseError,
    StepError,
    SqlInt64,
    SqlString,
    TypedValue,
)
from stepsql.native import SQLITE_CONSTRAINT, SQLITE_RANGE


def fetch(statement):
    return [tuple(row) for row in statement]


def test_store_example(store):
    insert = store.prepare(
        "INSERT INTO store (article, category, amount) VALUES (?, ?, ?)"
    )

    insert.bind(1, "apple")
    insert.bind(2, "fruit")
    insert.bind(3, 125)
    insert.exec()

    insert.bind_all("banana", "fruit", 70)
    insert.exec()

    select = store.prepare("SELECT article, amount FROM store")
    assert [(row[0], row[1]) for row in select] == [("apple", "125"), ("banana", "70")]


def test_exec_resets_statement(store):
    insert = store.prepare("INSERT INTO store VALUES (?, 'fruit', 1)")

    insert.bind(1, "apple")
    insert.exec()
    insert.bind(1, "banana")
    insert.exec()

    assert store.query("SELECT article FROM store") == [("apple",), ("banana",)]


def test_bindings_survive_reset(store):
    insert = store.prepare("INSERT INTO store VALUES (?, ?, ?)")
    insert.bind_all("apple", "fruit", 125)

    insert.exec()
    insert.reset()
    insert.exec()

    assert store.query("SELECT COUNT(*) FROM store WHERE article = 'apple'") == [(2,)]


def test_restart_yields_same_rows(store):
    store.executescript(
        "INSERT INTO store VALUES ('apple', 'fruit', 125);"
        "INSERT INTO store VALUES ('banana', 'fruit', 70);"
    )
    select = store.prepare("SELECT article FROM store ORDER BY article")

    assert fetch(select) == [("apple",), ("banana",)]
    assert fetch(select) == [("apple",), ("banana",)]

    select.reset()
    assert fetch(select) == [("apple",), ("banana",)]


def test_named_and_positional_binding(store):
    named = store.prepare("INSERT INTO store VALUES (:article, :category, :amount)")

    assert named.parameter_index(":amount") == 3

    named.bind(":article", "apple")
    named.bind("category", "fruit")
    named.bind(3, 125)
    named.exec()

    positional = store.prepare("INSERT INTO store VALUES (?, ?, ?)")
    positional.bind_all("apple", "fruit", 125)
    positional.exec()

    rows = store.query("SELECT * FROM store")
    assert rows == [("apple", "fruit", 125), ("apple", "fruit", 125)]


@pytest.mark.parametrize("name", ["value", "@value"])
def test_bind_name_prefixes(db, name):
    statement = db.prepare("SELECT @value")
    statement.bind(name, "text")

    assert statement.begin().as_str(0) == "text"


def test_bind_unknown_name(db):
    statement = db.prepare("SELECT :value")

    with pytest.raises(BindError):
        statement.bind(":other", 1)


def test_bind_out_of_range(db):
    statement = db.prepare("SELECT ?, ?")

    with pytest.raises(BindError) as exc_info:
        statement.bind(3, 1)

    assert exc_info.value.code == SQLITE_RANGE

    with pytest.raises(BindError):
        statement.bind(0, 1)


def test_bind_all_matches_sequential_bind(db):
    sequential = db.prepare("SELECT ?, ?, ?")
    sequential.bind(1, 1)
    sequential.bind(2, 2.5)
    sequential.bind(3, "three")

    combined = db.prepare("SELECT ?, ?, ?")
    combined.bind_all(1, 2.5, "three")

    assert next(iter(sequential)).values() == next(iter(combined)).values()


def test_bind_all_with_fewer_values(db):
    statement = db.prepare("SELECT ?, ?")
    statement.bind_all("only")

    assert next(iter(statement)).values() == ("only", None)


def test_bind_values(db):
    statement = db.prepare("SELECT ?, ?, ?, ?, ?")
    statement.bind_all(None, True, 2**40, -1.5, "späti")

    assert next(iter(statement)).values() == (None, 1, 2**40, -1.5, "späti")


def test_bind_typed_value(db):
    statement = db.prepare("SELECT ?, ?")
    statement.bind(1, TypedValue(SqlInt64(), 5))
    statement.bind(2, "42", SqlString())

    row = next(iter(statement))
    assert row.values() == (5, "42")


def test_bind_unsupported_type(db):
    statement = db.prepare("SELECT ?")

    with pytest.raises(TypeError):
        statement.bind(1, object())


def test_bind_integer_overflow(db):
    statement = db.prepare("SELECT ?")

    with pytest.raises(OverflowError):
        statement.bind(1, 2**70)


def test_clear_bindings(db):
    statement = db.prepare("SELECT ?")
    statement.bind(1, "value")
    statement.clear_bindings()

    assert next(iter(statement)).values() == (None,)


def test_parameter_metadata(db):
    statement = db.prepare("SELECT ?, :x, @y")

    assert statement.parameter_count() == 3
    assert statement.parameter_name(1) is None
    assert statement.parameter_name(2) == ":x"
    assert statement.parameter_name(3) == "@y"
    assert statement.parameter_index("z") == 0


def test_column_metadata(store):
    statement = store.prepare("SELECT article, amount AS total FROM store")

    assert statement.column_count() == 2
    assert statement.column_names() == ["article", "total"]
    assert statement.column_name(5) is None
    assert statement.sql == "SELECT article, amount AS total FROM store"


def test_exec_constraint_violation(db):
    db.execute("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT UNIQUE)")
    insert = db.prepare("INSERT INTO items (name) VALUES (?)")

    insert.bind(1, "apple")
    insert.exec()

    with pytest.raises(StepError) as exc_info:
        insert.exec()

    assert exc_info.value.code == SQLITE_CONSTRAINT
    assert "UNIQUE" in exc_info.value.message

    # The statement remains usable after a failed step.
    insert.bind(1, "banana")
    insert.exec()

    assert db.query("SELECT name FROM items ORDER BY id") == [("apple",), ("banana",)]


def test_exec_discards_rows(store):
    store.execute("INSERT INTO store VALUES ('apple', 'fruit', 125)")
    select = store.prepare("SELECT * FROM store")

    select.exec()
    select.exec()

    assert fetch(select) == [("apple", "fruit", "125")]


def test_finalize(db):
    statement = db.prepare("SELECT 1")

    statement.finalize()
    statement.finalize()

    assert statement.is_finalized
    assert repr(statement) == "<Statement(finalized)>"

    for method in (statement.exec, statement.reset, statement.begin):
        with pytest.raises(MisuseError):
            method()


def test_context_manager(db):
    with db.prepare("SELECT 1") as statement:
        assert not statement.is_finalized

    assert statement.is_finalized


def test_statement_cannot_be_copied(db):
    statement = db.prepare("SELECT 1")

    with pytest.raises(TypeError):
        copy.copy(statement)

    with pytest.raises(TypeError):
        copy.deepcopy(statement)


def test_swap(db):
    first = db.prepare("SELECT 1")
    second = db.prepare("SELECT 2")

    cursor = first.begin()
    first.swap(second)

    assert first.sql == "SELECT 2"
    assert second.sql == "SELECT 1"
    assert first.begin().as_int(0) == 2

    with pytest.raises(MisuseError):
        cursor.advance()


def test_repr(db):
    statement = db.prepare("SELECT 1")
    assert repr(statement) == "<Statement('SELECT 1')>"
