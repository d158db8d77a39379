from click.testing import CliRunner

from stepsql import __version__
from stepsql.cli import main
from stepsql.cli.common import parse_parameter


def test_help():
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])

    assert result.exit_code == 0, result.output
    assert result.output.startswith("Usage: main [OPTIONS] COMMAND [ARGS]")

    for command in ("exec", "query", "script", "demo"):
        assert command in result.output


def test_version():
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])

    assert result.exit_code == 0
    assert result.output.strip() == __version__


def test_demo():
    runner = CliRunner()
    result = runner.invoke(main, ["demo"])

    assert result.exit_code == 0, result.output
    assert result.output == "apple: 125\nbanana: 70\n"


def test_exec_and_query(db_path):
    runner = CliRunner()

    result = runner.invoke(
        main, ["exec", db_path, "CREATE TABLE store (article TEXT, amount INT)"]
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(
        main, ["exec", db_path, "INSERT INTO store VALUES (?, ?)", "apple", "125"]
    )
    assert result.exit_code == 0, result.output
    assert "Changed 1 row" in result.output

    result = runner.invoke(main, ["query", db_path, "SELECT * FROM store"])
    assert result.exit_code == 0, result.output
    assert "article" in result.output
    assert "apple" in result.output
    assert "125" in result.output


def test_script(db_path, tmp_path):
    script = tmp_path / "script.sql"
    script.write_text(
        "CREATE TABLE store (article TEXT, amount INT);\n"
        "INSERT INTO store VALUES ('apple', 125);\n"
        "INSERT INTO store VALUES ('banana', 70);\n"
    )

    runner = CliRunner()
    result = runner.invoke(main, ["script", db_path, str(script)])

    assert result.exit_code == 0, result.output
    assert "Script executed, 2 rows changed" in result.output


def test_database_error(db_path):
    runner = CliRunner()
    result = runner.invoke(main, ["query", db_path, "SELEC 1"])

    assert result.exit_code == 1
    assert result.output.startswith("! Could not prepare statement.")
    assert "syntax error" in result.output


def test_open_error(tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        main, ["exec", str(tmp_path / "missing" / "x.db"), "SELECT 1"]
    )

    assert result.exit_code == 1
    assert result.output.startswith("! Could not open database")


def test_parse_parameter():
    assert parse_parameter("125") == 125
    assert parse_parameter("2.5") == 2.5
    assert parse_parameter("None") is None
    assert parse_parameter("'quoted'") == "quoted"
    assert parse_parameter("apple") == "apple"
    assert parse_parameter("[1, 2]") == "[1, 2]"
