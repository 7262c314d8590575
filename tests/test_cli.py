from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from tm_cli.main import app

runner = CliRunner()


def _add(db_path: Path, source: str, target: str, *extra: str) -> None:
    result = runner.invoke(
        app,
        ["add-entry", source, target, "--db", str(db_path), "--target-lang", "fr", *extra],
    )
    assert result.exit_code == 0, result.output
    assert "Entry stored:" in result.output


def test_init_db_creates_database(tmp_path: Path) -> None:
    db_path = tmp_path / "tm.sqlite"

    result = runner.invoke(app, ["init-db", "--db", str(db_path)])

    assert result.exit_code == 0, result.output
    assert "Database ready" in result.output
    assert db_path.exists()


def test_match_lists_ranked_candidates(tmp_path: Path) -> None:
    db_path = tmp_path / "tm.sqlite"
    _add(db_path, "Attack the enemy", "Attaquer l'ennemi", "--category", "combat")
    _add(db_path, "Open the treasure chest", "Ouvrir le coffre")

    result = runner.invoke(
        app, ["match", "Attack the enemies", "--db", str(db_path), "--lang", "fr"]
    )

    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert len(lines) == 1
    assert lines[0].startswith("1. [")
    assert "auto-accept" in lines[0]
    assert "Attaquer l'ennemi" in lines[0]


def test_match_reports_no_results(tmp_path: Path) -> None:
    db_path = tmp_path / "tm.sqlite"
    _add(db_path, "Attack the enemy", "Attaquer l'ennemi")

    result = runner.invoke(
        app, ["match", "Something unrelated", "--db", str(db_path), "--lang", "fr"]
    )

    assert result.exit_code == 0, result.output
    assert "No matches found." in result.output


def test_match_rejects_non_positive_limit(tmp_path: Path) -> None:
    db_path = tmp_path / "tm.sqlite"
    _add(db_path, "Attack the enemy", "Attaquer l'ennemi")

    result = runner.invoke(
        app,
        ["match", "Attack", "--db", str(db_path), "--lang", "fr", "--limit", "0"],
    )

    assert result.exit_code == 1


def test_similarity_prints_breakdown() -> None:
    result = runner.invoke(app, ["similarity", "Attack the enemies", "Attack the enemy"])

    assert result.exit_code == 0, result.output
    assert "Distance similarity: 0.8333" in result.output
    assert "Affix similarity: 0.9000" in result.output
    assert "Composite:" in result.output
    assert "Auto-accept: yes" in result.output


def test_similarity_honours_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "matching.yaml"
    config_path.write_text("auto_accept_threshold: 0.99\n", encoding="utf-8")

    result = runner.invoke(
        app,
        ["similarity", "Attack the enemies", "Attack the enemy", "--config", str(config_path)],
    )

    assert result.exit_code == 0, result.output
    assert "Auto-accept: no" in result.output


def test_invalid_config_exits_with_error(tmp_path: Path) -> None:
    config_path = tmp_path / "matching.yaml"
    config_path.write_text("min_similarity: 2\n", encoding="utf-8")

    result = runner.invoke(
        app, ["similarity", "a", "b", "--config", str(config_path)]
    )

    assert result.exit_code == 1


def test_match_refuses_missing_database(tmp_path: Path) -> None:
    db_path = tmp_path / "typo.sqlite"

    result = runner.invoke(
        app, ["match", "Attack the enemy", "--db", str(db_path), "--lang", "fr"]
    )

    assert result.exit_code != 0
    assert "No matches found." not in result.output
    assert not db_path.exists()
