"""Tests for the command line interface."""

import sqlite3 as sql
from pathlib import Path

import pandas as pd
import pytest
import yaml
from click.testing import CliRunner

import team_balancer.db as db
from team_balancer.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


def setup_database(runner, names="1. Ana\n2. Bia\n3. Caio\n4. Duda\n"):
    Path("names.txt").write_text(names, encoding="utf-8")
    assert runner.invoke(cli, ["init", "teams.db"]).exit_code == 0
    result = runner.invoke(cli, ["add", "teams.db", "--input", "names.txt"])
    assert result.exit_code == 0, result.output
    for name, level in [("Ana", "5"), ("Bia", "4"), ("Caio", "3"), ("Duda", "2")]:
        result = runner.invoke(
            cli, ["rate", "teams.db", name, "--rating", level, "--pace", level, "--condition", level]
        )
        assert result.exit_code == 0, result.output


class TestCli:
    """Test cases for the CLI commands."""

    def test_add_and_list(self, runner):
        with runner.isolated_filesystem():
            setup_database(runner)

            result = runner.invoke(cli, ["list", "teams.db"])

            assert result.exit_code == 0
            assert "Ana" in result.output
            assert "4 of 4 participating" in result.output

    def test_add_skips_known_names(self, runner):
        with runner.isolated_filesystem():
            setup_database(runner)

            result = runner.invoke(cli, ["add", "teams.db", "--input", "names.txt"])

            assert result.exit_code == 0
            assert "Added 0 participants" in result.output

    def test_rate_unknown_participant(self, runner):
        with runner.isolated_filesystem():
            setup_database(runner)

            result = runner.invoke(cli, ["rate", "teams.db", "Nobody", "--rating", "3"])

            assert result.exit_code == 1
            assert "Unknown participant" in result.output

    def test_draw_stores_history(self, runner):
        with runner.isolated_filesystem():
            setup_database(runner)

            first = runner.invoke(cli, ["draw", "teams.db", "--teams", "2", "--match-name", "Thursday"])
            second = runner.invoke(cli, ["draw", "teams.db", "--teams", "2", "--algorithm", "best"])

            assert first.exit_code == 0, first.output
            assert second.exit_code == 0, second.output
            assert "*Thursday*" in first.output
            assert "*Team 2*" in first.output
            assert "Imbalance: 0.0%" in first.output

            with sql.connect("teams.db") as conn:
                history = db.fetch_history(conn)
            assert [record.algorithm for record in history] == ["best", "fast"]
            assert all(record.participant_count == 4 for record in history)

            stats = runner.invoke(cli, ["stats", "teams.db"])
            assert "Total draws: 2" in stats.output

    def test_draw_uses_only_participating(self, runner):
        with runner.isolated_filesystem():
            setup_database(runner)
            runner.invoke(cli, ["toggle", "teams.db", "Duda"])
            runner.invoke(cli, ["toggle", "teams.db", "Caio", "--recurring"])

            result = runner.invoke(cli, ["draw", "teams.db", "--teams", "2"])

            assert result.exit_code == 0, result.output
            assert "Duda" not in result.output
            assert "Caio" not in result.output

    def test_draw_with_too_few_participants(self, runner):
        with runner.isolated_filesystem():
            setup_database(runner)

            result = runner.invoke(cli, ["draw", "teams.db", "--teams", "5"])

            assert result.exit_code == 1
            assert "at least 5" in result.output

    def test_draw_with_config_and_outputs(self, runner):
        with runner.isolated_filesystem():
            setup_database(runner)
            with open("config.yaml", "w", encoding="utf-8") as f:
                yaml.dump({'teams': {'count': 2, 'algorithm': 'best'}, 'match': {'name': 'Sunday'}}, f)

            result = runner.invoke(cli, [
                "--config", "config.yaml", "draw", "teams.db",
                "--output-csv", "teams.csv", "--output-yaml", "teams.yaml",
            ])

            assert result.exit_code == 0, result.output
            assert "*Sunday*" in result.output
            df = pd.read_csv("teams.csv")
            assert sorted(df['name']) == ["Ana", "Bia", "Caio", "Duda"]
            assert set(df['team']) == {1, 2}
            with open("teams.yaml", encoding="utf-8") as f:
                assert set(yaml.safe_load(f)['teams']) == {1, 2}

    def test_invalid_config(self, runner):
        with runner.isolated_filesystem():
            setup_database(runner)
            with open("config.yaml", "w", encoding="utf-8") as f:
                yaml.dump({'teams': {'count': 0}}, f)

            result = runner.invoke(cli, ["--config", "config.yaml", "draw", "teams.db"])

            assert result.exit_code == 1
            assert "teams.count" in result.output

    def test_import_csv(self, runner):
        with runner.isolated_filesystem():
            runner.invoke(cli, ["init", "teams.db"])
            pd.DataFrame({
                'id': ['a', 'b'],
                'name': ['Ana', 'Bia'],
                'rating': [4, 2],
            }).to_csv("roster.csv", index=False)

            result = runner.invoke(cli, ["import-csv", "teams.db", "roster.csv"])

            assert result.exit_code == 0, result.output
            with sql.connect("teams.db") as conn:
                participants = db.fetch_participants(conn)
            assert [(p.id, p.rating) for p in participants] == [("a", 4.0), ("b", 2.0)]

    def test_export_and_import(self, runner):
        with runner.isolated_filesystem():
            setup_database(runner)
            runner.invoke(cli, ["draw", "teams.db"])

            result = runner.invoke(cli, ["export", "teams.db", "backup.yaml"])
            assert result.exit_code == 0, result.output

            runner.invoke(cli, ["init", "restored.db"])
            result = runner.invoke(cli, ["import", "restored.db", "backup.yaml"])

            assert result.exit_code == 0, result.output
            assert "Imported 4 participants and 1 draws" in result.output
            with sql.connect("restored.db") as conn:
                assert len(db.fetch_participants(conn)) == 4
                assert len(db.fetch_history(conn)) == 1

    def test_history_empty(self, runner):
        with runner.isolated_filesystem():
            runner.invoke(cli, ["init", "teams.db"])

            result = runner.invoke(cli, ["history", "teams.db"])

            assert result.exit_code == 0
            assert "No draws yet" in result.output

    def test_import_csv_after_add_keeps_registered(self, runner):
        with runner.isolated_filesystem():
            Path("names.txt").write_text("1. Ana\n2. Bia\n", encoding="utf-8")
            runner.invoke(cli, ["init", "teams.db"])
            runner.invoke(cli, ["add", "teams.db", "--input", "names.txt"])
            Path("roster.csv").write_text("name,rating\nCaio,4\n", encoding="utf-8")

            result = runner.invoke(cli, ["import-csv", "teams.db", "roster.csv"])

            assert result.exit_code == 0, result.output
            with sql.connect("teams.db") as conn:
                participants = db.fetch_participants(conn)
            assert [(p.id, p.name) for p in participants] == [("1", "Ana"), ("2", "Bia"), ("3", "Caio")]

    def test_import_csv_updates_registered_name(self, runner):
        with runner.isolated_filesystem():
            Path("names.txt").write_text("1. Ana\n2. Bia\n", encoding="utf-8")
            runner.invoke(cli, ["init", "teams.db"])
            runner.invoke(cli, ["add", "teams.db", "--input", "names.txt"])
            runner.invoke(cli, ["toggle", "teams.db", "Bia"])
            Path("roster.csv").write_text("name,rating\nBia,4\n", encoding="utf-8")

            result = runner.invoke(cli, ["import-csv", "teams.db", "roster.csv"])

            assert result.exit_code == 0, result.output
            with sql.connect("teams.db") as conn:
                participants = db.fetch_participants(conn)
            assert [(p.id, p.name) for p in participants] == [("1", "Ana"), ("2", "Bia")]
            assert participants[1].rating == 4.0
            assert not participants[1].participating

    def test_import_csv_conflicting_id(self, runner):
        with runner.isolated_filesystem():
            Path("names.txt").write_text("1. Ana\n2. Bia\n", encoding="utf-8")
            runner.invoke(cli, ["init", "teams.db"])
            runner.invoke(cli, ["add", "teams.db", "--input", "names.txt"])
            Path("roster.csv").write_text("id,name\n1,Bia\n", encoding="utf-8")

            result = runner.invoke(cli, ["import-csv", "teams.db", "roster.csv"])

            assert result.exit_code == 1
            assert "Could not import" in result.output
            with sql.connect("teams.db") as conn:
                assert [p.name for p in db.fetch_participants(conn)] == ["Ana", "Bia"]
