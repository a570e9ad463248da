"""Tests for CLI commands.

These tests verify that all CLI commands are registered and drive real
migrations against a temporary SQLite database.
"""

import io
from contextlib import redirect_stdout

import pytest

from fixtures import BROKEN_UP, write_migration, write_sample_migrations
from schema_migrate.errors import MigrateError
from schema_migrate.pipe import Pipe, close, spawn
from schema_migrate.runner.main import create_cli, main, write_pipe


class TestCLICommandRegistry:
    """Tests for CLI command registration."""

    def test_all_commands_registered(self):
        """Verify all expected commands are registered."""
        parser = create_cli()

        subparsers_action = None
        for action in parser._actions:
            if action.dest == "command":
                subparsers_action = action
                break

        assert subparsers_action is not None

        commands = set(subparsers_action.choices.keys())
        assert commands == {
            "create",
            "up",
            "down",
            "reset",
            "redo",
            "version",
            "migrate",
            "goto",
            "init",
            "help",
        }

    def test_migrate_accepts_negative_count(self):
        args = create_cli().parse_args(["migrate", "-2"])

        assert args.command == "migrate"
        assert args.n == -2

    def test_global_options(self):
        args = create_cli().parse_args(
            ["--url", "sqlite:///x.db", "--id", "reports", "--non-graceful", "up"]
        )

        assert args.url == "sqlite:///x.db"
        assert args.migration_id == "reports"
        assert args.non_graceful is True


def produce_text(pipe: Pipe, *lines: str) -> None:
    for line in lines:
        pipe.send(line)
    pipe.close()


class TestWritePipe:
    """Tests for progress output."""

    def test_text_and_errors(self):
        pipe = Pipe()
        out = io.StringIO()

        def produce():
            pipe.send("hello")
            close(pipe, MigrateError("boom"))

        spawn(produce)
        ok = write_pipe(pipe, out)

        assert ok is False
        assert out.getvalue() == "hello\n❌ boom\n\n"

    def test_follows_redirected_stdout(self):
        """Without an explicit stream, output goes to the current sys.stdout."""
        pipe = Pipe()
        buffer = io.StringIO()
        spawn(produce_text, pipe, "hello")

        with redirect_stdout(buffer):
            ok = write_pipe(pipe)

        assert ok is True
        assert buffer.getvalue() == "hello\n"


class TestCommands:
    """End-to-end command runs."""

    @pytest.fixture(autouse=True)
    def workdir(self, tmp_path, monkeypatch):
        """Run from an empty directory so no stray migrate.yaml is picked up."""
        monkeypatch.chdir(tmp_path)
        return tmp_path

    @pytest.fixture
    def run(self, db_url, migrations_dir):
        def run_cli(*args: str) -> int:
            return main(["--url", db_url, "--path", str(migrations_dir), *args])

        return run_cli

    def test_create(self, run, migrations_dir, capsys):
        assert run("create", "init users") == 0

        output = capsys.readouterr().out
        assert "0001_init_users.up.sql" in output
        assert (migrations_dir / "0001_init_users.down.sql").exists()

    def test_up_then_version(self, run, migrations_dir, capsys):
        write_sample_migrations(migrations_dir)

        assert run("up") == 0
        output = capsys.readouterr().out
        assert "> 0001_init_users.up.sql" in output
        assert "> 0002_add_index.up.sql" in output
        assert "seconds" in output

        assert run("version") == 0
        assert capsys.readouterr().out.strip() == "2"

    def test_down_markers(self, run, migrations_dir, capsys):
        write_sample_migrations(migrations_dir)
        run("up")
        capsys.readouterr()

        assert run("migrate", "-1") == 0

        assert "< 0002_add_index.down.sql" in capsys.readouterr().out
        run("version")
        assert capsys.readouterr().out.strip() == "1"

    def test_goto(self, run, migrations_dir, capsys):
        write_sample_migrations(migrations_dir)

        assert run("goto", "1") == 0
        capsys.readouterr()

        run("version")
        assert capsys.readouterr().out.strip() == "1"

    def test_goto_negative(self, run, capsys):
        assert run("goto", "-1") == 1
        assert "Unable to parse param <v>" in capsys.readouterr().out

    def test_failed_migration_exit_code(self, run, migrations_dir, capsys):
        write_migration(migrations_dir, 1, "broken", BROKEN_UP, "")

        assert run("up") == 1
        assert "❌ 0001_broken.up.sql" in capsys.readouterr().out

    def test_reset_and_redo(self, run, migrations_dir, capsys):
        write_sample_migrations(migrations_dir)
        run("up")

        assert run("reset") == 0
        assert run("redo") == 0
        capsys.readouterr()

        run("version")
        assert capsys.readouterr().out.strip() == "2"

    def test_missing_url(self, capsys):
        assert main(["up"]) == 1
        assert "url is required" in capsys.readouterr().out

    def test_url_from_config_file(self, workdir, migrations_dir, tmp_path, capsys):
        write_sample_migrations(migrations_dir)
        config_path = workdir / "migrate.yaml"
        config_path.write_text(
            f"url: sqlite://{tmp_path / 'configured.db'}\npath: {migrations_dir}\n"
        )

        assert main(["up"]) == 0
        assert (tmp_path / "configured.db").exists()

    def test_help(self, capsys):
        assert main(["help"]) == 0
        assert "schema-migrate" in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_init(self, workdir, capsys):
        config_path = workdir / "migrate.yaml"

        assert main(["-c", str(config_path), "init"]) == 0
        assert config_path.exists()

        assert main(["-c", str(config_path), "init"]) == 1
        assert "already exists" in capsys.readouterr().out
