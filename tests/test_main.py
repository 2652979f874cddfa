"""
Tests for the command-line entry point and its exit codes.
"""

import logging

import pytest

from nvd_check.caching.constants import EXIT_ERROR, EXIT_OK, EXIT_VULNERABILITIES_FOUND
from nvd_check.core import main as cli
from nvd_check.core.main import configure_logging
from nvd_check.core.errors import UpdateError


@pytest.fixture(autouse=True)
def log_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda log_dir=None: str(tmp_path / "test.log"))


def test_check_without_findings(monkeypatch):
    monkeypatch.setattr(cli.commands, "check", lambda config_file: set())
    assert cli.main(["check", "project.json"]) == EXIT_OK


def test_check_with_findings(monkeypatch, log4shell):
    monkeypatch.setattr(cli.commands, "check", lambda config_file: {log4shell})
    assert cli.main(["check", "project.json"]) == EXIT_VULNERABILITIES_FOUND


def test_operational_error_has_its_own_code(monkeypatch, capsys):
    def failing(config_file):
        raise UpdateError("NVD unreachable")

    monkeypatch.setattr(cli.commands, "update_database", failing)
    assert cli.main(["update", "project.json"]) == EXIT_ERROR
    assert "NVD unreachable" in capsys.readouterr().out


def test_purge_without_store(monkeypatch, capsys):
    monkeypatch.setattr(cli.commands, "purge_database", lambda config_file: False)
    assert cli.main(["purge", "project.json"]) == EXIT_OK
    assert "nothing to purge" not in capsys.readouterr().out


def test_missing_config_file(tmp_path):
    assert cli.main(["check", str(tmp_path / "missing.json")]) == EXIT_ERROR


def test_configure_logging_creates_file(tmp_path):
    root = logging.getLogger()
    saved = root.handlers[:]
    saved_level = root.level
    root.handlers = []
    try:
        log_file = configure_logging(str(tmp_path / "logs"))
        assert log_file.startswith(str(tmp_path / "logs"))
        assert (tmp_path / "logs").is_dir()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved
        root.setLevel(saved_level)


def test_unknown_command():
    with pytest.raises(SystemExit) as exc:
        cli.main(["scan", "project.json"])
    assert exc.value.code == 2
