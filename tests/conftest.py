"""
Shared fixtures for the dependency check tests.

- FakeEngine records every call so lifecycle tests can assert on ordering
  and on how many times close() ran.
- write_config writes a JSON configuration document into tmp_path.
- HOME is redirected to tmp_path so the default data directory never
  touches the real home directory.
"""

import json

import pytest

from nvd_check.core.models import Dependency, Vulnerability


class FakeEngine:
    def __init__(self, settings, findings=None, fail_on=None):
        self.settings = settings
        self.findings = findings or {}
        self.fail_on = fail_on
        self.calls = []
        self.scanned = []
        self.close_count = 0
        self._dependencies = []

    def _maybe_fail(self, operation):
        self.calls.append(operation)
        if self.fail_on == operation:
            raise RuntimeError(f"{operation} exploded")

    def scan(self, path):
        self._maybe_fail("scan")
        self.scanned.append(path)
        dependency = Dependency(file_path=path)
        for vulnerability in self.findings.get(path, []):
            dependency.add_vulnerability(vulnerability)
        self._dependencies.append(dependency)

    def analyze(self):
        self._maybe_fail("analyze")

    def dependencies(self):
        return list(self._dependencies)

    def analyzers(self):
        return ["Fake Analyzer"]

    def update_database(self):
        self._maybe_fail("update_database")

    def close(self):
        self.close_count += 1
        self.calls.append("close")


class EngineRecorder:
    """Engine factory that keeps the engine it built."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.engine = None

    def __call__(self, settings):
        self.engine = FakeEngine(settings, **self.kwargs)
        return self.engine


@pytest.fixture
def home(tmp_path, monkeypatch):
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def write_config(tmp_path):
    def _write(document, name="project.json"):
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def log4shell():
    return Vulnerability(name="CVE-2021-44228", severity="CRITICAL", cvss_score=10.0,
                         description="Apache Log4j2 JNDI features do not protect against attacker controlled LDAP")


@pytest.fixture
def no_atexit(monkeypatch):
    """Capture atexit registrations instead of running them at interpreter exit."""
    registered = []
    monkeypatch.setattr("nvd_check.core.commands.atexit.register",
                        lambda func, *args: registered.append((func, args)))
    return registered
