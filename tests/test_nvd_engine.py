"""
Tests for the bundled engine and its analyzers against a real store file.
"""

import zipfile
from types import SimpleNamespace

import pytest

from nvd_check.caching import cache_db
from nvd_check.core.engine import engine_session, scan_and_analyze, vulnerabilities
from nvd_check.core.settings import populate_settings
from nvd_check.matching.analyzers import parse_file_name, parse_manifest
from nvd_check.matching.nvd_engine import NvdEngine


def make_jar(path, manifest=None):
    with zipfile.ZipFile(path, "w") as jar:
        if manifest is not None:
            jar.writestr("META-INF/MANIFEST.MF", manifest)
        jar.writestr("Empty.class", b"")
    return path


@pytest.fixture
def settings(home, tmp_path):
    return populate_settings({"nvd": {"data-directory": str(tmp_path / "data"), "auto-update": False}})


@pytest.fixture
def store(settings):
    db_path = cache_db.db_path_for(settings.data_directory)
    db = cache_db.get_db(db_path)
    try:
        cache_db.store_cve(db, SimpleNamespace(
            id="CVE-2021-44228",
            descriptions=[SimpleNamespace(value="JNDI lookup")],
            published="2021-12-10T10:15:09.143",
            score=["V31", 10.0, "CRITICAL"],
            cpe=[SimpleNamespace(criteria="cpe:2.3:a:apache:log4j-core:2.14.1:*:*:*:*:*:*:*", vulnerable=True)],
        ))
        db.commit()
    finally:
        db.close()
    return db_path


@pytest.mark.parametrize("file_name, expected", [
    ("commons-io-2.4.jar", ("commons-io", "2.4")),
    ("log4j-core-2.14.1.jar", ("log4j-core", "2.14.1")),
    ("guava-31.1-jre.jar", ("guava", "31.1-jre")),
    ("tools.jar", ("tools", None)),
])
def test_parse_file_name(file_name, expected):
    assert parse_file_name(file_name) == expected


def test_parse_manifest_continuation_lines():
    text = "Manifest-Version: 1.0\r\nImplementation-Title: Very Long\r\n  Title\r\nImplementation-Version: 2.0\r\n\r\nName: other\r\n"
    assert parse_manifest(text) == {
        "Manifest-Version": "1.0",
        "Implementation-Title": "Very Long Title",
        "Implementation-Version": "2.0",
    }


def test_engine_finds_vulnerable_jar(settings, store, tmp_path):
    vulnerable = make_jar(tmp_path / "log4j-core-2.14.1.jar")
    safe = make_jar(tmp_path / "log4j-core-2.17.1.jar")

    with engine_session(settings, NvdEngine) as engine:
        scan_and_analyze(engine, [str(vulnerable), str(safe), str(tmp_path / "notes.txt")])
        found = vulnerabilities(engine)
        assert {v.name for v in found} == {"CVE-2021-44228"}
        assert engine.analyzers() == ["Jar Analyzer", "CPE Analyzer"]
        assert engine.db is not None
    assert engine.db is None


def test_manifest_version_used_when_file_name_has_none(settings, store, tmp_path):
    jar = make_jar(tmp_path / "log4j-core.jar", "Manifest-Version: 1.0\nImplementation-Version: 2.14.1\n")
    engine = NvdEngine(settings)
    try:
        scan_and_analyze(engine, [str(jar)])
        dependency = engine.dependencies()[0]
        assert dependency.version == "2.14.1"
        assert dependency.evidence["manifest.Implementation-Version"] == "2.14.1"
        assert len(dependency.vulnerabilities) == 1
    finally:
        engine.close()


def test_missing_files_are_skipped(settings, tmp_path):
    engine = NvdEngine(settings)
    try:
        assert engine.scan(str(tmp_path / "gone.jar")) is None
        assert engine.dependencies() == []
    finally:
        engine.close()


def test_jar_analyzer_can_be_disabled(home, tmp_path):
    settings = populate_settings({"nvd": {"data-directory": str(tmp_path / "data"),
                                          "analyzer": {"jar-enabled": False}}})
    engine = NvdEngine(settings)
    assert engine.analyzers() == ["CPE Analyzer"]


def test_auto_update_runs_before_analysis(home, tmp_path, monkeypatch):
    settings = populate_settings({"nvd": {"data-directory": str(tmp_path / "data")}})
    calls = []
    monkeypatch.setattr(cache_db, "sync_modified_cves", lambda db_path, **kwargs: calls.append(kwargs) or 0)
    engine = NvdEngine(settings, api_key=None)
    try:
        engine.analyze()
    finally:
        engine.close()
    assert calls == [{"api_key": None, "valid_for_hours": 4, "timeout": 10.0}]


def test_connection_timeout_is_milliseconds(home, tmp_path):
    settings = populate_settings({"nvd": {"data-directory": str(tmp_path / "data"),
                                          "database": {"connection-timeout": 2500}}})
    assert NvdEngine(settings).timeout == 2.5
