"""
Tests for configuration loading and normalization into Settings.
"""

import json

import pytest

from nvd_check.core.errors import ConfigError, ParseError
from nvd_check.core.settings import (
    BOOLEAN_MAPPINGS,
    DEFAULTS,
    Keys,
    STRING_MAPPINGS,
    Settings,
    app_label,
    app_name,
    classpath,
    get_in,
    populate_settings,
    read_opts,
    report_options,
)


def test_absent_fields_keep_defaults(home):
    settings = populate_settings({"name": "libfoo", "version": "1.0"})
    for key in list(BOOLEAN_MAPPINGS) + list(STRING_MAPPINGS):
        assert settings.get(key) == DEFAULTS.get(key)
    assert settings.get_int(Keys.CVE_CHECK_VALID_FOR_HOURS) == 4


def test_default_data_directory_under_home(home):
    settings = populate_settings({"name": "libfoo", "version": "1.0"})
    assert settings.data_directory == home / ".lein" / ".nvd"


def test_configured_data_directory(home, tmp_path):
    settings = populate_settings({"nvd": {"data-directory": str(tmp_path / "nvd")}})
    assert settings.data_directory == tmp_path / "nvd"


@pytest.mark.parametrize("value", [True, False])
def test_booleans_are_stored_exactly(home, value):
    settings = populate_settings({"nvd": {"auto-update": value,
                                          "analyzer": {"central-enabled": value, "nexus-enabled": value}}})
    assert settings.get(Keys.AUTO_UPDATE) is value
    assert settings.get(Keys.ANALYZER_CENTRAL_ENABLED) is value
    assert settings.get(Keys.ANALYZER_NEXUS_ENABLED) is value


def test_non_boolean_rejected_and_settings_released(home, monkeypatch):
    created = []
    original_init = Settings.__init__

    def tracking_init(self, *args, **kwargs):
        original_init(self, *args, **kwargs)
        created.append(self)

    monkeypatch.setattr(Settings, "__init__", tracking_init)
    with pytest.raises(ConfigError):
        populate_settings({"nvd": {"auto-update": "yes"}})
    assert created and created[0].closed


def test_strings_are_coerced(home):
    settings = populate_settings({"nvd": {"proxy": {"server": "proxy.local", "port": 3128},
                                          "suppression-file": "suppress.xml",
                                          "cve": {"url-2.0-base": "https://mirror/%d.xml.gz"}}})
    assert settings.get(Keys.PROXY_SERVER) == "proxy.local"
    assert settings.get(Keys.PROXY_PORT) == "3128"
    assert settings.get(Keys.SUPPRESSION_FILE) == "suppress.xml"
    assert settings.get(Keys.CVE_SCHEMA_2_0) == "https://mirror/%d.xml.gz"


def test_null_and_empty_strings_are_ignored(home):
    settings = populate_settings({"nvd": {"proxy": {"server": None, "user": ""}}})
    assert not settings.is_set(Keys.PROXY_SERVER)
    assert not settings.is_set(Keys.PROXY_USERNAME)


def test_valid_for_hours(home):
    settings = populate_settings({"nvd": {"cve": {"valid-for-hours": 24}}})
    assert settings.get(Keys.CVE_CHECK_VALID_FOR_HOURS) == 24


def test_valid_for_hours_must_be_integer(home):
    with pytest.raises(ConfigError):
        populate_settings({"nvd": {"cve": {"valid-for-hours": "soon"}}})


def test_valid_for_hours_rejects_fractions(home):
    with pytest.raises(ConfigError):
        populate_settings({"nvd": {"cve": {"valid-for-hours": 1.9}}})
    settings = populate_settings({"nvd": {"cve": {"valid-for-hours": 24.0}}})
    assert settings.get(Keys.CVE_CHECK_VALID_FOR_HOURS) == 24


def test_nvd_section_must_be_object(home):
    with pytest.raises(ConfigError):
        populate_settings({"nvd": ["not", "a", "map"]})


def test_cleanup_is_idempotent_and_blocks_use(home):
    settings = populate_settings({})
    settings.cleanup()
    settings.cleanup()
    assert settings.closed
    with pytest.raises(ConfigError):
        settings.get(Keys.AUTO_UPDATE)


def test_read_opts(write_config):
    path = write_config({"name": "libfoo", "classpath": ["a.jar"]})
    assert read_opts(path) == {"name": "libfoo", "classpath": ["a.jar"]}


def test_read_opts_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ParseError):
        read_opts(path)


def test_read_opts_requires_object(tmp_path):
    path = tmp_path / "list.json"
    path.write_text(json.dumps(["a.jar"]), encoding="utf-8")
    with pytest.raises(ParseError):
        read_opts(path)


def test_read_opts_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        read_opts(tmp_path / "missing.json")


def test_app_name():
    assert app_name({}) == "unknown"
    assert app_name({"name": "libfoo"}) == "libfoo"
    assert app_name({"name": "libfoo", "group": "libfoo"}) == "libfoo"
    assert app_name({"name": "libfoo", "group": "org.example"}) == "org.example/libfoo"
    assert app_label({"name": "libfoo", "version": "1.0"}) == "libfoo 1.0"


def test_get_in():
    document = {"a": {"b": {"c": 1}}, "x": 5}
    assert get_in(document, ("a", "b", "c")) == 1
    assert get_in(document, ("a", "missing")) is None
    assert get_in(document, ("x", "y")) is None


def test_classpath():
    assert classpath({}) == []
    assert classpath({"classpath": ["a.jar", "classes"]}) == ["a.jar", "classes"]
    with pytest.raises(ConfigError):
        classpath({"classpath": "a.jar"})
    with pytest.raises(ConfigError):
        classpath({"classpath": ["a.jar", 5]})


def test_report_options():
    assert report_options({}) == ("target/nvd", "ALL")
    assert report_options({"nvd": {"output-dir": "", "output-format": "json"}}) == ("target/nvd", "json")
    with pytest.raises(ConfigError):
        report_options({"nvd": {"output-dir": 5}})
    with pytest.raises(ConfigError):
        report_options({"nvd": {"output-format": ["HTML"]}})
