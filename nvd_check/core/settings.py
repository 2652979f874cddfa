"""
@file settings.py
@brief Configuration normalization into engine settings

Reads a project's JSON configuration document and maps its nested `nvd`
section onto the flat, typed settings consumed by the analysis engine.

@details
**Mapping rules:**
- STRING_MAPPINGS: value is converted with str() and set only if non-empty.
  Absent (None) values are a no-op, never the text "None".
- BOOLEAN_MAPPINGS: value is set only if present and must be a real bool.
- cve/valid-for-hours: set as an integer when present.
- data-directory: configured value, or <home>/.lein/.nvd.

Unset keys keep the built-in defaults held by Settings.

A Settings object is created per invocation and must be released with
cleanup() once the engine is done with it (see core/engine.py).
"""

import json
import logging
import os
from pathlib import Path

from nvd_check.caching.constants import DATA_DIRECTORY_PARTS, DEFAULT_OUTPUT_DIR, DEFAULT_OUTPUT_FORMAT
from nvd_check.core.errors import ConfigError, ParseError

logger = logging.getLogger(__name__)


class Keys:
    """
    @class Keys
    @brief Setting identifiers understood by the analysis engine
    """
    AUTO_UPDATE = "autoupdate"
    DATA_DIRECTORY = "data.directory"
    SUPPRESSION_FILE = "suppression.file"
    ADDITIONAL_ZIP_EXTENSIONS = "extensions.zip"

    CVE_CHECK_VALID_FOR_HOURS = "cve.check.validforhours"
    CVE_MODIFIED_12_URL = "cve.url-1.2.modified"
    CVE_MODIFIED_20_URL = "cve.url-2.0.modified"
    CVE_SCHEMA_1_2 = "cve.url-1.2.base"
    CVE_SCHEMA_2_0 = "cve.url-2.0.base"

    PROXY_SERVER = "proxy.server"
    PROXY_PORT = "proxy.port"
    PROXY_USERNAME = "proxy.username"
    PROXY_PASSWORD = "proxy.password"

    CONNECTION_TIMEOUT = "database.connection.timeout"
    DB_DRIVER_NAME = "database.driver.name"
    DB_DRIVER_PATH = "database.driver.path"
    DB_CONNECTION_STRING = "database.connection.string"
    DB_USER = "database.user"
    DB_PASSWORD = "database.password"

    ANALYZER_NEXUS_URL = "analyzer.nexus.url"
    ANALYZER_NEXUS_USES_PROXY = "analyzer.nexus.proxy"
    ANALYZER_ASSEMBLY_MONO_PATH = "analyzer.assembly.mono.path"
    ANALYZER_JAR_ENABLED = "analyzer.jar.enabled"
    ANALYZER_PYTHON_DISTRIBUTION_ENABLED = "analyzer.python.distribution.enabled"
    ANALYZER_PYTHON_PACKAGE_ENABLED = "analyzer.python.package.enabled"
    ANALYZER_RUBY_GEMSPEC_ENABLED = "analyzer.ruby.gemspec.enabled"
    ANALYZER_OPENSSL_ENABLED = "analyzer.openssl.enabled"
    ANALYZER_CMAKE_ENABLED = "analyzer.cmake.enabled"
    ANALYZER_AUTOCONF_ENABLED = "analyzer.autoconf.enabled"
    ANALYZER_COMPOSER_LOCK_ENABLED = "analyzer.composer.lock.enabled"
    ANALYZER_NODE_PACKAGE_ENABLED = "analyzer.node.package.enabled"
    ANALYZER_NUSPEC_ENABLED = "analyzer.nuspec.enabled"
    ANALYZER_CENTRAL_ENABLED = "analyzer.central.enabled"
    ANALYZER_NEXUS_ENABLED = "analyzer.nexus.enabled"
    ANALYZER_ARCHIVE_ENABLED = "analyzer.archive.enabled"
    ANALYZER_ASSEMBLY_ENABLED = "analyzer.assembly.enabled"


# Setting identifier -> path inside the "nvd" section of the document
STRING_MAPPINGS = {
    Keys.ANALYZER_NEXUS_URL: ("analyzer", "nexus-url"),
    Keys.ANALYZER_ASSEMBLY_MONO_PATH: ("analyzer", "path-to-mono"),
    Keys.SUPPRESSION_FILE: ("suppression-file",),
    Keys.ADDITIONAL_ZIP_EXTENSIONS: ("zip-extensions",),
    Keys.PROXY_SERVER: ("proxy", "server"),
    Keys.PROXY_PORT: ("proxy", "port"),
    Keys.PROXY_USERNAME: ("proxy", "user"),
    Keys.PROXY_PASSWORD: ("proxy", "password"),
    Keys.CONNECTION_TIMEOUT: ("database", "connection-timeout"),
    Keys.DB_DRIVER_NAME: ("database", "driver-name"),
    Keys.DB_DRIVER_PATH: ("database", "driver-path"),
    Keys.DB_CONNECTION_STRING: ("database", "connection-string"),
    Keys.DB_USER: ("database", "user"),
    Keys.DB_PASSWORD: ("database", "password"),
    Keys.CVE_MODIFIED_12_URL: ("cve", "url-1.2-modified"),
    Keys.CVE_MODIFIED_20_URL: ("cve", "url-2.0-modified"),
    Keys.CVE_SCHEMA_1_2: ("cve", "url-1.2-base"),
    Keys.CVE_SCHEMA_2_0: ("cve", "url-2.0-base"),
}

BOOLEAN_MAPPINGS = {
    Keys.AUTO_UPDATE: ("auto-update",),
    Keys.ANALYZER_JAR_ENABLED: ("analyzer", "jar-enabled"),
    Keys.ANALYZER_PYTHON_DISTRIBUTION_ENABLED: ("analyzer", "python-distribution-enabled"),
    Keys.ANALYZER_PYTHON_PACKAGE_ENABLED: ("analyzer", "python-package-enabled"),
    Keys.ANALYZER_RUBY_GEMSPEC_ENABLED: ("analyzer", "ruby-gemspec-enabled"),
    Keys.ANALYZER_OPENSSL_ENABLED: ("analyzer", "openssl-enabled"),
    Keys.ANALYZER_CMAKE_ENABLED: ("analyzer", "cmake-enabled"),
    Keys.ANALYZER_AUTOCONF_ENABLED: ("analyzer", "autoconf-enabled"),
    Keys.ANALYZER_COMPOSER_LOCK_ENABLED: ("analyzer", "composer-lock-enabled"),
    Keys.ANALYZER_NODE_PACKAGE_ENABLED: ("analyzer", "node-package-enabled"),
    Keys.ANALYZER_NUSPEC_ENABLED: ("analyzer", "nuspec-enabled"),
    Keys.ANALYZER_CENTRAL_ENABLED: ("analyzer", "central-enabled"),
    Keys.ANALYZER_NEXUS_ENABLED: ("analyzer", "nexus-enabled"),
    Keys.ANALYZER_ARCHIVE_ENABLED: ("analyzer", "archive-enabled"),
    Keys.ANALYZER_ASSEMBLY_ENABLED: ("analyzer", "assembly-enabled"),
    Keys.ANALYZER_NEXUS_USES_PROXY: ("analyzer", "nexus-uses-proxy"),
}

# Engine built-in values, kept whenever the document does not override them
DEFAULTS = {
    Keys.AUTO_UPDATE: True,
    Keys.CVE_CHECK_VALID_FOR_HOURS: 4,
    Keys.CONNECTION_TIMEOUT: "10000",
    Keys.CVE_MODIFIED_12_URL: "https://nvd.nist.gov/download/nvdcve-Modified.xml.gz",
    Keys.CVE_MODIFIED_20_URL: "https://nvd.nist.gov/feeds/xml/cve/nvdcve-2.0-Modified.xml.gz",
    Keys.CVE_SCHEMA_1_2: "https://nvd.nist.gov/download/nvdcve-%d.xml.gz",
    Keys.CVE_SCHEMA_2_0: "https://nvd.nist.gov/feeds/xml/cve/nvdcve-2.0-%d.xml.gz",
    Keys.ANALYZER_NEXUS_URL: "https://repository.sonatype.org/service/local/",
    Keys.ANALYZER_NEXUS_USES_PROXY: True,
    Keys.ANALYZER_JAR_ENABLED: True,
    Keys.ANALYZER_PYTHON_DISTRIBUTION_ENABLED: True,
    Keys.ANALYZER_PYTHON_PACKAGE_ENABLED: True,
    Keys.ANALYZER_RUBY_GEMSPEC_ENABLED: True,
    Keys.ANALYZER_OPENSSL_ENABLED: True,
    Keys.ANALYZER_CMAKE_ENABLED: True,
    Keys.ANALYZER_AUTOCONF_ENABLED: True,
    Keys.ANALYZER_COMPOSER_LOCK_ENABLED: True,
    Keys.ANALYZER_NODE_PACKAGE_ENABLED: True,
    Keys.ANALYZER_NUSPEC_ENABLED: True,
    Keys.ANALYZER_CENTRAL_ENABLED: True,
    Keys.ANALYZER_NEXUS_ENABLED: False,
    Keys.ANALYZER_ARCHIVE_ENABLED: True,
    Keys.ANALYZER_ASSEMBLY_ENABLED: True,
}


class Settings:
    """
    @class Settings
    @brief Flat, typed engine settings owned by a single invocation

    @details
    Replaces process-wide settings state: one instance is created by
    populate_settings(), handed to the engine and torn down with cleanup()
    on every exit path. Using an instance after cleanup() raises ConfigError.
    """

    def __init__(self, defaults=None):
        self._values = dict(DEFAULTS if defaults is None else defaults)
        self._closed = False

    def _check_open(self):
        if self._closed:
            raise ConfigError("Settings have already been cleaned up")

    def set_string(self, key, value):
        self._check_open()
        self._values[key] = str(value)
        logger.debug(f"Setting {key} set")

    def set_string_if_not_empty(self, key, value):
        if value is None:
            return
        value = str(value)
        if value:
            self.set_string(key, value)

    def set_boolean_if_not_null(self, key, value):
        self._check_open()
        if value is None:
            return
        if not isinstance(value, bool):
            raise ConfigError(f"Setting {key} expects a boolean, got {value!r}")
        self._values[key] = value
        logger.debug(f"Setting {key} = {value}")

    def set_int(self, key, value):
        self._check_open()
        if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
            raise ConfigError(f"Setting {key} expects an integer, got {value!r}")
        try:
            self._values[key] = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Setting {key} expects an integer, got {value!r}") from e
        logger.debug(f"Setting {key} = {self._values[key]}")

    def get(self, key, default=None):
        self._check_open()
        return self._values.get(key, default)

    def get_string(self, key, default=None):
        value = self.get(key)
        return default if value is None else str(value)

    def get_boolean(self, key, default=False):
        value = self.get(key)
        return default if value is None else bool(value)

    def get_int(self, key, default=None):
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Setting {key} is not an integer: {value!r}") from e

    def is_set(self, key):
        self._check_open()
        return key in self._values

    @property
    def data_directory(self) -> Path:
        return Path(self.get_string(Keys.DATA_DIRECTORY)).expanduser()

    @property
    def closed(self):
        return self._closed

    def cleanup(self):
        """
        Release the settings and drop all values.

        @details
        Safe to call more than once; only the first call does any work.
        """
        if self._closed:
            return
        self._values.clear()
        self._closed = True
        logger.debug("Settings cleaned up")


def get_in(document, path, default=None):
    """Walk nested mappings along path; return default when any step is missing."""
    current = document
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def read_opts(config_file) -> dict:
    """
    Load a project's configuration document.

    @param config_file str Path to a JSON file

    @return dict Parsed document

    @throws ConfigError if the file cannot be read
    @throws ParseError if the content is not a JSON object
    """
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(f"Unable to read configuration file {config_file}: {e}") from e

    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise ParseError(
            f"Invalid JSON in {config_file}: {e.msg} (line {e.lineno} column {e.colno})"
        ) from e

    if not isinstance(document, dict):
        raise ParseError(f"Configuration in {config_file} must be a JSON object")
    logger.info(f"Configuration loaded from: {config_file}")
    return document


def app_name(project):
    """
    Display name of the checked application.

    @param project dict Configuration document

    @return str "name" when group is absent or equal to name, else "group/name"
            (name defaults to "unknown")
    """
    name = project.get("name") or "unknown"
    group = project.get("group") or name
    if group == name:
        return name
    return f"{group}/{name}"


def app_label(project):
    """
    Application name followed by its version, as shown in reports.

    @param project dict Configuration document

    @return str e.g. "org.example/libfoo 1.0"
    """
    version = project.get("version")
    return f"{app_name(project)} {'' if version is None else version}"


def default_data_directory() -> Path:
    """
    Data directory used when the document sets none.

    @return Path <home>/.lein/.nvd for the invoking user
    """
    return Path(os.path.expanduser("~")).joinpath(*DATA_DIRECTORY_PARTS)


def classpath(project) -> list:
    """
    Classpath entries to scan.

    @param project dict Configuration document

    @return list Entries as given; [] when the document has none

    @throws ConfigError if classpath is not a list of strings
    """
    entries = project.get("classpath")
    if entries is None:
        return []
    if not isinstance(entries, list) or not all(isinstance(e, str) for e in entries):
        raise ConfigError("'classpath' must be a list of file paths")
    return entries


def report_options(project):
    """
    Report destination and format.

    @param project dict Configuration document

    @return tuple (output_dir, output_format), defaulting to target/nvd and ALL

    @throws ConfigError if nvd/output-dir or nvd/output-format is not a string
    """
    options = []
    for key, default in (("output-dir", DEFAULT_OUTPUT_DIR), ("output-format", DEFAULT_OUTPUT_FORMAT)):
        value = get_in(project, ("nvd", key))
        if value is None or value == "":
            value = default
        elif not isinstance(value, str):
            raise ConfigError(f"'nvd.{key}' must be a string, got {value!r}")
        options.append(value)
    return tuple(options)


def populate_settings(project) -> Settings:
    """
    Build the Settings for one invocation from a configuration document.

    @param project dict Configuration document (see read_opts)

    @return Settings Fresh settings; the caller owns them and must call cleanup()

    @throws ConfigError on values of the wrong type; the partially built
            settings are cleaned up first
    """
    plugin_settings = project.get("nvd") or {}
    if not isinstance(plugin_settings, dict):
        raise ConfigError("The 'nvd' section must be a JSON object")

    settings = Settings()
    try:
        valid_for_hours = get_in(plugin_settings, ("cve", "valid-for-hours"))
        if valid_for_hours is not None:
            settings.set_int(Keys.CVE_CHECK_VALID_FOR_HOURS, valid_for_hours)

        data_directory = get_in(plugin_settings, ("data-directory",))
        if data_directory:
            settings.set_string(Keys.DATA_DIRECTORY, data_directory)
        else:
            settings.set_string(Keys.DATA_DIRECTORY, default_data_directory())

        for key, path in BOOLEAN_MAPPINGS.items():
            settings.set_boolean_if_not_null(key, get_in(plugin_settings, path))

        for key, path in STRING_MAPPINGS.items():
            settings.set_string_if_not_empty(key, get_in(plugin_settings, path))
    except Exception:
        settings.cleanup()
        raise

    logger.info(f"Settings populated, data directory: {settings.data_directory}")
    return settings
