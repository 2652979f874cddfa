"""
@file analyzers.py
@brief Analyzers run by the bundled engine

@details
- JarAnalyzer: identifies a jar from its file name and META-INF/MANIFEST.MF
- CpeAnalyzer: looks the identified product/version up in the local store

Analyzers run in list order; CpeAnalyzer needs the evidence JarAnalyzer sets.
"""

import logging
import re
import zipfile

from nvd_check.caching import cache_db
from nvd_check.core.models import Vulnerability
from nvd_check.core.settings import Keys

logger = logging.getLogger(__name__)

# commons-io-2.4.jar -> ("commons-io", "2.4")
FILE_NAME_PATTERN = re.compile(r"^(?P<product>.+?)-(?P<version>\d[\w.\-]*)$")

MANIFEST_PATH = "META-INF/MANIFEST.MF"


def parse_file_name(file_name):
    """
    Split an artifact file name into (product, version).

    @return tuple (product, version); version is None when the name carries none
    """
    stem = file_name.rsplit(".", 1)[0] if "." in file_name else file_name
    match = FILE_NAME_PATTERN.match(stem)
    if match:
        return match.group("product"), match.group("version")
    return stem, None


def parse_manifest(text):
    """Parse MANIFEST.MF main attributes, joining continuation lines."""
    attributes = {}
    key = None
    for line in text.splitlines():
        if not line.strip():
            # end of the main section
            if attributes:
                break
            continue
        if line.startswith(" ") and key:
            attributes[key] += line[1:]
            continue
        if ":" in line:
            key, value = line.split(":", 1)
            key = key.strip()
            attributes[key] = value.strip()
    return attributes


def read_manifest(path):
    with zipfile.ZipFile(path) as jar:
        if MANIFEST_PATH not in jar.namelist():
            return {}
        return parse_manifest(jar.read(MANIFEST_PATH).decode("utf-8", errors="replace"))


class JarAnalyzer:
    """
    Identifies a jar from its file name and META-INF/MANIFEST.MF.

    @details
    Records file and manifest evidence on the dependency and sets its
    product, version and vendor. The file name version wins over the
    manifest. Disabled with nvd/analyzer/jar-enabled = false.
    """
    name = "Jar Analyzer"
    enabled_key = Keys.ANALYZER_JAR_ENABLED

    def is_enabled(self, settings):
        return settings.get_boolean(self.enabled_key, True)

    def analyze(self, dependency, engine):
        product, version = parse_file_name(dependency.file_name)
        dependency.evidence["file.product"] = product
        if version:
            dependency.evidence["file.version"] = version

        try:
            manifest = read_manifest(dependency.file_path)
        except (zipfile.BadZipFile, OSError) as e:
            logger.warning(f"Unable to read manifest of {dependency.file_name}: {e}")
            manifest = {}

        for attribute in ("Implementation-Title", "Implementation-Version", "Implementation-Vendor",
                          "Bundle-SymbolicName", "Bundle-Version"):
            if manifest.get(attribute):
                dependency.evidence[f"manifest.{attribute}"] = manifest[attribute]

        dependency.product = product
        dependency.version = version or manifest.get("Implementation-Version") or manifest.get("Bundle-Version")
        dependency.vendor = manifest.get("Implementation-Vendor")
        logger.debug(f"{dependency.file_name}: product={dependency.product} version={dependency.version}")


class CpeAnalyzer:
    """
    Looks up CVEs in the local store for the identified product and version.

    Dependencies without both are skipped. Always enabled.
    """
    name = "CPE Analyzer"
    enabled_key = None

    def is_enabled(self, settings):
        return True

    def analyze(self, dependency, engine):
        if not dependency.product or not dependency.version:
            logger.debug(f"No product/version evidence for {dependency.file_name}")
            return
        for cve_id, description, severity, score in cache_db.find_vulnerabilities(
                engine.db, dependency.product, dependency.version):
            dependency.add_vulnerability(Vulnerability(
                name=cve_id,
                severity=severity or "UNKNOWN",
                cvss_score=score,
                description=description or "",
            ))
        if dependency.vulnerabilities:
            logger.info(f"{dependency.file_name}: {len(dependency.vulnerabilities)} vulnerabilities")


def build_analyzers(settings):
    return [analyzer for analyzer in (JarAnalyzer(), CpeAnalyzer()) if analyzer.is_enabled(settings)]
